"""Classifying exported symbols by where they are referenced from."""

from collections.abc import Sequence
from enum import Enum
from typing import Protocol

from attrs import define, field

from punused.errors import ReferenceQueryError
from punused.symbols import (
    Location,
    Symbol,
    SymbolKind,
    is_exported,
    is_test_entry_point,
    is_test_file,
    iter_symbols,
)


class SymbolProvider(Protocol):
    async def document_symbols(self, filename: str) -> list[Symbol]: ...


class ReferenceProvider(Protocol):
    async def references(self, location: Location) -> list[Location]: ...


class Outcome(Enum):
    used = "used"
    test_only = "test_only"
    unused = "unused"


@define(frozen=True)
class Usage:
    filename: str
    symbol: Symbol
    outcome: Outcome


@define(frozen=True)
class SymbolFailure:
    symbol: Symbol
    error: ReferenceQueryError


@define
class FileClassification:
    """Everything learned about one file, in symbol tree order."""

    filename: str
    usages: list[Usage] = field(factory=list)
    failures: list[SymbolFailure] = field(factory=list)

    def reported(self) -> list[Usage]:
        return [u for u in self.usages if u.outcome != Outcome.used]


def is_candidate(filename: str, symbol: Symbol) -> bool:
    """Whether a symbol is worth a references query at all.

    Field references from gopls are too unreliable to act on, test entry
    points are called by the test runner rather than by code, and only
    exported names can be unused outside their own package.
    """
    if symbol.kind == SymbolKind.Field:
        return False
    if is_test_entry_point(filename, symbol):
        return False
    return is_exported(symbol.ident.base)


def outcome_for(references: Sequence[Location]) -> Outcome:
    if not references:
        return Outcome.unused
    if all(is_test_file(ref.uri) for ref in references):
        return Outcome.test_only
    return Outcome.used


async def classify_file(
    filename: str, symbols: Sequence[Symbol], references: ReferenceProvider
) -> FileClassification:
    """Classify every candidate symbol in a file's symbol tree.

    Children are always visited, whether or not their parent was a
    candidate, so the methods of an unused type are classified on their own.
    A failed references query only costs the symbol it was for.
    """
    result = FileClassification(filename)
    for symbol in iter_symbols(symbols):
        if not is_candidate(filename, symbol):
            continue
        try:
            refs = await references.references(symbol.location)
        except ReferenceQueryError as e:
            result.failures.append(SymbolFailure(symbol, e))
            continue
        result.usages.append(Usage(filename, symbol, outcome_for(refs)))
    return result
