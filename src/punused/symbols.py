"""The symbol model shared by the language server client and the classifier.

Symbols arrive from gopls as JSON. They are converted once, on the way in,
into frozen attrs classes so that the rest of the code never has to look at
raw LSP payloads. In particular method names, which gopls reports in the
form ``(*Type).Method``, are parsed into a :class:`MethodName` at that point
and every later consumer (the exported check, the removal reference) reads
the parsed form.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Iterator, Sequence
from enum import IntEnum
from pathlib import Path
from typing import Any
from urllib.parse import unquote, urlparse

from attrs import define, field

SOURCE_SUFFIX = ".go"
TEST_SUFFIX = "_test.go"
TEST_ENTRY_PREFIXES = ("Test", "Benchmark", "Example")

_RECEIVER_RE = re.compile(r"\((\*?)(.+)\)")


class SymbolKind(IntEnum):
    """LSP symbol kinds, numbered as in the protocol."""

    File = 1
    Module = 2
    Namespace = 3
    Package = 4
    Class = 5
    Method = 6
    Property = 7
    Field = 8
    Constructor = 9
    Enum = 10
    Interface = 11
    Function = 12
    Variable = 13
    Constant = 14
    String = 15
    Number = 16
    Boolean = 17
    Array = 18
    Object = 19
    Key = 20
    Null = 21
    EnumMember = 22
    Struct = 23
    Event = 24
    Operator = 25
    TypeParameter = 26

    @property
    def label(self) -> str:
        return self.name.lower()


@define(frozen=True)
class Position:
    line: int
    character: int


@define(frozen=True)
class Range:
    start: Position
    end: Position


@define(frozen=True)
class Location:
    uri: str
    range: Range

    @property
    def path(self) -> str:
        return uri_to_path(self.uri)


@define(frozen=True)
class PlainName:
    name: str

    @property
    def base(self) -> str:
        return self.name

    @property
    def removal_reference(self) -> str:
        return self.name


@define(frozen=True)
class MethodName:
    """A method name qualified by its receiver type, e.g. ``(*Foo).Bar``."""

    receiver: str
    method: str
    pointer: bool = False

    @property
    def base(self) -> str:
        return self.method

    @property
    def removal_reference(self) -> str:
        # rf wants Type.Method, with no parentheses or pointer marker.
        return f"{self.receiver}.{self.method}"


SymbolName = PlainName | MethodName


def parse_symbol_name(name: str, kind: SymbolKind) -> SymbolName:
    if kind != SymbolKind.Method or "." not in name:
        return PlainName(name)
    receiver, method = name.split(".", 1)
    match = _RECEIVER_RE.fullmatch(receiver)
    if match is None:
        return MethodName(receiver=receiver, method=method)
    return MethodName(
        receiver=match.group(2), method=method, pointer=bool(match.group(1))
    )


@define(frozen=True)
class Symbol:
    """A declaration in a source file, with any nested declarations."""

    name: str
    kind: SymbolKind
    location: Location
    children: tuple[Symbol, ...] = ()
    ident: SymbolName = field(init=False, eq=False, repr=False)

    @ident.default
    def _parse_ident(self) -> SymbolName:
        return parse_symbol_name(self.name, self.kind)


def iter_symbols(symbols: Iterable[Symbol]) -> Iterator[Symbol]:
    """Depth-first pre-order walk over a symbol tree."""
    for symbol in symbols:
        yield symbol
        yield from iter_symbols(symbol.children)


def is_exported(name: str) -> bool:
    return len(name) > 0 and "A" <= name[0] <= "Z"


def is_test_file(path: str) -> bool:
    return path.endswith(TEST_SUFFIX)


def is_test_entry_point(filename: str, symbol: Symbol) -> bool:
    return (
        is_test_file(filename)
        and symbol.kind == SymbolKind.Function
        and symbol.name.startswith(TEST_ENTRY_PREFIXES)
    )


def path_to_uri(path: str | Path) -> str:
    return Path(path).absolute().as_uri()


def uri_to_path(uri: str) -> str:
    parsed = urlparse(uri)
    if parsed.scheme != "file":
        return uri
    return unquote(parsed.path)


def position_from_lsp(data: dict[str, Any]) -> Position:
    return Position(line=data["line"], character=data["character"])


def range_from_lsp(data: dict[str, Any]) -> Range:
    return Range(start=position_from_lsp(data["start"]), end=position_from_lsp(data["end"]))


def location_from_lsp(data: dict[str, Any]) -> Location:
    return Location(uri=data["uri"], range=range_from_lsp(data["range"]))


def symbol_from_lsp(uri: str, data: dict[str, Any]) -> Symbol:
    """Convert a DocumentSymbol or a SymbolInformation payload.

    DocumentSymbols are located by their ``selectionRange`` (the identifier
    itself), which is where gopls expects a references request to point.
    """
    if "location" in data:
        location = location_from_lsp(data["location"])
        children: Sequence[dict[str, Any]] = ()
    else:
        location = Location(
            uri=uri, range=range_from_lsp(data.get("selectionRange") or data["range"])
        )
        children = data.get("children") or ()
    return Symbol(
        name=data["name"],
        kind=SymbolKind(data["kind"]),
        location=location,
        children=tuple(symbol_from_lsp(uri, child) for child in children),
    )
