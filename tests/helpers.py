import json
import os
import pathlib
import sys
from collections.abc import Iterable

from attrs import define, field

from punused.errors import ReferenceQueryError, RemovalError, SymbolQueryError
from punused.symbols import (
    Location,
    Position,
    Range,
    Symbol,
    SymbolKind,
    iter_symbols,
)

TESTS_DIR = os.path.dirname(os.path.abspath(__file__))
FAKE_GOPLS = os.path.join(TESTS_DIR, "fake_gopls.py")
FAKE_RF = os.path.join(TESTS_DIR, "fake_rf.py")


def location(path: str, line: int = 0, character: int = 0) -> Location:
    uri = path if path.startswith("file://") else f"file:///ws/{path}"
    return Location(
        uri=uri,
        range=Range(Position(line, character), Position(line, character + 1)),
    )


def symbol(
    name: str,
    kind: SymbolKind = SymbolKind.Function,
    line: int = 0,
    character: int = 5,
    children: Iterable[Symbol] = (),
    path: str = "pkg/x.go",
) -> Symbol:
    return Symbol(
        name=name,
        kind=kind,
        location=location(path, line, character),
        children=tuple(children),
    )


def document_symbol(
    name: str,
    kind: SymbolKind = SymbolKind.Function,
    line: int = 0,
    character: int = 5,
    children: Iterable[dict] = (),
) -> dict:
    """A DocumentSymbol payload as gopls would send it."""
    selection = {
        "start": {"line": line, "character": character},
        "end": {"line": line, "character": character + len(name)},
    }
    return {
        "name": name,
        "kind": int(kind),
        "range": {
            "start": {"line": line, "character": 0},
            "end": {"line": line + 2, "character": 1},
        },
        "selectionRange": selection,
        "children": list(children),
    }


def ref(file: str, line: int = 0, character: int = 0) -> dict:
    return {"file": file, "line": line, "character": character}


def write_workspace(root: pathlib.Path, files: Iterable[str], module: bool = True) -> None:
    if module:
        (root / "go.mod").write_text("module example.com/ws\n\ngo 1.22\n")
    for name in files:
        path = root / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("package x\n")


def fake_gopls(tmp_path: pathlib.Path, **data) -> list[str]:
    data_path = tmp_path / "fake_gopls.json"
    data_path.write_text(json.dumps(data))
    return [sys.executable, FAKE_GOPLS, str(data_path)]


def fake_rf(log: pathlib.Path) -> list[str]:
    return [sys.executable, FAKE_RF, str(log)]


@define
class FakeBackend:
    """In-process symbol and reference provider.

    ``refs`` is keyed by symbol name. Files in ``failing_files`` and
    symbols in ``failing_symbols`` raise query errors.
    """

    symbols: dict[str, list[Symbol]] = field(factory=dict)
    refs: dict[str, list[Location]] = field(factory=dict)
    failing_files: set[str] = field(factory=set)
    failing_symbols: set[str] = field(factory=set)
    queried: list[str] = field(factory=list)

    def _name_at(self, loc: Location) -> str:
        for syms in self.symbols.values():
            for s in iter_symbols(syms):
                if s.location == loc:
                    return s.name
        raise KeyError(loc)

    async def document_symbols(self, filename: str) -> list[Symbol]:
        if filename in self.failing_files:
            raise SymbolQueryError(filename, "boom")
        return self.symbols.get(filename, [])

    async def references(self, loc: Location) -> list[Location]:
        name = self._name_at(loc)
        self.queried.append(name)
        if name in self.failing_symbols:
            raise ReferenceQueryError(loc, "boom")
        return self.refs.get(name, [])


@define
class RecordingRemover:
    removed: list[tuple[str, str]] = field(factory=list)
    broken: set[str] = field(factory=set)

    async def remove(self, filename: str, symbol: Symbol) -> None:
        if symbol.name in self.broken:
            raise RemovalError(f"rm {symbol.ident.removal_reference}", "cannot remove")
        self.removed.append((filename, symbol.name))
