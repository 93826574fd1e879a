"""Finding the Go files to check."""

import re
from collections.abc import Callable, Iterator
from fnmatch import translate
from pathlib import Path

from punused.errors import ConfigurationError
from punused.symbols import SOURCE_SUFFIX

Matcher = Callable[[str], bool]


def expand_braces(pattern: str) -> list[str]:
    """Expand ``{a,b}`` alternatives: ``x.{go,s}`` becomes ``x.go`` and ``x.s``."""
    depth = 0
    start = -1
    for i, c in enumerate(pattern):
        if c == "{":
            if depth == 0:
                start = i
            depth += 1
        elif c == "}":
            if depth == 0:
                raise ConfigurationError(f"invalid glob pattern {pattern!r}: unmatched '}}'")
            depth -= 1
            if depth == 0:
                prefix, body, suffix = pattern[:start], pattern[start + 1 : i], pattern[i + 1 :]
                return [
                    expanded
                    for option in _split_options(body)
                    for expanded in expand_braces(prefix + option + suffix)
                ]
    if depth:
        raise ConfigurationError(f"invalid glob pattern {pattern!r}: unmatched '{{'")
    return [pattern]


def _split_options(body: str) -> list[str]:
    options = []
    depth = 0
    current = []
    for c in body:
        if c == "," and depth == 0:
            options.append("".join(current))
            current = []
            continue
        if c == "{":
            depth += 1
        elif c == "}":
            depth -= 1
        current.append(c)
    options.append("".join(current))
    return options


def _check_brackets(pattern: str) -> None:
    i = 0
    while i < len(pattern):
        if pattern[i] == "[":
            j = i + 1
            if pattern[j : j + 1] == "!":
                j += 1
            if pattern[j : j + 1] == "]":
                j += 1
            end = pattern.find("]", j)
            if end < 0:
                raise ConfigurationError(f"invalid glob pattern {pattern!r}: unmatched '['")
            i = end
        i += 1


def compile_pattern(pattern: str) -> Matcher:
    """Compile a glob into a predicate on workspace-relative paths.

    ``*`` and ``**`` both match across directory separators. A leading
    ``**/`` may also match nothing, so the default ``**/*.go`` includes
    files at the workspace root.
    """
    if not pattern:
        raise ConfigurationError("filename pattern is required")
    _check_brackets(pattern)

    variants = []
    for expanded in expand_braces(pattern):
        variants.append(expanded)
        if expanded.startswith("**/"):
            variants.append(expanded[3:])
    try:
        regexes = [re.compile(translate(v)) for v in dict.fromkeys(variants)]
    except re.error as e:
        raise ConfigurationError(f"invalid glob pattern {pattern!r}: {e}") from e

    def matches(path: str) -> bool:
        return any(r.match(path) for r in regexes)

    return matches


def walk_workspace(root: str | Path, matches: Matcher) -> Iterator[str]:
    """Yield matching source files under root, relative and ``/``-separated.

    Hidden directories are never entered. Files and directories share one
    lexical ordering, so ``b/x.go`` comes between ``a.go`` and ``c.go``.
    """
    root = Path(root)
    yield from _walk_dir(root, root, matches)


def _walk_dir(root: Path, directory: Path, matches: Matcher) -> Iterator[str]:
    for entry in sorted(directory.iterdir()):
        if entry.is_dir() and not entry.is_symlink():
            if not entry.name.startswith("."):
                yield from _walk_dir(root, entry, matches)
        elif entry.name.endswith(SOURCE_SUFFIX):
            rel_path = entry.relative_to(root).as_posix()
            if matches(rel_path):
                yield rel_path
