"""Exceptions raised while checking a workspace."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from punused.symbols import Location


class PunusedError(Exception):
    pass


class ConfigurationError(PunusedError):
    """The run was configured with something we can't work with.

    Always fatal, and raised before any backend session is started.
    """


class BackendError(PunusedError):
    pass


class BackendStartError(BackendError):
    """The language server could not be launched or refused to initialize."""


class BackendClosedError(BackendError):
    """The language server went away in the middle of a session."""


class QueryError(BackendError):
    """A single request to the language server failed."""


class SymbolQueryError(QueryError):
    def __init__(self, filename: str, message: str) -> None:
        self.filename = filename
        super().__init__(f"failed to get symbols for {filename}: {message}")


class ReferenceQueryError(QueryError):
    def __init__(self, location: "Location", message: str) -> None:
        self.location = location
        start = location.range.start
        super().__init__(
            f"failed to get references for {location.uri}:{start.line + 1}:"
            f"{start.character + 1}: {message}"
        )


class RemovalError(PunusedError):
    def __init__(self, script: str, message: str) -> None:
        self.script = script
        self.message = message
        super().__init__(f"unable to execute remove {script}: {message}")
