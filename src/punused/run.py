"""Checking a whole workspace: walk, classify, remove, report."""

import math
import os
import time
from typing import TextIO

from attrs import define, evolve, field

from punused.classify import (
    Outcome,
    ReferenceProvider,
    SymbolProvider,
    classify_file,
)
from punused.cli import DEFAULT_PATTERN, Volume, log
from punused.client import GoplsClient
from punused.errors import ConfigurationError, RemovalError, SymbolQueryError
from punused.remove import Remover, RfRemover
from punused.report import print_usage
from punused.symbols import Symbol
from punused.walk import Matcher, compile_pattern, walk_workspace

MODULE_MARKER = "go.mod"


@define(frozen=True)
class RunConfig:
    workspace_dir: str
    filename_pattern: str = DEFAULT_PATTERN
    out: TextIO | None = None
    remove: bool = True
    volume: Volume = Volume.normal
    gopls_command: tuple[str, ...] = field(default=("gopls",), converter=tuple)
    rf_command: tuple[str, ...] = field(default=("rf",), converter=tuple)
    timeout: float = math.inf

    def validate(self) -> None:
        if not self.workspace_dir:
            raise ConfigurationError("workspace directory is required")
        if not os.path.isdir(self.workspace_dir):
            raise ConfigurationError(
                f"workspace {self.workspace_dir} is not a directory"
            )
        if not self.filename_pattern:
            raise ConfigurationError("filename pattern is required")
        if self.out is None:
            raise ConfigurationError("an output stream is required")
        if not self.gopls_command:
            raise ConfigurationError("a language server command is required")
        if self.remove and not self.rf_command:
            raise ConfigurationError("a removal command is required")
        if not self.timeout > 0:
            raise ConfigurationError(f"timeout must be positive, got {self.timeout}")


@define
class RunSummary:
    files_checked: int = 0
    files_failed: int = 0
    symbol_failures: int = 0
    unused: int = 0
    test_only: int = 0
    removed: int = 0
    removal_failures: int = 0
    elapsed: float = 0.0


class Runner:
    """Drives one pass over a workspace against the given providers."""

    def __init__(
        self,
        config: RunConfig,
        matches: Matcher,
        symbols: SymbolProvider,
        references: ReferenceProvider,
        remover: Remover | None,
    ):
        if config.out is None:
            raise ConfigurationError("an output stream is required")
        self.config = config
        self.out = config.out
        self.matches = matches
        self.symbols = symbols
        self.references = references
        self.remover = remover
        self.summary = RunSummary()

    def log(self, message: str, level: Volume = Volume.normal) -> None:
        log(self.config.volume, message, level)

    async def walk(self) -> RunSummary:
        start = time.monotonic()
        for filename in walk_workspace(self.config.workspace_dir, self.matches):
            await self.handle_file(filename)
        self.summary.elapsed = time.monotonic() - start
        return self.summary

    async def handle_file(self, filename: str) -> None:
        self.log(f"Checking {filename}", Volume.debug)
        try:
            symbols = await self.symbols.document_symbols(filename)
        except SymbolQueryError as e:
            self.summary.files_failed += 1
            self.log(str(e))
            return

        classification = await classify_file(filename, symbols, self.references)
        self.summary.files_checked += 1

        for failure in classification.failures:
            self.summary.symbol_failures += 1
            self.log(f"{filename}: skipping {failure.symbol.name}: {failure.error}")

        for usage in classification.usages:
            if usage.outcome == Outcome.unused:
                self.summary.unused += 1
                await self.remove(filename, usage.symbol)
            elif usage.outcome == Outcome.test_only:
                self.summary.test_only += 1
            print_usage(usage, self.out)

    async def remove(self, filename: str, symbol: Symbol) -> None:
        if self.remover is None:
            return
        try:
            await self.remover.remove(filename, symbol)
        except RemovalError as e:
            self.summary.removal_failures += 1
            self.log(str(e))
        else:
            self.summary.removed += 1
            self.log(f"Removed {symbol.name} from {filename}", Volume.verbose)


def check_module(workspace_dir: str) -> None:
    # gopls needs to run from the root of a Go module to give correct results.
    if not os.path.isfile(os.path.join(workspace_dir, MODULE_MARKER)):
        raise ConfigurationError(
            f"workspace {workspace_dir} is not a Go module ({MODULE_MARKER} is missing)"
        )


async def run(config: RunConfig) -> RunSummary:
    """Check every matching file in the workspace.

    Configuration problems and a language server that won't start are fatal
    and raised. Anything that goes wrong for a single file, symbol or removal
    is logged and the run carries on.
    """
    config.validate()
    workspace_dir = os.path.abspath(config.workspace_dir)
    config = evolve(config, workspace_dir=workspace_dir)
    check_module(workspace_dir)
    matches = compile_pattern(config.filename_pattern)

    async with GoplsClient(
        workspace_dir,
        command=config.gopls_command,
        timeout=config.timeout,
        volume=config.volume,
    ) as client:
        remover = RfRemover(workspace_dir, config.rf_command) if config.remove else None
        runner = Runner(config, matches, client, client, remover)
        return await runner.walk()
