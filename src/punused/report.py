"""Diagnostic lines, one per symbol that is unused or only used in tests.

The format is ``<file>:<line>:<col> <kind> <name> <message> (<code>)`` with
1-based line and column, so editors and CI annotations can pick it up.
"""

from typing import TextIO

from punused.classify import Outcome, Usage

TEST_ONLY_CODE = "EU1001"
UNUSED_CODE = "EU1002"

MESSAGES = {
    Outcome.test_only: f"is used in test only ({TEST_ONLY_CODE})",
    Outcome.unused: f"is unused ({UNUSED_CODE})",
}


def format_usage(usage: Usage) -> str | None:
    message = MESSAGES.get(usage.outcome)
    if message is None:
        return None
    symbol = usage.symbol
    start = symbol.location.range.start
    return (
        f"{usage.filename}:{start.line + 1}:{start.character + 1} "
        f"{symbol.kind.label} {symbol.name} {message}"
    )


def print_usage(usage: Usage, out: TextIO) -> None:
    line = format_usage(usage)
    if line is not None:
        print(line, file=out, flush=True)
