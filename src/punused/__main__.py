"""Main entry point for punused."""

import cProfile
import os
import sys
from datetime import timedelta

import click
import humanize
import trio

from punused.cli import (
    DEFAULT_PATTERN,
    EnumChoice,
    Volume,
    log,
    split_command,
    validate_command,
    validate_pattern,
)
from punused.errors import PunusedError
from punused.run import RunConfig, RunSummary, run


def format_summary(summary: RunSummary) -> str:
    parts = [
        f"Checked {summary.files_checked} files in "
        f"{humanize.precisedelta(timedelta(seconds=summary.elapsed))}: "
        f"{summary.unused} unused, {summary.test_only} used in test only"
    ]
    if summary.removed or summary.removal_failures:
        parts.append(f"removed {summary.removed}, {summary.removal_failures} removals failed")
    if summary.files_failed or summary.symbol_failures:
        parts.append(
            f"{summary.files_failed} files and {summary.symbol_failures} symbols could not be checked"
        )
    return "; ".join(parts)


@click.command(
    help="""
Report exported Go functions, methods and types that are unused, or only used
in tests, and remove the unused ones with rf.

PATTERN is a glob matched against paths relative to the module root
(default: every Go file).
""".strip()
)
@click.version_option()
@click.option(
    "--wd",
    default="",
    help="Working directory for the project. Must be the root of a Go module. Defaults to the current directory.",
)
@click.option(
    "--cpuprofile",
    default="",
    help="Write a cProfile profile of the run to this file.",
)
@click.option(
    "--remove/--no-remove",
    default=True,
    help="Whether to delete unused declarations with rf (the default) or only report them.",
)
@click.option(
    "--volume",
    default="normal",
    type=EnumChoice(Volume),
    help="Level of output to provide on stderr.",
)
@click.option(
    "--timeout",
    default=0,
    type=click.FLOAT,
    help=(
        "Give up on a single language server request after this many seconds. "
        "If set to <= 0 then no timeout will be used."
    ),
)
@click.option(
    "--gopls",
    "gopls_command",
    default="gopls",
    callback=validate_command,
    help="Command to run the language server.",
)
@click.option(
    "--rf",
    "rf_command",
    default="rf",
    callback=split_command,
    help="Command to run rf, used to remove unused declarations.",
)
@click.argument("pattern", default=DEFAULT_PATTERN, required=False, callback=validate_pattern)
def main(
    wd: str,
    cpuprofile: str,
    remove: bool,
    volume: Volume,
    timeout: float,
    gopls_command: list[str],
    rf_command: list[str],
    pattern: str,
) -> None:
    if timeout <= 0:
        timeout = float("inf")

    config = RunConfig(
        workspace_dir=wd or os.getcwd(),
        filename_pattern=pattern,
        out=sys.stdout,
        remove=remove,
        volume=volume,
        gopls_command=gopls_command,
        rf_command=rf_command,
        timeout=timeout,
    )

    profiler = None
    if cpuprofile:
        profiler = cProfile.Profile()
        profiler.enable()

    try:
        summary = trio.run(run, config)
    except PunusedError as e:
        raise click.ClickException(str(e)) from e
    finally:
        if profiler is not None:
            profiler.disable()
            profiler.dump_stats(cpuprofile)

    log(volume, format_summary(summary), Volume.verbose)


if __name__ == "__main__":  # pragma: no cover
    main(prog_name="punused")
