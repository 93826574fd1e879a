"""CLI utilities and types for punused."""

import os
import shlex
import sys
from enum import Enum, IntEnum
from shutil import which
from typing import Any, Generic, TypeVar

import click

DEFAULT_PATTERN = "**/*.go"


class Volume(IntEnum):
    """Logging verbosity levels."""

    quiet = 0
    normal = 1
    verbose = 2
    debug = 3


def log(volume: Volume, message: str, level: Volume = Volume.normal) -> None:
    """Print a diagnostic message to stderr if ``volume`` is at least ``level``."""
    if volume >= level:
        print(message, file=sys.stderr, flush=True)


def validate_command(ctx: Any, param: Any, value: str) -> list[str]:
    """Validate and resolve a command string."""
    parts = shlex.split(value)
    if not parts:
        raise click.BadParameter("command must not be empty")
    command = parts[0]

    if os.path.exists(command):
        command = os.path.abspath(command)
    else:
        what = which(command)
        if what is None:
            raise click.BadParameter(f"{command}: command not found")
        command = os.path.abspath(what)
    return [command] + parts[1:]


def split_command(ctx: Any, param: Any, value: str) -> list[str]:
    """Split a command string without requiring it to exist yet."""
    parts = shlex.split(value)
    if not parts:
        raise click.BadParameter("command must not be empty")
    return parts


def validate_pattern(ctx: Any, param: Any, value: str | None) -> str:
    if not value:
        return DEFAULT_PATTERN
    return value.removeprefix("./")


EnumType = TypeVar("EnumType", bound=Enum)


class EnumChoice(click.Choice, Generic[EnumType]):
    """A click Choice that works with Enums."""

    def __init__(self, enum: type[EnumType]) -> None:
        self.enum = enum
        choices = [str(e.name) for e in enum]
        self.__values = {e.name: e for e in enum}
        super().__init__(choices)

    def convert(self, value: Any, param: Any, ctx: Any) -> EnumType:
        if isinstance(value, self.enum):
            return value
        return self.__values[super().convert(value, param, ctx)]
