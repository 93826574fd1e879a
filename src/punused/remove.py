"""Deleting unused declarations with rf (rsc.io/rf)."""

import os
from shutil import which
from typing import Protocol

import trio

from punused.errors import RemovalError
from punused.symbols import Symbol


class Remover(Protocol):
    async def remove(self, filename: str, symbol: Symbol) -> None: ...


def removal_script(symbol: Symbol) -> str:
    return f"rm {symbol.ident.removal_reference}"


class RfRemover:
    """Runs ``rf 'rm <reference>'`` in the package directory of the symbol.

    rf resolves the reference against the package in its working directory,
    which also keeps each edit confined to that package.
    """

    def __init__(self, workspace_dir: str, command: list[str] | tuple[str, ...] = ("rf",)):
        self.workspace_dir = workspace_dir
        self.command = list(command)
        # rf runs from each package directory, so a relative path to it has
        # to be pinned to the directory it was given in.
        if os.sep in self.command[0]:
            self.command[0] = os.path.abspath(self.command[0])

    def package_dir(self, filename: str) -> str:
        return os.path.join(self.workspace_dir, os.path.dirname(filename))

    async def remove(self, filename: str, symbol: Symbol) -> None:
        script = removal_script(symbol)
        if which(self.command[0]) is None:
            raise RemovalError(script, f"{self.command[0]}: command not found")
        try:
            result = await trio.run_process(
                [*self.command, script],
                cwd=self.package_dir(filename),
                capture_stdout=True,
                capture_stderr=True,
                check=False,
            )
        except OSError as e:
            raise RemovalError(script, str(e)) from e

        if result.returncode != 0:
            output = [
                stream.decode("utf-8", errors="replace").strip()
                for stream in (result.stdout, result.stderr)
                if stream
            ]
            raise RemovalError(
                script,
                "\n".join(output) or f"exited with status {result.returncode}",
            )
