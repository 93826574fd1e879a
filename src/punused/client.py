"""A minimal, strictly sequential LSP client for gopls.

Only two queries are needed (document symbols and references) so rather
than running a background reader task and matching responses to futures,
each request simply reads messages off the server's stdout until its own
response turns up. Anything the server sends in between is either a
notification, which is dropped, or a request of its own, which gets an
empty answer straight away so that the server never blocks waiting on us.
"""

import itertools
import math
import os
import subprocess
from typing import Any

import trio

from punused.cli import Volume, log
from punused.errors import (
    BackendClosedError,
    BackendError,
    BackendStartError,
    QueryError,
    ReferenceQueryError,
    SymbolQueryError,
)
from punused.lsp import (
    Message,
    MessageReader,
    Notification,
    Request,
    Response,
    serialize,
)
from punused.process import wait_then_kill
from punused.symbols import (
    Location,
    Symbol,
    location_from_lsp,
    path_to_uri,
    symbol_from_lsp,
)

CLIENT_NAME = "punused"
SHUTDOWN_GRACE = 1.0


class GoplsClient:
    """A session with one language server process, rooted at a workspace."""

    def __init__(
        self,
        workspace_dir: str,
        command: list[str] | tuple[str, ...] = ("gopls",),
        timeout: float = math.inf,
        volume: Volume = Volume.normal,
    ):
        self.workspace_dir = os.path.abspath(workspace_dir)
        self.command = list(command)
        self.timeout = timeout
        self.volume = volume
        self._process: trio.Process | None = None
        self._reader: MessageReader | None = None
        self._ids = itertools.count(1)
        self._closed = False

    @property
    def is_running(self) -> bool:
        return self._process is not None and not self._closed

    async def start(self) -> None:
        """Launch the server and run the initialize handshake."""
        if self._process is not None:
            raise BackendStartError("language server already started")
        try:
            self._process = await trio.lowlevel.open_process(
                self.command,
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                # gopls logs freely to stderr; nobody drains it unless we inherit it.
                stderr=None if self.volume >= Volume.debug else subprocess.DEVNULL,
                cwd=self.workspace_dir,
                preexec_fn=os.setsid,
            )
        except OSError as e:
            raise BackendStartError(
                f"unable to start language server {self.command[0]}: {e}"
            ) from e
        assert self._process.stdout is not None
        self._reader = MessageReader(self._process.stdout)

        root_uri = path_to_uri(self.workspace_dir)
        try:
            await self.request(
                "initialize",
                {
                    "processId": os.getpid(),
                    "clientInfo": {"name": CLIENT_NAME},
                    "rootUri": root_uri,
                    "workspaceFolders": [
                        {"uri": root_uri, "name": os.path.basename(self.workspace_dir)}
                    ],
                    "capabilities": {
                        "textDocument": {
                            "documentSymbol": {
                                "hierarchicalDocumentSymbolSupport": True,
                            },
                            "references": {},
                        },
                    },
                },
            )
            await self.notify("initialized", {})
        except BackendError as e:
            await self.close()
            raise BackendStartError(f"unable to initialize language server: {e}") from e

    async def document_symbols(self, filename: str) -> list[Symbol]:
        """List the symbols declared in ``filename`` (relative to the workspace)."""
        uri = path_to_uri(os.path.join(self.workspace_dir, filename))
        try:
            result = await self.request(
                "textDocument/documentSymbol", {"textDocument": {"uri": uri}}
            )
        except QueryError as e:
            raise SymbolQueryError(filename, str(e)) from e
        try:
            return [symbol_from_lsp(uri, item) for item in result or ()]
        except (KeyError, TypeError, ValueError) as e:
            raise SymbolQueryError(filename, f"unexpected response: {e!r}") from e

    async def references(self, location: Location) -> list[Location]:
        """List every use of the symbol declared at ``location``."""
        start = location.range.start
        try:
            result = await self.request(
                "textDocument/references",
                {
                    "textDocument": {"uri": location.uri},
                    "position": {"line": start.line, "character": start.character},
                    "context": {"includeDeclaration": False},
                },
            )
        except QueryError as e:
            raise ReferenceQueryError(location, str(e)) from e
        try:
            return [location_from_lsp(item) for item in result or ()]
        except (KeyError, TypeError) as e:
            raise ReferenceQueryError(location, f"unexpected response: {e!r}") from e

    async def request(self, method: str, params: Any = None) -> Any:
        """Send a request and wait for its result.

        Raises QueryError if the server answers with an error or the per-call
        timeout expires, and BackendClosedError if the session is unusable.
        """
        request_id = next(self._ids)
        await self._send(Request(id=request_id, method=method, params=params))
        try:
            with trio.fail_after(self.timeout):
                while True:
                    msg = await self._receive()
                    if isinstance(msg, Response):
                        if msg.id != request_id:
                            # A late answer to a request that already timed out.
                            continue
                        if msg.error is not None:
                            raise QueryError(
                                f"{method}: {msg.error.message} (code {msg.error.code})"
                            )
                        return msg.result
                    await self._handle_server_message(msg)
        except trio.TooSlowError:
            raise QueryError(f"{method}: no response after {self.timeout}s") from None

    async def notify(self, method: str, params: Any = None) -> None:
        await self._send(Notification(method=method, params=params))

    async def _handle_server_message(self, msg: Message) -> None:
        if isinstance(msg, Notification):
            if msg.method == "window/logMessage" and isinstance(msg.params, dict):
                log(self.volume, f"gopls: {msg.params.get('message', '')}", Volume.debug)
            return
        assert isinstance(msg, Request)
        result: Any = None
        if msg.method == "workspace/configuration" and isinstance(msg.params, dict):
            result = [None for _ in msg.params.get("items", ())]
        await self._send(Response(id=msg.id, result=result))

    async def _send(self, msg: Message) -> None:
        if self._process is None or self._process.stdin is None or self._closed:
            raise BackendClosedError("language server is not running")
        try:
            await self._process.stdin.send_all(serialize(msg))
        except (trio.BrokenResourceError, trio.ClosedResourceError) as e:
            raise BackendClosedError(f"language server stream closed: {e}") from e

    async def _receive(self) -> Message:
        if self._reader is None:
            raise BackendClosedError("language server is not running")
        return await self._reader.receive()

    async def close(self) -> None:
        """Shut the server down. Safe to call any number of times."""
        if self._closed or self._process is None:
            self._closed = True
            return
        process = self._process
        with trio.CancelScope(shield=True):
            with trio.move_on_after(SHUTDOWN_GRACE):
                try:
                    await self.request("shutdown")
                    await self.notify("exit")
                except BackendError as e:
                    log(self.volume, f"language server did not shut down cleanly: {e}", Volume.debug)
            self._closed = True
            for pipe in (process.stdin, process.stdout):
                if pipe is not None:
                    await pipe.aclose()
            await wait_then_kill(process, grace=SHUTDOWN_GRACE)

    async def __aenter__(self) -> "GoplsClient":
        await self.start()
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()
