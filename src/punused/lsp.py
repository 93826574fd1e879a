"""JSON-RPC messages framed with the LSP base protocol.

Every message is a UTF-8 JSON body preceded by a header block::

    Content-Length: 52\r\n
    \r\n
    {"jsonrpc":"2.0","id":1,"method":"shutdown"}
"""

import json
from dataclasses import dataclass
from typing import Any

import trio

from punused.errors import BackendClosedError

HEADER_SEPARATOR = b"\r\n\r\n"
CONTENT_LENGTH = "content-length"


@dataclass
class Request:
    """A call that expects a Response with the same id."""

    id: int | str
    method: str
    params: Any = None


@dataclass
class Notification:
    """A one-way message; never answered."""

    method: str
    params: Any = None


@dataclass
class ResponseError:
    code: int
    message: str
    data: Any = None


@dataclass
class Response:
    id: int | str | None
    result: Any = None
    error: ResponseError | None = None


Message = Request | Notification | Response


def serialize(msg: Message) -> bytes:
    """Serialize a message, header included."""
    data: dict[str, Any] = {"jsonrpc": "2.0"}
    if isinstance(msg, Request):
        data["id"] = msg.id
        data["method"] = msg.method
        if msg.params is not None:
            data["params"] = msg.params
    elif isinstance(msg, Notification):
        data["method"] = msg.method
        if msg.params is not None:
            data["params"] = msg.params
    elif isinstance(msg, Response):
        data["id"] = msg.id
        if msg.error is not None:
            data["error"] = {"code": msg.error.code, "message": msg.error.message}
            if msg.error.data is not None:
                data["error"]["data"] = msg.error.data
        else:
            data["result"] = msg.result
    else:
        raise TypeError(f"Cannot serialize {msg!r}")
    body = json.dumps(data, separators=(",", ":")).encode("utf-8")
    return f"Content-Length: {len(body)}\r\n\r\n".encode("ascii") + body


def deserialize(body: bytes | str) -> Message:
    """Deserialize a message body (without its header)."""
    data = json.loads(body)
    if not isinstance(data, dict):
        raise ValueError(f"Expected a JSON object, got {data!r}")

    if "method" in data:
        if "id" in data:
            return Request(id=data["id"], method=data["method"], params=data.get("params"))
        return Notification(method=data["method"], params=data.get("params"))

    error = data.get("error")
    return Response(
        id=data.get("id"),
        result=data.get("result"),
        error=(
            ResponseError(
                code=error.get("code", 0),
                message=error.get("message", ""),
                data=error.get("data"),
            )
            if error is not None
            else None
        ),
    )


def parse_headers(block: bytes) -> dict[str, str]:
    headers = {}
    for line in block.decode("ascii").split("\r\n"):
        if not line:
            continue
        name, sep, value = line.partition(":")
        if not sep:
            raise ValueError(f"Malformed header line {line!r}")
        headers[name.strip().lower()] = value.strip()
    return headers


class MessageReader:
    """Reassembles framed messages from a byte stream."""

    def __init__(self, stream: trio.abc.ReceiveStream, max_chunk: int = 65536):
        self._stream = stream
        self._buffer = bytearray()
        self._max_chunk = max_chunk
        # Body length of a message whose header was consumed but whose body
        # has not fully arrived. Survives a cancelled receive().
        self._pending_length: int | None = None

    async def _fill(self) -> None:
        try:
            chunk = await self._stream.receive_some(self._max_chunk)
        except (trio.BrokenResourceError, trio.ClosedResourceError) as e:
            raise BackendClosedError(f"language server stream closed: {e}") from e
        if not chunk:
            raise BackendClosedError("language server closed its output")
        self._buffer += chunk

    async def _read_header(self) -> int:
        while (end := self._buffer.find(HEADER_SEPARATOR)) < 0:
            await self._fill()

        try:
            headers = parse_headers(bytes(self._buffer[:end]))
            length = int(headers[CONTENT_LENGTH])
        except (KeyError, ValueError, UnicodeDecodeError) as e:
            raise BackendClosedError(f"malformed message header: {e}") from e
        del self._buffer[: end + len(HEADER_SEPARATOR)]
        return length

    async def receive(self) -> Message:
        if self._pending_length is None:
            self._pending_length = await self._read_header()
        length = self._pending_length

        while len(self._buffer) < length:
            await self._fill()

        body = bytes(self._buffer[:length])
        del self._buffer[:length]
        self._pending_length = None
        try:
            return deserialize(body)
        except ValueError as e:
            raise BackendClosedError(f"malformed message body: {e}") from e
