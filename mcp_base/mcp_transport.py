"""MCP stdio transport: newline-delimited JSON over standard streams."""
import json
import asyncio
import logging
import sys
from typing import Any, AsyncIterator, Optional, TextIO, Union

from pydantic import ValidationError

from .jsonrpc.models import JSONRPC_VERSION, JSONRPCRequest, JSONRPCResponse
from .utils import errors

logger = logging.getLogger(__name__)

# Longest accepted input line in bytes (asyncio defaults to 64 KiB)
DEFAULT_LINE_LIMIT = 16 * 1024 * 1024


def parse_request(line: str) -> JSONRPCRequest:
    """Decode one line into a request envelope.

    Raises:
        MCPError: PARSE_ERROR when the line is not valid JSON, is not an
            object, lacks ``"jsonrpc": "2.0"`` or a string ``method``, or
            otherwise does not fit the envelope.
    """
    try:
        payload = json.loads(line)
    except json.JSONDecodeError as e:
        raise errors.parse_error(f"Failed to parse request: {e.msg}") from e

    if not isinstance(payload, dict):
        raise errors.parse_error("Failed to parse request: expected a JSON object")
    if payload.get("jsonrpc") != JSONRPC_VERSION:
        raise errors.parse_error("Failed to parse request: invalid JSON-RPC version")
    if not isinstance(payload.get("method"), str):
        raise errors.parse_error("Failed to parse request: missing method")

    try:
        return JSONRPCRequest.model_validate(payload)
    except ValidationError as e:
        raise errors.parse_error(
            "Failed to parse request: invalid envelope",
            [{"loc": [str(p) for p in err["loc"]], "msg": err["msg"]} for err in e.errors()],
        ) from e


def parse_error_response(line: str, error: errors.MCPError) -> JSONRPCResponse:
    """Build the error response for an unparseable line.

    The id is echoed when it can be recovered from the decoded object.
    """
    request_id: Any = None
    try:
        payload = json.loads(line)
    except json.JSONDecodeError:
        payload = None
    if isinstance(payload, dict):
        candidate = payload.get("id")
        if isinstance(candidate, (int, str)) and not isinstance(candidate, bool):
            request_id = candidate
    return JSONRPCResponse(id=request_id, error=error.to_error())


def serialize(response: JSONRPCResponse) -> str:
    """Encode a response as a single line (json escapes embedded newlines).

    A result that json cannot encode is replaced by an INTERNAL_ERROR
    response carrying the same id, so the request is still answered.
    """
    try:
        return json.dumps(response.to_wire(), default=str)
    except (TypeError, ValueError, RecursionError) as e:
        logger.error(f"Failed to serialize response id={response.id}: {e}")
        fallback = JSONRPCResponse(
            id=response.id,
            error=errors.internal_error(f"Failed to serialize response: {e}").to_error(),
        )
        return json.dumps(fallback.to_wire(), default=str)


async def _discard_line(reader: asyncio.StreamReader) -> None:
    """Drop buffered input up to and including the next newline (or EOF)."""
    while True:
        try:
            await reader.readuntil(b"\n")
            return
        except asyncio.LimitOverrunError as e:
            await reader.readexactly(e.consumed)
        except asyncio.IncompleteReadError:
            return


async def read_lines(reader: asyncio.StreamReader) -> AsyncIterator[Union[str, errors.MCPError]]:
    """Yield non-empty stripped lines until EOF.

    A line longer than the reader's limit is discarded and a PARSE_ERROR
    is yielded in its place; reading continues with the next line.
    """
    while True:
        try:
            raw = await reader.readuntil(b"\n")
        except asyncio.IncompleteReadError as e:
            # EOF; a final line may lack its newline
            raw = e.partial
            if not raw:
                return
        except asyncio.LimitOverrunError:
            await _discard_line(reader)
            logger.warning("Discarded input line exceeding the reader limit")
            yield errors.parse_error("Failed to parse request: line exceeds maximum length")
            continue

        line = raw.decode("utf-8", errors="replace").strip()
        if line:
            yield line


async def connect_stdin(limit: int = DEFAULT_LINE_LIMIT) -> asyncio.StreamReader:
    """Wrap ``sys.stdin`` in an asyncio StreamReader accepting lines up to ``limit`` bytes."""
    loop = asyncio.get_running_loop()
    reader = asyncio.StreamReader(limit=limit)
    protocol = asyncio.StreamReaderProtocol(reader)
    await loop.connect_read_pipe(lambda: protocol, sys.stdin)
    return reader


class StdioTransport:
    """Writes responses as JSON lines to an output stream (stdout by default).

    Writes are serialized by a lock so responses completing concurrently
    never interleave. ``write`` and ``flush`` are plain blocking calls on the
    stream; this suits stdout and in-memory streams, but a peer that stops
    reading a pipe will stall the event loop once the pipe buffer is full.
    """

    def __init__(self, stream: Optional[TextIO] = None):
        self.stream = stream if stream is not None else sys.stdout
        self._connected = True
        self._write_lock = asyncio.Lock()

    async def send(self, response: JSONRPCResponse) -> None:
        """Write one response line.

        Raises:
            TransportClosedError: If the transport has been closed
        """
        if not self._connected:
            raise errors.TransportClosedError("Transport not connected")

        line = serialize(response)
        async with self._write_lock:
            logger.debug(f"Sending message via stdio: id={response.id}")
            self.stream.write(line + "\n")
            self.stream.flush()

    async def close(self) -> None:
        """Mark the transport closed. Safe to call more than once."""
        if not self._connected:
            return
        self._connected = False
        logger.info("Stdio transport closed")

    def is_connected(self) -> bool:
        return self._connected
