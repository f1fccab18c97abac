"""Tests for the stdio transport: framing, parsing and lifecycle."""
import asyncio
import io
import json

import pytest

from mcp_base.jsonrpc.models import ErrorCode, JSONRPCResponse
from mcp_base.mcp_transport import (
    StdioTransport,
    parse_error_response,
    parse_request,
    read_lines,
    serialize,
)
from mcp_base.utils.errors import MCPError, TransportClosedError


class TestParseRequest:
    """Test line decoding into request envelopes."""

    def test_parse_valid_request(self):
        request = parse_request('{"jsonrpc": "2.0", "id": 1, "method": "tools/list"}')

        assert request.method == "tools/list"
        assert request.id == 1
        assert request.params is None
        assert not request.is_notification

    def test_parse_notification(self):
        request = parse_request('{"jsonrpc": "2.0", "method": "notifications/initialized"}')

        assert request.is_notification

    def test_string_id_is_kept(self):
        request = parse_request('{"jsonrpc": "2.0", "id": "req-7", "method": "ping"}')

        assert request.id == "req-7"

    @pytest.mark.parametrize(
        "line",
        [
            "not json at all",
            '{"jsonrpc": "2.0", "id": 1, "method": ',
            "[1, 2, 3]",
            '"just a string"',
            '{"id": 1, "method": "ping"}',
            '{"jsonrpc": "1.0", "id": 1, "method": "ping"}',
            '{"jsonrpc": "2.0", "id": 1}',
            '{"jsonrpc": "2.0", "id": 1, "method": 42}',
            '{"jsonrpc": "2.0", "id": {"nested": true}, "method": "ping"}',
        ],
    )
    def test_malformed_input_is_parse_error(self, line):
        with pytest.raises(MCPError) as exc_info:
            parse_request(line)

        assert exc_info.value.code == ErrorCode.PARSE_ERROR

    def test_parse_error_response_recovers_id(self):
        line = '{"jsonrpc": "1.0", "id": 9, "method": "ping"}'
        with pytest.raises(MCPError) as exc_info:
            parse_request(line)

        response = parse_error_response(line, exc_info.value)

        assert response.id == 9
        assert response.error.code == ErrorCode.PARSE_ERROR

    def test_parse_error_response_without_id(self):
        line = "garbage"
        with pytest.raises(MCPError) as exc_info:
            parse_request(line)

        response = parse_error_response(line, exc_info.value)

        assert response.id is None
        assert response.to_wire()["id"] is None


class TestSerialize:
    """Test single-line framing."""

    def test_embedded_newlines_are_escaped(self):
        response = JSONRPCResponse(id=1, result={"text": "line one\nline two"})

        line = serialize(response)

        assert "\n" not in line
        assert json.loads(line)["result"]["text"] == "line one\nline two"

    def test_result_and_error_are_exclusive(self):
        ok = json.loads(serialize(JSONRPCResponse(id=1, result=None)))
        assert ok == {"jsonrpc": "2.0", "id": 1, "result": None}

        failed = json.loads(
            serialize(
                JSONRPCResponse(
                    id=2,
                    error=MCPError(ErrorCode.INTERNAL_ERROR, "boom").to_error(),
                )
            )
        )
        assert "result" not in failed
        assert failed["error"] == {"code": -32603, "message": "boom"}


class TestStdioTransport:
    """Test send/close/is_connected."""

    @pytest.mark.asyncio
    async def test_send_writes_one_line(self):
        stream = io.StringIO()
        transport = StdioTransport(stream)

        await transport.send(JSONRPCResponse(id=1, result={"x": 1}))

        assert stream.getvalue() == '{"jsonrpc": "2.0", "id": 1, "result": {"x": 1}}\n'

    @pytest.mark.asyncio
    async def test_close_is_idempotent(self):
        transport = StdioTransport(io.StringIO())
        assert transport.is_connected()

        await transport.close()
        assert not transport.is_connected()

        await transport.close()
        assert not transport.is_connected()

    @pytest.mark.asyncio
    async def test_send_after_close_fails(self):
        stream = io.StringIO()
        transport = StdioTransport(stream)
        await transport.close()

        with pytest.raises(TransportClosedError):
            await transport.send(JSONRPCResponse(id=1, result={}))
        assert stream.getvalue() == ""

    @pytest.mark.asyncio
    async def test_concurrent_sends_do_not_interleave(self):
        stream = io.StringIO()
        transport = StdioTransport(stream)

        await asyncio.gather(
            *(transport.send(JSONRPCResponse(id=i, result={"n": i})) for i in range(50))
        )

        lines = stream.getvalue().splitlines()
        assert len(lines) == 50
        assert sorted(json.loads(line)["id"] for line in lines) == list(range(50))


@pytest.mark.asyncio
async def test_read_lines_skips_blank_lines():
    reader = asyncio.StreamReader()
    reader.feed_data(b'first\n\n   \r\nsecond\r\nlast-without-newline')
    reader.feed_eof()

    lines = [line async for line in read_lines(reader)]

    assert lines == ["first", "second", "last-without-newline"]


@pytest.mark.asyncio
async def test_read_lines_replaces_oversized_line_with_parse_error():
    reader = asyncio.StreamReader(limit=64)
    reader.feed_data(b"x" * 500 + b"\nnext\n")
    reader.feed_eof()

    items = [item async for item in read_lines(reader)]

    assert len(items) == 2
    assert isinstance(items[0], MCPError)
    assert items[0].code == ErrorCode.PARSE_ERROR
    assert items[1] == "next"


@pytest.mark.asyncio
async def test_read_lines_discards_oversized_line_arriving_in_chunks():
    reader = asyncio.StreamReader(limit=64)

    async def produce():
        for _ in range(5):
            reader.feed_data(b"y" * 100)
            await asyncio.sleep(0)
        reader.feed_data(b"\nafter\n")
        reader.feed_eof()

    producer = asyncio.create_task(produce())
    items = [item async for item in read_lines(reader)]
    await producer

    assert [type(item) for item in items] == [MCPError, str]
    assert items[1] == "after"


def test_serialize_falls_back_to_internal_error():
    response = JSONRPCResponse(id=7, result={(1, 2): "x"})

    wire = json.loads(serialize(response))

    assert wire["id"] == 7
    assert "result" not in wire
    assert wire["error"]["code"] == ErrorCode.INTERNAL_ERROR
    assert wire["error"]["message"].startswith("Failed to serialize response")
