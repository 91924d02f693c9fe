import io

import anyio
import pytest

from mcp_core import types
from mcp_core.server.stdio import stdio_server
from mcp_core.shared.codec import decode_message, encode_message
from mcp_core.shared.exceptions import MessageDecodeError
from mcp_core.shared.message import SessionMessage


@pytest.mark.anyio
async def test_stdio_server():
    stdin = io.StringIO()
    stdout = io.StringIO()

    messages = [
        types.JSONRPCRequest(id=1, method="ping"),
        types.JSONRPCResultResponse(id=2, result={}),
    ]

    for message in messages:
        stdin.write(encode_message(message) + "\n")
    stdin.seek(0)

    async with stdio_server(stdin=anyio.AsyncFile(stdin), stdout=anyio.AsyncFile(stdout)) as (
        read_stream,
        write_stream,
    ):
        received_messages = []
        async with read_stream:
            async for message in read_stream:
                if isinstance(message, Exception):
                    raise message
                received_messages.append(message.message)
                if len(received_messages) == 2:
                    break

        assert received_messages == messages

        responses = [
            types.JSONRPCRequest(id=3, method="ping"),
            types.JSONRPCResultResponse(id=4, result={}),
        ]

        async with write_stream:
            for response in responses:
                await write_stream.send(SessionMessage(response))

    stdout.seek(0)
    output_lines = stdout.readlines()
    assert [decode_message(line) for line in output_lines] == responses


@pytest.mark.anyio
async def test_stdio_server_reports_malformed_lines():
    stdin = io.StringIO('not json\n\n{"jsonrpc": "2.0", "id": 5, "method": "ping"}\n')
    stdout = io.StringIO()

    async with stdio_server(stdin=anyio.AsyncFile(stdin), stdout=anyio.AsyncFile(stdout)) as (
        read_stream,
        write_stream,
    ):
        first = await read_stream.receive()
        second = await read_stream.receive()
        await write_stream.aclose()

    assert isinstance(first, MessageDecodeError)
    assert first.code == types.PARSE_ERROR
    assert isinstance(second, SessionMessage)
    assert second.message == types.JSONRPCRequest(id=5, method="ping")
