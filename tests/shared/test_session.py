from typing import Any

import anyio
import pytest

from mcp_core import types
from mcp_core.client.session import ClientSession
from mcp_core.server.server import Server
from mcp_core.shared.exceptions import (
    ConnectionClosedError,
    McpError,
    MessageDecodeError,
    ProtocolError,
    RequestCancelledError,
    RequestTimeoutError,
    SessionStateError,
)
from mcp_core.shared.memory import create_client_server_memory_streams, create_connected_server_and_client_session
from mcp_core.shared.message import SessionMessage
from mcp_core.shared.session import SessionState


async def _initialized_client(client_streams, server_streams, answer_initialize) -> ClientSession:
    """Enter a ClientSession and complete the handshake against a hand-driven peer."""
    client_read, client_write = client_streams
    server_read, server_write = server_streams
    session = ClientSession(client_read, client_write)
    await session.__aenter__()
    async with anyio.create_task_group() as tg:
        tg.start_soon(answer_initialize, server_read, server_write)
        await session.initialize()
    initialized = await server_read.receive()
    assert initialized.message.method == types.NOTIFICATION_INITIALIZED
    return session


async def _receive_request(server_read) -> types.JSONRPCRequest:
    item = await server_read.receive()
    assert isinstance(item.message, types.JSONRPCRequest)
    return item.message


@pytest.fixture
def echo_server() -> Server:
    server = Server(name="echo server")

    async def echo(ctx: Any, params: dict[str, Any] | None) -> dict[str, Any]:
        params = params or {}
        await anyio.sleep(params.get("delay", 0))
        return {"echo": params.get("value")}

    async def fail(ctx: Any, params: Any) -> dict[str, Any]:
        raise ValueError("boom")

    server.registry.register("test/echo", echo)
    server.registry.register("test/fail", fail)
    return server


@pytest.mark.anyio
async def test_in_flight_requests_cleared_after_completion(echo_server: Server):
    async with create_connected_server_and_client_session(echo_server) as client:
        response = await client.send_ping()
        assert isinstance(response, types.EmptyResult)
        assert len(client._in_flight) == 0
        assert len(client._pending) == 0


@pytest.mark.anyio
async def test_out_of_order_responses_reach_their_callers(echo_server: Server):
    results: dict[str, Any] = {}

    async with create_connected_server_and_client_session(echo_server) as client:

        async def call(value: str, delay: float) -> None:
            result = await client.send_request("test/echo", {"value": value, "delay": delay}, types.Result)
            results[value] = result.model_extra["echo"]

        async with anyio.create_task_group() as tg:
            tg.start_soon(call, "slow", 0.2)
            tg.start_soon(call, "fast", 0)

        assert results == {"slow": "slow", "fast": "fast"}
        assert len(client._pending) == 0


@pytest.mark.anyio
async def test_method_not_found_keeps_connection_usable(echo_server: Server):
    async with create_connected_server_and_client_session(echo_server) as client:
        with pytest.raises(McpError) as exc_info:
            await client.send_request("test/missing", None, types.Result)
        assert exc_info.value.code == types.METHOD_NOT_FOUND
        assert exc_info.value.method == "test/missing"

        assert isinstance(await client.send_ping(), types.EmptyResult)


@pytest.mark.anyio
async def test_handler_exception_becomes_internal_error(echo_server: Server):
    async with create_connected_server_and_client_session(echo_server) as client:
        with pytest.raises(McpError) as exc_info:
            await client.send_request("test/fail", None, types.Result)
        assert exc_info.value.code == types.INTERNAL_ERROR
        assert exc_info.value.error.message == "boom"
        assert client.state is SessionState.READY


@pytest.mark.anyio
async def test_peer_cancellation_stops_running_handler():
    server = Server(name="cancel server")
    handler_started = anyio.Event()
    handler_cancelled = anyio.Event()

    async def slow(ctx: Any, params: Any) -> dict[str, Any]:
        handler_started.set()
        try:
            await anyio.sleep(10)
        except anyio.get_cancelled_exc_class():
            handler_cancelled.set()
            raise
        return {}

    server.registry.register("test/slow", slow)

    async with create_connected_server_and_client_session(server) as client:
        call = await client.start_request("test/slow")
        await handler_started.wait()

        assert await client.cancel_request(call.request_id, "no longer needed")
        with pytest.raises(RequestCancelledError):
            await client.join_request(call, types.Result)

        with anyio.fail_after(1):
            await handler_cancelled.wait()
        # the session keeps working after the cancellation round-trip
        assert isinstance(await client.send_ping(), types.EmptyResult)


@pytest.mark.anyio
async def test_cancel_one_call_leaves_others_pending(answer_initialize):
    async with create_client_server_memory_streams() as (client_streams, server_streams):
        server_read, server_write = server_streams
        client = await _initialized_client(client_streams, server_streams, answer_initialize)
        try:
            # the streams hold one message, so each request is read before the next is sent
            first = await client.start_request("test/first")
            await _receive_request(server_read)
            second = await client.start_request("test/second")
            await _receive_request(server_read)

            with anyio.fail_after(1):
                assert await client.cancel_request(first.request_id, "changed my mind")
                with pytest.raises(RequestCancelledError) as exc_info:
                    await client.join_request(first, types.Result)
            assert exc_info.value.error.message == "changed my mind"

            cancelled = await server_read.receive()
            assert cancelled.message.method == types.NOTIFICATION_CANCELLED
            assert cancelled.message.params == {"requestId": first.request_id, "reason": "changed my mind"}

            # cancelling twice is a no-op
            assert not await client.cancel_request(first.request_id)

            await server_write.send(
                SessionMessage(types.JSONRPCResultResponse(id=second.request_id, result={"ok": True}))
            )
            result = await client.join_request(second, types.Result)
            assert result.model_extra == {"ok": True}
            assert len(client._pending) == 0
        finally:
            await client.__aexit__(None, None, None)


@pytest.mark.anyio
async def test_cancelling_the_caller_leaves_other_calls_pending(answer_initialize):
    results: dict[str, Any] = {}

    async with create_client_server_memory_streams() as (client_streams, server_streams):
        server_read, server_write = server_streams
        client = await _initialized_client(client_streams, server_streams, answer_initialize)
        try:
            caller_scope = anyio.CancelScope()

            async def cancellable() -> None:
                with caller_scope:
                    await client.send_request("test/first", None, types.Result)
                results["first"] = "cancelled" if caller_scope.cancelled_caught else "answered"

            async def other() -> None:
                result = await client.send_request("test/second", None, types.Result)
                results["second"] = result.model_extra

            with anyio.fail_after(5):
                async with anyio.create_task_group() as tg:
                    tg.start_soon(cancellable)
                    first = await _receive_request(server_read)
                    tg.start_soon(other)
                    second = await _receive_request(server_read)

                    caller_scope.cancel()
                    cancelled = await server_read.receive()
                    assert cancelled.message.method == types.NOTIFICATION_CANCELLED
                    assert cancelled.message.params["requestId"] == first.id

                    await server_write.send(
                        SessionMessage(types.JSONRPCResultResponse(id=second.id, result={"ok": True}))
                    )

            assert results == {"first": "cancelled", "second": {"ok": True}}
            assert len(client._pending) == 0
        finally:
            await client.__aexit__(None, None, None)


@pytest.mark.anyio
async def test_caller_cancellation_does_not_wait_for_a_stalled_peer(answer_initialize):
    async with create_client_server_memory_streams() as (client_streams, server_streams):
        server_read, _ = server_streams
        client = await _initialized_client(client_streams, server_streams, answer_initialize)
        try:
            # The peer never reads, so the request fills the stream and the
            # cancellation notice cannot be delivered.
            with anyio.fail_after(5):
                with anyio.move_on_after(0.2) as scope:
                    await client.send_request("test/slow", None, types.Result)
            assert scope.cancelled_caught
            assert len(client._pending) == 0

            request = await _receive_request(server_read)
            assert request.method == "test/slow"
        finally:
            await client.__aexit__(None, None, None)


@pytest.mark.anyio
async def test_request_cancelled_before_it_is_written_is_forgotten(answer_initialize):
    async with create_client_server_memory_streams() as (client_streams, server_streams):
        server_read, _ = server_streams
        client = await _initialized_client(client_streams, server_streams, answer_initialize)
        try:
            first = await client.start_request("test/first")
            with anyio.move_on_after(0.2) as scope:
                await client.start_request("test/second")
            assert scope.cancelled_caught
            assert first.request_id in client._pending
            assert len(client._pending) == 1

            request = await _receive_request(server_read)
            assert request.id == first.request_id
        finally:
            await client.__aexit__(None, None, None)


@pytest.mark.anyio
async def test_transport_close_fails_all_outstanding_calls(answer_initialize):
    errors: list[Exception] = []

    async with create_client_server_memory_streams() as (client_streams, server_streams):
        server_read, server_write = server_streams
        client = await _initialized_client(client_streams, server_streams, answer_initialize)
        try:

            async def call(method: str) -> None:
                try:
                    await client.send_request(method, None, types.Result)
                except McpError as exc:
                    errors.append(exc)

            async with anyio.create_task_group() as tg:
                tg.start_soon(call, "test/one")
                tg.start_soon(call, "test/two")
                await _receive_request(server_read)
                await _receive_request(server_read)
                await server_write.aclose()

            assert len(errors) == 2
            assert all(isinstance(exc, ConnectionClosedError) for exc in errors)
            assert {exc.method for exc in errors} == {"test/one", "test/two"}
            assert client.state is SessionState.CLOSED
            assert len(client._pending) == 0

            with pytest.raises(ConnectionClosedError):
                await client.send_ping()
        finally:
            await client.__aexit__(None, None, None)


@pytest.mark.anyio
async def test_response_with_string_id_matches_integer_request(answer_initialize):
    async with create_client_server_memory_streams() as (client_streams, server_streams):
        server_read, server_write = server_streams
        client = await _initialized_client(client_streams, server_streams, answer_initialize)
        try:
            call = await client.start_request(types.PING)
            request = await _receive_request(server_read)
            await server_write.send(SessionMessage(types.JSONRPCResultResponse(id=str(request.id), result={})))
            with anyio.fail_after(1):
                assert isinstance(await client.join_request(call, types.EmptyResult), types.EmptyResult)
        finally:
            await client.__aexit__(None, None, None)


@pytest.mark.anyio
async def test_request_timeout_notifies_peer(answer_initialize):
    async with create_client_server_memory_streams() as (client_streams, server_streams):
        server_read, _ = server_streams
        client = await _initialized_client(client_streams, server_streams, answer_initialize)
        try:
            async with anyio.create_task_group() as tg:

                async def call() -> None:
                    with pytest.raises(RequestTimeoutError) as exc_info:
                        await client.send_request("test/never", None, types.Result, timeout=0.1)
                    assert exc_info.value.code == types.REQUEST_TIMEOUT

                tg.start_soon(call)
                request = await _receive_request(server_read)
                cancelled = await server_read.receive()

            assert cancelled.message.method == types.NOTIFICATION_CANCELLED
            assert cancelled.message.params["requestId"] == request.id
            assert len(client._pending) == 0
        finally:
            await client.__aexit__(None, None, None)


@pytest.mark.anyio
async def test_malformed_response_fails_only_its_call(answer_initialize):
    async with create_client_server_memory_streams() as (client_streams, server_streams):
        server_read, server_write = server_streams
        client = await _initialized_client(client_streams, server_streams, answer_initialize)
        try:
            bad = await client.start_request("test/bad")
            await _receive_request(server_read)
            good = await client.start_request("test/good")
            await _receive_request(server_read)

            await server_write.send(
                MessageDecodeError("Invalid JSON-RPC envelope", request_id=bad.request_id, kind="response")
            )
            with pytest.raises(ProtocolError):
                await client.join_request(bad, types.Result)

            await server_write.send(SessionMessage(types.JSONRPCResultResponse(id=good.request_id, result={})))
            await client.join_request(good, types.Result)
            assert client.state is SessionState.READY
        finally:
            await client.__aexit__(None, None, None)


@pytest.mark.anyio
async def test_unattributable_decode_error_closes_connection(answer_initialize):
    async with create_client_server_memory_streams() as (client_streams, server_streams):
        server_read, server_write = server_streams
        client = await _initialized_client(client_streams, server_streams, answer_initialize)
        try:
            call = await client.start_request("test/pending")
            await _receive_request(server_read)

            decode_error = MessageDecodeError.parse_error("Expecting value")
            await server_write.send(decode_error)

            with pytest.raises(ConnectionClosedError):
                await client.join_request(call, types.Result)
            with anyio.fail_after(1):
                await client.wait_closed()
            assert client.close_reason is decode_error
        finally:
            await client.__aexit__(None, None, None)


@pytest.mark.anyio
async def test_requests_before_initialization(echo_server: Server):
    async with create_connected_server_and_client_session(echo_server, initialize=False) as client:
        # the client refuses locally
        with pytest.raises(SessionStateError):
            await client.send_request("test/echo", None, types.Result)
        # ping is allowed before the handshake
        assert isinstance(await client.send_ping(), types.EmptyResult)


@pytest.mark.anyio
async def test_server_rejects_requests_before_initialization(echo_server: Server):
    async with create_client_server_memory_streams() as (client_streams, server_streams):
        client_read, client_write = client_streams
        server_read, server_write = server_streams
        async with anyio.create_task_group() as tg:
            tg.start_soon(echo_server.run, server_read, server_write)

            await client_write.send(SessionMessage(types.JSONRPCRequest(id=1, method="test/echo")))
            item = await client_read.receive()
            assert isinstance(item.message, types.JSONRPCErrorResponse)
            assert item.message.id == 1
            assert item.message.error.code == types.INVALID_REQUEST

            tg.cancel_scope.cancel()


@pytest.mark.anyio
async def test_invalid_params_answer_invalid_params():
    server = Server(name="tools")

    @server.tool()
    async def add(ctx: Any, arguments: dict[str, Any]) -> str:
        return str(arguments["a"] + arguments["b"])

    async with create_connected_server_and_client_session(server) as client:
        with pytest.raises(McpError) as exc_info:
            await client.send_request(types.TOOLS_CALL, {"arguments": {}}, types.CallToolResult)
        assert exc_info.value.code == types.INVALID_PARAMS
