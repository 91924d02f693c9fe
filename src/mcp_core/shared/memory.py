"""
In-memory transports

Passes SessionMessage objects between two sessions in the same process with
no serialization step. Used for testing servers and for embedding a server
in the application that talks to it.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from types import TracebackType
from typing import TYPE_CHECKING, Any

import anyio
from anyio.streams.memory import MemoryObjectReceiveStream, MemoryObjectSendStream

from mcp_core.client.session import ClientSession
from mcp_core.shared._exception_utils import open_task_group
from mcp_core.shared.message import SessionMessage
from mcp_core.shared.transport import TransportStreams

if TYPE_CHECKING:
    from mcp_core.server.server import Server

MessageStream = tuple[
    MemoryObjectReceiveStream[SessionMessage | Exception],
    MemoryObjectSendStream[SessionMessage],
]


@asynccontextmanager
async def create_client_server_memory_streams() -> AsyncIterator[tuple[MessageStream, MessageStream]]:
    """
    Creates a pair of bidirectional memory streams for client-server communication.

    Returns:
        A tuple of (client_streams, server_streams) where each is a tuple of
        (read_stream, write_stream)
    """
    # Create streams for both directions
    server_to_client_send, server_to_client_receive = anyio.create_memory_object_stream[SessionMessage | Exception](1)
    client_to_server_send, client_to_server_receive = anyio.create_memory_object_stream[SessionMessage | Exception](1)

    client_streams = (server_to_client_receive, client_to_server_send)
    server_streams = (client_to_server_receive, server_to_client_send)

    async with (
        server_to_client_receive,
        client_to_server_send,
        client_to_server_receive,
        server_to_client_send,
    ):
        yield client_streams, server_streams


class InMemoryTransport:
    """In-memory transport for testing MCP servers without network overhead.

    This transport starts the server in a background task and provides
    streams for client-side communication. The server is automatically
    stopped when the context manager exits.
    """

    supports_server_requests = True

    def __init__(self, server: Server) -> None:
        self._server = server
        self._cm: AbstractAsyncContextManager[TransportStreams] | None = None

    @asynccontextmanager
    async def _connect(self) -> AsyncIterator[TransportStreams]:
        async with create_client_server_memory_streams() as (client_streams, server_streams):
            client_read, client_write = client_streams
            server_read, server_write = server_streams

            async with open_task_group() as tg:
                tg.start_soon(self._server.run, server_read, server_write)

                try:
                    yield client_read, client_write
                finally:
                    tg.cancel_scope.cancel()

    async def __aenter__(self) -> TransportStreams:
        self._cm = self._connect()
        return await self._cm.__aenter__()

    async def __aexit__(
        self, exc_type: type[BaseException] | None, exc_val: BaseException | None, exc_tb: TracebackType | None
    ) -> None:
        if self._cm is not None:
            await self._cm.__aexit__(exc_type, exc_val, exc_tb)
            self._cm = None


@asynccontextmanager
async def create_connected_server_and_client_session(
    server: Server,
    *,
    initialize: bool = True,
    **client_kwargs: Any,
) -> AsyncIterator[ClientSession]:
    """Creates a ClientSession that is connected to a running MCP server.

    With ``initialize=False`` the handshake is left to the caller.
    """
    async with InMemoryTransport(server) as (read_stream, write_stream):
        async with ClientSession(read_stream, write_stream, **client_kwargs) as client_session:
            if initialize:
                await client_session.initialize()
            yield client_session
