"""Transport protocol shared by the client and server sides."""

from __future__ import annotations

from contextlib import AbstractAsyncContextManager
from typing import Protocol

from anyio.streams.memory import MemoryObjectReceiveStream, MemoryObjectSendStream

from mcp_core.shared.message import SessionMessage

ReadStream = MemoryObjectReceiveStream[SessionMessage | Exception]
WriteStream = MemoryObjectSendStream[SessionMessage]

TransportStreams = tuple[ReadStream, WriteStream]


class Transport(AbstractAsyncContextManager[TransportStreams], Protocol):
    """Protocol for MCP transports.

    A transport is an async context manager that yields read and write streams
    for bidirectional communication with a peer. The read stream carries
    decoded messages, or the exception raised while decoding or reading.

    ``supports_server_requests`` is False for transports that cannot deliver a
    server-initiated request and route its reply back on the same logical
    channel; sessions on such transports cannot offer sampling.
    """

    supports_server_requests: bool
