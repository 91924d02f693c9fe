"""
SSE Server Transport Module

This module implements a Server-Sent Events (SSE) transport layer for MCP servers.

Example usage:
```
    # Create an SSE transport at an endpoint
    sse = SseServerTransport("/messages/")

    # Define handler functions
    async def handle_sse(request):
        async with sse.connect_sse(
            request.scope, request.receive, request._send
        ) as streams:
            await server.run(streams[0], streams[1], supports_server_requests=False)
        return Response()

    # Create Starlette routes for SSE and message handling
    routes = [
        Route("/sse", endpoint=handle_sse, methods=["GET"]),
        Mount("/messages/", app=sse.handle_post_message),
    ]
```

Every GET on the SSE route opens a new session. The first event on the stream
is ``endpoint``, carrying the URI (with a ``session_id`` query parameter) the
client must POST its messages to. Server messages follow as ``message``
events.

A POST is acknowledged with 202 before the message is processed, so replies
to server-initiated requests have no channel of their own; sampling is not
available on this transport.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any
from urllib.parse import quote
from uuid import UUID, uuid4

import anyio
from anyio.streams.memory import MemoryObjectReceiveStream, MemoryObjectSendStream
from sse_starlette import EventSourceResponse
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import Receive, Scope, Send

from mcp_core.shared._exception_utils import open_task_group
from mcp_core.shared.codec import decode_message, encode_message
from mcp_core.shared.exceptions import MessageDecodeError
from mcp_core.shared.message import MessageMetadata, SessionMessage
from mcp_core.shared.transport import TransportStreams

logger = logging.getLogger(__name__)


class SseServerTransport:
    """
    SSE server transport for MCP. This class provides _two_ ASGI applications,
    suitable to be used with a framework like Starlette and a server like Hypercorn:

        1. connect_sse() is an ASGI application which receives incoming GET requests,
           and sets up a new SSE stream to send server messages to the client.
        2. handle_post_message() is an ASGI application which receives incoming POST
           requests, which should contain client messages that link to a
           previously-established SSE session.
    """

    supports_server_requests = False

    _endpoint: str
    _read_stream_writers: dict[str, MemoryObjectSendStream[SessionMessage | Exception]]

    def __init__(self, endpoint: str) -> None:
        """
        Creates a new SSE server transport, which will direct the client to POST
        messages to the relative or absolute URL given.
        """
        self._endpoint = endpoint
        self._read_stream_writers = {}
        logger.debug("SseServerTransport initialized with endpoint: %s", endpoint)

    @property
    def session_ids(self) -> list[str]:
        return list(self._read_stream_writers)

    @asynccontextmanager
    async def connect_sse(self, scope: Scope, receive: Receive, send: Send) -> AsyncIterator[TransportStreams]:
        if scope["type"] != "http":
            logger.error("connect_sse received non-HTTP request")
            raise ValueError("connect_sse can only handle HTTP requests")

        logger.debug("Setting up SSE connection")
        read_stream: MemoryObjectReceiveStream[SessionMessage | Exception]
        read_stream_writer: MemoryObjectSendStream[SessionMessage | Exception]

        write_stream: MemoryObjectSendStream[SessionMessage]
        write_stream_reader: MemoryObjectReceiveStream[SessionMessage]

        read_stream_writer, read_stream = anyio.create_memory_object_stream(0)
        write_stream, write_stream_reader = anyio.create_memory_object_stream(0)

        session_id = uuid4().hex
        self._read_stream_writers[session_id] = read_stream_writer
        logger.debug("Created new session with ID: %s", session_id)

        root_path = scope.get("root_path", "")
        full_message_path = root_path.rstrip("/") + self._endpoint
        client_post_uri_data = f"{quote(full_message_path)}?session_id={session_id}"

        sse_stream_writer, sse_stream_reader = anyio.create_memory_object_stream[dict[str, Any]](0)

        async def sse_writer() -> None:
            logger.debug("Starting SSE writer")
            async with sse_stream_writer, write_stream_reader:
                await sse_stream_writer.send({"event": "endpoint", "data": client_post_uri_data})
                logger.debug("Sent endpoint event: %s", client_post_uri_data)

                async for session_message in write_stream_reader:
                    logger.debug("Sending message via SSE: %s", session_message)
                    await sse_stream_writer.send(
                        {
                            "event": "message",
                            "data": encode_message(session_message.message),
                        }
                    )

        async with open_task_group() as tg:

            async def response_wrapper(scope: Scope, receive: Receive, send: Send) -> None:
                """
                The EventSourceResponse returning signals a client close / disconnect.
                In this case we close our side of the streams to signal the client that
                the connection has been closed.
                """
                try:
                    await EventSourceResponse(content=sse_stream_reader, data_sender_callable=sse_writer)(
                        scope, receive, send
                    )
                finally:
                    self._read_stream_writers.pop(session_id, None)
                    await read_stream_writer.aclose()
                    await write_stream_reader.aclose()
                    logger.debug("Client session disconnected %s", session_id)

            logger.debug("Starting SSE response task")
            tg.start_soon(response_wrapper, scope, receive, send)

            logger.debug("Yielding read and write streams")
            yield (read_stream, write_stream)

    async def handle_post_message(self, scope: Scope, receive: Receive, send: Send) -> None:
        logger.debug("Handling POST message")
        request = Request(scope, receive)

        session_id_param = request.query_params.get("session_id")
        if session_id_param is None:
            logger.warning("Received request without session_id")
            response = Response("session_id is required", status_code=400)
            return await response(scope, receive, send)

        try:
            session_id = UUID(hex=session_id_param).hex
            logger.debug("Parsed session ID: %s", session_id)
        except ValueError:
            logger.warning("Received invalid session ID: %s", session_id_param)
            response = Response("Invalid session ID", status_code=400)
            return await response(scope, receive, send)

        writer = self._read_stream_writers.get(session_id)
        if not writer:
            logger.warning("Could not find session for ID: %s", session_id)
            response = Response("Could not find session", status_code=404)
            return await response(scope, receive, send)

        body = await request.body()
        logger.debug("Received JSON: %s", body)

        try:
            message = decode_message(body)
        except MessageDecodeError as err:
            logger.warning("Failed to parse message: %s", err)
            response = Response(f"Could not parse message: {err.error.message}", status_code=400)
            await response(scope, receive, send)
            # Only a message with a usable id can be answered on the stream.
            if err.attributable:
                await writer.send(err)
            return

        logger.debug("Sending session message to writer: %s", message)
        response = Response("Accepted", status_code=202)
        await response(scope, receive, send)
        await writer.send(SessionMessage(message, metadata=MessageMetadata(request_context=request)))
