"""
SSE Client Transport Module

Connects to a server over HTTP: server-to-client messages arrive as
``message`` events on a long-lived Server-Sent Events stream, and every
client-to-server message is POSTed to the endpoint the server announces in
its first ``endpoint`` event.

The response to a POST carries no protocol data, so a server-initiated
request has no channel of its own on this transport; sessions built on it
cannot offer sampling.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import AsyncExitStack, asynccontextmanager
from types import TracebackType
from typing import Any
from urllib.parse import urljoin, urlparse

import anyio
import httpx
from anyio.abc import TaskStatus
from anyio.streams.memory import MemoryObjectReceiveStream, MemoryObjectSendStream
from httpx_sse import EventSource, aconnect_sse

from mcp_core.shared._exception_utils import open_task_group
from mcp_core.shared._httpx_utils import McpHttpClientFactory, create_mcp_http_client
from mcp_core.shared.codec import decode_message, encode_message
from mcp_core.shared.exceptions import MessageDecodeError, TransportError
from mcp_core.shared.message import SessionMessage
from mcp_core.shared.transport import TransportStreams

logger = logging.getLogger(__name__)


def remove_request_params(url: str) -> str:
    return urljoin(url, urlparse(url).path)


def resolve_endpoint(url: str, endpoint: str) -> str:
    """Resolve the announced endpoint against the stream URL.

    Raises ValueError if the endpoint points at a different origin.
    """
    endpoint_url = urljoin(url, endpoint)
    url_parsed = urlparse(url)
    endpoint_parsed = urlparse(endpoint_url)
    if url_parsed.netloc != endpoint_parsed.netloc or url_parsed.scheme != endpoint_parsed.scheme:
        raise ValueError(f"Endpoint origin does not match connection origin: {endpoint_url}")
    return endpoint_url


class SseClientTransport:
    """
    Client transport for SSE.

    `sse_read_timeout` determines how long (in seconds) the client will wait for a new
    event before disconnecting. All other HTTP operations are controlled by `timeout`.
    """

    supports_server_requests = False

    def __init__(
        self,
        url: str,
        headers: dict[str, Any] | None = None,
        timeout: float = 5,
        sse_read_timeout: float = 60 * 5,
        httpx_client_factory: McpHttpClientFactory = create_mcp_http_client,
    ) -> None:
        self.url = url
        self.headers = headers
        self.timeout = timeout
        self.sse_read_timeout = sse_read_timeout
        self.httpx_client_factory = httpx_client_factory
        self._exit_stack: AsyncExitStack | None = None

    async def __aenter__(self) -> TransportStreams:
        self._exit_stack = AsyncExitStack()
        try:
            return await self._exit_stack.enter_async_context(self._connect())
        except BaseException:
            await self._exit_stack.aclose()
            self._exit_stack = None
            raise

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> bool | None:
        assert self._exit_stack is not None, "Transport was not entered"
        try:
            return await self._exit_stack.__aexit__(exc_type, exc_val, exc_tb)
        finally:
            self._exit_stack = None

    @asynccontextmanager
    async def _connect(self) -> AsyncIterator[TransportStreams]:
        read_stream: MemoryObjectReceiveStream[SessionMessage | Exception]
        read_stream_writer: MemoryObjectSendStream[SessionMessage | Exception]

        write_stream: MemoryObjectSendStream[SessionMessage]
        write_stream_reader: MemoryObjectReceiveStream[SessionMessage]

        read_stream_writer, read_stream = anyio.create_memory_object_stream(0)
        write_stream, write_stream_reader = anyio.create_memory_object_stream(0)

        try:
            logger.info("Connecting to SSE endpoint: %s", remove_request_params(self.url))
            async with self.httpx_client_factory(headers=self.headers) as client:
                async with aconnect_sse(
                    client,
                    "GET",
                    self.url,
                    timeout=httpx.Timeout(self.timeout, read=self.sse_read_timeout),
                ) as event_source:
                    event_source.response.raise_for_status()
                    logger.debug("SSE connection established")

                    async with open_task_group() as tg:
                        endpoint_url = await tg.start(self._sse_reader, event_source, read_stream_writer)
                        logger.info("Starting post writer with endpoint URL: %s", endpoint_url)
                        tg.start_soon(self._post_writer, client, endpoint_url, write_stream_reader, read_stream_writer)

                        try:
                            yield read_stream, write_stream
                        finally:
                            tg.cancel_scope.cancel()
        finally:
            await read_stream_writer.aclose()
            await write_stream.aclose()

    async def _sse_reader(
        self,
        event_source: EventSource,
        read_stream_writer: MemoryObjectSendStream[SessionMessage | Exception],
        task_status: TaskStatus[str] = anyio.TASK_STATUS_IGNORED,
    ) -> None:
        try:
            async for sse in event_source.aiter_sse():
                logger.debug("Received SSE event: %s", sse.event)
                match sse.event:
                    case "endpoint":
                        endpoint_url = resolve_endpoint(self.url, sse.data)
                        logger.info("Received endpoint URL: %s", endpoint_url)
                        task_status.started(endpoint_url)

                    case "message":
                        try:
                            message = decode_message(sse.data)
                        except MessageDecodeError as exc:
                            logger.error("Error parsing server message: %s", exc)
                            await read_stream_writer.send(exc)
                            continue

                        await read_stream_writer.send(SessionMessage(message))
                    case _:
                        logger.warning("Unknown SSE event: %s", sse.event)
        except httpx.HTTPError as exc:
            logger.error("Error in sse_reader: %s", exc)
            try:
                await read_stream_writer.send(TransportError(f"SSE stream failed: {exc}", phase="receive"))
            except (anyio.ClosedResourceError, anyio.BrokenResourceError):
                pass
        except (anyio.ClosedResourceError, anyio.BrokenResourceError):
            logger.debug("Session stopped reading; closing SSE stream")
        finally:
            await read_stream_writer.aclose()

    async def _post_writer(
        self,
        client: httpx.AsyncClient,
        endpoint_url: str,
        write_stream_reader: MemoryObjectReceiveStream[SessionMessage],
        read_stream_writer: MemoryObjectSendStream[SessionMessage | Exception],
    ) -> None:
        try:
            async with write_stream_reader:
                async for session_message in write_stream_reader:
                    logger.debug("Sending client message: %s", session_message)
                    response = await client.post(
                        endpoint_url,
                        content=encode_message(session_message.message),
                        headers={"Content-Type": "application/json"},
                    )
                    response.raise_for_status()
                    logger.debug("Client message sent successfully: %s", response.status_code)
        except httpx.HTTPError as exc:
            logger.error("Error in post_writer: %s", exc)
            try:
                await read_stream_writer.send(TransportError(f"Failed to send message: {exc}", phase="send"))
            except (anyio.ClosedResourceError, anyio.BrokenResourceError):
                pass


def sse_client(
    url: str,
    headers: dict[str, Any] | None = None,
    timeout: float = 5,
    sse_read_timeout: float = 60 * 5,
) -> SseClientTransport:
    """
    Client transport for SSE.

    Args:
        url: SSE endpoint URL
        headers: Optional HTTP headers
        timeout: HTTP request timeout in seconds
        sse_read_timeout: SSE read timeout in seconds
    """
    return SseClientTransport(url, headers=headers, timeout=timeout, sse_read_timeout=sse_read_timeout)
