from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager
from typing import Any, Protocol

from mcp_core import types
from mcp_core.settings import get_settings
from mcp_core.shared.context import RequestContext
from mcp_core.shared.exceptions import CapabilityError, IncompatibleProtocolError, SessionStateError
from mcp_core.shared.registry import CapabilityCategory, CapabilityRegistry
from mcp_core.shared.session import ProgressFnT, Session, SessionState
from mcp_core.shared.transport import ReadStream, Transport, WriteStream

DEFAULT_CLIENT_INFO = types.Implementation(name="mcp-core", version="0.1.0")

logger = logging.getLogger(__name__)


class SamplingFnT(Protocol):
    async def __call__(
        self,
        context: RequestContext[ClientSession],
        params: types.CreateMessageRequestParams,
    ) -> types.CreateMessageResult | types.ErrorData: ...


class ClientSession(Session):
    """The client side of an MCP connection.

    Drives the ``initialize`` handshake and offers typed helpers for the
    server's tools, resources and prompts. Passing ``sampling_callback``
    registers it as the ``sampling/createMessage`` handler, which also
    announces the ``sampling`` capability to the server.
    """

    def __init__(
        self,
        read_stream: ReadStream,
        write_stream: WriteStream,
        *,
        registry: CapabilityRegistry | None = None,
        client_info: types.Implementation | None = None,
        sampling_callback: SamplingFnT | None = None,
        read_timeout_seconds: float | None = None,
        supports_server_requests: bool = True,
        protocol_version: str | None = None,
    ) -> None:
        super().__init__(
            read_stream,
            write_stream,
            registry,
            read_timeout_seconds=read_timeout_seconds,
            supports_server_requests=supports_server_requests,
        )
        self._client_info = client_info or DEFAULT_CLIENT_INFO
        self._protocol_version = protocol_version or get_settings().protocol_version
        self.server_info: types.Implementation | None = None
        self.server_capabilities: types.ServerCapabilities | None = None
        self.instructions: str | None = None
        self.protocol_version: str | None = None

        if sampling_callback is not None:
            callback = sampling_callback

            async def _sampling_handler(
                ctx: RequestContext[ClientSession], params: types.CreateMessageRequestParams
            ) -> types.CreateMessageResult | types.ErrorData:
                return await callback(ctx, params)

            self._registry.register(
                types.SAMPLING_CREATE_MESSAGE,
                _sampling_handler,
                params_type=types.CreateMessageRequestParams,
            )

    async def initialize(
        self, required_capabilities: Iterable[CapabilityCategory | str] = ()
    ) -> types.InitializeResult:
        """Run the handshake and move the session to READY.

        Fails with IncompatibleProtocolError if the server answers with a
        protocol version this client does not support, and with CapabilityError
        if any of ``required_capabilities`` is missing from the server's
        capabilities. Either failure closes the session.
        """
        if self._state is not SessionState.UNINITIALIZED:
            raise SessionStateError(f"Cannot initialize a session in state {self._state.value}", phase="handshake")
        self._state = SessionState.INITIALIZING

        params = types.InitializeRequestParams(
            protocol_version=self._protocol_version,
            capabilities=types.ClientCapabilities.model_validate(self._registry.capabilities()),
            client_info=self._client_info,
        )
        try:
            result = await self.send_request(types.INITIALIZE, params, types.InitializeResult)
        except BaseException:
            if self._state is SessionState.INITIALIZING:
                self._state = SessionState.UNINITIALIZED
            raise

        if result.protocol_version not in types.SUPPORTED_PROTOCOL_VERSIONS:
            error = IncompatibleProtocolError(result.protocol_version, types.SUPPORTED_PROTOCOL_VERSIONS)
            await self.close()
            raise error

        announced = result.capabilities.model_dump(by_alias=True, exclude_none=True)
        missing = [
            name
            for name in (c.value if isinstance(c, CapabilityCategory) else c for c in required_capabilities)
            if name not in announced
        ]
        if missing:
            await self.close()
            raise CapabilityError(
                f"Server is missing required capabilities: {', '.join(missing)}",
                method=types.INITIALIZE,
                phase="handshake",
            )

        self.server_info = result.server_info
        self.server_capabilities = result.capabilities
        self.instructions = result.instructions
        self.protocol_version = result.protocol_version
        self._peer_capabilities = announced
        self._state = SessionState.READY
        logger.info(
            "Initialized session with %s %s (protocol %s)",
            result.server_info.name,
            result.server_info.version,
            result.protocol_version,
        )

        await self.send_notification(types.NOTIFICATION_INITIALIZED)
        return result

    async def list_tools(self, cursor: str | None = None) -> types.ListToolsResult:
        return await self.send_request(
            types.TOOLS_LIST, types.PaginatedRequestParams(cursor=cursor), types.ListToolsResult
        )

    async def call_tool(
        self,
        name: str,
        arguments: dict[str, Any] | None = None,
        *,
        timeout: float | None = None,
        progress_callback: ProgressFnT | None = None,
    ) -> types.CallToolResult:
        """Send a tools/call request.

        Errors raised by the tool itself come back in-band as a result with
        ``is_error`` set; only protocol failures raise.
        """
        return await self.send_request(
            types.TOOLS_CALL,
            types.CallToolRequestParams(name=name, arguments=arguments),
            types.CallToolResult,
            timeout=timeout,
            progress_callback=progress_callback,
        )

    async def list_resources(self, cursor: str | None = None) -> types.ListResourcesResult:
        return await self.send_request(
            types.RESOURCES_LIST, types.PaginatedRequestParams(cursor=cursor), types.ListResourcesResult
        )

    async def read_resource(self, uri: str) -> types.ReadResourceResult:
        return await self.send_request(
            types.RESOURCES_READ, types.ReadResourceRequestParams(uri=uri), types.ReadResourceResult
        )

    async def list_prompts(self, cursor: str | None = None) -> types.ListPromptsResult:
        return await self.send_request(
            types.PROMPTS_LIST, types.PaginatedRequestParams(cursor=cursor), types.ListPromptsResult
        )

    async def get_prompt(self, name: str, arguments: dict[str, str] | None = None) -> types.GetPromptResult:
        return await self.send_request(
            types.PROMPTS_GET,
            types.GetPromptRequestParams(name=name, arguments=arguments),
            types.GetPromptResult,
        )


@asynccontextmanager
async def connect(
    transport: Transport,
    *,
    required_capabilities: Iterable[CapabilityCategory | str] = (),
    **session_kwargs: Any,
) -> AsyncIterator[ClientSession]:
    """Open ``transport``, start a ClientSession on it and run the handshake.

    Example:
        ```python
        params = StdioServerParameters(command="python", args=["server.py"])
        async with connect(stdio_client(params)) as session:
            result = await session.call_tool("add", {"a": 1, "b": 2})
        ```
    """
    async with transport as (read_stream, write_stream):
        async with ClientSession(
            read_stream,
            write_stream,
            supports_server_requests=transport.supports_server_requests,
            **session_kwargs,
        ) as session:
            await session.initialize(required_capabilities)
            yield session
