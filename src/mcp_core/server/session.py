"""
ServerSession Module

This module provides the ServerSession class, which manages the server side of
an MCP connection: it answers the client's ``initialize`` request, refuses
other requests until the handshake is done, and lets server code call back
into the client, most notably to request LLM sampling.

Common usage pattern:
```
    server = Server(name)

    @server.tool()
    async def summarize(ctx: RequestContext[ServerSession], arguments: dict[str, Any]) -> str:
        result = await ctx.session.create_message(
            [SamplingMessage(role="user", content=TextContent(text=arguments["text"]))],
            max_tokens=200,
        )
        return result.content.text
```
"""

from __future__ import annotations

import logging
from typing import Any

from mcp_core import types
from mcp_core.shared.context import RequestContext
from mcp_core.shared.exceptions import CapabilityError, McpError
from mcp_core.shared.registry import CapabilityCategory, CapabilityRegistry, HandlerRegistration
from mcp_core.shared.session import HANDSHAKE_METHODS, Session, SessionState
from mcp_core.shared.transport import ReadStream, WriteStream

logger = logging.getLogger(__name__)


class ServerSession(Session):
    def __init__(
        self,
        read_stream: ReadStream,
        write_stream: WriteStream,
        registry: CapabilityRegistry,
        *,
        server_info: types.Implementation,
        instructions: str | None = None,
        read_timeout_seconds: float | None = None,
        supports_server_requests: bool = True,
    ) -> None:
        super().__init__(
            read_stream,
            write_stream,
            registry,
            read_timeout_seconds=read_timeout_seconds,
            supports_server_requests=supports_server_requests,
        )
        self._server_info = server_info
        self._instructions = instructions
        self.client_params: types.InitializeRequestParams | None = None
        self.protocol_version: str | None = None
        self._internal_handlers[types.INITIALIZE] = HandlerRegistration(
            method=types.INITIALIZE,
            handler=self._handle_initialize,
            params_type=types.InitializeRequestParams,
        )

    @property
    def capabilities(self) -> types.ServerCapabilities:
        return types.ServerCapabilities.model_validate(self._registry.capabilities())

    def check_client_capability(self, category: CapabilityCategory | str) -> bool:
        """Check if the client declared a capability during the handshake."""
        return self.peer_supports(category)

    def _check_inbound(self, method: str) -> types.ErrorData | None:
        if self._state is not SessionState.READY and method not in HANDSHAKE_METHODS:
            return types.ErrorData(
                code=types.INVALID_REQUEST,
                message="Received request before initialization was complete",
            )
        return None

    async def _handle_initialize(
        self, ctx: RequestContext[ServerSession], params: types.InitializeRequestParams
    ) -> types.InitializeResult:
        if self._state is not SessionState.UNINITIALIZED:
            raise McpError(types.ErrorData(code=types.INVALID_REQUEST, message="Session is already initialized"))

        self._state = SessionState.INITIALIZING
        requested_version = params.protocol_version
        if requested_version in types.SUPPORTED_PROTOCOL_VERSIONS:
            self.protocol_version = requested_version
        else:
            # The client decides whether it can live with our version.
            logger.warning(
                "Client requested unsupported protocol version %s, offering %s",
                requested_version,
                types.LATEST_PROTOCOL_VERSION,
            )
            self.protocol_version = types.LATEST_PROTOCOL_VERSION

        self.client_params = params
        self._peer_capabilities = params.capabilities.model_dump(by_alias=True, exclude_none=True)
        self._state = SessionState.READY
        logger.info("Client %s %s connected", params.client_info.name, params.client_info.version)

        return types.InitializeResult(
            protocol_version=self.protocol_version,
            capabilities=self.capabilities,
            server_info=self._server_info,
            instructions=self._instructions,
        )

    async def _received_notification(self, notification: types.JSONRPCNotification) -> bool:
        if notification.method == types.NOTIFICATION_INITIALIZED:
            logger.debug("Client finished initialization")
            return True
        return False

    async def create_message(
        self,
        messages: list[types.SamplingMessage],
        *,
        max_tokens: int,
        system_prompt: str | None = None,
        include_context: types.IncludeContext | None = None,
        temperature: float | None = None,
        stop_sequences: list[str] | None = None,
        model_preferences: types.ModelPreferences | None = None,
        metadata: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> types.CreateMessageResult:
        """Send a sampling/createMessage request to the client."""
        if not self._supports_server_requests:
            raise CapabilityError(
                "Sampling is not available: the transport cannot carry server-initiated requests",
                method=types.SAMPLING_CREATE_MESSAGE,
                phase="send",
            )
        if self._state is SessionState.READY and not self.check_client_capability(CapabilityCategory.SAMPLING):
            raise CapabilityError(
                "Sampling not supported by the client", method=types.SAMPLING_CREATE_MESSAGE, phase="send"
            )
        return await self.send_request(
            types.SAMPLING_CREATE_MESSAGE,
            types.CreateMessageRequestParams(
                messages=messages,
                max_tokens=max_tokens,
                system_prompt=system_prompt,
                include_context=include_context,
                temperature=temperature,
                stop_sequences=stop_sequences,
                model_preferences=model_preferences,
                metadata=metadata,
            ),
            types.CreateMessageResult,
            timeout=timeout,
        )

    async def send_tool_list_changed(self) -> None:
        await self.send_notification(types.NOTIFICATION_TOOLS_LIST_CHANGED)

    async def send_resource_list_changed(self) -> None:
        await self.send_notification(types.NOTIFICATION_RESOURCES_LIST_CHANGED)

    async def send_prompt_list_changed(self) -> None:
        await self.send_notification(types.NOTIFICATION_PROMPTS_LIST_CHANGED)
