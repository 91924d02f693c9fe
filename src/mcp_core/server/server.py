"""
MCP Server Module

This module provides a small framework on top of ServerSession for writing MCP
servers: tools, resources and prompts are registered with decorators, and the
server can be run over stdio, HTTP+SSE or any pair of session streams.

Usage:
1. Create a Server instance:
   server = Server("your_server_name")

2. Register tools, resources and prompts:
   @server.tool(description="Add two numbers")
   async def add(ctx: RequestContext[ServerSession], arguments: dict[str, Any]) -> str:
       return str(arguments["a"] + arguments["b"])

   @server.resource("file:///readme.txt", mime_type="text/plain")
   async def readme(ctx: RequestContext[ServerSession]) -> str:
       return "Hello"

   @server.prompt(description="Summarize a text")
   async def summarize(ctx: RequestContext[ServerSession], arguments: dict[str, str]) -> str:
       return f"Please summarize: {arguments['text']}"

3. Run the server:
   server.serve("stdio")
"""

from __future__ import annotations

import base64
import inspect
import json
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Any, Literal

import anyio
import jsonschema
from pydantic import BaseModel
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import Response
from starlette.routing import Mount, Route

from mcp_core import types
from mcp_core.server.session import ServerSession
from mcp_core.server.sse import SseServerTransport
from mcp_core.server.stdio import SUPPORTS_SERVER_REQUESTS, stdio_server
from mcp_core.settings import Settings, get_settings
from mcp_core.shared.context import RequestContext
from mcp_core.shared.exceptions import DuplicateHandlerError, McpError
from mcp_core.shared.registry import CapabilityRegistry
from mcp_core.shared.transport import ReadStream, WriteStream
from mcp_core.utilities.logging import configure_logging

logger = logging.getLogger(__name__)

ServerContext = RequestContext[ServerSession]

ToolFn = Callable[[ServerContext, dict[str, Any]], Awaitable[Any]]
ResourceFn = Callable[[ServerContext], Awaitable[Any]]
PromptFn = Callable[[ServerContext, dict[str, str]], Awaitable[Any]]

DEFAULT_INPUT_SCHEMA: dict[str, Any] = {"type": "object"}


@dataclass
class _ToolEntry:
    tool: types.Tool
    fn: ToolFn
    validate_input: bool


@dataclass
class _ResourceEntry:
    resource: types.Resource
    fn: ResourceFn


@dataclass
class _PromptEntry:
    prompt: types.Prompt
    fn: PromptFn


def _to_content(item: Any) -> types.ContentBlock:
    if isinstance(item, str):
        return types.TextContent(text=item)
    if isinstance(
        item,
        types.TextContent | types.ImageContent | types.AudioContent | types.ResourceLink | types.EmbeddedResource,
    ):
        return item
    if isinstance(item, BaseModel):
        return types.TextContent(text=item.model_dump_json(by_alias=True, exclude_none=True))
    return types.TextContent(text=json.dumps(item, default=str))


def _to_tool_result(result: Any) -> types.CallToolResult:
    if isinstance(result, types.CallToolResult):
        return result
    if result is None:
        return types.CallToolResult(content=[])
    if isinstance(result, dict):
        # structured output is mirrored as text for clients that ignore it
        return types.CallToolResult(
            content=[types.TextContent(text=json.dumps(result, indent=2, default=str))],
            structured_content=result,
        )
    if isinstance(result, list | tuple):
        return types.CallToolResult(content=[_to_content(item) for item in result])
    return types.CallToolResult(content=[_to_content(result)])


def _error_result(message: str) -> types.CallToolResult:
    return types.CallToolResult(content=[types.TextContent(text=message)], is_error=True)


class Server:
    def __init__(
        self,
        name: str,
        version: str = "0.1.0",
        *,
        instructions: str | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.name = name
        self.version = version
        self.instructions = instructions
        self.settings = settings or get_settings()
        self.registry = CapabilityRegistry()
        self._tools: dict[str, _ToolEntry] = {}
        self._resources: dict[str, _ResourceEntry] = {}
        self._prompts: dict[str, _PromptEntry] = {}
        logger.debug("Initializing server %r", name)

    @property
    def server_info(self) -> types.Implementation:
        return types.Implementation(name=self.name, version=self.version)

    # -- tools ----------------------------------------------------------------

    def tool(
        self,
        name: str | None = None,
        description: str | None = None,
        input_schema: dict[str, Any] | None = None,
        *,
        output_schema: dict[str, Any] | None = None,
        title: str | None = None,
        validate_input: bool = True,
    ) -> Callable[[ToolFn], ToolFn]:
        """Register a tool.

        The handler receives the request context and the call arguments. It may
        return a CallToolResult, a string, a content block, a list of those, or
        a dict (sent as structured content). Exceptions raised by the handler
        are reported to the client as a result with ``isError`` set.

        When ``validate_input`` is true the arguments are checked against
        ``input_schema`` before the handler runs.
        """

        def decorator(fn: ToolFn) -> ToolFn:
            tool_name = name or fn.__name__
            if tool_name in self._tools:
                raise DuplicateHandlerError(f"{types.TOOLS_CALL}:{tool_name}")
            if not self._tools:
                self.registry.register(types.TOOLS_LIST, self._list_tools, listChanged=True)
                self.registry.register(types.TOOLS_CALL, self._call_tool, params_type=types.CallToolRequestParams)
            self._tools[tool_name] = _ToolEntry(
                tool=types.Tool(
                    name=tool_name,
                    title=title,
                    description=description or inspect.getdoc(fn),
                    input_schema=input_schema or DEFAULT_INPUT_SCHEMA,
                    output_schema=output_schema,
                ),
                fn=fn,
                validate_input=validate_input,
            )
            logger.debug("Registered tool %s", tool_name)
            return fn

        return decorator

    async def _list_tools(self, ctx: ServerContext, params: Any) -> types.ListToolsResult:
        return types.ListToolsResult(tools=[entry.tool for entry in self._tools.values()])

    async def _call_tool(self, ctx: ServerContext, params: types.CallToolRequestParams) -> types.CallToolResult:
        entry = self._tools.get(params.name)
        if entry is None:
            raise McpError(types.ErrorData(code=types.INVALID_PARAMS, message=f"Unknown tool: {params.name}"))

        arguments = params.arguments or {}
        if entry.validate_input:
            try:
                jsonschema.validate(instance=arguments, schema=entry.tool.input_schema)
            except jsonschema.ValidationError as e:
                return _error_result(f"Input validation error: {e.message}")

        try:
            result = await entry.fn(ctx, arguments)
        except Exception as e:
            logger.exception("Error executing tool %s", params.name)
            return _error_result(f"Error executing tool {params.name}: {e}")
        return _to_tool_result(result)

    # -- resources ------------------------------------------------------------

    def resource(
        self,
        uri: str,
        *,
        name: str | None = None,
        description: str | None = None,
        mime_type: str | None = None,
    ) -> Callable[[ResourceFn], ResourceFn]:
        """Register a resource.

        The handler receives the request context and returns the resource
        contents as ``str``, ``bytes`` (sent base64 encoded), a list of
        resource contents, or a ReadResourceResult.
        """

        def decorator(fn: ResourceFn) -> ResourceFn:
            if uri in self._resources:
                raise DuplicateHandlerError(f"{types.RESOURCES_READ}:{uri}")
            if not self._resources:
                self.registry.register(types.RESOURCES_LIST, self._list_resources, listChanged=True)
                self.registry.register(
                    types.RESOURCES_READ, self._read_resource, params_type=types.ReadResourceRequestParams
                )
            self._resources[uri] = _ResourceEntry(
                resource=types.Resource(
                    uri=uri,
                    name=name or fn.__name__,
                    description=description or inspect.getdoc(fn),
                    mime_type=mime_type,
                ),
                fn=fn,
            )
            logger.debug("Registered resource %s", uri)
            return fn

        return decorator

    async def _list_resources(self, ctx: ServerContext, params: Any) -> types.ListResourcesResult:
        return types.ListResourcesResult(resources=[entry.resource for entry in self._resources.values()])

    async def _read_resource(
        self, ctx: ServerContext, params: types.ReadResourceRequestParams
    ) -> types.ReadResourceResult:
        entry = self._resources.get(params.uri)
        if entry is None:
            raise McpError(
                types.ErrorData(
                    code=types.RESOURCE_NOT_FOUND, message=f"Unknown resource: {params.uri}", data={"uri": params.uri}
                )
            )

        result = await entry.fn(ctx)
        mime_type = entry.resource.mime_type
        match result:
            case types.ReadResourceResult():
                return result
            case str():
                contents = [types.TextResourceContents(uri=params.uri, text=result, mime_type=mime_type or "text/plain")]
            case bytes():
                contents = [
                    types.BlobResourceContents(
                        uri=params.uri,
                        blob=base64.b64encode(result).decode(),
                        mime_type=mime_type or "application/octet-stream",
                    )
                ]
            case _:
                contents = list(result)
        return types.ReadResourceResult(contents=contents)

    # -- prompts --------------------------------------------------------------

    def prompt(
        self,
        name: str | None = None,
        description: str | None = None,
        arguments: Sequence[types.PromptArgument] | None = None,
    ) -> Callable[[PromptFn], PromptFn]:
        """Register a prompt.

        The handler returns a GetPromptResult, a list of PromptMessages, or a
        string that becomes a single user message.
        """

        def decorator(fn: PromptFn) -> PromptFn:
            prompt_name = name or fn.__name__
            if prompt_name in self._prompts:
                raise DuplicateHandlerError(f"{types.PROMPTS_GET}:{prompt_name}")
            if not self._prompts:
                self.registry.register(types.PROMPTS_LIST, self._list_prompts, listChanged=True)
                self.registry.register(types.PROMPTS_GET, self._get_prompt, params_type=types.GetPromptRequestParams)
            self._prompts[prompt_name] = _PromptEntry(
                prompt=types.Prompt(
                    name=prompt_name,
                    description=description or inspect.getdoc(fn),
                    arguments=list(arguments) if arguments is not None else None,
                ),
                fn=fn,
            )
            logger.debug("Registered prompt %s", prompt_name)
            return fn

        return decorator

    async def _list_prompts(self, ctx: ServerContext, params: Any) -> types.ListPromptsResult:
        return types.ListPromptsResult(prompts=[entry.prompt for entry in self._prompts.values()])

    async def _get_prompt(self, ctx: ServerContext, params: types.GetPromptRequestParams) -> types.GetPromptResult:
        entry = self._prompts.get(params.name)
        if entry is None:
            raise McpError(types.ErrorData(code=types.INVALID_PARAMS, message=f"Unknown prompt: {params.name}"))

        arguments = params.arguments or {}
        missing = [arg.name for arg in entry.prompt.arguments or [] if arg.required and arg.name not in arguments]
        if missing:
            raise McpError(
                types.ErrorData(code=types.INVALID_PARAMS, message=f"Missing required arguments: {', '.join(missing)}")
            )

        result = await entry.fn(ctx, arguments)
        if isinstance(result, types.GetPromptResult):
            return result
        if isinstance(result, str):
            messages = [types.PromptMessage(role="user", content=types.TextContent(text=result))]
        else:
            messages = list(result)
        return types.GetPromptResult(description=entry.prompt.description, messages=messages)

    # -- running --------------------------------------------------------------

    def create_session(
        self,
        read_stream: ReadStream,
        write_stream: WriteStream,
        *,
        supports_server_requests: bool = True,
    ) -> ServerSession:
        return ServerSession(
            read_stream,
            write_stream,
            self.registry,
            server_info=self.server_info,
            instructions=self.instructions,
            read_timeout_seconds=self.settings.request_timeout_seconds,
            supports_server_requests=supports_server_requests,
        )

    async def run(
        self,
        read_stream: ReadStream,
        write_stream: WriteStream,
        *,
        supports_server_requests: bool = True,
    ) -> None:
        """Serve one connection until the peer disconnects."""
        async with self.create_session(
            read_stream, write_stream, supports_server_requests=supports_server_requests
        ) as session:
            await session.wait_closed()
            if session.close_reason is not None:
                logger.debug("Connection ended: %s", session.close_reason)

    async def run_stdio(self) -> None:
        """Run the server using stdio transport."""
        async with stdio_server() as (read_stream, write_stream):
            await self.run(read_stream, write_stream, supports_server_requests=SUPPORTS_SERVER_REQUESTS)

    def sse_app(self) -> Starlette:
        """Return an instance of the SSE server app."""
        sse = SseServerTransport(self.settings.message_path)

        async def handle_sse(request: Request) -> Response:
            async with sse.connect_sse(
                request.scope,
                request.receive,
                request._send,  # type: ignore[reportPrivateUsage]
            ) as (read_stream, write_stream):
                await self.run(read_stream, write_stream, supports_server_requests=sse.supports_server_requests)
            return Response()

        return Starlette(
            debug=self.settings.log_level == "DEBUG",
            routes=[
                Route(self.settings.sse_path, endpoint=handle_sse, methods=["GET"]),
                Mount(self.settings.message_path, app=sse.handle_post_message),
            ],
        )

    async def run_sse(self, host: str | None = None, port: int | None = None) -> None:
        """Run the server using SSE transport."""
        import uvicorn

        config = uvicorn.Config(
            self.sse_app(),
            host=host or self.settings.host,
            port=port or self.settings.port,
            log_level=self.settings.log_level.lower(),
        )
        server = uvicorn.Server(config)
        await server.serve()

    def serve(self, transport: Literal["stdio", "sse"] = "stdio") -> None:
        """Run the server. This is a synchronous function.

        Args:
            transport: Transport protocol to use ("stdio" or "sse")
        """
        if transport not in ("stdio", "sse"):
            raise ValueError(f"Unknown transport: {transport}")

        configure_logging(self.settings.log_level)
        match transport:
            case "stdio":
                anyio.run(self.run_stdio)
            case "sse":
                anyio.run(self.run_sse)
