from typing import Any

import anyio
import pytest

from mcp_core import types
from mcp_core.client.session import ClientSession, connect
from mcp_core.server.server import Server
from mcp_core.server.session import ServerSession
from mcp_core.shared.context import RequestContext
from mcp_core.shared.exceptions import CapabilityError, IncompatibleProtocolError, McpError, SessionStateError
from mcp_core.shared.memory import (
    InMemoryTransport,
    create_client_server_memory_streams,
    create_connected_server_and_client_session,
)
from mcp_core.shared.registry import CapabilityCategory, CapabilityRegistry
from mcp_core.shared.session import SessionState


@pytest.fixture
def calculator() -> Server:
    server = Server(name="calculator", version="1.2.3", instructions="Adds numbers")

    @server.tool(
        description="Add two numbers",
        input_schema={
            "type": "object",
            "properties": {"a": {"type": "number"}, "b": {"type": "number"}},
            "required": ["a", "b"],
        },
    )
    async def add(ctx: Any, arguments: dict[str, Any]) -> str:
        return str(arguments["a"] + arguments["b"])

    @server.tool()
    async def stats(ctx: Any, arguments: dict[str, Any]) -> dict[str, Any]:
        """Summary statistics"""
        values = arguments.get("values", [])
        return {"count": len(values), "total": sum(values)}

    @server.tool()
    async def divide(ctx: Any, arguments: dict[str, Any]) -> str:
        return str(arguments["a"] / arguments["b"])

    @server.tool()
    async def countdown(ctx: RequestContext[ServerSession], arguments: dict[str, Any]) -> str:
        for step in range(3):
            await ctx.report_progress(step + 1, 3, f"step {step + 1}")
        return "liftoff"

    return server


@pytest.mark.anyio
async def test_client_session_initialize():
    registry = CapabilityRegistry()

    @registry.request_handler(types.TOOLS_LIST)
    async def list_tools(ctx: Any, params: Any) -> types.ListToolsResult:
        return types.ListToolsResult(tools=[])

    @registry.request_handler(types.TOOLS_CALL, params_type=types.CallToolRequestParams)
    async def call_tool(ctx: Any, params: types.CallToolRequestParams) -> types.CallToolResult:
        raise McpError(types.ErrorData(code=types.INVALID_PARAMS, message=f"Unknown tool: {params.name}"))

    async with create_client_server_memory_streams() as (client_streams, server_streams):
        server_session = ServerSession(
            *server_streams, registry, server_info=types.Implementation(name="mock-server", version="0.1.0")
        )
        async with server_session, ClientSession(*client_streams, protocol_version="2024-11-05") as client:
            result = await client.initialize()

            assert result.protocol_version == "2024-11-05"
            assert result.capabilities.model_dump(by_alias=True, exclude_none=True) == {"tools": {}}
            assert result.server_info == types.Implementation(name="mock-server", version="0.1.0")
            assert client.state is SessionState.READY
            assert client.protocol_version == "2024-11-05"

            with anyio.fail_after(1):
                while server_session.client_params is None:
                    await anyio.sleep(0.01)
            assert server_session.protocol_version == "2024-11-05"
            assert server_session.client_params.client_info.name == "mcp-core"

            with pytest.raises(McpError) as exc_info:
                await client.call_tool("nope")
            assert exc_info.value.code == types.INVALID_PARAMS
            assert exc_info.value.error.message == "Unknown tool: nope"

            # the connection remains usable
            tools = await client.list_tools()
            assert tools.tools == []


@pytest.mark.anyio
async def test_server_offers_latest_version_for_unknown_request(calculator: Server):
    async with create_connected_server_and_client_session(calculator, initialize=False) as client:
        client._protocol_version = "1999-01-01"
        result = await client.initialize()
        assert result.protocol_version == types.LATEST_PROTOCOL_VERSION


@pytest.mark.anyio
async def test_incompatible_server_version_closes_session(answer_initialize):
    async with create_client_server_memory_streams() as (client_streams, server_streams):
        async with ClientSession(*client_streams) as client:
            async with anyio.create_task_group() as tg:
                tg.start_soon(lambda: answer_initialize(*server_streams, protocol_version="1999-01-01"))
                with pytest.raises(IncompatibleProtocolError) as exc_info:
                    await client.initialize()

            assert exc_info.value.version == "1999-01-01"
            assert client.state is SessionState.CLOSED


@pytest.mark.anyio
async def test_missing_required_capability_closes_session(calculator: Server):
    with pytest.raises(CapabilityError, match="prompts"):
        async with connect(InMemoryTransport(calculator), required_capabilities=[CapabilityCategory.PROMPTS]):
            pass


@pytest.mark.anyio
async def test_initialize_twice_is_rejected(calculator: Server):
    async with create_connected_server_and_client_session(calculator) as client:
        with pytest.raises(SessionStateError):
            await client.initialize()


@pytest.mark.anyio
async def test_connect_exposes_server_details(calculator: Server):
    async with connect(InMemoryTransport(calculator), required_capabilities=["tools"]) as client:
        assert client.server_info == types.Implementation(name="calculator", version="1.2.3")
        assert client.instructions == "Adds numbers"
        assert client.server_capabilities.tools == {"listChanged": True}
        assert client.peer_supports(CapabilityCategory.TOOLS)
        assert not client.peer_supports(CapabilityCategory.RESOURCES)


@pytest.mark.anyio
async def test_list_and_call_tools(calculator: Server):
    async with create_connected_server_and_client_session(calculator) as client:
        tools = await client.list_tools()
        assert [tool.name for tool in tools.tools] == ["add", "stats", "divide", "countdown"]
        assert tools.tools[0].description == "Add two numbers"
        assert tools.tools[1].description == "Summary statistics"

        result = await client.call_tool("add", {"a": 1, "b": 2})
        assert not result.is_error
        assert result.content == [types.TextContent(text="3")]

        result = await client.call_tool("stats", {"values": [1, 2, 3]})
        assert result.structured_content == {"count": 3, "total": 6}


@pytest.mark.anyio
async def test_tool_errors_are_reported_in_band(calculator: Server):
    async with create_connected_server_and_client_session(calculator) as client:
        result = await client.call_tool("divide", {"a": 1, "b": 0})
        assert result.is_error
        assert result.content[0].text == "Error executing tool divide: division by zero"

        result = await client.call_tool("add", {"a": 1})
        assert result.is_error
        assert result.content[0].text.startswith("Input validation error:")


@pytest.mark.anyio
async def test_unknown_tool_is_a_protocol_error(calculator: Server):
    async with create_connected_server_and_client_session(calculator) as client:
        with pytest.raises(McpError) as exc_info:
            await client.call_tool("multiply", {"a": 1, "b": 2})
        assert exc_info.value.code == types.INVALID_PARAMS

        result = await client.call_tool("add", {"a": 2, "b": 2})
        assert result.content == [types.TextContent(text="4")]


@pytest.mark.anyio
async def test_progress_notifications_reach_the_caller(calculator: Server):
    updates: list[tuple[float, float | None, str | None]] = []

    async def on_progress(progress: float, total: float | None, message: str | None) -> None:
        updates.append((progress, total, message))

    async with create_connected_server_and_client_session(calculator) as client:
        result = await client.call_tool("countdown", {}, progress_callback=on_progress)
        assert result.content == [types.TextContent(text="liftoff")]

        # notifications are processed in order by a single worker
        with anyio.fail_after(1):
            while len(updates) < 3:
                await anyio.sleep(0.01)
        assert updates == [(1, 3, "step 1"), (2, 3, "step 2"), (3, 3, "step 3")]


@pytest.mark.anyio
async def test_calls_to_undeclared_capability_fail_locally(calculator: Server):
    async with create_connected_server_and_client_session(calculator) as client:
        with pytest.raises(CapabilityError):
            await client.list_prompts()


@pytest.mark.anyio
async def test_resources_and_prompts():
    server = Server(name="docs")

    @server.resource("file:///readme.txt", name="readme", mime_type="text/plain")
    async def readme(ctx: Any) -> str:
        return "Hello"

    @server.resource("file:///logo.png", mime_type="image/png")
    async def logo(ctx: Any) -> bytes:
        return b"\x89PNG"

    @server.prompt(
        description="Summarize a text",
        arguments=[types.PromptArgument(name="text", required=True)],
    )
    async def summarize(ctx: Any, arguments: dict[str, str]) -> str:
        return f"Please summarize: {arguments['text']}"

    async with create_connected_server_and_client_session(server) as client:
        resources = await client.list_resources()
        assert [r.uri for r in resources.resources] == ["file:///readme.txt", "file:///logo.png"]

        text = await client.read_resource("file:///readme.txt")
        assert text.contents[0].text == "Hello"
        assert text.contents[0].mime_type == "text/plain"

        blob = await client.read_resource("file:///logo.png")
        assert blob.contents[0].blob == "iVBORw=="

        with pytest.raises(McpError) as exc_info:
            await client.read_resource("file:///missing.txt")
        assert exc_info.value.code == types.RESOURCE_NOT_FOUND

        prompts = await client.list_prompts()
        assert prompts.prompts[0].name == "summarize"

        prompt = await client.get_prompt("summarize", {"text": "MCP"})
        assert prompt.messages[0].role == "user"
        assert prompt.messages[0].content == types.TextContent(text="Please summarize: MCP")

        with pytest.raises(McpError, match="Missing required arguments: text"):
            await client.get_prompt("summarize", {})


@pytest.mark.anyio
async def test_list_changed_notification_reaches_client_handler():
    server = Server(name="dynamic")
    registry = CapabilityRegistry()
    changed = anyio.Event()

    @registry.notification_handler(types.NOTIFICATION_TOOLS_LIST_CHANGED)
    async def on_tools_changed(params: Any) -> None:
        changed.set()

    @server.tool()
    async def refresh(ctx: Any, arguments: dict[str, Any]) -> str:
        await ctx.session.send_tool_list_changed()
        return "ok"

    async with create_connected_server_and_client_session(server, registry=registry) as client:
        await client.call_tool("refresh")
        with anyio.fail_after(1):
            await changed.wait()
