"""Types for tool listing and invocation."""

from typing import Annotated, Any

from pydantic import Field

from mcp_core.types.base import MCPModel, RequestParams, Result
from mcp_core.types.content import ContentBlock


class Tool(MCPModel):
    """Definition of a tool the server provides."""

    name: str
    description: str | None = None
    input_schema: Annotated[dict[str, Any], Field(alias="inputSchema")]
    output_schema: Annotated[dict[str, Any] | None, Field(alias="outputSchema")] = None
    title: str | None = None


class PaginatedRequestParams(RequestParams):
    cursor: str | None = None


class ListToolsResult(Result):
    tools: list[Tool]
    next_cursor: Annotated[str | None, Field(alias="nextCursor")] = None


class CallToolRequestParams(RequestParams):
    """Parameters for tools/call request."""

    name: str
    arguments: dict[str, Any] | None = None


class CallToolResult(Result):
    """Server's response to a tools/call request.

    Tool-level failures are reported in-band with ``is_error`` set rather than
    as JSON-RPC errors, so the model calling the tool can see what went wrong.
    """

    content: list[ContentBlock]
    structured_content: Annotated[dict[str, Any] | None, Field(alias="structuredContent")] = None
    is_error: Annotated[bool, Field(alias="isError")] = False
