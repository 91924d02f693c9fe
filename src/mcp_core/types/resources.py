"""Types for resource listing and reading."""

from typing import Annotated

from pydantic import Field

from mcp_core.types.base import MCPModel, RequestParams, Result
from mcp_core.types.content import BlobResourceContents, TextResourceContents


class Resource(MCPModel):
    """A known resource that the server is capable of reading."""

    uri: str
    name: str
    description: str | None = None
    mime_type: Annotated[str | None, Field(alias="mimeType")] = None


class ListResourcesResult(Result):
    resources: list[Resource]
    next_cursor: Annotated[str | None, Field(alias="nextCursor")] = None


class ReadResourceRequestParams(RequestParams):
    uri: str


class ReadResourceResult(Result):
    contents: list[TextResourceContents | BlobResourceContents]


class ResourceUpdatedNotificationParams(MCPModel):
    uri: str
