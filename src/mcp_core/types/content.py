"""Content blocks carried in tool results, prompts and sampling messages."""

from typing import Annotated, Final, Literal

from pydantic import Field, TypeAdapter

from mcp_core.types.base import MCPModel
from mcp_core.types.common import Annotations


class TextContent(MCPModel):
    """Text provided to or from an LLM."""

    type: Literal["text"] = "text"
    text: str
    annotations: Annotations | None = None


class ImageContent(MCPModel):
    """An image provided to or from an LLM."""

    type: Literal["image"] = "image"
    data: str  # base64 encoded
    mime_type: Annotated[str, Field(alias="mimeType")]
    annotations: Annotations | None = None


class AudioContent(MCPModel):
    """Audio provided to or from an LLM."""

    type: Literal["audio"] = "audio"
    data: str  # base64 encoded
    mime_type: Annotated[str, Field(alias="mimeType")]
    annotations: Annotations | None = None


class TextResourceContents(MCPModel):
    uri: str
    mime_type: Annotated[str | None, Field(alias="mimeType")] = None
    text: str


class BlobResourceContents(MCPModel):
    uri: str
    mime_type: Annotated[str | None, Field(alias="mimeType")] = None
    blob: str  # base64 encoded


class ResourceLink(MCPModel):
    """A link to a resource the client may read."""

    type: Literal["resource_link"] = "resource_link"
    uri: str
    name: str
    description: str | None = None
    mime_type: Annotated[str | None, Field(alias="mimeType")] = None


class EmbeddedResource(MCPModel):
    """The contents of a resource, embedded into a prompt or tool call result."""

    type: Literal["resource"] = "resource"
    resource: TextResourceContents | BlobResourceContents
    annotations: Annotations | None = None


ContentBlock = Annotated[
    TextContent | ImageContent | AudioContent | ResourceLink | EmbeddedResource,
    Field(discriminator="type"),
]

SamplingContent = Annotated[TextContent | ImageContent | AudioContent, Field(discriminator="type")]

CONTENT_TYPES: Final[tuple[str, ...]] = ("text", "image", "audio", "resource_link", "resource")

ContentBlockAdapter: TypeAdapter[ContentBlock] = TypeAdapter(ContentBlock)
