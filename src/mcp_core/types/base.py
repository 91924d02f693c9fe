"""Base types shared by every MCP payload model."""

from typing import Annotated, Any, Final

from pydantic import BaseModel, ConfigDict, Field

LATEST_PROTOCOL_VERSION: Final[str] = "2025-06-18"

SUPPORTED_PROTOCOL_VERSIONS: Final[tuple[str, ...]] = (
    "2024-11-05",
    "2025-03-26",
    LATEST_PROTOCOL_VERSION,
)

ProgressToken = str | int


class MCPModel(BaseModel):
    """Base class for all MCP domain types. Allows extra fields for forward compatibility."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)


class RequestMeta(MCPModel):
    """Metadata for MCP requests."""

    progress_token: Annotated[ProgressToken | None, Field(alias="progressToken")] = None


class RequestParams(MCPModel):
    """Base class for MCP request parameters with _meta support."""

    meta: Annotated[RequestMeta | None, Field(alias="_meta")] = None


class NotificationParams(MCPModel):
    """Base class for MCP notification parameters with _meta support."""

    meta: Annotated[dict[str, Any] | None, Field(alias="_meta")] = None


class Result(MCPModel):
    """Base class for MCP results with _meta support."""

    meta: Annotated[dict[str, Any] | None, Field(alias="_meta")] = None


class EmptyResult(Result):
    """A response that indicates success but carries no data."""


# Method names
INITIALIZE: Final[str] = "initialize"
PING: Final[str] = "ping"
TOOLS_LIST: Final[str] = "tools/list"
TOOLS_CALL: Final[str] = "tools/call"
RESOURCES_LIST: Final[str] = "resources/list"
RESOURCES_READ: Final[str] = "resources/read"
PROMPTS_LIST: Final[str] = "prompts/list"
PROMPTS_GET: Final[str] = "prompts/get"
LOGGING_SET_LEVEL: Final[str] = "logging/setLevel"
SAMPLING_CREATE_MESSAGE: Final[str] = "sampling/createMessage"

NOTIFICATION_INITIALIZED: Final[str] = "notifications/initialized"
NOTIFICATION_CANCELLED: Final[str] = "notifications/cancelled"
NOTIFICATION_PROGRESS: Final[str] = "notifications/progress"
NOTIFICATION_MESSAGE: Final[str] = "notifications/message"
NOTIFICATION_TOOLS_LIST_CHANGED: Final[str] = "notifications/tools/list_changed"
NOTIFICATION_RESOURCES_LIST_CHANGED: Final[str] = "notifications/resources/list_changed"
NOTIFICATION_PROMPTS_LIST_CHANGED: Final[str] = "notifications/prompts/list_changed"
