"""MCP wire types: JSON-RPC envelopes and protocol payload models."""

from mcp_core.types.base import (
    INITIALIZE,
    LATEST_PROTOCOL_VERSION,
    LOGGING_SET_LEVEL,
    NOTIFICATION_CANCELLED,
    NOTIFICATION_INITIALIZED,
    NOTIFICATION_MESSAGE,
    NOTIFICATION_PROGRESS,
    NOTIFICATION_PROMPTS_LIST_CHANGED,
    NOTIFICATION_RESOURCES_LIST_CHANGED,
    NOTIFICATION_TOOLS_LIST_CHANGED,
    PING,
    PROMPTS_GET,
    PROMPTS_LIST,
    RESOURCES_LIST,
    RESOURCES_READ,
    SAMPLING_CREATE_MESSAGE,
    SUPPORTED_PROTOCOL_VERSIONS,
    TOOLS_CALL,
    TOOLS_LIST,
    EmptyResult,
    MCPModel,
    NotificationParams,
    ProgressToken,
    RequestMeta,
    RequestParams,
    Result,
)
from mcp_core.types.common import (
    Annotations,
    ClientCapabilities,
    Implementation,
    InitializeRequestParams,
    InitializeResult,
    Role,
    ServerCapabilities,
)
from mcp_core.types.content import (
    CONTENT_TYPES,
    AudioContent,
    BlobResourceContents,
    ContentBlock,
    ContentBlockAdapter,
    EmbeddedResource,
    ImageContent,
    ResourceLink,
    SamplingContent,
    TextContent,
    TextResourceContents,
)
from mcp_core.types.json_rpc import (
    CONNECTION_CLOSED,
    INTERNAL_ERROR,
    INVALID_PARAMS,
    INVALID_REQUEST,
    JSONRPC_VERSION,
    METHOD_NOT_FOUND,
    PARSE_ERROR,
    REQUEST_CANCELLED,
    REQUEST_TIMEOUT,
    RESOURCE_NOT_FOUND,
    ErrorData,
    JSONRPCErrorResponse,
    JSONRPCMessage,
    JSONRPCMessageAdapter,
    JSONRPCNotification,
    JSONRPCRequest,
    JSONRPCResponse,
    JSONRPCResultResponse,
    RequestId,
)
from mcp_core.types.notifications import CancelledNotificationParams, ProgressNotificationParams
from mcp_core.types.prompts import (
    GetPromptRequestParams,
    GetPromptResult,
    ListPromptsResult,
    Prompt,
    PromptArgument,
    PromptMessage,
)
from mcp_core.types.resources import (
    ListResourcesResult,
    ReadResourceRequestParams,
    ReadResourceResult,
    Resource,
    ResourceUpdatedNotificationParams,
)
from mcp_core.types.sampling import (
    CreateMessageRequestParams,
    CreateMessageResult,
    IncludeContext,
    ModelHint,
    ModelPreferences,
    SamplingMessage,
    StopReason,
)
from mcp_core.types.tools import (
    CallToolRequestParams,
    CallToolResult,
    ListToolsResult,
    PaginatedRequestParams,
    Tool,
)

__all__ = [
    "AudioContent",
    "Annotations",
    "BlobResourceContents",
    "CONNECTION_CLOSED",
    "CONTENT_TYPES",
    "CallToolRequestParams",
    "CallToolResult",
    "CancelledNotificationParams",
    "ClientCapabilities",
    "ContentBlock",
    "ContentBlockAdapter",
    "CreateMessageRequestParams",
    "CreateMessageResult",
    "EmbeddedResource",
    "EmptyResult",
    "ErrorData",
    "GetPromptRequestParams",
    "GetPromptResult",
    "INITIALIZE",
    "INTERNAL_ERROR",
    "INVALID_PARAMS",
    "INVALID_REQUEST",
    "ImageContent",
    "Implementation",
    "IncludeContext",
    "InitializeRequestParams",
    "InitializeResult",
    "JSONRPCErrorResponse",
    "JSONRPCMessage",
    "JSONRPCMessageAdapter",
    "JSONRPCNotification",
    "JSONRPCRequest",
    "JSONRPCResponse",
    "JSONRPCResultResponse",
    "JSONRPC_VERSION",
    "LATEST_PROTOCOL_VERSION",
    "LOGGING_SET_LEVEL",
    "ListPromptsResult",
    "ListResourcesResult",
    "ListToolsResult",
    "MCPModel",
    "METHOD_NOT_FOUND",
    "ModelHint",
    "ModelPreferences",
    "NOTIFICATION_CANCELLED",
    "NOTIFICATION_INITIALIZED",
    "NOTIFICATION_MESSAGE",
    "NOTIFICATION_PROGRESS",
    "NOTIFICATION_PROMPTS_LIST_CHANGED",
    "NOTIFICATION_RESOURCES_LIST_CHANGED",
    "NOTIFICATION_TOOLS_LIST_CHANGED",
    "NotificationParams",
    "PARSE_ERROR",
    "PING",
    "PROMPTS_GET",
    "PROMPTS_LIST",
    "PaginatedRequestParams",
    "ProgressNotificationParams",
    "ProgressToken",
    "Prompt",
    "PromptArgument",
    "PromptMessage",
    "REQUEST_CANCELLED",
    "REQUEST_TIMEOUT",
    "RESOURCES_LIST",
    "RESOURCES_READ",
    "RESOURCE_NOT_FOUND",
    "ReadResourceRequestParams",
    "ReadResourceResult",
    "RequestId",
    "RequestMeta",
    "RequestParams",
    "Resource",
    "ResourceLink",
    "ResourceUpdatedNotificationParams",
    "Result",
    "Role",
    "SAMPLING_CREATE_MESSAGE",
    "SUPPORTED_PROTOCOL_VERSIONS",
    "SamplingContent",
    "SamplingMessage",
    "ServerCapabilities",
    "StopReason",
    "TOOLS_CALL",
    "TOOLS_LIST",
    "TextContent",
    "TextResourceContents",
    "Tool",
]
