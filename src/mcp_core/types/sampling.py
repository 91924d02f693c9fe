"""Types for the server-to-client sampling flow."""

from typing import Annotated, Any, Literal

from pydantic import Field

from mcp_core.types.base import MCPModel, RequestParams, Result
from mcp_core.types.common import Role
from mcp_core.types.content import SamplingContent

StopReason = Literal["endTurn", "maxTokens", "stopSequence", "other"]
IncludeContext = Literal["none", "thisServer", "allServers"]


class SamplingMessage(MCPModel):
    """Describes a message issued to or received from an LLM API."""

    role: Role
    content: SamplingContent


class ModelHint(MCPModel):
    name: str | None = None


class ModelPreferences(MCPModel):
    """The server's preferences for model selection, requested of the client."""

    hints: list[ModelHint] | None = None
    cost_priority: Annotated[float | None, Field(alias="costPriority", ge=0.0, le=1.0)] = None
    speed_priority: Annotated[float | None, Field(alias="speedPriority", ge=0.0, le=1.0)] = None
    intelligence_priority: Annotated[float | None, Field(alias="intelligencePriority", ge=0.0, le=1.0)] = None


class CreateMessageRequestParams(RequestParams):
    """Parameters for sampling/createMessage."""

    messages: list[SamplingMessage]
    max_tokens: Annotated[int, Field(alias="maxTokens")]
    system_prompt: Annotated[str | None, Field(alias="systemPrompt")] = None
    include_context: Annotated[IncludeContext | None, Field(alias="includeContext")] = None
    temperature: float | None = None
    stop_sequences: Annotated[list[str] | None, Field(alias="stopSequences")] = None
    model_preferences: Annotated[ModelPreferences | None, Field(alias="modelPreferences")] = None
    metadata: dict[str, Any] | None = None


class CreateMessageResult(Result):
    """The client's response to a sampling/createMessage request."""

    role: Role
    content: SamplingContent
    model: str
    stop_reason: Annotated[StopReason | None, Field(alias="stopReason")] = None
