"""Types for prompt templates."""

from typing import Annotated

from pydantic import Field

from mcp_core.types.base import MCPModel, RequestParams, Result
from mcp_core.types.common import Role
from mcp_core.types.content import ContentBlock


class PromptArgument(MCPModel):
    name: str
    description: str | None = None
    required: bool | None = None


class Prompt(MCPModel):
    """A prompt or prompt template that the server offers."""

    name: str
    description: str | None = None
    arguments: list[PromptArgument] | None = None


class ListPromptsResult(Result):
    prompts: list[Prompt]
    next_cursor: Annotated[str | None, Field(alias="nextCursor")] = None


class GetPromptRequestParams(RequestParams):
    name: str
    arguments: dict[str, str] | None = None


class PromptMessage(MCPModel):
    role: Role
    content: ContentBlock


class GetPromptResult(Result):
    description: str | None = None
    messages: list[PromptMessage]
