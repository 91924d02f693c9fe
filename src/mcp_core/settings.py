"""Configuration for mcp-core.

All settings can be configured via environment variables with the prefix
MCP_CORE_. For example, MCP_CORE_REQUEST_TIMEOUT_SECONDS=30 makes every
session wait at most 30 seconds for a response unless told otherwise.
"""

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

from mcp_core.types.base import LATEST_PROTOCOL_VERSION


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="MCP_CORE_",
        env_file=".env",
        extra="ignore",
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"

    # Session settings
    request_timeout_seconds: float | None = None
    """Default time to wait for a response. None waits until the connection closes."""

    protocol_version: str = LATEST_PROTOCOL_VERSION
    """The protocol version a client asks for during the handshake."""

    # HTTP settings
    host: str = "127.0.0.1"
    port: int = 8000
    sse_path: str = "/sse"
    message_path: str = "/messages/"

    # stdio settings
    process_termination_timeout: float = 2.0
    """Seconds to wait for a child server process to exit before killing it."""


@lru_cache
def get_settings() -> Settings:
    return Settings()
