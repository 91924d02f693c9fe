"""Message wrapper with metadata support.

This module defines a wrapper type that combines a JSON-RPC envelope with
metadata, so transports can attach transport-specific context to a message
without the session knowing about it.
"""

from dataclasses import dataclass
from typing import Any

from mcp_core.types import JSONRPCMessage, RequestId


@dataclass
class MessageMetadata:
    """Transport-specific metadata travelling alongside a message."""

    related_request_id: RequestId | None = None
    # e.g. the starlette Request for the HTTP+SSE transport, None for stdio
    request_context: Any = None


@dataclass
class SessionMessage:
    """A message with specific metadata for transport-specific features."""

    message: JSONRPCMessage
    metadata: MessageMetadata | None = None
