from collections.abc import Sequence
from typing import Any

from mcp_core.types.json_rpc import (
    CONNECTION_CLOSED,
    INTERNAL_ERROR,
    INVALID_REQUEST,
    PARSE_ERROR,
    REQUEST_CANCELLED,
    REQUEST_TIMEOUT,
    ErrorData,
    RequestId,
)


class McpError(Exception):
    """Exception raised when an MCP protocol error is received from a peer.

    This exception is raised when the remote MCP peer returns an error response
    instead of a successful result. It wraps the ErrorData received from the peer
    and provides access to the error code, message, and any additional data.
    Subclasses describe failures that happen locally (closure, cancellation,
    timeouts, malformed envelopes).

    Attributes:
        error: The ErrorData describing the failure
        method: The method of the request the error relates to, if known
        request_id: The id of the request the error relates to, if known
        phase: Where the failure happened (e.g. "send", "receive", "handshake")
    """

    error: ErrorData

    def __init__(
        self,
        error: ErrorData,
        *,
        method: str | None = None,
        request_id: RequestId | None = None,
        phase: str | None = None,
    ):
        """Initialize McpError with error data from the MCP peer.

        Args:
            error: ErrorData object containing the error details
            method: Method name of the related request
            request_id: Id of the related request
            phase: Lifecycle phase in which the error occurred
        """
        super().__init__(error.message)
        self.error = error
        self.method = method
        self.request_id = request_id
        self.phase = phase

    @property
    def code(self) -> int:
        return self.error.code

    def __str__(self) -> str:
        context = [
            f"{name}={value!r}"
            for name, value in (("method", self.method), ("id", self.request_id), ("phase", self.phase))
            if value is not None
        ]
        if not context:
            return self.error.message
        return f"{self.error.message} ({', '.join(context)})"


def _error(code: int, message: str, data: Any | None = None) -> ErrorData:
    return ErrorData(code=code, message=message, data=data)


class ConnectionClosedError(McpError):
    """The connection was torn down before the request was answered."""

    def __init__(self, message: str = "Connection closed", **context: Any):
        super().__init__(_error(CONNECTION_CLOSED, message), **context)


class TransportError(McpError):
    """The underlying transport failed. Always terminal for the connection."""

    def __init__(self, message: str, **context: Any):
        super().__init__(_error(CONNECTION_CLOSED, message), **context)


class RequestCancelledError(McpError):
    """The local caller gave up on the request."""

    def __init__(self, reason: str | None = None, **context: Any):
        super().__init__(_error(REQUEST_CANCELLED, reason or "Request cancelled"), **context)


class RequestTimeoutError(McpError):
    def __init__(self, timeout: float, **context: Any):
        super().__init__(_error(REQUEST_TIMEOUT, f"Timed out after {timeout} seconds waiting for a response"), **context)
        self.timeout = timeout


class ProtocolError(McpError):
    """A message violated the JSON-RPC or MCP envelope rules."""

    def __init__(self, message: str, code: int = INVALID_REQUEST, data: Any | None = None, **context: Any):
        super().__init__(_error(code, message, data), **context)


class MessageDecodeError(ProtocolError):
    """Raw transport data could not be decoded into a JSON-RPC envelope.

    ``request_id`` is set when the raw object carried a usable id, in which case
    ``kind`` tells whether it looked like a request or a response. Failures
    without an id cannot be attributed to a pending call and are terminal.
    """

    def __init__(
        self,
        message: str,
        *,
        request_id: RequestId | None = None,
        kind: str | None = None,
        code: int = INVALID_REQUEST,
        data: Any | None = None,
    ):
        super().__init__(message, code=code, data=data, request_id=request_id, phase="decode")
        self.kind = kind

    @property
    def attributable(self) -> bool:
        return self.request_id is not None and self.kind is not None

    @classmethod
    def parse_error(cls, details: str) -> "MessageDecodeError":
        return cls(f"Parse error: {details}", code=PARSE_ERROR)


class ContentDecodeError(ProtocolError):
    """A content block carried a discriminant this implementation does not know."""

    def __init__(self, discriminant: Any, supported: Sequence[str], **context: Any):
        message = f"Unsupported content type {discriminant!r}; expected one of: {', '.join(supported)}"
        super().__init__(message, data={"type": discriminant, "supported": list(supported)}, **context)
        self.discriminant = discriminant
        self.supported = tuple(supported)


class IncompatibleProtocolError(ProtocolError):
    """The peer speaks a protocol version this implementation does not support."""

    def __init__(self, version: str, supported: Sequence[str]):
        super().__init__(
            f"Unsupported protocol version from the peer: {version} (supported: {', '.join(supported)})",
            phase="handshake",
        )
        self.version = version


class CapabilityError(McpError):
    """A capability is missing, or declared without a handler to back it."""

    def __init__(self, message: str, **context: Any):
        super().__init__(_error(INVALID_REQUEST, message), **context)


class SessionStateError(McpError):
    """The session is not in a state that allows the operation."""

    def __init__(self, message: str, **context: Any):
        super().__init__(_error(INTERNAL_ERROR, message), **context)


class DuplicateHandlerError(ValueError):
    """A handler is already registered for the method."""

    def __init__(self, method: str):
        super().__init__(f"A handler is already registered for {method!r}")
        self.method = method
