"""JSON-RPC 2.0 envelopes used by MCP."""

from typing import Annotated, Any, Final, Literal

from pydantic import BaseModel, ConfigDict, Discriminator, Field, Tag, TypeAdapter, model_validator

JSONRPC_VERSION: Final[str] = "2.0"

# Standard JSON-RPC error codes
PARSE_ERROR: Final[int] = -32700
INVALID_REQUEST: Final[int] = -32600
METHOD_NOT_FOUND: Final[int] = -32601
INVALID_PARAMS: Final[int] = -32602
INTERNAL_ERROR: Final[int] = -32603

# Implementation-defined codes
CONNECTION_CLOSED: Final[int] = -32000
REQUEST_TIMEOUT: Final[int] = -32001
RESOURCE_NOT_FOUND: Final[int] = -32002
REQUEST_CANCELLED: Final[int] = -32800

RequestId = Annotated[int, Field(strict=True)] | str


class JSONRPCBase(BaseModel):
    """Base class for all JSON-RPC messages."""

    model_config = ConfigDict(extra="allow")

    jsonrpc: Literal["2.0"] = JSONRPC_VERSION


class JSONRPCRequest(JSONRPCBase):
    """A request that expects a response."""

    id: RequestId
    method: str
    params: dict[str, Any] | None = None


class JSONRPCNotification(JSONRPCBase):
    """A notification which does not expect a response."""

    method: str
    params: dict[str, Any] | None = None


class ErrorData(BaseModel):
    """Error information in a JSON-RPC error response."""

    model_config = ConfigDict(extra="allow")

    code: int
    message: str
    data: Any | None = None


class JSONRPCResultResponse(JSONRPCBase):
    """A successful (non-error) response to a request."""

    id: RequestId
    result: dict[str, Any]

    @model_validator(mode="before")
    @classmethod
    def _reject_error_member(cls, data: Any) -> Any:
        if isinstance(data, dict) and "error" in data:
            raise ValueError("a response must not carry both 'result' and 'error'")
        return data


class JSONRPCErrorResponse(JSONRPCBase):
    """A response to a request that indicates an error occurred."""

    id: RequestId | None = None
    error: ErrorData

    @model_validator(mode="before")
    @classmethod
    def _reject_result_member(cls, data: Any) -> Any:
        if isinstance(data, dict) and "result" in data:
            raise ValueError("a response must not carry both 'result' and 'error'")
        return data


def _message_kind(value: Any) -> str | None:
    """Pick the envelope variant from the members present on the raw object."""
    if isinstance(value, BaseModel):
        value = value.model_dump(by_alias=True)
    if not isinstance(value, dict):
        return None
    if "method" in value:
        return "request" if "id" in value else "notification"
    has_result = "result" in value
    has_error = "error" in value
    if has_result and has_error:
        return None
    if has_result:
        return "result"
    if has_error:
        return "error"
    return None


JSONRPCResponse = JSONRPCResultResponse | JSONRPCErrorResponse

JSONRPCMessage = Annotated[
    Annotated[JSONRPCRequest, Tag("request")]
    | Annotated[JSONRPCNotification, Tag("notification")]
    | Annotated[JSONRPCResultResponse, Tag("result")]
    | Annotated[JSONRPCErrorResponse, Tag("error")],
    Discriminator(
        _message_kind,
        custom_error_type="invalid_envelope",
        custom_error_message=(
            "Not a JSON-RPC envelope: expected 'method' or exactly one of 'result' and 'error'"
        ),
    ),
]

JSONRPCMessageAdapter: TypeAdapter[JSONRPCMessage] = TypeAdapter(JSONRPCMessage)
