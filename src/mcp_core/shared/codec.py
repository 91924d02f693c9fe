"""Wire codec for JSON-RPC envelopes.

Only the wire transports (stdio, HTTP+SSE) call into this module. The
in-process transport hands ``SessionMessage`` objects across directly, so
nothing in the session depends on a serialization step having happened.
"""

import json
from typing import Any

from pydantic import ValidationError

from mcp_core.shared.exceptions import ContentDecodeError, MessageDecodeError
from mcp_core.types import (
    CONTENT_TYPES,
    JSONRPC_VERSION,
    ContentBlock,
    ContentBlockAdapter,
    JSONRPCErrorResponse,
    JSONRPCMessage,
    JSONRPCMessageAdapter,
)


def encode_message(message: JSONRPCMessage) -> str:
    """Serialize an envelope to a single line of compact JSON."""
    if isinstance(message, JSONRPCErrorResponse) and message.id is None:
        # An error that cannot be tied to a request still carries "id": null.
        payload = message.model_dump(by_alias=True, mode="json", exclude_none=True)
        payload["id"] = None
        return json.dumps(payload, separators=(",", ":"), ensure_ascii=False)
    return message.model_dump_json(by_alias=True, exclude_none=True)


def _raw_id(raw: dict[str, Any]) -> Any:
    request_id = raw.get("id")
    if isinstance(request_id, bool) or not isinstance(request_id, int | str):
        return None
    return request_id


def _raw_kind(raw: dict[str, Any]) -> str | None:
    if "method" in raw:
        return "request" if "id" in raw else None
    if "result" in raw or "error" in raw:
        return "response"
    return None


def decode_message(data: str | bytes) -> JSONRPCMessage:
    """Parse and validate a single JSON-RPC envelope.

    Raises:
        MessageDecodeError: if the data is not a valid envelope. The error
            carries the request id and message kind when they can be recovered
            from the raw object.
    """
    try:
        raw = json.loads(data)
    except ValueError as exc:
        raise MessageDecodeError.parse_error(str(exc)) from exc

    if not isinstance(raw, dict):
        raise MessageDecodeError(f"Expected a JSON object, got {type(raw).__name__}")

    request_id = _raw_id(raw)
    kind = _raw_kind(raw) if request_id is not None else None

    if raw.get("jsonrpc") != JSONRPC_VERSION:
        raise MessageDecodeError(
            f"Unsupported jsonrpc version: {raw.get('jsonrpc')!r}",
            request_id=request_id,
            kind=kind,
        )

    try:
        return JSONRPCMessageAdapter.validate_python(raw)
    except ValidationError as exc:
        raise MessageDecodeError(
            f"Invalid JSON-RPC envelope: {exc.errors(include_url=False)[0]['msg']}",
            request_id=request_id,
            kind=kind,
            data=exc.errors(include_url=False, include_input=False),
        ) from exc


def unknown_content_type(exc: ValidationError) -> Any | None:
    """Return the offending discriminant if a validation error came from an unknown content type."""
    for error in exc.errors(include_url=False):
        if error["type"] == "union_tag_invalid" and error.get("ctx", {}).get("expected_tags"):
            return error["ctx"].get("tag")
    return None


def decode_content(data: dict[str, Any]) -> ContentBlock:
    """Decode one content block by its ``type`` discriminant.

    Raises:
        ContentDecodeError: if ``type`` is missing or not a known content variant.
        pydantic.ValidationError: if the variant is known but its fields are invalid.
    """
    discriminant = data.get("type")
    if discriminant not in CONTENT_TYPES:
        raise ContentDecodeError(discriminant, CONTENT_TYPES)
    return ContentBlockAdapter.validate_python(data)
