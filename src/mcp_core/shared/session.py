"""Direction-agnostic MCP session.

A ``Session`` owns one connection: the correlation table for requests it has
sent, the in-flight table for requests it is serving, the handshake state and
the routing of inbound messages to the handlers in its ``CapabilityRegistry``.
Clients and servers run the exact same inbound/outbound logic; they differ
only in which side drives the ``initialize`` handshake and which handlers they
register.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from types import TracebackType
from typing import Any, Protocol, TypeVar

import anyio
import anyio.abc
from anyio.abc import TaskGroup
from anyio.streams.memory import MemoryObjectReceiveStream, MemoryObjectSendStream
from pydantic import BaseModel, ValidationError
from typing_extensions import Self

from mcp_core import types
from mcp_core.settings import get_settings
from mcp_core.shared._exception_utils import exit_task_group
from mcp_core.shared.codec import unknown_content_type
from mcp_core.shared.context import RequestContext
from mcp_core.shared.exceptions import (
    CapabilityError,
    ConnectionClosedError,
    ContentDecodeError,
    McpError,
    MessageDecodeError,
    ProtocolError,
    RequestCancelledError,
    RequestTimeoutError,
    SessionStateError,
    TransportError,
)
from mcp_core.shared.message import MessageMetadata, SessionMessage
from mcp_core.shared.registry import CapabilityCategory, CapabilityRegistry, HandlerRegistration, category_for_method
from mcp_core.shared.transport import ReadStream, WriteStream
from mcp_core.types import (
    ErrorData,
    JSONRPCErrorResponse,
    JSONRPCMessage,
    JSONRPCNotification,
    JSONRPCRequest,
    JSONRPCResponse,
    JSONRPCResultResponse,
    RequestId,
)

logger = logging.getLogger(__name__)

ReceiveResultT = TypeVar("ReceiveResultT", bound=BaseModel)

# Notifications are handled one at a time, in the order they arrived.
NOTIFICATION_BUFFER_SIZE = 128

# Requests a session may send or serve before the handshake completes.
HANDSHAKE_METHODS = frozenset({types.INITIALIZE, types.PING})

# Cancellation notices are best effort; a peer that stops reading must not
# hold the caller for longer than this.
CANCEL_NOTIFICATION_TIMEOUT = 1.0


class SessionState(Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"
    CLOSED = "closed"


class ProgressFnT(Protocol):
    """Protocol for progress notification callbacks."""

    async def __call__(self, progress: float, total: float | None, message: str | None) -> None: ...


@dataclass
class PendingCall:
    """Bookkeeping for a request this session has sent.

    A pending call is resolved exactly once: by the peer's response, or by
    failing it (timeout, cancellation, connection closed). Later attempts to
    resolve it are ignored and return False.
    """

    request_id: RequestId
    method: str
    progress_callback: ProgressFnT | None = None
    issued_at: float = field(default_factory=time.monotonic)
    _done: anyio.Event = field(default_factory=anyio.Event, repr=False)
    _response: JSONRPCResponse | None = field(default=None, repr=False)
    _exception: McpError | None = field(default=None, repr=False)

    @property
    def done(self) -> bool:
        return self._done.is_set()

    def resolve(self, response: JSONRPCResponse) -> bool:
        if self.done:
            return False
        self._response = response
        self._done.set()
        return True

    def fail(self, exc: McpError) -> bool:
        if self.done:
            return False
        self._exception = exc
        self._done.set()
        return True

    async def wait(self) -> JSONRPCResponse:
        await self._done.wait()
        if self._exception is not None:
            raise self._exception
        assert self._response is not None
        return self._response


class PendingCalls:
    """The correlation table: request id -> PendingCall.

    Every mutation is a synchronous step on the event loop, so inserting,
    resolving and removing calls never interleave with each other.
    """

    def __init__(self) -> None:
        self._calls: dict[RequestId, PendingCall] = {}

    def open(self, request_id: RequestId, method: str, progress_callback: ProgressFnT | None = None) -> PendingCall:
        if request_id in self._calls:
            raise ValueError(f"Request id {request_id!r} is already outstanding")
        call = PendingCall(request_id=request_id, method=method, progress_callback=progress_callback)
        self._calls[request_id] = call
        return call

    def _key(self, request_id: RequestId) -> RequestId | None:
        if request_id in self._calls:
            return request_id
        # Peers sometimes echo integer ids back as strings.
        if isinstance(request_id, str) and request_id.lstrip("-").isdigit():
            as_int = int(request_id)
            if as_int in self._calls:
                return as_int
        return None

    def get(self, request_id: RequestId) -> PendingCall | None:
        key = self._key(request_id)
        return self._calls[key] if key is not None else None

    def pop(self, request_id: RequestId) -> PendingCall | None:
        key = self._key(request_id)
        return self._calls.pop(key) if key is not None else None

    def fail_all(self, make_error: Callable[[PendingCall], McpError]) -> int:
        calls = list(self._calls.values())
        self._calls.clear()
        return sum(call.fail(make_error(call)) for call in calls)

    def __len__(self) -> int:
        return len(self._calls)

    def __contains__(self, request_id: object) -> bool:
        return request_id in self._calls


class RequestResponder:
    """Tracks one inbound request while its handler runs.

    The handler runs inside ``cancel_scope`` so a ``notifications/cancelled``
    from the peer can stop it. Exactly one response is sent per request.
    """

    def __init__(self, request_id: RequestId, method: str, session: Session) -> None:
        self.request_id = request_id
        self.method = method
        self.cancel_scope = anyio.CancelScope()
        self.cancel_reason: str | None = None
        self._session = session
        self._completed = False

    async def respond(self, response: BaseModel | dict[str, Any] | ErrorData | None) -> bool:
        if self._completed:
            return False
        self._completed = True
        await self._session._send_response(self.request_id, response)  # type: ignore[reportPrivateUsage]
        return True

    def cancel(self, reason: str | None = None) -> None:
        self.cancel_reason = reason
        self.cancel_scope.cancel()

    @property
    def completed(self) -> bool:
        return self._completed

    @property
    def cancelled(self) -> bool:
        return self.cancel_scope.cancel_called


class Session:
    """
    Implements an MCP session on top of read/write streams, including
    request/response correlation, notifications, cancellation and progress.

    This class is an async context manager that starts processing messages
    when entered and tears the connection down when exited. Entering fails
    if the registry declares a capability no handler serves, or declares
    sampling on a transport that cannot carry server-initiated requests.
    """

    def __init__(
        self,
        read_stream: ReadStream,
        write_stream: WriteStream,
        registry: CapabilityRegistry | None = None,
        *,
        read_timeout_seconds: float | None = None,
        supports_server_requests: bool = True,
    ) -> None:
        self._read_stream = read_stream
        self._write_stream = write_stream
        self._registry = registry if registry is not None else CapabilityRegistry()
        self._read_timeout_seconds = (
            read_timeout_seconds if read_timeout_seconds is not None else get_settings().request_timeout_seconds
        )
        self._supports_server_requests = supports_server_requests
        self._state = SessionState.UNINITIALIZED
        self._request_id = 0
        self._pending = PendingCalls()
        self._in_flight: dict[RequestId, RequestResponder] = {}
        self._peer_capabilities: dict[str, Any] | None = None
        self._internal_handlers: dict[str, HandlerRegistration] = {
            types.PING: HandlerRegistration(method=types.PING, handler=self._handle_ping),
        }
        self._close_reason: McpError | None = None

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def registry(self) -> CapabilityRegistry:
        return self._registry

    @property
    def supports_server_requests(self) -> bool:
        return self._supports_server_requests

    @property
    def peer_capabilities(self) -> dict[str, Any] | None:
        """The capabilities the peer announced during the handshake."""
        return self._peer_capabilities

    def peer_supports(self, category: CapabilityCategory | str) -> bool:
        name = category.value if isinstance(category, CapabilityCategory) else category
        return self._peer_capabilities is not None and name in self._peer_capabilities

    async def __aenter__(self) -> Self:
        self._check_setup()
        self._write_lock = anyio.Lock()
        self._closed = anyio.Event()
        self._notification_send: MemoryObjectSendStream[JSONRPCNotification]
        self._notification_receive: MemoryObjectReceiveStream[JSONRPCNotification]
        self._notification_send, self._notification_receive = anyio.create_memory_object_stream[JSONRPCNotification](
            NOTIFICATION_BUFFER_SIZE
        )
        # Everything the session runs lives in the service scope, so close()
        # can stop it without cancelling the code hosting the session.
        self._service_scope = anyio.CancelScope()
        self._task_group: TaskGroup = anyio.create_task_group()
        await self._task_group.__aenter__()
        await self._task_group.start(self._serve)
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> bool | None:
        self._teardown(ConnectionClosedError("Session closed", phase="close"))
        # Exiting the session must not block on in-flight handlers.
        self._task_group.cancel_scope.cancel()
        return await exit_task_group(self._task_group, exc_type, exc_val, exc_tb)

    def _check_setup(self) -> None:
        self._registry.freeze()
        if self._registry.declared(CapabilityCategory.SAMPLING) and not self._supports_server_requests:
            raise CapabilityError(
                "Sampling requires a transport that can carry server-initiated requests",
                method=types.SAMPLING_CREATE_MESSAGE,
                phase="setup",
            )

    async def close(self) -> None:
        """Close the connection. Outstanding requests fail with ConnectionClosedError."""
        self._teardown(ConnectionClosedError("Session closed", phase="close"))
        self._service_scope.cancel()

    async def wait_closed(self) -> None:
        await self._closed.wait()

    @property
    def close_reason(self) -> McpError | None:
        return self._close_reason

    def _teardown(self, reason: McpError) -> None:
        if self._state is SessionState.CLOSED:
            return
        self._state = SessionState.CLOSED
        self._close_reason = reason
        failed = self._pending.fail_all(
            lambda call: ConnectionClosedError(
                reason.error.message, method=call.method, request_id=call.request_id, phase="close"
            )
        )
        self._notification_send.close()
        self._closed.set()
        logger.debug("Session closed (%s); failed %d pending request(s)", reason, failed)

    async def _serve(self, *, task_status: anyio.abc.TaskStatus[None] = anyio.TASK_STATUS_IGNORED) -> None:
        with self._service_scope:
            async with anyio.create_task_group() as tg:
                self._service_tg = tg
                tg.start_soon(self._receive_loop)
                tg.start_soon(self._notification_worker)
                task_status.started()

    # -- outbound -------------------------------------------------------------

    def _next_request_id(self) -> int:
        request_id = self._request_id
        self._request_id = request_id + 1
        return request_id

    def _check_outbound(self, method: str) -> None:
        if self._state is SessionState.CLOSED:
            raise ConnectionClosedError("Session is closed", method=method, phase="send")
        if self._state is not SessionState.READY and method not in HANDSHAKE_METHODS:
            raise SessionStateError(
                f"Cannot send {method!r} before initialization is complete", method=method, phase="send"
            )
        category = category_for_method(method)
        if category is not None and self._peer_capabilities is not None and not self.peer_supports(category):
            raise CapabilityError(
                f"Peer did not declare the {category.value!r} capability", method=method, phase="send"
            )

    async def _write(self, message: JSONRPCMessage, metadata: MessageMetadata | None = None) -> None:
        async with self._write_lock:
            await self._write_stream.send(SessionMessage(message=message, metadata=metadata))

    async def start_request(
        self,
        method: str,
        params: BaseModel | dict[str, Any] | None = None,
        *,
        progress_callback: ProgressFnT | None = None,
        metadata: MessageMetadata | None = None,
    ) -> PendingCall:
        """
        Sends a request and returns its PendingCall without waiting for the
        response. Use join_request() to wait for it.
        """
        self._check_outbound(method)
        request_id = self._next_request_id()
        call = self._pending.open(request_id, method, progress_callback)

        if isinstance(params, BaseModel):
            payload = params.model_dump(by_alias=True, mode="json", exclude_none=True)
        else:
            payload = dict(params or {})
        if progress_callback is not None:
            # Use request_id as progress token
            payload.setdefault("_meta", {})["progressToken"] = request_id

        request = JSONRPCRequest(id=request_id, method=method, params=payload or None)
        try:
            await self._write(request, metadata)
        except (anyio.ClosedResourceError, anyio.BrokenResourceError) as exc:
            self._pending.pop(request_id)
            error = ConnectionClosedError(
                "Transport closed while sending request", method=method, request_id=request_id, phase="send"
            )
            call.fail(error)
            self._teardown(error)
            raise error from exc
        except BaseException:
            # Cancelled while blocked on the transport: the request was never sent.
            self._pending.pop(request_id)
            call.fail(RequestCancelledError("Request was not sent", method=method, request_id=request_id, phase="send"))
            raise
        logger.debug("Sent request %s (id=%s)", method, request_id)
        return call

    async def join_request(
        self,
        call: PendingCall,
        result_type: type[ReceiveResultT],
        *,
        timeout: float | None = None,
    ) -> ReceiveResultT:
        """
        Waits for a request started via start_request() to resolve.

        Raises McpError with the peer's error data if the peer answered with an
        error, RequestTimeoutError if no response arrived in time,
        RequestCancelledError if the request was cancelled via cancel_request(),
        and ConnectionClosedError if the connection closed first. If the
        calling task itself is cancelled the call is resolved as cancelled, the
        peer is notified and the cancellation propagates.
        """
        if timeout is None:
            timeout = self._read_timeout_seconds
        try:
            with anyio.fail_after(timeout):
                response = await call.wait()
        except TimeoutError:
            error = RequestTimeoutError(timeout or 0, method=call.method, request_id=call.request_id, phase="receive")
            if call.fail(error):
                await self._notify_cancelled(call.request_id, "Request timed out")
                raise error
            response = await call.wait()
        except anyio.get_cancelled_exc_class():
            if call.fail(RequestCancelledError(method=call.method, request_id=call.request_id, phase="receive")):
                with anyio.CancelScope(shield=True):
                    await self._notify_cancelled(call.request_id, "Caller cancelled the request")
            raise
        finally:
            self._pending.pop(call.request_id)

        if isinstance(response, JSONRPCErrorResponse):
            raise McpError(response.error, method=call.method, request_id=call.request_id, phase="response")
        return self._validate_result(call, response, result_type)

    def _validate_result(
        self, call: PendingCall, response: JSONRPCResultResponse, result_type: type[ReceiveResultT]
    ) -> ReceiveResultT:
        try:
            return result_type.model_validate(response.result)
        except ValidationError as exc:
            discriminant = unknown_content_type(exc)
            if discriminant is not None:
                raise ContentDecodeError(
                    discriminant, types.CONTENT_TYPES, method=call.method, request_id=call.request_id, phase="decode"
                ) from exc
            raise ProtocolError(
                f"Invalid result for {call.method}",
                data=exc.errors(include_url=False, include_input=False),
                method=call.method,
                request_id=call.request_id,
                phase="decode",
            ) from exc

    async def send_request(
        self,
        method: str,
        params: BaseModel | dict[str, Any] | None,
        result_type: type[ReceiveResultT],
        *,
        timeout: float | None = None,
        progress_callback: ProgressFnT | None = None,
        metadata: MessageMetadata | None = None,
    ) -> ReceiveResultT:
        """
        Sends a request and wait for a response. Raises an McpError if the
        response contains an error. If a timeout is provided, it takes
        precedence over the session read timeout.

        Do not use this method to emit notifications! Use send_notification()
        instead.
        """
        call = await self.start_request(method, params, progress_callback=progress_callback, metadata=metadata)
        return await self.join_request(call, result_type, timeout=timeout)

    async def cancel_request(self, request_id: RequestId, reason: str | None = None) -> bool:
        """
        Cancels an outstanding request. The waiting caller is released
        immediately with RequestCancelledError; the peer is notified on a
        best-effort basis. Returns False if the request was already resolved.
        """
        call = self._pending.get(request_id)
        if call is None:
            return False
        if not call.fail(RequestCancelledError(reason, method=call.method, request_id=call.request_id)):
            return False
        await self._notify_cancelled(call.request_id, reason)
        return True

    async def _notify_cancelled(self, request_id: RequestId, reason: str | None) -> None:
        with anyio.move_on_after(CANCEL_NOTIFICATION_TIMEOUT) as scope:
            try:
                await self.send_notification(
                    types.NOTIFICATION_CANCELLED,
                    types.CancelledNotificationParams(request_id=request_id, reason=reason),
                )
            except (McpError, anyio.ClosedResourceError, anyio.BrokenResourceError) as exc:
                logger.debug("Could not notify peer of cancelled request %s: %s", request_id, exc)
        if scope.cancelled_caught:
            logger.debug("Gave up notifying peer of cancelled request %s: transport is not draining", request_id)

    async def send_notification(
        self,
        method: str,
        params: BaseModel | dict[str, Any] | None = None,
        *,
        related_request_id: RequestId | None = None,
    ) -> None:
        """
        Emits a notification, which is a one-way message that does not expect
        a response.
        """
        if self._state is SessionState.CLOSED:
            raise ConnectionClosedError("Session is closed", method=method, phase="send")
        if isinstance(params, BaseModel):
            params = params.model_dump(by_alias=True, mode="json", exclude_none=True)
        notification = JSONRPCNotification(method=method, params=params or None)
        metadata = MessageMetadata(related_request_id=related_request_id) if related_request_id is not None else None
        await self._write(notification, metadata)

    async def send_ping(self) -> types.EmptyResult:
        return await self.send_request(types.PING, None, types.EmptyResult)

    async def send_progress_notification(
        self,
        progress_token: types.ProgressToken,
        progress: float,
        total: float | None = None,
        message: str | None = None,
        related_request_id: RequestId | None = None,
    ) -> None:
        """
        Sends a progress notification for a request that is currently being
        processed.
        """
        await self.send_notification(
            types.NOTIFICATION_PROGRESS,
            types.ProgressNotificationParams(
                progress_token=progress_token, progress=progress, total=total, message=message
            ),
            related_request_id=related_request_id,
        )

    # -- inbound --------------------------------------------------------------

    async def _receive_loop(self) -> None:
        reason: McpError = ConnectionClosedError("Connection closed by peer", phase="receive")
        async with self._read_stream, self._write_stream:
            try:
                async for item in self._read_stream:
                    if isinstance(item, Exception):
                        terminal = await self._handle_read_error(item)
                        if terminal is not None:
                            reason = terminal
                            break
                        continue

                    message = item.message
                    if isinstance(message, JSONRPCRequest):
                        self._service_tg.start_soon(self._handle_request, message, item.metadata)
                    elif isinstance(message, JSONRPCNotification):
                        await self._handle_notification(message)
                    else:
                        self._handle_response(message)
            except anyio.ClosedResourceError:
                # Expected when the peer disconnects abruptly.
                logger.debug("Read stream closed")
            except Exception as exc:
                logger.exception("Unhandled exception in receive loop")
                reason = TransportError(f"Receive loop failed: {exc}", phase="receive")
            finally:
                # after the read stream is closed, we need to send errors
                # to any pending requests
                self._teardown(reason)

    async def _handle_read_error(self, exc: Exception) -> McpError | None:
        """Deal with an exception delivered by the transport.

        Returns the reason to tear the connection down, or None if the error
        was confined to a single request.
        """
        if isinstance(exc, MessageDecodeError) and exc.attributable:
            assert exc.request_id is not None
            if exc.kind == "response":
                call = self._pending.get(exc.request_id)
                if call is not None:
                    call.fail(
                        ProtocolError(
                            str(exc.error.message),
                            data=exc.error.data,
                            method=call.method,
                            request_id=call.request_id,
                            phase="decode",
                        )
                    )
                else:
                    logger.warning("Dropping malformed response for unknown request id %r", exc.request_id)
                return None
            logger.warning("Rejecting malformed request %r: %s", exc.request_id, exc.error.message)
            await self._send_response(exc.request_id, exc.error)
            return None

        if isinstance(exc, McpError):
            logger.error("Protocol error on connection, closing: %s", exc)
            return exc
        logger.error("Transport error on connection, closing: %s", exc)
        return TransportError(f"Transport failed: {exc}", phase="receive")

    def _handle_response(self, response: JSONRPCResponse) -> None:
        if response.id is None:
            logger.warning("Received error response without an id: %s", response)
            return
        call = self._pending.get(response.id)
        if call is None or not call.resolve(response):
            logger.warning("Received response with an unknown request ID: %r", response.id)

    async def _handle_notification(self, notification: JSONRPCNotification) -> None:
        if notification.method == types.NOTIFICATION_CANCELLED:
            # Handled inline so it can reach a handler that is already running.
            try:
                params = types.CancelledNotificationParams.model_validate(notification.params or {})
            except ValidationError as exc:
                logger.warning("Invalid cancellation notification: %s", exc)
                return
            responder = self._in_flight.get(params.request_id)
            if responder is not None and not responder.completed:
                logger.debug("Peer cancelled request %r: %s", params.request_id, params.reason)
                responder.cancel(params.reason)
            return
        try:
            await self._notification_send.send(notification)
        except (anyio.ClosedResourceError, anyio.BrokenResourceError):
            logger.debug("Dropping notification %s received after close", notification.method)

    async def _notification_worker(self) -> None:
        async with self._notification_receive:
            async for notification in self._notification_receive:
                try:
                    await self._dispatch_notification(notification)
                except Exception:
                    logger.exception("Notification handler error for %s", notification.method)

    async def _dispatch_notification(self, notification: JSONRPCNotification) -> None:
        if notification.method == types.NOTIFICATION_PROGRESS:
            await self._dispatch_progress(notification)

        handled = await self._received_notification(notification)
        registration = self._registry.get_notification(notification.method)
        if registration is None:
            if not handled and notification.method != types.NOTIFICATION_PROGRESS:
                logger.debug("No handler for notification %s", notification.method)
            return
        params: Any = notification.params
        if registration.params_type is not None:
            params = registration.params_type.model_validate(notification.params or {})
        await registration.handler(params)

    async def _dispatch_progress(self, notification: JSONRPCNotification) -> None:
        params = types.ProgressNotificationParams.model_validate(notification.params or {})
        call = self._pending.get(params.progress_token)
        if call is not None and call.progress_callback is not None:
            await call.progress_callback(params.progress, params.total, params.message)

    async def _received_notification(self, notification: JSONRPCNotification) -> bool:
        """
        Can be overridden by subclasses to handle protocol notifications.
        Returns True if the notification was handled.
        """
        return False

    def _check_inbound(self, method: str) -> ErrorData | None:
        """Can be overridden by subclasses to reject requests in the current state."""
        return None

    async def _handle_request(self, request: JSONRPCRequest, metadata: MessageMetadata | None) -> None:
        rejection = self._check_inbound(request.method)
        if rejection is not None:
            await self._send_response(request.id, rejection)
            return

        registration = self._internal_handlers.get(request.method) or self._registry.get(request.method)
        if registration is None:
            await self._send_response(
                request.id,
                ErrorData(code=types.METHOD_NOT_FOUND, message=f"Method not found: {request.method}"),
            )
            return

        if request.id in self._in_flight:
            await self._send_response(
                request.id,
                ErrorData(code=types.INVALID_REQUEST, message=f"Duplicate request id: {request.id!r}"),
            )
            return

        responder = RequestResponder(request.id, request.method, self)
        self._in_flight[request.id] = responder
        try:
            response: Any = None
            with responder.cancel_scope:
                response = await self._invoke(registration, request, metadata)
            if responder.cancel_scope.cancelled_caught:
                response = ErrorData(code=types.REQUEST_CANCELLED, message=responder.cancel_reason or "Request cancelled")
            await responder.respond(response)
        finally:
            self._in_flight.pop(request.id, None)

    async def _invoke(
        self, registration: HandlerRegistration, request: JSONRPCRequest, metadata: MessageMetadata | None
    ) -> Any:
        raw_params = request.params or {}
        try:
            meta = types.RequestMeta.model_validate(raw_params["_meta"]) if "_meta" in raw_params else None
            params: Any = request.params
            if registration.params_type is not None:
                params = registration.params_type.model_validate(raw_params)
        except ValidationError as exc:
            logger.warning("Invalid params for %s: %s", request.method, exc)
            return ErrorData(
                code=types.INVALID_PARAMS,
                message=f"Invalid request parameters for {request.method}",
                data=exc.errors(include_url=False, include_input=False),
            )

        ctx = RequestContext(request_id=request.id, method=request.method, meta=meta, session=self, metadata=metadata)
        try:
            return await registration.handler(ctx, params)
        except McpError as exc:
            return exc.error
        except Exception as exc:
            logger.exception("Handler error for %s", request.method)
            return ErrorData(code=types.INTERNAL_ERROR, message=str(exc) or "Internal error")

    async def _send_response(
        self, request_id: RequestId, response: BaseModel | dict[str, Any] | ErrorData | None
    ) -> None:
        message: JSONRPCMessage
        if isinstance(response, ErrorData):
            message = JSONRPCErrorResponse(id=request_id, error=response)
        elif isinstance(response, BaseModel):
            message = JSONRPCResultResponse(
                id=request_id, result=response.model_dump(by_alias=True, mode="json", exclude_none=True)
            )
        else:
            message = JSONRPCResultResponse(id=request_id, result=response or {})
        try:
            await self._write(message)
        except (anyio.ClosedResourceError, anyio.BrokenResourceError):
            logger.debug("Could not send response for request %r: connection closed", request_id)

    async def _handle_ping(self, ctx: RequestContext, params: Any) -> types.EmptyResult:
        return types.EmptyResult()
