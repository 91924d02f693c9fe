"""Capability registry: the mapping from method names to local handlers.

Registering a handler under a capability category records the handler and
the capability it implies in one step, so the capabilities announced during
the handshake always match the handlers that can actually serve them.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, TypeVar

from pydantic import BaseModel

from mcp_core import types
from mcp_core.shared.exceptions import CapabilityError, DuplicateHandlerError

if TYPE_CHECKING:
    from mcp_core.shared.context import RequestContext

logger = logging.getLogger(__name__)


class CapabilityCategory(str, Enum):
    TOOLS = "tools"
    RESOURCES = "resources"
    PROMPTS = "prompts"
    SAMPLING = "sampling"
    LOGGING = "logging"


CATEGORY_METHODS: dict[CapabilityCategory, tuple[str, ...]] = {
    CapabilityCategory.TOOLS: (types.TOOLS_LIST, types.TOOLS_CALL),
    CapabilityCategory.RESOURCES: (types.RESOURCES_LIST, types.RESOURCES_READ),
    CapabilityCategory.PROMPTS: (types.PROMPTS_LIST, types.PROMPTS_GET),
    CapabilityCategory.SAMPLING: (types.SAMPLING_CREATE_MESSAGE,),
    CapabilityCategory.LOGGING: (types.LOGGING_SET_LEVEL,),
}


def category_for_method(method: str) -> CapabilityCategory | None:
    """Return the capability category a method belongs to, if any."""
    for category, methods in CATEGORY_METHODS.items():
        if method in methods:
            return category
    return None


RequestHandler = Callable[["RequestContext", Any], Awaitable[Any]]
NotificationHandler = Callable[[Any], Awaitable[None]]

RequestHandlerT = TypeVar("RequestHandlerT", bound=RequestHandler)
NotificationHandlerT = TypeVar("NotificationHandlerT", bound=NotificationHandler)


@dataclass(frozen=True)
class HandlerRegistration:
    """A request handler together with the capability it serves.

    When ``params_type`` is set the session validates the request params
    against it and passes the model to the handler; otherwise the handler
    receives the raw params dict (or None).
    """

    method: str
    handler: RequestHandler
    category: CapabilityCategory | None = None
    params_type: type[BaseModel] | None = None


@dataclass(frozen=True)
class NotificationRegistration:
    method: str
    handler: NotificationHandler
    params_type: type[BaseModel] | None = None


class CapabilityRegistry:
    """Handlers for inbound requests and notifications, partitioned by capability.

    Registering the same method twice raises DuplicateHandlerError. Once a
    session has started on the registry it is frozen: handlers that would add
    or change a capability can no longer be registered.

    Usage:
        registry = CapabilityRegistry()

        @registry.request_handler("tools/call", params_type=CallToolRequestParams)
        async def call_tool(ctx: RequestContext, params: CallToolRequestParams):
            ...
    """

    def __init__(self) -> None:
        self._handlers: dict[str, HandlerRegistration] = {}
        self._notification_handlers: dict[str, NotificationRegistration] = {}
        self._capabilities: dict[CapabilityCategory, dict[str, Any]] = {}
        self._frozen = False

    def register(
        self,
        method: str,
        handler: RequestHandler,
        *,
        category: CapabilityCategory | None = None,
        params_type: type[BaseModel] | None = None,
        **options: Any,
    ) -> HandlerRegistration:
        """Register a request handler.

        The category defaults to the one the method belongs to. Keyword options
        (e.g. ``listChanged=True``) become sub-options of that capability.
        """
        if method in self._handlers:
            raise DuplicateHandlerError(method)
        if category is None:
            category = category_for_method(method)
        if category is not None and self._frozen:
            raise CapabilityError(
                f"Cannot register {method!r}: capabilities are fixed once a session has started",
                method=method,
            )

        registration = HandlerRegistration(method=method, handler=handler, category=category, params_type=params_type)
        self._handlers[method] = registration
        if category is not None:
            self._capabilities.setdefault(category, {}).update(options)
        logger.debug("Registered handler for %s (capability: %s)", method, category.value if category else None)
        return registration

    def request_handler(
        self,
        method: str,
        *,
        category: CapabilityCategory | None = None,
        params_type: type[BaseModel] | None = None,
        **options: Any,
    ) -> Callable[[RequestHandlerT], RequestHandlerT]:
        """Decorator to register a request handler for a given method."""

        def decorator(fn: RequestHandlerT) -> RequestHandlerT:
            self.register(method, fn, category=category, params_type=params_type, **options)
            return fn

        return decorator

    def register_notification(
        self,
        method: str,
        handler: NotificationHandler,
        *,
        params_type: type[BaseModel] | None = None,
    ) -> NotificationRegistration:
        if method in self._notification_handlers:
            raise DuplicateHandlerError(method)
        registration = NotificationRegistration(method=method, handler=handler, params_type=params_type)
        self._notification_handlers[method] = registration
        return registration

    def notification_handler(
        self, method: str, *, params_type: type[BaseModel] | None = None
    ) -> Callable[[NotificationHandlerT], NotificationHandlerT]:
        """Decorator to register a notification handler for a given method."""

        def decorator(fn: NotificationHandlerT) -> NotificationHandlerT:
            self.register_notification(method, fn, params_type=params_type)
            return fn

        return decorator

    def declare(self, category: CapabilityCategory, **options: Any) -> None:
        """Declare a capability without registering a handler.

        Declaring a capability no handler backs is rejected by validate(), which
        sessions call before they start.
        """
        if self._frozen:
            raise CapabilityError(f"Cannot declare {category.value!r}: capabilities are fixed once a session has started")
        self._capabilities.setdefault(category, {}).update(options)

    def get(self, method: str) -> HandlerRegistration | None:
        return self._handlers.get(method)

    def get_notification(self, method: str) -> NotificationRegistration | None:
        return self._notification_handlers.get(method)

    def __contains__(self, method: object) -> bool:
        return method in self._handlers

    def declared(self, category: CapabilityCategory) -> bool:
        return category in self._capabilities

    def has_handler(self, category: CapabilityCategory) -> bool:
        return any(registration.category is category for registration in self._handlers.values())

    def capabilities(self) -> dict[str, dict[str, Any]]:
        """The capability mapping to announce during the handshake."""
        return {category.value: dict(options) for category, options in self._capabilities.items()}

    def validate(self) -> None:
        """Reject capabilities that were declared without a handler to serve them."""
        for category in self._capabilities:
            if not self.has_handler(category):
                raise CapabilityError(
                    f"Capability {category.value!r} is declared but no handler is registered for it",
                    phase="setup",
                )

    def freeze(self) -> None:
        self.validate()
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen
