from typing import Any

import pytest

from mcp_core import types
from mcp_core.shared.exceptions import CapabilityError, DuplicateHandlerError
from mcp_core.shared.registry import CapabilityCategory, CapabilityRegistry, category_for_method


async def _handler(ctx: Any, params: Any) -> dict[str, Any]:
    return {}


def test_category_for_method():
    assert category_for_method(types.TOOLS_CALL) is CapabilityCategory.TOOLS
    assert category_for_method(types.SAMPLING_CREATE_MESSAGE) is CapabilityCategory.SAMPLING
    assert category_for_method(types.PING) is None
    assert category_for_method("custom/method") is None


def test_register_derives_capability():
    registry = CapabilityRegistry()
    registration = registry.register(types.TOOLS_LIST, _handler, listChanged=True)

    assert registration.category is CapabilityCategory.TOOLS
    assert types.TOOLS_LIST in registry
    assert registry.get(types.TOOLS_LIST) is registration
    assert registry.capabilities() == {"tools": {"listChanged": True}}


def test_register_sampling_handler_announces_sampling():
    registry = CapabilityRegistry()
    registry.register(types.SAMPLING_CREATE_MESSAGE, _handler)
    assert registry.capabilities() == {"sampling": {}}


def test_uncategorized_method_adds_no_capability():
    registry = CapabilityRegistry()
    registry.register("custom/echo", _handler)
    assert registry.capabilities() == {}


def test_duplicate_registration_rejected():
    registry = CapabilityRegistry()
    registry.register(types.TOOLS_CALL, _handler)
    with pytest.raises(DuplicateHandlerError) as exc_info:
        registry.register(types.TOOLS_CALL, _handler)
    assert exc_info.value.method == types.TOOLS_CALL


def test_duplicate_notification_registration_rejected():
    registry = CapabilityRegistry()

    @registry.notification_handler(types.NOTIFICATION_TOOLS_LIST_CHANGED)
    async def on_changed(params: Any) -> None:
        pass

    with pytest.raises(DuplicateHandlerError):
        registry.register_notification(types.NOTIFICATION_TOOLS_LIST_CHANGED, on_changed)


def test_request_handler_decorator_returns_function():
    registry = CapabilityRegistry()

    @registry.request_handler(types.PROMPTS_GET, params_type=types.GetPromptRequestParams)
    async def get_prompt(ctx: Any, params: types.GetPromptRequestParams) -> types.GetPromptResult:
        return types.GetPromptResult(messages=[])

    assert registry.get(types.PROMPTS_GET).handler is get_prompt
    assert registry.get(types.PROMPTS_GET).params_type is types.GetPromptRequestParams
    assert registry.has_handler(CapabilityCategory.PROMPTS)


def test_declared_without_handler_fails_validation():
    registry = CapabilityRegistry()
    registry.declare(CapabilityCategory.SAMPLING)
    assert registry.declared(CapabilityCategory.SAMPLING)
    with pytest.raises(CapabilityError, match="sampling"):
        registry.validate()


def test_frozen_registry_rejects_new_capabilities():
    registry = CapabilityRegistry()
    registry.register(types.TOOLS_CALL, _handler)
    registry.freeze()
    assert registry.frozen

    with pytest.raises(CapabilityError):
        registry.register(types.RESOURCES_READ, _handler)
    with pytest.raises(CapabilityError):
        registry.declare(CapabilityCategory.LOGGING)

    # handlers outside any capability category can still be added
    registry.register("custom/echo", _handler)
    assert "custom/echo" in registry
