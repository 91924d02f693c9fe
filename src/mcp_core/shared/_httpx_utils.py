"""Utilities for creating standardized httpx AsyncClient instances."""

from typing import Any, Protocol

import httpx

__all__ = ["McpHttpClientFactory", "create_mcp_http_client"]

DEFAULT_HTTP_TIMEOUT = 30.0


class McpHttpClientFactory(Protocol):
    def __call__(self, **kwargs: Any) -> httpx.AsyncClient: ...


def create_mcp_http_client(**kwargs: Any) -> httpx.AsyncClient:
    """Create an httpx AsyncClient with the defaults the SSE transport relies on.

    Redirects are always followed and requests time out after 30 seconds unless
    ``timeout`` says otherwise. Any other keyword argument accepted by
    httpx.AsyncClient (headers, auth, verify, transport, ...) is passed through.

    The returned client must be used as an async context manager so its
    connections are released.

    Examples:
        async with create_mcp_http_client(headers={"Authorization": "Bearer token"}) as client:
            response = await client.get("https://example.com/sse")
    """
    default_kwargs: dict[str, Any] = {
        "follow_redirects": True,
        "timeout": httpx.Timeout(DEFAULT_HTTP_TIMEOUT),
    }
    default_kwargs.update(kwargs)
    return httpx.AsyncClient(**default_kwargs)
