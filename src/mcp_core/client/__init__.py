"""MCP Client module."""

from mcp_core.client.session import ClientSession, SamplingFnT, connect
from mcp_core.client.sse import SseClientTransport, sse_client
from mcp_core.client.stdio import StdioClientTransport, StdioServerParameters, stdio_client

__all__ = [
    "ClientSession",
    "SamplingFnT",
    "SseClientTransport",
    "StdioClientTransport",
    "StdioServerParameters",
    "connect",
    "sse_client",
    "stdio_client",
]
