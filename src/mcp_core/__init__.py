"""The core of the Model Context Protocol: JSON-RPC sessions, capability
negotiation and transports for both clients and servers.

## Example - create a server

```python
from mcp_core import Server

server = Server("Demo")

@server.tool(description="Add two numbers")
async def add(ctx, arguments):
    return str(arguments["a"] + arguments["b"])

if __name__ == "__main__":
    server.serve()
```

## Example - create a client

```python
from mcp_core import StdioServerParameters, connect, stdio_client

server_params = StdioServerParameters(command="python", args=["server.py"])

async with connect(stdio_client(server_params)) as session:
    tools = await session.list_tools()
    result = await session.call_tool("add", {"a": 5, "b": 3})
```
"""

from .client.session import ClientSession, connect
from .client.sse import sse_client
from .client.stdio import StdioServerParameters, stdio_client
from .server.server import Server
from .server.session import ServerSession
from .server.stdio import stdio_server
from .shared.context import RequestContext
from .shared.exceptions import (
    CapabilityError,
    ConnectionClosedError,
    ContentDecodeError,
    DuplicateHandlerError,
    IncompatibleProtocolError,
    McpError,
    MessageDecodeError,
    ProtocolError,
    RequestCancelledError,
    RequestTimeoutError,
    SessionStateError,
    TransportError,
)
from .shared.registry import CapabilityCategory, CapabilityRegistry
from .shared.session import Session, SessionState
from .types import (
    CallToolResult,
    CreateMessageRequestParams,
    CreateMessageResult,
    ErrorData,
    Implementation,
    SamplingMessage,
    TextContent,
    Tool,
)

__all__ = [
    "CallToolResult",
    "CapabilityCategory",
    "CapabilityError",
    "CapabilityRegistry",
    "ClientSession",
    "ConnectionClosedError",
    "ContentDecodeError",
    "CreateMessageRequestParams",
    "CreateMessageResult",
    "DuplicateHandlerError",
    "ErrorData",
    "Implementation",
    "IncompatibleProtocolError",
    "McpError",
    "MessageDecodeError",
    "ProtocolError",
    "RequestCancelledError",
    "RequestContext",
    "RequestTimeoutError",
    "SamplingMessage",
    "Server",
    "ServerSession",
    "Session",
    "SessionState",
    "SessionStateError",
    "StdioServerParameters",
    "TextContent",
    "Tool",
    "TransportError",
    "connect",
    "sse_client",
    "stdio_client",
    "stdio_server",
]
