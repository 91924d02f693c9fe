from .server import Server
from .session import ServerSession

__all__: list[str] = [
    "Server",
    "ServerSession",
]
