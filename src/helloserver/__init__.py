"""
=============================================================================
HELLOSERVER - A Tiny Concurrent TCP Server
=============================================================================

Accepts a fixed number of connections, reads one request line from each,
and answers with one of two HTML pages:

    GET / HTTP/1.1        → 200 OK, hello.html
    GET /sleep HTTP/1.1   → 200 OK, hello.html (after 5 seconds)
    anything else         → 404 NOT FOUND, 404.html

Every connection runs in its own asyncio task; once the last accepted
connection has been answered the server exits.

=============================================================================
QUICK START
=============================================================================

    python -m helloserver              # 127.0.0.1:7878, 10 connections

    import asyncio
    from helloserver import ConnectionSupervisor, ServerConfig

    summary = asyncio.run(ConnectionSupervisor(ServerConfig(port=0)).run())

=============================================================================
"""

__version__ = "0.1.0"

from .config import ServerConfig
from .core import ConnectionSupervisor, RunSummary, StreamAdapter, TCPStream
from .http import handle_connection, route

__all__ = [
    "ServerConfig",
    "ConnectionSupervisor",
    "RunSummary",
    "StreamAdapter",
    "TCPStream",
    "handle_connection",
    "route",
    "__version__",
]
