"""
Request routing and response formatting.

    from helloserver.http import handle_connection, route

    route("GET / HTTP/1.1")          # RouteDecision("HTTP/1.1 200 OK", "hello.html")
    await handle_connection(stream)  # reads, routes, writes
"""

from .response import STATUS_NOT_FOUND, STATUS_OK, Response, format_response
from .payloads import HELLO_PAYLOAD, NOT_FOUND_PAYLOAD, PayloadStore
from .router import (
    HELLO_REQUEST,
    SLEEP_DELAY,
    SLEEP_REQUEST,
    RouteDecision,
    handle_connection,
    route,
)

__all__ = [
    "STATUS_OK",
    "STATUS_NOT_FOUND",
    "Response",
    "format_response",
    "HELLO_PAYLOAD",
    "NOT_FOUND_PAYLOAD",
    "PayloadStore",
    "HELLO_REQUEST",
    "SLEEP_REQUEST",
    "SLEEP_DELAY",
    "RouteDecision",
    "handle_connection",
    "route",
]
