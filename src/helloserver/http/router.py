"""
=============================================================================
REQUEST ROUTER
=============================================================================

Turns one request line into one response.

    "GET / HTTP/1.1"         →  200 OK         hello.html
    "GET /sleep HTTP/1.1"    →  (wait 5s) 200 OK   hello.html
    anything else, even ""   →  404 NOT FOUND  404.html

Matching is plain string equality: case-sensitive, no normalization, no
parsing of method or target.

=============================================================================
ERROR FLOW
=============================================================================

    read_request() ──fails──► propagate (no payload read, no write)
          │
          ▼
    route() + optional sleep
          │
          ▼
    payloads.load() ──fails──► propagate (nothing written)
          │
          ▼
    write_response() ──fails──► propagate

There are no retries. handle_connection() never logs or swallows errors; the
supervisor decides what to do with them.

=============================================================================
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from .payloads import HELLO_PAYLOAD, NOT_FOUND_PAYLOAD, PayloadStore
from .response import STATUS_NOT_FOUND, STATUS_OK, Response

if TYPE_CHECKING:
    from ..core.stream import StreamAdapter


logger = logging.getLogger(__name__)

HELLO_REQUEST = "GET / HTTP/1.1"
SLEEP_REQUEST = "GET /sleep HTTP/1.1"

# Seconds the /sleep route suspends its own task before answering
SLEEP_DELAY = 5.0


@dataclass(frozen=True)
class RouteDecision:
    """Status line and payload chosen for a request, plus any delay."""

    status_line: str
    payload: str
    delay: float = 0.0


def route(request_line: str, sleep_delay: float = SLEEP_DELAY) -> RouteDecision:
    """Pick the route for a request line. Pure: no I/O, no sleeping."""
    if request_line == HELLO_REQUEST:
        return RouteDecision(STATUS_OK, HELLO_PAYLOAD)
    if request_line == SLEEP_REQUEST:
        return RouteDecision(STATUS_OK, HELLO_PAYLOAD, delay=sleep_delay)
    return RouteDecision(STATUS_NOT_FOUND, NOT_FOUND_PAYLOAD)


async def handle_connection(
    stream: "StreamAdapter",
    payloads: Optional[PayloadStore] = None,
    *,
    sleep_delay: float = SLEEP_DELAY,
) -> Response:
    """
    Read a request line from `stream`, answer it, and return what was sent.

    Args:
        stream: Anything implementing StreamAdapter.
        payloads: Where payload files come from. Defaults to the bundled pages.
        sleep_delay: Delay for the /sleep route.

    Returns:
        The Response written to the stream.

    Raises:
        OSError: from reading the request, loading the payload, or writing
                 the response, unchanged.
    """
    if payloads is None:
        payloads = PayloadStore()

    request_line = await stream.read_request()
    decision = route(request_line, sleep_delay)
    logger.debug(f"{request_line!r} -> {decision.status_line} ({decision.payload})")

    if decision.delay:
        # Suspends this connection's task only
        await asyncio.sleep(decision.delay)

    body = await payloads.load(decision.payload)
    response = Response(decision.status_line, body)
    await stream.write_response(response.to_bytes())
    return response
