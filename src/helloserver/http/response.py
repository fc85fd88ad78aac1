"""
=============================================================================
WIRE RESPONSE
=============================================================================

The server sends exactly one response shape:

    ┌─────────────────────────────────────────────────────────────────────┐
    │ HTTP/1.1 200 OK\\r\\n                    ← Status line              │
    │ Content-Length: 142\\r\\n                ← The only header          │
    │ \\r\\n                                   ← End of headers           │
    │ <!DOCTYPE html>...                     ← Payload bytes             │
    └─────────────────────────────────────────────────────────────────────┘

No other headers, no chunking. Content-Length is always the byte length of
the body, which differs from the character count as soon as the payload
contains anything outside ASCII.

=============================================================================
"""

from dataclasses import dataclass


STATUS_OK = "HTTP/1.1 200 OK"
STATUS_NOT_FOUND = "HTTP/1.1 404 NOT FOUND"

CRLF = b"\r\n"


def format_response(status_line: str, body: bytes) -> bytes:
    """Join status line, Content-Length header and body into wire bytes."""
    head = f"{status_line}\r\nContent-Length: {len(body)}\r\n\r\n"
    return head.encode("ascii") + body


@dataclass(frozen=True)
class Response:
    """A status line plus the payload that follows it."""

    status_line: str
    body: bytes = b""

    @property
    def content_length(self) -> int:
        return len(self.body)

    def to_bytes(self) -> bytes:
        return format_response(self.status_line, self.body)
