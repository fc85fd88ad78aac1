"""
=============================================================================
STREAM ABSTRACTION
=============================================================================

The router never touches a socket directly. It talks to anything that can
do two things:

    read_request()           → the first line the client sent
    write_response(data)     → push the whole response back

    ┌────────────────┐   read_request()    ┌──────────────────────┐
    │                │ ──────────────────► │  TCPStream (asyncio) │
    │ handle_        │                     ├──────────────────────┤
    │ connection()   │ write_response(b)   │  in-memory test      │
    │                │ ──────────────────► │  doubles             │
    └────────────────┘                     └──────────────────────┘

StreamAdapter is a typing.Protocol, so a test double only has to provide the
two coroutines; it does not inherit from anything.

=============================================================================
LINE SEMANTICS
=============================================================================

Only the request line matters. The terminator ("\\n" or "\\r\\n") is
stripped, and a client that closes without sending anything yields "",
which the router treats as an unknown request (404), not as an error.

Every read failure is an OSError: a line that is not UTF-8, or that is longer
than the reader's limit, is converted so callers only ever handle I/O errors.

=============================================================================
"""

import asyncio
import errno
import logging
from typing import Optional, Protocol, Tuple


logger = logging.getLogger(__name__)


class StreamAdapter(Protocol):
    """Request/response contract the router is written against."""

    async def read_request(self) -> str:
        ...

    async def write_response(self, data: bytes) -> None:
        ...


def _strip_line(line: str) -> str:
    if line.endswith("\n"):
        line = line[:-1]
        if line.endswith("\r"):
            line = line[:-1]
    return line


class TCPStream:
    """
    StreamAdapter over an asyncio reader/writer pair.

    Owns the client connection: whoever holds a TCPStream is responsible
    for calling close() once the response is written (or has failed).
    """

    def __init__(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter):
        self._reader = reader
        self._writer = writer
        self._closed = False

    @property
    def peer(self) -> Optional[Tuple[str, int]]:
        """(ip, port) of the client, if the transport still knows it."""
        peername = self._writer.get_extra_info("peername")
        if peername is None:
            return None
        return peername[0], peername[1]

    @property
    def closed(self) -> bool:
        return self._closed

    async def read_request(self) -> str:
        """
        Read the first line of the request.

        Returns:
            The line without its terminator, or "" if the client closed
            the connection before sending anything.

        Raises:
            OSError: the transport failed, the line was too long, or the
                     line was not valid UTF-8.
        """
        try:
            raw = await self._reader.readline()
        except ValueError as e:
            # StreamReader signals an over-limit line with ValueError
            raise OSError(errno.EMSGSIZE, f"Request line too long: {e}") from e

        try:
            line = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise OSError(errno.EILSEQ, "Request line is not valid UTF-8") from e

        return _strip_line(line)

    async def write_response(self, data: bytes) -> None:
        """
        Write the whole response and wait until it is flushed.

        Raises:
            OSError: exactly as raised by the transport (BrokenPipeError,
                     ConnectionResetError, ...).
        """
        self._writer.write(data)
        await self._writer.drain()

    async def close(self) -> None:
        """Close the connection. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        self._writer.close()
        try:
            await self._writer.wait_closed()
        except OSError as e:
            # The peer already went away; nothing left to release
            logger.debug(f"Error while closing {self.peer}: {e}")
