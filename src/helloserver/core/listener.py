"""
=============================================================================
LISTENING SOCKET
=============================================================================

Creates, binds and accepts on the server socket. Accepting is sequential:
the supervisor awaits accept() once per connection it wants, and each call
returns a TCPStream that owns the new client socket.

SOCKET LIFECYCLE (Server Side):
────────────────────────────────

    1. socket()    Create a TCP socket, set options
    2. bind()      Reserve host:port (failure here is fatal)
    3. listen()    OS starts queueing incoming connections
    4. accept()    loop.sock_accept() - suspends until a client connects
    5. close()     Release the listening socket

The socket is non-blocking so accept() is a coroutine that suspends the
accept loop without blocking the connection tasks running beside it.

=============================================================================
"""

import asyncio
import logging
import socket
from typing import Optional, Tuple

from .stream import TCPStream


logger = logging.getLogger(__name__)


class TCPListener:
    """
    Bound, listening TCP socket that hands out TCPStreams.

    Usage:
        listener = TCPListener("127.0.0.1", 7878)
        listener.bind()
        stream = await listener.accept()
        ...
        listener.close()
    """

    def __init__(self, host: str, port: int, backlog: int = 128):
        self.host = host
        self.port = port
        self.backlog = backlog
        self._socket: Optional[socket.socket] = None

    @property
    def address(self) -> Tuple[str, int]:
        """Bound (host, port); the real port once port 0 has been bound."""
        if self._socket is not None:
            host, port = self._socket.getsockname()[:2]
            return host, port
        return self.host, self.port

    @property
    def is_bound(self) -> bool:
        return self._socket is not None

    def _create_socket(self) -> socket.socket:
        """Create the server socket with the options the server relies on."""
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)

        # Rebind immediately after a restart instead of waiting out TIME_WAIT
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)

        # Responses are a single small write; send them without Nagle delay
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)

        sock.setblocking(False)
        return sock

    def bind(self) -> None:
        """
        Bind and start listening.

        Raises:
            OSError: the address is in use, not available, or not permitted.
                     The socket is closed before the error propagates.
        """
        sock = self._create_socket()
        try:
            sock.bind((self.host, self.port))
            sock.listen(self.backlog)
        except OSError as e:
            sock.close()
            logger.error(f"Failed to bind to {self.host}:{self.port}: {e}")
            raise

        self._socket = sock
        host, port = self.address
        logger.info(f"Listening on {host}:{port}")

    async def accept(self) -> TCPStream:
        """
        Wait for the next client and wrap it in a TCPStream.

        Raises:
            RuntimeError: bind() has not been called.
            OSError: the accept itself failed.
        """
        if self._socket is None:
            raise RuntimeError("Listener is not bound")

        loop = asyncio.get_running_loop()
        client_socket, client_address = await loop.sock_accept(self._socket)
        client_socket.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)

        logger.debug(f"Accepted connection from {client_address[0]}:{client_address[1]}")

        try:
            reader, writer = await asyncio.open_connection(sock=client_socket)
        except OSError:
            client_socket.close()
            raise
        return TCPStream(reader, writer)

    def close(self) -> None:
        """Stop listening. Safe to call more than once."""
        if self._socket is None:
            return
        try:
            self._socket.close()
        except OSError:
            pass  # Already closed
        self._socket = None
        logger.debug("Listening socket closed")
