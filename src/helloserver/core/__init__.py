"""
Core connection handling: the stream contract, the listening socket, and
the supervisor that runs one task per accepted connection.
"""

from .stream import StreamAdapter, TCPStream
from .listener import TCPListener
from .supervisor import ConnectionSupervisor, RunSummary, SupervisorState, serve

__all__ = [
    "StreamAdapter",
    "TCPStream",
    "TCPListener",
    "ConnectionSupervisor",
    "RunSummary",
    "SupervisorState",
    "serve",
]
