"""
=============================================================================
CONNECTION SUPERVISOR
=============================================================================

Owns the accept loop and the lifetime of every connection task.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    Supervisor State Machine                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   LISTENING     listener.bind()  (failure is fatal, re-raised)       │
    │       │                                                              │
    │       ▼                                                              │
    │   ACCEPTING     for n in 1..capacity:                                │
    │       │             stream = await listener.accept()                 │
    │       │             (accept error → log, next attempt)               │
    │       │             tasks.append(create_task(serve(n, stream)))      │
    │       ▼                                                              │
    │   DRAINING      listener.close()                                     │
    │       │         await each task, in creation order                   │
    │       ▼                                                              │
    │   TERMINATED    every spawned task has finished                      │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Accepting is sequential, one accept at a time. Handling is concurrent: each
connection runs in its own asyncio task, so a client parked on /sleep never
holds up the accept loop or any other client.

A task's failure stays inside that task. It is logged with the connection
number and counted, and the supervisor moves on. Only a bind failure ends
a run early.

=============================================================================
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, List, Optional

from ..config import ServerConfig
from ..http.payloads import PayloadStore
from ..http.router import handle_connection
from .listener import TCPListener
from .stream import StreamAdapter


logger = logging.getLogger(__name__)

ConnectionHandler = Callable[[StreamAdapter], Awaitable[object]]


class SupervisorState(Enum):
    """Lifecycle of one supervisor run."""

    IDLE = "idle"
    LISTENING = "listening"
    ACCEPTING = "accepting"
    DRAINING = "draining"
    TERMINATED = "terminated"


@dataclass
class RunSummary:
    """What happened during one run."""

    accepted: int = 0
    accept_errors: int = 0
    completed: int = 0
    failed: int = 0

    @property
    def attempts(self) -> int:
        return self.accepted + self.accept_errors

    @property
    def finished(self) -> int:
        return self.completed + self.failed


class ConnectionSupervisor:
    """
    Accept `capacity` connections, serve each in its own task, wait for all.

    Args:
        config: Address, backlog, capacity and payload directory.
        handler: Coroutine run once per connection. Defaults to the request
                 router reading payloads from config.payload_dir.
        listener: Anything with bind()/accept()/close(). Defaults to a
                  TCPListener on config.host:config.port.

    Usage:
        supervisor = ConnectionSupervisor(ServerConfig())
        summary = asyncio.run(supervisor.run())
    """

    def __init__(
        self,
        config: ServerConfig,
        handler: Optional[ConnectionHandler] = None,
        listener: Optional[TCPListener] = None,
    ):
        self.config = config

        if handler is None:
            payloads = PayloadStore(config.payload_dir)

            async def route_to_payloads(stream: StreamAdapter):
                return await handle_connection(stream, payloads)

            handler = route_to_payloads

        self._handler = handler
        self.listener = listener or TCPListener(config.host, config.port, config.backlog)
        self.state = SupervisorState.IDLE
        self.tasks: List[asyncio.Task] = []
        self.summary = RunSummary()

    async def run(self) -> RunSummary:
        """
        Run the full LISTENING → TERMINATED cycle once.

        Raises:
            OSError: the listener could not bind. No connection was accepted.
            Exception: anything else raised by listener.accept(), re-raised
                       once the tasks spawned so far have been drained.
        """
        self.state = SupervisorState.LISTENING
        self.listener.bind()

        self.state = SupervisorState.ACCEPTING
        try:
            await self._accept_loop()
        finally:
            # Tasks already spawned are joined even if the accept loop blew up
            self.listener.close()
            self.state = SupervisorState.DRAINING
            await self._drain()
            self.state = SupervisorState.TERMINATED


        logger.info(
            f"Served {self.summary.finished} connection(s): "
            f"{self.summary.completed} completed, {self.summary.failed} failed, "
            f"{self.summary.accept_errors} accept error(s)"
        )
        return self.summary

    async def _accept_loop(self) -> None:
        for count in range(1, self.config.capacity + 1):
            try:
                stream = await self.listener.accept()
            except OSError as e:
                self.summary.accept_errors += 1
                logger.error(f"Accept error on attempt {count}: {e}")
                continue

            self.summary.accepted += 1
            task = asyncio.create_task(self._serve(count, stream), name=f"connection-{count}")
            self.tasks.append(task)

    async def _serve(self, count: int, stream: StreamAdapter) -> bool:
        """Handle one connection; report its outcome instead of raising it."""
        try:
            await self._handler(stream)
        except OSError as e:
            logger.error(f"Request {count} failed: {e!r}")
            return False
        finally:
            close = getattr(stream, "close", None)
            if close is not None:
                await close()

        logger.info(f"Completed request {count}.")
        return True

    async def _drain(self) -> None:
        for task in self.tasks:
            try:
                ok = await task
            except Exception:
                logger.exception(f"Task {task.get_name()} crashed")
                ok = False

            if ok:
                self.summary.completed += 1
            else:
                self.summary.failed += 1


async def serve(config: ServerConfig) -> RunSummary:
    """Build a supervisor for `config` and run it to completion."""
    return await ConnectionSupervisor(config).run()
