"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Startup-time configuration for the hello server.

Every value here is fixed once the process starts: the address to bind,
how many connections to accept before draining, and where the two HTML
payloads live. Nothing mutates a ServerConfig after it is built, so the
dataclass is frozen.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   1. Command-line arguments                                         │
    │      └── python -m helloserver --port 3000                         │
    │                                                                      │
    │   2. Environment variables                                          │
    │      └── HELLO_PORT=3000 python -m helloserver                     │
    │                                                                      │
    │   3. Default values (in this dataclass)                            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path


DEFAULT_PAYLOAD_DIR = Path(__file__).resolve().parent / "static"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class ServerConfig:
    """
    Configuration for one server run.

    NETWORK SETTINGS
    - host, port, backlog

    SUPERVISOR SETTINGS
    - capacity: connections accepted before the server drains and exits

    PAYLOADS
    - payload_dir: directory holding hello.html and 404.html

    LOGGING
    - log_level
    """

    host: str = "127.0.0.1"
    """The IP address to bind to."""

    port: int = 7878
    """
    The port number to listen on.
    0 asks the OS for a free port (handy in tests).
    """

    backlog: int = 128
    """Maximum number of queued connections waiting for accept()."""

    capacity: int = 10
    """
    Number of accept attempts before the server stops listening.
    Failed accepts count towards this total.
    """

    payload_dir: Path = field(default=DEFAULT_PAYLOAD_DIR)
    """Directory the payload files are read from on every request."""

    log_level: str = "INFO"
    """Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)."""

    @property
    def address(self) -> str:
        return f"{self.host}:{self.port}"

    @property
    def level(self) -> int:
        """Numeric logging level for log_level."""
        return getattr(logging, self.log_level.upper(), logging.INFO)

    @classmethod
    def from_env(cls, **overrides) -> "ServerConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        HELLO_HOST         Server host (default: 127.0.0.1)
        HELLO_PORT         Server port (default: 7878)
        HELLO_CAPACITY     Connections to accept (default: 10)
        HELLO_PAYLOAD_DIR  Payload directory (default: bundled static/)
        HELLO_LOG_LEVEL    Logging level (default: INFO)

        Keyword overrides whose value is not None win over the environment,
        which is how the CLI layers its arguments on top.
        =====================================================================
        """
        values = {
            "host": os.getenv("HELLO_HOST", "127.0.0.1"),
            "port": int(os.getenv("HELLO_PORT", "7878")),
            "capacity": int(os.getenv("HELLO_CAPACITY", "10")),
            "payload_dir": Path(os.getenv("HELLO_PAYLOAD_DIR", str(DEFAULT_PAYLOAD_DIR))),
            "log_level": os.getenv("HELLO_LOG_LEVEL", "INFO"),
        }
        values.update({key: value for key, value in overrides.items() if value is not None})
        if not isinstance(values["payload_dir"], Path):
            values["payload_dir"] = Path(values["payload_dir"])
        return cls(**values)

    def validate(self) -> None:
        """
        Validate configuration values.

        Called once at startup so a bad value fails before the socket is
        bound rather than on the first request.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {self.capacity}")

        if self.backlog < 1:
            raise ValueError(f"backlog must be >= 1, got {self.backlog}")

        if not self.payload_dir.is_dir():
            raise ValueError(f"Payload directory does not exist: {self.payload_dir}")

        if self.log_level.upper() not in LOG_LEVELS:
            raise ValueError(f"Unknown log level: {self.log_level}")
