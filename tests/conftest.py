"""
pytest configuration and fixtures.
"""

import shutil
from pathlib import Path
from typing import List, Optional

import pytest

from helloserver import ServerConfig
from helloserver.config import DEFAULT_PAYLOAD_DIR
from helloserver.http import PayloadStore


class MemoryStream:
    """In-memory StreamAdapter that serves a fixed request line and records writes."""

    def __init__(self, request: str = ""):
        self.request = request
        self.reads = 0
        self.writes: List[bytes] = []
        self.closed = False

    async def read_request(self) -> str:
        self.reads += 1
        return self.request

    async def write_response(self, data: bytes) -> None:
        self.writes.append(data)

    async def close(self) -> None:
        self.closed = True

    @property
    def written(self) -> bytes:
        return b"".join(self.writes)


class FailingStream(MemoryStream):
    """MemoryStream whose read or write raises a given OSError."""

    def __init__(
        self,
        request: str = "GET / HTTP/1.1",
        read_error: Optional[OSError] = None,
        write_error: Optional[OSError] = None,
    ):
        super().__init__(request)
        self.read_error = read_error
        self.write_error = write_error
        self.write_attempts = 0

    async def read_request(self) -> str:
        self.reads += 1
        if self.read_error is not None:
            raise self.read_error
        return self.request

    async def write_response(self, data: bytes) -> None:
        self.write_attempts += 1
        if self.write_error is not None:
            raise self.write_error
        self.writes.append(data)


@pytest.fixture
def payload_dir(tmp_path: Path) -> Path:
    """Writable copy of the bundled payload pages."""
    target = tmp_path / "pages"
    shutil.copytree(DEFAULT_PAYLOAD_DIR, target)
    return target


@pytest.fixture
def payloads(payload_dir: Path) -> PayloadStore:
    return PayloadStore(payload_dir)


@pytest.fixture
def config(payload_dir: Path) -> ServerConfig:
    """Test configuration on an OS-assigned port."""
    return ServerConfig(
        host="127.0.0.1",
        port=0,
        capacity=3,
        payload_dir=payload_dir,
        log_level="DEBUG",
    )


@pytest.fixture
def memory_stream():
    """Factory for in-memory streams: memory_stream("GET / HTTP/1.1")."""
    return MemoryStream


@pytest.fixture
def failing_stream():
    """Factory for streams that fail on read or write."""
    return FailingStream
