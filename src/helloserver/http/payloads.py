"""
Payload files served as response bodies.

Files are read from disk on every request; editing hello.html while the
server runs changes the next response. Reads happen in a worker thread so a
slow disk never stalls the event loop.
"""

import asyncio
import logging
from pathlib import Path
from typing import Union

from ..config import DEFAULT_PAYLOAD_DIR


logger = logging.getLogger(__name__)

HELLO_PAYLOAD = "hello.html"
NOT_FOUND_PAYLOAD = "404.html"


class PayloadStore:
    """
    Read-only view of a payload directory.

    Args:
        root: Directory holding the payload files. Defaults to the pages
              bundled with the package.
    """

    def __init__(self, root: Union[str, Path] = DEFAULT_PAYLOAD_DIR):
        self.root = Path(root)

    def path_for(self, name: str) -> Path:
        return self.root / name

    async def load(self, name: str) -> bytes:
        """
        Read payload `name` fresh from disk.

        Raises:
            OSError: the file is missing or unreadable.
        """
        path = self.path_for(name)
        content = await asyncio.to_thread(path.read_bytes)
        logger.debug(f"Loaded {len(content)} bytes from {path}")
        return content

    def __repr__(self) -> str:
        return f"PayloadStore({str(self.root)!r})"
