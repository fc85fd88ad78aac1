"""
=============================================================================
HELLOSERVER CLI ENTRY POINT
=============================================================================

    # Run with defaults (127.0.0.1:7878, 10 connections)
    python -m helloserver

    # Custom port, accept 3 connections then exit
    python -m helloserver --port 3000 --capacity 3

    # Serve your own pages
    python -m helloserver --payload-dir ./pages

Exit status is 0 once every accepted connection has been handled, and 1 if
the configuration is invalid or the address cannot be bound.

=============================================================================
"""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from . import __version__
from .config import LOG_LEVELS, ServerConfig
from .core.supervisor import serve


logger = logging.getLogger("helloserver")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="helloserver",
        description="Tiny concurrent TCP server answering one request line per connection",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m helloserver                       # Run with defaults
  python -m helloserver --port 3000           # Custom port
  python -m helloserver --capacity 3          # Exit after 3 connections
  python -m helloserver --payload-dir ./pages # Serve other pages
        """
    )

    # Defaults are None so unset flags fall through to the environment
    parser.add_argument(
        "--host", "-H",
        default=None,
        help="Host to bind to (default: 127.0.0.1, env HELLO_HOST)"
    )

    parser.add_argument(
        "--port", "-p",
        type=int,
        default=None,
        help="Port to listen on (default: 7878, env HELLO_PORT)"
    )

    parser.add_argument(
        "--capacity", "-n",
        type=int,
        default=None,
        help="Connections to accept before exiting (default: 10, env HELLO_CAPACITY)"
    )

    parser.add_argument(
        "--payload-dir", "-d",
        default=None,
        help="Directory containing hello.html and 404.html (env HELLO_PAYLOAD_DIR)"
    )

    parser.add_argument(
        "--log-level", "-l",
        choices=LOG_LEVELS,
        default=None,
        help="Logging level (default: INFO, env HELLO_LOG_LEVEL)"
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"helloserver {__version__}"
    )

    return parser


def setup_logging(config: ServerConfig) -> None:
    """Configure logging based on config."""
    logging.basicConfig(
        level=config.level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logging.getLogger("helloserver").setLevel(config.level)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = ServerConfig.from_env(
            host=args.host,
            port=args.port,
            capacity=args.capacity,
            payload_dir=args.payload_dir,
            log_level=args.log_level,
        )
        config.validate()
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    setup_logging(config)

    try:
        asyncio.run(serve(config))
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt")
        return 130

    return 0


if __name__ == "__main__":
    sys.exit(main())
