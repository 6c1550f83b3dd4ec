"""CLI entry point for the publisher daemon.

Allows running the publisher as a module:
    python -m thread_sharing.publisher [config.yaml]
"""

import signal
import sys
from pathlib import Path
from types import FrameType

from thread_sharing.config import load_config
from thread_sharing.logging import get_logger
from thread_sharing.publisher.daemon import request_shutdown, run_publisher

logger = get_logger("publisher")


def signal_handler(signum: int, frame: FrameType | None) -> None:
    """Stop the publisher after the current cycle."""
    logger.info("Received signal %s, finishing current cycle", signal.Signals(signum).name)
    request_shutdown()


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the publisher daemon.

    Takes an optional config file path; otherwise the default search
    locations are used.
    """
    args = sys.argv[1:] if argv is None else argv
    config = load_config(Path(args[0]) if args else None)

    # Share links embed the identity id, so publishing without one is useless
    if not config.identity.id:
        print("thread-sharing publisher: identity.id is not configured", file=sys.stderr)
        sys.exit(1)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    run_publisher(config)
    sys.exit(0)


if __name__ == "__main__":
    main()
