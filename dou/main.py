"""Process entry point for the demonstration service."""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Sequence

from dou.core.config import get_settings
from dou.core.logging import configure_logging
from dou.errors import FatalServiceError, ServerClosedError
from dou.example import create_example_service
from dou.server import ServerRunner

logger = logging.getLogger(__name__)


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="dou-example", description="Run the demo JSON API.")
    parser.add_argument("--address", help="listen address as host:port (default: DOU_ADDRESS or :8099)")
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    """Serve until interrupted; return the process exit status."""
    args = _parse_args(argv)
    settings = get_settings()
    configure_logging(settings.log_level.upper())

    service = create_example_service(settings=settings)
    try:
        ServerRunner(service).run(args.address or settings.address)
    except ServerClosedError:
        logger.info("Finished - bye bye.")
        return 0
    except FatalServiceError as exc:
        logger.critical("process.exit status=1 error=%s", exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())
