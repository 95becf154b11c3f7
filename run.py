"""
Main entrypoint for the BTP Tracker application.
Usage: python run.py [scrape|api]
"""

import asyncio
import logging
import os
import sys
import warnings
from pathlib import Path

project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

from bond_tracker.shared.exceptions import (  # noqa: E402
    BondTrackerError,
    BondTrackerWarning,
)

USAGE = """Usage: python run.py [scrape|api]
  scrape - Fetch BTP/BOT listings and write a new snapshot
  api    - Serve the latest snapshot over HTTP"""


def route_warnings_to_logging() -> None:
    """Send pipeline warnings to the log, every time they occur."""
    warnings.simplefilter("always", BondTrackerWarning)
    logging.captureWarnings(True)


def setup_logging() -> None:
    """
    Configure the root logger for a scrape run or the snapshot API.

    LOG_LEVEL and LOG_FORMAT shape the output on stdout. With LOG_TO_FILE=true
    records are also appended to LOG_FILE (bond_tracker.log by default).
    """
    log_level = os.getenv("LOG_LEVEL", "INFO").upper()
    log_format = os.getenv(
        "LOG_FORMAT", "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
    log_file = os.getenv("LOG_FILE", "bond_tracker.log")
    log_to_file = os.getenv("LOG_TO_FILE", "false").lower() == "true"

    numeric_level = getattr(logging, log_level, logging.INFO)

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]

    if log_to_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path))

    logging.basicConfig(
        level=numeric_level,
        format=log_format,
        handlers=handlers,
        force=True,
    )
    route_warnings_to_logging()


logger = logging.getLogger(__name__)


async def main():
    if len(sys.argv) != 2:
        print(USAGE)
        sys.exit(1)

    command = sys.argv[1].lower()

    setup_logging()

    if command == "scrape":
        from bond_tracker.pipeline.service import main as run_service

        logger.info("Starting scrape run...")
    elif command == "api":
        from bond_tracker.api.service import main as run_service

        logger.info("Starting snapshot API...")
    else:
        print(f"Unknown command: {command}")
        print(USAGE)
        sys.exit(1)
    await run_service()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\nShutdown requested by user")
        sys.exit(0)
    except BondTrackerError as e:
        # Fatal run errors leave the previous snapshot in place
        logger.error(f"Scrape failed: {e}")
        sys.exit(1)
    except Exception as e:
        logger.error(f"Application failed: {e}")
        sys.exit(1)
