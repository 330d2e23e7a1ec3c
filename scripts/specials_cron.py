#!/usr/bin/env python3
"""Dispatch scheduled specials to Liquidsoap.

Run from cron once per minute:

    * * * * * /srv/radio/venv/bin/python /srv/radio/scripts/specials_cron.py

Exit codes:
    0: All due specials were attempted (individual failures are recorded
       in the schedule table)
    1: Configuration error; the schedule table was not touched
"""

import logging
import sys
import time
from pathlib import Path

import fasteners

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from specials_radio.config import config
from specials_radio.dispatcher import Dispatcher
from specials_radio.errors import ConfigurationError
from specials_radio.liquidsoap_client import LiquidsoapClient
from specials_radio.metadata_tool import FFmpegMetadataTool
from specials_radio import schedule_store

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    """Log "[YYYY-MM-DD HH:MM:SS] message" lines in UTC to stdout."""
    formatter = logging.Formatter("[%(asctime)s] %(message)s", datefmt="%Y-%m-%d %H:%M:%S")
    formatter.converter = time.gmtime

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    logging.basicConfig(level=logging.INFO, handlers=[handler], force=True)


def main() -> int:
    """Entry point for the specials dispatcher.

    Returns:
        0 after attempting all due specials, 1 on configuration errors
    """
    configure_logging()

    try:
        config.paths.require_specials_path()
    except ConfigurationError as e:
        logger.error(str(e))
        return 1

    # Slot is fixed before waiting on the lock
    now = schedule_store.truncate_to_minute(schedule_store.utc_now())

    config.paths.state_path.mkdir(parents=True, exist_ok=True)
    lock = fasteners.InterProcessLock(str(config.paths.dispatch_lock_path))

    # Overlapping runs serialize here
    with lock:
        conn = schedule_store.connect(config.paths.db_path)
        try:
            dispatcher = Dispatcher(
                config,
                conn,
                FFmpegMetadataTool(config.tools),
                LiquidsoapClient(config.liquidsoap),
            )
            summary = dispatcher.run(now)
        except ConfigurationError as e:
            logger.error(str(e))
            return 1
        finally:
            conn.close()

    if summary.processed:
        logger.info(f"Done: {len(summary.done)} queued, {len(summary.failed)} failed")
    return 0


if __name__ == "__main__":
    sys.exit(main())
