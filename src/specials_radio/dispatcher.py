"""Dispatch of due special broadcasts.

Invoked once a minute from cron. Each run looks only at entries scheduled
for the current UTC minute; an entry whose minute passes without a run is
never played.
"""

import logging
import sqlite3
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from . import schedule_store
from .config.base import SpecialsConfig
from .errors import TagRewriteError
from .liquidsoap_client import BroadcastInjector
from .metadata_tool import MetadataTool
from .schedule_store import ScheduleEntry
from .scheduling import extension_of
from .tag_rewriter import rewrite_special_tags

logger = logging.getLogger(__name__)

# Log line per failed rewrite step
REWRITE_LOG_MESSAGES = {
    TagRewriteError.REPAIR: "ERROR: ID3 tag fix failed",
    TagRewriteError.PROBE: "ERROR: missing artist/title metadata",
    TagRewriteError.WRITE: "ERROR: tag write failed",
    TagRewriteError.VERIFY: "ERROR: metadata verification failed",
}


@dataclass
class DispatchSummary:
    """What a single dispatcher run did."""

    checked_at: datetime
    done: list[int] = field(default_factory=list)
    failed: dict[int, str] = field(default_factory=dict)
    skipped: list[int] = field(default_factory=list)

    @property
    def processed(self) -> int:
        return len(self.done) + len(self.failed)


class Dispatcher:
    """Tags and pushes the specials due this minute."""

    def __init__(
        self,
        config: SpecialsConfig,
        conn: sqlite3.Connection,
        tool: MetadataTool,
        injector: BroadcastInjector,
    ):
        self.config = config
        self.conn = conn
        self.tool = tool
        self.injector = injector

    def run(self, now: Optional[datetime] = None) -> DispatchSummary:
        """Process every entry due at ``now`` (default: current UTC minute).

        Raises:
            ConfigurationError: Specials directory unconfigured or missing;
                raised before the schedule table is read
        """
        specials_path = self.config.paths.require_specials_path()

        now = schedule_store.truncate_to_minute(now or schedule_store.utc_now())
        summary = DispatchSummary(checked_at=now)
        logger.info(f"Checking scheduled specials for {schedule_store.format_timestamp(now)} UTC")

        due = schedule_store.get_due(self.conn, now)
        if not due:
            logger.info("No due specials.")
            return summary

        for entry in due:
            logger.info(f"Processing schedule id={entry.id} file={entry.filename}")

            if not schedule_store.claim(self.conn, entry.id):
                logger.info(f"Schedule id={entry.id} already claimed or canceled, skipping")
                summary.skipped.append(entry.id)
                continue

            try:
                error = self._process(entry, specials_path)
            except Exception as e:
                # Claimed rows must not be left in queued
                logger.exception(f"ERROR: unexpected failure for id={entry.id}: {e}")
                error = f"Unexpected error: {e}"

            if error is None:
                schedule_store.mark_done(self.conn, entry.id)
                summary.done.append(entry.id)
                logger.info("Queued successfully and marked as done")
            else:
                schedule_store.mark_error(self.conn, entry.id, error)
                summary.failed[entry.id] = error

        return summary

    def _process(self, entry: ScheduleEntry, specials_path) -> Optional[str]:
        """Run the checks, rewrite and push for one claimed entry.

        Returns:
            None on success, otherwise the message stored in last_error
        """
        full_path = entry.full_path

        if not full_path.exists():
            logger.error("ERROR: file missing")
            return "File missing"

        if extension_of(full_path) not in self.config.scheduling.writable_extensions:
            logger.error("ERROR: unsupported file type")
            return "Unsupported file type for tag writing"

        try:
            rewrite_special_tags(full_path, self.tool, specials_path, self.config.scheduling)
        except TagRewriteError as e:
            logger.error(REWRITE_LOG_MESSAGES.get(e.step, "ERROR: tag rewrite failed"))
            return e.message

        push = self.injector.push(full_path)
        if not push.success:
            logger.error("ERROR: liquidsoap push failed")
            return push.message or "Liquidsoap push failed"

        return None
