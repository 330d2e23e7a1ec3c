"""Scheduling of special broadcasts.

Validates operator requests, tags the file eagerly and records the slot.
The caller is assumed to be authenticated and authorized already.
"""

import logging
import os
import re
import shutil
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from . import schedule_store
from .config.base import SpecialsConfig
from .errors import ConfigurationError, ScheduleValidationError, TagRewriteError
from .metadata_tool import MetadataTool
from .schedule_store import ScheduleEntry
from .tag_rewriter import rewrite_special_tags

logger = logging.getLogger(__name__)

DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
TIME_RE = re.compile(r"^(\d{2}):(\d{2})$")

# Operator-facing wording for each failed rewrite step
REWRITE_MESSAGES = {
    TagRewriteError.REPAIR: "ID3 tag fix failed; cannot schedule.",
    TagRewriteError.PROBE: "File must contain both artist and title metadata to be scheduled.",
    TagRewriteError.VERIFY: "Metadata verification failed after writing tags.",
}


def is_slot_boundary(time_str: str, slot_minutes: int = 5) -> bool:
    """True for "HH:MM" strings whose minute is a multiple of the slot."""
    match = TIME_RE.match(time_str)
    if not match:
        return False
    return int(match.group(2)) % slot_minutes == 0


def parse_slot(date_str: str, time_str: str, tz) -> datetime:
    """Combine validated-shape date and time strings into an aware datetime."""
    try:
        day = datetime.strptime(date_str, "%Y-%m-%d")
    except ValueError:
        raise ScheduleValidationError("Invalid date format.")

    match = TIME_RE.match(time_str)
    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23 or minute > 59:
        raise ScheduleValidationError("Invalid time format.")

    return day.replace(hour=hour, minute=minute, tzinfo=tz)


def natural_sort_key(name: str) -> list:
    return [int(part) if part.isdigit() else part.lower() for part in re.split(r"(\d+)", name)]


def extension_of(path: Path | str) -> str:
    return Path(path).suffix.lower().lstrip(".")


class SchedulingService:
    """Accepts, cancels and lists special broadcast schedules."""

    def __init__(self, config: SpecialsConfig, conn: sqlite3.Connection, tool: MetadataTool):
        self.config = config
        self.conn = conn
        self.tool = tool

    @property
    def rules(self):
        return self.config.scheduling

    def _specials_path(self) -> Path:
        try:
            return self.config.paths.require_specials_path()
        except ConfigurationError as e:
            raise ScheduleValidationError(str(e)) from e

    def schedule(
        self,
        filename: str,
        date_utc: str,
        time_utc: str,
        created_by: Optional[str] = None,
    ) -> ScheduleEntry:
        """Schedule a special for a UTC date and "HH:MM" time.

        The slot is re-validated here whatever the client computed. The file
        is tagged before the row is written; if tagging fails nothing is
        stored.

        Raises:
            ScheduleValidationError: With the message to show the operator
        """
        filename = Path((filename or "").strip()).name
        date_utc = (date_utc or "").strip()
        time_utc = (time_utc or "").strip()

        if not filename or not date_utc or not time_utc:
            raise ScheduleValidationError("All fields are required.")

        if not DATE_RE.match(date_utc):
            raise ScheduleValidationError("Invalid date format.")

        if not is_slot_boundary(time_utc, self.rules.slot_minutes):
            raise ScheduleValidationError(
                f"Time must be on a {self.rules.slot_minutes}-minute boundary."
            )

        scheduled_at = parse_slot(date_utc, time_utc, timezone.utc)

        specials_path = self._specials_path()
        full_path = specials_path.resolve() / filename
        if not full_path.is_file():
            raise ScheduleValidationError("Selected file not found.")

        ext = extension_of(filename)
        if ext not in self.rules.allowed_extensions:
            raise ScheduleValidationError("Invalid file type.")
        if ext not in self.rules.writable_extensions:
            raise ScheduleValidationError(
                "This file type is not supported for scheduling because tags "
                "cannot be reliably written."
            )

        if schedule_store.find_active_at(self.conn, scheduled_at) is not None:
            raise ScheduleValidationError("A special is already scheduled at that time.")

        try:
            rewrite_special_tags(full_path, self.tool, specials_path, self.rules)
        except TagRewriteError as e:
            logger.error(f"Tag rewrite failed for {filename}: {e.message}")
            raise ScheduleValidationError(REWRITE_MESSAGES.get(e.step, e.message)) from e

        # TODO: fold the conflict check into the insert (unique partial index
        # on active slots) so concurrent requests cannot double-book a slot
        schedule_id = schedule_store.insert_schedule(
            self.conn,
            filename,
            full_path,
            scheduled_at,
            created_by,
            slot_minutes=self.rules.slot_minutes,
        )
        logger.info(
            f"Scheduled special id={schedule_id} file={filename} "
            f"at {schedule_store.format_timestamp(scheduled_at)} UTC"
        )
        return schedule_store.get_schedule(self.conn, schedule_id)

    def schedule_local(
        self,
        filename: str,
        local_date: str,
        local_time: str,
        tz_name: str,
        created_by: Optional[str] = None,
    ) -> ScheduleEntry:
        """Schedule using the operator's local wall-clock time.

        Zones with non-whole-slot offsets can turn a local slot into an
        unaligned UTC minute; those are rejected rather than rounded.
        """
        filename = Path((filename or "").strip()).name
        local_date = (local_date or "").strip()
        local_time = (local_time or "").strip()
        tz_name = (tz_name or "").strip()
        if not filename or not local_date or not local_time or not tz_name:
            raise ScheduleValidationError("All fields are required.")

        try:
            tz = ZoneInfo(tz_name)
        except (ZoneInfoNotFoundError, ValueError):
            raise ScheduleValidationError(f"Unknown timezone: {tz_name}")

        if not DATE_RE.match(local_date):
            raise ScheduleValidationError("Invalid date format.")
        if not TIME_RE.match(local_time):
            raise ScheduleValidationError("Invalid time format.")

        local_dt = parse_slot(local_date, local_time, tz)
        utc_dt = local_dt.astimezone(timezone.utc)
        if utc_dt.second != 0 or utc_dt.minute % self.rules.slot_minutes != 0:
            raise ScheduleValidationError(
                f"This local time does not map to a {self.rules.slot_minutes}-minute "
                "UTC boundary. Please choose a different time."
            )

        return self.schedule(
            filename,
            utc_dt.strftime("%Y-%m-%d"),
            utc_dt.strftime("%H:%M"),
            created_by,
        )

    def cancel(self, schedule_id: int) -> bool:
        """Cancel a scheduled special.

        Returns:
            True if the entry was still scheduled and is now canceled
        """
        try:
            schedule_id = int(schedule_id)
        except (TypeError, ValueError):
            schedule_id = 0
        if schedule_id <= 0:
            raise ScheduleValidationError("Invalid schedule entry.")

        canceled = schedule_store.cancel(self.conn, schedule_id)
        if canceled:
            logger.info(f"Canceled special id={schedule_id}")
        else:
            logger.info(f"Special id={schedule_id} not canceled (not scheduled)")
        return canceled

    def list_special_files(self) -> list[str]:
        """Files in the specials directory with an allowed extension."""
        specials_path = self.config.paths.specials_path
        if specials_path is None or not specials_path.is_dir():
            return []

        files = [
            entry.name
            for entry in specials_path.iterdir()
            if entry.is_file() and extension_of(entry) in self.rules.allowed_extensions
        ]
        return sorted(files, key=natural_sort_key)

    def upload_special(self, filename: str, stream) -> Path:
        """Store an uploaded audio file in the specials directory.

        Existing files are never overwritten. Tags are not touched here;
        they are checked when the file is scheduled.

        Args:
            filename: Client-supplied name; only the basename is used
            stream: Binary file-like object with the upload contents

        Returns:
            Path of the stored file
        """
        filename = Path((filename or "").strip()).name
        if not filename:
            raise ScheduleValidationError("Invalid upload parameters.")

        specials_path = self._specials_path()
        if extension_of(filename) not in self.rules.allowed_extensions:
            raise ScheduleValidationError(f"'{filename}' has invalid file type")

        target = specials_path / filename
        try:
            with open(target, "xb") as f:
                shutil.copyfileobj(stream, f)
        except FileExistsError:
            raise ScheduleValidationError(f"'{filename}' already exists in {specials_path.name}")
        except OSError as e:
            logger.error(f"Upload of {filename} failed: {e}")
            target.unlink(missing_ok=True)
            raise ScheduleValidationError(f"Failed to upload '{filename}'")

        os.chmod(target, 0o644)
        logger.info(f"Uploaded special {filename}")
        return target

    def delete_special(self, filename: str) -> None:
        """Remove a file from the specials directory.

        Schedule rows pointing at the file are left alone; the dispatcher
        records them as "File missing" when their minute comes.
        """
        filename = Path((filename or "").strip()).name
        if not filename:
            raise ScheduleValidationError("Invalid delete parameters.")

        target = self._specials_path() / filename
        if not target.exists():
            raise ScheduleValidationError(f"File '{filename}' not found.")

        try:
            target.unlink()
        except OSError as e:
            logger.error(f"Delete of {filename} failed: {e}")
            raise ScheduleValidationError(f"Failed to delete '{filename}'.")
        logger.info(f"Deleted special {filename}")

    def time_slots(self) -> list[str]:
        step = self.rules.slot_minutes
        return [f"{h:02d}:{m:02d}" for h in range(24) for m in range(0, 60, step)]

    def upcoming(self, limit: int = 100) -> list[ScheduleEntry]:
        return schedule_store.list_upcoming(self.conn, limit)

    def history(self, limit: int = 50) -> list[ScheduleEntry]:
        return schedule_store.list_recent(self.conn, limit)
