"""Database operations for the specials schedule.

Status lifecycle:
    scheduled -> queued (claimed by a dispatcher run) -> done | error
    scheduled -> canceled

Only ``scheduled`` rows can be claimed or canceled, and only claimed or
scheduled rows can be finalized, so terminal rows are never rewritten.
"""

import logging
import sqlite3
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

STATUS_SCHEDULED = "scheduled"
STATUS_QUEUED = "queued"
STATUS_DONE = "done"
STATUS_ERROR = "error"
STATUS_CANCELED = "canceled"

# Statuses that occupy their time slot
ACTIVE_STATUSES = (STATUS_SCHEDULED, STATUS_QUEUED)
TERMINAL_STATUSES = (STATUS_DONE, STATUS_ERROR, STATUS_CANCELED)

SCHEMA = """
CREATE TABLE IF NOT EXISTS specials_schedule (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    filename TEXT NOT NULL,
    full_path TEXT NOT NULL,
    scheduled_at TEXT NOT NULL,
    status TEXT NOT NULL DEFAULT 'scheduled'
        CHECK(status IN ('scheduled', 'queued', 'done', 'error', 'canceled')),
    created_by TEXT,
    created_at TEXT NOT NULL,
    queued_at TEXT,
    canceled_at TEXT,
    last_error TEXT
);
CREATE INDEX IF NOT EXISTS idx_specials_schedule_status_time
    ON specials_schedule(status, scheduled_at);
"""

COLUMNS = (
    "id, filename, full_path, scheduled_at, status, created_by, "
    "created_at, queued_at, canceled_at, last_error"
)


@dataclass
class ScheduleEntry:
    """One scheduled special broadcast."""

    id: int
    filename: str
    full_path: Path
    scheduled_at: datetime
    status: str
    created_by: Optional[str]
    created_at: datetime
    queued_at: Optional[datetime] = None
    canceled_at: Optional[datetime] = None
    last_error: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "filename": self.filename,
            "full_path": str(self.full_path),
            "scheduled_at": format_timestamp(self.scheduled_at),
            "status": self.status,
            "created_by": self.created_by,
            "created_at": format_timestamp(self.created_at),
            "queued_at": format_timestamp(self.queued_at),
            "canceled_at": format_timestamp(self.canceled_at),
            "last_error": self.last_error,
        }


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC; convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def truncate_to_minute(value: datetime) -> datetime:
    return to_utc(value).replace(second=0, microsecond=0)


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return to_utc(value).strftime(TIMESTAMP_FORMAT)


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if value is None:
        return None
    return datetime.strptime(value, TIMESTAMP_FORMAT).replace(tzinfo=timezone.utc)


def is_slot_aligned(value: datetime, slot_minutes: int = 5) -> bool:
    """True for whole minutes whose minute component is a multiple of the slot."""
    value = to_utc(value)
    return value.second == 0 and value.microsecond == 0 and value.minute % slot_minutes == 0


def connect(db_path: Path) -> sqlite3.Connection:
    """Open the schedule database, creating it and its schema if needed."""
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(db_path)
    init_schema(conn)
    return conn


def init_schema(conn: sqlite3.Connection) -> None:
    conn.executescript(SCHEMA)
    conn.commit()


def _row_to_entry(row: tuple) -> ScheduleEntry:
    return ScheduleEntry(
        id=row[0],
        filename=row[1],
        full_path=Path(row[2]),
        scheduled_at=parse_timestamp(row[3]),
        status=row[4],
        created_by=row[5],
        created_at=parse_timestamp(row[6]),
        queued_at=parse_timestamp(row[7]),
        canceled_at=parse_timestamp(row[8]),
        last_error=row[9],
    )


def insert_schedule(
    conn: sqlite3.Connection,
    filename: str,
    full_path: Path,
    scheduled_at: datetime,
    created_by: Optional[str] = None,
    slot_minutes: int = 5,
) -> int:
    """Insert a new ``scheduled`` row.

    Args:
        conn: SQLite database connection
        filename: Base name of the special
        full_path: Resolved absolute path, fixed for the row's lifetime
        scheduled_at: UTC slot start
        created_by: Operator id
        slot_minutes: Required alignment of scheduled_at

    Returns:
        New row id

    Raises:
        ValueError: If scheduled_at is not slot aligned
    """
    if not is_slot_aligned(scheduled_at, slot_minutes):
        raise ValueError(
            f"scheduled_at must be on a {slot_minutes}-minute boundary: {scheduled_at}"
        )

    cursor = conn.cursor()
    cursor.execute(
        """
        INSERT INTO specials_schedule (
            filename, full_path, scheduled_at, status, created_by, created_at
        ) VALUES (?, ?, ?, ?, ?, ?)
        """,
        (
            filename,
            str(full_path),
            format_timestamp(scheduled_at),
            STATUS_SCHEDULED,
            None if created_by is None else str(created_by),
            format_timestamp(utc_now()),
        ),
    )
    conn.commit()
    return cursor.lastrowid


def get_schedule(conn: sqlite3.Connection, schedule_id: int) -> Optional[ScheduleEntry]:
    cursor = conn.cursor()
    cursor.execute(
        f"SELECT {COLUMNS} FROM specials_schedule WHERE id = ?",
        (schedule_id,),
    )
    row = cursor.fetchone()
    return _row_to_entry(row) if row else None


def find_active_at(conn: sqlite3.Connection, scheduled_at: datetime) -> Optional[ScheduleEntry]:
    """Return an entry still occupying the given slot, if any."""
    cursor = conn.cursor()
    cursor.execute(
        f"""
        SELECT {COLUMNS} FROM specials_schedule
        WHERE scheduled_at = ? AND status IN (?, ?)
        ORDER BY id ASC
        LIMIT 1
        """,
        (format_timestamp(scheduled_at), *ACTIVE_STATUSES),
    )
    row = cursor.fetchone()
    return _row_to_entry(row) if row else None


def get_due(conn: sqlite3.Connection, now: datetime) -> list[ScheduleEntry]:
    """Return ``scheduled`` entries for exactly this UTC minute, oldest id first."""
    cursor = conn.cursor()
    cursor.execute(
        f"""
        SELECT {COLUMNS} FROM specials_schedule
        WHERE status = ? AND scheduled_at = ?
        ORDER BY id ASC
        """,
        (STATUS_SCHEDULED, format_timestamp(truncate_to_minute(now))),
    )
    return [_row_to_entry(row) for row in cursor.fetchall()]


def claim(conn: sqlite3.Connection, schedule_id: int) -> bool:
    """Atomically move a row from ``scheduled`` to ``queued``.

    Returns:
        True if this caller now owns the row
    """
    cursor = conn.cursor()
    cursor.execute(
        """
        UPDATE specials_schedule SET status = ?, queued_at = ?
        WHERE id = ? AND status = ?
        """,
        (STATUS_QUEUED, format_timestamp(utc_now()), schedule_id, STATUS_SCHEDULED),
    )
    conn.commit()
    return cursor.rowcount == 1


def _finalize(
    conn: sqlite3.Connection,
    schedule_id: int,
    status: str,
    last_error: Optional[str],
) -> bool:
    cursor = conn.cursor()
    cursor.execute(
        """
        UPDATE specials_schedule SET status = ?, last_error = ?, queued_at = ?
        WHERE id = ? AND status IN (?, ?)
        """,
        (status, last_error, format_timestamp(utc_now()), schedule_id, *ACTIVE_STATUSES),
    )
    conn.commit()
    if cursor.rowcount != 1:
        logger.warning(f"Schedule {schedule_id} was not active; left unchanged")
        return False
    return True


def mark_done(conn: sqlite3.Connection, schedule_id: int) -> bool:
    return _finalize(conn, schedule_id, STATUS_DONE, None)


def mark_error(conn: sqlite3.Connection, schedule_id: int, message: str) -> bool:
    return _finalize(conn, schedule_id, STATUS_ERROR, message)


def cancel(conn: sqlite3.Connection, schedule_id: int) -> bool:
    """Cancel a ``scheduled`` row.

    Returns:
        True if the row transitioned, False if it was unknown or no longer
        scheduled
    """
    cursor = conn.cursor()
    cursor.execute(
        """
        UPDATE specials_schedule SET status = ?, canceled_at = ?
        WHERE id = ? AND status = ?
        """,
        (STATUS_CANCELED, format_timestamp(utc_now()), schedule_id, STATUS_SCHEDULED),
    )
    conn.commit()
    return cursor.rowcount == 1


def list_upcoming(conn: sqlite3.Connection, limit: int = 100) -> list[ScheduleEntry]:
    cursor = conn.cursor()
    cursor.execute(
        f"""
        SELECT {COLUMNS} FROM specials_schedule
        WHERE status = ?
        ORDER BY scheduled_at ASC, id ASC
        LIMIT ?
        """,
        (STATUS_SCHEDULED, limit),
    )
    return [_row_to_entry(row) for row in cursor.fetchall()]


def list_recent(conn: sqlite3.Connection, limit: int = 50) -> list[ScheduleEntry]:
    """All entries, most recently scheduled first (includes failures)."""
    cursor = conn.cursor()
    cursor.execute(
        f"""
        SELECT {COLUMNS} FROM specials_schedule
        ORDER BY scheduled_at DESC, id DESC
        LIMIT ?
        """,
        (limit,),
    )
    return [_row_to_entry(row) for row in cursor.fetchall()]
