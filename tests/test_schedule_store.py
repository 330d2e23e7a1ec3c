"""Tests for schedule table operations."""

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from specials_radio import schedule_store
from specials_radio.schedule_store import (
    STATUS_CANCELED,
    STATUS_DONE,
    STATUS_ERROR,
    STATUS_QUEUED,
    STATUS_SCHEDULED,
)

NOON = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)


def add(conn, scheduled_at=NOON, filename="show.mp3"):
    return schedule_store.insert_schedule(
        conn, filename, Path(f"/srv/radio/specials/{filename}"), scheduled_at, "7"
    )


def test_insert_creates_scheduled_entry(db_conn):
    schedule_id = add(db_conn)

    entry = schedule_store.get_schedule(db_conn, schedule_id)

    assert entry.status == STATUS_SCHEDULED
    assert entry.filename == "show.mp3"
    assert entry.full_path == Path("/srv/radio/specials/show.mp3")
    assert entry.scheduled_at == NOON
    assert entry.created_by == "7"
    assert entry.queued_at is None
    assert entry.canceled_at is None
    assert entry.last_error is None


def test_ids_increase(db_conn):
    first = add(db_conn)
    second = add(db_conn, NOON + timedelta(minutes=5))
    assert second > first


def test_scheduled_at_stored_as_utc_text(db_conn):
    add(db_conn)
    row = db_conn.execute("SELECT scheduled_at FROM specials_schedule").fetchone()
    assert row[0] == "2025-01-01 12:00:00"


def test_aware_non_utc_time_is_converted(db_conn):
    plus_two = timezone(timedelta(hours=2))
    schedule_id = add(db_conn, datetime(2025, 1, 1, 14, 0, tzinfo=plus_two))

    assert schedule_store.get_schedule(db_conn, schedule_id).scheduled_at == NOON


@pytest.mark.parametrize("bad", [
    NOON.replace(minute=7),
    NOON.replace(second=30),
    NOON.replace(microsecond=1),
])
def test_insert_rejects_unaligned_time(db_conn, bad):
    with pytest.raises(ValueError, match="5-minute boundary"):
        add(db_conn, bad)
    assert db_conn.execute("SELECT COUNT(*) FROM specials_schedule").fetchone()[0] == 0


def test_get_schedule_not_found(db_conn):
    assert schedule_store.get_schedule(db_conn, 999) is None


def test_find_active_at(db_conn):
    assert schedule_store.find_active_at(db_conn, NOON) is None

    schedule_id = add(db_conn)
    assert schedule_store.find_active_at(db_conn, NOON).id == schedule_id
    assert schedule_store.find_active_at(db_conn, NOON + timedelta(minutes=5)) is None


@pytest.mark.parametrize("finish", [
    lambda conn, i: schedule_store.cancel(conn, i),
    lambda conn, i: schedule_store.claim(conn, i) and schedule_store.mark_done(conn, i),
    lambda conn, i: schedule_store.claim(conn, i) and schedule_store.mark_error(conn, i, "boom"),
])
def test_terminal_entries_free_their_slot(db_conn, finish):
    schedule_id = add(db_conn)
    assert finish(db_conn, schedule_id)

    assert schedule_store.find_active_at(db_conn, NOON) is None


def test_claimed_entry_still_occupies_slot(db_conn):
    schedule_id = add(db_conn)
    schedule_store.claim(db_conn, schedule_id)

    assert schedule_store.find_active_at(db_conn, NOON).status == STATUS_QUEUED


def test_get_due_matches_exact_minute_in_id_order(db_conn):
    first = add(db_conn, filename="a.mp3")
    second = add(db_conn, filename="b.mp3")
    add(db_conn, NOON + timedelta(minutes=5), filename="later.mp3")

    due = schedule_store.get_due(db_conn, NOON + timedelta(seconds=42))

    assert [entry.id for entry in due] == [first, second]


def test_get_due_ignores_past_minutes(db_conn):
    add(db_conn)
    assert schedule_store.get_due(db_conn, NOON + timedelta(minutes=1)) == []


def test_get_due_ignores_non_scheduled(db_conn):
    schedule_id = add(db_conn)
    schedule_store.cancel(db_conn, schedule_id)

    assert schedule_store.get_due(db_conn, NOON) == []


def test_claim_only_once(db_conn):
    schedule_id = add(db_conn)

    assert schedule_store.claim(db_conn, schedule_id) is True
    assert schedule_store.claim(db_conn, schedule_id) is False

    entry = schedule_store.get_schedule(db_conn, schedule_id)
    assert entry.status == STATUS_QUEUED
    assert entry.queued_at is not None


def test_mark_done_clears_error(db_conn):
    schedule_id = add(db_conn)
    db_conn.execute("UPDATE specials_schedule SET last_error = 'old' WHERE id = ?", (schedule_id,))
    schedule_store.claim(db_conn, schedule_id)

    assert schedule_store.mark_done(db_conn, schedule_id) is True

    entry = schedule_store.get_schedule(db_conn, schedule_id)
    assert entry.status == STATUS_DONE
    assert entry.last_error is None
    assert entry.queued_at is not None


def test_mark_error_records_message(db_conn):
    schedule_id = add(db_conn)
    schedule_store.claim(db_conn, schedule_id)

    schedule_store.mark_error(db_conn, schedule_id, "File missing")

    entry = schedule_store.get_schedule(db_conn, schedule_id)
    assert entry.status == STATUS_ERROR
    assert entry.last_error == "File missing"
    assert entry.queued_at is not None


@pytest.mark.parametrize("terminal", [STATUS_DONE, STATUS_ERROR, STATUS_CANCELED])
def test_terminal_entries_are_not_finalized_again(db_conn, terminal):
    schedule_id = add(db_conn)
    db_conn.execute("UPDATE specials_schedule SET status = ? WHERE id = ?", (terminal, schedule_id))

    assert schedule_store.mark_done(db_conn, schedule_id) is False
    assert schedule_store.mark_error(db_conn, schedule_id, "late") is False
    assert schedule_store.get_schedule(db_conn, schedule_id).status == terminal


def test_cancel_scheduled(db_conn):
    schedule_id = add(db_conn)

    assert schedule_store.cancel(db_conn, schedule_id) is True

    entry = schedule_store.get_schedule(db_conn, schedule_id)
    assert entry.status == STATUS_CANCELED
    assert entry.canceled_at is not None


@pytest.mark.parametrize("status", [STATUS_QUEUED, STATUS_DONE, STATUS_ERROR, STATUS_CANCELED])
def test_cancel_only_from_scheduled(db_conn, status):
    schedule_id = add(db_conn)
    db_conn.execute("UPDATE specials_schedule SET status = ? WHERE id = ?", (status, schedule_id))

    assert schedule_store.cancel(db_conn, schedule_id) is False
    assert schedule_store.get_schedule(db_conn, schedule_id).status == status


def test_cancel_unknown_id(db_conn):
    assert schedule_store.cancel(db_conn, 12345) is False


def test_list_upcoming_orders_by_time(db_conn):
    late = add(db_conn, NOON + timedelta(hours=1), "late.mp3")
    early = add(db_conn, NOON, "early.mp3")
    canceled = add(db_conn, NOON + timedelta(minutes=5), "gone.mp3")
    schedule_store.cancel(db_conn, canceled)

    upcoming = schedule_store.list_upcoming(db_conn)

    assert [entry.id for entry in upcoming] == [early, late]


def test_list_recent_includes_all_statuses(db_conn):
    first = add(db_conn, NOON, "a.mp3")
    second = add(db_conn, NOON + timedelta(minutes=5), "b.mp3")
    schedule_store.claim(db_conn, first)
    schedule_store.mark_error(db_conn, first, "File missing")

    recent = schedule_store.list_recent(db_conn, limit=10)

    assert [entry.id for entry in recent] == [second, first]
    assert recent[1].last_error == "File missing"


def test_to_dict_formats_timestamps(db_conn):
    schedule_id = add(db_conn)
    data = schedule_store.get_schedule(db_conn, schedule_id).to_dict()

    assert data["scheduled_at"] == "2025-01-01 12:00:00"
    assert data["full_path"] == "/srv/radio/specials/show.mp3"
    assert data["queued_at"] is None


def test_connect_creates_database(tmp_path):
    db_path = tmp_path / "db" / "specials.sqlite3"
    conn = schedule_store.connect(db_path)
    try:
        assert db_path.exists()
        assert schedule_store.list_upcoming(conn) == []
    finally:
        conn.close()
