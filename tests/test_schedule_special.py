"""Tests for the schedule_special.py operator CLI."""

import sys
from pathlib import Path

import pytest

# Add scripts directory to path so we can import schedule_special
scripts_dir = Path(__file__).parent.parent / "scripts"
sys.path.insert(0, str(scripts_dir))

import schedule_special

from specials_radio import schedule_store
from specials_radio.config import PathsConfig, SpecialsConfig


@pytest.fixture
def cli(mocker, specials_config, fake_tool):
    mocker.patch("schedule_special.config", specials_config)
    mocker.patch("schedule_special.FFmpegMetadataTool", return_value=fake_tool)
    return schedule_special.main


def stored(specials_config):
    conn = schedule_store.connect(specials_config.paths.db_path)
    try:
        return schedule_store.list_recent(conn)
    finally:
        conn.close()


def test_files(cli, special_file, specials_dir, capsys):
    (specials_dir / "notes.txt").write_text("x")

    assert cli(["files"]) == 0
    assert capsys.readouterr().out.splitlines() == ["interview.mp3"]


def test_schedule_utc(cli, special_file, specials_config, capsys):
    assert cli(["schedule", "interview.mp3", "2025-01-01", "12:00", "--utc", "--by", "7"]) == 0

    assert "Special scheduled successfully" in capsys.readouterr().out
    [entry] = stored(specials_config)
    assert entry.status == "scheduled"
    assert entry.created_by == "7"
    assert schedule_store.format_timestamp(entry.scheduled_at) == "2025-01-01 12:00:00"


def test_schedule_with_timezone(cli, special_file, specials_config):
    argv = ["schedule", "interview.mp3", "2025-07-01", "08:00", "--tz", "America/New_York", "--by", "7"]

    assert cli(argv) == 0
    [entry] = stored(specials_config)
    assert schedule_store.format_timestamp(entry.scheduled_at) == "2025-07-01 12:00:00"


def test_schedule_rejected(cli, special_file, specials_config):
    assert cli(["schedule", "interview.mp3", "2025-01-01", "12:03", "--utc", "--by", "7"]) == 1
    assert stored(specials_config) == []


def test_schedule_requires_zone_choice(cli):
    with pytest.raises(SystemExit):
        cli(["schedule", "interview.mp3", "2025-01-01", "12:00"])


def test_cancel_and_list(cli, special_file, specials_config, capsys):
    cli(["schedule", "interview.mp3", "2025-01-01", "12:00", "--utc", "--by", "7"])
    [entry] = stored(specials_config)
    capsys.readouterr()

    assert cli(["list"]) == 0
    assert "interview.mp3" in capsys.readouterr().out

    assert cli(["cancel", str(entry.id)]) == 0
    assert cli(["cancel", str(entry.id)]) == 1

    cli(["list"])
    assert capsys.readouterr().out.strip().endswith("No scheduled specials.")

    cli(["history"])
    assert "canceled" in capsys.readouterr().out


def test_unconfigured_base_path(mocker):
    mocker.patch("schedule_special.config", SpecialsConfig(paths=PathsConfig(base_path=None)))

    assert schedule_special.main(["list"]) == 1
