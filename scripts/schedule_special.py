#!/usr/bin/env python3
"""Schedule, cancel and list special broadcasts from the command line.

Usage:
    ./scripts/schedule_special.py files
    ./scripts/schedule_special.py schedule interview.mp3 2025-01-01 12:00 --utc
    ./scripts/schedule_special.py schedule interview.mp3 2025-01-01 08:00 --tz America/New_York
    ./scripts/schedule_special.py list
    ./scripts/schedule_special.py history --limit 20
    ./scripts/schedule_special.py cancel 42

Exit codes:
    0: Success
    1: Request rejected or failed
"""

import argparse
import getpass
import logging
import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from specials_radio.config import config
from specials_radio.errors import ConfigurationError, ScheduleValidationError
from specials_radio.metadata_tool import FFmpegMetadataTool
from specials_radio.scheduling import SchedulingService
from specials_radio import schedule_store

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Manage scheduled special broadcasts")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("files", help="List schedulable files in the specials directory")

    schedule = sub.add_parser("schedule", help="Schedule a special")
    schedule.add_argument("filename")
    schedule.add_argument("date", help="YYYY-MM-DD")
    schedule.add_argument("time", help="HH:MM on a 5-minute boundary")
    zone = schedule.add_mutually_exclusive_group(required=True)
    zone.add_argument("--utc", action="store_true", help="date/time are UTC")
    zone.add_argument("--tz", help="IANA timezone of date/time")
    schedule.add_argument("--by", default=None, help="Operator id (default: current user)")

    cancel = sub.add_parser("cancel", help="Cancel a scheduled special")
    cancel.add_argument("schedule_id", type=int)

    sub.add_parser("list", help="List upcoming specials")

    history = sub.add_parser("history", help="List recent specials of any status")
    history.add_argument("--limit", type=int, default=50)

    return parser


def print_entries(entries) -> None:
    if not entries:
        print("No scheduled specials.")
        return
    for entry in entries:
        line = (
            f"{entry.id:>5}  {schedule_store.format_timestamp(entry.scheduled_at)} UTC  "
            f"{entry.status:<9}  {entry.filename}"
        )
        if entry.last_error:
            line += f"  ({entry.last_error})"
        print(line)


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    if config.paths.db_path is None:
        logger.error("RADIO_BASE_PATH is not configured")
        return 1

    conn = schedule_store.connect(config.paths.db_path)
    service = SchedulingService(config, conn, FFmpegMetadataTool(config.tools))

    try:
        if args.command == "files":
            for name in service.list_special_files():
                print(name)

        elif args.command == "schedule":
            created_by = args.by or getpass.getuser()
            if args.utc:
                entry = service.schedule(args.filename, args.date, args.time, created_by)
            else:
                entry = service.schedule_local(
                    args.filename, args.date, args.time, args.tz, created_by
                )
            print(
                f"Special scheduled successfully (id={entry.id}, "
                f"{schedule_store.format_timestamp(entry.scheduled_at)} UTC)."
            )

        elif args.command == "cancel":
            if service.cancel(args.schedule_id):
                print("Schedule entry canceled.")
            else:
                print(f"Schedule entry {args.schedule_id} is not scheduled; nothing canceled.")
                return 1

        elif args.command == "list":
            print_entries(service.upcoming())

        elif args.command == "history":
            print_entries(service.history(args.limit))

        return 0

    except (ScheduleValidationError, ConfigurationError) as e:
        logger.error(str(e))
        return 1
    finally:
        conn.close()


if __name__ == "__main__":
    sys.exit(main())
