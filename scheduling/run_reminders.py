"""Run a single reminder pass and print what it did.

Usage:
    python -m scheduling.run_reminders
"""
import logging
import sys

from scheduling.core import config
from scheduling.core.errors import StorageUnavailable
from scheduling.database import SessionLocal
from scheduling.engine.reminders import ReminderScheduler


def main() -> None:
    logging.basicConfig(level=getattr(logging, config.LOG_LEVEL.upper(), logging.INFO))
    try:
        run = ReminderScheduler(SessionLocal).run_once()
    except StorageUnavailable as exc:
        print(f"Reminder run failed: {exc}", file=sys.stderr)
        sys.exit(1)
    print(
        f"Window {run.window_start:%Y-%m-%d %H:%M} - {run.window_end:%H:%M}: "
        f"{run.selected} selected, {run.sent} sent, {run.failed} failed, "
        f"{run.without_contact} without contact"
    )


if __name__ == "__main__":
    main()
