"""Send next-day reminders for confirmed appointments.

Usage:
    python -m dental_backend.send_reminders

Meant to be triggered once a day by cron or another external scheduler.
"""
import json
import logging
import sys

from dental_backend.core import config
from dental_backend.database import SessionLocal, ensure_schema
from dental_backend.scheduling.notifications import DatabaseNotifier
from dental_backend.scheduling.reminders import run_reminder_batch


def main() -> int:
    logging.basicConfig(level=config.LOG_LEVEL, format='%(asctime)s %(levelname)s %(name)s: %(message)s')
    ensure_schema()

    db = SessionLocal()
    try:
        result = run_reminder_batch(db, DatabaseNotifier(db))
    finally:
        db.close()

    print(json.dumps(result.as_dict()))
    return 0


if __name__ == "__main__":
    sys.exit(main())
