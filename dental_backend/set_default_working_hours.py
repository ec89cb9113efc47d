"""Set the default weekly working hours for one or all dentists.

Usage:
    python -m dental_backend.set_default_working_hours [--dentist-id ID]
"""
import argparse
import logging
import sys

from dental_backend.core import config
from dental_backend.database import SessionLocal, ensure_schema
from dental_backend.scheduling.errors import SchedulingError
from dental_backend.scheduling.working_hours import (
    provision_default_working_hours,
    provision_default_working_hours_for_all,
)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument('--dentist-id', type=int, help='only set hours for this dentist')
    args = parser.parse_args(argv)

    logging.basicConfig(level=config.LOG_LEVEL, format='%(asctime)s %(levelname)s %(name)s: %(message)s')
    ensure_schema()

    db = SessionLocal()
    try:
        if args.dentist_id is not None:
            provision_default_working_hours(db, args.dentist_id)
            print(f"Default working hours have been set for dentist with ID: {args.dentist_id}")
        else:
            count = provision_default_working_hours_for_all(db)
            print(f"Default working hours have been set for {count} dentists")
    except SchedulingError as exc:
        print(exc.message, file=sys.stderr)
        return 1
    finally:
        db.close()

    return 0


if __name__ == "__main__":
    sys.exit(main())
