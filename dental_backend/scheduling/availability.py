"""
Availability resolution

Turns a dentist's weekly working-hour rule and the blocked dates of one
calendar day into the ordered, non-overlapping open intervals of that day:

1. Find the active rule for the date's weekday; none means closed.
2. Start from the rule's [start, end).
3. Subtract the recurring daily break (lunch), if configured.
4. Subtract each blocked date: a full-day block empties the day, a partial
   block may split an interval in two.
"""

import logging
from datetime import date, time
from typing import Iterable, Optional, Sequence

from sqlalchemy.orm import Session

from dental_backend.core import config
from dental_backend.models.blocked_date import BlockedDate
from dental_backend.models.working_hour import WorkingHourRule
from dental_backend.scheduling.intervals import Interval, subtract_all

logger = logging.getLogger(__name__)

TimeSpan = tuple[time, time]


def weekday_of(target_date: date) -> int:
    """Weekday number as stored on rules: 0 = Sunday ... 6 = Saturday."""
    return (target_date.weekday() + 1) % 7


def default_daily_breaks() -> list[TimeSpan]:
    lunch = config.lunch_break()
    return [lunch] if lunch else []


def resolve_open_intervals(
    target_date: date,
    rule: Optional[WorkingHourRule],
    blocked_dates: Sequence[BlockedDate] = (),
    daily_breaks: Iterable[TimeSpan] = (),
) -> list[Interval]:
    if rule is None or not rule.is_active:
        return []
    if rule.start_time >= rule.end_time:
        return []

    base = Interval.on_date(target_date, rule.start_time, rule.end_time)

    blocks = [Interval.on_date(target_date, start, end) for start, end in daily_breaks if start < end]
    for blocked in blocked_dates:
        if blocked.blocked_date != target_date:
            continue
        if blocked.is_full_day:
            return []
        if blocked.start_time < blocked.end_time:
            blocks.append(Interval.on_date(target_date, blocked.start_time, blocked.end_time))

    return subtract_all([base], blocks)


def get_working_hour_rule(db: Session, dentist_id: int, target_date: date) -> Optional[WorkingHourRule]:
    return db.query(WorkingHourRule).filter(
        WorkingHourRule.dentist_id == dentist_id,
        WorkingHourRule.weekday == weekday_of(target_date),
        WorkingHourRule.is_active.is_(True),
    ).order_by(WorkingHourRule.start_time.asc()).first()


def get_blocked_dates(db: Session, dentist_id: int, target_date: date) -> list[BlockedDate]:
    return db.query(BlockedDate).filter(
        BlockedDate.dentist_id == dentist_id,
        BlockedDate.blocked_date == target_date,
    ).all()


def resolve_availability(
    db: Session,
    dentist_id: int,
    target_date: date,
    daily_breaks: Optional[Iterable[TimeSpan]] = None,
) -> list[Interval]:
    rule = get_working_hour_rule(db, dentist_id, target_date)
    if rule is None:
        logger.info('Dentist %s does not work on %s', dentist_id, target_date.isoformat())
        return []

    if daily_breaks is None:
        daily_breaks = default_daily_breaks()

    return resolve_open_intervals(
        target_date,
        rule,
        get_blocked_dates(db, dentist_id, target_date),
        daily_breaks,
    )
