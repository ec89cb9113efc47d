"""
Conflict detection

A candidate interval is bookable for a dentist when it lies entirely inside
one resolved open interval and does not overlap any of the dentist's
non-cancelled appointments. Overlap is the single half-open predicate from
``intervals.overlaps``.
"""

import logging
from datetime import date, datetime, time, timedelta
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from dental_backend.models.appointment import STATUS_CANCELLED, Appointment
from dental_backend.scheduling.availability import (
    TimeSpan,
    default_daily_breaks,
    get_blocked_dates,
    get_working_hour_rule,
    resolve_open_intervals,
)
from dental_backend.scheduling.errors import ConflictError
from dental_backend.scheduling.intervals import Interval, overlaps

logger = logging.getLogger(__name__)


def is_free(candidate: Interval, appointments: Iterable[Appointment]) -> bool:
    return not any(
        overlaps(candidate.start, candidate.end, appointment.start_datetime, appointment.end_datetime)
        for appointment in appointments
    )


def fits_open_intervals(candidate: Interval, open_intervals: Iterable[Interval]) -> bool:
    return any(interval.contains(candidate) for interval in open_intervals)


def get_day_appointments(db: Session, dentist_id: int, target_date: date) -> list[Appointment]:
    day_start = datetime.combine(target_date, time.min)
    day_end = day_start + timedelta(days=1)

    return db.query(Appointment).filter(
        Appointment.dentist_id == dentist_id,
        Appointment.status != STATUS_CANCELLED,
        Appointment.start_datetime < day_end,
        Appointment.end_datetime > day_start,
    ).order_by(Appointment.start_datetime.asc()).all()


def find_overlapping_appointments(
    db: Session,
    dentist_id: int,
    start_datetime: datetime,
    end_datetime: datetime,
    exclude_appointment_id: Optional[int] = None,
) -> list[Appointment]:
    query = db.query(Appointment).filter(
        Appointment.dentist_id == dentist_id,
        Appointment.status != STATUS_CANCELLED,
        Appointment.start_datetime < end_datetime,
        Appointment.end_datetime > start_datetime,
    )
    if exclude_appointment_id is not None:
        query = query.filter(Appointment.id != exclude_appointment_id)
    return query.all()


def ensure_bookable(
    db: Session,
    dentist_id: int,
    candidate: Interval,
    exclude_appointment_id: Optional[int] = None,
    daily_breaks: Optional[Iterable[TimeSpan]] = None,
) -> None:
    """Raise ``ConflictError`` unless ``candidate`` can be booked right now."""
    target_date = candidate.start.date()

    rule = get_working_hour_rule(db, dentist_id, target_date)
    if rule is None:
        raise ConflictError('The dentist does not work on this day.')

    if not Interval.on_date(target_date, rule.start_time, rule.end_time).contains(candidate):
        raise ConflictError('The selected time is outside the dentist\'s working hours.')

    if daily_breaks is None:
        daily_breaks = default_daily_breaks()
    open_intervals = resolve_open_intervals(
        target_date,
        rule,
        get_blocked_dates(db, dentist_id, target_date),
        daily_breaks,
    )
    if not fits_open_intervals(candidate, open_intervals):
        raise ConflictError('The selected time falls within a break or a blocked period.')

    overlapping = find_overlapping_appointments(
        db,
        dentist_id,
        candidate.start,
        candidate.end,
        exclude_appointment_id=exclude_appointment_id,
    )
    if overlapping:
        logger.info(
            'Candidate %s-%s for dentist %s overlaps appointments %s',
            candidate.start.isoformat(),
            candidate.end.isoformat(),
            dentist_id,
            [appointment.id for appointment in overlapping],
        )
        raise ConflictError('The selected time is no longer available. Please choose another time.')
