"""
Slot generation

Steps through each open interval in fixed increments and offers every start
whose full service duration fits inside that same interval. Each candidate
is then marked available or not against the dentist's appointments of the
day.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Iterable, Iterator, Optional, Sequence

from sqlalchemy.orm import Session

from dental_backend.core import config
from dental_backend.scheduling.availability import TimeSpan, resolve_availability
from dental_backend.scheduling.conflicts import get_day_appointments, is_free
from dental_backend.scheduling.errors import ValidationError
from dental_backend.scheduling.intervals import Interval
from dental_backend.scheduling.lookups import get_dentist, get_service

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SlotOption:
    time: time
    available: bool


class SlotSequence:
    """Lazy, restartable sequence of candidate start datetimes."""

    def __init__(self, open_intervals: Sequence[Interval], duration_minutes: int, increment_minutes: int):
        if duration_minutes <= 0:
            raise ValueError('duration_minutes must be positive')
        if increment_minutes <= 0:
            raise ValueError('increment_minutes must be positive')
        self.open_intervals = tuple(open_intervals)
        self.duration = timedelta(minutes=duration_minutes)
        self.increment = timedelta(minutes=increment_minutes)

    def __iter__(self) -> Iterator[datetime]:
        for interval in self.open_intervals:
            current = interval.start
            while current + self.duration <= interval.end:
                yield current
                current += self.increment

    def intervals(self) -> Iterator[Interval]:
        for start in self:
            yield Interval(start, start + self.duration)


def annotate_slots(candidates: Iterable[Interval], appointments: Sequence) -> list[SlotOption]:
    return [SlotOption(time=candidate.start.time(), available=is_free(candidate, appointments)) for candidate in candidates]


def list_slots(
    db: Session,
    dentist_id: int,
    service_id: int,
    target_date: date,
    now: Optional[datetime] = None,
    increment_minutes: Optional[int] = None,
    daily_breaks: Optional[Iterable[TimeSpan]] = None,
) -> list[SlotOption]:
    now = now or datetime.now()
    if target_date < now.date():
        raise ValidationError('Slots can only be listed for today or a future date.')

    get_dentist(db, dentist_id)
    service = get_service(db, service_id)

    open_intervals = resolve_availability(db, dentist_id, target_date, daily_breaks=daily_breaks)
    sequence = SlotSequence(
        open_intervals,
        service.duration_minutes,
        increment_minutes or config.SLOT_INCREMENT_MINUTES,
    )
    upcoming = [candidate for candidate in sequence.intervals() if candidate.start > now]
    appointments = get_day_appointments(db, dentist_id, target_date)

    slots = annotate_slots(upcoming, appointments)
    logger.debug(
        'Listed %d slots for dentist %s, service %s on %s (%d booked appointments)',
        len(slots),
        dentist_id,
        service_id,
        target_date.isoformat(),
        len(appointments),
    )
    return slots
