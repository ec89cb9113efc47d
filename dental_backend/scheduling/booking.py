"""
Booking

Availability check and insert run as one unit: the dentist's row is locked
(``SELECT ... FOR UPDATE``; on SQLite every transaction already starts with
``BEGIN IMMEDIATE``, see ``database.configure_sqlite_locking``), overlap is
re-checked inside the transaction, and the partial unique index on
(dentist_id, start_datetime) rejects any insert that still slips through.
Losing the race surfaces as ``ConflictError``.
"""

import logging
from datetime import datetime, timedelta
from typing import Iterable, Optional

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session

from dental_backend.core import config
from dental_backend.database import is_lock_timeout
from dental_backend.models.appointment import STATUS_PENDING, Appointment
from dental_backend.models.dental_service import DentalService
from dental_backend.models.user import User
from dental_backend.scheduling.availability import TimeSpan
from dental_backend.scheduling.conflicts import ensure_bookable
from dental_backend.scheduling.errors import ConflictError, SchedulingError, ValidationError
from dental_backend.scheduling.intervals import Interval
from dental_backend.scheduling.lookups import get_dentist, get_patient, get_service
from dental_backend.scheduling.notifications import KIND_BOOKED, Notifier, notify_quietly

logger = logging.getLogger(__name__)


def normalize_start(start_datetime: datetime) -> datetime:
    if start_datetime.tzinfo is not None:
        raise ValidationError('Appointment times must be given in clinic local time without a timezone.')
    return start_datetime.replace(second=0, microsecond=0)


def lock_dentist_calendar(db: Session, dentist_id: int) -> None:
    db.query(User.id).filter(User.id == dentist_id).with_for_update().first()


def _resolve_references(db: Session, patient_id: int, dentist_id: int, service_id: int) -> DentalService:
    try:
        get_patient(db, patient_id)
        get_dentist(db, dentist_id)
        return get_service(db, service_id)
    except SchedulingError as exc:
        logger.warning(
            'Booking rejected for patient %s, dentist %s, service %s: %s',
            patient_id,
            dentist_id,
            service_id,
            exc.message,
        )
        raise


def book_appointment(
    db: Session,
    patient_id: int,
    dentist_id: int,
    service_id: int,
    start_datetime: datetime,
    notes: Optional[str] = None,
    now: Optional[datetime] = None,
    notifier: Optional[Notifier] = None,
    daily_breaks: Optional[Iterable[TimeSpan]] = None,
) -> Appointment:
    now = now or datetime.now()
    start_datetime = normalize_start(start_datetime)

    if start_datetime <= now:
        raise ValidationError('Appointments must be scheduled in the future.')
    if notes is not None and len(notes) > config.MAX_APPOINTMENT_NOTES_LENGTH:
        raise ValidationError(f'Notes must be {config.MAX_APPOINTMENT_NOTES_LENGTH} characters or fewer.')

    try:
        service = _resolve_references(db, patient_id, dentist_id, service_id)
        candidate = Interval(start_datetime, start_datetime + timedelta(minutes=service.duration_minutes))

        lock_dentist_calendar(db, dentist_id)
        ensure_bookable(db, dentist_id, candidate, daily_breaks=daily_breaks)

        appointment = Appointment(
            patient_id=patient_id,
            dentist_id=dentist_id,
            service_id=service_id,
            status=STATUS_PENDING,
            cost=service.price,
            notes=notes,
            is_paid=False,
        )
        appointment.schedule(start_datetime, service.duration_minutes)
        db.add(appointment)
        db.flush()
    except ConflictError as exc:
        db.rollback()
        logger.info('Dentist %s not available at %s: %s', dentist_id, start_datetime.isoformat(), exc.message)
        raise
    except SchedulingError:
        db.rollback()
        raise
    except IntegrityError as exc:
        db.rollback()
        logger.warning('Concurrent booking lost for dentist %s at %s', dentist_id, start_datetime.isoformat())
        raise ConflictError('The selected time is no longer available. Please choose another time.') from exc
    except OperationalError as exc:
        db.rollback()
        if not is_lock_timeout(exc):
            raise
        logger.warning('Timed out waiting for the calendar of dentist %s', dentist_id)
        raise ConflictError('The dentist\'s calendar is busy. Please try again.') from exc

    db.commit()
    db.refresh(appointment)
    logger.info(
        'Appointment %s booked: patient %s, dentist %s, %s for %d minutes',
        appointment.id,
        patient_id,
        dentist_id,
        start_datetime.isoformat(),
        service.duration_minutes,
    )

    notify_quietly(notifier, appointment.patient_id, appointment, KIND_BOOKED)
    notify_quietly(notifier, appointment.dentist_id, appointment, KIND_BOOKED)

    return appointment
