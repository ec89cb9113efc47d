"""
Appointment lifecycle

The transition table below is the only description of which status changes
are legal and who may make them. ``transition`` is the only code path that
writes ``Appointment.status``; each write is a compare-and-set on the status
read at the start, so a concurrent change makes the second writer fail
instead of overwriting the first.

    pending   -> confirmed   dentist
    pending   -> suggested   dentist  (new start time, re-validated)
    pending   -> cancelled   dentist, patient (patient needs notice)
    suggested -> confirmed   patient
    suggested -> cancelled   patient, dentist
    confirmed -> completed   dentist
    confirmed -> cancelled   dentist, patient (patient needs notice)
    confirmed -> no_show     admin
"""

import logging
from datetime import datetime, timedelta
from typing import Iterable, Optional

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session

from dental_backend.core import config
from dental_backend.database import is_lock_timeout
from dental_backend.models.appointment import (
    STATUS_CANCELLED,
    STATUS_COMPLETED,
    STATUS_CONFIRMED,
    STATUS_NO_SHOW,
    STATUS_PENDING,
    STATUS_SUGGESTED,
    Appointment,
)
from dental_backend.models.user import ROLE_ADMIN, ROLE_DENTIST, ROLE_PATIENT
from dental_backend.scheduling.availability import TimeSpan
from dental_backend.scheduling.booking import lock_dentist_calendar, normalize_start
from dental_backend.scheduling.conflicts import ensure_bookable
from dental_backend.scheduling.errors import (
    ConflictError,
    IllegalTransitionError,
    RecordNotFoundError,
    ValidationError,
)
from dental_backend.scheduling.intervals import Interval
from dental_backend.scheduling.notifications import KIND_STATUS_CHANGED, Notifier, notify_quietly

logger = logging.getLogger(__name__)

TRANSITIONS: dict[tuple[str, str], frozenset[str]] = {
    (STATUS_PENDING, STATUS_CONFIRMED): frozenset({ROLE_DENTIST}),
    (STATUS_PENDING, STATUS_SUGGESTED): frozenset({ROLE_DENTIST}),
    (STATUS_PENDING, STATUS_CANCELLED): frozenset({ROLE_DENTIST, ROLE_PATIENT}),
    (STATUS_SUGGESTED, STATUS_CONFIRMED): frozenset({ROLE_PATIENT}),
    (STATUS_SUGGESTED, STATUS_CANCELLED): frozenset({ROLE_PATIENT, ROLE_DENTIST}),
    (STATUS_CONFIRMED, STATUS_COMPLETED): frozenset({ROLE_DENTIST}),
    (STATUS_CONFIRMED, STATUS_CANCELLED): frozenset({ROLE_DENTIST, ROLE_PATIENT}),
    (STATUS_CONFIRMED, STATUS_NO_SHOW): frozenset({ROLE_ADMIN}),
}

# Sources from which a patient cancellation needs advance notice.
NOTICE_REQUIRED_FROM = frozenset({STATUS_PENDING, STATUS_CONFIRMED})

TERMINAL_STATUSES = frozenset({STATUS_COMPLETED, STATUS_CANCELLED, STATUS_NO_SHOW})


def allowed_actors(current_status: str, target_status: str) -> frozenset[str]:
    return TRANSITIONS.get((current_status, target_status), frozenset())


def get_appointment(db: Session, appointment_id: int) -> Appointment:
    appointment = db.query(Appointment).filter(Appointment.id == appointment_id).first()
    if appointment is None:
        raise RecordNotFoundError('Appointment not found.')
    return appointment


def check_participant(appointment: Appointment, actor_role: str, actor_id: Optional[int]) -> None:
    if actor_id is None:
        return
    if actor_role == ROLE_PATIENT and appointment.patient_id != actor_id:
        raise IllegalTransitionError('Only the patient who booked this appointment can change it.')
    if actor_role == ROLE_DENTIST and appointment.dentist_id != actor_id:
        raise IllegalTransitionError('Only the dentist of this appointment can change it.')


def check_transition(
    appointment: Appointment,
    target_status: str,
    actor_role: str,
    now: datetime,
) -> None:
    current_status = appointment.status

    if current_status in TERMINAL_STATUSES:
        raise IllegalTransitionError(f'A {current_status} appointment cannot be changed.')

    actors = allowed_actors(current_status, target_status)
    if not actors:
        raise IllegalTransitionError(f'Cannot move an appointment from {current_status} to {target_status}.')
    if actor_role not in actors:
        raise IllegalTransitionError(
            f'The {actor_role} role cannot move an appointment from {current_status} to {target_status}.'
        )

    if (
        target_status == STATUS_CANCELLED
        and actor_role == ROLE_PATIENT
        and current_status in NOTICE_REQUIRED_FROM
    ):
        notice = timedelta(hours=config.PATIENT_CANCELLATION_NOTICE_HOURS)
        if appointment.start_datetime - now < notice:
            raise IllegalTransitionError(
                f'Appointments can only be cancelled at least '
                f'{config.PATIENT_CANCELLATION_NOTICE_HOURS} hours in advance.'
            )


def _suggestion_values(
    db: Session,
    appointment: Appointment,
    proposed_start: Optional[datetime],
    note: Optional[str],
    now: datetime,
    daily_breaks: Optional[Iterable[TimeSpan]],
) -> dict:
    if proposed_start is None:
        raise ValidationError('A new start time is required to suggest a time.')
    proposed_start = normalize_start(proposed_start)
    if proposed_start <= now:
        raise ValidationError('The suggested time must be in the future.')

    candidate = Interval(proposed_start, proposed_start + timedelta(minutes=appointment.duration_minutes))
    lock_dentist_calendar(db, appointment.dentist_id)
    ensure_bookable(
        db,
        appointment.dentist_id,
        candidate,
        exclude_appointment_id=appointment.id,
        daily_breaks=daily_breaks,
    )

    suggestion_note = (
        'Dentist suggested a new time. Original time was: '
        f"{appointment.start_datetime.strftime('%Y-%m-%d %H:%M')}"
    )
    notes = f'{appointment.notes}\n\n{suggestion_note}' if appointment.notes else suggestion_note
    if note:
        notes += f"\n\nDentist's note: {note}"

    return {
        Appointment.start_datetime: candidate.start,
        Appointment.end_datetime: candidate.end,
        Appointment.notes: notes,
    }


def transition(
    db: Session,
    appointment_id: int,
    target_status: str,
    actor_role: str,
    reason: Optional[str] = None,
    actor_id: Optional[int] = None,
    proposed_start: Optional[datetime] = None,
    now: Optional[datetime] = None,
    notifier: Optional[Notifier] = None,
    daily_breaks: Optional[Iterable[TimeSpan]] = None,
) -> Appointment:
    now = now or datetime.now()
    appointment = get_appointment(db, appointment_id)
    current_status = appointment.status

    check_participant(appointment, actor_role, actor_id)
    check_transition(appointment, target_status, actor_role, now)

    values: dict = {Appointment.status: target_status}
    if target_status == STATUS_CANCELLED:
        reason = (reason or '').strip()
        if not reason:
            raise ValidationError('A cancellation reason is required.')
        if len(reason) > 255:
            raise ValidationError('Reason must be 255 characters or fewer.')
        values[Appointment.cancellation_reason] = reason

    try:
        if target_status == STATUS_SUGGESTED:
            values.update(_suggestion_values(db, appointment, proposed_start, reason, now, daily_breaks))

        updated = db.query(Appointment).filter(
            Appointment.id == appointment_id,
            Appointment.status == current_status,
        ).update(values, synchronize_session=False)
    except (ConflictError, ValidationError):
        db.rollback()
        raise
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError('The suggested time is no longer available.') from exc
    except OperationalError as exc:
        db.rollback()
        if not is_lock_timeout(exc):
            raise
        raise ConflictError('The dentist\'s calendar is busy. Please try again.') from exc

    if updated != 1:
        db.rollback()
        logger.warning(
            'Appointment %s changed status concurrently; %s -> %s rejected',
            appointment_id,
            current_status,
            target_status,
        )
        raise IllegalTransitionError('The appointment was changed by someone else. Please reload it.')

    db.commit()
    db.refresh(appointment)
    logger.info(
        'Appointment %s moved %s -> %s by %s%s',
        appointment_id,
        current_status,
        target_status,
        actor_role,
        f' {actor_id}' if actor_id is not None else '',
    )

    detail = f'Reason: {appointment.cancellation_reason}' if target_status == STATUS_CANCELLED else None
    if actor_role != ROLE_PATIENT:
        notify_quietly(notifier, appointment.patient_id, appointment, KIND_STATUS_CHANGED, detail)
    if actor_role != ROLE_DENTIST:
        notify_quietly(notifier, appointment.dentist_id, appointment, KIND_STATUS_CHANGED, detail)

    return appointment
