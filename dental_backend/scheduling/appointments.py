"""Appointment listing and the in-place edits that leave status untouched."""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from dental_backend.core import config
from dental_backend.models.appointment import STATUSES, Appointment
from dental_backend.models.user import ROLE_ADMIN, ROLE_DENTIST, ROLE_PATIENT, User
from dental_backend.scheduling.errors import RecordNotFoundError, ValidationError
from dental_backend.scheduling.lifecycle import get_appointment

logger = logging.getLogger(__name__)


def list_appointments_for(db: Session, user: User, status: Optional[str] = None) -> list[Appointment]:
    query = db.query(Appointment)
    if user.role == ROLE_PATIENT:
        query = query.filter(Appointment.patient_id == user.id)
    elif user.role == ROLE_DENTIST:
        query = query.filter(Appointment.dentist_id == user.id)

    if status is not None:
        if status not in STATUSES:
            raise ValidationError('Invalid appointment status.')
        query = query.filter(Appointment.status == status)

    return query.order_by(Appointment.start_datetime.desc()).all()


def get_visible_appointment(db: Session, appointment_id: int, user: User) -> Appointment:
    appointment = get_appointment(db, appointment_id)
    if user.role == ROLE_ADMIN or user.id in (appointment.patient_id, appointment.dentist_id):
        return appointment
    # Other people's appointments look the same as missing ones.
    raise RecordNotFoundError('Appointment not found.')


def update_treatment_notes(
    db: Session,
    appointment_id: int,
    dentist_id: int,
    treatment_notes: Optional[str],
) -> Appointment:
    if treatment_notes is not None and len(treatment_notes) > config.MAX_APPOINTMENT_NOTES_LENGTH:
        raise ValidationError(
            f'Treatment notes must be {config.MAX_APPOINTMENT_NOTES_LENGTH} characters or fewer.'
        )

    appointment = db.query(Appointment).filter(
        Appointment.id == appointment_id,
        Appointment.dentist_id == dentist_id,
    ).first()
    if appointment is None:
        raise RecordNotFoundError('Appointment not found.')

    appointment.treatment_notes = treatment_notes
    db.commit()
    db.refresh(appointment)
    logger.info('Treatment notes updated for appointment %s', appointment_id)
    return appointment


def set_payment_status(db: Session, appointment_id: int, is_paid: bool) -> Appointment:
    appointment = get_appointment(db, appointment_id)
    appointment.is_paid = is_paid
    db.commit()
    db.refresh(appointment)
    logger.info('Appointment %s marked as %s', appointment_id, 'paid' if is_paid else 'unpaid')
    return appointment
