from datetime import datetime
from decimal import Decimal

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from dental_backend.auth.dependencies import (
    get_current_admin,
    get_current_dentist,
    get_current_patient,
    get_current_user,
)
from dental_backend.core import config
from dental_backend.database import get_db
from dental_backend.models.appointment import STATUSES, Appointment
from dental_backend.models.user import User
from dental_backend.routes.common import database_unavailable, ensure_database_ready, to_http_exception
from dental_backend.scheduling import appointments as appointment_records
from dental_backend.scheduling.booking import book_appointment
from dental_backend.scheduling.errors import SchedulingError
from dental_backend.scheduling.lifecycle import transition
from dental_backend.scheduling.notifications import DatabaseNotifier

router = APIRouter(tags=['appointments'])


def _normalize_notes(value: str | None) -> str | None:
    if value is None:
        return None

    normalized = value.strip()
    if not normalized:
        return None

    if len(normalized) > config.MAX_APPOINTMENT_NOTES_LENGTH:
        raise ValueError(f'Notes must be {config.MAX_APPOINTMENT_NOTES_LENGTH} characters or fewer.')

    return normalized


class CreateAppointmentRequest(BaseModel):
    dentist_id: int
    service_id: int
    start_datetime: datetime
    notes: str | None = None

    @field_validator('start_datetime')
    @classmethod
    def validate_start_datetime(cls, value: datetime) -> datetime:
        if value.tzinfo is not None:
            raise ValueError('Appointment times must be given in clinic local time without a timezone.')
        return value.replace(second=0, microsecond=0)

    @field_validator('notes')
    @classmethod
    def validate_notes(cls, value: str | None) -> str | None:
        return _normalize_notes(value)


class TransitionRequest(BaseModel):
    status: str
    reason: str | None = None
    proposed_start: datetime | None = None

    @field_validator('status')
    @classmethod
    def validate_status(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized not in STATUSES:
            raise ValueError('Invalid appointment status.')
        return normalized

    @field_validator('reason')
    @classmethod
    def validate_reason(cls, value: str | None) -> str | None:
        if value is None:
            return None
        normalized = value.strip()
        if len(normalized) > 255:
            raise ValueError('Reason must be 255 characters or fewer.')
        return normalized or None


class TreatmentNotesRequest(BaseModel):
    treatment_notes: str | None = None

    @field_validator('treatment_notes')
    @classmethod
    def validate_treatment_notes(cls, value: str | None) -> str | None:
        return _normalize_notes(value)


class PaymentRequest(BaseModel):
    is_paid: bool


class AppointmentResponse(BaseModel):
    id: int
    patient_id: int
    dentist_id: int
    service_id: int
    start_datetime: datetime
    end_datetime: datetime
    duration_minutes: int
    status: str
    cost: Decimal
    notes: str | None = None
    treatment_notes: str | None = None
    cancellation_reason: str | None = None
    is_paid: bool

    class Config:
        from_attributes = True


def _to_response(appointment: Appointment) -> AppointmentResponse:
    return AppointmentResponse.model_validate(appointment)


@router.post('', response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
def create_appointment(
    data: CreateAppointmentRequest,
    current_user: User = Depends(get_current_patient),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        appointment = book_appointment(
            db,
            patient_id=current_user.id,
            dentist_id=data.dentist_id,
            service_id=data.service_id,
            start_datetime=data.start_datetime,
            notes=data.notes,
            notifier=DatabaseNotifier(db),
        )
        return _to_response(appointment)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc


@router.get('', response_model=list[AppointmentResponse])
def list_my_appointments(
    status_filter: str | None = Query(default=None, alias='status'),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        appointments = appointment_records.list_appointments_for(db, current_user, status=status_filter)
        return [_to_response(appointment) for appointment in appointments]
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable(exc) from exc


@router.get('/{appointment_id}', response_model=AppointmentResponse)
def get_appointment_details(
    appointment_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        return _to_response(appointment_records.get_visible_appointment(db, appointment_id, current_user))
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable(exc) from exc


@router.post('/{appointment_id}/transition', response_model=AppointmentResponse)
def change_appointment_status(
    appointment_id: int,
    data: TransitionRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        appointment_records.get_visible_appointment(db, appointment_id, current_user)
        appointment = transition(
            db,
            appointment_id,
            data.status,
            current_user.role,
            reason=data.reason,
            actor_id=current_user.id,
            proposed_start=data.proposed_start,
            notifier=DatabaseNotifier(db),
        )
        return _to_response(appointment)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc


@router.patch('/{appointment_id}/treatment-notes', response_model=AppointmentResponse)
def update_treatment_notes(
    appointment_id: int,
    data: TreatmentNotesRequest,
    current_user: User = Depends(get_current_dentist),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        appointment = appointment_records.update_treatment_notes(
            db,
            appointment_id,
            current_user.id,
            data.treatment_notes,
        )
        return _to_response(appointment)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc


@router.patch('/{appointment_id}/payment', response_model=AppointmentResponse)
def update_payment_status(
    appointment_id: int,
    data: PaymentRequest,
    current_user: User = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    del current_user
    ensure_database_ready()

    try:
        return _to_response(appointment_records.set_payment_status(db, appointment_id, data.is_paid))
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc
