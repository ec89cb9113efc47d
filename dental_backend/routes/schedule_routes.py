from datetime import date, time

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, field_validator, model_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from dental_backend.auth.dependencies import get_current_dentist
from dental_backend.database import get_db
from dental_backend.models.user import User
from dental_backend.routes.common import database_unavailable, ensure_database_ready, to_http_exception
from dental_backend.scheduling import working_hours
from dental_backend.scheduling.errors import SchedulingError

router = APIRouter(tags=['schedule'])


class WorkingHourRequest(BaseModel):
    weekday: int
    start_time: time
    end_time: time

    @field_validator('weekday')
    @classmethod
    def validate_weekday(cls, value: int) -> int:
        if not 0 <= value <= 6:
            raise ValueError('Weekday must be between 0 (Sunday) and 6 (Saturday).')
        return value

    @model_validator(mode='after')
    def validate_range(self) -> 'WorkingHourRequest':
        if self.end_time <= self.start_time:
            raise ValueError('End time must be after start time.')
        return self


class UpdateWorkingHourRequest(BaseModel):
    start_time: time
    end_time: time
    is_active: bool

    @model_validator(mode='after')
    def validate_range(self) -> 'UpdateWorkingHourRequest':
        if self.end_time <= self.start_time:
            raise ValueError('End time must be after start time.')
        return self


class WorkingHourResponse(BaseModel):
    id: int
    weekday: int
    day_name: str
    start_time: time
    end_time: time
    is_active: bool

    class Config:
        from_attributes = True


class BlockedDateRequest(BaseModel):
    blocked_date: date
    start_time: time | None = None
    end_time: time | None = None
    reason: str | None = None

    @field_validator('reason')
    @classmethod
    def validate_reason(cls, value: str | None) -> str | None:
        if value is None:
            return None
        normalized = value.strip()
        if not normalized:
            return None
        if len(normalized) > 255:
            raise ValueError('Reason must be 255 characters or fewer.')
        return normalized


class BlockedDateResponse(BaseModel):
    id: int
    blocked_date: date
    start_time: time | None = None
    end_time: time | None = None
    reason: str | None = None
    is_full_day: bool

    class Config:
        from_attributes = True


@router.get('/working-hours', response_model=list[WorkingHourResponse])
def list_working_hours(
    current_user: User = Depends(get_current_dentist),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        return working_hours.list_working_hours(db, current_user.id)
    except SQLAlchemyError as exc:
        raise database_unavailable(exc) from exc


@router.post('/working-hours', response_model=WorkingHourResponse, status_code=status.HTTP_201_CREATED)
def create_working_hour(
    data: WorkingHourRequest,
    current_user: User = Depends(get_current_dentist),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        return working_hours.create_working_hour(db, current_user.id, data.weekday, data.start_time, data.end_time)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc


@router.post('/working-hours/defaults', response_model=list[WorkingHourResponse])
def set_default_working_hours(
    current_user: User = Depends(get_current_dentist),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        working_hours.provision_default_working_hours(db, current_user.id)
        return working_hours.list_working_hours(db, current_user.id)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc


@router.put('/working-hours/{rule_id}', response_model=WorkingHourResponse)
def update_working_hour(
    rule_id: int,
    data: UpdateWorkingHourRequest,
    current_user: User = Depends(get_current_dentist),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        return working_hours.update_working_hour(
            db,
            current_user.id,
            rule_id,
            data.start_time,
            data.end_time,
            data.is_active,
        )
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc


@router.delete('/working-hours/{rule_id}', status_code=status.HTTP_204_NO_CONTENT)
def delete_working_hour(
    rule_id: int,
    current_user: User = Depends(get_current_dentist),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        working_hours.delete_working_hour(db, current_user.id, rule_id)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc


@router.get('/blocked-dates', response_model=list[BlockedDateResponse])
def list_blocked_dates(
    current_user: User = Depends(get_current_dentist),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        return working_hours.list_blocked_dates(db, current_user.id, date.today())
    except SQLAlchemyError as exc:
        raise database_unavailable(exc) from exc


@router.post('/blocked-dates', response_model=BlockedDateResponse, status_code=status.HTTP_201_CREATED)
def create_blocked_date(
    data: BlockedDateRequest,
    current_user: User = Depends(get_current_dentist),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        return working_hours.create_blocked_date(
            db,
            current_user.id,
            data.blocked_date,
            date.today(),
            start_time=data.start_time,
            end_time=data.end_time,
            reason=data.reason,
        )
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc


@router.delete('/blocked-dates/{blocked_date_id}', status_code=status.HTTP_204_NO_CONTENT)
def delete_blocked_date(
    blocked_date_id: int,
    current_user: User = Depends(get_current_dentist),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        working_hours.delete_blocked_date(db, current_user.id, blocked_date_id)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc
