from datetime import date, datetime, time

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from dental_backend.database import get_db
from dental_backend.routes.common import database_unavailable, ensure_database_ready, to_http_exception
from dental_backend.scheduling.availability import resolve_availability
from dental_backend.scheduling.errors import SchedulingError
from dental_backend.scheduling.lookups import get_dentist
from dental_backend.scheduling.slots import list_slots

router = APIRouter(tags=['availability'])


class OpenIntervalResponse(BaseModel):
    start: datetime
    end: datetime


class SlotResponse(BaseModel):
    time: time
    available: bool


@router.get('/{dentist_id}', response_model=list[OpenIntervalResponse])
def get_dentist_availability(
    dentist_id: int,
    date: date = Query(...),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        get_dentist(db, dentist_id)
        intervals = resolve_availability(db, dentist_id, date)
        return [OpenIntervalResponse(start=interval.start, end=interval.end) for interval in intervals]
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable(exc) from exc


@router.get('/{dentist_id}/slots', response_model=list[SlotResponse])
def get_available_time_slots(
    dentist_id: int,
    service_id: int = Query(...),
    date: date = Query(...),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        slots = list_slots(db, dentist_id, service_id, date)
        return [SlotResponse(time=slot.time, available=slot.available) for slot in slots]
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable(exc) from exc
