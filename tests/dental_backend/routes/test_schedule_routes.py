from datetime import date, time

import pytest
from fastapi import HTTPException
from pydantic import ValidationError

import dental_backend.routes.schedule_routes as schedule_routes
from dental_backend.routes.schedule_routes import (
    BlockedDateRequest,
    UpdateWorkingHourRequest,
    WorkingHourRequest,
    WorkingHourResponse,
    create_blocked_date,
    create_working_hour,
    delete_working_hour,
    list_blocked_dates,
    list_working_hours,
    set_default_working_hours,
    update_working_hour,
)


@pytest.fixture(autouse=True)
def skip_schema_check(monkeypatch) -> None:
    monkeypatch.setattr(schedule_routes, 'ensure_database_ready', lambda: None)


def test_working_hour_request_rejects_bad_weekday() -> None:
    with pytest.raises(ValidationError):
        WorkingHourRequest(weekday=7, start_time=time(9, 0), end_time=time(17, 0))


def test_working_hour_request_rejects_inverted_range() -> None:
    with pytest.raises(ValidationError):
        UpdateWorkingHourRequest(start_time=time(17, 0), end_time=time(9, 0), is_active=True)


def test_blocked_date_request_normalizes_blank_reason() -> None:
    request = BlockedDateRequest(blocked_date=date(2030, 1, 7), reason='   ')

    assert request.reason is None


def test_list_working_hours_serializes_rules(db, dentist) -> None:
    rules = [WorkingHourResponse.model_validate(rule) for rule in list_working_hours(dentist, db)]

    assert [rule.day_name for rule in rules] == ['Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday', 'Saturday']


def test_create_working_hour_for_sunday(db, dentist) -> None:
    rule = create_working_hour(WorkingHourRequest(weekday=0, start_time=time(10, 0), end_time=time(13, 0)), dentist, db)

    assert rule.weekday == 0
    assert len(list_working_hours(dentist, db)) == 7


def test_duplicate_working_hour_is_a_bad_request(db, dentist) -> None:
    with pytest.raises(HTTPException) as exception_info:
        create_working_hour(WorkingHourRequest(weekday=1, start_time=time(10, 0), end_time=time(13, 0)), dentist, db)

    assert exception_info.value.status_code == 400


def test_update_and_delete_working_hour(db, dentist) -> None:
    rule = list_working_hours(dentist, db)[0]

    updated = update_working_hour(
        rule.id,
        UpdateWorkingHourRequest(start_time=time(8, 0), end_time=time(12, 0), is_active=True),
        dentist,
        db,
    )
    assert (updated.start_time, updated.end_time) == (time(8, 0), time(12, 0))

    delete_working_hour(rule.id, dentist, db)
    with pytest.raises(HTTPException) as exception_info:
        delete_working_hour(rule.id, dentist, db)
    assert exception_info.value.status_code == 404


def test_set_default_working_hours_restores_defaults(db, dentist) -> None:
    rule = list_working_hours(dentist, db)[0]
    delete_working_hour(rule.id, dentist, db)

    rules = set_default_working_hours(dentist, db)

    assert [rule.weekday for rule in rules] == [1, 2, 3, 4, 5, 6]


def test_blocked_date_round_trip(db, dentist) -> None:
    blocked = create_blocked_date(
        BlockedDateRequest(blocked_date=date(2030, 1, 7), start_time=time(14, 0), end_time=time(15, 0)),
        dentist,
        db,
    )

    assert [entry.id for entry in list_blocked_dates(dentist, db)] == [blocked.id]


def test_blocked_date_in_the_past_is_a_bad_request(db, dentist) -> None:
    with pytest.raises(HTTPException) as exception_info:
        create_blocked_date(BlockedDateRequest(blocked_date=date(2020, 1, 6)), dentist, db)

    assert exception_info.value.status_code == 400
