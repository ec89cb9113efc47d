from datetime import date, time

import pytest

from conftest import MONDAY, add_user
from dental_backend.models.blocked_date import BlockedDate
from dental_backend.models.user import ROLE_DENTIST
from dental_backend.models.working_hour import WorkingHourRule
from dental_backend.scheduling.errors import DependencyMissingError, RecordNotFoundError, ValidationError
from dental_backend.scheduling.working_hours import (
    create_blocked_date,
    create_working_hour,
    delete_blocked_date,
    delete_working_hour,
    list_blocked_dates,
    list_working_hours,
    provision_default_working_hours,
    provision_default_working_hours_for_all,
    update_working_hour,
)

TODAY = date(2030, 1, 1)


def test_provision_defaults_for_new_dentist(db) -> None:
    dentist = add_user(db, ROLE_DENTIST, 'Dr Fresh')

    rules = provision_default_working_hours(db, dentist.id)

    assert [rule.weekday for rule in rules] == [1, 2, 3, 4, 5, 6]
    assert all(rule.start_time == time(9, 0) and rule.end_time == time(17, 0) for rule in rules)
    assert all(rule.is_active for rule in rules)


def test_provision_defaults_is_an_upsert(db, dentist) -> None:
    monday_rule = list_working_hours(db, dentist.id)[0]
    update_working_hour(db, dentist.id, monday_rule.id, time(7, 0), time(11, 0), is_active=False)

    provision_default_working_hours(db, dentist.id)
    provision_default_working_hours(db, dentist.id)

    rules = list_working_hours(db, dentist.id)
    assert len(rules) == 6
    assert rules[0].id == monday_rule.id
    assert (rules[0].start_time, rules[0].end_time, rules[0].is_active) == (time(9, 0), time(17, 0), True)


def test_provision_defaults_leaves_one_active_rule_per_day(db, dentist) -> None:
    monday_rule = list_working_hours(db, dentist.id)[0]
    update_working_hour(db, dentist.id, monday_rule.id, time(9, 0), time(17, 0), is_active=False)
    extra_rule = create_working_hour(db, dentist.id, 1, time(7, 0), time(11, 0))

    provision_default_working_hours(db, dentist.id)

    active_mondays = db.query(WorkingHourRule).filter(
        WorkingHourRule.dentist_id == dentist.id,
        WorkingHourRule.weekday == 1,
        WorkingHourRule.is_active.is_(True),
    ).all()
    assert len(active_mondays) == 1
    assert active_mondays[0].id == extra_rule.id
    assert (active_mondays[0].start_time, active_mondays[0].end_time) == (time(9, 0), time(17, 0))
    db.refresh(monday_rule)
    assert monday_rule.is_active is False


def test_provision_defaults_for_all_dentists(db, dentist, patient) -> None:
    add_user(db, ROLE_DENTIST, 'Dr Second')

    assert provision_default_working_hours_for_all(db) == 2
    assert db.query(WorkingHourRule).count() == 12
    assert list_working_hours(db, patient.id) == []


def test_provision_defaults_requires_a_dentist(db, patient) -> None:
    with pytest.raises(DependencyMissingError):
        provision_default_working_hours(db, patient.id)


def test_create_working_hour_for_a_free_day(db, dentist) -> None:
    rule = create_working_hour(db, dentist.id, 0, time(10, 0), time(14, 0))

    assert rule.weekday == 0
    assert rule.day_name == 'Sunday'
    assert rule.is_active is True


def test_second_active_rule_for_a_day_is_rejected(db, dentist) -> None:
    with pytest.raises(ValidationError):
        create_working_hour(db, dentist.id, 1, time(18, 0), time(20, 0))


@pytest.mark.parametrize(
    ('weekday', 'start', 'end'),
    [
        (7, time(9, 0), time(17, 0)),
        (-1, time(9, 0), time(17, 0)),
        (0, time(17, 0), time(9, 0)),
        (0, time(9, 0), time(9, 0)),
    ],
)
def test_invalid_working_hours_are_rejected(db, dentist, weekday, start, end) -> None:
    with pytest.raises(ValidationError):
        create_working_hour(db, dentist.id, weekday, start, end)


def test_reactivating_a_rule_next_to_an_active_one_is_rejected(db, dentist) -> None:
    monday_rule = list_working_hours(db, dentist.id)[0]
    update_working_hour(db, dentist.id, monday_rule.id, time(9, 0), time(17, 0), is_active=False)
    create_working_hour(db, dentist.id, 1, time(10, 0), time(12, 0))

    with pytest.raises(ValidationError):
        update_working_hour(db, dentist.id, monday_rule.id, time(9, 0), time(17, 0), is_active=True)


def test_rules_belong_to_their_dentist(db, dentist) -> None:
    colleague = add_user(db, ROLE_DENTIST, 'Dr Colleague')
    monday_rule = list_working_hours(db, dentist.id)[0]

    with pytest.raises(RecordNotFoundError):
        delete_working_hour(db, colleague.id, monday_rule.id)

    delete_working_hour(db, dentist.id, monday_rule.id)
    assert len(list_working_hours(db, dentist.id)) == 5


def test_create_full_day_block(db, dentist) -> None:
    blocked = create_blocked_date(db, dentist.id, MONDAY, today=TODAY, reason='Holiday')

    assert blocked.is_full_day
    assert list_blocked_dates(db, dentist.id, TODAY) == [blocked]


def test_create_partial_block(db, dentist) -> None:
    blocked = create_blocked_date(db, dentist.id, MONDAY, today=TODAY, start_time=time(14, 0), end_time=time(15, 0))

    assert not blocked.is_full_day
    assert (blocked.start_time, blocked.end_time) == (time(14, 0), time(15, 0))


@pytest.mark.parametrize(
    'kwargs',
    [
        {'blocked_date': date(2029, 12, 31)},
        {'start_time': time(14, 0)},
        {'end_time': time(15, 0)},
        {'start_time': time(15, 0), 'end_time': time(14, 0)},
        {'reason': 'x' * 256},
    ],
)
def test_invalid_blocks_are_rejected(db, dentist, kwargs) -> None:
    kwargs.setdefault('blocked_date', MONDAY)

    with pytest.raises(ValidationError):
        create_blocked_date(db, dentist.id, today=TODAY, **kwargs)

    assert db.query(BlockedDate).count() == 0


def test_listing_blocks_skips_past_dates(db, dentist) -> None:
    create_blocked_date(db, dentist.id, TODAY, today=TODAY)
    later = create_blocked_date(db, dentist.id, MONDAY, today=TODAY)

    assert list_blocked_dates(db, dentist.id, date(2030, 1, 2)) == [later]


def test_delete_block(db, dentist) -> None:
    blocked = create_blocked_date(db, dentist.id, MONDAY, today=TODAY)

    delete_blocked_date(db, dentist.id, blocked.id)

    assert db.query(BlockedDate).count() == 0
    with pytest.raises(RecordNotFoundError):
        delete_blocked_date(db, dentist.id, blocked.id)
