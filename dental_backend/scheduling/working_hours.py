"""Maintenance of working-hour rules and blocked dates."""

import logging
from datetime import date, time
from typing import Optional

from sqlalchemy.orm import Session

from dental_backend.core import config
from dental_backend.models.blocked_date import BlockedDate
from dental_backend.models.user import ROLE_DENTIST, User
from dental_backend.models.working_hour import WorkingHourRule
from dental_backend.scheduling.errors import RecordNotFoundError, ValidationError
from dental_backend.scheduling.lookups import get_dentist

logger = logging.getLogger(__name__)


def _validate_time_range(start_time: time, end_time: time) -> None:
    if end_time <= start_time:
        raise ValidationError('End time must be after start time.')


def _validate_weekday(weekday: int) -> None:
    if not 0 <= weekday <= 6:
        raise ValidationError('Weekday must be between 0 (Sunday) and 6 (Saturday).')


def _active_rule_for(
    db: Session,
    dentist_id: int,
    weekday: int,
    exclude_rule_id: Optional[int] = None,
) -> Optional[WorkingHourRule]:
    query = db.query(WorkingHourRule).filter(
        WorkingHourRule.dentist_id == dentist_id,
        WorkingHourRule.weekday == weekday,
        WorkingHourRule.is_active.is_(True),
    )
    if exclude_rule_id is not None:
        query = query.filter(WorkingHourRule.id != exclude_rule_id)
    return query.first()


def list_working_hours(db: Session, dentist_id: int) -> list[WorkingHourRule]:
    return db.query(WorkingHourRule).filter(
        WorkingHourRule.dentist_id == dentist_id,
    ).order_by(WorkingHourRule.weekday.asc(), WorkingHourRule.start_time.asc()).all()


def create_working_hour(
    db: Session,
    dentist_id: int,
    weekday: int,
    start_time: time,
    end_time: time,
) -> WorkingHourRule:
    _validate_weekday(weekday)
    _validate_time_range(start_time, end_time)
    get_dentist(db, dentist_id)

    if _active_rule_for(db, dentist_id, weekday):
        raise ValidationError('An active working-hour rule already exists for this day.')

    rule = WorkingHourRule(
        dentist_id=dentist_id,
        weekday=weekday,
        start_time=start_time,
        end_time=end_time,
        is_active=True,
    )
    db.add(rule)
    db.commit()
    db.refresh(rule)
    return rule


def _get_rule(db: Session, dentist_id: int, rule_id: int) -> WorkingHourRule:
    rule = db.query(WorkingHourRule).filter(
        WorkingHourRule.dentist_id == dentist_id,
        WorkingHourRule.id == rule_id,
    ).first()
    if rule is None:
        raise RecordNotFoundError('Working hour not found.')
    return rule


def update_working_hour(
    db: Session,
    dentist_id: int,
    rule_id: int,
    start_time: time,
    end_time: time,
    is_active: bool,
) -> WorkingHourRule:
    _validate_time_range(start_time, end_time)
    rule = _get_rule(db, dentist_id, rule_id)

    if is_active and _active_rule_for(db, dentist_id, rule.weekday, exclude_rule_id=rule.id):
        raise ValidationError('An active working-hour rule already exists for this day.')

    rule.start_time = start_time
    rule.end_time = end_time
    rule.is_active = is_active
    db.commit()
    db.refresh(rule)
    return rule


def delete_working_hour(db: Session, dentist_id: int, rule_id: int) -> None:
    rule = _get_rule(db, dentist_id, rule_id)
    db.delete(rule)
    db.commit()


def provision_default_working_hours(db: Session, dentist_id: int) -> list[WorkingHourRule]:
    """Upsert the clinic's default weekly hours for one dentist."""
    get_dentist(db, dentist_id)

    rules = []
    for weekday in config.DEFAULT_WORKING_DAYS:
        _validate_weekday(weekday)
        existing = db.query(WorkingHourRule).filter(
            WorkingHourRule.dentist_id == dentist_id,
            WorkingHourRule.weekday == weekday,
        ).order_by(WorkingHourRule.is_active.desc(), WorkingHourRule.id.asc()).all()
        if existing:
            rule = existing[0]
            for extra in existing[1:]:
                extra.is_active = False
        else:
            rule = WorkingHourRule(dentist_id=dentist_id, weekday=weekday)
            db.add(rule)
        rule.start_time = config.DEFAULT_WORKING_START
        rule.end_time = config.DEFAULT_WORKING_END
        rule.is_active = True
        rules.append(rule)

    db.commit()
    logger.info('Default working hours set for dentist %s', dentist_id)
    return rules


def provision_default_working_hours_for_all(db: Session) -> int:
    dentist_ids = [user_id for (user_id,) in db.query(User.id).filter(User.role == ROLE_DENTIST).all()]
    for dentist_id in dentist_ids:
        provision_default_working_hours(db, dentist_id)
    return len(dentist_ids)


def list_blocked_dates(db: Session, dentist_id: int, from_date: date) -> list[BlockedDate]:
    return db.query(BlockedDate).filter(
        BlockedDate.dentist_id == dentist_id,
        BlockedDate.blocked_date >= from_date,
    ).order_by(BlockedDate.blocked_date.asc(), BlockedDate.start_time.asc()).all()


def create_blocked_date(
    db: Session,
    dentist_id: int,
    blocked_date: date,
    today: date,
    start_time: Optional[time] = None,
    end_time: Optional[time] = None,
    reason: Optional[str] = None,
) -> BlockedDate:
    if blocked_date < today:
        raise ValidationError('Blocked dates cannot be in the past.')
    if (start_time is None) != (end_time is None):
        raise ValidationError('A partial block needs both a start and an end time.')
    if start_time is not None:
        _validate_time_range(start_time, end_time)
    if reason is not None and len(reason) > 255:
        raise ValidationError('Reason must be 255 characters or fewer.')
    get_dentist(db, dentist_id)

    blocked = BlockedDate(
        dentist_id=dentist_id,
        blocked_date=blocked_date,
        start_time=start_time,
        end_time=end_time,
        reason=reason,
    )
    db.add(blocked)
    db.commit()
    db.refresh(blocked)
    logger.info(
        'Dentist %s blocked %s (%s)',
        dentist_id,
        blocked_date.isoformat(),
        'full day' if blocked.is_full_day else f'{start_time}-{end_time}',
    )
    return blocked


def delete_blocked_date(db: Session, dentist_id: int, blocked_date_id: int) -> None:
    blocked = db.query(BlockedDate).filter(
        BlockedDate.dentist_id == dentist_id,
        BlockedDate.id == blocked_date_id,
    ).first()
    if blocked is None:
        raise RecordNotFoundError('Blocked date not found.')
    db.delete(blocked)
    db.commit()
