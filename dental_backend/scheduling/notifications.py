"""Appointment notifications.

A ``Notifier`` delivers one message about one appointment to one user. The
default ``DatabaseNotifier`` stores it in the ``notifications`` table, where
mail/SMS delivery picks it up.
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from dental_backend.models.appointment import Appointment
from dental_backend.models.notification import Notification
from dental_backend.scheduling.errors import NotificationDeliveryError

logger = logging.getLogger(__name__)

KIND_REMINDER = 'reminder'
KIND_BOOKED = 'booked'
KIND_STATUS_CHANGED = 'status_changed'


def describe_appointment(appointment: Appointment) -> str:
    start = appointment.start_datetime
    description = f"{start.strftime('%A, %B')} {start.day}, {start.year} at {start.strftime('%H:%M')}"
    if appointment.service is not None:
        description = f'{appointment.service.name} on {description}'
    if appointment.dentist is not None:
        description = f'{description} with {appointment.dentist.name}'
    return description


def build_message(appointment: Appointment, kind: str, detail: Optional[str] = None) -> str:
    when = describe_appointment(appointment)
    if kind == KIND_REMINDER:
        message = f'Reminder: you have a dental appointment tomorrow, {when}.'
    elif kind == KIND_BOOKED:
        message = f'Appointment request received for {when}. Status: {appointment.status}.'
    else:
        message = f'Your appointment for {when} is now {appointment.status}.'
    if detail:
        message = f'{message} {detail}'
    return message


class Notifier(ABC):
    @abstractmethod
    def create_notification(
        self,
        recipient_id: int,
        appointment: Appointment,
        kind: str,
        detail: Optional[str] = None,
    ) -> None:
        """Deliver one message; raise ``NotificationDeliveryError`` on failure."""


class DatabaseNotifier(Notifier):
    def __init__(self, db: Session):
        self.db = db

    def create_notification(
        self,
        recipient_id: int,
        appointment: Appointment,
        kind: str,
        detail: Optional[str] = None,
    ) -> None:
        notification = Notification(
            recipient_id=recipient_id,
            appointment_id=appointment.id,
            kind=kind,
            message=build_message(appointment, kind, detail),
        )
        try:
            self.db.add(notification)
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise NotificationDeliveryError(
                f'Could not store {kind} notification for appointment {appointment.id}.'
            ) from exc


def notify_quietly(
    notifier: Optional[Notifier],
    recipient_id: Optional[int],
    appointment: Appointment,
    kind: str,
    detail: Optional[str] = None,
) -> bool:
    """Send one notification; failures are logged and never propagate."""
    if notifier is None or recipient_id is None:
        return False
    try:
        notifier.create_notification(recipient_id, appointment, kind, detail)
    except Exception:
        logger.exception(
            'Failed to send %s notification for appointment %s to user %s',
            kind,
            appointment.id,
            recipient_id,
        )
        return False
    return True
