"""
Reminder dispatch

``run_reminder_batch`` is invoked once a day by an external scheduler. It
keeps no state between runs:

1. Select confirmed appointments starting within tomorrow [00:00, 24:00).
2. Notify the patient, then the dentist, of each one.
3. A failed send is logged and counted; the batch moves on.
4. Sends are spaced out by a ``PacingPolicy`` so delivery providers do not
   throttle the run.
"""

import logging
import time
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Callable, Optional

from sqlalchemy.orm import Session

from dental_backend.core import config
from dental_backend.models.appointment import STATUS_CONFIRMED, Appointment
from dental_backend.scheduling.errors import NotificationDeliveryError
from dental_backend.scheduling.notifications import KIND_REMINDER, Notifier

logger = logging.getLogger(__name__)


class PacingPolicy:
    """Spaces consecutive sends to at most ``sends_per_second``."""

    def __init__(self, sends_per_second: float, sleep: Callable[[float], None] = time.sleep):
        self.sends_per_second = sends_per_second
        self.sleep = sleep
        self._sent = 0

    @property
    def delay_seconds(self) -> float:
        if self.sends_per_second <= 0:
            return 0.0
        return 1.0 / self.sends_per_second

    def wait(self) -> None:
        if self._sent and self.delay_seconds:
            self.sleep(self.delay_seconds)
        self._sent += 1

    @classmethod
    def from_config(cls) -> 'PacingPolicy':
        return cls(config.REMINDER_SENDS_PER_SECOND)


@dataclass
class ReminderBatchResult:
    considered: int = 0
    sent: int = 0
    failed: int = 0

    def as_dict(self) -> dict:
        return {'considered': self.considered, 'sent': self.sent, 'failed': self.failed}


def reminder_window(today: date) -> tuple[datetime, datetime]:
    start = datetime.combine(today + timedelta(days=1), datetime.min.time())
    return start, start + timedelta(days=1)


def get_due_appointments(db: Session, now: datetime) -> list[Appointment]:
    window_start, window_end = reminder_window(now.date())
    return db.query(Appointment).filter(
        Appointment.status == STATUS_CONFIRMED,
        Appointment.start_datetime >= window_start,
        Appointment.start_datetime < window_end,
    ).order_by(Appointment.start_datetime.asc(), Appointment.id.asc()).all()


def send_reminder(appointment: Appointment, notifier: Notifier, pacing: PacingPolicy) -> None:
    if appointment.patient_id is None:
        raise NotificationDeliveryError(f'Appointment {appointment.id} has no patient to remind.')

    recipients = [appointment.patient_id]
    if appointment.dentist_id is not None:
        recipients.append(appointment.dentist_id)

    for recipient_id in recipients:
        pacing.wait()
        notifier.create_notification(recipient_id, appointment, KIND_REMINDER)


def run_reminder_batch(
    db: Session,
    notifier: Notifier,
    now: Optional[datetime] = None,
    pacing: Optional[PacingPolicy] = None,
) -> ReminderBatchResult:
    now = now or datetime.now()
    pacing = pacing or PacingPolicy.from_config()
    result = ReminderBatchResult()

    appointments = get_due_appointments(db, now)
    window_start, window_end = reminder_window(now.date())
    logger.info(
        'Found %d appointments requiring reminders between %s and %s',
        len(appointments),
        window_start.isoformat(),
        window_end.isoformat(),
    )

    for appointment in appointments:
        result.considered += 1
        appointment_id = appointment.id
        try:
            send_reminder(appointment, notifier, pacing)
        except Exception:
            result.failed += 1
            logger.exception('Failed to send appointment reminder for appointment %s', appointment_id)
            continue

        result.sent += 1
        logger.info('Sent reminder for appointment %s scheduled at %s', appointment_id, appointment.start_datetime)

    logger.info(
        'Reminder batch finished: considered=%d sent=%d failed=%d',
        result.considered,
        result.sent,
        result.failed,
    )
    return result
