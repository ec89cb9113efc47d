from datetime import datetime, time, timedelta

from conftest import MONDAY, RecordingNotifier, add_appointment
from dental_backend.models.appointment import STATUS_CONFIRMED, STATUS_PENDING
from dental_backend.models.notification import Notification
from dental_backend.scheduling.notifications import KIND_REMINDER, DatabaseNotifier
from dental_backend.scheduling.reminders import (
    PacingPolicy,
    ReminderBatchResult,
    get_due_appointments,
    reminder_window,
    run_reminder_batch,
)

SUNDAY_EVENING = datetime(2030, 1, 6, 18, 0)


def at(hour: int, minute: int = 0) -> datetime:
    return datetime.combine(MONDAY, time(hour, minute))


def no_pause() -> PacingPolicy:
    return PacingPolicy(sends_per_second=0)


def test_reminder_window_covers_all_of_tomorrow() -> None:
    start, end = reminder_window(SUNDAY_EVENING.date())

    assert start == at(0)
    assert end == at(0) + timedelta(days=1)


def test_due_appointments_are_confirmed_and_tomorrow(db, dentist, patient, checkup) -> None:
    due = add_appointment(db, patient, dentist, checkup, at(9))
    add_appointment(db, patient, dentist, checkup, at(10), status=STATUS_PENDING)
    add_appointment(db, patient, dentist, checkup, at(11), status='cancelled')
    add_appointment(db, patient, dentist, checkup, at(9) + timedelta(days=1))

    assert [appointment.id for appointment in get_due_appointments(db, SUNDAY_EVENING)] == [due.id]


def test_batch_continues_past_a_failed_send(db, dentist, patient, checkup) -> None:
    first = add_appointment(db, patient, dentist, checkup, at(9))
    second = add_appointment(db, patient, dentist, checkup, at(10))
    third = add_appointment(db, patient, dentist, checkup, at(11))
    notifier = RecordingNotifier(fail_for_appointment_ids=[second.id])

    result = run_reminder_batch(db, notifier, now=SUNDAY_EVENING, pacing=no_pause())

    assert result == ReminderBatchResult(considered=3, sent=2, failed=1)
    assert result.as_dict() == {'considered': 3, 'sent': 2, 'failed': 1}
    assert [appointment_id for _, appointment_id, _, _ in notifier.sent] == [
        first.id, first.id, third.id, third.id,
    ]
    assert notifier.recipients(KIND_REMINDER) == [patient.id, dentist.id, patient.id, dentist.id]


def test_batch_with_nothing_due(db, dentist, patient, checkup, notifier) -> None:
    add_appointment(db, patient, dentist, checkup, at(9))

    result = run_reminder_batch(db, notifier, now=SUNDAY_EVENING - timedelta(days=1), pacing=no_pause())

    assert result == ReminderBatchResult()
    assert notifier.sent == []


def test_batch_does_not_change_appointments(db, dentist, patient, checkup, notifier) -> None:
    appointment = add_appointment(db, patient, dentist, checkup, at(9))

    run_reminder_batch(db, notifier, now=SUNDAY_EVENING, pacing=no_pause())

    db.refresh(appointment)
    assert appointment.status == STATUS_CONFIRMED
    assert appointment.start_datetime == at(9)


def test_pacing_waits_between_sends() -> None:
    pauses = []
    pacing = PacingPolicy(sends_per_second=4, sleep=pauses.append)

    for _ in range(3):
        pacing.wait()

    assert pauses == [0.25, 0.25]


def test_batch_is_paced_per_send(db, dentist, patient, checkup, notifier) -> None:
    add_appointment(db, patient, dentist, checkup, at(9))
    add_appointment(db, patient, dentist, checkup, at(10))
    pauses = []

    run_reminder_batch(db, notifier, now=SUNDAY_EVENING, pacing=PacingPolicy(10, sleep=pauses.append))

    assert pauses == [0.1, 0.1, 0.1]


def test_database_notifier_stores_reminders(db, dentist, patient, checkup) -> None:
    appointment = add_appointment(db, patient, dentist, checkup, at(9))

    result = run_reminder_batch(db, DatabaseNotifier(db), now=SUNDAY_EVENING, pacing=no_pause())

    assert result.sent == 1
    notifications = db.query(Notification).filter(Notification.appointment_id == appointment.id).all()
    assert {notification.recipient_id for notification in notifications} == {patient.id, dentist.id}
    assert all(notification.kind == KIND_REMINDER for notification in notifications)
    assert notifications[0].message.startswith('Reminder: you have a dental appointment tomorrow')
