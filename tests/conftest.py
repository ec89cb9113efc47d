import os
from datetime import date, datetime, time
from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

os.environ.setdefault('DATABASE_URL', 'sqlite://')
os.environ['SLOT_INCREMENT_MINUTES'] = '30'
os.environ['LUNCH_BREAK_START'] = '12:00'
os.environ['LUNCH_BREAK_END'] = '13:00'
os.environ['PATIENT_CANCELLATION_NOTICE_HOURS'] = '24'
os.environ['JWT_SECRET_KEY'] = 'test-secret-key-with-enough-length-for-hs256'

from dental_backend.database import Base  # noqa: E402
from dental_backend.models.appointment import Appointment  # noqa: E402
from dental_backend.models.blocked_date import BlockedDate  # noqa: E402
from dental_backend.models.dental_service import DentalService  # noqa: E402
from dental_backend.models.notification import Notification  # noqa: E402,F401
from dental_backend.models.user import ROLE_ADMIN, ROLE_DENTIST, ROLE_PATIENT, User  # noqa: E402
from dental_backend.models.working_hour import WorkingHourRule  # noqa: E402
from dental_backend.scheduling.notifications import Notifier  # noqa: E402

MONDAY = date(2030, 1, 7)
SUNDAY_MORNING = datetime(2030, 1, 6, 8, 0)


@pytest.fixture
def db():
    engine = create_engine('sqlite:///:memory:')
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)

    session = testing_session_local()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


def add_user(db, role: str, name: str) -> User:
    user = User(name=name, email=f'{name.lower().replace(" ", ".")}@example.com', role=role)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def add_appointment(
    db,
    patient: User,
    dentist: User,
    service: DentalService,
    start: datetime,
    status: str = 'confirmed',
) -> Appointment:
    appointment = Appointment(
        patient_id=patient.id,
        dentist_id=dentist.id,
        service_id=service.id,
        status=status,
        cost=service.price,
    )
    appointment.schedule(start, service.duration_minutes)
    db.add(appointment)
    db.commit()
    db.refresh(appointment)
    return appointment


def add_blocked_date(db, dentist: User, blocked_date: date, start=None, end=None, reason=None) -> BlockedDate:
    blocked = BlockedDate(
        dentist_id=dentist.id,
        blocked_date=blocked_date,
        start_time=start,
        end_time=end,
        reason=reason,
    )
    db.add(blocked)
    db.commit()
    return blocked


@pytest.fixture
def dentist(db) -> User:
    dentist = add_user(db, ROLE_DENTIST, 'Dr Molar')
    for weekday in range(1, 7):
        db.add(WorkingHourRule(
            dentist_id=dentist.id,
            weekday=weekday,
            start_time=time(9, 0),
            end_time=time(17, 0),
            is_active=True,
        ))
    db.commit()
    return dentist


@pytest.fixture
def patient(db) -> User:
    return add_user(db, ROLE_PATIENT, 'Pat Ient')


@pytest.fixture
def admin(db) -> User:
    return add_user(db, ROLE_ADMIN, 'Ad Min')


@pytest.fixture
def checkup(db) -> DentalService:
    service = DentalService(name='Checkup', duration_minutes=30, price=Decimal('50.00'), is_active=True)
    db.add(service)
    db.commit()
    db.refresh(service)
    return service


@pytest.fixture
def root_canal(db) -> DentalService:
    service = DentalService(name='Root canal', duration_minutes=90, price=Decimal('400.00'), is_active=True)
    db.add(service)
    db.commit()
    db.refresh(service)
    return service


class RecordingNotifier(Notifier):
    def __init__(self, fail_for_appointment_ids=()):
        self.sent = []
        self.fail_for_appointment_ids = set(fail_for_appointment_ids)

    def create_notification(self, recipient_id, appointment, kind, detail=None):
        if appointment.id in self.fail_for_appointment_ids:
            raise RuntimeError(f'delivery failed for appointment {appointment.id}')
        self.sent.append((recipient_id, appointment.id, kind, detail))

    def recipients(self, kind=None):
        return [recipient_id for recipient_id, _, sent_kind, _ in self.sent if kind is None or sent_kind == kind]


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()
