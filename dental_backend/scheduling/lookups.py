"""Read-only lookups of the people and services an appointment references."""

from sqlalchemy.orm import Session

from dental_backend.models.dental_service import DentalService
from dental_backend.models.user import ROLE_DENTIST, ROLE_PATIENT, User
from dental_backend.scheduling.errors import DependencyMissingError, ValidationError


def _get_user_with_role(db: Session, user_id: int, role: str) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if user is None or user.role != role:
        raise DependencyMissingError(f'The selected {role} could not be found.')
    return user


def get_dentist(db: Session, dentist_id: int) -> User:
    return _get_user_with_role(db, dentist_id, ROLE_DENTIST)


def get_patient(db: Session, patient_id: int) -> User:
    return _get_user_with_role(db, patient_id, ROLE_PATIENT)


def get_service(db: Session, service_id: int) -> DentalService:
    service = db.query(DentalService).filter(DentalService.id == service_id).first()
    if service is None:
        raise DependencyMissingError('The selected dental service could not be found.')
    if not service.is_active:
        raise ValidationError('The selected dental service is no longer offered.')
    if not service.duration_minutes or service.duration_minutes <= 0:
        raise ValidationError('The selected dental service has no valid duration.')
    return service
