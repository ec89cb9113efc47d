"""User model definitions."""

from sqlalchemy import Column, Integer, String
from dental_backend.database import Base

ROLE_PATIENT = "patient"
ROLE_DENTIST = "dentist"
ROLE_ADMIN = "admin"
ROLES = (ROLE_PATIENT, ROLE_DENTIST, ROLE_ADMIN)


class User(Base):
    """Represents an application user: a patient, a dentist or an admin."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False, default="")
    email = Column(String, unique=True, index=True)
    role = Column(String, nullable=False, default=ROLE_PATIENT)
