"""Dental service model definitions."""

from sqlalchemy import Boolean, Column, Integer, Numeric, String
from dental_backend.database import Base


class DentalService(Base):
    """A bookable treatment. Read-only input to the scheduling engine."""
    __tablename__ = "dental_services"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    duration_minutes = Column(Integer, nullable=False)
    price = Column(Numeric(10, 2), nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
