"""Service model definitions."""

from sqlalchemy import Boolean, CheckConstraint, Column, Integer, String

from scheduling.database import Base


class Service(Base):
    """A bookable offering with a fixed duration."""
    __tablename__ = "services"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    description = Column(String)
    duration_minutes = Column(Integer, nullable=False, default=30)
    active = Column(Boolean, nullable=False, default=True)

    __table_args__ = (
        CheckConstraint('duration_minutes > 0', name='ck_service_duration_positive'),
    )
