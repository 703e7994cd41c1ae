"""Weekly schedule model definitions."""

from sqlalchemy import Boolean, CheckConstraint, Column, ForeignKey, Index, Integer, Time, UniqueConstraint
from sqlalchemy.orm import relationship

from scheduling.database import Base


class ScheduleEntry(Base):
    """One working interval of a provider's weekly template.

    ``day_of_week`` uses 0=Sunday .. 6=Saturday.
    """
    __tablename__ = "schedule_entries"

    id = Column(Integer, primary_key=True)
    provider_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    day_of_week = Column(Integer, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    active = Column(Boolean, nullable=False, default=True)

    provider = relationship("User", back_populates="schedule_entries")

    __table_args__ = (
        UniqueConstraint('provider_id', 'day_of_week', name='uq_schedule_provider_day'),
        CheckConstraint('day_of_week BETWEEN 0 AND 6', name='ck_schedule_day_of_week'),
        Index('idx_schedule_entries_day', 'day_of_week', 'active'),
    )
