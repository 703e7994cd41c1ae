"""Appointment model definitions."""

from datetime import datetime
from enum import Enum

from sqlalchemy import Boolean, Column, Date, DateTime, ForeignKey, Index, Integer, String, Time
from sqlalchemy.orm import relationship

from scheduling.database import Base


class AppointmentStatus(str, Enum):
    CONFIRMED = 'confirmed'
    CANCELLED = 'cancelled'
    COMPLETED = 'completed'
    NO_SHOW = 'no_show'


TERMINAL_STATUSES = frozenset({
    AppointmentStatus.CANCELLED.value,
    AppointmentStatus.COMPLETED.value,
    AppointmentStatus.NO_SHOW.value,
})


class Appointment(Base):
    """Represents a booked appointment.

    ``end_time`` is frozen at booking time from the service duration.
    """
    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True)
    client_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    provider_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    service_id = Column(Integer, ForeignKey("services.id"), nullable=False)
    appointment_date = Column(Date, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    status = Column(String, nullable=False, default=AppointmentStatus.CONFIRMED.value)
    notified = Column(Boolean, nullable=False, default=False)
    notes = Column(String)
    created_at = Column(DateTime, nullable=False, default=datetime.now)

    client = relationship("User", foreign_keys=[client_id])
    provider = relationship("User", foreign_keys=[provider_id])
    service = relationship("Service")

    __table_args__ = (
        Index('idx_appointments_provider_day', 'provider_id', 'appointment_date', 'status'),
        Index('idx_appointments_client_day', 'client_id', 'appointment_date', 'status'),
        Index('idx_appointments_reminders', 'status', 'notified', 'appointment_date'),
    )

    @property
    def starts_at(self) -> datetime:
        return datetime.combine(self.appointment_date, self.start_time)

    @property
    def is_confirmed(self) -> bool:
        return self.status == AppointmentStatus.CONFIRMED.value
