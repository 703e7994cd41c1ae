"""User model definitions."""

from enum import Enum

from sqlalchemy import Boolean, Column, Integer, String
from sqlalchemy.orm import relationship

from scheduling.database import Base


class UserRole(str, Enum):
    CLIENT = 'client'
    PROVIDER = 'provider'
    ADMIN = 'admin'


class User(Base):
    """Represents a client, a provider or an administrator."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True)
    phone = Column(String)
    role = Column(String, nullable=False, default=UserRole.CLIENT.value)
    active = Column(Boolean, nullable=False, default=True)

    # Providers own their weekly template; removing the provider removes it.
    schedule_entries = relationship(
        "ScheduleEntry",
        back_populates="provider",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="ScheduleEntry.day_of_week",
    )

    @property
    def is_provider(self) -> bool:
        return self.role == UserRole.PROVIDER.value

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value
