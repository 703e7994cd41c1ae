"""Cancellation Policy and appointment status changes.

Clients may cancel their own confirmed appointments up to the lead time
before the start; the appointment's provider and admins may cancel or close
it at any time. Every non-confirmed status is terminal.
"""

import logging
from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from scheduling.core import config
from scheduling.core.clock import SystemClock
from scheduling.core.errors import (
    AppointmentNotFound,
    Forbidden,
    InvalidRequest,
    NotCancellable,
    TooLateToCancel,
)
from scheduling.database import serialized_write
from scheduling.models.appointment import Appointment, AppointmentStatus
from scheduling.models.user import UserRole
from scheduling.repository import ScheduleRepository

logger = logging.getLogger(__name__)

CLOSING_STATUSES = frozenset({
    AppointmentStatus.CANCELLED,
    AppointmentStatus.COMPLETED,
    AppointmentStatus.NO_SHOW,
})


def _normalize_role(actor_role) -> str:
    return actor_role.value if isinstance(actor_role, UserRole) else str(actor_role).strip().lower()


def is_staff_actor(appointment: Appointment, actor_id: int, actor_role) -> bool:
    role = _normalize_role(actor_role)
    if role == UserRole.ADMIN.value:
        return True
    return role == UserRole.PROVIDER.value and appointment.provider_id == actor_id


def check_cancellation(
    appointment: Appointment,
    actor_id: int,
    actor_role,
    now: datetime,
    lead_time: timedelta,
) -> None:
    """Raise if ``actor`` may not cancel ``appointment`` at ``now``."""
    if not appointment.is_confirmed:
        raise NotCancellable('This appointment cannot be cancelled.')

    if is_staff_actor(appointment, actor_id, actor_role):
        return

    if appointment.client_id == actor_id:
        if appointment.starts_at - now < lead_time:
            raise TooLateToCancel()
        return

    raise Forbidden('Not authorized to cancel this appointment.')


class CancellationPolicy:
    def __init__(self, db: Session, clock=None, lead_minutes: int = config.CANCELLATION_LEAD_MINUTES):
        self.db = db
        self.repository = ScheduleRepository(db)
        self.clock = clock or SystemClock()
        self.lead_time = timedelta(minutes=lead_minutes)

    def _locked_appointment(self, appointment_id: int) -> Appointment:
        appointment = self.repository.get_appointment(appointment_id, lock=True)
        if appointment is None:
            raise AppointmentNotFound()
        return appointment

    def cancel(self, appointment_id: int, actor_id: int, actor_role) -> Appointment:
        with serialized_write(self.db):
            appointment = self._locked_appointment(appointment_id)
            check_cancellation(appointment, actor_id, actor_role, self.clock.now(), self.lead_time)
            self.repository.set_status(appointment, AppointmentStatus.CANCELLED)

        logger.info('Appointment %s cancelled by %s %s', appointment_id, _normalize_role(actor_role), actor_id)
        return appointment

    def change_status(self, appointment_id: int, new_status, actor_id: int, actor_role) -> Appointment:
        """Close a confirmed appointment as cancelled, completed or no_show (staff only)."""
        try:
            status = AppointmentStatus(new_status)
        except ValueError as exc:
            raise InvalidRequest('Invalid status.') from exc
        if status not in CLOSING_STATUSES:
            raise InvalidRequest('Appointments can only be moved to cancelled, completed or no_show.')

        with serialized_write(self.db):
            appointment = self._locked_appointment(appointment_id)
            if not is_staff_actor(appointment, actor_id, actor_role):
                raise Forbidden('Only the appointment\'s provider or an admin can change its status.')
            if not appointment.is_confirmed:
                raise NotCancellable(f'Appointment is already {appointment.status}.')
            self.repository.set_status(appointment, status)

        logger.info(
            'Appointment %s moved to %s by %s %s',
            appointment_id,
            status.value,
            _normalize_role(actor_role),
            actor_id,
        )
        return appointment
