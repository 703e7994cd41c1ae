"""Booking Coordinator.

Resolves the provider (explicit or auto-assigned), checks conflicts and
persists the appointment as one serialized transaction.
"""

import logging
import random
from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import Optional, Union

from sqlalchemy.orm import Session

from scheduling.core import config
from scheduling.core.clock import SystemClock
from scheduling.core.errors import (
    InvalidRequest,
    NoAvailability,
    NoProviderAvailable,
    ProviderNotFound,
    ServiceNotFound,
)
from scheduling.database import serialized_write, storage_errors
from scheduling.engine.availability import (
    WorkingInterval,
    from_minutes,
    resolve_working_interval,
    to_minutes,
)
from scheduling.engine.conflicts import ConflictOutcome, detect_conflict, raise_for_conflict
from scheduling.engine.slots import Slot, generate_slots_for_interval
from scheduling.models.appointment import Appointment
from scheduling.models.service import Service
from scheduling.models.user import User
from scheduling.repository import ScheduleRepository

logger = logging.getLogger(__name__)

AUTO_ASSIGN = 'auto'
DEFAULT_SLOT_DURATION_MINUTES = 30
MINUTES_PER_DAY = 24 * 60


@dataclass
class SlotListing:
    provider_id: int
    date: date
    duration_minutes: int
    working_interval: Optional[WorkingInterval]
    slots: list[Slot] = field(default_factory=list)

    @property
    def is_working(self) -> bool:
        return self.working_interval is not None


def is_auto_assign(provider_id: Union[int, str, None]) -> bool:
    return provider_id is None or (isinstance(provider_id, str) and provider_id.strip().lower() == AUTO_ASSIGN)


class BookingCoordinator:
    def __init__(
        self,
        db: Session,
        clock=None,
        rng: Optional[random.Random] = None,
        stride_minutes: int = config.SLOT_STRIDE_MINUTES,
    ):
        self.db = db
        self.repository = ScheduleRepository(db)
        self.clock = clock or SystemClock()
        self.rng = rng or random.Random()
        self.stride_minutes = stride_minutes

    def _active_service(self, service_id: int) -> Service:
        service = self.repository.get_service(service_id)
        if service is None or not service.active:
            raise ServiceNotFound()
        if not service.duration_minutes or service.duration_minutes <= 0:
            raise InvalidRequest('Service duration must be positive.')
        return service

    def _active_provider(self, provider_id: int, lock: bool = False) -> User:
        provider = self.repository.get_provider(provider_id, lock=lock)
        if provider is None or not provider.active:
            raise ProviderNotFound()
        return provider

    def list_slots(
        self,
        provider_id: int,
        slot_date: date,
        duration_minutes: Optional[int] = None,
        service_id: Optional[int] = None,
    ) -> SlotListing:
        with storage_errors():
            self._active_provider(provider_id)

            if service_id is not None:
                duration_minutes = self._active_service(service_id).duration_minutes
            elif duration_minutes is None:
                duration_minutes = DEFAULT_SLOT_DURATION_MINUTES

            if duration_minutes <= 0:
                raise InvalidRequest('Service duration must be positive.')

            try:
                interval = resolve_working_interval(self.repository.get_schedule(provider_id), slot_date)
            except NoAvailability:
                return SlotListing(provider_id, slot_date, duration_minutes, None)

            booked = [
                (to_minutes(appointment.start_time), to_minutes(appointment.end_time))
                for appointment in self.repository.get_confirmed_appointments(slot_date, provider_id=provider_id)
            ]

        slots = generate_slots_for_interval(
            interval,
            duration_minutes,
            booked,
            slot_date,
            self.clock.now(),
            self.stride_minutes,
        )
        return SlotListing(provider_id, slot_date, duration_minutes, interval, slots)

    def eligible_providers(self, appointment_date: date, start_time: time) -> list[User]:
        """Active providers who start work by ``start_time`` and have nothing booked at exactly that start."""
        start_minutes = to_minutes(start_time)
        candidates: list[User] = []

        for provider in self.repository.list_active_providers():
            try:
                interval = resolve_working_interval(provider.schedule_entries, appointment_date)
            except NoAvailability:
                continue
            if interval.start_minutes > start_minutes:
                continue
            if self.repository.has_confirmed_start(provider.id, appointment_date, start_time):
                continue
            candidates.append(provider)

        return sorted(candidates, key=lambda provider: provider.id)

    def _choose_provider(self, appointment_date: date, start_time: time) -> User:
        candidates = self.eligible_providers(appointment_date, start_time)
        if not candidates:
            raise NoProviderAvailable()

        provider = self.rng.choice(candidates)
        logger.debug(
            'Auto-assigned provider %s out of %d candidates for %s %s',
            provider.id,
            len(candidates),
            appointment_date,
            start_time,
        )
        return provider

    def create_appointment(
        self,
        client_id: int,
        provider_id: Union[int, str, None],
        service_id: int,
        appointment_date: date,
        start_time: time,
        notes: Optional[str] = None,
    ) -> Appointment:
        """Book ``start_time`` on ``appointment_date``; ``notes`` arrive already trimmed and length-checked."""
        start_time = start_time.replace(second=0, microsecond=0)
        now = self.clock.now()

        if datetime.combine(appointment_date, start_time) <= now:
            raise InvalidRequest('Appointments must be scheduled in the future.')

        with serialized_write(self.db):
            service = self._active_service(service_id)

            start_minutes = to_minutes(start_time)
            end_minutes = start_minutes + service.duration_minutes
            if end_minutes >= MINUTES_PER_DAY:
                raise InvalidRequest('Appointments must end on the same day they start.')
            end_time = from_minutes(end_minutes)

            client = self.repository.get_user(client_id)
            if client is None or not client.active:
                raise InvalidRequest('Client not found.')

            if is_auto_assign(provider_id):
                provider = self._choose_provider(appointment_date, start_time)
            else:
                try:
                    explicit_provider_id = int(provider_id)
                except (TypeError, ValueError) as exc:
                    raise InvalidRequest('Provider must be an id or "auto".') from exc
                provider = self._active_provider(explicit_provider_id)

            # Auto-assignment only checks when the working day starts; the end is checked here.
            interval = resolve_working_interval(self.repository.get_schedule(provider.id), appointment_date)
            if not interval.covers(start_minutes, end_minutes):
                raise NoAvailability('Requested time is outside the provider\'s working hours.')

            self.repository.lock_users([client.id, provider.id])

            outcome = detect_conflict(
                self.repository,
                provider_id=provider.id,
                client_id=client.id,
                appointment_date=appointment_date,
                start=start_time,
                end=end_time,
            )
            if outcome is not ConflictOutcome.NO_CONFLICT:
                logger.info(
                    'Booking rejected (%s): provider=%s client=%s %s %s-%s',
                    outcome.value,
                    provider.id,
                    client.id,
                    appointment_date,
                    start_time,
                    end_time,
                )
                raise_for_conflict(outcome)

            appointment = self.repository.insert_appointment(
                client_id=client.id,
                provider_id=provider.id,
                service_id=service.id,
                appointment_date=appointment_date,
                start_time=start_time,
                end_time=end_time,
                notes=notes,
                created_at=now,
            )

        logger.info(
            'Appointment %s booked: provider=%s client=%s %s %s-%s',
            appointment.id,
            appointment.provider_id,
            appointment.client_id,
            appointment.appointment_date,
            appointment.start_time,
            appointment.end_time,
        )
        return appointment
