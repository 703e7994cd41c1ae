"""Provider directory, service catalogue and weekly schedule management."""

import logging
from datetime import time
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from scheduling.core.errors import Forbidden, InvalidRequest, ProviderNotFound, ServiceNotFound
from scheduling.database import serialized_write, storage_errors
from scheduling.models.schedule import ScheduleEntry
from scheduling.models.service import Service
from scheduling.models.user import User
from scheduling.repository import ScheduleRepository

logger = logging.getLogger(__name__)


def validate_schedule_entries(entries: Iterable[tuple[int, time, time]]) -> list[tuple[int, time, time]]:
    validated: list[tuple[int, time, time]] = []
    seen_days: set[int] = set()

    for day, start, end in entries:
        if not 0 <= day <= 6:
            raise InvalidRequest('Day of week must be between 0 (Sunday) and 6 (Saturday).')
        if day in seen_days:
            raise InvalidRequest('Only one schedule entry is allowed per day of week.')
        start = start.replace(second=0, microsecond=0)
        end = end.replace(second=0, microsecond=0)
        if start >= end:
            raise InvalidRequest('Schedule start time must be before end time.')
        seen_days.add(day)
        validated.append((day, start, end))

    return sorted(validated)


def _can_manage_provider(actor: User, provider_id: int) -> bool:
    return actor.is_admin or (actor.is_provider and actor.id == provider_id)


def list_providers(db: Session) -> list[User]:
    with storage_errors():
        return ScheduleRepository(db).list_active_providers()


def list_services(db: Session) -> list[Service]:
    with storage_errors():
        return ScheduleRepository(db).list_active_services()


def replace_schedule(db: Session, provider_id: int, entries, actor: User) -> list[ScheduleEntry]:
    """Discard the provider's weekly template and store ``entries`` in its place."""
    if not _can_manage_provider(actor, provider_id):
        raise Forbidden('Not authorized to change this provider\'s schedule.')

    validated = validate_schedule_entries(entries)
    repository = ScheduleRepository(db)

    with serialized_write(db):
        if repository.get_provider(provider_id, lock=True) is None:
            raise ProviderNotFound()
        new_entries = repository.replace_schedule(provider_id, validated)

    logger.info('Schedule replaced for provider %s (%d days)', provider_id, len(new_entries))
    return new_entries


def deactivate_provider(db: Session, provider_id: int, actor: User) -> User:
    """Deactivate a provider together with its schedule so it can no longer be booked."""
    if not actor.is_admin:
        raise Forbidden('Only admins can deactivate providers.')

    repository = ScheduleRepository(db)

    with serialized_write(db):
        provider = repository.get_provider(provider_id, lock=True)
        if provider is None:
            raise ProviderNotFound()
        provider.active = False
        repository.deactivate_schedule(provider_id)

    logger.info('Provider %s deactivated', provider_id)
    return provider


def _require_admin(actor: User) -> None:
    if not actor.is_admin:
        raise Forbidden('Only admins can manage services.')


def _validate_duration(duration_minutes: int) -> int:
    if duration_minutes is None or duration_minutes <= 0:
        raise InvalidRequest('Service duration must be positive.')
    return duration_minutes


def create_service(
    db: Session,
    name: str,
    duration_minutes: int,
    actor: User,
    description: Optional[str] = None,
) -> Service:
    _require_admin(actor)
    if not name or not name.strip():
        raise InvalidRequest('Service name is required.')
    _validate_duration(duration_minutes)

    with serialized_write(db):
        service = ScheduleRepository(db).add_service(name.strip(), description, duration_minutes)

    logger.info('Service %s created (%s, %d min)', service.id, service.name, service.duration_minutes)
    return service


def update_service(
    db: Session,
    service_id: int,
    actor: User,
    name: Optional[str] = None,
    description: Optional[str] = None,
    duration_minutes: Optional[int] = None,
    active: Optional[bool] = None,
) -> Service:
    """Change the given fields of a service.

    Appointments already booked keep their stored ``end_time``; a new duration
    only applies to later bookings.
    """
    _require_admin(actor)
    if name is not None and not name.strip():
        raise InvalidRequest('Service name is required.')
    if duration_minutes is not None:
        _validate_duration(duration_minutes)

    with serialized_write(db):
        service = ScheduleRepository(db).get_service(service_id, lock=True)
        if service is None:
            raise ServiceNotFound()
        if name is not None:
            service.name = name.strip()
        if description is not None:
            service.description = description
        if duration_minutes is not None:
            service.duration_minutes = duration_minutes
        if active is not None:
            service.active = active

    logger.info('Service %s updated', service_id)
    return service


def deactivate_service(db: Session, service_id: int, actor: User) -> Service:
    return update_service(db, service_id, actor, active=False)
