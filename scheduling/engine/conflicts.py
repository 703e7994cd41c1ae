"""Conflict Detector.

Half-open overlap checks against confirmed appointments on the same date.
Must be called inside the same transaction that performs the insert.
"""

from datetime import date, time
from enum import Enum

from scheduling.core.errors import ClientDoubleBooked, SlotConflict
from scheduling.engine.availability import to_minutes
from scheduling.engine.slots import overlaps
from scheduling.repository import ScheduleRepository


class ConflictOutcome(str, Enum):
    NO_CONFLICT = 'no_conflict'
    PROVIDER_CONFLICT = 'provider_conflict'
    CLIENT_CONFLICT = 'client_conflict'


def _has_overlap(appointments, start: time, end: time) -> bool:
    new_start, new_end = to_minutes(start), to_minutes(end)
    return any(
        overlaps(to_minutes(appointment.start_time), to_minutes(appointment.end_time), new_start, new_end)
        for appointment in appointments
    )


def detect_conflict(
    repository: ScheduleRepository,
    provider_id: int,
    client_id: int,
    appointment_date: date,
    start: time,
    end: time,
) -> ConflictOutcome:
    provider_appointments = repository.get_confirmed_appointments(appointment_date, provider_id=provider_id)
    if _has_overlap(provider_appointments, start, end):
        return ConflictOutcome.PROVIDER_CONFLICT

    # A client cannot be in two places at once, whichever provider they picked.
    client_appointments = repository.get_confirmed_appointments(appointment_date, client_id=client_id)
    if _has_overlap(client_appointments, start, end):
        return ConflictOutcome.CLIENT_CONFLICT

    return ConflictOutcome.NO_CONFLICT


def raise_for_conflict(outcome: ConflictOutcome) -> None:
    if outcome is ConflictOutcome.PROVIDER_CONFLICT:
        raise SlotConflict()
    if outcome is ConflictOutcome.CLIENT_CONFLICT:
        raise ClientDoubleBooked()
