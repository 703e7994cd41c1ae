"""Availability Resolver.

Single place that maps a calendar date onto a provider's weekly template. Both
slot listing and provider auto-assignment go through here.
"""

from dataclasses import dataclass
from datetime import date, time
from typing import Iterable

from scheduling.core.errors import NoAvailability


@dataclass(frozen=True)
class WorkingInterval:
    start: time
    end: time

    @property
    def start_minutes(self) -> int:
        return to_minutes(self.start)

    @property
    def end_minutes(self) -> int:
        return to_minutes(self.end)

    def covers(self, start_minutes: int, end_minutes: int) -> bool:
        return self.start_minutes <= start_minutes and end_minutes <= self.end_minutes


def to_minutes(value: time) -> int:
    return value.hour * 60 + value.minute


def from_minutes(minutes: int) -> time:
    if not 0 <= minutes < 24 * 60:
        raise ValueError(f'{minutes} minutes is outside a single day.')
    return time(minutes // 60, minutes % 60)


def day_of_week(target_date: date) -> int:
    """Locale-independent ordinal, 0=Sunday .. 6=Saturday."""
    return (target_date.weekday() + 1) % 7


def resolve_working_interval(entries: Iterable, target_date: date) -> WorkingInterval:
    """Return the provider's working interval on ``target_date``.

    ``entries`` are schedule entries (anything with ``day_of_week``,
    ``start_time``, ``end_time`` and ``active``). Raises ``NoAvailability``
    when the provider does not work that day.
    """
    weekday = day_of_week(target_date)
    for entry in entries:
        if entry.day_of_week == weekday and getattr(entry, 'active', True):
            return WorkingInterval(start=entry.start_time, end=entry.end_time)

    raise NoAvailability('Provider does not work on this day.')
