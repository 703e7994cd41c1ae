"""Slot Generator.

Pure function of its inputs: working interval, service duration, already
booked intervals and "now". Intervals are half-open ``[start, end)`` and
expressed in minutes from midnight.
"""

from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Iterable

from scheduling.engine.availability import WorkingInterval, from_minutes

DEFAULT_SLOT_STRIDE_MINUTES = 30


@dataclass(frozen=True)
class Slot:
    start: time
    end: time
    available: bool

    def as_dict(self) -> dict:
        return {
            'start_time': self.start.strftime('%H:%M'),
            'end_time': self.end.strftime('%H:%M'),
            'available': self.available,
        }


def overlaps(start_a: int, end_a: int, start_b: int, end_b: int) -> bool:
    return start_a < end_b and end_a > start_b


def generate_slots(
    work_start: int,
    work_end: int,
    duration_minutes: int,
    booked: Iterable[tuple[int, int]],
    slot_date: date,
    now: datetime,
    stride_minutes: int = DEFAULT_SLOT_STRIDE_MINUTES,
) -> list[Slot]:
    if duration_minutes <= 0:
        raise ValueError('Service duration must be positive.')
    if stride_minutes <= 0:
        raise ValueError('Slot stride must be positive.')

    booked_intervals = list(booked)
    slots: list[Slot] = []
    cursor = work_start

    while cursor + duration_minutes <= work_end:
        slot_end = cursor + duration_minutes
        is_booked = any(
            overlaps(cursor, slot_end, booked_start, booked_end)
            for booked_start, booked_end in booked_intervals
        )
        is_past = datetime.combine(slot_date, from_minutes(cursor)) <= now

        slots.append(
            Slot(
                start=from_minutes(cursor),
                end=from_minutes(slot_end),
                available=not is_booked and not is_past,
            )
        )
        # The stride is independent of the duration, so slots may overlap.
        cursor += stride_minutes

    return slots


def generate_slots_for_interval(
    interval: WorkingInterval,
    duration_minutes: int,
    booked: Iterable[tuple[int, int]],
    slot_date: date,
    now: datetime,
    stride_minutes: int = DEFAULT_SLOT_STRIDE_MINUTES,
) -> list[Slot]:
    return generate_slots(
        interval.start_minutes,
        interval.end_minutes,
        duration_minutes,
        booked,
        slot_date,
        now,
        stride_minutes,
    )
