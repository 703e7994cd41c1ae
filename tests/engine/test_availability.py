from datetime import date, time
from types import SimpleNamespace

import pytest

from scheduling.core.errors import NoAvailability
from scheduling.engine.availability import (
    WorkingInterval,
    day_of_week,
    from_minutes,
    resolve_working_interval,
    to_minutes,
)


def _entry(day: int, start: time, end: time, active: bool = True) -> SimpleNamespace:
    return SimpleNamespace(day_of_week=day, start_time=start, end_time=end, active=active)


@pytest.mark.parametrize(
    ('target_date', 'expected'),
    [
        (date(2026, 1, 4), 0),
        (date(2026, 1, 5), 1),
        (date(2026, 1, 9), 5),
        (date(2026, 1, 10), 6),
    ],
)
def test_day_of_week_counts_from_sunday(target_date: date, expected: int) -> None:
    assert day_of_week(target_date) == expected


def test_resolve_working_interval_returns_matching_entry() -> None:
    entries = [
        _entry(1, time(9, 0), time(19, 0)),
        _entry(2, time(10, 0), time(14, 0)),
    ]

    interval = resolve_working_interval(entries, date(2026, 1, 6))

    assert interval == WorkingInterval(start=time(10, 0), end=time(14, 0))
    assert interval.start_minutes == 600
    assert interval.end_minutes == 840


def test_resolve_working_interval_raises_when_provider_is_off() -> None:
    with pytest.raises(NoAvailability):
        resolve_working_interval([_entry(1, time(9, 0), time(19, 0))], date(2026, 1, 4))


def test_resolve_working_interval_ignores_inactive_entries() -> None:
    entries = [_entry(1, time(9, 0), time(19, 0), active=False)]

    with pytest.raises(NoAvailability):
        resolve_working_interval(entries, date(2026, 1, 5))


def test_working_interval_covers_is_inclusive_of_both_bounds() -> None:
    interval = WorkingInterval(start=time(9, 0), end=time(19, 0))

    assert interval.covers(to_minutes(time(9, 0)), to_minutes(time(19, 0)))
    assert not interval.covers(to_minutes(time(8, 30)), to_minutes(time(9, 0)))
    assert not interval.covers(to_minutes(time(18, 45)), to_minutes(time(19, 15)))


def test_minutes_conversion() -> None:
    assert to_minutes(time(18, 30)) == 1110
    assert from_minutes(1110) == time(18, 30)

    with pytest.raises(ValueError):
        from_minutes(24 * 60)
