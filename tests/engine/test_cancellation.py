from datetime import datetime, time, timedelta

import pytest

from conftest import add_appointment, add_provider, add_service, add_user
from scheduling.core.clock import FixedClock
from scheduling.core.errors import (
    AppointmentNotFound,
    Forbidden,
    InvalidRequest,
    NotCancellable,
    TooLateToCancel,
)
from scheduling.engine.cancellation import CancellationPolicy, check_cancellation
from scheduling.models.appointment import AppointmentStatus
from scheduling.models.user import UserRole

STARTS_AT = datetime(2026, 1, 5, 10, 0)


@pytest.fixture
def booking(db):
    provider = add_provider(db, 'Ana')
    client = add_user(db, 'Client')
    appointment = add_appointment(db, client, provider, add_service(db), time(10, 0), time(10, 30))
    return appointment, client, provider


def _policy(db, minutes_before_start: int) -> CancellationPolicy:
    return CancellationPolicy(db, clock=FixedClock(STARTS_AT - timedelta(minutes=minutes_before_start)))


def test_client_cannot_cancel_inside_lead_time(db, booking) -> None:
    appointment, client, _provider = booking

    with pytest.raises(TooLateToCancel):
        _policy(db, 119).cancel(appointment.id, client.id, UserRole.CLIENT.value)

    db.refresh(appointment)
    assert appointment.status == AppointmentStatus.CONFIRMED.value


def test_client_can_cancel_at_exactly_the_lead_time(db, booking) -> None:
    appointment, client, _provider = booking

    cancelled = _policy(db, 120).cancel(appointment.id, client.id, UserRole.CLIENT.value)

    assert cancelled.status == AppointmentStatus.CANCELLED.value


def test_provider_can_cancel_at_any_lead_time(db, booking) -> None:
    appointment, _client, provider = booking

    cancelled = _policy(db, 5).cancel(appointment.id, provider.id, UserRole.PROVIDER.value)

    assert cancelled.status == AppointmentStatus.CANCELLED.value


def test_admin_can_cancel_at_any_lead_time(db, booking) -> None:
    appointment, _client, _provider = booking
    admin = add_user(db, 'Admin', role=UserRole.ADMIN)

    cancelled = _policy(db, 1).cancel(appointment.id, admin.id, UserRole.ADMIN)

    assert cancelled.status == AppointmentStatus.CANCELLED.value


def test_other_actors_are_forbidden(db, booking) -> None:
    appointment, _client, _provider = booking
    stranger = add_user(db, 'Stranger')
    other_provider = add_provider(db, 'Bruno')

    with pytest.raises(Forbidden):
        _policy(db, 600).cancel(appointment.id, stranger.id, UserRole.CLIENT.value)
    with pytest.raises(Forbidden):
        _policy(db, 600).cancel(appointment.id, other_provider.id, UserRole.PROVIDER.value)


def test_missing_appointment_is_reported(db) -> None:
    with pytest.raises(AppointmentNotFound):
        _policy(db, 600).cancel(404, 1, UserRole.ADMIN.value)


@pytest.mark.parametrize(
    'closed_status',
    [AppointmentStatus.CANCELLED, AppointmentStatus.COMPLETED, AppointmentStatus.NO_SHOW],
)
def test_closed_appointments_cannot_change_again(db, closed_status: AppointmentStatus) -> None:
    provider = add_provider(db, 'Ana')
    client = add_user(db, 'Client')
    appointment = add_appointment(
        db,
        client,
        provider,
        add_service(db),
        time(10, 0),
        time(10, 30),
        status=closed_status,
    )
    policy = _policy(db, 600)

    with pytest.raises(NotCancellable):
        policy.cancel(appointment.id, client.id, UserRole.CLIENT.value)
    with pytest.raises(NotCancellable):
        policy.change_status(appointment.id, AppointmentStatus.COMPLETED, provider.id, UserRole.PROVIDER.value)


def test_provider_can_complete_or_mark_no_show(db, booking) -> None:
    appointment, _client, provider = booking

    updated = _policy(db, -30).change_status(appointment.id, 'no_show', provider.id, UserRole.PROVIDER.value)

    assert updated.status == AppointmentStatus.NO_SHOW.value


def test_client_cannot_change_status(db, booking) -> None:
    appointment, client, _provider = booking

    with pytest.raises(Forbidden):
        _policy(db, 600).change_status(appointment.id, AppointmentStatus.COMPLETED, client.id, UserRole.CLIENT.value)


@pytest.mark.parametrize('new_status', ['confirmed', 'rescheduled'])
def test_change_status_rejects_non_closing_statuses(db, booking, new_status: str) -> None:
    appointment, _client, provider = booking

    with pytest.raises(InvalidRequest):
        _policy(db, 600).change_status(appointment.id, new_status, provider.id, UserRole.PROVIDER.value)


def test_check_cancellation_checks_status_before_actor(db, booking) -> None:
    appointment, _client, _provider = booking
    appointment.status = AppointmentStatus.COMPLETED.value

    with pytest.raises(NotCancellable):
        check_cancellation(appointment, 999, 'client', STARTS_AT, timedelta(hours=2))
