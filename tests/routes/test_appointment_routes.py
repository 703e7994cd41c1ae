from datetime import date, time, timedelta

import pytest
from fastapi import HTTPException
from pydantic import ValidationError

from conftest import add_appointment, add_provider, add_service, add_user
from scheduling.models.appointment import AppointmentStatus
from scheduling.models.user import UserRole
from scheduling.routes import appointment_routes
from scheduling.routes.appointment_routes import (
    CreateAppointmentRequest,
    CreateReviewRequest,
    UpdateStatusRequest,
    cancel_appointment,
    create_appointment,
    create_review,
    get_review,
    list_appointments,
    update_appointment_status,
)

ALL_WEEK = {day: (time(0, 0), time(23, 59)) for day in range(7)}
BOOKING_DATE = date.today() + timedelta(days=7)


@pytest.fixture(autouse=True)
def skip_schema_checks(monkeypatch) -> None:
    monkeypatch.setattr(appointment_routes, 'ensure_database_ready', lambda: None)


@pytest.mark.parametrize(('provider_id', 'expected'), [('', 'auto'), (' Random ', 'auto'), ('AUTO', 'auto'), ('12', 12), (5, 5)])
def test_create_appointment_request_normalizes_provider(provider_id, expected) -> None:
    request = CreateAppointmentRequest(
        provider_id=provider_id,
        service_id=1,
        appointment_date=date(2026, 1, 5),
        start_time=time(9, 0),
    )

    assert request.provider_id == expected


def test_create_appointment_request_rejects_unknown_provider_text() -> None:
    with pytest.raises(ValidationError):
        CreateAppointmentRequest(
            provider_id='someone',
            service_id=1,
            appointment_date=date(2026, 1, 5),
            start_time=time(9, 0),
        )


@pytest.mark.parametrize(('notes', 'expected'), [(None, None), ('   ', None), ('  bring x-rays ', 'bring x-rays')])
def test_create_appointment_request_normalizes_notes(notes, expected) -> None:
    request = CreateAppointmentRequest(
        service_id=1,
        appointment_date=date(2026, 1, 5),
        start_time=time(9, 0),
        notes=notes,
    )

    assert request.notes == expected


def test_create_appointment_request_rejects_long_notes() -> None:
    with pytest.raises(ValidationError):
        CreateAppointmentRequest(
            service_id=1,
            appointment_date=date(2026, 1, 5),
            start_time=time(9, 0),
            notes='x' * 601,
        )


def test_update_status_request_rejects_unknown_status() -> None:
    with pytest.raises(ValidationError):
        UpdateStatusRequest(status='rescheduled')


def test_create_appointment_books_for_current_user(db) -> None:
    provider = add_provider(db, 'Ana', schedule=ALL_WEEK)
    service = add_service(db, duration_minutes=45)
    client = add_user(db, 'Client')

    response = create_appointment(
        CreateAppointmentRequest(
            provider_id=str(provider.id),
            service_id=service.id,
            appointment_date=BOOKING_DATE,
            start_time=time(10, 0),
            notes=' window seat ',
        ),
        db=db,
        current_user=client,
    )

    assert response.client_id == client.id
    assert response.provider_name == 'Ana'
    assert response.service_name == service.name
    assert response.end_time == time(10, 45)
    assert response.status == AppointmentStatus.CONFIRMED.value
    assert response.notes == 'window seat'


def test_create_appointment_maps_conflict_to_409(db) -> None:
    provider = add_provider(db, 'Ana', schedule=ALL_WEEK)
    service = add_service(db)
    add_appointment(db, add_user(db, 'First'), provider, service, time(10, 0), time(10, 30), appointment_date=BOOKING_DATE)

    with pytest.raises(HTTPException) as exception_info:
        create_appointment(
            CreateAppointmentRequest(
                provider_id=provider.id,
                service_id=service.id,
                appointment_date=BOOKING_DATE,
                start_time=time(10, 0),
            ),
            db=db,
            current_user=add_user(db, 'Second'),
        )

    assert exception_info.value.status_code == 409
    assert exception_info.value.detail['code'] == 'slot_conflict'


def test_create_appointment_without_candidates_is_409(db) -> None:
    service = add_service(db)

    with pytest.raises(HTTPException) as exception_info:
        create_appointment(
            CreateAppointmentRequest(service_id=service.id, appointment_date=BOOKING_DATE, start_time=time(10, 0)),
            db=db,
            current_user=add_user(db, 'Client'),
        )

    assert exception_info.value.status_code == 409
    assert exception_info.value.detail['code'] == 'no_provider_available'


def test_list_appointments_is_scoped_to_the_caller(db) -> None:
    provider_a = add_provider(db, 'Ana', schedule=ALL_WEEK)
    provider_b = add_provider(db, 'Bruno', schedule=ALL_WEEK)
    service = add_service(db)
    client = add_user(db, 'Client')
    other = add_user(db, 'Other')
    admin = add_user(db, 'Admin', role=UserRole.ADMIN)
    mine = add_appointment(db, client, provider_a, service, time(9, 0), time(9, 30), appointment_date=BOOKING_DATE)
    add_appointment(db, other, provider_b, service, time(9, 0), time(9, 30), appointment_date=BOOKING_DATE)

    as_client = list_appointments(appointment_status=None, appointment_date=None, db=db, current_user=client)
    as_provider = list_appointments(appointment_status=None, appointment_date=None, db=db, current_user=provider_a)
    as_admin = list_appointments(appointment_status=None, appointment_date=None, db=db, current_user=admin)

    assert [appointment.id for appointment in as_client] == [mine.id]
    assert [appointment.id for appointment in as_provider] == [mine.id]
    assert len(as_admin) == 2


def test_list_appointments_filters_by_status(db) -> None:
    provider = add_provider(db, 'Ana', schedule=ALL_WEEK)
    service = add_service(db)
    client = add_user(db, 'Client')
    add_appointment(db, client, provider, service, time(9, 0), time(9, 30), appointment_date=BOOKING_DATE)
    cancelled = add_appointment(
        db,
        client,
        provider,
        service,
        time(11, 0),
        time(11, 30),
        appointment_date=BOOKING_DATE,
        status=AppointmentStatus.CANCELLED,
    )

    listed = list_appointments(
        appointment_status=AppointmentStatus.CANCELLED,
        appointment_date=BOOKING_DATE,
        db=db,
        current_user=client,
    )

    assert [appointment.id for appointment in listed] == [cancelled.id]


def test_client_cancels_own_appointment(db) -> None:
    provider = add_provider(db, 'Ana', schedule=ALL_WEEK)
    client = add_user(db, 'Client')
    appointment = add_appointment(
        db, client, provider, add_service(db), time(10, 0), time(10, 30), appointment_date=BOOKING_DATE
    )

    response = cancel_appointment(appointment.id, db=db, current_user=client)

    assert response.status == AppointmentStatus.CANCELLED.value


def test_cancel_by_stranger_is_403(db) -> None:
    provider = add_provider(db, 'Ana', schedule=ALL_WEEK)
    appointment = add_appointment(
        db, add_user(db, 'Client'), provider, add_service(db), time(10, 0), time(10, 30), appointment_date=BOOKING_DATE
    )

    with pytest.raises(HTTPException) as exception_info:
        cancel_appointment(appointment.id, db=db, current_user=add_user(db, 'Stranger'))

    assert exception_info.value.status_code == 403
    assert exception_info.value.detail['code'] == 'forbidden'


def test_cancel_missing_appointment_is_404(db) -> None:
    with pytest.raises(HTTPException) as exception_info:
        cancel_appointment(404, db=db, current_user=add_user(db, 'Client'))

    assert exception_info.value.status_code == 404


def test_provider_marks_appointment_completed_and_it_stays_closed(db) -> None:
    provider = add_provider(db, 'Ana', schedule=ALL_WEEK)
    appointment = add_appointment(
        db, add_user(db, 'Client'), provider, add_service(db), time(10, 0), time(10, 30), appointment_date=BOOKING_DATE
    )

    response = update_appointment_status(
        appointment.id,
        UpdateStatusRequest(status='completed'),
        db=db,
        current_user=provider,
    )
    assert response.status == AppointmentStatus.COMPLETED.value

    with pytest.raises(HTTPException) as exception_info:
        cancel_appointment(appointment.id, db=db, current_user=provider)

    assert exception_info.value.status_code == 409
    assert exception_info.value.detail['code'] == 'not_cancellable'


def test_create_review_request_validates_rating_and_comment() -> None:
    assert CreateReviewRequest(rating=5, comment='   ').comment is None

    with pytest.raises(ValidationError):
        CreateReviewRequest(rating=6)


def test_client_reviews_completed_appointment(db) -> None:
    provider = add_provider(db, 'Ana', schedule=ALL_WEEK)
    client = add_user(db, 'Client')
    appointment = add_appointment(
        db,
        client,
        provider,
        add_service(db),
        time(10, 0),
        time(10, 30),
        status=AppointmentStatus.COMPLETED,
    )

    created = create_review(appointment.id, CreateReviewRequest(rating=5, comment=' Great '), db=db, current_user=client)
    fetched = get_review(appointment.id, db=db, current_user=provider)

    assert created.provider_name == 'Ana'
    assert created.comment == 'Great'
    assert fetched.id == created.id

    with pytest.raises(HTTPException) as exception_info:
        create_review(appointment.id, CreateReviewRequest(rating=3), db=db, current_user=client)

    assert exception_info.value.status_code == 409
    assert exception_info.value.detail['code'] == 'already_reviewed'


def test_missing_review_is_404(db) -> None:
    with pytest.raises(HTTPException) as exception_info:
        get_review(404, db=db, current_user=add_user(db, 'Client'))

    assert exception_info.value.status_code == 404
    assert exception_info.value.detail['code'] == 'review_not_found'
