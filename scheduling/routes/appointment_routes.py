from datetime import date, datetime, time

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.orm import Session

from scheduling.auth.dependencies import get_current_user
from scheduling.core import config
from scheduling.core.errors import SchedulingError
from scheduling.database import get_db, storage_errors
from scheduling.engine import reviews
from scheduling.engine.booking import AUTO_ASSIGN, BookingCoordinator
from scheduling.engine.cancellation import CancellationPolicy
from scheduling.models.appointment import Appointment, AppointmentStatus
from scheduling.models.user import User, UserRole
from scheduling.repository import ScheduleRepository
from scheduling.routes.common import ensure_database_ready, to_http_exception

router = APIRouter(tags=['appointments'])


class CreateAppointmentRequest(BaseModel):
    provider_id: int | str | None = None
    service_id: int
    appointment_date: date
    start_time: time
    notes: str | None = None

    @field_validator('provider_id')
    @classmethod
    def validate_provider_id(cls, value: int | str | None) -> int | str | None:
        if value is None or isinstance(value, int):
            return value

        normalized = value.strip().lower()
        if normalized in {'', AUTO_ASSIGN, 'random'}:
            return AUTO_ASSIGN
        if normalized.isdigit():
            return int(normalized)
        raise ValueError('Provider must be an id or "auto".')

    @field_validator('notes')
    @classmethod
    def validate_notes(cls, value: str | None) -> str | None:
        if value is None:
            return None

        normalized = value.strip()
        if not normalized:
            return None

        if len(normalized) > config.MAX_APPOINTMENT_NOTES_LENGTH:
            raise ValueError(f'Notes must be {config.MAX_APPOINTMENT_NOTES_LENGTH} characters or fewer.')

        return normalized


class UpdateStatusRequest(BaseModel):
    status: AppointmentStatus


class CreateReviewRequest(BaseModel):
    rating: int = Field(ge=1, le=5)
    comment: str | None = None

    @field_validator('comment')
    @classmethod
    def validate_comment(cls, value: str | None) -> str | None:
        if value is None:
            return None

        normalized = value.strip()
        if not normalized:
            return None

        if len(normalized) > config.MAX_APPOINTMENT_NOTES_LENGTH:
            raise ValueError(f'Comments must be {config.MAX_APPOINTMENT_NOTES_LENGTH} characters or fewer.')

        return normalized


class ReviewResponse(BaseModel):
    id: int
    appointment_id: int
    client_id: int
    client_name: str | None = None
    provider_id: int
    provider_name: str | None = None
    rating: int
    comment: str | None = None
    created_at: datetime


class AppointmentResponse(BaseModel):
    id: int
    client_id: int
    client_name: str | None = None
    provider_id: int
    provider_name: str | None = None
    service_id: int
    service_name: str | None = None
    appointment_date: date
    start_time: time
    end_time: time
    status: str
    notified: bool
    notes: str | None = None
    created_at: datetime


def _appointment_response(appointment: Appointment) -> AppointmentResponse:
    return AppointmentResponse(
        id=appointment.id,
        client_id=appointment.client_id,
        client_name=appointment.client.name if appointment.client else None,
        provider_id=appointment.provider_id,
        provider_name=appointment.provider.name if appointment.provider else None,
        service_id=appointment.service_id,
        service_name=appointment.service.name if appointment.service else None,
        appointment_date=appointment.appointment_date,
        start_time=appointment.start_time,
        end_time=appointment.end_time,
        status=appointment.status,
        notified=bool(appointment.notified),
        notes=appointment.notes,
        created_at=appointment.created_at,
    )


def _review_response(review) -> ReviewResponse:
    return ReviewResponse(
        id=review.id,
        appointment_id=review.appointment_id,
        client_id=review.client_id,
        client_name=review.client.name if review.client else None,
        provider_id=review.provider_id,
        provider_name=review.provider.name if review.provider else None,
        rating=review.rating,
        comment=review.comment,
        created_at=review.created_at,
    )


@router.post('/appointments', response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
def create_appointment(
    data: CreateAppointmentRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    ensure_database_ready()

    try:
        appointment = BookingCoordinator(db).create_appointment(
            client_id=current_user.id,
            provider_id=data.provider_id,
            service_id=data.service_id,
            appointment_date=data.appointment_date,
            start_time=data.start_time,
            notes=data.notes,
        )
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc

    return _appointment_response(appointment)


@router.get('/appointments', response_model=list[AppointmentResponse])
def list_appointments(
    appointment_status: AppointmentStatus | None = Query(default=None, alias='status'),
    appointment_date: date | None = Query(default=None, alias='date'),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    ensure_database_ready()

    client_id = provider_id = None
    if current_user.role == UserRole.CLIENT.value:
        client_id = current_user.id
    elif current_user.role == UserRole.PROVIDER.value:
        provider_id = current_user.id

    try:
        with storage_errors():
            appointments = ScheduleRepository(db).list_appointments(
                client_id=client_id,
                provider_id=provider_id,
                status=appointment_status.value if appointment_status else None,
                appointment_date=appointment_date,
            )
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc

    return [_appointment_response(appointment) for appointment in appointments]


@router.put('/appointments/{appointment_id}/cancel', response_model=AppointmentResponse)
def cancel_appointment(
    appointment_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    ensure_database_ready()

    try:
        appointment = CancellationPolicy(db).cancel(appointment_id, current_user.id, current_user.role)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc

    return _appointment_response(appointment)


@router.put('/appointments/{appointment_id}/status', response_model=AppointmentResponse)
def update_appointment_status(
    appointment_id: int,
    data: UpdateStatusRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    ensure_database_ready()

    try:
        appointment = CancellationPolicy(db).change_status(
            appointment_id,
            data.status,
            current_user.id,
            current_user.role,
        )
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc

    return _appointment_response(appointment)


@router.post(
    '/appointments/{appointment_id}/review',
    response_model=ReviewResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_review(
    appointment_id: int,
    data: CreateReviewRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    ensure_database_ready()

    try:
        review = reviews.create_review(db, appointment_id, current_user, data.rating, data.comment)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc

    return _review_response(review)


@router.get('/appointments/{appointment_id}/review', response_model=ReviewResponse)
def get_review(
    appointment_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    ensure_database_ready()

    try:
        review = reviews.get_review(db, appointment_id)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc

    return _review_response(review)
