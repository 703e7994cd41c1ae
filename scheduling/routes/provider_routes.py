from datetime import date, datetime, time

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.orm import Session

from scheduling.auth.dependencies import get_current_user
from scheduling.core.errors import SchedulingError
from scheduling.database import get_db
from scheduling.engine import reviews, schedules
from scheduling.engine.booking import BookingCoordinator
from scheduling.models.user import User
from scheduling.routes.common import ensure_database_ready, to_http_exception

router = APIRouter(tags=['providers'])


class ScheduleEntryPayload(BaseModel):
    day_of_week: int = Field(ge=0, le=6)
    start_time: time
    end_time: time


class ReplaceScheduleRequest(BaseModel):
    schedules: list[ScheduleEntryPayload]

    @field_validator('schedules')
    @classmethod
    def validate_unique_days(cls, value: list[ScheduleEntryPayload]) -> list[ScheduleEntryPayload]:
        days = [entry.day_of_week for entry in value]
        if len(days) != len(set(days)):
            raise ValueError('Only one schedule entry is allowed per day of week.')
        return value


class ScheduleEntryResponse(BaseModel):
    day_of_week: int
    start_time: time
    end_time: time

    class Config:
        from_attributes = True


class ProviderResponse(BaseModel):
    id: int
    name: str
    email: str | None = None
    phone: str | None = None
    schedules: list[ScheduleEntryResponse]


class ServiceResponse(BaseModel):
    id: int
    name: str
    description: str | None = None
    duration_minutes: int
    active: bool = True

    class Config:
        from_attributes = True


class CreateServiceRequest(BaseModel):
    name: str
    description: str | None = None
    duration_minutes: int = Field(gt=0, le=24 * 60)

    @field_validator('name')
    @classmethod
    def validate_name(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Service name is required.')
        return normalized


class UpdateServiceRequest(BaseModel):
    name: str | None = None
    description: str | None = None
    duration_minutes: int | None = Field(default=None, gt=0, le=24 * 60)
    active: bool | None = None


class ProviderReviewResponse(BaseModel):
    id: int
    appointment_id: int
    client_name: str | None = None
    service_name: str | None = None
    rating: int
    comment: str | None = None
    created_at: datetime


class ProviderReviewsResponse(BaseModel):
    provider_id: int
    average: float
    total: int
    reviews: list[ProviderReviewResponse]


class SlotResponse(BaseModel):
    start_time: time
    end_time: time
    available: bool


class SlotListingResponse(BaseModel):
    provider_id: int
    date: date
    duration_minutes: int
    working: bool
    work_start: time | None = None
    work_end: time | None = None
    slots: list[SlotResponse]
    message: str | None = None


def _provider_response(provider: User) -> ProviderResponse:
    return ProviderResponse(
        id=provider.id,
        name=provider.name,
        email=provider.email,
        phone=provider.phone,
        schedules=[
            ScheduleEntryResponse.model_validate(entry)
            for entry in provider.schedule_entries
            if entry.active
        ],
    )


def _provider_review_response(review) -> ProviderReviewResponse:
    appointment = review.appointment
    return ProviderReviewResponse(
        id=review.id,
        appointment_id=review.appointment_id,
        client_name=review.client.name if review.client else None,
        service_name=appointment.service.name if appointment and appointment.service else None,
        rating=review.rating,
        comment=review.comment,
        created_at=review.created_at,
    )


@router.get('/providers', response_model=list[ProviderResponse])
def list_providers(db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        return [_provider_response(provider) for provider in schedules.list_providers(db)]
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc


@router.get('/services', response_model=list[ServiceResponse])
def list_services(db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        return schedules.list_services(db)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc


@router.get('/providers/{provider_id}/slots', response_model=SlotListingResponse)
def list_provider_slots(
    provider_id: int,
    slot_date: date = Query(..., alias='date'),
    duration: int | None = Query(default=None, ge=1, le=24 * 60),
    service_id: int | None = Query(default=None),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        listing = BookingCoordinator(db).list_slots(
            provider_id,
            slot_date,
            duration_minutes=duration,
            service_id=service_id,
        )
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc

    interval = listing.working_interval
    return SlotListingResponse(
        provider_id=listing.provider_id,
        date=listing.date,
        duration_minutes=listing.duration_minutes,
        working=listing.is_working,
        work_start=interval.start if interval else None,
        work_end=interval.end if interval else None,
        slots=[SlotResponse(start_time=slot.start, end_time=slot.end, available=slot.available) for slot in listing.slots],
        message=None if listing.is_working else 'Provider does not work on this day.',
    )


@router.put('/providers/{provider_id}/schedule', response_model=list[ScheduleEntryResponse])
def replace_provider_schedule(
    provider_id: int,
    data: ReplaceScheduleRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    ensure_database_ready()

    try:
        entries = schedules.replace_schedule(
            db,
            provider_id,
            [(entry.day_of_week, entry.start_time, entry.end_time) for entry in data.schedules],
            actor=current_user,
        )
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc

    return [ScheduleEntryResponse.model_validate(entry) for entry in entries]


@router.delete('/providers/{provider_id}', status_code=status.HTTP_204_NO_CONTENT)
def deactivate_provider(
    provider_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    ensure_database_ready()

    try:
        schedules.deactivate_provider(db, provider_id, actor=current_user)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc


@router.post('/services', response_model=ServiceResponse, status_code=status.HTTP_201_CREATED)
def create_service(
    data: CreateServiceRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    ensure_database_ready()

    try:
        return schedules.create_service(
            db,
            data.name,
            data.duration_minutes,
            actor=current_user,
            description=data.description,
        )
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc


@router.put('/services/{service_id}', response_model=ServiceResponse)
def update_service(
    service_id: int,
    data: UpdateServiceRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    ensure_database_ready()

    try:
        return schedules.update_service(
            db,
            service_id,
            actor=current_user,
            name=data.name,
            description=data.description,
            duration_minutes=data.duration_minutes,
            active=data.active,
        )
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc


@router.delete('/services/{service_id}', status_code=status.HTTP_204_NO_CONTENT)
def deactivate_service(
    service_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    ensure_database_ready()

    try:
        schedules.deactivate_service(db, service_id, actor=current_user)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc


@router.get('/providers/{provider_id}/reviews', response_model=ProviderReviewsResponse)
def list_provider_reviews(provider_id: int, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        summary = reviews.provider_reviews(db, provider_id)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc

    return ProviderReviewsResponse(
        provider_id=summary.provider_id,
        average=summary.average,
        total=summary.total,
        reviews=[_provider_review_response(review) for review in summary.reviews],
    )
