"""Client reviews of completed appointments."""

import logging
from dataclasses import dataclass, field
from typing import Optional

from sqlalchemy.orm import Session

from scheduling.core.clock import SystemClock
from scheduling.core.errors import (
    AlreadyReviewed,
    AppointmentNotFound,
    Forbidden,
    InvalidRequest,
    ReviewNotFound,
)
from scheduling.database import serialized_write, storage_errors
from scheduling.models.appointment import AppointmentStatus
from scheduling.models.review import Review
from scheduling.models.user import User
from scheduling.repository import ScheduleRepository

logger = logging.getLogger(__name__)

MIN_RATING = 1
MAX_RATING = 5


@dataclass
class ProviderReviews:
    provider_id: int
    reviews: list[Review] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.reviews)

    @property
    def average(self) -> float:
        if not self.reviews:
            return 0.0
        return sum(review.rating for review in self.reviews) / len(self.reviews)


def create_review(
    db: Session,
    appointment_id: int,
    actor: User,
    rating: int,
    comment: Optional[str] = None,
    clock=None,
) -> Review:
    """Record the appointment's client rating of a completed appointment; one review per appointment."""
    if not MIN_RATING <= rating <= MAX_RATING:
        raise InvalidRequest(f'Rating must be between {MIN_RATING} and {MAX_RATING}.')

    now = (clock or SystemClock()).now()
    repository = ScheduleRepository(db)

    with serialized_write(db):
        appointment = repository.get_appointment(appointment_id, lock=True)
        if appointment is None:
            raise AppointmentNotFound()
        if appointment.client_id != actor.id:
            raise Forbidden('You can only review your own appointments.')
        if appointment.status != AppointmentStatus.COMPLETED.value:
            raise InvalidRequest('Only completed appointments can be reviewed.')
        if repository.get_review_for_appointment(appointment.id) is not None:
            raise AlreadyReviewed()

        review = repository.insert_review(appointment, rating, comment, created_at=now)

    logger.info('Appointment %s reviewed by client %s (%d)', appointment_id, actor.id, rating)
    return review


def get_review(db: Session, appointment_id: int) -> Review:
    with storage_errors():
        review = ScheduleRepository(db).get_review_for_appointment(appointment_id)
    if review is None:
        raise ReviewNotFound()
    return review


def provider_reviews(db: Session, provider_id: int) -> ProviderReviews:
    with storage_errors():
        return ProviderReviews(provider_id, ScheduleRepository(db).list_provider_reviews(provider_id))
