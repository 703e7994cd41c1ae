"""
Data-access layer for the scheduling engine.

Wraps a SQLAlchemy session behind the operations the engine needs. Methods
never commit; transaction boundaries belong to the caller (see
``scheduling.database.serialized_write``).
"""

from datetime import date, datetime, time
from typing import Iterable, Optional

from sqlalchemy import or_, update
from sqlalchemy.orm import Session, joinedload

from scheduling.models.appointment import Appointment, AppointmentStatus
from scheduling.models.review import Review
from scheduling.models.schedule import ScheduleEntry
from scheduling.models.service import Service
from scheduling.models.user import User, UserRole


class ScheduleRepository:
    """Repository for providers, schedules, services, appointments and reviews."""

    def __init__(self, db: Session):
        self.db = db

    # Users and providers

    def get_user(self, user_id: int, lock: bool = False) -> Optional[User]:
        query = self.db.query(User).filter(User.id == user_id)
        if lock:
            query = query.with_for_update()
        return query.first()

    def get_provider(self, provider_id: int, lock: bool = False) -> Optional[User]:
        user = self.get_user(provider_id, lock=lock)
        if user is None or user.role != UserRole.PROVIDER.value:
            return None
        return user

    def list_active_providers(self) -> list[User]:
        return (
            self.db.query(User)
            .options(joinedload(User.schedule_entries))
            .filter(User.role == UserRole.PROVIDER.value, User.active.is_(True))
            .order_by(User.name.asc(), User.id.asc())
            .all()
        )

    def lock_users(self, user_ids: Iterable[int]) -> None:
        # Ascending id order keeps concurrent lockers from deadlocking.
        for user_id in sorted(set(user_ids)):
            self.get_user(user_id, lock=True)

    # Schedules

    def get_schedule(self, provider_id: int) -> list[ScheduleEntry]:
        return (
            self.db.query(ScheduleEntry)
            .filter(ScheduleEntry.provider_id == provider_id, ScheduleEntry.active.is_(True))
            .order_by(ScheduleEntry.day_of_week.asc())
            .all()
        )

    def replace_schedule(self, provider_id: int, entries: Iterable[tuple[int, time, time]]) -> list[ScheduleEntry]:
        self.db.query(ScheduleEntry).filter(ScheduleEntry.provider_id == provider_id).delete(
            synchronize_session='fetch'
        )
        # The unique (provider, day) constraint is checked against the flushed delete.
        self.db.flush()

        new_entries = [
            ScheduleEntry(
                provider_id=provider_id,
                day_of_week=day,
                start_time=start,
                end_time=end,
                active=True,
            )
            for day, start, end in entries
        ]
        self.db.add_all(new_entries)
        self.db.flush()
        return new_entries

    def deactivate_schedule(self, provider_id: int) -> None:
        self.db.query(ScheduleEntry).filter(ScheduleEntry.provider_id == provider_id).update(
            {ScheduleEntry.active: False},
            synchronize_session=False,
        )

    # Services

    def get_service(self, service_id: int, lock: bool = False) -> Optional[Service]:
        query = self.db.query(Service).filter(Service.id == service_id)
        if lock:
            query = query.with_for_update()
        return query.first()

    def add_service(self, name: str, description: Optional[str], duration_minutes: int) -> Service:
        service = Service(name=name, description=description, duration_minutes=duration_minutes, active=True)
        self.db.add(service)
        self.db.flush()
        return service

    def list_active_services(self) -> list[Service]:
        return self.db.query(Service).filter(Service.active.is_(True)).order_by(Service.name.asc()).all()

    # Appointments

    def get_appointment(self, appointment_id: int, lock: bool = False) -> Optional[Appointment]:
        query = self.db.query(Appointment).filter(Appointment.id == appointment_id)
        if lock:
            query = query.with_for_update()
        return query.first()

    def get_confirmed_appointments(
        self,
        appointment_date: date,
        provider_id: Optional[int] = None,
        client_id: Optional[int] = None,
    ) -> list[Appointment]:
        if provider_id is None and client_id is None:
            raise ValueError('Either provider_id or client_id is required.')

        query = self.db.query(Appointment).filter(
            Appointment.appointment_date == appointment_date,
            Appointment.status == AppointmentStatus.CONFIRMED.value,
        )
        if provider_id is not None:
            query = query.filter(Appointment.provider_id == provider_id)
        if client_id is not None:
            query = query.filter(Appointment.client_id == client_id)
        return query.order_by(Appointment.start_time.asc()).all()

    def has_confirmed_start(self, provider_id: int, appointment_date: date, start_time: time) -> bool:
        return self.db.query(Appointment.id).filter(
            Appointment.provider_id == provider_id,
            Appointment.appointment_date == appointment_date,
            Appointment.start_time == start_time,
            Appointment.status == AppointmentStatus.CONFIRMED.value,
        ).first() is not None

    def insert_appointment(
        self,
        client_id: int,
        provider_id: int,
        service_id: int,
        appointment_date: date,
        start_time: time,
        end_time: time,
        notes: Optional[str],
        created_at: datetime,
    ) -> Appointment:
        appointment = Appointment(
            client_id=client_id,
            provider_id=provider_id,
            service_id=service_id,
            appointment_date=appointment_date,
            start_time=start_time,
            end_time=end_time,
            status=AppointmentStatus.CONFIRMED.value,
            notified=False,
            notes=notes,
            created_at=created_at,
        )
        self.db.add(appointment)
        self.db.flush()
        return appointment

    def set_status(self, appointment: Appointment, status: AppointmentStatus) -> Appointment:
        appointment.status = status.value
        self.db.flush()
        return appointment

    def set_notified(self, appointment_id: int) -> bool:
        """Flip ``notified`` false -> true; returns False if it was not ours to flip."""
        result = self.db.execute(
            update(Appointment)
            .where(
                Appointment.id == appointment_id,
                Appointment.notified.is_(False),
                Appointment.status == AppointmentStatus.CONFIRMED.value,
            )
            .values(notified=True)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def find_due_reminders(self, window_start: datetime, window_end: datetime) -> list[Appointment]:
        """Confirmed, unnotified appointments starting in ``[window_start, window_end)``."""
        candidate_dates = sorted({window_start.date(), window_end.date()})
        candidates = (
            self.db.query(Appointment)
            .options(
                joinedload(Appointment.client),
                joinedload(Appointment.provider),
                joinedload(Appointment.service),
            )
            .filter(
                Appointment.appointment_date.in_(candidate_dates),
                Appointment.status == AppointmentStatus.CONFIRMED.value,
                Appointment.notified.is_(False),
            )
            .all()
        )
        due = [
            appointment
            for appointment in candidates
            if window_start <= appointment.starts_at < window_end
        ]
        return sorted(due, key=lambda appointment: (appointment.starts_at, appointment.id))

    def list_appointments(
        self,
        client_id: Optional[int] = None,
        provider_id: Optional[int] = None,
        status: Optional[str] = None,
        appointment_date: Optional[date] = None,
    ) -> list[Appointment]:
        query = self.db.query(Appointment).options(
            joinedload(Appointment.client),
            joinedload(Appointment.provider),
            joinedload(Appointment.service),
        )
        if client_id is not None and provider_id is not None:
            query = query.filter(or_(Appointment.client_id == client_id, Appointment.provider_id == provider_id))
        elif client_id is not None:
            query = query.filter(Appointment.client_id == client_id)
        elif provider_id is not None:
            query = query.filter(Appointment.provider_id == provider_id)
        if status:
            query = query.filter(Appointment.status == status)
        if appointment_date:
            query = query.filter(Appointment.appointment_date == appointment_date)
        return query.order_by(Appointment.appointment_date.desc(), Appointment.start_time.desc()).all()

    # Reviews

    def get_review_for_appointment(self, appointment_id: int) -> Optional[Review]:
        return (
            self.db.query(Review)
            .options(joinedload(Review.client), joinedload(Review.provider))
            .filter(Review.appointment_id == appointment_id)
            .first()
        )

    def insert_review(
        self,
        appointment: Appointment,
        rating: int,
        comment: Optional[str],
        created_at: datetime,
    ) -> Review:
        review = Review(
            appointment_id=appointment.id,
            client_id=appointment.client_id,
            provider_id=appointment.provider_id,
            rating=rating,
            comment=comment,
            created_at=created_at,
        )
        self.db.add(review)
        self.db.flush()
        return review

    def list_provider_reviews(self, provider_id: int) -> list[Review]:
        return (
            self.db.query(Review)
            .options(
                joinedload(Review.client),
                joinedload(Review.appointment).joinedload(Appointment.service),
            )
            .filter(Review.provider_id == provider_id)
            .order_by(Review.created_at.desc(), Review.id.desc())
            .all()
        )
