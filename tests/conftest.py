import os
from datetime import datetime, time

import pytest
from sqlalchemy.orm import sessionmaker

os.environ.setdefault('DATABASE_URL', 'sqlite:///./test.db')

from scheduling.core.clock import FixedClock  # noqa: E402
from scheduling.database import Base, build_engine, create_tables  # noqa: E402
from scheduling.models.appointment import Appointment, AppointmentStatus  # noqa: E402
from scheduling.models.schedule import ScheduleEntry  # noqa: E402
from scheduling.models.service import Service  # noqa: E402
from scheduling.models.user import User, UserRole  # noqa: E402

# 2026-01-05 is a Monday (day_of_week 1).
MONDAY = datetime(2026, 1, 5).date()


@pytest.fixture
def db_engine():
    engine = build_engine('sqlite://')
    create_tables(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(datetime(2026, 1, 1, 8, 0))


def add_user(db, name: str, role: UserRole = UserRole.CLIENT, phone: str | None = '5551234', active: bool = True) -> User:
    user = User(
        name=name,
        email=f"{name.lower().replace(' ', '.')}@example.com",
        phone=phone,
        role=role.value,
        active=active,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def add_provider(db, name: str, schedule: dict | None = None, active: bool = True) -> User:
    provider = add_user(db, name, role=UserRole.PROVIDER, active=active)
    if schedule is None:
        schedule = {1: (time(9, 0), time(19, 0))}
    for day, (start, end) in schedule.items():
        db.add(ScheduleEntry(provider_id=provider.id, day_of_week=day, start_time=start, end_time=end))
    db.commit()
    db.refresh(provider)
    return provider


def add_service(db, name: str = 'Haircut', duration_minutes: int = 30, active: bool = True) -> Service:
    service = Service(name=name, duration_minutes=duration_minutes, active=active)
    db.add(service)
    db.commit()
    db.refresh(service)
    return service


def add_appointment(
    db,
    client: User,
    provider: User,
    service: Service,
    start: time,
    end: time,
    appointment_date=MONDAY,
    status: AppointmentStatus = AppointmentStatus.CONFIRMED,
    notified: bool = False,
) -> Appointment:
    appointment = Appointment(
        client_id=client.id,
        provider_id=provider.id,
        service_id=service.id,
        appointment_date=appointment_date,
        start_time=start,
        end_time=end,
        status=status.value,
        notified=notified,
    )
    db.add(appointment)
    db.commit()
    db.refresh(appointment)
    return appointment
