"""Pytest configuration and fixtures."""

from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import date, time, timedelta
from decimal import Decimal
from uuid import UUID, uuid4

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.config import BusinessHours, get_settings
from app.models import (
    AddOn,
    Appointment,
    AppointmentStatus,
    AppointmentType,
    Barber,
    BarberDayOff,
    Base,
    PriorityLevel,
    Service,
)
from app.schemas.appointment import SchedulingOutcome
from app.services.tracing import clear_trace_context

settings = get_settings()


class RecordingDispatcher:
    """Notification dispatcher that keeps every outcome it receives."""

    def __init__(self) -> None:
        self.outcomes: list[SchedulingOutcome] = []

    async def dispatch(self, outcome: SchedulingOutcome) -> None:
        self.outcomes.append(outcome)


@pytest_asyncio.fixture(scope="function")
async def db_engine(tmp_path):
    """Fresh SQLite database file per test."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'barberq_test.db'}", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the test engine."""
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture(scope="function")
async def db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create test database session."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture(autouse=True)
def _reset_trace_context():
    """No trace context leaks between tests."""
    yield
    clear_trace_context()


@pytest.fixture
def day() -> date:
    """A bookable day: tomorrow."""
    return date.today() + timedelta(days=1)


@pytest.fixture
def hours() -> BusinessHours:
    """Default business hours: 08:00-12:00 and 13:00-17:00 in 30 minute steps."""
    return settings.business_hours


@pytest.fixture
def dispatcher() -> RecordingDispatcher:
    """Recording notification dispatcher."""
    return RecordingDispatcher()


@pytest_asyncio.fixture
async def barber(db: AsyncSession) -> Barber:
    """Create test barber."""
    b = Barber(id=uuid4(), name="Ana", is_active=True)
    db.add(b)
    await db.commit()
    return b


@pytest_asyncio.fixture
async def barber2(db: AsyncSession) -> Barber:
    """Create second test barber."""
    b = Barber(id=uuid4(), name="Beto", is_active=True)
    db.add(b)
    await db.commit()
    return b


@pytest_asyncio.fixture
async def barber3(db: AsyncSession) -> Barber:
    """Create third test barber."""
    b = Barber(id=uuid4(), name="Carla", is_active=True)
    db.add(b)
    await db.commit()
    return b


@pytest_asyncio.fixture
async def haircut(db: AsyncSession) -> Service:
    """30 minute service."""
    s = Service(
        id=uuid4(), name="Classic haircut", duration_minutes=30, price=Decimal("250.00"), is_active=True
    )
    db.add(s)
    await db.commit()
    return s


@pytest_asyncio.fixture
async def beard_trim(db: AsyncSession) -> Service:
    """20 minute service."""
    s = Service(
        id=uuid4(), name="Beard trim", duration_minutes=20, price=Decimal("150.00"), is_active=True
    )
    db.add(s)
    await db.commit()
    return s


@pytest_asyncio.fixture
async def hot_towel(db: AsyncSession) -> AddOn:
    """15 minute add-on."""
    a = AddOn(
        id=uuid4(), name="Hot towel", category="care", duration_minutes=15,
        price=Decimal("60.00"), is_active=True,
    )
    db.add(a)
    await db.commit()
    return a


@pytest_asyncio.fixture
async def hair_wash(db: AsyncSession) -> AddOn:
    """Second 15 minute add-on."""
    a = AddOn(
        id=uuid4(), name="Hair wash", category="care", duration_minutes=15,
        price=Decimal("50.00"), is_active=True,
    )
    db.add(a)
    await db.commit()
    return a


MakeAppointment = Callable[..., Awaitable[Appointment]]


@pytest_asyncio.fixture
async def make_appointment(db: AsyncSession, haircut: Service) -> MakeAppointment:
    """Factory writing appointments straight to the store, bypassing the engine."""

    async def _make(
        barber_id: UUID,
        day: date,
        at: time | None = None,
        duration: int = 30,
        status: AppointmentStatus = AppointmentStatus.SCHEDULED,
        queue_position: int | None = None,
        priority: PriorityLevel = PriorityLevel.NORMAL,
    ) -> Appointment:
        appt = Appointment(
            id=uuid4(),
            barber_id=barber_id,
            service_id=haircut.id,
            additional_service_ids=[],
            add_on_ids=[],
            appointment_date=day,
            appointment_time=at,
            total_duration=duration,
            priority_level=priority.value,
            appointment_type=(
                AppointmentType.SCHEDULED.value if at is not None else AppointmentType.QUEUE.value
            ),
            status=status.value,
            queue_position=queue_position,
            total_price=Decimal("250.00"),
        )
        db.add(appt)
        await db.commit()
        return appt

    return _make


@pytest_asyncio.fixture
async def fully_booked(barber: Barber, day: date, make_appointment, hours: BusinessHours):
    """Every grid slot of the barber's day holds a 30 minute appointment."""
    booked = []
    minute = hours.opening.hour * 60 + hours.opening.minute
    closing = hours.closing.hour * 60 + hours.closing.minute
    lunch = (
        hours.lunch_start.hour * 60 + hours.lunch_start.minute,
        hours.lunch_end.hour * 60 + hours.lunch_end.minute,
    )
    while minute < closing:
        if not lunch[0] <= minute < lunch[1]:
            booked.append(await make_appointment(barber.id, day, time(minute // 60, minute % 60)))
        minute += hours.slot_interval_minutes
    return booked


@pytest_asyncio.fixture
async def day_off(db: AsyncSession, barber: Barber, day: date) -> BarberDayOff:
    """The barber is away on the test day."""
    off = BarberDayOff(
        id=uuid4(), barber_id=barber.id, start_date=day, end_date=day, reason="Vacation", is_active=True
    )
    db.add(off)
    await db.commit()
    return off
