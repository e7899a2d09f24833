"""Shared fixtures: in-memory database, seeded directory rows, actors, HTTP client."""

from datetime import datetime

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.api.deps import get_db
from app.core.immutability import register_immutability_enforcement
from app.core.middleware import booking_limiter, request_limiter
from app.core.permissions import Actor, ActorRole
from app.database import Base
from app.domain.booking_state import BookingStatus, PendingRequest
from app.domain.ledger import payment_status_for
from app.main import app
from app.models import Booking, Car, Customer, Driver, Payment
from app.models.payment import PLACEHOLDER_DESCRIPTION
from tests.utils import ADMIN_ID, CUSTOMER_ID, OTHER_CUSTOMER_ID, STAFF_ID, auth_headers, local


@pytest.fixture(scope="session", autouse=True)
def immutability_guards():
    register_immutability_enforcement()


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def seeded(db):
    """Two customers, a driver, and two cars renting at 1500 and 1000 a day."""
    db.add_all(
        [
            Customer(id=CUSTOMER_ID, first_name="Maria", last_name="Santos", email="maria@example.com"),
            Customer(id=OTHER_CUSTOMER_ID, first_name="Jose", last_name="Reyes", email="jose@example.com"),
            Driver(id=1, first_name="Ramon", last_name="Cruz", driver_license_no="N01-23-456789"),
            Car(id=1, make="Toyota", model="Vios", year=2022, license_plate="ABC 1234", rent_price=1500),
            Car(id=2, make="Mitsubishi", model="Mirage", year=2021, license_plate="XYZ 5678", rent_price=1000),
        ]
    )
    await db.commit()


@pytest.fixture
def customer() -> Actor:
    return Actor(id=CUSTOMER_ID, role=ActorRole.CUSTOMER)


@pytest.fixture
def other_customer() -> Actor:
    return Actor(id=OTHER_CUSTOMER_ID, role=ActorRole.CUSTOMER)


@pytest.fixture
def staff() -> Actor:
    return Actor(id=STAFF_ID, role=ActorRole.STAFF)


@pytest.fixture
def admin() -> Actor:
    return Actor(id=ADMIN_ID, role=ActorRole.ADMIN)


@pytest.fixture
def make_booking(db, seeded):
    """Insert a booking directly in the given state, with its placeholder payment."""

    async def factory(
        status: BookingStatus = BookingStatus.PENDING,
        total_amount: int = 5000,
        car_id: int = 1,
        customer_id: int = CUSTOMER_ID,
        pending_request: PendingRequest = PendingRequest.NONE,
        proposed_end_date: datetime | None = None,
        end_date: datetime | None = None,
    ) -> Booking:
        start = local(2026, 3, 1, 9)
        end = end_date or local(2026, 3, 4, 17)
        booking = Booking(
            customer_id=customer_id,
            car_id=car_id,
            booking_date=local(2026, 2, 20, 10),
            purpose="Family trip",
            start_date=start,
            end_date=end,
            pickup_time=start,
            dropoff_time=end,
            booking_status=status.value,
            pending_request=pending_request.value,
            proposed_end_date=proposed_end_date,
            total_amount=total_amount,
            balance=total_amount,
            payment_status=payment_status_for(total_amount).value,
        )
        db.add(booking)
        await db.flush()
        db.add(
            Payment(
                booking_id=booking.id,
                customer_id=customer_id,
                amount=0,
                description=PLACEHOLDER_DESCRIPTION,
            )
        )
        if status in (BookingStatus.PENDING, BookingStatus.CONFIRMED, BookingStatus.IN_PROGRESS):
            car = await db.get(Car, car_id)
            car.car_status = "Rented"
        await db.commit()
        await db.refresh(booking)
        return booking

    return factory


async def _no_limit() -> None:
    return None


@pytest.fixture
async def client(session_factory, seeded):
    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[booking_limiter] = _no_limit
    app.dependency_overrides[request_limiter] = _no_limit
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def customer_headers() -> dict[str, str]:
    return auth_headers(CUSTOMER_ID, "customer")


@pytest.fixture
def staff_headers() -> dict[str, str]:
    return auth_headers(STAFF_ID, "staff")

