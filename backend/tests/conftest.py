from datetime import date

import pytest
from httpx import ASGITransport, AsyncClient

from rentals.api.dependencies import require_admin
from rentals.core.config import Settings
from rentals.core.security import create_access_token
from rentals.db import crud_users
from rentals.db.base import Base
from rentals.db.models import Apartment, ApartmentAvailability, Booking, User
from rentals.main import create_app


@pytest.fixture
def settings(tmp_path):
    return Settings(
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        STATIC_UPLOAD_DIR=str(tmp_path / "uploads"),
        JWT_SECRET_KEY="test-secret",
        EMAIL_SENDER=None,
        EMAIL_PASSWORD=None,
        EMAIL_RECIPIENT=None,
        LOG_LEVEL="DEBUG",
    )


@pytest.fixture
async def app(settings):
    app = create_app(settings)
    async with app.state.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield app
    await app.state.engine.dispose()


@pytest.fixture
async def db(app):
    async with app.state.sessionmaker() as session:
        yield session


@pytest.fixture
async def client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c


@pytest.fixture
def as_admin(app):
    """Bypass the admin guard on API routes."""
    admin = User(id=1, name="Admin", email="admin@example.com", role="admin", hashed_password="x")
    app.dependency_overrides[require_admin] = lambda: admin
    yield admin
    app.dependency_overrides.pop(require_admin, None)


@pytest.fixture
async def admin_user(db):
    return await crud_users.create_user(
        db, name="Admin", email="admin@example.com", password="s3cret-pass", role="admin"
    )


@pytest.fixture
def login_as(client, settings):
    def _login(user: User):
        token = create_access_token(settings, {"user_id": user.id, "role": user.role})
        client.cookies.set(settings.SESSION_COOKIE_NAME, token)
        return token

    return _login


@pytest.fixture
def make_apartment(db):
    async def _make(**overrides) -> Apartment:
        data = dict(
            title="Loft Centro",
            description="Bright loft",
            address="San Martín 100, Mendoza",
            price_per_night=50,
            max_guests=2,
            characteristics={"wifi": True},
            images=[],
            principal_image_index=0,
            contact_email="owner@example.com",
            is_active=True,
        )
        data.update(overrides)
        apartment = Apartment(**data)
        db.add(apartment)
        await db.commit()
        await db.refresh(apartment)
        return apartment

    return _make


@pytest.fixture
def make_booking(db):
    async def _make(apartment: Apartment, check_in: date, check_out: date, status: str = "pending") -> Booking:
        booking = Booking(
            apartment_id=apartment.id,
            guest_name="Ana",
            guest_email="ana@example.com",
            guest_phone="+54 261 555 1234",
            check_in=check_in,
            check_out=check_out,
            total_guests=2,
            total_price=150,
            status=status,
        )
        db.add(booking)
        await db.commit()
        await db.refresh(booking)
        return booking

    return _make


@pytest.fixture
def make_override(db):
    async def _make(apartment: Apartment, start: date, end: date, is_available: bool = False):
        period = ApartmentAvailability(
            apartment_id=apartment.id,
            start_date=start,
            end_date=end,
            is_available=is_available,
        )
        db.add(period)
        await db.commit()
        return period

    return _make
