from datetime import date, timedelta

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from weather_records.core.config import Settings
from weather_records.core.db import get_db
from weather_records.core.deps import get_weather_gateway
from weather_records.main import create_app
from weather_records.models import Base
from weather_records.schemas.weather import Coordinates, ForecastPayload, ForecastSample, LocationDetails
from weather_records.services.providers.openweather_client import LocationNotFoundError

TEST_DB_URL = "sqlite+aiosqlite:///:memory:"
TEST_JWT_SECRET = "test-secret-key-with-enough-bytes-for-hs256"


class FakeWeatherGateway:
    """
    Deterministic stand-in for OpenWeatherClient.

    Serves five days of 3-hourly samples starting 2024-06-01 and records
    every call so tests can assert how often the gateway was hit.
    """

    FIRST_DAY = date(2024, 6, 1)
    DAYS_AVAILABLE = 5
    CANONICAL = {
        "paris": ("Paris", "FR", "Ile-de-France", 48.8566, 2.3522),
        "london": ("London", "GB", "England", 51.5073, -0.1276),
    }

    def __init__(self):
        self.forecast_calls = []
        self.resolve_calls = []
        self.forecast_error = None
        self.resolve_error = None

    def _lookup(self, name):
        key = name.strip().lower()
        if key not in self.CANONICAL:
            return name.strip(), "XX", "", 0.0, 0.0
        return self.CANONICAL[key]

    def samples(self, days):
        out = []
        for day in range(self.DAYS_AVAILABLE):
            for step in range(8):
                out.append(
                    ForecastSample(
                        date=(self.FIRST_DAY + timedelta(days=day)).isoformat(),
                        time=f"{step * 3:02d}:00:00",
                        temperature=18 + step,
                        feels_like=17 + step,
                        humidity=60,
                        pressure=1013,
                        wind_speed=3.5,
                        wind_direction=180,
                        weather_main="Clouds",
                        weather_description="scattered clouds",
                        weather_icon="03d",
                        visibility=10.0,
                        clouds=40,
                    )
                )
        return out[: days * 8]

    async def fetch_forecast(self, name, days=5):
        self.forecast_calls.append((name, days))
        if self.forecast_error is not None:
            raise self.forecast_error
        if name.strip().lower() == "atlantis":
            raise LocationNotFoundError("Location not found")
        city, country, _, lat, lon = self._lookup(name)
        return ForecastPayload(
            location=city,
            country=country,
            coordinates=Coordinates(lat=lat, lon=lon),
            weather_data=self.samples(days),
        )

    async def resolve_location(self, name):
        self.resolve_calls.append(name)
        if self.resolve_error is not None:
            raise self.resolve_error
        city, country, state, lat, lon = self._lookup(name)
        return LocationDetails(
            city=city,
            state=state,
            country=country,
            formatted_address=", ".join(p for p in (city, state, country) if p),
            coordinates=Coordinates(lat=lat, lon=lon),
        )

    @property
    def total_calls(self):
        return len(self.forecast_calls) + len(self.resolve_calls)


def make_settings(**overrides) -> Settings:
    values = {
        "DATABASE_URL": TEST_DB_URL,
        "ENVIRONMENT": "test",
        "LOG_LEVEL": "WARNING",
        "JWT_SECRET": TEST_JWT_SECRET,
        "BCRYPT_ROUNDS": 4,
        "RATE_LIMIT_MAX_REQUESTS": 10_000,
        "OPENWEATHER_API_KEY": "test-key",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def test_settings():
    return make_settings()


@pytest_asyncio.fixture
async def test_engine():
    """
    Create an in-memory SQLite async engine with all tables for one test.

    StaticPool keeps a single connection so every session sees the same
    in-memory database.
    """
    engine = create_async_engine(TEST_DB_URL, poolclass=StaticPool)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(test_engine):
    """
    Provide a fresh AsyncSession for each test.
    """
    TestingSessionLocal = async_sessionmaker(
        bind=test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with TestingSessionLocal() as session:
        yield session


@pytest.fixture
def fake_gateway():
    return FakeWeatherGateway()


@pytest.fixture
def test_app(test_settings, db_session, fake_gateway):
    """
    Return a FastAPI app whose database session and weather gateway are
    replaced by the test doubles.
    """
    app = create_app(test_settings)

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_weather_gateway] = lambda: fake_gateway
    yield app
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client(test_app):
    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


async def register(client, username="alice", email="a@x.com", password="secret1"):
    r = await client.post(
        "/api/auth/register",
        json={"username": username, "email": email, "password": password},
    )
    assert r.status_code == 201, r.text
    return r.json()


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def alice(client):
    """Registered user `alice`; returns the register response body."""
    return await register(client)


@pytest.fixture
def alice_headers(alice):
    return bearer(alice["token"])
