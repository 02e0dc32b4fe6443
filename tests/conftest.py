"""
Pytest configuration and fixtures.
"""

import os
import uuid
from collections.abc import AsyncGenerator
from datetime import datetime, timedelta, timezone
from uuid import UUID

import pytest
from httpx import ASGITransport, AsyncClient

# Set test environment before importing app
os.environ["ENVIRONMENT"] = "testing"
os.environ["DEBUG"] = "true"
os.environ["SECRET_KEY"] = "test-secret-key-for-testing-only-32chars!"
os.environ["REDIS_URL"] = "redis://localhost:6379/15"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./test_notifications.db"
os.environ["REALTIME_BACKEND"] = "memory"


# ============ Database Fixtures ============


@pytest.fixture
def test_settings(tmp_path):
    """Settings pointing at a throwaway SQLite file."""
    from core.config import Settings

    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'notifications.db'}",
        database_create_tables=True,
        realtime_backend="memory",
        secret_key="test-secret-key-for-testing-only-32chars!",
    )


@pytest.fixture
async def database(test_settings):
    """A migrated database, disposed after the test."""
    from database import Database

    db = Database.from_settings(test_settings)
    await db.create_tables()
    yield db
    await db.close()


@pytest.fixture
async def users(database) -> list[UUID]:
    """Three active users."""
    from database.repositories import UserRepository

    ids = [uuid.uuid4() for _ in range(3)]
    async with database.session() as session:
        repo = UserRepository(session)
        for index, user_id in enumerate(ids):
            await repo.create_or_update(user_id, email=f"student{index}@example.com")
    return ids


@pytest.fixture
async def user_id(users) -> UUID:
    return users[0]


@pytest.fixture
async def templates(database) -> int:
    """Seed the default notification templates."""
    from database.repositories import TemplateRepository

    async with database.session() as session:
        return await TemplateRepository(session).seed_defaults()


# ============ Service Fixtures ============


@pytest.fixture
def hub():
    from services.realtime import NotificationChannelHub

    return NotificationChannelHub()


@pytest.fixture
def published(hub):
    """Collect every realtime event published through the hub, for any user."""
    events = []
    original = hub.publish

    async def recording_publish(event):
        events.append(event)
        return await original(event)

    hub.publish = recording_publish
    return events


@pytest.fixture
def service(database, hub, published):
    from services.notification_service import NotificationService

    return NotificationService(database, publisher=hub)


class FrozenClock:
    """Settable clock for deterministic timestamps."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def clock():
    return FrozenClock(datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc))


# ============ App Fixtures ============


def encode_token(claims: dict, expires_in: timedelta = timedelta(hours=1)) -> str:
    """Sign claims the way the study tracker app issues access tokens."""
    from jose import jwt

    from core.config import get_settings

    settings = get_settings()
    now = datetime.now(timezone.utc)
    return jwt.encode(
        {**claims, "iat": now, "exp": now + expires_in},
        settings.secret_key,
        algorithm=settings.jwt_algorithm,
    )


def make_token(user_id: UUID | str, roles: list[str] | None = None) -> str:
    return encode_token({"sub": str(user_id), "email": "student@example.com", "roles": roles or []})


@pytest.fixture
def sign_token():
    """Signs arbitrary claims, for tests that need unusual tokens."""
    return encode_token


@pytest.fixture
def auth_headers(user_id):
    """Bearer headers for the first test user."""
    return {"Authorization": f"Bearer {make_token(user_id)}"}


@pytest.fixture
def admin_headers():
    """Bearer headers for a producer with the admin role."""
    return {"Authorization": f"Bearer {make_token(uuid.uuid4(), roles=['admin'])}"}


@pytest.fixture
async def engine(test_settings, database):
    from services.notification_engine import NotificationEngine

    return NotificationEngine(test_settings, database=database)


@pytest.fixture
async def async_client(engine, test_settings) -> AsyncGenerator[AsyncClient, None]:
    """Asynchronous test client bound to the test engine."""
    from api.main import create_app

    app = create_app(settings=test_settings, engine=engine)
    await engine.start()
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    await engine.stop()
