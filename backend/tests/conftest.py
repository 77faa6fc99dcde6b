# tests/conftest.py - Shared test fixtures
import os
from datetime import datetime, timedelta, timezone
from typing import List, Optional

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from jose import jwt

# Use SQLite for tests
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./test.db"
os.environ["IDENTITY_JWT_KEY"] = "test-identity-key-for-unit-tests-only-min-32-chars"
os.environ["ENVIRONMENT"] = "test"

from config import Settings
from database import Database
from directory import UserDirectory
from events import TaskEvent, TaskEventType
from main import create_app

TEST_IDENTITY_KEY = os.environ["IDENTITY_JWT_KEY"]

ALICE = {"sub": "alice-uid-0001", "email": "alice@example.com", "name": "Alice"}
BOB = {"sub": "bob-uid-0002", "email": "bob@example.com", "name": "Bob"}
CAROL = {"sub": "carol-uid-0003", "email": "carol@example.com", "name": None}


def make_token(claims: dict, expires_in: timedelta = timedelta(minutes=30), key: str = TEST_IDENTITY_KEY) -> str:
    now = datetime.now(timezone.utc)
    payload = {k: v for k, v in claims.items() if v is not None}
    payload.update({"iat": now, "exp": now + expires_in})
    return jwt.encode(payload, key, algorithm="HS256")


def get_auth_headers(identity: dict) -> dict:
    """Generate auth headers for an identity-provider subject"""
    return {"Authorization": f"Bearer {make_token(identity)}"}


class RecordingEventPublisher:
    """Keeps published events in memory so tests can assert on them"""

    def __init__(self):
        self.events: List[TaskEvent] = []

    async def publish(self, event: TaskEvent) -> None:
        self.events.append(event)

    def of_type(self, event_type: TaskEventType) -> List[TaskEvent]:
        return [e for e in self.events if e.type == event_type]

    def last(self) -> Optional[TaskEvent]:
        return self.events[-1] if self.events else None


@pytest.fixture
def settings(tmp_path):
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        identity_jwt_key=TEST_IDENTITY_KEY,
        environment="test",
    )


@pytest_asyncio.fixture(scope="function")
async def database(settings):
    db = Database(settings.database_url)
    await db.create_all()
    yield db
    await db.drop_all()
    await db.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(database):
    async with database.session_maker() as session:
        yield session


@pytest.fixture
def publisher():
    return RecordingEventPublisher()


@pytest_asyncio.fixture(scope="function")
async def client(settings, database, publisher):
    """HTTP test client bound to the per-test database"""
    app = create_app(settings, database=database, publisher=publisher)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def owner(db_session):
    """A provisioned user who owns tasks in store-level tests"""
    return await UserDirectory(db_session).resolve_or_create(ALICE["sub"], ALICE["email"], ALICE["name"])


@pytest_asyncio.fixture
async def other_user(db_session):
    return await UserDirectory(db_session).resolve_or_create(BOB["sub"], BOB["email"], BOB["name"])
