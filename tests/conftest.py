import os
from datetime import datetime, timedelta, timezone

# Must be in place before app.core.config is imported
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("MONGODB_URL", "mongodb://localhost:27017/library_test")
os.environ["RATE_LIMIT_ENABLED"] = "false"

import pytest
from httpx import ASGITransport, AsyncClient
from mongomock_motor import AsyncMongoMockClient

from app.core.rate_limiter import limiter
from app.core.security import create_user_token
from app.db.database import init_db
from app.models.book import Book
from app.models.enum import UserRole
from app.services.container import build_services


class FakeClock:
    def __init__(self, start: datetime = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
async def db():
    return await init_db(client=AsyncMongoMockClient(), database_name="library_test")


@pytest.fixture
def services(db, clock):
    return build_services(clock=clock)


@pytest.fixture
def make_user(services):
    counter = {"n": 0}

    async def _make(role=UserRole.STUDENT, name=None, password="secret123"):
        counter["n"] += 1
        n = counter["n"]
        return await services.members.create_user(
            role,
            name=name or f"{role.value} {n}",
            email=f"{role.value.lower()}{n}@uni.edu",
            password=password,
        )
    return _make


@pytest.fixture
def make_book(services):
    counter = {"n": 0}

    async def _make(title=None, total=1, available=None, author="Ada Author"):
        counter["n"] += 1
        n = counter["n"]
        return await services.catalog.create(Book.Create(
            title=title or f"Book {n}",
            author=author,
            isbn=f"978000000{n:04d}",
            total_copies=total,
            available_copies=available,
        ))
    return _make


@pytest.fixture
def auth_headers():
    def _headers(user):
        return {"Authorization": f"Bearer {create_user_token(user)}"}
    return _headers


@pytest.fixture
async def client(services):
    from app.main import app

    limiter.enabled = False
    app.state.services = services
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
