"""Root conftest: environment, async database and API client fixtures.

Invariants:
    - Environment is pinned before any application module is imported
    - Cache and event bus are disabled so services never leave the process
    - Every test gets a fresh in-memory SQLite database
    - get_db_async is overridden so routes share the test engine
"""

import os
import uuid
from datetime import datetime, timedelta, timezone

os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["JWT_SECRET_KEY"] = "test-secret-key-with-at-least-32-bytes"
os.environ["RABBITMQ_URL"] = ""
os.environ["UPSTASH_REDIS_REST_URL"] = ""
os.environ["UPSTASH_REDIS_REST_TOKEN"] = ""

import jwt
import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app import app
from core.get_db import Base, get_db_async
from core.settings import settings
from models.enums import ListingStatus, ListingType, UserRole
from models.models import Listing, User
from schemas.schema import RequestContext


@pytest.fixture
async def test_engine():
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def test_session_factory(test_engine):
    return async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
    )


@pytest.fixture
async def test_db(test_session_factory):
    async with test_session_factory() as session:
        yield session


@pytest.fixture
def make_user(test_db):
    """Insert a user; returns the ORM row."""
    counter = {"n": 0}

    async def _make(role: UserRole = UserRole.TENANT, username: str | None = None):
        counter["n"] += 1
        name = username or f"{role.value}{counter['n']}"
        user = User(username=name, email=f"{name}@campus.test", role=role)
        test_db.add(user)
        await test_db.commit()
        await test_db.refresh(user)
        return user

    return _make


@pytest.fixture
def make_listing(test_db):
    """Insert a listing owned by ``owner`` with sensible defaults."""

    async def _make(owner: User, **overrides):
        fields = {
            "owner_id": owner.id,
            "title": "Room near campus",
            "description": "Quiet street, ten minutes on foot",
            "listing_type": ListingType.APARTMENT,
            "price": 900.0,
            "area": 40.0,
            "bedroom_count": 1,
            "bathroom_count": 1,
            "address": "Rua Alberto Braune 100",
            "latitude": -22.41,
            "longitude": -42.97,
            "distance_campus_a_km": 1.0,
            "distance_campus_b_km": 2.0,
            "images": ["img/1.jpg"],
            "status": ListingStatus.AVAILABLE,
        }
        fields.update(overrides)
        listing = Listing(**fields)
        test_db.add(listing)
        await test_db.commit()
        await test_db.refresh(listing)
        return listing

    return _make


def ctx_for(user: User) -> RequestContext:
    return RequestContext(actor_id=user.id, role=user.role)


def issue_access_token(user_id: uuid.UUID, expires_minutes: int | None = None) -> str:
    """Sign a token the way the identity service does."""
    expire = datetime.now(timezone.utc) + timedelta(
        minutes=expires_minutes or settings.ACCESS_EXPIRE_MINUTES
    )
    payload = {"sub": str(user_id), "exp": expire, "type": "access"}
    return jwt.encode(payload, settings.JWT_SECRET_KEY, algorithm=settings.ALGORITHM)


def auth_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {issue_access_token(user.id)}"}


@pytest.fixture
async def client(test_session_factory):
    """FastAPI test client with the DB dependency overridden."""

    async def override_get_db():
        async with test_session_factory() as session:
            yield session

    app.dependency_overrides[get_db_async] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as c:
        yield c

    app.dependency_overrides.clear()
