"""Shared fixtures: temp SQLite database, API client and user factories."""

from __future__ import annotations

import os

# Settings are read at import time: configure before importing fullmargin
os.environ["ENV"] = "test"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["DATABASE_URL_SYNC"] = "sqlite:///:memory:"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["LOG_LEVEL"] = "WARNING"

from typing import Any, AsyncIterator, Callable, Dict

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

import fullmargin.models  # noqa: F401
from fullmargin.core.rate_limit import rate_limiter
from fullmargin.core.security import create_access_token, hash_password
from fullmargin.db.base import Base
from fullmargin.db.session import get_db
from fullmargin.main import app
from fullmargin.models.community import Community
from fullmargin.models.user import User

DEFAULT_PASSWORD = "correct-horse"


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'fullmargin.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory) -> AsyncIterator[AsyncSession]:
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_factory) -> AsyncIterator[AsyncClient]:
    async def _get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _get_db
    rate_limiter.reset()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(session_factory) -> Callable[..., Any]:
    """Create a committed user; returns the ORM object."""

    async def _make(
        email: str,
        *,
        full_name: str = "Test User",
        roles: list[str] | None = None,
        password: str = DEFAULT_PASSWORD,
    ) -> User:
        async with session_factory() as session:
            user = User(
                email=email,
                full_name=full_name,
                password_hash=hash_password(password),
                roles=roles or ["user"],
            )
            session.add(user)
            await session.commit()
            await session.refresh(user)
            return user

    return _make


@pytest.fixture
def make_community(session_factory) -> Callable[..., Any]:
    async def _make(owner: User, slug: str, *, visibility: str = "public", name: str | None = None) -> Community:
        async with session_factory() as session:
            community = Community(
                owner_id=owner.id,
                name=name or slug.replace("-", " ").title(),
                slug=slug,
                visibility=visibility,
            )
            session.add(community)
            await session.commit()
            await session.refresh(community)
            return community

    return _make


def _auth_headers(user: User) -> Dict[str, str]:
    token, _ = create_access_token(user_id=str(user.id), email=user.email, roles=list(user.roles))
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth() -> Callable[[User], Dict[str, str]]:
    """Bearer headers for a user."""
    return _auth_headers
