"""Pytest configuration and fixtures for the refresh token store."""

from pathlib import Path

import pytest
import pytest_asyncio
from sqlmodel import SQLModel

from tokenstore.controllers import refresh_token_controller
from tokenstore.db.database import build_engine, build_session_factory, session_scope
from tokenstore.models import User


@pytest_asyncio.fixture
async def test_engine(tmp_path: Path):
    """File-backed SQLite so concurrent sessions get separate connections."""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return build_session_factory(test_engine)


@pytest.fixture
def create_user(session_factory):
    async def _create_user(username: str = "jake", email: str | None = None) -> User:
        async with session_scope(session_factory) as db:
            user = User(username=username, email=email or f"{username}@realworld.io")
            db.add(user)
        return user

    return _create_user


@pytest_asyncio.fixture
async def test_user(create_user) -> User:
    return await create_user()


@pytest_asyncio.fixture
async def issued_token(session_factory, test_user):
    async with session_scope(session_factory) as db:
        return await refresh_token_controller.issue_token(test_user.id, db)
