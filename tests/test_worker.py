"""Tests for the periodic token cleanup worker."""

import asyncio
from datetime import timedelta

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from tokenstore import worker
from tokenstore.controllers import refresh_token_controller
from tokenstore.db.database import session_scope
from tokenstore.models import RefreshToken
from tokenstore.models.base import utc_now


async def _token_count(session_factory) -> int:
    async with session_scope(session_factory) as db:
        result = await db.execute(select(RefreshToken))
        return len(result.scalars().all())


@pytest.mark.asyncio
async def test_run_cleanup_once_commits_deletions(session_factory, test_user):
    now = utc_now()
    async with session_scope(session_factory) as db:
        await refresh_token_controller.issue_token(test_user.id, db, now=now)
        await refresh_token_controller.issue_token(test_user.id, db, now=now - timedelta(days=10))

    removed = await worker.run_cleanup_once(session_factory, now=now)

    assert removed == 1
    assert await _token_count(session_factory) == 1


@pytest.mark.asyncio
async def test_worker_runs_until_stopped(session_factory, issued_token):
    async with session_scope(session_factory) as db:
        await refresh_token_controller.rotate_token(issued_token.token, db)

    cleanup_worker = worker.CleanupWorker(interval_seconds=0.01, factory=session_factory)
    asyncio.get_running_loop().call_later(0.1, cleanup_worker.stop)

    await asyncio.wait_for(cleanup_worker.run(), timeout=5)

    assert cleanup_worker.passes >= 1
    assert await _token_count(session_factory) == 1


@pytest.mark.asyncio
async def test_worker_survives_database_errors(monkeypatch):
    cleanup_worker = worker.CleanupWorker(interval_seconds=0.01)
    calls = []

    async def flaky_cleanup(factory=None, *, now=None):
        calls.append(factory)
        if len(calls) == 1:
            raise OperationalError("DELETE FROM refresh_tokens", {}, Exception("database is locked"))
        cleanup_worker.stop()
        return 0

    monkeypatch.setattr(worker, "run_cleanup_once", flaky_cleanup)

    await asyncio.wait_for(cleanup_worker.run(), timeout=5)

    assert len(calls) == 2
    assert cleanup_worker.passes == 2


@pytest.mark.asyncio
async def test_main_once_runs_single_pass(monkeypatch, test_engine):
    calls = []

    async def fake_cleanup(factory=None, *, now=None):
        calls.append(now)
        return 0

    monkeypatch.setattr(worker, "run_cleanup_once", fake_cleanup)
    monkeypatch.setattr(worker, "setup_logging", lambda level: None)
    monkeypatch.setattr(worker, "engine", test_engine)

    await worker.main(["--once"])

    assert calls == [None]
