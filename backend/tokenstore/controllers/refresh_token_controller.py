"""Refresh token controller: issue, look up, rotate and clean up refresh tokens.

Every function works inside the caller's session and only flushes; the caller's
``session_scope`` owns the commit, so a rotation's two writes land together.
"""

import logging
from datetime import datetime, timedelta
from uuid import UUID

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlmodel.ext.asyncio.session import AsyncSession

from tokenstore.core.config import settings
from tokenstore.core.errors import (
    ConflictError,
    ExpiredError,
    NotFoundError,
    ReuseDetectedError,
)
from tokenstore.core.security import generate_refresh_token
from tokenstore.models.base import as_utc, utc_now
from tokenstore.models.refresh_token import RefreshToken

logger = logging.getLogger(__name__)

# Constraint names as reported by Postgres and SQLite respectively.
_TOKEN_UNIQUE_MARKERS = ("uq_refresh_tokens_token", "refresh_tokens.token")


def _default_lifetime() -> timedelta:
    return timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)


def _is_token_collision(exc: IntegrityError) -> bool:
    message = str(getattr(exc, "orig", exc)).lower()
    return any(marker in message for marker in _TOKEN_UNIQUE_MARKERS)


# ── Issue ─────────────────────────────────────────────────────

async def issue_token(
    user_id: UUID,
    db: AsyncSession,
    *,
    expires_in: timedelta | None = None,
    now: datetime | None = None,
) -> RefreshToken:
    """
    Create and persist a new refresh token for a user.

    Raises ConflictError if the random value collides with an existing token;
    the session is unusable afterwards and the caller retries in a new one.
    """
    now = as_utc(now) if now else utc_now()
    lifetime = _default_lifetime() if expires_in is None else expires_in
    refresh = RefreshToken(
        user_id=user_id,
        token=generate_refresh_token(),
        created_at=now,
        last_used_at=now,
        expires_at=now + lifetime,
    )
    db.add(refresh)
    try:
        await db.flush()
    except IntegrityError as exc:
        if _is_token_collision(exc):
            raise ConflictError() from exc
        raise
    return refresh


# ── Lookup ────────────────────────────────────────────────────

async def get_token(token: str, db: AsyncSession) -> RefreshToken:
    """Fetch a token row by its opaque value or raise NotFoundError."""
    result = await db.execute(select(RefreshToken).where(RefreshToken.token == token))
    record = result.scalar_one_or_none()
    if record is None:
        raise NotFoundError()
    return record


# ── Rotate ────────────────────────────────────────────────────

async def rotate_token(
    token: str,
    db: AsyncSession,
    *,
    expires_in: timedelta | None = None,
    now: datetime | None = None,
) -> RefreshToken:
    """
    Consume a refresh token and issue its replacement.

    Order of checks:
    1. Unknown token → NotFoundError
    2. Already used → ReuseDetectedError (the whole family is suspect)
    3. Expired → ExpiredError
    4. Mark used and insert the replacement in the same transaction

    The mark is a conditional UPDATE on ``is_used = false``. Of two concurrent
    rotations only one UPDATE matches the row; the other gets zero rows and
    reports reuse.
    """
    now = as_utc(now) if now else utc_now()
    record = await get_token(token, db)

    if record.is_used:
        logger.warning(
            "Refresh token reuse detected for user %s (originally used at %s)",
            record.user_id,
            record.used_at,
        )
        raise ReuseDetectedError(
            user_id=record.user_id,
            used_at=as_utc(record.used_at) if record.used_at else None,
        )

    if record.is_expired(now):
        raise ExpiredError()

    result = await db.execute(
        update(RefreshToken)
        .where(
            RefreshToken.id == record.id,
            RefreshToken.is_used == False,  # noqa: E712
        )
        .values(is_used=True, used_at=now, last_used_at=now)
    )
    if result.rowcount != 1:
        logger.warning("Concurrent rotation lost the race for user %s", record.user_id)
        raise ReuseDetectedError(user_id=record.user_id)

    return await issue_token(record.user_id, db, expires_in=expires_in, now=now)


# ── Revocation ────────────────────────────────────────────────

async def revoke_token(token: str, db: AsyncSession) -> bool:
    """Delete one token (logout). Returns False if it was already gone."""
    result = await db.execute(
        delete(RefreshToken)
        .where(RefreshToken.token == token)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount > 0


async def revoke_user_tokens(user_id: UUID, db: AsyncSession) -> int:
    """Delete every refresh token a user holds. Used after reuse detection."""
    result = await db.execute(
        delete(RefreshToken)
        .where(RefreshToken.user_id == user_id)
        .execution_options(synchronize_session=False)
    )
    logger.info("Revoked %s refresh tokens for user %s", result.rowcount, user_id)
    return result.rowcount


async def count_active_tokens(
    user_id: UUID,
    db: AsyncSession,
    *,
    now: datetime | None = None,
) -> int:
    now = as_utc(now) if now else utc_now()
    result = await db.execute(
        select(func.count())
        .select_from(RefreshToken)
        .where(
            RefreshToken.user_id == user_id,
            RefreshToken.is_used == False,  # noqa: E712
            RefreshToken.expires_at > now,
        )
    )
    return result.scalar_one()


# ── Cleanup ───────────────────────────────────────────────────

async def cleanup_tokens(db: AsyncSession, older_than: datetime | None = None) -> int:
    """Delete used tokens and tokens expired at ``older_than``. Returns rows removed."""
    cutoff = as_utc(older_than) if older_than else utc_now()
    result = await db.execute(
        delete(RefreshToken)
        .where(
            or_(
                RefreshToken.is_used == True,  # noqa: E712
                RefreshToken.expires_at <= cutoff,
            )
        )
        .execution_options(synchronize_session=False)
    )
    logger.info("Token cleanup removed %s rows (cutoff %s)", result.rowcount, cutoff.isoformat())
    return result.rowcount
