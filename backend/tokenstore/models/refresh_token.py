from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import CheckConstraint, DateTime, Index, UniqueConstraint, false, func
from sqlmodel import Field, Relationship

from tokenstore.models.base import BaseUUIDModel, as_utc, utc_now

if TYPE_CHECKING:
    from tokenstore.models.user import User


class TokenState(str, Enum):
    ACTIVE = "active"
    USED = "used"
    EXPIRED = "expired"


class RefreshToken(BaseUUIDModel, table=True):
    __tablename__ = "refresh_tokens"
    __table_args__ = (
        UniqueConstraint("token", name="uq_refresh_tokens_token"),
        CheckConstraint(
            "(is_used AND used_at IS NOT NULL) OR (NOT is_used AND used_at IS NULL)",
            name="ck_refresh_tokens_used_at_matches_is_used",
        ),
        Index("idx_refresh_tokens_token", "token"),
        Index("idx_refresh_tokens_user_id", "user_id"),
        Index("idx_refresh_tokens_expires_at", "expires_at"),
        Index("idx_refresh_tokens_is_used", "is_used"),
    )

    user_id: UUID = Field(foreign_key="users.id", ondelete="CASCADE")
    token: str = Field(max_length=255)
    last_used_at: datetime = Field(
        default_factory=utc_now,
        sa_type=DateTime(timezone=True),
        sa_column_kwargs={"server_default": func.now(), "nullable": False},
    )
    # No server default: the lifetime comes from settings at issue time.
    expires_at: datetime = Field(sa_type=DateTime(timezone=True), nullable=False)
    is_used: bool = Field(
        default=False,
        sa_column_kwargs={"server_default": false(), "nullable": False},
    )
    used_at: datetime | None = Field(default=None, sa_type=DateTime(timezone=True))

    # Relationships
    user: "User" = Relationship(back_populates="refresh_tokens")

    def is_expired(self, now: datetime | None = None) -> bool:
        return as_utc(self.expires_at) <= (as_utc(now) if now else utc_now())

    def is_valid(self, now: datetime | None = None) -> bool:
        """A token may be rotated only while unused and unexpired."""
        return not self.is_used and not self.is_expired(now)

    def state(self, now: datetime | None = None) -> TokenState:
        if self.is_used:
            return TokenState.USED
        if self.is_expired(now):
            return TokenState.EXPIRED
        return TokenState.ACTIVE

    def __repr__(self) -> str:
        return f"<RefreshToken user={self.user_id} used={self.is_used}>"
