from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Index, false
from sqlmodel import Field, Relationship

from tokenstore.models.base import BaseUUIDModel, updated_at_field

if TYPE_CHECKING:
    from tokenstore.models.refresh_token import RefreshToken


class User(BaseUUIDModel, table=True):
    __tablename__ = "users"
    __table_args__ = (Index("idx_users_email_verified", "email_verified"),)

    email: str = Field(max_length=320, unique=True, index=True)
    username: str = Field(max_length=50, unique=True, index=True)
    bio: str | None = Field(default=None)
    image: str | None = Field(default=None, max_length=500)
    # Flipped only by the email verification flow.
    email_verified: bool = Field(
        default=False,
        sa_column_kwargs={"server_default": false(), "nullable": False},
    )
    updated_at: datetime | None = updated_at_field()

    # Relationships
    refresh_tokens: list["RefreshToken"] = Relationship(
        back_populates="user",
        sa_relationship_kwargs={"cascade": "all, delete-orphan", "passive_deletes": True},
    )
