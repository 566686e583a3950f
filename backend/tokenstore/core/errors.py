"""Refresh-token store errors.

Every failure a store call can report maps to one class here. Callers (the
authentication service) decide what the client sees; ``ReuseDetectedError``
must reach a revocation path and never be folded into a generic rejection.
"""

from datetime import datetime
from uuid import UUID


class TokenStoreError(Exception):
    """Base class for refresh-token store failures."""

    code = "TOKEN_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(TokenStoreError):
    """No refresh token matches the presented value."""

    code = "TOKEN_NOT_FOUND"

    def __init__(self, message: str = "Refresh token not found"):
        super().__init__(message)


class ExpiredError(TokenStoreError):
    """The token is unused but past its expiry; the client must re-authenticate."""

    code = "TOKEN_EXPIRED"

    def __init__(self, message: str = "Refresh token expired"):
        super().__init__(message)


class ReuseDetectedError(TokenStoreError):
    """An already consumed token was presented again.

    ``user_id`` identifies the token family the caller should revoke.
    """

    code = "TOKEN_REUSE_DETECTED"

    def __init__(
        self,
        user_id: UUID,
        used_at: datetime | None = None,
        message: str = "Refresh token reuse detected",
    ):
        super().__init__(message)
        self.user_id = user_id
        self.used_at = used_at


class ConflictError(TokenStoreError):
    """The generated token value collided with an existing row. Retry with a new value."""

    code = "TOKEN_CONFLICT"

    def __init__(self, message: str = "Refresh token value already exists"):
        super().__init__(message)
