import secrets

from tokenstore.core.config import settings


# ── Refresh token values ─────────────────────────────────────

def generate_refresh_token() -> str:
    """Return a fresh URL-safe opaque token from the OS CSPRNG."""
    return secrets.token_urlsafe(settings.REFRESH_TOKEN_BYTES)
