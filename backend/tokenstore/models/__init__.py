# Import all models so SQLModel.metadata registers them for Alembic autogenerate.
from tokenstore.models.base import BaseUUIDModel  # noqa: F401
from tokenstore.models.user import User  # noqa: F401
from tokenstore.models.refresh_token import RefreshToken, TokenState  # noqa: F401
