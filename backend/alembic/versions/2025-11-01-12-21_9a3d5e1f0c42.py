"""add email_verified to users

Revision ID: 9a3d5e1f0c42
Revises: 4f1c2a9e7b30
Create Date: 2025-11-01 12:21:02.000000

"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '9a3d5e1f0c42'
down_revision: Union[str, Sequence[str], None] = '4f1c2a9e7b30'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Add the verification flag; every existing user starts unverified."""
    op.add_column('users', sa.Column('email_verified', sa.Boolean(), server_default=sa.false(), nullable=False))
    op.create_index('idx_users_email_verified', 'users', ['email_verified'], unique=False)


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index('idx_users_email_verified', table_name='users')
    with op.batch_alter_table('users') as batch_op:
        batch_op.drop_column('email_verified')
