"""add token rotation fields

Revision ID: e5b91f3c7d28
Revises: c7e2b8d14a65
Create Date: 2025-11-02 04:11:06.000000

"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = 'e5b91f3c7d28'
down_revision: Union[str, Sequence[str], None] = 'c7e2b8d14a65'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Add expiry and single-use bookkeeping to refresh tokens."""
    with op.batch_alter_table('refresh_tokens') as batch_op:
        batch_op.add_column(sa.Column('expires_at', sa.DateTime(timezone=True), nullable=True))
        batch_op.add_column(sa.Column('is_used', sa.Boolean(), server_default=sa.false(), nullable=False))
        batch_op.add_column(sa.Column('used_at', sa.DateTime(timezone=True), nullable=True))

    # Tokens issued before rotation existed get the default 7-day lifetime once.
    # New rows always carry an application-supplied expiry.
    if op.get_bind().dialect.name == 'sqlite':
        op.execute("UPDATE refresh_tokens SET expires_at = datetime('now', '+7 days') WHERE expires_at IS NULL")
    else:
        op.execute("UPDATE refresh_tokens SET expires_at = NOW() + INTERVAL '7 days' WHERE expires_at IS NULL")

    with op.batch_alter_table('refresh_tokens') as batch_op:
        batch_op.alter_column('expires_at', existing_type=sa.DateTime(timezone=True), nullable=False)
        batch_op.create_check_constraint(
            'ck_refresh_tokens_used_at_matches_is_used',
            '(is_used AND used_at IS NOT NULL) OR (NOT is_used AND used_at IS NULL)',
        )

    op.create_index('idx_refresh_tokens_expires_at', 'refresh_tokens', ['expires_at'], unique=False)
    op.create_index('idx_refresh_tokens_is_used', 'refresh_tokens', ['is_used'], unique=False)


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index('idx_refresh_tokens_is_used', table_name='refresh_tokens')
    op.drop_index('idx_refresh_tokens_expires_at', table_name='refresh_tokens')
    with op.batch_alter_table('refresh_tokens') as batch_op:
        batch_op.drop_constraint('ck_refresh_tokens_used_at_matches_is_used', type_='check')
        batch_op.drop_column('used_at')
        batch_op.drop_column('is_used')
        batch_op.drop_column('expires_at')
