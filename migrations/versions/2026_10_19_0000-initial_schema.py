"""Initial schema

Revision ID: 001_initial
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """
    Create initial database schema:
    - urls table: Short code mappings (unique short_code, soft delete flag)
    - clicks table: Append-only click events referencing urls
    """
    op.create_table(
        'urls',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('short_code', sa.String(length=50), nullable=False),
        sa.Column('original_url', sa.Text(), nullable=False),
        sa.Column('owner_id', sa.String(length=64), nullable=True),
        sa.Column('title', sa.String(length=255), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('click_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_urls_short_code', 'urls', ['short_code'], unique=True)
    op.create_index('ix_urls_owner_id', 'urls', ['owner_id'])
    op.create_index('ix_urls_created_at', 'urls', ['created_at'])

    op.create_table(
        'clicks',
        sa.Column('id', sa.Integer(), nullable=False, autoincrement=True),
        sa.Column('link_id', sa.String(length=36), nullable=False),
        sa.Column('clicked_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('ip_address', sa.String(length=45), nullable=True),
        sa.Column('user_agent', sa.String(length=500), nullable=True),
        sa.Column('referrer', sa.Text(), nullable=True),
        sa.Column('device_type', sa.String(length=20), nullable=True),
        sa.Column('browser', sa.String(length=50), nullable=True),
        sa.ForeignKeyConstraint(['link_id'], ['urls.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_clicks_link_id', 'clicks', ['link_id'])
    op.create_index('ix_clicks_clicked_at', 'clicks', ['clicked_at'])


def downgrade() -> None:
    """
    Drop all tables and indexes.
    """
    op.drop_index('ix_clicks_clicked_at', table_name='clicks')
    op.drop_index('ix_clicks_link_id', table_name='clicks')
    op.drop_table('clicks')

    op.drop_index('ix_urls_created_at', table_name='urls')
    op.drop_index('ix_urls_owner_id', table_name='urls')
    op.drop_index('ix_urls_short_code', table_name='urls')
    op.drop_table('urls')
