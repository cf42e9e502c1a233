"""create options, content_meta and sitegroups tables

Revision ID: 3f2a9c5e8b10
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


revision: str = '3f2a9c5e8b10'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'options',
        sa.Column('name', sa.String(191), primary_key=True),
        sa.Column('value', postgresql.JSONB(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    op.create_table(
        'content_meta',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('item_id', sa.String(64), nullable=False),
        sa.Column('meta_key', sa.String(191), nullable=False),
        sa.Column('meta_value', postgresql.JSONB(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.UniqueConstraint('item_id', 'meta_key', name='uq_content_meta_item_key'),
    )
    op.create_index('ix_content_meta_item_id', 'content_meta', ['item_id'])
    op.create_table(
        'sitegroups',
        sa.Column('slug', sa.String(191), primary_key=True),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=False, server_default=''),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )


def downgrade() -> None:
    op.drop_table('sitegroups')
    op.drop_index('ix_content_meta_item_id', table_name='content_meta')
    op.drop_table('content_meta')
    op.drop_table('options')
