"""
Create users, communities, community_members and threads tables.

Revision ID: 1a2b3c4d5e6f
Revises:
Create Date: 2026-10-19 10:12:03.118204

"""
from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op


# revision identifiers, used by Alembic.
revision: str = '1a2b3c4d5e6f'
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('external_id', sa.String(length=255), nullable=False,
                  comment="'sub' claim - unique identifier from the identity provider"),
        sa.Column('username', sa.String(length=255), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('bio', sa.Text(), nullable=True),
        sa.Column('image', sa.Text(), nullable=False),
        sa.Column('onboarded', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.UniqueConstraint('username', name='uq_users_username'),
    )
    op.create_index('ix_users_external_id', 'users', ['external_id'], unique=True)
    op.create_index('ix_users_created_at', 'users', ['created_at'])

    op.create_table(
        'communities',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('external_id', sa.String(length=255), nullable=False,
                  comment='Organisation id issued by the identity provider'),
        sa.Column('username', sa.String(length=255), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('image', sa.Text(), nullable=False),
        sa.Column('bio', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.UniqueConstraint('username', name='uq_communities_username'),
    )
    op.create_index('ix_communities_external_id', 'communities', ['external_id'], unique=True)
    op.create_index('ix_communities_created_at', 'communities', ['created_at'])

    op.create_table(
        'community_members',
        sa.Column('community_id', sa.Integer(),
                  sa.ForeignKey('communities.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('user_id', sa.Integer(),
                  sa.ForeignKey('users.id', ondelete='CASCADE'), primary_key=True),
    )

    # parent_id is deliberately a string, not a foreign key; children holds
    # the denormalized list of reply ids.
    op.create_table(
        'threads',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('text', sa.Text(), nullable=False),
        sa.Column('author_id', sa.Integer(),
                  sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('community_id', sa.Integer(),
                  sa.ForeignKey('communities.id', ondelete='SET NULL'), nullable=True),
        sa.Column('parent_id', sa.String(length=64), nullable=True),
        sa.Column('children', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    )
    op.create_index('ix_threads_author_id', 'threads', ['author_id'])
    op.create_index('ix_threads_parent_id', 'threads', ['parent_id'])
    op.create_index('ix_threads_created_at', 'threads', ['created_at'])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index('ix_threads_created_at', table_name='threads')
    op.drop_index('ix_threads_parent_id', table_name='threads')
    op.drop_index('ix_threads_author_id', table_name='threads')
    op.drop_table('threads')
    op.drop_table('community_members')
    op.drop_index('ix_communities_created_at', table_name='communities')
    op.drop_index('ix_communities_external_id', table_name='communities')
    op.drop_table('communities')
    op.drop_index('ix_users_created_at', table_name='users')
    op.drop_index('ix_users_external_id', table_name='users')
    op.drop_table('users')
