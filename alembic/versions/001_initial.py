"""Initial forum schema

Revision ID: 001_initial
Revises: 
Create Date: 2026-10-01 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    # Users table
    op.create_table(
        'users',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('username', sa.String(60), unique=True, nullable=False, index=True),
        sa.Column('name', sa.String(255), nullable=True),
        sa.Column('avatar_template', sa.String(255), nullable=True),
        sa.Column('session_token', sa.String(64), unique=True, nullable=True, index=True),
        sa.Column('session_expires_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('is_active', sa.Boolean, default=True, nullable=False),
        sa.Column('is_staff', sa.Boolean, default=False, nullable=False),
        *_timestamps(),
    )

    # Categories table
    op.create_table(
        'categories',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('name', sa.String(80), nullable=False),
        sa.Column('slug', sa.String(80), unique=True, nullable=False),
        sa.Column('description', sa.Text, nullable=True),
        sa.Column('read_restricted', sa.Boolean, default=False, nullable=False),
        *_timestamps(),
    )

    # Category memberships (read access to restricted categories)
    op.create_table(
        'category_memberships',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('category_id', sa.Integer, sa.ForeignKey('categories.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.Integer, sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint('category_id', 'user_id', name='uq_category_membership_category_user'),
    )

    # Topics table
    op.create_table(
        'topics',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('category_id', sa.Integer, sa.ForeignKey('categories.id', ondelete='SET NULL'), nullable=True, index=True),
        sa.Column('user_id', sa.Integer, sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('archetype', sa.String(20), default='regular', nullable=False),
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )

    # Private message participants
    op.create_table(
        'topic_allowed_users',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('topic_id', sa.Integer, sa.ForeignKey('topics.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.Integer, sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint('topic_id', 'user_id', name='uq_topic_allowed_user_topic_user'),
    )

    # Posts table
    op.create_table(
        'posts',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('topic_id', sa.Integer, sa.ForeignKey('topics.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('user_id', sa.Integer, sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True, index=True),
        sa.Column('post_number', sa.Integer, default=1, nullable=False),
        sa.Column('raw', sa.Text, nullable=False),
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )

    # Legacy post actions (likes)
    op.create_table(
        'post_actions',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('post_id', sa.Integer, sa.ForeignKey('posts.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('user_id', sa.Integer, sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('post_action_type_id', sa.Integer, nullable=False),
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_post_actions_post_type', 'post_actions', ['post_id', 'post_action_type_id'])


def downgrade() -> None:
    op.drop_index('ix_post_actions_post_type', 'post_actions')
    op.drop_table('post_actions')
    op.drop_table('posts')
    op.drop_table('topic_allowed_users')
    op.drop_table('topics')
    op.drop_table('category_memberships')
    op.drop_table('categories')
    op.drop_table('users')
