"""Add post reactions

Revision ID: 002_add_reactions
Revises: 001_initial
Create Date: 2026-10-01

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic
revision = '002_add_reactions'
down_revision = '001_initial'
branch_labels = None
depends_on = None


def upgrade():
    # Per-post, per-kind aggregates
    op.create_table(
        'reactions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('post_id', sa.Integer(), nullable=False),
        sa.Column('reaction_type', sa.String(20), nullable=False, server_default='emoji'),
        sa.Column('reaction_value', sa.String(100), nullable=False),
        sa.Column('reaction_users_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['post_id'], ['posts.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('post_id', 'reaction_value', name='uq_reaction_post_value')
    )
    op.create_index('ix_reactions_post_id', 'reactions', ['post_id'])

    # One row per (user, post): the user's single reaction
    op.create_table(
        'reaction_users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('reaction_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('post_id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['reaction_id'], ['reactions.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['post_id'], ['posts.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'post_id', name='uq_reaction_user_post')
    )
    op.create_index('ix_reaction_users_reaction_id', 'reaction_users', ['reaction_id'])
    op.create_index('ix_reaction_users_user_id', 'reaction_users', ['user_id'])
    op.create_index('ix_reaction_users_post_id', 'reaction_users', ['post_id'])
    op.create_index('ix_reaction_users_created_at', 'reaction_users', ['created_at'])


def downgrade():
    op.drop_index('ix_reaction_users_created_at', 'reaction_users')
    op.drop_index('ix_reaction_users_post_id', 'reaction_users')
    op.drop_index('ix_reaction_users_user_id', 'reaction_users')
    op.drop_index('ix_reaction_users_reaction_id', 'reaction_users')
    op.drop_table('reaction_users')
    op.drop_index('ix_reactions_post_id', 'reactions')
    op.drop_table('reactions')
