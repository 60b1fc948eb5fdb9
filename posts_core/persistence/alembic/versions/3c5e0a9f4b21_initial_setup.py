"""initial setup

Revision ID: 3c5e0a9f4b21
Revises:
Create Date: 2026-10-19 10:12:41.530871

"""
from alembic import op
import sqlalchemy as sa


revision = '3c5e0a9f4b21'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'posts',
        sa.Column('id', sa.Integer(), autoincrement=False, nullable=False),
        sa.Column('owner_id', sa.Integer(), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('body', sa.Text(), nullable=False),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_posts_title', 'posts', ['title'], unique=False)
    sequences = op.create_table(
        'sequences',
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('value', sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint('name')
    )
    op.bulk_insert(sequences, [{'name': 'posts', 'value': 0}])


def downgrade():
    op.drop_table('sequences')
    op.drop_index('ix_posts_title', table_name='posts')
    op.drop_table('posts')
