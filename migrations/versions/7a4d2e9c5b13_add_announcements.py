"""add announcements

Revision ID: 7a4d2e9c5b13
Revises: 3c8e1f0a2b71
Create Date: 2026-10-17 14:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '7a4d2e9c5b13'
down_revision = '3c8e1f0a2b71'
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'announcements',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('title', sa.String(length=200), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('priority', sa.String(length=16), nullable=False, server_default='medium'),
        sa.Column('target_audience', sa.String(length=16), nullable=False, server_default='all'),
        sa.Column('expires_at', sa.Date(), nullable=True),
        sa.Column('author_id', sa.Integer(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text('1')),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['author_id'], ['users.id'], ondelete='SET NULL'),
    )


def downgrade():
    op.drop_table('announcements')
