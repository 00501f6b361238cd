"""Session and submitted order tables

Revision ID: 001
Revises:
Create Date: 2026-10-17 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # One row per conversation; messages and draft are JSON documents
    op.create_table(
        'chat_sessions',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('owner', sa.String(), nullable=False),
        sa.Column('mode', sa.String(), nullable=False),
        sa.Column('messages', sa.JSON(), nullable=False),
        sa.Column('draft', sa.JSON(), nullable=True),
        sa.Column('draft_sequence', sa.Integer(), nullable=False),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_chat_sessions_owner'), 'chat_sessions', ['owner'], unique=False)

    op.create_table(
        'submitted_orders',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('session_id', sa.String(), nullable=False),
        sa.Column('draft_id', sa.String(), nullable=False),
        sa.Column('owner', sa.String(), nullable=False),
        sa.Column('items', sa.JSON(), nullable=False),
        sa.Column('subtotal', sa.Float(), nullable=False),
        sa.Column('tax', sa.Float(), nullable=False),
        sa.Column('total', sa.Float(), nullable=False),
        sa.Column('summary', sa.Text(), nullable=False),
        sa.Column('submitted_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('draft_id')
    )
    op.create_index(op.f('ix_submitted_orders_session_id'), 'submitted_orders', ['session_id'], unique=False)
    op.create_index(op.f('ix_submitted_orders_owner'), 'submitted_orders', ['owner'], unique=False)


def downgrade() -> None:
    op.drop_index(op.f('ix_submitted_orders_owner'), table_name='submitted_orders')
    op.drop_index(op.f('ix_submitted_orders_session_id'), table_name='submitted_orders')
    op.drop_table('submitted_orders')
    op.drop_index(op.f('ix_chat_sessions_owner'), table_name='chat_sessions')
    op.drop_table('chat_sessions')
