"""initial schema

Revision ID: 001
Revises:
Create Date: 2026-10-18 12:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Create stored_documents table (wallet_, portfolio_, events_, last_daily_login_ keys)
    op.create_table(
        'stored_documents',
        sa.Column('key', sa.String(length=255), nullable=False),
        sa.Column('value', sa.Text(), nullable=False),
        sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('key')
    )
    op.create_index('idx_stored_documents_updated', 'stored_documents', ['updated_at'], unique=False)

    # Create idempotency_logs table
    op.create_table(
        'idempotency_logs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('idempotency_key', sa.String(length=255), nullable=False),
        sa.Column('user_id', sa.String(length=100), nullable=False),
        sa.Column('request_path', sa.String(length=255), nullable=False),
        sa.Column('request_method', sa.String(length=10), nullable=False),
        sa.Column('response_status', sa.Integer(), nullable=True),
        sa.Column('response_body', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_idempotency_logs_id'), 'idempotency_logs', ['id'], unique=False)
    op.create_index(op.f('ix_idempotency_logs_idempotency_key'), 'idempotency_logs', ['idempotency_key'], unique=True)
    op.create_index(op.f('ix_idempotency_logs_user_id'), 'idempotency_logs', ['user_id'], unique=False)
    op.create_index('idx_idempotency_expires', 'idempotency_logs', ['expires_at'], unique=False)


def downgrade() -> None:
    # Drop tables in reverse order
    op.drop_index('idx_idempotency_expires', table_name='idempotency_logs')
    op.drop_index(op.f('ix_idempotency_logs_user_id'), table_name='idempotency_logs')
    op.drop_index(op.f('ix_idempotency_logs_idempotency_key'), table_name='idempotency_logs')
    op.drop_index(op.f('ix_idempotency_logs_id'), table_name='idempotency_logs')
    op.drop_table('idempotency_logs')

    op.drop_index('idx_stored_documents_updated', table_name='stored_documents')
    op.drop_table('stored_documents')
