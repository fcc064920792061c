"""add job tracking tables

Revision ID: 002_job_tracking
Revises: 001_initial_schema
Create Date: 2026-10-13 10:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '002_job_tracking'
down_revision = '001_initial_schema'
branch_labels = None
depends_on = None

JOB_STATUSES = ('pending', 'processing', 'success', 'failed')
JOB_TYPES = ('worker_import', 'product_import')


def _in_list(column, values):
    quoted = ', '.join(f"'{value}'" for value in values)
    return f"{column} IN ({quoted})"


def upgrade() -> None:
    op.create_table(
        'job_runs',
        sa.Column('job_id', sa.String(length=255), nullable=False, comment='Celery task UUID'),
        sa.Column('job_type', sa.String(length=50), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='pending'),
        sa.Column('created_at', sa.TIMESTAMP(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('started_at', sa.TIMESTAMP(), nullable=True),
        sa.Column('completed_at', sa.TIMESTAMP(), nullable=True),
        sa.Column('params', postgresql.JSONB(astext_type=sa.Text()), server_default='{}', nullable=False,
                  comment='filename, entity, file_size_kb'),
        sa.Column('result', postgresql.JSONB(astext_type=sa.Text()), nullable=True,
                  comment='total, created, updated, errors'),
        sa.Column('error', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.CheckConstraint(_in_list('status', JOB_STATUSES), name='job_runs_status_check'),
        sa.CheckConstraint(_in_list('job_type', JOB_TYPES), name='job_runs_job_type_check'),
        sa.PrimaryKeyConstraint('job_id'),
        comment='Background spreadsheet imports'
    )
    op.create_index('idx_job_runs_status', 'job_runs', ['status'])
    op.create_index('idx_job_runs_created_at', 'job_runs', ['created_at'])
    op.create_index('idx_job_runs_type_status', 'job_runs', ['job_type', 'status'])

    op.create_table(
        'job_progress',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('job_id', sa.String(length=255), nullable=False),
        sa.Column('stage', sa.String(length=50), nullable=False, comment='reading, scanning, complete or failed'),
        sa.Column('percent', sa.Numeric(precision=5, scale=2), nullable=False),
        sa.Column('message', sa.Text(), nullable=True),
        sa.Column('timestamp', sa.TIMESTAMP(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.ForeignKeyConstraint(['job_id'], ['job_runs.job_id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_job_progress_job_id', 'job_progress', ['job_id'])
    op.create_index('idx_job_progress_timestamp', 'job_progress', ['timestamp'])


def downgrade() -> None:
    op.drop_table('job_progress')
    op.drop_table('job_runs')
