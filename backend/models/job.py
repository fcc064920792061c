"""
Job tracking models for background imports.

A JobRun is created by the upload endpoint before the Celery task is queued;
the task moves it from pending to processing and then to success or failed,
appending JobProgress rows as the sheet is scanned.
"""

from enum import Enum
from typing import Optional

from sqlalchemy import (
    Column, String, Integer, TIMESTAMP, ForeignKey, Numeric, Text,
    CheckConstraint, Index, text
)
from sqlalchemy.orm import relationship

from backend.models.schema import Base, JSONType


class JobStatus(str, Enum):
    """Job execution status."""
    PENDING = 'pending'
    PROCESSING = 'processing'
    SUCCESS = 'success'
    FAILED = 'failed'


class JobType(str, Enum):
    """Entity a background import job writes."""
    WORKER_IMPORT = 'worker_import'
    PRODUCT_IMPORT = 'product_import'


FINISHED_STATUSES = (JobStatus.SUCCESS.value, JobStatus.FAILED.value)


class JobRun(Base):
    """Background spreadsheet import, keyed by its Celery task id."""

    __tablename__ = 'job_runs'
    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'processing', 'success', 'failed')",
            name='job_runs_status_check'
        ),
        CheckConstraint(
            "job_type IN ('worker_import', 'product_import')",
            name='job_runs_job_type_check'
        ),
        Index('idx_job_runs_status', 'status'),
        Index('idx_job_runs_created_at', 'created_at'),
        Index('idx_job_runs_type_status', 'job_type', 'status'),
        {'comment': 'Tracks background spreadsheet imports'}
    )

    job_id = Column(String(255), primary_key=True, nullable=False, comment='Celery task UUID')
    job_type = Column(String(50), nullable=False, comment='worker_import or product_import')
    status = Column(String(20), nullable=False, server_default='pending')

    created_at = Column(TIMESTAMP, server_default=text('CURRENT_TIMESTAMP'), nullable=False)
    started_at = Column(TIMESTAMP, nullable=True)
    completed_at = Column(TIMESTAMP, nullable=True)

    # Upload name, entity and size
    params = Column(JSONType, server_default='{}', nullable=False)
    result = Column(
        JSONType,
        nullable=True,
        comment='Import statistics: total, created, updated, errors'
    )
    error = Column(JSONType, nullable=True, comment='Error message and traceback if the job failed')

    progress = relationship(
        'JobProgress',
        back_populates='job',
        cascade='all, delete-orphan',
        order_by='JobProgress.id'
    )

    def __repr__(self):
        return f"<JobRun(job_id='{self.job_id}', type='{self.job_type}', status='{self.status}')>"

    @property
    def is_finished(self) -> bool:
        return self.status in FINISHED_STATUSES

    def latest_progress(self) -> Optional['JobProgress']:
        return self.progress[-1] if self.progress else None


class JobProgress(Base):
    """One progress update of a job (stage, percent, message)."""

    __tablename__ = 'job_progress'
    __table_args__ = (
        Index('idx_job_progress_job_id', 'job_id'),
        Index('idx_job_progress_timestamp', 'timestamp'),
        {'comment': 'Progress tracking for jobs'}
    )

    id = Column(Integer, primary_key=True, autoincrement=True, nullable=False)
    job_id = Column(
        String(255),
        ForeignKey('job_runs.job_id', ondelete='CASCADE'),
        nullable=False
    )
    stage = Column(String(50), nullable=False, comment='reading, scanning, complete or failed')
    percent = Column(Numeric(5, 2), nullable=False)
    message = Column(Text, nullable=True)
    timestamp = Column(TIMESTAMP, server_default=text('CURRENT_TIMESTAMP'), nullable=False)

    job = relationship('JobRun', back_populates='progress')

    def __repr__(self):
        return f"<JobProgress(job_id='{self.job_id}', stage='{self.stage}', percent={self.percent})>"
