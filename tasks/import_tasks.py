"""
Import background tasks.

This module defines Celery tasks for spreadsheet imports with progress tracking.
"""

import os
import json
import logging
import traceback
from datetime import datetime, timedelta
from pathlib import Path
from typing import Dict, Any, Optional
import redis

from celery import Task
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session

from api.config import settings
from tasks.celery_app import celery_app
from services.import_service import ImportService
from backend.models.job import JobRun, JobProgress, JobStatus

logger = logging.getLogger(__name__)

# Create Redis client
redis_client = redis.Redis.from_url(settings.REDIS_URL, decode_responses=True)

# Create database engine and session factory
engine = create_engine(settings.DATABASE_URL, pool_pre_ping=True)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db_session() -> Session:
    """Get database session."""
    return SessionLocal()


class ImportTask(Task):
    """
    Base task class with progress tracking.

    Provides methods for updating job progress in both Redis (for real-time)
    and the database (for persistence).
    """

    def on_progress(self, stage: str, percent: float, message: str):
        """
        Update job progress in Redis and database.

        Args:
            stage: Current stage (e.g., 'reading', 'scanning')
            percent: Progress percentage (0-100)
            message: Human-readable progress message
        """
        job_id = self.request.id

        try:
            progress_data = {
                'stage': stage,
                'percent': float(percent),
                'message': message,
                'timestamp': datetime.utcnow().isoformat()
            }

            redis_client.setex(
                f'job_progress:{job_id}',
                settings.PROGRESS_CACHE_EXPIRY,
                json.dumps(progress_data)
            )

            with get_db_session() as session:
                progress = JobProgress(
                    job_id=job_id,
                    stage=stage,
                    percent=percent,
                    message=message
                )
                session.add(progress)
                session.commit()

            logger.debug(f"Progress updated: {job_id} - {stage} ({percent}%)")

        except Exception as e:
            logger.error(f"Error updating progress for {job_id}: {e}")

    def update_job_status(self, job_id: str, status: str, **kwargs):
        """
        Update job status in database.

        Args:
            job_id: Job ID
            status: New status
            **kwargs: Additional fields to update (result, error, etc.)
        """
        try:
            with get_db_session() as session:
                job_run = session.query(JobRun).filter_by(job_id=job_id).first()
                if job_run:
                    job_run.status = status

                    for key, value in kwargs.items():
                        if hasattr(job_run, key):
                            setattr(job_run, key, value)

                    session.commit()
                    logger.info(f"Job {job_id} status updated to {status}")
                else:
                    logger.warning(f"Job {job_id} not found in database")
        except Exception as e:
            logger.error(f"Error updating job status for {job_id}: {e}")


def run_import(service: ImportService, entity: str, content: bytes,
               filename: Optional[str]) -> Dict[str, Any]:
    """Dispatch an import to the service method for the entity."""
    if entity == 'workers':
        return service.import_workers(content, filename)
    if entity == 'products':
        return service.import_products(content, filename)
    raise ValueError(f"Unknown import entity: {entity}")


@celery_app.task(base=ImportTask, bind=True, name='tasks.import_tasks.import_spreadsheet')
def import_spreadsheet(self, file_path: str, entity: str,
                       filename: Optional[str] = None) -> Dict[str, Any]:
    """
    Background task to import a spreadsheet.

    Args:
        file_path: Path to the uploaded file
        entity: 'workers' or 'products'
        filename: Original filename (chooses the reader engine)

    Returns:
        Import statistics: {'total', 'created', 'updated', 'errors'}
    """
    job_id = self.request.id
    logger.info(f"Starting {entity} import task {job_id} for file: {file_path}")

    try:
        self.update_job_status(
            job_id=job_id,
            status=JobStatus.PROCESSING.value,
            started_at=datetime.utcnow()
        )

        with open(file_path, 'rb') as f:
            content = f.read()

        with get_db_session() as session:
            service = ImportService.from_settings(session, settings, progress_callback=self.on_progress)
            result = run_import(service, entity, content, filename or Path(file_path).name)

        self.update_job_status(
            job_id=job_id,
            status=JobStatus.SUCCESS.value,
            completed_at=datetime.utcnow(),
            result=result
        )

        logger.info(f"Import task {job_id} completed: {result['created']} created, "
                    f"{result['updated']} updated, {len(result['errors'])} errors")
        return result

    except Exception as e:
        error_details = {
            'error': str(e),
            'traceback': traceback.format_exc(),
            'file_path': file_path,
            'entity': entity
        }

        logger.error(f"Import task {job_id} failed: {e}", exc_info=True)

        self.update_job_status(
            job_id=job_id,
            status=JobStatus.FAILED.value,
            completed_at=datetime.utcnow(),
            error=error_details
        )

        self.on_progress('failed', 0, f"Import failed: {str(e)}")
        raise

    finally:
        if os.path.exists(file_path) and file_path.startswith(settings.TEMP_UPLOAD_DIR):
            try:
                os.remove(file_path)
                logger.info(f"Cleaned up temporary file: {file_path}")
            except OSError as e:
                logger.warning(f"Could not remove temp file {file_path}: {e}")


@celery_app.task(name='tasks.import_tasks.cleanup_old_jobs')
def cleanup_old_jobs(days_to_keep: int = settings.JOB_RETENTION_DAYS) -> Dict[str, Any]:
    """
    Clean up old job records and progress entries.

    Args:
        days_to_keep: Number of days to keep job records

    Returns:
        Dictionary with cleanup statistics
    """
    logger.info(f"Starting cleanup of jobs older than {days_to_keep} days")

    try:
        with get_db_session() as session:
            cutoff_date = datetime.utcnow() - timedelta(days=days_to_keep)

            deleted_progress = session.query(JobProgress).filter(
                JobProgress.timestamp < cutoff_date
            ).delete(synchronize_session=False)

            deleted_jobs = session.query(JobRun).filter(
                JobRun.completed_at < cutoff_date,
                JobRun.status.in_([JobStatus.SUCCESS.value, JobStatus.FAILED.value])
            ).delete(synchronize_session=False)

            session.commit()

            logger.info(f"Cleanup complete: {deleted_jobs} jobs, {deleted_progress} progress entries deleted")

            return {
                'deleted_jobs': deleted_jobs,
                'deleted_progress': deleted_progress,
                'cutoff_date': cutoff_date.isoformat()
            }

    except Exception as e:
        logger.error(f"Error during cleanup: {e}", exc_info=True)
        return {
            'error': str(e),
            'deleted_jobs': 0,
            'deleted_progress': 0
        }
