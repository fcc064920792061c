"""
Import router - Handle spreadsheet uploads and job tracking.

This module provides endpoints for importing workers and products from
Excel files, either synchronously (statistics in the response body) or as
background jobs whose status can be polled.
"""

import os
import uuid
import logging
import tempfile
import json
from pathlib import Path
from typing import Optional, Tuple

import redis
from fastapi import APIRouter, UploadFile, File, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session

from api.config import settings
from api.dependencies import (
    get_db, get_import_service, verify_file_extension, verify_file_size
)
from api.schemas.import_schema import ImportEntity, ImportStatsResponse, ImportStartResponse
from api.schemas.job_schema import JobStatusResponse, JobProgressResponse, JobListResponse, JobListItem
from backend.models.job import JobRun, JobType, JobStatus
from services.import_service import ImportService
from tasks.import_tasks import import_spreadsheet

logger = logging.getLogger(__name__)

# Create router
router = APIRouter(prefix='/import', tags=['import'])

# Redis client for progress tracking
redis_client = redis.Redis.from_url(settings.REDIS_URL, decode_responses=True)

JOB_TYPES = {
    ImportEntity.WORKERS: JobType.WORKER_IMPORT,
    ImportEntity.PRODUCTS: JobType.PRODUCT_IMPORT,
}


def read_upload(file: Optional[UploadFile]) -> Tuple[bytes, str]:
    """
    Read an uploaded workbook after checking its name and size.

    Blocking read; the endpoints calling it are plain functions, so FastAPI
    runs them in its threadpool.

    Raises:
        HTTPException: 400 when no file is sent or the extension is not
                       allowed, 413 when the file is too large
    """
    if file is None or not file.filename:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Aucun fichier fourni"
        )

    verify_file_extension(file.filename)
    content = file.file.read()
    verify_file_size(len(content))

    logger.info(f"Received {file.filename} ({len(content) / 1024:.1f} KB)")
    return content, file.filename


@router.post('/workers', response_model=ImportStatsResponse)
def import_workers(
    file: Optional[UploadFile] = File(None, description="Excel file (.xlsx, .xlsm or .xls)"),
    service: ImportService = Depends(get_import_service),
):
    """
    Import workers from an Excel sheet.

    The sheet may contain several blocks, each introduced by a single-cell
    site banner and a header row with at least PRENOMS and NOMS columns.
    Workers are matched by national ID, else by name and phone number.

    **Returns:**
    `{total, created, updated, errors}`. Rows that fail are listed in
    `errors` as `Ligne N (name): message`; other rows are still imported.
    """
    content, filename = read_upload(file)
    stats = service.import_workers(content, filename)
    return ImportStatsResponse(**stats)


@router.post('/products', response_model=ImportStatsResponse)
def import_products(
    file: Optional[UploadFile] = File(None, description="Excel file (.xlsx, .xlsm or .xls)"),
    service: ImportService = Depends(get_import_service),
):
    """
    Import products from an Excel sheet.

    The header row needs a NOM DU PRODUIT column, or CODE plus a category
    column. Products are matched by code, else by name; unknown categories
    are created.

    **Returns:**
    `{total, created, updated, errors}`.
    """
    content, filename = read_upload(file)
    stats = service.import_products(content, filename)
    return ImportStatsResponse(**stats)


@router.post('/{entity}/jobs', response_model=ImportStartResponse, status_code=status.HTTP_202_ACCEPTED)
def start_import_job(
    entity: ImportEntity,
    file: Optional[UploadFile] = File(None, description="Excel file (.xlsx, .xlsm or .xls)"),
    db: Session = Depends(get_db),
):
    """
    Upload a sheet and import it in the background.

    **Workflow:**
    1. Validate file type and size
    2. Store the upload in the temp directory
    3. Create the job record
    4. Enqueue the Celery task
    5. Return the job ID for status tracking

    **Progress Tracking:**
    - Poll GET /api/import/job/{job_id}
    - Connect to WebSocket /ws/import/{job_id}
    """
    content, filename = read_upload(file)

    fd, temp_path = tempfile.mkstemp(
        suffix=Path(filename).suffix,
        dir=settings.TEMP_UPLOAD_DIR
    )
    try:
        with os.fdopen(fd, 'wb') as tmp:
            tmp.write(content)

        job_id = str(uuid.uuid4())
        job_run = JobRun(
            job_id=job_id,
            job_type=JOB_TYPES[entity].value,
            status=JobStatus.PENDING.value,
            params={
                'filename': filename,
                'entity': entity.value,
                'file_size_kb': round(len(content) / 1024, 1)
            },
        )
        db.add(job_run)
        db.commit()

        import_spreadsheet.apply_async(args=[temp_path, entity.value, filename], task_id=job_id)

    except Exception as e:
        db.rollback()
        if os.path.exists(temp_path):
            os.unlink(temp_path)

        logger.error(f"Could not start import job: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Upload failed: {str(e)}"
        )

    logger.info(f"Started {entity.value} import task {job_id} for file: {filename}")

    return ImportStartResponse(
        job_id=job_id,
        message="Import job started",
        status_url=f"{settings.API_PREFIX}/import/job/{job_id}",
        websocket_url=f"/ws/import/{job_id}"
    )


@router.get('/job/{job_id}', response_model=JobStatusResponse)
def get_job_status(
    job_id: str,
    db: Session = Depends(get_db)
):
    """
    Get current status of an import job.

    Returns the job status, the latest progress update (Redis first,
    database otherwise), the import statistics once finished and the error
    details if it failed.
    """
    job_run = db.query(JobRun).filter_by(job_id=job_id).first()

    if not job_run:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Job {job_id} not found"
        )

    progress = None
    try:
        progress_data = redis_client.get(f'job_progress:{job_id}')
        if progress_data:
            progress = JobProgressResponse(**json.loads(progress_data))
    except Exception as e:
        logger.warning(f"Could not fetch progress from Redis for {job_id}: {e}")

    latest_progress = job_run.latest_progress()
    if not progress and latest_progress:
        progress = JobProgressResponse(
            stage=latest_progress.stage,
            percent=float(latest_progress.percent),
            message=latest_progress.message or "",
            timestamp=latest_progress.timestamp
        )

    return JobStatusResponse(
        job_id=job_run.job_id,
        job_type=job_run.job_type,
        status=job_run.status,
        created_at=job_run.created_at,
        started_at=job_run.started_at,
        completed_at=job_run.completed_at,
        progress=progress,
        result=job_run.result,
        error=job_run.error,
    )


@router.get('/jobs', response_model=JobListResponse)
def list_jobs(
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(50, ge=1, le=100, description="Items per page"),
    job_type: Optional[str] = Query(None, description="Filter by job type"),
    status: Optional[str] = Query(None, description="Filter by status"),
    db: Session = Depends(get_db)
):
    """
    List import jobs, newest first.

    **Filters:**
    - `job_type`: 'worker_import' or 'product_import'
    - `status`: job status
    """
    query = db.query(JobRun)

    if job_type:
        query = query.filter_by(job_type=job_type)

    if status:
        query = query.filter_by(status=status)

    total = query.count()

    jobs = query.order_by(JobRun.created_at.desc())\
        .offset((page - 1) * page_size)\
        .limit(page_size)\
        .all()

    total_pages = (total + page_size - 1) // page_size

    return JobListResponse(
        total=total,
        page=page,
        page_size=page_size,
        total_pages=total_pages,
        items=[JobListItem.model_validate(job) for job in jobs]
    )
