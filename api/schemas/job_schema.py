"""
Job status and history schemas.
"""

from typing import Optional, Dict, Any
from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime

from backend.models.job import JobStatus, JobType


class JobProgressResponse(BaseModel):
    """Latest progress update, as cached in Redis or stored in job_progress."""

    stage: str = Field(..., description="reading, scanning, complete or failed")
    percent: float = Field(..., ge=0, le=100)
    message: str
    timestamp: datetime


class JobStatusResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    job_id: str = Field(..., description="Celery task ID")
    job_type: JobType
    status: JobStatus
    created_at: datetime
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    progress: Optional[JobProgressResponse] = None
    result: Optional[Dict[str, Any]] = Field(None, description="total, created, updated, errors")
    error: Optional[Dict[str, Any]] = None


class JobCreateResponse(BaseModel):
    job_id: str
    message: str = "Job created successfully"
    status_url: str = Field(..., description="URL to poll for the job status")
    websocket_url: str = Field(..., description="WebSocket URL streaming progress")


class JobListItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    job_id: str
    job_type: JobType
    status: JobStatus
    created_at: datetime
    completed_at: Optional[datetime]


class JobListResponse(BaseModel):
    """Paginated list of jobs, newest first."""

    total: int
    page: int
    page_size: int
    total_pages: int
    items: list[JobListItem]
