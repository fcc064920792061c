"""
Pydantic schemas for request/response validation.

This package contains all Pydantic models used for API request validation
and response serialization.
"""

from api.schemas.common import ErrorResponse, HealthCheckResponse
from api.schemas.job_schema import (
    JobProgressResponse,
    JobStatusResponse, JobCreateResponse, JobListItem, JobListResponse
)
from api.schemas.import_schema import ImportEntity, ImportStatsResponse, ImportStartResponse

__all__ = [
    # Common
    'ErrorResponse',
    'HealthCheckResponse',

    # Job
    'JobProgressResponse',
    'JobStatusResponse',
    'JobCreateResponse',
    'JobListItem',
    'JobListResponse',

    # Import
    'ImportEntity',
    'ImportStatsResponse',
    'ImportStartResponse',
]
