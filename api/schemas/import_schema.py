"""
Import-related Pydantic schemas.

This module contains schemas for spreadsheet import responses.
"""

from enum import Enum
from typing import List
from pydantic import BaseModel, Field
from api.schemas.job_schema import JobCreateResponse


class ImportEntity(str, Enum):
    """Entity an import sheet describes."""
    WORKERS = 'workers'
    PRODUCTS = 'products'


class ImportStatsResponse(BaseModel):
    """Statistics of a finished import."""

    total: int = Field(..., ge=0, description="Data rows attempted")
    created: int = Field(..., ge=0, description="Records created")
    updated: int = Field(..., ge=0, description="Existing records updated")
    errors: List[str] = Field(default_factory=list, description="Per-row errors, 'Ligne N (name): message'")

    class Config:
        json_schema_extra = {
            "example": {
                "total": 42,
                "created": 38,
                "updated": 3,
                "errors": ["Ligne 17 (Awa Diop): value too long for type character varying(50)"]
            }
        }


class ImportStartResponse(JobCreateResponse):
    """
    Response when a background import is started.

    Extends JobCreateResponse with import-specific messages.
    """

    class Config:
        json_schema_extra = {
            "example": {
                "job_id": "abc-123-def-456",
                "message": "Import job started",
                "status_url": "/api/import/job/abc-123-def-456",
                "websocket_url": "/ws/import/abc-123-def-456"
            }
        }
