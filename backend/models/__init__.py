"""Models package for the stock and HR records."""
from backend.models.schema import Base, Category, Product, Worker, WorkerStatus, ProductStatus
from backend.models.job import JobRun, JobProgress, JobStatus, JobType

__all__ = [
    'Base', 'Category', 'Product', 'Worker', 'WorkerStatus', 'ProductStatus',
    'JobRun', 'JobProgress', 'JobStatus', 'JobType',
]
