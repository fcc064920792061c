"""
Service layer for worker and product imports.

This package contains framework-agnostic business logic that can be used
by the CLI, the API or the Celery tasks.
"""

__version__ = "1.0.0"
