"""
FastAPI application for worker and product imports.

This package contains the REST API and WebSocket server for spreadsheet
imports and background job tracking.
"""

__version__ = "1.0.0"
