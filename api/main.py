"""
FastAPI application for worker and product imports.

This module creates and configures the FastAPI application, registering
all routers and middleware.
"""

import os
import logging
from contextlib import asynccontextmanager
from datetime import datetime

import redis
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from api.config import settings
from api.dependencies import engine, SessionLocal
from api.routers import import_router, websocket
from api.schemas.common import ErrorResponse, HealthCheckResponse
from backend.models.schema import Base
from services.sheet_reader import WorkbookReadError

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL),
    format=settings.LOG_FORMAT,
    handlers=[
        logging.FileHandler(settings.LOG_FILE),
        logging.StreamHandler()
    ]
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Handles startup and shutdown events.
    """
    # Startup
    logger.info(f"Starting {settings.API_TITLE} v{settings.API_VERSION}")
    logger.info(f"Database: {settings.DATABASE_URL.split('@')[-1]}")  # Hide credentials
    logger.info(f"Redis: {settings.REDIS_URL}")

    try:
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables verified")
    except Exception as e:
        logger.error(f"Database initialization failed: {e}")

    os.makedirs(settings.TEMP_UPLOAD_DIR, exist_ok=True)
    logger.info(f"Temp upload directory: {settings.TEMP_UPLOAD_DIR}")

    yield

    # Shutdown
    logger.info("Shutting down application")


# Create FastAPI application
app = FastAPI(
    title=settings.API_TITLE,
    description=settings.API_DESCRIPTION,
    version=settings.API_VERSION,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json"
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
    allow_methods=settings.CORS_ALLOW_METHODS,
    allow_headers=settings.CORS_ALLOW_HEADERS
)


# Exception handlers

@app.exception_handler(WorkbookReadError)
async def workbook_read_error_handler(request: Request, exc: WorkbookReadError):
    """Unreadable uploads abort the whole import."""
    logger.error(f"Unreadable workbook on {request.url.path}: {exc}")

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ErrorResponse(
            error="Internal server error",
            detail={"message": str(exc)},
            path=str(request.url)
        ).model_dump(mode='json')
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle uncaught exceptions."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ErrorResponse(
            error="Internal server error",
            detail={"message": str(exc)} if settings.DEBUG else None,
            path=str(request.url)
        ).model_dump(mode='json')
    )


@app.exception_handler(404)
async def not_found_handler(request: Request, exc):
    """Handle 404 Not Found errors."""
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content=ErrorResponse(
            error="Resource not found",
            detail={"path": str(request.url), "message": str(getattr(exc, 'detail', ''))},
            path=str(request.url)
        ).model_dump(mode='json')
    )


# Register routers with API prefix
app.include_router(import_router.router, prefix=settings.API_PREFIX)
app.include_router(websocket.router)  # WebSocket doesn't use /api prefix


# Root endpoints

@app.get('/', include_in_schema=False)
async def root():
    """
    Root endpoint - API entry information.
    """
    return {
        'message': f'Welcome to {settings.API_TITLE}',
        'version': settings.API_VERSION,
        'docs': '/docs',
        'redoc': '/redoc',
        'openapi': '/openapi.json'
    }


def check_database() -> str:
    with SessionLocal() as session:
        session.execute(text('SELECT 1'))
    return 'connected'


def check_redis() -> str:
    redis.Redis.from_url(settings.REDIS_URL).ping()
    return 'connected'


def check_celery() -> str:
    from tasks.celery_app import celery_app

    active_workers = celery_app.control.inspect(timeout=1.0).active()
    if not active_workers:
        return 'no workers'
    return f'active ({len(active_workers)} workers)'


# Component -> (probe, overall status when the probe fails)
HEALTH_CHECKS = {
    'database': (check_database, 'unhealthy'),
    'redis': (check_redis, 'degraded'),
    'celery': (check_celery, 'degraded'),
}


@app.get('/health', response_model=HealthCheckResponse, tags=['health'])
async def health_check():
    """
    Health check endpoint.

    Reports the database, Redis and Celery worker status. A database failure
    marks the service unhealthy, a Redis or worker failure marks it degraded.
    """
    health_status = {
        'status': 'healthy',
        'timestamp': datetime.utcnow(),
        'version': settings.API_VERSION
    }

    for component, (probe, failed_status) in HEALTH_CHECKS.items():
        try:
            health_status[component] = probe()
        except Exception as e:
            logger.error(f"{component} health check failed: {e}")
            health_status[component] = 'disconnected'
            if health_status['status'] == 'healthy':
                health_status['status'] = failed_status
            continue

        if health_status[component] == 'no workers' and health_status['status'] == 'healthy':
            health_status['status'] = 'degraded'

    return HealthCheckResponse(**health_status)


@app.get('/api/ping', tags=['health'])
async def ping():
    """
    Simple ping endpoint for load balancers.

    **Returns:**
    ```json
    {"ping": "pong"}
    ```
    """
    return {'ping': 'pong'}


# Middleware for request logging

@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all HTTP requests."""
    logger.info(f"{request.method} {request.url.path}")
    response = await call_next(request)
    logger.info(f"{request.method} {request.url.path} - {response.status_code}")
    return response


if __name__ == '__main__':
    import uvicorn

    uvicorn.run(
        'api.main:app',
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.RELOAD,
        log_level=settings.LOG_LEVEL.lower()
    )
