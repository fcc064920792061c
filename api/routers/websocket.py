"""
WebSocket router - Import job progress stream.
"""

import json
import logging
import asyncio
from typing import Any, Dict, Optional

import redis
from fastapi import APIRouter, WebSocket, WebSocketDisconnect, Depends, status
from sqlalchemy.orm import Session

from api.config import settings
from api.dependencies import get_db
from backend.models.job import JobRun, JobStatus

logger = logging.getLogger(__name__)

router = APIRouter(tags=['websocket'])

redis_client = redis.Redis.from_url(settings.REDIS_URL, decode_responses=True)

POLL_INTERVAL_SECONDS = 0.5


def cached_progress(job_id: str) -> Optional[Dict[str, Any]]:
    try:
        progress_data = redis_client.get(f'job_progress:{job_id}')
    except redis.RedisError as e:
        logger.warning(f"Could not read progress of {job_id} from Redis: {e}")
        return None
    return json.loads(progress_data) if progress_data else None


def final_message(job_run: JobRun) -> Dict[str, Any]:
    """Last message of the stream: statistics on success, error details on failure."""
    message = {
        'job_id': job_run.job_id,
        'status': job_run.status,
        'completed_at': job_run.completed_at.isoformat() if job_run.completed_at else None
    }
    if job_run.status == JobStatus.SUCCESS.value:
        message['result'] = job_run.result
    else:
        message['error'] = job_run.error
    return message


@router.websocket('/ws/import/{job_id}')
async def websocket_import_progress(
    websocket: WebSocket,
    job_id: str,
    db: Session = Depends(get_db)
):
    """
    Stream `{job_id, status, progress}` messages until the job finishes,
    then send the final message and close.
    """
    await websocket.accept()

    try:
        job_run = db.query(JobRun).filter_by(job_id=job_id).first()
        if not job_run:
            await websocket.send_json({'error': f'Job {job_id} not found', 'job_id': job_id})
            await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
            return

        await websocket.send_json({'job_id': job_id, 'status': job_run.status})

        last_status = job_run.status
        last_progress = None

        while True:
            db.refresh(job_run)

            progress = cached_progress(job_id)
            if job_run.status != last_status or (progress and progress != last_progress):
                await websocket.send_json({'job_id': job_id, 'status': job_run.status, 'progress': progress})
                last_status = job_run.status
                last_progress = progress or last_progress

            if job_run.is_finished:
                await websocket.send_json(final_message(job_run))
                logger.info(f"Job {job_id} finished with status {job_run.status}")
                break

            await asyncio.sleep(POLL_INTERVAL_SECONDS)

        await websocket.close()

    except WebSocketDisconnect:
        logger.info(f"Client left the progress stream of job {job_id}")

    except Exception as e:
        logger.error(f"WebSocket error for job {job_id}: {e}", exc_info=True)
        await websocket.send_json({'error': str(e), 'job_id': job_id})
        await websocket.close(code=status.WS_1011_INTERNAL_ERROR)
