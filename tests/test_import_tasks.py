"""
Tests for the background import task.

The task runs eagerly through Task.apply() against the SQLite engine.
"""

import json

import pytest
from sqlalchemy.orm import sessionmaker

from api.config import settings
from backend.models.job import JobProgress, JobRun, JobStatus, JobType
from backend.models.schema import Worker
from services.import_service import ImportService
import tasks.import_tasks as import_tasks


class FakeRedis:
    def __init__(self):
        self.store = {}

    def setex(self, key, ttl, value):
        self.store[key] = value


@pytest.fixture
def task_env(engine, session, monkeypatch, tmp_path):
    fake_redis = FakeRedis()
    monkeypatch.setattr(import_tasks, 'SessionLocal', sessionmaker(bind=engine))
    monkeypatch.setattr(import_tasks, 'redis_client', fake_redis)
    monkeypatch.setattr(settings, 'TEMP_UPLOAD_DIR', str(tmp_path))
    return fake_redis


def create_job(session, job_id, job_type=JobType.WORKER_IMPORT):
    session.add(JobRun(job_id=job_id, job_type=job_type.value, status=JobStatus.PENDING.value, params={}))
    session.commit()


class TestImportSpreadsheetTask:

    def test_success(self, task_env, session, tmp_path, make_xlsx, worker_grid):
        create_job(session, 'job-ok')
        upload = tmp_path / 'upload.xlsx'
        upload.write_bytes(make_xlsx(worker_grid))

        result = import_tasks.import_spreadsheet.apply(
            args=[str(upload), 'workers', 'personnel.xlsx'], task_id='job-ok'
        )

        assert result.successful()
        assert result.result['created'] == 4

        job_run = session.query(JobRun).filter_by(job_id='job-ok').one()
        assert job_run.status == JobStatus.SUCCESS.value
        assert job_run.result['total'] == 4
        assert job_run.started_at is not None
        assert session.query(Worker).count() == 4

        stages = [p.stage for p in session.query(JobProgress).filter_by(job_id='job-ok')]
        assert stages[0] == 'reading'
        assert stages[-1] == 'complete'
        assert json.loads(task_env.store['job_progress:job-ok'])['percent'] == 100

        # Uploaded file is removed once processed
        assert not upload.exists()

    def test_unreadable_file_fails_job(self, task_env, session, tmp_path):
        create_job(session, 'job-bad')
        upload = tmp_path / 'upload.xlsx'
        upload.write_bytes(b'not a workbook')

        result = import_tasks.import_spreadsheet.apply(
            args=[str(upload), 'workers', 'personnel.xlsx'], task_id='job-bad'
        )

        assert result.failed()
        job_run = session.query(JobRun).filter_by(job_id='job-bad').one()
        assert job_run.status == JobStatus.FAILED.value
        assert job_run.error['error'].startswith('Fichier illisible')
        assert job_run.error['entity'] == 'workers'
        assert not upload.exists()


def test_run_import_rejects_unknown_entity(session):
    with pytest.raises(ValueError):
        import_tasks.run_import(ImportService(session), 'clients', b'', 'clients.xlsx')
