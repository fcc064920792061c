#!/usr/bin/env python3
"""
Worker and Product Import CLI - Dual Mode

This script can operate in two modes:
1. Direct mode (default): Direct database import using the import service
2. API mode: Uploads the sheet to the FastAPI backend

Usage:
    # Direct mode (uses services directly)
    python scripts/importer_cli.py workers --file personnel.xlsx

    # API mode, statistics returned by the upload request
    python scripts/importer_cli.py products --file stock.xlsx --api-url http://localhost:8000

    # API mode, background job with live progress
    python scripts/importer_cli.py workers --file personnel.xlsx --api-url http://localhost:8000 --background
"""

import os
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

import json
import time
import logging
from typing import Any, Dict, Optional

import click
from dotenv import load_dotenv
import requests
from websocket import create_connection, WebSocketException

# For direct mode
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from api.config import settings
from backend.models.schema import Base
from services.import_service import ImportService
from services.sheet_reader import WorkbookReadError

# Load environment variables
load_dotenv()

# Configure logging
LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
LOG_FILE = os.getenv('LOG_FILE', 'cli.log')

logging.basicConfig(
    level=getattr(logging, LOG_LEVEL),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.FileHandler(LOG_FILE),
        logging.StreamHandler(sys.stdout)
    ]
)

logger = logging.getLogger('importer_cli')

# Configuration
DATABASE_URL = settings.DATABASE_URL
FINISHED_STATUSES = ['success', 'failed']
MAX_ERRORS_SHOWN = 20


@click.group()
def cli():
    """Worker and product spreadsheet import CLI - Dual Mode Support"""


def import_options(func):
    func = click.option('--background', is_flag=True,
                        help='API mode only: run as a background job and follow its progress')(func)
    func = click.option('--api-url', envvar='API_URL',
                        help='FastAPI backend URL (enables API mode)')(func)
    func = click.option('--file', '-f', 'file_path', required=True, type=click.Path(exists=True),
                        help='Path to Excel file to import')(func)
    return func


@cli.command('workers')
@import_options
def workers_cmd(file_path: str, api_url: Optional[str], background: bool):
    """Import workers (site banners, PRENOMS / NOMS header)."""
    run_import('workers', file_path, api_url, background)


@cli.command('products')
@import_options
def products_cmd(file_path: str, api_url: Optional[str], background: bool):
    """Import products (NOM DU PRODUIT or CODE + CATEGORIE header)."""
    run_import('products', file_path, api_url, background)


def run_import(entity: str, file_path: str, api_url: Optional[str], background: bool):
    if api_url:
        click.echo(f"🌐 API Mode: Using backend at {api_url}")
        if background:
            import_job_via_api(api_url, entity, file_path)
        else:
            import_via_api(api_url, entity, file_path)
    else:
        click.echo("💾 Direct Mode: Using local database")
        import_direct(entity, file_path)


def show_progress(stage: str, percent: float, message: str):
    bar_length = 40
    filled = int(bar_length * percent / 100)
    bar = '█' * filled + '░' * (bar_length - filled)
    click.echo(f"\r[{bar}] {percent:.1f}% - {stage}: {message}", nl=False)


def show_stats(entity: str, stats: Dict[str, Any]):
    """Print import statistics and the first per-row errors."""
    errors = stats.get('errors', [])

    click.echo(f"\n✓ Import of {entity} finished")
    click.echo(f"\nStatistics:")
    click.echo(f"  Rows processed: {stats.get('total', 0)}")
    click.echo(f"  Created: {stats.get('created', 0)}")
    click.echo(f"  Updated: {stats.get('updated', 0)}")
    click.echo(f"  Errors: {len(errors)}")

    if errors:
        click.echo(f"\n⚠️  Rows with errors:", err=True)
        for error in errors[:MAX_ERRORS_SHOWN]:
            click.echo(f"  {error}", err=True)
        if len(errors) > MAX_ERRORS_SHOWN:
            click.echo(f"  ... and {len(errors) - MAX_ERRORS_SHOWN} more", err=True)


# ============================================================================
# Direct Mode Implementation (Uses Services Directly)
# ============================================================================

def import_direct(entity: str, file_path: str):
    """Import file using direct database access."""
    click.echo(f"\n📁 Importing {entity}: {file_path}")

    engine = create_engine(DATABASE_URL)
    Base.metadata.create_all(engine)
    Session = sessionmaker(bind=engine)
    session = Session()

    try:
        content = Path(file_path).read_bytes()
        service = ImportService.from_settings(session, settings, progress_callback=show_progress)

        click.echo()
        if entity == 'workers':
            stats = service.import_workers(content, Path(file_path).name)
        else:
            stats = service.import_products(content, Path(file_path).name)
        click.echo()  # New line after progress bar

        show_stats(entity, stats)

    except WorkbookReadError as e:
        click.echo(f"\n✗ {e}", err=True)
        sys.exit(1)
    except Exception as e:
        logger.error(f"Import failed: {e}", exc_info=True)
        click.echo(f"\n✗ Import failed: {e}", err=True)
        sys.exit(1)
    finally:
        session.close()


# ============================================================================
# API Mode Implementation (Uses FastAPI Backend)
# ============================================================================

def upload(url: str, file_path: str, timeout: int) -> requests.Response:
    with open(file_path, 'rb') as f:
        files = {
            'file': (Path(file_path).name, f,
                     'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet')
        }
        return requests.post(url, files=files, timeout=timeout)


def import_via_api(api_url: str, entity: str, file_path: str):
    """Import file through the synchronous upload endpoint."""
    click.echo(f"\n📤 Uploading {file_path} to {api_url}...")

    try:
        response = upload(f"{api_url}/api/import/{entity}", file_path, timeout=300)
    except requests.exceptions.RequestException as e:
        click.echo(f"❌ Network error: {e}", err=True)
        sys.exit(1)

    if response.status_code != 200:
        click.echo(f"❌ Import failed ({response.status_code}): {response.text}", err=True)
        sys.exit(1)

    show_stats(entity, response.json())


def import_job_via_api(api_url: str, entity: str, file_path: str):
    """Start a background import job and follow it."""
    click.echo(f"\n📤 Uploading {file_path} to {api_url}...")

    try:
        response = upload(f"{api_url}/api/import/{entity}/jobs", file_path, timeout=30)
    except requests.exceptions.RequestException as e:
        click.echo(f"❌ Network error: {e}", err=True)
        sys.exit(1)

    if response.status_code != 202:
        click.echo(f"❌ Upload failed ({response.status_code}): {response.text}", err=True)
        sys.exit(1)

    job_id = response.json()['job_id']
    click.echo(f"✓ Upload successful. Job ID: {job_id}")
    click.echo("🔄 Tracking progress via WebSocket...\n")

    # Try WebSocket first, fall back to polling if it fails
    try:
        data = track_progress_websocket(api_url, job_id)
    except (WebSocketException, OSError) as e:
        logger.warning(f"WebSocket connection failed: {e}")
        click.echo(f"\n⚠️  WebSocket unavailable, falling back to polling...")
        data = track_progress_polling(api_url, job_id)

    click.echo()  # New line after progress bar
    finish_job(entity, data)


def finish_job(entity: str, data: Dict[str, Any]):
    if data['status'] == 'success':
        show_stats(entity, data.get('result') or {})
        return

    error = data.get('error') or {}
    click.echo(f"\n❌ Import failed: {error.get('error', 'Unknown error')}", err=True)
    if error.get('traceback'):
        logger.error(f"Full traceback:\n{error['traceback']}")
    sys.exit(1)


def track_progress_websocket(api_url: str, job_id: str) -> Dict[str, Any]:
    """Follow a job over WebSocket and return its final message."""
    ws_url = api_url.replace('http://', 'ws://').replace('https://', 'wss://')
    ws_url = f"{ws_url}/ws/import/{job_id}"

    ws = create_connection(ws_url, timeout=5)

    try:
        while True:
            data = json.loads(ws.recv())

            if 'error' in data and 'status' not in data:
                click.echo(f"\n❌ Error: {data['error']}", err=True)
                sys.exit(1)

            if data.get('progress'):
                progress = data['progress']
                show_progress(progress['stage'], progress['percent'], progress['message'])

            if data.get('status') in FINISHED_STATUSES and ('result' in data or 'error' in data):
                return data
    finally:
        ws.close()


def track_progress_polling(api_url: str, job_id: str) -> Dict[str, Any]:
    """Follow a job through the status endpoint and return its final state."""
    click.echo("⏱️  Polling for status updates...\n")

    last_percent = None

    while True:
        try:
            response = requests.get(f"{api_url}/api/import/job/{job_id}", timeout=10)
        except requests.exceptions.RequestException as e:
            click.echo(f"\n❌ Network error: {e}", err=True)
            sys.exit(1)

        if response.status_code != 200:
            click.echo(f"\n❌ Error checking status: {response.text}", err=True)
            sys.exit(1)

        data = response.json()

        progress = data.get('progress')
        if progress and progress['percent'] != last_percent:
            show_progress(progress['stage'], progress['percent'], progress['message'])
            last_percent = progress['percent']

        if data['status'] in FINISHED_STATUSES:
            return data

        time.sleep(1)


if __name__ == '__main__':
    cli()
