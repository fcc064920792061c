"""
Import Service - Framework-agnostic spreadsheet import.

Turns the rows classified by services.sheet_parser into create-or-update
operations on workers and products, with progress callback support for
API and background job integration.
"""

import logging
import re
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.orm import Session

from backend.models.schema import Category, Product, Worker, WorkerStatus
from services.sheet_parser import (
    DEFAULT_SITE, DEFAULT_SITE_BANNER_MIN_LENGTH, PRODUCT_LAYOUT, WORKER_LAYOUT,
    RowKind, SheetLayout, cell_text, parse_amount, parse_excel_date, parse_int, scan_rows
)
from services.sheet_reader import read_grid

logger = logging.getLogger(__name__)

# Default configuration (can be overridden)
DEFAULT_POSITION = 'Technicien de surface'
DEFAULT_UNIT = 'Unité'
DEFAULT_ALERT_THRESHOLD = 5
IMPORTED_CATEGORY_DESCRIPTION = 'Importé via Excel'
PROGRESS_EVERY_ROWS = 25


class ImportService:
    """
    Spreadsheet import service.

    Every data row is handled inside its own failure boundary: the row is
    committed on success, rolled back and reported on failure, and the scan
    goes on. Rows committed before a failure stay committed.
    """

    def __init__(
        self,
        db_session: Session,
        progress_callback: Optional[Callable[[str, float, str], None]] = None,
        default_site: str = DEFAULT_SITE,
        site_banner_min_length: int = DEFAULT_SITE_BANNER_MIN_LENGTH,
        default_position: str = DEFAULT_POSITION,
        default_unit: str = DEFAULT_UNIT,
        default_alert_threshold: int = DEFAULT_ALERT_THRESHOLD
    ):
        """
        Initialize import service.

        Args:
            db_session: SQLAlchemy database session
            progress_callback: Optional callback for progress updates
                              Signature: callback(stage: str, percent: float, message: str)
            default_site: Site assigned to workers listed before any site banner
            site_banner_min_length: Banner text must be longer than this
            default_position: Position given to newly created workers
            default_unit: Unit given to new products without a unit column
            default_alert_threshold: Alert threshold for new products
        """
        self.session = db_session
        self.progress_callback = progress_callback or (lambda *args: None)

        self.default_site = default_site
        self.site_banner_min_length = site_banner_min_length
        self.default_position = default_position
        self.default_unit = default_unit
        self.default_alert_threshold = default_alert_threshold

    @classmethod
    def from_settings(cls, db_session: Session, settings, progress_callback=None) -> 'ImportService':
        """Create a service from an object carrying the import settings."""
        return cls(
            db_session=db_session,
            progress_callback=progress_callback,
            default_site=settings.DEFAULT_SITE,
            site_banner_min_length=settings.SITE_BANNER_MIN_LENGTH,
            default_position=settings.DEFAULT_POSITION,
            default_unit=settings.DEFAULT_PRODUCT_UNIT,
            default_alert_threshold=settings.DEFAULT_ALERT_THRESHOLD
        )

    def _emit_progress(self, stage: str, percent: float, message: str):
        """Emit progress update via callback."""
        self.progress_callback(stage, percent, message)
        logger.info(f"Progress: {stage} ({percent:.1f}%) - {message}")

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def import_workers(self, content: bytes, filename: Optional[str] = None) -> Dict[str, Any]:
        """Import workers from an uploaded workbook."""
        self._emit_progress('reading', 5, f"Reading {filename or 'workbook'}...")
        grid = read_grid(content, filename)
        return self.import_worker_grid(grid)

    def import_products(self, content: bytes, filename: Optional[str] = None) -> Dict[str, Any]:
        """Import products from an uploaded workbook."""
        self._emit_progress('reading', 5, f"Reading {filename or 'workbook'}...")
        grid = read_grid(content, filename)
        return self.import_product_grid(grid)

    def import_worker_grid(self, grid: List[List[Any]]) -> Dict[str, Any]:
        return self._import_grid(grid, WORKER_LAYOUT, self._import_worker_row, self._worker_label)

    def import_product_grid(self, grid: List[List[Any]]) -> Dict[str, Any]:
        return self._import_grid(grid, PRODUCT_LAYOUT, self._import_product_row, self._product_label)

    # ------------------------------------------------------------------
    # Scan loop
    # ------------------------------------------------------------------

    def _import_grid(
        self,
        grid: List[List[Any]],
        layout: SheetLayout,
        import_row: Callable[[Dict[str, Any], str], str],
        row_label: Callable[[Dict[str, Any]], str]
    ) -> Dict[str, Any]:
        """
        Run the scan over a grid and apply every data row.

        Returns:
            Dictionary with import statistics:
            {
                'total': int,      # data rows attempted
                'created': int,
                'updated': int,
                'errors': list     # 'Ligne N (name): message'
            }
        """
        stats = {'total': 0, 'created': 0, 'updated': 0, 'errors': []}
        row_count = len(grid)
        logger.info(f"Starting {layout.name} import: {row_count} rows")

        for row in scan_rows(grid, layout, self.default_site, self.site_banner_min_length):
            line = row['line']

            if line % PROGRESS_EVERY_ROWS == 0:
                percent = 10 + 85 * (line / max(row_count, 1))
                self._emit_progress('scanning', percent, f"Row {line}/{row_count}")

            if row['kind'] == RowKind.SITE_BANNER:
                logger.info(f"Line {line}: switched to site {row['site']}")
                continue
            if row['kind'] == RowKind.HEADER:
                logger.info(f"Line {line}: header found")
                continue
            if row['kind'] != RowKind.DATA:
                continue

            stats['total'] += 1
            values = row['values']

            try:
                outcome = import_row(values, row['site'])
                self.session.commit()
                stats[outcome] += 1
            except Exception as e:
                self.session.rollback()
                logger.error(f"Error importing line {line}: {e}")
                stats['errors'].append(f"Ligne {line} ({row_label(values)}): {e}")

        self._emit_progress(
            'complete', 100,
            f"{stats['created']} created, {stats['updated']} updated, {len(stats['errors'])} errors"
        )
        logger.info(f"{layout.name} import finished: {stats['total']} rows, "
                    f"{stats['created']} created, {stats['updated']} updated, "
                    f"{len(stats['errors'])} errors")
        return stats

    # ------------------------------------------------------------------
    # Workers
    # ------------------------------------------------------------------

    @staticmethod
    def _worker_label(values: Dict[str, Any]) -> str:
        return f"{cell_text(values.get('first_name'))} {cell_text(values.get('last_name'))}"

    def find_worker(self, first_name: str, last_name: str,
                    national_id: Optional[str], contact: Optional[str]) -> Optional[Worker]:
        """
        Find an existing worker.

        National ID first; rows without one fall back to an exact
        first name + last name + contact match.
        """
        query = self.session.query(Worker)
        if national_id:
            return query.filter_by(national_id=national_id).first()
        if contact:
            return query.filter_by(
                first_name=first_name, last_name=last_name, contact=contact
            ).first()
        return None

    def _import_worker_row(self, values: Dict[str, Any], site: str) -> str:
        first_name = cell_text(values['first_name'])
        last_name = cell_text(values['last_name'])
        national_id = cell_text(values['national_id']) or None
        contact = re.sub(r'\s+', '', cell_text(values['contact'])) or None
        address = cell_text(values['address']) or None
        base_salary = Decimal(str(round(parse_amount(values['base_salary']), 2)))
        birth_date = parse_excel_date(values['birth_date'])

        worker = self.find_worker(first_name, last_name, national_id, contact)

        if worker:
            worker.site = site
            if base_salary > 0:
                worker.base_salary = base_salary
            if address:
                worker.address = address
            if contact:
                worker.contact = contact
            if birth_date:
                worker.birth_date = birth_date
            worker.updated_at = datetime.utcnow()
            self.session.flush()
            return 'updated'

        worker = Worker(
            first_name=first_name,
            last_name=last_name,
            national_id=national_id,
            contact=contact,
            address=address,
            base_salary=base_salary,
            site=site,
            position=self.default_position,
            status=WorkerStatus.ACTIF.value,
            hire_date=date.today(),
            birth_date=birth_date,
            email=None
        )
        self.session.add(worker)
        self.session.flush()
        return 'created'

    # ------------------------------------------------------------------
    # Products
    # ------------------------------------------------------------------

    @staticmethod
    def _product_label(values: Dict[str, Any]) -> str:
        return cell_text(values.get('name'))

    def get_or_create_category(self, name: str) -> Category:
        category = self.session.query(Category).filter_by(name=name).first()
        if category is None:
            category = Category(name=name, description=IMPORTED_CATEGORY_DESCRIPTION)
            self.session.add(category)
            self.session.flush()
            logger.info(f"Created category '{name}'")
        return category

    def find_product(self, name: str, code: Optional[str]) -> Optional[Product]:
        """Find an existing product by code, then by name."""
        query = self.session.query(Product)
        product = None
        if code:
            product = query.filter_by(code=code).first()
        if product is None:
            product = query.filter_by(name=name).first()
        return product

    def _import_product_row(self, values: Dict[str, Any], site: str) -> str:
        name = cell_text(values['name'])
        code = cell_text(values['code']) or None
        description = cell_text(values['description']) or None
        unit = cell_text(values['unit']) or None
        category_name = cell_text(values['category']) or None
        has_threshold = cell_text(values['alert_threshold']) != ''
        alert_threshold = parse_int(values['alert_threshold'], self.default_alert_threshold)

        category = self.get_or_create_category(category_name) if category_name else None
        product = self.find_product(name, code)

        if product:
            product.name = name
            if code:
                product.code = code
            if description:
                product.description = description
            if unit:
                product.unit = unit
            if has_threshold:
                product.alert_threshold = alert_threshold
            if category is not None:
                product.category = category
            product.refresh_status()
            product.updated_at = datetime.utcnow()
            self.session.flush()
            return 'updated'

        product = Product(
            name=name,
            code=code,
            description=description,
            unit=unit or self.default_unit,
            quantity=0,
            alert_threshold=alert_threshold,
            category=category
        )
        product.refresh_status()
        self.session.add(product)
        self.session.flush()
        return 'created'
