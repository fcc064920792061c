"""
Sheet Parser - Row classification heuristics for untyped worksheet grids.

Import sheets are maintained by hand: header rows may repeat, the work site
is written as a single-cell banner above each block of workers, and column
order changes from file to file. This module walks a raw grid and tags each
row as one of:

    EMPTY        no non-empty cell
    SITE_BANNER  single-cell row naming the site of the following workers
    HEADER       column titles; (re)builds the column map
    DATA         a record to import
    SKIPPED      before the first header, or a required column is empty

The functions here are pure: no database access, no logging of row content.
Cell coercion helpers (amounts, dates, integers) never raise.
"""

import math
import re
import unicodedata
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional

# Days between the spreadsheet epoch and 1970-01-01
EXCEL_EPOCH_OFFSET_DAYS = 25569
UNIX_EPOCH = datetime(1970, 1, 1)

LEADING_NUMBER_RE = re.compile(r'[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?')

DEFAULT_SITE = 'SIEGE'
DEFAULT_SITE_BANNER_MIN_LENGTH = 3

# Single-cell rows made of one of these are column titles, never sites
BANNER_EXCLUDED_LABELS = {'PRENOMS', 'NOMS', 'SALAIRES'}
SITE_BANNER_PREFIX = re.compile(r'LES\s+TECHNICIENS\s+DE\s+SURFACE\s+DE', re.IGNORECASE)


class RowKind(str, Enum):
    """Classification of a worksheet row."""
    EMPTY = 'empty'
    SITE_BANNER = 'site_banner'
    HEADER = 'header'
    DATA = 'data'
    SKIPPED = 'skipped'


# ============================================================================
# Cell helpers
# ============================================================================

def normalize_label(value: Any) -> str:
    """Upper-case, accent-free, single-spaced version of a cell."""
    text = unicodedata.normalize('NFKD', str(value))
    text = ''.join(ch for ch in text if not unicodedata.combining(ch))
    return ' '.join(text.upper().split())


def cell_text(value: Any) -> str:
    """
    Render a cell as trimmed text.

    Whole floats lose their trailing '.0' so identifiers and phone numbers
    stored as numbers (always floats in .xls files) read back unchanged.
    """
    if value is None:
        return ''
    if isinstance(value, float) and math.isfinite(value) and value.is_integer():
        return str(int(value))
    if isinstance(value, (datetime, date)):
        return value.strftime('%d/%m/%Y')
    return str(value).strip()


def non_empty_cells(row: List[Any]) -> List[Any]:
    return [value for value in row if cell_text(value) != '']


def _is_number_text(text: str) -> bool:
    try:
        float(text.replace(',', '.'))
        return True
    except ValueError:
        return False


def _leading_number(value: Any) -> Optional[float]:
    """
    Read the longest numeric prefix of a text cell, like JavaScript's parseFloat.

    Whitespace is removed (thousands separators) and the first comma becomes
    the decimal separator, so '75 000 FCFA' -> 75000 and '3 500,50' -> 3500.5.
    Returns None when the text does not start with a number.
    """
    text = re.sub(r'\s+', '', str(value)).replace(',', '.', 1)
    match = LEADING_NUMBER_RE.match(text)
    if not match:
        return None
    number = float(match.group(0))
    return number if math.isfinite(number) else None


def parse_amount(value: Any) -> float:
    """Parse a salary-like amount; anything without a leading number gives 0."""
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        amount = float(value)
        return amount if math.isfinite(amount) else 0.0
    amount = _leading_number(value)
    return 0.0 if amount is None else amount


def parse_int(value: Any, default: int) -> int:
    """Parse an integer cell ('10 pièces' -> 10), truncating decimals; default on failure."""
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        return int(value) if math.isfinite(value) else default
    number = _leading_number(value)
    return default if number is None else int(number)


def parse_excel_date(value: Any) -> Optional[date]:
    """
    Parse a date cell.

    Accepts native date cells, spreadsheet serials (44197 -> 2021-01-01),
    DD/MM/YYYY text and ISO text. Returns None when nothing matches.
    """
    if value is None or value == '' or isinstance(value, bool):
        return None
    if isinstance(value, (datetime, date)):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            return None
        millis = round((value - EXCEL_EPOCH_OFFSET_DAYS) * 86400 * 1000)
        try:
            return (UNIX_EPOCH + timedelta(milliseconds=millis)).date()
        except OverflowError:
            return None

    text = str(value).strip()
    parts = text.split('/')
    if len(parts) == 3:
        try:
            day, month, year = (int(part) for part in parts)
            return date(year, month, day)
        except ValueError:
            return None
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        return None


# ============================================================================
# Layouts
# ============================================================================

class SheetLayout:
    """
    Describes how one entity is laid out in an import sheet.

    Args:
        name: Layout name used in logs
        columns: Ordered (field, keywords) table. A header cell is assigned
                 to the first field having a keyword contained in it.
        required: Fields that must be non-empty for a row to be data
        detect_banners: Whether single-cell rows can switch the current site
    """

    def __init__(self, name: str, columns, required, detect_banners: bool = False):
        self.name = name
        self.columns = columns
        self.required = tuple(required)
        self.detect_banners = detect_banners

    def is_header(self, labels: List[str]) -> bool:
        raise NotImplementedError

    def map_columns(self, labels: List[str]) -> Dict[str, Optional[int]]:
        """Build the field -> column index map from a header row."""
        column_map: Dict[str, Optional[int]] = {field: None for field, _ in self.columns}
        for idx, label in enumerate(labels):
            if not label:
                continue
            for field, keywords in self.columns:
                if any(keyword in label for keyword in keywords):
                    if column_map[field] is None:
                        column_map[field] = idx
                    break
        return column_map


class WorkerLayout(SheetLayout):

    FIRST_NAME_MARKERS = {'PRENOMS', 'PRENOM'}
    LAST_NAME_MARKERS = {'NOMS', 'NOM'}

    def is_header(self, labels: List[str]) -> bool:
        cells = set(labels)
        return bool(cells & self.FIRST_NAME_MARKERS) and bool(cells & self.LAST_NAME_MARKERS)


class ProductLayout(SheetLayout):

    def is_header(self, labels: List[str]) -> bool:
        if 'NOM DU PRODUIT' in labels:
            return True
        return 'CODE' in labels and any('CAT' in label for label in labels)


WORKER_LAYOUT = WorkerLayout(
    name='workers',
    columns=(
        ('first_name', ('PRENOM',)),
        ('last_name', ('NOM',)),
        ('national_id', ('N.I', 'CIN', 'CNI')),
        ('contact', ('TELEPHONE', 'CONTACT')),
        ('address', ('ADRESSE',)),
        ('base_salary', ('SALAIRE',)),
        ('birth_date', ('NAISSANCE',)),
    ),
    required=('first_name', 'last_name'),
    detect_banners=True,
)

PRODUCT_LAYOUT = ProductLayout(
    name='products',
    columns=(
        ('code', ('CODE',)),
        ('name', ('NOM',)),
        ('category', ('CAT',)),
        ('unit', ('UNIT',)),
        ('alert_threshold', ('SEUIL',)),
        ('description', ('DESC',)),
    ),
    required=('name',),
)


# ============================================================================
# Scanning
# ============================================================================

class ScanState:
    """Mutable state carried from one row to the next."""

    def __init__(self, default_site: str = DEFAULT_SITE):
        self.current_site = default_site
        self.columns: Optional[Dict[str, Optional[int]]] = None

    @property
    def header_seen(self) -> bool:
        return self.columns is not None


def site_from_banner(row: List[Any], min_length: int = DEFAULT_SITE_BANNER_MIN_LENGTH) -> Optional[str]:
    """
    Return the site name if the row is a site banner, else None.

    A banner has exactly one non-empty cell, a non-numeric string longer
    than min_length once the 'LES TECHNICIENS DE SURFACE DE' lead-in is
    removed, and is not a column title.
    """
    cells = non_empty_cells(row)
    if len(cells) != 1 or not isinstance(cells[0], str):
        return None

    text = cells[0].strip()
    if _is_number_text(text) or normalize_label(text) in BANNER_EXCLUDED_LABELS:
        return None

    site = ' '.join(SITE_BANNER_PREFIX.sub('', text).split())
    if len(site) <= min_length:
        return None
    return site


def extract_values(row: List[Any], columns: Dict[str, Optional[int]]) -> Dict[str, Any]:
    """Pick the raw cell of each mapped field; unmapped or short rows give ''."""
    values = {}
    for field, idx in columns.items():
        if idx is None or idx >= len(row):
            values[field] = ''
        else:
            values[field] = row[idx]
    return values


def classify_row(
    row: List[Any],
    state: ScanState,
    layout: SheetLayout,
    min_banner_length: int = DEFAULT_SITE_BANNER_MIN_LENGTH
) -> Dict[str, Any]:
    """
    Classify one row and advance the scan state.

    Single-cell rows are always checked for a site banner first, even in the
    middle of a block of data rows.

    Returns:
        Dictionary with 'kind' (RowKind), 'site' (site in effect after the
        row) and, for DATA rows, 'values' (raw cells by field).
    """
    row = list(row or [])
    result: Dict[str, Any] = {'kind': RowKind.EMPTY, 'site': state.current_site, 'values': None}

    if not non_empty_cells(row):
        return result

    if layout.detect_banners:
        site = site_from_banner(row, min_banner_length)
        if site:
            state.current_site = site
            result.update(kind=RowKind.SITE_BANNER, site=site)
            return result

    labels = [normalize_label(cell_text(value)) for value in row]
    if layout.is_header(labels):
        state.columns = layout.map_columns(labels)
        result['kind'] = RowKind.HEADER
        return result

    if not state.header_seen:
        result['kind'] = RowKind.SKIPPED
        return result

    values = extract_values(row, state.columns)
    if any(cell_text(values[field]) == '' for field in layout.required):
        result['kind'] = RowKind.SKIPPED
        return result

    result.update(kind=RowKind.DATA, values=values)
    return result


def scan_rows(
    grid: List[List[Any]],
    layout: SheetLayout,
    default_site: str = DEFAULT_SITE,
    min_banner_length: int = DEFAULT_SITE_BANNER_MIN_LENGTH
) -> Iterator[Dict[str, Any]]:
    """
    Walk a grid top to bottom, yielding one classified row per grid row.

    Each yielded dictionary carries 'line', the 1-based sheet row number,
    in addition to the keys returned by classify_row().
    """
    state = ScanState(default_site)
    for idx, row in enumerate(grid):
        classified = classify_row(row, state, layout, min_banner_length)
        classified['line'] = idx + 1
        yield classified
