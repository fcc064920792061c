"""
Tests for row classification and cell coercion.
"""

import math
from datetime import date, datetime

import pytest

from services.sheet_parser import (
    PRODUCT_LAYOUT, WORKER_LAYOUT, RowKind, ScanState,
    cell_text, classify_row, normalize_label, parse_amount, parse_excel_date,
    parse_int, scan_rows, site_from_banner
)


class TestCellHelpers:
    """Test cell coercion helpers."""

    def test_normalize_label(self):
        assert normalize_label('  Prénoms ') == 'PRENOMS'
        assert normalize_label('Date  de\tnaissance') == 'DATE DE NAISSANCE'
        assert normalize_label('Catégorie') == 'CATEGORIE'

    def test_cell_text(self):
        assert cell_text(None) == ''
        assert cell_text('  Diop ') == 'Diop'
        assert cell_text(771234567.0) == '771234567'
        assert cell_text(12.5) == '12.5'
        assert cell_text(42) == '42'

    def test_cell_text_dates(self):
        assert cell_text(datetime(1990, 3, 12, 8, 30)) == '12/03/1990'
        assert cell_text(date(1990, 3, 12)) == '12/03/1990'

    def test_parse_amount(self):
        assert parse_amount('3 500,50') == pytest.approx(3500.5)
        assert parse_amount('75 000') == 75000
        assert parse_amount(65000) == 65000
        assert parse_amount('1200.25') == pytest.approx(1200.25)

    def test_parse_amount_reads_leading_number(self):
        assert parse_amount('75 000 F') == 75000
        assert parse_amount('75 000 FCFA') == 75000
        assert parse_amount('-1500') == -1500
        assert parse_amount('1.5e3 francs') == 1500
        # Only the first comma is a decimal separator
        assert parse_amount('3.500,50') == pytest.approx(3.5)

    def test_parse_amount_malformed_gives_zero(self):
        assert parse_amount('néant') == 0
        assert parse_amount('F 75000') == 0
        assert parse_amount('') == 0
        assert parse_amount(None) == 0
        assert parse_amount(math.inf) == 0
        assert parse_amount('nan') == 0
        assert parse_amount('Infinity') == 0

    def test_parse_int(self):
        assert parse_int('10', 5) == 10
        assert parse_int('10 pièces', 5) == 10
        assert parse_int('7,9', 5) == 7
        assert parse_int(7.9, 5) == 7
        assert parse_int('', 5) == 5
        assert parse_int('abc', 5) == 5
        assert parse_int(0, 5) == 0

    def test_parse_excel_date_serial(self):
        assert parse_excel_date(44197) == date(2021, 1, 1)
        assert parse_excel_date(25569) == date(1970, 1, 1)
        assert parse_excel_date(44197.75) == date(2021, 1, 1)

    def test_parse_excel_date_text(self):
        assert parse_excel_date('12/03/1990') == date(1990, 3, 12)
        assert parse_excel_date('1990-03-12') == date(1990, 3, 12)
        assert parse_excel_date(datetime(1985, 6, 1, 8, 30)) == date(1985, 6, 1)
        assert parse_excel_date(date(1985, 6, 1)) == date(1985, 6, 1)

    def test_parse_excel_date_invalid(self):
        assert parse_excel_date('') is None
        assert parse_excel_date(None) is None
        assert parse_excel_date('hier') is None
        assert parse_excel_date('31/02/1990') is None


class TestSiteBanner:
    """Test site banner detection."""

    def test_plain_banner(self):
        assert site_from_banner(['HOPITAL PRINCIPAL', '', '']) == 'HOPITAL PRINCIPAL'

    def test_lead_in_is_stripped(self):
        row = ['Les techniciens de surface de  PORT AUTONOME', '']
        assert site_from_banner(row) == 'PORT AUTONOME'

    def test_short_text_is_not_a_banner(self):
        assert site_from_banner(['BCE']) is None
        assert site_from_banner(['LES TECHNICIENS DE SURFACE DE BCE']) is None

    def test_numbers_and_titles_are_not_banners(self):
        assert site_from_banner(['12345']) is None
        assert site_from_banner([12345]) is None
        assert site_from_banner(['PRENOMS']) is None
        assert site_from_banner(['Salaires']) is None

    def test_multi_cell_row_is_not_a_banner(self):
        assert site_from_banner(['HOPITAL', 'PRINCIPAL']) is None

    def test_minimum_length_is_configurable(self):
        assert site_from_banner(['DAKAR'], min_length=5) is None
        assert site_from_banner(['DAKAR'], min_length=4) == 'DAKAR'


class TestHeaderDetection:
    """Test header recognition and column mapping."""

    def test_worker_header(self):
        assert WORKER_LAYOUT.is_header(['PRENOMS', 'NOMS', 'SALAIRES'])
        assert WORKER_LAYOUT.is_header(['N', 'PRENOM', 'NOM'])
        assert not WORKER_LAYOUT.is_header(['PRENOMS', 'SALAIRES'])
        assert not WORKER_LAYOUT.is_header(['NOM ET PRENOMS'])

    def test_product_header(self):
        assert PRODUCT_LAYOUT.is_header(['NOM DU PRODUIT', 'QUANTITE'])
        assert PRODUCT_LAYOUT.is_header(['CODE', 'DESIGNATION', 'CATEGORIE'])
        assert not PRODUCT_LAYOUT.is_header(['CODE', 'DESIGNATION'])

    def test_worker_column_map(self):
        labels = ['PRENOMS', 'NOMS', 'N.I', 'CONTACT', 'ADRESSE', 'SALAIRES', 'DATE DE NAISSANCE']
        columns = WORKER_LAYOUT.map_columns(labels)
        assert columns == {
            'first_name': 0,
            'last_name': 1,
            'national_id': 2,
            'contact': 3,
            'address': 4,
            'base_salary': 5,
            'birth_date': 6,
        }

    def test_first_matching_column_wins(self):
        columns = WORKER_LAYOUT.map_columns(['NOMS', 'PRENOMS', 'NOM DE JEUNE FILLE'])
        assert columns['last_name'] == 0
        assert columns['first_name'] == 1
        assert columns['address'] is None

    def test_product_column_map(self):
        labels = ['CODE', 'NOM DU PRODUIT', 'CATEGORIE', 'UNITE', "SEUIL D'ALERTE", 'DESCRIPTION']
        columns = PRODUCT_LAYOUT.map_columns(labels)
        assert columns == {
            'code': 0,
            'name': 1,
            'category': 2,
            'unit': 3,
            'alert_threshold': 4,
            'description': 5,
        }


class TestClassifyRow:
    """Test row classification against scan state."""

    def test_rows_before_header_are_skipped(self):
        state = ScanState()
        result = classify_row(['Awa', 'Diop', '77 123 45 67'], state, WORKER_LAYOUT)
        assert result['kind'] == RowKind.SKIPPED
        assert not state.header_seen

    def test_empty_row(self):
        state = ScanState()
        assert classify_row(['', None, '  '], state, WORKER_LAYOUT)['kind'] == RowKind.EMPTY
        assert classify_row([], state, WORKER_LAYOUT)['kind'] == RowKind.EMPTY

    def test_banner_after_header_switches_site(self):
        state = ScanState('SIEGE')
        classify_row(['PRENOMS', 'NOMS'], state, WORKER_LAYOUT)

        result = classify_row(['CLINIQUE DU CAP', ''], state, WORKER_LAYOUT)
        assert result['kind'] == RowKind.SITE_BANNER
        assert state.current_site == 'CLINIQUE DU CAP'

        result = classify_row(['Awa', 'Diop'], state, WORKER_LAYOUT)
        assert result['kind'] == RowKind.DATA
        assert result['site'] == 'CLINIQUE DU CAP'
        assert result['values']['first_name'] == 'Awa'

    def test_missing_required_field_is_skipped(self):
        state = ScanState()
        classify_row(['PRENOMS', 'NOMS', 'SALAIRES'], state, WORKER_LAYOUT)
        result = classify_row(['Awa', '', 50000], state, WORKER_LAYOUT)
        assert result['kind'] == RowKind.SKIPPED

    def test_short_rows_give_empty_values(self):
        state = ScanState()
        classify_row(['PRENOMS', 'NOMS', 'SALAIRES'], state, WORKER_LAYOUT)
        result = classify_row(['Awa', 'Diop'], state, WORKER_LAYOUT)
        assert result['kind'] == RowKind.DATA
        assert result['values']['base_salary'] == ''

    def test_products_ignore_banners(self):
        state = ScanState()
        classify_row(['CODE', 'NOM DU PRODUIT', 'CATEGORIE'], state, PRODUCT_LAYOUT)
        result = classify_row(['MAGASIN CENTRAL'], state, PRODUCT_LAYOUT)
        assert result['kind'] == RowKind.SKIPPED
        assert state.current_site == 'SIEGE'


class TestScanRows:
    """Test a full scan over a worksheet grid."""

    def test_worker_grid(self, worker_grid):
        rows = list(scan_rows(worker_grid, WORKER_LAYOUT))
        kinds = [row['kind'] for row in rows]

        assert kinds == [
            RowKind.HEADER,
            RowKind.DATA,
            RowKind.DATA,
            RowKind.SITE_BANNER,
            RowKind.HEADER,
            RowKind.DATA,
            RowKind.EMPTY,
            RowKind.SITE_BANNER,
            RowKind.DATA,
        ]
        assert [row['line'] for row in rows] == list(range(1, 10))

        data = [row for row in rows if row['kind'] == RowKind.DATA]
        assert [row['site'] for row in data] == ['SIEGE', 'SIEGE', 'PORT AUTONOME', 'HOPITAL PRINCIPAL']

    def test_default_site_is_configurable(self, worker_grid):
        rows = list(scan_rows(worker_grid, WORKER_LAYOUT, default_site='DIRECTION'))
        assert rows[1]['site'] == 'DIRECTION'

    def test_single_cell_row_inside_block_is_a_banner(self):
        grid = [
            ['PRENOMS', 'NOMS', 'CNI'],
            ['Awa', 'Diop', 'A1'],
            ['Mamadou', '', ''],
            ['Fatou', 'Sarr', 'A2'],
        ]
        rows = list(scan_rows(grid, WORKER_LAYOUT))

        assert [row['kind'] for row in rows] == [
            RowKind.HEADER, RowKind.DATA, RowKind.SITE_BANNER, RowKind.DATA
        ]
        assert rows[3]['site'] == 'Mamadou'

    def test_no_header_yields_no_data(self):
        grid = [['Awa', 'Diop'], ['Moussa', 'Ndiaye']]
        rows = list(scan_rows(grid, WORKER_LAYOUT))
        assert all(row['kind'] != RowKind.DATA for row in rows)

    def test_product_grid(self, product_grid):
        rows = list(scan_rows(product_grid, PRODUCT_LAYOUT))
        kinds = [row['kind'] for row in rows]
        assert kinds == [
            RowKind.SKIPPED,
            RowKind.HEADER,
            RowKind.DATA,
            RowKind.DATA,
            RowKind.DATA,
            RowKind.SKIPPED,
        ]
