"""
Pytest configuration and fixtures for import tests.
"""

from datetime import datetime
from io import BytesIO

import openpyxl
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from backend.models.schema import Base


@pytest.fixture(scope='function')
def engine():
    """In-memory SQLite engine shared by every connection of a test."""
    eng = create_engine(
        'sqlite://',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool
    )
    Base.metadata.create_all(eng)
    yield eng
    Base.metadata.drop_all(eng)
    eng.dispose()


@pytest.fixture(scope='function')
def session(engine):
    """Create a new database session for a test."""
    Session = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    sess = Session()

    yield sess

    sess.close()


@pytest.fixture
def make_xlsx():
    """Build .xlsx bytes from a list of rows."""
    def _make(rows, title='Feuil1'):
        wb = openpyxl.Workbook()
        ws = wb.active
        ws.title = title
        for row in rows:
            ws.append(list(row))
        buffer = BytesIO()
        wb.save(buffer)
        return buffer.getvalue()
    return _make


@pytest.fixture
def worker_grid():
    """Personnel sheet: a default-site block, two site banners, a repeated header."""
    return [
        ['PRENOMS', 'NOMS', 'N° CNI', 'TELEPHONE', 'SALAIRES', 'DATE DE NAISSANCE'],
        ['Awa', 'Diop', '1751199000123', '77 123 45 67', '75 000', 44197],
        ['Moussa', 'Ndiaye', '', '78 555 00 11', '80000,50', '12/03/1990'],
        ['LES TECHNICIENS DE SURFACE DE PORT AUTONOME', '', '', '', '', ''],
        ['PRENOMS', 'NOMS', 'N° CNI', 'TELEPHONE', 'SALAIRES', 'DATE DE NAISSANCE'],
        ['Fatou', 'Sarr', '2801199100456', '76 000 11 22', 'néant', ''],
        ['', '', '', '', '', ''],
        ['HOPITAL PRINCIPAL', '', '', '', '', ''],
        ['Ibrahima', 'Fall', '1850199200789', '', 65000, datetime(1985, 6, 1)],
    ]


@pytest.fixture
def product_grid():
    """Stock sheet keyed by code with a category column."""
    return [
        ['INVENTAIRE MAGASIN', '', '', '', ''],
        ['CODE', 'NOM DU PRODUIT', 'CATEGORIE', 'UNITE', "SEUIL D'ALERTE"],
        ['P-001', 'Balai', 'Entretien', 'Pièce', 10],
        ['P-002', 'Javel 5L', 'Produits chimiques', 'Bidon', ''],
        ['', 'Serpillière', 'Entretien', '', 0],
        ['P-004', '', 'Entretien', '', 3],
    ]
