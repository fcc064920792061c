"""
SQLAlchemy models for the stock and HR records.

This module defines the database schema using SQLAlchemy ORM,
matching the schema defined in Alembic migrations.
"""

from enum import Enum
from sqlalchemy import (
    Column, Integer, String, Text, Numeric, Date, TIMESTAMP, JSON,
    ForeignKey, CheckConstraint, Index, text
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite test databases)
JSONType = JSON().with_variant(JSONB(), 'postgresql')


class WorkerStatus(str, Enum):
    """Employment status of a worker."""
    ACTIF = 'ACTIF'
    INACTIF = 'INACTIF'
    SUSPENDU = 'SUSPENDU'


class ProductStatus(str, Enum):
    """Stock level status of a product, derived from quantity and threshold."""
    OK = 'OK'
    ALERTE = 'ALERTE'
    RUPTURE = 'RUPTURE'


class Category(Base):
    """Product category."""

    __tablename__ = 'categories'
    __table_args__ = (
        {'comment': 'Product categories'},
    )

    id = Column(Integer, primary_key=True, autoincrement=True, nullable=False)
    name = Column(
        String(255),
        nullable=False,
        unique=True,
        comment='Category name'
    )
    description = Column(Text, nullable=True)
    created_at = Column(
        TIMESTAMP,
        server_default=text('CURRENT_TIMESTAMP'),
        nullable=False
    )

    products = relationship('Product', back_populates='category')

    def __repr__(self):
        return f"<Category(id={self.id}, name='{self.name}')>"


class Product(Base):
    """Stock item tracked in the inventory."""

    __tablename__ = 'products'
    __table_args__ = (
        CheckConstraint(
            "status IN ('OK', 'ALERTE', 'RUPTURE')",
            name='products_status_check'
        ),
        Index('idx_products_name', 'name'),
        Index('idx_products_category', 'category_id'),
        {'comment': 'Stock items'}
    )

    id = Column(Integer, primary_key=True, autoincrement=True, nullable=False)
    name = Column(
        String(255),
        nullable=False,
        comment='Product name'
    )
    code = Column(
        String(100),
        nullable=True,
        unique=True,
        comment='Product code, unique when present'
    )
    category_id = Column(
        Integer,
        ForeignKey('categories.id', ondelete='SET NULL'),
        nullable=True
    )
    description = Column(Text, nullable=True)
    unit = Column(
        String(50),
        nullable=False,
        server_default='Unité',
        comment='Unit of measure'
    )
    quantity = Column(
        Integer,
        nullable=False,
        server_default='0',
        comment='Current quantity in stock'
    )
    alert_threshold = Column(
        Integer,
        nullable=False,
        server_default='5',
        comment='Quantity at or below which the product is in alert'
    )
    status = Column(
        String(20),
        nullable=False,
        server_default='OK',
        comment='Derived stock status'
    )
    created_at = Column(
        TIMESTAMP,
        server_default=text('CURRENT_TIMESTAMP'),
        nullable=False
    )
    updated_at = Column(
        TIMESTAMP,
        server_default=text('CURRENT_TIMESTAMP'),
        nullable=False
    )

    category = relationship('Category', back_populates='products')

    def __repr__(self):
        return f"<Product(id={self.id}, name='{self.name}', code='{self.code}')>"

    @staticmethod
    def derive_status(quantity, alert_threshold) -> str:
        """Stock status for a quantity against its alert threshold."""
        quantity = quantity or 0
        if quantity <= 0:
            return ProductStatus.RUPTURE.value
        if alert_threshold is not None and quantity <= alert_threshold:
            return ProductStatus.ALERTE.value
        return ProductStatus.OK.value

    def refresh_status(self) -> str:
        self.status = self.derive_status(self.quantity, self.alert_threshold)
        return self.status


class Worker(Base):
    """Worker (employee) record."""

    __tablename__ = 'workers'
    __table_args__ = (
        CheckConstraint(
            "status IN ('ACTIF', 'INACTIF', 'SUSPENDU')",
            name='workers_status_check'
        ),
        Index('idx_workers_name', 'last_name', 'first_name'),
        Index('idx_workers_site', 'site'),
        {'comment': 'Worker / HR records'}
    )

    id = Column(Integer, primary_key=True, autoincrement=True, nullable=False)
    first_name = Column(String(255), nullable=False, comment='Prénom')
    last_name = Column(String(255), nullable=False, comment='Nom')
    national_id = Column(
        String(50),
        nullable=True,
        unique=True,
        comment='National identity number (CIN / N.I)'
    )
    contact = Column(String(50), nullable=True, comment='Phone number, whitespace removed')
    email = Column(String(255), nullable=True)
    address = Column(Text, nullable=True)
    base_salary = Column(
        Numeric(precision=12, scale=2),
        nullable=False,
        server_default='0',
        comment='Monthly base salary'
    )
    site = Column(
        String(255),
        nullable=True,
        comment='Site the worker is assigned to'
    )
    position = Column(String(255), nullable=True, comment='Job title')
    hire_date = Column(Date, nullable=True)
    birth_date = Column(Date, nullable=True)
    status = Column(
        String(20),
        nullable=False,
        server_default='ACTIF',
        comment='ACTIF, INACTIF or SUSPENDU'
    )
    created_at = Column(
        TIMESTAMP,
        server_default=text('CURRENT_TIMESTAMP'),
        nullable=False
    )
    updated_at = Column(
        TIMESTAMP,
        server_default=text('CURRENT_TIMESTAMP'),
        nullable=False
    )

    def __repr__(self):
        return f"<Worker(id={self.id}, name='{self.first_name} {self.last_name}', site='{self.site}')>"
