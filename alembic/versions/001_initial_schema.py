"""Initial schema for workers, products and categories

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-12

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Create categories table
    op.create_table(
        'categories',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False, comment='Category name'),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name'),
        comment='Product categories'
    )

    # Create products table
    op.create_table(
        'products',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False, comment='Product name'),
        sa.Column('code', sa.String(length=100), nullable=True, comment='Product code, unique when present'),
        sa.Column('category_id', sa.Integer(), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('unit', sa.String(length=50), server_default='Unité', nullable=False,
                  comment='Unit of measure'),
        sa.Column('quantity', sa.Integer(), server_default='0', nullable=False,
                  comment='Current quantity in stock'),
        sa.Column('alert_threshold', sa.Integer(), server_default='5', nullable=False,
                  comment='Quantity at or below which the product is in alert'),
        sa.Column('status', sa.String(length=20), server_default='OK', nullable=False,
                  comment='Derived stock status'),
        sa.Column('created_at', sa.TIMESTAMP(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.CheckConstraint("status IN ('OK', 'ALERTE', 'RUPTURE')", name='products_status_check'),
        sa.ForeignKeyConstraint(['category_id'], ['categories.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('code'),
        comment='Stock items'
    )

    op.create_index('idx_products_name', 'products', ['name'])
    op.create_index('idx_products_category', 'products', ['category_id'])

    # Create workers table
    op.create_table(
        'workers',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('first_name', sa.String(length=255), nullable=False, comment='Prénom'),
        sa.Column('last_name', sa.String(length=255), nullable=False, comment='Nom'),
        sa.Column('national_id', sa.String(length=50), nullable=True,
                  comment='National identity number (CIN / N.I)'),
        sa.Column('contact', sa.String(length=50), nullable=True, comment='Phone number, whitespace removed'),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('base_salary', sa.Numeric(precision=12, scale=2), server_default='0', nullable=False,
                  comment='Monthly base salary'),
        sa.Column('site', sa.String(length=255), nullable=True, comment='Site the worker is assigned to'),
        sa.Column('position', sa.String(length=255), nullable=True, comment='Job title'),
        sa.Column('hire_date', sa.Date(), nullable=True),
        sa.Column('birth_date', sa.Date(), nullable=True),
        sa.Column('status', sa.String(length=20), server_default='ACTIF', nullable=False,
                  comment='ACTIF, INACTIF or SUSPENDU'),
        sa.Column('created_at', sa.TIMESTAMP(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.CheckConstraint("status IN ('ACTIF', 'INACTIF', 'SUSPENDU')", name='workers_status_check'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('national_id'),
        comment='Worker / HR records'
    )

    op.create_index('idx_workers_name', 'workers', ['last_name', 'first_name'])
    op.create_index('idx_workers_site', 'workers', ['site'])


def downgrade() -> None:
    op.drop_index('idx_workers_site', table_name='workers')
    op.drop_index('idx_workers_name', table_name='workers')
    op.drop_table('workers')

    op.drop_index('idx_products_category', table_name='products')
    op.drop_index('idx_products_name', table_name='products')
    op.drop_table('products')

    op.drop_table('categories')
