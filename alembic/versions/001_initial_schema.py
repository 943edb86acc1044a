"""Initial database schema

Revision ID: 001_initial
Revises: 
Create Date: 2024-01-01 00:00:00.000000

Tags: schema, initial, catalog, offers, coupons, orders, wallet
"""
from typing import Sequence, Union
import logging

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = ('schema',)
depends_on: Union[str, Sequence[str], None] = None

logger = logging.getLogger(__name__)


def upgrade() -> None:
    """
    Create every table registered in tables.import_all_models() that does not
    exist yet: users, addresses, categories, products, product_variants,
    offers, coupons, cart_items, orders, order_items, order_status_history,
    wallet_accounts and wallet_transactions.
    """
    from database import Base
    from tables import import_all_models

    import_all_models()

    connection = op.get_bind()
    existing_tables_before = set(sa.inspect(connection).get_table_names())

    Base.metadata.create_all(bind=connection, checkfirst=True)

    existing_tables_after = set(sa.inspect(connection).get_table_names())
    created_tables = existing_tables_after - existing_tables_before
    if created_tables:
        logger.info(f"Created {len(created_tables)} base tables: {', '.join(sorted(created_tables))}")
    else:
        logger.info(f"All base tables already exist ({len(existing_tables_before)} tables found).")


def downgrade() -> None:
    """Drop every table created by upgrade(), dependents first"""
    from database import Base
    from tables import import_all_models

    import_all_models()
    Base.metadata.drop_all(bind=op.get_bind(), checkfirst=True)
