"""
Database table creation utility.
Checks if tables exist and creates them if they don't.

Usage:
    python tables.py

This script:
1. Imports all models to register them with SQLAlchemy Base
2. Checks which tables exist in the database
3. Creates only the missing tables
"""
import logging
from typing import List

from sqlalchemy import inspect
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError

from database import Base, engine

logger = logging.getLogger(__name__)


def import_all_models() -> None:
    """Import all models to register them with SQLAlchemy Base.metadata"""
    from Login_module.User.user_model import User  # noqa: F401
    from Address_module.Address_model import Address  # noqa: F401
    from Product_module.Product_model import Category, Product, ProductVariant  # noqa: F401
    from Offer_module.Offer_model import Offer  # noqa: F401
    from Cart_module.Coupon_model import Coupon  # noqa: F401
    from Cart_module.Cart_model import CartItem  # noqa: F401
    from Orders_module.Order_model import Order, OrderItem, OrderStatusHistory  # noqa: F401
    from Wallet_module.Wallet_model import WalletAccount, WalletTransaction  # noqa: F401


def create_missing_tables(bind: Engine = engine) -> List[str]:
    """
    Create every registered table that does not exist yet.
    Returns the names of the tables that were created.
    """
    import_all_models()
    existing = set(inspect(bind).get_table_names())
    missing = [name for name in Base.metadata.tables if name not in existing]

    if not missing:
        logger.info("All %s tables already exist", len(Base.metadata.tables))
        return []

    logger.info("Creating missing tables: %s", ", ".join(sorted(missing)))
    Base.metadata.create_all(bind=bind, tables=[Base.metadata.tables[name] for name in missing])
    return missing


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    try:
        created = create_missing_tables()
        logger.info("Created %s table(s)", len(created))
    except OperationalError as e:
        logger.error(f"Failed to connect to database: {e}")
        raise SystemExit(1)
