"""
Catalog snapshot reader - product, variant and active-offer state at pricing time.
"""
from datetime import datetime
from typing import Optional, List, Dict, Any
import logging

from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload

from Utils.datetime_utils import now_ist
from Utils.errors import ProductNotFound, ProductUnavailable, VariantNotFound
from Utils.money import to_decimal, as_number
from Offer_module.offer_service import resolve_offer, offer_discount, offer_summary
from .Product_model import Product, ProductVariant, Category

logger = logging.getLogger(__name__)

UNAVAILABLE_PRODUCT_NAME = "Product Unavailable"


def get_product(db: Session, product_id: int) -> Product:
    """
    Load a product for pricing. Missing products and soft-deleted ones
    are reported differently so the caller can answer 404 vs 400.
    """
    product = (
        db.query(Product)
        .options(joinedload(Product.variants), joinedload(Product.category))
        .filter(Product.id == product_id)
        .first()
    )
    if not product:
        raise ProductNotFound(f"Product with ID {product_id} not found")
    if product.is_deleted:
        raise ProductUnavailable(f"{product.name} is no longer available")
    return product


def find_variant(product: Product, size: str) -> ProductVariant:
    for variant in product.variants:
        if variant.size == size:
            return variant
    raise VariantNotFound(f"Selected size {size} not available for {product.name}")


def list_catalog(db: Session, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
    """
    Storefront listing: live products of active (or no) categories with the
    effective price of every variant after the current offer.
    """
    now = now or now_ist()
    products = (
        db.query(Product)
        .outerjoin(Category, Product.category_id == Category.id)
        .options(joinedload(Product.variants), joinedload(Product.category))
        .filter(
            Product.is_deleted == False,
            or_(Product.category_id.is_(None), Category.is_active == True)
        )
        .order_by(Product.id)
        .all()
    )

    return [catalog_entry(db, product, now) for product in products]


def catalog_entry(db: Session, product: Product, now: Optional[datetime] = None) -> Dict[str, Any]:
    """Storefront view of one product: its current offer and every variant's price after it."""
    offer = resolve_offer(db, product, now or now_ist())
    variants = []
    for variant in product.variants:
        price = to_decimal(variant.price)
        discount = offer_discount(offer, price)
        variants.append({
            "variantId": variant.id,
            "size": variant.size,
            "price": as_number(price),
            "finalPrice": as_number(price - discount),
            "stock": variant.stock,
        })
    return {
        "productId": product.id,
        "name": product.name,
        "category": product.category.name if product.category else None,
        "images": product.images or [],
        "offer": offer_summary(offer),
        "variants": variants,
    }


def describe_product(product: Optional[Product]) -> Dict[str, Any]:
    """
    Read-path view of a product referenced by an order. A product that has
    since been deleted gets placeholder data instead of failing the read.
    """
    if product is None or product.is_deleted:
        return {
            "productId": product.id if product else None,
            "name": UNAVAILABLE_PRODUCT_NAME,
            "images": [],
        }
    return {
        "productId": product.id,
        "name": product.name,
        "images": product.images or [],
    }


def soft_delete_product(db: Session, product_id: int) -> Product:
    """
    Hide a product from the storefront and from pricing. Orders that already
    reference it keep their rows and read it back as unavailable.
    """
    product = db.query(Product).filter(Product.id == product_id).first()
    if not product:
        raise ProductNotFound(f"Product with ID {product_id} not found")
    if not product.is_deleted:
        product.is_deleted = True
        product.deleted_at = now_ist()
        db.flush()
        logger.info(f"Product {product_id} ({product.name}) soft-deleted")
    return product
