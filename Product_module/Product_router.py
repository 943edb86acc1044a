import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from deps import get_db
from Utils.errors import CommerceError, http_exception
from .catalog_service import list_catalog, catalog_entry, get_product, soft_delete_product
from .Product_schema import CatalogResponse, ProductDetailResponse

router = APIRouter(prefix="/products", tags=["Products"])

logger = logging.getLogger(__name__)


@router.get("/viewProduct", response_model=CatalogResponse)
def get_products(db: Session = Depends(get_db)):
    return {
        "status": "success",
        "message": "Product list fetched successfully.",
        "data": list_catalog(db),
    }


@router.get("/detail/{product_id}", response_model=ProductDetailResponse)
def get_product_detail(product_id: int, db: Session = Depends(get_db)):
    try:
        product = get_product(db, product_id)
    except CommerceError as e:
        raise http_exception(e)

    return {
        "status": "success",
        "message": "Product fetched successfully.",
        "data": catalog_entry(db, product),
    }


@router.delete("/{product_id}")
def delete_product(product_id: int, db: Session = Depends(get_db)):
    """Admin: soft-delete a product. Past orders keep referencing it."""
    try:
        soft_delete_product(db, product_id)
        db.commit()
    except CommerceError as e:
        db.rollback()
        logger.warning(f"Product delete failed: {e.message}")
        raise http_exception(e)

    return {
        "status": "success",
        "message": "Product deleted successfully.",
    }
