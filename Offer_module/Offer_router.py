"""
Offer router - admin management of product and category offers.
"""
import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from deps import get_db
from Utils.errors import CommerceError, http_exception
from .Offer_schema import OfferCreate
from .offer_service import create_offer, delete_offer, list_offers, serialize_offer

router = APIRouter(prefix="/offers", tags=["Offers"])

logger = logging.getLogger(__name__)


@router.get("")
def get_offers(db: Session = Depends(get_db)):
    return {
        "status": "success",
        "data": [serialize_offer(offer) for offer in list_offers(db)],
    }


@router.post("", status_code=201)
def add_offer(payload: OfferCreate, db: Session = Depends(get_db)):
    try:
        offer = create_offer(
            db,
            name=payload.name,
            description=payload.description,
            discount_type=payload.discount_type,
            discount_value=payload.discount_value,
            max_discount_amount=payload.max_discount_amount,
            start_date=payload.start_date,
            end_date=payload.end_date,
            applicable_to=payload.applicable_to,
            target_id=payload.target_id,
        )
        db.commit()
        db.refresh(offer)
    except CommerceError as e:
        db.rollback()
        logger.warning(f"Offer creation failed: {e.message}")
        raise http_exception(e)

    return {
        "status": "success",
        "message": "Offer created successfully",
        "data": serialize_offer(offer),
    }


@router.delete("/{offer_id}")
def remove_offer(offer_id: int, db: Session = Depends(get_db)):
    try:
        delete_offer(db, offer_id)
        db.commit()
    except CommerceError as e:
        db.rollback()
        raise http_exception(e)

    return {"status": "success", "message": "Offer deleted successfully"}
