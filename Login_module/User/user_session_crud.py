from sqlalchemy.orm import Session
from typing import Optional
from .user_model import User
from Address_module.Address_model import Address


def get_user_by_id(db: Session, user_id: int) -> Optional[User]:
    """
    Retrieve user by ID.
    """
    return db.query(User).filter(User.id == user_id).first()


def get_user_address(db: Session, user_id: int, address_id: int) -> Optional[Address]:
    """
    Retrieve a non-deleted shipping address that belongs to the user.
    """
    return db.query(Address).filter(
        Address.id == address_id,
        Address.user_id == user_id,
        Address.is_deleted == False
    ).first()
