from sqlalchemy import Column, Integer, ForeignKey, DateTime, func, String, Boolean
from sqlalchemy.orm import relationship
from database import Base


class CartItem(Base):
    """
    One product size in a user's cart. Checkout soft-deletes the items it consumes.
    """
    __tablename__ = "cart_items"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    size = Column(String(50), nullable=False)
    quantity = Column(Integer, nullable=False, default=1)

    # Soft delete flag
    is_deleted = Column(Boolean, nullable=False, default=False, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    product = relationship("Product")
