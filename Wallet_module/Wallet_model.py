"""
Wallet ledger models.

WalletTransaction rows are append-only. WalletAccount holds the running
balance of a user and is the row that gets locked while a new entry is
written, so credits for the same user are applied one after another.
"""
from sqlalchemy import (
    Column, Integer, Numeric, DateTime, Enum, ForeignKey, UniqueConstraint, func
)
from sqlalchemy.orm import relationship
from database import Base
import enum


class WalletTransactionType(str, enum.Enum):
    ADDED = "added"
    BOUGHT = "bought"
    RETURNED = "returned"
    CANCELLED = "cancelled"


class WalletAccount(Base):
    __tablename__ = "wallet_accounts"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True, index=True)
    balance = Column(Numeric(12, 2), nullable=False, default=0)
    version = Column(Integer, nullable=False, default=0)  # Number of entries written so far

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())


class WalletTransaction(Base):
    __tablename__ = "wallet_transactions"
    __table_args__ = (
        UniqueConstraint("user_id", "sequence", name="uq_wallet_transactions_user_sequence"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="SET NULL"), nullable=True, index=True)

    type = Column(Enum(WalletTransactionType), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    balance = Column(Numeric(12, 2), nullable=False)  # Balance after this entry
    sequence = Column(Integer, nullable=False)  # 1, 2, 3 ... per user

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)

    order = relationship("Order")
