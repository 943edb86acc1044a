"""
Wallet ledger - append-only balance history used for refunds.
"""
from decimal import Decimal
from typing import Optional, List, Dict, Any, Sequence
import logging

from sqlalchemy.orm import Session

from Utils.datetime_utils import now_ist, to_ist_isoformat
from Utils.money import to_decimal, round2, as_number, ZERO
from .Wallet_model import WalletAccount, WalletTransaction, WalletTransactionType

logger = logging.getLogger(__name__)


def _lock_account(db: Session, user_id: int) -> WalletAccount:
    """
    Fetch the user's wallet account with a row lock, creating it on first use.
    On databases without SELECT ... FOR UPDATE the unique (user_id, sequence)
    constraint still rejects a second writer that read the same state.
    """
    account = (
        db.query(WalletAccount)
        .filter(WalletAccount.user_id == user_id)
        .with_for_update()
        .first()
    )
    if account is None:
        account = WalletAccount(user_id=user_id, balance=ZERO, version=0)
        db.add(account)
        db.flush()
    return account


def credit(
    db: Session,
    user_id: int,
    order_id: Optional[int],
    type: WalletTransactionType,
    amount: Any
) -> WalletTransaction:
    """
    Append a ledger entry whose balance is the previous balance plus `amount`.
    Callers pass the signed effect they want; refunds are positive.
    """
    amount = round2(amount)
    account = _lock_account(db, user_id)
    prior_balance = to_decimal(account.balance)
    new_balance = round2(prior_balance + amount)

    entry = WalletTransaction(
        user_id=user_id,
        order_id=order_id,
        type=type,
        amount=amount,
        balance=new_balance,
        sequence=account.version + 1,
        created_at=now_ist(),
    )
    db.add(entry)
    account.balance = new_balance
    account.version = account.version + 1
    db.flush()

    logger.info(
        f"Wallet {type.value} entry for user {user_id}: ₹{amount} "
        f"(balance ₹{prior_balance} -> ₹{new_balance}, order {order_id})"
    )
    return entry


def get_balance(db: Session, user_id: int) -> Decimal:
    account = db.query(WalletAccount).filter(WalletAccount.user_id == user_id).first()
    return to_decimal(account.balance) if account else ZERO


def get_transactions(db: Session, user_id: int) -> List[WalletTransaction]:
    """Entries newest first."""
    return (
        db.query(WalletTransaction)
        .filter(WalletTransaction.user_id == user_id)
        .order_by(WalletTransaction.sequence.desc())
        .all()
    )


def get_wallet_details(db: Session, user_id: int) -> Dict[str, Any]:
    transactions = get_transactions(db, user_id)
    current_balance = transactions[0].balance if transactions else ZERO
    return {
        "currentBalance": as_number(current_balance),
        "transactions": [
            {
                "id": t.id,
                "type": t.type.value,
                "amount": as_number(t.amount),
                "balance": as_number(t.balance),
                "createdAt": to_ist_isoformat(t.created_at),
                "order": t.order_id,
            }
            for t in transactions
        ],
        "totalTransactions": len(transactions),
    }


def verify_balance_chain(entries: Sequence[WalletTransaction]) -> bool:
    """
    True when every entry's balance equals the previous balance plus its amount.
    `entries` may be in any order; they are checked oldest first.
    """
    previous = ZERO
    for entry in sorted(entries, key=lambda e: e.sequence):
        if round2(previous + to_decimal(entry.amount)) != round2(entry.balance):
            return False
        previous = to_decimal(entry.balance)
    return True
