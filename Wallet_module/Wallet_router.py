from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from deps import get_db
from .Wallet_schema import WalletResponse
from .wallet_service import get_wallet_details

router = APIRouter(prefix="/wallet", tags=["Wallet"])


@router.get("/{user_id}", response_model=WalletResponse)
def get_wallet(user_id: int, db: Session = Depends(get_db)):
    """Balance and ledger entries, newest first."""
    return {
        "status": "success",
        "data": get_wallet_details(db, user_id),
    }
