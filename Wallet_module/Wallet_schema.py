from typing import List, Optional

from pydantic import BaseModel


class WalletEntryView(BaseModel):
    id: int
    type: str
    amount: float
    balance: float
    createdAt: Optional[str] = None
    order: Optional[int] = None


class WalletDetails(BaseModel):
    currentBalance: float
    transactions: List[WalletEntryView]
    totalTransactions: int


class WalletResponse(BaseModel):
    status: str
    data: WalletDetails
