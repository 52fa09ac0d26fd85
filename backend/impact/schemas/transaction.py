# backend/impact/schemas/transaction.py
from datetime import datetime
from typing import Optional
from pydantic import BaseModel
from pydantic.config import ConfigDict


class TransactionOut(BaseModel):
    id: int
    type: str
    status: str
    from_user_id: Optional[int] = None
    to_user_id: Optional[int] = None
    from_wallet: Optional[str] = None
    to_wallet: Optional[str] = None
    amount: Optional[float] = None
    currency: Optional[str] = None
    mission_id: Optional[int] = None
    tx_ref: Optional[str] = None
    token_ref: Optional[str] = None
    description: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
