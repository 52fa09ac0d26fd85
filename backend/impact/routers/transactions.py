# backend/impact/routers/transactions.py
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.orm import Session

from impact.db import get_db
from impact.models import Transaction
from impact.schemas.transaction import TransactionOut

router = APIRouter(prefix="/transactions", tags=["transactions"])


@router.get("", response_model=List[TransactionOut])
def list_transactions(
    mission_id: Optional[int] = Query(None),
    type: Optional[Literal["reward-payment", "badge-mint", "mission-nft-mint"]] = Query(None),
    status: Optional[Literal["completed", "failed"]] = Query(None),
    db: Session = Depends(get_db),
):
    """Audit log of ledger attempts, newest first. Failed rows are the reconciliation backlog."""
    q = select(Transaction).order_by(Transaction.id.desc())
    if mission_id is not None:
        q = q.where(Transaction.mission_id == mission_id)
    if type is not None:
        q = q.where(Transaction.type == type)
    if status is not None:
        q = q.where(Transaction.status == status)
    return db.scalars(q).all()
