# backend/impact/services/store.py
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from impact.errors import NotFoundError, PersistenceError
from impact.models import Application, Mission, Transaction, User

logger = logging.getLogger(__name__)


def get_mission_or_404(db: Session, mission_id: int) -> Mission:
    mission = db.get(Mission, mission_id)
    if not mission:
        raise NotFoundError("Mission not found")
    return mission


def get_user_or_404(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if not user:
        raise NotFoundError("User not found")
    return user


def get_application_or_404(db: Session, mission_id: int, application_id: int) -> Application:
    application = db.get(Application, application_id)
    if not application or application.mission_id != mission_id:
        raise NotFoundError("Application not found")
    return application


def commit_or_raise(db: Session, what: str) -> None:
    """Commit, or roll back and raise PersistenceError."""
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"[store] commit failed while {what}: {e}")
        raise PersistenceError(f"Could not persist {what}") from e


def record_transaction(
    db: Session,
    *,
    type: str,
    status: str,
    mission_id: Optional[int] = None,
    from_user_id: Optional[int] = None,
    to_user_id: Optional[int] = None,
    from_wallet: Optional[str] = None,
    to_wallet: Optional[str] = None,
    amount: Optional[Decimal] = None,
    currency: Optional[str] = None,
    tx_ref: Optional[str] = None,
    token_ref: Optional[str] = None,
    description: str = "",
) -> Transaction:
    """Append one audit row and commit it on its own."""
    tx = Transaction(
        type=type,
        status=status,
        mission_id=mission_id,
        from_user_id=from_user_id,
        to_user_id=to_user_id,
        from_wallet=from_wallet,
        to_wallet=to_wallet,
        amount=amount,
        currency=currency,
        tx_ref=tx_ref,
        token_ref=token_ref,
        description=description[:512],
    )
    db.add(tx)
    commit_or_raise(db, f"{type} transaction")
    return tx
