# backend/impact/routers/users.py
import logging
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy import select, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from impact.db import get_db
from impact.errors import ConflictError, NotFoundError
from impact.models import Transaction, User
from impact.schemas.application import ApplicationOut
from impact.schemas.transaction import TransactionOut
from impact.schemas.user import AchievementOut, BalanceOut, LevelOut, UserCreate, UserOut, UserProfile
from impact.services import levels
from impact.services.applications import list_user_applications
from impact.services.ledger import LedgerClient, get_ledger
from impact.services.store import get_user_or_404

router = APIRouter(prefix="/users", tags=["users"])
logger = logging.getLogger(__name__)


def _profile(user: User) -> UserProfile:
    upcoming = levels.next_level(user.points)
    return UserProfile(
        **UserOut.model_validate(user).model_dump(),
        level=LevelOut.of(levels.level_for(user.points)),
        next_level=LevelOut.of(upcoming) if upcoming else None,
        points_to_next=levels.points_to_next(user.points),
        achievements=[AchievementOut.of(a) for a in levels.achievements_for(user.completed_missions)],
    )


@router.post("", response_model=UserProfile, status_code=201)
def create_user(
    payload: UserCreate,
    db: Session = Depends(get_db),
    ledger: LedgerClient = Depends(get_ledger),
):
    """Register a participant or organization, opening a ledger account unless told not to."""
    if db.scalar(select(User.id).where(User.email == payload.email)):
        raise ConflictError("Email already registered")

    address = secret = None
    if payload.create_wallet:
        # ExternalServiceError propagates as 502; nothing has been written yet
        account = ledger.create_account()
        address, secret = account.address, account.secret

    user = User(
        name=payload.name.strip(),
        email=payload.email,
        role=payload.role,
        points=0,
        completed_missions=0,
        wallet_address=address,
        wallet_secret=secret,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("Email already registered")
    db.refresh(user)
    logger.info(f"[users] created {user.role} {user.id} wallet={user.wallet_address or '-'}")
    return _profile(user)


@router.get("/{user_id}", response_model=UserProfile)
def get_user(user_id: int, db: Session = Depends(get_db)):
    return _profile(get_user_or_404(db, user_id))


@router.get("/{user_id}/balance", response_model=BalanceOut)
def get_balance(
    user_id: int,
    db: Session = Depends(get_db),
    ledger: LedgerClient = Depends(get_ledger),
):
    user = get_user_or_404(db, user_id)
    if not user.wallet_address:
        raise NotFoundError("User has no ledger account")
    return BalanceOut(
        user_id=user.id,
        wallet_address=user.wallet_address,
        balance_xrp=ledger.get_balance(user.wallet_address),
    )


@router.get("/{user_id}/applications", response_model=List[ApplicationOut])
def user_applications(user_id: int, db: Session = Depends(get_db)):
    return list_user_applications(db, user_id)


@router.get("/{user_id}/transactions", response_model=List[TransactionOut])
def user_transactions(user_id: int, db: Session = Depends(get_db)):
    get_user_or_404(db, user_id)
    rows = db.scalars(
        select(Transaction)
        .where(or_(Transaction.from_user_id == user_id, Transaction.to_user_id == user_id))
        .order_by(Transaction.id.desc())
    ).all()
    return rows
