# backend/tests/conftest.py
import os

# impact.db builds its engine at import time
os.environ.setdefault("DATABASE_URL", "sqlite://")

from decimal import Decimal
from typing import Any, Dict, List, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from impact.db import Base, get_db
from impact.errors import ExternalServiceError
from impact.main import app
from impact.models import Application, ApplicationStatus, Mission, User, UserRole
from impact.models.mission import clamp_reward, points_for_duration
from impact.services.ledger import LedgerAccount, LedgerClient, MintResult, TransferResult, get_ledger


class FakeLedger(LedgerClient):
    """In-memory ledger that records every call."""

    def __init__(self):
        self.mints: List[Dict[str, Any]] = []
        self.transfers: List[Dict[str, Any]] = []
        self.accounts = 0
        self.fail_mint = False
        self.raise_mint = False
        self.fail_transfer = False
        self.raise_transfer = False
        self.balances: Dict[str, Decimal] = {}

    def create_account(self) -> LedgerAccount:
        self.accounts += 1
        return LedgerAccount(address=f"rFake{self.accounts}", secret=f"sFakeSecret{self.accounts}")

    def get_balance(self, address: str) -> Decimal:
        return self.balances.get(address, Decimal("0"))

    def transfer(self, secret: str, destination: str, amount: Decimal) -> TransferResult:
        self.transfers.append({"secret": secret, "destination": destination, "amount": amount})
        if self.raise_transfer:
            raise ExternalServiceError("ledger timeout")
        if self.fail_transfer:
            return TransferResult(success=False, tx_ref="TXFAIL", error="tecUNFUNDED_PAYMENT")
        return TransferResult(success=True, tx_ref=f"TXPAY{len(self.transfers)}", source="rOrg")

    def mint_token(self, secret: str, payload: Dict[str, Any]) -> MintResult:
        self.mints.append({"secret": secret, "payload": payload})
        if self.raise_mint:
            raise ExternalServiceError("ledger unreachable")
        if self.fail_mint:
            return MintResult(success=False, error="tecNO_PERMISSION")
        n = len(self.mints)
        return MintResult(success=True, tx_ref=f"TXMINT{n}", token_ref=f"TOKEN{n}", issuer="rIssuer")


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False, future=True)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def other_db(session_factory):
    """A second session on the same database, standing in for a concurrent request."""
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def ledger():
    return FakeLedger()


@pytest.fixture
def client(session_factory, ledger):
    def _get_db():
        s = session_factory()
        try:
            yield s
        finally:
            s.close()

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_ledger] = lambda: ledger
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


# ----------------------------------------------------------------------
# Factories
# ----------------------------------------------------------------------
_counter = {"n": 0}


def make_user(db, role: str = UserRole.PARTICIPANT.value, *, wallet: bool = True, points: int = 0) -> User:
    _counter["n"] += 1
    n = _counter["n"]
    user = User(
        name=f"user{n}",
        email=f"user{n}@example.org",
        role=role,
        points=points,
        completed_missions=0,
        wallet_address=f"rUser{n}" if wallet else None,
        wallet_secret=f"sUser{n}" if wallet else None,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def make_org(db, *, wallet: bool = True) -> User:
    return make_user(db, UserRole.ORGANIZATION.value, wallet=wallet)


def make_mission(
    db,
    org: User,
    *,
    duration: int = 60,
    reward_xrp="0",
    is_volunteer: bool = False,
    max_participants: int = 5,
    title: str = "Beach clean-up",
) -> Mission:
    mission = Mission(
        organization_id=org.id,
        title=title,
        description="",
        duration=duration,
        points=points_for_duration(duration),
        reward_xrp=clamp_reward(Decimal(str(reward_xrp)), is_volunteer),
        is_volunteer=is_volunteer,
        max_participants=max_participants,
        accepted_count=0,
    )
    db.add(mission)
    db.commit()
    db.refresh(mission)
    return mission


def make_application(db, mission: Mission, user: User, status: Optional[str] = None) -> Application:
    application = Application(
        mission_id=mission.id,
        user_id=user.id,
        status=status or ApplicationStatus.PENDING.value,
        message="",
    )
    db.add(application)
    if status == ApplicationStatus.ACCEPTED.value:
        mission.accepted_count += 1
    db.commit()
    db.refresh(application)
    return application
