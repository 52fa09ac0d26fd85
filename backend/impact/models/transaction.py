# backend/impact/models/transaction.py
import enum
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import String, Numeric, DateTime, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column

from impact.db import Base


class TransactionType(str, enum.Enum):
    REWARD_PAYMENT = "reward-payment"
    BADGE_MINT = "badge-mint"
    MISSION_NFT_MINT = "mission-nft-mint"


class TransactionStatus(str, enum.Enum):
    COMPLETED = "completed"
    FAILED = "failed"


class Transaction(Base):
    """Append-only audit row, one per ledger attempt."""

    __tablename__ = "transactions"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    type: Mapped[str] = mapped_column(String(32), nullable=False)

    # null source means a platform-originated mint
    from_user_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    to_user_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    from_wallet: Mapped[str | None] = mapped_column(String(64), nullable=True)
    to_wallet: Mapped[str | None] = mapped_column(String(64), nullable=True)

    amount: Mapped[Decimal | None] = mapped_column(Numeric(12, 6), nullable=True)
    currency: Mapped[str | None] = mapped_column(String(16), nullable=True)
    mission_id: Mapped[int | None] = mapped_column(ForeignKey("missions.id"), nullable=True)

    tx_ref: Mapped[str | None] = mapped_column(String(128), nullable=True)
    token_ref: Mapped[str | None] = mapped_column(String(128), nullable=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False)
    description: Mapped[str] = mapped_column(String(512), nullable=False, default="")

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False
    )

    __table_args__ = (
        Index("ix_transactions_mission", "mission_id"),
        Index("ix_transactions_to_user", "to_user_id"),
    )
