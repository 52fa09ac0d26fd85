# backend/impact/models/user.py
import enum
from datetime import datetime, timezone

from sqlalchemy import String, Integer, DateTime
from sqlalchemy.orm import Mapped, mapped_column

from impact.db import Base


class UserRole(str, enum.Enum):
    PARTICIPANT = "participant"
    ORGANIZATION = "organization"


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    role: Mapped[str] = mapped_column(String(16), nullable=False, default=UserRole.PARTICIPANT.value)

    # Only the settlement orchestrator writes these two
    points: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    completed_missions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    wallet_address: Mapped[str | None] = mapped_column(String(64), nullable=True)
    # Ledger credential; never serialized nor logged
    wallet_secret: Mapped[str | None] = mapped_column(String(128), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False
    )

    @property
    def has_wallet(self) -> bool:
        return bool(self.wallet_address and self.wallet_secret)

    def __repr__(self) -> str:
        return f"<User id={self.id} role={self.role} points={self.points}>"
