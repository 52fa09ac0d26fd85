# backend/impact/models/mission.py
import enum
import math
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import String, Text, Integer, Boolean, Numeric, DateTime, ForeignKey, CheckConstraint, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from impact.db import Base

MAX_REWARD_XRP = Decimal("100")


class MissionStatus(str, enum.Enum):
    PUBLISHED = "published"
    COMPLETED = "completed"


def points_for_duration(minutes: int | None) -> int:
    """One point per started hour; a mission without duration counts as one hour."""
    return math.ceil((minutes or 60) / 60)


def clamp_reward(amount, is_volunteer: bool = False) -> Decimal:
    if is_volunteer or amount is None:
        return Decimal("0")
    value = Decimal(str(amount))
    return min(MAX_REWARD_XRP, max(Decimal("0"), value))


class Mission(Base):
    __tablename__ = "missions"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    organization_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    duration: Mapped[int] = mapped_column(Integer, nullable=False, default=60)  # minutes
    points: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    reward_xrp: Mapped[Decimal] = mapped_column(Numeric(12, 6), nullable=False, default=Decimal("0"))
    is_volunteer: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    max_participants: Mapped[int] = mapped_column(Integer, nullable=False, default=10)
    accepted_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    status: Mapped[str] = mapped_column(String(16), nullable=False, default=MissionStatus.PUBLISHED.value)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False
    )
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint("max_participants >= 1", name="ck_missions_max_participants"),
        CheckConstraint(
            "accepted_count >= 0 AND accepted_count <= max_participants",
            name="ck_missions_accepted_count",
        ),
        Index("ix_missions_status", "status"),
    )

    organization = relationship("User")
    applications = relationship("Application", back_populates="mission")

    @property
    def remaining_spots(self) -> int:
        return max(0, self.max_participants - (self.accepted_count or 0))

    @property
    def is_completed(self) -> bool:
        return self.status == MissionStatus.COMPLETED.value
