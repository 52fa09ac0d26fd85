# backend/impact/schemas/user.py
from __future__ import annotations

import math
from datetime import datetime
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator
from pydantic.config import ConfigDict

from impact.services.levels import Achievement, Level


class UserCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=128)
    email: str = Field(..., max_length=255)
    role: Literal["participant", "organization"] = "participant"
    create_wallet: bool = True

    @field_validator("email")
    @classmethod
    def _email(cls, v: str) -> str:
        v = v.strip().lower()
        if "@" not in v or v.startswith("@") or v.endswith("@"):
            raise ValueError("invalid email")
        return v


class UserOut(BaseModel):
    id: int
    name: str
    email: str
    role: str
    points: int
    completed_missions: int
    wallet_address: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class LevelOut(BaseModel):
    rank: int
    name: str
    icon: str
    min_points: int
    max_points: Optional[int] = None  # None for the open-ended top level

    @classmethod
    def of(cls, level: Level) -> "LevelOut":
        return cls(
            rank=level.rank,
            name=level.name,
            icon=level.icon,
            min_points=level.min_points,
            max_points=None if level.max_points == math.inf else int(level.max_points),
        )


class AchievementOut(BaseModel):
    key: str
    name: str
    icon: str

    @classmethod
    def of(cls, achievement: Achievement) -> "AchievementOut":
        return cls(key=achievement.key, name=achievement.name, icon=achievement.icon)


class UserProfile(UserOut):
    level: LevelOut
    next_level: Optional[LevelOut] = None
    points_to_next: Optional[int] = None
    achievements: List[AchievementOut] = []


class BalanceOut(BaseModel):
    user_id: int
    wallet_address: str
    balance_xrp: Decimal
