# backend/impact/schemas/mission.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, field_validator
from pydantic.config import ConfigDict

from impact.models.mission import MAX_REWARD_XRP


def _clamp(v: Optional[Decimal]) -> Optional[Decimal]:
    # out-of-range rewards are clamped, not rejected
    if v is None:
        return v
    return min(MAX_REWARD_XRP, max(Decimal("0"), v))


class MissionCreate(BaseModel):
    organization_id: int
    title: str = Field(..., min_length=1, max_length=200)
    description: str = ""
    date: Optional[datetime] = None
    duration: int = Field(60, ge=1, description="minutes")
    reward_xrp: Decimal = Decimal("0")
    is_volunteer: bool = False
    max_participants: int = Field(10, ge=1)

    @field_validator("title")
    @classmethod
    def _strip_title(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("title must not be blank")
        return v

    @field_validator("reward_xrp")
    @classmethod
    def _clamp_reward(cls, v):
        return _clamp(v)


class MissionUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    date: Optional[datetime] = None
    duration: Optional[int] = Field(None, ge=1)
    reward_xrp: Optional[Decimal] = None
    is_volunteer: Optional[bool] = None
    max_participants: Optional[int] = Field(None, ge=1)

    @field_validator("reward_xrp")
    @classmethod
    def _clamp_reward(cls, v):
        return _clamp(v)


class MissionOut(BaseModel):
    id: int
    organization_id: int
    title: str
    description: str
    date: Optional[datetime] = None
    duration: int
    points: int
    reward_xrp: float
    is_volunteer: bool
    max_participants: int
    accepted_count: int
    remaining_spots: int
    status: str
    created_at: datetime
    completed_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class MissionCapacity(BaseModel):
    id: int
    accepted_count: int
    max_participants: int
    remaining_spots: int

    model_config = ConfigDict(from_attributes=True)
