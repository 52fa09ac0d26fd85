# backend/impact/schemas/settlement.py
from typing import List, Optional
from pydantic import BaseModel, Field
from pydantic.config import ConfigDict

from impact.schemas.mission import MissionOut


class CompleteRequest(BaseModel):
    participant_ids: List[int] = Field(..., description="users who took part; only accepted ones are settled")


class LedgerOutcomeOut(BaseModel):
    success: bool
    tx_ref: Optional[str] = None
    token_ref: Optional[str] = None
    error: Optional[str] = None
    amount: Optional[float] = None

    model_config = ConfigDict(from_attributes=True)


class ParticipantResultOut(BaseModel):
    participant_id: int
    success: bool
    earned_points: int
    total_points: int
    previous_level: Optional[str] = None
    citizen_level: Optional[str] = None
    leveled_up: bool
    reward_xrp: float
    nft: Optional[LedgerOutcomeOut] = None
    level_badge: Optional[LedgerOutcomeOut] = None
    xrp: Optional[LedgerOutcomeOut] = None
    new_achievements: List[str] = []
    error: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class CompleteResponse(BaseModel):
    mission: MissionOut
    participants: List[ParticipantResultOut]

    model_config = ConfigDict(from_attributes=True)
