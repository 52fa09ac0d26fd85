# backend/impact/schemas/application.py
from datetime import datetime
from typing import Literal, Optional
from pydantic import BaseModel, Field
from pydantic.config import ConfigDict

from impact.schemas.mission import MissionCapacity


class ApplicationCreate(BaseModel):
    applicant_id: int
    message: str = Field("", max_length=2000)


class ApplicationStatusUpdate(BaseModel):
    status: Literal["accepted", "rejected"]


class ApplicationOut(BaseModel):
    id: int
    mission_id: int
    user_id: int
    status: str
    message: str
    applied_at: datetime
    reviewed_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ApplicationReview(BaseModel):
    application: ApplicationOut
    mission: MissionCapacity
