# backend/impact/schemas/__init__.py

# Missions
from .mission import (
    MissionCreate,
    MissionUpdate,
    MissionOut,
    MissionCapacity,
)

# Applications
from .application import (
    ApplicationCreate,
    ApplicationStatusUpdate,
    ApplicationOut,
    ApplicationReview,
)

# Settlement
from .settlement import (
    CompleteRequest,
    CompleteResponse,
    ParticipantResultOut,
    LedgerOutcomeOut,
)

__all__ = [
    "MissionCreate", "MissionUpdate", "MissionOut", "MissionCapacity",
    "ApplicationCreate", "ApplicationStatusUpdate", "ApplicationOut", "ApplicationReview",
    "CompleteRequest", "CompleteResponse", "ParticipantResultOut", "LedgerOutcomeOut",
]
