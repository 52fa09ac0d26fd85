# backend/impact/routers/missions.py
from dataclasses import asdict
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select, func, delete
from sqlalchemy.orm import Session

from impact.config import get_settings
from impact.db import get_db
from impact.errors import ConflictError, ValidationError
from impact.models import Application, ApplicationStatus, Mission, MissionStatus, User, UserRole
from impact.models.mission import clamp_reward, points_for_duration
from impact.schemas.application import (
    ApplicationCreate,
    ApplicationOut,
    ApplicationReview,
    ApplicationStatusUpdate,
)
from impact.schemas.mission import MissionCapacity, MissionCreate, MissionOut, MissionUpdate
from impact.schemas.settlement import CompleteRequest, CompleteResponse, ParticipantResultOut
from impact.services import applications as app_service
from impact.services.ledger import LedgerClient, get_ledger
from impact.services.settlement import SettlementOrchestrator
from impact.services.store import commit_or_raise, get_mission_or_404, get_user_or_404

router = APIRouter(prefix="/missions", tags=["missions"])

# ----------------------------------------------------------------------
# Missions CRUD
# ----------------------------------------------------------------------
@router.get("", response_model=List[MissionOut])
def list_missions(
    status: Optional[Literal["published", "completed"]] = Query(None),
    organization_id: Optional[int] = Query(None),
    db: Session = Depends(get_db),
):
    q = select(Mission).order_by(Mission.created_at.desc(), Mission.id.desc())
    if status is not None:
        q = q.where(Mission.status == status)
    if organization_id is not None:
        q = q.where(Mission.organization_id == organization_id)
    return db.scalars(q).all()


@router.post("", response_model=MissionOut, status_code=201)
def create_mission(payload: MissionCreate, db: Session = Depends(get_db)):
    """Publish a mission. Points follow the duration; volunteer missions pay no XRP."""
    org = get_user_or_404(db, payload.organization_id)
    if org.role != UserRole.ORGANIZATION.value:
        raise ValidationError("Only organizations can create missions")

    mission = Mission(
        organization_id=org.id,
        title=payload.title,
        description=payload.description,
        date=payload.date,
        duration=payload.duration,
        points=points_for_duration(payload.duration),
        reward_xrp=clamp_reward(payload.reward_xrp, payload.is_volunteer),
        is_volunteer=payload.is_volunteer,
        max_participants=payload.max_participants,
        accepted_count=0,
        status=MissionStatus.PUBLISHED.value,
    )
    db.add(mission)
    commit_or_raise(db, "mission")
    db.refresh(mission)
    return mission


@router.get("/{mission_id}", response_model=MissionOut)
def get_mission(mission_id: int, db: Session = Depends(get_db)):
    return get_mission_or_404(db, mission_id)


@router.patch("/{mission_id}", response_model=MissionOut)
def update_mission(mission_id: int, payload: MissionUpdate, db: Session = Depends(get_db)):
    """Edit a published mission. Capacity cannot go below the accepted count."""
    mission = get_mission_or_404(db, mission_id)
    if mission.status == MissionStatus.COMPLETED.value:
        raise ConflictError("Completed missions cannot be edited")

    values = payload.model_dump(exclude_unset=True)
    if not values:
        return mission

    if "max_participants" in values and values["max_participants"] < mission.accepted_count:
        raise ConflictError(f"{mission.accepted_count} participants already accepted")

    for key in ("title", "description", "date", "max_participants"):
        if key in values and values[key] is not None:
            setattr(mission, key, values[key])
    if values.get("duration") is not None:
        mission.duration = values["duration"]
        mission.points = points_for_duration(mission.duration)
    if values.get("is_volunteer") is not None:
        mission.is_volunteer = values["is_volunteer"]
    if "reward_xrp" in values or "is_volunteer" in values:
        reward = values.get("reward_xrp", mission.reward_xrp)
        mission.reward_xrp = clamp_reward(reward, mission.is_volunteer)

    commit_or_raise(db, "mission")
    db.refresh(mission)
    return mission


@router.delete("/{mission_id}", status_code=204)
def delete_mission(mission_id: int, db: Session = Depends(get_db)):
    """Delete a mission that never had anyone accepted."""
    mission = get_mission_or_404(db, mission_id)
    engaged = db.scalar(
        select(func.count())
        .select_from(Application)
        .where(
            Application.mission_id == mission_id,
            Application.status.in_([ApplicationStatus.ACCEPTED.value, ApplicationStatus.COMPLETED.value]),
        )
    )
    if engaged or mission.status == MissionStatus.COMPLETED.value:
        raise ValidationError("Mission has accepted participants; it cannot be deleted")

    db.execute(delete(Application).where(Application.mission_id == mission_id))
    db.delete(mission)
    commit_or_raise(db, "mission deletion")
    return None


# ----------------------------------------------------------------------
# Applications
# ----------------------------------------------------------------------
@router.post("/{mission_id}/applications", response_model=ApplicationOut, status_code=201)
def submit_application(mission_id: int, payload: ApplicationCreate, db: Session = Depends(get_db)):
    return app_service.submit_application(db, mission_id, payload.applicant_id, payload.message)


@router.get("/{mission_id}/applications", response_model=List[ApplicationOut])
def list_applications(
    mission_id: int,
    status: Optional[Literal["pending", "accepted", "rejected", "completed"]] = Query(None),
    db: Session = Depends(get_db),
):
    return app_service.list_applications(db, mission_id, status)


@router.put("/{mission_id}/applications/{application_id}", response_model=ApplicationReview)
def set_application_status(
    mission_id: int,
    application_id: int,
    payload: ApplicationStatusUpdate,
    db: Session = Depends(get_db),
):
    """Accept or reject an application; accepting takes one seat, un-accepting frees it."""
    change = app_service.set_application_status(db, mission_id, application_id, payload.status)
    return ApplicationReview(
        application=ApplicationOut.model_validate(change.application),
        mission=MissionCapacity.model_validate(change.mission),
    )


# ----------------------------------------------------------------------
# Completion
# ----------------------------------------------------------------------
@router.post("/{mission_id}/complete", response_model=CompleteResponse)
def complete_mission(
    mission_id: int,
    payload: CompleteRequest,
    db: Session = Depends(get_db),
    ledger: LedgerClient = Depends(get_ledger),
):
    """
    Close the mission and settle rewards for the listed participants.
    Always 200 once the mission is closed; per-participant failures are in the body.
    """
    orchestrator = SettlementOrchestrator(db, ledger, issuer_secret=get_settings().ledger_issuer_secret)
    report = orchestrator.complete_mission(mission_id, payload.participant_ids)
    return CompleteResponse(
        mission=MissionOut.model_validate(report.mission),
        participants=[ParticipantResultOut(**asdict(r)) for r in report.participants],
    )
