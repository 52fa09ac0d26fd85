# backend/impact/services/applications.py
"""Application lifecycle.

    pending  -> accepted | rejected
    accepted -> rejected | completed (settlement only)
    rejected -> accepted
    completed: terminal

Nothing moves once the mission itself is completed.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from impact.errors import ConflictError, NotPublishedError
from impact.models import Application, ApplicationStatus, Mission, MissionStatus
from impact.services import admission
from impact.services.store import (
    commit_or_raise,
    get_application_or_404,
    get_mission_or_404,
    get_user_or_404,
)

logger = logging.getLogger(__name__)

S = ApplicationStatus

TRANSITIONS: dict[ApplicationStatus, frozenset[ApplicationStatus]] = {
    S.PENDING: frozenset({S.ACCEPTED, S.REJECTED}),
    S.ACCEPTED: frozenset({S.REJECTED, S.COMPLETED}),
    S.REJECTED: frozenset({S.ACCEPTED}),
    S.COMPLETED: frozenset(),
}


def check_transition(
    current: str,
    target: str,
    mission_status: str,
    *,
    settlement: bool = False,
) -> bool:
    """Validate a status change.

    Returns False when ``target`` equals ``current`` (nothing to do), True when
    the change is allowed, and raises ConflictError otherwise.
    """
    current, target = S(current), S(target)
    if mission_status == MissionStatus.COMPLETED.value:
        raise ConflictError("Mission is already completed")
    if current == target:
        return False
    if target not in TRANSITIONS[current]:
        raise ConflictError(f"Cannot move application from {current.value} to {target.value}")
    if target == S.COMPLETED and not settlement:
        raise ConflictError("Applications are completed only by completing the mission")
    return True


@dataclass
class StatusChange:
    application: Application
    mission: Mission


def submit_application(db: Session, mission_id: int, applicant_id: int, message: str = "") -> Application:
    mission = get_mission_or_404(db, mission_id)
    get_user_or_404(db, applicant_id)

    if mission.status != MissionStatus.PUBLISHED.value:
        raise NotPublishedError("This mission is no longer available")

    existing = db.scalar(
        select(Application.id).where(
            Application.mission_id == mission_id,
            Application.user_id == applicant_id,
        )
    )
    if existing:
        raise ConflictError("You have already applied to this mission")

    application = Application(
        mission_id=mission_id,
        user_id=applicant_id,
        message=(message or "").strip(),
        status=S.PENDING.value,
    )
    db.add(application)
    try:
        db.commit()
    except IntegrityError:
        # lost a race against an identical submission
        db.rollback()
        raise ConflictError("You have already applied to this mission")
    db.refresh(application)
    logger.info(f"[applications] user {applicant_id} applied to mission {mission_id} (id={application.id})")
    return application


def set_application_status(db: Session, mission_id: int, application_id: int, status: str) -> StatusChange:
    mission = get_mission_or_404(db, mission_id)
    application = get_application_or_404(db, mission_id, application_id)

    previous = S(application.status)
    target = S(status)
    if target not in (S.ACCEPTED, S.REJECTED):
        raise ConflictError("Status must be accepted or rejected")

    if not check_transition(previous, target, mission.status):
        return StatusChange(application=application, mission=mission)

    if target == S.ACCEPTED:
        # raises CapacityError / ConflictError without touching the row
        admission.require_accept(db, mission_id)
    elif previous == S.ACCEPTED:
        admission.release(db, mission_id)

    application.status = target.value
    application.reviewed_at = datetime.now(timezone.utc)
    commit_or_raise(db, "application status")
    db.refresh(application)
    db.refresh(mission)

    logger.info(
        f"[applications] application {application_id} {previous.value} -> {target.value}; "
        f"mission {mission_id} at {mission.accepted_count}/{mission.max_participants}"
    )
    return StatusChange(application=application, mission=mission)


def list_applications(db: Session, mission_id: int, status: Optional[str] = None) -> List[Application]:
    get_mission_or_404(db, mission_id)
    q = select(Application).where(Application.mission_id == mission_id).order_by(Application.id)
    if status is not None:
        q = q.where(Application.status == S(status).value)
    return list(db.scalars(q).all())


def list_user_applications(db: Session, user_id: int) -> List[Application]:
    get_user_or_404(db, user_id)
    q = select(Application).where(Application.user_id == user_id).order_by(Application.applied_at.desc())
    return list(db.scalars(q).all())
