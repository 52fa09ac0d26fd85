# backend/impact/services/admission.py
"""Capacity control for mission acceptance.

``accepted_count`` is only ever changed through single conditional UPDATE
statements, so two concurrent accepts can never push it past
``max_participants`` and a release never drives it below zero. Callers commit
the counter change together with the application status change.
"""
from __future__ import annotations

import enum
import logging
from dataclasses import dataclass

from sqlalchemy import update, case
from sqlalchemy.orm import Session

from impact.errors import CapacityError, ConflictError, NotFoundError
from impact.models import Mission, MissionStatus

logger = logging.getLogger(__name__)


class Denial(str, enum.Enum):
    CAPACITY_FULL = "capacity_full"
    NOT_PUBLISHED = "not_published"


@dataclass(frozen=True)
class AdmissionDecision:
    granted: bool
    reason: Denial | None = None


def try_accept(db: Session, mission_id: int) -> AdmissionDecision:
    """Take one seat if one is free. Does not commit."""
    res = db.execute(
        update(Mission)
        .where(
            Mission.id == mission_id,
            Mission.status == MissionStatus.PUBLISHED.value,
            Mission.accepted_count < Mission.max_participants,
        )
        .values(accepted_count=Mission.accepted_count + 1)
        .execution_options(synchronize_session=False)
    )
    if res.rowcount == 1:
        _refresh(db, mission_id)
        return AdmissionDecision(granted=True)

    mission = _refresh(db, mission_id)
    if mission is None:
        raise NotFoundError("Mission not found")
    if mission.status != MissionStatus.PUBLISHED.value:
        return AdmissionDecision(granted=False, reason=Denial.NOT_PUBLISHED)
    logger.info(
        f"[admission] mission {mission_id} full ({mission.accepted_count}/{mission.max_participants})"
    )
    return AdmissionDecision(granted=False, reason=Denial.CAPACITY_FULL)


def require_accept(db: Session, mission_id: int) -> None:
    decision = try_accept(db, mission_id)
    if decision.granted:
        return
    if decision.reason == Denial.NOT_PUBLISHED:
        raise ConflictError("Mission is not open for admissions")
    raise CapacityError("Maximum number of participants reached")


def release(db: Session, mission_id: int) -> None:
    """Give one seat back, never going below zero. Does not commit."""
    db.execute(
        update(Mission)
        .where(Mission.id == mission_id)
        .values(
            accepted_count=case(
                (Mission.accepted_count > 0, Mission.accepted_count - 1),
                else_=0,
            )
        )
        .execution_options(synchronize_session=False)
    )
    _refresh(db, mission_id)


def _refresh(db: Session, mission_id: int) -> Mission | None:
    mission = db.get(Mission, mission_id)
    if mission is not None:
        db.refresh(mission)
    return mission
