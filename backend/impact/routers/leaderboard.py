# backend/impact/routers/leaderboard.py
from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select, func
from sqlalchemy.orm import Session

from impact.db import get_db
from impact.models import Application, Mission, MissionStatus, User, UserRole
from impact.schemas.leaderboard import LeaderboardEntry, StatsOut
from impact.schemas.user import LevelOut
from impact.services import levels

router = APIRouter(prefix="/leaderboard", tags=["leaderboard"])


@router.get("", response_model=List[LeaderboardEntry])
def leaderboard(limit: int = Query(10, ge=1, le=100), db: Session = Depends(get_db)):
    rows = db.scalars(
        select(User)
        .where(User.role == UserRole.PARTICIPANT.value)
        .order_by(User.points.desc(), User.id)
        .limit(limit)
    ).all()
    out = []
    for i, u in enumerate(rows, start=1):
        level = levels.level_for(u.points)
        out.append(
            LeaderboardEntry(
                rank=i,
                id=u.id,
                name=u.name,
                points=u.points,
                completed_missions=u.completed_missions,
                level=level.name,
                level_icon=level.icon,
            )
        )
    return out


@router.get("/citizen-levels", response_model=List[LevelOut])
def citizen_levels():
    return [LevelOut.of(level) for level in levels.LEVELS]


@router.get("/stats", response_model=StatsOut)
def stats(db: Session = Depends(get_db)):
    def count(q) -> int:
        return db.scalar(q) or 0

    return StatsOut(
        total_participants=count(
            select(func.count()).select_from(User).where(User.role == UserRole.PARTICIPANT.value)
        ),
        total_organizations=count(
            select(func.count()).select_from(User).where(User.role == UserRole.ORGANIZATION.value)
        ),
        total_missions=count(select(func.count()).select_from(Mission)),
        published_missions=count(
            select(func.count()).select_from(Mission).where(Mission.status == MissionStatus.PUBLISHED.value)
        ),
        completed_missions=count(
            select(func.count()).select_from(Mission).where(Mission.status == MissionStatus.COMPLETED.value)
        ),
        total_applications=count(select(func.count()).select_from(Application)),
        total_points_distributed=count(select(func.coalesce(func.sum(User.points), 0))),
    )
