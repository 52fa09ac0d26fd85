# backend/impact/schemas/leaderboard.py
from pydantic import BaseModel


class LeaderboardEntry(BaseModel):
    rank: int
    id: int
    name: str
    points: int
    completed_missions: int
    level: str
    level_icon: str


class StatsOut(BaseModel):
    total_participants: int
    total_organizations: int
    total_missions: int
    published_missions: int
    completed_missions: int
    total_applications: int
    total_points_distributed: int
