"""
Progress API Router

Relationship health score and badge progress for a user.
"""

from dataclasses import asdict
from datetime import date
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends

from core.dependencies import get_badge_engine, get_health_engine, get_today
from core.exceptions import NotFoundError
from schemas import BadgeProgressResponse, BadgeStatusResponse, HealthScoreResponse
from services.badge_progress import BadgeProgressEngine
from services.health_score import HealthScoreEngine

router = APIRouter(prefix="/v1/users/{user_id}", tags=["Progress"])


@router.get("/health-score", response_model=HealthScoreResponse)
async def get_health_score(
    user_id: UUID,
    health: HealthScoreEngine = Depends(get_health_engine),
):
    breakdown = await health.get_score(user_id)
    if breakdown is None:
        raise NotFoundError("user", str(user_id))
    return HealthScoreResponse(**breakdown.to_dict())


@router.get("/badges", response_model=List[BadgeStatusResponse])
async def list_badges(
    user_id: UUID,
    badges: BadgeProgressEngine = Depends(get_badge_engine),
    today: date = Depends(get_today),
):
    """Every badge with earned state; unearned badges carry current/target/percentage."""
    statuses = await badges.list_progress(user_id, today)
    return [
        BadgeStatusResponse(
            badge_id=status.badge.id,
            name=status.badge.name,
            description=status.badge.description,
            requirement_type=status.badge.requirement_type,
            earned=status.earned,
            earned_at=status.earned_at,
            progress=BadgeProgressResponse(**asdict(status.progress)) if status.progress else None,
        )
        for status in statuses
    ]


@router.post("/badges/recalculate", response_model=List[str])
async def recalculate_badges(
    user_id: UUID,
    badges: BadgeProgressEngine = Depends(get_badge_engine),
    today: date = Depends(get_today),
):
    """Award anything the history already satisfies. Returns newly earned badge ids."""
    awarded = await badges.evaluate_and_award(user_id, today)
    return [badge.id for badge in awarded]
