"""
Daily Actions API Router

Serves, completes and adjusts a user's daily assignments. Every path that
needs an action chooses it through the AssignmentLedger, so the dashboard,
manual replacement and multi-day flows share the batch selection logic.
"""

from datetime import date, timedelta
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends

from core.config import settings
from core.dependencies import (
    get_badge_engine,
    get_catalog,
    get_health_engine,
    get_history,
    get_ledger,
    get_today,
)
from core.exceptions import AssignmentConflictError, NotFoundError, PlanRestrictedError, raise_for_outcome
from schemas import (
    ActionRefRequest,
    ActionResponse,
    AssignDaysRequest,
    CompletionResponse,
    DailyActionResponse,
    FavoriteRequest,
    OutcomeResponse,
    PinProgramRequest,
    ReplaceRequest,
    ShowMoreResponse,
)
from services.action_completion import complete_assignment
from services.assignment_ledger import AssignmentLedger
from services.badge_progress import BadgeProgressEngine
from services.catalog_store import SqlCatalogStore
from services.health_score import HealthScoreEngine
from services.history_store import SqlHistoryStore
from services.personalization_types import Assignment, EngineOutcome, OutcomeKind

router = APIRouter(prefix="/v1/users/{user_id}", tags=["Daily Actions"])


def to_daily_action(assignment: Optional[Assignment]) -> Optional[DailyActionResponse]:
    if assignment is None or assignment.action is None:
        return None
    action = assignment.action
    return DailyActionResponse(
        action=ActionResponse(
            id=action.id,
            name=action.name,
            category=action.category,
            description=action.description,
            benefit=action.benefit,
            theme=action.theme,
        ),
        date=assignment.assignment_date,
        completed=assignment.completed,
        favorited=assignment.favorited,
        dnc=assignment.dnc,
        source=assignment.source,
        completed_at=assignment.completed_at,
    )


def to_outcome_response(outcome: EngineOutcome) -> OutcomeResponse:
    raise_for_outcome(outcome)
    return OutcomeResponse(
        kind=outcome.kind.value,
        context=outcome.context,
        assignment=to_daily_action(outcome.assignment),
    )


@router.get("/actions/today", response_model=OutcomeResponse)
async def get_today_action(
    user_id: UUID,
    ledger: AssignmentLedger = Depends(get_ledger),
    today: date = Depends(get_today),
):
    """Today's action, selected on first view if the batch has not run yet."""
    return to_outcome_response(await ledger.get_or_create(user_id, today))


@router.get("/actions/{day}", response_model=OutcomeResponse)
async def get_action_for_date(
    user_id: UUID,
    day: date,
    ledger: AssignmentLedger = Depends(get_ledger),
):
    return to_outcome_response(await ledger.get_or_create(user_id, day))


@router.post("/actions/{day}/complete", response_model=CompletionResponse)
async def complete_action(
    user_id: UUID,
    day: date,
    ledger: AssignmentLedger = Depends(get_ledger),
    health: HealthScoreEngine = Depends(get_health_engine),
    badges: BadgeProgressEngine = Depends(get_badge_engine),
    history: SqlHistoryStore = Depends(get_history),
    today: date = Depends(get_today),
):
    """
    Mark a day's action completed. Past days are allowed for paid tiers
    (catch-up); free tier may only complete today's served action.
    """
    profile = await history.get_user_profile(user_id)
    if profile is None:
        raise NotFoundError("user", str(user_id))
    if not profile.is_premium and day != today:
        raise PlanRestrictedError("Free plan can only complete today's action", profile.subscription_tier)

    result = await complete_assignment(ledger, health, badges, history, user_id, day, today)
    raise_for_outcome(result.outcome)

    summary = result.to_dict()
    return CompletionResponse(
        kind=summary["kind"],
        assignment=to_daily_action(result.outcome.assignment),
        decay_reversed=summary["decay_reversed"],
        new_badges=summary["new_badges"],
        program_completed=summary["program_completed"],
        failures=summary["failures"],
    )


@router.post("/actions/{day}/favorite", response_model=OutcomeResponse)
async def favorite_action(
    user_id: UUID,
    day: date,
    request: FavoriteRequest,
    ledger: AssignmentLedger = Depends(get_ledger),
):
    marked = await ledger.mark_favorited(user_id, day, request.favorited)
    return to_outcome_response(marked.outcome)


@router.post("/actions/{day}/dnc", response_model=OutcomeResponse)
async def did_not_complete_action(
    user_id: UUID,
    day: date,
    ledger: AssignmentLedger = Depends(get_ledger),
):
    """Flag a day as intentionally skipped; it will not accrue decay."""
    marked = await ledger.mark_do_not_complete(user_id, day)
    return to_outcome_response(marked.outcome)


@router.post("/actions/replace", response_model=OutcomeResponse)
async def replace_action(
    user_id: UUID,
    request: ReplaceRequest,
    ledger: AssignmentLedger = Depends(get_ledger),
    today: date = Depends(get_today),
):
    day = request.target_date or today
    outcome = await ledger.replace(user_id, day)
    if outcome.kind == OutcomeKind.ALREADY_APPLIED and outcome.assignment is not None:
        if outcome.assignment.completed:
            raise AssignmentConflictError("Completed actions cannot be replaced", day.isoformat())
        if outcome.context.get("reason") == "pinned":
            raise AssignmentConflictError("Program days cannot be replaced", day.isoformat())
    return to_outcome_response(outcome)


@router.post("/actions/hide", status_code=204)
async def hide_action(
    user_id: UUID,
    request: ActionRefRequest,
    catalog: SqlCatalogStore = Depends(get_catalog),
    history: SqlHistoryStore = Depends(get_history),
):
    """Never serve this action to the user again."""
    if await catalog.get_action(request.action_id) is None:
        raise NotFoundError("action", request.action_id)
    await history.hide_action(user_id, request.action_id)


@router.post("/actions/show-more", response_model=ShowMoreResponse)
async def show_more_like_this(
    user_id: UUID,
    request: ActionRefRequest,
    catalog: SqlCatalogStore = Depends(get_catalog),
    history: SqlHistoryStore = Depends(get_history),
):
    action = await catalog.get_action(request.action_id)
    if action is None:
        raise NotFoundError("action", request.action_id)
    weight = await history.increment_preference_weight(
        user_id,
        action.category,
        settings.SHOW_MORE_INCREMENT,
        settings.PREFERENCE_WEIGHT_MAX,
    )
    return ShowMoreResponse(category=action.category, preference_weight=weight)


@router.post("/actions/assign-days", response_model=List[OutcomeResponse])
async def assign_days(
    user_id: UUID,
    request: AssignDaysRequest,
    ledger: AssignmentLedger = Depends(get_ledger),
    today: date = Depends(get_today),
):
    """Fill the calendar for the next N days; days already assigned keep their action."""
    start = request.start_date or today + timedelta(days=1)
    outcomes = await ledger.assign_days(user_id, start, request.days)
    return [to_outcome_response(outcome) for outcome in outcomes]


@router.post("/programs/pin", response_model=OutcomeResponse)
async def pin_program(
    user_id: UUID,
    request: PinProgramRequest,
    ledger: AssignmentLedger = Depends(get_ledger),
    history: SqlHistoryStore = Depends(get_history),
    today: date = Depends(get_today),
):
    """Join a multi-day program; its actions are pinned to consecutive days."""
    if await history.get_user_profile(user_id) is None:
        raise NotFoundError("user", str(user_id))
    outcome = await ledger.pin_program(user_id, request.program_id, request.start_date or today)
    return to_outcome_response(outcome)
