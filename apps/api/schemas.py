from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime, date
from typing import Optional, List, Dict, Any


class ActionResponse(BaseModel):
    id: str
    name: str
    category: str
    description: Optional[str] = None
    benefit: Optional[str] = None
    theme: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class DailyActionDTO(BaseModel):
    """The {action, date} payload handed to notification and email rendering."""
    action: ActionResponse
    date: date


class DailyActionResponse(DailyActionDTO):
    completed: bool = False
    favorited: bool = False
    dnc: bool = False
    source: str = "auto"
    completed_at: Optional[datetime] = None


class OutcomeResponse(BaseModel):
    kind: str
    context: Dict[str, Any] = {}
    assignment: Optional[DailyActionResponse] = None


class CompletionResponse(BaseModel):
    kind: str
    assignment: Optional[DailyActionResponse] = None
    decay_reversed: float = 0.0
    new_badges: List[str] = []
    program_completed: bool = False
    failures: List[Dict[str, str]] = []


class FavoriteRequest(BaseModel):
    favorited: bool = True


class ReplaceRequest(BaseModel):
    target_date: Optional[date] = None


class ActionRefRequest(BaseModel):
    action_id: str


class ShowMoreResponse(BaseModel):
    category: str
    preference_weight: float


class AssignDaysRequest(BaseModel):
    start_date: Optional[date] = None
    days: int = Field(default=7, ge=1, le=31)


class PinProgramRequest(BaseModel):
    program_id: str
    start_date: Optional[date] = None


class HealthScoreResponse(BaseModel):
    score: float
    baseline: float
    daily_points: float
    weekly_points: float
    event_bonus: float
    decay: float


class BadgeProgressResponse(BaseModel):
    current: int
    target: int
    percentage: int


class BadgeStatusResponse(BaseModel):
    badge_id: str
    name: str
    description: Optional[str] = None
    requirement_type: str
    earned: bool
    earned_at: Optional[datetime] = None
    progress: Optional[BadgeProgressResponse] = None
