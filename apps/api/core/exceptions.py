"""
API errors for the daily action routes.

Engine operations report conditions as EngineOutcome values instead of
raising. Routers translate the kinds that are client errors into the
exceptions below; every error body carries a machine-readable error_code.
"""
from typing import Any, Dict, Optional

from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse

from services.personalization_types import EngineOutcome, OutcomeKind

# NOT_FOUND resource -> context key holding its identifier
IDENTIFIER_KEYS = {
    "user": "user_id",
    "assignment": "target_date",
    "program": "program_id",
    "action": "action_id",
}


class APIException(HTTPException):
    """Base API exception; `context` is echoed in the response body."""

    def __init__(
        self,
        status_code: int,
        detail: str,
        error_code: str,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(status_code=status_code, detail=detail)
        self.error_code = error_code
        self.context = context or {}


class NotFoundError(APIException):
    def __init__(self, resource: str, identifier: str):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"{resource} not found: {identifier}",
            error_code="NOT_FOUND",
            context={"resource": resource},
        )


class PlanRestrictedError(APIException):
    """The user's subscription tier does not allow the operation."""

    def __init__(self, detail: str, tier: str):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=detail,
            error_code="PLAN_RESTRICTED",
            context={"subscription_tier": tier},
        )


class AssignmentConflictError(APIException):
    """The assignment's state does not allow the change (e.g. replacing a completed one)."""

    def __init__(self, detail: str, target_date: str):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=detail,
            error_code="ASSIGNMENT_CONFLICT",
            context={"target_date": target_date},
        )


def raise_for_outcome(outcome: EngineOutcome) -> EngineOutcome:
    """
    Raise for outcome kinds that are client or server errors.

    `no_action_available` is not an error: the caller renders it as an
    empty state, so it passes through with the others.
    """
    if outcome.kind == OutcomeKind.NOT_FOUND:
        resource = outcome.context.get("resource", "resource")
        identifier = outcome.context.get(IDENTIFIER_KEYS.get(resource, "id"), "")
        raise NotFoundError(resource, str(identifier))
    if outcome.kind == OutcomeKind.ERROR:
        raise APIException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Engine operation failed",
            error_code="ENGINE_ERROR",
            context=outcome.context,
        )
    return outcome


async def api_exception_handler(request: Request, exc: APIException) -> JSONResponse:
    content: Dict[str, Any] = {"detail": exc.detail, "error_code": exc.error_code}
    if exc.context:
        content["context"] = exc.context
    return JSONResponse(status_code=exc.status_code, content=content)
