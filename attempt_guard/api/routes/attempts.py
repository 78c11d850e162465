from typing import Annotated

from fastapi import APIRouter, Depends, Response, status

from attempt_guard.core.auth import verify_api_key
from attempt_guard.core.lockout import (
    ActionTypePath,
    enforce_not_blocked,
    get_attempt_limiter,
    get_guarded_flow,
)
from attempt_guard.schemas.attempts import BlockStatus, FailureOutcome
from attempt_guard.services.attempt_limiter import AttemptLimiter
from attempt_guard.services.guarded_flow import GuardedActionFlow

router = APIRouter(
    prefix="/attempts",
    tags=["Attempts"],
    dependencies=[Depends(verify_api_key)],
)


@router.get("/{action_type}", response_model=BlockStatus, response_model_exclude_none=True)
async def get_block_status(
    action_type: ActionTypePath,
    limiter: Annotated[AttemptLimiter, Depends(get_attempt_limiter)],
) -> BlockStatus:
    """Report whether the action type is blocked and the current attempt count.

    Call before attempting the guarded operation; when ``blocked`` is true the
    client must refuse and show the remaining time.
    """
    return await limiter.is_blocked(action_type)


@router.post(
    "/{action_type}/failures",
    response_model=FailureOutcome,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(enforce_not_blocked)],
)
async def report_failure(
    action_type: ActionTypePath,
    flow: Annotated[GuardedActionFlow, Depends(get_guarded_flow)],
) -> FailureOutcome:
    """Report a failed attempt of the guarded operation.

    Returns the message kind the client should display: a plain ``error``, a
    ``warning`` that the next failure blocks, or ``locked`` with the lockout
    length. Responds 429 if the action type is already blocked.
    """
    return await flow.on_failure(action_type)


@router.delete("/{action_type}", status_code=status.HTTP_204_NO_CONTENT)
async def reset_attempts(
    action_type: ActionTypePath,
    limiter: Annotated[AttemptLimiter, Depends(get_attempt_limiter)],
) -> Response:
    """Clear the failure history after the guarded operation succeeded."""
    await limiter.reset_attempts(action_type)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
