"""Attempt limiter dependencies for FastAPI routes.

This module wires the attempt limiter into the HTTP layer.

Design goals:
- Minimal coupling: routes depend on dependency functions only.
- Swap-friendly: the store backend is chosen by settings behind an abstract
  interface.
- One limiter per process, so per-key locks are shared across requests.
"""

from __future__ import annotations

import logging
from typing import Annotated, Awaitable, Callable

from fastapi import Depends, Path

from attempt_guard.adapters.store.factory import create_store
from attempt_guard.core.config import settings
from attempt_guard.core.errors import ActionBlockedAppError
from attempt_guard.services.attempt_limiter import AttemptLimiter
from attempt_guard.services.guarded_flow import GuardedActionFlow

logger = logging.getLogger(__name__)

ACTION_TYPE_PATTERN = r"^[A-Za-z0-9_.-]+$"

ActionTypePath = Annotated[
    str,
    Path(
        min_length=1,
        max_length=64,
        pattern=ACTION_TYPE_PATTERN,
        description="Guarded operation identifier, e.g. 'forgotPassword'.",
    ),
]

_limiter: AttemptLimiter | None = None
_limiter_config: str | None = None


def get_attempt_limiter() -> AttemptLimiter:
    """Return the process-wide attempt limiter.

    The instance is cached in-module to keep per-key locks across requests.
    If the limiter settings change (primarily in tests), it is rebuilt.
    """

    global _limiter, _limiter_config

    config = settings.limiter.model_dump_json()
    if _limiter is None or _limiter_config != config:
        _limiter = AttemptLimiter.from_settings(create_store(settings.limiter))
        _limiter_config = config
        logger.info(
            "attempt_limiter.configured",
            extra={
                "store_backend": settings.limiter.store_backend,
                "max_attempts": settings.limiter.max_attempts,
                "wait_times_minutes": settings.limiter.wait_times_minutes,
            },
        )

    return _limiter


def get_guarded_flow(
    limiter: Annotated[AttemptLimiter, Depends(get_attempt_limiter)],
) -> GuardedActionFlow:
    return GuardedActionFlow(limiter, record_policy=settings.limiter.record_policy)


async def _raise_if_blocked(limiter: AttemptLimiter, action_type: str) -> None:
    status = await limiter.is_blocked(action_type)
    if not status.blocked:
        return

    retry_after = status.remaining_seconds or 0
    logger.warning(
        "attempt_limiter.refused",
        extra={
            "action_type": action_type,
            "attempts": status.attempts,
            "retry_after_s": retry_after,
        },
    )
    raise ActionBlockedAppError(
        code="action_blocked",
        message=(
            "Too many failed attempts. "
            f"Try again in {limiter.format_remaining_time(retry_after)}."
        ),
        details={
            "action_type": action_type,
            "retry_after": retry_after,
            "attempts": status.attempts or 0,
            "wait_time_minutes": status.wait_time_minutes or 0,
        },
    )


async def enforce_not_blocked(
    action_type: ActionTypePath,
    limiter: Annotated[AttemptLimiter, Depends(get_attempt_limiter)],
) -> None:
    """FastAPI dependency refusing requests whose path action type is blocked.

    Raises:
        ActionBlockedAppError: Rendered as HTTP 429 with Retry-After.
    """

    await _raise_if_blocked(limiter, action_type)


def guard_action(action_type: str) -> Callable[..., Awaitable[None]]:
    """Build a dependency that refuses requests while action_type is blocked.

    Usage:
        @router.post("/password/forgot", dependencies=[Depends(guard_action("forgotPassword"))])
    """

    if not action_type:
        raise ValueError("action_type must be a non-empty string")

    async def _dependency(
        limiter: Annotated[AttemptLimiter, Depends(get_attempt_limiter)],
    ) -> None:
        await _raise_if_blocked(limiter, action_type)

    return _dependency
