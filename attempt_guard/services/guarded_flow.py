"""Reference caller wiring a guarded operation to the attempt limiter.

Sequence for one attempt:
1. ``check``: refuse while the action type is blocked.
2. Run the operation.
3. ``on_success`` resets the history, ``on_failure`` records the failure
   (subject to the record policy) and chooses the user-facing message.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Literal

from attempt_guard.schemas.attempts import FailureOutcome, GuardDecision
from attempt_guard.services.attempt_limiter import AttemptLimiter

logger = logging.getLogger(__name__)

RecordPolicy = Literal["gated", "all"]

DEFAULT_ERROR_MESSAGE = "The operation failed. Please try again."


class GuardedOperationFailed(Exception):
    """Raised by a guarded operation to report an ordinary (expected) failure."""


@dataclass
class GuardedResult:
    """Outcome of GuardedActionFlow.run."""

    decision: GuardDecision
    succeeded: bool = False
    value: Any = None
    failure: FailureOutcome | None = None


class GuardedActionFlow:
    """Apply the limiter's caller contract around an operation.

    With ``record_policy="gated"`` a failure is only recorded once the live
    attempt count has already reached ``start_tracking_after``; earlier
    failures produce a plain error and leave no trace. ``"all"`` records
    every failure.
    """

    def __init__(
        self,
        limiter: AttemptLimiter,
        *,
        record_policy: RecordPolicy = "gated",
        error_message: str = DEFAULT_ERROR_MESSAGE,
    ) -> None:
        if record_policy not in ("gated", "all"):
            raise ValueError("record_policy must be 'gated' or 'all'")
        self._limiter = limiter
        self._record_policy = record_policy
        self._error_message = error_message

    @property
    def limiter(self) -> AttemptLimiter:
        return self._limiter

    def blocked_message(self, remaining_seconds: int) -> str:
        time_text = self._limiter.format_remaining_time(remaining_seconds)
        return (
            "Too many failed attempts. "
            f"Please wait {time_text} before trying again."
        )

    def warning_message(self, attempts: int) -> str:
        return (
            f"You have made {attempts} failed attempts. "
            "One more failure will temporarily block this action."
        )

    async def check(self, action_type: str) -> GuardDecision:
        """Decide whether the guarded operation may run now."""
        status = await self._limiter.is_blocked(action_type)
        if status.blocked:
            remaining = status.remaining_seconds or 0
            return GuardDecision(
                allowed=False,
                message=self.blocked_message(remaining),
                remaining_seconds=remaining,
                attempts=status.attempts,
            )
        return GuardDecision(allowed=True, attempts=status.attempts)

    async def on_success(self, action_type: str) -> None:
        await self._limiter.reset_attempts(action_type)

    async def on_failure(
        self,
        action_type: str,
        *,
        error_message: str | None = None,
    ) -> FailureOutcome:
        """Record a failed attempt and pick the message to show.

        Args:
            action_type: Guarded operation identifier.
            error_message: Plain error text; defaults to the flow's message.

        Returns:
            FailureOutcome describing what to tell the user.
        """
        plain = error_message or self._error_message
        limiter = self._limiter

        if self._record_policy == "gated":
            current = await limiter.get_current_attempts(action_type)
            if current < limiter.start_tracking_after:
                logger.debug(
                    "guarded_flow.failure_untracked",
                    extra={"action_type": action_type, "attempts": current},
                )
                return FailureOutcome(outcome="error", message=plain, attempts=current)

        record = await limiter.record_failed_attempt(action_type)
        if record is None:
            # Store unavailable: fail open with a plain error
            return FailureOutcome(outcome="error", message=plain)

        if record.attempts >= limiter.max_attempts and record.blocked_until is not None:
            remaining = record.wait_time_minutes * 60
            return FailureOutcome(
                outcome="locked",
                message=self.blocked_message(remaining),
                attempts=record.attempts,
                recorded=True,
                remaining_seconds=remaining,
                wait_time_minutes=record.wait_time_minutes,
            )

        if record.attempts >= limiter.warning_threshold:
            return FailureOutcome(
                outcome="warning",
                message=self.warning_message(record.attempts),
                attempts=record.attempts,
                recorded=True,
            )

        return FailureOutcome(
            outcome="error",
            message=plain,
            attempts=record.attempts,
            recorded=True,
        )

    async def run(
        self,
        action_type: str,
        operation: Callable[[], Awaitable[Any]],
    ) -> GuardedResult:
        """Run operation under the limiter.

        A falsy return value or GuardedOperationFailed counts as an ordinary
        failure. Any other exception is recorded as a failure and re-raised.
        """
        decision = await self.check(action_type)
        if not decision.allowed:
            return GuardedResult(decision=decision)

        try:
            value = await operation()
        except GuardedOperationFailed as exc:
            failure = await self.on_failure(action_type, error_message=str(exc) or None)
            return GuardedResult(decision=decision, failure=failure)
        except Exception:
            await self.on_failure(action_type)
            raise

        if not value:
            failure = await self.on_failure(action_type)
            return GuardedResult(decision=decision, value=value, failure=failure)

        await self.on_success(action_type)
        return GuardedResult(decision=decision, succeeded=True, value=value)
