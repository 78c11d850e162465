"""Pydantic schemas for attempt records and block status."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class AttemptRecord(BaseModel):
    """Persisted failure history for one action type.

    Serialized with camelCase keys, e.g.
    ``{"attempts": 5, "lastAttemptTime": 1700000000000,
    "blockedUntil": 1700000060000, "waitTimeMinutes": 1}``.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    attempts: int = Field(
        ...,
        ge=0,
        description="Failures recorded since the last reset or idle expiry.",
    )
    last_attempt_time: int = Field(
        ...,
        alias="lastAttemptTime",
        description="Epoch milliseconds of the most recent recorded failure.",
    )
    blocked_until: int | None = Field(
        default=None,
        alias="blockedUntil",
        description="Epoch milliseconds until which the action is blocked.",
    )
    wait_time_minutes: int = Field(
        default=0,
        ge=0,
        alias="waitTimeMinutes",
        description="Backoff applied for the current block (0 when not blocked).",
    )

    def to_bytes(self) -> bytes:
        return self.model_dump_json(by_alias=True).encode("utf-8")


class BlockStatus(BaseModel):
    """Answer to "is this action currently blocked?"."""

    model_config = ConfigDict(populate_by_name=True)

    blocked: bool = Field(..., description="Whether the action must be refused.")
    remaining_seconds: int | None = Field(
        default=None,
        alias="remainingSeconds",
        description="Seconds until the block lifts (only when blocked).",
    )
    remaining_minutes: int | None = Field(
        default=None,
        alias="remainingMinutes",
        description="Minutes until the block lifts, rounded up (only when blocked).",
    )
    attempts: int | None = Field(
        default=None,
        description="Current attempt count, exposed for warning display.",
    )
    wait_time_minutes: int | None = Field(
        default=None,
        alias="waitTimeMinutes",
        description="Length of the active block in minutes (only when blocked).",
    )


OutcomeKind = Literal["error", "warning", "locked"]


class FailureOutcome(BaseModel):
    """What the caller should tell the user after a failed attempt."""

    outcome: OutcomeKind = Field(
        ...,
        description="'error' (plain), 'warning' (next failure blocks) or 'locked'.",
    )
    message: str = Field(..., description="User-facing message.")
    attempts: int = Field(
        0,
        description="Attempt count after this failure (0 when not tracked yet).",
    )
    recorded: bool = Field(
        False,
        description="Whether the failure was persisted by the limiter.",
    )
    remaining_seconds: int | None = Field(
        default=None,
        description="Seconds of lockout when outcome is 'locked'.",
    )
    wait_time_minutes: int | None = Field(
        default=None,
        description="Lockout length in minutes when outcome is 'locked'.",
    )


class GuardDecision(BaseModel):
    """Pre-flight answer for a guarded operation."""

    allowed: bool
    message: str | None = None
    remaining_seconds: int | None = None
    attempts: int | None = None
