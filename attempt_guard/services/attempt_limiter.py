"""Attempt limiter with escalating lockouts.

Tracks failed attempts at a sensitive operation per action type (e.g.
"forgotPassword", "login") and blocks further attempts with an escalating
backoff once a threshold is reached. State lives in an injected key-value
store as one JSON document per action type, so it survives restarts.

Counting rules:
- The first recorded failure is pinned to ``start_tracking_after`` and then
  incremented, so the caller sees "attempt 4" straight away.
- From ``max_attempts`` on, every failure sets a block whose length is taken
  from ``wait_times_minutes`` (clamped to the last entry).
- Once a block has elapsed, the next status check forgets the whole record.
- A record idle for longer than the expiry window is discarded.

Expiry is evaluated lazily on read; nothing runs in the background.

Failure policy is fail-open: store errors and malformed records are logged and
the operations return permissive defaults (not blocked, 0 attempts, ``None``
from ``record_failed_attempt``) instead of raising.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import math
import time
from typing import AsyncContextManager, Callable, Iterable, Sequence

from pydantic import ValidationError

from attempt_guard.adapters.store.base import AbstractKeyValueStore
from attempt_guard.core.config import LimiterSettings, settings
from attempt_guard.core.errors import MalformedRecordAppError, PersistenceAppError
from attempt_guard.schemas.attempts import AttemptRecord, BlockStatus
from attempt_guard.utils.time_format import Locale, format_remaining_time

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 5
WARNING_THRESHOLD = 4
START_TRACKING_AFTER = 3
WAIT_TIMES_MINUTES: tuple[int, ...] = (1, 2, 5, 10, 30)
EXPIRY_HOURS = 24
KEY_PREFIX = "attempt_limiter_"

_MS_PER_MINUTE = 60_000
_MS_PER_HOUR = 60 * _MS_PER_MINUTE

# Store failures a custom backend may surface without wrapping them
_STORE_ERRORS = (PersistenceAppError, OSError)


class AttemptLimiter:
    """Keyed, persistent attempt counter with escalating lockouts.

    Attributes:
        max_attempts: Attempt count at which blocking begins.
        warning_threshold: Attempt count at which callers should warn.
        start_tracking_after: Floor applied to the first recorded failure.
        wait_times_minutes: Backoff schedule in minutes.
    """

    def __init__(
        self,
        store: AbstractKeyValueStore,
        *,
        max_attempts: int = MAX_ATTEMPTS,
        warning_threshold: int = WARNING_THRESHOLD,
        start_tracking_after: int = START_TRACKING_AFTER,
        wait_times_minutes: Sequence[int] = WAIT_TIMES_MINUTES,
        expiry_hours: int = EXPIRY_HOURS,
        key_prefix: str = KEY_PREFIX,
        serialize_per_key: bool = True,
        locale: Locale = "en",
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the limiter.

        Args:
            store: Key-value store holding one record per action type.
            max_attempts: Attempt count at which blocking begins.
            warning_threshold: Attempt count at which callers should warn.
            start_tracking_after: Floor applied to the first recorded failure.
            wait_times_minutes: Escalating block durations in minutes.
            expiry_hours: Idle period after which a record is discarded.
            key_prefix: Namespace prepended to the action type in the store.
            serialize_per_key: Serialize operations on the same action type.
            locale: Language for format_remaining_time.
            clock: Time source returning UNIX time in seconds.

        Raises:
            ValueError: If the thresholds or schedule are inconsistent.
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if not 0 <= start_tracking_after < max_attempts:
            raise ValueError("start_tracking_after must be in [0, max_attempts)")
        if warning_threshold > max_attempts:
            raise ValueError("warning_threshold must not exceed max_attempts")
        if not wait_times_minutes or any(m < 1 for m in wait_times_minutes):
            raise ValueError("wait_times_minutes must be a non-empty list of positive minutes")
        if expiry_hours < 1:
            raise ValueError("expiry_hours must be >= 1")

        self._store = store
        self.max_attempts = max_attempts
        self.warning_threshold = warning_threshold
        self.start_tracking_after = start_tracking_after
        self.wait_times_minutes: tuple[int, ...] = tuple(wait_times_minutes)
        self._expiry_ms = expiry_hours * _MS_PER_HOUR
        self._key_prefix = key_prefix
        self._serialize_per_key = serialize_per_key
        self._locale = locale
        self._clock = clock
        self._locks: dict[str, asyncio.Lock] = {}

    @classmethod
    def from_settings(
        cls,
        store: AbstractKeyValueStore,
        limiter_settings: LimiterSettings | None = None,
        *,
        clock: Callable[[], float] = time.time,
    ) -> "AttemptLimiter":
        """Build a limiter from LIMITER_* settings."""
        cfg = limiter_settings or settings.limiter
        return cls(
            store,
            max_attempts=cfg.max_attempts,
            warning_threshold=cfg.warning_threshold,
            start_tracking_after=cfg.start_tracking_after,
            wait_times_minutes=cfg.wait_times_minutes,
            expiry_hours=cfg.expiry_hours,
            key_prefix=cfg.key_prefix,
            serialize_per_key=cfg.serialize_per_key,
            locale=cfg.locale,
            clock=clock,
        )

    def key_for(self, action_type: str) -> str:
        """Return the store key for an action type."""
        if not action_type:
            raise ValueError("action_type must be a non-empty string")
        return f"{self._key_prefix}{action_type}"

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def _guard(self, action_type: str) -> AsyncContextManager[object]:
        if not self._serialize_per_key:
            return contextlib.nullcontext()
        lock = self._locks.get(action_type)
        if lock is None:
            lock = self._locks[action_type] = asyncio.Lock()
        return lock

    def _is_expired(self, record: AttemptRecord, now_ms: int) -> bool:
        return now_ms - record.last_attempt_time > self._expiry_ms

    def _wait_time_for(self, attempts: int) -> int:
        index = min(attempts - self.max_attempts, len(self.wait_times_minutes) - 1)
        return self.wait_times_minutes[index]

    async def _load(self, action_type: str) -> AttemptRecord | None:
        """Read and decode the stored record.

        Raises:
            PersistenceAppError: If the store cannot be read.
            MalformedRecordAppError: If the stored value is not a valid record.
        """
        key = self.key_for(action_type)
        raw = await self._store.get(key)
        if raw is None:
            return None
        try:
            return AttemptRecord.model_validate_json(raw)
        except ValidationError as exc:
            raise MalformedRecordAppError(
                code="malformed_attempt_record",
                message="Stored attempt record could not be parsed",
                details={
                    "action_type": action_type,
                    "store_key": key,
                    "context": {"errors": exc.error_count()},
                },
            ) from exc

    async def _load_fresh(self, action_type: str, now_ms: int) -> AttemptRecord | None:
        """Load the record, deleting it when it is past the idle expiry."""
        record = await self._load(action_type)
        if record is not None and self._is_expired(record, now_ms):
            await self._store.delete(self.key_for(action_type))
            logger.info(
                "attempt_limiter.expired",
                extra={
                    "action_type": action_type,
                    "attempts": record.attempts,
                    "idle_ms": now_ms - record.last_attempt_time,
                },
            )
            return None
        return record

    def _log_store_failure(self, operation: str, action_type: str, exc: Exception) -> None:
        logger.error(
            "attempt_limiter.persistence_failed",
            extra={
                "operation": operation,
                "action_type": action_type,
                "error_type": type(exc).__name__,
                "error_code": getattr(exc, "code", None),
                "error_msg": str(exc),
            },
        )

    async def get_attempt_data(self, action_type: str) -> AttemptRecord | None:
        """Return the stored record as-is, without expiry handling.

        Returns None when no record exists or it cannot be read.
        """
        try:
            return await self._load(action_type)
        except _STORE_ERRORS as exc:
            self._log_store_failure("get_attempt_data", action_type, exc)
            return None

    async def record_failed_attempt(self, action_type: str) -> AttemptRecord | None:
        """Record one failure and compute the resulting block, if any.

        Args:
            action_type: Guarded operation identifier (e.g. "forgotPassword").

        Returns:
            The updated record, or None when it could not be persisted.
        """
        key = self.key_for(action_type)
        async with self._guard(action_type):
            now_ms = self._now_ms()
            try:
                existing = await self._load(action_type)
            except MalformedRecordAppError as exc:
                # Overwritten below with a fresh record
                logger.warning(
                    "attempt_limiter.malformed_record",
                    extra={"action_type": action_type, "error_msg": str(exc)},
                )
                existing = None
            except _STORE_ERRORS as exc:
                self._log_store_failure("record_failed_attempt", action_type, exc)
                return None

            attempts = 0
            if existing is not None and not self._is_expired(existing, now_ms):
                attempts = existing.attempts

            attempts = max(attempts, self.start_tracking_after) + 1

            blocked_until: int | None = None
            wait_time_minutes = 0
            if attempts >= self.max_attempts:
                wait_time_minutes = self._wait_time_for(attempts)
                blocked_until = now_ms + wait_time_minutes * _MS_PER_MINUTE

            record = AttemptRecord(
                attempts=attempts,
                last_attempt_time=now_ms,
                blocked_until=blocked_until,
                wait_time_minutes=wait_time_minutes,
            )

            try:
                await self._store.set(key, record.to_bytes())
            except _STORE_ERRORS as exc:
                self._log_store_failure("record_failed_attempt", action_type, exc)
                return None

        if blocked_until is not None:
            logger.warning(
                "attempt_limiter.blocked",
                extra={
                    "action_type": action_type,
                    "attempts": attempts,
                    "wait_time_minutes": wait_time_minutes,
                    "blocked_until": blocked_until,
                },
            )
        else:
            logger.info(
                "attempt_limiter.recorded",
                extra={"action_type": action_type, "attempts": attempts},
            )
        return record

    async def reset_attempts(self, action_type: str) -> None:
        """Forget all failures for an action type (called after success)."""
        key = self.key_for(action_type)
        async with self._guard(action_type):
            try:
                await self._store.delete(key)
            except _STORE_ERRORS as exc:
                self._log_store_failure("reset_attempts", action_type, exc)
                return
        logger.info("attempt_limiter.reset", extra={"action_type": action_type})

    async def reset_all_attempts(self, action_types: Iterable[str]) -> None:
        """Reset several action types, e.g. on sign-out."""
        for action_type in action_types:
            await self.reset_attempts(action_type)

    async def is_blocked(self, action_type: str) -> BlockStatus:
        """Report whether the action is currently locked out.

        An elapsed block clears the whole record, forgiving every prior
        attempt rather than only lifting the block.
        """
        async with self._guard(action_type):
            now_ms = self._now_ms()
            try:
                record = await self._load_fresh(action_type, now_ms)
                if record is None:
                    return BlockStatus(blocked=False)

                if record.attempts >= self.max_attempts and record.blocked_until is not None:
                    if now_ms < record.blocked_until:
                        remaining_seconds = math.ceil((record.blocked_until - now_ms) / 1000)
                        return BlockStatus(
                            blocked=True,
                            remaining_seconds=remaining_seconds,
                            remaining_minutes=math.ceil(remaining_seconds / 60),
                            attempts=record.attempts,
                            wait_time_minutes=record.wait_time_minutes,
                        )

                    await self._store.delete(self.key_for(action_type))
                    logger.info(
                        "attempt_limiter.block_elapsed",
                        extra={"action_type": action_type, "attempts": record.attempts},
                    )
                    return BlockStatus(blocked=False)

                return BlockStatus(blocked=False, attempts=record.attempts)
            except _STORE_ERRORS as exc:
                self._log_store_failure("is_blocked", action_type, exc)
                return BlockStatus(blocked=False)

    async def get_current_attempts(self, action_type: str) -> int:
        """Return the attempt count of a live record, or 0."""
        async with self._guard(action_type):
            try:
                record = await self._load_fresh(action_type, self._now_ms())
            except _STORE_ERRORS as exc:
                self._log_store_failure("get_current_attempts", action_type, exc)
                return 0
        return record.attempts if record is not None else 0

    async def has_reached_max_attempts(self, action_type: str) -> bool:
        """Whether a live record has reached the blocking threshold."""
        async with self._guard(action_type):
            try:
                record = await self._load_fresh(action_type, self._now_ms())
            except _STORE_ERRORS as exc:
                self._log_store_failure("has_reached_max_attempts", action_type, exc)
                return False
        return record is not None and record.attempts >= self.max_attempts

    def format_remaining_time(self, seconds: int | float) -> str:
        """Render seconds using the limiter's configured locale."""
        return format_remaining_time(seconds, locale=self._locale)
