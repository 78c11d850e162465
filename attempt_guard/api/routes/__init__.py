from __future__ import annotations

from attempt_guard.api.routes.attempts import router as attempts_router
from attempt_guard.api.routes.health import router as health_router

__all__ = ["attempts_router", "health_router"]
