"""Application factory for the FastAPI app.

Centralizes app construction (metadata, middleware, handlers, routers) so
tests can build isolated instances.
"""

from __future__ import annotations

from fastapi import FastAPI

from attempt_guard.api.routes import attempts_router, health_router
from attempt_guard.core.config import settings
from attempt_guard.core.exception_handlers import setup_exception_handlers
from attempt_guard.core.logging import configure_logging
from attempt_guard.core.middleware import request_id_middleware
from attempt_guard.core.openapi import apply_openapi_customizations


def create_app() -> FastAPI:
    """Create and configure the FastAPI application instance."""
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    app = FastAPI(
        title="Attempt Guard API",
        description=(
            "Tracks failed attempts at sensitive operations (password reset, "
            "code verification, login) per action type and reports escalating "
            "lockouts. Requires X-API-Key."
        ),
        version="0.1.0",
        debug=settings.app.debug,
        license_info={
            "name": "MIT License",
            "url": "https://opensource.org/licenses/MIT",
        },
    )

    app.middleware("http")(request_id_middleware)
    setup_exception_handlers(app)

    app.include_router(attempts_router, prefix="/v1")
    app.include_router(health_router)

    apply_openapi_customizations(app)

    return app
