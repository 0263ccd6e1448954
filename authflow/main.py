# authflow/main.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Optional

from fastapi import FastAPI
from fastapi.openapi.utils import get_openapi

from authflow.api.routes import auth as auth_routes
from authflow.api.routes import profile as profile_routes
from authflow.core.config import Settings, get_settings
from authflow.core.logging_config import configure_logging
from authflow.db.database import Database
from authflow.services import build_services
from authflow.services.mail_service import Mailer
from authflow.utils.timeutils import utcnow

log = logging.getLogger(__name__)

API_PREFIX = "/api"


def create_app(
    settings: Optional[Settings] = None,
    *,
    database: Optional[Database] = None,
    mailer: Optional[Mailer] = None,
    clock: Callable[[], datetime] = utcnow,
) -> FastAPI:
    """Build the application with explicitly wired collaborators."""
    settings = settings or get_settings()
    configure_logging(settings.LOG_LEVEL)

    app = FastAPI(
        title=settings.APP_NAME,
        version="1.0.0",
        docs_url="/docs",
        redoc_url=None,
        openapi_url="/openapi.json",
    )

    # =========================================================================
    # Collaborators
    # =========================================================================
    database = database or Database(settings.DB_URL)
    database.create_all()
    app.state.settings = settings
    app.state.database = database
    app.state.services = build_services(settings, mailer=mailer, clock=clock)

    # =========================================================================
    # Routers
    # =========================================================================
    app.include_router(auth_routes.router, prefix=f"{API_PREFIX}/auth")
    app.include_router(profile_routes.v1_router, prefix=f"{API_PREFIX}/v1/auth")
    app.include_router(profile_routes.v2_router, prefix=f"{API_PREFIX}/v2/auth")

    @app.get("/health", include_in_schema=False)
    def health() -> dict:
        return {"status": "ok"}

    # =========================================================================
    # OpenAPI: Bearer auth enabled globally
    # =========================================================================
    def custom_openapi():
        if app.openapi_schema:
            return app.openapi_schema

        openapi_schema = get_openapi(
            title=settings.APP_NAME,
            version="1.0.0",
            description="Registration, email verification, sessions and password reset",
            routes=app.routes,
        )
        openapi_schema.setdefault("components", {}).setdefault("securitySchemes", {})
        openapi_schema["components"]["securitySchemes"]["BearerAuth"] = {
            "type": "http",
            "scheme": "bearer",
            "bearerFormat": "JWT",
        }
        openapi_schema["security"] = [{"BearerAuth": []}]

        app.openapi_schema = openapi_schema
        return app.openapi_schema

    app.openapi = custom_openapi

    log.info("%s started (env=%s)", settings.APP_NAME, settings.APP_ENV)
    return app
