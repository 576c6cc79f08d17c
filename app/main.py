"""
FastAPI application factory.

Assembles the app, registers all routers and error handlers, and wires
up lifecycle events.  Database schema is managed by Alembic — NOT create_all.
"""

import logging

from fastapi import FastAPI

from app.controllers.account_controller import router as account_router
from app.controllers.admin_controller import router as admin_router
from app.controllers.auth_controller import router as auth_router
from app.controllers.password_reset_controller import router as password_reset_router
from app.controllers.profile_controller import router as profile_router
from app.core.config import settings
from app.core.database import engine
from app.core.errors import register_exception_handlers
from app.models import Base  # noqa: F401 — ensures all models are registered

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.APP_NAME,
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    register_exception_handlers(app)

    # ── Register routers ─────────────────────────────────────────────
    app.include_router(auth_router)
    app.include_router(password_reset_router)
    app.include_router(account_router)
    app.include_router(profile_router)
    app.include_router(admin_router)

    # ── Startup / Shutdown ───────────────────────────────────────────
    @app.on_event("startup")
    async def on_startup() -> None:
        """Run `alembic upgrade head` before starting the app."""
        logger.info(
            "%s starting (environment=%s, session limit=%d)",
            settings.APP_NAME,
            settings.ENVIRONMENT,
            settings.SESSION_LIMIT,
        )

    @app.on_event("shutdown")
    async def on_shutdown() -> None:
        await engine.dispose()
        logger.info("Database engine disposed.")

    # ── Health check ─────────────────────────────────────────────────
    @app.get("/health", tags=["Health"])
    async def health():
        return {"status": "ok"}

    return app


app = create_app()
