"""
cardhub.api.app

FastAPI app factory for the CardHub service.

Responsibilities:
- Build the FastAPI application and register routers/middleware/error handlers.
- Initialize and dispose shared infrastructure (DB engine, identity store, audit logger).
- Provide a single composition root where cross-cutting concerns live.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from cardhub import __version__
from cardhub.api.errors import register_exception_handlers
from cardhub.api.routers.activity import router as activity_router
from cardhub.api.routers.auth import router as auth_router
from cardhub.api.routers.claims import router as claims_router
from cardhub.api.routers.health import router as health_router
from cardhub.api.routers.profiles import router as profiles_router
from cardhub.api.routers.users import router as users_router
from cardhub.db.init_db import init_db
from cardhub.db.session import create_engine, create_sessionmaker
from cardhub.identity.store import IdentityStore
from cardhub.observability.logging import configure_logging, get_logger
from cardhub.observability.middleware import RequestContextMiddleware
from cardhub.services.activity import registered_hook
from cardhub.services.audit_logger import AuditLogger
from cardhub.settings import Settings

log = get_logger(__name__)


def create_app(*, settings: Settings) -> FastAPI:
    # Configure structured logging once at process startup (before app serves requests).
    configure_logging(service_name=settings.service_name, level=settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        log.info("startup", env=settings.env)
        engine = create_engine(settings)
        sessionmaker = create_sessionmaker(engine)
        if settings.env in ("dev", "test"):
            # Dev/test convenience: create tables automatically. Prod should use Alembic.
            await init_db(engine)

        audit = AuditLogger(sessionmaker)
        identity = IdentityStore(session_factory=sessionmaker, settings=settings)
        identity.on_user_created(registered_hook(audit))

        app.state.engine = engine
        app.state.sessionmaker = sessionmaker
        app.state.audit = audit
        app.state.identity = identity
        try:
            yield
        finally:
            # Let in-flight audit writes land before the pool goes away.
            await audit.drain()
            await engine.dispose()
            log.info("shutdown")

    app = FastAPI(
        title="CardHub",
        version=__version__,
        docs_url="/docs",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_middleware(RequestContextMiddleware, trust_forwarded_for=settings.trust_forwarded_for)
    register_exception_handlers(app)
    app.include_router(health_router, tags=["health"])
    app.include_router(auth_router)
    app.include_router(profiles_router)
    app.include_router(claims_router)
    app.include_router(activity_router)
    app.include_router(users_router)

    return app


# --- Module Notes -----------------------------------------------------------
# This file is intentionally small: app composition stays here; authorization logic stays
# in services.
