"""
ecomap_server.api.app

FastAPI app factory for the EcoMap server.

Responsibilities:
- Build the FastAPI application and register routers, error handlers and middleware.
- Initialize and dispose shared infrastructure (DB engine, session factory, store, services).
- Provide a single composition root where cross-cutting concerns live.
"""

from __future__ import annotations

from fastapi import FastAPI

from ecomap_server.api.authz_rules import build_rules
from ecomap_server.api.errors import (
    forbidden_handler,
    register_exception_handlers,
    unauthorized_handler,
)
from ecomap_server.api.routers.containers import containers_router, landfills_router
from ecomap_server.api.routers.employees import router as employees_router
from ecomap_server.api.routers.fleet import trucks_router, warehouses_router
from ecomap_server.api.routers.health import router as health_router
from ecomap_server.api.routers.routes import router as routes_router
from ecomap_server.api.routers.users import router as users_router
from ecomap_server.auth.authz import Authorizer
from ecomap_server.auth.credentials import CredentialService
from ecomap_server.auth.middleware import AuthorizationMiddleware
from ecomap_server.db.init_db import init_db
from ecomap_server.db.session import create_engine, create_sessionmaker
from ecomap_server.db.store import SqlStore
from ecomap_server.observability.logging import configure_logging, get_logger
from ecomap_server.observability.middleware import RequestContextMiddleware
from ecomap_server.services.registry import Services, build_services
from ecomap_server.settings import Settings

log = get_logger(__name__)


def create_app(
    *,
    settings: Settings,
    services: Services | None = None,
    credentials: CredentialService | None = None,
) -> FastAPI:
    """
    `services` replaces the SQL-backed registry (tests inject one with a recording logger);
    the engine is still created so `/readyz` has something to ping.
    """

    configure_logging(
        service_name=settings.service_name,
        level=settings.log_level,
        json_logs=settings.env != "dev",
    )
    credentials = credentials or CredentialService.from_settings(settings)

    app = FastAPI(
        title="EcoMap",
        version="0.1.0",
        docs_url="/docs",
        redoc_url=None,
        openapi_url="/openapi.json",
    )

    register_exception_handlers(app)

    # add_middleware prepends: request context wraps authorization.
    app.add_middleware(
        AuthorizationMiddleware,
        authorizer=Authorizer(rules=build_rules(), tokens=credentials),
        unauthorized_handler=unauthorized_handler,
        forbidden_handler=forbidden_handler,
    )
    app.add_middleware(RequestContextMiddleware)

    app.include_router(health_router, tags=["health"])
    app.include_router(users_router)
    app.include_router(employees_router)
    app.include_router(containers_router)
    app.include_router(landfills_router)
    app.include_router(trucks_router)
    app.include_router(warehouses_router)
    app.include_router(routes_router)

    if services is not None:
        app.state.services = services

    @app.on_event("startup")
    async def _startup() -> None:
        log.info("startup", env=settings.env)
        engine = create_engine(settings)
        app.state.engine = engine
        app.state.sessionmaker = create_sessionmaker(engine)
        if services is None:
            app.state.services = build_services(
                store=SqlStore(app.state.sessionmaker),
                credentials=credentials,
                settings=settings,
            )
        if settings.env in ("dev", "test"):
            # Prod schemas are managed with Alembic migrations.
            await init_db(engine)

    @app.on_event("shutdown")
    async def _shutdown() -> None:
        engine = getattr(app.state, "engine", None)
        if engine is not None:
            await engine.dispose()
        log.info("shutdown")

    return app


# --- Module Notes -----------------------------------------------------------
# App composition stays here; business rules live in services and persistence in `db`.
