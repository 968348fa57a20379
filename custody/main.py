from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request

from custody.access.registry import Clock, utc_now
from custody.access.router import router as access_router
from custody.api.exception_handlers import register_exception_handlers
from custody.api.schemas import HealthOut
from custody.core.db import close_db, create_schema, init_db
from custody.core.logging import setup_logging
from custody.core.metrics import PrometheusMetricsMiddleware, metrics_router
from custody.core.middleware.http_logging import HttpLoggingMiddleware
from custody.core.settings import get_settings
from custody.core.state import init_state
from custody.events.router import router as events_router
from custody.records.router import router as records_router

setup_logging()


def create_app(*, clock: Clock = utc_now) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Settings are read at startup, not import time, so test collection needs no env.
        settings = get_settings()
        engine = init_db(app=app, database_url=str(settings.database_url))
        if settings.ledger_auto_create_schema:
            await create_schema(engine=engine)
        init_state(app=app, owner=settings.registry_owner, clock=clock)
        yield
        await close_db(app=app)

    app = FastAPI(
        title="Provider Custody API",
        description=(
            "Access-controlled patient record store.\n\n"
            "- A single owner grants and revokes provider authorization.\n"
            "- Authorized providers create and read records.\n"
            "- Only a record's current custodian may edit it or hand it to another "
            "authorized provider.\n"
            "- The caller is identified by the `X-Principal-ID` header set by the upstream "
            "authentication layer."
        ),
        lifespan=lifespan,
        docs_url="/swagger",
        openapi_tags=[
            {"name": "health", "description": "Liveness check."},
            {"name": "access", "description": "Owner-managed provider authorization."},
            {"name": "records", "description": "Patient records and custody transfer."},
            {"name": "events", "description": "Durable ledger of custody notifications."},
            {"name": "metrics", "description": "Prometheus-compatible metrics endpoint."},
        ],
    )

    app.add_middleware(PrometheusMetricsMiddleware)
    app.add_middleware(HttpLoggingMiddleware)

    register_exception_handlers(app)

    @app.get("/health", response_model=HealthOut, tags=["health"], summary="Health check")
    async def health(request: Request) -> HealthOut:
        return HealthOut(status="ok", records=len(request.app.state.record_store))

    app.include_router(metrics_router)
    app.include_router(access_router)
    app.include_router(records_router)
    app.include_router(events_router)
    return app


app = create_app()
