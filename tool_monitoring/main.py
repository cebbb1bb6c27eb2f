from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Iterable, Optional

import structlog
from fastapi import FastAPI

from tool_monitoring import __version__
from tool_monitoring.api.routes.metrics import router as metrics_router
from tool_monitoring.api.routes.prometheus import router as prometheus_router
from tool_monitoring.core.config import get_settings
from tool_monitoring.core.logging import configure_logging
from tool_monitoring.db.session import get_sessionmaker, init_db
from tool_monitoring.metrics.builtin import DEFAULT_COLLECTOR_FACTORIES
from tool_monitoring.metrics.collection import CollectorFactory, assemble_collection
from tool_monitoring.services.metrics_manager import MetricsManager

logger = structlog.get_logger()


def sync_registry(factories: Iterable[CollectorFactory], delete_orphans: bool = False) -> None:
    """Register every collected metric that the registry does not know yet."""
    session = get_sessionmaker()()
    try:
        manager = MetricsManager(session, assemble_collection(session, factories))
        manager.sync(delete_orphans=delete_orphans)
    finally:
        session.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    init_db()
    if settings.sync_on_startup:
        sync_registry(app.state.collector_factories, delete_orphans=settings.delete_orphans_on_sync)
    logger.info("app.started", app=settings.app_name, synced=settings.sync_on_startup)
    yield


def create_app(collector_factories: Optional[Iterable[CollectorFactory]] = None) -> FastAPI:
    """Build the API; ``collector_factories`` defaults to the built-in metrics only."""
    settings = get_settings()
    configure_logging(settings.log_level)
    app = FastAPI(title=settings.app_name, version=__version__, lifespan=lifespan)
    app.state.collector_factories = tuple(
        DEFAULT_COLLECTOR_FACTORIES if collector_factories is None else collector_factories
    )

    @app.get("/healthz")
    def healthz() -> dict[str, str | bool]:
        return {"ok": True, "service": "tool-monitoring"}

    app.include_router(metrics_router, prefix=settings.api_prefix)
    app.include_router(prometheus_router, prefix=settings.api_prefix)
    return app
