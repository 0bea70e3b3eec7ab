"""FastAPI application entry point."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.deps import AppServices
from .api.routes import health, navigation, routes
from .config import MonitorConfig, PlannerConfig, SessionConfig, Settings, settings
from .services.events import EventBus, InMemoryNotifier
from .services.navigation.registry import SessionRegistry
from .services.navigation.session import NavigationSession
from .services.providers.amap_client import AMapClient
from .services.routing.planner import RoutePlanner
from .services.traffic.monitor import TrafficMonitor

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def build_services(app_settings: Settings) -> AppServices:
    """Wire the AMap adapter into a planner and a session registry."""

    amap = AMapClient.from_settings(app_settings)
    bus = EventBus()
    planner = RoutePlanner(
        amap,
        traffic_source=amap,
        weather_source=amap,
        poi_source=amap,
        config=PlannerConfig.from_settings(app_settings),
    )
    monitor_config = MonitorConfig.from_settings(app_settings)
    session_config = SessionConfig.from_settings(app_settings)

    def new_session() -> NavigationSession:
        return NavigationSession(
            planner,
            TrafficMonitor(amap, config=monitor_config, bus=bus),
            weather_source=amap,
            notifier=InMemoryNotifier(),
            bus=bus,
            config=session_config,
        )

    return AppServices(planner=planner, registry=SessionRegistry(new_session), bus=bus, amap=amap)


def create_app(app_settings: Optional[Settings] = None, services: Optional[AppServices] = None) -> FastAPI:
    app_settings = app_settings or settings
    configure_logging(app_settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        app.state.services = services or build_services(app_settings)
        if not app_settings.amap_key:
            logger.warning("ROUTEWISE_AMAP_KEY is not set; AMap lookups will fail until it is configured")
        try:
            yield
        finally:
            active = app.state.services
            await active.registry.close_all()
            if active.amap is not None:
                await active.amap.aclose()
            logger.info("Shut down %s", app_settings.app_name)

    app = FastAPI(title=app_settings.app_name, lifespan=lifespan)
    if app_settings.frontend_allowed_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=list(app_settings.frontend_allowed_origins),
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    # Root endpoint for diagnostics
    @app.get("/")
    def root():
        return {
            "service": app_settings.app_name,
            "status": "running",
            "api_prefix": app_settings.api_prefix,
            "health": f"{app_settings.api_prefix}/health",
            "docs": "/docs",
        }

    app.include_router(health.router, prefix=app_settings.api_prefix)
    app.include_router(routes.router, prefix=app_settings.api_prefix)
    app.include_router(navigation.router, prefix=app_settings.api_prefix)
    return app


app = create_app()
