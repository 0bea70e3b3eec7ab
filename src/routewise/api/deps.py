"""Request-scoped access to the services built at startup."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from fastapi import Request

from ..services.events import EventBus
from ..services.navigation.registry import SessionRegistry
from ..services.providers.amap_client import AMapClient
from ..services.routing.planner import RoutePlanner


@dataclass(slots=True)
class AppServices:
    planner: RoutePlanner
    registry: SessionRegistry
    bus: EventBus
    amap: Optional[AMapClient] = None


def get_services(request: Request) -> AppServices:
    return request.app.state.services


def get_planner(request: Request) -> RoutePlanner:
    return get_services(request).planner


def get_registry(request: Request) -> SessionRegistry:
    return get_services(request).registry
