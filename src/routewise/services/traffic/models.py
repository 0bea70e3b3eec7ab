"""Traffic monitoring domain models."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional

from ...models.domain import BoundingBox, Coordinate


class EventKind(str, Enum):
    ACCIDENT = "accident"
    CONSTRUCTION = "construction"
    CONTROL = "control"
    CONGESTION = "congestion"
    FOG = "fog"
    RAIN = "rain"
    OTHER = "other"


class Severity(str, Enum):
    MINOR = "minor"
    MODERATE = "moderate"
    SEVERE = "severe"


class MonitorState(str, Enum):
    IDLE = "idle"
    MONITORING = "monitoring"


@dataclass(frozen=True, slots=True)
class TrafficEvent:
    id: str
    kind: EventKind
    severity: Severity
    location: Coordinate
    road_name: str
    delay_minutes: Optional[int] = None
    first_seen_at: float = field(default_factory=time.time)
    description: str = ""


@dataclass(frozen=True, slots=True)
class RoadStatus:
    """Road-level congestion status reported inside a traffic snapshot."""

    name: str
    status_code: int
    location: Optional[Coordinate] = None
    code: Optional[str] = None


@dataclass(frozen=True, slots=True)
class TrafficSnapshot:
    overall_congestion_rate: float
    status_code: int = 0
    roads: tuple[RoadStatus, ...] = ()
    incidents: tuple[TrafficEvent, ...] = ()


@dataclass(frozen=True, slots=True)
class TrafficEvaluation:
    status_text: str
    congestion_rate: float
    tips: str


@dataclass(frozen=True, slots=True)
class Alert:
    event: TrafficEvent
    affects_route: bool
    suggestion_text: str
    timestamp: float = field(default_factory=time.time)
    alternative_available: bool = True


@dataclass(slots=True)
class MonitoredRouteState:
    route_polyline: tuple[Coordinate, ...] = ()
    destination: Optional[Coordinate] = None
    bounding_region: Optional[BoundingBox] = None
    active_events: Dict[str, TrafficEvent] = field(default_factory=dict)
    is_active: bool = False
