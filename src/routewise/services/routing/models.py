"""Routing domain models."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from ...models.domain import Coordinate, PointOfInterest, WeatherReading


class RouteStrategy(str, Enum):
    """Driving strategy codes understood by the path source."""

    RECOMMENDED = "0"
    ECONOMICAL = "1"
    SHORTEST = "2"
    FASTEST = "4"
    AVOID_HIGHWAY = "5"
    AVOID_TOLL = "6"


@dataclass(frozen=True, slots=True)
class RouteStep:
    instruction: str
    distance_meters: float
    duration_seconds: float


@dataclass(frozen=True, slots=True)
class CandidateRoute:
    id: str
    distance_meters: float
    duration_seconds: float
    polyline: tuple[Coordinate, ...] = ()
    toll_cost: float = 0.0
    traffic_light_count: int = 0
    steps: tuple[RouteStep, ...] = ()


@dataclass(frozen=True, slots=True)
class ScoreBreakdown:
    time_score: float
    distance_score: float
    traffic_score: float
    weather_score: float
    preference_score: float


@dataclass(slots=True)
class ScoredRoute:
    route: CandidateRoute
    breakdown: ScoreBreakdown
    score: float
    recommended: bool = False
    traffic_status: Optional[str] = None
    weather_level: Optional[str] = None
    expected_delay_minutes: int = 0

    @property
    def id(self) -> str:
        return self.route.id


@dataclass(slots=True)
class RoutePlanResult:
    recommended_route_id: str
    routes: List[ScoredRoute]
    generated_at: float
    pois: List[PointOfInterest] = field(default_factory=list)
    weather: Optional[WeatherReading] = None
    summary: str = ""

    @property
    def recommended(self) -> ScoredRoute:
        return next(route for route in self.routes if route.recommended)
