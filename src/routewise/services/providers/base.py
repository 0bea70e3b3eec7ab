"""Contracts for the collaborators the planner and the monitor depend on."""

from __future__ import annotations

from typing import Protocol, Sequence

from ...models.domain import BoundingBox, Coordinate, PointOfInterest, Preference, TravelMode, WeatherImpact, WeatherReading
from ..routing.models import CandidateRoute, RouteStrategy
from ..traffic.models import TrafficSnapshot


class PathSource(Protocol):
    async def plan_paths(
        self,
        origin: Coordinate,
        destination: Coordinate,
        mode: TravelMode,
        strategy: RouteStrategy,
    ) -> list[CandidateRoute]:
        ...


class TrafficSource(Protocol):
    async def traffic_in_region(self, region: BoundingBox) -> TrafficSnapshot:
        ...


class WeatherSource(Protocol):
    async def current_weather(self, coordinate: Coordinate) -> WeatherReading:
        ...

    def impact_of(self, reading: WeatherReading) -> WeatherImpact:
        ...


class PoiSource(Protocol):
    async def pois_near(
        self,
        polyline: Sequence[Coordinate],
        categories: Sequence[Preference],
    ) -> list[PointOfInterest]:
        ...
