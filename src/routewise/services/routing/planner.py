"""Route planning: gather live signals, score candidates, pick a recommendation."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Iterable, Mapping, Sequence

from ...config import PlannerConfig
from ...errors import CollaboratorUnavailable, MalformedSnapshot, NoCandidates
from ...models.domain import (
    POI_CATEGORIES,
    Coordinate,
    PointOfInterest,
    Preference,
    TravelMode,
    WeatherImpact,
    WeatherReading,
    merge_preferences,
)
from ..providers.base import PathSource, PoiSource, TrafficSource, WeatherSource
from ..traffic.evaluation import delay_minutes, evaluate_route_traffic, traffic_score
from ..traffic.models import TrafficEvaluation
from ..weather import weather_tips
from .models import CandidateRoute, RoutePlanResult, RouteStrategy, ScoredRoute
from .scorer import NEUTRAL_WEATHER_SCORE, composite_score, score_batch, weight_profile

logger = logging.getLogger(__name__)

# Failures of optional signals that degrade to neutral scores.
_RECOVERABLE = (asyncio.TimeoutError, CollaboratorUnavailable, MalformedSnapshot, ValueError)


def route_strategy(preferences: frozenset[Preference]) -> RouteStrategy:
    """Map a preference set to the path source's driving strategy."""

    if Preference.AVOID_TOLL in preferences:
        return RouteStrategy.AVOID_TOLL
    if Preference.AVOID_HIGHWAY in preferences:
        return RouteStrategy.AVOID_HIGHWAY
    if Preference.SHORTEST in preferences:
        return RouteStrategy.SHORTEST
    if Preference.FASTEST in preferences:
        return RouteStrategy.FASTEST
    if Preference.ECONOMICAL in preferences:
        return RouteStrategy.ECONOMICAL
    return RouteStrategy.RECOMMENDED


def rank_candidates(
    candidates: Sequence[CandidateRoute],
    preferences: frozenset[Preference],
    *,
    traffic: Mapping[str, TrafficEvaluation] | None = None,
    weather: WeatherImpact | None = None,
) -> list[ScoredRoute]:
    """Score a candidate batch and return it best first, top route flagged.

    Candidates without a traffic evaluation get the neutral traffic score;
    without a weather impact every route gets the neutral weather score.
    """

    if not candidates:
        raise NoCandidates()

    traffic = traffic or {}
    weather_score = NEUTRAL_WEATHER_SCORE if weather is None else 1 - weather.impact
    breakdowns = score_batch(
        candidates,
        preferences,
        traffic_scores={route_id: traffic_score(evaluation) for route_id, evaluation in traffic.items()},
        weather_score=weather_score,
    )
    weights = weight_profile(preferences)

    scored = []
    for route, breakdown in zip(candidates, breakdowns):
        evaluation = traffic.get(route.id)
        scored.append(
            ScoredRoute(
                route=route,
                breakdown=breakdown,
                score=composite_score(breakdown, weights),
                traffic_status=evaluation.status_text if evaluation else None,
                weather_level=weather.level if weather else None,
                expected_delay_minutes=delay_minutes(route.duration_seconds, evaluation.congestion_rate) if evaluation else 0,
            )
        )

    # sorted() is stable, so ties keep the source order
    ranked = sorted(scored, key=lambda item: item.score, reverse=True)
    ranked[0].recommended = True
    return ranked


def build_summary(
    route: ScoredRoute,
    weather: WeatherReading | None = None,
    pois: Sequence[PointOfInterest] = (),
) -> str:
    distance_km = route.route.distance_meters / 1000
    duration_min = round(route.route.duration_seconds / 60)
    parts = [f"Recommended route is {distance_km:.1f} km, about {duration_min} min."]
    if route.traffic_status:
        parts.append(f"Traffic is currently {route.traffic_status}.")
    if weather is not None:
        temperature = f", {weather.temperature_c:g}°C" if weather.temperature_c is not None else ""
        parts.append(f"Weather: {weather.description}{temperature}.")
        parts.append(f"{weather_tips(weather)}.")
    if route.weather_level and route.weather_level != "none":
        parts.append(f"Weather impact is {route.weather_level}, drive safely.")
    if pois:
        parts.append(f"{len(pois)} suggested stops along the way.")
    if route.route.toll_cost > 0:
        parts.append(f"Expected tolls: {route.route.toll_cost:g}.")
    return " ".join(parts)


class RoutePlanner:
    """Plans a trip against live collaborators.

    Weather, traffic and POI failures fall back to neutral values; only the
    path source is required.
    """

    def __init__(
        self,
        path_source: PathSource,
        *,
        traffic_source: TrafficSource | None = None,
        weather_source: WeatherSource | None = None,
        poi_source: PoiSource | None = None,
        config: PlannerConfig | None = None,
    ) -> None:
        self.path_source = path_source
        self.traffic_source = traffic_source
        self.weather_source = weather_source
        self.poi_source = poi_source
        self.config = config or PlannerConfig()

    async def plan(
        self,
        origin: Coordinate,
        destination: Coordinate,
        *,
        mode: TravelMode = TravelMode.DRIVE,
        preferences: Iterable[str | Preference] | None = None,
        candidates: Sequence[CandidateRoute] | None = None,
        consider_traffic: bool = True,
        consider_weather: bool = True,
        search_poi: bool = True,
    ) -> RoutePlanResult:
        prefs = merge_preferences(
            preferences,
            avoid_highway=self.config.avoid_highway,
            avoid_toll=self.config.avoid_toll,
        )

        if candidates is None:
            candidates = await self._fetch_candidates(origin, destination, mode, prefs)
        candidates = list(candidates)[: self.config.max_candidates]
        if not candidates:
            raise NoCandidates(f"No candidate routes between {origin.to_lnglat()} and {destination.to_lnglat()}.")

        reading: WeatherReading | None = None
        impact: WeatherImpact | None = None
        if consider_weather and self.weather_source is not None:
            reading = await self._current_weather(origin)
            if reading is not None:
                impact = self.weather_source.impact_of(reading)

        traffic: dict[str, TrafficEvaluation] = {}
        if consider_traffic and self.traffic_source is not None:
            traffic = await self._evaluate_traffic(candidates)

        ranked = rank_candidates(candidates, prefs, traffic=traffic, weather=impact)
        top = ranked[0]

        pois: list[PointOfInterest] = []
        categories = sorted((pref for pref in prefs if pref in POI_CATEGORIES), key=lambda pref: pref.value)
        if search_poi and categories and self.poi_source is not None and top.route.polyline:
            pois = await self._pois_for(top.route, categories)

        logger.info(
            "Planned %d candidate routes (%s), recommended %s with score %.3f",
            len(ranked),
            mode.value,
            top.id,
            top.score,
        )
        return RoutePlanResult(
            recommended_route_id=top.id,
            routes=ranked,
            generated_at=time.time(),
            pois=pois,
            weather=reading,
            summary=build_summary(top, reading, pois),
        )

    async def _fetch_candidates(
        self,
        origin: Coordinate,
        destination: Coordinate,
        mode: TravelMode,
        preferences: frozenset[Preference],
    ) -> list[CandidateRoute]:
        strategy = route_strategy(preferences)
        try:
            return await asyncio.wait_for(
                self.path_source.plan_paths(origin, destination, mode, strategy),
                timeout=self.config.collaborator_timeout_s,
            )
        except asyncio.TimeoutError as exc:
            raise CollaboratorUnavailable("Path source timed out.", collaborator="path") from exc

    async def _current_weather(self, origin: Coordinate) -> WeatherReading | None:
        try:
            return await asyncio.wait_for(
                self.weather_source.current_weather(origin),
                timeout=self.config.collaborator_timeout_s,
            )
        except _RECOVERABLE as exc:
            logger.warning("Weather unavailable, using neutral weather score: %s", exc)
            return None

    async def _evaluate_traffic(self, candidates: Sequence[CandidateRoute]) -> dict[str, TrafficEvaluation]:
        routes = [route for route in candidates if len(route.polyline) >= 2]

        async def evaluate(route: CandidateRoute) -> TrafficEvaluation:
            return await asyncio.wait_for(
                evaluate_route_traffic(
                    self.traffic_source,
                    route.polyline,
                    padding_degrees=self.config.route_traffic_padding_degrees,
                ),
                timeout=self.config.collaborator_timeout_s,
            )

        results = await asyncio.gather(*(evaluate(route) for route in routes), return_exceptions=True)
        evaluations: dict[str, TrafficEvaluation] = {}
        for route, result in zip(routes, results):
            if isinstance(result, _RECOVERABLE):
                logger.warning("Traffic unavailable for route %s, using neutral score: %s", route.id, result)
                continue
            if isinstance(result, BaseException):
                raise result
            evaluations[route.id] = result
        return evaluations

    async def _pois_for(self, route: CandidateRoute, categories: Sequence[Preference]) -> list[PointOfInterest]:
        try:
            pois = await asyncio.wait_for(
                self.poi_source.pois_near(route.polyline, categories),
                timeout=self.config.collaborator_timeout_s,
            )
        except _RECOVERABLE as exc:
            logger.warning("POI lookup failed for route %s: %s", route.id, exc)
            return []
        return list(pois)[: self.config.max_pois]
