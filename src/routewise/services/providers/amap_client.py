"""HTTP client for the AMap web service API."""

from __future__ import annotations

import asyncio
import logging
import re
from typing import Any, Sequence

import httpx

from ...config import Settings
from ...errors import CollaboratorUnavailable, ConfigurationMissing, MalformedSnapshot, RouteWiseError
from ...models.domain import (
    BoundingBox,
    Coordinate,
    PointOfInterest,
    Preference,
    TravelMode,
    WeatherImpact,
    WeatherReading,
)
from ..poi import recommend_along_route
from ..routing.models import CandidateRoute, RouteStep, RouteStrategy
from ..traffic.events import EVENT_KIND_CODES, severity_from_classification
from ..traffic.models import EventKind, RoadStatus, TrafficEvent, TrafficSnapshot
from ..weather import evaluate_weather_impact

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://restapi.amap.com"
DEFAULT_MAX_ROUTES = 3
DEFAULT_MAX_STEPS = 10
# Beijing; used when the transit endpoint needs a city and none is configured.
DEFAULT_TRANSIT_CITY = "010"
HEALTH_CHECK_ADCODE = "110000"

DIRECTION_PATHS: dict[TravelMode, str] = {
    TravelMode.DRIVE: "/v3/direction/driving",
    TravelMode.WALK: "/v3/direction/walking",
    TravelMode.RIDE: "/v4/direction/bicycling",
    TravelMode.TRANSIT: "/v3/direction/transit/integrated",
}


def _text(value: Any) -> str:
    # AMap encodes missing string fields as empty lists.
    if value is None or isinstance(value, list):
        return ""
    return str(value)


def _number(value: Any, default: float = 0.0) -> float:
    text = _text(value).strip().rstrip("%")
    if not text:
        return default
    try:
        return float(text)
    except ValueError:
        return default


def _optional_number(value: Any) -> float | None:
    text = _text(value).strip()
    if not text:
        return None
    try:
        return float(text)
    except ValueError:
        return None


def parse_lnglat(text: str) -> Coordinate | None:
    parts = text.split(",")
    if len(parts) != 2:
        return None
    try:
        return Coordinate(lng=float(parts[0]), lat=float(parts[1]))
    except ValueError:
        return None


def parse_polyline(text: str) -> list[Coordinate]:
    """Parse an AMap ``lng,lat;lng,lat`` polyline, skipping unreadable pairs."""

    points = []
    for pair in _text(text).split(";"):
        point = parse_lnglat(pair)
        if point is not None:
            points.append(point)
    return points


def parse_wind_force(value: Any) -> int:
    """AMap reports wind power as text such as ``≤3`` or ``4-5``; keep the highest figure."""

    figures = [int(figure) for figure in re.findall(r"\d+", _text(value))]
    return max(figures) if figures else 0


def _steps_polyline(steps: Sequence[dict]) -> list[Coordinate]:
    points: list[Coordinate] = []
    for step in steps:
        for point in parse_polyline(step.get("polyline", "")):
            if not points or points[-1] != point:
                points.append(point)
    return points


def _transit_polyline(transit: dict) -> list[Coordinate]:
    steps: list[dict] = []
    for segment in transit.get("segments") or []:
        walking = segment.get("walking") or {}
        if isinstance(walking, dict):
            steps.extend(walking.get("steps") or [])
        bus = segment.get("bus") or {}
        if isinstance(bus, dict):
            steps.extend((bus.get("buslines") or [])[:1])
    return _steps_polyline(steps)


def parse_paths(
    data: dict,
    mode: TravelMode,
    origin: Coordinate,
    destination: Coordinate,
    *,
    max_routes: int = DEFAULT_MAX_ROUTES,
    max_steps: int = DEFAULT_MAX_STEPS,
) -> list[CandidateRoute]:
    """Turn a directions payload into candidate routes ``r1``, ``r2``, ..."""

    try:
        if mode is TravelMode.RIDE:
            raw_paths = (data.get("data") or {}).get("paths") or []
        elif mode is TravelMode.TRANSIT:
            raw_paths = (data.get("route") or {}).get("transits") or []
        else:
            raw_paths = (data.get("route") or {}).get("paths") or []

        routes = []
        for index, path in enumerate(raw_paths[:max_routes], start=1):
            if mode is TravelMode.TRANSIT:
                points = _transit_polyline(path)
                raw_steps: list[dict] = []
                toll = _number(path.get("cost"))
            else:
                raw_steps = path.get("steps") or []
                points = _steps_polyline(raw_steps)
                toll = _number(path.get("tolls"))
            if len(points) < 2:
                points = [origin, destination]
            routes.append(
                CandidateRoute(
                    id=f"r{index}",
                    distance_meters=_number(path.get("distance")),
                    duration_seconds=_number(path.get("duration")),
                    polyline=tuple(points),
                    toll_cost=toll,
                    traffic_light_count=int(_number(path.get("traffic_lights"))),
                    steps=tuple(
                        RouteStep(
                            instruction=_text(step.get("instruction")),
                            distance_meters=_number(step.get("distance")),
                            duration_seconds=_number(step.get("duration")),
                        )
                        for step in raw_steps[:max_steps]
                    ),
                )
            )
        return routes
    except (AttributeError, TypeError) as exc:
        raise MalformedSnapshot(f"Unexpected directions payload: {exc}") from exc


def parse_traffic(data: dict) -> TrafficSnapshot:
    try:
        info = data.get("trafficinfo") or {}
        evaluation = info.get("evaluation") or {}
        rate = _number(evaluation.get("congested")) + _number(evaluation.get("blocked"))

        roads = []
        for road in info.get("roads") or []:
            points = parse_polyline(road.get("polyline", ""))
            roads.append(
                RoadStatus(
                    name=_text(road.get("name")),
                    status_code=int(_number(road.get("status"))),
                    location=points[0] if points else None,
                    code=_text(road.get("lcodes")) or None,
                )
            )

        incidents = []
        for item in info.get("events") or []:
            location = parse_lnglat(_text(item.get("location")))
            event_id = _text(item.get("id") or item.get("eventid"))
            if location is None or not event_id:
                continue
            incidents.append(
                TrafficEvent(
                    id=event_id,
                    kind=EVENT_KIND_CODES.get(_text(item.get("type")), EventKind.OTHER),
                    severity=severity_from_classification(_text(item.get("impact") or item.get("level"))),
                    location=location,
                    road_name=_text(item.get("roadname") or item.get("road_name")),
                    delay_minutes=int(_number(item.get("delay"))) or None,
                    description=_text(item.get("description")),
                )
            )
    except (AttributeError, TypeError, ValueError) as exc:
        raise MalformedSnapshot(f"Unexpected traffic payload: {exc}") from exc

    return TrafficSnapshot(
        overall_congestion_rate=max(0.0, min(100.0, rate)),
        status_code=int(_number(evaluation.get("status"))),
        roads=tuple(roads),
        incidents=tuple(incidents),
    )


def parse_weather(data: dict) -> WeatherReading:
    lives = data.get("lives") if isinstance(data, dict) else None
    if not isinstance(lives, list) or not lives or not isinstance(lives[0], dict):
        raise MalformedSnapshot("Weather payload has no live readings.")
    live = lives[0]
    return WeatherReading(
        description=_text(live.get("weather")),
        temperature_c=_optional_number(live.get("temperature")),
        wind_force=parse_wind_force(live.get("windpower")),
        city=_text(live.get("city")) or None,
        reported_at=_text(live.get("reporttime")) or None,
    )


def parse_pois(raw_pois: Sequence[dict]) -> list[PointOfInterest]:
    pois = []
    try:
        for raw in raw_pois:
            location = parse_lnglat(_text(raw.get("location")))
            if location is None:
                continue
            biz = raw.get("biz_ext") if isinstance(raw.get("biz_ext"), dict) else {}
            pois.append(
                PointOfInterest(
                    id=_text(raw.get("id")),
                    name=_text(raw.get("name")),
                    category=_text(raw.get("type")),
                    address=_text(raw.get("address")),
                    location=location,
                    distance_meters=_optional_number(raw.get("distance")),
                    rating=_optional_number(biz.get("rating")),
                    cost=_optional_number(biz.get("cost")),
                    tel=_text(raw.get("tel")) or None,
                )
            )
    except (AttributeError, TypeError, ValueError) as exc:
        raise MalformedSnapshot(f"Unexpected POI payload: {exc}") from exc
    return pois


class AMapClient:
    """Path, traffic, weather and POI source backed by the AMap REST API."""

    def __init__(
        self,
        key: str | None = None,
        *,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 10.0,
        max_retries: int = 2,
        backoff_seconds: float = 0.5,
        max_routes: int = DEFAULT_MAX_ROUTES,
        max_steps: int = DEFAULT_MAX_STEPS,
        transit_city: str = DEFAULT_TRANSIT_CITY,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.key = key
        self.base_url = base_url.rstrip("/")
        self.max_retries = max_retries
        self.backoff_seconds = backoff_seconds
        self.max_routes = max_routes
        self.max_steps = max_steps
        self.transit_city = transit_city
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(timeout, connect=min(timeout, 5.0)))

    @classmethod
    def from_settings(cls, source: Settings, *, client: httpx.AsyncClient | None = None) -> "AMapClient":
        return cls(
            source.amap_key,
            base_url=source.amap_base_url,
            # All attempts together must fit inside the overall call budget.
            timeout=source.collaborator_timeout_seconds / (source.amap_max_retries + 1),
            max_retries=source.amap_max_retries,
            backoff_seconds=source.amap_backoff_seconds,
            max_routes=source.max_candidate_routes,
            max_steps=source.max_steps_per_route,
            transit_city=source.amap_transit_city,
            client=client,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def plan_paths(
        self,
        origin: Coordinate,
        destination: Coordinate,
        mode: TravelMode,
        strategy: RouteStrategy,
    ) -> list[CandidateRoute]:
        params = {"origin": origin.to_lnglat(), "destination": destination.to_lnglat()}
        if mode is TravelMode.DRIVE:
            params.update(strategy=strategy.value, extensions="all")
        elif mode is TravelMode.TRANSIT:
            params["city"] = self.transit_city
        data = await self._get(DIRECTION_PATHS[mode], params, collaborator="path")
        routes = parse_paths(
            data,
            mode,
            origin,
            destination,
            max_routes=self.max_routes,
            max_steps=self.max_steps,
        )
        logger.debug("AMap returned %d %s paths", len(routes), mode.value)
        return routes

    async def traffic_in_region(self, region: BoundingBox) -> TrafficSnapshot:
        data = await self._get(
            "/v3/traffic/status/rectangle",
            {"rectangle": region.to_rectangle(), "extensions": "all"},
            collaborator="traffic",
        )
        return parse_traffic(data)

    async def current_weather(self, coordinate: Coordinate) -> WeatherReading:
        geo = await self._get("/v3/geocode/regeo", {"location": coordinate.to_lnglat()}, collaborator="weather")
        try:
            adcode = _text(geo["regeocode"]["addressComponent"]["adcode"])
        except (KeyError, TypeError) as exc:
            raise MalformedSnapshot("Reverse geocode payload has no adcode.") from exc
        if not adcode:
            raise MalformedSnapshot(f"No adcode for {coordinate.to_lnglat()}.")
        return await self.weather_for_city(adcode)

    async def weather_for_city(self, city: str) -> WeatherReading:
        data = await self._get(
            "/v3/weather/weatherInfo",
            {"city": city, "extensions": "base"},
            collaborator="weather",
        )
        return parse_weather(data)

    def impact_of(self, reading: WeatherReading) -> WeatherImpact:
        return evaluate_weather_impact(reading)

    async def search_around(
        self,
        point: Coordinate,
        keyword: str,
        type_code: str,
        radius_m: int,
    ) -> list[PointOfInterest]:
        data = await self._get(
            "/v3/place/around",
            {
                "location": point.to_lnglat(),
                "keywords": keyword,
                "types": type_code,
                "radius": radius_m,
                "offset": 20,
                "page": 1,
                "sortrule": "distance",
                "extensions": "all",
            },
            collaborator="poi",
        )
        raw = data.get("pois") or []
        if not isinstance(raw, list):
            raise MalformedSnapshot("POI payload 'pois' is not a list.")
        return parse_pois(raw)

    async def pois_near(
        self,
        polyline: Sequence[Coordinate],
        categories: Sequence[Preference],
    ) -> list[PointOfInterest]:
        return await recommend_along_route(self.search_around, polyline, categories)

    async def check_health(self) -> bool:
        """Cheap reachability probe: a live-weather lookup for a fixed city."""

        if not self.key:
            return False
        try:
            await self.weather_for_city(HEALTH_CHECK_ADCODE)
        except RouteWiseError as exc:
            logger.warning("AMap health check failed: %s", exc)
            return False
        return True

    async def _get(self, path: str, params: dict[str, Any], *, collaborator: str) -> dict:
        if not self.key:
            raise ConfigurationMissing("AMap key is not configured.", collaborator=collaborator)
        url = f"{self.base_url}{path}"
        query = {**params, "key": self.key}

        attempt = 0
        while True:
            try:
                response = await self._client.get(url, params=query)
                response.raise_for_status()
                data = response.json()
                break
            except httpx.HTTPStatusError as exc:
                attempt += 1
                if attempt > self.max_retries:
                    raise CollaboratorUnavailable(
                        f"AMap {path} returned HTTP {exc.response.status_code}.",
                        collaborator=collaborator,
                    ) from exc
                await asyncio.sleep(self.backoff_seconds * attempt)
            except httpx.TimeoutException as exc:
                attempt += 1
                if attempt > self.max_retries:
                    logger.warning("AMap request %s timed out after %d attempts", path, attempt)
                    raise CollaboratorUnavailable(f"AMap {path} timed out.", collaborator=collaborator) from exc
                wait_time = self.backoff_seconds * (2 ** (attempt - 1))
                logger.debug("AMap timeout, retrying in %.1fs (attempt %d/%d)", wait_time, attempt, self.max_retries)
                await asyncio.sleep(wait_time)
            except httpx.TransportError as exc:
                attempt += 1
                if attempt > self.max_retries:
                    raise CollaboratorUnavailable(
                        f"Failed to connect to AMap at {self.base_url}: {exc}",
                        collaborator=collaborator,
                    ) from exc
                wait_time = self.backoff_seconds * (2 ** (attempt - 1))
                logger.debug("AMap network error, retrying in %.1fs (attempt %d/%d): %s", wait_time, attempt, self.max_retries, exc)
                await asyncio.sleep(wait_time)
            except ValueError as exc:
                raise MalformedSnapshot(f"AMap {path} returned invalid JSON.") from exc

        if not isinstance(data, dict):
            raise MalformedSnapshot(f"AMap {path} returned a non-object payload.")
        # v4 endpoints report errcode, v3 endpoints report status "1".
        if "errcode" in data:
            ok = str(data.get("errcode")) == "0"
            info = _text(data.get("errmsg"))
        else:
            ok = _text(data.get("status")) == "1"
            info = _text(data.get("info"))
        if not ok:
            raise CollaboratorUnavailable(f"AMap {path} failed: {info or 'unknown error'}", collaborator=collaborator)
        return data
