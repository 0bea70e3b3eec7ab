"""Route planning request/response schemas."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field

from ..models.domain import Coordinate, PointOfInterest, TravelMode, WeatherReading
from ..services.routing.models import RoutePlanResult, ScoredRoute


class CoordinateModel(BaseModel):
    lng: float = Field(..., ge=-180, le=180)
    lat: float = Field(..., ge=-90, le=90)

    def to_domain(self) -> Coordinate:
        return Coordinate(lng=self.lng, lat=self.lat)

    @classmethod
    def from_domain(cls, coordinate: Coordinate) -> "CoordinateModel":
        return cls(lng=coordinate.lng, lat=coordinate.lat)


class RoutePlanRequest(BaseModel):
    origin: CoordinateModel
    destination: CoordinateModel
    mode: TravelMode = TravelMode.DRIVE
    preferences: List[str] = Field(
        default_factory=list,
        description="Tags such as 'fastest', 'avoid_toll' or 'coffee_shop'. Unknown tags are ignored.",
    )
    consider_traffic: bool = True
    consider_weather: bool = True
    search_poi: bool = True


class RouteStepModel(BaseModel):
    instruction: str
    distance_meters: float
    duration_seconds: float


class ScoreBreakdownModel(BaseModel):
    time_score: float
    distance_score: float
    traffic_score: float
    weather_score: float
    preference_score: float


class ScoredRouteModel(BaseModel):
    id: str
    score: float
    recommended: bool
    distance_meters: float
    duration_seconds: float
    toll_cost: float
    traffic_light_count: int
    traffic_status: Optional[str] = None
    weather_level: Optional[str] = None
    expected_delay_minutes: int = 0
    breakdown: ScoreBreakdownModel
    steps: List[RouteStepModel]
    polyline: List[CoordinateModel]

    @classmethod
    def from_domain(cls, scored: ScoredRoute) -> "ScoredRouteModel":
        route = scored.route
        breakdown = scored.breakdown
        return cls(
            id=route.id,
            score=round(scored.score, 4),
            recommended=scored.recommended,
            distance_meters=route.distance_meters,
            duration_seconds=route.duration_seconds,
            toll_cost=route.toll_cost,
            traffic_light_count=route.traffic_light_count,
            traffic_status=scored.traffic_status,
            weather_level=scored.weather_level,
            expected_delay_minutes=scored.expected_delay_minutes,
            breakdown=ScoreBreakdownModel(
                time_score=breakdown.time_score,
                distance_score=breakdown.distance_score,
                traffic_score=breakdown.traffic_score,
                weather_score=breakdown.weather_score,
                preference_score=breakdown.preference_score,
            ),
            steps=[
                RouteStepModel(
                    instruction=step.instruction,
                    distance_meters=step.distance_meters,
                    duration_seconds=step.duration_seconds,
                )
                for step in route.steps
            ],
            polyline=[CoordinateModel.from_domain(point) for point in route.polyline],
        )


class WeatherModel(BaseModel):
    description: str
    temperature_c: Optional[float] = None
    wind_force: int = 0
    city: Optional[str] = None
    reported_at: Optional[str] = None

    @classmethod
    def from_domain(cls, reading: WeatherReading) -> "WeatherModel":
        return cls(
            description=reading.description,
            temperature_c=reading.temperature_c,
            wind_force=reading.wind_force,
            city=reading.city,
            reported_at=reading.reported_at,
        )


class PoiModel(BaseModel):
    id: str
    name: str
    category: str
    address: str
    location: CoordinateModel
    distance_meters: Optional[float] = None
    rating: Optional[float] = None
    cost: Optional[float] = None
    tel: Optional[str] = None

    @classmethod
    def from_domain(cls, poi: PointOfInterest) -> "PoiModel":
        return cls(
            id=poi.id,
            name=poi.name,
            category=poi.category,
            address=poi.address,
            location=CoordinateModel.from_domain(poi.location),
            distance_meters=poi.distance_meters,
            rating=poi.rating,
            cost=poi.cost,
            tel=poi.tel,
        )


class RoutePlanResponse(BaseModel):
    recommended_route_id: str
    generated_at: float
    summary: str
    routes: List[ScoredRouteModel]
    pois: List[PoiModel] = Field(default_factory=list)
    weather: Optional[WeatherModel] = None

    @classmethod
    def from_domain(cls, result: RoutePlanResult) -> "RoutePlanResponse":
        return cls(
            recommended_route_id=result.recommended_route_id,
            generated_at=result.generated_at,
            summary=result.summary,
            routes=[ScoredRouteModel.from_domain(route) for route in result.routes],
            pois=[PoiModel.from_domain(poi) for poi in result.pois],
            weather=WeatherModel.from_domain(result.weather) if result.weather else None,
        )
