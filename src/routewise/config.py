"""Application configuration and settings management."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="ROUTEWISE_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = "RouteWise Navigation API"
    api_prefix: str = "/api"
    log_level: str = Field(default="INFO", description="Root log level for the application.")

    amap_key: Optional[str] = Field(
        default=None,
        description="AMap web service key used for directions, traffic, weather and POI lookups.",
    )
    amap_base_url: str = Field(default="https://restapi.amap.com")
    amap_max_retries: int = Field(default=2, ge=0)
    amap_backoff_seconds: float = Field(default=0.5, ge=0.0)
    amap_transit_city: str = Field(default="010", description="City code sent with transit direction requests.")
    collaborator_timeout_seconds: float = Field(
        default=5.0,
        gt=0.0,
        description="Upper bound for any single collaborator call made by the planner or monitor.",
    )

    max_candidate_routes: int = Field(default=3, ge=1)
    max_steps_per_route: int = Field(default=10, ge=1)
    max_route_pois: int = Field(default=10, ge=0)

    traffic_poll_interval_ms: int = Field(default=30_000, ge=1)
    weather_poll_interval_ms: int = Field(default=300_000, ge=1)
    traffic_region_padding_degrees: float = Field(default=0.02, ge=0.0)
    route_traffic_padding_degrees: float = Field(default=0.01, ge=0.0)
    route_proximity_meters: float = Field(default=500.0, gt=0.0)

    reroute_improvement_ratio: float = Field(default=0.8, gt=0.0, le=1.0)
    fallback_speed_kmh: float = Field(default=40.0, gt=0.0)
    weather_notify_threshold: float = Field(default=0.3, ge=0.0, le=1.0)
    weather_reroute_threshold: float = Field(default=0.5, ge=0.0, le=1.0)

    avoid_highway: bool = Field(default=False, description="User default merged into every planning request.")
    avoid_toll: bool = Field(default=False, description="User default merged into every planning request.")

    frontend_allowed_origins: tuple[str, ...] = Field(
        default=(
            "http://localhost:5173",
            "http://127.0.0.1:5173",
        ),
        description="Permitted web origins for browser clients (CORS).",
    )

    @field_validator("frontend_allowed_origins", mode="before")
    @classmethod
    def _parse_str_tuple_from_env(cls, value: Any) -> tuple[str, ...]:
        """Parse string tuple from environment variable (comma-separated or JSON array)."""
        if isinstance(value, tuple):
            return value
        if isinstance(value, list):
            return tuple(str(item) for item in value)
        if isinstance(value, str):
            try:
                parsed = json.loads(value)
                if isinstance(parsed, list):
                    return tuple(str(item) for item in parsed)
            except (json.JSONDecodeError, TypeError):
                pass
            if "," in value:
                return tuple(item.strip() for item in value.split(",") if item.strip())
            if value.strip():
                return (value.strip(),)
        return tuple()


@dataclass(frozen=True, slots=True)
class PlannerConfig:
    """Knobs for a RoutePlanner instance."""

    max_candidates: int = 3
    max_pois: int = 10
    route_traffic_padding_degrees: float = 0.01
    collaborator_timeout_s: float = 5.0
    avoid_highway: bool = False
    avoid_toll: bool = False

    @classmethod
    def from_settings(cls, source: Settings) -> "PlannerConfig":
        return cls(
            max_candidates=source.max_candidate_routes,
            max_pois=source.max_route_pois,
            route_traffic_padding_degrees=source.route_traffic_padding_degrees,
            collaborator_timeout_s=source.collaborator_timeout_seconds,
            avoid_highway=source.avoid_highway,
            avoid_toll=source.avoid_toll,
        )


@dataclass(frozen=True, slots=True)
class MonitorConfig:
    """Knobs for a TrafficMonitor instance."""

    interval_ms: int = 30_000
    region_padding_degrees: float = 0.02
    proximity_meters: float = 500.0
    fetch_timeout_s: float = 5.0

    @classmethod
    def from_settings(cls, source: Settings) -> "MonitorConfig":
        return cls(
            interval_ms=source.traffic_poll_interval_ms,
            region_padding_degrees=source.traffic_region_padding_degrees,
            proximity_meters=source.route_proximity_meters,
            fetch_timeout_s=source.collaborator_timeout_seconds,
        )


@dataclass(frozen=True, slots=True)
class SessionConfig:
    """Knobs for a NavigationSession instance."""

    weather_interval_ms: int = 300_000
    weather_notify_threshold: float = 0.3
    weather_reroute_threshold: float = 0.5
    reroute_improvement_ratio: float = 0.8
    fallback_speed_kmh: float = 40.0
    collaborator_timeout_s: float = 5.0
    watch_weather: bool = True

    @classmethod
    def from_settings(cls, source: Settings) -> "SessionConfig":
        return cls(
            weather_interval_ms=source.weather_poll_interval_ms,
            weather_notify_threshold=source.weather_notify_threshold,
            weather_reroute_threshold=source.weather_reroute_threshold,
            reroute_improvement_ratio=source.reroute_improvement_ratio,
            fallback_speed_kmh=source.fallback_speed_kmh,
            collaborator_timeout_s=source.collaborator_timeout_seconds,
        )


settings = Settings()
