"""Domain value types shared across planning and monitoring."""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional


@dataclass(frozen=True, slots=True)
class Coordinate:
    """A WGS84-like longitude/latitude pair."""

    lng: float
    lat: float

    def __post_init__(self) -> None:
        if not (math.isfinite(self.lng) and math.isfinite(self.lat)):
            raise ValueError(f"Coordinate must be finite, got ({self.lng}, {self.lat}).")

    def to_lnglat(self) -> str:
        return f"{self.lng},{self.lat}"


@dataclass(frozen=True, slots=True)
class BoundingBox:
    """Axis-aligned lng/lat rectangle enclosing a route."""

    min_lng: float
    min_lat: float
    max_lng: float
    max_lat: float

    def to_rectangle(self) -> str:
        return f"{self.min_lng},{self.min_lat};{self.max_lng},{self.max_lat}"


class TravelMode(str, Enum):
    DRIVE = "drive"
    WALK = "walk"
    RIDE = "ride"
    TRANSIT = "transit"


class Preference(str, Enum):
    FASTEST = "fastest"
    SHORTEST = "shortest"
    AVOID_HIGHWAY = "avoid_highway"
    AVOID_TOLL = "avoid_toll"
    ECONOMICAL = "economical"
    COFFEE_SHOP = "coffee_shop"
    RESTAURANT = "restaurant"
    GAS_STATION = "gas_station"
    CHARGING_STATION = "charging_station"
    PARKING = "parking"


POI_CATEGORIES: frozenset[Preference] = frozenset(
    {
        Preference.COFFEE_SHOP,
        Preference.RESTAURANT,
        Preference.GAS_STATION,
        Preference.CHARGING_STATION,
        Preference.PARKING,
    }
)


def parse_preferences(tags: Iterable[str | Preference] | None) -> frozenset[Preference]:
    """Convert raw tags into a preference set, dropping tags we do not know."""

    known = {item.value for item in Preference}
    parsed: set[Preference] = set()
    for tag in tags or ():
        value = tag.value if isinstance(tag, Preference) else str(tag).strip().lower()
        if value in known:
            parsed.add(Preference(value))
    return frozenset(parsed)


def merge_preferences(
    requested: Iterable[str | Preference] | None,
    *,
    avoid_highway: bool = False,
    avoid_toll: bool = False,
) -> frozenset[Preference]:
    """Merge per-request tags with the traveler's standing defaults."""

    merged = set(parse_preferences(requested))
    if avoid_highway:
        merged.add(Preference.AVOID_HIGHWAY)
    if avoid_toll:
        merged.add(Preference.AVOID_TOLL)
    return frozenset(merged)


@dataclass(frozen=True, slots=True)
class WeatherReading:
    description: str
    temperature_c: Optional[float] = None
    wind_force: int = 0
    city: Optional[str] = None
    reported_at: Optional[str] = None


@dataclass(frozen=True, slots=True)
class WeatherImpact:
    """How much the current weather degrades travel, in [0, 1]."""

    impact: float
    level: str
    category: str
    reasons: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class PointOfInterest:
    id: str
    name: str
    category: str
    address: str
    location: Coordinate
    distance_meters: Optional[float] = None
    rating: Optional[float] = None
    cost: Optional[float] = None
    tel: Optional[str] = None
