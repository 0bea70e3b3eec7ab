"""Domain models."""

from .domain import (
    BoundingBox,
    Coordinate,
    POI_CATEGORIES,
    PointOfInterest,
    Preference,
    TravelMode,
    WeatherImpact,
    WeatherReading,
    merge_preferences,
    parse_preferences,
)

__all__ = [
    "BoundingBox",
    "Coordinate",
    "POI_CATEGORIES",
    "PointOfInterest",
    "Preference",
    "TravelMode",
    "WeatherImpact",
    "WeatherReading",
    "merge_preferences",
    "parse_preferences",
]
