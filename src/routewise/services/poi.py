"""Points of interest along a route."""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, Sequence

from ..models.domain import Coordinate, PointOfInterest, Preference
from .geospatial import bounding_box, region_contains

logger = logging.getLogger(__name__)

MAX_SAMPLES = 5
SEARCH_RADIUS_M = 500
PER_CATEGORY_LIMIT = 5
ALONG_ROUTE_LIMIT = 20

# Category -> (search keyword, provider type code)
CATEGORY_SEARCH: dict[Preference, tuple[str, str]] = {
    Preference.COFFEE_SHOP: ("咖啡", "050500"),
    Preference.RESTAURANT: ("餐饮", "050000"),
    Preference.GAS_STATION: ("加油站", "010100"),
    Preference.CHARGING_STATION: ("充电站", "011100"),
    Preference.PARKING: ("停车场", "150900"),
}

SearchAround = Callable[[Coordinate, str, str, int], Awaitable[list[PointOfInterest]]]


def sample_points(polyline: Sequence[Coordinate], max_samples: int = MAX_SAMPLES) -> list[Coordinate]:
    """Evenly spaced route points to search around, always ending at the last point."""

    if not polyline:
        return []
    step = max(1, len(polyline) // max_samples)
    samples = list(polyline[::step])
    if samples[-1] != polyline[-1]:
        samples.append(polyline[-1])
    return samples


async def search_along_route(
    search_around: SearchAround,
    polyline: Sequence[Coordinate],
    keyword: str,
    type_code: str,
    *,
    radius_m: int = SEARCH_RADIUS_M,
) -> list[PointOfInterest]:
    """Search around sampled route points, dedupe by id, best rated first."""

    if len(polyline) < 2:
        return []
    region = bounding_box(polyline, padding_degrees=radius_m / 111_000)
    seen: set[str] = set()
    found: list[PointOfInterest] = []
    for point in sample_points(polyline):
        for poi in await search_around(point, keyword, type_code, radius_m):
            if poi.id in seen or not region_contains(region, poi.location):
                continue
            seen.add(poi.id)
            found.append(poi)
    found.sort(key=lambda poi: poi.rating or 0.0, reverse=True)
    return found[:ALONG_ROUTE_LIMIT]


async def recommend_along_route(
    search_around: SearchAround,
    polyline: Sequence[Coordinate],
    categories: Sequence[Preference],
) -> list[PointOfInterest]:
    recommendations: list[PointOfInterest] = []
    for category in categories:
        search = CATEGORY_SEARCH.get(category)
        if search is None:
            continue
        keyword, type_code = search
        pois = await search_along_route(search_around, polyline, keyword, type_code)
        logger.debug("Found %d %s POIs along route", len(pois), category.value)
        recommendations.extend(pois[:PER_CATEGORY_LIMIT])
    return recommendations
