"""Geospatial helper functions."""

from __future__ import annotations

import math
from typing import Sequence

from shapely.geometry import MultiPoint, Point, Polygon, box

from ..models.domain import BoundingBox, Coordinate

EARTH_RADIUS_M = 6_371_000.0


def distance_m(a: Coordinate, b: Coordinate) -> float:
    """Great-circle distance between two coordinates using the Haversine formula."""

    phi1, phi2 = math.radians(a.lat), math.radians(b.lat)
    d_phi = math.radians(b.lat - a.lat)
    d_lambda = math.radians(b.lng - a.lng)

    h = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))
    return EARTH_RADIUS_M * c


def point_to_segment_m(point: Coordinate, seg_start: Coordinate, seg_end: Coordinate) -> float:
    """Distance in meters from a point to a segment.

    Uses an equirectangular projection scaled by the cosine of the segment's
    mean latitude. Good enough at the sub-kilometer scale of route proximity
    checks; not valid for long segments spanning a wide latitude range.
    """

    scale = math.cos(math.radians((seg_start.lat + seg_end.lat) / 2))

    dx = (point.lng - seg_start.lng) * scale
    dy = point.lat - seg_start.lat
    sx = (seg_end.lng - seg_start.lng) * scale
    sy = seg_end.lat - seg_start.lat

    length_sq = sx * sx + sy * sy
    t = 0.0 if length_sq == 0 else max(0.0, min(1.0, (dx * sx + dy * sy) / length_sq))

    closest_lng = seg_start.lng + t * (seg_end.lng - seg_start.lng)
    closest_lat = seg_start.lat + t * (seg_end.lat - seg_start.lat)

    off_lng = (point.lng - closest_lng) * scale
    off_lat = point.lat - closest_lat
    return math.hypot(off_lng, off_lat) * EARTH_RADIUS_M * math.pi / 180


def min_distance_to_route_m(point: Coordinate, polyline: Sequence[Coordinate]) -> float:
    """Shortest distance from a point to any segment of the polyline."""

    if not polyline:
        return math.inf
    if len(polyline) == 1:
        return distance_m(point, polyline[0])
    return min(point_to_segment_m(point, polyline[i], polyline[i + 1]) for i in range(len(polyline) - 1))


def route_length_m(polyline: Sequence[Coordinate]) -> float:
    return sum(distance_m(polyline[i], polyline[i + 1]) for i in range(len(polyline) - 1))


def bounding_box(points: Sequence[Coordinate], padding_degrees: float = 0.0) -> BoundingBox:
    """Padded lng/lat rectangle enclosing the points."""

    if not points:
        raise ValueError("Cannot compute a bounding box for an empty point set.")

    min_lng, min_lat, max_lng, max_lat = MultiPoint([(p.lng, p.lat) for p in points]).bounds
    return BoundingBox(
        min_lng=min_lng - padding_degrees,
        min_lat=min_lat - padding_degrees,
        max_lng=max_lng + padding_degrees,
        max_lat=max_lat + padding_degrees,
    )


def region_polygon(region: BoundingBox) -> Polygon:
    return box(region.min_lng, region.min_lat, region.max_lng, region.max_lat)


def region_contains(region: BoundingBox, point: Coordinate) -> bool:
    """Return True if the point lies inside or on the edge of the region."""

    return region_polygon(region).intersects(Point(point.lng, point.lat))
