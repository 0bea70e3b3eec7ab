"""Congestion evaluation along a single route."""

from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

from ...models.domain import Coordinate
from ..geospatial import bounding_box
from .models import TrafficEvaluation

if TYPE_CHECKING:
    from ..providers.base import TrafficSource

STATUS_TEXT: dict[int, str] = {
    1: "smooth",
    2: "slow",
    3: "congested",
    4: "severely congested",
}


def status_text(code: int | str | None) -> str:
    try:
        return STATUS_TEXT.get(int(code), "unknown")  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return "unknown"


def congestion_tips(congestion_rate: float) -> str:
    if congestion_rate > 50:
        return "Heavy congestion ahead, consider a detour."
    if congestion_rate > 30:
        return "Light congestion ahead, expect some slowdown."
    return "Road ahead is clear."


def traffic_score(evaluation: TrafficEvaluation) -> float:
    return max(0.0, min(1.0, 1 - evaluation.congestion_rate / 100))


def delay_minutes(original_duration_s: float, congestion_rate: float) -> int:
    """Extra travel minutes implied by a congestion rate (0-100).

    Nothing below 20%; each further 10 points adds 5% of the original duration.
    """

    if congestion_rate <= 20:
        return 0
    delay_seconds = original_duration_s * (congestion_rate - 20) * 0.005
    return int(delay_seconds / 60 + 0.5)


async def evaluate_route_traffic(
    source: "TrafficSource",
    polyline: Sequence[Coordinate],
    *,
    padding_degrees: float = 0.01,
) -> TrafficEvaluation:
    """Ask the traffic source about the region around the route."""

    if len(polyline) < 2:
        raise ValueError("At least two route points are required to evaluate traffic.")
    snapshot = await source.traffic_in_region(bounding_box(polyline, padding_degrees))
    rate = max(0.0, min(100.0, snapshot.overall_congestion_rate))
    return TrafficEvaluation(
        status_text=status_text(snapshot.status_code),
        congestion_rate=rate,
        tips=congestion_tips(rate),
    )
