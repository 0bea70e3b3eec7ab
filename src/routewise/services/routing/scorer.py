"""Composite scoring of candidate routes.

Every sub-score lives in [0, 1]. Time and distance are normalized against the
batch being scored, never against a historical baseline, so the same route can
score differently next to different alternatives.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Sequence

from ...models.domain import Preference
from .models import CandidateRoute, ScoreBreakdown

NEUTRAL_TRAFFIC_SCORE = 0.8
NEUTRAL_WEATHER_SCORE = 1.0

TOLL_PENALTY = 0.2
FASTEST_BONUS = 0.1


@dataclass(frozen=True, slots=True)
class WeightProfile:
    time: float
    distance: float
    traffic: float
    weather: float
    preference: float

    @property
    def total(self) -> float:
        return self.time + self.distance + self.traffic + self.weather + self.preference


DEFAULT_WEIGHTS = WeightProfile(time=0.3, distance=0.2, traffic=0.25, weather=0.1, preference=0.15)
FASTEST_WEIGHTS = WeightProfile(time=0.4, distance=0.15, traffic=0.25, weather=0.1, preference=0.1)
SHORTEST_WEIGHTS = WeightProfile(time=0.2, distance=0.4, traffic=0.2, weather=0.1, preference=0.1)


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, value))


def normalize(values: Sequence[float], target: float, lower_is_better: bool) -> float:
    """Min-max normalize ``target`` within ``values``.

    A flat field (every value equal) returns 1.0 so it never penalizes anyone.
    """

    if not values:
        raise ValueError("Cannot normalize against an empty batch.")
    low, high = min(values), max(values)
    if high == low:
        return 1.0
    normalized = (target - low) / (high - low)
    return 1.0 - normalized if lower_is_better else normalized


def preference_score(route: CandidateRoute, preferences: frozenset[Preference], time_score: float) -> float:
    score = 1.0
    if Preference.AVOID_TOLL in preferences and route.toll_cost > 0:
        score -= TOLL_PENALTY
    if Preference.FASTEST in preferences:
        score += FASTEST_BONUS * time_score
    return _clamp(score)


def weight_profile(preferences: frozenset[Preference]) -> WeightProfile:
    # fastest wins when both fastest and shortest are requested
    if Preference.FASTEST in preferences:
        return FASTEST_WEIGHTS
    if Preference.SHORTEST in preferences:
        return SHORTEST_WEIGHTS
    return DEFAULT_WEIGHTS


def composite_score(breakdown: ScoreBreakdown, weights: WeightProfile) -> float:
    return _clamp(
        breakdown.time_score * weights.time
        + breakdown.distance_score * weights.distance
        + breakdown.traffic_score * weights.traffic
        + breakdown.weather_score * weights.weather
        + breakdown.preference_score * weights.preference
    )


def score_batch(
    candidates: Sequence[CandidateRoute],
    preferences: frozenset[Preference],
    *,
    traffic_scores: Mapping[str, float] | None = None,
    weather_score: float = NEUTRAL_WEATHER_SCORE,
) -> list[ScoreBreakdown]:
    """Build one breakdown per candidate, in batch order.

    Routes missing from ``traffic_scores`` get the neutral traffic score.
    """

    traffic_scores = traffic_scores or {}
    durations = [route.duration_seconds for route in candidates]
    distances = [route.distance_meters for route in candidates]

    breakdowns: list[ScoreBreakdown] = []
    for route in candidates:
        time_score = normalize(durations, route.duration_seconds, lower_is_better=True)
        distance_score = normalize(distances, route.distance_meters, lower_is_better=True)
        breakdowns.append(
            ScoreBreakdown(
                time_score=time_score,
                distance_score=distance_score,
                traffic_score=_clamp(traffic_scores.get(route.id, NEUTRAL_TRAFFIC_SCORE)),
                weather_score=_clamp(weather_score),
                preference_score=preference_score(route, preferences, time_score),
            )
        )
    return breakdowns
