import asyncio

import pytest

from routewise.config import PlannerConfig
from routewise.errors import CollaboratorUnavailable, NoCandidates
from routewise.models.domain import PointOfInterest, Preference, WeatherImpact, WeatherReading
from routewise.services.routing.models import RouteStrategy
from routewise.services.routing.planner import RoutePlanner, rank_candidates, route_strategy
from routewise.services.traffic.models import TrafficEvaluation, TrafficSnapshot

from fakes import FakePathSource, FakePoiSource, FakeTrafficSource, FakeWeatherSource, coord, make_route

ORIGIN = coord(116.30, 39.90)
DESTINATION = coord(116.32, 39.90)


def _batch():
    return [
        make_route("r1", 12500, 1500),
        make_route("r2", 11000, 1620),
        make_route("r3", 13000, 1400),
    ]


def test_rank_candidates_recommends_highest_score():
    ranked = rank_candidates(_batch(), frozenset())

    assert [item.id for item in ranked] == ["r3", "r1", "r2"]
    assert [item.recommended for item in ranked] == [True, False, False]
    assert ranked[0].score == pytest.approx(0.75)
    assert ranked[0].breakdown.time_score == 1.0


def test_rank_candidates_breaks_ties_by_source_order():
    twins = [make_route("a", 1000, 600), make_route("b", 1000, 600)]
    ranked = rank_candidates(twins, frozenset())
    assert [item.id for item in ranked] == ["a", "b"]
    assert sum(item.recommended for item in ranked) == 1


def test_rank_candidates_rejects_empty_batch():
    with pytest.raises(NoCandidates):
        rank_candidates([], frozenset())


def test_rank_candidates_applies_traffic_and_weather():
    traffic = {"r3": TrafficEvaluation(status_text="severely congested", congestion_rate=90.0, tips="")}
    weather = WeatherImpact(impact=0.3, level="moderate", category="rain")
    ranked = rank_candidates(_batch(), frozenset(), traffic=traffic, weather=weather)

    by_id = {item.id: item for item in ranked}
    assert by_id["r3"].breakdown.traffic_score == pytest.approx(0.1)
    assert by_id["r3"].traffic_status == "severely congested"
    assert by_id["r3"].expected_delay_minutes == 8
    assert by_id["r1"].traffic_status is None
    assert all(item.breakdown.weather_score == pytest.approx(0.7) for item in ranked)
    assert all(item.weather_level == "moderate" for item in ranked)
    assert ranked[0].id == "r1"


@pytest.mark.parametrize(
    "prefs, expected",
    [
        ([], RouteStrategy.RECOMMENDED),
        ([Preference.FASTEST], RouteStrategy.FASTEST),
        ([Preference.SHORTEST, Preference.FASTEST], RouteStrategy.SHORTEST),
        ([Preference.AVOID_HIGHWAY, Preference.SHORTEST], RouteStrategy.AVOID_HIGHWAY),
        ([Preference.AVOID_TOLL, Preference.AVOID_HIGHWAY], RouteStrategy.AVOID_TOLL),
        ([Preference.ECONOMICAL], RouteStrategy.ECONOMICAL),
    ],
)
def test_route_strategy(prefs, expected):
    assert route_strategy(frozenset(prefs)) is expected


def test_plan_combines_live_signals():
    path = FakePathSource(_batch())
    traffic = FakeTrafficSource(TrafficSnapshot(overall_congestion_rate=60.0, status_code=3))
    weather = FakeWeatherSource(WeatherReading(description="大雨", temperature_c=18))
    pois = FakePoiSource(
        [
            PointOfInterest(
                id=f"p{i}",
                name=f"Cafe {i}",
                category="coffee",
                address="",
                location=coord(116.31, 39.90),
            )
            for i in range(4)
        ]
    )
    planner = RoutePlanner(
        path,
        traffic_source=traffic,
        weather_source=weather,
        poi_source=pois,
        config=PlannerConfig(max_pois=3),
    )

    result = asyncio.run(planner.plan(ORIGIN, DESTINATION, preferences=["coffee_shop", "not-a-tag"]))

    assert result.recommended_route_id == "r3"
    assert result.recommended.traffic_status == "congested"
    assert result.recommended.expected_delay_minutes == 5
    assert result.weather.description == "大雨"
    assert len(result.pois) == 3
    assert pois.calls == [[Preference.COFFEE_SHOP]]
    assert len(traffic.regions) == 3
    assert "Recommended route is 13.0 km" in result.summary


def test_plan_uses_configured_defaults_for_strategy():
    path = FakePathSource(_batch())
    planner = RoutePlanner(path, config=PlannerConfig(avoid_toll=True))

    asyncio.run(planner.plan(ORIGIN, DESTINATION))

    assert path.calls[0][3] is RouteStrategy.AVOID_TOLL


def test_plan_caps_candidates():
    routes = [make_route(f"r{i}", 1000 + i, 600 + i) for i in range(5)]
    planner = RoutePlanner(FakePathSource(routes), config=PlannerConfig(max_candidates=2))

    result = asyncio.run(planner.plan(ORIGIN, DESTINATION))

    assert {item.id for item in result.routes} == {"r0", "r1"}


def test_plan_falls_back_to_neutral_scores_when_signals_fail():
    planner = RoutePlanner(
        FakePathSource(_batch()),
        traffic_source=FakeTrafficSource(CollaboratorUnavailable("down")),
        weather_source=FakeWeatherSource(CollaboratorUnavailable("down")),
    )

    result = asyncio.run(planner.plan(ORIGIN, DESTINATION))

    assert result.weather is None
    assert all(item.breakdown.traffic_score == 0.8 for item in result.routes)
    assert all(item.breakdown.weather_score == 1.0 for item in result.routes)
    assert result.recommended_route_id == "r3"


def test_plan_propagates_unexpected_traffic_errors():
    planner = RoutePlanner(FakePathSource(_batch()), traffic_source=FakeTrafficSource(RuntimeError("bug")))
    with pytest.raises(RuntimeError):
        asyncio.run(planner.plan(ORIGIN, DESTINATION))


def test_plan_without_candidates_raises():
    planner = RoutePlanner(FakePathSource([]))
    with pytest.raises(NoCandidates):
        asyncio.run(planner.plan(ORIGIN, DESTINATION))


def test_plan_surfaces_path_source_failure():
    planner = RoutePlanner(FakePathSource(error=CollaboratorUnavailable("AMap down", collaborator="path")))
    with pytest.raises(CollaboratorUnavailable):
        asyncio.run(planner.plan(ORIGIN, DESTINATION))


def test_plan_times_out_slow_path_source():
    class SlowPathSource:
        async def plan_paths(self, origin, destination, mode, strategy):
            await asyncio.sleep(1)
            return _batch()

    planner = RoutePlanner(SlowPathSource(), config=PlannerConfig(collaborator_timeout_s=0.01))
    with pytest.raises(CollaboratorUnavailable) as excinfo:
        asyncio.run(planner.plan(ORIGIN, DESTINATION))
    assert excinfo.value.collaborator == "path"
