import asyncio

import pytest

from routewise.config import MonitorConfig, SessionConfig
from routewise.models.domain import WeatherReading
from routewise.services.events import REROUTE, EventBus
from routewise.services.navigation.registry import SessionRegistry
from routewise.services.navigation.session import (
    NavigationSession,
    estimate_duration_s,
    minutes_saved,
    should_reroute,
)
from routewise.services.routing.planner import RoutePlanner
from routewise.services.traffic.models import TrafficSnapshot
from routewise.services.traffic.monitor import TrafficMonitor

from fakes import ROUTE, FakePathSource, FakeTrafficSource, FakeWeatherSource, congested_road, coord, make_route

DESTINATION = ROUTE[-1]
EMPTY = TrafficSnapshot(overall_congestion_rate=0.0)


def _session(*, alt_duration=790.0, traffic=None, weather=None, bus=None):
    planner = RoutePlanner(FakePathSource([make_route("alt", 5000, alt_duration)]))
    monitor = TrafficMonitor(traffic or FakeTrafficSource(EMPTY), config=MonitorConfig(interval_ms=60_000))
    return NavigationSession(
        planner,
        monitor,
        weather_source=weather,
        bus=bus,
        config=SessionConfig(watch_weather=False),
    )


def _kinds(session):
    return [item.kind for item in session.notifier.recent()]


def test_reroute_threshold():
    assert should_reroute(1000, 790)
    assert not should_reroute(1000, 850)
    assert not should_reroute(1000, 800)
    assert minutes_saved(1000, 790) == 4


def test_estimated_duration_uses_fallback_speed():
    # ~1706 m at 40 km/h
    assert estimate_duration_s(ROUTE, 40.0) == pytest.approx(153.5, abs=0.5)
    assert estimate_duration_s(ROUTE[:1]) == 0.0


def test_evaluate_reroute_suggests_clearly_faster_route():
    bus = EventBus()
    published = []
    bus.subscribe(REROUTE, published.append)

    async def scenario():
        session = _session(alt_duration=790, bus=bus)
        await session.start_navigation(DESTINATION, ROUTE, duration_seconds=1000)
        suggestion = await session.evaluate_reroute("Accident ahead")
        await session.close()
        return session, suggestion

    session, suggestion = asyncio.run(scenario())

    assert suggestion is not None
    assert suggestion.time_saved_minutes == 4
    assert suggestion.plan.recommended_route_id == "alt"
    assert session.last_suggestion is suggestion
    assert published == [suggestion]
    assert _kinds(session) == ["reroute_suggestion"]


def test_evaluate_reroute_keeps_route_below_threshold():
    async def scenario():
        session = _session(alt_duration=850)
        await session.start_navigation(DESTINATION, ROUTE, duration_seconds=1000)
        suggestion = await session.evaluate_reroute("Accident ahead")
        await session.close()
        return session, suggestion

    session, suggestion = asyncio.run(scenario())
    assert suggestion is None
    assert session.notifier.recent() == []


def test_evaluate_reroute_estimates_missing_duration():
    async def scenario():
        session = _session(alt_duration=100)
        await session.start_navigation(DESTINATION, ROUTE)
        suggestion = await session.evaluate_reroute("Congestion")
        await session.close()
        return suggestion

    suggestion = asyncio.run(scenario())
    assert suggestion is not None
    assert suggestion.old_duration_seconds == pytest.approx(153.5, abs=0.5)


def test_reroute_starts_from_latest_position():
    async def scenario():
        session = _session()
        await session.start_navigation(DESTINATION, ROUTE, duration_seconds=1000)
        session.update_position(coord(116.31, 39.90))
        await session.evaluate_reroute("Congestion")
        await session.close()
        return session.planner.path_source.calls

    calls = asyncio.run(scenario())
    assert calls[0][0] == coord(116.31, 39.90)


def test_severe_traffic_alert_triggers_reroute():
    traffic = FakeTrafficSource(TrafficSnapshot(overall_congestion_rate=80.0, roads=(congested_road("L1", 116.315, 39.9001),)))

    async def scenario():
        session = _session(traffic=traffic)
        await session.start_navigation(DESTINATION, ROUTE, duration_seconds=1000)
        await asyncio.sleep(0.05)
        await session.close()
        return session

    session = asyncio.run(scenario())
    assert _kinds(session) == ["traffic_alert", "reroute_suggestion"]


def test_moderate_traffic_alert_only_notifies():
    traffic = FakeTrafficSource(
        TrafficSnapshot(overall_congestion_rate=40.0, roads=(congested_road("L1", 116.315, 39.9001, status=3),))
    )

    async def scenario():
        session = _session(traffic=traffic)
        await session.start_navigation(DESTINATION, ROUTE, duration_seconds=1000)
        await asyncio.sleep(0.05)
        await session.close()
        return session

    session = asyncio.run(scenario())
    assert _kinds(session) == ["traffic_alert"]
    assert session.last_suggestion is None


def test_weather_turning_bad_notifies_and_reroutes():
    weather = FakeWeatherSource(WeatherReading(description="晴"), WeatherReading(description="暴雨"))

    async def scenario():
        session = _session(weather=weather)
        await session.start_navigation(DESTINATION, ROUTE, duration_seconds=1000)
        baseline = await session.check_weather()
        changed = await session.check_weather()
        await session.close()
        return session, baseline, changed

    session, baseline, changed = asyncio.run(scenario())
    assert baseline is False
    assert changed is True
    assert _kinds(session) == ["weather_alert", "reroute_suggestion"]
    assert session.last_weather.description == "暴雨"


def test_mild_weather_change_is_ignored():
    weather = FakeWeatherSource(WeatherReading(description="晴"), WeatherReading(description="霾"))

    async def scenario():
        session = _session(weather=weather)
        await session.start_navigation(DESTINATION, ROUTE, duration_seconds=1000)
        await session.check_weather()
        await session.check_weather()
        await session.close()
        return session

    # haze is a bad-weather category but its impact stays below the notify threshold
    assert _kinds(asyncio.run(scenario())) == []


def test_stopped_session_never_suggests():
    async def scenario():
        session = _session()
        await session.start_navigation(DESTINATION, ROUTE, duration_seconds=1000)
        await session.stop_navigation()
        suggestion = await session.evaluate_reroute("late")
        return session, suggestion

    session, suggestion = asyncio.run(scenario())
    assert suggestion is None
    assert not session.is_active
    assert session.destination is None


def test_weather_watch_runs_on_its_own_task():
    weather = FakeWeatherSource(WeatherReading(description="晴"))

    async def scenario():
        planner = RoutePlanner(FakePathSource([make_route("alt", 5000, 790)]))
        monitor = TrafficMonitor(FakeTrafficSource(EMPTY), config=MonitorConfig(interval_ms=60_000))
        session = NavigationSession(
            planner,
            monitor,
            weather_source=weather,
            config=SessionConfig(weather_interval_ms=10),
        )
        await session.start_navigation(DESTINATION, ROUTE)
        await asyncio.sleep(0.06)
        await session.stop_navigation()
        calls = weather.calls
        await asyncio.sleep(0.03)
        return calls, weather.calls

    calls, after_stop = asyncio.run(scenario())
    assert calls >= 3
    assert after_stop == calls


def test_registry_lifecycle():
    async def scenario():
        registry = SessionRegistry(_session)
        session_id, session = registry.create()
        assert registry.get(session_id) is session
        await session.start_navigation(DESTINATION, ROUTE)
        await registry.close(session_id)
        with pytest.raises(KeyError):
            registry.get(session_id)
        with pytest.raises(KeyError):
            await registry.close(session_id)

        registry.create()
        registry.create()
        await registry.close_all()
        return len(registry), session.is_active

    remaining, active = asyncio.run(scenario())
    assert remaining == 0
    assert active is False
