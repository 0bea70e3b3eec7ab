"""Navigation session: monitors an active route and decides when to suggest a reroute."""

from __future__ import annotations

import asyncio
import logging
import math
from dataclasses import dataclass
from typing import Sequence

from ...config import SessionConfig
from ...errors import CollaboratorUnavailable, MalformedSnapshot, NoCandidates
from ...models.domain import Coordinate, Preference, WeatherReading
from ..events import REROUTE, WEATHER_CHANGE, EventBus, InMemoryNotifier, Notification, NotificationSink
from ..geospatial import route_length_m
from ..providers.base import WeatherSource
from ..routing.models import RoutePlanResult
from ..routing.planner import RoutePlanner
from ..traffic.models import Alert, MonitoredRouteState, Severity
from ..traffic.monitor import TrafficMonitor
from ..weather import detect_weather_change

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RerouteSuggestion:
    reason: str
    plan: RoutePlanResult
    old_duration_seconds: float
    new_duration_seconds: float
    time_saved_minutes: int


def estimate_duration_s(polyline: Sequence[Coordinate], speed_kmh: float = 40.0) -> float:
    """Constant-speed travel time along the polyline."""

    if len(polyline) < 2:
        return 0.0
    return route_length_m(polyline) / 1000 / speed_kmh * 3600


def should_reroute(old_duration_s: float, new_duration_s: float, ratio: float = 0.8) -> bool:
    return new_duration_s < old_duration_s * ratio


def minutes_saved(old_duration_s: float, new_duration_s: float) -> int:
    return math.floor((old_duration_s - new_duration_s) / 60 + 0.5)


class NavigationSession:
    """Owns one monitored route for the lifetime of a trip.

    The session subscribes to its TrafficMonitor and drains alerts from a queue
    on its own task, watches the weather on a second task, and runs a reroute
    evaluation when either signal is bad enough.
    """

    def __init__(
        self,
        planner: RoutePlanner,
        monitor: TrafficMonitor,
        *,
        weather_source: WeatherSource | None = None,
        notifier: NotificationSink | None = None,
        bus: EventBus | None = None,
        config: SessionConfig | None = None,
    ) -> None:
        self.planner = planner
        self.monitor = monitor
        self.weather_source = weather_source
        self.notifier = notifier if notifier is not None else InMemoryNotifier()
        self.bus = bus
        self.config = config or SessionConfig()

        self.current_position: Coordinate | None = None
        self.route_duration_s: float | None = None
        self.last_weather: WeatherReading | None = None
        self.last_suggestion: RerouteSuggestion | None = None

        self._alerts: asyncio.Queue[Alert] = asyncio.Queue()
        self._unsubscribe = monitor.subscribe(self._alerts.put_nowait)
        self._consumer: asyncio.Task[None] | None = None
        self._weather_task: asyncio.Task[None] | None = None

    @property
    def state(self) -> MonitoredRouteState:
        return self.monitor.state

    @property
    def is_active(self) -> bool:
        return self.state.is_active

    @property
    def destination(self) -> Coordinate | None:
        return self.state.destination

    async def start_navigation(
        self,
        destination: Coordinate,
        route_polyline: Sequence[Coordinate],
        *,
        duration_seconds: float | None = None,
    ) -> None:
        if self.is_active:
            await self.stop_navigation()
        self.state.destination = destination
        self.route_duration_s = duration_seconds
        self.current_position = route_polyline[0] if route_polyline else None

        await self.monitor.start(route_polyline)
        self._consumer = asyncio.create_task(self._consume_alerts())
        if self.weather_source is not None and self.config.watch_weather:
            self._weather_task = asyncio.create_task(self._watch_weather())
        logger.info("Navigation started towards %s", destination.to_lnglat())

    async def stop_navigation(self) -> None:
        self.monitor.stop()
        for task in (self._consumer, self._weather_task):
            if task is not None:
                task.cancel()
        for task in (self._consumer, self._weather_task):
            if task is not None:
                try:
                    await task
                except asyncio.CancelledError:
                    pass
        self._consumer = None
        self._weather_task = None
        while not self._alerts.empty():
            self._alerts.get_nowait()
        self.state.destination = None
        self.route_duration_s = None
        logger.info("Navigation stopped")

    async def close(self) -> None:
        await self.stop_navigation()
        self._unsubscribe()

    def update_route(self, route_polyline: Sequence[Coordinate], *, duration_seconds: float | None = None) -> None:
        self.monitor.update_route(route_polyline)
        self.route_duration_s = duration_seconds

    def update_position(self, position: Coordinate) -> None:
        self.current_position = position

    async def check_weather(self) -> bool:
        """Poll the weather once; returns True when a bad-weather change was handled."""

        if self.weather_source is None:
            return False
        position = self.current_position or (self.state.route_polyline[0] if self.state.route_polyline else None)
        if position is None:
            return False
        try:
            current = await asyncio.wait_for(
                self.weather_source.current_weather(position),
                timeout=self.config.collaborator_timeout_s,
            )
        except (asyncio.TimeoutError, CollaboratorUnavailable, MalformedSnapshot) as exc:
            logger.warning("Weather check failed: %s", exc)
            return False

        previous, self.last_weather = self.last_weather, current
        logger.debug("Weather update: %s", current.description)
        if previous is None or not self.is_active:
            return False
        if not detect_weather_change(previous, current):
            return False
        await self.handle_weather_change(current)
        return True

    async def handle_weather_change(self, reading: WeatherReading) -> None:
        impact = self.weather_source.impact_of(reading)
        if impact.impact < self.config.weather_notify_threshold:
            return
        reasons = ", ".join(impact.reasons) or impact.category
        await self._notify(
            "Weather alert",
            f"Now {reading.description} ({reasons}); please drive carefully.",
            "weather_alert",
        )
        if self.bus is not None:
            self.bus.publish(WEATHER_CHANGE, {"weather": reading, "impact": impact})
        if impact.impact >= self.config.weather_reroute_threshold and self.is_active:
            await self.evaluate_reroute("Weather is getting worse, a new route is recommended")

    async def handle_traffic_alert(self, alert: Alert) -> RerouteSuggestion | None:
        await self._notify("Traffic alert", alert.suggestion_text, "traffic_alert")
        if alert.event.severity is Severity.SEVERE and alert.alternative_available:
            return await self.evaluate_reroute(alert.suggestion_text)
        return None

    async def evaluate_reroute(self, reason: str) -> RerouteSuggestion | None:
        destination = self.destination
        origin = self.current_position
        if not self.is_active or destination is None or origin is None:
            return None

        try:
            plan = await self.planner.plan(
                origin,
                destination,
                preferences=[Preference.FASTEST],
                consider_traffic=True,
                consider_weather=True,
            )
        except (NoCandidates, CollaboratorUnavailable, MalformedSnapshot) as exc:
            logger.warning("Reroute planning failed: %s", exc)
            return None

        old_duration = self.route_duration_s
        if old_duration is None:
            old_duration = estimate_duration_s(self.state.route_polyline, self.config.fallback_speed_kmh)
        new_duration = plan.recommended.route.duration_seconds

        if not should_reroute(old_duration, new_duration, self.config.reroute_improvement_ratio):
            logger.info(
                "Alternative route not better enough (%.0fs vs %.0fs), keeping current route",
                new_duration,
                old_duration,
            )
            return None
        if not self.is_active:
            return None

        suggestion = RerouteSuggestion(
            reason=reason,
            plan=plan,
            old_duration_seconds=old_duration,
            new_duration_seconds=new_duration,
            time_saved_minutes=minutes_saved(old_duration, new_duration),
        )
        self.last_suggestion = suggestion
        if self.bus is not None:
            self.bus.publish(REROUTE, suggestion)
        await self._notify(
            "Better route found",
            f"{reason}. An alternative route saves about {suggestion.time_saved_minutes} min.",
            "reroute_suggestion",
        )
        return suggestion

    async def _consume_alerts(self) -> None:
        while True:
            alert = await self._alerts.get()
            try:
                await self.handle_traffic_alert(alert)
            except Exception:
                logger.exception("Failed to handle traffic alert %s", alert.event.id)

    async def _watch_weather(self) -> None:
        interval = self.config.weather_interval_ms / 1000
        while True:
            try:
                await self.check_weather()
            except Exception:
                logger.exception("Weather watch tick failed")
            await asyncio.sleep(interval)

    async def _notify(self, title: str, body: str, kind: str) -> None:
        try:
            await self.notifier.send(Notification(title=title, body=body, kind=kind))
        except Exception:
            logger.exception("Failed to deliver notification %r", title)
