"""Recurring traffic-event poller for a live route."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import replace
from typing import Callable, Sequence

from ...config import MonitorConfig
from ...errors import CollaboratorUnavailable, MalformedSnapshot
from ...models.domain import Coordinate
from ..events import TRAFFIC_ALERT, EventBus
from ..geospatial import bounding_box, min_distance_to_route_m
from ..providers.base import TrafficSource
from .events import build_alert, snapshot_events
from .models import Alert, MonitoredRouteState, MonitorState, Severity, TrafficEvent

logger = logging.getLogger(__name__)

AlertObserver = Callable[[Alert], None]


class TrafficMonitor:
    """Polls a traffic source around a route and raises one alert per new nearby event.

    Polls are serialized: a tick that fires while another poll is still in
    flight is dropped, while the immediate poll made by ``start()`` waits its
    turn. ``stop()`` bumps a generation counter, so a poll that
    completes after the monitor was stopped (or restarted) is discarded.
    """

    def __init__(
        self,
        traffic_source: TrafficSource,
        *,
        config: MonitorConfig | None = None,
        state: MonitoredRouteState | None = None,
        bus: EventBus | None = None,
    ) -> None:
        self.traffic_source = traffic_source
        self.config = config or MonitorConfig()
        self.state = state if state is not None else MonitoredRouteState()
        self.bus = bus
        self._observers: list[AlertObserver] = []
        self._task: asyncio.Task[None] | None = None
        self._poll_lock = asyncio.Lock()
        self._generation = 0

    @property
    def status(self) -> MonitorState:
        return MonitorState.MONITORING if self.state.is_active else MonitorState.IDLE

    def subscribe(self, observer: AlertObserver) -> Callable[[], None]:
        self._observers.append(observer)

        def unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    async def start(self, route_polyline: Sequence[Coordinate], interval_ms: int | None = None) -> None:
        if not route_polyline:
            raise ValueError("Cannot monitor an empty route.")
        previous = self._task
        self.stop()
        if previous is not None:
            # Let the cancelled loop release the poll lock before the first poll.
            await asyncio.gather(previous, return_exceptions=True)

        self._set_route(route_polyline)
        self.state.is_active = True
        interval = (interval_ms or self.config.interval_ms) / 1000
        logger.info("Traffic monitoring started (%d route points, every %.0fs)", len(route_polyline), interval)

        async with self._poll_lock:
            await self._poll()
        if self.state.is_active:
            self._task = asyncio.create_task(self._run(interval, self._generation))

    def stop(self) -> None:
        self._generation += 1
        if self._task is not None:
            self._task.cancel()
            self._task = None
        was_active = self.state.is_active
        self.state.is_active = False
        self.state.active_events.clear()
        if was_active:
            logger.info("Traffic monitoring stopped")

    def update_route(self, route_polyline: Sequence[Coordinate]) -> None:
        if not route_polyline:
            raise ValueError("Cannot monitor an empty route.")
        self._set_route(route_polyline)

    def active_events(self) -> list[TrafficEvent]:
        return list(self.state.active_events.values())

    def has_severe_events(self) -> bool:
        return any(event.severity is Severity.SEVERE for event in self.state.active_events.values())

    async def poll_once(self) -> list[Alert]:
        """Run one poll tick and return the alerts it emitted."""

        if self._poll_lock.locked():
            logger.debug("Previous traffic poll still running, skipping tick")
            return []
        async with self._poll_lock:
            return await self._poll()

    def _set_route(self, route_polyline: Sequence[Coordinate]) -> None:
        self.state.route_polyline = tuple(route_polyline)
        self.state.bounding_region = bounding_box(self.state.route_polyline, self.config.region_padding_degrees)

    async def _run(self, interval: float, generation: int) -> None:
        while generation == self._generation:
            await asyncio.sleep(interval)
            if generation != self._generation:
                break
            try:
                await self.poll_once()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Unexpected error during traffic poll; will retry next tick")

    async def _poll(self) -> list[Alert]:
        if not self.state.is_active:
            return []
        generation = self._generation
        # Proximity is judged against the route as it was when this poll began.
        polyline = self.state.route_polyline
        region = self.state.bounding_region
        if len(polyline) < 2 or region is None:
            return []

        try:
            snapshot = await asyncio.wait_for(
                self.traffic_source.traffic_in_region(region),
                timeout=self.config.fetch_timeout_s,
            )
        except asyncio.TimeoutError:
            logger.warning("Traffic poll timed out after %.1fs; keeping previous events", self.config.fetch_timeout_s)
            return []
        except CollaboratorUnavailable as exc:
            logger.warning("Traffic source unavailable: %s; keeping previous events", exc)
            return []
        except MalformedSnapshot as exc:
            logger.error("Malformed traffic snapshot ignored: %s", exc)
            return []

        if generation != self._generation or not self.state.is_active:
            logger.debug("Discarding traffic poll result from a stopped monitor")
            return []

        now = time.time()
        events = snapshot_events(snapshot, now=now)
        alerts: list[Alert] = []
        active = self.state.active_events
        for event in events:
            previous = active.get(event.id)
            if previous is None:
                affects = min_distance_to_route_m(event.location, polyline) < self.config.proximity_meters
                if affects:
                    alerts.append(build_alert(event, affects_route=True, now=now))
                active[event.id] = event
            else:
                active[event.id] = replace(event, first_seen_at=previous.first_seen_at)

        current_ids = {event.id for event in events}
        for event_id in [event_id for event_id in active if event_id not in current_ids]:
            del active[event_id]

        for alert in alerts:
            self._dispatch(alert)
        return alerts

    def _dispatch(self, alert: Alert) -> None:
        logger.info("Traffic alert: %s", alert.suggestion_text)
        for observer in list(self._observers):
            try:
                observer(alert)
            except Exception:
                logger.exception("Traffic alert observer failed")
        if self.bus is not None:
            self.bus.publish(TRAFFIC_ALERT, alert)
