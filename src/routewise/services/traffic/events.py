"""Turn traffic snapshots into discrete events and alert text."""

from __future__ import annotations

import logging
import time
from typing import Iterable

from .models import Alert, EventKind, RoadStatus, Severity, TrafficEvent, TrafficSnapshot

logger = logging.getLogger(__name__)

CONGESTED_STATUS = 3
SEVERELY_CONGESTED_STATUS = 4

# Incident type codes reported by the traffic provider.
EVENT_KIND_CODES: dict[str, EventKind] = {
    "1": EventKind.ACCIDENT,
    "2": EventKind.CONSTRUCTION,
    "3": EventKind.CONTROL,
    "4": EventKind.CONGESTION,
    "5": EventKind.FOG,
    "6": EventKind.RAIN,
    "0": EventKind.OTHER,
}

EVENT_KIND_TEXT: dict[EventKind, str] = {
    EventKind.ACCIDENT: "traffic accident",
    EventKind.CONSTRUCTION: "road construction",
    EventKind.CONTROL: "traffic control",
    EventKind.CONGESTION: "congestion",
    EventKind.FOG: "heavy fog",
    EventKind.RAIN: "rain or snow",
    EventKind.OTHER: "incident",
}


def severity_from_classification(value: str | None, *, status_code: int | None = None) -> Severity:
    if status_code == SEVERELY_CONGESTED_STATUS:
        return Severity.SEVERE
    normalized = (value or "").strip().lower()
    if normalized == Severity.SEVERE.value:
        return Severity.SEVERE
    if normalized == Severity.MINOR.value:
        return Severity.MINOR
    return Severity.MODERATE


def _congestion_event_id(road: RoadStatus) -> str:
    if road.code:
        return f"congestion_{road.code}"
    # Provider omitted the segment code; fall back to something stable across polls.
    location = road.location
    return f"congestion_{road.name or 'unknown'}_{location.lng:.4f}_{location.lat:.4f}"


def congestion_events(roads: Iterable[RoadStatus], *, now: float | None = None) -> list[TrafficEvent]:
    """Synthesize congestion events for roads reporting status 3 or 4."""

    seen_at = time.time() if now is None else now
    events: list[TrafficEvent] = []
    for road in roads:
        if road.status_code < CONGESTED_STATUS:
            continue
        if road.location is None:
            logger.debug("Skipping congested road %r without a location", road.name)
            continue
        severe = road.status_code >= SEVERELY_CONGESTED_STATUS
        road_name = road.name or "unknown road"
        label = "severely congested" if severe else "congested"
        events.append(
            TrafficEvent(
                id=_congestion_event_id(road),
                kind=EventKind.CONGESTION,
                severity=Severity.SEVERE if severe else Severity.MODERATE,
                location=road.location,
                road_name=road_name,
                delay_minutes=20 if severe else 10,
                first_seen_at=seen_at,
                description=f"{road_name} {label}",
            )
        )
    return events


def snapshot_events(snapshot: TrafficSnapshot, *, now: float | None = None) -> list[TrafficEvent]:
    """All events carried by a snapshot: synthesized congestion plus reported incidents."""

    return [*congestion_events(snapshot.roads, now=now), *snapshot.incidents]


def alert_suggestion(event: TrafficEvent) -> str:
    road = event.road_name
    match event.kind:
        case EventKind.ACCIDENT:
            return f"Accident reported on {road} ahead, expect about {event.delay_minutes or 15} min delay; consider a detour."
        case EventKind.CONSTRUCTION:
            return f"Road construction on {road} ahead; consider another route."
        case EventKind.CONGESTION:
            label = "Severe congestion" if event.severity is Severity.SEVERE else "Congestion"
            return f"{label} on {road} ahead, expect about {event.delay_minutes or 10} min delay."
        case EventKind.CONTROL:
            return f"Traffic control on {road} ahead; plan a detour."
        case _:
            return f"{EVENT_KIND_TEXT.get(event.kind, 'Incident').capitalize()} reported ahead; drive carefully."


def build_alert(event: TrafficEvent, *, affects_route: bool, now: float | None = None) -> Alert:
    return Alert(
        event=event,
        affects_route=affects_route,
        suggestion_text=alert_suggestion(event),
        timestamp=time.time() if now is None else now,
    )
