"""Navigation session request/response schemas."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field

from ..services.events import Notification
from ..services.navigation.session import NavigationSession, RerouteSuggestion
from ..services.traffic.models import MonitorState, TrafficEvent
from .routing import CoordinateModel, RoutePlanResponse, WeatherModel


class StartNavigationRequest(BaseModel):
    destination: CoordinateModel
    polyline: List[CoordinateModel] = Field(..., min_length=1, description="Route to monitor, origin first.")
    duration_seconds: Optional[float] = Field(
        default=None,
        ge=0,
        description="Travel time quoted for the route; estimated from its length when omitted.",
    )


class UpdateRouteRequest(BaseModel):
    polyline: List[CoordinateModel] = Field(..., min_length=1)
    duration_seconds: Optional[float] = Field(default=None, ge=0)


class UpdatePositionRequest(BaseModel):
    position: CoordinateModel


class TrafficEventModel(BaseModel):
    id: str
    kind: str
    severity: str
    road_name: str
    location: CoordinateModel
    delay_minutes: Optional[int] = None
    first_seen_at: float
    description: str = ""

    @classmethod
    def from_domain(cls, event: TrafficEvent) -> "TrafficEventModel":
        return cls(
            id=event.id,
            kind=event.kind.value,
            severity=event.severity.value,
            road_name=event.road_name,
            location=CoordinateModel.from_domain(event.location),
            delay_minutes=event.delay_minutes,
            first_seen_at=event.first_seen_at,
            description=event.description,
        )


class RerouteSuggestionModel(BaseModel):
    reason: str
    old_duration_seconds: float
    new_duration_seconds: float
    time_saved_minutes: int
    plan: RoutePlanResponse

    @classmethod
    def from_domain(cls, suggestion: RerouteSuggestion) -> "RerouteSuggestionModel":
        return cls(
            reason=suggestion.reason,
            old_duration_seconds=suggestion.old_duration_seconds,
            new_duration_seconds=suggestion.new_duration_seconds,
            time_saved_minutes=suggestion.time_saved_minutes,
            plan=RoutePlanResponse.from_domain(suggestion.plan),
        )


class SessionStatusModel(BaseModel):
    session_id: str
    status: MonitorState
    destination: Optional[CoordinateModel] = None
    current_position: Optional[CoordinateModel] = None
    route_points: int = 0
    active_events: List[TrafficEventModel] = Field(default_factory=list)
    has_severe_events: bool = False
    weather: Optional[WeatherModel] = None
    last_suggestion: Optional[RerouteSuggestionModel] = None

    @classmethod
    def from_session(cls, session_id: str, session: NavigationSession) -> "SessionStatusModel":
        destination = session.destination
        position = session.current_position
        return cls(
            session_id=session_id,
            status=session.monitor.status,
            destination=CoordinateModel.from_domain(destination) if destination else None,
            current_position=CoordinateModel.from_domain(position) if position else None,
            route_points=len(session.state.route_polyline),
            active_events=[TrafficEventModel.from_domain(event) for event in session.monitor.active_events()],
            has_severe_events=session.monitor.has_severe_events(),
            weather=WeatherModel.from_domain(session.last_weather) if session.last_weather else None,
            last_suggestion=(
                RerouteSuggestionModel.from_domain(session.last_suggestion) if session.last_suggestion else None
            ),
        )


class NotificationModel(BaseModel):
    title: str
    body: str
    kind: str
    timestamp: float

    @classmethod
    def from_domain(cls, notification: Notification) -> "NotificationModel":
        return cls(
            title=notification.title,
            body=notification.body,
            kind=notification.kind,
            timestamp=notification.timestamp,
        )


class NotificationsResponse(BaseModel):
    session_id: str
    notifications: List[NotificationModel]
