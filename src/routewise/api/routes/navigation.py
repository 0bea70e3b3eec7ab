"""Navigation session endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Response, status

from ...schemas.navigation import (
    NotificationModel,
    NotificationsResponse,
    SessionStatusModel,
    StartNavigationRequest,
    UpdatePositionRequest,
    UpdateRouteRequest,
)
from ...services.events import InMemoryNotifier
from ...services.navigation.registry import SessionRegistry
from ...services.navigation.session import NavigationSession
from ..deps import get_registry

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/navigation/sessions", tags=["navigation"])


def _lookup(registry: SessionRegistry, session_id: str) -> NavigationSession:
    try:
        return registry.get(session_id)
    except KeyError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Session '{session_id}' not found") from exc


@router.post("", response_model=SessionStatusModel, status_code=status.HTTP_201_CREATED)
async def start_session(
    payload: StartNavigationRequest,
    registry: SessionRegistry = Depends(get_registry),
) -> SessionStatusModel:
    session_id, session = registry.create()
    try:
        await session.start_navigation(
            payload.destination.to_domain(),
            [point.to_domain() for point in payload.polyline],
            duration_seconds=payload.duration_seconds,
        )
    except ValueError as exc:
        await registry.close(session_id)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except Exception as exc:
        await registry.close(session_id)
        logger.exception("Error starting navigation session: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to start navigation. Check server logs for details.",
        ) from exc
    return SessionStatusModel.from_session(session_id, session)


@router.get("/{session_id}", response_model=SessionStatusModel)
async def get_session(session_id: str, registry: SessionRegistry = Depends(get_registry)) -> SessionStatusModel:
    return SessionStatusModel.from_session(session_id, _lookup(registry, session_id))


@router.put("/{session_id}/route", response_model=SessionStatusModel)
async def update_route(
    session_id: str,
    payload: UpdateRouteRequest,
    registry: SessionRegistry = Depends(get_registry),
) -> SessionStatusModel:
    session = _lookup(registry, session_id)
    try:
        session.update_route(
            [point.to_domain() for point in payload.polyline],
            duration_seconds=payload.duration_seconds,
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return SessionStatusModel.from_session(session_id, session)


@router.put("/{session_id}/position", response_model=SessionStatusModel)
async def update_position(
    session_id: str,
    payload: UpdatePositionRequest,
    registry: SessionRegistry = Depends(get_registry),
) -> SessionStatusModel:
    session = _lookup(registry, session_id)
    session.update_position(payload.position.to_domain())
    return SessionStatusModel.from_session(session_id, session)


@router.get("/{session_id}/notifications", response_model=NotificationsResponse)
async def list_notifications(session_id: str, registry: SessionRegistry = Depends(get_registry)) -> NotificationsResponse:
    session = _lookup(registry, session_id)
    notifications = session.notifier.recent() if isinstance(session.notifier, InMemoryNotifier) else []
    return NotificationsResponse(
        session_id=session_id,
        notifications=[NotificationModel.from_domain(item) for item in notifications],
    )


@router.delete("/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def stop_session(session_id: str, registry: SessionRegistry = Depends(get_registry)) -> Response:
    try:
        await registry.close(session_id)
    except KeyError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Session '{session_id}' not found") from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)
