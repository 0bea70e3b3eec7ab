"""Route planning endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from ...errors import CollaboratorUnavailable, MalformedSnapshot
from ...schemas.routing import RoutePlanRequest, RoutePlanResponse
from ...services.routing.planner import RoutePlanner
from ..deps import get_planner

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/routes", tags=["routes"])


@router.post("/plan", response_model=RoutePlanResponse, status_code=status.HTTP_200_OK)
async def plan_route(payload: RoutePlanRequest, planner: RoutePlanner = Depends(get_planner)) -> RoutePlanResponse:
    try:
        result = await planner.plan(
            payload.origin.to_domain(),
            payload.destination.to_domain(),
            mode=payload.mode,
            preferences=payload.preferences,
            consider_traffic=payload.consider_traffic,
            consider_weather=payload.consider_weather,
            search_poi=payload.search_poi,
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except (CollaboratorUnavailable, MalformedSnapshot) as exc:
        logger.warning("Route planning failed on a collaborator: %s", exc)
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    except Exception as exc:
        logger.exception("Error planning route: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Route planning failed. Check server logs for details.",
        ) from exc
    return RoutePlanResponse.from_domain(result)
