"""Discovery ranking, swipe and activity endpoints."""

from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from loveconnect.domain.matching.exceptions import (
	EmptyCandidatePool,
	InvalidSwipe,
	MatchingError,
	MissingRelationshipGoal,
	ProfileNotFound,
)
from loveconnect.domain.matching.schemas import (
	ActivityPayload,
	LocationPayload,
	MatchCandidate,
	MatchesResponse,
	SwipePayload,
	SwipeResponse,
)
from loveconnect.domain.matching.service import DiscoveryService, get_discovery_service
from loveconnect.infra import rate_limit
from loveconnect.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(prefix="/discovery", tags=["discovery"])


def _map_error(exc: MatchingError) -> HTTPException:
	if isinstance(exc, ProfileNotFound):
		return HTTPException(status.HTTP_404_NOT_FOUND, detail=exc.reason)
	if isinstance(exc, MissingRelationshipGoal):
		return HTTPException(422, detail=exc.reason)
	if isinstance(exc, EmptyCandidatePool):
		return HTTPException(status.HTTP_409_CONFLICT, detail=exc.reason)
	if isinstance(exc, InvalidSwipe):
		return HTTPException(status.HTTP_400_BAD_REQUEST, detail=exc.reason)
	return HTTPException(status.HTTP_400_BAD_REQUEST, detail=exc.reason)


async def _enforce_rate(kind: str, user_id: str) -> None:
	try:
		await rate_limit.enforce(kind, user_id)
	except rate_limit.RateLimitExceeded as exc:
		raise HTTPException(status.HTTP_429_TOO_MANY_REQUESTS, detail="rate_limited") from exc


@router.get("/matches", response_model=MatchesResponse)
async def discovery_matches(
	*,
	limit: int = Query(default=20, ge=1, le=100),
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: DiscoveryService = Depends(get_discovery_service),
) -> MatchesResponse:
	await _enforce_rate("matches", auth_user.id)
	try:
		result = await service.find_matches(auth_user.id, limit=limit)
	except MatchingError as exc:
		raise _map_error(exc) from exc
	items = [MatchCandidate.from_ranked(result.requester, item) for item in result.items]
	return MatchesResponse(items=items, generated_at=datetime.now(timezone.utc), exhausted=not items)


@router.post("/swipe", response_model=SwipeResponse, status_code=status.HTTP_200_OK)
async def discovery_swipe(
	payload: SwipePayload,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: DiscoveryService = Depends(get_discovery_service),
) -> SwipeResponse:
	await _enforce_rate("swipe", auth_user.id)
	try:
		outcome = await service.record_swipe(auth_user.id, payload.target_id, payload.action)
	except MatchingError as exc:
		raise _map_error(exc) from exc
	return SwipeResponse(action=outcome.action.value, matched=outcome.matched)


@router.post("/activity", status_code=status.HTTP_202_ACCEPTED)
async def discovery_activity(
	payload: ActivityPayload,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: DiscoveryService = Depends(get_discovery_service),
) -> dict[str, bool]:
	recorded = await service.track_activity(
		auth_user.id,
		payload.activity_type,
		target_user_id=payload.target_user_id,
		metadata=payload.metadata,
	)
	return {"recorded": recorded}


@router.post("/location", status_code=status.HTTP_204_NO_CONTENT)
async def discovery_location(
	payload: LocationPayload,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: DiscoveryService = Depends(get_discovery_service),
) -> Response:
	await service.update_location(auth_user.id, payload.lat, payload.lon, payload.accuracy_m)
	return Response(status_code=status.HTTP_204_NO_CONTENT)
