"""Schemas for discovery ranking, swipes and activity endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field

from loveconnect.domain.matching.geo import distance_km
from loveconnect.domain.matching.models import Profile, RankedCandidate


class CompatibilityBreakdown(BaseModel):
	overall_score: float = Field(..., ge=0.0, le=1.0)
	location_score: float = Field(..., ge=0.0, le=1.0)
	interests_score: float = Field(..., ge=0.0, le=1.0)
	goal_compatibility: float = Field(..., ge=0.0, le=1.0)
	zodiac_score: float = Field(..., ge=0.0, le=1.0)
	behavior_score: float = Field(..., ge=0.0, le=1.0)
	preference_score: float = Field(..., ge=0.0, le=1.0)


class MatchCandidate(BaseModel):
	user_id: str
	relationship_goal: Optional[str] = None
	zodiac_sign: Optional[str] = None
	age: Optional[int] = None
	interests: list[str] = Field(default_factory=list)
	distance_km: Optional[float] = Field(default=None, ge=0.0)
	compatibility: CompatibilityBreakdown

	@classmethod
	def from_ranked(cls, requester: Optional[Profile], item: RankedCandidate) -> "MatchCandidate":
		profile = item.profile
		distance: Optional[float] = None
		if requester is not None and requester.location and profile.location:
			distance = round(
				distance_km(requester.location.lat, requester.location.lon, profile.location.lat, profile.location.lon),
				1,
			)
		return cls(
			user_id=profile.user_id,
			relationship_goal=profile.relationship_goal.value if profile.relationship_goal else None,
			zodiac_sign=profile.zodiac_sign.value if profile.zodiac_sign else None,
			age=profile.age,
			interests=sorted(profile.interests),
			distance_km=distance,
			compatibility=CompatibilityBreakdown(
				overall_score=item.score.overall_score,
				**item.score.components(),
			),
		)


class MatchesResponse(BaseModel):
	items: list[MatchCandidate] = Field(default_factory=list)
	generated_at: datetime
	exhausted: bool = False


class SwipePayload(BaseModel):
	target_id: str = Field(..., min_length=1)
	action: Literal["like", "dislike", "super_like"]


class SwipeResponse(BaseModel):
	action: str
	matched: bool = False


class ActivityPayload(BaseModel):
	activity_type: str = Field(..., min_length=1, max_length=64)
	target_user_id: Optional[str] = None
	metadata: dict[str, Any] = Field(default_factory=dict)


class LocationPayload(BaseModel):
	lat: float = Field(..., ge=-90.0, le=90.0)
	lon: float = Field(..., ge=-180.0, le=180.0)
	accuracy_m: Optional[float] = Field(default=None, ge=0.0)
