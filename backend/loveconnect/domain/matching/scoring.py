"""Pure compatibility sub-score functions.

Every function returns a float in [0, 1]. Missing optional data resolves to
the documented default for its component rather than raising.
"""

from __future__ import annotations

from typing import Iterable, Mapping, Optional

from loveconnect.domain.matching.geo import distance_km
from loveconnect.domain.matching.models import (
	ActivityEvent,
	CompatibilityScore,
	GeoPoint,
	Profile,
	RelationshipGoal,
)
from loveconnect.domain.matching.ports import DistanceFunction

NEUTRAL_SCORE = 0.5
DEFAULT_MAX_DISTANCE_KM = 50.0
PREFERENCE_PLACEHOLDER = 0.7
AGE_TOLERANCE_YEARS = 5
HEIGHT_TOLERANCE_CM = 10

WEIGHTS: Mapping[str, float] = {
	"location_score": 0.20,
	"interests_score": 0.25,
	"goal_compatibility": 0.25,
	"zodiac_score": 0.10,
	"behavior_score": 0.15,
	"preference_score": 0.05,
}

_S = RelationshipGoal.SERIOUS
_C = RelationshipGoal.CASUAL
_F = RelationshipGoal.FRIENDS
_U = RelationshipGoal.UNSURE

# Both directions are spelled out; the table must stay symmetric.
GOAL_COMPATIBILITY: Mapping[RelationshipGoal, Mapping[RelationshipGoal, float]] = {
	_S: {_S: 1.0, _C: 0.3, _F: 0.5, _U: 0.6},
	_C: {_S: 0.3, _C: 1.0, _F: 0.7, _U: 0.8},
	_F: {_S: 0.5, _C: 0.7, _F: 1.0, _U: 0.8},
	_U: {_S: 0.6, _C: 0.8, _F: 0.8, _U: 1.0},
}


def clamp_unit(value: float) -> float:
	return max(0.0, min(1.0, float(value)))


def location_score(
	origin: Optional[GeoPoint],
	target: Optional[GeoPoint],
	*,
	max_distance_km: float = DEFAULT_MAX_DISTANCE_KM,
	distance: DistanceFunction = distance_km,
) -> float:
	"""Linear decay from 1 at zero distance to 0 at `max_distance_km`."""
	if origin is None or target is None:
		return NEUTRAL_SCORE
	km = distance(origin.lat, origin.lon, target.lat, target.lon)
	return clamp_unit(1.0 - km / max_distance_km)


def interests_score(first: Iterable[str], second: Iterable[str]) -> float:
	a, b = set(first), set(second)
	if not a or not b:
		return 0.0
	return clamp_unit(len(a & b) / max(len(a), len(b)))


def goal_compatibility(first: Optional[RelationshipGoal], second: Optional[RelationshipGoal]) -> float:
	"""Matrix lookup; a candidate without a stated goal counts as unsure."""
	if first is None:
		return NEUTRAL_SCORE
	if second is None:
		second = RelationshipGoal.UNSURE
	return GOAL_COMPATIBILITY.get(first, {}).get(second, NEUTRAL_SCORE)


def activity_types(log: Iterable[ActivityEvent]) -> set[str]:
	return {event.activity_type for event in log if event.activity_type}


def behavior_score(
	first: Iterable[ActivityEvent],
	second: Iterable[ActivityEvent],
	*,
	empty_default: float = 0.0,
) -> float:
	"""Share of distinct activity types both users performed."""
	a, b = activity_types(first), activity_types(second)
	if not a or not b:
		return clamp_unit(empty_default)
	return clamp_unit(len(a & b) / max(len(a), len(b), 1))


def _range_coverage(value: int, low: Optional[int], high: Optional[int], tolerance: int) -> float:
	if low is not None and value < low:
		gap = low - value
	elif high is not None and value > high:
		gap = value - high
	else:
		return 1.0
	return clamp_unit(1.0 - gap / tolerance)


def preference_score(
	requester: Profile,
	candidate: Profile,
	*,
	placeholder: float = PREFERENCE_PLACEHOLDER,
) -> float:
	"""Coverage of the requester's stated age/height ranges by the candidate.

	Each declared range scores 1.0 inside and decays linearly over a tolerance
	band outside. With nothing to compare the placeholder is returned.
	"""
	prefs = requester.preferences
	if prefs is None:
		return clamp_unit(placeholder)
	parts: list[float] = []
	if prefs.has_age_range and candidate.age is not None:
		parts.append(_range_coverage(candidate.age, prefs.age_min, prefs.age_max, AGE_TOLERANCE_YEARS))
	if prefs.has_height_range and candidate.height_cm is not None:
		parts.append(
			_range_coverage(candidate.height_cm, prefs.height_min_cm, prefs.height_max_cm, HEIGHT_TOLERANCE_CM)
		)
	if not parts:
		return clamp_unit(placeholder)
	return clamp_unit(sum(parts) / len(parts))


def overall_score(components: Mapping[str, float]) -> float:
	total = sum(weight * clamp_unit(components[name]) for name, weight in WEIGHTS.items())
	return clamp_unit(total)


def score_pair(
	requester: Profile,
	candidate: Profile,
	*,
	zodiac_score: float,
	requester_activity: Iterable[ActivityEvent],
	candidate_activity: Iterable[ActivityEvent],
	max_distance_km: float = DEFAULT_MAX_DISTANCE_KM,
	distance: DistanceFunction = distance_km,
	empty_behavior_score: float = 0.0,
	preference_placeholder: float = PREFERENCE_PLACEHOLDER,
) -> CompatibilityScore:
	"""Combine all sub-scores for one (requester, candidate) pair."""
	if requester.preferences is not None and requester.preferences.max_distance_km:
		max_distance_km = requester.preferences.max_distance_km
	components = {
		"location_score": location_score(
			requester.location,
			candidate.location,
			max_distance_km=max_distance_km,
			distance=distance,
		),
		"interests_score": interests_score(requester.interests, candidate.interests),
		"goal_compatibility": goal_compatibility(requester.relationship_goal, candidate.relationship_goal),
		"zodiac_score": clamp_unit(zodiac_score),
		"behavior_score": behavior_score(
			requester_activity,
			candidate_activity,
			empty_default=empty_behavior_score,
		),
		"preference_score": preference_score(requester, candidate, placeholder=preference_placeholder),
	}
	return CompatibilityScore(
		candidate_id=candidate.user_id,
		overall_score=overall_score(components),
		**components,
	)
