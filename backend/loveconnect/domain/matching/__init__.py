"""Compatibility scoring and discovery for LoveConnect."""

from loveconnect.domain.matching.models import (
	ActivityEvent,
	CompatibilityScore,
	DiscoveryPreferences,
	GeoPoint,
	Profile,
	RankedCandidate,
	RelationshipGoal,
	SwipeAction,
	ZodiacSign,
)
from loveconnect.domain.matching.scorer import CompatibilityScorer

__all__ = [
	"ActivityEvent",
	"CompatibilityScore",
	"CompatibilityScorer",
	"DiscoveryPreferences",
	"GeoPoint",
	"Profile",
	"RankedCandidate",
	"RelationshipGoal",
	"SwipeAction",
	"ZodiacSign",
]
