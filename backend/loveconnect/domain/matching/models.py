"""Domain models used by the compatibility scorer."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Iterable, Mapping, Optional


class RelationshipGoal(str, Enum):
	SERIOUS = "serious"
	CASUAL = "casual"
	FRIENDS = "friends"
	UNSURE = "unsure"

	@classmethod
	def parse(cls, value: object) -> Optional["RelationshipGoal"]:
		if isinstance(value, cls):
			return value
		if not isinstance(value, str) or not value.strip():
			return None
		try:
			return cls(value.strip().lower())
		except ValueError:
			return None


class ZodiacSign(str, Enum):
	ARIES = "aries"
	TAURUS = "taurus"
	GEMINI = "gemini"
	CANCER = "cancer"
	LEO = "leo"
	VIRGO = "virgo"
	LIBRA = "libra"
	SCORPIO = "scorpio"
	SAGITTARIUS = "sagittarius"
	CAPRICORN = "capricorn"
	AQUARIUS = "aquarius"
	PISCES = "pisces"

	@classmethod
	def parse(cls, value: object) -> Optional["ZodiacSign"]:
		"""Case-insensitive lookup; unknown labels map to None."""
		if isinstance(value, cls):
			return value
		if not isinstance(value, str) or not value.strip():
			return None
		try:
			return cls(value.strip().lower())
		except ValueError:
			return None


class SwipeAction(str, Enum):
	LIKE = "like"
	DISLIKE = "dislike"
	SUPER_LIKE = "super_like"

	@property
	def is_positive(self) -> bool:
		return self is not SwipeAction.DISLIKE


@dataclass(frozen=True, slots=True)
class GeoPoint:
	lat: float
	lon: float

	def __post_init__(self) -> None:
		if not -90.0 <= self.lat <= 90.0:
			raise ValueError(f"latitude out of range: {self.lat}")
		if not -180.0 <= self.lon <= 180.0:
			raise ValueError(f"longitude out of range: {self.lon}")

	@classmethod
	def from_optional(cls, lat: object, lon: object) -> Optional["GeoPoint"]:
		"""Build a point only when both coordinates are present."""
		if lat is None or lon is None:
			return None
		try:
			return cls(float(lat), float(lon))
		except (TypeError, ValueError):
			return None


@dataclass(frozen=True, slots=True)
class ActivityEvent:
	activity_type: str
	occurred_at: datetime


@dataclass(frozen=True, slots=True)
class DiscoveryPreferences:
	"""Stated discovery preferences; every bound is optional."""

	age_min: Optional[int] = None
	age_max: Optional[int] = None
	height_min_cm: Optional[int] = None
	height_max_cm: Optional[int] = None
	max_distance_km: Optional[float] = None

	@property
	def has_age_range(self) -> bool:
		return self.age_min is not None or self.age_max is not None

	@property
	def has_height_range(self) -> bool:
		return self.height_min_cm is not None or self.height_max_cm is not None

	@classmethod
	def from_mapping(cls, raw: object) -> Optional["DiscoveryPreferences"]:
		"""Project the loosely-typed `preferences` JSON blob down to known bounds.

		Accepts both `{"ageRange": [25, 35], "maxDistance": 30}` as written by the
		web client and flat snake_case keys.
		"""
		if isinstance(raw, str):
			try:
				raw = json.loads(raw)
			except json.JSONDecodeError:
				return None
		if not isinstance(raw, Mapping):
			return None
		age_min = _as_int(raw.get("age_min"))
		age_max = _as_int(raw.get("age_max"))
		age_range = raw.get("ageRange") or raw.get("age_range")
		if isinstance(age_range, (list, tuple)) and len(age_range) == 2:
			age_min, age_max = _as_int(age_range[0]), _as_int(age_range[1])
		height_min = _as_int(raw.get("height_min_cm"))
		height_max = _as_int(raw.get("height_max_cm"))
		height_range = raw.get("heightRange") or raw.get("height_range")
		if isinstance(height_range, (list, tuple)) and len(height_range) == 2:
			height_min, height_max = _as_int(height_range[0]), _as_int(height_range[1])
		max_distance = _as_float(raw.get("max_distance_km", raw.get("maxDistance")))
		if max_distance is not None and max_distance <= 0:
			max_distance = None
		return cls(
			age_min=age_min,
			age_max=age_max,
			height_min_cm=height_min,
			height_max_cm=height_max,
			max_distance_km=max_distance,
		)


@dataclass(slots=True)
class Profile:
	"""The slice of a user's profile the scorer reads."""

	user_id: str
	relationship_goal: Optional[RelationshipGoal] = None
	interests: frozenset[str] = field(default_factory=frozenset)
	zodiac_sign: Optional[ZodiacSign] = None
	location: Optional[GeoPoint] = None
	activity_log: tuple[ActivityEvent, ...] = ()
	age: Optional[int] = None
	height_cm: Optional[int] = None
	preferences: Optional[DiscoveryPreferences] = None
	incognito: bool = False
	photo_count: int = 0

	@classmethod
	def build(
		cls,
		user_id: str,
		*,
		relationship_goal: object = None,
		interests: Iterable[str] = (),
		zodiac_sign: object = None,
		lat: object = None,
		lon: object = None,
		**extra: Any,
	) -> "Profile":
		"""Normalise raw values from storage or requests into a Profile."""
		return cls(
			user_id=str(user_id),
			relationship_goal=RelationshipGoal.parse(relationship_goal),
			interests=frozenset(str(item) for item in interests if item),
			zodiac_sign=ZodiacSign.parse(zodiac_sign),
			location=GeoPoint.from_optional(lat, lon),
			**extra,
		)


@dataclass(frozen=True, slots=True)
class CompatibilityScore:
	candidate_id: str
	location_score: float
	interests_score: float
	goal_compatibility: float
	zodiac_score: float
	behavior_score: float
	preference_score: float
	overall_score: float

	def components(self) -> dict[str, float]:
		return {
			"location_score": self.location_score,
			"interests_score": self.interests_score,
			"goal_compatibility": self.goal_compatibility,
			"zodiac_score": self.zodiac_score,
			"behavior_score": self.behavior_score,
			"preference_score": self.preference_score,
		}


@dataclass(frozen=True, slots=True)
class RankedCandidate:
	profile: Profile
	score: CompatibilityScore


def _as_int(value: object) -> Optional[int]:
	if value is None or isinstance(value, bool):
		return None
	try:
		return int(value)  # type: ignore[arg-type]
	except (TypeError, ValueError):
		return None


def _as_float(value: object) -> Optional[float]:
	if value is None or isinstance(value, bool):
		return None
	try:
		return float(value)  # type: ignore[arg-type]
	except (TypeError, ValueError):
		return None
