"""Collaborator contracts consumed by the matching domain.

Implementations are injected into the scorer and the discovery service so
tests can swap in in-memory fakes. Postgres-backed versions live in
`loveconnect.domain.matching.stores`.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Awaitable, Callable, Iterable, Mapping, Optional, Protocol, Sequence

from loveconnect.domain.matching.models import ActivityEvent, CompatibilityScore, Profile, SwipeAction

ActivityLookup = Callable[[str], Awaitable[Sequence[ActivityEvent]]]
DistanceFunction = Callable[[float, float, float, float], float]


class ProfileStore(Protocol):
	async def get_profile(self, user_id: str) -> Profile:
		"""Raise ProfileNotFound when the user has no profile."""
		...

	async def list_candidates(
		self,
		excluding: Iterable[str],
		*,
		limit: int,
		require_photos: bool = True,
	) -> list[Profile]:
		...

	async def upsert_compatibility_score(
		self,
		requester_id: str,
		candidate_id: str,
		score: CompatibilityScore,
		calculated_at: datetime,
	) -> None:
		...

	async def update_location(self, user_id: str, lat: float, lon: float, accuracy_m: Optional[float]) -> None:
		...


class ActivityLogProvider(Protocol):
	async def get_recent_activity(self, user_id: str, window_days: int = 30) -> list[ActivityEvent]:
		...

	async def record(
		self,
		user_id: str,
		activity_type: str,
		*,
		target_user_id: Optional[str] = None,
		metadata: Optional[Mapping[str, Any]] = None,
	) -> None:
		...


class SwipeStore(Protocol):
	async def swiped_user_ids(self, user_id: str) -> set[str]:
		...

	async def record_swipe(self, user_id: str, target_id: str, action: SwipeAction) -> None:
		...

	async def has_liked(self, user_id: str, target_id: str) -> bool:
		"""True when user_id liked or super-liked target_id."""
		...

	async def record_match(self, user_a: str, user_b: str) -> None:
		...


class ZodiacTable(Protocol):
	async def compatibility(self, sign1: str, sign2: str) -> Optional[float]:
		"""Symmetric lookup over lower-case labels; None for unknown signs."""
		...
