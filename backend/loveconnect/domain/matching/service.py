"""Discovery service: candidate ranking, swipes and activity tracking.

The scorer stays pure; this layer resolves the candidate pool, applies the
swipe exclusion set, and writes the advisory score cache after ranking.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Mapping, Optional

from loveconnect.domain.matching.exceptions import EmptyCandidatePool, InvalidSwipe
from loveconnect.domain.matching.models import GeoPoint, Profile, RankedCandidate, SwipeAction
from loveconnect.domain.matching.ports import ActivityLogProvider, ProfileStore, SwipeStore
from loveconnect.domain.matching.scorer import CompatibilityScorer
from loveconnect.domain.matching.stores import PostgresActivityLog, PostgresProfileStore, PostgresSwipeStore
from loveconnect.infra.redis import redis_client
from loveconnect.obs import metrics as obs_metrics
from loveconnect.settings import settings

logger = logging.getLogger(__name__)

SWIPED_KEY = "discovery:swiped:{user}"


def _swiped_key(user_id: str) -> str:
	return SWIPED_KEY.format(user=user_id)


def _now() -> datetime:
	return datetime.now(timezone.utc)


@dataclass(slots=True)
class SwipeOutcome:
	action: SwipeAction
	matched: bool


@dataclass(slots=True)
class MatchResult:
	requester: Profile
	items: list[RankedCandidate]


class DiscoveryService:
	"""Wires the stores and the scorer behind the discovery endpoints."""

	def __init__(
		self,
		*,
		profiles: ProfileStore,
		activity: ActivityLogProvider,
		swipes: SwipeStore,
		scorer: Optional[CompatibilityScorer] = None,
		cache_scores: bool = True,
	) -> None:
		self._profiles = profiles
		self._activity = activity
		self._swipes = swipes
		self._scorer = scorer or CompatibilityScorer()
		self._cache_scores = cache_scores

	async def find_matches(self, user_id: str, *, limit: Optional[int] = None) -> MatchResult:
		"""Rank unswiped, visible candidates for `user_id`.

		An empty candidate pool yields no items instead of an error.
		"""
		requester = await self._profiles.get_profile(user_id)
		excluded = await self.excluded_ids(user_id)
		candidates = await self._profiles.list_candidates(
			excluded,
			limit=settings.matching_candidate_pool_size,
			require_photos=settings.matching_require_photos,
		)
		candidates = [candidate for candidate in candidates if candidate.user_id not in excluded]
		try:
			ranked = await self._scorer.score_all(requester, candidates, self._lookup_activity)
		except EmptyCandidatePool:
			obs_metrics.record_ranking("empty")
			logger.info("matching_pool_empty", extra={"requester_id": user_id, "excluded": len(excluded)})
			return MatchResult(requester=requester, items=[])
		if self._cache_scores:
			await self._cache(user_id, ranked)
		if limit is None:
			limit = settings.matching_result_limit
		return MatchResult(requester=requester, items=ranked[:limit])

	async def excluded_ids(self, user_id: str) -> set[str]:
		"""Users already swiped by `user_id`, plus the user themself."""
		excluded = await self._swipes.swiped_user_ids(user_id)
		try:
			mirrored = await redis_client.smembers(_swiped_key(user_id))
		except Exception:
			# Postgres remains the source of truth
			logger.warning("swipe_mirror_unavailable", extra={"requester_id": user_id}, exc_info=True)
			mirrored = set()
		excluded.update(str(item) for item in mirrored or ())
		excluded.add(user_id)
		return excluded

	async def record_swipe(self, user_id: str, target_id: str, action: SwipeAction | str) -> SwipeOutcome:
		"""Persist a swipe and report whether it completed a mutual like."""
		try:
			parsed = SwipeAction(action)
		except ValueError:
			raise InvalidSwipe("unknown_action")
		if not target_id or str(target_id) == str(user_id):
			raise InvalidSwipe("self_swipe")
		target = str(target_id)

		await self._swipes.record_swipe(user_id, target, parsed)
		obs_metrics.inc_swipe(parsed.value)
		try:
			async with redis_client.pipeline(transaction=True) as pipe:
				pipe.sadd(_swiped_key(user_id), target)
				pipe.expire(_swiped_key(user_id), settings.matching_swipe_mirror_ttl_seconds)
				await pipe.execute()
		except Exception:
			logger.warning("swipe_mirror_write_failed", extra={"requester_id": user_id}, exc_info=True)
		await self.track_activity(user_id, f"swipe_{parsed.value}", target_user_id=target)

		matched = False
		if parsed.is_positive and await self._swipes.has_liked(target, user_id):
			await self._swipes.record_match(user_id, target)
			obs_metrics.inc_match()
			matched = True
			logger.info("discovery_match", extra={"requester_id": user_id, "peer_id": target})
		return SwipeOutcome(action=parsed, matched=matched)

	async def track_activity(
		self,
		user_id: str,
		activity_type: str,
		*,
		target_user_id: Optional[str] = None,
		metadata: Optional[Mapping[str, Any]] = None,
	) -> bool:
		"""Best-effort activity insert; returns False when the write failed."""
		try:
			await self._activity.record(
				user_id,
				activity_type,
				target_user_id=target_user_id,
				metadata=metadata,
			)
		except Exception:
			obs_metrics.inc_activity("error")
			logger.warning("activity_record_failed", extra={"requester_id": user_id, "activity_type": activity_type}, exc_info=True)
			return False
		obs_metrics.inc_activity("ok")
		return True

	async def update_location(self, user_id: str, lat: float, lon: float, accuracy_m: Optional[float] = None) -> GeoPoint:
		point = GeoPoint(lat, lon)
		await self._profiles.update_location(user_id, point.lat, point.lon, accuracy_m)
		return point

	async def _lookup_activity(self, user_id: str):
		return await self._activity.get_recent_activity(user_id, window_days=settings.matching_activity_window_days)

	async def _cache(self, requester_id: str, ranked: list[RankedCandidate]) -> None:
		calculated_at = _now()
		results = await asyncio.gather(
			*(
				self._profiles.upsert_compatibility_score(requester_id, item.profile.user_id, item.score, calculated_at)
				for item in ranked
			),
			return_exceptions=True,
		)
		failures = 0
		for result in results:
			if isinstance(result, Exception):
				failures += 1
				obs_metrics.inc_cache_upsert("error")
			else:
				obs_metrics.inc_cache_upsert("ok")
		if failures:
			first_error = next(result for result in results if isinstance(result, Exception))
			logger.warning(
				"score_cache_upsert_failed",
				extra={"requester_id": requester_id, "failures": failures, "error": repr(first_error)},
			)


_service: Optional[DiscoveryService] = None


def get_discovery_service() -> DiscoveryService:
	"""FastAPI dependency returning the Postgres-backed service."""
	global _service
	if _service is None:
		_service = DiscoveryService(
			profiles=PostgresProfileStore(),
			activity=PostgresActivityLog(),
			swipes=PostgresSwipeStore(),
		)
	return _service
