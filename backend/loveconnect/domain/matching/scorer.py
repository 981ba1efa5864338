"""Candidate ranking for discovery.

Candidates are scored concurrently (bounded by a semaphore) and joined
before a stable sort, so equal scores keep their input order. Collaborator
failures never abort a ranking: the affected sub-score falls back to its
default and the failure is logged and counted.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Optional, Sequence

from loveconnect.domain.matching import scoring
from loveconnect.domain.matching.exceptions import EmptyCandidatePool, MissingRelationshipGoal
from loveconnect.domain.matching.geo import distance_km
from loveconnect.domain.matching.models import ActivityEvent, CompatibilityScore, Profile, RankedCandidate
from loveconnect.domain.matching.ports import ActivityLookup, DistanceFunction, ZodiacTable
from loveconnect.domain.matching.zodiac import StaticZodiacTable
from loveconnect.obs import metrics as obs_metrics
from loveconnect.settings import settings

logger = logging.getLogger(__name__)


class CompatibilityScorer:
	"""Rank a candidate pool against one requester."""

	def __init__(
		self,
		*,
		zodiac: Optional[ZodiacTable] = None,
		distance: DistanceFunction = distance_km,
		max_distance_km: Optional[float] = None,
		max_concurrency: Optional[int] = None,
		activity_timeout_seconds: Optional[float] = None,
		empty_behavior_score: Optional[float] = None,
		preference_placeholder: Optional[float] = None,
		default_limit: Optional[int] = None,
	) -> None:
		self._zodiac = zodiac or StaticZodiacTable()
		self._distance = distance
		self._max_distance_km = max_distance_km if max_distance_km is not None else settings.matching_max_distance_km
		self._max_concurrency = max_concurrency or settings.matching_max_concurrency
		self._activity_timeout = (
			activity_timeout_seconds
			if activity_timeout_seconds is not None
			else settings.matching_activity_timeout_seconds
		)
		self._empty_behavior_score = (
			empty_behavior_score if empty_behavior_score is not None else settings.matching_empty_behavior_score
		)
		self._preference_placeholder = (
			preference_placeholder if preference_placeholder is not None else settings.matching_preference_placeholder
		)
		self._default_limit = default_limit or settings.matching_result_limit
		if self._max_distance_km <= 0:
			raise ValueError("max_distance_km must be positive")
		if self._max_concurrency < 1:
			raise ValueError("max_concurrency must be at least 1")

	async def rank_candidates(
		self,
		requester: Profile,
		candidates: Sequence[Profile],
		activity_lookup: Optional[ActivityLookup] = None,
		*,
		limit: Optional[int] = None,
	) -> list[RankedCandidate]:
		"""Return the top `limit` candidates by descending overall score."""
		ranked = await self.score_all(requester, candidates, activity_lookup)
		return ranked[: limit if limit is not None else self._default_limit]

	async def score_all(
		self,
		requester: Profile,
		candidates: Sequence[Profile],
		activity_lookup: Optional[ActivityLookup] = None,
	) -> list[RankedCandidate]:
		"""Score every candidate and return them all, best first.

		Without an `activity_lookup` the profiles' own `activity_log` is used.
		"""
		if requester.relationship_goal is None:
			raise MissingRelationshipGoal()
		pool = _distinct_candidates(requester, candidates)
		if not pool:
			raise EmptyCandidatePool()

		start = time.perf_counter()
		requester_log = await self._activity_for(requester, activity_lookup)
		semaphore = asyncio.Semaphore(self._max_concurrency)

		async def _score(candidate: Profile) -> RankedCandidate:
			async with semaphore:
				score = await self.score_candidate(requester, requester_log, candidate, activity_lookup)
			return RankedCandidate(profile=candidate, score=score)

		results = await asyncio.gather(*(_score(candidate) for candidate in pool))
		# sorted() is stable, ties keep input order
		ranked = sorted(results, key=lambda item: -item.score.overall_score)
		elapsed = time.perf_counter() - start
		obs_metrics.record_ranking("ok", candidates=len(ranked), elapsed_seconds=elapsed)
		logger.info(
			"matching_ranked",
			extra={"requester_id": requester.user_id, "candidates": len(ranked), "elapsed_ms": round(elapsed * 1000, 3)},
		)
		return ranked

	async def score_candidate(
		self,
		requester: Profile,
		requester_log: Sequence[ActivityEvent],
		candidate: Profile,
		activity_lookup: Optional[ActivityLookup] = None,
	) -> CompatibilityScore:
		candidate_log = await self._activity_for(candidate, activity_lookup)
		zodiac_score = await self._zodiac_score(requester, candidate)
		return scoring.score_pair(
			requester,
			candidate,
			zodiac_score=zodiac_score,
			requester_activity=requester_log,
			candidate_activity=candidate_log,
			max_distance_km=self._max_distance_km,
			distance=self._distance,
			empty_behavior_score=self._empty_behavior_score,
			preference_placeholder=self._preference_placeholder,
		)

	async def _activity_for(self, profile: Profile, lookup: Optional[ActivityLookup]) -> tuple[ActivityEvent, ...]:
		if lookup is None:
			return profile.activity_log
		try:
			events = await asyncio.wait_for(lookup(profile.user_id), timeout=self._activity_timeout)
		except asyncio.TimeoutError:
			obs_metrics.inc_degraded("behavior", "timeout")
			logger.warning("activity_lookup_timeout", extra={"subject_id": profile.user_id})
			return ()
		except Exception:
			obs_metrics.inc_degraded("behavior", "error")
			logger.warning("activity_lookup_failed", extra={"subject_id": profile.user_id}, exc_info=True)
			return ()
		return tuple(events or ())

	async def _zodiac_score(self, requester: Profile, candidate: Profile) -> float:
		if requester.zodiac_sign is None or candidate.zodiac_sign is None:
			return scoring.NEUTRAL_SCORE
		try:
			value = await self._zodiac.compatibility(
				requester.zodiac_sign.value.lower(),
				candidate.zodiac_sign.value.lower(),
			)
		except Exception:
			obs_metrics.inc_degraded("zodiac", "error")
			logger.warning("zodiac_lookup_failed", extra={"subject_id": candidate.user_id}, exc_info=True)
			return scoring.NEUTRAL_SCORE
		if value is None:
			return scoring.NEUTRAL_SCORE
		return scoring.clamp_unit(value)


def _distinct_candidates(requester: Profile, candidates: Sequence[Profile]) -> list[Profile]:
	seen: set[str] = {requester.user_id}
	pool: list[Profile] = []
	for candidate in candidates:
		if candidate.user_id in seen:
			continue
		seen.add(candidate.user_id)
		pool.append(candidate)
	return pool
