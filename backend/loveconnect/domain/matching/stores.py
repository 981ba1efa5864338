"""Postgres-backed implementations of the matching ports."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable, Iterable, Mapping, Optional

import asyncpg

from loveconnect.domain.matching.exceptions import ProfileNotFound
from loveconnect.domain.matching.models import (
	ActivityEvent,
	CompatibilityScore,
	DiscoveryPreferences,
	Profile,
	SwipeAction,
)
from loveconnect.infra.postgres import get_pool

PoolFactory = Callable[[], Awaitable[asyncpg.pool.Pool]]

_PROFILE_COLUMNS = """
	p.user_id::text AS user_id,
	p.relationship_type,
	p.zodiac_sign,
	p.latitude,
	p.longitude,
	p.age,
	p.height_cm,
	p.preferences,
	p.incognito,
	ARRAY(SELECT i.interest FROM interests i WHERE i.user_id = p.user_id) AS interests,
	(SELECT COUNT(*) FROM photos ph WHERE ph.user_id = p.user_id) AS photo_count
"""


def _now() -> datetime:
	return datetime.now(timezone.utc)


def _record_to_profile(record: Mapping[str, Any]) -> Profile:
	return Profile.build(
		record["user_id"],
		relationship_goal=record["relationship_type"],
		interests=list(record["interests"] or []),
		zodiac_sign=record["zodiac_sign"],
		lat=record["latitude"],
		lon=record["longitude"],
		age=record["age"],
		height_cm=record["height_cm"],
		preferences=DiscoveryPreferences.from_mapping(record["preferences"]),
		incognito=bool(record["incognito"]),
		photo_count=int(record["photo_count"] or 0),
	)


class PostgresProfileStore:
	"""Profiles, interests, photos and cached compatibility scores."""

	def __init__(self, pool_factory: PoolFactory = get_pool) -> None:
		self._pool_factory = pool_factory

	async def get_profile(self, user_id: str) -> Profile:
		pool = await self._pool_factory()
		async with pool.acquire() as conn:
			row = await conn.fetchrow(
				f"SELECT {_PROFILE_COLUMNS} FROM profiles p WHERE p.user_id::text = $1",
				str(user_id),
			)
		if row is None:
			raise ProfileNotFound(str(user_id))
		return _record_to_profile(row)

	async def list_candidates(
		self,
		excluding: Iterable[str],
		*,
		limit: int,
		require_photos: bool = True,
	) -> list[Profile]:
		excluded = sorted({str(item) for item in excluding})
		pool = await self._pool_factory()
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				f"""
				SELECT {_PROFILE_COLUMNS}
				FROM profiles p
				WHERE p.incognito = FALSE
				  AND NOT (p.user_id::text = ANY($1::text[]))
				  AND ($2::boolean = FALSE OR EXISTS (SELECT 1 FROM photos ph WHERE ph.user_id = p.user_id))
				ORDER BY p.created_at DESC
				LIMIT $3
				""",
				excluded,
				require_photos,
				limit,
			)
		return [_record_to_profile(row) for row in rows]

	async def upsert_compatibility_score(
		self,
		requester_id: str,
		candidate_id: str,
		score: CompatibilityScore,
		calculated_at: datetime,
	) -> None:
		pool = await self._pool_factory()
		async with pool.acquire() as conn:
			await conn.execute(
				"""
				INSERT INTO compatibility_scores (
					user_id, target_user_id, overall_score, location_score, interests_score,
					goal_compatibility, zodiac_score, behavior_score, preference_score, last_calculated
				)
				VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10)
				ON CONFLICT (user_id, target_user_id)
				DO UPDATE SET
					overall_score = EXCLUDED.overall_score,
					location_score = EXCLUDED.location_score,
					interests_score = EXCLUDED.interests_score,
					goal_compatibility = EXCLUDED.goal_compatibility,
					zodiac_score = EXCLUDED.zodiac_score,
					behavior_score = EXCLUDED.behavior_score,
					preference_score = EXCLUDED.preference_score,
					last_calculated = EXCLUDED.last_calculated
				""",
				requester_id,
				candidate_id,
				score.overall_score,
				score.location_score,
				score.interests_score,
				score.goal_compatibility,
				score.zodiac_score,
				score.behavior_score,
				score.preference_score,
				calculated_at,
			)

	async def update_location(self, user_id: str, lat: float, lon: float, accuracy_m: Optional[float]) -> None:
		pool = await self._pool_factory()
		async with pool.acquire() as conn:
			async with conn.transaction():
				await conn.execute(
					"UPDATE profiles SET latitude = $2, longitude = $3, updated_at = NOW() WHERE user_id::text = $1",
					user_id,
					lat,
					lon,
				)
				await conn.execute(
					"""
					INSERT INTO location_history (user_id, latitude, longitude, accuracy, recorded_at)
					VALUES ($1, $2, $3, $4, $5)
					""",
					user_id,
					lat,
					lon,
					accuracy_m,
					_now(),
				)


class PostgresActivityLog:
	"""Reads and writes the `user_activity` table."""

	def __init__(self, pool_factory: PoolFactory = get_pool) -> None:
		self._pool_factory = pool_factory

	async def get_recent_activity(self, user_id: str, window_days: int = 30) -> list[ActivityEvent]:
		since = _now() - timedelta(days=window_days)
		pool = await self._pool_factory()
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				"""
				SELECT activity_type, created_at
				FROM user_activity
				WHERE user_id::text = $1 AND created_at >= $2
				ORDER BY created_at ASC
				""",
				user_id,
				since,
			)
		return [ActivityEvent(activity_type=row["activity_type"], occurred_at=row["created_at"]) for row in rows]

	async def record(
		self,
		user_id: str,
		activity_type: str,
		*,
		target_user_id: Optional[str] = None,
		metadata: Optional[Mapping[str, Any]] = None,
	) -> None:
		pool = await self._pool_factory()
		async with pool.acquire() as conn:
			await conn.execute(
				"""
				INSERT INTO user_activity (user_id, activity_type, target_user_id, metadata, created_at)
				VALUES ($1, $2, $3, $4, $5)
				""",
				user_id,
				activity_type,
				target_user_id,
				dict(metadata or {}),
				_now(),
			)


class PostgresSwipeStore:
	"""Swipes and the matches they produce."""

	def __init__(self, pool_factory: PoolFactory = get_pool) -> None:
		self._pool_factory = pool_factory

	async def swiped_user_ids(self, user_id: str) -> set[str]:
		pool = await self._pool_factory()
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				"SELECT swiped_id::text AS swiped_id FROM swipes WHERE swiper_id::text = $1",
				user_id,
			)
		return {row["swiped_id"] for row in rows}

	async def record_swipe(self, user_id: str, target_id: str, action: SwipeAction) -> None:
		pool = await self._pool_factory()
		async with pool.acquire() as conn:
			await conn.execute(
				"""
				INSERT INTO swipes (swiper_id, swiped_id, action, created_at)
				VALUES ($1, $2, $3, $4)
				ON CONFLICT (swiper_id, swiped_id)
				DO UPDATE SET action = EXCLUDED.action, created_at = EXCLUDED.created_at
				""",
				user_id,
				target_id,
				action.value,
				_now(),
			)

	async def has_liked(self, user_id: str, target_id: str) -> bool:
		pool = await self._pool_factory()
		async with pool.acquire() as conn:
			row = await conn.fetchrow(
				"""
				SELECT 1 FROM swipes
				WHERE swiper_id::text = $1 AND swiped_id::text = $2 AND action IN ('like', 'super_like')
				""",
				user_id,
				target_id,
			)
		return row is not None

	async def record_match(self, user_a: str, user_b: str) -> None:
		if user_a == user_b:
			return
		first, second = sorted([user_a, user_b])
		pool = await self._pool_factory()
		async with pool.acquire() as conn:
			await conn.execute(
				"""
				INSERT INTO matches (user1_id, user2_id, created_at)
				VALUES ($1, $2, $3)
				ON CONFLICT (user1_id, user2_id) DO NOTHING
				""",
				first,
				second,
				_now(),
			)
