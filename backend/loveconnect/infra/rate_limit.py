"""Per-user request budgets for the discovery endpoints, counted in Redis."""

from __future__ import annotations

import math
import time
from typing import Optional

from loveconnect.infra.redis import redis_client
from loveconnect.obs import metrics as obs_metrics
from loveconnect.settings import settings

_KEY = "rl:{kind}:{actor}:{window}:{slot}"


class RateLimitExceeded(Exception):
	"""Raised when an actor has used up the budget for `kind`."""

	def __init__(self, kind: str, limit: int) -> None:
		super().__init__(kind)
		self.kind = kind
		self.limit = limit


def limit_for(kind: str) -> int:
	if kind == "swipe":
		return settings.matching_swipes_per_minute
	if kind == "matches":
		return settings.matching_rankings_per_minute
	raise KeyError(kind)


async def allow(
	kind: str,
	actor_id: str,
	*,
	limit: int,
	window_seconds: int = 60,
	now: Optional[float] = None,
) -> bool:
	"""Count one hit and return True while the window is within `limit`."""
	if limit <= 0:
		return False
	now = now or time.time()
	window = max(1, int(window_seconds))
	slot = int(math.floor(now / window))
	key = _KEY.format(kind=kind, actor=actor_id, window=window, slot=slot)
	async with redis_client.pipeline(transaction=True) as pipe:
		pipe.incr(key)
		pipe.expire(key, window)
		count, _ = await pipe.execute()
	return int(count) <= limit


async def enforce(kind: str, actor_id: str, *, window_seconds: int = 60) -> None:
	limit = limit_for(kind)
	if not await allow(kind, actor_id, limit=limit, window_seconds=window_seconds):
		obs_metrics.inc_rate_limited(kind)
		raise RateLimitExceeded(kind, limit)
