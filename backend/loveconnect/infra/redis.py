"""Shared Redis client for swipe mirrors and rate-limit counters.

Callers import the module-level `redis_client` proxy once; the client behind
it is built lazily from settings and can be replaced (fakeredis in tests)
without touching those imports.
"""

from __future__ import annotations

from typing import Optional

import redis.asyncio as redis

from loveconnect.settings import settings


def _build_client() -> redis.Redis:
	return redis.from_url(
		settings.redis_url,
		decode_responses=True,
		socket_timeout=settings.redis_socket_timeout_seconds,
		socket_connect_timeout=settings.redis_socket_timeout_seconds,
	)


class RedisProxy:
	"""Forwards attribute access to the current client."""

	def __init__(self) -> None:
		self._client: Optional[redis.Redis] = None

	@property
	def client(self) -> redis.Redis:
		if self._client is None:
			self._client = _build_client()
		return self._client

	def set_client(self, client: Optional[redis.Redis]) -> None:
		self._client = client

	async def close(self) -> None:
		if self._client is not None:
			await self._client.aclose()
			self._client = None

	def __getattr__(self, item):
		return getattr(self.client, item)


redis_client = RedisProxy()


def set_redis_client(client: Optional[redis.Redis]) -> None:
	redis_client.set_client(client)
