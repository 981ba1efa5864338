"""AsyncPG pool for profile, swipe and activity storage."""

from __future__ import annotations

import json
import logging
from typing import Optional

import asyncpg

from loveconnect.settings import settings

logger = logging.getLogger(__name__)

_pool: Optional[asyncpg.pool.Pool] = None


def _dsn() -> str:
	# 127.0.0.1 rather than localhost avoids IPv6 resolution on dev machines
	return settings.postgres_url.replace("@localhost", "@127.0.0.1")


async def _init_connection(conn: asyncpg.Connection) -> None:
	# preferences and activity metadata are jsonb; exchange them as Python objects
	await conn.set_type_codec("jsonb", encoder=json.dumps, decoder=json.loads, schema="pg_catalog")


async def init_pool() -> asyncpg.pool.Pool:
	global _pool
	if _pool is None:
		_pool = await asyncpg.create_pool(
			dsn=_dsn(),
			min_size=settings.postgres_min_pool_size,
			max_size=settings.postgres_max_pool_size,
			command_timeout=settings.postgres_command_timeout_seconds,
			init=_init_connection,
		)
		logger.info(
			"postgres_pool_ready",
			extra={"min_size": settings.postgres_min_pool_size, "max_size": settings.postgres_max_pool_size},
		)
	return _pool


async def get_pool() -> asyncpg.pool.Pool:
	if _pool is None:
		await init_pool()
	assert _pool is not None
	return _pool


async def close_pool() -> None:
	global _pool
	if _pool is not None:
		await _pool.close()
		_pool = None
