import asyncio
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from fakeredis.aioredis import FakeRedis

# Ensure backend package is importable when tests run from repo root
BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
	sys.path.insert(0, str(BACKEND_ROOT))

from loveconnect.domain.matching.exceptions import ProfileNotFound
from loveconnect.domain.matching.models import ActivityEvent, CompatibilityScore, GeoPoint, Profile, SwipeAction
from loveconnect.domain.matching.scorer import CompatibilityScorer
from loveconnect.domain.matching.service import DiscoveryService, get_discovery_service
from loveconnect.infra import postgres
from loveconnect.main import app
from loveconnect.settings import settings


class InMemoryProfileStore:
	def __init__(self) -> None:
		self.profiles: dict[str, Profile] = {}
		self.upserts: list[tuple[str, str, CompatibilityScore, datetime]] = []
		self.locations: list[tuple[str, float, float, Optional[float]]] = []
		self.fail_upserts = False

	def add(self, profile: Profile) -> Profile:
		self.profiles[profile.user_id] = profile
		return profile

	async def get_profile(self, user_id: str) -> Profile:
		try:
			return self.profiles[user_id]
		except KeyError:
			raise ProfileNotFound(user_id)

	async def list_candidates(self, excluding: Iterable[str], *, limit: int, require_photos: bool = True) -> list[Profile]:
		excluded = set(excluding)
		pool = [
			profile
			for profile in self.profiles.values()
			if profile.user_id not in excluded
			and not profile.incognito
			and (not require_photos or profile.photo_count > 0)
		]
		return pool[:limit]

	async def upsert_compatibility_score(self, requester_id, candidate_id, score, calculated_at) -> None:
		if self.fail_upserts:
			raise ConnectionError("store unavailable")
		self.upserts.append((requester_id, candidate_id, score, calculated_at))

	async def update_location(self, user_id, lat, lon, accuracy_m) -> None:
		self.locations.append((user_id, lat, lon, accuracy_m))
		profile = self.profiles.get(user_id)
		if profile is not None:
			profile.location = GeoPoint(lat, lon)


class InMemoryActivityLog:
	def __init__(self) -> None:
		self.events: dict[str, list[ActivityEvent]] = {}
		self.recorded: list[tuple[str, str, Optional[str], Mapping[str, Any]]] = []
		self.fail_for: set[str] = set()
		self.fail_writes = False
		self.lookups: list[str] = []

	def add(self, user_id: str, *activity_types: str) -> None:
		now = datetime(2026, 10, 1, 12, 0, 0)
		self.events.setdefault(user_id, []).extend(ActivityEvent(kind, now) for kind in activity_types)

	async def get_recent_activity(self, user_id: str, window_days: int = 30) -> list[ActivityEvent]:
		self.lookups.append(user_id)
		if user_id in self.fail_for:
			raise ConnectionError("activity store unavailable")
		return list(self.events.get(user_id, []))

	async def record(self, user_id, activity_type, *, target_user_id=None, metadata=None) -> None:
		if self.fail_writes:
			raise ConnectionError("activity store unavailable")
		self.recorded.append((user_id, activity_type, target_user_id, dict(metadata or {})))


class InMemorySwipeStore:
	def __init__(self) -> None:
		self.swipes: dict[tuple[str, str], SwipeAction] = {}
		self.matches: set[tuple[str, str]] = set()

	async def swiped_user_ids(self, user_id: str) -> set[str]:
		return {target for (swiper, target) in self.swipes if swiper == user_id}

	async def record_swipe(self, user_id: str, target_id: str, action: SwipeAction) -> None:
		self.swipes[(user_id, target_id)] = action

	async def has_liked(self, user_id: str, target_id: str) -> bool:
		action = self.swipes.get((user_id, target_id))
		return action is not None and action.is_positive

	async def record_match(self, user_a: str, user_b: str) -> None:
		self.matches.add(tuple(sorted([user_a, user_b])))


# Ensure a selector-based event loop policy on Windows to avoid Proactor issues with async IO
if sys.platform.startswith("win") and hasattr(asyncio, "WindowsSelectorEventLoopPolicy"):
	asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())


@pytest_asyncio.fixture(autouse=True)
async def fake_redis():
	from loveconnect.infra.redis import redis_client, set_redis_client

	original = redis_client.client
	client = FakeRedis(decode_responses=True)
	set_redis_client(client)
	try:
		yield client
	finally:
		set_redis_client(original)
		await client.flushall()


@pytest.fixture(autouse=True)
def patch_postgres(monkeypatch):
	async def _noop():
		return None

	monkeypatch.setattr(postgres, "init_pool", _noop)
	monkeypatch.setattr(postgres, "close_pool", _noop)


@pytest.fixture(autouse=True)
def force_test_settings():
	"""Dev mode so API tests can authenticate with X-User-Id headers."""
	original_env = settings.environment
	settings.environment = "dev"
	try:
		yield
	finally:
		settings.environment = original_env


@pytest.fixture
def profile_store() -> InMemoryProfileStore:
	return InMemoryProfileStore()


@pytest.fixture
def activity_log() -> InMemoryActivityLog:
	return InMemoryActivityLog()


@pytest.fixture
def swipe_store() -> InMemorySwipeStore:
	return InMemorySwipeStore()


@pytest.fixture
def discovery_service(profile_store, activity_log, swipe_store) -> DiscoveryService:
	return DiscoveryService(
		profiles=profile_store,
		activity=activity_log,
		swipes=swipe_store,
		scorer=CompatibilityScorer(max_concurrency=4, activity_timeout_seconds=0.5),
	)


@pytest_asyncio.fixture
async def api_client(discovery_service):
	app.dependency_overrides[get_discovery_service] = lambda: discovery_service
	transport = ASGITransport(app=app)
	try:
		async with AsyncClient(transport=transport, base_url="http://testserver") as client:
			yield client
	finally:
		app.dependency_overrides.pop(get_discovery_service, None)
