import pytest

from loveconnect.domain.matching.exceptions import InvalidSwipe, ProfileNotFound
from loveconnect.domain.matching.models import GeoPoint, Profile, SwipeAction
from loveconnect.domain.matching.service import DiscoveryService, SWIPED_KEY
from loveconnect.settings import settings


def _visible(user_id: str, **kwargs) -> Profile:
	kwargs.setdefault("relationship_goal", "serious")
	kwargs.setdefault("photo_count", 1)
	return Profile.build(user_id, **kwargs)


@pytest.fixture
def populated(profile_store):
	profile_store.add(_visible("me", interests=["hiking", "coffee"], lat=37.7749, lon=-122.4194))
	profile_store.add(_visible("close", interests=["hiking", "coffee"], lat=37.7750, lon=-122.4195))
	profile_store.add(_visible("far", relationship_goal="casual", interests=["gaming"]))
	return profile_store


@pytest.mark.asyncio
async def test_find_matches_ranks_visible_candidates(discovery_service, populated):
	result = await discovery_service.find_matches("me", limit=10)

	assert result.requester.user_id == "me"
	assert [item.profile.user_id for item in result.items] == ["close", "far"]


@pytest.mark.asyncio
async def test_find_matches_excludes_hidden_profiles(discovery_service, populated):
	populated.add(_visible("ghost", incognito=True))
	populated.add(_visible("faceless", photo_count=0))

	result = await discovery_service.find_matches("me", limit=10)

	ids = {item.profile.user_id for item in result.items}
	assert "ghost" not in ids
	assert "faceless" not in ids


@pytest.mark.asyncio
async def test_find_matches_excludes_swiped_users(discovery_service, populated, swipe_store, fake_redis):
	swipe_store.swipes[("me", "close")] = SwipeAction.DISLIKE
	populated.add(_visible("mirrored"))
	await fake_redis.sadd(SWIPED_KEY.format(user="me"), "mirrored")

	result = await discovery_service.find_matches("me", limit=10)

	assert [item.profile.user_id for item in result.items] == ["far"]


@pytest.mark.asyncio
async def test_find_matches_caches_every_score(discovery_service, populated):
	result = await discovery_service.find_matches("me", limit=1)

	assert len(result.items) == 1
	cached = {(requester, candidate) for requester, candidate, _, _ in populated.upserts}
	assert cached == {("me", "close"), ("me", "far")}


@pytest.mark.asyncio
async def test_cache_failures_do_not_fail_ranking(discovery_service, populated):
	populated.fail_upserts = True

	result = await discovery_service.find_matches("me", limit=10)

	assert len(result.items) == 2


@pytest.mark.asyncio
async def test_cache_can_be_disabled(profile_store, activity_log, swipe_store, populated):
	service = DiscoveryService(
		profiles=profile_store,
		activity=activity_log,
		swipes=swipe_store,
		cache_scores=False,
	)
	await service.find_matches("me")
	assert profile_store.upserts == []


@pytest.mark.asyncio
async def test_empty_pool_returns_no_items(discovery_service, profile_store):
	profile_store.add(_visible("me"))

	result = await discovery_service.find_matches("me")

	assert result.items == []


@pytest.mark.asyncio
async def test_unknown_requester_raises(discovery_service):
	with pytest.raises(ProfileNotFound) as excinfo:
		await discovery_service.find_matches("nobody")
	assert excinfo.value.reason == "profile_not_found"


@pytest.mark.asyncio
async def test_behavior_uses_activity_log(discovery_service, populated, activity_log):
	activity_log.add("me", "message", "like")
	activity_log.add("close", "message")

	result = await discovery_service.find_matches("me", limit=10)

	scores = {item.profile.user_id: item.score for item in result.items}
	assert scores["close"].behavior_score == pytest.approx(0.5)
	assert scores["far"].behavior_score == 0.0


@pytest.mark.asyncio
async def test_activity_outage_still_ranks(discovery_service, populated, activity_log):
	activity_log.fail_for = {"me", "close", "far"}

	result = await discovery_service.find_matches("me", limit=10)

	assert [item.profile.user_id for item in result.items] == ["close", "far"]
	assert all(item.score.behavior_score == 0.0 for item in result.items)


@pytest.mark.asyncio
async def test_mutual_like_creates_match(discovery_service, populated, swipe_store, fake_redis):
	first = await discovery_service.record_swipe("close", "me", "like")
	second = await discovery_service.record_swipe("me", "close", SwipeAction.SUPER_LIKE)

	assert first.matched is False
	assert second.matched is True
	assert second.action is SwipeAction.SUPER_LIKE
	assert swipe_store.matches == {("close", "me")}
	assert await fake_redis.sismember(SWIPED_KEY.format(user="me"), "close")


@pytest.mark.asyncio
async def test_dislike_never_matches(discovery_service, populated, swipe_store):
	await discovery_service.record_swipe("close", "me", "like")
	outcome = await discovery_service.record_swipe("me", "close", "dislike")

	assert outcome.matched is False
	assert swipe_store.matches == set()


@pytest.mark.asyncio
async def test_swipe_records_activity(discovery_service, populated, activity_log):
	await discovery_service.record_swipe("me", "far", "dislike")

	assert activity_log.recorded == [("me", "swipe_dislike", "far", {})]


@pytest.mark.asyncio
async def test_invalid_swipes_rejected(discovery_service, populated):
	with pytest.raises(InvalidSwipe) as self_swipe:
		await discovery_service.record_swipe("me", "me", "like")
	with pytest.raises(InvalidSwipe) as unknown:
		await discovery_service.record_swipe("me", "close", "superlike")

	assert self_swipe.value.reason == "self_swipe"
	assert unknown.value.reason == "unknown_action"


@pytest.mark.asyncio
async def test_track_activity_is_best_effort(discovery_service, activity_log):
	assert await discovery_service.track_activity("me", "profile_view", target_user_id="far") is True
	activity_log.fail_writes = True
	assert await discovery_service.track_activity("me", "profile_view") is False
	assert activity_log.recorded == [("me", "profile_view", "far", {})]


@pytest.mark.asyncio
async def test_update_location(discovery_service, populated):
	point = await discovery_service.update_location("far", 40.7128, -74.006, 12.5)

	assert point == GeoPoint(40.7128, -74.006)
	assert populated.locations == [("far", 40.7128, -74.006, 12.5)]
	assert populated.profiles["far"].location == point


@pytest.mark.asyncio
async def test_update_location_rejects_bad_coordinates(discovery_service, populated):
	with pytest.raises(ValueError):
		await discovery_service.update_location("far", 123.0, 0.0)
	assert populated.locations == []


@pytest.mark.asyncio
async def test_swipe_mirror_expires(discovery_service, populated, fake_redis):
	await discovery_service.record_swipe("me", "far", "like")

	ttl = await fake_redis.ttl(SWIPED_KEY.format(user="me"))

	assert 0 < ttl <= settings.matching_swipe_mirror_ttl_seconds


@pytest.mark.asyncio
async def test_find_matches_zero_limit(discovery_service, populated):
	result = await discovery_service.find_matches("me", limit=0)

	assert result.items == []
	assert len(populated.upserts) == 2
