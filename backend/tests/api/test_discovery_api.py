import pytest

from loveconnect.domain.matching.models import Profile, SwipeAction
from loveconnect.infra.jwt import encode_access
from loveconnect.obs import metrics
from loveconnect.settings import settings

ME = {"X-User-Id": "me"}


def _visible(user_id: str, **kwargs) -> Profile:
	kwargs.setdefault("relationship_goal", "serious")
	kwargs.setdefault("photo_count", 1)
	return Profile.build(user_id, **kwargs)


@pytest.fixture
def populated(profile_store):
	profile_store.add(_visible("me", interests=["hiking", "coffee"], zodiac_sign="aries", lat=37.7749, lon=-122.4194))
	profile_store.add(
		_visible("close", interests=["hiking", "coffee"], zodiac_sign="leo", age=29, lat=37.7750, lon=-122.4195)
	)
	profile_store.add(_visible("far", relationship_goal="casual", interests=["gaming"]))
	return profile_store


@pytest.mark.asyncio
async def test_matches_returns_ranked_candidates(api_client, populated):
	response = await api_client.get("/discovery/matches", headers=ME)

	assert response.status_code == 200
	body = response.json()
	assert body["exhausted"] is False
	assert [item["user_id"] for item in body["items"]] == ["close", "far"]
	first = body["items"][0]
	assert first["zodiac_sign"] == "leo"
	assert first["age"] == 29
	assert first["interests"] == ["coffee", "hiking"]
	assert first["distance_km"] == 0.0
	assert first["compatibility"]["zodiac_score"] == 0.9
	assert set(first["compatibility"]) == {
		"overall_score",
		"location_score",
		"interests_score",
		"goal_compatibility",
		"zodiac_score",
		"behavior_score",
		"preference_score",
	}
	assert body["items"][1]["distance_km"] is None


@pytest.mark.asyncio
async def test_matches_limit_query(api_client, populated):
	response = await api_client.get("/discovery/matches", params={"limit": 1}, headers=ME)
	assert response.status_code == 200
	assert len(response.json()["items"]) == 1

	response = await api_client.get("/discovery/matches", params={"limit": 0}, headers=ME)
	assert response.status_code == 422


@pytest.mark.asyncio
async def test_matches_exhausted_when_everyone_swiped(api_client, populated, swipe_store):
	swipe_store.swipes[("me", "close")] = SwipeAction.LIKE
	swipe_store.swipes[("me", "far")] = SwipeAction.DISLIKE

	response = await api_client.get("/discovery/matches", headers=ME)

	assert response.status_code == 200
	assert response.json()["items"] == []
	assert response.json()["exhausted"] is True


@pytest.mark.asyncio
async def test_matches_requires_authentication(api_client, populated):
	response = await api_client.get("/discovery/matches")
	assert response.status_code == 401
	assert response.json()["detail"] == "invalid_token"


@pytest.mark.asyncio
async def test_dev_header_rejected_outside_dev(api_client, populated, monkeypatch):
	monkeypatch.setattr(settings, "environment", "production")
	response = await api_client.get("/discovery/matches", headers=ME)
	assert response.status_code == 401


@pytest.mark.asyncio
async def test_matches_accepts_bearer_token(api_client, populated):
	token = encode_access({"sub": "me"})
	response = await api_client.get("/discovery/matches", headers={"Authorization": f"Bearer {token}"})
	assert response.status_code == 200


@pytest.mark.asyncio
async def test_bad_bearer_token_rejected(api_client, populated):
	response = await api_client.get("/discovery/matches", headers={"Authorization": "Bearer not-a-jwt"})
	assert response.status_code == 401


@pytest.mark.asyncio
async def test_unknown_profile_returns_404_with_request_id(api_client):
	response = await api_client.get(
		"/discovery/matches",
		headers={"X-User-Id": "ghost", "X-Request-Id": "req-404"},
	)
	assert response.status_code == 404
	assert response.json() == {"detail": "profile_not_found", "request_id": "req-404"}
	assert response.headers["X-Request-Id"] == "req-404"


@pytest.mark.asyncio
async def test_missing_goal_returns_422(api_client, populated):
	populated.add(Profile(user_id="undecided", photo_count=1))
	response = await api_client.get("/discovery/matches", headers={"X-User-Id": "undecided"})
	assert response.status_code == 422
	assert response.json()["detail"] == "relationship_goal_required"


@pytest.mark.asyncio
async def test_matches_rate_limited(api_client, populated, monkeypatch):
	monkeypatch.setattr(settings, "matching_rankings_per_minute", 1)

	first = await api_client.get("/discovery/matches", headers=ME)
	second = await api_client.get("/discovery/matches", headers=ME)

	assert first.status_code == 200
	assert second.status_code == 429
	assert second.json()["detail"] == "rate_limited"


@pytest.mark.asyncio
async def test_swipe_mutual_like_reports_match(api_client, populated, swipe_store):
	swipe_store.swipes[("close", "me")] = SwipeAction.LIKE
	before = metrics.DISCOVERY_MATCHES._value.get()

	response = await api_client.post("/discovery/swipe", json={"target_id": "close", "action": "like"}, headers=ME)

	assert response.status_code == 200
	assert response.json() == {"action": "like", "matched": True}
	assert metrics.DISCOVERY_MATCHES._value.get() == before + 1
	assert ("close", "me") in swipe_store.matches


@pytest.mark.asyncio
async def test_swiped_candidate_leaves_matches(api_client, populated):
	await api_client.post("/discovery/swipe", json={"target_id": "close", "action": "dislike"}, headers=ME)

	response = await api_client.get("/discovery/matches", headers=ME)

	assert [item["user_id"] for item in response.json()["items"]] == ["far"]


@pytest.mark.asyncio
async def test_swipe_rejects_unknown_action(api_client, populated):
	response = await api_client.post("/discovery/swipe", json={"target_id": "close", "action": "love"}, headers=ME)
	assert response.status_code == 422
	assert response.json()["detail"] == "validation_error"


@pytest.mark.asyncio
async def test_swipe_rejects_self(api_client, populated):
	response = await api_client.post("/discovery/swipe", json={"target_id": "me", "action": "like"}, headers=ME)
	assert response.status_code == 400
	assert response.json()["detail"] == "self_swipe"


@pytest.mark.asyncio
async def test_activity_accepted(api_client, activity_log):
	response = await api_client.post(
		"/discovery/activity",
		json={"activity_type": "profile_view", "target_user_id": "close"},
		headers=ME,
	)
	assert response.status_code == 202
	assert response.json() == {"recorded": True}
	assert activity_log.recorded == [("me", "profile_view", "close", {})]


@pytest.mark.asyncio
async def test_activity_write_failure_still_accepted(api_client, activity_log):
	activity_log.fail_writes = True
	response = await api_client.post("/discovery/activity", json={"activity_type": "profile_view"}, headers=ME)
	assert response.status_code == 202
	assert response.json() == {"recorded": False}


@pytest.mark.asyncio
async def test_location_update(api_client, populated):
	response = await api_client.post(
		"/discovery/location",
		json={"lat": 40.7128, "lon": -74.006, "accuracy_m": 20},
		headers=ME,
	)
	assert response.status_code == 204
	assert populated.locations == [("me", 40.7128, -74.006, 20.0)]


@pytest.mark.asyncio
async def test_location_out_of_range(api_client, populated):
	response = await api_client.post("/discovery/location", json={"lat": 91, "lon": 0}, headers=ME)
	assert response.status_code == 422
	assert populated.locations == []


@pytest.mark.asyncio
async def test_health_live(api_client):
	response = await api_client.get("/health/live")
	assert response.status_code == 200
	assert response.json() == {"status": "ok"}


@pytest.mark.asyncio
async def test_metrics_public(api_client, populated, monkeypatch):
	monkeypatch.setattr(settings, "obs_metrics_public", True)
	await api_client.get("/discovery/matches", headers=ME)

	response = await api_client.get("/metrics")

	assert response.status_code == 200
	assert "loveconnect_matching_rankings_total" in response.text


@pytest.mark.asyncio
async def test_metrics_require_admin_token(api_client, monkeypatch):
	monkeypatch.setattr(settings, "obs_metrics_public", False)
	monkeypatch.setattr(settings, "obs_admin_token", "s3cret")

	denied = await api_client.get("/metrics")
	allowed = await api_client.get("/metrics", headers={"X-Admin-Token": "s3cret"})

	assert denied.status_code == 403
	assert allowed.status_code == 200
