import asyncio
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, Mock

import httpx
import pytest

from app.connectors.backend.accessors import (
    ContentSuggestionsClient,
    MetricsClient,
    SocialProfilesClient,
)
from app.connectors.backend.client import BackendClient
from app.core.errors import (
    AllTiersFailedError,
    ConnectionFailedError,
    DuplicateEntityError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from app.models.entity_models import SocialProfile
from app.resilience.fallback import Tier, run_with_fallback
from app.services.profile_service import SocialProfileService
from app.services.suggestion_service import ContentSuggestionService
from app.storage.local_cache import METRICS_KEY, PROFILES_KEY, SUGGESTIONS_KEY, USER_ID_KEY

REMOTE_PROFILE = {
    "id": "a" * 32,
    "userId": "u1",
    "platform": "instagram",
    "username": "insta",
    "profileUrl": "https://instagram.com/insta",
    "connected": True,
    "followers": 42,
}


def _backend(handler):
    return BackendClient(base_url="http://backend.test", transport=httpx.MockTransport(handler))


def _status(code, body=None):
    def handler(request):
        return httpx.Response(code, json=body if body is not None else {"detail": "boom"})

    return handler


def _run(coro_factory):
    async def wrapper():
        return await coro_factory()

    return asyncio.run(wrapper())


# ── Policy ──


def test_remote_success_is_mirrored_into_cache(cache):
    service = AsyncMock()
    client = SocialProfilesClient(_backend(_status(200, [REMOTE_PROFILE])), service, cache)

    result = _run(client.get_social_profiles)

    assert result.tier == Tier.REMOTE
    assert not result.degraded
    assert [p.username for p in result.value] == ["insta"]
    assert cache.get_json(PROFILES_KEY)[0]["profileUrl"] == "https://instagram.com/insta"
    service.get_profiles_by_user_id.assert_not_called()


def test_database_tier_runs_before_cache_and_skips_cache_read(cache):
    calls = []

    def handler(request):
        calls.append("remote")
        return httpx.Response(500, json={"detail": "down"})

    async def from_db(user_id):
        calls.append(f"database:{user_id}")
        return [SocialProfile(**{**REMOTE_PROFILE, "username": "from_db"})]

    service = AsyncMock()
    service.get_profiles_by_user_id.side_effect = from_db
    cache.set_json(USER_ID_KEY, "u1")
    client = SocialProfilesClient(_backend(handler), service, cache)
    client.store.load = Mock(side_effect=AssertionError("cache read path touched"))

    result = _run(client.get_social_profiles)

    assert calls == ["remote", "database:u1"]
    assert result.tier == Tier.DATABASE
    assert [p.username for p in result.value] == ["from_db"]
    assert cache.get_json(PROFILES_KEY)[0]["username"] == "from_db"


def test_remote_500_without_user_id_returns_cached_array(cache):
    cache.set_json(PROFILES_KEY, [REMOTE_PROFILE])
    service = AsyncMock()
    client = SocialProfilesClient(_backend(_status(500)), service, cache)

    result = _run(client.get_social_profiles)

    assert result.tier == Tier.CACHE
    assert [p.id for p in result.value] == ["a" * 32]
    service.get_profiles_by_user_id.assert_not_called()


def test_remote_500_with_empty_cache_returns_empty_list(cache):
    client = SocialProfilesClient(_backend(_status(500)), AsyncMock(), cache)
    result = _run(client.get_social_profiles)
    assert result.value == []
    assert result.tier == Tier.CACHE


def test_all_tiers_failing_raises_one_aggregated_error(cache):
    cache.set_json(USER_ID_KEY, "u1")
    service = AsyncMock()
    service.get_profiles_by_user_id.side_effect = ConnectionFailedError("db down")
    client = SocialProfilesClient(_backend(_status(503)), service, cache)
    client.store.load = Mock(side_effect=OSError("cache file gone"))

    with pytest.raises(AllTiersFailedError) as excinfo:
        _run(client.get_social_profiles)

    assert [tier for tier, _ in excinfo.value.errors] == ["remote", "database", "cache"]
    assert "Could not complete get_social_profiles" in str(excinfo.value)


def test_remote_validation_error_is_not_masked(cache):
    service = AsyncMock()
    cache.set_json(USER_ID_KEY, "u1")
    client = SocialProfilesClient(_backend(_status(422, {"detail": "bad platform"})), service, cache)

    with pytest.raises(ValidationError, match="bad platform"):
        _run(lambda: client.add_social_profile({"platform": "myspace", "username": "x", "profileUrl": "u"}))
    service.add_profile.assert_not_called()


def test_unparseable_remote_body_falls_through(cache):
    def handler(request):
        return httpx.Response(200, content=b"<html>oops</html>")

    cache.set_json(PROFILES_KEY, [REMOTE_PROFILE])
    client = SocialProfilesClient(_backend(handler), AsyncMock(), cache)

    assert _run(client.get_social_profiles).tier == Tier.CACHE


def test_remote_conflict_surfaces_as_duplicate(cache):
    backend = _backend(_status(409, {"detail": "User u1 already has a twitter profile"}))
    client = SocialProfilesClient(backend, AsyncMock(), cache)

    with pytest.raises(DuplicateEntityError, match="already has a twitter profile"):
        _run(lambda: client.add_social_profile({"platform": "twitter", "username": "x", "profileUrl": "u"}))


def test_remote_rejected_transition_keeps_its_type(cache):
    detail = {"detail": "Cannot move suggestion from 'published' to 'pending'"}
    client = ContentSuggestionsClient(_backend(_status(422, detail)), AsyncMock(), cache)

    with pytest.raises(InvalidTransitionError) as excinfo:
        _run(lambda: client.update_suggestion_status("c" * 32, "pending"))
    assert (excinfo.value.current, excinfo.value.requested) == ("published", "pending")


def test_stale_cache_entry_does_not_break_a_remote_write(cache):
    cache.set_json(PROFILES_KEY, [{"platform": "myspace"}])
    client = SocialProfilesClient(_backend(_status(201, REMOTE_PROFILE)), AsyncMock(), cache)

    result = _run(
        lambda: client.add_social_profile(
            {"platform": "instagram", "username": "insta", "profileUrl": "https://instagram.com/insta"}
        )
    )

    assert result.tier == Tier.REMOTE
    assert result.value.id == "a" * 32
    assert [p["id"] for p in cache.get_json(PROFILES_KEY)] == ["a" * 32]


def test_failing_write_through_keeps_the_result(cache):
    async def remote():
        return ["fresh"]

    def broken(value):
        raise OSError("disk full")

    result = asyncio.run(run_with_fallback("read", remote, None, list, cache=cache, write_through=broken))

    assert result.value == ["fresh"]
    assert result.tier == Tier.REMOTE


def test_unreadable_cache_entries_are_dropped(cache):
    cache.set_json(PROFILES_KEY, [{"platform": "myspace"}, REMOTE_PROFILE])
    client = SocialProfilesClient(_backend(_status(500)), AsyncMock(), cache)

    assert [p.id for p in _run(client.get_social_profiles).value] == ["a" * 32]


def test_hung_tier_times_out():
    async def scenario():
        async def hang():
            await asyncio.sleep(5)

        async def direct(user_id):
            return "served"

        cache = Mock()
        cache.get_json.return_value = "u1"
        return await run_with_fallback(
            "slow_read", hang, direct, lambda: "cached", cache=cache, timeout=0.05
        )

    result = asyncio.run(scenario())
    assert result.value == "served"
    assert result.tier == Tier.DATABASE


# ── Cache-tier writes ──


def test_cache_tier_add_is_visible_to_later_reads(cache):
    client = SocialProfilesClient(_backend(_status(500)), AsyncMock(), cache)

    async def scenario():
        added = await client.add_social_profile(
            {"userId": "ignored", "platform": "twitter", "username": "x", "profileUrl": "https://twitter.com/x"}
        )
        listed = await client.get_social_profiles()
        return added, listed

    added, listed = _run(scenario)
    assert added.tier == Tier.CACHE
    assert added.value.followers == 0
    assert [p.id for p in listed.value] == [added.value.id]


def test_cache_tier_update_and_delete(cache):
    cache.set_json(PROFILES_KEY, [REMOTE_PROFILE])
    client = SocialProfilesClient(_backend(_status(502)), AsyncMock(), cache)

    async def scenario():
        updated = await client.update_social_profile("a" * 32, {"followers": 99})
        missing = await client.update_social_profile("b" * 32, {"followers": 1})
        deleted = await client.delete_social_profile("a" * 32)
        return updated, missing, deleted

    updated, missing, deleted = _run(scenario)
    assert updated.value.followers == 99
    assert missing.value is None
    assert deleted.value.success is True
    assert cache.get_json(PROFILES_KEY) == []


def test_cache_tier_enforces_status_transitions(cache):
    cache.set_json(
        SUGGESTIONS_KEY,
        [{"id": "c" * 32, "title": "t", "content": "c", "status": "published"}],
    )
    client = ContentSuggestionsClient(_backend(_status(500)), AsyncMock(), cache)

    with pytest.raises(InvalidTransitionError):
        _run(lambda: client.update_suggestion_status("c" * 32, "pending"))
    assert cache.get_json(SUGGESTIONS_KEY)[0]["status"] == "published"


def test_cache_tier_rejects_out_of_range_score(cache):
    client = ContentSuggestionsClient(_backend(_status(500)), AsyncMock(), cache)
    with pytest.raises(ValidationError):
        _run(lambda: client.create_content_suggestion({"title": "t", "content": "c", "aiGeneratedScore": 150}))


def test_filtered_suggestions_do_not_replace_the_cache(cache):
    cached = [
        {"id": "1" * 32, "title": "a", "content": "a", "status": "pending"},
        {"id": "2" * 32, "title": "b", "content": "b", "status": "approved"},
    ]
    cache.set_json(SUGGESTIONS_KEY, cached)
    remote = [{**cached[1], "title": "b2"}]
    client = ContentSuggestionsClient(_backend(_status(200, remote)), AsyncMock(), cache)

    result = _run(lambda: client.get_content_suggestions(status="approved"))

    assert [s.title for s in result.value] == ["b2"]
    assert [s["title"] for s in cache.get_json(SUGGESTIONS_KEY)] == ["a", "b2"]


def test_follower_growth_from_cache(cache):
    now = datetime(2026, 3, 31, tzinfo=timezone.utc)
    cache.set_json(
        METRICS_KEY,
        [
            {
                "platform": "twitter",
                "dailyStats": [
                    {"date": (now - timedelta(days=d)).isoformat(), "followers": 100 - d}
                    for d in (10, 7, 1)
                ],
            }
        ],
    )
    client = MetricsClient(_backend(_status(500)), AsyncMock(), cache)

    result = _run(lambda: client.get_follower_growth("7d", now=now))

    assert result.tier == Tier.CACHE
    assert [p.followers for p in result.value] == [93, 99]


def test_remote_time_range_is_sent_as_label(cache):
    seen = {}

    def handler(request):
        seen.update(request.url.params)
        return httpx.Response(200, json=[])

    client = MetricsClient(_backend(handler), AsyncMock(), cache)
    _run(lambda: client.get_metrics(platform="twitter", time_range=365))
    assert seen == {"platform": "twitter", "timeRange": "1y"}


def test_session_cookie_is_sent(cache):
    seen = {}

    def handler(request):
        seen["cookie"] = request.headers.get("cookie")
        return httpx.Response(200, json=[])

    backend = BackendClient(
        base_url="http://backend.test",
        session_cookie="u1",
        transport=httpx.MockTransport(handler),
    )
    _run(SocialProfilesClient(backend, AsyncMock(spec=SocialProfileService), cache).get_social_profiles)
    assert seen["cookie"] == "pulseboard_session=u1"


# ── Ownership on the database tier ──


def test_database_tier_leaves_other_users_records_alone(run_db, cache):
    cache.set_json(USER_ID_KEY, "me")

    async def scenario(db):
        profiles = SocialProfileService(db)
        suggestions = ContentSuggestionService(db)
        theirs = await profiles.add_profile(
            {"user_id": "victim", "platform": "twitter", "username": "v", "profile_url": "https://twitter.com/v"}
        )
        idea = await suggestions.create_suggestion({"user_id": "victim", "title": "t", "content": "c"})

        backend = _backend(_status(503))
        profile_client = SocialProfilesClient(backend, profiles, cache)
        suggestion_client = ContentSuggestionsClient(backend, suggestions, cache)

        deleted = await profile_client.delete_social_profile(theirs.id)
        updated = await profile_client.update_social_profile(theirs.id, {"followers": 1})
        edited = await suggestion_client.update_content_suggestion(idea.id, {"title": "mine now"})
        with pytest.raises(NotFoundError):
            await suggestion_client.update_suggestion_status(idea.id, "approved")
        removed = await suggestion_client.delete_content_suggestion(idea.id)
        await backend.close()

        left = await profiles.get_profiles_by_user_id("victim")
        still = await suggestions.get_suggestion_by_id(idea.id)
        return deleted, updated, edited, removed, left, still

    deleted, updated, edited, removed, left, still = run_db(scenario)

    assert deleted.tier == Tier.DATABASE
    assert deleted.value.success is False
    assert updated.value is None
    assert edited.value is None
    assert removed.value.success is False
    assert [p.followers for p in left] == [0]
    assert (still.title, still.status) == ("t", "pending")
