"""Pulseboard — Resilient Entity Accessors.

What callers use instead of talking to the backend directly. Each method is
one ``run_with_fallback`` instantiation: a remote call, the matching
entity-service call, and a cache read/mutation. Results are mirrored into
the local cache so later reads survive an outage.

Identity comes from the session (remote tier) or from the user id stored in
the local cache (database and cache tiers); a ``userId`` in caller input is
ignored. On the database tier a record owned by another user is treated as
missing, as the backend routes do.
"""

from typing import Any, Callable, Dict, Generic, Iterable, List, Optional, Type, TypeVar

from pydantic import BaseModel

from app.connectors.backend.client import BackendClient
from app.connectors.backend.transformer import (
    build,
    from_cache,
    parse_many,
    parse_one,
    request_body,
    snake_fields,
    to_cache,
)
from app.core.errors import DuplicateEntityError, NotFoundError, ValidationError
from app.models.documents import new_id, utcnow
from app.models.entity_models import (
    ContentPlatform,
    ContentSuggestion,
    DeleteResult,
    FollowerGrowthPoint,
    Platform,
    SocialMetrics,
    SocialProfile,
    SuggestionStatus,
)
from app.resilience.fallback import FallbackResult, run_with_fallback
from app.services.metrics_service import (
    TIME_RANGE_DAYS,
    SocialMetricsService,
    follower_growth_points,
    growth_window,
    parse_time_range,
    trim_daily_stats,
)
from app.services.profile_service import SocialProfileService
from app.services.serializers import enum_value, validate_score
from app.services.suggestion_service import ContentSuggestionService, check_transition
from app.storage.local_cache import (
    METRICS_KEY,
    PROFILES_KEY,
    SUGGESTIONS_KEY,
    USER_ID_KEY,
    LocalCache,
)


M = TypeVar("M", bound=BaseModel)
S = TypeVar("S")

RANGE_LABELS = {days: label for label, days in TIME_RANGE_DAYS.items()}


class CachedCollection(Generic[M]):
    """One entity list kept in the local cache under ``key``."""

    def __init__(self, cache: LocalCache, key: str, model: Type[M]):
        self.cache = cache
        self.key = key
        self.model = model

    def load(self) -> List[M]:
        return from_cache(self.model, self.cache.get_json(self.key, []))

    def replace(self, items: Iterable[M]) -> None:
        self.cache.set_json(self.key, to_cache(items))

    def find(self, item_id: str) -> Optional[M]:
        return next((i for i in self.load() if getattr(i, "id", None) == item_id), None)

    def merge(self, items: Iterable[M]) -> None:
        current = self.load()
        index = {getattr(i, "id", None): n for n, i in enumerate(current)}
        for item in items:
            pos = index.get(getattr(item, "id", None))
            if pos is None:
                index[getattr(item, "id", None)] = len(current)
                current.append(item)
            else:
                current[pos] = item
        self.replace(current)

    def upsert(self, item: Optional[M]) -> None:
        if item is not None:
            self.merge([item])

    def remove(self, item_id: str) -> bool:
        current = self.load()
        kept = [i for i in current if getattr(i, "id", None) != item_id]
        if len(kept) == len(current):
            return False
        self.replace(kept)
        return True


class _Accessor(Generic[S]):
    def __init__(
        self,
        backend: BackendClient,
        service: S,
        cache: LocalCache,
        timeout: Optional[float] = None,
    ):
        self.backend = backend
        self.service = service
        self.cache = cache
        self.timeout = timeout

    def _cached_user_id(self) -> Optional[str]:
        return self.cache.get_json(USER_ID_KEY)

    @staticmethod
    async def _owned(lookup, entity_id: str, user_id: str):
        record = await lookup(entity_id)
        return record if record is not None and record.user_id == user_id else None

    async def _run(self, operation: str, remote, direct, cache_fallback, write_through=None):
        return await run_with_fallback(
            operation,
            remote,
            direct,
            cache_fallback,
            cache=self.cache,
            write_through=write_through,
            timeout=self.timeout,
        )


def _input_fields(data: Dict[str, Any]) -> Dict[str, Any]:
    fields = snake_fields(data)
    fields.pop("user_id", None)
    for key in ("id", "created_at", "updated_at"):
        fields.pop(key, None)
    return fields


def _merged(model: Type[M], current: M, fields: Dict[str, Any]) -> M:
    return build(model, {**current.model_dump(), **fields, "updated_at": utcnow()})


# ── Social Profiles ──


class SocialProfilesClient(_Accessor[SocialProfileService]):
    def __init__(self, backend: BackendClient, service: SocialProfileService, cache: LocalCache, timeout=None):
        super().__init__(backend, service, cache, timeout)
        self.store = CachedCollection(cache, PROFILES_KEY, SocialProfile)

    async def get_social_profiles(self) -> FallbackResult[List[SocialProfile]]:
        async def remote():
            return parse_many(SocialProfile, await self.backend.list_profiles())

        async def direct(user_id: str):
            return await self.service.get_profiles_by_user_id(user_id)

        return await self._run(
            "get_social_profiles", remote, direct, self.store.load, write_through=self.store.replace
        )

    async def add_social_profile(self, data: Dict[str, Any]) -> FallbackResult[SocialProfile]:
        fields = _input_fields(data)

        async def remote():
            return parse_one(SocialProfile, await self.backend.add_profile(request_body(fields)))

        async def direct(user_id: str):
            return await self.service.add_profile({**fields, "user_id": user_id})

        def cached() -> SocialProfile:
            missing = [f for f in ("platform", "username", "profile_url") if not fields.get(f)]
            if missing:
                raise ValidationError(f"Missing required social profile fields: {', '.join(missing)}")
            now = utcnow()
            profile = build(
                SocialProfile,
                {
                    "connected": True,
                    "followers": 0,
                    **fields,
                    "id": new_id(),
                    "user_id": self._cached_user_id(),
                    "last_updated": now,
                    "created_at": now,
                    "updated_at": now,
                },
            )
            if any(p.platform == profile.platform for p in self.store.load()):
                raise DuplicateEntityError(f"A {profile.platform} profile is already linked")
            self.store.upsert(profile)
            return profile

        return await self._run(
            "add_social_profile", remote, direct, cached, write_through=self.store.upsert
        )

    async def update_social_profile(
        self, profile_id: str, data: Dict[str, Any]
    ) -> FallbackResult[Optional[SocialProfile]]:
        fields = _input_fields(data)

        async def remote():
            payload = await self.backend.update_profile(profile_id, request_body(fields))
            return parse_one(SocialProfile, payload)

        async def direct(user_id: str):
            if await self._owned(self.service.get_profile_by_id, profile_id, user_id) is None:
                return None
            return await self.service.update_profile(profile_id, fields)

        def cached() -> Optional[SocialProfile]:
            current = self.store.find(profile_id)
            if current is None:
                return None
            if "followers" in fields and "last_updated" not in fields:
                fields["last_updated"] = utcnow()
            updated = _merged(SocialProfile, current, fields)
            self.store.upsert(updated)
            return updated

        return await self._run(
            "update_social_profile", remote, direct, cached, write_through=self.store.upsert
        )

    async def delete_social_profile(self, profile_id: str) -> FallbackResult[DeleteResult]:
        async def remote():
            return parse_one(DeleteResult, await self.backend.delete_profile(profile_id))

        async def direct(user_id: str):
            if await self._owned(self.service.get_profile_by_id, profile_id, user_id) is None:
                return DeleteResult(success=False, message="Profile not found")
            return await self.service.delete_profile(profile_id)

        def cached() -> DeleteResult:
            if self.store.remove(profile_id):
                return DeleteResult(success=True, message="Profile deleted successfully")
            return DeleteResult(success=False, message="Profile not found")

        return await self._run(
            "delete_social_profile",
            remote,
            direct,
            cached,
            write_through=lambda _: self.store.remove(profile_id),
        )


# ── Content Suggestions ──


class ContentSuggestionsClient(_Accessor[ContentSuggestionService]):
    def __init__(self, backend: BackendClient, service: ContentSuggestionService, cache: LocalCache, timeout=None):
        super().__init__(backend, service, cache, timeout)
        self.store = CachedCollection(cache, SUGGESTIONS_KEY, ContentSuggestion)

    async def get_content_suggestions(
        self, status: Optional[str] = None, platform: Optional[str] = None
    ) -> FallbackResult[List[ContentSuggestion]]:
        if status:
            status = enum_value(SuggestionStatus, status, "status")
        if platform:
            platform = enum_value(ContentPlatform, platform, "platform")

        async def remote():
            return parse_many(ContentSuggestion, await self.backend.list_suggestions(status, platform))

        async def direct(user_id: str):
            return await self.service.get_suggestions_by_user_id(user_id, status, platform)

        def cached() -> List[ContentSuggestion]:
            return [
                s
                for s in self.store.load()
                if (not status or s.status == status) and (not platform or s.platform == platform)
            ]

        # a filtered result is a subset, so it must not replace the cached list
        write_through = self.store.merge if (status or platform) else self.store.replace
        return await self._run(
            "get_content_suggestions", remote, direct, cached, write_through=write_through
        )

    async def create_content_suggestion(self, data: Dict[str, Any]) -> FallbackResult[ContentSuggestion]:
        fields = _input_fields(data)

        async def remote():
            return parse_one(ContentSuggestion, await self.backend.create_suggestion(request_body(fields)))

        async def direct(user_id: str):
            return await self.service.create_suggestion({**fields, "user_id": user_id})

        def cached() -> ContentSuggestion:
            missing = [f for f in ("title", "content") if not fields.get(f)]
            if missing:
                raise ValidationError(f"Missing required content suggestion fields: {', '.join(missing)}")
            now = utcnow()
            suggestion = build(
                ContentSuggestion,
                {
                    **fields,
                    "id": new_id(),
                    "user_id": self._cached_user_id(),
                    "ai_generated_score": validate_score(fields.get("ai_generated_score")),
                    "suggested_tags": sorted(set(fields.get("suggested_tags") or [])),
                    "status": SuggestionStatus.PENDING.value,
                    "created_at": now,
                    "updated_at": now,
                },
            )
            self.store.upsert(suggestion)
            return suggestion

        return await self._run(
            "create_content_suggestion", remote, direct, cached, write_through=self.store.upsert
        )

    async def update_content_suggestion(
        self, suggestion_id: str, data: Dict[str, Any]
    ) -> FallbackResult[Optional[ContentSuggestion]]:
        fields = _input_fields(data)
        if "ai_generated_score" in fields:
            validate_score(fields["ai_generated_score"])

        async def remote():
            payload = await self.backend.update_suggestion(suggestion_id, request_body(fields))
            return parse_one(ContentSuggestion, payload)

        async def direct(user_id: str):
            if await self._owned(self.service.get_suggestion_by_id, suggestion_id, user_id) is None:
                return None
            return await self.service.update_suggestion(suggestion_id, fields)

        def cached() -> Optional[ContentSuggestion]:
            current = self.store.find(suggestion_id)
            if current is None:
                return None
            patch = self._status_patch(current, fields.pop("status", None), fields)
            updated = _merged(ContentSuggestion, current, patch)
            self.store.upsert(updated)
            return updated

        return await self._run(
            "update_content_suggestion", remote, direct, cached, write_through=self.store.upsert
        )

    async def update_suggestion_status(
        self, suggestion_id: str, status: str
    ) -> FallbackResult[ContentSuggestion]:
        status = enum_value(SuggestionStatus, status, "status")

        async def remote():
            payload = await self.backend.update_suggestion_status(suggestion_id, status)
            return parse_one(ContentSuggestion, payload)

        async def direct(user_id: str):
            if await self._owned(self.service.get_suggestion_by_id, suggestion_id, user_id) is None:
                raise NotFoundError("ContentSuggestion", suggestion_id)
            return await self.service.update_suggestion_status(suggestion_id, status)

        def cached() -> ContentSuggestion:
            current = self.store.find(suggestion_id)
            if current is None:
                raise NotFoundError("ContentSuggestion", suggestion_id)
            updated = _merged(ContentSuggestion, current, self._status_patch(current, status, {}))
            self.store.upsert(updated)
            return updated

        return await self._run(
            "update_suggestion_status", remote, direct, cached, write_through=self.store.upsert
        )

    async def delete_content_suggestion(self, suggestion_id: str) -> FallbackResult[DeleteResult]:
        async def remote():
            return parse_one(DeleteResult, await self.backend.delete_suggestion(suggestion_id))

        async def direct(user_id: str):
            if await self._owned(self.service.get_suggestion_by_id, suggestion_id, user_id) is None:
                return DeleteResult(success=False, message="Suggestion not found")
            return await self.service.delete_suggestion(suggestion_id)

        def cached() -> DeleteResult:
            if self.store.remove(suggestion_id):
                return DeleteResult(success=True, message="Suggestion deleted successfully")
            return DeleteResult(success=False, message="Suggestion not found")

        return await self._run(
            "delete_content_suggestion",
            remote,
            direct,
            cached,
            write_through=lambda _: self.store.remove(suggestion_id),
        )

    @staticmethod
    def _status_patch(
        current: ContentSuggestion, status: Optional[str], fields: Dict[str, Any]
    ) -> Dict[str, Any]:
        patch = dict(fields)
        if status is None:
            return patch
        status = enum_value(SuggestionStatus, status, "status")
        if check_transition(current.status, status):
            patch["status"] = status
            if status == SuggestionStatus.PUBLISHED.value and not current.published_at:
                patch["published_at"] = utcnow()
        return patch


# ── Metrics ──


class MetricsClient(_Accessor[SocialMetricsService]):
    def __init__(self, backend: BackendClient, service: SocialMetricsService, cache: LocalCache, timeout=None):
        super().__init__(backend, service, cache, timeout)
        self.store = CachedCollection(cache, METRICS_KEY, SocialMetrics)

    async def get_metrics(
        self,
        platform: Optional[str] = None,
        time_range: Any = None,
        now=None,
    ) -> FallbackResult[List[SocialMetrics]]:
        """Aggregates per platform; ``time_range`` trims each daily series."""
        if platform:
            platform = enum_value(Platform, platform, "platform")
        days = parse_time_range(time_range) if time_range else None
        window = growth_window(days, now) if days else None

        def trimmed(metrics: List[SocialMetrics]) -> List[SocialMetrics]:
            if window is None:
                return metrics
            return [trim_daily_stats(m, *window) for m in metrics]

        async def remote():
            payload = await self.backend.list_metrics(platform, RANGE_LABELS.get(days) if days else None)
            return parse_many(SocialMetrics, payload)

        async def direct(user_id: str):
            return trimmed(await self.service.get_metrics_by_user_id(user_id, platform))

        def cached() -> List[SocialMetrics]:
            return trimmed([m for m in self.store.load() if not platform or m.platform == platform])

        write_through: Optional[Callable[[List[SocialMetrics]], None]] = None
        if window is None:
            write_through = self.store.merge if platform else self.store.replace
        return await self._run("get_metrics", remote, direct, cached, write_through=write_through)

    async def get_follower_growth(
        self, time_range: Any = 30, platform: Optional[str] = None, now=None
    ) -> FallbackResult[List[FollowerGrowthPoint]]:
        days = parse_time_range(time_range)
        if platform:
            platform = enum_value(Platform, platform, "platform")

        async def remote():
            return parse_many(FollowerGrowthPoint, await self.backend.follower_growth(days, platform))

        async def direct(user_id: str):
            return await self.service.get_follower_growth(user_id, days, platform, now=now)

        def cached() -> List[FollowerGrowthPoint]:
            start, end = growth_window(days, now)
            metrics = [m for m in self.store.load() if not platform or m.platform == platform]
            return follower_growth_points(metrics, start, end)

        return await self._run("get_follower_growth", remote, direct, cached)
