"""Pulseboard — Mock Data Import.

Copies the session's mock dataset into the database so the direct-database
tier has something to serve. Safe to run repeatedly: existing users,
profiles and suggestions (matched by title) are left alone and metrics are
upserted.
"""

from typing import Callable, Dict, Optional

from app.config import settings
from app.core.errors import StorageError
from app.core.logging import get_logger
from app.database import Database
from app.mock_data.context import SessionDataContext
from app.services.metrics_service import SocialMetricsService
from app.services.profile_service import SocialProfileService
from app.services.suggestion_service import ContentSuggestionService
from app.services.user_service import UserService
from app.storage.local_cache import MOCK_IMPORTED_KEY, USER_ID_KEY, LocalCache

logger = get_logger("mock_data.importer")

IMPORT_STEPS = 4  # user, profiles, metrics, suggestions


async def import_mock_data_to_database(
    context: SessionDataContext,
    database: Database,
    progress: Optional[Callable[[int], None]] = None,
) -> Dict[str, int]:
    """Import the mock dataset. ``progress`` receives 25, 50, 75, 100."""
    data = context.get_all_mock_data()
    users = UserService(database)
    profiles = SocialProfileService(database)
    metrics = SocialMetricsService(database)
    suggestions = ContentSuggestionService(database)
    summary = {"users": 0, "profiles": 0, "metrics": 0, "suggestions": 0}
    completed = 0

    def step() -> None:
        nonlocal completed
        completed += 1
        if progress:
            progress(round(completed / IMPORT_STEPS * 100))

    # 1. User
    user = await users.get_user_by_email(data.user["email"])
    if user is None:
        user = await users.create_user({**data.user, "password": settings.default_user_password})
        summary["users"] += 1
    context.cache.set_json(USER_ID_KEY, user.id)
    step()

    # 2. Social profiles
    existing = {p.platform for p in await profiles.get_profiles_by_user_id(user.id)}
    for profile in data.social_profiles:
        if profile.platform in existing:
            continue
        await profiles.add_profile(
            {
                "user_id": user.id,
                "platform": profile.platform,
                "username": profile.username,
                "profile_url": profile.profile_url,
                "connected": profile.connected,
                "followers": profile.followers,
                "last_updated": profile.last_updated,
            }
        )
        summary["profiles"] += 1
    step()

    # 3. Metrics, one aggregate per platform with its daily history
    by_platform = {p.platform: p for p in await profiles.get_profiles_by_user_id(user.id)}
    for platform_metrics in data.platforms:
        profile = by_platform.get(platform_metrics.platform)
        if profile is None:
            continue
        fields = platform_metrics.model_dump(exclude={"id", "user_id", "profile_id", "created_at", "updated_at"})
        await metrics.add_metrics({**fields, "user_id": user.id, "profile_id": profile.id})
        summary["metrics"] += 1
    step()

    # 4. Content suggestions, matched by title
    titles = {s.title for s in await suggestions.get_suggestions_by_user_id(user.id)}
    for suggestion in data.content_suggestions:
        if suggestion.title in titles:
            continue
        await suggestions.create_suggestion(
            {
                "user_id": user.id,
                "title": suggestion.title,
                "content": suggestion.content,
                "platform": suggestion.platform,
                "media_type": suggestion.media_type,
                "status": suggestion.status,
                "tags": suggestion.tags,
                "suggested_tags": suggestion.suggested_tags,
                "ai_generated": suggestion.ai_generated,
                "ai_generated_score": suggestion.ai_generated_score,
                "best_time_to_post": suggestion.best_time_to_post,
                "metadata": {},
            }
        )
        titles.add(suggestion.title)
        summary["suggestions"] += 1
    step()

    context.cache.set_item(MOCK_IMPORTED_KEY, "true")
    logger.info(f"✅ Mock data imported: {summary}")
    return summary


async def is_mock_data_imported(cache: LocalCache, database: Database) -> bool:
    """Cached flag first, then whether any user exists."""
    if cache.get_item(MOCK_IMPORTED_KEY) == "true":
        return True
    try:
        count = await UserService(database).count()
    except StorageError as e:
        logger.error(f"Error checking if mock data is imported: {e}")
        return False
    if count > 0:
        cache.set_item(MOCK_IMPORTED_KEY, "true")
        return True
    return False
