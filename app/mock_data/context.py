"""Pulseboard — Session Data Context.

Owns the mock dataset for one application session. The app builds one at
startup and hands it to whatever needs it; nothing here is module-global.
"""

from typing import Any, Dict, List, Optional

from app.connectors.backend.transformer import to_cache
from app.core.logging import get_logger
from app.mock_data.generator import MockDataGenerator, MockDataset
from app.models.entity_models import ContentPlatform, ContentSuggestion, MediaType, SocialMetrics
from app.services.serializers import enum_value
from app.storage.local_cache import METRICS_KEY, PROFILES_KEY, SUGGESTIONS_KEY, LocalCache

logger = get_logger("mock_data.context")


class SessionDataContext:
    def __init__(self, cache: LocalCache, generator: Optional[MockDataGenerator] = None):
        self.cache = cache
        self.generator = generator or MockDataGenerator()
        self._seeded = False

    def get_all_mock_data(self) -> MockDataset:
        """The session's dataset. First use also seeds the local cache."""
        data = self.generator.get_all_mock_data()
        if not self._seeded:
            self._seeded = True
            self.seed_cache(data)
        return data

    def seed_cache(self, data: MockDataset) -> List[str]:
        """Write mock collections into cache keys that are still empty."""
        seeded = []
        for key, items in (
            (PROFILES_KEY, data.social_profiles),
            (SUGGESTIONS_KEY, data.content_suggestions),
            (METRICS_KEY, data.platforms),
        ):
            if self.cache.get_item(key) is None:
                self.cache.set_json(key, to_cache(items))
                seeded.append(key)
        if seeded:
            logger.info(f"Seeded local cache with mock {', '.join(seeded)}")
        return seeded

    def get_calendar_data(self, month: Optional[int] = None, year: Optional[int] = None) -> List[Dict[str, Any]]:
        """Cached calendar, or a freshly generated one for an explicit month/year."""
        if month is not None and year is not None:
            return self.generator.generate_calendar_data(month, year)
        return self.get_all_mock_data().calendar_data

    def get_platform_metrics(self, platform: Optional[str] = None) -> List[SocialMetrics]:
        platforms = self.get_all_mock_data().platforms
        if platform:
            return [m for m in platforms if m.platform == platform.lower()]
        return list(platforms)

    def generate_content_suggestion(self, params: Dict[str, Any]) -> ContentSuggestion:
        """Mock AI generation: a catalog suggestion shaped by the request."""
        suggestion = self.generator.generate_content_suggestion()
        update: Dict[str, Any] = {}

        platform = params.get("platform")
        if platform:
            update["platform"] = enum_value(ContentPlatform, platform, "platform")
        topic = (params.get("topic") or "").strip()
        if topic:
            update["title"] = f"{topic} for {update.get('platform', suggestion.platform)}"
        tone = params.get("tone")
        if tone:
            update["content"] = f"{suggestion.content} Created with a {tone} tone."
        media_type = params.get("media_type") or params.get("mediaType")
        if media_type:
            update["media_type"] = enum_value(MediaType, media_type, "media type")
        include_hashtags = params.get("include_hashtags", params.get("includeHashtags", True))
        if not include_hashtags:
            update["suggested_tags"] = []
        elif topic:
            update["suggested_tags"] = sorted({*suggestion.suggested_tags, topic.lower().replace(" ", "")})

        return suggestion.model_copy(update=update)
