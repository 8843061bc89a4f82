"""Pulseboard — Mock Data Generator.

Synthetic but internally consistent dataset for local and offline work: one
user, a profile and a metrics aggregate per platform with a daily history,
a fixed catalog of content suggestions, dashboard totals and calendar data.

All randomness goes through one seeded ``random.Random`` so a seed
reproduces the dataset exactly.
"""

import calendar
import random
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from app.config import settings
from app.core.logging import get_logger
from app.models.entity_models import (
    ContentSuggestion,
    DailyStat,
    SocialMetrics,
    SocialProfile,
)

logger = get_logger("mock_data.generator")

# Follower baselines per platform (min, max)
FOLLOWER_RANGES: Dict[str, tuple] = {
    "instagram": (2_000, 25_000),
    "twitter": (800, 12_000),
    "facebook": (1_500, 18_000),
    "linkedin": (500, 6_000),
    "tiktok": (3_000, 40_000),
    "youtube": (1_000, 15_000),
}

# Fixed suggestion catalog: (title, content, platform, media type, tags)
SUGGESTION_TEMPLATES = [
    (
        "Behind the scenes",
        "Show your audience how a typical working day looks for the team.",
        "instagram",
        "carousel",
        ["behindthescenes", "team", "culture"],
    ),
    (
        "Industry hot take",
        "Share a short opinion on this week's biggest industry story and ask for replies.",
        "twitter",
        "text",
        ["opinion", "industry", "discussion"],
    ),
    (
        "Customer success story",
        "Highlight one customer and the result they got working with you.",
        "linkedin",
        "image",
        ["casestudy", "customers", "growth"],
    ),
    (
        "Quick tutorial",
        "A 30-second how-to covering the most common question you get.",
        "tiktok",
        "video",
        ["tutorial", "howto", "tips"],
    ),
    (
        "Weekly roundup",
        "Summarise the three most useful links you read this week.",
        "facebook",
        "link",
        ["roundup", "weekly", "reading"],
    ),
    (
        "Community question",
        "Ask followers what they would like to see more of next month.",
        "all",
        "text",
        ["community", "feedback", "poll"],
    ),
    (
        "Product deep dive",
        "Walk through one feature in detail, with a clear before and after.",
        "youtube",
        "video",
        ["product", "demo", "walkthrough"],
    ),
    (
        "Milestone celebration",
        "Thank your audience for reaching a follower milestone and share what's next.",
        "all",
        "image",
        ["milestone", "thankyou", "community"],
    ),
]

CALENDAR_TITLES = [
    "Product teaser",
    "Team spotlight",
    "Tips & tricks",
    "Customer quote",
    "Live Q&A",
    "Weekly roundup",
    "Poll",
]

BEST_POSTING_HOURS = (8, 9, 12, 13, 17, 18, 19)


@dataclass
class MockDataset:
    user: Dict[str, Any]
    platforms: List[SocialMetrics]
    social_profiles: List[SocialProfile]
    content_suggestions: List[ContentSuggestion]
    dashboard: Dict[str, Any]
    calendar_data: List[Dict[str, Any]] = field(default_factory=list)


def _midnight(value: datetime) -> datetime:
    return value.replace(hour=0, minute=0, second=0, microsecond=0)


class MockDataGenerator:
    """Builds the mock dataset; ``get_all_mock_data`` is computed once."""

    def __init__(
        self,
        seed: Optional[int] = None,
        platforms: Optional[List[str]] = None,
        history_days: Optional[int] = None,
        now: Optional[datetime] = None,
    ):
        self.seed = settings.mock_seed if seed is None else seed
        self.platforms = platforms or settings.mock_platform_list
        self.history_days = history_days or settings.mock_history_days
        self.now = now or datetime.now(timezone.utc)
        self._rng = random.Random(self.seed)
        self._dataset: Optional[MockDataset] = None

    def _id(self) -> str:
        return uuid.UUID(int=self._rng.getrandbits(128)).hex

    # ── Pieces ──

    def generate_user(self) -> Dict[str, Any]:
        name = settings.default_user_email.split("@")[0].replace(".", " ").title()
        return {
            "name": name or "Demo User",
            "email": settings.default_user_email,
            "image": f"https://i.pravatar.cc/150?u={self._rng.randint(1, 70)}",
            "role": "user",
        }

    def generate_daily_stats(self, base_followers: int) -> List[DailyStat]:
        """Oldest-first daily series ending today, followers never shrinking."""
        today = _midnight(self.now)
        followers = int(base_followers * self._rng.uniform(0.75, 0.9))
        stats: List[DailyStat] = []
        for offset in range(self.history_days - 1, -1, -1):
            followers += self._rng.randint(0, max(1, base_followers // 150))
            impressions = int(followers * self._rng.uniform(0.3, 1.2))
            stats.append(
                DailyStat(
                    date=today - timedelta(days=offset),
                    followers=followers,
                    engagement=int(impressions * self._rng.uniform(0.01, 0.08)),
                    impressions=impressions,
                    reach=int(impressions * self._rng.uniform(0.5, 0.9)),
                )
            )
        return stats

    def generate_platform_metrics(self, platform: str) -> SocialMetrics:
        low, high = FOLLOWER_RANGES.get(platform, (500, 10_000))
        daily = self.generate_daily_stats(self._rng.randint(low, high))
        latest = daily[-1]
        impressions = sum(s.impressions for s in daily)
        engagement = sum(s.engagement for s in daily)
        return SocialMetrics(
            id=self._id(),
            platform=platform,
            date=latest.date,
            followers=latest.followers,
            following=self._rng.randint(50, 1_500),
            posts=self._rng.randint(20, 400),
            likes=int(engagement * self._rng.uniform(0.6, 0.8)),
            comments=int(engagement * self._rng.uniform(0.1, 0.2)),
            shares=int(engagement * self._rng.uniform(0.05, 0.1)),
            impressions=impressions,
            reach=sum(s.reach for s in daily),
            engagement=engagement,
            engagement_rate=self._rng.random() * 0.1,
            daily_stats=daily,
        )

    def generate_social_profile(self, metrics: SocialMetrics) -> SocialProfile:
        username = f"{metrics.platform}_user"
        return SocialProfile(
            id=self._id(),
            platform=metrics.platform,
            username=username,
            profile_url=f"https://{metrics.platform}.com/{username}",
            connected=True,
            followers=metrics.followers,
            last_updated=self.now,
            created_at=self.now,
            updated_at=self.now,
        )

    def generate_content_suggestion(self, template: Optional[tuple] = None) -> ContentSuggestion:
        title, content, platform, media_type, tags = template or self._rng.choice(SUGGESTION_TEMPLATES)
        best_time = _midnight(self.now) + timedelta(
            days=self._rng.randint(1, 14), hours=self._rng.choice(BEST_POSTING_HOURS)
        )
        return ContentSuggestion(
            id=self._id(),
            title=title,
            content=content,
            platform=platform,
            media_type=media_type,
            suggested_tags=sorted(tags),
            tags=list(tags),
            best_time_to_post=best_time,
            ai_generated_score=round(self._rng.uniform(55, 98), 1),
            ai_generated=True,
            status="pending",
            created_at=self.now,
            updated_at=self.now,
        )

    def generate_dashboard_data(self, platforms: List[SocialMetrics]) -> Dict[str, Any]:
        total_followers = sum(m.followers for m in platforms)
        first_total = sum(m.daily_stats[0].followers for m in platforms if m.daily_stats)
        growth = (total_followers - first_total) / first_total * 100 if first_total else 0.0
        return {
            "totalFollowers": total_followers,
            "totalEngagement": sum(m.engagement for m in platforms),
            "totalImpressions": sum(m.impressions for m in platforms),
            "avgEngagementRate": (
                sum(m.engagement_rate for m in platforms) / len(platforms) if platforms else 0.0
            ),
            "followerGrowthPercent": round(growth, 2),
            "platformBreakdown": [
                {"platform": m.platform, "followers": m.followers, "engagementRate": m.engagement_rate}
                for m in platforms
            ],
        }

    def generate_calendar_data(self, month: int, year: int) -> List[Dict[str, Any]]:
        """Scheduled posts for one month. ``month`` is 1-12. Never memoized."""
        if not 1 <= month <= 12:
            raise ValueError(f"month must be 1-12, got {month}")
        days_in_month = calendar.monthrange(year, month)[1]
        platforms = self.platforms or ["instagram"]
        entries = []
        for day in sorted(self._rng.sample(range(1, days_in_month + 1), k=min(12, days_in_month))):
            scheduled = datetime(
                year, month, day, self._rng.choice(BEST_POSTING_HOURS), tzinfo=timezone.utc
            )
            entries.append(
                {
                    "id": self._id(),
                    "date": scheduled.isoformat(),
                    "title": self._rng.choice(CALENDAR_TITLES),
                    "platform": self._rng.choice(platforms),
                    "status": "published" if scheduled < self.now else "scheduled",
                }
            )
        return entries

    # ── Whole dataset ──

    def get_all_mock_data(self) -> MockDataset:
        if self._dataset is None:
            platforms = [self.generate_platform_metrics(p) for p in self.platforms]
            self._dataset = MockDataset(
                user=self.generate_user(),
                platforms=platforms,
                social_profiles=[self.generate_social_profile(m) for m in platforms],
                content_suggestions=[
                    self.generate_content_suggestion(t) for t in SUGGESTION_TEMPLATES
                ],
                dashboard=self.generate_dashboard_data(platforms),
                calendar_data=self.generate_calendar_data(self.now.month, self.now.year),
            )
            logger.info(
                f"Generated mock dataset: {len(platforms)} platforms, "
                f"{self.history_days} days of history, {len(SUGGESTION_TEMPLATES)} suggestions"
            )
        return self._dataset
