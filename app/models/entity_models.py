"""Pulseboard — Application-Level Entity Shapes.

Every tier (remote API, direct database, local cache) returns these same
models. JSON uses camelCase field names.
"""

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class Platform(str, Enum):
    """Social networks a profile can belong to."""

    INSTAGRAM = "instagram"
    TWITTER = "twitter"
    FACEBOOK = "facebook"
    LINKEDIN = "linkedin"
    TIKTOK = "tiktok"
    YOUTUBE = "youtube"


class ContentPlatform(str, Enum):
    """Suggestion targets: any profile platform, or all of them."""

    INSTAGRAM = "instagram"
    TWITTER = "twitter"
    FACEBOOK = "facebook"
    LINKEDIN = "linkedin"
    TIKTOK = "tiktok"
    YOUTUBE = "youtube"
    ALL = "all"


class MediaType(str, Enum):
    TEXT = "text"
    IMAGE = "image"
    VIDEO = "video"
    CAROUSEL = "carousel"
    LINK = "link"


class SuggestionStatus(str, Enum):
    """Content suggestion lifecycle. ``published`` and ``rejected`` are terminal."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    PUBLISHED = "published"


class Role(str, Enum):
    USER = "user"
    ADMIN = "admin"


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
    )


# ── User ──


class LinkedAccount(CamelModel):
    """External provider account attached to a user."""

    id: Optional[str] = None
    provider: str
    provider_account_id: str
    access_token: Optional[str] = Field(default=None, alias="access_token")
    refresh_token: Optional[str] = Field(default=None, alias="refresh_token")
    expires_at: Optional[int] = Field(default=None, alias="expires_at")


class User(CamelModel):
    id: str
    name: str
    email: str
    image: Optional[str] = None
    email_verified: Optional[datetime] = None
    role: Role = Role.USER
    accounts: List[LinkedAccount] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# ── Social Profile ──


class SocialProfile(CamelModel):
    id: Optional[str] = None
    user_id: Optional[str] = None
    platform: Platform
    username: str
    profile_url: str = ""
    connected: bool = True
    followers: int = 0
    last_updated: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# ── Social Metrics ──


class DailyStat(CamelModel):
    """One day of a metrics trend line."""

    date: datetime
    followers: int = 0
    engagement: int = 0
    impressions: int = 0
    reach: int = 0


class SocialMetrics(CamelModel):
    id: Optional[str] = None
    user_id: Optional[str] = None
    profile_id: Optional[str] = None
    platform: Platform
    date: Optional[datetime] = None
    followers: int = 0
    following: int = 0
    posts: int = 0
    likes: int = 0
    comments: int = 0
    shares: int = 0
    impressions: int = 0
    reach: int = 0
    engagement: int = 0
    engagement_rate: float = 0.0
    daily_stats: List[DailyStat] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class FollowerGrowthPoint(CamelModel):
    date: datetime
    followers: int
    platform: Platform


# ── Content Suggestion ──


class EngagementOutcome(CamelModel):
    """How a published suggestion performed."""

    likes: int = 0
    comments: int = 0
    shares: int = 0
    impressions: int = 0


class ContentSuggestion(CamelModel):
    id: Optional[str] = None
    user_id: Optional[str] = None
    platform: ContentPlatform = ContentPlatform.ALL
    title: str
    content: str
    media_type: MediaType = MediaType.TEXT
    suggested_tags: List[str] = []
    tags: List[str] = []
    best_time_to_post: Optional[datetime] = None
    ai_generated_score: Optional[float] = None
    ai_generated: bool = False
    image_prompt: Optional[str] = None
    status: SuggestionStatus = SuggestionStatus.PENDING
    scheduled_date: Optional[datetime] = None
    metadata: Dict[str, str] = {}
    engagement: EngagementOutcome = EngagementOutcome()
    published_at: Optional[datetime] = None
    published_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class DeleteResult(CamelModel):
    success: bool
    message: str
