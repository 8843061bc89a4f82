"""Pulseboard — Storage Documents.

Table rows as the storage backend sees them. Services never hand these out;
``app.services.serializers`` converts them to the public entity shapes.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import JSON, Column, DateTime
from sqlmodel import SQLModel, Field, UniqueConstraint


def new_id() -> str:
    return uuid.uuid4().hex


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UserDocument(SQLModel, table=True):
    """Registered user. ``password`` holds a hash and never leaves the service."""

    __tablename__ = "users"

    id: str = Field(default_factory=new_id, primary_key=True)
    name: str
    email: str = Field(index=True, unique=True, description="Lower-cased")
    password: Optional[str] = Field(default=None)
    image: Optional[str] = None
    email_verified: Optional[datetime] = Field(
        default=None, sa_type=DateTime(timezone=True)
    )
    role: str = Field(default="user", description="user | admin")
    accounts: List[Dict[str, Any]] = Field(
        default_factory=list, sa_column=Column(JSON, nullable=False)
    )
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))


class SocialProfileDocument(SQLModel, table=True):
    """A linked social account.

    Unique constraint on (user_id, platform): one profile per platform per user.
    """

    __tablename__ = "social_profiles"
    __table_args__ = (
        UniqueConstraint("user_id", "platform", name="uq_profile_user_platform"),
    )

    id: str = Field(default_factory=new_id, primary_key=True)
    user_id: str = Field(index=True)
    platform: str = Field(index=True)
    username: str
    profile_url: str = ""
    is_connected: bool = False
    followers: int = 0
    following: int = 0
    last_updated: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    token_expiry: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))


class SocialMetricsDocument(SQLModel, table=True):
    """Aggregate metrics for one (user, platform) plus its daily history.

    ``daily_stats`` is append-only, ordered by date, stored as ISO strings.
    ``profile_id`` is a loose reference and may outlive the profile.
    """

    __tablename__ = "social_metrics"
    __table_args__ = (
        UniqueConstraint("user_id", "platform", name="uq_metrics_user_platform"),
    )

    id: str = Field(default_factory=new_id, primary_key=True)
    user_id: str = Field(index=True)
    profile_id: Optional[str] = Field(default=None, index=True)
    platform: str = Field(index=True)
    date: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
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
    demographics: Dict[str, Any] = Field(
        default_factory=dict, sa_column=Column(JSON, nullable=False)
    )
    daily_stats: List[Dict[str, Any]] = Field(
        default_factory=list, sa_column=Column(JSON, nullable=False)
    )
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))


class ContentSuggestionDocument(SQLModel, table=True):
    """A content idea, AI-generated or user-authored."""

    __tablename__ = "content_suggestions"

    id: str = Field(default_factory=new_id, primary_key=True)
    user_id: str = Field(index=True)
    title: str
    content: str
    platform: str = Field(default="all", index=True)
    media_type: str = "text"
    status: str = Field(default="pending", index=True)
    suggested_tags: List[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    tags: List[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    best_time_to_post: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))
    ai_generated_score: Optional[float] = None
    ai_generated: bool = False
    image_prompt: Optional[str] = None
    scheduled_date: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))
    # "metadata" is reserved on SQLModel classes
    extra: Dict[str, str] = Field(
        default_factory=dict, sa_column=Column("metadata", JSON, nullable=False)
    )
    engagement: Dict[str, int] = Field(
        default_factory=dict, sa_column=Column(JSON, nullable=False)
    )
    published_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))
    published_url: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
