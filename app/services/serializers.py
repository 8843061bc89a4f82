"""Pulseboard — Storage ↔ Entity Serializers.

One ``*_from_document`` / ``*_to_document_fields`` pair per entity. Services
call these at the storage boundary and otherwise work on entity shapes only.
"""

from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, Optional, Type

from app.core.errors import ValidationError
from app.models.documents import (
    ContentSuggestionDocument,
    SocialMetricsDocument,
    SocialProfileDocument,
    UserDocument,
    new_id,
)
from app.models.entity_models import (
    ContentPlatform,
    ContentSuggestion,
    DailyStat,
    EngagementOutcome,
    LinkedAccount,
    MediaType,
    Platform,
    Role,
    SocialMetrics,
    SocialProfile,
    SuggestionStatus,
    User,
)

SCORE_MIN = 0.0
SCORE_MAX = 100.0

# Ignored on input: assigned by storage
READ_ONLY_FIELDS = {"id", "created_at", "updated_at"}


def as_utc(value: Any) -> Optional[datetime]:
    """Coerce a datetime, date or ISO string to an aware UTC datetime."""
    if value is None or value == "":
        return None
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError as e:
            raise ValidationError(f"Invalid date: {value!r}") from e
    elif isinstance(value, date) and not isinstance(value, datetime):
        value = datetime(value.year, value.month, value.day)
    if not isinstance(value, datetime):
        raise ValidationError(f"Invalid date: {value!r}")
    if value.tzinfo is None:
        # SQLite drops tzinfo; everything is stored in UTC
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def enum_value(enum_cls: Type[Enum], value: Any, label: str) -> str:
    if isinstance(value, enum_cls):
        return value.value
    try:
        return enum_cls(str(value).strip().lower()).value
    except ValueError as e:
        allowed = ", ".join(m.value for m in enum_cls)
        raise ValidationError(f"Unsupported {label} {value!r} (expected one of: {allowed})") from e


def validate_score(value: Any) -> Optional[float]:
    """AI quality scores must lie in [0, 100]."""
    if value is None:
        return None
    try:
        score = float(value)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"aiGeneratedScore must be a number, got {value!r}") from e
    if not SCORE_MIN <= score <= SCORE_MAX:
        raise ValidationError(
            f"aiGeneratedScore must be between {SCORE_MIN:g} and {SCORE_MAX:g}, got {score:g}"
        )
    return score


def _check_fields(data: Dict[str, Any], allowed: Iterable[str], entity: str) -> Dict[str, Any]:
    allowed = set(allowed)
    clean: Dict[str, Any] = {}
    for key, value in data.items():
        if key in READ_ONLY_FIELDS:
            continue
        if key not in allowed:
            raise ValidationError(f"Unknown {entity} field: {key}")
        clean[key] = value
    return clean


# ── Social Profile ──

PROFILE_FIELDS = {
    "user_id",
    "platform",
    "username",
    "profile_url",
    "connected",
    "followers",
    "following",
    "last_updated",
    "access_token",
    "refresh_token",
    "token_expiry",
}


def profile_from_document(doc: SocialProfileDocument) -> SocialProfile:
    return SocialProfile(
        id=doc.id,
        user_id=doc.user_id,
        platform=doc.platform,
        username=doc.username,
        profile_url=doc.profile_url or "",
        connected=doc.is_connected,
        followers=doc.followers or 0,
        last_updated=as_utc(doc.last_updated),
        created_at=as_utc(doc.created_at),
        updated_at=as_utc(doc.updated_at),
    )


def profile_to_document_fields(data: Dict[str, Any]) -> Dict[str, Any]:
    fields: Dict[str, Any] = {}
    for key, value in _check_fields(data, PROFILE_FIELDS, "social profile").items():
        if key == "connected":
            fields["is_connected"] = bool(value)
        elif key == "platform":
            fields["platform"] = enum_value(Platform, value, "platform")
        elif key in ("last_updated", "token_expiry"):
            fields[key] = as_utc(value)
        elif key in ("followers", "following"):
            fields[key] = int(value or 0)
        else:
            fields[key] = value
    return fields


# ── Social Metrics ──

METRIC_COUNTERS = (
    "followers",
    "following",
    "posts",
    "likes",
    "comments",
    "shares",
    "impressions",
    "reach",
    "engagement",
)

METRICS_FIELDS = {
    "user_id",
    "profile_id",
    "platform",
    "date",
    "engagement_rate",
    "demographics",
    "daily_stats",
    *METRIC_COUNTERS,
}


def daily_stat_to_storage(stat: Any) -> Dict[str, Any]:
    if isinstance(stat, DailyStat):
        stat = stat.model_dump()
    return {
        "date": as_utc(stat["date"]).isoformat(),
        "followers": int(stat.get("followers", 0)),
        "engagement": int(stat.get("engagement", 0)),
        "impressions": int(stat.get("impressions", 0)),
        "reach": int(stat.get("reach", 0)),
    }


def daily_stat_from_storage(raw: Dict[str, Any]) -> DailyStat:
    return DailyStat(**{**raw, "date": as_utc(raw["date"])})


def metrics_from_document(doc: SocialMetricsDocument) -> SocialMetrics:
    return SocialMetrics(
        id=doc.id,
        user_id=doc.user_id,
        profile_id=doc.profile_id,
        platform=doc.platform,
        date=as_utc(doc.date),
        **{name: getattr(doc, name) or 0 for name in METRIC_COUNTERS},
        engagement_rate=doc.engagement_rate or 0.0,
        daily_stats=[daily_stat_from_storage(s) for s in doc.daily_stats or []],
        created_at=as_utc(doc.created_at),
        updated_at=as_utc(doc.updated_at),
    )


def metrics_to_document_fields(data: Dict[str, Any]) -> Dict[str, Any]:
    fields: Dict[str, Any] = {}
    for key, value in _check_fields(data, METRICS_FIELDS, "social metrics").items():
        if key == "platform":
            fields["platform"] = enum_value(Platform, value, "platform")
        elif key == "date":
            fields["date"] = as_utc(value)
        elif key in METRIC_COUNTERS:
            fields[key] = int(value or 0)
        elif key == "engagement_rate":
            fields[key] = float(value or 0.0)
        elif key == "daily_stats":
            fields[key] = [daily_stat_to_storage(s) for s in value or []]
        else:
            fields[key] = value
    return fields


# ── Content Suggestion ──

SUGGESTION_FIELDS = {
    "user_id",
    "title",
    "content",
    "platform",
    "media_type",
    "status",
    "suggested_tags",
    "tags",
    "best_time_to_post",
    "ai_generated_score",
    "ai_generated",
    "image_prompt",
    "scheduled_date",
    "metadata",
    "engagement",
    "published_at",
    "published_url",
}


def suggestion_from_document(doc: ContentSuggestionDocument) -> ContentSuggestion:
    return ContentSuggestion(
        id=doc.id,
        user_id=doc.user_id,
        platform=doc.platform,
        title=doc.title,
        content=doc.content,
        media_type=doc.media_type,
        suggested_tags=list(doc.suggested_tags or []),
        tags=list(doc.tags or []),
        best_time_to_post=as_utc(doc.best_time_to_post),
        ai_generated_score=doc.ai_generated_score,
        ai_generated=doc.ai_generated,
        image_prompt=doc.image_prompt,
        status=doc.status,
        scheduled_date=as_utc(doc.scheduled_date),
        metadata=dict(doc.extra or {}),
        engagement=EngagementOutcome(**(doc.engagement or {})),
        published_at=as_utc(doc.published_at),
        published_url=doc.published_url,
        created_at=as_utc(doc.created_at),
        updated_at=as_utc(doc.updated_at),
    )


def suggestion_to_document_fields(data: Dict[str, Any]) -> Dict[str, Any]:
    fields: Dict[str, Any] = {}
    for key, value in _check_fields(data, SUGGESTION_FIELDS, "content suggestion").items():
        if key == "platform":
            fields[key] = enum_value(ContentPlatform, value, "platform")
        elif key == "media_type":
            fields[key] = enum_value(MediaType, value, "media type")
        elif key == "status":
            fields[key] = enum_value(SuggestionStatus, value, "status")
        elif key == "suggested_tags":
            # unordered set: de-duplicate, store sorted
            fields[key] = sorted({str(t).strip() for t in value or [] if str(t).strip()})
        elif key == "tags":
            fields[key] = [str(t) for t in value or []]
        elif key in ("best_time_to_post", "scheduled_date", "published_at"):
            fields[key] = as_utc(value)
        elif key == "ai_generated_score":
            fields[key] = validate_score(value)
        elif key == "metadata":
            fields["extra"] = {str(k): str(v) for k, v in (value or {}).items()}
        elif key == "engagement":
            fields[key] = EngagementOutcome.model_validate(value or {}).model_dump()
        else:
            fields[key] = value
    return fields


# ── User ──

USER_FIELDS = {"name", "email", "password", "image", "email_verified", "role"}


def user_from_document(doc: UserDocument) -> User:
    """Public user shape. The password hash is never copied."""
    return User(
        id=doc.id,
        name=doc.name,
        email=doc.email,
        image=doc.image,
        email_verified=as_utc(doc.email_verified),
        role=doc.role,
        accounts=[LinkedAccount.model_validate(a) for a in doc.accounts or []],
        created_at=as_utc(doc.created_at),
        updated_at=as_utc(doc.updated_at),
    )


def user_to_document_fields(data: Dict[str, Any]) -> Dict[str, Any]:
    fields: Dict[str, Any] = {}
    for key, value in _check_fields(data, USER_FIELDS, "user").items():
        if key == "email":
            fields[key] = normalize_email(value)
        elif key == "role":
            fields[key] = enum_value(Role, value, "role")
        elif key == "email_verified":
            fields[key] = as_utc(value)
        else:
            fields[key] = value
    return fields


def normalize_email(email: Any) -> str:
    email = str(email or "").strip().lower()
    if "@" not in email:
        raise ValidationError(f"Invalid email address: {email!r}")
    return email


def account_to_storage(account: Dict[str, Any]) -> Dict[str, Any]:
    parsed = LinkedAccount.model_validate(account)
    stored = parsed.model_dump()
    stored["id"] = stored.get("id") or new_id()
    return stored
