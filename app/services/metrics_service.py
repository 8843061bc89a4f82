"""Pulseboard — Social Metrics Service.

One aggregate record per (user, platform). Each refresh upserts the counters
and appends to the daily series; the series is never rewritten.
"""

from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from app.core.errors import NotFoundError, ValidationError
from app.core.logging import get_logger
from app.database import Database
from app.models.documents import SocialMetricsDocument, utcnow
from app.models.entity_models import FollowerGrowthPoint, Platform, SocialMetrics
from app.services.db_service import DatabaseService
from app.services.serializers import (
    as_utc,
    daily_stat_to_storage,
    enum_value,
    metrics_from_document,
    metrics_to_document_fields,
)

logger = get_logger("services.metrics")

VALID_TIME_RANGES = (7, 30, 90, 365)
TIME_RANGE_DAYS = {"7d": 7, "30d": 30, "90d": 90, "1y": 365}


def _stat_date(stat: Dict[str, Any]) -> datetime:
    return as_utc(stat["date"])


def _ordered_series(stats: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Sort a fresh series by date; duplicate days are rejected."""
    ordered = sorted(stats, key=_stat_date)
    for prev, cur in zip(ordered, ordered[1:]):
        if _stat_date(prev) == _stat_date(cur):
            raise ValidationError(f"Duplicate daily snapshot for {cur['date']}")
    return ordered


def _append_newer(existing: List[Dict[str, Any]], incoming: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Append only the snapshots dated after the current tail."""
    series = list(existing)
    skipped = 0
    for stat in sorted(incoming, key=_stat_date):
        if series and _stat_date(stat) <= _stat_date(series[-1]):
            skipped += 1
            continue
        series.append(stat)
    if skipped:
        logger.debug(f"Skipped {skipped} daily snapshots not newer than the series tail")
    return series


def parse_time_range(value: Union[int, str, None], default: int = 30) -> int:
    """Accept 7/30/90/365 or the ``7d|30d|90d|1y`` shorthand."""
    if value is None or value == "":
        return default
    if isinstance(value, str):
        key = value.strip().lower()
        if key in TIME_RANGE_DAYS:
            return TIME_RANGE_DAYS[key]
        if not key.isdigit():
            raise ValidationError(f"Unsupported time range {value!r}")
        value = int(key)
    if value not in VALID_TIME_RANGES:
        raise ValidationError(f"time_range must be one of {VALID_TIME_RANGES}, got {value}")
    return value


def growth_window(time_range: int, now: Optional[datetime] = None) -> Tuple[datetime, datetime]:
    """``[now - time_range days, now]``, both ends inclusive."""
    end = as_utc(now) or utcnow()
    return end - timedelta(days=parse_time_range(time_range)), end


def follower_growth_points(
    metrics: Iterable[SocialMetrics], start: datetime, end: datetime
) -> List[FollowerGrowthPoint]:
    points = [
        FollowerGrowthPoint(date=stat.date, followers=stat.followers, platform=m.platform)
        for m in metrics
        for stat in m.daily_stats
        if start <= as_utc(stat.date) <= end
    ]
    points.sort(key=lambda p: (p.date, p.platform))
    return points


def trim_daily_stats(metrics: SocialMetrics, start: datetime, end: datetime) -> SocialMetrics:
    """Copy of ``metrics`` keeping only the daily snapshots inside the window."""
    kept = [s for s in metrics.daily_stats if start <= as_utc(s.date) <= end]
    return metrics.model_copy(update={"daily_stats": kept})


class SocialMetricsService(DatabaseService[SocialMetricsDocument]):
    def __init__(self, database: Database):
        super().__init__(SocialMetricsDocument, "SocialMetrics", database)

    async def get_metrics_by_user_id(
        self,
        user_id: str,
        platform: Optional[str] = None,
        profile_id: Optional[str] = None,
        start_date: Optional[Any] = None,
        end_date: Optional[Any] = None,
    ) -> List[SocialMetrics]:
        """Metrics for a user, filtered by platform, profile and snapshot date."""
        query: Dict[str, Any] = {"user_id": user_id}
        if platform:
            query["platform"] = enum_value(Platform, platform, "platform")
        if profile_id:
            query["profile_id"] = profile_id
        date_range = self._date_range(start_date, end_date)
        if date_range:
            query["date"] = date_range

        docs = await self.find(query, order_by="platform")
        return [metrics_from_document(d) for d in docs]

    async def get_metrics_by_profile_id(
        self,
        profile_id: str,
        start_date: Optional[Any] = None,
        end_date: Optional[Any] = None,
    ) -> List[SocialMetrics]:
        query: Dict[str, Any] = {"profile_id": profile_id}
        date_range = self._date_range(start_date, end_date)
        if date_range:
            query["date"] = date_range
        docs = await self.find(query, order_by="date")
        return [metrics_from_document(d) for d in docs]

    async def get_user_platform_metrics(self, user_id: str, platform: str) -> Optional[SocialMetrics]:
        doc = await self.find_one(
            {"user_id": user_id, "platform": enum_value(Platform, platform, "platform")}
        )
        return metrics_from_document(doc) if doc else None

    async def add_metrics(self, data: Dict[str, Any]) -> SocialMetrics:
        """Upsert the aggregate for (user_id, platform).

        Counters are replaced; ``daily_stats`` entries newer than the stored
        tail are appended.
        """
        if not data.get("user_id") or not data.get("platform"):
            raise ValidationError("Metrics require user_id and platform")

        fields = metrics_to_document_fields(data)
        incoming = fields.pop("daily_stats", [])
        existing = await self.find_one({"user_id": fields["user_id"], "platform": fields["platform"]})

        if existing is None:
            fields.setdefault("date", utcnow())
            fields["daily_stats"] = _ordered_series(incoming)
            doc = await self.create(fields)
            logger.info(
                f"Created {doc.platform} metrics with {len(doc.daily_stats)} daily snapshots",
                extra={"entity": self.model_name, "entity_id": doc.id},
            )
        else:
            fields["daily_stats"] = _append_newer(existing.daily_stats or [], incoming)
            fields.setdefault("date", utcnow())
            doc = await self.update_by_id(existing.id, fields)
            if doc is None:
                raise NotFoundError(self.model_name, existing.id)
        return metrics_from_document(doc)

    async def update_metrics(self, metrics_id: str, data: Dict[str, Any]) -> Optional[SocialMetrics]:
        if "daily_stats" in data:
            raise ValidationError("Daily snapshots are append-only; use append_daily_snapshot")
        if "user_id" in data or "platform" in data:
            raise ValidationError("Metrics cannot change owner or platform")
        doc = await self.update_by_id(metrics_id, metrics_to_document_fields(data))
        return metrics_from_document(doc) if doc else None

    async def append_daily_snapshot(self, metrics_id: str, stat: Any) -> SocialMetrics:
        """Append one day to the series; it must be later than every stored day."""
        doc = await self.find_by_id(metrics_id)
        if doc is None:
            raise NotFoundError(self.model_name, metrics_id)

        entry = daily_stat_to_storage(stat)
        series = list(doc.daily_stats or [])
        if series and _stat_date(entry) <= _stat_date(series[-1]):
            raise ValidationError(
                f"Snapshot {entry['date']} is not after the latest one ({series[-1]['date']})"
            )
        series.append(entry)
        updated = await self.update_by_id(
            metrics_id,
            {"daily_stats": series, "followers": entry["followers"], "date": _stat_date(entry)},
        )
        if updated is None:
            raise NotFoundError(self.model_name, metrics_id)
        return metrics_from_document(updated)

    async def get_follower_growth(
        self,
        user_id: str,
        time_range: int = 30,
        platform: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> List[FollowerGrowthPoint]:
        """Follower counts for snapshots dated within ``[now - time_range days, now]``."""
        start, end = growth_window(time_range, now)

        query: Dict[str, Any] = {"user_id": user_id}
        if platform:
            query["platform"] = enum_value(Platform, platform, "platform")
        docs = await self.find(query)
        return follower_growth_points((metrics_from_document(d) for d in docs), start, end)

    @staticmethod
    def _date_range(start_date: Optional[Any], end_date: Optional[Any]) -> Dict[str, datetime]:
        date_range: Dict[str, datetime] = {}
        if start_date:
            date_range["$gte"] = as_utc(start_date)
        if end_date:
            date_range["$lte"] = as_utc(end_date)
        return date_range
