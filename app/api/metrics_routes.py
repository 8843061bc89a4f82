"""Pulseboard — Metrics API Routes."""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from app.api.deps import get_current_user_id, get_metrics_service, to_http_error
from app.core.errors import PulseboardError
from app.core.logging import get_logger
from app.models.entity_models import CamelModel, DailyStat, FollowerGrowthPoint, SocialMetrics
from app.services.metrics_service import (
    SocialMetricsService,
    growth_window,
    parse_time_range,
    trim_daily_stats,
)

logger = get_logger("api.metrics")

router = APIRouter(prefix="/api/metrics", tags=["Metrics"])


class MetricsUpsert(CamelModel):
    """Counters for one platform; ``dailyStats`` newer than the stored tail are appended."""

    platform: str
    profile_id: Optional[str] = None
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


@router.get("", response_model=List[SocialMetrics])
async def list_metrics(
    platform: Optional[str] = Query(default=None),
    time_range: Optional[str] = Query(default=None, alias="timeRange", description="7d | 30d | 90d | 1y"),
    user_id: str = Depends(get_current_user_id),
    service: SocialMetricsService = Depends(get_metrics_service),
):
    """Current user's metrics. ``timeRange`` trims each daily series."""
    try:
        metrics = await service.get_metrics_by_user_id(user_id, platform)
        if not time_range:
            return metrics
        start, end = growth_window(parse_time_range(time_range))
        return [trim_daily_stats(m, start, end) for m in metrics]
    except PulseboardError as e:
        raise to_http_error(e) from e


@router.post("", response_model=SocialMetrics)
async def upsert_metrics(
    body: MetricsUpsert,
    user_id: str = Depends(get_current_user_id),
    service: SocialMetricsService = Depends(get_metrics_service),
):
    try:
        fields = body.model_dump(exclude_unset=True)
        return await service.add_metrics({**fields, "user_id": user_id, "platform": body.platform})
    except PulseboardError as e:
        raise to_http_error(e) from e


@router.get("/follower-growth", response_model=List[FollowerGrowthPoint])
async def follower_growth(
    days: int = Query(default=30, description="7, 30, 90 or 365"),
    platform: Optional[str] = Query(default=None),
    user_id: str = Depends(get_current_user_id),
    service: SocialMetricsService = Depends(get_metrics_service),
):
    try:
        return await service.get_follower_growth(user_id, days, platform)
    except PulseboardError as e:
        raise to_http_error(e) from e
