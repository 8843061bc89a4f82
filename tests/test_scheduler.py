import json
import logging
import random
from datetime import datetime, timezone

from app.core.logging import JSONFormatter
from app.scheduler.jobs import refresh_metrics
from app.services.metrics_service import SocialMetricsService
from app.services.profile_service import SocialProfileService

NOW = datetime(2026, 5, 2, 3, 0, tzinfo=timezone.utc)


def _profile(platform, connected=True):
    return {
        "user_id": "u1",
        "platform": platform,
        "username": platform,
        "profile_url": f"https://{platform}.com/u1",
        "followers": 1000,
        "connected": connected,
    }


def test_refresh_appends_one_snapshot_per_day(run_db):
    async def scenario(db):
        profiles = SocialProfileService(db)
        await profiles.add_profile(_profile("twitter"))
        await profiles.add_profile(_profile("facebook", connected=False))

        first = await refresh_metrics(db, now=NOW, rng=random.Random(1))
        second = await refresh_metrics(db, now=NOW, rng=random.Random(1))
        metrics = await SocialMetricsService(db).get_metrics_by_user_id("u1")
        twitter = await profiles.get_user_platform_profile("u1", "twitter")
        return first, second, metrics, twitter

    first, second, metrics, twitter = run_db(scenario)

    assert (first, second) == (1, 0)
    assert [m.platform for m in metrics] == ["twitter"]
    stats = metrics[0].daily_stats
    assert len(stats) == 1
    assert stats[0].followers >= 1000
    assert twitter.followers == stats[0].followers


def test_json_log_lines_carry_extra_fields():
    record = logging.LogRecord("pulseboard.test", logging.WARNING, __file__, 1, "tier failed", None, None)
    record.operation = "get_metrics"
    record.tier = "remote"

    line = json.loads(JSONFormatter().format(record))

    assert line["message"] == "tier failed"
    assert line["level"] == "WARNING"
    assert (line["operation"], line["tier"]) == ("get_metrics", "remote")
