# app/admin/service.py
from datetime import datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from app.admin.live import ACTIVE_WINDOW
from app.analytics import repository as analytics_repo
from app.catalog import repository as catalog_repo
from app.core.clock import as_utc, utcnow
from app.core.errors import InvalidInput
from app.trending.repository import list_categories

DEFAULT_RANGE = timedelta(days=7)


async def admin_stats(db: AsyncSession) -> dict:
    counts = await catalog_repo.catalog_counts(db)
    counts["trending_categories"] = len(await list_categories(db))
    return counts


async def windowed_analytics(
    db: AsyncSession,
    *,
    from_: datetime | None,
    to: datetime | None,
    bucket: str,
    now: datetime | None = None,
) -> dict:
    """
    Analytics históricas para los gráficos del dashboard, bajo demanda
    (no van por el canal live). Por defecto: últimos 7 días, buckets diarios.
    """
    now = now or utcnow()
    to = as_utc(to) if to else now
    from_ = as_utc(from_) if from_ else to - DEFAULT_RANGE
    if from_ > to:
        raise InvalidInput("invalid_query")

    day = now - timedelta(days=1)
    week = now - timedelta(days=7)
    month = now - timedelta(days=30)

    totals = {
        "total_views": await catalog_repo.total_views(db),
        "visitors": await analytics_repo.count_distinct_visitors(db, from_, to),
        "active_now": await analytics_repo.count_active_sessions(db, now - ACTIVE_WINDOW),
        "views_in_range": await analytics_repo.count_events(db, "view", from_, to),
        "watch_seconds_in_range": await analytics_repo.sum_watch_seconds(db, from_, to),
        "today_views": await analytics_repo.count_events(db, "view", day),
        "weekly_views": await analytics_repo.count_events(db, "view", week),
        "monthly_views": await analytics_repo.count_events(db, "view", month),
        "today_watch_seconds": await analytics_repo.sum_watch_seconds(db, day),
        "weekly_watch_seconds": await analytics_repo.sum_watch_seconds(db, week),
        "monthly_watch_seconds": await analytics_repo.sum_watch_seconds(db, month),
    }
    return {
        "range": {"from": from_.isoformat(), "to": to.isoformat(), "bucket": bucket},
        "totals": totals,
        "series": await analytics_repo.event_series(db, from_, to, bucket),
        "server_time": now,
    }
