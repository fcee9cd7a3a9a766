# app/admin/schemas.py
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

Bucket = Literal["hour", "day"]


class _Camel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AdminStatsOut(_Camel):
    videos: int
    comments: int
    trending: int
    trending_categories: int


class AnalyticsTotals(_Camel):
    total_views: int
    visitors: int
    active_now: int
    views_in_range: int
    watch_seconds_in_range: int
    today_views: int
    weekly_views: int
    monthly_views: int
    today_watch_seconds: int
    weekly_watch_seconds: int
    monthly_watch_seconds: int


class SeriesPoint(BaseModel):
    bucket: str
    views: int
    visitors: int


class AnalyticsOut(_Camel):
    # {"from": ..., "to": ..., "bucket": ...}
    range: dict
    totals: AnalyticsTotals
    series: list[SeriesPoint]
    server_time: datetime
