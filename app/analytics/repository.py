# app/analytics/repository.py
from datetime import datetime, timezone

from sqlalchemy import select, func, case, distinct, literal_column
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from app.analytics.models import AnalyticsSession, AnalyticsEvent
from app.core.clock import as_utc
from app.db.session import dialect_name


def dialect_insert(db: AsyncSession, table):
    """INSERT con soporte de ON CONFLICT según el motor."""
    if dialect_name(db) == "sqlite":
        return sqlite_insert(table)
    return pg_insert(table)


# -------------------------
# SESIONES
# -------------------------
async def upsert_session(
    db: AsyncSession,
    *,
    session_id: str,
    user_id: str | None,
    user_agent: str,
    ip_hash: str,
    now: datetime,
) -> None:
    """
    Primera vez -> insert. Después: avanza last_seen_at, pisa user_agent/ip_hash
    y el user_id sólo se fija si aún no lo tenía (nunca vuelve a null).
    """
    stmt = dialect_insert(db, AnalyticsSession).values(
        session_id=session_id,
        user_id=user_id,
        user_agent=user_agent,
        ip_hash=ip_hash,
        first_seen_at=now,
        last_seen_at=now,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=[AnalyticsSession.session_id],
        set_={
            "last_seen_at": stmt.excluded.last_seen_at,
            "user_agent": stmt.excluded.user_agent,
            "ip_hash": stmt.excluded.ip_hash,
            "user_id": func.coalesce(AnalyticsSession.user_id, stmt.excluded.user_id),
        },
    )
    await db.execute(stmt)


# -------------------------
# EVENTOS
# -------------------------
async def insert_event(
    db: AsyncSession,
    *,
    session_id: str,
    event_type: str,
    path: str | None,
    video_id: str | None,
    watch_seconds: int | None,
    now: datetime,
) -> AnalyticsEvent:
    event = AnalyticsEvent(
        session_id=session_id,
        event_type=event_type,
        path=path,
        video_id=video_id,
        watch_seconds=watch_seconds,
        created_at=now,
    )
    db.add(event)
    await db.flush()
    return event


# -------------------------
# 📊 AGREGADOS
# -------------------------
async def count_active_sessions(db: AsyncSession, since: datetime) -> int:
    q = select(func.count()).select_from(AnalyticsSession).where(
        AnalyticsSession.last_seen_at >= since
    )
    res = await db.execute(q)
    return int(res.scalar() or 0)


async def count_distinct_visitors(
    db: AsyncSession, since: datetime, until: datetime | None = None
) -> int:
    q = select(func.count(distinct(AnalyticsSession.ip_hash))).where(
        AnalyticsSession.last_seen_at >= since
    )
    if until is not None:
        q = q.where(AnalyticsSession.last_seen_at <= until)
    res = await db.execute(q)
    return int(res.scalar() or 0)


async def count_events(
    db: AsyncSession, event_type: str, since: datetime, until: datetime | None = None
) -> int:
    q = select(func.count()).select_from(AnalyticsEvent).where(
        AnalyticsEvent.event_type == event_type,
        AnalyticsEvent.created_at >= since,
    )
    if until is not None:
        q = q.where(AnalyticsEvent.created_at <= until)
    res = await db.execute(q)
    return int(res.scalar() or 0)


async def sum_watch_seconds(
    db: AsyncSession, since: datetime, until: datetime | None = None
) -> int:
    q = select(func.coalesce(func.sum(AnalyticsEvent.watch_seconds), 0)).where(
        AnalyticsEvent.event_type == "watch",
        AnalyticsEvent.created_at >= since,
    )
    if until is not None:
        q = q.where(AnalyticsEvent.created_at <= until)
    res = await db.execute(q)
    return int(res.scalar() or 0)


# -------------------------
# 📈 SERIE POR BUCKET (hour | day)
# -------------------------
_SQLITE_BUCKET_FORMATS = {
    "hour": "%Y-%m-%d %H:00:00",
    "day": "%Y-%m-%d 00:00:00",
}


def _bucket_expr(db: AsyncSession, bucket: str):
    # literal (no bind param): el GROUP BY debe repetir la MISMA expresión
    if dialect_name(db) == "sqlite":
        fmt = literal_column(f"'{_SQLITE_BUCKET_FORMATS[bucket]}'")
        return func.strftime(fmt, AnalyticsEvent.created_at)
    return func.date_trunc(literal_column(f"'{bucket}'"), AnalyticsEvent.created_at)


def _bucket_key(value) -> str:
    if isinstance(value, str):
        value = datetime.fromisoformat(value).replace(tzinfo=timezone.utc)
    return as_utc(value).isoformat()


async def event_series(
    db: AsyncSession, since: datetime, until: datetime, bucket: str
) -> list[dict]:
    b = _bucket_expr(db, bucket).label("bucket")
    q = (
        select(
            b,
            func.sum(case((AnalyticsEvent.event_type == "view", 1), else_=0)).label("views"),
            func.count(distinct(AnalyticsSession.ip_hash)).label("visitors"),
        )
        .join(AnalyticsSession, AnalyticsSession.session_id == AnalyticsEvent.session_id)
        .where(AnalyticsEvent.created_at >= since, AnalyticsEvent.created_at <= until)
        .group_by(b)
        .order_by(b)
    )
    res = await db.execute(q)
    return [
        {
            "bucket": _bucket_key(row.bucket),
            "views": int(row.views or 0),
            "visitors": int(row.visitors or 0),
        }
        for row in res.all()
    ]
