# app/trending/repository.py
from datetime import datetime, timedelta

from sqlalchemy import select, desc, func, update, delete
from sqlalchemy.ext.asyncio import AsyncSession

from app.analytics.repository import dialect_insert
from app.catalog.models import Video, Comment, VideoLike, VideoSave
from app.trending.models import (
    TrendingSettings,
    TrendingCategory,
    TrendingCategoryVideo,
)


# -------------------------
# ⚙️ SETTINGS (singleton por tenant)
# -------------------------
async def get_settings(
    db: AsyncSession, tenant_id: str, *, for_update: bool = False
) -> TrendingSettings | None:
    q = select(TrendingSettings).where(TrendingSettings.tenant_id == tenant_id)
    if for_update:
        q = q.with_for_update()
    res = await db.execute(q)
    return res.scalar_one_or_none()


async def create_settings(
    db: AsyncSession,
    tenant_id: str,
    *,
    min_views: int,
    max_age_hours: int,
    max_items: int,
    auto_refresh: bool,
    now: datetime,
) -> TrendingSettings:
    # ON CONFLICT DO NOTHING: dos requests pueden crear el singleton a la vez
    stmt = dialect_insert(db, TrendingSettings).values(
        tenant_id=tenant_id,
        min_views=min_views,
        max_age_hours=max_age_hours,
        max_items=max_items,
        auto_refresh=auto_refresh,
        pinned_video_ids=[],
        updated_at=now,
    )
    await db.execute(stmt.on_conflict_do_nothing(index_elements=["tenant_id"]))
    return await get_settings(db, tenant_id)


# -------------------------
# 🔥 FLAG is_trending
# -------------------------
async def pick_auto_candidates(
    db: AsyncSession,
    *,
    min_views: int,
    max_age_hours: int,
    max_items: int,
    exclude_ids: list[str],
    now: datetime,
) -> list[str]:
    """
    Hasta max_items videos NO fijados con views >= min_views y edad <= max_age_hours,
    por views DESC y, a igualdad, los más recientes primero.
    """
    cutoff = now - timedelta(hours=max_age_hours)
    q = select(Video.id).where(
        Video.views >= min_views,
        Video.created_at >= cutoff,
    )
    if exclude_ids:
        q = q.where(Video.id.not_in(exclude_ids))
    q = q.order_by(desc(Video.views), desc(Video.created_at)).limit(max_items)
    res = await db.execute(q)
    return list(res.scalars())


async def apply_trending_set(db: AsyncSession, target_ids: list[str]) -> None:
    """
    Sólo cambia los flags que difieren. Primero enciende, después apaga:
    en ningún punto intermedio queda el conjunto vacío.
    """
    if target_ids:
        await db.execute(
            update(Video)
            .where(Video.id.in_(target_ids), Video.is_trending.is_(False))
            .values(is_trending=True)
            .execution_options(synchronize_session=False)
        )
    q = update(Video).where(Video.is_trending.is_(True))
    if target_ids:
        q = q.where(Video.id.not_in(target_ids))
    await db.execute(
        q.values(is_trending=False).execution_options(synchronize_session=False)
    )


async def list_trending_ids(db: AsyncSession) -> list[str]:
    res = await db.execute(
        select(Video.id)
        .where(Video.is_trending.is_(True))
        .order_by(desc(Video.views), desc(Video.created_at))
    )
    return list(res.scalars())


async def insight_rows(db: AsyncSession, since: datetime):
    """
    Filas (Video, comments, likes, saves) de los videos creados desde `since`.
    """
    comments = (
        select(func.count(Comment.id))
        .where(Comment.video_id == Video.id)
        .correlate(Video)
        .scalar_subquery()
    )
    likes = (
        select(func.count(VideoLike.id))
        .where(VideoLike.video_id == Video.id)
        .correlate(Video)
        .scalar_subquery()
    )
    saves = (
        select(func.count(VideoSave.id))
        .where(VideoSave.video_id == Video.id)
        .correlate(Video)
        .scalar_subquery()
    )
    q = select(
        Video,
        comments.label("comments"),
        likes.label("likes"),
        saves.label("saves"),
    ).where(Video.created_at >= since)
    res = await db.execute(q)
    return res.all()


# -------------------------
# 🗂️ CATEGORÍAS CURADAS
# -------------------------
async def list_categories(db: AsyncSession) -> list[TrendingCategory]:
    res = await db.execute(select(TrendingCategory).order_by(TrendingCategory.name))
    return list(res.scalars())


async def get_category(db: AsyncSession, category_id: str) -> TrendingCategory | None:
    res = await db.execute(
        select(TrendingCategory).where(TrendingCategory.id == category_id)
    )
    return res.scalar_one_or_none()


async def get_category_by_name(db: AsyncSession, name: str) -> TrendingCategory | None:
    res = await db.execute(select(TrendingCategory).where(TrendingCategory.name == name))
    return res.scalar_one_or_none()


async def create_category(db: AsyncSession, name: str, now: datetime) -> TrendingCategory:
    cat = TrendingCategory(name=name, created_at=now)
    db.add(cat)
    await db.flush()
    return cat


async def delete_category(db: AsyncSession, category_id: str) -> bool:
    # borramos primero las asignaciones (SQLite no aplica ON DELETE CASCADE por defecto)
    await db.execute(
        delete(TrendingCategoryVideo).where(
            TrendingCategoryVideo.trending_category_id == category_id
        )
    )
    res = await db.execute(
        delete(TrendingCategory).where(TrendingCategory.id == category_id)
    )
    return (res.rowcount or 0) > 0


async def assign_video(
    db: AsyncSession, category_id: str, video_id: str, now: datetime
) -> None:
    """Idempotente: asignar dos veces no es error."""
    stmt = dialect_insert(db, TrendingCategoryVideo).values(
        trending_category_id=category_id,
        video_id=video_id,
        created_at=now,
    )
    await db.execute(
        stmt.on_conflict_do_nothing(index_elements=["trending_category_id", "video_id"])
    )


async def unassign_video(db: AsyncSession, category_id: str, video_id: str) -> None:
    await db.execute(
        delete(TrendingCategoryVideo).where(
            TrendingCategoryVideo.trending_category_id == category_id,
            TrendingCategoryVideo.video_id == video_id,
        )
    )


async def list_category_video_ids(db: AsyncSession, category_id: str) -> list[str]:
    res = await db.execute(
        select(TrendingCategoryVideo.video_id)
        .where(TrendingCategoryVideo.trending_category_id == category_id)
        .order_by(desc(TrendingCategoryVideo.created_at))
    )
    return list(res.scalars())


async def list_category_videos(
    db: AsyncSession, category_id: str, limit: int = 100
) -> list[Video]:
    q = (
        select(Video)
        .join(TrendingCategoryVideo, TrendingCategoryVideo.video_id == Video.id)
        .where(TrendingCategoryVideo.trending_category_id == category_id)
        .order_by(desc(TrendingCategoryVideo.created_at))
        .limit(limit)
    )
    res = await db.execute(q)
    return list(res.scalars())
