# app/catalog/repository.py
from datetime import datetime

from sqlalchemy import select, desc, func, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.catalog.models import Video, Comment


async def get_video(db: AsyncSession, video_id: str) -> Video | None:
    res = await db.execute(select(Video).where(Video.id == video_id))
    return res.scalar_one_or_none()


async def get_video_src(db: AsyncSession, video_id: str) -> str | None:
    res = await db.execute(select(Video.video_src).where(Video.id == video_id))
    return res.scalar_one_or_none()


async def list_shorts(db: AsyncSession, limit: int = 30, offset: int = 0) -> list[Video]:
    q = (
        select(Video)
        .where(Video.is_short.is_(True))
        .order_by(desc(Video.created_at))
        .limit(limit)
        .offset(offset)
    )
    res = await db.execute(q)
    return list(res.scalars())


async def increment_views(db: AsyncSession, video_id: str, now: datetime) -> int | None:
    """
    +1 atómico en la propia sentencia UPDATE (sin leer-modificar-escribir).
    Devuelve el nuevo total o None si el video no existe.
    """
    res = await db.execute(
        update(Video)
        .where(Video.id == video_id)
        .values(views=Video.views + 1, updated_at=now)
        .returning(Video.views)
    )
    views = res.scalar_one_or_none()
    return int(views) if views is not None else None


# -------------------------
# 📊 CONTADORES
# -------------------------
async def total_views(db: AsyncSession) -> int:
    res = await db.execute(select(func.coalesce(func.sum(Video.views), 0)))
    return int(res.scalar() or 0)


async def count_videos(db: AsyncSession, *, trending_only: bool = False) -> int:
    q = select(func.count()).select_from(Video)
    if trending_only:
        q = q.where(Video.is_trending.is_(True))
    res = await db.execute(q)
    return int(res.scalar() or 0)


async def count_comments(db: AsyncSession) -> int:
    res = await db.execute(select(func.count()).select_from(Comment))
    return int(res.scalar() or 0)


async def catalog_counts(db: AsyncSession) -> dict:
    return {
        "videos": await count_videos(db),
        "comments": await count_comments(db),
        "trending": await count_videos(db, trending_only=True),
    }
