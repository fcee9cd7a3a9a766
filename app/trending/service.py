# app/trending/service.py
"""
Motor de trending: reconcilia la selección automática (views / edad)
con los pins del admin sobre el flag `videos.is_trending`.

Recompute:
  1) los pins SIEMPRE entran (no pasan por el filtro de edad/views)
  2) entre los no fijados: hasta max_items con views >= min_views y
     edad <= max_age_hours, por views DESC, created_at DESC
  3) se aplica como diff dentro de una transacción y bajo un lock por
     tenant: dos recomputes nunca se intercalan y un lector nunca ve
     el conjunto vacío a mitad de camino.

Las insights son sólo diagnóstico: nunca escriben is_trending.
"""
from __future__ import annotations

import asyncio
import logging
import math
import weakref
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.catalog.repository import get_video
from app.core.clock import as_utc, utcnow
from app.core.config import settings as app_settings
from app.core.errors import Conflict, NotFound
from app.trending import repository as repo
from app.trending.models import TrendingCategory, TrendingSettings
from app.trending.schemas import TrendingSettingsPatch, dedupe

log = logging.getLogger("uvicorn")

INSIGHTS_WINDOW = timedelta(days=7)
INSIGHTS_LIMIT = 50


@dataclass(frozen=True)
class TrendingConfig:
    min_views: int
    max_age_hours: int
    max_items: int
    auto_refresh: bool = True
    pinned_video_ids: list[str] = field(default_factory=list)

    @classmethod
    def from_row(cls, row: TrendingSettings) -> "TrendingConfig":
        return cls(
            min_views=int(row.min_views or 0),
            max_age_hours=int(row.max_age_hours or 1),
            max_items=int(row.max_items or 1),
            auto_refresh=bool(row.auto_refresh),
            pinned_video_ids=dedupe(list(row.pinned_video_ids or [])),
        )

    def merge(self, patch: TrendingSettingsPatch) -> "TrendingConfig":
        data = patch.model_dump(exclude_none=True)
        return TrendingConfig(
            min_views=data.get("min_views", self.min_views),
            max_age_hours=data.get("max_age_hours", self.max_age_hours),
            max_items=data.get("max_items", self.max_items),
            auto_refresh=data.get("auto_refresh", self.auto_refresh),
            pinned_video_ids=dedupe(data.get("pinned_video_ids", self.pinned_video_ids)),
        )

    def as_dict(self) -> dict:
        return {
            "min_views": self.min_views,
            "max_age_hours": self.max_age_hours,
            "max_items": self.max_items,
            "auto_refresh": self.auto_refresh,
            "pinned_video_ids": list(self.pinned_video_ids),
        }


# -------------------------
# 🔒 lock por tenant (y por event loop)
# -------------------------
_locks: "weakref.WeakKeyDictionary[asyncio.AbstractEventLoop, dict[str, asyncio.Lock]]" = (
    weakref.WeakKeyDictionary()
)


def recompute_lock(tenant_id: str) -> asyncio.Lock:
    per_loop = _locks.setdefault(asyncio.get_running_loop(), {})
    return per_loop.setdefault(tenant_id, asyncio.Lock())


# -------------------------
# ⚙️ SETTINGS
# -------------------------
async def load_settings(
    db: AsyncSession,
    tenant_id: str | None = None,
    *,
    for_update: bool = False,
    now: datetime | None = None,
) -> TrendingSettings:
    """Lee el singleton; si no existe lo crea con los valores por defecto."""
    tenant_id = tenant_id or app_settings.TENANT_ID
    row = await repo.get_settings(db, tenant_id, for_update=for_update)
    if row is None:
        row = await repo.create_settings(
            db,
            tenant_id,
            min_views=app_settings.TRENDING_DEFAULT_MIN_VIEWS,
            max_age_hours=app_settings.TRENDING_DEFAULT_MAX_AGE_HOURS,
            max_items=app_settings.TRENDING_DEFAULT_MAX_ITEMS,
            auto_refresh=app_settings.TRENDING_DEFAULT_AUTO_REFRESH,
            now=now or utcnow(),
        )
    return row


async def get_settings(db: AsyncSession, tenant_id: str | None = None) -> TrendingConfig:
    row = await load_settings(db, tenant_id)
    await db.commit()
    return TrendingConfig.from_row(row)


async def recompute(
    db: AsyncSession,
    config: TrendingConfig | None = None,
    *,
    tenant_id: str | None = None,
    now: datetime | None = None,
) -> list[str]:
    """
    Recompute(settings): pins + top-N automático aplicado como diff sobre
    `is_trending`. Sin `config` usa los settings guardados (leídos ya
    dentro del lock). Hace commit dentro del lock, junto con lo que la
    sesión ya tuviera pendiente (p.ej. el patch de settings).
    """
    tenant_id = tenant_id or app_settings.TENANT_ID
    now = now or utcnow()
    async with recompute_lock(tenant_id):
        try:
            if config is None:
                row = await load_settings(db, tenant_id, now=now)
                config = TrendingConfig.from_row(row)
            pinned = list(config.pinned_video_ids)
            picked = await repo.pick_auto_candidates(
                db,
                min_views=config.min_views,
                max_age_hours=config.max_age_hours,
                max_items=config.max_items,
                exclude_ids=pinned,
                now=now,
            )
            await repo.apply_trending_set(db, dedupe(pinned + picked))
            ids = await repo.list_trending_ids(db)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
    log.info(f"🔥 trending recalculado: {len(ids)} videos")
    return ids


async def recompute_from_store(
    db: AsyncSession,
    tenant_id: str | None = None,
    *,
    now: datetime | None = None,
) -> list[str]:
    """Botón "recompute" del admin: los settings guardados."""
    return await recompute(db, tenant_id=tenant_id, now=now)


async def update_settings(
    db: AsyncSession,
    patch: TrendingSettingsPatch,
    tenant_id: str | None = None,
    *,
    now: datetime | None = None,
) -> tuple[TrendingConfig, bool]:
    """
    Mezcla el patch en el singleton. Si el resultado tiene auto_refresh,
    recompute hace el commit de settings + flags en la MISMA transacción;
    si no, los flags no se tocan.
    Devuelve (config, recalculado).
    """
    tenant_id = tenant_id or app_settings.TENANT_ID
    now = now or utcnow()
    try:
        row = await load_settings(db, tenant_id, for_update=True, now=now)
        merged = TrendingConfig.from_row(row).merge(patch)

        row.min_views = merged.min_views
        row.max_age_hours = merged.max_age_hours
        row.max_items = merged.max_items
        row.auto_refresh = merged.auto_refresh
        row.pinned_video_ids = list(merged.pinned_video_ids)
        row.updated_at = now
        await db.flush()
    except Exception:
        await db.rollback()
        raise

    if merged.auto_refresh:
        await recompute(db, merged, tenant_id=tenant_id, now=now)
    else:
        await db.commit()
    return merged, merged.auto_refresh


# -------------------------
# 🔎 INSIGHTS (sólo lectura)
# -------------------------
def trending_score(
    views: int, age_hours: float, comments: int, likes: int, saves: int
) -> float:
    popularity = math.log(views + 1)
    recency = 30 * math.exp(-age_hours / 24)
    engagement = min(20.0, 100 * (3 * comments + 2 * likes + 2 * saves) / max(views, 1))
    velocity = min(10.0, views / max(age_hours, 0.1) / 10)
    return 0.4 * popularity + 0.3 * recency + 0.2 * engagement + 0.1 * velocity


async def insights(
    db: AsyncSession,
    *,
    now: datetime | None = None,
    window: timedelta = INSIGHTS_WINDOW,
    limit: int = INSIGHTS_LIMIT,
) -> list[dict]:
    now = now or utcnow()
    items: list[dict] = []
    for video, comments, likes, saves in await repo.insight_rows(db, now - window):
        age_hours = max(0.0, (now - as_utc(video.created_at)).total_seconds() / 3600)
        views = int(video.views or 0)
        score = trending_score(views, age_hours, int(comments or 0), int(likes or 0), int(saves or 0))
        items.append(
            {
                "id": video.id,
                "title": video.title,
                "views": views,
                "is_trending": bool(video.is_trending),
                "age_hours": round(age_hours, 1),
                "comments": int(comments or 0),
                "likes": int(likes or 0),
                "saves": int(saves or 0),
                "trending_score": round(score, 2),
            }
        )
    items.sort(key=lambda it: it["trending_score"], reverse=True)
    return items[:limit]


# -------------------------
# 🗂️ CATEGORÍAS CURADAS (nunca las toca recompute)
# -------------------------
async def create_category(
    db: AsyncSession, name: str, *, now: datetime | None = None
) -> TrendingCategory:
    if await repo.get_category_by_name(db, name):
        raise Conflict("category_exists")
    try:
        cat = await repo.create_category(db, name, now or utcnow())
        await db.commit()
    except IntegrityError:
        # otra request ganó la carrera por el mismo nombre
        await db.rollback()
        raise Conflict("category_exists")
    return cat


async def delete_category(db: AsyncSession, category_id: str) -> None:
    deleted = await repo.delete_category(db, category_id)
    if not deleted:
        await db.rollback()
        raise NotFound()
    await db.commit()


async def assign_video(
    db: AsyncSession, category_id: str, video_id: str, *, now: datetime | None = None
) -> None:
    if not await repo.get_category(db, category_id):
        raise NotFound()
    if not await get_video(db, video_id):
        raise NotFound()
    await repo.assign_video(db, category_id, video_id, now or utcnow())
    await db.commit()


async def unassign_video(db: AsyncSession, category_id: str, video_id: str) -> None:
    await repo.unassign_video(db, category_id, video_id)
    await db.commit()


async def category_video_ids(db: AsyncSession, category_id: str) -> list[str]:
    if not await repo.get_category(db, category_id):
        raise NotFound()
    return await repo.list_category_video_ids(db, category_id)
