import logging
from app.db.session import engine
from app.db.base import Base

# 👇 importa todos los modelos que deben existir en la DB
from app.catalog.models import Video, Comment, VideoLike, VideoSave  # noqa: F401
from app.analytics.models import AnalyticsSession, AnalyticsEvent  # noqa: F401
from app.trending.models import (  # noqa: F401
    TrendingSettings,
    TrendingCategory,
    TrendingCategoryVideo,
)

log = logging.getLogger("uvicorn")


async def init_models():
    """
    Crea/verifica todas las tablas declaradas en Base.metadata
    """
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        log.info("✅ DB init: tablas creadas/verificadas.")
    except Exception as e:
        log.error(f"❌ DB init falló: {e!r}")
