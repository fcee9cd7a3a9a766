# app/admin/router.py
from datetime import datetime

from fastapi import APIRouter, Depends, Header, Query
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from starlette.responses import StreamingResponse

from app.admin.live import LiveMetricsChannel
from app.admin.schemas import AdminStatsOut, AnalyticsOut, Bucket
from app.admin.service import admin_stats, windowed_analytics
from app.core.config import settings
from app.core.deps import Principal, extract_token, require_admin, require_admin_token
from app.core.json import UTF8JSONResponse
from app.db.session import get_session, get_session_factory

router = APIRouter(
    prefix="/api/admin",
    tags=["admin"],
    default_response_class=UTF8JSONResponse,
)


@router.get("/stats", response_model=AdminStatsOut)
async def stats(
    _: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    return AdminStatsOut(**await admin_stats(db))


@router.get("/analytics", response_model=AnalyticsOut)
async def analytics(
    from_: datetime | None = Query(None, alias="from"),
    to: datetime | None = Query(None),
    bucket: Bucket = Query("day"),
    _: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    return AnalyticsOut(**await windowed_analytics(db, from_=from_, to=to, bucket=bucket))


@router.get("/live")
async def live(
    token: str | None = Query(None),
    authorization: str | None = Header(None),
    session_factory: async_sessionmaker = Depends(get_session_factory),
):
    """
    SSE: `event: metrics` al abrir y luego cada LIVE_METRICS_INTERVAL_SEC.
    EventSource no manda headers, por eso el token va en ?token=...
    La auth se resuelve ANTES de abrir el stream (401 / 403).
    """
    require_admin_token(extract_token(token, authorization))

    channel = LiveMetricsChannel(session_factory, settings.LIVE_METRICS_INTERVAL_SEC)
    return StreamingResponse(
        channel.events(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache, no-transform",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )
