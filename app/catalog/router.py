# app/catalog/router.py
from urllib.parse import quote

from fastapi import APIRouter, Depends, Header, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.analytics.schemas import ViewOut
from app.analytics.service import client_ip, normalize_session_id, record_view
from app.catalog.models import Video
from app.catalog.repository import get_video, list_shorts
from app.catalog.schemas import VideoDetailOut, VideoListOut, VideoOut
from app.core.errors import NotFound
from app.core.json import UTF8JSONResponse
from app.core.security import mint_stream_token
from app.db.session import get_session
from app.trending.repository import get_category, list_categories, list_category_videos
from app.trending.schemas import TrendingCategoriesOut, TrendingCategoryOut

router = APIRouter(
    prefix="/api/videos",
    tags=["videos"],
    default_response_class=UTF8JSONResponse,
)


def stream_url_for(request: Request, video_id: str) -> str:
    """URL de stream con un token recién emitido para ESTE video."""
    token = mint_stream_token(video_id)
    base = str(request.url_for("stream_video", video_id=video_id))
    return f"{base}?token={quote(token, safe='')}"


def _video_out(video: Video, stream_url: str | None = None) -> VideoOut:
    out = VideoOut.model_validate(video)
    out.stream_url = stream_url
    return out


# ======================= LISTAS CURADAS (público) =======================


@router.get("/trending-categories", response_model=TrendingCategoriesOut)
async def public_trending_categories(db: AsyncSession = Depends(get_session)):
    cats = await list_categories(db)
    return {"categories": [TrendingCategoryOut.model_validate(c) for c in cats]}


@router.get("/trending-categories/{category_id}/videos", response_model=VideoListOut)
async def public_trending_category_videos(
    category_id: str,
    db: AsyncSession = Depends(get_session),
):
    if not await get_category(db, category_id):
        raise NotFound()
    videos = await list_category_videos(db, category_id)
    return VideoListOut(videos=[_video_out(v) for v in videos])


# ======================= SHORTS / DETALLE =======================


@router.get("/shorts", response_model=VideoListOut)
async def shorts(
    request: Request,
    limit: int = Query(30, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_session),
):
    videos = await list_shorts(db, limit=limit, offset=offset)
    return VideoListOut(
        videos=[_video_out(v, stream_url_for(request, v.id)) for v in videos]
    )


@router.get("/{video_id}", response_model=VideoDetailOut)
async def video_detail(
    video_id: str,
    request: Request,
    db: AsyncSession = Depends(get_session),
):
    video = await get_video(db, video_id)
    if not video:
        raise NotFound()
    return VideoDetailOut(video=_video_out(video, stream_url_for(request, video.id)))


# ======================= VISTAS =======================


@router.post("/{video_id}/view", response_model=ViewOut)
async def add_view(
    video_id: str,
    request: Request,
    x_session_id: str | None = Header(None),
    user_agent: str | None = Header(None),
    db: AsyncSession = Depends(get_session),
):
    """
    +1 al contador siempre; evento "view" sólo si llega un x-session-id válido.
    """
    views = await record_view(
        db,
        video_id=video_id,
        session_id=normalize_session_id(x_session_id),
        path=request.url.path,
        user_agent=user_agent or "",
        ip=client_ip(request),
    )
    await db.commit()
    return ViewOut(views=views)
