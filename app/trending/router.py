# app/trending/router.py
from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.deps import Principal, require_admin
from app.core.json import UTF8JSONResponse
from app.db.session import get_session
from app.trending import service as svc
from app.trending.repository import list_categories
from app.trending.schemas import (
    CategoryAssignIn,
    CategoryVideoIdsOut,
    RecomputeOut,
    TrendingCategoriesOut,
    TrendingCategoryCreated,
    TrendingCategoryIn,
    TrendingCategoryOut,
    TrendingInsightsOut,
    TrendingSettingsOut,
    TrendingSettingsPatch,
    TrendingSettingsSaved,
)

# todo aquí es sólo para rol admin
router = APIRouter(
    prefix="/api/admin",
    tags=["admin", "trending"],
    default_response_class=UTF8JSONResponse,
)


# ======================= SETTINGS =======================


@router.get("/trending-settings", response_model=TrendingSettingsOut)
async def read_trending_settings(
    _: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    config = await svc.get_settings(db)
    return TrendingSettingsOut(**config.as_dict())


@router.patch("/trending-settings", response_model=TrendingSettingsSaved)
async def patch_trending_settings(
    body: TrendingSettingsPatch,
    _: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    config, recomputed = await svc.update_settings(db, body)
    return TrendingSettingsSaved(
        recomputed=recomputed,
        settings=TrendingSettingsOut(**config.as_dict()),
    )


@router.post("/trending-settings/recompute", response_model=RecomputeOut)
async def recompute_trending(
    _: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    ids = await svc.recompute_from_store(db)
    return RecomputeOut(trending_video_ids=ids)


@router.get("/trending-insights", response_model=TrendingInsightsOut)
async def trending_insights(
    _: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    return {"insights": await svc.insights(db)}


# ======================= CATEGORÍAS CURADAS =======================


@router.get("/trending-categories", response_model=TrendingCategoriesOut)
async def admin_list_categories(
    _: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    cats = await list_categories(db)
    return {"categories": [TrendingCategoryOut.model_validate(c) for c in cats]}


@router.post(
    "/trending-categories",
    response_model=TrendingCategoryCreated,
    status_code=201,
)
async def admin_create_category(
    body: TrendingCategoryIn,
    _: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    cat = await svc.create_category(db, body.name)
    return TrendingCategoryCreated(id=cat.id)


@router.delete("/trending-categories/{category_id}", status_code=204)
async def admin_delete_category(
    category_id: str,
    _: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    await svc.delete_category(db, category_id)
    return Response(status_code=204)


@router.get(
    "/trending-categories/{category_id}/videos",
    response_model=CategoryVideoIdsOut,
)
async def admin_category_videos(
    category_id: str,
    _: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    return CategoryVideoIdsOut(video_ids=await svc.category_video_ids(db, category_id))


@router.post("/trending-categories/{category_id}/videos", status_code=204)
async def admin_assign_video(
    category_id: str,
    body: CategoryAssignIn,
    _: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    await svc.assign_video(db, category_id, body.video_id)
    return Response(status_code=204)


@router.delete("/trending-categories/{category_id}/videos/{video_id}", status_code=204)
async def admin_unassign_video(
    category_id: str,
    video_id: str,
    _: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    await svc.unassign_video(db, category_id, video_id)
    return Response(status_code=204)
