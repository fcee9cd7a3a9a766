# app/trending/schemas.py
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class _Camel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def dedupe(ids: list[str]) -> list[str]:
    """Quita duplicados conservando el orden."""
    seen: set[str] = set()
    out: list[str] = []
    for vid in ids:
        if vid not in seen:
            seen.add(vid)
            out.append(vid)
    return out


class TrendingSettingsOut(_Camel):
    min_views: int
    max_age_hours: int
    max_items: int
    auto_refresh: bool
    pinned_video_ids: list[str]


class TrendingSettingsPatch(_Camel):
    """Patch parcial: lo que no venga se conserva."""
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="forbid"
    )

    min_views: int | None = Field(default=None, ge=0)
    max_age_hours: int | None = Field(default=None, ge=1, le=24 * 365)
    max_items: int | None = Field(default=None, ge=1, le=200)
    auto_refresh: bool | None = None
    pinned_video_ids: list[str] | None = None

    @field_validator("pinned_video_ids")
    @classmethod
    def _clean_pins(cls, v: list[str] | None) -> list[str] | None:
        if v is None:
            return None
        ids = [x.strip() for x in v]
        if any(not x or len(x) > 36 for x in ids):
            raise ValueError("invalid video id")
        return dedupe(ids)


class TrendingSettingsSaved(_Camel):
    success: bool = True
    recomputed: bool
    settings: TrendingSettingsOut


class RecomputeOut(_Camel):
    success: bool = True
    trending_video_ids: list[str]


class TrendingInsight(_Camel):
    id: str
    title: str
    views: int
    is_trending: bool
    age_hours: float
    comments: int
    likes: int
    saves: int
    trending_score: float


class TrendingInsightsOut(BaseModel):
    insights: list[TrendingInsight]


# --------- CATEGORÍAS CURADAS ---------


class TrendingCategoryIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=60)

    @field_validator("name")
    @classmethod
    def _strip(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("empty name")
        return v


class TrendingCategoryOut(BaseModel):
    id: str
    name: str

    class Config:
        from_attributes = True


class TrendingCategoryCreated(BaseModel):
    id: str


class TrendingCategoriesOut(BaseModel):
    categories: list[TrendingCategoryOut]


class CategoryAssignIn(_Camel):
    video_id: str = Field(..., min_length=1, max_length=36)


class CategoryVideoIdsOut(_Camel):
    video_ids: list[str]
