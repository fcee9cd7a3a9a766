# app/catalog/schemas.py
from datetime import datetime

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class VideoOut(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )

    id: str
    title: str
    description: str | None = None
    thumbnail_url: str | None = None
    views: int
    is_trending: bool
    is_short: bool
    created_at: datetime
    # sólo en detalle / shorts: URL firmada de vida corta
    stream_url: str | None = None


class VideoDetailOut(BaseModel):
    video: VideoOut


class VideoListOut(BaseModel):
    videos: list[VideoOut]
