# app/analytics/schemas.py
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# techo duro por evento: una hora
MAX_WATCH_SECONDS = 60 * 60


class PingIn(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    path: str | None = Field(default=None, max_length=500)
    video_id: str | None = Field(default=None, min_length=1, max_length=36)
    # libre: lo que no reconocemos se normaliza a "ping"
    event_type: str | None = Field(default=None, max_length=32)
    watch_seconds: int | None = Field(default=None, ge=1, le=MAX_WATCH_SECONDS)


class PingOut(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    ok: bool = True
    server_time: datetime


class ViewOut(BaseModel):
    views: int
