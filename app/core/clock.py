# app/core/clock.py
from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """
    SQLite devuelve datetimes "naive" (siempre guardamos UTC),
    Postgres los devuelve con tz. Normalizamos a UTC con tz.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
