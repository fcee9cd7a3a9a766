# app/analytics/service.py
"""
Ingesta de pings anónimos -> sesión (upsert) + evento (append).

El servidor es la autoridad sobre la taxonomía de eventos y nunca
guarda la IP en claro.
"""
from __future__ import annotations

from datetime import datetime

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.analytics import repository as repo
from app.analytics.schemas import PingIn
from app.catalog.repository import increment_views
from app.core.clock import utcnow
from app.core.errors import InvalidInput, NotFound
from app.core.security import hash_ip

MAX_SESSION_ID_LEN = 120

# lo que el cliente puede declarar explícitamente
_DECLARABLE_TYPES = {"ping", "pageview"}


def normalize_session_id(raw: str | None) -> str | None:
    sid = (raw or "").strip()
    if not sid or len(sid) > MAX_SESSION_ID_LEN:
        return None
    return sid


def require_session_id(raw: str | None) -> str:
    sid = normalize_session_id(raw)
    if sid is None:
        raise InvalidInput("missing_session_id")
    return sid


def classify_event(event_type: str | None, watch_seconds: int | None) -> str:
    """
    - con watch_seconds -> "watch", diga lo que diga el cliente
    - "pageview" explícito -> "pageview"
    - cualquier otra cosa -> "ping"
    """
    if watch_seconds:
        return "watch"
    if event_type in _DECLARABLE_TYPES:
        return event_type
    return "ping"


def client_ip(request: Request) -> str:
    """Primera entrada de x-forwarded-for, o la IP del peer."""
    forwarded = request.headers.get("x-forwarded-for") or ""
    ip = forwarded.split(",")[0].strip()
    if not ip and request.client:
        ip = request.client.host or ""
    return ip


async def ingest_ping(
    db: AsyncSession,
    *,
    session_id: str,
    body: PingIn,
    user_id: str | None,
    user_agent: str,
    ip: str,
    now: datetime | None = None,
) -> datetime:
    """No hace commit (lo hace el router)."""
    now = now or utcnow()
    await repo.upsert_session(
        db,
        session_id=session_id,
        user_id=user_id,
        user_agent=user_agent[:512],
        ip_hash=hash_ip(ip),
        now=now,
    )
    await repo.insert_event(
        db,
        session_id=session_id,
        event_type=classify_event(body.event_type, body.watch_seconds),
        path=body.path,
        video_id=body.video_id,
        watch_seconds=body.watch_seconds,
        now=now,
    )
    return now


async def record_view(
    db: AsyncSession,
    *,
    video_id: str,
    session_id: str | None,
    path: str,
    user_agent: str,
    ip: str,
    now: datetime | None = None,
) -> int:
    """
    +1 al contador del video siempre; el evento "view" sólo si hay sesión.
    Contador y analytics de sesión van desacoplados a propósito.
    """
    now = now or utcnow()
    views = await increment_views(db, video_id, now)
    if views is None:
        raise NotFound()

    if session_id:
        await repo.upsert_session(
            db,
            session_id=session_id,
            user_id=None,
            user_agent=user_agent[:512],
            ip_hash=hash_ip(ip),
            now=now,
        )
        await repo.insert_event(
            db,
            session_id=session_id,
            event_type="view",
            path=path,
            video_id=video_id,
            watch_seconds=None,
            now=now,
        )
    return views
