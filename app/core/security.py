# app/core/security.py
"""
Tokens de capacidad firmados (HS256 con python-jose).

Cada token lleva un `purpose` y sólo sirve para ese propósito:
- "stream": acceso a los bytes de UN video, vida corta (≈10 min).
- "session": identidad + rol para endpoints de admin y el canal live.

No hay lista de revocación: la seguridad depende del TTL corto.
"""
from __future__ import annotations

import hashlib
from datetime import datetime, timedelta
from typing import Any

from jose import jwt, JWTError

from app.core.clock import utcnow
from app.core.config import settings
from app.core.errors import Unauthorized

ALGORITHM = "HS256"

STREAM_PURPOSE = "stream"
SESSION_PURPOSE = "session"

# claims que pone el propio emisor; el caller no puede pisarlas
_RESERVED = {"purpose", "iat", "exp"}


def mint_token(
    purpose: str,
    claims: dict[str, Any],
    ttl: timedelta,
    *,
    now: datetime | None = None,
) -> str:
    issued_at = now or utcnow()
    payload = {k: v for k, v in claims.items() if k not in _RESERVED}
    payload.update(
        {
            "purpose": purpose,
            "iat": issued_at,
            "exp": issued_at + ttl,
        }
    )
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=ALGORITHM)


def verify_token(token: str | None, purpose: str, **expected: Any) -> dict[str, Any]:
    """
    Devuelve las claims o lanza Unauthorized si el token está mal formado,
    la firma no cuadra, expiró, o las claims no coinciden con lo esperado.
    """
    if not token:
        raise Unauthorized()
    try:
        claims = jwt.decode(token, settings.SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        raise Unauthorized()

    if claims.get("purpose") != purpose:
        raise Unauthorized()
    for key, value in expected.items():
        if claims.get(key) != value:
            raise Unauthorized()
    return claims


# -------------------------
# 🎬 STREAM
# -------------------------
def mint_stream_token(video_id: str, *, now: datetime | None = None) -> str:
    return mint_token(
        STREAM_PURPOSE,
        {"vid": video_id},
        timedelta(minutes=settings.STREAM_TOKEN_TTL_MIN),
        now=now,
    )


def verify_stream_token(token: str | None, video_id: str) -> dict[str, Any]:
    return verify_token(token, STREAM_PURPOSE, vid=video_id)


# -------------------------
# 👤 SESSION (rol)
# -------------------------
def mint_session_token(subject_id: str, role: str, *, now: datetime | None = None) -> str:
    return mint_token(
        SESSION_PURPOSE,
        {"sub": subject_id, "role": role},
        timedelta(minutes=settings.SESSION_TOKEN_TTL_MIN),
        now=now,
    )


def verify_session_token(token: str | None) -> dict[str, Any]:
    claims = verify_token(token, SESSION_PURPOSE)
    if not claims.get("sub"):
        raise Unauthorized()
    return claims


# -------------------------
# 🕶️ IP -> hash de un solo sentido
# -------------------------
def hash_ip(ip: str | None) -> str:
    raw = f"{settings.IP_HASH_SALT}{(ip or '').strip() or 'unknown'}"
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()
