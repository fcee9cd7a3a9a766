# app/core/deps.py
"""
Dependencias de auth compartidas por los routers.
El token llega por ?token=... o por Authorization: Bearer <token>.
"""
from __future__ import annotations

from dataclasses import dataclass

from fastapi import Header, Query

from app.core.config import settings
from app.core.errors import Forbidden, Unauthorized
from app.core.security import verify_session_token


@dataclass(frozen=True)
class Principal:
    subject_id: str
    role: str


def extract_token(token: str | None, authorization: str | None) -> str | None:
    if not token and authorization and authorization.lower().startswith("bearer "):
        token = authorization.split(" ", 1)[1].strip()
    return token or None


def principal_from_token(token: str | None) -> Principal:
    claims = verify_session_token(token)
    return Principal(subject_id=str(claims["sub"]), role=str(claims.get("role") or ""))


def require_admin_token(token: str | None) -> Principal:
    """401 si el token no vale, 403 si vale pero el rol no es admin."""
    principal = principal_from_token(token)
    if principal.role != settings.ADMIN_ROLE:
        raise Forbidden()
    return principal


async def require_admin(
    token: str | None = Query(None),
    authorization: str | None = Header(None),
) -> Principal:
    tok = extract_token(token, authorization)
    if not tok:
        raise Unauthorized()
    return require_admin_token(tok)


def optional_subject(authorization: str | None) -> str | None:
    """Identidad opcional (bearer): si no viene o no vale, None."""
    tok = extract_token(None, authorization)
    if not tok:
        return None
    try:
        return principal_from_token(tok).subject_id
    except Unauthorized:
        return None
