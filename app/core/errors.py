# app/core/errors.py
"""
Errores de dominio y su traducción a HTTP.

Los servicios levantan estas excepciones; los handlers registrados en
`install_error_handlers` las convierten en `{"error": "<code>"}` sin
filtrar la causa interna.
"""
from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError

from app.core.json import error_response

log = logging.getLogger("uvicorn")


class AppError(Exception):
    status_code: int = 500
    code: str = "internal_error"

    def __init__(self, code: str | None = None):
        super().__init__(code or self.code)
        if code:
            self.code = code


class Unauthorized(AppError):
    status_code = 401
    code = "unauthorized"


class Forbidden(Unauthorized):
    status_code = 403
    code = "forbidden"


class InvalidInput(AppError):
    status_code = 400
    code = "invalid_body"


class NotFound(AppError):
    status_code = 404
    code = "not_found"


class Conflict(AppError):
    status_code = 409
    code = "conflict"


class UpstreamUnavailable(AppError):
    status_code = 502
    code = "upstream_failed"


# dónde vive el campo que falló -> código estable
_VALIDATION_CODES = {
    "body": "invalid_body",
    "query": "invalid_query",
    "path": "invalid_id",
    "header": "invalid_header",
}


def validation_code(exc: RequestValidationError) -> str:
    for err in exc.errors():
        loc = err.get("loc") or ()
        if loc and loc[0] in _VALIDATION_CODES:
            return _VALIDATION_CODES[loc[0]]
    return "invalid_body"


def install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def _app_error(request: Request, exc: AppError):
        if exc.status_code >= 500:
            log.warning(f"⚠️ {request.method} {request.url.path} -> {exc.code}")
        return error_response(exc.code, exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def _validation_error(request: Request, exc: RequestValidationError):
        return error_response(validation_code(exc), 400)
