# app/core/json.py
from typing import Any
import json
from fastapi.encoders import jsonable_encoder
from starlette.responses import JSONResponse


class UTF8JSONResponse(JSONResponse):
    """
    Respuesta JSON en UTF-8, compacta y sin escapes ASCII.
    Pasa primero por jsonable_encoder (datetime, Decimal, etc.).
    """
    media_type = "application/json; charset=utf-8"

    def render(self, content: Any) -> bytes:
        payload = jsonable_encoder(content, exclude_none=False)
        return json.dumps(
            payload,
            ensure_ascii=False,
            allow_nan=False,
            separators=(",", ":"),
        ).encode("utf-8")


def error_response(code: str, status_code: int) -> UTF8JSONResponse:
    """Cuerpo de error estable: {"error": "<code>"}."""
    return UTF8JSONResponse({"error": code}, status_code=status_code)
