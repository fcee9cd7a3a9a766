# app/media/streaming.py
"""
Proxy de rangos: relaya los bytes del origen de UN video a UN cliente.

- no buffer del archivo completo, no caché local
- respeta Range (200 / 206); no valida rangos localmente
- cualquier otro status del origen (416 incluido) -> 502, nunca un éxito inventado
- sin reintentos: reintentar un rango a medio enviar no es seguro
- si el cliente se va, se cierra también la conexión hacia el origen
"""
from __future__ import annotations

import logging
from typing import AsyncIterator

import httpx
from fastapi import APIRouter, Depends, Header, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.responses import Response, StreamingResponse
from starlette.types import Receive, Scope, Send

from app.catalog.repository import get_video_src
from app.core.config import settings
from app.core.errors import NotFound, UpstreamUnavailable
from app.core.security import verify_stream_token
from app.db.session import get_session

log = logging.getLogger("uvicorn")

router = APIRouter(prefix="/api/videos", tags=["stream"])

# únicos headers del origen que llegan al cliente
PASSTHROUGH_HEADERS = (
    "content-type",
    "content-length",
    "content-range",
    "accept-ranges",
    "etag",
    "last-modified",
)

RELAYED_STATUSES = {200, 206}


def build_http_client() -> httpx.AsyncClient:
    timeout = httpx.Timeout(
        settings.UPSTREAM_READ_TIMEOUT,
        connect=settings.UPSTREAM_CONNECT_TIMEOUT,
    )
    return httpx.AsyncClient(timeout=timeout, follow_redirects=True)


def get_http_client(request: Request) -> httpx.AsyncClient:
    """Cliente compartido del proceso (se crea en startup, o aquí si falta)."""
    client = getattr(request.app.state, "http_client", None)
    if client is None:
        client = build_http_client()
        request.app.state.http_client = client
    return client


class UpstreamStreamingResponse(StreamingResponse):
    """
    StreamingResponse que SIEMPRE cierra la respuesta del origen,
    termine bien, se corte, o el cliente se desconecte (cancelación).
    """

    def __init__(self, upstream: httpx.Response, headers: dict[str, str]):
        self.upstream = upstream
        super().__init__(
            _relay(upstream),
            status_code=upstream.status_code,
            headers=headers,
        )

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        try:
            await super().__call__(scope, receive, send)
        finally:
            await self.upstream.aclose()


async def _relay(upstream: httpx.Response) -> AsyncIterator[bytes]:
    try:
        # pedimos identity: los bytes coinciden con content-length
        async for chunk in upstream.aiter_bytes():
            yield chunk
    except httpx.HTTPError as e:
        log.warning(f"🎬 origen cortó a mitad de stream: {e!r}")
        raise


async def open_upstream(
    client: httpx.AsyncClient,
    src: str,
    range_header: str | None,
) -> httpx.Response:
    headers = {"accept-encoding": "identity"}
    if range_header:
        headers["range"] = range_header

    request = client.build_request("GET", src, headers=headers)
    try:
        upstream = await client.send(request, stream=True)
    except httpx.HTTPError as e:
        log.warning(f"🎬 origen no disponible: {e!r}")
        raise UpstreamUnavailable()

    if upstream.status_code not in RELAYED_STATUSES:
        log.warning(f"🎬 origen respondió {upstream.status_code}")
        await upstream.aclose()
        raise UpstreamUnavailable()
    return upstream


def relay_headers(upstream: httpx.Response) -> dict[str, str]:
    headers = {
        name: upstream.headers[name]
        for name in PASSTHROUGH_HEADERS
        if name in upstream.headers
    }
    # el token va en la URL: nada de caché por URL
    headers["cache-control"] = "no-store"
    return headers


async def relay_response(upstream: httpx.Response) -> Response:
    headers = relay_headers(upstream)
    if upstream.headers.get("content-length") == "0":
        # sin cuerpo: respondemos ya y soltamos la conexión
        await upstream.aclose()
        return Response(status_code=upstream.status_code, headers=headers)
    return UpstreamStreamingResponse(upstream, headers)


@router.get("/{video_id}/stream")
async def stream_video(
    video_id: str,
    token: str | None = Query(None),
    range_header: str | None = Header(None, alias="range"),
    db: AsyncSession = Depends(get_session),
    client: httpx.AsyncClient = Depends(get_http_client),
):
    # 1) token de stream válido y emitido para ESTE video
    verify_stream_token(token, video_id)

    # 2) origen del media
    src = await get_video_src(db, video_id)
    if not src:
        raise NotFound()
    # soltamos la conexión a la DB antes de un stream que puede durar minutos
    await db.close()

    # 3..6) GET al origen con el Range tal cual, y relay
    upstream = await open_upstream(client, src, range_header)
    return await relay_response(upstream)
