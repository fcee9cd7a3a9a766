"""
Fixtures de pytest para la API.

- SQLite (aiosqlite) en un archivo temporal: tablas nuevas por test
- cliente async contra la app vía ASGITransport
- origen de video falso con httpx.MockTransport
- tokens de sesión admin / no-admin
"""
import os
import tempfile
from collections.abc import AsyncGenerator
from datetime import datetime, timedelta

# la config se lee al importar app.*: el entorno va ANTES
_DB_DIR = tempfile.mkdtemp(prefix="trends-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_DB_DIR}/test.db"
os.environ["SECRET_KEY"] = "test-secret"
os.environ["LIVE_METRICS_INTERVAL_SEC"] = "0.05"

import httpx
import pytest
from httpx import ASGITransport, AsyncClient

from app.catalog.models import Video
from app.core.clock import utcnow
from app.core.security import mint_session_token
from app.db.base import Base
from app.db.session import AsyncSessionLocal, engine
import app.db.init_db  # noqa: F401
from app.main import app as fastapi_app
from app.media.streaming import get_http_client

MEDIA_SIZE = 1000
MEDIA_BYTES = bytes(i % 251 for i in range(MEDIA_SIZE))


# ============ DB ============


@pytest.fixture(autouse=True)
async def database() -> AsyncGenerator:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    # conexiones nuevas en el siguiente test (otro event loop)
    await engine.dispose()


@pytest.fixture
async def db() -> AsyncGenerator:
    async with AsyncSessionLocal() as session:
        yield session


@pytest.fixture
def now() -> datetime:
    return utcnow()


@pytest.fixture
def make_video(db, now):
    """Crea un video en el catálogo (colaborador externo)."""

    async def _make(
        video_id: str,
        *,
        views: int = 0,
        age_hours: float = 1,
        is_short: bool = False,
        is_trending: bool = False,
        src: str | None = None,
    ) -> Video:
        video = Video(
            id=video_id,
            title=f"video {video_id}",
            video_src=src or f"https://cdn.test/{video_id}.mp4",
            views=views,
            is_short=is_short,
            is_trending=is_trending,
            created_at=now - timedelta(hours=age_hours),
            updated_at=now,
        )
        db.add(video)
        await db.commit()
        return video

    return _make


# ============ ORIGEN FALSO ============


class FakeOrigin:
    """Origen de media con soporte de Range; configurable por test."""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.status_override: int | None = None
        self.fail_connect = False
        # cuerpo en streaming real (no en memoria)
        self.stream_override: httpx.AsyncByteStream | None = None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.fail_connect:
            raise httpx.ConnectError("origin down", request=request)
        if self.status_override is not None:
            return httpx.Response(self.status_override, content=b"nope")
        if self.stream_override is not None:
            return httpx.Response(
                200, headers={"content-type": "video/mp4"}, stream=self.stream_override
            )

        base = {"content-type": "video/mp4", "accept-ranges": "bytes", "etag": '"v1"'}
        rng = request.headers.get("range")
        if not rng:
            return httpx.Response(200, headers=base, content=MEDIA_BYTES)

        start_s, end_s = rng.removeprefix("bytes=").split("-")
        start = int(start_s)
        end = int(end_s) if end_s else MEDIA_SIZE - 1
        if start >= MEDIA_SIZE:
            return httpx.Response(
                416,
                headers={"content-range": f"bytes */{MEDIA_SIZE}", "content-length": "0"},
            )
        end = min(end, MEDIA_SIZE - 1)
        headers = dict(base)
        headers["content-range"] = f"bytes {start}-{end}/{MEDIA_SIZE}"
        return httpx.Response(206, headers=headers, content=MEDIA_BYTES[start : end + 1])


@pytest.fixture
def origin() -> FakeOrigin:
    return FakeOrigin()


# ============ FastAPI Test Client ============


@pytest.fixture
async def client(origin) -> AsyncGenerator:
    upstream = httpx.AsyncClient(transport=httpx.MockTransport(origin))
    fastapi_app.dependency_overrides[get_http_client] = lambda: upstream
    async with AsyncClient(
        transport=ASGITransport(app=fastapi_app), base_url="http://test"
    ) as ac:
        yield ac
    fastapi_app.dependency_overrides.clear()
    await upstream.aclose()


# ============ Tokens ============


@pytest.fixture
def admin_headers() -> dict:
    return {"Authorization": f"Bearer {mint_session_token('admin-1', 'admin')}"}


@pytest.fixture
def viewer_headers() -> dict:
    return {"Authorization": f"Bearer {mint_session_token('user-1', 'viewer')}"}
