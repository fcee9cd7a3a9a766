# app/main.py
import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.core.json import UTF8JSONResponse
from app.core.config import settings
from app.core.errors import install_error_handlers
from app.db.init_db import init_models
from app.media.streaming import build_http_client

# routers
from app.catalog.router import router as videos_router
from app.media.streaming import router as stream_router
from app.analytics.router import router as analytics_router
from app.trending.router import router as trending_router
from app.admin.router import router as admin_router

log = logging.getLogger("uvicorn")

app = FastAPI(
    title="Trends Delivery API",
    default_response_class=UTF8JSONResponse,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allow_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    # el reproductor necesita leer estos en respuestas de rango
    expose_headers=["content-range", "accept-ranges", "content-length"],
)

install_error_handlers(app)


@app.on_event("startup")
async def on_startup():
    log.info("🚀 Iniciando servicio…")
    await init_models()
    # un solo cliente HTTP (pool de conexiones) hacia los orígenes de video
    app.state.http_client = build_http_client()
    log.info("✅ Startup listo.")


@app.on_event("shutdown")
async def on_shutdown():
    client = getattr(app.state, "http_client", None)
    if client is not None:
        await client.aclose()
    log.info("👋 Servicio detenido.")


@app.get("/api/health")
async def health():
    return {"ok": True, "service": "fastapi", "msg": "healthy ✨"}


# routers
app.include_router(videos_router)     # /api/videos/...
app.include_router(stream_router)     # /api/videos/{id}/stream
app.include_router(analytics_router)  # /api/analytics/...
app.include_router(trending_router)   # /api/admin/trending-...
app.include_router(admin_router)      # /api/admin/stats|analytics|live
