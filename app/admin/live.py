# app/admin/live.py
"""
Canal live de métricas (SSE) para el dashboard de admin.

Una tarea de fondo POR conexión: calcula un snapshot al abrir y luego
cada `interval` segundos. La tarea muere con la conexión (cancelación),
no hay timers a nivel de módulo. Un tick que falla se registra y se
reintenta en el siguiente, sin cerrar el canal.
"""
from __future__ import annotations

import asyncio
import json
import logging
from datetime import datetime, timedelta
from typing import Any, AsyncIterator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.analytics import repository as analytics_repo
from app.catalog import repository as catalog_repo
from app.core.clock import utcnow

log = logging.getLogger("uvicorn")

ACTIVE_WINDOW = timedelta(minutes=5)
DAY = timedelta(days=1)


def sse_event(event: str, data: Any) -> str:
    payload = json.dumps(data, ensure_ascii=False, separators=(",", ":"), default=str)
    return f"event: {event}\ndata: {payload}\n\n"


async def metrics_snapshot(db: AsyncSession, now: datetime | None = None) -> dict:
    now = now or utcnow()
    day_ago = now - DAY
    counts = await catalog_repo.catalog_counts(db)
    return {
        "serverTime": now.isoformat(),
        "totals": {
            "totalViews": await catalog_repo.total_views(db),
            "activeNow": await analytics_repo.count_active_sessions(db, now - ACTIVE_WINDOW),
            "visitors24h": await analytics_repo.count_distinct_visitors(db, day_ago),
            "viewsToday": await analytics_repo.count_events(db, "view", day_ago),
            "watchSecondsToday": await analytics_repo.sum_watch_seconds(db, day_ago),
            "videos": counts["videos"],
            "comments": counts["comments"],
            "trending": counts["trending"],
        },
    }


class LiveMetricsChannel:
    def __init__(self, session_factory: async_sessionmaker, interval: float):
        self.session_factory = session_factory
        self.interval = interval
        self.task: asyncio.Task | None = None
        # sólo interesa el snapshot más reciente
        self._queue: asyncio.Queue[dict] = asyncio.Queue(maxsize=1)

    async def compute(self) -> dict:
        async with self.session_factory() as db:
            return await metrics_snapshot(db)

    def _publish(self, snapshot: dict) -> None:
        if self._queue.full():
            self._queue.get_nowait()
        self._queue.put_nowait(snapshot)

    async def _run(self) -> None:
        while True:
            try:
                self._publish(await self.compute())
            except asyncio.CancelledError:
                raise
            except Exception as e:
                log.warning(f"📉 live metrics: tick falló, reintento en {self.interval}s: {e!r}")
            await asyncio.sleep(self.interval)

    def start(self) -> None:
        if self.task is None:
            self.task = asyncio.create_task(self._run())

    def stop(self) -> None:
        # síncrono: basta con cancelar para no dejar la tarea viva
        if self.task is not None and not self.task.done():
            self.task.cancel()

    async def events(self) -> AsyncIterator[str]:
        self.start()
        try:
            while True:
                snapshot = await self._queue.get()
                yield sse_event("metrics", snapshot)
        finally:
            self.stop()
