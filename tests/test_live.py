"""Canal live (SSE) de métricas para admin."""
import asyncio
import json

from app.admin.live import LiveMetricsChannel, metrics_snapshot, sse_event
from app.analytics.service import ingest_ping, record_view
from app.analytics.schemas import PingIn
from app.db.session import AsyncSessionLocal


def parse_sse(frame: str) -> tuple[str, dict]:
    event_line, data_line = frame.strip().split("\n")
    return event_line.removeprefix("event: "), json.loads(data_line.removeprefix("data: "))


def test_sse_event_format():
    frame = sse_event("metrics", {"a": 1, "ñ": "sí"})
    assert frame == 'event: metrics\ndata: {"a":1,"ñ":"sí"}\n\n'


async def test_snapshot_totals(db, make_video, now):
    await make_video("v1", views=10)
    await make_video("v2", views=5, is_trending=True)
    await ingest_ping(
        db,
        session_id="s1",
        body=PingIn(watch_seconds=20),
        user_id=None,
        user_agent="ua",
        ip="203.0.113.1",
        now=now,
    )
    await record_view(
        db, video_id="v1", session_id="s2", path="/v", user_agent="ua", ip="203.0.113.2", now=now
    )
    await db.commit()

    snap = await metrics_snapshot(db, now)
    assert snap["serverTime"] == now.isoformat()
    assert snap["totals"] == {
        "totalViews": 16,
        "activeNow": 2,
        "visitors24h": 2,
        "viewsToday": 1,
        "watchSecondsToday": 20,
        "videos": 2,
        "comments": 0,
        "trending": 1,
    }


async def test_channel_emits_first_snapshot_and_stops():
    channel = LiveMetricsChannel(AsyncSessionLocal, interval=0.01)
    events = channel.events()
    frame = await asyncio.wait_for(events.__anext__(), timeout=5)
    name, data = parse_sse(frame)
    assert name == "metrics"
    assert set(data["totals"]) >= {"totalViews", "activeNow", "visitors24h"}

    # cerrar el generador = el cliente se fue
    await events.aclose()
    await asyncio.gather(channel.task, return_exceptions=True)
    assert channel.task.cancelled()


class FlakyChannel(LiveMetricsChannel):
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.calls = 0

    async def compute(self) -> dict:
        self.calls += 1
        if self.calls == 1:
            raise RuntimeError("db down")
        return {"tick": self.calls}


async def test_failed_tick_does_not_close_channel():
    channel = FlakyChannel(AsyncSessionLocal, interval=0.01)
    events = channel.events()
    try:
        frame = await asyncio.wait_for(events.__anext__(), timeout=5)
        assert parse_sse(frame) == ("metrics", {"tick": 2})
    finally:
        await events.aclose()


class StuckChannel(LiveMetricsChannel):
    async def compute(self) -> dict:
        await asyncio.Event().wait()
        return {}


async def test_only_latest_snapshot_is_kept():
    channel = StuckChannel(AsyncSessionLocal, interval=60)
    channel._publish({"n": 1})
    channel._publish({"n": 2})
    events = channel.events()
    try:
        # compute nunca termina: sale el último publicado a mano
        frame = await asyncio.wait_for(events.__anext__(), timeout=5)
        assert parse_sse(frame)[1] == {"n": 2}
    finally:
        await events.aclose()


async def test_live_endpoint_requires_admin(client, viewer_headers):
    r = await client.get("/api/admin/live")
    assert r.status_code == 401
    assert r.json() == {"error": "unauthorized"}

    r = await client.get("/api/admin/live", headers=viewer_headers)
    assert r.status_code == 403

    r = await client.get("/api/admin/live?token=garbage")
    assert r.status_code == 401
