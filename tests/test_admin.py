"""Stats y analytics por ventana del dashboard."""
from datetime import timedelta

from app.analytics.service import record_view
from app.core.clock import utcnow


async def seed_views(db, make_video):
    await make_video("v1")
    base = utcnow().replace(minute=10, second=0, microsecond=0) - timedelta(hours=3)
    # dos vistas en la misma hora (dos visitantes) y una en la hora siguiente
    for sid, ip, offset in (
        ("s1", "198.51.100.1", 0),
        ("s2", "198.51.100.2", 5),
        ("s1", "198.51.100.1", 65),
    ):
        await record_view(
            db,
            video_id="v1",
            session_id=sid,
            path="/watch/v1",
            user_agent="ua",
            ip=ip,
            now=base + timedelta(minutes=offset),
        )
    await db.commit()
    return base


async def test_stats(client, admin_headers, make_video):
    await make_video("v1", is_trending=True)
    await make_video("v2")
    await client.post(
        "/api/admin/trending-categories", json={"name": "Top"}, headers=admin_headers
    )
    r = await client.get("/api/admin/stats", headers=admin_headers)
    assert r.status_code == 200
    assert r.json() == {"videos": 2, "comments": 0, "trending": 1, "trendingCategories": 1}


async def test_hourly_series(client, admin_headers, db, make_video):
    base = await seed_views(db, make_video)
    params = {
        "from": (base - timedelta(hours=1)).isoformat(),
        "to": (base + timedelta(hours=2)).isoformat(),
        "bucket": "hour",
    }
    r = await client.get("/api/admin/analytics", params=params, headers=admin_headers)
    assert r.status_code == 200
    body = r.json()

    hour0 = base.replace(minute=0)
    assert body["series"] == [
        {"bucket": hour0.isoformat(), "views": 2, "visitors": 2},
        {"bucket": (hour0 + timedelta(hours=1)).isoformat(), "views": 1, "visitors": 1},
    ]
    assert body["range"]["bucket"] == "hour"
    assert body["totals"]["viewsInRange"] == 3
    assert body["totals"]["visitors"] == 2
    assert body["totals"]["totalViews"] == 3
    assert body["totals"]["todayViews"] == 3


async def test_daily_series_is_default(client, admin_headers, db, make_video):
    await seed_views(db, make_video)
    r = await client.get("/api/admin/analytics", headers=admin_headers)
    assert r.status_code == 200
    body = r.json()
    assert body["range"]["bucket"] == "day"
    assert sum(p["views"] for p in body["series"]) == 3


async def test_invalid_range_or_bucket(client, admin_headers):
    now = utcnow()
    params = {"from": now.isoformat(), "to": (now - timedelta(days=1)).isoformat()}
    r = await client.get("/api/admin/analytics", params=params, headers=admin_headers)
    assert r.status_code == 400
    assert r.json() == {"error": "invalid_query"}

    r = await client.get(
        "/api/admin/analytics", params={"bucket": "week"}, headers=admin_headers
    )
    assert r.status_code == 400
    assert r.json() == {"error": "invalid_query"}


async def test_health(client):
    r = await client.get("/api/health")
    assert r.status_code == 200
    assert r.json()["ok"] is True
