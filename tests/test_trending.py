"""Motor de trending: selección, pins, idempotencia y concurrencia."""
import asyncio
import math

from sqlalchemy import select

from app.catalog.models import Comment, Video, VideoLike
from app.db.session import AsyncSessionLocal
from app.trending import service as svc
from app.trending.models import TrendingSettings
from app.trending.repository import list_trending_ids
from app.trending.schemas import TrendingSettingsPatch
from app.trending.service import TrendingConfig, trending_score

SCENARIO = TrendingConfig(
    min_views=1000, max_age_hours=72, max_items=2, pinned_video_ids=["p1"]
)


async def seed_scenario(make_video):
    await make_video("p1", views=10, age_hours=24 * 30)
    await make_video("a", views=5000, age_hours=10)
    await make_video("b", views=3000, age_hours=50)
    await make_video("c", views=9000, age_hours=200)


async def test_recompute_scenario(db, make_video, now):
    await seed_scenario(make_video)
    ids = await svc.recompute(db, SCENARIO, now=now)
    assert set(ids) == {"p1", "a", "b"}


async def test_recompute_is_idempotent(db, make_video, now):
    await seed_scenario(make_video)
    first = await svc.recompute(db, SCENARIO, now=now)
    second = await svc.recompute(db, SCENARIO, now=now)
    assert first == second


async def test_pins_always_included(db, make_video, now):
    await make_video("old-and-quiet", views=0, age_hours=24 * 400)
    await make_video("hot", views=50_000, age_hours=1)
    config = TrendingConfig(
        min_views=1000, max_age_hours=24, max_items=1, pinned_video_ids=["old-and-quiet"]
    )
    ids = await svc.recompute(db, config, now=now)
    assert set(ids) == {"old-and-quiet", "hot"}


async def test_pins_do_not_consume_auto_slots(db, make_video, now):
    await seed_scenario(make_video)
    config = TrendingConfig(
        min_views=1000, max_age_hours=72, max_items=2, pinned_video_ids=["p1", "a"]
    )
    ids = await svc.recompute(db, config, now=now)
    # a fijado, b elegido, y c sigue fuera por edad
    assert set(ids) == {"p1", "a", "b"}


async def test_recompute_turns_off_stale_flags(db, make_video, now):
    await make_video("stale", views=5, age_hours=1, is_trending=True)
    await make_video("fresh", views=2000, age_hours=1)
    config = TrendingConfig(min_views=1000, max_age_hours=72, max_items=5)
    ids = await svc.recompute(db, config, now=now)
    assert ids == ["fresh"]


async def test_ties_prefer_newer_videos(db, make_video, now):
    await make_video("older", views=2000, age_hours=30)
    await make_video("newer", views=2000, age_hours=2)
    config = TrendingConfig(min_views=1000, max_age_hours=72, max_items=1)
    assert await svc.recompute(db, config, now=now) == ["newer"]


async def test_default_settings_created_on_first_read(db):
    config = await svc.get_settings(db)
    assert config.min_views == 1000
    assert config.max_age_hours == 72
    assert config.max_items == 20
    assert config.auto_refresh is True
    assert config.pinned_video_ids == []
    rows = (await db.execute(select(TrendingSettings))).scalars().all()
    assert len(rows) == 1


async def test_update_with_auto_refresh_recomputes(db, make_video, now):
    await seed_scenario(make_video)
    patch = TrendingSettingsPatch(maxItems=2, pinnedVideoIds=["p1", "p1"])
    config, recomputed = await svc.update_settings(db, patch, now=now)
    assert recomputed is True
    assert config.pinned_video_ids == ["p1"]
    assert set(await list_trending_ids(db)) == {"p1", "a", "b"}


async def test_update_without_auto_refresh_leaves_flags(db, make_video, now):
    await make_video("x", views=5000, age_hours=1, is_trending=True)
    await make_video("y", views=9000, age_hours=1)
    patch = TrendingSettingsPatch(autoRefresh=False, minViews=8000, maxItems=1)
    config, recomputed = await svc.update_settings(db, patch, now=now)
    assert recomputed is False
    assert config.min_views == 8000
    assert await list_trending_ids(db) == ["x"]

    # el botón manual sí aplica los settings guardados
    assert await svc.recompute_from_store(db, now=now) == ["y"]


async def test_partial_patch_keeps_other_fields(db):
    await svc.update_settings(db, TrendingSettingsPatch(minViews=5, autoRefresh=False))
    config, _ = await svc.update_settings(db, TrendingSettingsPatch(maxItems=3))
    assert config.min_views == 5
    assert config.max_items == 3
    assert config.auto_refresh is False


async def test_readers_never_see_empty_set(make_video, now):
    for i in range(10):
        await make_video(f"v{i}", views=2000 + i, age_hours=1, is_trending=i < 5)
    config_a = TrendingConfig(min_views=1000, max_age_hours=72, max_items=5)
    config_b = TrendingConfig(
        min_views=1000, max_age_hours=72, max_items=2, pinned_video_ids=["v0", "v1"]
    )
    seen: list[int] = []
    done = asyncio.Event()

    async def reader():
        while not done.is_set():
            async with AsyncSessionLocal() as s:
                seen.append(len(await list_trending_ids(s)))
            await asyncio.sleep(0)

    async def writer():
        try:
            for i in range(6):
                async with AsyncSessionLocal() as s:
                    await svc.recompute(s, config_a if i % 2 else config_b, now=now)
        finally:
            done.set()

    await asyncio.gather(reader(), writer())
    assert seen
    assert min(seen) > 0


async def test_concurrent_recomputes_serialize(make_video, now):
    await seed_scenario(make_video)

    async def one():
        async with AsyncSessionLocal() as s:
            return await svc.recompute(s, SCENARIO, now=now)

    results = await asyncio.gather(*(one() for _ in range(5)))
    assert all(set(r) == {"p1", "a", "b"} for r in results)


def test_trending_score_formula():
    views, age, comments, likes, saves = 100, 12.0, 2, 3, 1
    expected = (
        0.4 * math.log(101)
        + 0.3 * 30 * math.exp(-12 / 24)
        + 0.2 * min(20, 100 * (6 + 6 + 2) / 100)
        + 0.1 * min(10, 100 / 12 / 10)
    )
    assert math.isclose(trending_score(views, age, comments, likes, saves), expected)


def test_trending_score_caps_engagement_and_velocity():
    # sin vistas: engagement se topa en 20 y velocity en 0
    score = trending_score(0, 0.0, 50, 50, 50)
    assert math.isclose(score, 0.3 * 30 + 0.2 * 20)


async def test_insights_rank_by_score_and_skip_old_videos(db, make_video, now):
    await make_video("fresh", views=500, age_hours=2)
    await make_video("older", views=500, age_hours=100)
    await make_video("ancient", views=10**6, age_hours=24 * 30)
    db.add_all([Comment(video_id="older"), VideoLike(video_id="fresh", user_id="u1")])
    await db.commit()

    items = await svc.insights(db, now=now)
    assert [it["id"] for it in items] == ["fresh", "older"]
    fresh = items[0]
    assert fresh["likes"] == 1
    assert fresh["age_hours"] == 2.0
    assert fresh["trending_score"] >= items[1]["trending_score"]


async def test_insights_never_touch_flags(db, make_video, now):
    await make_video("hot", views=99_999, age_hours=1)
    await svc.insights(db, now=now)
    res = await db.execute(select(Video.is_trending).where(Video.id == "hot"))
    assert res.scalar_one() is False


async def test_admin_paths_run_through_recompute(db, make_video, now, monkeypatch):
    await seed_scenario(make_video)
    calls: list[TrendingConfig | None] = []
    original = svc.recompute

    async def spy(session, config=None, **kwargs):
        calls.append(config)
        return await original(session, config, **kwargs)

    monkeypatch.setattr(svc, "recompute", spy)

    await svc.update_settings(
        db, TrendingSettingsPatch(maxItems=2, pinnedVideoIds=["p1"]), now=now
    )
    assert calls == [SCENARIO]

    # sin config: lee los settings guardados
    assert set(await svc.recompute_from_store(db, now=now)) == {"p1", "a", "b"}
    assert calls[-1] is None

    await svc.update_settings(db, TrendingSettingsPatch(autoRefresh=False), now=now)
    assert len(calls) == 2
