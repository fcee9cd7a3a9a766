"""tablas de analytics y trending

Revision ID: 0001_delivery_tables
Revises:
Create Date: 2026-10-16

El catálogo (videos, comments, video_likes, video_saves) es del
colaborador externo; aquí sólo las tablas que este servicio posee.
"""
from alembic import op
import sqlalchemy as sa

revision = "0001_delivery_tables"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "analytics_sessions",
        sa.Column("session_id", sa.String(120), primary_key=True),
        sa.Column("user_id", sa.String(64), nullable=True, index=True),
        sa.Column("user_agent", sa.String(512), nullable=False, server_default=""),
        sa.Column("ip_hash", sa.String(64), nullable=False, index=True),
        sa.Column("first_seen_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("last_seen_at", sa.DateTime(timezone=True), server_default=sa.func.now(), index=True),
    )
    op.create_table(
        "analytics_events",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column(
            "session_id",
            sa.String(120),
            sa.ForeignKey("analytics_sessions.session_id", ondelete="CASCADE"),
            index=True,
        ),
        sa.Column("event_type", sa.String(16), nullable=False, index=True),
        sa.Column("path", sa.String(500), nullable=True),
        sa.Column("video_id", sa.String(36), nullable=True, index=True),
        sa.Column("watch_seconds", sa.Integer, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), index=True),
        sa.CheckConstraint(
            "event_type IN ('pageview', 'ping', 'view', 'watch')",
            name="ck_analytics_event_type",
        ),
        sa.CheckConstraint(
            "watch_seconds IS NULL OR (watch_seconds >= 1 AND watch_seconds <= 3600)",
            name="ck_analytics_watch_seconds",
        ),
    )
    op.create_table(
        "trending_settings",
        sa.Column("tenant_id", sa.String(64), primary_key=True),
        sa.Column("min_views", sa.Integer, nullable=False),
        sa.Column("max_age_hours", sa.Integer, nullable=False),
        sa.Column("max_items", sa.Integer, nullable=False),
        sa.Column("auto_refresh", sa.Boolean, nullable=False),
        sa.Column("pinned_video_ids", sa.JSON, nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint("max_items >= 1", name="ck_trending_max_items"),
        sa.CheckConstraint("max_age_hours >= 1", name="ck_trending_max_age"),
        sa.CheckConstraint("min_views >= 0", name="ck_trending_min_views"),
    )
    op.create_table(
        "trending_categories",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(60), nullable=False, unique=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_table(
        "trending_category_videos",
        sa.Column(
            "trending_category_id",
            sa.String(36),
            sa.ForeignKey("trending_categories.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column(
            "video_id",
            sa.String(36),
            sa.ForeignKey("videos.id", ondelete="CASCADE"),
            primary_key=True,
            index=True,
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), index=True),
    )


def downgrade() -> None:
    op.drop_table("trending_category_videos")
    op.drop_table("trending_categories")
    op.drop_table("trending_settings")
    op.drop_table("analytics_events")
    op.drop_table("analytics_sessions")
