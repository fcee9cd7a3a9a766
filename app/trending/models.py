# app/trending/models.py
import uuid

from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import (
    String,
    Integer,
    Boolean,
    DateTime,
    ForeignKey,
    JSON,
    CheckConstraint,
    func,
)
from app.db.base import Base


class TrendingSettings(Base):
    """
    Singleton por tenant. Sólo lo cambian administradores.
    """
    __tablename__ = "trending_settings"
    __table_args__ = (
        CheckConstraint("max_items >= 1", name="ck_trending_max_items"),
        CheckConstraint("max_age_hours >= 1", name="ck_trending_max_age"),
        CheckConstraint("min_views >= 0", name="ck_trending_min_views"),
    )

    tenant_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    min_views: Mapped[int] = mapped_column(Integer, nullable=False)
    max_age_hours: Mapped[int] = mapped_column(Integer, nullable=False)
    max_items: Mapped[int] = mapped_column(Integer, nullable=False)
    auto_refresh: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    # ids de video fijados (sin duplicados, orden del admin)
    pinned_video_ids: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    updated_at: Mapped["DateTime"] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )


class TrendingCategory(Base):
    """Lista curada a mano, independiente del trending automático."""
    __tablename__ = "trending_categories"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    name: Mapped[str] = mapped_column(String(60), unique=True, nullable=False)
    created_at: Mapped["DateTime"] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )


class TrendingCategoryVideo(Base):
    __tablename__ = "trending_category_videos"

    trending_category_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("trending_categories.id", ondelete="CASCADE"),
        primary_key=True,
    )
    video_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("videos.id", ondelete="CASCADE"),
        primary_key=True,
        index=True,
    )
    created_at: Mapped["DateTime"] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), index=True
    )
