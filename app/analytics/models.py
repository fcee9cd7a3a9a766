# app/analytics/models.py
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import (
    String,
    Integer,
    DateTime,
    ForeignKey,
    CheckConstraint,
    func,
)
from app.db.base import Base


class AnalyticsSession(Base):
    """
    Sesión anónima elegida por el cliente (x-session-id).
    Nunca guarda la IP: sólo su hash de un solo sentido.
    """
    __tablename__ = "analytics_sessions"

    session_id: Mapped[str] = mapped_column(String(120), primary_key=True)
    # se fija una vez y no vuelve a null
    user_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    user_agent: Mapped[str] = mapped_column(String(512), nullable=False, default="")
    ip_hash: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    first_seen_at: Mapped["DateTime"] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    last_seen_at: Mapped["DateTime"] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), index=True
    )


class AnalyticsEvent(Base):
    """Fila inmutable, sólo append."""
    __tablename__ = "analytics_events"
    __table_args__ = (
        CheckConstraint(
            "event_type IN ('pageview', 'ping', 'view', 'watch')",
            name="ck_analytics_event_type",
        ),
        CheckConstraint(
            "watch_seconds IS NULL OR (watch_seconds >= 1 AND watch_seconds <= 3600)",
            name="ck_analytics_watch_seconds",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    session_id: Mapped[str] = mapped_column(
        String(120),
        ForeignKey("analytics_sessions.session_id", ondelete="CASCADE"),
        index=True,
    )
    event_type: Mapped[str] = mapped_column(String(16), nullable=False, index=True)
    path: Mapped[str | None] = mapped_column(String(500), nullable=True)
    video_id: Mapped[str | None] = mapped_column(String(36), nullable=True, index=True)
    watch_seconds: Mapped[int | None] = mapped_column(Integer, nullable=True)

    created_at: Mapped["DateTime"] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), index=True
    )
