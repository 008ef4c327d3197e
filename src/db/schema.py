"""Database tables / schema"""

from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import JSON, DateTime, Index
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class DBTenant(Base):
    __tablename__ = "tenants"
    tenant_id: Mapped[str] = mapped_column(primary_key=True)
    notification_channel_ref: Mapped[str] = mapped_column(default="")
    found_message_template: Mapped[str]
    respawn_message_template: Mapped[str]
    layer_notifications_enabled: Mapped[bool] = mapped_column(default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )


class DBBossReport(Base):
    """One row per (tenant, boss). Layers are stored as a JSON list, in layer order."""

    __tablename__ = "boss_reports"
    tenant_id: Mapped[str] = mapped_column(primary_key=True)
    boss_id: Mapped[str] = mapped_column(primary_key=True)
    name: Mapped[str]
    layers: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list)
    total_kills: Mapped[int] = mapped_column(default=0)
    message_ref: Mapped[Optional[str]]
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )


class DBScoutReport(Base):
    """Append-only log of sightings."""

    __tablename__ = "scout_reports"
    __table_args__ = (Index("ix_scout_reports_tenant_boss", "tenant_id", "boss_id"),)
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    tenant_id: Mapped[str]
    boss_id: Mapped[str]
    layer_id: Mapped[str]
    status: Mapped[str]
    reporter_id: Mapped[str]
