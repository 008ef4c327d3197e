"""Unit tests for src/db/sql_repository.py"""

from datetime import datetime, timedelta, timezone
from typing import Callable

import pytest
from sqlalchemy import StaticPool, create_engine
from sqlalchemy.orm import Session, sessionmaker

from src.core.exceptions import RepositoryError
from src.core.models import (
    BossReportModel,
    LayerModel,
    ScoutReportModel,
    TenantConfigModel,
)
from src.db.sql_repository import SQLTrackerRepository

KILLED_AT = datetime(2024, 1, 3, 12, 0, tzinfo=timezone.utc)


def make_report(total_kills: int = 2, message_ref: str | None = None) -> BossReportModel:
    return BossReportModel(
        boss_id="kazzy",
        name="Lord Kazzak",
        layers=[
            LayerModel(layer="Layer 1", status="unknown"),
            LayerModel(
                layer="Layer 2",
                status="defeated",
                last_scouted_at=KILLED_AT,
                next_respawn_at=KILLED_AT + timedelta(hours=72),
            ),
        ],
        total_kills=total_kills,
        message_ref=message_ref,
    )


def scout_report(layer_id: str, minutes: int, status: str = "dead") -> ScoutReportModel:
    return ScoutReportModel(
        timestamp=KILLED_AT + timedelta(minutes=minutes),
        tenant_id="guild-1",
        boss_id="kazzy",
        layer_id=layer_id,
        status=status,
        reporter_id="scout-1",
    )


# --- BOSS REPORTS ---
def test_save_and_load_boss_report(db_session_repo: Session) -> None:
    repo = SQLTrackerRepository(db_session_repo)
    stored = repo.save_boss_report("guild-1", "kazzy", make_report())
    assert stored == make_report()

    loaded = repo.load_boss_report("guild-1", "kazzy")
    assert loaded == make_report()
    # Timestamps come back timezone aware
    assert loaded is not None
    assert loaded.layers[1].next_respawn_at == KILLED_AT + timedelta(hours=72)
    assert loaded.layers[1].next_respawn_at.tzinfo is not None


def test_load_unknown_boss_report(db_session_repo: Session) -> None:
    repo = SQLTrackerRepository(db_session_repo)
    assert repo.load_boss_report("guild-1", "kazzy") is None

    repo.save_boss_report("guild-1", "kazzy", make_report())
    assert repo.load_boss_report("guild-1", "azzy") is None
    assert repo.load_boss_report("guild-2", "kazzy") is None


def test_save_overwrites(db_session_repo: Session) -> None:
    repo = SQLTrackerRepository(db_session_repo)
    repo.save_boss_report("guild-1", "kazzy", make_report(total_kills=1))
    repo.save_boss_report(
        "guild-1", "kazzy", make_report(total_kills=5, message_ref="msg-1")
    )

    loaded = repo.load_boss_report("guild-1", "kazzy")
    assert loaded is not None
    assert loaded.total_kills == 5
    assert loaded.message_ref == "msg-1"


def test_total_kills_by_tenant(db_session_repo: Session) -> None:
    repo = SQLTrackerRepository(db_session_repo)
    repo.save_boss_report("guild-1", "kazzy", make_report(total_kills=2))
    azzy = make_report(total_kills=3)
    azzy.boss_id, azzy.name = "azzy", "Azuregos"
    repo.save_boss_report("guild-1", "azzy", azzy)
    repo.save_boss_report("guild-2", "kazzy", make_report(total_kills=0))

    assert repo.total_kills_by_tenant() == {"guild-1": 5, "guild-2": 0}


# --- SCOUT REPORTS ---
def test_latest_scout_reports(db_session_repo: Session) -> None:
    repo = SQLTrackerRepository(db_session_repo)
    repo.append_scout_report(scout_report("1", minutes=0))
    repo.append_scout_report(scout_report("1", minutes=10, status="defeated"))
    repo.append_scout_report(scout_report("2", minutes=5, status="alive"))

    latest = repo.latest_scout_reports("guild-1", "kazzy")
    assert set(latest) == {"1", "2"}
    assert latest["1"].status == "defeated"
    assert latest["1"].timestamp == KILLED_AT + timedelta(minutes=10)
    assert latest["2"].status == "alive"

    assert repo.latest_scout_reports("guild-1", "azzy") == {}


# --- TENANTS ---
def test_tenant_config(db_session_repo: Session) -> None:
    repo = SQLTrackerRepository(db_session_repo)
    config = TenantConfigModel(
        tenant_id="guild-1",
        notification_channel_ref="scouting",
        found_message_template="%BOSS% up",
        respawn_message_template="%BOSS% soon",
        layer_notifications_enabled=True,
    )
    assert repo.load_tenant_config("guild-1") is None
    assert repo.save_tenant_config(config) == config
    assert repo.load_tenant_config("guild-1") == config

    config.layer_notifications_enabled = False
    repo.save_tenant_config(config)
    loaded = repo.load_tenant_config("guild-1")
    assert loaded is not None
    assert loaded.layer_notifications_enabled is False

    repo.save_tenant_config(
        TenantConfigModel(
            tenant_id="guild-0",
            found_message_template="a",
            respawn_message_template="b",
        )
    )
    assert [c.tenant_id for c in repo.all_tenant_configs()] == ["guild-0", "guild-1"]


def test_failed_commit_raises_repository_error(db_session_repo: Session) -> None:
    """Missing NOT NULL columns make the insert fail: surfaced as RepositoryError, session still usable."""
    repo = SQLTrackerRepository(db_session_repo)
    broken = TenantConfigModel(tenant_id="guild-1")
    broken.found_message_template = None  # type: ignore[assignment]

    with pytest.raises(RepositoryError) as error:
        repo.save_tenant_config(broken)
    assert error.value.operation == "save_tenant_config"

    assert repo.load_tenant_config("guild-2") is None


def test_read_failures_raise_repository_error() -> None:
    """A database without the tracker's tables: every read fails, and fails as RepositoryError."""
    empty_engine = create_engine("sqlite://", poolclass=StaticPool)
    db = sessionmaker(bind=empty_engine)()
    repo = SQLTrackerRepository(db)
    reads: dict[str, Callable[[], object]] = {
        "load_boss_report": lambda: repo.load_boss_report("guild-1", "kazzy"),
        "total_kills_by_tenant": repo.total_kills_by_tenant,
        "latest_scout_reports": lambda: repo.latest_scout_reports("guild-1", "kazzy"),
        "load_tenant_config": lambda: repo.load_tenant_config("guild-1"),
        "all_tenant_configs": repo.all_tenant_configs,
    }
    try:
        for operation, read in reads.items():
            with pytest.raises(RepositoryError) as error:
                read()
            assert error.value.operation == operation
    finally:
        db.close()
        empty_engine.dispose()
