"""
Pytest will auto-discover / import this file called 'conftest.py'.
This file defines fixtures/variables required for testing multiple layers.
"""

from datetime import datetime, timezone
from typing import Callable, Generator, Optional

import pytest
from sqlalchemy import StaticPool, create_engine
from sqlalchemy.orm import Session, sessionmaker

from src.core.models import BossReportModel, ScoutReportModel, TenantConfigModel
from src.db.schema import Base
from src.tracking.registry import TenantBossRegistry
from src.tracking.tenants import TenantConfig, TenantConfigDirectory

# Setup an in-memory SQLite database for testing
DATABASE_URL = "sqlite:///:memory:"
engine = create_engine(
    DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = sessionmaker(autoflush=False, bind=engine)

# Wednesday, nowhere near a weekly reset
WEDNESDAY_NOON = datetime(2024, 1, 3, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def db_session_repo() -> Generator[Session, None, None]:
    """Connection to a test database. Tables are removed at teardown to make unit tests of repository independent of each other."""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        Base.metadata.drop_all(bind=engine)
        db.close()


# --- MOCK COLLABORATORS ----
class MockRepository:
    """Mock the TrackerRepository using dictionaries. Operations named in `fail_on` raise."""

    def __init__(self) -> None:
        self.reports: dict[tuple[str, str], BossReportModel] = {}
        self.scout_reports: list[ScoutReportModel] = []
        self.configs: dict[str, TenantConfigModel] = {}
        self.save_calls: list[tuple[str, str]] = []
        self.fail_on: set[str] = set()

    def _maybe_fail(self, operation: str) -> None:
        if operation in self.fail_on:
            raise RuntimeError(f"{operation} is down")

    def load_boss_report(self, tenant_id: str, boss_id: str) -> BossReportModel | None:
        return self.reports.get((tenant_id, boss_id))

    def save_boss_report(
        self, tenant_id: str, boss_id: str, report: BossReportModel
    ) -> BossReportModel:
        self.save_calls.append((tenant_id, boss_id))
        self._maybe_fail("save_boss_report")
        self.reports[(tenant_id, boss_id)] = report
        return report

    def total_kills_by_tenant(self) -> dict[str, int]:
        totals: dict[str, int] = {}
        for (tenant_id, _), report in self.reports.items():
            totals[tenant_id] = totals.get(tenant_id, 0) + report.total_kills
        return totals

    def append_scout_report(self, report: ScoutReportModel) -> None:
        self._maybe_fail("append_scout_report")
        self.scout_reports.append(report)

    def latest_scout_reports(
        self, tenant_id: str, boss_id: str
    ) -> dict[str, ScoutReportModel]:
        latest: dict[str, ScoutReportModel] = {}
        for report in self.scout_reports:
            if report.tenant_id == tenant_id and report.boss_id == boss_id:
                latest[report.layer_id] = report
        return latest

    def load_tenant_config(self, tenant_id: str) -> TenantConfigModel | None:
        return self.configs.get(tenant_id)

    def save_tenant_config(self, config: TenantConfigModel) -> TenantConfigModel:
        self._maybe_fail("save_tenant_config")
        self.configs[config.tenant_id] = config
        return config

    def all_tenant_configs(self) -> list[TenantConfigModel]:
        return list(self.configs.values())


class MockNotifier:
    """Mock the chat platform. Records every message. `on_send` is called before recording."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, str, str]] = []
        self.succeed = True
        self.on_send: Optional[Callable[[str, str, str], None]] = None

    def send_notification(self, tenant_id: str, channel_ref: str, text: str) -> bool:
        if self.on_send is not None:
            self.on_send(tenant_id, channel_ref, text)
        self.sent.append((tenant_id, channel_ref, text))
        return self.succeed


@pytest.fixture
def mock_repository() -> MockRepository:
    return MockRepository()


@pytest.fixture
def mock_notifier() -> MockNotifier:
    return MockNotifier()


@pytest.fixture
def registry() -> TenantBossRegistry:
    return TenantBossRegistry()


@pytest.fixture
def configs() -> TenantConfigDirectory:
    """One tenant ('guild-1') with a notification channel and notifications switched on."""
    directory = TenantConfigDirectory()
    directory.put(TenantConfig(tenant_id="guild-1", notification_channel_ref="scouting"))
    return directory
