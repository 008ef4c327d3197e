"""Protocol repository: the persistence contract the services depend on (implemented with SQLAlchemy in sql_repository.py)"""

from typing import Protocol

from src.core.models import BossReportModel, ScoutReportModel, TenantConfigModel


class TrackerRepository(Protocol):
    """Persistence layer orchestration"""

    # -- Boss reports --
    def load_boss_report(self, tenant_id: str, boss_id: str) -> BossReportModel | None:
        """Latest stored report for this tenant's boss, if any."""
        ...

    def save_boss_report(
        self, tenant_id: str, boss_id: str, report: BossReportModel
    ) -> BossReportModel:
        """Insert or overwrite the stored report."""
        ...

    def total_kills_by_tenant(self) -> dict[str, int]:
        """Sum of kill counters over all bosses, per tenant."""
        ...

    # -- Scout reports --
    def append_scout_report(self, report: ScoutReportModel) -> None:
        """Add an immutable sighting record."""
        ...

    def latest_scout_reports(
        self, tenant_id: str, boss_id: str
    ) -> dict[str, ScoutReportModel]:
        """Most recent sighting per layer for this tenant's boss."""
        ...

    # -- Tenants --
    def load_tenant_config(self, tenant_id: str) -> TenantConfigModel | None:
        """Get a tenant's settings, if stored."""
        ...

    def save_tenant_config(self, config: TenantConfigModel) -> TenantConfigModel:
        """Insert or overwrite a tenant's settings."""
        ...

    def all_tenant_configs(self) -> list[TenantConfigModel]:
        """Every stored tenant."""
        ...
