"""Implementation of TrackerRepository using SQLAlchemy"""

from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Iterator, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from src.core.exceptions import RepositoryError
from src.core.models import (
    BossReportModel,
    LayerModel,
    ScoutReportModel,
    TenantConfigModel,
)
from src.db.schema import DBBossReport, DBScoutReport, DBTenant


def _aware(moment: Optional[datetime]) -> Optional[datetime]:
    """SQLite hands back naive datetimes. Everything stored is UTC."""
    if moment is None:
        return None
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


def _encode_time(moment: Optional[datetime]) -> Optional[str]:
    return moment.isoformat() if moment else None


def _decode_time(value: Optional[str]) -> Optional[datetime]:
    return _aware(datetime.fromisoformat(value)) if value else None


class SQLTrackerRepository:
    """Data stored using SQL / methods implemented using SQLAlchemy"""

    def __init__(self, db_session: Session) -> None:
        self.db = db_session

    # -- Boss reports --
    def load_boss_report(self, tenant_id: str, boss_id: str) -> BossReportModel | None:
        """Latest stored report for this tenant's boss, if any."""
        with self._errors_as("load_boss_report", tenant_id):
            report_db = self._fetch_report(tenant_id, boss_id)
            if report_db:
                return self._report_to_model(report_db)
            return None

    def save_boss_report(
        self, tenant_id: str, boss_id: str, report: BossReportModel
    ) -> BossReportModel:
        """Insert or overwrite the stored report."""
        with self._errors_as("save_boss_report", tenant_id):
            report_db = self._fetch_report(tenant_id, boss_id)
            if report_db is None:
                report_db = DBBossReport(tenant_id=tenant_id, boss_id=boss_id)
                self.db.add(report_db)
            report_db.name = report.name
            report_db.layers = [self._encode_layer(layer) for layer in report.layers]
            report_db.total_kills = report.total_kills
            report_db.message_ref = report.message_ref
            self.db.commit()
            self.db.refresh(report_db)
            return self._report_to_model(report_db)

    def total_kills_by_tenant(self) -> dict[str, int]:
        """Sum of kill counters over all bosses, per tenant."""
        query = select(DBBossReport.tenant_id, func.sum(DBBossReport.total_kills)).group_by(
            DBBossReport.tenant_id
        )
        with self._errors_as("total_kills_by_tenant"):
            return {tenant_id: int(total or 0) for tenant_id, total in self.db.execute(query)}

    # -- Scout reports --
    def append_scout_report(self, report: ScoutReportModel) -> None:
        """Add an immutable sighting record."""
        with self._errors_as("append_scout_report", report.tenant_id):
            self.db.add(
                DBScoutReport(
                    timestamp=report.timestamp,
                    tenant_id=report.tenant_id,
                    boss_id=report.boss_id,
                    layer_id=report.layer_id,
                    status=report.status,
                    reporter_id=report.reporter_id,
                )
            )
            self.db.commit()

    def latest_scout_reports(
        self, tenant_id: str, boss_id: str
    ) -> dict[str, ScoutReportModel]:
        """Most recent sighting per layer for this tenant's boss."""
        query = (
            select(DBScoutReport)
            .where(DBScoutReport.tenant_id == tenant_id, DBScoutReport.boss_id == boss_id)
            .order_by(DBScoutReport.timestamp.desc(), DBScoutReport.id.desc())
        )
        latest: dict[str, ScoutReportModel] = {}
        with self._errors_as("latest_scout_reports", tenant_id):
            for row in self.db.scalars(query):
                if row.layer_id not in latest:
                    latest[row.layer_id] = self._scout_to_model(row)
        return latest

    # -- Tenants --
    def load_tenant_config(self, tenant_id: str) -> TenantConfigModel | None:
        """Get a tenant's settings, if stored."""
        with self._errors_as("load_tenant_config", tenant_id):
            tenant_db = self.db.get(DBTenant, tenant_id)
            if tenant_db:
                return self._tenant_to_model(tenant_db)
            return None

    def save_tenant_config(self, config: TenantConfigModel) -> TenantConfigModel:
        """Insert or overwrite a tenant's settings."""
        with self._errors_as("save_tenant_config", config.tenant_id):
            tenant_db = self.db.get(DBTenant, config.tenant_id)
            if tenant_db is None:
                tenant_db = DBTenant(tenant_id=config.tenant_id)
                self.db.add(tenant_db)
            tenant_db.notification_channel_ref = config.notification_channel_ref
            tenant_db.found_message_template = config.found_message_template
            tenant_db.respawn_message_template = config.respawn_message_template
            tenant_db.layer_notifications_enabled = config.layer_notifications_enabled
            self.db.commit()
            self.db.refresh(tenant_db)
            return self._tenant_to_model(tenant_db)

    def all_tenant_configs(self) -> list[TenantConfigModel]:
        """Every stored tenant."""
        query = select(DBTenant).order_by(DBTenant.tenant_id)
        with self._errors_as("all_tenant_configs"):
            return [self._tenant_to_model(tenant_db) for tenant_db in self.db.scalars(query)]

    # -- Internal helpers --
    @contextmanager
    def _errors_as(self, operation: str, tenant_id: Optional[str] = None) -> Iterator[None]:
        """Any database failure inside the block rolls the session back and is raised as RepositoryError."""
        try:
            yield
        except SQLAlchemyError as e:
            self.db.rollback()
            raise RepositoryError(
                f"{operation} failed: {e}", operation=operation, tenant_id=tenant_id
            ) from e

    def _fetch_report(self, tenant_id: str, boss_id: str) -> DBBossReport | None:
        query = select(DBBossReport).where(
            DBBossReport.tenant_id == tenant_id, DBBossReport.boss_id == boss_id
        )
        return self.db.scalar(query)

    def _encode_layer(self, layer: LayerModel) -> dict[str, Any]:
        return {
            "layer": layer.layer,
            "status": layer.status,
            "last_scouted_at": _encode_time(layer.last_scouted_at),
            "next_respawn_at": _encode_time(layer.next_respawn_at),
        }

    def _report_to_model(self, report_db: DBBossReport) -> BossReportModel:
        """Convert SQLAlchemy model to data transfer model."""
        return BossReportModel(
            boss_id=report_db.boss_id,
            name=report_db.name,
            layers=[
                LayerModel(
                    layer=layer["layer"],
                    status=layer["status"],
                    last_scouted_at=_decode_time(layer.get("last_scouted_at")),
                    next_respawn_at=_decode_time(layer.get("next_respawn_at")),
                )
                for layer in report_db.layers
            ],
            total_kills=report_db.total_kills,
            message_ref=report_db.message_ref,
        )

    def _scout_to_model(self, report_db: DBScoutReport) -> ScoutReportModel:
        return ScoutReportModel(
            timestamp=_aware(report_db.timestamp),
            tenant_id=report_db.tenant_id,
            boss_id=report_db.boss_id,
            layer_id=report_db.layer_id,
            status=report_db.status,
            reporter_id=report_db.reporter_id,
        )

    def _tenant_to_model(self, tenant_db: DBTenant) -> TenantConfigModel:
        return TenantConfigModel(
            tenant_id=tenant_db.tenant_id,
            notification_channel_ref=tenant_db.notification_channel_ref,
            found_message_template=tenant_db.found_message_template,
            respawn_message_template=tenant_db.respawn_message_template,
            layer_notifications_enabled=tenant_db.layer_notifications_enabled,
        )
