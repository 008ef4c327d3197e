"""
Entry point into the tracker for the chat platform layer.

Orchestrates the domain layer (src/tracking), the two processes built on it (scout submissions and
reconciliation) and persistence. Constructed once at process start.
"""

import logging
from datetime import datetime
from typing import Callable, Optional

from src.api.models import (
    BossReportResponse,
    ScoutSubmissionRequest,
    ScoutSubmissionResponse,
    SetChannelRequest,
    SetMessageRefRequest,
    SetMessageRequest,
    TenantConfigResponse,
    TenantRequest,
    TenantStateResponse,
)
from src.core.config import Settings, get_settings
from src.core.exceptions import UnknownTenantError
from src.core.models import ScoutReportModel
from src.db.repository import TrackerRepository
from src.services.effects import BossReportWriter, NotificationSink, save_tenant_config
from src.services.reconciliation import ReconciliationResult, ReconciliationScheduler
from src.services.scout_service import ScoutSubmissionProcessor
from src.tracking.boss_report import BossReport
from src.tracking.bosses import BOSSES, boss_by_id
from src.tracking.formatting import format_boss_status
from src.tracking.registry import TenantBossRegistry
from src.tracking.respawn import utc_now
from src.tracking.tenants import TenantConfig, TenantConfigDirectory

logger = logging.getLogger(__name__)


def _config_response(config: TenantConfig) -> TenantConfigResponse:
    return TenantConfigResponse(
        tenant_id=config.tenant_id,
        notification_channel_ref=config.notification_channel_ref,
        found_message_template=config.found_message_template,
        respawn_message_template=config.respawn_message_template,
        layer_notifications_enabled=config.layer_notifications_enabled,
    )


class BossTrackerService:
    """Orchestration of layers for the boss tracker."""

    def __init__(
        self,
        repository: TrackerRepository,
        notifier: NotificationSink,
        settings: Optional[Settings] = None,
        registry: Optional[TenantBossRegistry] = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.settings = settings or get_settings()
        self.repo = repository
        self.registry = registry or TenantBossRegistry()
        self.configs = TenantConfigDirectory()
        # Shared, so saves from scouting, reconciliation and admin commands are ordered together
        self.writer = BossReportWriter(repository)
        self.scouting = ScoutSubmissionProcessor(
            self.registry, self.configs, repository, notifier, clock=clock, writer=self.writer
        )
        self.scheduler = ReconciliationScheduler(
            self.registry,
            self.configs,
            repository,
            notifier,
            interval=self.settings.reconcile_interval_seconds,
            clock=clock,
            writer=self.writer,
        )

    # -- Lifecycle --
    def load_from_repository(self) -> int:
        """Read every stored tenant and its boss reports into memory. Returns the number of tenants."""
        tenants = self.repo.all_tenant_configs()
        logger.info("initializing %d tenants...", len(tenants))
        for model in tenants:
            self.configs.put(TenantConfig.from_model(model))
            reports = []
            for boss in BOSSES:
                stored = self.repo.load_boss_report(model.tenant_id, boss.id)
                if stored is not None:
                    reports.append(BossReport.from_model(stored))
            self.registry.load(model.tenant_id, reports)
        logger.info("loaded boss reports")
        return len(tenants)

    def start(self) -> None:
        self.scheduler.start()

    def stop(self) -> None:
        self.scheduler.stop()

    # -- Inbound events --
    def submit_scout_report(
        self, request: ScoutSubmissionRequest, now: Optional[datetime] = None
    ) -> ScoutSubmissionResponse:
        """Someone reported a boss as alive / dead / defeated / unknown on a layer."""
        return self.scouting.submit(request, now)

    def run_reconciliation_tick(
        self, now: Optional[datetime] = None
    ) -> ReconciliationResult:
        """Run a single reconciliation pass right away (the background loop does the same every interval)."""
        return self.scheduler.run_tick(now)

    def get_or_create_tenant_state(self, request: TenantRequest) -> TenantStateResponse:
        reports = self.registry.get_or_create(request.tenant_id)
        return TenantStateResponse.from_reports(request.tenant_id, reports)

    def get_tenant_state(self, request: TenantRequest) -> TenantStateResponse:
        """Like get_or_create_tenant_state(), but raises TenantNotFoundError for unknown tenants."""
        reports = self.registry.get(request.tenant_id)
        return TenantStateResponse.from_reports(request.tenant_id, reports)

    # -- Tenant administration --
    def register_tenant(self, request: TenantRequest) -> TenantConfigResponse:
        """The bot joined a new tenant. Registering an already known tenant changes nothing."""
        existing = self.configs.get(request.tenant_id)
        if existing is not None:
            return _config_response(existing)

        config = TenantConfig(
            tenant_id=request.tenant_id,
            found_message_template=self.settings.default_found_message,
            respawn_message_template=self.settings.default_respawn_message,
        )
        self.configs.put(config)
        self.registry.get_or_create(request.tenant_id)
        logger.info("new tenant", extra={"tenant_id": request.tenant_id})
        self._persist_config(config)
        return _config_response(config)

    def toggle_layer_notifications(self, request: TenantRequest) -> TenantConfigResponse:
        current = self._config(request.tenant_id)
        config = self.configs.update(
            request.tenant_id,
            layer_notifications_enabled=not current.layer_notifications_enabled,
        )
        self._persist_config(config)
        return _config_response(config)

    def set_notification_channel(self, request: SetChannelRequest) -> bool:
        """Returns False if the channel already was the notification channel."""
        current = self._config(request.tenant_id)
        if current.notification_channel_ref == request.channel_ref:
            return False
        config = self.configs.update(
            request.tenant_id, notification_channel_ref=request.channel_ref
        )
        self._persist_config(config)
        return True

    def set_found_message(self, request: SetMessageRequest) -> TenantConfigResponse:
        config = self.configs.update(
            request.tenant_id, found_message_template=request.template
        )
        self._persist_config(config)
        return _config_response(config)

    def set_respawn_message(self, request: SetMessageRequest) -> TenantConfigResponse:
        config = self.configs.update(
            request.tenant_id, respawn_message_template=request.template
        )
        self._persist_config(config)
        return _config_response(config)

    def set_message_ref(self, request: SetMessageRefRequest) -> BossReportResponse:
        """
        Remember which posted message shows this boss's status, so the platform can edit that one
        instead of searching the channel for it.
        """
        report = self.registry.set_message_ref(
            request.tenant_id, request.boss_id, request.message_ref
        )
        failure = self.writer.save(request.tenant_id, report)
        if failure:
            raise failure
        return BossReportResponse.from_report(report)

    # -- Reads --
    def status_board(self, tenant_id: str, boss_id: str) -> str:
        """Text of the scouting message for one boss."""
        boss = boss_by_id(boss_id)
        reports = self.registry.get_or_create(tenant_id)
        return format_boss_status(reports[boss.id])

    def total_kills(self) -> dict[str, int]:
        return self.repo.total_kills_by_tenant()

    def latest_scout_reports(
        self, tenant_id: str, boss_id: str
    ) -> dict[str, ScoutReportModel]:
        return self.repo.latest_scout_reports(tenant_id, boss_by_id(boss_id).id)

    # -- Internal helpers --
    def _config(self, tenant_id: str) -> TenantConfig:
        config = self.configs.get(tenant_id)
        if config is None:
            raise UnknownTenantError(f"Tenant {tenant_id!r} is not registered.")
        return config

    def _persist_config(self, config: TenantConfig) -> None:
        """In-memory settings are already updated. A failed write is raised so the caller can retry it."""
        failure = save_tenant_config(self.repo, config.to_model())
        if failure:
            raise failure
