"""
Periodic reconciliation: bring killed bosses back to 'unknown' once their respawn timer ran out.

A tick has two steps:
    scan()    - transitions every due layer in memory and works out which writes / notifications are needed (no I/O)
    execute() - performs those writes / notifications
so the transition logic can be tested without any collaborator.
"""

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Optional

from src.core.config import ONE_HOUR
from src.core.exceptions import CollaboratorError
from src.core.shared_types import NotificationKind
from src.db.repository import TrackerRepository
from src.services.effects import (
    BossReportWriter,
    NotificationRequest,
    NotificationSink,
    send_notification,
)
from src.tracking.boss_report import BossReport
from src.tracking.registry import RespawnTransition, TenantBossRegistry
from src.tracking.respawn import as_utc, utc_now
from src.tracking.tenants import TenantConfigDirectory

logger = logging.getLogger(__name__)


@dataclass
class ReconciliationResult:
    now: datetime
    transitions: list[RespawnTransition] = field(default_factory=list)
    # One entry per (tenant, boss) that changed: this is what gets written, never individual layers
    dirty_reports: list[tuple[str, BossReport]] = field(default_factory=list)
    notifications: list[NotificationRequest] = field(default_factory=list)
    failures: list[CollaboratorError] = field(default_factory=list)

    @property
    def notification_requests(self) -> list[tuple[str, NotificationRequest]]:
        return [(request.tenant_id, request) for request in self.notifications]


class ReconciliationScheduler:
    def __init__(
        self,
        registry: TenantBossRegistry,
        configs: TenantConfigDirectory,
        repository: TrackerRepository,
        notifier: NotificationSink,
        interval: float = ONE_HOUR,
        clock: Callable[[], datetime] = utc_now,
        writer: Optional[BossReportWriter] = None,
    ) -> None:
        self.registry = registry
        self.configs = configs
        self.repo = repository
        self.notifier = notifier
        self.interval = interval
        self.clock = clock
        self.writer = writer or BossReportWriter(repository)

        self._lifecycle = threading.Lock()
        self._stopped = threading.Event()
        self._thread: Optional[threading.Thread] = None

    # -- One tick --
    def scan(self, now: datetime) -> ReconciliationResult:
        """Transition every due layer. Tenant settings are read once, at the start of the tick."""
        now = as_utc(now)
        result = ReconciliationResult(now=now)
        configs = self.configs.snapshot()

        for tenant_id in self.registry.tenant_ids():
            tenant = self.registry.reconcile_tenant(tenant_id, now)
            if not tenant.is_dirty:
                continue

            result.transitions.extend(tenant.transitions)
            result.dirty_reports.extend(
                (tenant_id, report) for report in tenant.dirty_reports.values()
            )

            config = configs.get(tenant_id)
            for transition in tenant.transitions:
                logger.info(
                    "boss respawning",
                    extra={
                        "tenant_id": tenant_id,
                        "boss_id": transition.boss_id,
                        "layer": transition.layer,
                    },
                )
                if config is None or not config.wants_respawn_notifications:
                    continue
                result.notifications.append(
                    NotificationRequest(
                        tenant_id=tenant_id,
                        channel_ref=config.notification_channel_ref,
                        text=config.respawn_message(transition.boss_name, transition.layer),
                        kind=NotificationKind.RESPAWN,
                    )
                )
        return result

    def execute(self, result: ReconciliationResult) -> ReconciliationResult:
        """Flush every dirty report once and send the notifications. Failures are collected, not retried."""
        for tenant_id, report in result.dirty_reports:
            failure = self.writer.save(tenant_id, report)
            if failure:
                result.failures.append(failure)

        for request in result.notifications:
            failure = send_notification(self.notifier, request)
            if failure:
                result.failures.append(failure)
        return result

    def run_tick(self, now: Optional[datetime] = None) -> ReconciliationResult:
        return self.execute(self.scan(now if now is not None else self.clock()))

    # -- Background loop --
    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Run a tick every `interval` seconds on a daemon thread. No-op if already running."""
        with self._lifecycle:
            if self.is_running:
                return
            self._stopped = threading.Event()
            self._thread = threading.Thread(
                target=self._run, args=(self._stopped,), name="reconciliation", daemon=True
            )
            self._thread.start()
        logger.info("reconciliation loop started (every %s seconds)", self.interval)

    def stop(self, timeout: Optional[float] = None) -> None:
        """
        Prevent any further tick from starting. A tick already running is allowed to finish.
        Safe to call any number of times.
        """
        with self._lifecycle:
            self._stopped.set()
            thread = self._thread
            self._thread = None
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
            logger.info("reconciliation loop stopped")

    def _run(self, stopped: threading.Event) -> None:
        while not stopped.wait(self.interval):
            try:
                result = self.run_tick()
            except Exception:
                logger.exception("reconciliation tick failed")
                continue
            if result.transitions:
                logger.info(
                    "reconciliation tick: %d respawned, %d failures",
                    len(result.transitions),
                    len(result.failures),
                )
