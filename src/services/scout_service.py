"""Handling of a single scout report ('sighting') submitted by a human."""

import logging
from datetime import datetime
from typing import Callable, Optional

from src.api.models import (
    CollaboratorFailure,
    LayerResponse,
    ScoutSubmissionRequest,
    ScoutSubmissionResponse,
)
from src.core.exceptions import CollaboratorError
from src.core.models import ScoutReportModel
from src.core.shared_types import NotificationKind
from src.db.repository import TrackerRepository
from src.services.effects import (
    BossReportWriter,
    NotificationRequest,
    NotificationSink,
    append_scout_report,
    send_notification,
)
from src.tracking.registry import ScoutOutcome, TenantBossRegistry
from src.tracking.respawn import as_utc, utc_now
from src.tracking.tenants import TenantConfigDirectory

logger = logging.getLogger(__name__)


def to_failure(error: CollaboratorError) -> CollaboratorFailure:
    return CollaboratorFailure(
        operation=error.operation, tenant_id=error.tenant_id, message=str(error)
    )


class ScoutSubmissionProcessor:
    """Validates a sighting, applies it, then asks the collaborators to notify / persist."""

    def __init__(
        self,
        registry: TenantBossRegistry,
        configs: TenantConfigDirectory,
        repository: TrackerRepository,
        notifier: NotificationSink,
        clock: Callable[[], datetime] = utc_now,
        writer: Optional[BossReportWriter] = None,
    ) -> None:
        self.registry = registry
        self.configs = configs
        self.repo = repository
        self.notifier = notifier
        self.clock = clock
        self.writer = writer or BossReportWriter(repository)

    def submit(
        self, request: ScoutSubmissionRequest, now: Optional[datetime] = None
    ) -> ScoutSubmissionResponse:
        """
        Order matters only for the in-memory update: it is complete before anything is sent or written.
        The notification and the two writes are independent of each other.
        """
        now = as_utc(now) if now is not None else self.clock()

        # Mutate the in-memory state (raises on invalid input, before anything changed)
        outcome = self.registry.apply_scout_report(
            tenant_id=request.tenant_id,
            boss_id=request.boss_id,
            layer_id=request.layer_label,
            new_status=request.status,
            now=now,
        )

        failures: list[CollaboratorError] = []

        # Tell the tenant the boss was found
        notification = self._found_notification(request, outcome)
        if notification is not None:
            failure = send_notification(self.notifier, notification)
            if failure:
                failures.append(failure)

        # Persist the full report, and log the sighting itself
        failure = self.writer.save(request.tenant_id, outcome.report)
        if failure:
            failures.append(failure)
        logger.info("updated boss report", extra={"tenant_id": request.tenant_id})

        failure = append_scout_report(
            self.repo,
            ScoutReportModel(
                timestamp=now,
                tenant_id=request.tenant_id,
                boss_id=request.boss_id,
                layer_id=str(request.layer),
                status=str(request.status),
                reporter_id=request.reporter_id,
            ),
        )
        if failure:
            failures.append(failure)

        return ScoutSubmissionResponse(
            tenant_id=request.tenant_id,
            boss_id=request.boss_id,
            layer=LayerResponse.from_state(outcome.updated_layer),
            total_kills=outcome.report.total_kills,
            notification=outcome.notification,
            notification_text=notification.text if notification else None,
            failures=[to_failure(f) for f in failures],
        )

    def _found_notification(
        self, request: ScoutSubmissionRequest, outcome: ScoutOutcome
    ) -> Optional[NotificationRequest]:
        if outcome.notification != NotificationKind.FOUND:
            return None

        config = self.configs.get(request.tenant_id)
        if config is None:
            logger.error(
                "cannot post found message: tenant has no configuration",
                extra={"tenant_id": request.tenant_id},
            )
            return None

        channel_ref = config.notification_channel_ref or request.source_channel_ref
        if not channel_ref:
            logger.error(
                "cannot post found message: no channel to post to",
                extra={"tenant_id": request.tenant_id},
            )
            return None

        return NotificationRequest(
            tenant_id=request.tenant_id,
            channel_ref=channel_ref,
            text=config.found_message(outcome.report.name, outcome.updated_layer.layer),
            kind=NotificationKind.FOUND,
        )
