"""
Calls into the collaborators (chat platform, persistence) on behalf of the services.

Every call is made once. A failure is logged and handed back as a CollaboratorError so the caller can
decide to retry that specific call. It never touches the in-memory state that was already updated.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Optional, Protocol

from src.core.exceptions import CollaboratorError, NotificationError, RepositoryError
from src.core.models import ScoutReportModel, TenantConfigModel
from src.core.shared_types import NotificationKind
from src.db.repository import TrackerRepository
from src.tracking.boss_report import BossReport

logger = logging.getLogger(__name__)


class NotificationSink(Protocol):
    """The chat platform, as far as the tracker is concerned."""

    def send_notification(self, tenant_id: str, channel_ref: str, text: str) -> bool:
        """Post text to a channel. Returns False (or raises) if it could not be delivered."""
        ...


@dataclass(frozen=True)
class NotificationRequest:
    tenant_id: str
    channel_ref: str
    text: str
    kind: NotificationKind


def _attempt(
    operation: str,
    tenant_id: str,
    error_type: type[CollaboratorError],
    call: Callable[[], object],
) -> Optional[CollaboratorError]:
    try:
        call()
    except Exception as e:
        logger.exception(
            "%s failed", operation, extra={"tenant_id": tenant_id, "operation": operation}
        )
        if isinstance(e, CollaboratorError):
            return e
        return error_type(str(e), operation=operation, tenant_id=tenant_id)
    return None


def send_notification(
    sink: NotificationSink, request: NotificationRequest
) -> Optional[CollaboratorError]:
    def _send() -> None:
        if not sink.send_notification(request.tenant_id, request.channel_ref, request.text):
            raise NotificationError(
                f"Could not deliver notification to channel {request.channel_ref!r}.",
                operation="send_notification",
                tenant_id=request.tenant_id,
            )

    return _attempt("send_notification", request.tenant_id, NotificationError, _send)


class BossReportWriter:
    """
    Writes boss report snapshots taken from the registry.

    Snapshots are written outside the tenant lock, so two of them can race to the repository.
    Writes for one (tenant, boss) are serialized, and a snapshot with a lower revision than the last
    one written is dropped: storage never moves back to an older state.
    One writer must be shared by everything that saves reports.
    """

    def __init__(self, repository: TrackerRepository) -> None:
        self.repo = repository
        self._guard = threading.Lock()
        self._locks: dict[tuple[str, str], threading.Lock] = {}
        self._written: dict[tuple[str, str], int] = {}

    def _lock_for(self, key: tuple[str, str]) -> threading.Lock:
        with self._guard:
            return self._locks.setdefault(key, threading.Lock())

    def save(self, tenant_id: str, report: BossReport) -> Optional[CollaboratorError]:
        key = (tenant_id, report.boss_id)
        with self._lock_for(key):
            written = self._written.get(key)
            if written is not None and report.revision < written:
                logger.info(
                    "skipped outdated boss report (revision %d, stored %d)",
                    report.revision,
                    written,
                    extra={"tenant_id": tenant_id, "boss_id": report.boss_id},
                )
                return None

            failure = _attempt(
                "save_boss_report",
                tenant_id,
                RepositoryError,
                lambda: self.repo.save_boss_report(tenant_id, report.boss_id, report.to_model()),
            )
            if failure is None:
                self._written[key] = report.revision
            return failure


def append_scout_report(
    repository: TrackerRepository, record: ScoutReportModel
) -> Optional[CollaboratorError]:
    return _attempt(
        "append_scout_report",
        record.tenant_id,
        RepositoryError,
        lambda: repository.append_scout_report(record),
    )


def save_tenant_config(
    repository: TrackerRepository, config: TenantConfigModel
) -> Optional[CollaboratorError]:
    return _attempt(
        "save_tenant_config",
        config.tenant_id,
        RepositoryError,
        lambda: repository.save_tenant_config(config),
    )
