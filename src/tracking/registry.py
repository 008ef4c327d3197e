"""
In-memory owner of every tenant's boss state.

One registry is constructed at process start and handed to every component that needs it.
All mutations go through apply_scout_report() (sightings) or reconcile_tenant() (timers).
Each tenant has its own lock, so work on unrelated tenants never waits on each other.
Everything handed out is a copy: callers cannot change the state behind the registry's back.
"""

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Iterable, Iterator, Optional

from src.core.exceptions import TenantNotFoundError, UnknownLayerError, UnknownTenantError
from src.core.shared_types import BossStatus, NotificationKind
from src.tracking.boss_report import BossReport, BossReportSet, empty_report_set
from src.tracking.bosses import LAYERS, boss_by_id
from src.tracking.layer_state import BossLayerState, RespawnClock, parse_status
from src.tracking.respawn import compute_next_respawn

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScoutOutcome:
    """What changed after a sighting, and which notification the platform should post for it."""

    tenant_id: str
    updated_layer: BossLayerState
    notification: NotificationKind
    report: BossReport


@dataclass(frozen=True)
class RespawnTransition:
    tenant_id: str
    boss_id: str
    boss_name: str
    layer: str
    last_scouted_at: Optional[datetime]


@dataclass
class TenantReconciliation:
    """Outcome of running the respawn timers of a single tenant."""

    tenant_id: str
    transitions: list[RespawnTransition] = field(default_factory=list)
    dirty_reports: dict[str, BossReport] = field(default_factory=dict)

    @property
    def is_dirty(self) -> bool:
        return len(self.dirty_reports) > 0


def _snapshot(state: BossReportSet) -> BossReportSet:
    return {boss_id: report.copy() for boss_id, report in state.items()}


def _notification_for(status: BossStatus) -> NotificationKind:
    if status == BossStatus.ALIVE:
        return NotificationKind.FOUND
    return NotificationKind.NONE


class TenantBossRegistry:
    def __init__(self, clock: RespawnClock = compute_next_respawn) -> None:
        self._clock = clock
        self._tenants: dict[str, BossReportSet] = {}
        self._locks: dict[str, threading.Lock] = {}
        # Only protects the two dicts above
        self._guard = threading.Lock()

    # -- Locking --
    @contextmanager
    def locked(self, tenant_id: str, create: bool = True) -> Iterator[None]:
        """Hold the given tenant's lock. With create=False an unknown tenant raises UnknownTenantError."""
        with self._lock_for(tenant_id, create):
            yield

    def _lock_for(self, tenant_id: str, create: bool = True) -> threading.Lock:
        with self._guard:
            # Tenants are never removed, so a known tenant stays known once its lock is handed out
            if not create and tenant_id not in self._tenants:
                raise UnknownTenantError(f"Tenant {tenant_id!r} is not registered.")
            return self._locks.setdefault(tenant_id, threading.Lock())

    def _state(self, tenant_id: str, create: bool) -> BossReportSet:
        """Must be called while holding the tenant's lock."""
        with self._guard:
            state = self._tenants.get(tenant_id)
            if state is None:
                if not create:
                    raise UnknownTenantError(f"Tenant {tenant_id!r} is not registered.")
                state = empty_report_set()
                self._tenants[tenant_id] = state
            return state

    # -- Reads --
    def __contains__(self, tenant_id: object) -> bool:
        with self._guard:
            return tenant_id in self._tenants

    def tenant_ids(self) -> list[str]:
        with self._guard:
            return list(self._tenants.keys())

    def get_or_create(self, tenant_id: str) -> BossReportSet:
        """State for the tenant, materializing the defaults on first contact. Never touches persistence."""
        with self.locked(tenant_id):
            return _snapshot(self._state(tenant_id, create=True))

    def get(self, tenant_id: str) -> BossReportSet:
        """Read-only lookup. Raises TenantNotFoundError instead of creating anything."""
        try:
            with self.locked(tenant_id, create=False):
                return _snapshot(self._state(tenant_id, create=False))
        except UnknownTenantError:
            raise TenantNotFoundError(f"No boss state for tenant {tenant_id!r}.") from None

    def all_tenant_boss_reports(self) -> list[tuple[str, BossReportSet]]:
        """Snapshot of all tenants. Order is unspecified."""
        snapshot = []
        for tenant_id in self.tenant_ids():
            with self.locked(tenant_id):
                snapshot.append((tenant_id, _snapshot(self._state(tenant_id, create=True))))
        return snapshot

    # -- Mutations --
    def load(self, tenant_id: str, reports: Iterable[BossReport]) -> BossReportSet:
        """Seed a tenant with reports read from persistence. Bosses without a stored report keep their defaults."""
        with self.locked(tenant_id):
            state = self._state(tenant_id, create=True)
            for report in reports:
                loaded = report.copy()
                loaded.revision = state[report.boss_id].revision + 1
                state[report.boss_id] = loaded
            return _snapshot(state)

    def apply_scout_report(
        self,
        tenant_id: str,
        boss_id: str,
        layer_id: str,
        new_status: BossStatus | str,
        now: datetime,
        create: bool = True,
    ) -> ScoutOutcome:
        """The single entry point for sightings. Invalid input raises before anything is touched."""

        # Validation
        boss_by_id(boss_id)
        if layer_id not in LAYERS:
            raise UnknownLayerError(f"Unknown layer: {layer_id!r}.")
        status = parse_status(str(new_status))

        with self.locked(tenant_id, create=create):
            report = self._state(tenant_id, create=create)[boss_id]
            layer = report.apply_sighting(layer_id, status, now, self._clock)
            report.revision += 1
            outcome = ScoutOutcome(
                tenant_id=tenant_id,
                updated_layer=replace(layer),
                notification=_notification_for(status),
                report=report.copy(),
            )

        logger.info(
            "applied scout report",
            extra={
                "tenant_id": tenant_id,
                "boss_id": boss_id,
                "layer": layer_id,
                "status": str(status),
            },
        )
        return outcome

    def set_message_ref(
        self, tenant_id: str, boss_id: str, message_ref: Optional[str]
    ) -> BossReport:
        """Remember the handle of the status message posted for this boss."""
        boss_by_id(boss_id)
        with self.locked(tenant_id):
            report = self._state(tenant_id, create=True)[boss_id]
            report.message_ref = message_ref
            report.revision += 1
            return report.copy()

    def reconcile_tenant(self, tenant_id: str, now: datetime) -> TenantReconciliation:
        """Run the respawn timers of every layer of every boss of one tenant."""
        result = TenantReconciliation(tenant_id=tenant_id)
        with self.locked(tenant_id):
            state = self._state(tenant_id, create=True)
            for boss_id, report in state.items():
                respawned = report.respawn_due_layers(now)
                if not respawned:
                    continue
                report.revision += 1
                result.dirty_reports[boss_id] = report.copy()
                result.transitions.extend(
                    RespawnTransition(
                        tenant_id=tenant_id,
                        boss_id=boss_id,
                        boss_name=report.name,
                        layer=layer.layer,
                        last_scouted_at=layer.last_scouted_at,
                    )
                    for layer in respawned
                )
        return result
