"""
Tenant (guild) settings as the tracker sees them.

The platform owns these settings; the tracker keeps the latest copy in memory so the
reconciliation loop does not need to hit persistence on every tick.
"""

import threading
from dataclasses import dataclass, replace
from typing import Any, Optional, Self

from src.core.config import DEFAULT_FOUND_MESSAGE, DEFAULT_RESPAWN_MESSAGE
from src.core.exceptions import UnknownTenantError
from src.core.models import TenantConfigModel
from src.tracking.bosses import layer_number

BOSS_PLACEHOLDER = "%BOSS%"
LAYER_PLACEHOLDER = "%LAYER%"


def fill_template(template: str, boss_name: str, layer: str) -> str:
    """Substitute every %BOSS% / %LAYER% placeholder. The layer is shown as its number ('Layer 3' -> '3')."""
    return template.replace(BOSS_PLACEHOLDER, boss_name).replace(
        LAYER_PLACEHOLDER, str(layer_number(layer))
    )


@dataclass(frozen=True)
class TenantConfig:
    tenant_id: str
    notification_channel_ref: str = ""
    found_message_template: str = DEFAULT_FOUND_MESSAGE
    respawn_message_template: str = DEFAULT_RESPAWN_MESSAGE
    layer_notifications_enabled: bool = True

    @classmethod
    def from_model(cls, model: TenantConfigModel) -> Self:
        return cls(
            tenant_id=model.tenant_id,
            notification_channel_ref=model.notification_channel_ref or "",
            found_message_template=model.found_message_template,
            respawn_message_template=model.respawn_message_template,
            layer_notifications_enabled=model.layer_notifications_enabled,
        )

    def to_model(self) -> TenantConfigModel:
        return TenantConfigModel(
            tenant_id=self.tenant_id,
            notification_channel_ref=self.notification_channel_ref,
            found_message_template=self.found_message_template,
            respawn_message_template=self.respawn_message_template,
            layer_notifications_enabled=self.layer_notifications_enabled,
        )

    @property
    def has_channel(self) -> bool:
        return bool(self.notification_channel_ref)

    @property
    def wants_respawn_notifications(self) -> bool:
        return self.layer_notifications_enabled and self.has_channel

    def found_message(self, boss_name: str, layer: str) -> str:
        return fill_template(self.found_message_template, boss_name, layer)

    def respawn_message(self, boss_name: str, layer: str) -> str:
        return fill_template(self.respawn_message_template, boss_name, layer)


class TenantConfigDirectory:
    """Thread-safe, in-memory copy of every known tenant's settings."""

    def __init__(self) -> None:
        self._configs: dict[str, TenantConfig] = {}
        self._lock = threading.Lock()

    def __contains__(self, tenant_id: object) -> bool:
        with self._lock:
            return tenant_id in self._configs

    def get(self, tenant_id: str) -> Optional[TenantConfig]:
        with self._lock:
            return self._configs.get(tenant_id)

    def put(self, config: TenantConfig) -> None:
        with self._lock:
            self._configs[config.tenant_id] = config

    def update(self, tenant_id: str, **changes: Any) -> TenantConfig:
        """Change some settings of a known tenant. Raises UnknownTenantError for tenants never registered."""
        with self._lock:
            current = self._configs.get(tenant_id)
            if current is None:
                raise UnknownTenantError(f"Tenant {tenant_id!r} has no configuration.")
            updated = replace(current, **changes)
            self._configs[tenant_id] = updated
            return updated

    def snapshot(self) -> dict[str, TenantConfig]:
        with self._lock:
            return dict(self._configs)
