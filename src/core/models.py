"""
Boundary layer data model(s).

These objects are used to communicate with the Service.
Both the domain layer (src/tracking) and the persistence layer (src/db) convert to/from these,
so neither has to know about the other's internal representation.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

# Type aliases to make the models easier to read
TenantId = str
BossId = str
LayerLabel = str


@dataclass
class LayerModel:
    """Transport-safe state of a single layer of a boss."""

    layer: LayerLabel
    status: str
    last_scouted_at: Optional[datetime] = None
    next_respawn_at: Optional[datetime] = None


@dataclass
class BossReportModel:
    """Transport-safe representation of everything a tenant knows about one boss."""

    boss_id: BossId
    name: str
    layers: list[LayerModel]
    total_kills: int = 0
    message_ref: Optional[str] = None


@dataclass
class ScoutReportModel:
    """Write-once record of a single sighting."""

    timestamp: datetime
    tenant_id: TenantId
    boss_id: BossId
    layer_id: str
    status: str
    reporter_id: str


@dataclass
class TenantConfigModel:
    """Per-tenant settings, owned by the platform but read by the tracker."""

    tenant_id: TenantId
    notification_channel_ref: str = ""
    found_message_template: str = ""
    respawn_message_template: str = ""
    layer_notifications_enabled: bool = True
