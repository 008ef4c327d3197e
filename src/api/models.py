"""Requests and Response models"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, field_validator

from src.core.exceptions import InvalidRequestError
from src.core.shared_types import BossStatus, NotificationKind
from src.tracking.boss_report import BossReport, BossReportSet
from src.tracking.bosses import boss_by_id, layer_label, parse_layer_input
from src.tracking.layer_state import BossLayerState, parse_status

TenantId = str
BossId = str


# --- REQUEST MODELS ---
class ScoutSubmissionRequest(BaseModel):
    tenant_id: TenantId
    boss_id: BossId
    layer: int
    status: BossStatus
    reporter_id: str
    # Channel the report was submitted from. Used for the 'found' message if the tenant has no notification channel.
    source_channel_ref: Optional[str] = None

    @field_validator("boss_id")
    @classmethod
    def validate_boss(cls, value: str) -> str:
        return boss_by_id(value).id

    @field_validator("layer", mode="before")
    @classmethod
    def validate_layer(cls, value: Any) -> int:
        """Human-entered: '3', ' 3', 'Layer 3' are fine, '0', '10' or 'three' are not."""
        return parse_layer_input(value)

    @field_validator("status", mode="before")
    @classmethod
    def validate_status(cls, value: Any) -> BossStatus:
        return parse_status(value)

    @property
    def layer_label(self) -> str:
        return layer_label(self.layer)


class TenantRequest(BaseModel):
    tenant_id: TenantId


class SetChannelRequest(BaseModel):
    tenant_id: TenantId
    channel_ref: str

    @field_validator("channel_ref")
    @classmethod
    def validate_channel(cls, value: str) -> str:
        if not value.strip():
            raise InvalidRequestError("Notification channel cannot be empty.")
        return value.strip()


class SetMessageRequest(BaseModel):
    tenant_id: TenantId
    template: str

    @field_validator("template")
    @classmethod
    def validate_template(cls, value: str) -> str:
        if not value.strip():
            raise InvalidRequestError("Message template cannot be empty.")
        return value


class SetMessageRefRequest(BaseModel):
    tenant_id: TenantId
    boss_id: BossId
    message_ref: Optional[str]

    @field_validator("boss_id")
    @classmethod
    def validate_boss(cls, value: str) -> str:
        return boss_by_id(value).id


# --- RESPONSE MODELS ---
class LayerResponse(BaseModel):
    layer: str
    status: BossStatus
    last_scouted_at: Optional[datetime]
    next_respawn_at: Optional[datetime]

    @classmethod
    def from_state(cls, state: BossLayerState) -> "LayerResponse":
        return cls(
            layer=state.layer,
            status=state.status,
            last_scouted_at=state.last_scouted_at,
            next_respawn_at=state.next_respawn_at,
        )


class BossReportResponse(BaseModel):
    boss_id: BossId
    name: str
    layers: list[LayerResponse]
    total_kills: int
    message_ref: Optional[str]

    @classmethod
    def from_report(cls, report: BossReport) -> "BossReportResponse":
        return cls(
            boss_id=report.boss_id,
            name=report.name,
            layers=[LayerResponse.from_state(layer) for layer in report.layers],
            total_kills=report.total_kills,
            message_ref=report.message_ref,
        )


class TenantStateResponse(BaseModel):
    tenant_id: TenantId
    bosses: dict[BossId, BossReportResponse]

    @classmethod
    def from_reports(cls, tenant_id: str, reports: BossReportSet) -> "TenantStateResponse":
        return cls(
            tenant_id=tenant_id,
            bosses={
                boss_id: BossReportResponse.from_report(report)
                for boss_id, report in reports.items()
            },
        )


class CollaboratorFailure(BaseModel):
    """A persistence / notification call that failed and may be retried by the caller."""

    operation: str
    tenant_id: Optional[TenantId]
    message: str


class ScoutSubmissionResponse(BaseModel):
    tenant_id: TenantId
    boss_id: BossId
    layer: LayerResponse
    total_kills: int
    notification: NotificationKind
    notification_text: Optional[str]
    failures: list[CollaboratorFailure]


class TenantConfigResponse(BaseModel):
    tenant_id: TenantId
    notification_channel_ref: str
    found_message_template: str
    respawn_message_template: str
    layer_notifications_enabled: bool
