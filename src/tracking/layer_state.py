"""State machine for one layer of one boss, as known by one tenant."""

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional, Self

from src.core.exceptions import InvalidStatusError
from src.core.models import LayerModel
from src.core.shared_types import KILLED_STATUSES, BossStatus
from src.tracking.respawn import as_utc, compute_next_respawn

RespawnClock = Callable[[datetime], datetime]


def parse_status(value: str) -> BossStatus:
    try:
        return BossStatus(value.strip().lower())
    except (ValueError, AttributeError):
        raise InvalidStatusError(
            f"Invalid status: {value!r}. Pick one from {','.join(BossStatus)}"
        ) from None


@dataclass
class BossLayerState:
    """
    status / next_respawn_at invariant: next_respawn_at is set if and only if the layer is dead or defeated.
    last_scouted_at only ever moves forward. Nothing clears it.
    """

    boss_id: str
    layer: str
    status: BossStatus = BossStatus.UNKNOWN
    last_scouted_at: Optional[datetime] = None
    next_respawn_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, boss_id: str, model: LayerModel) -> Self:
        status = parse_status(model.status)
        next_respawn_at = model.next_respawn_at if status in KILLED_STATUSES else None
        return cls(
            boss_id=boss_id,
            layer=model.layer,
            status=status,
            last_scouted_at=as_utc(model.last_scouted_at) if model.last_scouted_at else None,
            next_respawn_at=as_utc(next_respawn_at) if next_respawn_at else None,
        )

    def to_model(self) -> LayerModel:
        return LayerModel(
            layer=self.layer,
            status=str(self.status),
            last_scouted_at=self.last_scouted_at,
            next_respawn_at=self.next_respawn_at,
        )

    @property
    def is_killed(self) -> bool:
        return self.status in KILLED_STATUSES

    def apply_sighting(
        self,
        status: BossStatus,
        now: datetime,
        clock: RespawnClock = compute_next_respawn,
    ) -> None:
        """A scout reported the boss in the given status on this layer at `now`."""
        now = as_utc(now)
        self.status = status
        if self.last_scouted_at is None or now > self.last_scouted_at:
            self.last_scouted_at = now

        if status in KILLED_STATUSES:
            self.next_respawn_at = clock(now)
        else:
            self.next_respawn_at = None

    def respawn_due(self, now: datetime) -> bool:
        return (
            self.is_killed
            and self.next_respawn_at is not None
            and as_utc(now) >= self.next_respawn_at
        )

    def respawn(self) -> None:
        """Timer ran out: status is no longer known. Keeps last_scouted_at as 'last seen' history."""
        self.status = BossStatus.UNKNOWN
        self.next_respawn_at = None
