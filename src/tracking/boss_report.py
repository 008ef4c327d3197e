"""
Everything a tenant knows about one boss: the state of each of its layers plus the kill counter.
This is the unit that gets persisted (one write per report, never per layer).
"""

from copy import deepcopy
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Self

from src.core.exceptions import UnknownLayerError
from src.core.models import BossReportModel
from src.core.shared_types import BossStatus
from src.tracking.bosses import BOSSES, LAYERS, Boss, boss_by_id
from src.tracking.layer_state import BossLayerState, RespawnClock
from src.tracking.respawn import compute_next_respawn


@dataclass
class BossReport:
    boss_id: str
    name: str
    layers: list[BossLayerState]
    total_kills: int = 0
    message_ref: Optional[str] = None
    # Bumped by the registry on every change. Orders snapshots, not persisted
    revision: int = field(default=0, compare=False)

    @classmethod
    def empty(cls, boss: Boss) -> Self:
        """All layers unknown, zero kills."""
        return cls(
            boss_id=boss.id,
            name=boss.name,
            layers=[BossLayerState(boss_id=boss.id, layer=layer) for layer in LAYERS],
        )

    @classmethod
    def from_model(cls, model: BossReportModel) -> Self:
        """
        Rebuild from persisted data. Layers are matched by label so that stored data with missing,
        extra or shuffled layers still ends up as exactly one state per layer, in layer order.
        """
        boss = boss_by_id(model.boss_id)
        stored = {layer.layer: layer for layer in model.layers}
        layers = [
            BossLayerState.from_model(boss.id, stored[label])
            if label in stored
            else BossLayerState(boss_id=boss.id, layer=label)
            for label in LAYERS
        ]
        return cls(
            boss_id=boss.id,
            name=boss.name,
            layers=layers,
            total_kills=max(0, model.total_kills),
            message_ref=model.message_ref,
        )

    def to_model(self) -> BossReportModel:
        return BossReportModel(
            boss_id=self.boss_id,
            name=self.name,
            layers=[layer.to_model() for layer in self.layers],
            total_kills=self.total_kills,
            message_ref=self.message_ref,
        )

    def layer_state(self, layer: str) -> BossLayerState:
        for state in self.layers:
            if state.layer == layer:
                return state
        raise UnknownLayerError(f"{self.name} has no layer {layer!r}.")

    def apply_sighting(
        self,
        layer: str,
        status: BossStatus,
        now: datetime,
        clock: RespawnClock = compute_next_respawn,
    ) -> BossLayerState:
        """
        Apply a scout report to one of the layers.

        NOTE every 'defeated' report counts as a kill, also when the layer was already defeated.
        Two scouts reporting the same kill will count it twice.
        """
        state = self.layer_state(layer)
        state.apply_sighting(status, now, clock)
        if status == BossStatus.DEFEATED:
            self.total_kills += 1
        return state

    def respawn_due_layers(self, now: datetime) -> list[BossLayerState]:
        """Move every layer whose timer ran out back to unknown. Returns the layers that changed."""
        respawned = []
        for state in self.layers:
            if state.respawn_due(now):
                state.respawn()
                respawned.append(state)
        return respawned

    def copy(self) -> Self:
        return deepcopy(self)


# A tenant's full state: boss id -> report
BossReportSet = dict[str, BossReport]


def empty_report_set() -> BossReportSet:
    return {boss.id: BossReport.empty(boss) for boss in BOSSES}
