"""
Type definitions used across layers
"""

from enum import StrEnum


class BossStatus(StrEnum):
    UNKNOWN = "unknown"
    ALIVE = "alive"
    DEAD = "dead"
    DEFEATED = "defeated"


# --- A layer waiting for its respawn timer. Only these statuses carry a next_respawn_at
KILLED_STATUSES = frozenset({BossStatus.DEAD, BossStatus.DEFEATED})


class NotificationKind(StrEnum):
    """Which notification the platform should post: found after a sighting, respawn after a timer ran out."""

    NONE = "none"
    FOUND = "found"
    RESPAWN = "respawn"
