"""Plain text rendering of a boss's scouting report, as posted in the scouting channel."""

from datetime import datetime

from src.core.shared_types import BossStatus
from src.tracking.boss_report import BossReport
from src.tracking.layer_state import BossLayerState
from src.tracking.respawn import as_utc

UNKNOWN = "*unknown*"


def chat_timestamp(moment: datetime) -> str:
    """Chat clients render '<t:UNIX>' in the reader's own timezone."""
    return f"<t:{int(as_utc(moment).timestamp())}>"


def format_layer(state: BossLayerState) -> str:
    if state.status == BossStatus.ALIVE:
        return f"- **{state.layer}:** 👿 **Alive**"
    if state.is_killed:
        respawn = (
            f"**{chat_timestamp(state.next_respawn_at)}**"
            if state.next_respawn_at
            else UNKNOWN
        )
        return f"- ~~**{state.layer}:**~~ 💀 - respawn: {respawn}"
    last_seen = (
        f"*👀: {chat_timestamp(state.last_scouted_at)}*"
        if state.last_scouted_at
        else UNKNOWN
    )
    return f"- **{state.layer}:** {last_seen}"


def format_boss_status(report: BossReport) -> str:
    return "\n".join(
        [f"# {report.name} Scouting Report", *(format_layer(s) for s in report.layers)]
    )
