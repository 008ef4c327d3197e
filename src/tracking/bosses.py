"""
The fixed catalogue of trackable world bosses and their layers.

(placed in its own module as most other modules need to import it)
"""

from dataclasses import dataclass

from src.core.exceptions import InvalidLayerError, UnknownBossError, UnknownLayerError

# Every boss exists independently on each of these parallel copies of the world
LAYER_COUNT = 9


@dataclass(frozen=True)
class Boss:
    id: str
    name: str


BOSSES: tuple[Boss, ...] = (
    Boss(id="azzy", name="Azuregos"),
    Boss(id="kazzy", name="Lord Kazzak"),
)
BOSS_BY_ID: dict[str, Boss] = {boss.id: boss for boss in BOSSES}

LAYERS: tuple[str, ...] = tuple(f"Layer {n}" for n in range(1, LAYER_COUNT + 1))


def boss_by_id(boss_id: str) -> Boss:
    """Look up a boss, or raise UnknownBossError."""
    try:
        return BOSS_BY_ID[boss_id]
    except KeyError:
        raise UnknownBossError(
            f"Unknown boss: {boss_id!r}. Pick one from {','.join(BOSS_BY_ID)}"
        ) from None


def layer_label(number: int) -> str:
    """1 - 9 get converted to 'Layer 1' - 'Layer 9'"""
    if not 1 <= number <= LAYER_COUNT:
        raise InvalidLayerError(f"Layer must be between 1 and {LAYER_COUNT}, got {number}.")
    return LAYERS[number - 1]


def layer_number(label: str) -> int:
    """Inverse of layer_label(). Raises UnknownLayerError for labels that are not one of LAYERS."""
    if label not in LAYERS:
        raise UnknownLayerError(f"Unknown layer: {label!r}.")
    return LAYERS.index(label) + 1


def parse_layer_input(value: str | int) -> int:
    """
    Interpret what a human typed into the 'layer' box.
    Accepts '3', ' 3 ', 'Layer 3' and plain integers. Anything else raises InvalidLayerError.
    """
    if isinstance(value, bool):
        raise InvalidLayerError(f"Cannot interpret {value!r} as a layer number.")
    if isinstance(value, int):
        layer_label(value)
        return value

    text = str(value).strip()
    if text.lower().startswith("layer"):
        text = text[len("layer") :].strip()
    if not text.isdecimal():
        raise InvalidLayerError(f"Cannot interpret {value!r} as a layer number.")

    number = int(text)
    layer_label(number)
    return number
