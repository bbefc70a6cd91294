import math
from dataclasses import dataclass
from typing import List, Sequence, Tuple

from .cluster import DEFAULT_CENTER, cluster_center
from .geometry import add, angle_of, normalize, rotate, scale, sub
from .model import UNIT_TYPES, BattleUnit, Placement, Position, UnitArchetype

WAVE_COUNT = 6

# (archetype key, lateral offset from the staging center)
WAVES: Tuple[Tuple[Tuple[str, float], ...], ...] = (
    (("ash_yari", -90), ("ash_yari", -30), ("ash_yari", 30), ("ash_yari", 90)),
    (("ash_bow", -40), ("ash_bow", 40)),
    (("sam_kata", -60), ("sam_nagi", 0), ("sam_kata", 60)),
    (("cav_bow", -60), ("cav_bow", 60)),
    (("cav_yari", -90), ("sam_kata", -30), ("sam_kata", 30), ("cav_yari", 90)),
    (("ash_arq", -60), ("ash_arq", 0), ("ash_arq", 60)),
)

# Player formation around the battlefield center: (archetype key, (dx, dy))
PLAYER_FORMATION: Tuple[Tuple[str, Position], ...] = (
    ("sam_bow", (-50, 0)),
    ("sam_arq", (0, 0)),
    ("sam_bow", (50, 0)),
    ("sam_yari", (-25, -30)),
    ("sam_yari", (25, -30)),
    ("sam_kata", (-50, -60)),
    ("gen_kata", (0, -60)),
    ("sam_kata", (50, -60)),
    ("cav_yari", (-70, -100)),
    ("sam_nagi", (0, -90)),
    ("cav_bow", (70, -100)),
)
PLAYER_BEARING = 0.5 * math.pi


@dataclass(frozen=True)
class WavePlan:
    wave: int
    center: Position
    angle: float
    placements: List[Tuple[UnitArchetype, Placement]]


def should_trigger(allies: Sequence[BattleUnit], enemies: Sequence[BattleUnit]) -> bool:
    """A wave spawns only when the scripted side is gone and the player side is not."""
    return len(enemies) == 0 and len(allies) > 0


def staging(ally_center: Position, battlefield_center: Position = DEFAULT_CENTER,
            distance: float = 200.0) -> Tuple[Position, float]:
    """Return the staging center and orientation angle for a new wave.

    The wave is placed ``distance`` from the player formation toward the
    battlefield center, falling back to south when the formation sits on the
    center itself.
    """
    direction = normalize(sub(battlefield_center, ally_center))
    center = add(ally_center, scale(direction, distance))
    angle = angle_of(direction) + 0.5 * math.pi
    return center, angle


def wave_placements(wave: int, center: Position, angle: float) -> List[Tuple[UnitArchetype, Placement]]:
    bearing = 0.5 * math.pi - angle
    placements = []
    for key, lateral in WAVES[wave]:
        x, y = add(center, rotate((lateral, 0.0), angle))
        placements.append((UNIT_TYPES[key], Placement(x, y, bearing)))
    return placements


def player_placements(center: Position = DEFAULT_CENTER) -> List[Tuple[UnitArchetype, Placement]]:
    placements = []
    for key, offset in PLAYER_FORMATION:
        x, y = add(center, offset)
        placements.append((UNIT_TYPES[key], Placement(x, y, PLAYER_BEARING)))
    return placements


class WaveSequencer:
    """Cycles through the six wave rosters."""

    def __init__(self, battlefield_center: Position = DEFAULT_CENTER, staging_distance: float = 200.0):
        self.battlefield_center = battlefield_center
        self.staging_distance = staging_distance
        self.wave_number = 0

    def plan(self, allies: Sequence[BattleUnit]) -> WavePlan:
        """Lay out the current wave against the ally formation and advance the counter."""
        ally_center = cluster_center(allies)
        center, angle = staging(ally_center, self.battlefield_center, self.staging_distance)
        wave = self.wave_number
        self.wave_number = (wave + 1) % WAVE_COUNT
        return WavePlan(wave, center, angle, wave_placements(wave, center, angle))
