from typing import Iterable, Optional

from .geometry import distance_squared
from .model import BattleUnit, Position


def find_nearest_unit(candidates: Iterable[BattleUnit], origin: Position) -> Optional[BattleUnit]:
    """Find the closest candidate to origin; first encountered wins ties."""
    best_unit = None
    best_dist = float('inf')

    for unit in candidates:
        if unit.center is None:
            continue
        d = distance_squared(origin, unit.center)
        if d < best_dist:
            best_unit = unit
            best_dist = d

    return best_unit
