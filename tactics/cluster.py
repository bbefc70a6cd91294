"""Outlier-robust center estimate for a formation of units.

The estimate is a two-pass weighted centroid. First the center unit is
picked: the unit with the lowest sum of ``1 / (1 + d)`` over every other
unit. Then every unit is weighted by ``1 / (50 + d)``, where ``d`` is its
distance to the center unit, so a single detached unit barely moves the
result while the bulk of the formation dominates.

Unit counts are in the tens, so the pairwise distance matrix is computed in
full.
"""
from typing import Iterable, List, Optional

import numpy as np

from .model import BattleUnit, Position

DEFAULT_CENTER: Position = (512.0, 512.0)
CENTER_WEIGHT_OFFSET = 50.0


def _pairwise_distances(points: np.ndarray) -> np.ndarray:
    diff = points[:, np.newaxis, :] - points[np.newaxis, :, :]
    return np.sqrt((diff * diff).sum(axis=-1))


def _points(units: List[BattleUnit]) -> np.ndarray:
    return np.array([u.center for u in units], dtype=float).reshape(-1, 2)


def _center_index(dist: np.ndarray) -> int:
    closeness = 1.0 / (1.0 + dist)
    np.fill_diagonal(closeness, 0.0)
    # argmin returns the first minimum, so ties go to the first unit
    return int(np.argmin(closeness.sum(axis=1)))


def find_center_unit(units: Iterable[BattleUnit]) -> Optional[BattleUnit]:
    """Return the unit with the lowest inverse-distance sum, or None."""
    units = list(units)
    if not units:
        return None
    return units[_center_index(_pairwise_distances(_points(units)))]


def cluster_center(units: Iterable[BattleUnit]) -> Position:
    """Weighted centroid of the unit centers, DEFAULT_CENTER when empty."""
    units = list(units)
    if not units:
        return DEFAULT_CENTER

    points = _points(units)
    dist = _pairwise_distances(points)
    center_idx = _center_index(dist)

    weights = 1.0 / (CENTER_WEIGHT_OFFSET + dist[center_idx])
    x, y = (weights[:, np.newaxis] * points).sum(axis=0) / weights.sum()
    return (float(x), float(y))
