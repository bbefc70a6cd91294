"""Per-unit maneuver decision for scripted units.

The decision is a pure function of the current positions, re-evaluated from
scratch every tactical tick. No per-unit mode is persisted.

Ranged units keep their target between half and nine tenths of their
maximum range: too far and they advance to 90% of range, too close and they
run back to 70% of range, otherwise they hold and face the target.

Melee units charge a target within ``CHARGE_DISTANCE``. Otherwise they
regroup: they move to the ally formation's center plus their own offset from
their formation's center (capped at ``REGROUP_OFFSET_LIMIT``), which keeps
the formation shape while closing in.
"""
from .geometry import add, angle_of, distance, length, normalize, scale, sub
from .model import BattleUnit, ManeuverCommand, ManeuverKind, Position

ADVANCE_FRACTION = 0.9
RETREAT_FRACTION = 0.5
OPTIMAL_FRACTION = 0.7
CHARGE_DISTANCE = 80.0
REGROUP_OFFSET_LIMIT = 100.0


def _move(unit: BattleUnit, kind: ManeuverKind, destination: Position, running: bool = False) -> ManeuverCommand:
    return ManeuverCommand(
        unit_id=unit.id,
        kind=kind,
        path=(unit.center, destination),
        facing=angle_of(sub(destination, unit.center)),
        running=running,
    )


def _keep_at(target_pos: Position, diff: Position, dist: float, keep: float) -> Position:
    """Point on the unit-target line at distance keep from the target."""
    if dist > 0:
        return sub(target_pos, scale(diff, keep / dist))
    # stacked on the target, back off southwards
    return sub(target_pos, scale(normalize(diff), keep))


def decide_ranged(unit: BattleUnit, target_pos: Position) -> ManeuverCommand:
    """Advance, retreat or hold to keep the target inside weapon range."""
    weapon_range = unit.max_range
    diff = sub(target_pos, unit.center)
    dist = length(diff)

    if dist > ADVANCE_FRACTION * weapon_range:
        destination = _keep_at(target_pos, diff, dist, ADVANCE_FRACTION * weapon_range)
        return _move(unit, ManeuverKind.ADVANCE, destination)

    if dist < RETREAT_FRACTION * weapon_range:
        destination = _keep_at(target_pos, diff, dist, OPTIMAL_FRACTION * weapon_range)
        return _move(unit, ManeuverKind.RETREAT, destination, running=True)

    return ManeuverCommand(
        unit_id=unit.id,
        kind=ManeuverKind.HOLD,
        path=(),
        facing=angle_of(diff),
        running=False,
    )


def regroup_destination(unit_pos: Position, ally_cluster: Position, enemy_cluster: Position) -> Position:
    offset = sub(unit_pos, enemy_cluster)
    dist = length(offset)
    if dist > REGROUP_OFFSET_LIMIT:
        offset = scale(offset, REGROUP_OFFSET_LIMIT / dist)
    return add(ally_cluster, offset)


def decide_melee(unit: BattleUnit, target_pos: Position,
                 ally_cluster: Position, enemy_cluster: Position) -> ManeuverCommand:
    """Charge a nearby target, otherwise regroup against the ally formation."""
    if distance(unit.center, target_pos) < CHARGE_DISTANCE:
        return _move(unit, ManeuverKind.CHARGE, target_pos)

    destination = regroup_destination(unit.center, ally_cluster, enemy_cluster)
    return _move(unit, ManeuverKind.REGROUP, destination)


def decide(unit: BattleUnit, target: BattleUnit,
           ally_cluster: Position, enemy_cluster: Position) -> ManeuverCommand:
    """Decide the maneuver command for a scripted unit against its target.

    ``ally_cluster`` is the center of the units being attacked (the player
    formation), ``enemy_cluster`` the center of the unit's own scripted
    formation. Both units must have a resolved center.
    """
    if unit.is_ranged:
        return decide_ranged(unit, target.center)
    return decide_melee(unit, target.center, ally_cluster, enemy_cluster)
