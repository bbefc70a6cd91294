import itertools
import logging
import math
from typing import Any, Callable, Dict, List, Optional

from tactics.model import Alliance, BattleUnit, Commander, TeamKills
from tactics.world import ACCEPTED, MutationOutcome, rejected

logger = logging.getLogger(__name__)

RUN_SPEED_FACTOR = 2.0


class LocalWorld:
    """In-memory world: materializes spawned units and walks them along their commanded paths.

    No combat is resolved. Units leave the battle only through ``rout`` and
    ``remove`` (or a ``DeleteUnit`` mutation).
    """

    KINDS = ("Alliance", "Commander", "Unit", "TeamKills")

    def __init__(self):
        self.ts_ms = 0
        self._entities: Dict[str, List[Any]] = {kind: [] for kind in self.KINDS}
        self._ids = itertools.count(1)
        self._handlers: Dict[str, Callable[[Dict[str, Any]], MutationOutcome]] = {
            "UpdateCommand": self._update_command,
            "UpdateTeam": self._update_team,
            "DeleteUnit": self._delete_unit,
        }

    def _next_id(self, prefix: str) -> str:
        return f"{prefix}-{next(self._ids)}"

    def query(self, kind: str) -> List[Any]:
        """Return a snapshot list of live entities of a kind."""
        return list(self._entities.get(kind, ()))

    def create(self, kind: str, fields: Dict[str, Any]) -> Any:
        """Create an entity. Units stay unmaterialized until the next step."""
        if kind == "Alliance":
            entity = Alliance(id=self._next_id("A"), position=fields["position"])
        elif kind == "Commander":
            entity = Commander(id=self._next_id("C"), alliance=fields["alliance"],
                               player_id=fields["player_id"])
        elif kind == "Unit":
            archetype = fields["archetype"]
            entity = BattleUnit(
                id=self._next_id("U"),
                alliance=fields["alliance"],
                archetype=archetype,
                commander=fields.get("commander"),
                placement=fields.get("placement"),
                max_range=archetype.max_range,
                fighters=archetype.fighters,
                can_not_rally=fields.get("can_not_rally", False),
            )
        elif kind == "TeamKills":
            entity = TeamKills(alliance=fields["alliance"], kills=fields.get("kills", 0))
        else:
            raise ValueError(f"Unknown entity kind: {kind}")
        self._entities[kind].append(entity)
        return entity

    async def request_mutation(self, kind: str, fields: Dict[str, Any]) -> MutationOutcome:
        handler = self._handlers.get(kind)
        if handler is None:
            return rejected(f"unknown mutation {kind}")
        return handler(fields)

    def get_unit(self, unit_id: str) -> Optional[BattleUnit]:
        for unit in self._entities["Unit"]:
            if unit.id == unit_id:
                return unit
        return None

    def _update_command(self, fields: Dict[str, Any]) -> MutationOutcome:
        unit = self.get_unit(fields["unit_id"])
        if unit is None:
            return rejected(f"no such unit {fields['unit_id']}")
        if unit.routed:
            return rejected(f"unit {unit.id} is routed")
        unit.path = [tuple(p) for p in fields["path"]]
        unit.facing = fields["facing"]
        unit.running = fields["running"]
        return ACCEPTED

    def _update_team(self, fields: Dict[str, Any]) -> MutationOutcome:
        team = fields["team"]
        team.score = fields["score"]
        team.outcome = fields["outcome"]
        return ACCEPTED

    def _delete_unit(self, fields: Dict[str, Any]) -> MutationOutcome:
        if not self.remove(fields["unit_id"]):
            return rejected(f"no such unit {fields['unit_id']}")
        return ACCEPTED

    def rout(self, unit_id: str) -> bool:
        """Mark a unit as fleeing and count it as a kill against its alliance."""
        unit = self.get_unit(unit_id)
        if unit is None or unit.routed:
            return False
        unit.routed = True
        unit.path = []
        self.record_kill(unit.alliance)
        logger.info(f"[LocalWorld] Unit {unit_id} routed")
        return True

    def remove(self, unit_id: str) -> bool:
        unit = self.get_unit(unit_id)
        if unit is None:
            return False
        self._entities["Unit"].remove(unit)
        return True

    def record_kill(self, alliance: Alliance, count: int = 1) -> TeamKills:
        """Increment the kill counter of units lost by alliance."""
        for team_kills in self._entities["TeamKills"]:
            if team_kills.alliance == alliance:
                team_kills.kills += count
                return team_kills
        return self.create("TeamKills", {"alliance": alliance, "kills": count})

    def step(self, dt_ms: int) -> None:
        """Materialize new units and move commanded units toward their destination."""
        dt = dt_ms / 1000.0
        for unit in self._entities["Unit"]:
            if unit.center is None:
                if unit.placement is not None:
                    unit.center = unit.placement.position
                    unit.facing = unit.placement.bearing
                continue
            if unit.routed or not unit.path:
                continue

            dest = unit.path[-1]
            dx = dest[0] - unit.center[0]
            dy = dest[1] - unit.center[1]
            dist = math.sqrt(dx * dx + dy * dy)
            speed = unit.archetype.speed * (RUN_SPEED_FACTOR if unit.running else 1.0)
            step = speed * dt

            if dist <= step:
                unit.center = dest
                unit.path = []
            else:
                unit.center = (unit.center[0] + dx / dist * step, unit.center[1] + dy / dist * step)

        self.ts_ms += dt_ms
