import asyncio
import logging
import time
from functools import partial
from typing import Any, Dict, List, Optional, Set, Tuple

from .cluster import cluster_center
from .maneuver import decide
from .model import (ENEMY_RANK, PLAYER_RANK, SCRIPT_PLAYER_ID, Alliance, BattleUnit,
                    Commander, Event)
from .settings import ScenarioSettings
from .targeting import find_nearest_unit
from .waves import WaveSequencer, player_placements, should_trigger
from .world import Match, MutationOutcome, World

logger = logging.getLogger(__name__)


class Scenario:
    """Scripted-enemy practice scenario.

    Reads the world on every tick and answers with fire-and-forget
    mutations. The only state kept between ticks is the wave counter and the
    alliance/commander handles created when the match starts.
    """

    def __init__(self, world: World, match: Match, settings: Optional[ScenarioSettings] = None):
        self.world = world
        self.match = match
        self.settings = settings or ScenarioSettings()
        self.started = False

        self.enemy_alliance: Optional[Alliance] = None
        self.enemy_commander: Optional[Commander] = None
        self.player_alliance: Optional[Alliance] = None
        self.player_commanders: List[Commander] = []

        self.waves = WaveSequencer(self.settings.battlefield_center, self.settings.staging_distance)
        self._pending: Set[asyncio.Task] = set()
        self._deleting: Set[str] = set()
        self._events: List[Event] = []
        self._t0 = time.monotonic()

    @property
    def wave_number(self) -> int:
        return self.waves.wave_number

    def _now_ms(self) -> int:
        return int((time.monotonic() - self._t0) * 1000)

    def _take_events(self) -> List[Event]:
        evts, self._events = self._events, []
        return evts

    def get_staging_parameters(self) -> Dict[str, Any]:
        """Desired match configuration for the lobby."""
        return {
            "teamsMin": 1,
            "teamsMax": 1,
            "teams": [{"slots": [{"playerId": self.settings.local_player_id}]}],
            "title": self.settings.title,
            "map": self.settings.map,
            "options": {"map": True, "teams": True},
            "started": False,
        }

    # Lifecycle

    def startup(self) -> bool:
        """Attach to the match; starts immediately if the match already has."""
        logger.info(f"[Scenario] Startup, match started={self.match.started}")
        return self.try_start_match()

    def try_start_match(self) -> bool:
        """Start once the match descriptor reports started. Returns True on the starting call."""
        if self.match.started and not self.started:
            self.started = True
            self.on_match_started()
            return True
        return False

    def on_match_started(self) -> None:
        self.setup_alliances_and_commanders()
        self.spawn_player_units()
        self._events.append(Event("MatchStarted", self._now_ms(),
                                  {"teams": [t.id for t in self.match.teams]}))

    def shutdown(self) -> None:
        """Drop any mutation still in flight."""
        for task in list(self._pending):
            task.cancel()
        self._pending.clear()
        logger.info("[Scenario] Shutdown")

    def setup_alliances_and_commanders(self) -> None:
        self.enemy_alliance = self.world.create("Alliance", {"position": ENEMY_RANK})
        self.enemy_commander = self.world.create("Commander", {
            "alliance": self.enemy_alliance,
            "player_id": SCRIPT_PLAYER_ID,
        })
        self.player_alliance = self.world.create("Alliance", {"position": PLAYER_RANK})

        self.player_commanders = []
        for team in self.match.teams:
            for player_id in team.slots:
                self.player_commanders.append(self.world.create("Commander", {
                    "alliance": self.player_alliance,
                    "player_id": player_id,
                }))

    def spawn_player_units(self) -> List[BattleUnit]:
        commanders = self.player_commanders
        units = []
        for index, (archetype, placement) in enumerate(player_placements(self.settings.battlefield_center)):
            units.append(self.world.create("Unit", {
                "alliance": self.player_alliance,
                "commander": commanders[index % len(commanders)] if commanders else None,
                "archetype": archetype,
                "placement": placement,
            }))
        logger.info(f"[Scenario] Spawned {len(units)} player units")
        return units

    # Tactical tick

    def partition_units(self) -> Tuple[List[BattleUnit], List[BattleUnit]]:
        """Split live units into (player, scripted), skipping routed and unmaterialized units."""
        allies: List[BattleUnit] = []
        enemies: List[BattleUnit] = []
        for unit in self.world.query("Unit"):
            if not unit.is_active:
                continue
            if unit.alliance == self.player_alliance:
                allies.append(unit)
            else:
                enemies.append(unit)
        return allies, enemies

    def issue_commands(self) -> List[Event]:
        """Run one tactical tick and return its events."""
        if not self.started:
            return self._take_events()

        evts: List[Event] = []
        allies, enemies = self.partition_units()

        if not allies:
            return self._take_events()

        if should_trigger(allies, enemies):
            evts.append(self.spawn_enemy_units(allies))
            return self._take_events() + evts

        ally_center = cluster_center(allies)
        enemy_center = cluster_center(enemies)

        for unit in enemies:
            target = find_nearest_unit(allies, unit.center)
            if target is None:
                logger.debug(f"[Scenario] No target for {unit.id}, skipping")
                continue
            command = decide(unit, target, ally_center, enemy_center)
            self._request("UpdateCommand", command.to_fields(), unit.id)
            evts.append(Event("CommandIssued", self._now_ms(), {
                "unit_id": unit.id,
                "target": target.id,
                "kind": command.kind.value,
                "path": [list(p) for p in command.path],
                "facing": command.facing,
                "running": command.running,
            }))

        return self._take_events() + evts

    def spawn_enemy_units(self, allies: List[BattleUnit]) -> Event:
        """Spawn the next wave facing the player formation."""
        plan = self.waves.plan(allies)
        ids = []
        for archetype, placement in plan.placements:
            unit = self.world.create("Unit", {
                "alliance": self.enemy_alliance,
                "commander": self.enemy_commander,
                "archetype": archetype,
                "placement": placement,
                "can_not_rally": True,
            })
            ids.append(unit.id)
        logger.info(f"[Scenario] Wave {plan.wave} spawned {len(ids)} units at "
                    f"({plan.center[0]:.1f}, {plan.center[1]:.1f})")
        return Event("WaveSpawned", self._now_ms(), {
            "wave": plan.wave,
            "center": list(plan.center),
            "angle": plan.angle,
            "units": ids,
        })

    # Outcome tick

    def update_outcome(self) -> List[Event]:
        """Report kills against the scripted alliance as every team's score."""
        if not self.started:
            return self._take_events()

        kills = 0
        for team_kills in self.world.query("TeamKills"):
            if team_kills.alliance == self.enemy_alliance:
                kills = team_kills.kills

        evts: List[Event] = []
        for team in self.match.teams:
            if team.score != kills:
                self._request("UpdateTeam", {
                    "team": team,
                    "outcome": f"Kills: {kills}",
                    "score": kills,
                }, team.id)
                evts.append(Event("OutcomeUpdated", self._now_ms(), {"team": team.id, "score": kills}))
        return self._take_events() + evts

    def prune_units(self) -> None:
        """Delete units that lost all fighters or were deleted by gesture."""
        for unit in self.world.query("Unit"):
            if unit.id in self._deleting:
                continue
            if (unit.center is not None and unit.fighters <= 0) or unit.deleted_by_gesture:
                self._deleting.add(unit.id)
                self._request("DeleteUnit", {"unit_id": unit.id}, unit.id)

    def outcome_tick(self) -> List[Event]:
        self.try_start_match()
        if self.started:
            self.prune_units()
        return self.update_outcome()

    # Mutations

    def _request(self, kind: str, fields: Dict[str, Any], subject: str) -> None:
        """Fire-and-forget a mutation; refusals are logged when they come back."""
        task = asyncio.get_running_loop().create_task(self.world.request_mutation(kind, fields))
        self._pending.add(task)
        task.add_done_callback(partial(self._on_mutation_done, kind, subject))

    def _on_mutation_done(self, kind: str, subject: str, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            reason = repr(exc)
        else:
            outcome: MutationOutcome = task.result()
            if outcome.ok:
                return
            reason = outcome.reason
        logger.warning(f"[Scenario] {kind} for {subject} rejected: {reason}")
        self._events.append(Event("MutationRejected", self._now_ms(),
                                  {"kind": kind, "subject": subject, "reason": reason}))
