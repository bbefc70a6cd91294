"""Test the scenario tick driver against the local world."""
import asyncio
import logging
import math

import pytest
from runtime.localworld import LocalWorld
from tactics.model import UNIT_TYPES, ManeuverKind
from tactics.scenario import Scenario
from tactics.world import Match, Team, rejected


async def settle():
    """Let fire-and-forget mutations and their callbacks run."""
    for _ in range(3):
        await asyncio.sleep(0)


def make_scenario(world=None, started=True):
    world = world or LocalWorld()
    match = Match(teams=[Team(id="T1", slots=["p1", "p2"])], started=started)
    return world, Scenario(world, match)


def make_bare_scenario(world=None):
    """Started scenario with alliances but no player units."""
    world = world or LocalWorld()
    scenario = Scenario(world, Match(teams=[Team(id="T1", slots=["p1"])]))
    scenario.setup_alliances_and_commanders()
    scenario.started = True
    return world, scenario


def place(world, alliance, key, center):
    unit = world.create("Unit", {"alliance": alliance, "archetype": UNIT_TYPES[key]})
    unit.center = center
    return unit


def test_staging_parameters():
    _, scenario = make_scenario(started=False)
    params = scenario.get_staging_parameters()
    assert params["teamsMin"] == 1
    assert params["teamsMax"] == 1
    assert params["map"] == "Maps/Practice.png"
    assert params["started"] is False


def test_start_is_deferred_until_match_started():
    world, scenario = make_scenario(started=False)
    assert scenario.startup() is False
    assert world.query("Unit") == []

    scenario.match.started = True
    assert scenario.try_start_match() is True
    assert scenario.try_start_match() is False
    assert len(world.query("Alliance")) == 2


def test_match_start_sets_up_sides():
    world, scenario = make_scenario()
    scenario.startup()

    assert scenario.enemy_alliance.position == 2
    assert scenario.player_alliance.position == 1
    assert scenario.enemy_commander.player_id == "$"
    assert [c.player_id for c in scenario.player_commanders] == ["p1", "p2"]

    units = world.query("Unit")
    assert len(units) == 11
    assert all(u.alliance == scenario.player_alliance for u in units)
    assert all(u.center is None for u in units)
    # commanders assigned round-robin
    assert units[0].commander.player_id == "p1"
    assert units[1].commander.player_id == "p2"
    assert units[2].commander.player_id == "p1"


@pytest.mark.asyncio
async def test_no_allies_is_noop():
    world, scenario = make_scenario()
    scenario.startup()  # player units not materialized yet
    evts = scenario.issue_commands()
    assert [e.kind for e in evts] == ["MatchStarted"]
    assert scenario.wave_number == 0
    assert len(world.query("Unit")) == 11


@pytest.mark.asyncio
async def test_wave_spawns_when_enemy_side_empty():
    world, scenario = make_scenario()
    scenario.startup()
    world.step(0)

    evts = scenario.issue_commands()
    waves = [e for e in evts if e.kind == "WaveSpawned"]
    assert len(waves) == 1
    assert waves[0].data["wave"] == 0
    assert len(waves[0].data["units"]) == 4
    assert scenario.wave_number == 1

    enemies = [u for u in world.query("Unit") if u.alliance == scenario.enemy_alliance]
    assert len(enemies) == 4
    assert all(u.can_not_rally and u.commander == scenario.enemy_commander for u in enemies)
    assert all(u.center is None for u in enemies)


@pytest.mark.asyncio
async def test_waves_cycle_as_enemy_side_is_wiped():
    world, scenario = make_scenario()
    scenario.startup()
    spawned = []
    for _ in range(7):
        world.step(0)
        evts = scenario.issue_commands()
        spawned += [e.data["wave"] for e in evts if e.kind == "WaveSpawned"]
        world.step(0)
        for unit in world.query("Unit"):
            if unit.alliance == scenario.enemy_alliance:
                world.rout(unit.id)
    assert spawned == [0, 1, 2, 3, 4, 5, 0]


@pytest.mark.asyncio
async def test_ranged_unit_advances_toward_nearest_ally():
    world, scenario = make_bare_scenario()
    for center in [(510.0, 500.0), (490.0, 500.0), (500.0, 510.0), (500.0, 490.0)]:
        place(world, scenario.player_alliance, "sam_kata", center)
    archer = place(world, scenario.enemy_alliance, "ash_bow", (650.0, 500.0))
    archer.max_range = 100

    evts = scenario.issue_commands()
    await settle()

    issued = [e for e in evts if e.kind == "CommandIssued"]
    assert len(issued) == 1
    assert issued[0].data["kind"] == ManeuverKind.ADVANCE.value
    assert archer.path[0] == (650.0, 500.0)
    assert archer.path[1] == pytest.approx((600.0, 500.0))
    assert archer.facing == pytest.approx(math.atan2(0.0, 600.0 - 650.0))
    assert archer.running is False


@pytest.mark.asyncio
async def test_routed_and_unmaterialized_units_get_no_command():
    world, scenario = make_bare_scenario()
    place(world, scenario.player_alliance, "sam_kata", (500.0, 500.0))
    routed = place(world, scenario.enemy_alliance, "ash_yari", (520.0, 500.0))
    routed.routed = True
    pending = world.create("Unit", {"alliance": scenario.enemy_alliance, "archetype": UNIT_TYPES["ash_yari"]})
    active = place(world, scenario.enemy_alliance, "ash_yari", (540.0, 500.0))

    allies, enemies = scenario.partition_units()
    assert [u.id for u in enemies] == [active.id]

    evts = scenario.issue_commands()
    await settle()
    assert [e.data["unit_id"] for e in evts if e.kind == "CommandIssued"] == [active.id]
    assert routed.path == []
    assert pending.path == []
    assert active.path == [(540.0, 500.0), (500.0, 500.0)]


@pytest.mark.asyncio
async def test_routed_side_does_not_trigger_wave_when_allies_gone():
    world, scenario = make_bare_scenario()
    ally = place(world, scenario.player_alliance, "sam_kata", (500.0, 500.0))
    ally.routed = True
    evts = scenario.issue_commands()
    assert evts == []
    assert scenario.wave_number == 0


class RefusingWorld(LocalWorld):
    async def request_mutation(self, kind, fields):
        if kind == "UpdateCommand":
            return rejected("paused")
        if kind == "UpdateTeam":
            raise ConnectionError("lobby unreachable")
        return await super().request_mutation(kind, fields)


@pytest.mark.asyncio
async def test_rejected_commands_are_logged_and_reported(caplog):
    world, scenario = make_bare_scenario(RefusingWorld())
    place(world, scenario.player_alliance, "sam_kata", (500.0, 500.0))
    unit = place(world, scenario.enemy_alliance, "ash_yari", (520.0, 500.0))

    with caplog.at_level(logging.WARNING, logger="tactics.scenario"):
        scenario.issue_commands()
        await settle()

    assert unit.path == []
    assert "rejected: paused" in caplog.text

    evts = scenario.issue_commands()
    rejections = [e for e in evts if e.kind == "MutationRejected"]
    assert rejections[0].data == {"kind": "UpdateCommand", "subject": unit.id, "reason": "paused"}
    scenario.shutdown()


@pytest.mark.asyncio
async def test_failed_outcome_update_does_not_raise():
    world, scenario = make_bare_scenario(RefusingWorld())
    world.record_kill(scenario.enemy_alliance)
    scenario.update_outcome()
    await settle()

    evts = scenario.update_outcome()
    assert any(e.kind == "MutationRejected" and "lobby unreachable" in e.data["reason"] for e in evts)
    assert scenario.match.teams[0].score == 0
    scenario.shutdown()


@pytest.mark.asyncio
async def test_outcome_reports_enemy_kills():
    world, scenario = make_scenario()
    scenario.startup()
    assert [e.kind for e in scenario.update_outcome()] == ["MatchStarted"]

    world.record_kill(scenario.player_alliance)  # losses on the player side do not score
    world.record_kill(scenario.enemy_alliance, 3)
    evts = scenario.update_outcome()
    await settle()

    assert [e.kind for e in evts] == ["OutcomeUpdated"]
    team = scenario.match.teams[0]
    assert team.score == 3
    assert team.outcome == "Kills: 3"
    assert scenario.update_outcome() == []


@pytest.mark.asyncio
async def test_prune_deletes_destroyed_units():
    world, scenario = make_bare_scenario()
    dead = place(world, scenario.player_alliance, "sam_kata", (500.0, 500.0))
    dead.fighters = 0
    gone = place(world, scenario.enemy_alliance, "ash_yari", (600.0, 500.0))
    gone.deleted_by_gesture = True
    alive = place(world, scenario.enemy_alliance, "ash_yari", (650.0, 500.0))

    scenario.outcome_tick()
    await settle()

    assert [u.id for u in world.query("Unit")] == [alive.id]


@pytest.mark.asyncio
async def test_shutdown_cancels_pending_mutations():
    world, scenario = make_bare_scenario()
    place(world, scenario.player_alliance, "sam_kata", (500.0, 500.0))
    unit = place(world, scenario.enemy_alliance, "ash_yari", (520.0, 500.0))

    scenario.issue_commands()
    scenario.shutdown()
    await settle()
    assert unit.path == []
