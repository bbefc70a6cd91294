from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from runtime.localworld import LocalWorld
from runtime.runner import TickRunner
from tactics.model import BattleUnit
from tactics.scenario import Scenario
from tactics.settings import ScenarioSettings
from tactics.world import Match, Team
from .schemas import EventsResponse, StartRequest, StateResponse, UnitOut

app = FastAPI(title="Scripted Tactics API")
runner: TickRunner | None = None
world: LocalWorld | None = None

# Enable CORS for development (React runs on different port)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173", "http://localhost:5174", "http://localhost:5175"],  # Vite dev server
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

settings = ScenarioSettings()


def _make_match(player_ids: list[str], started: bool) -> Match:
    """One team holding every local player."""
    return Match(teams=[Team(id="T1", slots=list(player_ids))], started=started)


def _unit_out(u: BattleUnit) -> UnitOut:
    return UnitOut(
        id=u.id,
        alliance=u.alliance.id,
        archetype=u.archetype.key,
        center=u.center,
        routed=u.routed,
        max_range=u.max_range,
        fighters=u.fighters,
        path=u.path,
        facing=u.facing,
        running=u.running,
    )


def _require_runner() -> TickRunner:
    if not runner:
        raise HTTPException(400, "Scenario not started")
    return runner


@app.get("/")
async def root():
    """API root endpoint."""
    return {
        "message": "Scripted Tactics API",
        "docs": "/docs",
        "version": "1.0"
    }


@app.on_event("shutdown")
async def shutdown():
    """Stop the scenario on app shutdown."""
    global runner
    if runner:
        await runner.stop()
        runner = None


@app.get("/scenario/params")
async def get_params():
    """Staging parameters the scenario wants for its match."""
    return Scenario(LocalWorld(), Match(), settings).get_staging_parameters()


@app.post("/scenario/start")
async def start_scenario(req: StartRequest):
    """Start a fresh scenario against a new local world."""
    await shutdown()
    global runner, world
    world = LocalWorld()
    scenario = Scenario(world, _make_match(req.player_ids, req.start_match), settings)
    runner = TickRunner(scenario, world=world, time_compression=req.time_compression)
    await runner.start()
    return {"scenario_id": "local", "started": scenario.started}


@app.post("/scenario/local/match/start")
async def start_match():
    """Flag the match as started; the scenario picks it up on its next outcome tick."""
    r = _require_runner()
    r.scenario.match.started = True
    r.scenario.try_start_match()
    return {"started": r.scenario.started}


@app.get("/scenario/local/state", response_model=StateResponse)
async def get_state():
    """Get current scenario state snapshot."""
    r = _require_runner()
    scenario = r.scenario
    return StateResponse(
        ts_ms=world.ts_ms,
        started=scenario.started,
        wave_number=scenario.wave_number,
        player_alliance=scenario.player_alliance.id if scenario.player_alliance else None,
        enemy_alliance=scenario.enemy_alliance.id if scenario.enemy_alliance else None,
        units={u.id: _unit_out(u) for u in world.query("Unit")},
        scores={t.id: t.score for t in scenario.match.teams},
    )


@app.get("/scenario/local/events")
async def get_events(since: int = 0, limit: int = 500):
    """Get events since offset."""
    r = _require_runner()
    evts, next_offset = r.events.since(since, limit)
    return EventsResponse(
        next_offset=next_offset,
        events=[{"kind": e.kind, "ts_ms": e.ts_ms, "data": e.data} for e in evts]
    )


@app.post("/scenario/local/units/{unit_id}/rout")
async def rout_unit(unit_id: str):
    """Make a unit flee; it drops out of tactical consideration."""
    _require_runner()
    if world.get_unit(unit_id) is None:
        raise HTTPException(404, f"Unknown unit {unit_id}")
    return {"unit_id": unit_id, "routed": world.rout(unit_id)}


@app.delete("/scenario/local/units/{unit_id}")
async def delete_unit(unit_id: str):
    """Remove a unit from the battlefield."""
    _require_runner()
    if not world.remove(unit_id):
        raise HTTPException(404, f"Unknown unit {unit_id}")
    return {"unit_id": unit_id, "deleted": True}


@app.post("/scenario/local/time-control")
async def set_time_control(time_compression: float):
    """Set simulation time compression (1.0 = real-time, higher = faster)."""
    r = _require_runner()
    r.set_time_compression(time_compression)
    return {"time_compression": r.time_compression}


@app.get("/scenario/local/time-control")
async def get_time_control():
    """Get current time compression setting."""
    r = _require_runner()
    return {"time_compression": r.time_compression}
