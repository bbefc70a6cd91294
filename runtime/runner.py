import asyncio
import logging
from typing import Callable, List, Optional

from tactics.model import Event
from tactics.scenario import Scenario
from .eventlog import EventLog
from .localworld import LocalWorld

logger = logging.getLogger(__name__)


class TickRunner:
    """Async driver that runs the scenario's tactical and outcome ticks on fixed intervals."""

    def __init__(self, scenario: Scenario, world: Optional[LocalWorld] = None,
                 world_step_ms: int = 100, time_compression: float = 1.0):
        self.scenario = scenario
        self.world = world  # stepped by the runner when set
        self.command_ms = scenario.settings.command_interval_ms
        self.outcome_ms = scenario.settings.outcome_interval_ms
        self.world_step_ms = world_step_ms
        self.time_compression = max(0.1, min(1000.0, time_compression))
        self.events = EventLog()
        self._tasks: List[asyncio.Task] = []

    @property
    def running(self) -> bool:
        return bool(self._tasks)

    def _sleep_s(self, interval_ms: int) -> float:
        return (interval_ms / 1000.0) / self.time_compression

    async def start(self):
        """Start the tick loops."""
        if self._tasks:
            return
        self.scenario.startup()
        self._tasks = [
            asyncio.create_task(self._loop("command", self.command_ms, self.scenario.issue_commands)),
            asyncio.create_task(self._loop("outcome", self.outcome_ms, self.scenario.outcome_tick)),
        ]
        if self.world is not None:
            self._tasks.append(asyncio.create_task(self._loop("world", self.world_step_ms, self._step_world)))
        logger.info(f"[TickRunner] Started {len(self._tasks)} loops")

    async def stop(self):
        """Stop all tick loops together."""
        if not self._tasks:
            return
        tasks, self._tasks = self._tasks, []
        for task in tasks:
            task.cancel()
        for task in tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self.scenario.shutdown()
        logger.info("[TickRunner] Stopped")

    async def __aenter__(self) -> "TickRunner":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.stop()

    def _step_world(self) -> List[Event]:
        self.world.step(self.world_step_ms)
        return []

    async def _loop(self, name: str, interval_ms: int, tick: Callable[[], List[Event]]):
        """Run tick immediately, then once per interval. A failing tick is logged and the loop goes on."""
        while True:
            try:
                evts = tick()
            except Exception:
                logger.exception(f"[TickRunner] {name} tick failed")
                evts = []
            if evts:
                logger.debug(f"[TickRunner] {name} tick produced {len(evts)} events")
                self.events.append_many(evts)
            await asyncio.sleep(self._sleep_s(interval_ms))

    def set_time_compression(self, time_compression: float):
        """Update time compression factor (1.0 = real-time, higher = faster)."""
        self.time_compression = max(0.1, min(1000.0, time_compression))
        logger.info(f"[TickRunner] Time compression set to {self.time_compression}x")
