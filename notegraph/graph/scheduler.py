"""Fixed-rate driver for the layout simulation."""

import asyncio
import time
from typing import Callable

from loguru import logger

from notegraph.config import settings
from notegraph.graph.layout import LayoutSimulator

TickListener = Callable[[int, float], None]


class SimulationLoop:
    """Runs ``LayoutSimulator.tick`` at a fixed rate on the running event loop.

    Ticks execute inline on the loop, and the loop yields between ticks, so other
    coroutines (embedding requests, user events) interleave only at tick boundaries.
    Pause the loop while the graph view is hidden; stop it to end the task.
    """

    def __init__(
        self, simulator: LayoutSimulator, *, tick_rate_hz: float = settings.tick_rate_hz
    ) -> None:
        if tick_rate_hz <= 0:
            raise ValueError("tick_rate_hz must be positive")
        self.simulator = simulator
        self.interval = 1.0 / tick_rate_hz
        self._listeners: list[TickListener] = []
        self._task: asyncio.Task | None = None
        self._resumed = asyncio.Event()
        self._resumed.set()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def paused(self) -> bool:
        return not self._resumed.is_set()

    def add_listener(self, listener: TickListener) -> None:
        """Register a callback receiving (tick number, kinetic energy) after every tick."""
        self._listeners.append(listener)

    def start(self) -> asyncio.Task:
        if self.running:
            return self._task  # type: ignore[return-value]
        logger.info(f"Starting layout simulation at {1 / self.interval:.0f} ticks per second")
        self._task = asyncio.get_running_loop().create_task(self._run())
        return self._task

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info(f"Stopped layout simulation after {self.simulator.ticks} ticks")

    def pause(self) -> None:
        self._resumed.clear()

    def resume(self) -> None:
        self._resumed.set()

    async def _run(self) -> None:
        while True:
            await self._resumed.wait()
            started = time.perf_counter()
            try:
                energy = self.simulator.tick()
            except Exception as e:
                logger.error(f"Layout tick failed: {str(e)}")
                await asyncio.sleep(self.interval)
                continue
            for listener in self._listeners:
                try:
                    listener(self.simulator.ticks, energy)
                except Exception as e:
                    logger.error(f"Tick listener failed: {str(e)}")
            elapsed = time.perf_counter() - started
            await asyncio.sleep(max(0.0, self.interval - elapsed))
