"""CLI running the live layout loop on a saved graph for a while, then saving positions."""

import argparse
import asyncio
import sys

from loguru import logger

from notegraph.config import settings
from notegraph.graph.layout import LayoutSimulator
from notegraph.graph.scheduler import SimulationLoop
from notegraph.graph.store import GraphStore


async def main(graph_state_path: str, seconds: float, tick_rate_hz: float) -> None:
    store = GraphStore.load(graph_state_path)
    simulator = LayoutSimulator(store)
    loop = SimulationLoop(simulator, tick_rate_hz=tick_rate_hz)

    def report(tick: int, energy: float) -> None:
        if tick % max(1, int(tick_rate_hz)) == 0:
            logger.info(f"Tick {tick}: kinetic energy {energy:.4f}")

    loop.add_listener(report)
    loop.start()
    try:
        await asyncio.sleep(seconds)
    finally:
        await loop.stop()

    store.save(graph_state_path)
    logger.info(f"Saved {len(store)} node positions to {graph_state_path}")


if __name__ == "__main__":
    logger.configure(handlers=[{"sink": sys.stderr, "level": settings.log_level}])

    parser = argparse.ArgumentParser()
    parser.add_argument(
        "--graph", type=str, default=settings.graph_state_path, help="Graph state file"
    )
    parser.add_argument("--seconds", type=float, default=10.0, help="How long to simulate")
    parser.add_argument(
        "--tick-rate", type=float, default=settings.tick_rate_hz, help="Ticks per second"
    )

    args = parser.parse_args()

    asyncio.run(main(args.graph, args.seconds, args.tick_rate))
