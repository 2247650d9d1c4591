"""Force-directed layout simulation.

Each tick applies pairwise repulsion, spring attraction along edges and a weak pull
towards the origin, damps velocities and integrates positions with one explicit Euler
step. The simulation has no terminal state; callers drive ``tick()`` at a fixed rate.
"""

import logging

import numpy as np

from notegraph.config import settings
from notegraph.graph.store import GraphStore

logger = logging.getLogger(__name__)


class LayoutSimulator:
    def __init__(
        self,
        store: GraphStore,
        *,
        repulsion_constant: float = settings.repulsion_constant,
        repulsion_softening: float = settings.repulsion_softening,
        spring_length: float = settings.spring_length,
        spring_constant: float = settings.spring_constant,
        centering_strength: float = settings.centering_strength,
        damping: float = settings.damping,
    ) -> None:
        """Initialize the simulator.

        Args:
            store: Graph whose node positions and velocities are advanced
            repulsion_constant: Numerator of the inverse-square repulsion between every pair
            repulsion_softening: Added to the squared distance so coincident nodes stay finite
            spring_length: Rest length of edges
            spring_constant: Stiffness of edges
            centering_strength: Proportion of a node's offset from the origin pulled back per tick
            damping: Velocity multiplier applied every tick, below 1
        """
        self.store = store
        self.repulsion_constant = repulsion_constant
        self.repulsion_softening = repulsion_softening
        self.spring_length = spring_length
        self.spring_constant = spring_constant
        self.centering_strength = centering_strength
        self.damping = damping
        self.ticks = 0

    def tick(self) -> float:
        """Advance the layout by one step.

        Returns:
            Kinetic energy of the free nodes after the step
        """
        with self.store.lock:
            nodes = self.store.nodes()
            self.ticks += 1
            if not nodes:
                return 0.0

            index = {node.id: i for i, node in enumerate(nodes)}
            positions = np.array([[node.x, node.y] for node in nodes], dtype=np.float64)
            velocities = np.array([[node.vx, node.vy] for node in nodes], dtype=np.float64)
            free = np.array([not self.store.is_pinned(node.id) for node in nodes])

            corrupt = ~np.isfinite(positions).all(axis=1) | ~np.isfinite(velocities).all(axis=1)
            for i in np.flatnonzero(corrupt):
                logger.warning(f"Resetting non-finite position/velocity of node {nodes[i].id}")
                self.store.reset_non_finite(nodes[i])
            positions = np.nan_to_num(positions, nan=0.0, posinf=0.0, neginf=0.0)
            velocities = np.nan_to_num(velocities, nan=0.0, posinf=0.0, neginf=0.0)

            forces = self._repulsion(positions)
            forces += self._springs(positions, index)
            forces -= positions * self.centering_strength

            velocities[free] = (velocities[free] + forces[free]) * self.damping
            velocities[~free] = 0.0

            residual = ~np.isfinite(velocities).all(axis=1)
            for i in np.flatnonzero(residual):
                logger.warning(f"Resetting non-finite velocity of node {nodes[i].id}")
            velocities[residual] = 0.0

            positions[free] += velocities[free]

            for i, node in enumerate(nodes):
                if free[i]:
                    node.x, node.y = float(positions[i, 0]), float(positions[i, 1])
                    node.vx, node.vy = float(velocities[i, 0]), float(velocities[i, 1])

            return float((velocities[free] ** 2).sum())

    def run(self, ticks: int) -> list[float]:
        """Advance ``ticks`` steps synchronously, returning the kinetic energy after each."""
        return [self.tick() for _ in range(ticks)]

    def kinetic_energy(self) -> float:
        with self.store.lock:
            return sum(
                node.vx**2 + node.vy**2
                for node in self.store.nodes()
                if not self.store.is_pinned(node.id)
            )

    def _repulsion(self, positions: np.ndarray) -> np.ndarray:
        if len(positions) < 2:
            return np.zeros_like(positions)

        deltas = positions[:, None, :] - positions[None, :, :]
        squared = (deltas**2).sum(axis=2)
        distances = np.sqrt(squared)
        magnitude = self.repulsion_constant / (squared + self.repulsion_softening)

        with np.errstate(divide="ignore", invalid="ignore"):
            units = np.where(distances[..., None] > 0, deltas / distances[..., None], 0.0)
        return (units * magnitude[..., None]).sum(axis=1)

    def _springs(self, positions: np.ndarray, index: dict[str, int]) -> np.ndarray:
        forces = np.zeros_like(positions)
        pairs = []
        for edge in self.store.edges():
            if edge.source not in index or edge.target not in index:
                logger.warning(f"Dropping dangling edge {edge.id} ({edge.source} -> {edge.target})")
                self.store.remove_edge(edge.id)
                continue
            pairs.append((index[edge.source], index[edge.target]))
        if not pairs:
            return forces

        sources, targets = np.array(pairs).T
        deltas = positions[targets] - positions[sources]
        distances = np.linalg.norm(deltas, axis=1)
        with np.errstate(divide="ignore", invalid="ignore"):
            units = np.where(distances[:, None] > 0, deltas / distances[:, None], 0.0)
        pull = units * ((distances - self.spring_length) * self.spring_constant)[:, None]

        np.add.at(forces, sources, pull)
        np.add.at(forces, targets, -pull)
        return forces
