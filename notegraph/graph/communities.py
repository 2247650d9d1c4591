"""Community detection by greedy modularity optimization.

The local-moving phase repeatedly offers every node the neighbouring community that
improves modularity the most. Communities are then split into their connected parts and
each part is labelled with a deterministic hub node, which renderers use for coloring.
"""

import logging
import random
from collections import defaultdict, deque
from typing import Iterable

from notegraph.config import settings

logger = logging.getLogger(__name__)

CommunityMap = dict[str, str]


class CommunityDetector:
    def __init__(
        self,
        *,
        max_passes: int = settings.community_max_passes,
        resolution: float = settings.community_resolution,
        epsilon: float = settings.community_epsilon,
        seed: int | None = settings.community_seed,
    ) -> None:
        """Initialize the detector.

        Args:
            max_passes: Upper bound on local-moving passes over all nodes
            resolution: Modularity resolution (gamma); higher values favour smaller communities
            epsilon: Margin a move must beat the current community by, preventing oscillation
            seed: Seed for the node visiting order; None draws a fresh order every run
        """
        self.max_passes = max_passes
        self.resolution = resolution
        self.epsilon = epsilon
        self.seed = seed

    def detect(self, node_ids: Iterable[str], edges: Iterable[tuple[str, str]]) -> CommunityMap:
        """Map every node to the hub of its community.

        Args:
            node_ids: All nodes in the graph, including isolated ones
            edges: Unweighted connections as (source, target) pairs

        Returns:
            Dictionary mapping node id to hub node id
        """
        nodes = sorted(set(node_ids))
        adjacency = self._build_adjacency(nodes, edges)
        strengths = {node: sum(adjacency[node].values()) for node in nodes}

        membership = self._local_moving(nodes, adjacency, strengths)
        hubs = self._assign_hubs(membership, adjacency, strengths)

        logger.debug(f"Detected {len(set(hubs.values()))} communities among {len(nodes)} nodes")
        return hubs

    @staticmethod
    def _build_adjacency(
        nodes: list[str], edges: Iterable[tuple[str, str]]
    ) -> dict[str, dict[str, float]]:
        known = set(nodes)
        adjacency: dict[str, dict[str, float]] = {node: defaultdict(float) for node in nodes}
        for source, target in edges:
            if source not in known or target not in known:
                logger.warning(f"Ignoring edge {source} -> {target} with unknown endpoint")
                continue
            if source == target:
                continue
            adjacency[source][target] += 1.0
            adjacency[target][source] += 1.0
        return adjacency

    def _local_moving(
        self,
        nodes: list[str],
        adjacency: dict[str, dict[str, float]],
        strengths: dict[str, float],
    ) -> dict[str, str]:
        membership = {node: node for node in nodes}
        total_weight = sum(strengths.values()) / 2
        if total_weight == 0:
            return membership

        community_totals: dict[str, float] = dict(strengths)
        scale = self.resolution / (2 * total_weight)
        rng = random.Random(self.seed)
        order = list(nodes)

        for pass_number in range(1, self.max_passes + 1):
            rng.shuffle(order)
            moves = 0

            for node in order:
                k_i = strengths[node]
                if k_i == 0:
                    continue

                links_to: dict[str, float] = defaultdict(float)
                for neighbor, weight in adjacency[node].items():
                    links_to[membership[neighbor]] += weight

                current = membership[node]
                community_totals[current] -= k_i

                best = current
                best_gain = links_to.get(current, 0.0) - k_i * community_totals[current] * scale
                for community in sorted(links_to):
                    if community == current:
                        continue
                    gain = links_to[community] - k_i * community_totals[community] * scale
                    if gain > best_gain + self.epsilon:
                        best, best_gain = community, gain

                community_totals[best] = community_totals.get(best, 0.0) + k_i
                if best != current:
                    membership[node] = best
                    moves += 1

            logger.debug(f"Local moving pass {pass_number}: {moves} moves")
            if moves == 0:
                break

        return membership

    @staticmethod
    def _assign_hubs(
        membership: dict[str, str],
        adjacency: dict[str, dict[str, float]],
        strengths: dict[str, float],
    ) -> CommunityMap:
        hubs: CommunityMap = {}
        for node in sorted(membership):
            if node in hubs:
                continue

            # Breadth-first search restricted to edges inside the node's community
            community = membership[node]
            component = [node]
            visited = {node}
            queue = deque([node])
            while queue:
                current = queue.popleft()
                for neighbor in adjacency[current]:
                    if neighbor not in visited and membership[neighbor] == community:
                        visited.add(neighbor)
                        component.append(neighbor)
                        queue.append(neighbor)

            hub = min(component, key=lambda member: (-strengths[member], member))
            for member in component:
                hubs[member] = hub
        return hubs


def modularity(
    hubs: CommunityMap, edges: Iterable[tuple[str, str]], resolution: float = 1.0
) -> float:
    """Modularity of a partition given as a node -> hub mapping."""
    degrees: dict[str, float] = defaultdict(float)
    internal: dict[str, float] = defaultdict(float)
    total_weight = 0.0
    for source, target in edges:
        if source == target or source not in hubs or target not in hubs:
            continue
        total_weight += 1
        degrees[source] += 1
        degrees[target] += 1
        if hubs[source] == hubs[target]:
            internal[hubs[source]] += 1
    if total_weight == 0:
        return 0.0

    community_degrees: dict[str, float] = defaultdict(float)
    for node, degree in degrees.items():
        community_degrees[hubs[node]] += degree

    return sum(
        internal[community] / total_weight
        - resolution * (community_degrees[community] / (2 * total_weight)) ** 2
        for community in community_degrees
    )
