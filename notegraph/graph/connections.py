"""Edge strength reinforcement and node weight decay."""

import logging
import time

from notegraph.config import settings
from notegraph.domain.graph import Edge
from notegraph.graph.store import GraphStore

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 24 * 60 * 60

MANUAL_LINK_REASON = "Manual link"


class ConnectionModel:
    """Rules for creating, reinforcing and weighing connections.

    Creating a link is instantaneous: a new edge starts at ``initial_strength`` and every
    repeated request for the same pair adds an increment. Node weight, by contrast, decays
    continuously with the time since the note was last updated.
    """

    def __init__(
        self,
        *,
        initial_strength: float = settings.initial_edge_strength,
        auto_increment: float = settings.auto_link_increment,
        manual_increment: float = settings.manual_link_increment,
        min_weight: float = settings.min_node_weight,
        weight_per_link: float = settings.weight_per_link,
        decay_per_day: float = settings.weight_decay_per_day,
    ) -> None:
        self.initial_strength = initial_strength
        self.auto_increment = auto_increment
        self.manual_increment = manual_increment
        self.min_weight = min_weight
        self.weight_per_link = weight_per_link
        self.decay_per_day = decay_per_day

    def link(
        self, store: GraphStore, source: str, target: str, *, increment: float, reason: str
    ) -> tuple[Edge, bool]:
        """Create an edge between two notes, or reinforce the one that already exists.

        Args:
            store: Graph holding both notes
            source: Id of the note the request originates from
            target: Id of the other note
            increment: Strength added when the pair is already connected
            reason: Provenance recorded on a newly created edge

        Returns:
            Tuple of (edge, created)
        """
        with store.lock:
            edge = store.get_edge(source, target)
            if edge is not None:
                edge.strength += increment
                logger.debug(
                    f"Reinforced edge {source} <-> {target} by {increment} to {edge.strength}"
                )
                return edge, False

            edge = store.add_edge(
                Edge(source=source, target=target, strength=self.initial_strength, reason=reason)
            )
            logger.debug(f"Created edge {source} <-> {target}: {reason}")
            return edge, True

    def auto_link(
        self, store: GraphStore, source: str, target: str, reason: str
    ) -> tuple[Edge, bool]:
        return self.link(store, source, target, increment=self.auto_increment, reason=reason)

    def manual_link(
        self, store: GraphStore, source: str, target: str, reason: str | None = None
    ) -> tuple[Edge, bool]:
        return self.link(
            store,
            source,
            target,
            increment=self.manual_increment,
            reason=reason or MANUAL_LINK_REASON,
        )

    def compute_weight(self, link_count: int, days_since_update: float) -> float:
        """Salience of a note: rewarded for connectivity, decayed by staleness, floored."""
        reward = self.weight_per_link * link_count
        decay = self.decay_per_day * max(0.0, days_since_update)
        return max(self.min_weight, 1 + reward - decay)

    def recompute_weight(
        self, store: GraphStore, node_id: str, last_updated: float, now: float | None = None
    ) -> float:
        """Recompute and store the weight of one node. Touches no other node."""
        now = time.time() if now is None else now
        with store.lock:
            node = store.require_node(node_id)
            days = (now - last_updated) / SECONDS_PER_DAY
            node.weight = self.compute_weight(store.degree(node_id), days)
            return node.weight
