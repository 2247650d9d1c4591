"""In-memory arena of graph nodes and edges.

Nodes are kept in a flat dictionary keyed by id; hierarchy is expressed through explicit
``parent_id`` pointers plus a child index, so lookups never walk nested structures.
Edges are keyed by the unordered pair of their endpoints.
"""

import json
import logging
import math
import random
import threading
from collections import defaultdict
from pathlib import Path
from typing import Iterator

from notegraph.config import settings
from notegraph.domain.graph import Edge, GraphState, Node
from notegraph.exceptions import InvalidLinkError, NodeNotFoundError

logger = logging.getLogger(__name__)


class GraphStore:
    """Node/edge working set shared by the simulator, the linker and the note store.

    Every mutation takes ``lock``. The layout simulator holds it for a whole tick, so
    mutations from other threads land strictly between ticks.
    """

    def __init__(
        self,
        *,
        initial_spread: float = settings.initial_spread,
        initial_velocity: float = settings.initial_velocity,
        node_radius: float = settings.node_radius,
        seed: int | None = None,
    ) -> None:
        self.lock = threading.RLock()
        self._initial_spread = initial_spread
        self._initial_velocity = initial_velocity
        self._node_radius = node_radius
        self._rng = random.Random(seed)

        self._nodes: dict[str, Node] = {}
        self._edges: dict[frozenset[str], Edge] = {}
        self._edge_keys: dict[str, frozenset[str]] = {}
        self._adjacency: dict[str, set[str]] = defaultdict(set)
        self._children: dict[str, set[str]] = defaultdict(set)
        self._pinned: set[str] = set()
        self._topology_version = 0

    @classmethod
    def from_state(cls, state: GraphState, **kwargs) -> "GraphStore":
        """Build a store from a persisted snapshot, dropping edges that cannot be honoured.

        Dangling edges (an endpoint missing) and repeated pairs are logged and skipped.
        """
        store = cls(**kwargs)
        for node in state.nodes:
            if node.id in store._nodes:
                logger.warning(f"Duplicate node {node.id} in graph state, keeping the first")
                continue
            store._insert_node(node.model_copy())

        for node in store._nodes.values():
            if node.parent_id is not None and node.parent_id not in store._nodes:
                logger.warning(f"Node {node.id} references missing parent {node.parent_id}")
                store._children.pop(node.parent_id, None)
                node.parent_id = None

        for edge in state.edges:
            if edge.source not in store._nodes or edge.target not in store._nodes:
                logger.warning(
                    f"Dropping dangling edge {edge.id} ({edge.source} -> {edge.target})"
                )
                continue
            if edge.source == edge.target:
                logger.warning(f"Dropping self edge {edge.id} on {edge.source}")
                continue
            if edge.key in store._edges:
                logger.warning(
                    f"Dropping duplicate edge {edge.id} between {edge.source} and {edge.target}"
                )
                continue
            store.add_edge(edge.model_copy())
        return store

    @classmethod
    def load(cls, filepath: str | Path, **kwargs) -> "GraphStore":
        """Load a store from a JSON file, or create an empty one if the file does not exist."""
        path = Path(filepath)
        if not path.exists():
            return cls(**kwargs)
        with open(path, "r") as f:
            data = json.load(f)
        return cls.from_state(GraphState.model_validate(data), **kwargs)

    def to_state(self) -> GraphState:
        with self.lock:
            return GraphState(
                nodes=[node.model_copy() for node in self._nodes.values()],
                edges=[edge.model_copy() for edge in self._edges.values()],
            )

    def save(self, filepath: str | Path) -> None:
        path = Path(filepath)
        path.parent.mkdir(parents=True, exist_ok=True)
        state = self.to_state()
        with open(path, "w") as f:
            json.dump(state.model_dump(by_alias=True), f)

    @property
    def topology_version(self) -> int:
        """Counter bumped whenever nodes or edges are added or removed."""
        return self._topology_version

    # Nodes

    def add_node(
        self,
        node_id: str,
        *,
        x: float | None = None,
        y: float | None = None,
        parent_id: str | None = None,
        last_visited: float = 0.0,
    ) -> Node:
        """Add a node, placing it at a random position with a small random velocity.

        Adding an id that already exists returns the existing node unchanged.
        """
        with self.lock:
            existing = self._nodes.get(node_id)
            if existing is not None:
                return existing

            spread = self._initial_spread / 2
            jitter = self._initial_velocity
            node = Node(
                id=node_id,
                x=x if x is not None else self._rng.uniform(-spread, spread),
                y=y if y is not None else self._rng.uniform(-spread, spread),
                vx=self._rng.uniform(-jitter, jitter),
                vy=self._rng.uniform(-jitter, jitter),
                radius=self._node_radius,
                last_visited=last_visited,
                parent_id=parent_id if parent_id in self._nodes else None,
            )
            self._insert_node(node)
            return node

    def _insert_node(self, node: Node) -> None:
        self._nodes[node.id] = node
        self._adjacency.setdefault(node.id, set())
        if node.parent_id is not None:
            self._children[node.parent_id].add(node.id)
        self._topology_version += 1

    def remove_node(self, node_id: str) -> list[Edge]:
        """Remove a node and every edge touching it.

        Children of the removed node are re-parented to its parent. Removing an unknown
        node is a no-op.

        Returns:
            The edges that were removed along with the node
        """
        with self.lock:
            node = self._nodes.pop(node_id, None)
            if node is None:
                return []

            removed = self.edges_of(node_id)
            for edge in removed:
                self._discard_edge(edge)
            self._adjacency.pop(node_id, None)

            for child_id in self._children.pop(node_id, set()):
                child = self._nodes[child_id]
                child.parent_id = node.parent_id
                if node.parent_id is not None:
                    self._children[node.parent_id].add(child_id)
            if node.parent_id is not None:
                self._children[node.parent_id].discard(node_id)

            self._pinned.discard(node_id)
            self._topology_version += 1
            logger.debug(f"Removed node {node_id} and {len(removed)} edges")
            return removed

    def get_node(self, node_id: str) -> Node | None:
        return self._nodes.get(node_id)

    def require_node(self, node_id: str) -> Node:
        node = self._nodes.get(node_id)
        if node is None:
            raise NodeNotFoundError(node_id)
        return node

    def has_node(self, node_id: str) -> bool:
        return node_id in self._nodes

    def nodes(self) -> list[Node]:
        return list(self._nodes.values())

    def node_ids(self) -> list[str]:
        return list(self._nodes.keys())

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    def __iter__(self) -> Iterator[Node]:
        return iter(list(self._nodes.values()))

    def visit(self, node_id: str, when: float) -> Node:
        with self.lock:
            node = self.require_node(node_id)
            node.last_visited = when
            return node

    # Hierarchy

    def set_parent(self, node_id: str, parent_id: str | None) -> None:
        with self.lock:
            node = self.require_node(node_id)
            if parent_id is not None:
                self.require_node(parent_id)
                if parent_id == node_id or node_id in self.ancestors(parent_id):
                    raise InvalidLinkError(
                        f"Making {parent_id} the parent of {node_id} creates a cycle"
                    )
            if node.parent_id is not None:
                self._children[node.parent_id].discard(node_id)
            node.parent_id = parent_id
            if parent_id is not None:
                self._children[parent_id].add(node_id)

    def children(self, node_id: str) -> list[str]:
        return sorted(self._children.get(node_id, ()))

    def ancestors(self, node_id: str) -> list[str]:
        """Ids of the containing nodes, nearest first."""
        result: list[str] = []
        node = self._nodes.get(node_id)
        while node is not None and node.parent_id is not None and node.parent_id not in result:
            result.append(node.parent_id)
            node = self._nodes.get(node.parent_id)
        return result

    # Edges

    def add_edge(self, edge: Edge) -> Edge:
        """Insert a new edge. Use ``ConnectionModel`` to create or reinforce links."""
        with self.lock:
            if edge.source == edge.target:
                raise InvalidLinkError(f"Cannot link note {edge.source} to itself")
            self.require_node(edge.source)
            self.require_node(edge.target)
            if edge.key in self._edges:
                raise InvalidLinkError(
                    f"Notes {edge.source} and {edge.target} are already connected"
                )
            self._edges[edge.key] = edge
            self._edge_keys[edge.id] = edge.key
            self._adjacency[edge.source].add(edge.target)
            self._adjacency[edge.target].add(edge.source)
            self._topology_version += 1
            return edge

    def get_edge(self, first_id: str, second_id: str) -> Edge | None:
        return self._edges.get(frozenset((first_id, second_id)))

    def get_edge_by_id(self, edge_id: str) -> Edge | None:
        key = self._edge_keys.get(edge_id)
        return self._edges.get(key) if key is not None else None

    def remove_edge(self, edge_id: str) -> Edge | None:
        with self.lock:
            edge = self.get_edge_by_id(edge_id)
            if edge is not None:
                self._discard_edge(edge)
                self._topology_version += 1
            return edge

    def unlink(self, first_id: str, second_id: str) -> Edge | None:
        with self.lock:
            edge = self.get_edge(first_id, second_id)
            if edge is not None:
                self._discard_edge(edge)
                self._topology_version += 1
            return edge

    def _discard_edge(self, edge: Edge) -> None:
        self._edges.pop(edge.key, None)
        self._edge_keys.pop(edge.id, None)
        self._adjacency.get(edge.source, set()).discard(edge.target)
        self._adjacency.get(edge.target, set()).discard(edge.source)

    def edges(self) -> list[Edge]:
        return list(self._edges.values())

    def edges_of(self, node_id: str) -> list[Edge]:
        return [
            self._edges[frozenset((node_id, other))] for other in self._adjacency.get(node_id, ())
        ]

    def neighbors(self, node_id: str) -> set[str]:
        return set(self._adjacency.get(node_id, ()))

    def degree(self, node_id: str) -> int:
        return len(self._adjacency.get(node_id, ()))

    def topology(self) -> tuple[int, list[str], list[tuple[str, str]]]:
        """Snapshot node ids and edge endpoint pairs for background computations.

        Returns:
            Tuple of (topology version, node ids, edge endpoint pairs), read together
        """
        with self.lock:
            return (
                self._topology_version,
                list(self._nodes),
                [(e.source, e.target) for e in self._edges.values()],
            )

    # Dragging

    def pin(self, node_id: str, x: float, y: float) -> Node:
        """Start dragging a node: it stops moving under forces and follows the pointer."""
        with self.lock:
            node = self.require_node(node_id)
            self._pinned.add(node_id)
            node.x, node.y = x, y
            node.vx, node.vy = 0.0, 0.0
            return node

    def move_pinned(self, node_id: str, x: float, y: float) -> Node:
        with self.lock:
            if node_id not in self._pinned:
                return self.pin(node_id, x, y)
            node = self.require_node(node_id)
            node.x, node.y = x, y
            return node

    def unpin(self, node_id: str) -> None:
        with self.lock:
            self._pinned.discard(node_id)

    def is_pinned(self, node_id: str) -> bool:
        return node_id in self._pinned

    @property
    def pinned(self) -> frozenset[str]:
        return frozenset(self._pinned)

    def reset_non_finite(self, node: Node) -> bool:
        """Zero out non-finite coordinates of a node. Returns True if anything was reset."""
        reset = False
        for field in ("x", "y", "vx", "vy"):
            if not math.isfinite(getattr(node, field)):
                setattr(node, field, 0.0)
                reset = True
        return reset
