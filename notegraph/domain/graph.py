"""Graph domain models.

These records are both the in-memory working set of the engine and the persisted layout
owned by the calling layer. Dumping with ``by_alias=True`` produces the camelCase schema
(``lastVisited``, ``parentId``) consumed by renderers.
"""

import math
import uuid

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class GraphModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Node(GraphModel):
    """A note placed in the 2-D layout.

    Attributes:
        id: Note id
        x, y: Position, updated every tick
        vx, vy: Velocity, updated every tick
        radius: Visual size
        last_visited: Timestamp of the last time the note was opened (seconds since epoch)
        weight: Salience derived from connectivity and recency
        parent_id: Containing node, if the note lives inside a group
    """

    id: str
    x: float = 0.0
    y: float = 0.0
    vx: float = 0.0
    vy: float = 0.0
    radius: float = 8.0
    last_visited: float = 0.0
    weight: float = 1.0
    parent_id: str | None = None

    @property
    def position(self) -> tuple[float, float]:
        return self.x, self.y

    @property
    def velocity(self) -> tuple[float, float]:
        return self.vx, self.vy

    def is_finite(self) -> bool:
        return all(math.isfinite(v) for v in (self.x, self.y, self.vx, self.vy))


class Edge(GraphModel):
    """A logically undirected connection between two notes.

    ``source`` and ``target`` keep the direction the edge was first requested in, but
    the graph holds at most one edge per unordered pair.
    """

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    source: str
    target: str
    strength: float = Field(default=1.0, ge=0.2)
    reason: str = ""

    @property
    def key(self) -> frozenset[str]:
        return frozenset((self.source, self.target))

    def other(self, node_id: str) -> str:
        return self.target if node_id == self.source else self.source

    def touches(self, node_id: str) -> bool:
        return node_id in (self.source, self.target)


class GraphState(GraphModel):
    """Serializable snapshot of every node and edge."""

    nodes: list[Node] = []
    edges: list[Edge] = []
