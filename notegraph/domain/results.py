"""Result models handed back to collaborators."""

from typing import Literal

from pydantic import BaseModel

from notegraph.domain.graph import Edge, GraphModel


class LinkSuggestion(BaseModel):
    """A ranked connection suggestion for a note."""

    id: str
    title: str
    reason: str
    distance: float


class SearchHit(BaseModel):
    id: str
    title: str
    preview: str
    x: float | None = None
    y: float | None = None
    distance: float


class ClusterNote(GraphModel):
    id: str
    title: str
    x: float
    y: float
    preview: str = ""


class Cluster(GraphModel):
    """A group of notes with similar embeddings and the screen area they gather around."""

    id: str
    name: str
    notes: list[ClusterNote]
    center_x: float
    center_y: float
    color: str


class ClusterStats(GraphModel):
    total_notes: int
    num_clusters: int
    average_cluster_size: int
    smallest_cluster: int
    largest_cluster: int


class ClusterResult(GraphModel):
    """Outcome of a clustering request.

    ``status`` is ``"insufficient_data"`` when there were too few eligible notes; in that
    case ``message`` explains why and ``clusters`` is empty.
    """

    status: Literal["ok", "insufficient_data"] = "ok"
    message: str = ""
    preview: bool = True
    clusters: list[Cluster] = []
    stats: ClusterStats | None = None

    @property
    def ok(self) -> bool:
        return self.status == "ok"


class NoteSummary(GraphModel):
    id: str
    title: str
    modified: float
    link_count: int = 0


class Rediscovery(GraphModel):
    """Forgotten corners of the graph worth revisiting."""

    orphans: list[NoteSummary] = []
    weak_connections: list[NoteSummary] = []
    surprising_connections: list[Edge] = []
