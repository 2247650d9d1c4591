"""Grouping of notes by embedding similarity into screen-space clusters."""

import logging
import math
from collections import defaultdict
from typing import Iterable

import numpy as np
from sklearn.cluster import KMeans

from notegraph.config import settings
from notegraph.domain.note import Note
from notegraph.domain.results import Cluster, ClusterNote, ClusterResult, ClusterStats
from notegraph.graph.store import GraphStore
from notegraph.vector_stores.base import VectorStore

logger = logging.getLogger(__name__)

INSUFFICIENT_DATA_MESSAGE = (
    "Not enough notes to cluster. You need at least {min_notes} notes with text content "
    "(more than {min_length} characters each)."
)

TOO_FEW_DISTINCT_MESSAGE = (
    "Not enough distinct notes to cluster. {n} notes need {k} clusters, but only {distinct} "
    "of them have different content."
)


def cluster_count(note_count: int, min_k: int = 2, max_k: int = 5) -> int:
    """Number of clusters for a given number of notes: half the notes, clamped."""
    return min(max_k, max(min_k, note_count // 2))


class ClusterPlanner:
    def __init__(
        self,
        *,
        store: GraphStore,
        vector_store: VectorStore,
        min_notes: int = settings.cluster_min_notes,
        min_k: int = settings.cluster_min_k,
        max_k: int = settings.cluster_max_k,
        min_text_length: int = settings.cluster_min_text_length,
        palette: list[str] | None = None,
        seed: int = settings.cluster_seed,
    ) -> None:
        self.store = store
        self.vector_store = vector_store
        self.min_notes = min_notes
        self.min_k = min_k
        self.max_k = max_k
        self.min_text_length = min_text_length
        self.palette = palette or list(settings.cluster_palette)
        self.seed = seed

    def eligible_notes(self, notes: Iterable[Note]) -> list[Note]:
        """Notes that can be clustered: placed in the graph, embedded and long enough."""
        return [
            note
            for note in notes
            if not note.archived
            and len(note.text) > self.min_text_length
            and note.id in self.store
            and self.vector_store.get_embedding(note.id) is not None
        ]

    def plan(self, notes: Iterable[Note], *, preview: bool = True) -> ClusterResult:
        """Cluster notes with k-means over their embeddings.

        Args:
            notes: Candidate notes; ineligible ones are skipped
            preview: When False, members of each cluster are moved onto a circle around the
                cluster centre and marked as non-ephemeral

        Returns:
            ClusterResult, with status ``insufficient_data`` when fewer than ``min_notes``
            notes are eligible or their embeddings hold fewer distinct vectors than clusters
        """
        eligible = sorted(self.eligible_notes(notes), key=lambda note: note.id)
        if len(eligible) < self.min_notes:
            logger.info(f"Not clustering: only {len(eligible)} eligible notes")
            return ClusterResult(
                status="insufficient_data",
                message=INSUFFICIENT_DATA_MESSAGE.format(
                    min_notes=self.min_notes, min_length=self.min_text_length
                ),
                preview=preview,
            )

        k = cluster_count(len(eligible), self.min_k, self.max_k)
        matrix = np.stack([self.vector_store.get_embedding(note.id).vector for note in eligible])
        distinct = len(np.unique(matrix, axis=0))
        if distinct < k:
            logger.info(f"Not clustering: {distinct} distinct embeddings for {k} clusters")
            return ClusterResult(
                status="insufficient_data",
                message=TOO_FEW_DISTINCT_MESSAGE.format(n=len(eligible), k=k, distinct=distinct),
                preview=preview,
            )
        logger.info(
            f"Clustering {len(eligible)} notes into {k} clusters "
            f"(embedding dimensions: {matrix.shape[1]})"
        )
        labels = KMeans(
            n_clusters=k,
            init="k-means++",
            n_init=10,
            max_iter=100,
            tol=1e-4,
            random_state=self.seed,
        ).fit_predict(matrix)

        clusters = self._build_clusters(eligible, labels)
        if not preview:
            self._apply(clusters, eligible)

        sizes = [len(cluster.notes) for cluster in clusters]
        logger.info(
            "Created clusters: "
            + ", ".join(f"{cluster.name}: {len(cluster.notes)} notes" for cluster in clusters)
        )
        return ClusterResult(
            preview=preview,
            clusters=clusters,
            stats=ClusterStats(
                total_notes=len(eligible),
                num_clusters=len(clusters),
                average_cluster_size=round(len(eligible) / len(clusters)),
                smallest_cluster=min(sizes),
                largest_cluster=max(sizes),
            ),
        )

    def _build_clusters(self, notes: list[Note], labels: np.ndarray) -> list[Cluster]:
        members: dict[int, list[ClusterNote]] = defaultdict(list)
        with self.store.lock:
            for note, label in zip(notes, labels):
                node = self.store.require_node(note.id)
                members[int(label)].append(
                    ClusterNote(
                        id=note.id, title=note.title, x=node.x, y=node.y, preview=note.preview
                    )
                )

        clusters = [
            Cluster(
                id=f"cluster-{label}",
                name=f"Group {label + 1}",
                notes=cluster_notes,
                center_x=sum(n.x for n in cluster_notes) / len(cluster_notes),
                center_y=sum(n.y for n in cluster_notes) / len(cluster_notes),
                color=self.palette[label % len(self.palette)],
            )
            for label, cluster_notes in sorted(members.items())
        ]
        # Largest first; sort is stable so equal sizes keep label order
        clusters.sort(key=lambda cluster: len(cluster.notes), reverse=True)
        return clusters

    def _apply(self, clusters: list[Cluster], notes: list[Note]) -> None:
        with self.store.lock:
            for cluster in clusters:
                radius = min(200.0, len(cluster.notes) * 35.0)
                angle_step = 2 * math.pi / len(cluster.notes)
                for i, member in enumerate(cluster.notes):
                    node = self.store.get_node(member.id)
                    if node is None:
                        logger.warning(f"Note {member.id} left the graph while clustering")
                        continue
                    angle = i * angle_step
                    node.x = cluster.center_x + radius * math.cos(angle)
                    node.y = cluster.center_y + radius * math.sin(angle)
                    node.vx, node.vy = 0.0, 0.0
                    logger.debug(f"Moved note {member.id} to ({node.x:.1f}, {node.y:.1f})")

        organized = {member.id for cluster in clusters for member in cluster.notes}
        for note in notes:
            if note.id in organized:
                note.ephemeral = False
        logger.info("Cluster positions applied")
