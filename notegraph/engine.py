"""Entry point wiring note events from the surrounding application to the graph engine."""

import asyncio
import time
from typing import Iterable

from loguru import logger

from notegraph.clustering.planner import ClusterPlanner
from notegraph.config import Settings, settings as default_settings
from notegraph.domain.graph import Edge, GraphState, Node
from notegraph.domain.note import Embedding, Note
from notegraph.domain.results import (
    ClusterResult,
    LinkSuggestion,
    NoteSummary,
    Rediscovery,
    SearchHit,
)
from notegraph.embedders.base import Embedder
from notegraph.exceptions import InvalidLinkError
from notegraph.graph.communities import CommunityDetector, CommunityMap
from notegraph.graph.connections import SECONDS_PER_DAY, ConnectionModel
from notegraph.graph.layout import LayoutSimulator
from notegraph.graph.store import GraphStore
from notegraph.linking.linker import SemanticLinker
from notegraph.vector_stores.base import VectorStore
from notegraph.vector_stores.local_store import LocalVectorStore


class NoteGraphEngine:
    """Keeps the node/edge graph of one user's notes in step with the note store.

    The external note store stays the source of truth for which notes exist and what they
    say; the engine mirrors that into graph nodes, embeddings and edges, and exposes
    layout, communities, link suggestions and clusters computed from them.
    """

    def __init__(
        self,
        *,
        store: GraphStore,
        vector_store: VectorStore,
        connections: ConnectionModel | None = None,
        simulator: LayoutSimulator | None = None,
        linker: SemanticLinker | None = None,
        detector: CommunityDetector | None = None,
        planner: ClusterPlanner | None = None,
        settings: Settings = default_settings,
    ) -> None:
        self.settings = settings
        self.store = store
        self.vector_store = vector_store
        self.connections = connections or ConnectionModel()
        self.simulator = simulator or LayoutSimulator(store)
        self.linker = linker or SemanticLinker(
            store=store, vector_store=vector_store, connections=self.connections
        )
        self.detector = detector or CommunityDetector()
        self.planner = planner or ClusterPlanner(store=store, vector_store=vector_store)

        self._notes: dict[str, Note] = {}
        self._communities: tuple[int, CommunityMap] = (-1, {})

    @classmethod
    def from_settings(
        cls, embedder: Embedder, settings: Settings = default_settings
    ) -> "NoteGraphEngine":
        """Load persisted graph and embeddings from the paths configured in settings."""
        store = GraphStore.load(settings.graph_state_path)
        vector_store = LocalVectorStore(embedder, filepath=settings.vector_store_path)
        logger.info(
            f"Loaded graph with {len(store)} nodes and {len(store.edges())} edges "
            f"from {settings.graph_state_path}"
        )
        return cls(store=store, vector_store=vector_store, settings=settings)

    def save(self) -> None:
        self.store.save(self.settings.graph_state_path)
        self.vector_store.save()

    # Note lifecycle

    def sync_notes(self, notes: Iterable[Note]) -> None:
        """Reconcile the graph with the full list of notes from the note store.

        Nodes are added for new notes and removed for notes that disappeared or were
        archived. Embeddings are refreshed where the text changed.
        """
        incoming = {note.id: note for note in notes}
        stale = [note_id for note_id in self.store.node_ids() if note_id not in incoming]
        for note_id in stale:
            self.delete_note(note_id)

        for note in incoming.values():
            self._notes[note.id] = note
            if note.archived:
                self._remove_from_graph(note.id)
                continue
            self.store.add_node(note.id, last_visited=note.modified)
            self.vector_store.update_note(note)

        # Parents may be listed after their children, so link them once every node exists
        for note in incoming.values():
            if not note.archived:
                self._place_in_hierarchy(note)

        logger.info(f"Synced {len(incoming)} notes, removed {len(stale)} stale nodes")

    def add_note(
        self, note: Note, *, x: float | None = None, y: float | None = None
    ) -> Node | None:
        """Register a newly created note. Archived notes get no node."""
        self._notes[note.id] = note
        if note.archived:
            return None
        node = self.store.add_node(
            note.id, x=x, y=y, parent_id=note.parent_id, last_visited=note.modified
        )
        self._adopt_children(note.id)
        self.vector_store.update_note(note)
        logger.debug(f"Added note {note.id}")
        return node

    def update_note(
        self, note: Note, *, messy: bool = False, now: float | None = None
    ) -> list[Edge]:
        """Apply an edit of a note: refresh its embedding and weight, and auto-link in messy mode.

        Returns:
            Edges created or reinforced by auto-linking
        """
        if not self._apply_update(note, now):
            return []
        self.vector_store.update_note(note)
        return self.linker.link(note, self._notes) if messy else []

    async def aupdate_note(
        self, note: Note, *, messy: bool = False, now: float | None = None
    ) -> list[Edge]:
        """Like ``update_note``, computing the embedding off the event loop."""
        if not self._apply_update(note, now):
            return []
        await self.refresh_embedding_async(note)
        return self.linker.link(note, self._notes) if messy else []

    def _apply_update(self, note: Note, now: float | None) -> bool:
        previous = self._notes.get(note.id)
        if len(note.text) > self.settings.min_embedding_text_length:
            note.ephemeral = False
        self._notes[note.id] = note

        if note.archived:
            self._remove_from_graph(note.id)
            return False

        if note.id not in self.store:
            self.store.add_node(note.id, parent_id=note.parent_id, last_visited=note.modified)
            self._adopt_children(note.id)
        self._place_in_hierarchy(note)

        last_updated = previous.modified if previous is not None else note.modified
        self.connections.recompute_weight(self.store, note.id, last_updated, now)
        return True

    def _place_in_hierarchy(self, note: Note) -> None:
        """Point a note's node at its parent's node, or at none while the parent is absent."""
        node = self.store.get_node(note.id)
        if node is None:
            return
        parent_id = note.parent_id if note.parent_id in self.store else None
        if node.parent_id == parent_id:
            return
        try:
            self.store.set_parent(note.id, parent_id)
        except InvalidLinkError as e:
            logger.warning(f"Keeping note {note.id} under its current parent: {str(e)}")

    def _adopt_children(self, parent_id: str) -> None:
        for note in list(self._notes.values()):
            if note.parent_id == parent_id and not note.archived:
                self._place_in_hierarchy(note)

    async def refresh_embedding_async(self, note: Note) -> None:
        """Compute a note's embedding in a worker thread and store it if still current."""
        if not self.vector_store.needs_refresh(note):
            return
        vector = await asyncio.to_thread(self.vector_store.embed_text, note.text)

        current = self._notes.get(note.id)
        if current is None or current.text_hash != note.text_hash:
            logger.debug(f"Discarding outdated embedding for note {note.id}")
            return
        if vector is None:
            self.vector_store.delete_note(note.id)
            return
        self.vector_store.set_embedding(
            Embedding(note_id=note.id, text_hash=note.text_hash, vector=vector)
        )

    def archive_note(self, note_id: str) -> list[Edge]:
        """Archive a note: it leaves the graph but stays known to the engine."""
        note = self._notes.get(note_id)
        if note is not None:
            note.archived = True
        return self._remove_from_graph(note_id)

    def delete_note(self, note_id: str) -> list[Edge]:
        """Forget a note entirely, removing its node, its edges and its embedding."""
        self._notes.pop(note_id, None)
        return self._remove_from_graph(note_id)

    def _remove_from_graph(self, note_id: str) -> list[Edge]:
        removed = self.store.remove_node(note_id)
        self.vector_store.delete_note(note_id)
        return removed

    def get_note(self, note_id: str) -> Note | None:
        return self._notes.get(note_id)

    def visit(self, note_id: str, when: float | None = None) -> Node:
        return self.store.visit(note_id, time.time() if when is None else when)

    # User interaction

    def start_drag(self, note_id: str, x: float, y: float) -> Node:
        return self.store.pin(note_id, x, y)

    def drag(self, note_id: str, x: float, y: float) -> Node:
        return self.store.move_pinned(note_id, x, y)

    def end_drag(self, note_id: str) -> None:
        self.store.unpin(note_id)

    def link_notes(self, source_id: str, target_id: str, reason: str | None = None) -> Edge:
        """Manually connect two notes, reinforcing the edge if they are already connected."""
        self.store.require_node(source_id)
        self.store.require_node(target_id)
        edge, created = self.connections.manual_link(self.store, source_id, target_id, reason)
        logger.info(
            f"{'Created' if created else 'Reinforced'} link {source_id} <-> {target_id} "
            f"(strength {edge.strength:.1f})"
        )
        return edge

    def unlink_notes(self, source_id: str, target_id: str) -> Edge | None:
        return self.store.unlink(source_id, target_id)

    def delete_edge(self, edge_id: str) -> Edge | None:
        return self.store.remove_edge(edge_id)

    # Derived views

    def tick(self) -> float:
        return self.simulator.tick()

    def snapshot(self) -> GraphState:
        return self.store.to_state()

    def suggestions(self, note_id: str, text: str | None = None) -> list[LinkSuggestion]:
        note = self._notes.get(note_id)
        if note is None:
            return []
        return self.linker.suggest(note, self._notes, text=text)

    def search(self, query: str, limit: int = 10) -> list[SearchHit]:
        """Rank non-archived notes by embedding distance to a free-text query."""
        vector = self.vector_store.embed_text(query)
        if vector is None:
            return []
        candidates = [note.id for note in self._notes.values() if not note.archived]
        hits = []
        closest = self.vector_store.get_closest(vector, limit, candidates=candidates)
        for note_id, distance in closest:
            note = self._notes[note_id]
            node = self.store.get_node(note_id)
            hits.append(
                SearchHit(
                    id=note_id,
                    title=note.title,
                    preview=note.preview,
                    x=node.x if node else None,
                    y=node.y if node else None,
                    distance=distance,
                )
            )
        return hits

    def communities(self) -> CommunityMap:
        """Hub of every node's community, recomputed whenever the topology changed."""
        version, hubs = self._communities
        if version == self.store.topology_version:
            return hubs
        version, node_ids, edges = self.store.topology()
        hubs = self.detector.detect(node_ids, edges)
        self._communities = (version, hubs)
        return hubs

    async def refresh_communities_async(self) -> CommunityMap:
        """Recompute communities in a worker thread and publish the whole map at once."""
        version, node_ids, edges = self.store.topology()
        hubs = await asyncio.to_thread(self.detector.detect, node_ids, edges)
        self._communities = (version, hubs)
        return hubs

    def cluster(self, *, preview: bool = True) -> ClusterResult:
        return self.planner.plan(list(self._notes.values()), preview=preview)

    async def acluster(self, *, preview: bool = True) -> ClusterResult:
        return await asyncio.to_thread(self.cluster, preview=preview)

    # Housekeeping

    def auto_archive(self, now: float | None = None) -> list[str]:
        """Archive ephemeral notes left untouched for ``ephemeral_archive_days``."""
        now = time.time() if now is None else now
        cutoff = now - self.settings.ephemeral_archive_days * SECONDS_PER_DAY
        archived = [
            note.id
            for note in self._notes.values()
            if note.ephemeral and not note.archived and note.modified < cutoff
        ]
        for note_id in archived:
            self.archive_note(note_id)
        if archived:
            logger.info(f"Auto-archived {len(archived)} ephemeral notes")
        return archived

    def rediscover(self, now: float | None = None) -> Rediscovery:
        """Surface stale orphans, weakly connected notes and unusually strong connections."""
        now = time.time() if now is None else now
        cutoff = now - self.settings.rediscover_stale_days * SECONDS_PER_DAY
        stale = sorted(
            (
                note
                for note in self._notes.values()
                if not note.archived and note.id in self.store and note.modified < cutoff
            ),
            key=lambda note: note.modified,
        )

        def summary(note: Note) -> NoteSummary:
            return NoteSummary(
                id=note.id,
                title=note.title,
                modified=note.modified,
                link_count=self.store.degree(note.id),
            )

        surprising = sorted(
            (e for e in self.store.edges() if e.strength >= self.settings.surprising_strength),
            key=lambda edge: edge.strength,
            reverse=True,
        )
        return Rediscovery(
            orphans=[summary(n) for n in stale if self.store.degree(n.id) == 0][:5],
            weak_connections=[summary(n) for n in stale if 0 < self.store.degree(n.id) <= 2][:5],
            surprising_connections=surprising[:3],
        )
