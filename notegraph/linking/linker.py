"""Discovery of connections between notes from shared titles and embedding similarity."""

import logging
from typing import Mapping

from notegraph.config import settings
from notegraph.domain.graph import Edge
from notegraph.domain.note import Note
from notegraph.domain.results import LinkSuggestion
from notegraph.graph.connections import ConnectionModel
from notegraph.graph.store import GraphStore
from notegraph.vector_stores.base import VectorStore

logger = logging.getLogger(__name__)


class SemanticLinker:
    """Proposes and creates edges for a note.

    Two signals are combined: a note title appearing in another note's text (always a
    link), and closeness of embeddings (ranked suggestions, auto-linked only under
    ``semantic_link_max_distance``).
    """

    def __init__(
        self,
        *,
        store: GraphStore,
        vector_store: VectorStore,
        connections: ConnectionModel,
        suggestion_count: int = settings.suggestion_count,
        semantic_link_max_distance: float | None = settings.semantic_link_max_distance,
    ) -> None:
        self.store = store
        self.vector_store = vector_store
        self.connections = connections
        self.suggestion_count = suggestion_count
        self.semantic_link_max_distance = semantic_link_max_distance

    def suggest(
        self, note: Note, notes: Mapping[str, Note], *, text: str | None = None
    ) -> list[LinkSuggestion]:
        """Rank other notes by embedding distance to the given text.

        Args:
            note: Note the suggestions are for; it is never suggested to itself
            notes: Whole corpus keyed by id
            text: Text to embed, defaults to the note's current text

        Returns:
            Up to ``suggestion_count`` suggestions, nearest first. Empty when the text is
            too short to embed.
        """
        text = note.text if text is None else text
        stored = self.vector_store.get_embedding(note.id)
        if stored is not None and text == note.text and stored.text_hash == note.text_hash:
            vector = stored.vector
        else:
            vector = self.vector_store.embed_text(text)
        if vector is None:
            return []

        candidates = [
            other.id for other in notes.values() if other.id != note.id and not other.archived
        ]
        closest = self.vector_store.get_closest(
            vector, self.suggestion_count, exclude=[note.id], candidates=candidates
        )
        return [
            LinkSuggestion(
                id=note_id,
                title=notes[note_id].title,
                reason=f'Similar content about "{text[:30]}..."',
                distance=distance,
            )
            for note_id, distance in closest
        ]

    def find_mentions(self, note: Note, notes: Mapping[str, Note]) -> list[tuple[Note, str]]:
        """Find notes whose title appears in this note's text, or that mention this note's title.

        Matching is case-insensitive substring matching. Archived notes and notes without a
        title are ignored.

        Returns:
            List of (other note, reason) pairs
        """
        text = note.text.lower()
        title = note.title.strip().lower()
        mentions = []
        for other in notes.values():
            if other.id == note.id or other.archived:
                continue
            other_title = other.title.strip().lower()
            if other_title and other_title in text:
                mentions.append((other, f'Both mention "{other_title}"'))
            elif title and title in other.text.lower():
                mentions.append((other, f'Both mention "{title}"'))
        return mentions

    def link(self, note: Note, notes: Mapping[str, Note]) -> list[Edge]:
        """Create or reinforce edges from a note to every note it relates to.

        Each related pair is touched once per call: title mentions take precedence over
        embedding similarity, and either one reinforces an existing edge by the automatic
        increment instead of adding a second edge.

        Returns:
            The created or reinforced edges
        """
        related: dict[str, str] = {}
        for other, reason in self.find_mentions(note, notes):
            related[other.id] = reason

        if self.semantic_link_max_distance is not None:
            for suggestion in self.suggest(note, notes):
                if suggestion.distance <= self.semantic_link_max_distance:
                    related.setdefault(
                        suggestion.id,
                        f'Similar content to "{suggestion.title}" '
                        f"(distance {suggestion.distance:.2f})",
                    )

        edges = []
        for other_id, reason in related.items():
            if note.id not in self.store or other_id not in self.store:
                logger.debug(f"Skipping link {note.id} -> {other_id}: note not in graph")
                continue
            edge, _ = self.connections.auto_link(self.store, note.id, other_id, reason)
            edges.append(edge)

        if edges:
            logger.info(f"Linked note {note.id} to {len(edges)} notes")
        return edges
