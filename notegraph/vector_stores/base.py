from typing import Iterable, Protocol

import numpy as np

from notegraph.domain.note import Embedding, Note


class VectorStore(Protocol):
    def embed_text(self, text: str) -> np.ndarray | None:
        """Embed free text, or return None when it is too short to carry meaning."""
        ...

    def needs_refresh(self, note: Note) -> bool:
        """Whether the stored embedding for a note is missing or stale."""
        ...

    def update_note(self, note: Note) -> Embedding | None:
        """Recompute a note's embedding if its text changed meaningfully."""
        ...

    def set_embedding(self, embedding: Embedding) -> None:
        """Store an embedding computed elsewhere."""
        ...

    def get_embedding(self, note_id: str) -> Embedding | None:
        """Get the embedding stored for a note."""
        ...

    def delete_note(self, note_id: str) -> None:
        """Delete the embedding of a note."""
        ...

    def get_closest(
        self,
        input_vector: np.ndarray,
        closest: int,
        *,
        exclude: Iterable[str] = (),
        candidates: Iterable[str] | None = None,
    ) -> list[tuple[str, float]]:
        """Get the ids of the closest notes to a vector with their distances, nearest first."""
        ...

    def get_all_note_ids(self) -> set[str]:
        """Get the ids of all notes with an embedding."""
        ...

    def save(self, filepath: str | None = None) -> None:
        """Save the vector store to disk."""
        ...

    def clear(self) -> None:
        """Clear all embeddings."""
        ...
