import json
import logging
from pathlib import Path
from typing import Dict, Iterable

import numpy as np

from notegraph.config import settings
from notegraph.domain.note import Embedding, Note
from notegraph.embedders.base import Embedder
from notegraph.vector_stores.base import VectorStore

logger = logging.getLogger(__name__)


class LocalVectorStore(VectorStore):
    """In-memory vector store holding one embedding per note, persisted to a JSON file.

    Distances are Euclidean throughout the store. Embedders return unit vectors, so the
    ranking agrees with cosine similarity.
    """

    def __init__(
        self,
        embedder: Embedder,
        filepath: str | Path | None = None,
        *,
        min_text_length: int = settings.min_embedding_text_length,
    ) -> None:
        """Initialize LocalVectorStore.

        Args:
            embedder: Loaded embedding model, shared by every note
            filepath: Path to vector store file. If provided and exists, will auto-load.
                     If provided and doesn't exist, will save to this path when save() is called.
                     If not provided, creates an empty store in memory only.
            min_text_length: Texts of this many characters or fewer get no embedding
        """
        self._embedder = embedder
        self._filepath = str(filepath) if filepath else None
        self._min_text_length = min_text_length
        self._embeddings: Dict[str, Embedding] = {}

        if self._filepath and Path(self._filepath).exists():
            with open(self._filepath, "r") as f:
                data = json.load(f)
            self._embeddings = {
                note_id: Embedding(**embedding_data)
                for note_id, embedding_data in data["embeddings"].items()
            }
            logger.info(f"Loaded {len(self._embeddings)} embeddings from {self._filepath}")

    @classmethod
    def from_data(
        cls, embedder: Embedder, embeddings: Dict[str, Embedding] | None = None, **kwargs
    ) -> "LocalVectorStore":
        """Create LocalVectorStore from provided data (useful for testing)."""
        instance = cls(embedder, filepath=None, **kwargs)
        instance._embeddings = dict(embeddings or {})
        return instance

    def is_embeddable(self, text: str) -> bool:
        return len(text.strip()) > self._min_text_length

    def embed_text(self, text: str) -> np.ndarray | None:
        if not self.is_embeddable(text):
            return None
        return np.asarray(self._embedder.embed(text), dtype=np.float32)

    def needs_refresh(self, note: Note) -> bool:
        if not self.is_embeddable(note.text):
            return note.id in self._embeddings
        existing = self._embeddings.get(note.id)
        return existing is None or existing.text_hash != note.text_hash

    def update_note(self, note: Note) -> Embedding | None:
        if not self.needs_refresh(note):
            return self._embeddings.get(note.id)

        vector = self.embed_text(note.text)
        if vector is None:
            logger.debug(f"Text of note {note.id} is too short, dropping its embedding")
            self.delete_note(note.id)
            return None

        embedding = Embedding(note_id=note.id, text_hash=note.text_hash, vector=vector)
        self.set_embedding(embedding)
        return embedding

    def set_embedding(self, embedding: Embedding) -> None:
        self._embeddings[embedding.note_id] = embedding

    def get_embedding(self, note_id: str) -> Embedding | None:
        return self._embeddings.get(note_id)

    def delete_note(self, note_id: str) -> None:
        self._embeddings.pop(note_id, None)

    def get_closest(
        self,
        input_vector: np.ndarray,
        closest: int,
        *,
        exclude: Iterable[str] = (),
        candidates: Iterable[str] | None = None,
    ) -> list[tuple[str, float]]:
        excluded = set(exclude)
        allowed = set(candidates) if candidates is not None else None
        note_ids = [
            note_id
            for note_id in self._embeddings
            if note_id not in excluded and (allowed is None or note_id in allowed)
        ]
        if not note_ids or closest <= 0:
            return []

        matrix = np.stack([self._embeddings[note_id].vector for note_id in note_ids])
        distances = np.linalg.norm(matrix - np.asarray(input_vector, dtype=np.float32), axis=1)

        # Stable sort keeps insertion order among equal distances
        order = np.argsort(distances, kind="stable")[:closest]
        return [(note_ids[i], float(distances[i])) for i in order]

    def distance(self, first_id: str, second_id: str) -> float | None:
        first = self._embeddings.get(first_id)
        second = self._embeddings.get(second_id)
        if first is None or second is None:
            return None
        return float(np.linalg.norm(first.vector - second.vector))

    def get_all_note_ids(self) -> set[str]:
        return set(self._embeddings.keys())

    def save(self, filepath: str | None = None) -> None:
        """Save the vector store to a JSON file.

        Args:
            filepath: Path to save to. If not provided, uses the filepath from initialization.
        """
        save_path = filepath or self._filepath
        if not save_path:
            raise ValueError(
                "No filepath provided and no default filepath set during initialization"
            )

        Path(save_path).parent.mkdir(parents=True, exist_ok=True)
        data = {
            "embeddings": {
                note_id: embedding.model_dump() for note_id, embedding in self._embeddings.items()
            },
        }
        with open(save_path, "w") as f:
            json.dump(data, f)

    def clear(self) -> None:
        self._embeddings.clear()
