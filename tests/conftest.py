from typing import Callable

import pytest

from notegraph.domain.note import Note
from notegraph.engine import NoteGraphEngine
from notegraph.graph.connections import SECONDS_PER_DAY, ConnectionModel
from notegraph.graph.store import GraphStore
from notegraph.vector_stores.local_store import LocalVectorStore
from tests.fakes import CountingEmbedder, FakeEmbedder

NOW = 1_750_000_000.0


@pytest.fixture
def now() -> float:
    """Fixed reference time used by notes and housekeeping tests."""
    return NOW


@pytest.fixture
def make_note() -> Callable[..., Note]:
    """Factory for notes last modified ``days_ago`` days before NOW."""

    def _make_note(
        note_id: str, title: str, text: str = "", days_ago: float = 0.0, **kwargs
    ) -> Note:
        modified = NOW - days_ago * SECONDS_PER_DAY
        return Note(
            id=note_id, title=title, text=text, created=modified, modified=modified, **kwargs
        )

    return _make_note


@pytest.fixture
def fake_embedder() -> FakeEmbedder:
    return FakeEmbedder()


@pytest.fixture
def counting_embedder() -> CountingEmbedder:
    return CountingEmbedder()


@pytest.fixture
def graph_store() -> GraphStore:
    """Empty graph with a seeded random placement."""
    return GraphStore(seed=7)


@pytest.fixture
def vector_store(fake_embedder: FakeEmbedder) -> LocalVectorStore:
    return LocalVectorStore(fake_embedder)


@pytest.fixture
def connections() -> ConnectionModel:
    return ConnectionModel(
        initial_strength=1.0,
        auto_increment=0.3,
        manual_increment=0.5,
        min_weight=0.2,
        weight_per_link=0.2,
        decay_per_day=0.05,
    )


@pytest.fixture
def engine(
    graph_store: GraphStore, vector_store: LocalVectorStore, connections: ConnectionModel
) -> NoteGraphEngine:
    """Engine over an empty graph with the fake embedder."""
    return NoteGraphEngine(store=graph_store, vector_store=vector_store, connections=connections)
