"""Tests for title mention and embedding based linking."""

import pytest

from notegraph.domain.note import Note
from notegraph.graph.connections import ConnectionModel
from notegraph.graph.store import GraphStore
from notegraph.linking.linker import SemanticLinker
from notegraph.vector_stores.local_store import LocalVectorStore


@pytest.fixture
def linker(
    graph_store: GraphStore, vector_store: LocalVectorStore, connections: ConnectionModel
) -> SemanticLinker:
    return SemanticLinker(
        store=graph_store,
        vector_store=vector_store,
        connections=connections,
        suggestion_count=5,
        semantic_link_max_distance=0.5,
    )


def register(linker: SemanticLinker, *notes: Note) -> dict[str, Note]:
    for note in notes:
        linker.store.add_node(note.id)
        linker.vector_store.update_note(note)
    return {note.id: note for note in notes}


def test_title_mention_links_and_reinforces(linker: SemanticLinker, make_note):
    """Linking twice creates one edge and then strengthens it by the automatic increment."""
    basics = make_note(
        "a",
        "machine learning basics",
        "Gradient descent and loss functions. Start with intro to ML for an overview.",
    )
    intro = make_note("b", "intro to ML", "Supervised and unsupervised methods explained simply.")
    notes = register(linker, basics, intro)

    edges = linker.link(basics, notes)

    assert len(edges) == 1
    assert edges[0].strength == pytest.approx(1.0)
    assert edges[0].reason == 'Both mention "intro to ml"'

    linker.link(basics, notes)

    assert len(linker.store.edges()) == 1
    assert linker.store.get_edge("a", "b").strength == pytest.approx(1.3)


def test_mention_in_other_direction(linker: SemanticLinker, make_note):
    topic = make_note("a", "Graph layout", "Forces pull and push the nodes around until rest.")
    mentioning = make_note("b", "Notes", "Today I read about graph layout algorithms.")
    notes = register(linker, topic, mentioning)

    mentions = linker.find_mentions(topic, notes)

    assert [(other.id, reason) for other, reason in mentions] == [
        ("b", 'Both mention "graph layout"')
    ]


def test_blank_titles_and_archived_notes_are_not_mentions(linker: SemanticLinker, make_note):
    note = make_note("a", "Anything", "Some text that talks about the archive of old ideas.")
    untitled = make_note("b", "   ", "Untitled quick capture of a thought.")
    archived = make_note("c", "old ideas", "Ideas from a long time ago.", archived=True)
    notes = register(linker, note, untitled, archived)

    assert linker.find_mentions(note, notes) == []


def test_near_identical_text_links_semantically(linker: SemanticLinker, make_note):
    text = "The quick brown fox jumps over the lazy dog once more"
    first = make_note("a", "Alpha", text)
    second = make_note("b", "Beta", text)
    notes = register(linker, first, second)

    edges = linker.link(first, notes)

    assert len(edges) == 1
    assert edges[0].reason == 'Similar content to "Beta" (distance 0.00)'


def test_semantic_linking_can_be_disabled(graph_store, vector_store, connections, make_note):
    linker = SemanticLinker(
        store=graph_store,
        vector_store=vector_store,
        connections=connections,
        semantic_link_max_distance=None,
    )
    text = "The quick brown fox jumps over the lazy dog once more"
    first = make_note("a", "Alpha", text)
    notes = register(linker, first, make_note("b", "Beta", text))

    assert linker.link(first, notes) == []


def test_notes_outside_the_graph_are_skipped(linker: SemanticLinker, make_note):
    note = make_note("a", "Cooking", "Remember to buy basil for the pesto tonight.")
    outside = make_note("b", "pesto", "Basil, pine nuts, garlic, parmesan and olive oil.")
    notes = register(linker, note)
    notes["b"] = outside

    assert linker.link(note, notes) == []
    assert linker.store.edges() == []


def test_suggestions_rank_excluding_self_and_archived(linker: SemanticLinker, make_note):
    query = make_note("q", "Query", "tomatoes soil water sun garden harvest compost")
    others = [
        make_note(f"n{i}", f"Note {i}", f"note number {i} about rockets orbit launch {i}")
        for i in range(7)
    ]
    close = make_note("close", "Close", "tomatoes soil water sun garden harvest")
    hidden = make_note(
        "hidden", "Hidden", "tomatoes soil water sun garden harvest compost", archived=True
    )
    notes = register(linker, query, close, hidden, *others)

    suggestions = linker.suggest(query, notes)

    assert len(suggestions) == 5
    assert suggestions[0].id == "close"
    assert all(s.id not in {"q", "hidden"} for s in suggestions)
    distances = [s.distance for s in suggestions]
    assert distances == sorted(distances)
    assert suggestions[0].reason == 'Similar content about "tomatoes soil water sun garden..."'


def test_suggestions_for_draft_text(linker: SemanticLinker, make_note):
    note = make_note("a", "Draft", "")
    garden = make_note("g", "Garden", "tomatoes soil water sun garden harvest")
    notes = register(linker, note, garden)

    assert linker.suggest(note, notes) == []
    suggestions = linker.suggest(note, notes, text="garden with tomatoes and good soil")
    assert [s.id for s in suggestions] == ["g"]
