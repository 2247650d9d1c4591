"""Tests for the node/edge arena, its hierarchy and persistence."""

import json
import logging
import math

import pytest

from notegraph.domain.graph import Edge, GraphState, Node
from notegraph.exceptions import InvalidLinkError, NodeNotFoundError
from notegraph.graph.store import GraphStore


def test_add_node_places_within_initial_spread(graph_store: GraphStore):
    """New nodes start inside the spread square with a small velocity."""
    for i in range(50):
        node = graph_store.add_node(f"n{i}")
        assert -150 <= node.x <= 150
        assert -150 <= node.y <= 150
        assert abs(node.vx) <= 1.0 and abs(node.vy) <= 1.0
        assert node.radius == 8
        assert node.weight == 1


def test_add_node_is_idempotent(graph_store: GraphStore):
    first = graph_store.add_node("a", x=10, y=20)
    second = graph_store.add_node("a", x=99, y=99)

    assert first is second
    assert (second.x, second.y) == (10, 20)
    assert len(graph_store) == 1


def test_same_seed_gives_same_placement():
    first = GraphStore(seed=3).add_node("a")
    second = GraphStore(seed=3).add_node("a")

    assert (first.x, first.y, first.vx, first.vy) == (second.x, second.y, second.vx, second.vy)


def test_add_edge_rejects_self_link_and_duplicates(graph_store: GraphStore):
    graph_store.add_node("a")
    graph_store.add_node("b")
    graph_store.add_edge(Edge(source="a", target="b"))

    with pytest.raises(InvalidLinkError):
        graph_store.add_edge(Edge(source="a", target="a"))
    with pytest.raises(InvalidLinkError):
        graph_store.add_edge(Edge(source="b", target="a"))
    with pytest.raises(NodeNotFoundError):
        graph_store.add_edge(Edge(source="a", target="missing"))

    assert len(graph_store.edges()) == 1


def test_edge_lookup_ignores_direction(graph_store: GraphStore):
    graph_store.add_node("a")
    graph_store.add_node("b")
    edge = graph_store.add_edge(Edge(source="a", target="b"))

    assert graph_store.get_edge("b", "a") is edge
    assert graph_store.get_edge_by_id(edge.id) is edge
    assert graph_store.neighbors("a") == {"b"}
    assert graph_store.degree("b") == 1


def test_remove_node_cascades_edges(graph_store: GraphStore):
    """Removing a node removes every edge touching it and nothing else."""
    for node_id in "abcd":
        graph_store.add_node(node_id)
    graph_store.add_edge(Edge(source="a", target="b"))
    graph_store.add_edge(Edge(source="c", target="a"))
    kept = graph_store.add_edge(Edge(source="c", target="d"))

    removed = graph_store.remove_node("a")

    assert len(removed) == 2
    assert graph_store.edges() == [kept]
    assert "a" not in graph_store
    assert graph_store.neighbors("b") == set()
    assert all(not edge.touches("a") for edge in graph_store.edges())


def test_remove_node_without_edges_and_unknown_node(graph_store: GraphStore):
    graph_store.add_node("lonely")

    assert graph_store.remove_node("lonely") == []
    assert graph_store.remove_node("never-existed") == []
    assert len(graph_store) == 0


def test_unlink_and_remove_edge(graph_store: GraphStore):
    for node_id in "abc":
        graph_store.add_node(node_id)
    first = graph_store.add_edge(Edge(source="a", target="b"))
    second = graph_store.add_edge(Edge(source="b", target="c"))

    assert graph_store.unlink("b", "a") is first
    assert graph_store.unlink("a", "b") is None
    assert graph_store.remove_edge(second.id) is second
    assert graph_store.remove_edge(second.id) is None
    assert graph_store.edges() == []


def test_topology_version_changes_on_structure_only(graph_store: GraphStore):
    graph_store.add_node("a")
    graph_store.add_node("b")
    version = graph_store.topology_version

    graph_store.visit("a", 123.0)
    graph_store.pin("b", 1, 1)
    assert graph_store.topology_version == version

    graph_store.add_edge(Edge(source="a", target="b"))
    assert graph_store.topology_version > version


def test_topology_snapshot_carries_its_version(graph_store: GraphStore):
    graph_store.add_node("a")
    graph_store.add_node("b")
    graph_store.add_edge(Edge(source="a", target="b"))

    version, node_ids, edges = graph_store.topology()

    assert version == graph_store.topology_version
    assert node_ids == ["a", "b"]
    assert edges == [("a", "b")]


def test_hierarchy_children_and_ancestors(graph_store: GraphStore):
    graph_store.add_node("root")
    graph_store.add_node("folder", parent_id="root")
    graph_store.add_node("leaf", parent_id="folder")

    assert graph_store.children("root") == ["folder"]
    assert graph_store.ancestors("leaf") == ["folder", "root"]

    with pytest.raises(InvalidLinkError):
        graph_store.set_parent("root", "leaf")

    graph_store.remove_node("folder")
    assert graph_store.get_node("leaf").parent_id == "root", "Children move up to the grandparent"
    assert graph_store.children("root") == ["leaf"]


def test_add_node_with_unknown_parent_has_no_parent(graph_store: GraphStore):
    node = graph_store.add_node("a", parent_id="nowhere")
    assert node.parent_id is None


def test_pinning(graph_store: GraphStore):
    graph_store.add_node("a", x=0, y=0)

    node = graph_store.pin("a", 40, 50)
    assert graph_store.is_pinned("a")
    assert (node.x, node.y, node.vx, node.vy) == (40, 50, 0, 0)

    graph_store.move_pinned("a", 60, 70)
    assert (node.x, node.y) == (60, 70)

    graph_store.unpin("a")
    assert not graph_store.is_pinned("a")
    assert graph_store.pinned == frozenset()


def test_pin_unknown_node_raises(graph_store: GraphStore):
    with pytest.raises(NodeNotFoundError) as exc_info:
        graph_store.pin("ghost", 0, 0)
    assert "ghost" in str(exc_info.value)


def test_reset_non_finite(graph_store: GraphStore):
    node = graph_store.add_node("a", x=5, y=5)
    node.vx = math.inf

    assert graph_store.reset_non_finite(node)
    assert (node.x, node.y, node.vx) == (5, 5, 0.0)
    assert not graph_store.reset_non_finite(node)


def test_save_and_load_round_trip(tmp_path, graph_store: GraphStore):
    """Positions, velocities and edges survive a save/load cycle."""
    graph_store.add_node("a", x=1.5, y=-2.5)
    graph_store.add_node("b", x=3.0, y=4.0, parent_id="a")
    edge = graph_store.add_edge(Edge(source="a", target="b", strength=1.3, reason="Manual link"))
    filepath = tmp_path / "graph.json"

    graph_store.save(filepath)
    loaded = GraphStore.load(filepath)

    assert {node.id: node for node in loaded.nodes()} == {
        node.id: node for node in graph_store.nodes()
    }
    assert loaded.edges() == [edge]
    assert loaded.children("a") == ["b"]


def test_saved_state_uses_camel_case(tmp_path, graph_store: GraphStore):
    graph_store.add_node("a", last_visited=10.0, parent_id=None)
    filepath = tmp_path / "graph.json"
    graph_store.save(filepath)

    with open(filepath) as f:
        data = json.load(f)
    assert "lastVisited" in data["nodes"][0]
    assert "parentId" in data["nodes"][0]


def test_load_missing_file_gives_empty_store(tmp_path):
    store = GraphStore.load(tmp_path / "nothing.json")
    assert len(store) == 0


def test_from_state_drops_dangling_and_duplicate_edges(caplog):
    state = GraphState(
        nodes=[Node(id="a", x=0, y=0), Node(id="b", x=1, y=1)],
        edges=[
            Edge(id="e1", source="a", target="b"),
            Edge(id="e2", source="b", target="a"),
            Edge(id="e3", source="a", target="gone"),
        ],
    )

    with caplog.at_level(logging.WARNING):
        store = GraphStore.from_state(state)

    assert [edge.id for edge in store.edges()] == ["e1"]
    assert "dangling edge e3" in caplog.text
    assert "duplicate edge e2" in caplog.text
