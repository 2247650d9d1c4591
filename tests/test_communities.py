"""Tests for community detection and hub assignment."""

import pytest

from notegraph.graph.communities import CommunityDetector, modularity

TWO_TRIANGLES = [
    ("a", "b"),
    ("b", "c"),
    ("a", "c"),
    ("d", "e"),
    ("e", "f"),
    ("d", "f"),
    ("c", "d"),
]


@pytest.mark.parametrize("seed", [1, 42])
def test_two_triangles_split_at_bridge(seed):
    """Two triangles joined by one bridge form two communities led by the bridge nodes."""
    hubs = CommunityDetector(seed=seed).detect("abcdef", TWO_TRIANGLES)

    assert hubs == {"a": "c", "b": "c", "c": "c", "d": "d", "e": "d", "f": "d"}


def test_same_seed_same_partition():
    edges = TWO_TRIANGLES + [("g", "a"), ("g", "f"), ("h", "g")]
    nodes = "abcdefgh"

    first = CommunityDetector(seed=5).detect(nodes, edges)
    second = CommunityDetector(seed=5).detect(nodes, edges)

    assert first == second


def test_every_node_gets_a_hub_including_isolated_ones():
    hubs = CommunityDetector().detect(["a", "b", "z"], [("a", "b")])

    assert set(hubs) == {"a", "b", "z"}
    assert hubs["z"] == "z", "Isolated nodes form singleton communities"


def test_hub_tie_breaks_on_smallest_id():
    hubs = CommunityDetector().detect(["b", "a"], [("a", "b")])

    assert hubs == {"a": "a", "b": "a"}


def test_empty_graph():
    assert CommunityDetector().detect([], []) == {}


def test_hub_members_are_connected_inside_community():
    """Nodes sharing a hub can reach the hub without leaving the community."""
    edges = TWO_TRIANGLES + [("x", "y"), ("y", "z"), ("z", "x"), ("q", "a")]
    nodes = "abcdefxyzq"
    hubs = CommunityDetector().detect(nodes, edges)

    adjacency = {node: set() for node in nodes}
    for source, target in edges:
        adjacency[source].add(target)
        adjacency[target].add(source)

    for node, hub in hubs.items():
        reached, frontier = {node}, [node]
        while frontier:
            current = frontier.pop()
            for neighbor in adjacency[current]:
                if neighbor not in reached and hubs[neighbor] == hub:
                    reached.add(neighbor)
                    frontier.append(neighbor)
        assert hub in reached, f"{node} cannot reach its hub {hub}"


def test_disconnected_community_is_split():
    hubs = CommunityDetector._assign_hubs(
        membership={"a": "a", "b": "a", "c": "a"},
        adjacency={"a": {"b": 1.0}, "b": {"a": 1.0}, "c": {}},
        strengths={"a": 1.0, "b": 1.0, "c": 0.0},
    )

    assert hubs == {"a": "a", "b": "a", "c": "c"}


def test_unknown_endpoints_are_ignored(caplog):
    hubs = CommunityDetector().detect(["a", "b"], [("a", "b"), ("a", "ghost")])

    assert set(hubs) == {"a", "b"}
    assert "unknown endpoint" in caplog.text


def test_detected_partition_beats_trivial_ones():
    hubs = CommunityDetector().detect("abcdef", TWO_TRIANGLES)
    together = {node: "a" for node in "abcdef"}
    apart = {node: node for node in "abcdef"}

    assert modularity(hubs, TWO_TRIANGLES) > modularity(together, TWO_TRIANGLES)
    assert modularity(hubs, TWO_TRIANGLES) > modularity(apart, TWO_TRIANGLES)
