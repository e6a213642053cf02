"""Preferred parents, clusters and lineage paths."""

import logging
import math

from advisor_tree.hierarchy import HierarchyResolver
from advisor_tree.parser import build_tree


def test_adjacency(small_tree):
    resolver = HierarchyResolver(small_tree)
    assert resolver.children("R") == ["A", "B"]
    assert resolver.parents("C") == ["A"]
    assert resolver.parents("R") == []
    assert resolver.children("C") == []
    assert resolver.max_depth == 2


def test_duplicate_edges_collapse():
    tree = build_tree({
        "root": "R",
        "nodes": [{"id": "R", "depth": 0}, {"id": "A", "depth": 1}],
        "edges": [{"from": "R", "to": "A"}, {"from": "R", "to": "A"}],
    })
    resolver = HierarchyResolver(tree)
    assert resolver.children("R") == ["A"]
    assert resolver.parents("A") == ["R"]


def test_depth_of_unknown_node_is_infinite(small_tree):
    resolver = HierarchyResolver(small_tree)
    assert resolver.depth("A") == 1
    assert math.isinf(resolver.depth("nobody"))


def test_preferred_parent_is_shallowest(wide_tree):
    resolver = HierarchyResolver(wide_tree)
    # I is advised by G (depth 2) and D (depth 1)
    assert resolver.preferred_parent("I") == "D"
    assert resolver.preferred_parent("R") is None


def test_preferred_parent_ties_break_on_id(wide_tree):
    resolver = HierarchyResolver(wide_tree)
    # E is advised by D and A, both depth 1
    assert resolver.parents("E") == ["A", "D"]
    assert resolver.preferred_parent("E") == "A"


def test_preferred_parent_ignores_edge_order():
    def tree_with(edges):
        return build_tree({
            "root": "R",
            "nodes": [
                {"id": "R", "depth": 0}, {"id": "P", "depth": 1},
                {"id": "Q", "depth": 1}, {"id": "S", "depth": 2},
            ],
            "edges": [{"from": "R", "to": "P"}, {"from": "R", "to": "Q"}] + edges,
        })

    forward = HierarchyResolver(tree_with([{"from": "P", "to": "S"}, {"from": "Q", "to": "S"}]))
    backward = HierarchyResolver(tree_with([{"from": "Q", "to": "S"}, {"from": "P", "to": "S"}]))
    assert forward.preferred_parent("S") == backward.preferred_parent("S") == "P"


def test_orphan_has_no_preferred_parent():
    tree = build_tree({
        "root": "R",
        "nodes": [{"id": "R", "depth": 0}, {"id": "O", "depth": 1}],
        "edges": [],
    })
    resolver = HierarchyResolver(tree)
    assert resolver.preferred_parent("O") is None
    assert resolver.cluster_of("O") == "R"


def test_cluster_of(small_tree):
    resolver = HierarchyResolver(small_tree)
    assert resolver.cluster_of("R") == "R"
    assert resolver.cluster_of("A") == "A"
    assert resolver.cluster_of("B") == "B"
    assert resolver.cluster_of("C") == "A"


def test_cluster_is_a_direct_child_or_root(wide_tree):
    resolver = HierarchyResolver(wide_tree)
    direct = set(resolver.children("R"))
    for node in wide_tree.nodes:
        cluster = resolver.cluster_of(node.id)
        assert cluster == "R" or cluster in direct
        # idempotent
        assert resolver.cluster_of(cluster) == cluster


def test_cluster_follows_preferred_parent(wide_tree):
    resolver = HierarchyResolver(wide_tree)
    assert resolver.cluster_of("E") == "A"
    assert resolver.cluster_of("H") == "A"
    assert resolver.cluster_of("G") == "B"
    assert resolver.cluster_of("I") == "D"


def test_cluster_is_memoized(wide_tree):
    resolver = HierarchyResolver(wide_tree)
    first = resolver.cluster_of("H")
    resolver.parents_of["H"] = ["G"]
    resolver._preferred_cache.clear()
    assert resolver.cluster_of("H") == first


def test_direct_children_of_root(wide_tree):
    resolver = HierarchyResolver(wide_tree)
    assert resolver.direct_children_of_root() == ["A", "B", "D"]


def test_cycle_falls_back_to_root(cyclic_tree, caplog):
    resolver = HierarchyResolver(cyclic_tree)
    with caplog.at_level(logging.WARNING, logger="advisor_tree.hierarchy"):
        assert resolver.cluster_of("X") == "R"
    assert "Cycle" in caplog.text
    assert resolver.cluster_of("Y") == "R"
    assert resolver.cluster_of("Z") == "R"
    assert resolver.cluster_of("A") == "A"


def test_lineage_path(wide_tree):
    resolver = HierarchyResolver(wide_tree)
    assert resolver.lineage_path("H") == ["H", "F", "A", "R"]
    assert resolver.lineage_path("R") == ["R"]


def test_lineage_path_stops_on_cycle(cyclic_tree):
    resolver = HierarchyResolver(cyclic_tree)
    assert resolver.lineage_path("Z") == ["Z", "Y", "X"]


def test_every_lineage_reaches_root_without_repeats(wide_tree):
    resolver = HierarchyResolver(wide_tree)
    for node in wide_tree.nodes:
        path = resolver.lineage_path(node.id)
        assert path[-1] == "R"
        assert len(path) <= resolver.max_depth + 1
        assert len(set(path)) == len(path)
