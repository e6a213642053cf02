"""Shared advisor trees for the test suite."""

import json

import pytest

from advisor_tree.models import AdvisorEdge, AdvisorNode, AdvisorTree
from advisor_tree.parser import build_tree


def small_tree_data() -> dict:
    """R advised A and B; A advised C."""
    return {
        "root": "R",
        "summary": {"total_nodes": 4, "direct_advisees": 2, "max_depth": 2,
                    "depth_counts": {"0": 1, "1": 2, "2": 1}, "generated_from": "tests"},
        "nodes": [
            {"id": "R", "name": "Root Person", "depth": 0, "direct_advisee_count": 2, "total_descendants": 3},
            {"id": "A", "name": "Alice", "depth": 1, "direct_advisee_count": 1, "total_descendants": 1,
             "homepage": "https://alice.example.edu"},
            {"id": "B", "name": "Bob", "depth": 1, "direct_advisee_count": 0, "total_descendants": 0,
             "dblp": "https://dblp.org/pid/bob"},
            {"id": "C", "name": "Carol", "depth": 2, "direct_advisee_count": 0, "total_descendants": 0},
        ],
        "edges": [
            {"from": "R", "to": "A"},
            {"from": "R", "to": "B"},
            {"from": "A", "to": "C"},
        ],
    }


def wide_tree_data() -> dict:
    """Three generations with a co-advised student (E has advisors A and D)."""
    nodes = [
        ("R", 0, 3, 9), ("A", 1, 2, 3), ("B", 1, 1, 2), ("D", 1, 1, 2),
        ("E", 2, 0, 0), ("F", 2, 1, 1), ("G", 2, 1, 1), ("H", 3, 0, 0), ("I", 3, 0, 0),
    ]
    edges = [
        ("R", "A"), ("R", "B"), ("R", "D"),
        ("A", "E"), ("D", "E"), ("A", "F"), ("B", "G"),
        ("F", "H"), ("G", "I"), ("D", "I"),
    ]
    return {
        "root": "R",
        "nodes": [
            {"id": node_id, "name": node_id, "depth": depth,
             "direct_advisee_count": direct, "total_descendants": total}
            for node_id, depth, direct, total in nodes
        ],
        "edges": [{"from": s, "to": t} for s, t in edges],
    }


@pytest.fixture
def small_tree() -> AdvisorTree:
    return build_tree(small_tree_data())


@pytest.fixture
def small_tree_json() -> str:
    return json.dumps(small_tree_data())


@pytest.fixture
def wide_tree() -> AdvisorTree:
    return build_tree(wide_tree_data())


@pytest.fixture
def cyclic_tree() -> AdvisorTree:
    """X and Y advised each other; neither connects to the root.

    Built directly so loader validation does not get in the way.
    """
    return AdvisorTree(
        root="R",
        nodes=[
            AdvisorNode(id="R", depth=0),
            AdvisorNode(id="A", depth=1),
            AdvisorNode(id="X", depth=2),
            AdvisorNode(id="Y", depth=2),
            AdvisorNode(id="Z", depth=3),
        ],
        edges=[
            AdvisorEdge(source="R", target="A"),
            AdvisorEdge(source="X", target="Y"),
            AdvisorEdge(source="Y", target="X"),
            AdvisorEdge(source="Y", target="Z"),
        ],
    )
