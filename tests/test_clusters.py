"""Cluster anchor placement."""

import math

import pytest

from advisor_tree.clusters import (
    ClusterAnchors,
    compute_cluster_anchors,
    normalize_value,
)
from advisor_tree.hierarchy import HierarchyResolver
from advisor_tree.models import AdvisorNode


def _direct_children(tree):
    resolver = HierarchyResolver(tree)
    return [tree.get_node(node_id) for node_id in resolver.direct_children_of_root()]


def test_normalize_value():
    assert normalize_value(5, 10) == 0.5
    assert normalize_value(20, 10) == 1.0
    assert normalize_value(-1, 10) == 0.0
    assert normalize_value(3, 0) == 0.0


def test_root_anchor_is_viewport_centre():
    anchors = compute_cluster_anchors(800, 600, [], "R")
    assert list(anchors) == ["R"]
    assert (anchors["R"].x, anchors["R"].y) == (400, 300)


def test_first_anchor_points_up(small_tree):
    anchors = compute_cluster_anchors(960, 720, _direct_children(small_tree), "R")
    # A carries all the influence: full 60% boost on a 0.32 * 720 ring
    assert anchors["A"].x == pytest.approx(480)
    assert anchors["A"].y == pytest.approx(360 - 230.4 * 1.6)
    # B has none and sits straight below on the base ring
    assert anchors["B"].x == pytest.approx(480)
    assert anchors["B"].y == pytest.approx(360 + 230.4)


def test_equal_influence_anchors_are_evenly_spaced():
    children = [AdvisorNode(id=name, depth=1, total_descendants=4) for name in "PQRS"]
    anchors = compute_cluster_anchors(1000, 1000, children, "root")
    radius = 0.32 * 1000 * 1.6
    for index, name in enumerate("PQRS"):
        angle = 2 * math.pi * index / 4 - math.pi / 2
        assert anchors[name].x == pytest.approx(500 + math.cos(angle) * radius)
        assert anchors[name].y == pytest.approx(500 + math.sin(angle) * radius)


def test_zero_influence_uses_base_ring():
    children = [AdvisorNode(id="P", depth=1), AdvisorNode(id="Q", depth=1)]
    anchors = compute_cluster_anchors(400, 400, children, "root")
    assert math.hypot(anchors["P"].x - 200, anchors["P"].y - 200) == pytest.approx(128)
    assert math.hypot(anchors["Q"].x - 200, anchors["Q"].y - 200) == pytest.approx(128)


def test_resize_scales_anchors_about_the_root(small_tree):
    anchors = ClusterAnchors(root_id="R", direct_children=_direct_children(small_tree))
    anchors.recompute(960, 720)
    before = {key: (a.x - 480, a.y - 360) for key, a in anchors.anchors.items()}

    anchors.recompute(480, 360)
    assert (anchors.anchors["R"].x, anchors.anchors["R"].y) == (240, 180)
    for key, (dx, dy) in before.items():
        anchor = anchors.anchors[key]
        assert anchor.x - 240 == pytest.approx(dx / 2)
        assert anchor.y - 180 == pytest.approx(dy / 2)

    # A and B stay on the vertical line through the root, on opposite sides
    assert anchors.anchors["A"].x == pytest.approx(anchors.anchors["B"].x)
    assert anchors.anchors["A"].y < 180 < anchors.anchors["B"].y


def test_unknown_cluster_targets_viewport_centre(small_tree):
    anchors = ClusterAnchors(root_id="R", direct_children=_direct_children(small_tree))
    anchors.recompute(300, 200)
    target = anchors.target_for("nobody")
    assert (target.x, target.y) == (150, 100)
