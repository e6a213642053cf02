"""
Cluster anchor planning.

Each direct advisee of the root anchors a cluster.  Anchors sit on a ring
around the viewport centre:

    radius_i = 0.32 * min(width, height) * (1 + 0.6 * influence_i / max_influence)
    angle_i  = 2*pi * i / n - pi/2          (first anchor straight up)

The root's anchor is the viewport centre.  Anchors are a pure function of
the viewport size, so a resize recomputes the whole map instead of
patching it.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Optional

from .models import AdvisorNode

ANCHOR_RING_FRACTION = 0.32
ANCHOR_INFLUENCE_BOOST = 0.6


@dataclass
class Anchor:
    """A cluster's gravitational centre in simulation coordinates."""
    x: float
    y: float


def normalize_value(value: float, max_value: float) -> float:
    """Scale ``value`` into [0, 1] against ``max_value`` (0 when max is 0)."""
    if not max_value:
        return 0.0
    return 0.0 if value <= 0 else min(1.0, value / max_value)


def normalize_influence(node: Optional[AdvisorNode], max_influence: float) -> float:
    if node is None or not max_influence:
        return 0.0
    return normalize_value(node.influence_score(), max_influence)


def compute_cluster_anchors(
    width: float,
    height: float,
    direct_children: list[AdvisorNode],
    root_id: str,
) -> dict[str, Anchor]:
    """Anchor positions keyed by cluster id (root included)."""
    center = Anchor(x=width / 2, y=height / 2)
    anchors: dict[str, Anchor] = {root_id: center}
    if not direct_children:
        return anchors

    base_radius = min(width, height) * ANCHOR_RING_FRACTION
    max_influence = max(node.influence_score() for node in direct_children) or 1.0
    count = len(direct_children)
    for index, node in enumerate(direct_children):
        angle = (index / count) * math.pi * 2 - math.pi / 2
        boost = normalize_influence(node, max_influence)
        radius = base_radius * (1 + boost * ANCHOR_INFLUENCE_BOOST)
        anchors[node.id] = Anchor(
            x=center.x + math.cos(angle) * radius,
            y=center.y + math.sin(angle) * radius,
        )
    return anchors


@dataclass
class ClusterAnchors:
    """The current anchor map plus the viewport it was computed for."""
    root_id: str
    direct_children: list[AdvisorNode]
    width: float = 0.0
    height: float = 0.0
    anchors: dict[str, Anchor] = field(default_factory=dict)

    def recompute(self, width: float, height: float) -> None:
        """Rebuild every anchor for a new viewport size."""
        self.width = width
        self.height = height
        self.anchors = compute_cluster_anchors(width, height, self.direct_children, self.root_id)

    def target_for(self, cluster_id: str) -> Anchor:
        """Anchor for ``cluster_id``; viewport centre if the cluster is unknown."""
        anchor = self.anchors.get(cluster_id)
        if anchor is not None:
            return anchor
        return Anchor(x=self.width / 2, y=self.height / 2)
