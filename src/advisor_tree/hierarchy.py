"""
Hierarchy resolution for advisor trees.

Turns the flat edge list into parent/child adjacency and answers the two
structural questions the rest of the engine asks about every node:

  * **preferred parent**: the single canonical advisor used for lineage.
    Among all recorded advisors, the one with the smallest depth wins; ties
    go to the lexicographically smaller id.  Deterministic across runs.
  * **cluster**: the direct advisee of the root that "owns" the node,
    found by walking preferred parents upward.  The root is its own
    cluster, and so is every direct advisee.

Both answers are memoized: the dataset is immutable for the lifetime of a
session.  A cycle in the preferred-parent chain is a data-integrity
problem; cluster resolution degrades to the root and logs a warning rather
than failing the render.
"""

from __future__ import annotations

import logging
import math
from typing import Optional

from .models import AdvisorTree

logger = logging.getLogger(__name__)


class HierarchyResolver:
    """Adjacency, depth and preferred-parent/cluster lookups for one tree."""

    def __init__(self, tree: AdvisorTree):
        self.root_id = tree.root
        self.depth_by_id: dict[str, int] = {node.id: node.depth for node in tree.nodes}

        # Ordered, de-duplicated adjacency (edge order is preserved)
        self.parents_of: dict[str, list[str]] = {}
        self.children_of: dict[str, list[str]] = {}
        for edge in tree.edges:
            parents = self.parents_of.setdefault(edge.target, [])
            if edge.source not in parents:
                parents.append(edge.source)
            children = self.children_of.setdefault(edge.source, [])
            if edge.target not in children:
                children.append(edge.target)

        self.max_depth = max(self.depth_by_id.values(), default=0)
        self._preferred_cache: dict[str, Optional[str]] = {}
        self._cluster_cache: dict[str, str] = {self.root_id: self.root_id}

    def parents(self, node_id: str) -> list[str]:
        return self.parents_of.get(node_id, [])

    def children(self, node_id: str) -> list[str]:
        return self.children_of.get(node_id, [])

    def depth(self, node_id: str) -> float:
        """Depth of a node, or +inf when the node is unknown."""
        depth = self.depth_by_id.get(node_id)
        return math.inf if depth is None else depth

    def preferred_parent(self, node_id: str) -> Optional[str]:
        """The canonical parent of ``node_id``.

        Returns None for the root and for nodes with no recorded parents.
        """
        if node_id in self._preferred_cache:
            return self._preferred_cache[node_id]

        best: Optional[str] = None
        if node_id != self.root_id:
            for candidate in self.parents(node_id):
                if best is None or (self.depth(candidate), candidate) < (self.depth(best), best):
                    best = candidate

        self._preferred_cache[node_id] = best
        return best

    def cluster_of(self, node_id: str) -> str:
        """The direct-child-of-root ancestor owning ``node_id``.

        Walks preferred parents upward until the next step would be the
        root.  Nodes whose chain dead-ends before the root, or loops back on
        itself, fall back to the root's cluster.
        """
        cached = self._cluster_cache.get(node_id)
        if cached is not None:
            return cached

        visited = [node_id]
        seen = {node_id}
        current = node_id
        resolved = self.root_id

        while True:
            parent = self.preferred_parent(current)
            if parent is None:
                break
            if parent == self.root_id:
                resolved = current
                break
            if parent in seen:
                logger.warning(
                    "Cycle in preferred-parent chain of '%s' at '%s'; clustering under root",
                    node_id, parent,
                )
                break
            cached = self._cluster_cache.get(parent)
            if cached is not None:
                resolved = cached
                break
            visited.append(parent)
            seen.add(parent)
            current = parent

        for visited_id in visited:
            self._cluster_cache.setdefault(visited_id, resolved)
        return self._cluster_cache[node_id]

    def lineage_path(self, node_id: str) -> list[str]:
        """Preferred-parent chain from ``node_id`` upward, stopping on cycles."""
        path: list[str] = []
        seen: set[str] = set()
        current: Optional[str] = node_id
        while current is not None and current not in seen:
            seen.add(current)
            path.append(current)
            if current == self.root_id:
                break
            current = self.preferred_parent(current)
        return path

    def direct_children_of_root(self) -> list[str]:
        """Nodes anchoring a cluster of their own, in depth-map order."""
        return [
            node_id for node_id in self.depth_by_id
            if node_id != self.root_id and self.cluster_of(node_id) == node_id
        ]
