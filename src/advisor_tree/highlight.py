"""
Highlight overlays: lineage (selection) and hover neighbourhoods.

Both overlays are pure functions of the hierarchy and an id, recomputed
from scratch on every change:

  * **lineage**: the selected node, its preferred parent, that node's
    preferred parent, ... up to the root, plus the edges walked.  The root
    is always included.  Persistent until the selection changes.
  * **hover**: the hovered node, its preferred parent and every direct
    child, plus the connecting edges.  Transient.

The overlays are independent: hovering never touches the lineage and
selecting never touches the hover.  Renderers combine the resulting flags.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from .hierarchy import HierarchyResolver

EdgeKey = tuple[str, str]


@dataclass(frozen=True)
class Overlay:
    """A related node set and edge set."""
    nodes: frozenset[str] = field(default_factory=frozenset)
    edges: frozenset[EdgeKey] = field(default_factory=frozenset)


EMPTY_OVERLAY = Overlay()


def compute_lineage(node_id: Optional[str], resolver: HierarchyResolver) -> Overlay:
    """Preferred-parent chain from ``node_id`` to the root."""
    if not node_id:
        return EMPTY_OVERLAY
    nodes: set[str] = set()
    edges: set[EdgeKey] = set()
    seen: set[str] = set()
    current: Optional[str] = node_id
    while current is not None and current not in seen:
        seen.add(current)
        nodes.add(current)
        if current == resolver.root_id:
            break
        parent = resolver.preferred_parent(current)
        if parent is None:
            break
        edges.add((parent, current))
        current = parent
    nodes.add(resolver.root_id)
    return Overlay(frozenset(nodes), frozenset(edges))


def compute_hover(node_id: Optional[str], resolver: HierarchyResolver) -> Overlay:
    """One-hop neighbourhood: preferred parent and all direct children."""
    if not node_id:
        return EMPTY_OVERLAY
    nodes = {node_id}
    edges: set[EdgeKey] = set()
    parent = resolver.preferred_parent(node_id)
    if parent is not None:
        nodes.add(parent)
        edges.add((parent, node_id))
    for child in resolver.children(node_id):
        nodes.add(child)
        edges.add((node_id, child))
    return Overlay(frozenset(nodes), frozenset(edges))


@dataclass(frozen=True)
class NodeFlags:
    selected: bool = False
    lineage_active: bool = False
    lineage_muted: bool = False
    hovered: bool = False
    hover_muted: bool = False


@dataclass(frozen=True)
class EdgeFlags:
    selected: bool = False
    lineage_active: bool = False
    lineage_muted: bool = False
    hovered: bool = False
    hover_muted: bool = False


class HighlightManager:
    """Holds the current selection and hover and answers per-item flags."""

    def __init__(self, resolver: HierarchyResolver):
        self.resolver = resolver
        self.selected_id: Optional[str] = None
        self.hovered_id: Optional[str] = None
        self.lineage = EMPTY_OVERLAY
        self.hover_overlay = EMPTY_OVERLAY

    def select(self, node_id: Optional[str]) -> Overlay:
        """Replace the lineage overlay wholesale."""
        self.selected_id = node_id
        self.lineage = compute_lineage(node_id, self.resolver)
        return self.lineage

    def clear_selection(self) -> None:
        self.selected_id = None
        self.lineage = EMPTY_OVERLAY

    def hover(self, node_id: Optional[str]) -> Overlay:
        self.hovered_id = node_id
        self.hover_overlay = compute_hover(node_id, self.resolver)
        return self.hover_overlay

    @property
    def lineage_dims(self) -> bool:
        # A lineage of just the root (e.g. the root selected) mutes nothing.
        return len(self.lineage.nodes) > 1

    def node_flags(self, node_id: str) -> NodeFlags:
        in_lineage = node_id in self.lineage.nodes
        hovering = self.hovered_id is not None
        in_hover = node_id in self.hover_overlay.nodes
        return NodeFlags(
            selected=node_id == self.selected_id,
            lineage_active=in_lineage,
            lineage_muted=self.lineage_dims and not in_lineage,
            hovered=hovering and in_hover,
            hover_muted=hovering and not in_hover,
        )

    def edge_flags(self, source: str, target: str) -> EdgeFlags:
        key = (source, target)
        in_lineage = key in self.lineage.edges
        hovering = self.hovered_id is not None
        in_hover = key in self.hover_overlay.edges
        return EdgeFlags(
            selected=self.selected_id is not None and self.selected_id in key,
            lineage_active=bool(self.lineage.nodes) and in_lineage,
            lineage_muted=self.lineage_dims and not in_lineage,
            hovered=hovering and in_hover,
            hover_muted=hovering and not in_hover,
        )
