"""
Data models for advisor-tree: the mentorship dataset and render snapshots.

An advisor tree is a rooted graph of academic mentorship:

    root (generation 0)
    └── direct advisees (generation 1), each one anchors a *cluster*
        └── their advisees (generation 2)
            └── ...

Nodes carry the precomputed ``depth``, ``direct_advisee_count`` and
``total_descendants`` supplied by the dataset; the layout engine never
recomputes them.  Edges are ``(from, to)`` pairs meaning "from advised to".
A node may have more than one advisor; the hierarchy resolver picks one
*preferred parent* for lineage and clustering.

The second half of this module defines the read-only *snapshot* models the
session hands to renderers and remote viewers.
"""

from __future__ import annotations
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Dataset
# ---------------------------------------------------------------------------

class DatasetSummary(BaseModel):
    """Aggregate figures shipped alongside the dataset.

    Only consumed by summary displays; the layout engine ignores it.
    """
    total_nodes: int = 0
    direct_advisees: int = 0
    max_depth: int = 0
    depth_counts: dict[str, int] = Field(default_factory=dict)
    generated_from: Optional[str] = None


class AdvisorNode(BaseModel):
    """A person in the tree.

    The layout engine reads ``id``, ``depth``, ``direct_advisee_count`` and
    ``total_descendants``.  The profile fields are carried through untouched
    for profile cards and previews.
    """
    id: str
    name: str = ""
    depth: int = 0
    direct_advisee_count: int = 0
    total_descendants: int = 0
    affiliation_name: Optional[str] = None
    affiliation_domain: Optional[str] = None
    research_area_summary: Optional[str] = None
    expertise_keywords: list[str] = Field(default_factory=list)
    homepage: Optional[str] = None
    gscholar: Optional[str] = None
    dblp: Optional[str] = None

    def get_label(self) -> str:
        """Display name, falling back to the id."""
        return self.name if self.name else self.id

    def influence_score(self) -> float:
        """Descendant count plus half the direct advisee count.

        A sizing/spacing heuristic only.
        """
        return float(self.total_descendants) + float(self.direct_advisee_count) * 0.5

    def profile_link(self) -> Optional[str]:
        """First available public link: homepage, Google Scholar, then DBLP."""
        return self.homepage or self.gscholar or self.dblp


class AdvisorEdge(BaseModel):
    """A directed advising relationship.  Serialized as ``{from, to}``."""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    source: str = Field(alias="from")
    target: str = Field(alias="to")

    def key(self) -> tuple[str, str]:
        return (self.source, self.target)


class AdvisorTree(BaseModel):
    """The complete dataset for one page load.

    Immutable by convention once validated: the session builds all of its
    adjacency from this value and never writes back to it.
    """
    root: str
    summary: DatasetSummary = Field(default_factory=DatasetSummary)
    generated_at: Optional[str] = None
    nodes: list[AdvisorNode] = Field(default_factory=list)
    edges: list[AdvisorEdge] = Field(default_factory=list)

    # Flat access helpers
    _node_map: dict[str, AdvisorNode] = {}

    def model_post_init(self, __context):
        """Build the id lookup after initialization."""
        self._node_map = {node.id: node for node in self.nodes}

    def get_node(self, node_id: str) -> Optional[AdvisorNode]:
        """Look up a node by id."""
        return self._node_map.get(node_id)

    def max_depth(self) -> int:
        return max((node.depth for node in self.nodes), default=0)

    def max_influence(self) -> float:
        return max((node.influence_score() for node in self.nodes), default=0.0)

    def max_descendants(self) -> int:
        return max((node.total_descendants for node in self.nodes), default=0)


def depth_label(depth: int) -> str:
    """Human-readable generation label."""
    if depth == 0:
        return "Generation 0 (Root)"
    if depth == 1:
        return "Generation 1 (Direct advisee)"
    return f"Generation {depth}"


def depth_badge(depth: int) -> str:
    """Short badge shown above a hovered node."""
    return "Root" if depth == 0 else f"Gen {depth}"


# ---------------------------------------------------------------------------
# Snapshots (read-only views for renderers and remote viewers)
# ---------------------------------------------------------------------------

class NodeView(BaseModel):
    """Position and overlay state of one node at snapshot time."""
    id: str
    label: str
    depth: int
    cluster_id: str
    x: Optional[float] = None
    y: Optional[float] = None
    radius: float
    is_root: bool = False
    pinned: bool = False
    selected: bool = False
    lineage_active: bool = False
    lineage_muted: bool = False
    hovered: bool = False
    hover_muted: bool = False

    def is_muted(self) -> bool:
        return self.lineage_muted or self.hover_muted


class LinkView(BaseModel):
    """Endpoints and overlay state of one edge at snapshot time."""
    source: str
    target: str
    selected: bool = False
    lineage_active: bool = False
    lineage_muted: bool = False
    hovered: bool = False
    hover_muted: bool = False

    def is_muted(self) -> bool:
        return self.lineage_muted or self.hover_muted


class CameraView(BaseModel):
    """The viewport transform: ``screen = world * k + (x, y)``."""
    k: float = 1.0
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0


class GraphSnapshot(BaseModel):
    """Everything a renderer needs to draw one frame."""
    root: str
    selected_id: Optional[str] = None
    hovered_id: Optional[str] = None
    alpha: float = 0.0
    stabilized: bool = False
    camera: CameraView = Field(default_factory=CameraView)
    nodes: list[NodeView] = Field(default_factory=list)
    links: list[LinkView] = Field(default_factory=list)

    def get_node(self, node_id: str) -> Optional[NodeView]:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None
