"""
Graph sessions: one explicitly constructed owner per rendered tree.

A ``GraphSession`` owns every piece of mutable state for a tree on screen:

    HierarchyResolver  → adjacency, preferred parents, clusters
    ClusterAnchors     → per-cluster gravity wells for the current viewport
    TreeLayout         → the force simulation and its node table
    CameraController   → the viewport transform
    HighlightManager   → lineage and hover overlays
    FrameScheduler     → next-frame callbacks (focus retries, polling)

The host calls ``frame(now)`` once per animation frame.  Within a frame the
simulation steps first, then queued callbacks run, then the camera
transition advances.  The simulation is the only writer of positions
during a tick and an active drag is the only writer between ticks; every
other component reads.

``close()`` tears everything down; there is no global state.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Callable, Optional

from .camera import CameraController
from .clusters import ClusterAnchors
from .hierarchy import HierarchyResolver
from .highlight import HighlightManager
from .interaction import InteractionDispatcher
from .models import AdvisorNode, AdvisorTree, CameraView, GraphSnapshot, LinkView, NodeView
from .scheduler import FrameScheduler
from .simulation import SimulationOptions, build_tree_simulation

logger = logging.getLogger(__name__)

DEFAULT_WIDTH = 960.0
DEFAULT_HEIGHT = 720.0
FRAME_INTERVAL = 1 / 60
ROOT_FOCUS_SCALE = 1.05
NODE_FOCUS_SCALE = 1.35


class SurfaceUnavailableError(RuntimeError):
    """The rendering surface (graph container) is missing."""


@dataclass
class Viewport:
    """A measurable rendering surface.  Zero means "not yet laid out"."""
    width: float = 0.0
    height: float = 0.0

    def measure(self) -> tuple[float, float]:
        return (self.width, self.height)


SelectListener = Callable[[AdvisorNode], None]


class GraphSession:
    """Layout, camera and highlight state for one advisor tree."""

    def __init__(
        self,
        tree: AdvisorTree,
        width: float = 0.0,
        height: float = 0.0,
        options: Optional[SimulationOptions] = None,
    ):
        self.tree = tree
        self.root_id = tree.root
        self.options = options or SimulationOptions()
        width = width or DEFAULT_WIDTH
        height = height or DEFAULT_HEIGHT

        self.resolver = HierarchyResolver(tree)
        direct_children = [
            tree.get_node(node_id) for node_id in self.resolver.direct_children_of_root()
        ]
        self.anchors = ClusterAnchors(root_id=tree.root, direct_children=direct_children)
        self.anchors.recompute(width, height)

        self.layout = build_tree_simulation(tree, self.resolver, self.anchors, self.options)
        self.scheduler = FrameScheduler()
        self.camera = CameraController(self.scheduler, self.layout.nodes_by_id, width, height)
        self.highlight = HighlightManager(self.resolver)
        self.dispatcher = InteractionDispatcher(self)

        self.stabilized = False
        self.closed = False
        self.clock = 0.0
        self._select_listeners: list[SelectListener] = []
        self.layout.simulation.on("end", self._on_stabilized)

        logger.info(
            "Graph data ready: %d nodes, %d links, %d clusters",
            len(tree.nodes), len(self.layout.links), len(direct_children),
        )

        self.camera.schedule_initial_focus(self.root_id)
        self.select(self.root_id)

    # --- Accessors ---

    @property
    def simulation(self):
        return self.layout.simulation

    @property
    def nodes_by_id(self):
        return self.layout.nodes_by_id

    @property
    def width(self) -> float:
        return self.camera.width

    @property
    def height(self) -> float:
        return self.camera.height

    @property
    def selected_id(self) -> Optional[str]:
        return self.highlight.selected_id

    @property
    def hovered_id(self) -> Optional[str]:
        return self.highlight.hovered_id

    def positions(self) -> dict[str, tuple[float, float]]:
        """Snapshot of current positions (copies, safe to keep)."""
        return {node.id: (node.x, node.y) for node in self.layout.simulation.nodes}

    # --- Selection & hover ---

    def on_select(self, callback: SelectListener) -> None:
        """Notify ``callback`` with the selected node (profile cards, rosters)."""
        self._select_listeners.append(callback)

    def select(self, node_id: Optional[str], focus: bool = False) -> bool:
        """Select a node: replace the lineage overlay and optionally focus it."""
        if not node_id:
            return False
        node = self.tree.get_node(node_id)
        if node is None:
            logger.warning("Cannot select unknown node '%s'", node_id)
            return False

        self.highlight.select(node_id)
        if focus:
            scale = ROOT_FOCUS_SCALE if node_id == self.root_id else NODE_FOCUS_SCALE
            self.camera.focus_node(node_id, scale=scale)

        for callback in list(self._select_listeners):
            callback(node)
        return True

    def clear_selection(self) -> None:
        self.highlight.clear_selection()

    def hover(self, node_id: Optional[str]) -> None:
        if node_id is not None and node_id not in self.nodes_by_id:
            node_id = None
        self.highlight.hover(node_id)

    # --- Viewport ---

    def resize(self, width: float, height: float) -> bool:
        """Adopt a new viewport size and let the layout resettle."""
        if not width or not height:
            return False
        self.camera.set_viewport(width, height)
        self.anchors.recompute(width, height)
        self.layout.apply_viewport(self.anchors)
        self.reheat(self.options.resize_alpha)

        if not self.camera.initial_focus_done:
            self.camera.schedule_initial_focus(self.root_id)
        else:
            self.camera.focus_node(self.root_id, scale=self.camera.transform.k)
        return True

    def reheat(self, alpha: float) -> None:
        self.simulation.alpha = alpha
        self.simulation.restart()
        self.stabilized = False

    def _on_stabilized(self) -> None:
        self.stabilized = True

    # --- Frame loop ---

    def frame(self, now: Optional[float] = None) -> None:
        """Advance one animation frame."""
        if self.closed:
            return
        if now is None:
            now = self.clock + FRAME_INTERVAL
        self.clock = now
        self.simulation.step()
        self.scheduler.flush(now)
        self.camera.step(now)

    def run(self, frames: int, interval: float = FRAME_INTERVAL) -> None:
        """Advance ``frames`` frames on a synthetic clock."""
        for _ in range(frames):
            self.frame(self.clock + interval)

    def run_until_stable(self, max_frames: int = 2000, interval: float = FRAME_INTERVAL) -> int:
        """Step until the layout stabilizes and the camera settles.

        Returns the number of frames run.
        """
        frames = 0
        while frames < max_frames:
            if self.stabilized and self.camera.transition is None and not self.scheduler.pending():
                break
            self.frame(self.clock + interval)
            frames += 1
        return frames

    # --- Read access for renderers ---

    def snapshot(self) -> GraphSnapshot:
        nodes = []
        for sim_node in self.simulation.nodes:
            flags = self.highlight.node_flags(sim_node.id)
            nodes.append(NodeView(
                id=sim_node.id,
                label=sim_node.data.get_label() if sim_node.data else sim_node.id,
                depth=sim_node.depth,
                cluster_id=sim_node.cluster_id,
                x=sim_node.x if math.isfinite(sim_node.x) else None,
                y=sim_node.y if math.isfinite(sim_node.y) else None,
                radius=sim_node.radius,
                is_root=sim_node.id == self.root_id,
                pinned=sim_node.fx is not None,
                selected=flags.selected,
                lineage_active=flags.lineage_active,
                lineage_muted=flags.lineage_muted,
                hovered=flags.hovered,
                hover_muted=flags.hover_muted,
            ))

        links = []
        for source, target in self.layout.links:
            flags = self.highlight.edge_flags(source, target)
            links.append(LinkView(
                source=source,
                target=target,
                selected=flags.selected,
                lineage_active=flags.lineage_active,
                lineage_muted=flags.lineage_muted,
                hovered=flags.hovered,
                hover_muted=flags.hover_muted,
            ))

        t = self.camera.transform
        return GraphSnapshot(
            root=self.root_id,
            selected_id=self.selected_id,
            hovered_id=self.hovered_id,
            alpha=self.simulation.alpha,
            stabilized=self.stabilized,
            camera=CameraView(k=t.k, x=t.x, y=t.y, width=self.width, height=self.height),
            nodes=nodes,
            links=links,
        )

    # --- Teardown ---

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self.simulation.stop()
        self.camera.close()
        self.scheduler.clear()
        self._select_listeners.clear()
        logger.debug("Graph session for root '%s' closed", self.root_id)


def open_session(
    tree: AdvisorTree,
    surface: Optional[Viewport],
    options: Optional[SimulationOptions] = None,
) -> GraphSession:
    """Create a session sized to ``surface``.

    Raises:
        SurfaceUnavailableError: if there is no surface to render into.
    """
    if surface is None:
        raise SurfaceUnavailableError("Graph container is not available")
    width, height = surface.measure()
    return GraphSession(tree, width=width, height=height, options=options)
