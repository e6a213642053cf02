"""Pointer and keyboard routing for a graph session.

Node events become selection/hover changes, node drags pin the node to the
pointer, and background gestures drive the camera.  Screen coordinates are
viewport pixels; they are mapped into simulation space through the current
camera transform.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Optional

if TYPE_CHECKING:
    from .session import GraphSession


@dataclass
class DragState:
    node_id: str
    offset_x: float
    offset_y: float


class InteractionDispatcher:
    """Translates UI events into session, highlight and camera commands."""

    def __init__(self, session: "GraphSession"):
        self.session = session
        self.drag: Optional[DragState] = None
        self.on_open_link: Optional[Callable[[str], None]] = None

    # --- Hit testing ---

    def to_world(self, sx: float, sy: float) -> tuple[float, float]:
        return self.session.camera.transform.invert(sx, sy)

    def hit_test(self, sx: float, sy: float) -> Optional[str]:
        """Id of the topmost node whose circle contains the screen point."""
        wx, wy = self.to_world(sx, sy)
        best_id = None
        best = math.inf
        for node in self.session.simulation.nodes:
            if not node.has_position():
                continue
            d = math.hypot(node.x - wx, node.y - wy)
            if d <= node.radius and d < best:
                best_id = node.id
                best = d
        return best_id

    def click_at(self, sx: float, sy: float) -> Optional[str]:
        """Route a click to the node under the pointer, or to the background."""
        node_id = self.hit_test(sx, sy)
        if node_id is None:
            self.background_click()
        else:
            self.node_click(node_id)
        return node_id

    # --- Node events ---

    def node_click(self, node_id: str) -> bool:
        return self.session.select(node_id)

    def node_double_click(self, node_id: str) -> Optional[str]:
        """Open the node's profile link, if it has one."""
        node = self.session.tree.get_node(node_id)
        if node is None:
            return None
        link = node.profile_link()
        if link and self.on_open_link is not None:
            self.on_open_link(link)
        return link

    def node_pointer_enter(self, node_id: str) -> None:
        self.session.hover(node_id)

    def node_pointer_leave(self, node_id: Optional[str] = None) -> None:
        self.session.hover(None)

    node_focus = node_pointer_enter
    node_blur = node_pointer_leave

    def node_key(self, node_id: str, key: str) -> bool:
        """Enter selects and focuses; Space selects in place."""
        if key == "Enter":
            return self.session.select(node_id, focus=True)
        if key == " ":
            return self.session.select(node_id, focus=False)
        return False

    # --- Drag ---

    def drag_start(self, node_id: str, sx: float, sy: float) -> bool:
        node = self.session.nodes_by_id.get(node_id)
        if node is None:
            return False
        sim = self.session.simulation
        if self.drag is None:
            sim.alpha_target = self.session.options.drag_alpha_target
            sim.restart()
            self.session.stabilized = False
        elif self.drag.node_id != node_id:
            self._release(self.session.nodes_by_id[self.drag.node_id])
        wx, wy = self.to_world(sx, sy)
        self.drag = DragState(node_id=node_id, offset_x=node.x - wx, offset_y=node.y - wy)
        node.pin(node.x, node.y)
        return True

    def drag_move(self, sx: float, sy: float) -> None:
        if self.drag is None:
            return
        node = self.session.nodes_by_id[self.drag.node_id]
        wx, wy = self.to_world(sx, sy)
        node.pin(wx + self.drag.offset_x, wy + self.drag.offset_y)

    def drag_end(self) -> None:
        """Release the dragged node; the root re-pins to the viewport centre."""
        if self.drag is None:
            return
        node = self.session.nodes_by_id[self.drag.node_id]
        self.drag = None
        self.session.simulation.alpha_target = 0.0
        self._release(node)

    def _release(self, node) -> None:
        session = self.session
        if node.id == session.root_id:
            node.pin(session.width / 2, session.height / 2)
        else:
            node.unpin()

    # --- Camera gestures ---

    def pan(self, dx: float, dy: float) -> None:
        self.session.camera.pan_by(dx, dy)

    def wheel(self, sx: float, sy: float, delta_y: float, delta_mode: int = 0) -> None:
        self.session.camera.wheel(sx, sy, delta_y, delta_mode)

    def background_click(self) -> None:
        self.session.clear_selection()

    def resize(self, width: float, height: float) -> bool:
        return self.session.resize(width, height)
