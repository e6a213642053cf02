"""
Camera control: the pan/zoom transform over simulation space.

The transform maps simulation coordinates to viewport pixels:

    screen = world * k + (x, y)

Programmatic moves (focus a node, fit everything) animate over 600 ms with
a cubic ease-in/ease-out; a new request replaces the one in flight.  Direct
manipulation (pointer pan, wheel zoom) writes the transform immediately
and interrupts any animation.

Operations that need a laid-out node or a measurable viewport do not fail
when called too early.  They retry on the next frame instead.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Mapping, Optional

from .scheduler import FrameHandle, FrameScheduler, PollingTask
from .simulation import SimNode

logger = logging.getLogger(__name__)

SCALE_EXTENT = (0.3, 4.0)
FIT_SCALE_EXTENT = (0.35, 2.0)
FOCUS_SCALE_EXTENT = (0.5, 3.0)
TRANSITION_DURATION = 0.6

INITIAL_FOCUS_MIN_SIZE = 240
INITIAL_FOCUS_PADDING = 260
INITIAL_FOCUS_MAX_SCALE = 0.95
INITIAL_FOCUS_ROOT_SCALE = 0.85
INITIAL_FOCUS_MAX_ATTEMPTS = 600


def _clamp(value: float, extent: tuple[float, float]) -> float:
    return min(extent[1], max(extent[0], value))


def ease_cubic_in_out(t: float) -> float:
    t *= 2
    if t <= 1:
        return t * t * t / 2
    t -= 2
    return (t * t * t + 2) / 2


@dataclass(frozen=True)
class Transform:
    k: float = 1.0
    x: float = 0.0
    y: float = 0.0

    def apply(self, px: float, py: float) -> tuple[float, float]:
        return (px * self.k + self.x, py * self.k + self.y)

    def invert(self, sx: float, sy: float) -> tuple[float, float]:
        return ((sx - self.x) / self.k, (sy - self.y) / self.k)

    def translate(self, tx: float, ty: float) -> "Transform":
        """Translate in world units (scaled by ``k``)."""
        return Transform(self.k, self.x + self.k * tx, self.y + self.k * ty)

    @classmethod
    def centered_on(cls, px: float, py: float, k: float, width: float, height: float) -> "Transform":
        """The transform at scale ``k`` that puts world point ``(px, py)`` mid-viewport."""
        return cls(k, width / 2 - px * k, height / 2 - py * k)


IDENTITY = Transform()


@dataclass
class Bounds:
    min_x: float
    min_y: float
    max_x: float
    max_y: float

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        return self.max_y - self.min_y


@dataclass
class Transition:
    """An eased move from ``start`` to ``end``.

    The clock starts on the first frame after the request.  Scale
    interpolates geometrically; the world point at the viewport centre
    interpolates linearly.
    """
    start: Transform
    end: Transform
    width: float
    height: float
    duration: float = TRANSITION_DURATION
    started_at: Optional[float] = None

    def value(self, now: float) -> tuple[Transform, bool]:
        if self.started_at is None:
            self.started_at = now
        t = 1.0 if self.duration <= 0 else min(1.0, (now - self.started_at) / self.duration)
        if t >= 1.0:
            return self.end, True
        e = ease_cubic_in_out(t)
        cx0, cy0 = self.start.invert(self.width / 2, self.height / 2)
        cx1, cy1 = self.end.invert(self.width / 2, self.height / 2)
        k = self.start.k * (self.end.k / self.start.k) ** e
        cx = cx0 + (cx1 - cx0) * e
        cy = cy0 + (cy1 - cy0) * e
        return Transform.centered_on(cx, cy, k, self.width, self.height), False


class CameraController:
    """Owns the viewport transform.  Reads node positions, never writes them."""

    def __init__(
        self,
        scheduler: FrameScheduler,
        nodes_by_id: Mapping[str, SimNode],
        width: float = 0.0,
        height: float = 0.0,
    ):
        self.scheduler = scheduler
        self.nodes_by_id = nodes_by_id
        self.width = width
        self.height = height
        self.transform = IDENTITY
        self.transition: Optional[Transition] = None
        self.initial_focus_done = False
        self._initial_focus: Optional[PollingTask] = None
        self._pending_focus: Optional[FrameHandle] = None

    # --- Viewport ---

    def set_viewport(self, width: float, height: float) -> None:
        self.width = width
        self.height = height

    @property
    def initial_focus_scheduled(self) -> bool:
        return self._initial_focus is not None and self._initial_focus.active

    # --- Programmatic moves ---

    def animate_to(self, transform: Transform) -> None:
        """Start a transition, replacing any in flight."""
        self.transition = Transition(
            start=self.transform, end=transform, width=self.width, height=self.height,
        )

    def focus_node(self, node_id: str, scale: float = 1.2) -> bool:
        """Centre the camera on a node.

        Returns False for unknown ids.  If the node has no finite position
        yet, the request re-queues itself for the next frame.
        """
        self._cancel_pending_focus()
        node = self.nodes_by_id.get(node_id)
        if node is None:
            logger.warning("Cannot focus unknown node '%s'", node_id)
            return False
        if not node.has_position():
            self._pending_focus = self.scheduler.request_frame(
                lambda now: self.focus_node(node_id, scale)
            )
            return True
        k = _clamp(scale, FOCUS_SCALE_EXTENT)
        self.animate_to(Transform.centered_on(node.x, node.y, k, self.width, self.height))
        return True

    def graph_bounds(self) -> Optional[Bounds]:
        """Bounding box of every node with a finite position."""
        placed = [node for node in self.nodes_by_id.values() if node.has_position()]
        if not placed:
            return None
        return Bounds(
            min_x=min(node.x for node in placed),
            min_y=min(node.y for node in placed),
            max_x=max(node.x for node in placed),
            max_y=max(node.y for node in placed),
        )

    def fit_all_bounds(self, padding: float = 200, max_scale: float = 1.05) -> bool:
        """Animate so every placed node fits the viewport.

        Returns False, leaving the transform untouched, when no node is
        placed or the viewport has no size.
        """
        bounds = self.graph_bounds()
        if bounds is None or not self.width or not self.height:
            return False
        self._cancel_pending_focus()
        bounds_width = max(1.0, bounds.width)
        bounds_height = max(1.0, bounds.height)
        scale_x = self.width / (bounds_width + padding)
        scale_y = self.height / (bounds_height + padding)
        k = _clamp(min(max_scale, scale_x, scale_y), FIT_SCALE_EXTENT)
        center_x = (bounds.min_x + bounds.max_x) / 2
        center_y = (bounds.min_y + bounds.max_y) / 2
        self.animate_to(Transform.centered_on(center_x, center_y, k, self.width, self.height))
        return True

    def schedule_initial_focus(self, root_id: str) -> None:
        """Fit the graph once the viewport and the root are ready.

        Runs at most once per session.  Polls every frame, up to
        ``INITIAL_FOCUS_MAX_ATTEMPTS`` frames.
        """
        if self.initial_focus_done or self.initial_focus_scheduled:
            return
        self._initial_focus = PollingTask(
            self.scheduler,
            lambda now: self._attempt_initial_focus(root_id),
            max_attempts=INITIAL_FOCUS_MAX_ATTEMPTS,
            name="initial focus",
        ).start()

    def _attempt_initial_focus(self, root_id: str) -> bool:
        if self.initial_focus_done:
            return True
        if self.width < INITIAL_FOCUS_MIN_SIZE or self.height < INITIAL_FOCUS_MIN_SIZE:
            return False
        root = self.nodes_by_id.get(root_id)
        if root is None or not root.has_position():
            return False
        self.initial_focus_done = True
        if not self.fit_all_bounds(padding=INITIAL_FOCUS_PADDING, max_scale=INITIAL_FOCUS_MAX_SCALE):
            self.focus_node(root_id, scale=INITIAL_FOCUS_ROOT_SCALE)
        return True

    def _cancel_pending_focus(self) -> None:
        self.scheduler.cancel(self._pending_focus)
        self._pending_focus = None

    # --- Direct manipulation ---

    def set_transform(self, transform: Transform) -> None:
        """Write the transform now, interrupting any animation."""
        self.transition = None
        self.transform = Transform(
            _clamp(transform.k, SCALE_EXTENT), transform.x, transform.y,
        )

    def pan_by(self, dx: float, dy: float) -> None:
        """Drag-to-pan by a screen-space delta."""
        t = self.transform
        self.set_transform(Transform(t.k, t.x + dx, t.y + dy))

    def zoom_at(self, sx: float, sy: float, factor: float) -> None:
        """Scale by ``factor`` keeping the world point under ``(sx, sy)`` fixed."""
        t = self.transform
        k = _clamp(t.k * factor, SCALE_EXTENT)
        wx, wy = t.invert(sx, sy)
        self.set_transform(Transform(k, sx - wx * k, sy - wy * k))

    def wheel(self, sx: float, sy: float, delta_y: float, delta_mode: int = 0) -> None:
        """Scroll-to-zoom using browser wheel-delta conventions."""
        multiplier = 0.05 if delta_mode == 1 else (1.0 if delta_mode else 0.002)
        self.zoom_at(sx, sy, math.pow(2, -delta_y * multiplier))

    # --- Frame hook ---

    def step(self, now: float) -> bool:
        """Advance the running transition.  Returns True while animating."""
        if self.transition is None:
            return False
        transform, finished = self.transition.value(now)
        self.transform = transform
        if finished:
            self.transition = None
        return not finished

    def close(self) -> None:
        self._cancel_pending_focus()
        if self._initial_focus is not None:
            self._initial_focus.cancel()
        self.transition = None
