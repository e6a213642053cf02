"""
Force-directed layout engine for advisor trees.

A discrete-time particle simulation in the style of velocity-Verlet force
layouts.  Every tick:

  1. ``alpha`` (the layout's energy) moves toward ``alpha_target`` by
     ``alpha_decay``.
  2. Each registered force adds to node velocities (or, for centring,
     shifts positions directly), scaled by ``alpha``.
  3. Velocities decay by ``velocity_decay`` and integrate into positions.
     Pinned nodes (``fx``/``fy`` set) snap to their pin with zero velocity.

The engine stops and emits ``"end"`` once ``alpha`` falls below
``alpha_min``.  ``restart()`` resumes it; drag and resize use this to
"reheat" the layout instead of jumping nodes.

Forces composed for an advisor tree (see ``build_tree_simulation``):

    link: springs along advising edges, length by generation
    charge: uniform many-body repulsion
    center: keeps the centroid on the viewport centre
    collide: hard separation at visual radius + padding
    radial: pulls generation d toward a ring of radius ~ d
    clusterX / clusterY: pulls nodes toward their cluster anchor

Repulsion is summed over all pairs; there is no spatial partitioning.
"""

from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass, field
from typing import Callable, Optional, Union

from .clusters import ClusterAnchors, normalize_influence, normalize_value
from .hierarchy import HierarchyResolver
from .models import AdvisorNode, AdvisorTree

logger = logging.getLogger(__name__)

INITIAL_RADIUS = 10.0
INITIAL_ANGLE = math.pi * (3 - math.sqrt(5))


@dataclass
class SimulationOptions:
    """Tuning constants for the advisor-tree layout."""
    link_strength: float = 0.9
    charge_strength: float = -220.0
    collide_padding: float = 14.0
    collide_strength: float = 1.2
    radial_strength: float = 0.3
    root_cluster_strength: float = 0.62
    cluster_strength: float = 0.15
    alpha_decay: float = 0.024
    alpha_min: float = 0.001
    velocity_decay: float = 0.4
    drag_alpha_target: float = 0.3
    resize_alpha: float = 0.35
    seed: int = 1


@dataclass(eq=False)
class SimNode:
    """Mutable simulation state for one node."""
    id: str
    depth: int = 0
    cluster_id: str = ""
    radius: float = 0.0
    data: Optional[AdvisorNode] = None
    index: int = 0
    x: float = math.nan
    y: float = math.nan
    vx: float = math.nan
    vy: float = math.nan
    fx: Optional[float] = None
    fy: Optional[float] = None

    def has_position(self) -> bool:
        return math.isfinite(self.x) and math.isfinite(self.y)

    def pin(self, x: float, y: float) -> None:
        self.fx = x
        self.fy = y

    def unpin(self) -> None:
        self.fx = None
        self.fy = None


@dataclass(eq=False)
class SimLink:
    source: SimNode
    target: SimNode
    index: int = 0


NodeValue = Union[float, Callable[[SimNode], float]]


def _accessor(value: NodeValue) -> Callable[[SimNode], float]:
    if callable(value):
        return value
    return lambda node: value


def _jiggle(rng: random.Random) -> float:
    return (rng.random() - 0.5) * 1e-6


# ---------------------------------------------------------------------------
# Forces
# ---------------------------------------------------------------------------

class Force:
    """Base class.  ``initialize`` caches per-node parameters."""

    def initialize(self, nodes: list[SimNode], rng: random.Random) -> None:
        self.nodes = nodes
        self.rng = rng

    def __call__(self, alpha: float) -> None:
        raise NotImplementedError


class LinkForce(Force):
    """Springs pulling linked nodes toward a target distance.

    The correction is split between endpoints by degree: the endpoint with
    fewer links moves more.
    """

    def __init__(
        self,
        links: list[tuple[str, str]],
        distance: Union[float, Callable[[SimLink], float]] = 30.0,
        strength: Optional[Union[float, Callable[[SimLink], float]]] = None,
        iterations: int = 1,
    ):
        self.link_ids = list(links)
        self.distance = distance
        self.strength = strength
        self.iterations = iterations
        self.links: list[SimLink] = []

    def initialize(self, nodes, rng):
        super().initialize(nodes, rng)
        by_id = {node.id: node for node in nodes}
        self.links = []
        for index, (source_id, target_id) in enumerate(self.link_ids):
            if source_id not in by_id or target_id not in by_id:
                missing = source_id if source_id not in by_id else target_id
                raise KeyError(f"node not found: {missing}")
            self.links.append(SimLink(by_id[source_id], by_id[target_id], index))

        count: dict[int, int] = {}
        for link in self.links:
            count[link.source.index] = count.get(link.source.index, 0) + 1
            count[link.target.index] = count.get(link.target.index, 0) + 1

        self.bias = [
            count[link.source.index] / (count[link.source.index] + count[link.target.index])
            for link in self.links
        ]

        if self.strength is None:
            strength_fn = lambda link: 1 / min(count[link.source.index], count[link.target.index])
        else:
            strength_fn = self.strength if callable(self.strength) else (lambda link, s=self.strength: s)
        distance_fn = self.distance if callable(self.distance) else (lambda link, d=self.distance: d)

        self.strengths = [strength_fn(link) for link in self.links]
        self.distances = [distance_fn(link) for link in self.links]

    def __call__(self, alpha):
        for _ in range(self.iterations):
            for i, link in enumerate(self.links):
                source, target = link.source, link.target
                x = target.x + target.vx - source.x - source.vx or _jiggle(self.rng)
                y = target.y + target.vy - source.y - source.vy or _jiggle(self.rng)
                length = math.sqrt(x * x + y * y)
                length = (length - self.distances[i]) / length * alpha * self.strengths[i]
                x *= length
                y *= length
                b = self.bias[i]
                target.vx -= x * b
                target.vy -= y * b
                source.vx += x * (1 - b)
                source.vy += y * (1 - b)


class ManyBodyForce(Force):
    """Pairwise inverse-distance repulsion (negative strength) or attraction."""

    def __init__(self, strength: NodeValue = -30.0, distance_min: float = 1.0,
                 distance_max: float = math.inf):
        self.strength = strength
        self.distance_min2 = distance_min * distance_min
        self.distance_max2 = distance_max * distance_max

    def initialize(self, nodes, rng):
        super().initialize(nodes, rng)
        strength_fn = _accessor(self.strength)
        self.strengths = [strength_fn(node) for node in nodes]

    def __call__(self, alpha):
        nodes = self.nodes
        for node in nodes:
            for other in nodes:
                if other is node:
                    continue
                x = other.x - node.x
                y = other.y - node.y
                dist2 = x * x + y * y
                if dist2 >= self.distance_max2:
                    continue
                if x == 0:
                    x = _jiggle(self.rng)
                    dist2 += x * x
                if y == 0:
                    y = _jiggle(self.rng)
                    dist2 += y * y
                if dist2 < self.distance_min2:
                    dist2 = math.sqrt(self.distance_min2 * dist2)
                w = self.strengths[other.index] * alpha / dist2
                node.vx += x * w
                node.vy += y * w


class CenterForce(Force):
    """Translates every node so the centroid sits on ``(x, y)``."""

    def __init__(self, x: float = 0.0, y: float = 0.0, strength: float = 1.0):
        self.x = x
        self.y = y
        self.strength = strength

    def __call__(self, alpha):
        nodes = self.nodes
        if not nodes:
            return
        sx = sum(node.x for node in nodes)
        sy = sum(node.y for node in nodes)
        sx = (sx / len(nodes) - self.x) * self.strength
        sy = (sy / len(nodes) - self.y) * self.strength
        for node in nodes:
            node.x -= sx
            node.y -= sy


class CollideForce(Force):
    """Pushes apart nodes whose exclusion circles overlap.

    Uses predicted positions (position + velocity) so separation holds after
    integration.
    """

    def __init__(self, radius: NodeValue = 1.0, strength: float = 1.0, iterations: int = 1):
        self.radius = radius
        self.strength = strength
        self.iterations = iterations

    def initialize(self, nodes, rng):
        super().initialize(nodes, rng)
        radius_fn = _accessor(self.radius)
        self.radii = [radius_fn(node) for node in nodes]

    def __call__(self, alpha):
        nodes = self.nodes
        count = len(nodes)
        for _ in range(self.iterations):
            for i in range(count):
                node = nodes[i]
                ri = self.radii[node.index]
                ri2 = ri * ri
                xi = node.x + node.vx
                yi = node.y + node.vy
                for j in range(i + 1, count):
                    other = nodes[j]
                    rj = self.radii[other.index]
                    r = ri + rj
                    x = xi - other.x - other.vx
                    y = yi - other.y - other.vy
                    dist2 = x * x + y * y
                    if dist2 >= r * r:
                        continue
                    if x == 0:
                        x = _jiggle(self.rng)
                        dist2 += x * x
                    if y == 0:
                        y = _jiggle(self.rng)
                        dist2 += y * y
                    dist = math.sqrt(dist2)
                    push = (r - dist) / dist * self.strength
                    x *= push
                    y *= push
                    rj2 = rj * rj
                    share = rj2 / (ri2 + rj2)
                    node.vx += x * share
                    node.vy += y * share
                    other.vx -= x * (1 - share)
                    other.vy -= y * (1 - share)


class RadialForce(Force):
    """Pulls each node toward a circle of per-node radius around ``(x, y)``."""

    def __init__(self, radius: NodeValue, x: float = 0.0, y: float = 0.0,
                 strength: NodeValue = 0.1):
        self.radius = radius
        self.x = x
        self.y = y
        self.strength = strength

    def initialize(self, nodes, rng):
        super().initialize(nodes, rng)
        radius_fn = _accessor(self.radius)
        strength_fn = _accessor(self.strength)
        self.radii = [radius_fn(node) for node in nodes]
        self.strengths = [
            0.0 if math.isnan(self.radii[node.index]) else strength_fn(node)
            for node in nodes
        ]

    def __call__(self, alpha):
        for node in self.nodes:
            dx = node.x - self.x or 1e-6
            dy = node.y - self.y or 1e-6
            r = math.sqrt(dx * dx + dy * dy)
            k = (self.radii[node.index] - r) * self.strengths[node.index] * alpha / r
            node.vx += dx * k
            node.vy += dy * k


class PositionForce(Force):
    """Pulls each node toward a per-node target along one axis."""

    def __init__(self, axis: str, target: NodeValue, strength: NodeValue = 0.1):
        if axis not in ("x", "y"):
            raise ValueError(f"Unknown axis '{axis}'")
        self.axis = axis
        self.target = target
        self.strength = strength

    def initialize(self, nodes, rng):
        super().initialize(nodes, rng)
        target_fn = _accessor(self.target)
        strength_fn = _accessor(self.strength)
        self.targets = [target_fn(node) for node in nodes]
        self.strengths = [
            0.0 if math.isnan(self.targets[node.index]) else strength_fn(node)
            for node in nodes
        ]

    def __call__(self, alpha):
        if self.axis == "x":
            for node in self.nodes:
                node.vx += (self.targets[node.index] - node.x) * self.strengths[node.index] * alpha
        else:
            for node in self.nodes:
                node.vy += (self.targets[node.index] - node.y) * self.strengths[node.index] * alpha


# ---------------------------------------------------------------------------
# Simulation
# ---------------------------------------------------------------------------

class ForceSimulation:
    """Owns node state and steps the registered forces.

    The simulation never schedules itself: the host calls ``step()`` once per
    frame.  Listeners registered with ``on("tick", ...)`` run after every
    step; ``on("end", ...)`` runs once when the layout stabilizes.
    """

    def __init__(self, nodes: list[SimNode], options: Optional[SimulationOptions] = None):
        opts = options or SimulationOptions()
        self.nodes = nodes
        self.alpha = 1.0
        self.alpha_min = opts.alpha_min
        self.alpha_decay = opts.alpha_decay
        self.alpha_target = 0.0
        self.velocity_decay = 1 - opts.velocity_decay
        self.running = bool(nodes)
        self.ticks = 0
        self._forces: dict[str, Force] = {}
        self._listeners: dict[str, list[Callable[[], None]]] = {"tick": [], "end": []}
        self._random = random.Random(opts.seed)
        self._initialize_nodes()

    def _initialize_nodes(self) -> None:
        for i, node in enumerate(self.nodes):
            node.index = i
            if node.fx is not None:
                node.x = node.fx
            if node.fy is not None:
                node.y = node.fy
            if math.isnan(node.x) or math.isnan(node.y):
                radius = INITIAL_RADIUS * math.sqrt(0.5 + i)
                angle = i * INITIAL_ANGLE
                node.x = radius * math.cos(angle)
                node.y = radius * math.sin(angle)
            if math.isnan(node.vx) or math.isnan(node.vy):
                node.vx = 0.0
                node.vy = 0.0

    def force(self, name: str, force: Optional[Force] = None) -> Optional[Force]:
        """Register (and initialize) ``force`` under ``name``, or look one up."""
        if force is None:
            return self._forces.get(name)
        force.initialize(self.nodes, self._random)
        self._forces[name] = force
        return force

    def remove_force(self, name: str) -> None:
        self._forces.pop(name, None)

    def force_names(self) -> list[str]:
        return list(self._forces)

    def on(self, event: str, callback: Callable[[], None]) -> None:
        if event not in self._listeners:
            raise ValueError(f"Unknown simulation event '{event}'")
        self._listeners[event].append(callback)

    def _emit(self, event: str) -> None:
        for callback in list(self._listeners[event]):
            callback()

    def restart(self) -> "ForceSimulation":
        self.running = True
        return self

    def stop(self) -> "ForceSimulation":
        self.running = False
        return self

    def tick(self, iterations: int = 1) -> None:
        """Advance the layout without emitting events or checking for rest."""
        for _ in range(iterations):
            self.alpha += (self.alpha_target - self.alpha) * self.alpha_decay
            for force in self._forces.values():
                force(self.alpha)
            for node in self.nodes:
                if node.fx is None:
                    node.vx *= self.velocity_decay
                    node.x += node.vx
                else:
                    node.x = node.fx
                    node.vx = 0.0
                if node.fy is None:
                    node.vy *= self.velocity_decay
                    node.y += node.vy
                else:
                    node.y = node.fy
                    node.vy = 0.0
            self.ticks += 1

    def step(self) -> bool:
        """One frame's worth of work.  Returns False while paused."""
        if not self.running:
            return False
        self.tick()
        self._emit("tick")
        if self.alpha < self.alpha_min:
            self.running = False
            logger.debug("Simulation stabilized after %d ticks", self.ticks)
            self._emit("end")
        return True

    def find(self, x: float, y: float, radius: float = math.inf) -> Optional[SimNode]:
        """The node closest to ``(x, y)`` within ``radius``."""
        closest: Optional[SimNode] = None
        best = radius * radius
        for node in self.nodes:
            dx = x - node.x
            dy = y - node.y
            d2 = dx * dx + dy * dy
            if d2 < best:
                closest = node
                best = d2
        return closest


# ---------------------------------------------------------------------------
# Advisor-tree parameters
# ---------------------------------------------------------------------------

def node_radius(node: AdvisorNode, max_descendants: int, is_root: bool = False) -> float:
    """Visual radius: larger subtrees draw as larger circles."""
    total = max(0, node.total_descendants)
    normalized = normalize_value(math.sqrt(total), math.sqrt(max_descendants or 1))
    descendant_bonus = 10 + normalized * 42
    direct_bonus = (
        min(11.0, math.sqrt(node.direct_advisee_count) * 2.9)
        if node.direct_advisee_count > 0 else 0.0
    )
    radius = max(11.0, descendant_bonus + direct_bonus)
    return radius * 1.15 if is_root else radius


def link_distance(source: SimNode, target: SimNode, max_influence: float) -> float:
    """Target spring length for an advising edge."""
    if source.depth == 0:
        base = 220.0
    elif source.depth == 1 and target.depth > 1:
        base = 160.0
    else:
        base = 90.0 + target.depth * 30.0
    boost = normalize_influence(source.data, max_influence)
    return base * (1 + boost * 0.6)


def radial_radius(depth: int, width: float, height: float, max_depth: int) -> float:
    """Ring radius for a generation; 0 for the root or an unsized viewport."""
    if not width or not height:
        return 0.0
    spacing = max(130.0, min(width, height) / max(2.0, max_depth + 1.5))
    return 0.0 if depth == 0 else spacing * depth


@dataclass
class TreeLayout:
    """A simulation wired up for one advisor tree."""
    simulation: ForceSimulation
    nodes_by_id: dict[str, SimNode]
    links: list[tuple[str, str]]
    root_id: str
    max_depth: int
    options: SimulationOptions = field(default_factory=SimulationOptions)

    @property
    def root(self) -> Optional[SimNode]:
        return self.nodes_by_id.get(self.root_id)

    def apply_viewport(self, anchors: ClusterAnchors) -> None:
        """(Re)install every force that depends on the viewport size."""
        width, height = anchors.width, anchors.height
        opts = self.options
        sim = self.simulation
        sim.force("center", CenterForce(width / 2, height / 2))
        sim.force("radial", RadialForce(
            lambda node: radial_radius(node.depth, width, height, self.max_depth),
            width / 2, height / 2,
            strength=opts.radial_strength,
        ))

        def cluster_strength(node: SimNode) -> float:
            return opts.root_cluster_strength if node.id == self.root_id else opts.cluster_strength

        sim.force("clusterX", PositionForce(
            "x", lambda node: anchors.target_for(node.cluster_id).x, cluster_strength,
        ))
        sim.force("clusterY", PositionForce(
            "y", lambda node: anchors.target_for(node.cluster_id).y, cluster_strength,
        ))

        # Camera moves issued before the next tick read the root position.
        root = self.root
        if root is not None:
            root.pin(width / 2, height / 2)
            root.x, root.y = root.fx, root.fy
            root.vx = root.vy = 0.0


def build_tree_simulation(
    tree: AdvisorTree,
    resolver: HierarchyResolver,
    anchors: ClusterAnchors,
    options: Optional[SimulationOptions] = None,
) -> TreeLayout:
    """Create the simulation nodes and compose all advisor-tree forces."""
    opts = options or SimulationOptions()
    max_descendants = tree.max_descendants()
    max_influence = tree.max_influence()

    sim_nodes = [
        SimNode(
            id=node.id,
            depth=node.depth,
            cluster_id=resolver.cluster_of(node.id),
            radius=node_radius(node, max_descendants, is_root=node.id == tree.root),
            data=node,
        )
        for node in tree.nodes
    ]
    nodes_by_id = {node.id: node for node in sim_nodes}
    links = [edge.key() for edge in tree.edges]

    simulation = ForceSimulation(sim_nodes, opts)
    layout = TreeLayout(
        simulation=simulation,
        nodes_by_id=nodes_by_id,
        links=links,
        root_id=tree.root,
        max_depth=resolver.max_depth,
        options=opts,
    )

    simulation.force("link", LinkForce(
        links,
        distance=lambda link: link_distance(link.source, link.target, max_influence),
        strength=opts.link_strength,
    ))
    simulation.force("charge", ManyBodyForce(opts.charge_strength))
    simulation.force("collide", CollideForce(
        lambda node: node.radius + opts.collide_padding,
        strength=opts.collide_strength,
    ))
    layout.apply_viewport(anchors)
    return layout
