"""
Force-directed layout for schema graphs.

The engine advances one tick at a time so a host event loop can interleave
ticks with user input. Each tick:

1. Free forces add to node velocities, scaled by the cooling factor alpha:
   - springs pull linked nodes toward a rest distance (Hooke's law)
   - every node pair repels with 1/d^2 strength (Coulomb's law)
   - a weak pull toward the canvas center on both axes
2. Velocities decay (damping) and move every non-fixed node.
3. Collision resolution pushes apart nodes closer than their radii.
4. If a node is anchored (the focus node), every unpinned node is shifted
   so the anchor sits at the canvas center.

Ticks contain no randomness. Only genuinely new nodes get a seeded random
offset when placed, so the same inputs always give the same trajectory.
"""

import logging
import math
import random
from dataclasses import dataclass
from typing import Callable, Optional, TYPE_CHECKING

from .models import LayoutParams

if TYPE_CHECKING:
    from .models import TypeNode

logger = logging.getLogger(__name__)

GOLDEN_ANGLE = math.pi * (3 - math.sqrt(5))
INITIAL_RADIUS = 40.0


@dataclass
class SimNode:
    """Simulation state of a single node."""
    id: str
    x: float
    y: float
    radius: float
    vx: float = 0.0
    vy: float = 0.0
    fx: Optional[float] = None  # Pin position, set while dragged
    fy: Optional[float] = None
    anchored: bool = False

    @property
    def pinned(self) -> bool:
        return self.fx is not None and self.fy is not None

    @property
    def fixed(self) -> bool:
        """Fixed nodes are never moved by forces or collisions."""
        return self.pinned or self.anchored


def _jiggle(i: int, j: int) -> tuple[float, float]:
    """Deterministic tiny offset separating coincident nodes i and j."""
    angle = (i * 31 + j * 17) * GOLDEN_ANGLE
    return (math.cos(angle) * 1e-3, math.sin(angle) * 1e-3)


# --- Force terms ---

class Force:
    """A force term applied to node velocities once per tick."""

    def apply(self, nodes: list[SimNode], links: list[tuple[SimNode, SimNode]], alpha: float) -> None:
        raise NotImplementedError


class SpringForce(Force):
    """Pull linked nodes toward `distance` apart."""

    def __init__(self, distance: float, strength: float):
        self.distance = distance
        self.strength = strength

    def apply(self, nodes, links, alpha):
        for source, target in links:
            if source is target:
                continue
            dx = (target.x + target.vx) - (source.x + source.vx)
            dy = (target.y + target.vy) - (source.y + source.vy)
            dist = math.sqrt(dx * dx + dy * dy)
            if dist == 0:
                continue

            # Hooke's law: F = -k * (d - rest)
            stretch = (dist - self.distance) / dist * alpha * self.strength
            dx *= stretch
            dy *= stretch
            target.vx -= dx * 0.5
            target.vy -= dy * 0.5
            source.vx += dx * 0.5
            source.vy += dy * 0.5


class RepulsionForce(Force):
    """Push every node pair apart with magnitude strength / d^2."""

    def __init__(self, strength: float, min_distance: float):
        self.strength = strength
        self.min_distance = min_distance

    def apply(self, nodes, links, alpha):
        min_d2 = self.min_distance * self.min_distance
        for i, n1 in enumerate(nodes):
            for j in range(i + 1, len(nodes)):
                n2 = nodes[j]
                dx = n2.x - n1.x
                dy = n2.y - n1.y
                if dx == 0 and dy == 0:
                    dx, dy = _jiggle(i, j)
                dist = math.sqrt(dx * dx + dy * dy)

                # Coulomb's law: F = k / r^2, clamped at min_distance
                force = self.strength * alpha / max(min_d2, dist * dist)
                fx = force * dx / dist
                fy = force * dy / dist

                n1.vx -= fx
                n1.vy -= fy
                n2.vx += fx
                n2.vy += fy


class CenteringForce(Force):
    """Weak pull of every node toward (cx, cy)."""

    def __init__(self, cx: float, cy: float, strength: float):
        self.cx = cx
        self.cy = cy
        self.strength = strength

    def apply(self, nodes, links, alpha):
        k = self.strength * alpha
        for node in nodes:
            node.vx += (self.cx - node.x) * k
            node.vy += (self.cy - node.y) * k


class CollisionConstraint(Force):
    """
    Keep nodes at least radius_a + radius_b + padding apart.

    Works on positions, after the free forces have been integrated.
    """

    def __init__(self, padding: float, iterations: int = 1):
        self.padding = padding
        self.iterations = iterations

    def apply(self, nodes, links, alpha):
        for _ in range(self.iterations):
            for i, n1 in enumerate(nodes):
                for j in range(i + 1, len(nodes)):
                    n2 = nodes[j]
                    if n1.fixed and n2.fixed:
                        continue

                    min_sep = n1.radius + n2.radius + self.padding
                    dx = n2.x - n1.x
                    dy = n2.y - n1.y
                    if dx == 0 and dy == 0:
                        dx, dy = _jiggle(i, j)
                    dist = math.sqrt(dx * dx + dy * dy)
                    if dist >= min_sep:
                        continue

                    overlap = (min_sep - dist) / dist
                    shift_x = dx * overlap
                    shift_y = dy * overlap
                    if n1.fixed:
                        n2.x += shift_x
                        n2.y += shift_y
                    elif n2.fixed:
                        n1.x -= shift_x
                        n1.y -= shift_y
                    else:
                        n1.x -= shift_x * 0.5
                        n1.y -= shift_y * 0.5
                        n2.x += shift_x * 0.5
                        n2.y += shift_y * 0.5


def default_forces(params: LayoutParams) -> tuple[list[Force], list[Force]]:
    """Free forces and position constraints used unless overridden."""
    cx, cy = params.center
    forces = [
        SpringForce(params.link_distance, params.attraction),
        RepulsionForce(params.repulsion, params.min_distance),
        CenteringForce(cx, cy, params.center_strength),
    ]
    constraints = [CollisionConstraint(params.collision_padding, params.collision_iterations)]
    return forces, constraints


ForceFactory = Callable[[LayoutParams], tuple[list[Force], list[Force]]]


# --- Engine ---

class LayoutEngine:
    """
    Iterative force simulation owning all node positions.

    Every (re)start increments `generation`. Callers that tick from
    scheduled callbacks pass the generation they were scheduled for; a
    stale callback gets False back and no position is written.
    """

    def __init__(self, params: Optional[LayoutParams] = None, force_factory: ForceFactory = default_forces):
        self._default_params = (params or LayoutParams()).model_copy()
        self._params = self._default_params.model_copy()
        self._force_factory = force_factory
        self._forces, self._constraints = force_factory(self._params)

        self._nodes: list[SimNode] = []
        self._index: dict[str, SimNode] = {}
        self._links: list[tuple[SimNode, SimNode]] = []
        self._anchor_id: Optional[str] = None
        self._alpha = 0.0
        self._generation = 0
        self._ticks = 0

    # --- Properties ---

    @property
    def params(self) -> LayoutParams:
        return self._params

    @property
    def alpha(self) -> float:
        return self._alpha

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def tick_count(self) -> int:
        """Ticks performed in the current run."""
        return self._ticks

    @property
    def anchor_id(self) -> Optional[str]:
        return self._anchor_id

    @property
    def is_running(self) -> bool:
        return bool(self._nodes) and self._alpha >= self._params.alpha_min

    @property
    def node_count(self) -> int:
        return len(self._nodes)

    def is_pinned(self, node_id: str) -> bool:
        node = self._index.get(node_id)
        return node is not None and node.pinned

    def positions(self) -> dict[str, tuple[float, float]]:
        """Copy of the current positions, keyed by node id."""
        return {n.id: (n.x, n.y) for n in self._nodes}

    # --- Run control ---

    def start(
        self,
        nodes: list["TypeNode"],
        links: list[tuple[str, str]],
        anchor_id: Optional[str] = None
    ) -> int:
        """
        Start a new run over a (possibly different) node set.

        Nodes present in the previous run keep their position; new nodes
        are placed near already-placed neighbours. Pins are cleared.

        Returns:
            The generation of the new run
        """
        previous = {n.id: (n.x, n.y) for n in self._nodes}

        self._nodes = []
        self._index = {}
        for type_node in nodes:
            node = SimNode(id=type_node.id, x=0.0, y=0.0, radius=type_node.bounding_radius())
            if type_node.id in previous:
                node.x, node.y = previous[type_node.id]
            self._nodes.append(node)
            self._index[node.id] = node

        self._links = [
            (self._index[s], self._index[t])
            for s, t in links
            if s in self._index and t in self._index
        ]
        self._place_new_nodes(set(previous) & set(self._index))

        self._anchor_id = anchor_id if anchor_id in self._index else None
        if self._anchor_id:
            self._index[self._anchor_id].anchored = True

        return self._begin_run(self._params.alpha_start)

    def improve(self) -> int:
        """Spread the layout out: stronger repulsion, longer springs."""
        self._params = self._params.model_copy(update={
            "repulsion": self._params.repulsion * self._params.improve_repulsion_factor,
            "link_distance": self._params.link_distance * self._params.improve_distance_factor,
        })
        self._forces, self._constraints = self._force_factory(self._params)
        return self._begin_run(self._params.alpha_start)

    def reset(self) -> int:
        """Restore default forces and restart from the current positions."""
        self._params = self._default_params.model_copy()
        self._forces, self._constraints = self._force_factory(self._params)
        return self._begin_run(self._params.alpha_start)

    def clear(self) -> int:
        """Drop all nodes; nothing is simulated until the next start()."""
        self._nodes = []
        self._index = {}
        self._links = []
        self._anchor_id = None
        self._generation += 1
        self._alpha = 0.0
        self._ticks = 0
        return self._generation

    def set_canvas_size(self, width: float, height: float):
        """Move the canvas center for current and default parameters."""
        size = {"width": width, "height": height}
        self._default_params = self._default_params.model_copy(update=size)
        self._params = self._params.model_copy(update=size)
        self._forces, self._constraints = self._force_factory(self._params)

    def _begin_run(self, alpha: float) -> int:
        for node in self._nodes:
            node.vx = node.vy = 0.0
            node.fx = node.fy = None
        self._alpha = alpha
        self._ticks = 0
        self._generation += 1
        logger.debug("Layout run %d started with %d nodes", self._generation, len(self._nodes))
        return self._generation

    def _place_new_nodes(self, placed: set[str]):
        neighbors: dict[str, list[str]] = {n.id: [] for n in self._nodes}
        for source, target in self._links:
            neighbors[source.id].append(target.id)
            neighbors[target.id].append(source.id)

        cx, cy = self._params.center
        for i, node in enumerate(self._nodes):
            if node.id in placed:
                continue

            rng = random.Random(f"{self._params.seed}:{node.id}")
            anchors = [self._index[nid] for nid in neighbors[node.id] if nid in placed]
            if anchors:
                ax = sum(a.x for a in anchors) / len(anchors)
                ay = sum(a.y for a in anchors) / len(anchors)
                angle = rng.uniform(0, 2 * math.pi)
                offset = self._params.link_distance * 0.5
                node.x = ax + offset * math.cos(angle)
                node.y = ay + offset * math.sin(angle)
            else:
                # Phyllotaxis spiral around the center
                radius = INITIAL_RADIUS * math.sqrt(0.5 + i)
                angle = i * GOLDEN_ANGLE
                node.x = cx + radius * math.cos(angle) + rng.uniform(-1, 1)
                node.y = cy + radius * math.sin(angle) + rng.uniform(-1, 1)
            placed.add(node.id)

    # --- Simulation ---

    def tick(self, generation: Optional[int] = None) -> bool:
        """
        Advance the simulation by one step.

        Args:
            generation: Run the caller was scheduled for (None = current)

        Returns:
            True if positions were updated, False if the run is stale,
            empty, or has cooled down
        """
        if generation is not None and generation != self._generation:
            return False
        if not self.is_running:
            return False

        self._alpha *= (1 - self._params.alpha_decay)
        alpha = self._alpha

        for force in self._forces:
            force.apply(self._nodes, self._links, alpha)

        keep = 1 - self._params.damping
        for node in self._nodes:
            if node.pinned:
                node.x, node.y = node.fx, node.fy
                node.vx = node.vy = 0.0
            elif node.anchored:
                node.vx = node.vy = 0.0
            else:
                node.vx *= keep
                node.vy *= keep
                node.x += node.vx
                node.y += node.vy

        for constraint in self._constraints:
            constraint.apply(self._nodes, self._links, alpha)

        self._center_anchor()
        self._ticks += 1
        return True

    def run(self, max_ticks: Optional[int] = None) -> int:
        """
        Tick synchronously until cooled or max_ticks reached.

        Returns:
            Number of ticks performed
        """
        count = 0
        while (max_ticks is None or count < max_ticks) and self.tick():
            count += 1
        return count

    def _center_anchor(self):
        if self._anchor_id is None:
            return
        anchor = self._index[self._anchor_id]
        cx, cy = self._params.center
        dx = cx - anchor.x
        dy = cy - anchor.y
        if dx == 0 and dy == 0:
            return
        for node in self._nodes:
            # Pinned nodes stay under the pointer
            if node.pinned:
                continue
            node.x += dx
            node.y += dy
        anchor.x, anchor.y = cx, cy

    # --- Drag contract ---

    def drag_start(self, node_id: str, x: float, y: float) -> bool:
        """
        Pin a node to the pointer.

        A cooled layout is reheated into a new run first so the rest of
        the graph follows the drag. The anchored focus node is never
        draggable.
        """
        node = self._index.get(node_id)
        if node is None or node.anchored:
            return False
        if not self.is_running:
            self._begin_run(self._params.reheat_alpha)
        node.fx, node.fy = x, y
        node.x, node.y = x, y
        node.vx = node.vy = 0.0
        return True

    def drag_move(self, node_id: str, x: float, y: float) -> bool:
        """Move a pinned node to the pointer position."""
        node = self._index.get(node_id)
        if node is None or not node.pinned:
            return False
        node.fx, node.fy = x, y
        node.x, node.y = x, y
        return True

    def drag_end(self, node_id: str) -> bool:
        """Release a dragged node back to the simulation."""
        node = self._index.get(node_id)
        if node is None or node.anchored:
            return False
        node.fx = node.fy = None
        return True
