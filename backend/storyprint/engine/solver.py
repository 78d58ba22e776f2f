"""Layer 1: force-directed layout solver.

A vectorized port of the classic velocity-Verlet force simulation:

    alpha += (0 - alpha) * alpha_decay
    forces(alpha)           # link, many-body (Barnes-Hut), collide adjust velocities
    center                  # shifts positions so their mean sits at the center
    v *= 1 - velocity_decay
    x += v

The loop stops once alpha falls below ``alpha_min`` or after
``max_iterations`` ticks, whichever comes first.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray
from scipy.spatial import cKDTree

from storyprint.engine.config import SolverConfig
from storyprint.engine.context import BaseLayout, LayoutContext
from storyprint.engine.registry import Layer, stage
from storyprint.utils.geometry import finite_mask

logger = logging.getLogger(__name__)


class ForceSimulation:
    """Link, many-body, collision, centering and per-axis anchor forces."""

    def __init__(
        self,
        positions: NDArray[np.float64],
        links: NDArray[np.int_] | None = None,
        link_strengths: NDArray[np.float64] | None = None,
        center: tuple[float, float] = (0.0, 0.0),
        anchor_targets: NDArray[np.float64] | None = None,
        anchor_strengths: NDArray[np.float64] | None = None,
        config: SolverConfig | None = None,
    ) -> None:
        self.config = config or SolverConfig()
        self.positions = np.array(positions, dtype=np.float64).reshape(-1, 2)
        self.velocities = np.zeros_like(self.positions)
        n = len(self.positions)

        links = np.empty((0, 2), dtype=np.int64) if links is None else np.asarray(links, dtype=np.int64)
        links = links.reshape(-1, 2)
        if link_strengths is None:
            link_strengths = np.full(len(links), self.config.intra_link_strength)
        # Self-loops exert no force
        keep = links[:, 0] != links[:, 1] if len(links) else np.zeros(0, dtype=bool)
        self.links = links[keep]
        self.link_strengths = np.asarray(link_strengths, dtype=np.float64)[keep]

        degree = np.bincount(self.links.ravel(), minlength=n).astype(np.float64) if n else np.zeros(0)
        if len(self.links):
            src_deg = degree[self.links[:, 0]]
            tgt_deg = degree[self.links[:, 1]]
            self.link_bias = src_deg / (src_deg + tgt_deg)
        else:
            self.link_bias = np.zeros(0)

        self.center = np.array(center, dtype=np.float64)
        self.anchor_targets = anchor_targets
        self.anchor_strengths = anchor_strengths
        self.alpha = self.config.alpha_start
        self.iterations = 0
        self._reset_non_finite()

    # ------------------------------------------------------------------
    # Forces
    # ------------------------------------------------------------------

    def _apply_links(self, alpha: float) -> None:
        if len(self.links) == 0:
            return
        src, tgt = self.links[:, 0], self.links[:, 1]
        pred = self.positions + self.velocities
        delta = pred[tgt] - pred[src]
        dist = np.hypot(delta[:, 0], delta[:, 1])
        valid = dist > 0
        scale = np.zeros_like(dist)
        scale[valid] = (
            (dist[valid] - self.config.link_distance) / dist[valid]
            * alpha * self.link_strengths[valid]
        )
        delta *= scale[:, None]
        np.add.at(self.velocities, tgt, -delta * self.link_bias[:, None])
        np.add.at(self.velocities, src, delta * (1.0 - self.link_bias)[:, None])

    def _apply_charge(self, alpha: float) -> None:
        n = len(self.positions)
        if n < 2:
            return
        cfg = self.config
        if cfg.charge_theta > 0:
            usable = finite_mask(self.positions)
            if usable.sum() < 2:
                return
            self.velocities[usable] += barnes_hut_charge(
                self.positions[usable],
                cfg.charge_strength * alpha,
                theta=cfg.charge_theta,
                distance_min2=cfg.charge_distance_min2,
                max_depth=cfg.charge_max_depth,
            )
            return
        pos = self.positions
        block = max(1, cfg.charge_block_size)
        for start in range(0, n, block):
            stop = min(n, start + block)
            dx = pos[None, :, 0] - pos[start:stop, None, 0]
            dy = pos[None, :, 1] - pos[start:stop, None, 1]
            d2 = dx * dx + dy * dy
            d2 = np.where(d2 < cfg.charge_distance_min2, np.sqrt(cfg.charge_distance_min2 * d2), d2)
            with np.errstate(divide="ignore", invalid="ignore"):
                weight = np.where(d2 > 0, cfg.charge_strength * alpha / d2, 0.0)
            self.velocities[start:stop, 0] += np.sum(dx * weight, axis=1)
            self.velocities[start:stop, 1] += np.sum(dy * weight, axis=1)

    def _apply_collide(self) -> None:
        if len(self.positions) < 2:
            return
        cfg = self.config
        pred = self.positions + self.velocities
        usable = finite_mask(pred)
        if usable.sum() < 2:
            return
        rows = np.flatnonzero(usable)
        tree = cKDTree(pred[rows])
        reach = 2.0 * cfg.collide_radius
        pairs = tree.query_pairs(reach, output_type="ndarray")
        if len(pairs) == 0:
            return
        i, j = rows[pairs[:, 0]], rows[pairs[:, 1]]
        delta = pred[i] - pred[j]
        dist = np.hypot(delta[:, 0], delta[:, 1])
        overlap = (dist > 0) & (dist < reach)
        if not np.any(overlap):
            return
        i, j, delta, dist = i[overlap], j[overlap], delta[overlap], dist[overlap]
        # Equal radii: each node takes half of the separation
        push = delta * ((reach - dist) / dist * cfg.collide_strength * 0.5)[:, None]
        np.add.at(self.velocities, i, push)
        np.add.at(self.velocities, j, -push)

    def _apply_center(self) -> None:
        if len(self.positions) == 0:
            return
        mean = np.mean(self.positions, axis=0)
        self.positions -= (mean - self.center) * self.config.center_strength

    def _apply_anchors(self, alpha: float) -> None:
        if self.anchor_targets is None or self.anchor_strengths is None:
            return
        pull = (self.anchor_targets - self.positions) * (self.anchor_strengths * alpha)[:, None]
        self.velocities += pull

    # ------------------------------------------------------------------
    # Loop
    # ------------------------------------------------------------------

    def tick(self) -> None:
        cfg = self.config
        self.alpha += (0.0 - self.alpha) * cfg.alpha_decay
        alpha = self.alpha
        self._apply_links(alpha)
        self._apply_charge(alpha)
        self._apply_collide()
        self._apply_center()
        self._apply_anchors(alpha)
        self.velocities *= 1.0 - cfg.velocity_decay
        self.positions += self.velocities
        self.iterations += 1

    def run(self) -> int:
        """Tick until alpha drops below alpha_min or the iteration cap is hit."""
        cfg = self.config
        while self.iterations < cfg.max_iterations:
            self.tick()
            if self.alpha < cfg.alpha_min:
                break
        self._reset_non_finite()
        return self.iterations

    def _reset_non_finite(self) -> None:
        bad = ~finite_mask(self.positions)
        if np.any(bad):
            logger.warning(
                "Solver produced %d non-finite positions; resetting them to center",
                int(bad.sum()),
            )
            self.positions[bad] = self.center
            self.velocities[bad] = 0.0


@dataclass
class _QuadLevel:
    """One depth of the quadtree: aggregates per occupied cell."""

    width: float
    # Cell index of every point at this depth
    point_cell: NDArray[np.int_]
    count: NDArray[np.float64]
    sum_x: NDArray[np.float64]
    sum_y: NDArray[np.float64]
    # Occupied child cells grouped by parent (CSR); None on the deepest level
    children: NDArray[np.int_] | None = None
    child_offsets: NDArray[np.int_] | None = None


def build_quadtree(positions: NDArray[np.float64], max_depth: int = 16) -> list[_QuadLevel]:
    """Level-by-level quadtree over a square around ``positions``.

    Stops early once every point sits in its own cell.
    """
    n = len(positions)
    lo = positions.min(axis=0)
    size = float(np.max(positions.max(axis=0) - lo))
    if size <= 0:
        size = 1.0
    rel = (positions - lo) / size

    levels: list[_QuadLevel] = []
    for depth in range(max_depth + 1):
        k = 1 << depth
        ij = np.minimum((rel * k).astype(np.int64), k - 1)
        code = ij[:, 0] * k + ij[:, 1]
        _, inverse, count = np.unique(code, return_inverse=True, return_counts=True)
        inverse = inverse.ravel()
        m = len(count)
        levels.append(_QuadLevel(
            width=size / k,
            point_cell=inverse,
            count=count.astype(np.float64),
            sum_x=np.bincount(inverse, weights=positions[:, 0], minlength=m),
            sum_y=np.bincount(inverse, weights=positions[:, 1], minlength=m),
        ))
        if m == n:
            break

    for parent, child in zip(levels, levels[1:]):
        # Any member of a child cell lies inside its parent cell
        member = np.empty(len(child.count), dtype=np.int64)
        member[child.point_cell] = np.arange(n)
        parent_of = parent.point_cell[member]
        parent.children = np.argsort(parent_of, kind="stable")
        parent.child_offsets = np.concatenate((
            [0], np.cumsum(np.bincount(parent_of, minlength=len(parent.count))),
        ))
    return levels


def barnes_hut_charge(
    positions: NDArray[np.float64],
    strength: float,
    theta: float = 0.9,
    distance_min2: float = 1.0,
    max_depth: int = 16,
) -> NDArray[np.float64]:
    """Many-body velocity change for every point, Barnes-Hut approximated.

    ``strength`` already includes alpha. A cell whose width over distance is
    below ``theta`` acts as one body at its center of mass. The cell holding
    the point itself is always opened, and its aggregate excludes the point.
    All points in one frontier are processed together, one tree level at a time.
    """
    n = len(positions)
    dv = np.zeros_like(positions)
    if n < 2:
        return dv
    levels = build_quadtree(positions, max_depth)
    theta2 = theta * theta

    pts = np.arange(n)
    cells = np.zeros(n, dtype=np.int64)
    for level in levels:
        px, py = positions[pts, 0], positions[pts, 1]
        own = level.point_cell[pts] == cells
        count = level.count[cells]
        mass = count - own
        sum_x = level.sum_x[cells] - np.where(own, px, 0.0)
        sum_y = level.sum_y[cells] - np.where(own, py, 0.0)
        valid = mass > 0
        safe = np.where(valid, mass, 1.0)
        dx = np.where(valid, sum_x / safe - px, 0.0)
        dy = np.where(valid, sum_y / safe - py, 0.0)
        l2 = dx * dx + dy * dy

        if level.children is None:
            apply = valid
        else:
            far = ~own & (level.width * level.width / theta2 < l2)
            apply = valid & (far | (count == 1))

        d2 = np.where(l2 < distance_min2, np.sqrt(distance_min2 * l2), l2)
        with np.errstate(divide="ignore", invalid="ignore"):
            weight = np.where(apply & (d2 > 0), strength * mass / d2, 0.0)
        dv[:, 0] += np.bincount(pts, weights=dx * weight, minlength=n)
        dv[:, 1] += np.bincount(pts, weights=dy * weight, minlength=n)

        if level.children is None:
            break
        descend = valid & ~apply
        if not np.any(descend):
            break
        parents = cells[descend]
        starts = level.child_offsets[parents]
        sizes = level.child_offsets[parents + 1] - starts
        before = np.cumsum(sizes) - sizes
        pts = np.repeat(pts[descend], sizes)
        cells = level.children[np.arange(len(pts)) + np.repeat(starts - before, sizes)]
    return dv


def link_arrays(
    edges: list[tuple[str, str]],
    node_index: dict[str, int],
    node_community: dict[str, str],
    config: SolverConfig | None = None,
) -> tuple[NDArray[np.int_], NDArray[np.float64]]:
    """Index pairs and strengths. Edges across two different communities barely pull."""
    cfg = config or SolverConfig()
    pairs: list[tuple[int, int]] = []
    strengths: list[float] = []
    for source, target in edges:
        if source not in node_index or target not in node_index:
            continue
        pairs.append((node_index[source], node_index[target]))
        sc, tc = node_community.get(source), node_community.get(target)
        crosses = sc is not None and tc is not None and sc != tc
        strengths.append(cfg.cross_link_strength if crosses else cfg.intra_link_strength)
    if not pairs:
        return np.empty((0, 2), dtype=np.int64), np.empty(0)
    return np.array(pairs, dtype=np.int64), np.array(strengths, dtype=np.float64)


def anchor_arrays(
    node_ids: list[str],
    node_community: dict[str, str],
    anchors: dict[str, tuple[float, float]],
    center: tuple[float, float],
    config: SolverConfig | None = None,
) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
    """Per-node target and strength for the x/y positioning forces."""
    cfg = config or SolverConfig()
    targets = np.tile(np.array(center, dtype=np.float64), (len(node_ids), 1))
    strengths = np.full(len(node_ids), cfg.unanchored_strength)
    for i, nid in enumerate(node_ids):
        anchor = anchors.get(node_community.get(nid, ""))
        if anchor is not None:
            targets[i] = anchor
            strengths[i] = cfg.anchor_strength
    return targets, strengths


@stage(
    id="S1.01",
    layer=Layer.SIMULATION,
    dependencies=["S0.03"],
    description="Force-directed simulation",
)
def simulate(ctx: LayoutContext) -> None:
    cfg = ctx.config.solver
    node_ids = [n.id for n in ctx.nodes]
    positions = ctx.initial_positions
    if positions is None or len(positions) != len(node_ids):
        positions = np.tile(np.array(ctx.center), (len(node_ids), 1))

    links, strengths = link_arrays(
        [(e.source_id, e.target_id) for e in ctx.edges],
        ctx.node_index,
        ctx.node_community,
        cfg,
    )
    targets = weights = None
    if ctx.directed:
        targets, weights = anchor_arrays(
            node_ids, ctx.node_community, ctx.anchors, ctx.center, cfg,
        )

    sim = ForceSimulation(
        positions,
        links,
        strengths,
        center=ctx.center,
        anchor_targets=targets,
        anchor_strengths=weights,
        config=cfg,
    )
    iterations = sim.run()
    ctx.base_layout = BaseLayout(
        node_ids=tuple(node_ids),
        positions=sim.positions,
        anchors=dict(ctx.anchors),
        directed=ctx.directed,
        iterations=iterations,
    )
    logger.info("Solver: %d nodes settled in %d ticks", len(node_ids), iterations)
