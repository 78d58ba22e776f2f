"""Community macro-position planner.

Communities in the story are laid out along a spine on the primary axis (x
for vertical orientation, y for horizontal) in narrative order, alternating
sides on the cross axis by order parity. Communities outside the story are
spread over the same stretch of spine, well off to either side.
"""

from __future__ import annotations

import logging

import numpy as np

from storyprint.engine.config import PlannerConfig
from storyprint.engine.context import Community, LayoutContext
from storyprint.engine.registry import Layer, stage
from storyprint.utils.geometry import centroid
from storyprint.utils.math_helpers import clamp, sqrt_size

logger = logging.getLogger(__name__)


def community_spacing(size: int, span: float, config: PlannerConfig | None = None) -> float:
    """Spacing contributed by a community of ``size`` members.

    Grows with sqrt(size / 10) and is clamped into [min, max] multiples of span.
    """
    cfg = config or PlannerConfig()
    raw = span + np.sqrt(max(size, 0) / 10.0) * cfg.size_multiplier * span
    return clamp(float(raw), cfg.min_spacing_factor * span, cfg.max_spacing_factor * span)


def next_anchor(prev: float, prev_size: int, cur_size: int, span: float,
                config: PlannerConfig | None = None) -> float:
    cfg = config or PlannerConfig()
    return (
        prev
        + sqrt_size(prev_size)
        + community_spacing(prev_size, span, cfg) / cfg.spacing_divisor
        + sqrt_size(cur_size)
    )


def plan_community_anchors(
    communities: list[Community],
    width: float,
    height: float,
    horizontal: bool = False,
    config: PlannerConfig | None = None,
) -> dict[str, tuple[float, float]]:
    """Target (x, y) for every non-empty community.

    Returns an empty dict when no community has a narrative order; callers
    then fall back to the scatter centroids and apply no anchor force.
    """
    cfg = config or PlannerConfig()
    span, cross = (height, width) if horizontal else (width, height)

    def _point(primary: float, cross_pos: float) -> tuple[float, float]:
        return (cross_pos, primary) if horizontal else (primary, cross_pos)

    populated = [c for c in communities if c.size > 0]
    ordered = sorted((c for c in populated if c.in_story), key=lambda c: (c.order, c.id))
    if not ordered:
        return {}

    anchors: dict[str, tuple[float, float]] = {}
    primaries: list[float] = []
    current = cfg.first_anchor_fraction * span
    prev: Community | None = None
    for community in ordered:
        if prev is not None:
            current = next_anchor(current, prev.size, community.size, span, cfg)
        side = cfg.odd_side_fraction if community.order % 2 == 1 else cfg.even_side_fraction
        anchors[community.id] = _point(current, side * cross)
        primaries.append(current)
        prev = community

    unordered = [c for c in populated if not c.in_story]
    lo, hi = min(primaries), max(primaries)
    spread = (hi - lo) or cfg.fallback_range_factor * span
    for index, community in enumerate(unordered):
        t = index / (len(unordered) - 1) if len(unordered) > 1 else 0.5
        side = cfg.unordered_near_fraction if index % 2 == 0 else cfg.unordered_far_fraction
        anchors[community.id] = _point(lo + t * spread, side * cross)

    logger.debug(
        "Planned %d story and %d unordered anchors", len(ordered), len(unordered),
    )
    return anchors


@stage(
    id="S0.03",
    layer=Layer.PREPARATION,
    dependencies=["S0.02"],
    description="Plan community anchors along the story spine",
)
def plan_anchors(ctx: LayoutContext) -> None:
    anchors = plan_community_anchors(
        list(ctx.communities.values()),
        ctx.width,
        ctx.height,
        ctx.settings.is_horizontal,
        ctx.config.planner,
    )
    ctx.directed = bool(anchors)
    if anchors:
        ctx.anchors = anchors
        return

    # No narrative order: anchors are the scatter centroids
    positions = ctx.initial_positions
    for cid, community in ctx.communities.items():
        rows = [ctx.node_index[nid] for nid in community.member_ids]
        if positions is None or not rows:
            continue
        center = centroid(positions[rows])
        if center is not None:
            ctx.anchors[cid] = center
