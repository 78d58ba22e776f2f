"""Layer 2: reconcile solver output with the author's overrides.

Priority for a community anchor: drag preview > committed override > base
center. Nodes follow their community's anchor unless individually placed.
Every pass produces new LaidOutNode / LaidOutEdge objects.
"""

from __future__ import annotations

import logging

import numpy as np

from storyprint.engine.context import LaidOutEdge, LaidOutNode, LayoutContext, MetaNodeView
from storyprint.engine.registry import Layer, stage
from storyprint.engine.renderer import meta_node_radius
from storyprint.engine.store import OverrideStore, SectionPlacement
from storyprint.engine.targets import DragTarget
from storyprint.models.layout_settings import (
    DetailedGraphDisplayMode,
    MetaGraphDisplayMode,
    Point,
)
from storyprint.utils.geometry import centroid, is_finite_point

__all__ = [
    "OverrideStore",
    "SectionPlacement",
    "base_community_centers",
    "resolve_node_position",
]

logger = logging.getLogger(__name__)


def base_community_centers(ctx: LayoutContext) -> dict[str, tuple[float, float]]:
    """Mean of each community's finite member positions."""
    layout = ctx.base_layout
    if layout is None:
        return {}
    index = {nid: i for i, nid in enumerate(layout.node_ids)}
    centers: dict[str, tuple[float, float]] = {}
    for cid, community in ctx.communities.items():
        rows = [index[nid] for nid in community.member_ids if nid in index]
        if not rows:
            continue
        center = centroid(layout.positions[rows])
        if center is not None:
            centers[cid] = center
    return centers


def resolve_node_position(
    node_id: str,
    base: tuple[float, float],
    community_id: str | None,
    store: OverrideStore,
    anchors: dict[str, tuple[float, float]],
    base_centers: dict[str, tuple[float, float]],
) -> tuple[float, float]:
    """Drag preview > offset override > anchor-delta propagation > base."""
    preview = store.drag_preview_for(DragTarget.node(node_id))
    if preview is not None:
        return (preview.x, preview.y)

    anchor = anchors.get(community_id) if community_id is not None else None
    offset = store.node_positions.get(node_id)
    if offset is not None:
        if anchor is not None:
            return (anchor[0] + offset.x, anchor[1] + offset.y)
        return (offset.x, offset.y)

    center = base_centers.get(community_id) if community_id is not None else None
    if anchor is not None and center is not None:
        return (base[0] + anchor[0] - center[0], base[1] + anchor[1] - center[1])
    return base


@stage(
    id="S2.01",
    layer=Layer.RECONCILIATION,
    dependencies=["S1.01"],
    description="Base community centers and revision tracking",
)
def community_centers(ctx: LayoutContext) -> None:
    ctx.base_centers = base_community_centers(ctx)
    if ctx.layout_from_cache or ctx.base_layout is None:
        return

    for cid in ctx.base_centers:
        ctx.overrides.bump_revision(cid)
    ctx.callbacks.emit(
        "community_positions_calculated",
        {cid: Point(x=x, y=y) for cid, (x, y) in ctx.base_centers.items()},
    )


@stage(
    id="S2.02",
    layer=Layer.RECONCILIATION,
    dependencies=["S2.01"],
    description="Apply overrides and previews to nodes, edges and macro-nodes",
)
def reconcile_positions(ctx: LayoutContext) -> None:
    store = ctx.overrides
    ctx.community_anchors = {
        cid: store.effective_anchor(cid, center) for cid, center in ctx.base_centers.items()
    }

    layout = ctx.base_layout
    nodes: list[LaidOutNode] = []
    if layout is not None:
        index = {nid: i for i, nid in enumerate(layout.node_ids)}
        for node in ctx.nodes:
            row = index.get(node.id)
            if row is None:
                continue
            base = (float(layout.positions[row, 0]), float(layout.positions[row, 1]))
            cid = ctx.node_community.get(node.id)
            x, y = resolve_node_position(
                node.id, base, cid, store, ctx.community_anchors, ctx.base_centers,
            )
            if not is_finite_point(x, y):
                continue
            nodes.append(LaidOutNode(
                id=node.id,
                name=node.name,
                label=node.label,
                properties=dict(node.properties),
                neighbor_link_count=ctx.neighbor_counts.get(node.id, 0),
                x=x,
                y=y,
                community_id=cid,
            ))
    ctx.laid_out_nodes = nodes

    lookup = {n.id: n for n in nodes}
    ctx.laid_out_edges = [
        LaidOutEdge(
            id=e.id,
            type=e.type,
            source=lookup[e.source_id],
            target=lookup[e.target_id],
            properties=dict(e.properties),
        )
        for e in ctx.edges
        if e.source_id in lookup and e.target_id in lookup
    ]

    settings = ctx.settings
    story = ctx.story_community_ids
    if settings.detailed_graph_display == DetailedGraphDisplayMode.STORY:
        ctx.visible_nodes = [n for n in nodes if n.community_id in story]
        shown = {n.id for n in ctx.visible_nodes}
        ctx.visible_edges = [
            e for e in ctx.laid_out_edges if e.source_id in shown and e.target_id in shown
        ]
    else:
        ctx.visible_nodes = list(nodes)
        ctx.visible_edges = list(ctx.laid_out_edges)

    ctx.meta_nodes = []
    mode = settings.meta_graph_display
    if mode != MetaGraphDisplayMode.NONE:
        for cid, (x, y) in ctx.community_anchors.items():
            community = ctx.communities[cid]
            if mode == MetaGraphDisplayMode.STORY and not community.in_story:
                continue
            if not np.isfinite(x) or not np.isfinite(y):
                continue
            ctx.meta_nodes.append(MetaNodeView(
                community_id=cid,
                x=x,
                y=y,
                radius=meta_node_radius(community.size, ctx.config.render),
                in_story=community.in_story,
            ))

    logger.debug(
        "Reconciled %d nodes (%d visible), %d edges, %d macro-nodes",
        len(nodes),
        len(ctx.visible_nodes),
        len(ctx.laid_out_edges),
        len(ctx.meta_nodes),
    )
