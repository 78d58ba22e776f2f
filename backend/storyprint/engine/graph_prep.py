"""Layer 0: graph normalization, community assembly and the initial scatter."""

from __future__ import annotations

import logging

import numpy as np
from numpy.typing import NDArray

from storyprint.engine.context import Community, LayoutContext
from storyprint.engine.registry import Layer, stage
from storyprint.models.graph_document import (
    GraphNode,
    GraphRelationship,
    MetaNodeData,
    story_items_from_meta,
)

logger = logging.getLogger(__name__)


def normalize_graph(
    nodes: list[GraphNode], relationships: list[GraphRelationship],
) -> tuple[list[GraphNode], list[GraphRelationship]]:
    """Deduplicate nodes by id and drop relationships with a missing endpoint."""
    kept: list[GraphNode] = []
    seen: set[str] = set()
    for node in nodes:
        if node.id in seen:
            logger.warning("Duplicate node id %s; keeping the first occurrence", node.id)
            continue
        seen.add(node.id)
        kept.append(node)

    edges: list[GraphRelationship] = []
    for rel in relationships:
        missing = [end for end in (rel.source_id, rel.target_id) if end not in seen]
        if missing:
            logger.warning(
                "Dropping relationship %s: missing endpoint(s) %s",
                rel.id,
                ", ".join(missing),
            )
            continue
        edges.append(rel)
    return kept, edges


def count_neighbor_links(
    nodes: list[GraphNode], edges: list[GraphRelationship],
) -> dict[str, int]:
    """Degree of every node; an explicit neighborLinkCount wins."""
    counts = {n.id: 0 for n in nodes}
    for rel in edges:
        counts[rel.source_id] += 1
        if rel.target_id != rel.source_id:
            counts[rel.target_id] += 1
    for node in nodes:
        if node.neighbor_link_count is not None:
            counts[node.id] = node.neighbor_link_count
    return counts


def build_communities(
    node_ids: list[str],
    community_map: dict[str, str],
    meta_nodes: list[MetaNodeData],
) -> tuple[dict[str, Community], dict[str, str]]:
    """Group known nodes by community and attach narrative metadata.

    Returns (communities, node_community). Metadata for a community with no
    members still yields an (empty) Community so its title is available.
    """
    known = set(node_ids)
    node_community: dict[str, str] = {}
    members: dict[str, list[str]] = {}
    for node_id in node_ids:
        cid = community_map.get(node_id)
        if cid is None:
            continue
        node_community[node_id] = cid
        members.setdefault(cid, []).append(node_id)

    unknown = [nid for nid in community_map if nid not in known]
    if unknown:
        logger.debug("Ignoring %d community assignments for unknown nodes", len(unknown))

    communities = {
        cid: Community(id=cid, member_ids=tuple(ids)) for cid, ids in members.items()
    }
    for meta in meta_nodes:
        community = communities.setdefault(meta.community_id, Community(id=meta.community_id))
        community.order = meta.order
        community.title = meta.title
        community.summary = meta.summary
    return communities, node_community


def initial_scatter(
    n: int,
    width: float,
    height: float,
    jitter: float = 100.0,
    rng: np.random.Generator | None = None,
) -> NDArray[np.float64]:
    """Canvas center plus uniform jitter in [-jitter/2, jitter/2) per axis."""
    rng = rng or np.random.default_rng()
    center = np.array([width / 2.0, height / 2.0])
    return center + (rng.random((n, 2)) - 0.5) * jitter


# ---------------------------------------------------------------------------
# Stages
# ---------------------------------------------------------------------------


@stage(
    id="S0.01",
    layer=Layer.PREPARATION,
    description="Normalize graph and build communities",
)
def prepare_graph(ctx: LayoutContext) -> None:
    req = ctx.request
    ctx.nodes, ctx.edges = normalize_graph(req.graph.nodes, req.graph.relationships)
    ctx.node_index = {n.id: i for i, n in enumerate(ctx.nodes)}
    ctx.neighbor_counts = count_neighbor_links(ctx.nodes, ctx.edges)
    ctx.communities, ctx.node_community = build_communities(
        [n.id for n in ctx.nodes], req.community_map, req.meta_nodes,
    )
    if req.story_items is not None:
        ctx.story_items = sorted(req.story_items, key=lambda s: s.order)
    else:
        ctx.story_items = story_items_from_meta(req.meta_nodes, req.detailed_stories)

    logger.debug(
        "Prepared %d nodes, %d edges, %d communities",
        len(ctx.nodes),
        len(ctx.edges),
        len(ctx.communities),
    )


@stage(
    id="S0.02",
    layer=Layer.PREPARATION,
    dependencies=["S0.01"],
    description="Initial random scatter around the canvas center",
)
def scatter_nodes(ctx: LayoutContext) -> None:
    seed = ctx.seed if ctx.seed is not None else ctx.config.solver.seed
    ctx.initial_positions = initial_scatter(
        len(ctx.nodes),
        ctx.width,
        ctx.height,
        ctx.config.solver.initial_jitter,
        np.random.default_rng(seed),
    )
