"""Shared test fixtures."""

from __future__ import annotations

import pytest

from storyprint.engine.pipeline import register_stages
from storyprint.models.graph_document import (
    GraphDocument,
    GraphNode,
    GraphRelationship,
    MetaNodeData,
)
from storyprint.models.layout_settings import LayoutSettings
from storyprint.models.requests import LayoutRequest

register_stages()

CANVAS_W = 1000.0
CANVAS_H = 1000.0
SEED = 7


def community_graph(
    sizes: dict[str, int],
    cross_links: list[tuple[str, str]] | None = None,
) -> tuple[GraphDocument, dict[str, str]]:
    """Chain-connected communities ``<cid>-0 .. <cid>-<n-1>`` plus cross links."""
    nodes: list[GraphNode] = []
    rels: list[GraphRelationship] = []
    community_map: dict[str, str] = {}
    for cid, size in sizes.items():
        for i in range(size):
            nid = f"{cid}-{i}"
            nodes.append(GraphNode(id=nid, name=f"Node {nid}", label="Entity"))
            community_map[nid] = cid
            if i > 0:
                rels.append(GraphRelationship(
                    id=f"r-{cid}-{i}",
                    type="RELATED",
                    source_id=f"{cid}-{i - 1}",
                    target_id=nid,
                ))
    for k, (source, target) in enumerate(cross_links or []):
        rels.append(GraphRelationship(
            id=f"x-{k}", type="LINKS", source_id=source, target_id=target,
        ))
    return GraphDocument(nodes=nodes, relationships=rels), community_map


def story_request(
    sizes: dict[str, int] | None = None,
    orders: dict[str, int | None] | None = None,
    settings: LayoutSettings | None = None,
    **kwargs,
) -> LayoutRequest:
    """A two-community story: A (5 nodes, order 1) then B (3 nodes, order 2)."""
    sizes = sizes or {"A": 5, "B": 3}
    orders = orders if orders is not None else {"A": 1, "B": 2}
    ids = list(sizes)
    bridges = [(f"{a}-0", f"{b}-0") for a, b in zip(ids, ids[1:])]
    graph, community_map = community_graph(sizes, cross_links=bridges)
    meta = [
        MetaNodeData(community_id=cid, order=order, title=f"Chapter {cid}", summary=f"About {cid}")
        for cid, order in orders.items()
    ]
    fields = {
        "graph": graph,
        "community_map": community_map,
        "meta_nodes": meta,
        "settings": settings or LayoutSettings(),
        "width": CANVAS_W,
        "height": CANVAS_H,
        "seed": SEED,
    }
    fields.update(kwargs)
    return LayoutRequest(**fields)


FRIEND_GRAPH = GraphDocument(
    nodes=[
        GraphNode(id="alice", name="Alice"),
        GraphNode(id="bob", name="Bob"),
    ],
    relationships=[
        GraphRelationship(id="e1", type="FRIEND", source_id="alice", target_id="bob"),
        GraphRelationship(id="e2", type="COLLEAGUE", source_id="bob", target_id="alice"),
    ],
)


@pytest.fixture
def two_story_request() -> LayoutRequest:
    return story_request()


@pytest.fixture
def overlay_settings() -> LayoutSettings:
    return LayoutSettings(
        text_overlay_display="show",
        workspace_title_display="show",
    )


@pytest.fixture
def friend_request() -> LayoutRequest:
    return LayoutRequest(
        graph=FRIEND_GRAPH,
        settings=LayoutSettings(show_edge_labels=True),
        width=CANVAS_W,
        height=CANVAS_H,
        seed=SEED,
    )
