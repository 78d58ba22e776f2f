"""LayoutContext — the single mutable state object flowing through all stages.

Solver output (cacheable) -> BaseLayout
Reconciled, display-ready geometry -> LaidOutNode / LaidOutEdge / OverlayRect
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import numpy as np
from numpy.typing import NDArray

from storyprint.engine.callbacks import LayoutCallbacks
from storyprint.engine.config import EngineConfig
from storyprint.engine.store import OverrideStore
from storyprint.models.graph_document import GraphNode, GraphRelationship, StoryItem
from storyprint.models.layout_settings import LayoutSettings
from storyprint.models.requests import LayoutRequest
from storyprint.models.scene import Scene, ViewBox


@dataclass
class Community:
    """A narrative community: members plus optional story metadata."""

    id: str
    member_ids: tuple[str, ...] = ()
    # None means the community is not part of the story
    order: int | None = None
    title: str | None = None
    summary: str | None = None

    @property
    def size(self) -> int:
        return len(self.member_ids)

    @property
    def in_story(self) -> bool:
        return self.order is not None


@dataclass(frozen=True)
class LaidOutNode:
    id: str
    name: str
    label: str
    properties: dict[str, Any]
    neighbor_link_count: int
    x: float
    y: float
    community_id: str | None = None


@dataclass(frozen=True)
class LaidOutEdge:
    id: str
    type: str
    source: LaidOutNode
    target: LaidOutNode
    properties: dict[str, Any] = field(default_factory=dict)

    @property
    def source_id(self) -> str:
        return self.source.id

    @property
    def target_id(self) -> str:
        return self.target.id

    @property
    def length(self) -> float:
        return float(np.hypot(self.target.x - self.source.x, self.target.y - self.source.y))

    @property
    def pair_key(self) -> tuple[str, str]:
        """Unordered node pair shared by parallel edges."""
        a, b = sorted((self.source.id, self.target.id))
        return (a, b)


@dataclass
class BaseLayout:
    """Solver output for one layout key. Never mutated after caching."""

    node_ids: tuple[str, ...]
    # Nx2 array of final positions, rows follow node_ids
    positions: NDArray[np.float64]
    # Planned community targets on the story spine
    anchors: dict[str, tuple[float, float]] = field(default_factory=dict)
    # False when no community has a narrative order (no anchor force)
    directed: bool = False
    iterations: int = 0


@dataclass
class OverlayRect:
    """A placed overlay: a story section or the workspace title."""

    kind: str  # "section" or "workspace_title"
    key: str
    x: float
    y: float
    width: float
    height: float
    title: str = ""
    body: str = ""
    # Position still to be chosen by the viewport stage
    auto_placed: bool = False

    @property
    def rect(self) -> tuple[float, float, float, float]:
        return (self.x, self.y, self.width, self.height)


@dataclass
class MetaNodeView:
    """A visible macro-node, drawn at its community's effective anchor."""

    community_id: str
    x: float
    y: float
    radius: float
    in_story: bool


@dataclass
class LayoutContext:
    """Shared state flowing through the entire pipeline."""

    request: LayoutRequest
    width: float
    height: float
    config: EngineConfig = field(default_factory=EngineConfig)
    overrides: OverrideStore = field(default_factory=OverrideStore)
    callbacks: LayoutCallbacks = field(default_factory=LayoutCallbacks)
    # Memoizing bounds calculator owned by the session, if any
    bounds_calculator: Any = None
    seed: int | None = None

    # ── Graph preparation ──
    nodes: list[GraphNode] = field(default_factory=list)
    node_index: dict[str, int] = field(default_factory=dict)
    edges: list[GraphRelationship] = field(default_factory=list)
    neighbor_counts: dict[str, int] = field(default_factory=dict)
    communities: dict[str, Community] = field(default_factory=dict)
    # node id -> community id, restricted to known nodes
    node_community: dict[str, str] = field(default_factory=dict)
    story_items: list[StoryItem] = field(default_factory=list)

    # ── Simulation ──
    layout_key: str = ""
    initial_positions: NDArray[np.float64] | None = None
    anchors: dict[str, tuple[float, float]] = field(default_factory=dict)
    directed: bool = False
    base_layout: BaseLayout | None = None
    layout_from_cache: bool = False

    # ── Reconciliation ──
    base_centers: dict[str, tuple[float, float]] = field(default_factory=dict)
    community_anchors: dict[str, tuple[float, float]] = field(default_factory=dict)
    laid_out_nodes: list[LaidOutNode] = field(default_factory=list)
    laid_out_edges: list[LaidOutEdge] = field(default_factory=list)
    visible_nodes: list[LaidOutNode] = field(default_factory=list)
    visible_edges: list[LaidOutEdge] = field(default_factory=list)
    meta_nodes: list[MetaNodeView] = field(default_factory=list)

    # ── Overlays / viewport ──
    sections: list[OverlayRect] = field(default_factory=list)
    title: OverlayRect | None = None
    bounds: tuple[float, float, float, float] | None = None
    view_box: ViewBox | None = None

    # ── Output ──
    scene: Scene | None = None

    # ── Metadata ──
    completed_stages: set[str] = field(default_factory=set)
    errors: dict[str, str] = field(default_factory=dict)
    timings_ms: dict[str, float] = field(default_factory=dict)

    @property
    def settings(self) -> LayoutSettings:
        return self.request.settings

    @property
    def center(self) -> tuple[float, float]:
        return (self.width / 2.0, self.height / 2.0)

    @property
    def focus_ids(self) -> set[str]:
        """Referenced nodes plus the endpoints of referenced edges."""
        focus = set(self.request.referenced_node_ids)
        wanted = set(self.request.referenced_edge_ids)
        if wanted:
            for edge in self.edges:
                if edge.id in wanted:
                    focus.add(edge.source_id)
                    focus.add(edge.target_id)
        return focus

    @property
    def story_community_ids(self) -> set[str]:
        return {cid for cid, c in self.communities.items() if c.in_story}
