"""Override store — author adjustments layered over the computed layout.

Persisted overrides mirror the ``LayoutSettings`` override fields and are only
kept alive by the caller re-supplying them. Story-section positions, revision
counters and live previews exist only for the lifetime of the store.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from storyprint.engine.targets import DragTarget
from storyprint.models.layout_settings import LayoutSettings, Point, Size

logger = logging.getLogger(__name__)


@dataclass
class SectionPlacement:
    """A dragged story section and the anchor it was placed against."""

    x: float
    y: float
    anchor: tuple[float, float]
    revision: int


@dataclass
class OverrideStore:
    community_positions: dict[str, Point] = field(default_factory=dict)
    # Offset from the community's effective anchor; absolute for communityless nodes
    node_positions: dict[str, Point] = field(default_factory=dict)
    section_sizes: dict[str, Size] = field(default_factory=dict)
    workspace_title_position: Point | None = None
    workspace_title_size: Size | None = None

    section_positions: dict[str, SectionPlacement] = field(default_factory=dict)
    revisions: dict[str, int] = field(default_factory=dict)

    drag_target: DragTarget | None = None
    drag_position: Point | None = None
    resize_target: DragTarget | None = None
    resize_size: Size | None = None

    @classmethod
    def from_settings(cls, settings: LayoutSettings) -> OverrideStore:
        store = cls()
        store.load_settings(settings)
        return store

    def load_settings(self, settings: LayoutSettings) -> None:
        """Replace the persisted overrides. In-memory state is kept.

        Communities whose anchor override changed get a new revision so that
        dragged sections follow the new anchor.
        """
        previous = self.community_positions
        self.community_positions = {k: v.model_copy() for k, v in settings.community_positions.items()}
        for cid in previous.keys() | self.community_positions.keys():
            if previous.get(cid) != self.community_positions.get(cid):
                self.bump_revision(cid)
        self.node_positions = {k: v.model_copy() for k, v in settings.node_positions.items()}
        self.section_sizes = {k: v.model_copy() for k, v in settings.section_sizes.items()}
        self.workspace_title_position = (
            settings.workspace_title_position.model_copy()
            if settings.workspace_title_position else None
        )
        self.workspace_title_size = (
            settings.workspace_title_size.model_copy()
            if settings.workspace_title_size else None
        )

    def apply_to(self, settings: LayoutSettings) -> LayoutSettings:
        """Copy of ``settings`` carrying the store's persisted overrides."""
        return settings.model_copy(update={
            "community_positions": dict(self.community_positions),
            "node_positions": dict(self.node_positions),
            "section_sizes": dict(self.section_sizes),
            "workspace_title_position": self.workspace_title_position,
            "workspace_title_size": self.workspace_title_size,
        })

    # ── Revisions ──

    def revision(self, community_id: str) -> int:
        return self.revisions.get(community_id, 0)

    def bump_revision(self, community_id: str) -> int:
        self.revisions[community_id] = self.revision(community_id) + 1
        return self.revisions[community_id]

    # ── Previews ──

    def set_drag_preview(self, target: DragTarget, position: Point) -> None:
        self.drag_target = target
        self.drag_position = position

    def set_resize_preview(self, target: DragTarget, size: Size) -> None:
        self.resize_target = target
        self.resize_size = size

    def clear_previews(self) -> None:
        self.drag_target = None
        self.drag_position = None
        self.resize_target = None
        self.resize_size = None

    def drag_preview_for(self, target: DragTarget) -> Point | None:
        if self.drag_target == target:
            return self.drag_position
        return None

    def resize_preview_for(self, target: DragTarget) -> Size | None:
        if self.resize_target == target:
            return self.resize_size
        return None

    # ── Resolution ──

    def effective_anchor(
        self, community_id: str, base: tuple[float, float],
    ) -> tuple[float, float]:
        """Drag preview, then committed override, then the computed center."""
        preview = self.drag_preview_for(DragTarget.community(community_id))
        if preview is not None:
            return (preview.x, preview.y)
        committed = self.community_positions.get(community_id)
        if committed is not None:
            return (committed.x, committed.y)
        return base

    def section_position(
        self, community_id: str, anchor: tuple[float, float],
    ) -> Point | None:
        """Where a dragged section sits now, following its anchor across revisions."""
        preview = self.drag_preview_for(DragTarget.section(community_id))
        if preview is not None:
            return preview
        placement = self.section_positions.get(community_id)
        if placement is None:
            return None
        current = self.revision(community_id)
        if placement.revision != current:
            dx = anchor[0] - placement.anchor[0]
            dy = anchor[1] - placement.anchor[1]
            placement.x += dx
            placement.y += dy
            placement.anchor = anchor
            placement.revision = current
            logger.debug("Section %s followed its anchor by (%.1f, %.1f)", community_id, dx, dy)
        return Point(x=placement.x, y=placement.y)

    def section_size(self, community_id: str, default: Size) -> Size:
        preview = self.resize_preview_for(DragTarget.section(community_id))
        if preview is not None:
            return preview
        return self.section_sizes.get(community_id, default)

    def title_position(self) -> Point | None:
        preview = self.drag_preview_for(DragTarget.workspace_title())
        if preview is not None:
            return preview
        return self.workspace_title_position

    def title_size(self, default: Size) -> Size:
        preview = self.resize_preview_for(DragTarget.workspace_title())
        if preview is not None:
            return preview
        return self.workspace_title_size or default

    # ── Commits ──

    def commit_community_position(self, community_id: str, position: Point) -> None:
        self.community_positions[community_id] = position
        self.bump_revision(community_id)

    def commit_node_position(self, node_id: str, position: Point) -> None:
        self.node_positions[node_id] = position

    def commit_section_size(self, community_id: str, size: Size) -> None:
        self.section_sizes[community_id] = size

    def commit_section_position(
        self, community_id: str, position: Point, anchor: tuple[float, float],
    ) -> None:
        self.section_positions[community_id] = SectionPlacement(
            x=position.x,
            y=position.y,
            anchor=anchor,
            revision=self.revision(community_id),
        )

    def commit_title_position(self, position: Point) -> None:
        self.workspace_title_position = position

    def commit_title_size(self, size: Size) -> None:
        self.workspace_title_size = size
