"""Overlay interaction manager — drag and resize as an explicit state machine.

    Idle --begin_drag--> DraggingOverlay --move--> (preview) --release--> Idle
    Idle --begin_resize--> ResizingOverlay --move--> (preview) --release--> Idle

Only one session exists at a time. Starting a new one force-commits the
current session at its last preview. ``abandon`` drops the preview without
committing anything.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Union

from storyprint.engine.callbacks import LayoutCallbacks
from storyprint.engine.config import InteractionConfig
from storyprint.engine.context import LayoutContext, OverlayRect
from storyprint.engine.store import OverrideStore
from storyprint.engine.targets import DragTarget, TargetKind
from storyprint.models.layout_settings import MetaGraphDisplayMode, Point, Size
from storyprint.models.scene import ViewBox

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClientRect:
    """On-screen rectangle of the rendered SVG element, in client pixels."""

    left: float
    top: float
    width: float
    height: float


@dataclass(frozen=True)
class ViewTransform:
    view_box: ViewBox
    client_rect: ClientRect

    def to_user(self, client_x: float, client_y: float) -> tuple[float, float]:
        """Client pixels -> SVG user units."""
        vb, rect = self.view_box, self.client_rect
        scale_x = rect.width / vb.width if vb.width else 1.0
        scale_y = rect.height / vb.height if vb.height else 1.0
        scale_x = scale_x or 1.0
        scale_y = scale_y or 1.0
        return (
            (client_x - rect.left) / scale_x + vb.x,
            (client_y - rect.top) / scale_y + vb.y,
        )


@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class DraggingOverlay:
    target: DragTarget
    # Target position minus pointer position at drag start, user units
    offset: tuple[float, float]
    # Effective anchor of the owning community when the drag started
    anchor: tuple[float, float] | None = None
    last: Point | None = None


@dataclass(frozen=True)
class ResizingOverlay:
    target: DragTarget
    origin: tuple[float, float]
    start_size: Size
    start_pointer: tuple[float, float]
    last: Size | None = None


InteractionSession = Union[Idle, DraggingOverlay, ResizingOverlay]


@dataclass
class SceneGeometry:
    """Current display geometry the interaction manager measures against."""

    community_anchors: dict[str, tuple[float, float]] = field(default_factory=dict)
    node_positions: dict[str, tuple[float, float]] = field(default_factory=dict)
    node_community: dict[str, str] = field(default_factory=dict)
    sections: dict[str, OverlayRect] = field(default_factory=dict)
    title: OverlayRect | None = None
    meta_display: MetaGraphDisplayMode = MetaGraphDisplayMode.NONE

    @classmethod
    def from_context(cls, ctx: LayoutContext) -> SceneGeometry:
        return cls(
            community_anchors=dict(ctx.community_anchors),
            node_positions={n.id: (n.x, n.y) for n in ctx.visible_nodes},
            node_community=dict(ctx.node_community),
            sections={s.key: s for s in ctx.sections},
            title=ctx.title,
            meta_display=ctx.settings.meta_graph_display,
        )

    def position_of(self, target: DragTarget) -> tuple[float, float] | None:
        if target.kind == TargetKind.SECTION:
            rect = self.sections.get(target.id)
            return (rect.x, rect.y) if rect else None
        if target.kind == TargetKind.WORKSPACE_TITLE:
            return (self.title.x, self.title.y) if self.title else None
        if target.kind == TargetKind.COMMUNITY:
            return self.community_anchors.get(target.id)
        return self.node_positions.get(target.id)

    def rect_of(self, target: DragTarget) -> OverlayRect | None:
        if target.kind == TargetKind.SECTION:
            return self.sections.get(target.id)
        if target.kind == TargetKind.WORKSPACE_TITLE:
            return self.title
        return None


class InteractionManager:
    """Routes pointer events into previews and commits on the override store."""

    def __init__(
        self,
        store: OverrideStore,
        callbacks: LayoutCallbacks | None = None,
        config: InteractionConfig | None = None,
    ) -> None:
        self.store = store
        self.callbacks = callbacks or LayoutCallbacks()
        self.config = config or InteractionConfig()
        self.session: InteractionSession = Idle()

    @property
    def active(self) -> bool:
        return not isinstance(self.session, Idle)

    def can_drag(self, target: DragTarget, geometry: SceneGeometry) -> bool:
        if target.kind == TargetKind.COMMUNITY:
            return geometry.meta_display != MetaGraphDisplayMode.NONE
        if target.kind == TargetKind.NODE:
            return geometry.meta_display == MetaGraphDisplayMode.NONE
        return True

    def begin_drag(
        self,
        target: DragTarget,
        client_x: float,
        client_y: float,
        view: ViewTransform,
        geometry: SceneGeometry,
    ) -> bool:
        if not self.can_drag(target, geometry):
            logger.debug("Drag of %s rejected in display mode %s", target.key, geometry.meta_display.value)
            return False
        position = geometry.position_of(target)
        if position is None:
            logger.debug("Drag of %s rejected: not on screen", target.key)
            return False
        if self.active:
            self.release()

        ux, uy = view.to_user(client_x, client_y)
        anchor = None
        if target.kind == TargetKind.SECTION:
            anchor = geometry.community_anchors.get(target.id)
        elif target.kind == TargetKind.NODE:
            cid = geometry.node_community.get(target.id)
            anchor = geometry.community_anchors.get(cid) if cid is not None else None

        self.session = DraggingOverlay(
            target=target,
            offset=(position[0] - ux, position[1] - uy),
            anchor=anchor,
        )
        return True

    def begin_resize(
        self,
        target: DragTarget,
        client_x: float,
        client_y: float,
        view: ViewTransform,
        geometry: SceneGeometry,
    ) -> bool:
        rect = geometry.rect_of(target) if target.is_resizable else None
        if rect is None:
            logger.debug("Resize of %s rejected", target.key)
            return False
        if self.active:
            self.release()

        self.session = ResizingOverlay(
            target=target,
            origin=(rect.x, rect.y),
            start_size=Size(width=rect.width, height=rect.height),
            start_pointer=view.to_user(client_x, client_y),
        )
        return True

    def move(self, client_x: float, client_y: float, view: ViewTransform) -> bool:
        """Update the preview. Returns False when no session is active.

        ``view`` is the mapping of the scene as currently displayed, which can
        differ from the one at session start once the dragged overlay moves
        the content bounds.
        """
        session = self.session
        if isinstance(session, DraggingOverlay):
            ux, uy = view.to_user(client_x, client_y)
            position = Point(x=ux + session.offset[0], y=uy + session.offset[1])
            self.store.set_drag_preview(session.target, position)
            self.session = replace(session, last=position)
            return True
        if isinstance(session, ResizingOverlay):
            ux, uy = view.to_user(client_x, client_y)
            size = Size(
                width=max(self.config.min_overlay_width,
                          session.start_size.width + ux - session.start_pointer[0]),
                height=max(self.config.min_overlay_height,
                           session.start_size.height + uy - session.start_pointer[1]),
            )
            self.store.set_resize_preview(session.target, size)
            self.session = replace(session, last=size)
            return True
        return False

    def release(
        self,
        client_x: float | None = None,
        client_y: float | None = None,
        view: ViewTransform | None = None,
    ) -> bool:
        """End the session, committing its last preview. Returns whether anything committed."""
        if not self.active:
            return False
        if client_x is not None and client_y is not None and view is not None:
            self.move(client_x, client_y, view)

        session = self.session
        self.session = Idle()
        self.store.clear_previews()
        if session.last is None:
            return False
        if isinstance(session, DraggingOverlay):
            self._commit_drag(session)
        else:
            self._commit_resize(session)
        return True

    def abandon(self) -> None:
        if self.active:
            logger.debug("Abandoned interaction on %s", self.session.target.key)
        self.session = Idle()
        self.store.clear_previews()

    def _commit_drag(self, session: DraggingOverlay) -> None:
        target, position = session.target, session.last
        if target.kind == TargetKind.SECTION:
            anchor = session.anchor or (position.x, position.y)
            self.store.commit_section_position(target.id, position, anchor)
        elif target.kind == TargetKind.WORKSPACE_TITLE:
            self.store.commit_title_position(position)
            self.callbacks.emit("workspace_title_position_changed", position)
        elif target.kind == TargetKind.COMMUNITY:
            self.store.commit_community_position(target.id, position)
            self.callbacks.emit("community_position_changed", target.id, position)
        else:
            if session.anchor is not None:
                position = Point(x=position.x - session.anchor[0], y=position.y - session.anchor[1])
            self.store.commit_node_position(target.id, position)
            self.callbacks.emit("node_position_changed", target.id, position)

    def _commit_resize(self, session: ResizingOverlay) -> None:
        if session.target.kind == TargetKind.SECTION:
            self.store.commit_section_size(session.target.id, session.last)
            self.callbacks.emit("section_size_changed", session.target.id, session.last)
        else:
            self.store.commit_title_size(session.last)
            self.callbacks.emit("workspace_title_size_changed", session.last)
