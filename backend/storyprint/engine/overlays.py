"""Story-section and workspace-title placement."""

from __future__ import annotations

import logging

from storyprint.engine.config import ViewportConfig
from storyprint.engine.context import LayoutContext, OverlayRect
from storyprint.engine.registry import Layer, stage
from storyprint.engine.targets import WORKSPACE_TITLE_KEY
from storyprint.models.layout_settings import OverlayDisplayMode, Point, Size

logger = logging.getLogger(__name__)


def default_section_size(width: float, horizontal: bool, config: ViewportConfig | None = None) -> Size:
    cfg = config or ViewportConfig()
    fraction = cfg.section_width_horizontal if horizontal else cfg.section_width_vertical
    return Size(width=width * fraction, height=cfg.section_height)


def default_section_position(
    order: int,
    center: tuple[float, float],
    width: float,
    height: float,
    horizontal: bool,
    config: ViewportConfig | None = None,
) -> Point:
    """Odd orders sit past the far canvas edge, even orders before the near one."""
    cfg = config or ViewportConfig()
    odd = order % 2 == 1
    if horizontal:
        return Point(
            x=width + cfg.section_gap if odd else -width,
            y=center[1] - cfg.section_gap,
        )
    return Point(
        x=center[0] - cfg.section_gap,
        y=height + cfg.section_gap if odd else -height,
    )


def default_title_size(width: float, config: ViewportConfig | None = None) -> Size:
    cfg = config or ViewportConfig()
    return Size(width=width * cfg.title_width_fraction, height=cfg.title_height)


def default_title_position(
    bounds: tuple[float, float, float, float] | None,
    title_height: float,
    config: ViewportConfig | None = None,
) -> Point:
    """Above the top-left corner of the content bounds."""
    cfg = config or ViewportConfig()
    min_x, min_y = (bounds[0], bounds[1]) if bounds else (0.0, 0.0)
    return Point(x=min_x + cfg.title_margin, y=min_y - title_height - cfg.title_margin)


@stage(
    id="S2.03",
    layer=Layer.RECONCILIATION,
    dependencies=["S2.02"],
    description="Place story sections and the workspace title",
)
def place_overlays(ctx: LayoutContext) -> None:
    settings = ctx.settings
    store = ctx.overrides
    cfg = ctx.config.viewport
    horizontal = settings.is_horizontal

    ctx.sections = []
    if settings.text_overlay_display == OverlayDisplayMode.SHOW:
        default_size = default_section_size(ctx.width, horizontal, cfg)
        for item in ctx.story_items:
            anchor = ctx.community_anchors.get(item.community_id)
            if anchor is None:
                continue
            size = store.section_size(item.community_id, default_size)
            position = store.section_position(item.community_id, anchor)
            if position is None:
                position = default_section_position(
                    item.order, anchor, ctx.width, ctx.height, horizontal, cfg,
                )
            ctx.sections.append(OverlayRect(
                kind="section",
                key=item.community_id,
                x=position.x,
                y=position.y,
                width=size.width,
                height=size.height,
                title=item.title,
                body=item.content,
            ))

    ctx.title = None
    title_text = ctx.request.workspace_title
    if settings.workspace_title_display == OverlayDisplayMode.SHOW and title_text:
        size = store.title_size(default_title_size(ctx.width, cfg))
        position = store.title_position()
        ctx.title = OverlayRect(
            kind="workspace_title",
            key=WORKSPACE_TITLE_KEY,
            x=position.x if position else 0.0,
            y=position.y if position else 0.0,
            width=size.width,
            height=size.height,
            title=title_text,
            auto_placed=position is None,
        )

    logger.debug(
        "Placed %d sections%s", len(ctx.sections), " and a title" if ctx.title else "",
    )
