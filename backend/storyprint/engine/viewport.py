"""Layer 3: content bounds and the print view box."""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np

from storyprint.engine.config import ViewportConfig
from storyprint.engine.context import LaidOutNode, LayoutContext, MetaNodeView, OverlayRect
from storyprint.engine.overlays import default_title_position
from storyprint.engine.registry import Layer, stage
from storyprint.engine.renderer import detail_node_radius
from storyprint.models.scene import ViewBox
from storyprint.utils.geometry import rect_geometry, union_bounds

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ViewportBounds:
    min_x: float
    min_y: float
    max_x: float
    max_y: float

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        return self.max_y - self.min_y

    def view_box(self) -> ViewBox:
        return ViewBox(x=self.min_x, y=self.min_y, width=self.width, height=self.height)


def estimated_detail_radius(nodes: list[LaidOutNode], config: ViewportConfig | None = None) -> float:
    """Largest detail radius among ``nodes``, never below the configured floor."""
    cfg = config or ViewportConfig()
    if not nodes:
        return cfg.min_node_radius
    most = max(n.neighbor_link_count for n in nodes)
    return max(detail_node_radius(most), cfg.min_node_radius)


def _rounded(values, digits: int = 2) -> tuple:
    return tuple(round(float(v), digits) for v in values)


class BoundsCalculator:
    """Computes padded content bounds, memoized on the inputs that move them.

    Returns the previously computed object when the composite key is
    unchanged, so callers can detect "nothing moved" by identity.
    """

    def __init__(self, config: ViewportConfig | None = None) -> None:
        self.config = config or ViewportConfig()
        self._key: tuple | None = None
        self._last: ViewportBounds | None = None
        self._title_spot: tuple[float, float] | None = None

    def compute(
        self,
        nodes: list[LaidOutNode],
        meta_nodes: list[MetaNodeView],
        sections: list[OverlayRect],
        title: OverlayRect | None,
        width: float,
        height: float,
    ) -> ViewportBounds | None:
        cfg = self.config
        node_extent = None
        if nodes:
            radius = estimated_detail_radius(nodes, cfg)
            xy = np.array([(n.x, n.y) for n in nodes], dtype=np.float64)
            lo, hi = xy.min(axis=0), xy.max(axis=0)
            node_extent = (float(lo[0]), float(lo[1]), float(hi[0]), float(hi[1]), radius)

        key = (
            _rounded(node_extent) if node_extent else None,
            tuple(_rounded((m.x, m.y, m.radius)) for m in meta_nodes),
            tuple((s.key, *_rounded(s.rect)) for s in sections),
            self._title_key(title),
            _rounded((width, height)),
        )
        if key == self._key:
            if title is not None and title.auto_placed and self._title_spot is not None:
                title.x, title.y = self._title_spot
            return self._last

        geometries = []
        if node_extent is not None:
            x0, y0, x1, y1, radius = node_extent
            geometries.append(rect_geometry(
                x0 - radius, y0 - radius, x1 - x0 + 2 * radius, y1 - y0 + 2 * radius,
            ))
        for meta in meta_nodes:
            geometries.append(rect_geometry(
                meta.x - meta.radius, meta.y - meta.radius, 2 * meta.radius, 2 * meta.radius,
            ))
        for section in sections:
            geometries.append(rect_geometry(*section.rect))

        raw = union_bounds(geometries)
        self._title_spot = None
        if title is not None:
            if title.auto_placed:
                spot = default_title_position(raw, title.height, cfg)
                title.x, title.y = spot.x, spot.y
                self._title_spot = (title.x, title.y)
            raw = union_bounds(
                geometries + [rect_geometry(*title.rect)],
            )

        bounds = None
        if raw is not None:
            pad = cfg.padding_fraction * max(width, height)
            bounds = ViewportBounds(raw[0] - pad, raw[1] - pad, raw[2] + pad, raw[3] + pad)
        self._key = key
        self._last = bounds
        return bounds

    @staticmethod
    def _title_key(title: OverlayRect | None) -> tuple | None:
        if title is None:
            return None
        # An auto-placed title follows the other content, so only its size matters
        if title.auto_placed:
            return ("auto", *_rounded((title.width, title.height)))
        return ("fixed", *_rounded(title.rect))


@stage(
    id="S3.01",
    layer=Layer.VIEWPORT,
    dependencies=["S2.03"],
    description="Content bounds and view box",
)
def compute_viewport(ctx: LayoutContext) -> None:
    calculator = ctx.bounds_calculator
    if calculator is None:
        calculator = BoundsCalculator(ctx.config.viewport)
    bounds = calculator.compute(
        ctx.visible_nodes, ctx.meta_nodes, ctx.sections, ctx.title, ctx.width, ctx.height,
    )
    if bounds is None:
        ctx.bounds = None
        ctx.view_box = ViewBox(x=0.0, y=0.0, width=ctx.width, height=ctx.height)
        return
    ctx.bounds = (bounds.min_x, bounds.min_y, bounds.max_x, bounds.max_y)
    ctx.view_box = bounds.view_box()
