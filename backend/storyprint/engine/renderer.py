"""Layer 4: turn the reconciled layout into scene primitives.

Edges fade with length. Plain linear decay flattens the middle of the range,
so the normalized length is pushed away from 0.5 with a bell-shaped weight
before mapping it to opacity and width.
"""

from __future__ import annotations

import logging

import numpy as np

from storyprint.engine.config import RenderConfig
from storyprint.engine.context import LaidOutEdge, LayoutContext
from storyprint.engine.registry import Layer, stage
from storyprint.models.scene import (
    EdgeLabelPrimitive,
    EdgePrimitive,
    GradientStop,
    NodePrimitive,
    OverlayPrimitive,
    RadialGradient,
    Scene,
    ViewBox,
)
from storyprint.utils.geometry import fold_angle, is_finite_point, segment_angle
from storyprint.utils.math_helpers import bell_corrected, clamp, normalize

logger = logging.getLogger(__name__)

_GRADIENT_STOPS = ((0.0, 0.3), (0.5, 0.2), (1.0, 0.0))


def detail_node_radius(neighbor_link_count: int | None) -> float:
    return 1.6 * ((neighbor_link_count or 0) * 0.1 + 3.6) * 1.2


def meta_node_radius(size: int, config: RenderConfig | None = None) -> float:
    cfg = config or RenderConfig()
    return clamp(size * cfg.meta_radius_per_member, cfg.meta_radius_min, cfg.meta_radius_max)


def edge_falloff(
    lengths: np.ndarray, config: RenderConfig | None = None,
) -> tuple[np.ndarray, np.ndarray]:
    """(opacity, width) per edge: long edges fade out, short ones stay bold."""
    cfg = config or RenderConfig()
    t = bell_corrected(normalize(np.asarray(lengths, dtype=np.float64)), cfg.bell_intensity)
    opacity = cfg.edge_max_opacity - cfg.edge_opacity_range * t
    width = cfg.edge_max_width - cfg.edge_width_range * t
    return opacity, width


def edge_label_text(types: list[str], ellipsis: str = "…") -> str:
    """First type, with an ellipsis marking that more types share the pair."""
    distinct = list(dict.fromkeys(t for t in types if t))
    if not distinct:
        return ""
    if len(distinct) > 1:
        return f"{distinct[0]} {ellipsis}"
    return distinct[0]


def label_font_size(base: float, length: float, chars: int, config: RenderConfig | None = None) -> float:
    """Shrink a label until it fits along its edge, but never below the floor."""
    cfg = config or RenderConfig()
    if chars <= 0:
        return base
    cap = length * cfg.label_fill_ratio / (cfg.glyph_width_ratio * chars)
    return clamp(base, cfg.label_font_floor, cap)


def group_parallel_edges(edges: list[LaidOutEdge]) -> dict[tuple[str, str], list[LaidOutEdge]]:
    groups: dict[tuple[str, str], list[LaidOutEdge]] = {}
    for edge in edges:
        groups.setdefault(edge.pair_key, []).append(edge)
    return groups


def build_edge_labels(
    edges: list[LaidOutEdge],
    focus: set[str],
    font_size: float,
    config: RenderConfig | None = None,
) -> list[EdgeLabelPrimitive]:
    cfg = config or RenderConfig()
    labels: list[EdgeLabelPrimitive] = []
    for key, group in group_parallel_edges(edges).items():
        focused = [e for e in group if e.source_id in focus and e.target_id in focus]
        focused_ids = {e.id for e in focused}
        types = [e.type for e in focused] + [e.type for e in group if e.id not in focused_ids]
        text = edge_label_text(types, cfg.ellipsis)
        if not text:
            continue
        edge = group[0]
        length = edge.length
        size = label_font_size(font_size, length, len(text), cfg)
        if focused:
            size *= cfg.focus_label_scale
        labels.append(EdgeLabelPrimitive(
            pair_key="-".join(key),
            node_ids=list(key),
            text=text,
            x=(edge.source.x + edge.target.x) / 2,
            y=(edge.source.y + edge.target.y) / 2,
            angle=fold_angle(segment_angle(edge.source.x, edge.source.y, edge.target.x, edge.target.y)),
            font_size=size,
            color=cfg.edge_focus_color if focused else cfg.edge_label_color,
            bold=bool(focused),
            types=list(dict.fromkeys(types)),
        ))
    return labels


def community_gradient(community_id: str, in_story: bool, config: RenderConfig | None = None) -> RadialGradient:
    cfg = config or RenderConfig()
    color = cfg.story_community_color if in_story else cfg.other_community_color
    return RadialGradient(
        id=f"metaNodeGradient-{community_id}",
        stops=[GradientStop(offset=o, color=color, opacity=a) for o, a in _GRADIENT_STOPS],
    )


@stage(
    id="S4.01",
    layer=Layer.RENDERING,
    dependencies=["S3.01"],
    description="Build scene primitives",
)
def render_scene(ctx: LayoutContext) -> None:
    cfg = ctx.config.render
    settings = ctx.settings
    fonts = settings.font_size
    focus = ctx.focus_ids
    has_focus = bool(focus)

    edge_color = settings.edge_color or cfg.edge_color
    edge_focus_color = settings.edge_focus_color or cfg.edge_focus_color
    node_color = settings.node_color or cfg.node_color
    node_focus_color = settings.node_focus_color or cfg.node_focus_color

    drawn = [
        e for e in ctx.visible_edges
        if is_finite_point(e.source.x, e.source.y) and is_finite_point(e.target.x, e.target.y)
    ]
    opacity, width = edge_falloff(np.array([e.length for e in drawn]), cfg)
    edges: list[EdgePrimitive] = []
    for i, e in enumerate(drawn):
        focused = has_focus and e.source_id in focus and e.target_id in focus
        if focused:
            stroke, alpha, stroke_width = edge_focus_color, 1.0, cfg.focused_edge_width
        elif has_focus:
            stroke, alpha, stroke_width = edge_color, cfg.unfocused_edge_opacity, float(width[i])
        else:
            stroke, alpha, stroke_width = edge_color, float(opacity[i]), float(width[i])
        edges.append(EdgePrimitive(
            id=e.id,
            source_id=e.source_id,
            target_id=e.target_id,
            x1=e.source.x,
            y1=e.source.y,
            x2=e.target.x,
            y2=e.target.y,
            stroke=stroke,
            opacity=alpha,
            width=stroke_width,
            focused=focused,
        ))

    edge_labels = (
        build_edge_labels(drawn, focus if has_focus else set(), fonts.edge, cfg)
        if settings.show_edge_labels else []
    )

    nodes: list[NodePrimitive] = []
    for n in ctx.visible_nodes:
        if not is_finite_point(n.x, n.y):
            continue
        focused = n.id in focus
        scale = cfg.focus_label_scale if focused else 1.0
        nodes.append(NodePrimitive(
            id=n.id,
            x=n.x,
            y=n.y,
            radius=detail_node_radius(n.neighbor_link_count),
            fill=node_focus_color if focused else node_color,
            opacity=cfg.node_opacity if (focused or not has_focus) else cfg.unfocused_node_opacity,
            label=n.name or n.label or n.id,
            label_color=cfg.label_color,
            label_font_size=fonts.node * scale,
            label_bold=focused,
            label_dy=cfg.node_label_offset,
            focused=focused,
            community_id=n.community_id,
        ))

    gradients: list[RadialGradient] = []
    meta_nodes: list[NodePrimitive] = []
    for meta in ctx.meta_nodes:
        gradient = community_gradient(meta.community_id, meta.in_story, cfg)
        gradients.append(gradient)
        meta_nodes.append(NodePrimitive(
            id=f"community-{meta.community_id}",
            x=meta.x,
            y=meta.y,
            radius=meta.radius,
            fill=f"url(#{gradient.id})",
            opacity=1.0,
            is_meta=True,
            community_id=meta.community_id,
            gradient_id=gradient.id,
        ))

    overlays = [
        OverlayPrimitive(
            kind=s.kind,
            key=s.key,
            x=s.x,
            y=s.y,
            width=s.width,
            height=s.height,
            title=s.title,
            body=s.body,
            title_font_size=fonts.section_title,
            body_font_size=fonts.body,
        )
        for s in ctx.sections
    ]
    if ctx.title is not None:
        t = ctx.title
        overlays.append(OverlayPrimitive(
            kind=t.kind,
            key=t.key,
            x=t.x,
            y=t.y,
            width=t.width,
            height=t.height,
            title=t.title,
            title_font_size=fonts.workspace_title,
        ))

    ctx.scene = Scene(
        width=ctx.width,
        height=ctx.height,
        view_box=ctx.view_box or ViewBox(width=ctx.width, height=ctx.height),
        gradients=gradients,
        edges=edges,
        edge_labels=edge_labels,
        meta_nodes=meta_nodes,
        meta_group_opacity=cfg.meta_group_opacity,
        nodes=nodes,
        overlays=overlays,
    )
    logger.debug(
        "Scene: %d edges, %d nodes, %d macro-nodes, %d overlays",
        len(edges),
        len(nodes),
        len(meta_nodes),
        len(overlays),
    )
