"""Write print-ready SVG markup from a rendered scene."""

from __future__ import annotations

import textwrap
from xml.sax.saxutils import escape, quoteattr

from storyprint.models.scene import (
    EdgeLabelPrimitive,
    NodePrimitive,
    OverlayPrimitive,
    RadialGradient,
    Scene,
)

# Average glyph width as a fraction of the font size, for line wrapping
_GLYPH_RATIO = 0.6
_OVERLAY_PADDING = 12.0
_LINE_HEIGHT = 1.4


def _num(value: float) -> str:
    return f"{value:.2f}".rstrip("0").rstrip(".")


def _gradient(gradient: RadialGradient) -> list[str]:
    lines = [f'    <radialGradient id={quoteattr(gradient.id)} cx="50%" cy="50%" r="50%">']
    for stop in gradient.stops:
        lines.append(
            f'      <stop offset="{_num(stop.offset * 100)}%" stop-color={quoteattr(stop.color)}'
            f' stop-opacity="{_num(stop.opacity)}" />'
        )
    lines.append("    </radialGradient>")
    return lines


def _node(node: NodePrimitive) -> list[str]:
    lines = [
        f'    <circle cx="{_num(node.x)}" cy="{_num(node.y)}" r="{_num(node.radius)}"'
        f' fill={quoteattr(node.fill)} opacity="{_num(node.opacity)}" />'
    ]
    if node.label and not node.is_meta:
        weight = "bold" if node.label_bold else "normal"
        lines.append(
            f'    <text x="{_num(node.x)}" y="{_num(node.y + node.label_dy)}" text-anchor="middle"'
            f' fill={quoteattr(node.label_color)} font-size="{_num(node.label_font_size)}"'
            f' font-weight="{weight}">{escape(node.label)}</text>'
        )
    return lines


def _edge_label(label: EdgeLabelPrimitive) -> str:
    weight = "bold" if label.bold else "normal"
    return (
        f'    <text x="{_num(label.x)}" y="{_num(label.y)}" text-anchor="middle"'
        f' dominant-baseline="central" fill={quoteattr(label.color)}'
        f' font-size="{_num(label.font_size)}" font-weight="{weight}"'
        f' transform="rotate({_num(label.angle)} {_num(label.x)} {_num(label.y)})">'
        f"{escape(label.text)}</text>"
    )


def wrap_text(text: str, width: float, font_size: float) -> list[str]:
    """Greedy word wrap to the number of glyphs that fit ``width``."""
    if not text:
        return []
    chars = max(1, int(width / max(font_size * _GLYPH_RATIO, 1e-6)))
    lines: list[str] = []
    for paragraph in text.splitlines() or [""]:
        lines.extend(textwrap.wrap(paragraph, chars) or [""])
    return lines


def _overlay(overlay: OverlayPrimitive) -> list[str]:
    lines = [
        f'    <g class="overlay overlay-{overlay.kind}" data-key={quoteattr(overlay.key)}>',
        f'      <rect x="{_num(overlay.x)}" y="{_num(overlay.y)}" width="{_num(overlay.width)}"'
        f' height="{_num(overlay.height)}" rx="8" fill="#ffffff" fill-opacity="0.9"'
        f' stroke="#d1d5db" />',
    ]
    inner = overlay.width - 2 * _OVERLAY_PADDING
    x = overlay.x + _OVERLAY_PADDING
    y = overlay.y + _OVERLAY_PADDING
    bottom = overlay.y + overlay.height - _OVERLAY_PADDING

    for text, size, weight in (
        (overlay.title, overlay.title_font_size, "bold"),
        (overlay.body, overlay.body_font_size, "normal"),
    ):
        for line in wrap_text(text, inner, size):
            y += size
            if y > bottom:
                break
            lines.append(
                f'      <text x="{_num(x)}" y="{_num(y)}" font-size="{_num(size)}"'
                f' font-weight="{weight}" fill="#1f2937">{escape(line)}</text>'
            )
            y += size * (_LINE_HEIGHT - 1)
        y += size * 0.5
    lines.append("    </g>")
    return lines


def serialize_scene(scene: Scene, title: str = "") -> str:
    """Generate standalone SVG 1.1 markup for a scene."""
    vb = scene.view_box
    lines = [
        '<?xml version="1.0" encoding="UTF-8"?>',
        f'<svg viewBox="{vb.as_attr()}" width="{_num(vb.width)}" height="{_num(vb.height)}"'
        f' xmlns="http://www.w3.org/2000/svg" version="1.1" role="img">',
    ]
    if title:
        lines.append(f"  <title>{escape(title)}</title>")

    if scene.gradients:
        lines.append("  <defs>")
        for gradient in scene.gradients:
            lines.extend(_gradient(gradient))
        lines.append("  </defs>")

    lines.append('  <g class="links">')
    for edge in scene.edges:
        lines.append(
            f'    <line x1="{_num(edge.x1)}" y1="{_num(edge.y1)}" x2="{_num(edge.x2)}"'
            f' y2="{_num(edge.y2)}" stroke={quoteattr(edge.stroke)}'
            f' stroke-opacity="{_num(edge.opacity)}" stroke-width="{_num(edge.width)}" />'
        )
    for label in scene.edge_labels:
        lines.append(_edge_label(label))
    lines.append("  </g>")

    if scene.meta_nodes:
        lines.append(f'  <g class="meta-nodes" opacity="{_num(scene.meta_group_opacity)}">')
        for node in scene.meta_nodes:
            lines.extend(_node(node))
        lines.append("  </g>")

    lines.append('  <g class="nodes">')
    for node in scene.nodes:
        lines.extend(_node(node))
    lines.append("  </g>")

    if scene.overlays:
        lines.append('  <g class="overlays">')
        for overlay in scene.overlays:
            lines.extend(_overlay(overlay))
        lines.append("  </g>")

    lines.append("</svg>")
    return "\n".join(lines)
