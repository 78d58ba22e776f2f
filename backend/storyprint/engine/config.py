"""Engine configuration — the tuning constants of every layout stage."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class SolverConfig:
    """Force simulation parameters (d3-force semantics)."""

    link_distance: float = 50.0
    intra_link_strength: float = 0.1
    # Edges between two different communities barely pull
    cross_link_strength: float = 0.001
    charge_strength: float = -300.0
    # Squared lower bound on pair distance for the many-body force
    charge_distance_min2: float = 1.0
    collide_radius: float = 30.0
    collide_strength: float = 1.0
    center_strength: float = 0.05
    anchor_strength: float = 0.15
    unanchored_strength: float = 0.0001

    alpha_start: float = 1.0
    alpha_min: float = 0.001
    # d3 default: alpha reaches alpha_min after ~300 ticks
    alpha_decay_ticks: int = 300
    velocity_decay: float = 0.4
    max_iterations: int = 2000

    initial_jitter: float = 100.0
    seed: int | None = None
    # Barnes-Hut opening angle; 0 evaluates every pair exactly
    charge_theta: float = 0.9
    charge_max_depth: int = 16
    # Rows per block for the exact evaluation
    charge_block_size: int = 512

    @property
    def alpha_decay(self) -> float:
        return 1.0 - self.alpha_min ** (1.0 / self.alpha_decay_ticks)


@dataclass
class PlannerConfig:
    """Community macro-placement along the story spine."""

    first_anchor_fraction: float = 0.5
    size_multiplier: float = 0.3
    # Spacing bounds as multiples of the primary-axis span
    min_spacing_factor: float = 1.0
    max_spacing_factor: float = 5.0
    spacing_divisor: float = 4.0
    # Cross-axis fractions for ordered communities (odd / even order)
    odd_side_fraction: float = 0.2
    even_side_fraction: float = 0.8
    # Cross-axis fractions for communities outside the story
    unordered_near_fraction: float = 0.1
    unordered_far_fraction: float = 1.4
    # Fallback range (multiple of span) when ordered anchors do not spread
    fallback_range_factor: float = 2.0


@dataclass
class ViewportConfig:
    padding_fraction: float = 0.05
    min_node_radius: float = 10.0
    section_height: float = 400.0
    section_width_horizontal: float = 0.75
    section_width_vertical: float = 0.5
    # Default section offset from the canvas edge / community center
    section_gap: float = 100.0
    title_width_fraction: float = 0.6
    title_height: float = 80.0
    title_margin: float = 20.0


@dataclass
class InteractionConfig:
    min_overlay_width: float = 60.0
    min_overlay_height: float = 40.0


@dataclass
class RenderConfig:
    edge_color: str = "#60a5fa"
    edge_focus_color: str = "#1d4ed8"
    node_color: str = "#4a5568"
    node_focus_color: str = "#2563eb"
    label_color: str = "#1f2937"
    edge_label_color: str = "#a3b0c7"
    story_community_color: str = "#004df7"
    other_community_color: str = "#224185"

    edge_max_opacity: float = 0.8
    edge_opacity_range: float = 0.77
    edge_max_width: float = 1.8
    edge_width_range: float = 1.7
    bell_intensity: float = 0.5
    focused_edge_width: float = 2.5
    unfocused_edge_opacity: float = 0.1
    unfocused_node_opacity: float = 0.3
    node_opacity: float = 0.9
    meta_group_opacity: float = 0.6

    label_font_floor: float = 2.0
    # Average glyph width as a fraction of font size
    glyph_width_ratio: float = 0.6
    label_fill_ratio: float = 0.8
    focus_label_scale: float = 1.5
    node_label_offset: float = -10.0
    ellipsis: str = "…"

    meta_radius_per_member: float = 20.0
    meta_radius_min: float = 35.0
    meta_radius_max: float = 250.0


@dataclass
class EngineConfig:
    """Combined configuration handed to the pipeline."""

    solver: SolverConfig = field(default_factory=SolverConfig)
    planner: PlannerConfig = field(default_factory=PlannerConfig)
    viewport: ViewportConfig = field(default_factory=ViewportConfig)
    interaction: InteractionConfig = field(default_factory=InteractionConfig)
    render: RenderConfig = field(default_factory=RenderConfig)
