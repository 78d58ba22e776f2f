"""Per-render layout settings, including the persisted manual overrides."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from storyprint.models.page import MarginSettings, PageSizeSettings


class LayoutOrientation(str, Enum):
    # Story spine runs left-to-right, communities alternate above/below
    VERTICAL = "vertical"
    # Story spine runs top-to-bottom, communities alternate left/right
    HORIZONTAL = "horizontal"


class MetaGraphDisplayMode(str, Enum):
    NONE = "none"
    STORY = "story"
    ALL = "all"


class DetailedGraphDisplayMode(str, Enum):
    ALL = "all"
    STORY = "story"


class OverlayDisplayMode(str, Enum):
    NONE = "none"
    SHOW = "show"


class Point(BaseModel):
    x: float
    y: float


class Size(BaseModel):
    width: float
    height: float


class FontSizeSettings(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    workspace_title: float = Field(default=21.0, alias="workspaceTitle")
    section_title: float = Field(default=14.0, alias="sectionTitle")
    body: float = 12.0
    node: float = 9.0
    edge: float = 6.0


class LayoutSettings(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    layout_orientation: LayoutOrientation = Field(
        default=LayoutOrientation.VERTICAL, alias="layoutOrientation",
    )
    meta_graph_display: MetaGraphDisplayMode = Field(
        default=MetaGraphDisplayMode.NONE, alias="metaGraphDisplay",
    )
    detailed_graph_display: DetailedGraphDisplayMode = Field(
        default=DetailedGraphDisplayMode.ALL, alias="detailedGraphDisplay",
    )
    text_overlay_display: OverlayDisplayMode = Field(
        default=OverlayDisplayMode.NONE, alias="textOverlayDisplay",
    )
    workspace_title_display: OverlayDisplayMode = Field(
        default=OverlayDisplayMode.NONE, alias="workspaceTitleDisplay",
    )
    show_edge_labels: bool = Field(default=False, alias="showEdgeLabels")

    edge_color: str | None = Field(default=None, alias="edgeColor")
    edge_focus_color: str | None = Field(default=None, alias="edgeFocusColor")
    node_color: str | None = Field(default=None, alias="nodeColor")
    node_focus_color: str | None = Field(default=None, alias="nodeFocusColor")
    font_size: FontSizeSettings = Field(default_factory=FontSizeSettings, alias="fontSize")

    page_size: PageSizeSettings = Field(default_factory=PageSizeSettings, alias="pageSize")
    margins: MarginSettings = Field(default_factory=MarginSettings)

    # Persisted overrides (see engine.overrides)
    community_positions: dict[str, Point] = Field(
        default_factory=dict, alias="communityPositions",
    )
    # Offsets relative to the owning community's anchor
    node_positions: dict[str, Point] = Field(default_factory=dict, alias="nodePositions")
    section_sizes: dict[str, Size] = Field(default_factory=dict, alias="sectionSizes")
    workspace_title_position: Point | None = Field(
        default=None, alias="workspaceTitlePosition",
    )
    workspace_title_size: Size | None = Field(default=None, alias="workspaceTitleSize")

    @property
    def is_horizontal(self) -> bool:
        return self.layout_orientation == LayoutOrientation.HORIZONTAL
