"""Scene graph — the renderable output of the pipeline."""

from __future__ import annotations

from pydantic import BaseModel, Field


class ViewBox(BaseModel):
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0

    def as_attr(self) -> str:
        return f"{self.x:g} {self.y:g} {self.width:g} {self.height:g}"


class GradientStop(BaseModel):
    offset: float
    color: str
    opacity: float


class RadialGradient(BaseModel):
    id: str
    stops: list[GradientStop] = Field(default_factory=list)


class EdgePrimitive(BaseModel):
    id: str
    source_id: str
    target_id: str
    x1: float
    y1: float
    x2: float
    y2: float
    stroke: str
    opacity: float
    width: float
    focused: bool = False


class EdgeLabelPrimitive(BaseModel):
    # Display key; node_ids is the unambiguous pair
    pair_key: str
    node_ids: list[str] = Field(default_factory=list)
    text: str
    x: float
    y: float
    angle: float = 0.0
    font_size: float
    color: str
    bold: bool = False
    types: list[str] = Field(default_factory=list)


class NodePrimitive(BaseModel):
    id: str
    x: float
    y: float
    radius: float
    fill: str
    opacity: float
    label: str = ""
    label_color: str = "#1f2937"
    label_font_size: float = 9.0
    label_bold: bool = False
    label_dy: float = -10.0
    is_meta: bool = False
    focused: bool = False
    community_id: str | None = None
    # Set on macro-nodes: id of the RadialGradient used as fill
    gradient_id: str | None = None


class OverlayPrimitive(BaseModel):
    kind: str  # "section" or "workspace_title"
    key: str
    x: float
    y: float
    width: float
    height: float
    title: str = ""
    body: str = ""
    title_font_size: float = 14.0
    body_font_size: float = 12.0


class Scene(BaseModel):
    width: float
    height: float
    view_box: ViewBox
    gradients: list[RadialGradient] = Field(default_factory=list)
    edges: list[EdgePrimitive] = Field(default_factory=list)
    edge_labels: list[EdgeLabelPrimitive] = Field(default_factory=list)
    meta_nodes: list[NodePrimitive] = Field(default_factory=list)
    meta_group_opacity: float = 0.6
    nodes: list[NodePrimitive] = Field(default_factory=list)
    overlays: list[OverlayPrimitive] = Field(default_factory=list)
