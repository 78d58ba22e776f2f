"""API request models."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from storyprint.models.graph_document import GraphDocument, MetaNodeData, StoryItem
from storyprint.models.layout_settings import LayoutSettings


class LayoutRequest(BaseModel):
    """Everything one render pass depends on."""

    model_config = ConfigDict(populate_by_name=True)

    graph: GraphDocument = Field(default_factory=GraphDocument)
    community_map: dict[str, str] = Field(
        default_factory=dict,
        alias="communityMap",
        description="node id -> community id",
    )
    meta_nodes: list[MetaNodeData] = Field(default_factory=list, alias="metaNodes")
    story_items: list[StoryItem] | None = Field(
        default=None,
        alias="storyItems",
        description="Defaults to one item per ordered community",
    )
    detailed_stories: dict[str, str] = Field(
        default_factory=dict,
        alias="detailedStories",
        description="community id -> long-form story, preferred over the summary",
    )
    settings: LayoutSettings = Field(default_factory=LayoutSettings)
    width: float | None = Field(default=None, description="Canvas width; derived from the page when unset")
    height: float | None = Field(default=None, description="Canvas height; derived from the page when unset")
    workspace_title: str | None = Field(default=None, alias="workspaceTitle")
    referenced_node_ids: list[str] = Field(default_factory=list, alias="referencedNodeIds")
    referenced_edge_ids: list[str] = Field(default_factory=list, alias="referencedEdgeIds")
    seed: int | None = Field(default=None, description="Seed for the initial scatter")

