"""Graph document input models — what the caller's graph store hands us."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class GraphNode(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str = ""
    label: str = ""
    properties: dict[str, Any] = Field(default_factory=dict)
    # Computed from the relationships when the document does not carry it
    neighbor_link_count: int | None = Field(default=None, alias="neighborLinkCount")


class GraphRelationship(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    type: str = ""
    source_id: str = Field(..., alias="sourceId")
    target_id: str = Field(..., alias="targetId")
    properties: dict[str, Any] = Field(default_factory=dict)


class GraphDocument(BaseModel):
    nodes: list[GraphNode] = Field(default_factory=list)
    relationships: list[GraphRelationship] = Field(default_factory=list)


class MetaNodeData(BaseModel):
    """Narrative metadata of one community."""

    model_config = ConfigDict(populate_by_name=True)

    community_id: str = Field(..., alias="communityId")
    order: int | None = None
    title: str | None = None
    summary: str | None = None


class StoryItem(BaseModel):
    """Text shown in a story-section overlay next to its community."""

    model_config = ConfigDict(populate_by_name=True)

    community_id: str = Field(..., alias="communityId")
    title: str = ""
    content: str = ""
    order: int = 0


def story_items_from_meta(
    meta_nodes: list[MetaNodeData],
    detailed_stories: dict[str, str] | None = None,
) -> list[StoryItem]:
    """Build story items for every community in the narrative, sorted by order."""
    detailed_stories = detailed_stories or {}
    ordered = sorted(
        (m for m in meta_nodes if m.order is not None),
        key=lambda m: m.order,
    )
    return [
        StoryItem(
            community_id=m.community_id,
            title=m.title or f"Community {m.community_id}",
            content=detailed_stories.get(m.community_id) or m.summary or "",
            order=m.order,
        )
        for m in ordered
    ]
