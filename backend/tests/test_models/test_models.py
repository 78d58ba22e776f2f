"""Tests for input models and page geometry."""

import pytest

from storyprint.engine.context import LayoutContext
from storyprint.engine.graph_prep import (
    build_communities,
    count_neighbor_links,
    normalize_graph,
    prepare_graph,
)
from storyprint.models.graph_document import (
    GraphNode,
    GraphRelationship,
    MetaNodeData,
    story_items_from_meta,
)
from storyprint.models.layout_settings import LayoutOrientation, LayoutSettings
from storyprint.models.page import (
    MM_TO_PX,
    MarginSettings,
    PageOrientation,
    PageSizeSettings,
    SizeUnit,
    canvas_size,
    convert_unit,
    page_size_mm,
)
from storyprint.models.requests import LayoutRequest


# ---------------------------------------------------------------------------
# Page geometry
# ---------------------------------------------------------------------------


def test_convert_unit():
    assert convert_unit(1, SizeUnit.INCH, SizeUnit.MM) == pytest.approx(25.4)
    assert convert_unit(25, SizeUnit.MM, SizeUnit.CM) == pytest.approx(2.5)


def test_template_page_size_and_landscape():
    assert page_size_mm(PageSizeSettings(template="A3")) == (297, 420)
    assert page_size_mm(PageSizeSettings(template="A3", orientation=PageOrientation.LANDSCAPE)) == (420, 297)


def test_custom_page_size_in_inches():
    page = PageSizeSettings(mode="custom", custom_width=10, custom_height=20, unit="inch")
    assert page_size_mm(page) == pytest.approx((254, 508))


def test_canvas_size_minimum():
    width, height = canvas_size(PageSizeSettings(template="A4"), MarginSettings())
    assert width == 1000
    assert height == pytest.approx(277 * MM_TO_PX)


# ---------------------------------------------------------------------------
# Settings and story items
# ---------------------------------------------------------------------------


def test_settings_accept_camel_case():
    settings = LayoutSettings.model_validate({
        "layoutOrientation": "horizontal",
        "nodePositions": {"n": {"x": 1, "y": 2}},
        "fontSize": {"workspaceTitle": 30},
    })
    assert settings.layout_orientation == LayoutOrientation.HORIZONTAL
    assert settings.is_horizontal
    assert settings.node_positions["n"].x == 1
    assert settings.font_size.workspace_title == 30
    assert settings.font_size.edge == 6


def test_story_items_from_meta_sorted_and_filtered():
    meta = [
        MetaNodeData(community_id="b", order=2, title="Second"),
        MetaNodeData(community_id="x"),
        MetaNodeData(community_id="a", order=1, summary="Opening"),
    ]
    items = story_items_from_meta(meta, {"b": "Long story"})
    assert [i.community_id for i in items] == ["a", "b"]
    assert items[0].title == "Community a"
    assert items[0].content == "Opening"
    assert items[1].content == "Long story"


def test_detailed_stories_fill_default_story_items():
    request = LayoutRequest.model_validate({
        "metaNodes": [
            {"communityId": "a", "order": 1, "summary": "Short"},
            {"communityId": "b", "order": 2, "summary": "Kept"},
        ],
        "detailedStories": {"a": "The long version"},
    })
    ctx = LayoutContext(request=request, width=1000, height=1000)
    prepare_graph(ctx)
    assert [item.content for item in ctx.story_items] == ["The long version", "Kept"]


# ---------------------------------------------------------------------------
# Graph preparation
# ---------------------------------------------------------------------------


def test_normalize_drops_duplicates_and_dangling(caplog):
    nodes = [GraphNode(id="a"), GraphNode(id="a"), GraphNode(id="b")]
    rels = [
        GraphRelationship(id="ok", source_id="a", target_id="b"),
        GraphRelationship(id="bad", source_id="a", target_id="ghost"),
    ]
    with caplog.at_level("WARNING"):
        kept, edges = normalize_graph(nodes, rels)
    assert [n.id for n in kept] == ["a", "b"]
    assert [e.id for e in edges] == ["ok"]
    assert "bad" in caplog.text and "ghost" in caplog.text


def test_neighbor_counts_prefer_explicit_value():
    nodes = [GraphNode(id="a"), GraphNode(id="b", neighbor_link_count=42)]
    rels = [GraphRelationship(id="r", source_id="a", target_id="b")]
    assert count_neighbor_links(nodes, rels) == {"a": 1, "b": 42}


def test_build_communities():
    communities, membership = build_communities(
        ["a", "b", "c"],
        {"a": "X", "b": "X", "ghost": "Y"},
        [MetaNodeData(community_id="X", order=0, title="Start"), MetaNodeData(community_id="Z", order=3)],
    )
    assert communities["X"].member_ids == ("a", "b")
    assert communities["X"].in_story and communities["X"].order == 0
    assert communities["Z"].size == 0
    assert "Y" not in communities
    assert membership == {"a": "X", "b": "X"}
