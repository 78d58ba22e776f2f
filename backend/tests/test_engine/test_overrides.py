"""Tests for the override store and position reconciliation."""

import pytest

from storyprint.engine.callbacks import LayoutCallbacks
from storyprint.engine.context import LayoutContext
from storyprint.engine.overrides import resolve_node_position
from storyprint.engine.pipeline import create_pipeline
from storyprint.engine.store import OverrideStore
from storyprint.engine.targets import DragTarget
from storyprint.models.layout_settings import LayoutSettings, Point, Size
from tests.conftest import CANVAS_H, CANVAS_W, story_request


def _run(request, store=None, callbacks=None, pipeline=None) -> LayoutContext:
    ctx = LayoutContext(
        request=request,
        width=CANVAS_W,
        height=CANVAS_H,
        overrides=store or OverrideStore.from_settings(request.settings),
        callbacks=callbacks or LayoutCallbacks(),
    )
    return (pipeline or create_pipeline()).run(ctx)


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


def test_store_round_trips_settings():
    settings = LayoutSettings(
        community_positions={"A": Point(x=1, y=2)},
        node_positions={"A-0": Point(x=3, y=4)},
        section_sizes={"A": Size(width=100, height=50)},
        workspace_title_position=Point(x=5, y=6),
    )
    store = OverrideStore.from_settings(settings)
    exported = store.apply_to(LayoutSettings(show_edge_labels=True))
    assert exported.community_positions == settings.community_positions
    assert exported.node_positions == settings.node_positions
    assert exported.section_sizes == settings.section_sizes
    assert exported.workspace_title_position == settings.workspace_title_position
    assert exported.workspace_title_size is None
    assert exported.show_edge_labels


def test_effective_anchor_priority():
    store = OverrideStore()
    base = (10.0, 20.0)
    assert store.effective_anchor("A", base) == base
    store.commit_community_position("A", Point(x=1, y=1))
    assert store.effective_anchor("A", base) == (1, 1)
    store.set_drag_preview(DragTarget.community("A"), Point(x=7, y=7))
    assert store.effective_anchor("A", base) == (7, 7)
    store.clear_previews()
    assert store.effective_anchor("A", base) == (1, 1)


def test_anchor_commit_bumps_revision():
    store = OverrideStore()
    assert store.revision("A") == 0
    store.commit_community_position("A", Point(x=1, y=1))
    assert store.revision("A") == 1


def test_reloading_settings_bumps_changed_anchors_only():
    store = OverrideStore.from_settings(LayoutSettings(community_positions={"A": Point(x=1, y=1)}))
    before = {"A": store.revision("A"), "B": store.revision("B")}
    store.load_settings(LayoutSettings(community_positions={"A": Point(x=1, y=1)}))
    assert store.revision("A") == before["A"]
    store.load_settings(LayoutSettings(community_positions={
        "A": Point(x=9, y=9), "B": Point(x=2, y=2),
    }))
    assert store.revision("A") == before["A"] + 1
    assert store.revision("B") == before["B"] + 1
    store.load_settings(LayoutSettings())
    assert store.revision("A") == before["A"] + 2


def test_section_follows_anchor_after_revision():
    store = OverrideStore()
    store.commit_section_position("A", Point(x=100, y=100), anchor=(50.0, 50.0))
    # Same revision: stays put even though the anchor moved
    assert store.section_position("A", (60.0, 50.0)) == Point(x=100, y=100)
    store.bump_revision("A")
    assert store.section_position("A", (80.0, 70.0)) == Point(x=130, y=120)
    # Rebased once, not again
    assert store.section_position("A", (80.0, 70.0)) == Point(x=130, y=120)


def test_section_size_preview_wins():
    store = OverrideStore(section_sizes={"A": Size(width=100, height=100)})
    default = Size(width=1, height=1)
    assert store.section_size("A", default) == Size(width=100, height=100)
    assert store.section_size("B", default) == default
    store.set_resize_preview(DragTarget.section("A"), Size(width=70, height=45))
    assert store.section_size("A", default) == Size(width=70, height=45)


# ---------------------------------------------------------------------------
# Node resolution
# ---------------------------------------------------------------------------


def test_node_follows_anchor_delta():
    store = OverrideStore()
    pos = resolve_node_position("n", (5.0, 5.0), "A", store, {"A": (20.0, 0.0)}, {"A": (0.0, 0.0)})
    assert pos == (25.0, 5.0)


def test_node_offset_is_relative_to_anchor():
    store = OverrideStore(node_positions={"n": Point(x=3, y=-3)})
    pos = resolve_node_position("n", (5.0, 5.0), "A", store, {"A": (20.0, 10.0)}, {"A": (0.0, 0.0)})
    assert pos == (23.0, 7.0)


def test_communityless_node_offset_is_absolute():
    store = OverrideStore(node_positions={"n": Point(x=3, y=4)})
    assert resolve_node_position("n", (5.0, 5.0), None, store, {}, {}) == (3.0, 4.0)


def test_node_preview_wins():
    store = OverrideStore(node_positions={"n": Point(x=3, y=4)})
    store.set_drag_preview(DragTarget.node("n"), Point(x=99, y=98))
    assert resolve_node_position("n", (5.0, 5.0), None, store, {}, {}) == (99.0, 98.0)


# ---------------------------------------------------------------------------
# Reconciliation stages
# ---------------------------------------------------------------------------


def test_committed_anchor_is_idempotent_across_runs():
    pipeline = create_pipeline()
    request = story_request()
    store = OverrideStore()
    store.commit_community_position("A", Point(x=123.0, y=456.0))
    first = _run(request, store, pipeline=pipeline)
    second = _run(request, store, pipeline=pipeline)
    assert first.community_anchors["A"] == (123.0, 456.0)
    assert second.community_anchors["A"] == (123.0, 456.0)


def test_anchor_override_moves_members_by_delta():
    pipeline = create_pipeline()
    request = story_request()
    plain = _run(request, OverrideStore(), pipeline=pipeline)
    cx, cy = plain.base_centers["A"]
    store = OverrideStore()
    store.commit_community_position("A", Point(x=cx + 40, y=cy - 10))
    moved = _run(request, store, pipeline=pipeline)

    before = {n.id: n for n in plain.laid_out_nodes}
    for node in moved.laid_out_nodes:
        if node.community_id == "A":
            assert node.x == pytest.approx(before[node.id].x + 40)
            assert node.y == pytest.approx(before[node.id].y - 10)
        else:
            assert (node.x, node.y) == pytest.approx((before[node.id].x, before[node.id].y))


def test_reconciliation_creates_new_objects():
    pipeline = create_pipeline()
    request = story_request()
    a = _run(request, pipeline=pipeline)
    b = _run(request, pipeline=pipeline)
    assert all(x is not y for x, y in zip(a.laid_out_nodes, b.laid_out_nodes))
    assert all(x is not y for x, y in zip(a.laid_out_edges, b.laid_out_edges))


def test_positions_callback_fires_only_when_solver_ran():
    pipeline = create_pipeline()
    request = story_request()
    calls = []
    callbacks = LayoutCallbacks(community_positions_calculated=calls.append)
    store = OverrideStore()
    _run(request, store, callbacks, pipeline)
    _run(request, store, callbacks, pipeline)
    assert len(calls) == 1
    assert set(calls[0]) == {"A", "B"}
    assert store.revision("A") == 1


def test_story_detail_mode_hides_non_story_nodes():
    request = story_request(
        sizes={"A": 3, "B": 2, "C": 2},
        orders={"A": 1, "B": 2},
        settings=LayoutSettings(detailed_graph_display="story"),
    )
    ctx = _run(request)
    assert {n.community_id for n in ctx.visible_nodes} == {"A", "B"}
    assert all(e.source.community_id != "C" and e.target.community_id != "C" for e in ctx.visible_edges)
    assert len(ctx.laid_out_nodes) == 7


def test_meta_display_modes():
    sizes = {"A": 3, "B": 2, "C": 2}
    orders = {"A": 1, "B": 2}
    none = _run(story_request(sizes=sizes, orders=orders))
    story = _run(story_request(sizes=sizes, orders=orders, settings=LayoutSettings(meta_graph_display="story")))
    every = _run(story_request(sizes=sizes, orders=orders, settings=LayoutSettings(meta_graph_display="all")))
    assert none.meta_nodes == []
    assert {m.community_id for m in story.meta_nodes} == {"A", "B"}
    assert {m.community_id for m in every.meta_nodes} == {"A", "B", "C"}
    assert all(m.radius == 60 or m.radius == 40 for m in every.meta_nodes)
