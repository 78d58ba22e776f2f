"""Tests for the community macro-position planner."""

import pytest

from storyprint.engine.config import PlannerConfig
from storyprint.engine.context import Community
from storyprint.engine.planner import community_spacing, next_anchor, plan_community_anchors

W, H = 1000.0, 800.0


def _community(cid: str, size: int, order: int | None) -> Community:
    return Community(id=cid, member_ids=tuple(f"{cid}-{i}" for i in range(size)), order=order)


# ---------------------------------------------------------------------------
# Spacing
# ---------------------------------------------------------------------------


def test_spacing_non_decreasing_and_bounded():
    span = 1000.0
    spacings = [community_spacing(s, span) for s in (1, 10, 1000)]
    assert spacings == sorted(spacings)
    for value in spacings:
        assert span <= value <= 5 * span


def test_spacing_saturates_at_max():
    assert community_spacing(10**6, 500.0) == pytest.approx(5 * 500.0)


def test_next_anchor_gap_grows_with_previous_size():
    gaps = [next_anchor(0.0, s, 1, 1000.0) for s in (1, 10, 1000)]
    assert gaps == sorted(gaps)


# ---------------------------------------------------------------------------
# Ordered anchors
# ---------------------------------------------------------------------------


def test_vertical_two_communities():
    anchors = plan_community_anchors(
        [_community("A", 5, 1), _community("B", 3, 2)], W, H, horizontal=False,
    )
    (ax, ay), (bx, by) = anchors["A"], anchors["B"]
    assert ax == pytest.approx(0.5 * W)
    assert ay == pytest.approx(0.2 * H)
    assert by == pytest.approx(0.8 * H)
    assert bx > ax
    expected = 0.5 * W + 5 ** 0.5 + community_spacing(5, W) / 4 + 3 ** 0.5
    assert bx == pytest.approx(expected)


def test_horizontal_swaps_axes():
    anchors = plan_community_anchors(
        [_community("A", 5, 1), _community("B", 3, 2)], W, H, horizontal=True,
    )
    (ax, ay), (bx, by) = anchors["A"], anchors["B"]
    assert ay == pytest.approx(0.5 * H)
    assert by > ay
    assert ax == pytest.approx(0.2 * W)
    assert bx == pytest.approx(0.8 * W)


def test_ordered_anchors_strictly_increase_and_alternate():
    communities = [_community(f"c{i}", i + 1, i) for i in range(6)]
    anchors = plan_community_anchors(communities, W, H)
    xs = [anchors[f"c{i}"][0] for i in range(6)]
    assert all(b > a for a, b in zip(xs, xs[1:]))
    for i in range(6):
        expected = 0.2 * H if i % 2 == 1 else 0.8 * H
        assert anchors[f"c{i}"][1] == pytest.approx(expected)


def test_order_zero_counts_as_story():
    anchors = plan_community_anchors([_community("A", 2, 0)], W, H)
    assert anchors["A"] == pytest.approx((0.5 * W, 0.8 * H))


def test_sorted_by_order_not_input_order():
    anchors = plan_community_anchors(
        [_community("late", 2, 3), _community("early", 2, 1)], W, H,
    )
    assert anchors["early"][0] < anchors["late"][0]


def test_empty_communities_are_skipped():
    anchors = plan_community_anchors([_community("A", 2, 1), _community("ghost", 0, 2)], W, H)
    assert "ghost" not in anchors


# ---------------------------------------------------------------------------
# Unordered communities
# ---------------------------------------------------------------------------


def test_unordered_spread_across_story_range():
    communities = [
        _community("A", 3, 1),
        _community("B", 3, 2),
        _community("C", 3, 3),
        _community("u0", 2, None),
        _community("u1", 2, None),
    ]
    anchors = plan_community_anchors(communities, W, H)
    lo, hi = anchors["A"][0], anchors["C"][0]
    assert anchors["u0"][0] == pytest.approx(lo)
    assert anchors["u1"][0] == pytest.approx(hi)
    assert anchors["u0"][1] == pytest.approx(0.1 * H)
    assert anchors["u1"][1] == pytest.approx(1.4 * H)


def test_single_unordered_uses_fallback_range_midpoint():
    cfg = PlannerConfig()
    anchors = plan_community_anchors([_community("A", 3, 1), _community("u", 2, None)], W, H, config=cfg)
    # One ordered anchor gives a zero range, so 2 * span is used
    assert anchors["u"][0] == pytest.approx(0.5 * W + 0.5 * cfg.fallback_range_factor * W)


def test_no_orders_returns_empty():
    assert plan_community_anchors([_community("A", 3, None), _community("B", 3, None)], W, H) == {}
