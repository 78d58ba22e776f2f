"""Tests for the pipeline orchestrator and the layout cache gate."""

from storyprint.engine.cache import LayoutCache, layout_key
from storyprint.engine.context import LayoutContext
from storyprint.engine.pipeline import Pipeline, create_pipeline
from storyprint.engine.registry import Layer, StageRegistry, StageSpec
from storyprint.models.layout_settings import LayoutSettings
from storyprint.models.requests import LayoutRequest
from tests.conftest import CANVAS_H, CANVAS_W, story_request


def _ctx(request: LayoutRequest | None = None) -> LayoutContext:
    return LayoutContext(request=request or LayoutRequest(), width=CANVAS_W, height=CANVAS_H)


def test_pipeline_runs_stages():
    reg = StageRegistry()
    results = []

    def s1(ctx: LayoutContext) -> None:
        results.append("s1")

    def s2(ctx: LayoutContext) -> None:
        results.append("s2")

    reg.register(StageSpec(id="S0.01", layer=Layer.PREPARATION, fn=s1))
    reg.register(StageSpec(id="S0.02", layer=Layer.PREPARATION, fn=s2, dependencies=["S0.01"]))

    ctx = Pipeline(registry=reg).run(_ctx())

    assert results == ["s1", "s2"]
    assert {"S0.01", "S0.02"} <= ctx.completed_stages


def test_pipeline_handles_errors():
    reg = StageRegistry()

    def fail(ctx: LayoutContext) -> None:
        raise ValueError("test error")

    reg.register(StageSpec(id="S0.01", layer=Layer.PREPARATION, fn=fail))

    ctx = Pipeline(registry=reg).run(_ctx())

    assert "S0.01" in ctx.errors
    assert "test error" in ctx.errors["S0.01"]


def test_run_layer_only_runs_that_layer():
    reg = StageRegistry()
    seen = []
    reg.register(StageSpec(id="S0.01", layer=Layer.PREPARATION, fn=lambda c: seen.append(0)))
    reg.register(StageSpec(id="S4.01", layer=Layer.RENDERING, fn=lambda c: seen.append(4)))

    Pipeline(registry=reg).run_layer(_ctx(), Layer.RENDERING)
    assert seen == [4]


def test_full_pipeline_produces_scene():
    ctx = create_pipeline().run(_ctx(story_request()))
    assert ctx.errors == {}
    assert ctx.scene is not None
    assert len(ctx.scene.nodes) == 8
    assert len(ctx.scene.edges) == 7


def test_second_run_reuses_cached_layout():
    pipeline = create_pipeline()
    request = story_request()
    first = pipeline.run(_ctx(request))
    second = pipeline.run(_ctx(request))

    assert not first.layout_from_cache
    assert second.layout_from_cache
    assert "S1.01" not in second.completed_stages
    assert second.base_layout is first.base_layout
    assert [(n.x, n.y) for n in second.laid_out_nodes] == [(n.x, n.y) for n in first.laid_out_nodes]


def test_display_changes_keep_the_layout_key():
    plain = story_request()
    styled = story_request(settings=LayoutSettings(
        meta_graph_display="all", show_edge_labels=True, node_color="#ff0000",
    ))
    assert layout_key(plain, CANVAS_W, CANVAS_H) == layout_key(styled, CANVAS_W, CANVAS_H)


def test_simulation_inputs_change_the_layout_key():
    base = layout_key(story_request(), CANVAS_W, CANVAS_H)
    assert layout_key(story_request(), CANVAS_W + 1, CANVAS_H) != base
    assert layout_key(story_request(orders={"A": 2, "B": 1}), CANVAS_W, CANVAS_H) != base
    assert layout_key(
        story_request(settings=LayoutSettings(layout_orientation="horizontal")), CANVAS_W, CANVAS_H,
    ) != base
    assert layout_key(story_request(sizes={"A": 5, "B": 4}), CANVAS_W, CANVAS_H) != base


def test_scatter_seed_is_part_of_the_layout_key():
    assert layout_key(story_request(), CANVAS_W, CANVAS_H, seed=1) != layout_key(
        story_request(), CANVAS_W, CANVAS_H, seed=2,
    )
    pipeline = create_pipeline()
    request = story_request()

    def seeded(seed):
        return LayoutContext(request=request, width=CANVAS_W, height=CANVAS_H, seed=seed)

    pipeline.run(seeded(1))
    assert not pipeline.run(seeded(2)).layout_from_cache
    assert pipeline.run(seeded(1)).layout_from_cache


def test_layout_cache_evicts_least_recently_used():
    cache = LayoutCache(maxsize=2)
    cache.put("a", "A")
    cache.put("b", "B")
    assert cache.get("a") == "A"
    cache.put("c", "C")
    assert "b" not in cache
    assert "a" in cache
    assert len(cache) == 2
