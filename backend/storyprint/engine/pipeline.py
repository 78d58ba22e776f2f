"""Pipeline orchestrator — runs stages in dependency order with change-detection gating."""

from __future__ import annotations

import importlib
import logging
import time

from storyprint.engine.cache import LayoutCache, layout_key
from storyprint.engine.config import EngineConfig
from storyprint.engine.context import LayoutContext
from storyprint.engine.registry import Layer, StageRegistry, get_registry

logger = logging.getLogger(__name__)

# Modules whose import registers the stages
STAGE_MODULES = (
    "storyprint.engine.graph_prep",
    "storyprint.engine.planner",
    "storyprint.engine.solver",
    "storyprint.engine.overrides",
    "storyprint.engine.overlays",
    "storyprint.engine.viewport",
    "storyprint.engine.renderer",
)

# Stages whose output is captured by a cached BaseLayout
SIMULATION_STAGES = {
    "S0.02",  # Initial scatter
    "S0.03",  # Community anchor planning
    "S1.01",  # Force simulation
}


def register_stages() -> int:
    """Import every stage module so its decorators run. Returns the stage count."""
    for module in STAGE_MODULES:
        importlib.import_module(module)
    return get_registry().count


class Pipeline:
    """Orchestrates the layout pipeline."""

    def __init__(
        self,
        registry: StageRegistry | None = None,
        config: EngineConfig | None = None,
        cache: LayoutCache | None = None,
    ) -> None:
        self.registry = registry or get_registry()
        self.config = config or EngineConfig()
        self.cache = cache if cache is not None else LayoutCache()

    def run(self, ctx: LayoutContext) -> LayoutContext:
        """Run the full pipeline on the given context."""
        start = time.perf_counter()

        skip_ids = self._adaptive_gate(ctx)

        all_specs = self.registry.all()
        requested = {s.id for s in all_specs} - skip_ids
        ordered = self.registry.resolve_order(requested, skip_ids)

        logger.info(
            "Pipeline: %d stages queued (%d skipped)",
            len(ordered),
            len(skip_ids),
        )

        for spec in ordered:
            t0 = time.perf_counter()
            try:
                spec.fn(ctx)
                ctx.completed_stages.add(spec.id)
                elapsed = (time.perf_counter() - t0) * 1000
                ctx.timings_ms[spec.id] = elapsed
                logger.debug("  %s completed in %.1fms", spec.id, elapsed)
            except Exception as e:
                ctx.errors[spec.id] = str(e)
                logger.warning("  %s FAILED: %s", spec.id, e)

        if (
            not ctx.layout_from_cache
            and ctx.base_layout is not None
            and "S1.01" in ctx.completed_stages
        ):
            self.cache.put(ctx.layout_key, ctx.base_layout)

        total = (time.perf_counter() - start) * 1000
        logger.info(
            "Pipeline complete: %d/%d stages in %.0fms",
            len(ctx.completed_stages),
            len(ordered),
            total,
        )
        return ctx

    def run_layer(self, ctx: LayoutContext, layer: Layer) -> LayoutContext:
        """Run only stages in a specific layer."""
        specs = self.registry.get_layer(layer)
        for spec in specs:
            try:
                spec.fn(ctx)
                ctx.completed_stages.add(spec.id)
            except Exception as e:
                ctx.errors[spec.id] = str(e)
                logger.warning("  %s FAILED: %s", spec.id, e)
        return ctx

    def _adaptive_gate(self, ctx: LayoutContext) -> set[str]:
        """Determine which stages to skip.

        The simulation only depends on graph, community map, canvas size,
        narrative order, orientation and the scatter seed. When a layout for
        the same key is cached, scatter, planning and solving are skipped and
        the cached BaseLayout feeds reconciliation directly.
        """
        seed = ctx.seed if ctx.seed is not None else ctx.config.solver.seed
        ctx.layout_key = layout_key(ctx.request, ctx.width, ctx.height, seed)
        cached = self.cache.get(ctx.layout_key)
        if cached is None:
            ctx.layout_from_cache = False
            return set()

        ctx.base_layout = cached
        ctx.anchors = dict(cached.anchors)
        ctx.directed = cached.directed
        ctx.layout_from_cache = True
        logger.debug("Layout cache hit %s", ctx.layout_key[:12])
        return set(SIMULATION_STAGES)


def create_pipeline(
    config: EngineConfig | None = None,
    cache_size: int = 8,
) -> Pipeline:
    """Factory function for creating a pipeline instance with all stages registered."""
    register_stages()
    return Pipeline(config=config, cache=LayoutCache(cache_size))
