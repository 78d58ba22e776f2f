"""FastAPI dependency injection."""

from __future__ import annotations

from functools import lru_cache

from storyprint.config import settings
from storyprint.engine.pipeline import Pipeline, create_pipeline


@lru_cache(maxsize=1)
def get_pipeline() -> Pipeline:
    """Process-wide pipeline so repeated layouts of the same graph hit the cache."""
    pipeline = create_pipeline(cache_size=settings.layout_cache_size)
    pipeline.config.solver.seed = settings.solver_seed
    return pipeline
