"""StoryPrint layout engine."""

from storyprint.engine.callbacks import LayoutCallbacks
from storyprint.engine.context import LayoutContext
from storyprint.engine.pipeline import Pipeline, create_pipeline
from storyprint.engine.registry import Layer, StageRegistry, get_registry, stage
from storyprint.engine.session import LayoutSession
from storyprint.engine.targets import DragTarget, TargetKind

__all__ = [
    "DragTarget",
    "Layer",
    "LayoutCallbacks",
    "LayoutContext",
    "LayoutSession",
    "Pipeline",
    "StageRegistry",
    "TargetKind",
    "create_pipeline",
    "get_registry",
    "stage",
]
