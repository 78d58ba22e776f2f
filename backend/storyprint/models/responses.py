"""API response models."""

from __future__ import annotations

from pydantic import BaseModel, Field

from storyprint.models.layout_settings import Point
from storyprint.models.scene import Scene


class HealthResponse(BaseModel):
    status: str = "ok"
    version: str = "0.1.0"
    stages_registered: int = 0


class LayoutResponse(BaseModel):
    scene: Scene
    community_positions: dict[str, Point] = Field(default_factory=dict)
    solver_iterations: int = 0
    processing_time_ms: float = 0.0
    stages_completed: int = 0
    stages_failed: int = 0
    errors: dict[str, str] = Field(default_factory=dict)


class PageSizeResponse(BaseModel):
    width: float
    height: float
