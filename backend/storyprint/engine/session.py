"""LayoutSession — owns overrides, interaction state and the render loop.

One session per rendered print view. Every update or pointer event that
changes something re-runs the pipeline; the layout cache keeps that cheap
unless the simulation inputs changed.
"""

from __future__ import annotations

import logging

from storyprint.engine.callbacks import LayoutCallbacks
from storyprint.engine.config import EngineConfig
from storyprint.engine.context import LayoutContext
from storyprint.engine.interaction import (
    ClientRect,
    InteractionManager,
    SceneGeometry,
    ViewTransform,
)
from storyprint.engine.pipeline import Pipeline, create_pipeline
from storyprint.engine.store import OverrideStore
from storyprint.engine.targets import DragTarget
from storyprint.engine.viewport import BoundsCalculator
from storyprint.models.layout_settings import LayoutSettings
from storyprint.models.page import canvas_size
from storyprint.models.requests import LayoutRequest
from storyprint.models.scene import Scene, ViewBox

logger = logging.getLogger(__name__)


def resolve_canvas(request: LayoutRequest) -> tuple[float, float]:
    """Explicit canvas size, else the page size minus margins."""
    page_w, page_h = canvas_size(request.settings.page_size, request.settings.margins)
    width = request.width if request.width and request.width > 0 else page_w
    height = request.height if request.height and request.height > 0 else page_h
    return (float(width), float(height))


class LayoutSession:
    def __init__(
        self,
        request: LayoutRequest | None = None,
        callbacks: LayoutCallbacks | None = None,
        pipeline: Pipeline | None = None,
        config: EngineConfig | None = None,
        seed: int | None = None,
    ) -> None:
        self.pipeline = pipeline or create_pipeline(config)
        self.config = self.pipeline.config
        self.callbacks = callbacks or LayoutCallbacks()
        self.store = OverrideStore()
        self.interaction = InteractionManager(self.store, self.callbacks, self.config.interaction)
        self.bounds_calculator = BoundsCalculator(self.config.viewport)
        self.seed = seed
        self.client_rect: ClientRect | None = None
        self.request: LayoutRequest | None = None
        self.context: LayoutContext | None = None
        if request is not None:
            self.update(request)

    @property
    def scene(self) -> Scene | None:
        return self.context.scene if self.context else None

    @property
    def settings(self) -> LayoutSettings | None:
        """The request's settings with the store's persisted overrides merged in."""
        if self.request is None:
            return None
        return self.store.apply_to(self.request.settings)

    def update(self, request: LayoutRequest) -> Scene | None:
        """New inputs from the caller. Persisted overrides are reloaded from its settings."""
        if self.interaction.active:
            self.interaction.abandon()
        self.request = request
        self.store.load_settings(request.settings)
        return self.render()

    def render(self) -> Scene | None:
        if self.request is None:
            return None
        width, height = resolve_canvas(self.request)
        ctx = LayoutContext(
            request=self.request,
            width=width,
            height=height,
            config=self.config,
            overrides=self.store,
            callbacks=self.callbacks,
            bounds_calculator=self.bounds_calculator,
            seed=self.seed if self.seed is not None else self.request.seed,
        )
        self.pipeline.run(ctx)
        self.context = ctx
        return ctx.scene

    # ── Pointer input ──

    def set_client_rect(self, left: float, top: float, width: float, height: float) -> None:
        self.client_rect = ClientRect(left=left, top=top, width=width, height=height)

    def view_transform(self) -> ViewTransform:
        """Mapping for pointer events. Without a client rect, client == user units."""
        vb = (self.context.view_box if self.context else None) or ViewBox()
        rect = self.client_rect or ClientRect(left=vb.x, top=vb.y, width=vb.width, height=vb.height)
        return ViewTransform(view_box=vb, client_rect=rect)

    def geometry(self) -> SceneGeometry:
        if self.context is None:
            return SceneGeometry()
        return SceneGeometry.from_context(self.context)

    def begin_drag(self, target: DragTarget, client_x: float, client_y: float) -> bool:
        if self.context is None:
            return False
        return self.interaction.begin_drag(
            target, client_x, client_y, self.view_transform(), self.geometry(),
        )

    def begin_resize(self, target: DragTarget, client_x: float, client_y: float) -> bool:
        if self.context is None:
            return False
        return self.interaction.begin_resize(
            target, client_x, client_y, self.view_transform(), self.geometry(),
        )

    def pointer_move(self, client_x: float, client_y: float) -> Scene | None:
        """Preview the active session; None when there is nothing to move."""
        if not self.interaction.move(client_x, client_y, self.view_transform()):
            return None
        return self.render()

    def pointer_up(self, client_x: float | None = None, client_y: float | None = None) -> bool:
        committed = self.interaction.release(client_x, client_y, self.view_transform())
        self.render()
        return committed

    def abandon(self) -> None:
        self.interaction.abandon()
        self.render()
