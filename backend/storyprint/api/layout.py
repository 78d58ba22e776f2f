"""POST /api/layout — run the print layout pipeline."""

from __future__ import annotations

import logging
import time

from fastapi import APIRouter, Depends
from fastapi.responses import Response

from storyprint.dependencies import get_pipeline
from storyprint.engine.callbacks import LayoutCallbacks
from storyprint.engine.pipeline import Pipeline
from storyprint.engine.session import LayoutSession
from storyprint.models.layout_settings import Point
from storyprint.models.page import (
    MarginSettings,
    PageOrientation,
    PageSizeSettings,
    PageSizeTemplate,
    canvas_size,
)
from storyprint.models.requests import LayoutRequest
from storyprint.models.responses import LayoutResponse, PageSizeResponse
from storyprint.svg.serializer import serialize_scene

logger = logging.getLogger(__name__)

router = APIRouter()


def _run(req: LayoutRequest, pipeline: Pipeline) -> tuple[LayoutSession, dict[str, Point]]:
    positions: dict[str, Point] = {}
    callbacks = LayoutCallbacks(community_positions_calculated=positions.update)
    session = LayoutSession(req, callbacks=callbacks, pipeline=pipeline)
    return session, positions


@router.post("/layout", response_model=LayoutResponse)
def layout(req: LayoutRequest, pipeline: Pipeline = Depends(get_pipeline)) -> LayoutResponse:
    start = time.perf_counter()
    session, positions = _run(req, pipeline)
    ctx = session.context
    elapsed = (time.perf_counter() - start) * 1000

    # A cache hit skips the solver, so fall back to the recomputed centers
    if not positions:
        positions = {cid: Point(x=x, y=y) for cid, (x, y) in ctx.base_centers.items()}

    return LayoutResponse(
        scene=ctx.scene,
        community_positions=positions,
        solver_iterations=ctx.base_layout.iterations if ctx.base_layout else 0,
        processing_time_ms=round(elapsed, 1),
        stages_completed=len(ctx.completed_stages),
        stages_failed=len(ctx.errors),
        errors=ctx.errors,
    )


@router.post("/layout/svg")
def layout_svg(req: LayoutRequest, pipeline: Pipeline = Depends(get_pipeline)) -> Response:
    session, _ = _run(req, pipeline)
    scene = session.scene
    if scene is None:
        logger.warning("Layout produced no scene: %s", session.context.errors)
        return Response(status_code=500, content="layout failed")
    return Response(
        content=serialize_scene(scene, title=req.workspace_title or ""),
        media_type="image/svg+xml",
    )


@router.get("/page-size", response_model=PageSizeResponse)
def page_size(
    template: PageSizeTemplate = PageSizeTemplate.A3,
    orientation: PageOrientation = PageOrientation.PORTRAIT,
    margin: float = 10.0,
) -> PageSizeResponse:
    width, height = canvas_size(
        PageSizeSettings(template=template, orientation=orientation),
        MarginSettings(top=margin, right=margin, bottom=margin, left=margin),
    )
    return PageSizeResponse(width=width, height=height)
