from __future__ import annotations

import time
from concurrent.futures import Executor, ThreadPoolExecutor
from typing import Optional

import numpy as np

from mandelopt.geometry import Viewport
from mandelopt.kernel import BulbTest
from mandelopt.renderers.adaptive import BandLayout, render_adaptive
from mandelopt.renderers.canvas import Canvas
from mandelopt.renderers.direct import render_direct
from mandelopt.renderers.subdivision import render_subdivided
from mandelopt.request import RenderRequest, Strategy
from mandelopt.util.logging_setup import get_logger


def _dispatch(canvas: Canvas, strategy: Strategy, layout: Optional[BandLayout], executor: Optional[Executor]) -> None:
    vp = canvas.viewport
    if strategy == Strategy.NONE:
        render_direct(canvas.with_tests(BulbTest.NONE), 0, 0, vp.width, vp.height, executor)
    elif strategy == Strategy.BULB_EXCLUSION:
        render_direct(canvas.with_tests(BulbTest.BOTH), 0, 0, vp.width, vp.height, executor)
    elif strategy == Strategy.SUBDIVISION:
        render_subdivided(canvas.with_tests(BulbTest.NONE), 0, 0, vp.width, vp.height, executor)
    elif strategy == Strategy.BOTH:
        render_subdivided(canvas.with_tests(BulbTest.BOTH), 0, 0, vp.width, vp.height, executor)
    elif strategy == Strategy.ADAPTIVE:
        render_adaptive(canvas, layout, executor)
    else:
        raise ValueError(f"Unknown strategy: {strategy!r}")


def render_request(
    request: RenderRequest,
    *,
    workers: Optional[int] = None,
    layout: Optional[BandLayout] = None,
) -> np.ndarray:
    """Render a validated request into a flat, row-major float64 buffer."""
    logger = get_logger()
    logger.info(
        "Rendering %sx%s at (%s, %s) ppu=%s max_iter=%s strategy=%s",
        request.width, request.height, request.center_re, request.center_im,
        request.pixels_per_unit, request.max_iterations, request.strategy.name,
    )
    start = time.perf_counter()

    canvas = Canvas.allocate(Viewport.from_request(request), request.max_iterations)
    if workers is not None and workers > 1:
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="mandelopt") as pool:
            _dispatch(canvas, request.strategy, layout, pool)
    else:
        _dispatch(canvas, request.strategy, layout, None)

    logger.info("Render done: %s pixels in %.3fs", request.pixel_count, time.perf_counter() - start)
    return canvas.buffer


def render(
    width: int,
    height: int,
    center_re: float,
    center_im: float,
    pixels_per_unit: float,
    max_iterations: int,
    strategy: Strategy = Strategy.BOTH,
    *,
    workers: Optional[int] = None,
    layout: Optional[BandLayout] = None,
) -> np.ndarray:
    request = RenderRequest(
        width=width,
        height=height,
        center_re=center_re,
        center_im=center_im,
        pixels_per_unit=pixels_per_unit,
        max_iterations=max_iterations,
        strategy=strategy,
    )
    return render_request(request, workers=workers, layout=layout)
