"""Band scheduler.

The image is cut into horizontal bands by the distance of their rows from the
real axis, and each band gets the cheapest strategy that suits the part of the
set it can contain:

* far (|im| > far_im): nothing but thin filaments, every pixel evaluated
  directly without bulb tests;
* outer (core_im < |im| <= far_im): the empty left side directly, the rest with
  the subdivision renderer;
* core (|im| <= core_im): split along the real axis into intervals, each paired
  with the bulb test that matches it and rendered with subdivision.

The set is symmetric under conjugation, so once the upper core band is done the
lower one is copied row by row where the two overlap.
"""
from __future__ import annotations

import math
from concurrent.futures import Executor
from dataclasses import dataclass
from typing import List, NamedTuple, Optional, Tuple

from mandelopt.errors import ConfigError
from mandelopt.geometry import Viewport
from mandelopt.kernel import BulbTest
from mandelopt.renderers.canvas import Canvas
from mandelopt.renderers.direct import render_direct
from mandelopt.renderers.subdivision import render_subdivided
from mandelopt.util.logging_setup import get_logger

DEFAULT_CORE_INTERVALS: Tuple[Tuple[float, int], ...] = (
    (-2.0, BulbTest.NONE),
    (-1.25, BulbTest.NONE),
    (-0.75, BulbTest.PERIOD2),
    (0.25, BulbTest.CARDIOID),
    (math.inf, BulbTest.NONE),
)


@dataclass(frozen=True)
class BandLayout:
    """Hand-tuned cutoffs of the band scheduler.

    ``core_intervals`` lists (right edge on the real axis, bulb tests) pairs in
    ascending order; the first interval starts at -inf, the last must end at +inf.
    """

    far_im: float = 1.2
    core_im: float = 1.0
    outer_split_re: float = -0.6
    core_intervals: Tuple[Tuple[float, int], ...] = DEFAULT_CORE_INTERVALS
    mirror_tolerance: float = 1e-6

    def __post_init__(self) -> None:
        if not 0 <= self.core_im <= self.far_im:
            raise ConfigError("Band cutoffs must satisfy 0 <= core_im <= far_im.")
        if not self.core_intervals:
            raise ConfigError("core_intervals must not be empty.")
        edges = [float(edge) for edge, _ in self.core_intervals]
        if any(b <= a for a, b in zip(edges, edges[1:])):
            raise ConfigError("core_intervals edges must be strictly ascending.")
        if edges[-1] != math.inf:
            raise ConfigError("The last core interval must extend to +inf.")
        if self.mirror_tolerance < 0:
            raise ConfigError("mirror_tolerance must be >= 0.")


@dataclass(frozen=True)
class RenderJob:
    x: int
    y: int
    width: int
    height: int
    tests: int
    subdivide: bool


class Mirror(NamedTuple):
    """Rows [start, stop) are copies of rows ``axis2 - y``."""

    start: int
    stop: int
    axis2: int


class Schedule(NamedTuple):
    jobs: List[RenderJob]
    mirror: Optional[Mirror]
    residual: List[RenderJob]


def _job(x0: int, x1: int, y0: int, y1: int, tests: int, subdivide: bool) -> List[RenderJob]:
    if x1 <= x0 or y1 <= y0:
        return []
    return [RenderJob(x0, y0, x1 - x0, y1 - y0, int(tests), subdivide)]


def far_jobs(viewport: Viewport, y0: int, y1: int) -> List[RenderJob]:
    return _job(0, viewport.width, y0, y1, BulbTest.NONE, False)


def outer_jobs(viewport: Viewport, layout: BandLayout, y0: int, y1: int) -> List[RenderJob]:
    split = viewport.column_of(layout.outer_split_re)
    return _job(0, split, y0, y1, BulbTest.NONE, False) + _job(split, viewport.width, y0, y1, BulbTest.NONE, True)


def core_jobs(viewport: Viewport, layout: BandLayout, y0: int, y1: int) -> List[RenderJob]:
    jobs: List[RenderJob] = []
    left = 0
    for edge, tests in layout.core_intervals:
        right = viewport.column_of(edge)
        jobs += _job(left, right, y0, y1, tests, True)
        left = max(left, right)
    return jobs


def find_mirror(viewport: Viewport, layout: BandLayout, upper: Tuple[int, int], lower: Tuple[int, int]) -> Optional[Mirror]:
    """Lower core rows that are exact reflections of rendered upper core rows.

    Only used when the real axis falls on a row or halfway between two rows.
    """
    axis2_exact = 2 * viewport.max_im * viewport.pixels_per_unit
    if not math.isfinite(axis2_exact):
        return None
    axis2 = int(math.floor(axis2_exact + 0.5))
    if abs(axis2_exact - axis2) > layout.mirror_tolerance:
        return None
    a0, a1 = upper
    b0, b1 = lower
    start = max(b0, axis2 - a1 + 1)
    stop = min(b1, axis2 - a0 + 1)
    if stop <= start:
        return None
    return Mirror(start, stop, axis2)


def schedule(viewport: Viewport, layout: BandLayout) -> Schedule:
    far_top = viewport.row_of(layout.far_im)
    core_top = viewport.row_of(layout.core_im)
    axis = viewport.row_of(0.0)
    core_bottom = viewport.row_of(-layout.core_im)
    far_bottom = viewport.row_of(-layout.far_im)

    jobs = (
        far_jobs(viewport, 0, far_top)
        + outer_jobs(viewport, layout, far_top, core_top)
        + core_jobs(viewport, layout, core_top, axis)
        + outer_jobs(viewport, layout, core_bottom, far_bottom)
        + far_jobs(viewport, far_bottom, viewport.height)
    )

    mirror = find_mirror(viewport, layout, (core_top, axis), (axis, core_bottom))
    if mirror is None:
        residual = core_jobs(viewport, layout, axis, core_bottom)
    else:
        residual = core_jobs(viewport, layout, axis, mirror.start) + core_jobs(viewport, layout, mirror.stop, core_bottom)
    return Schedule(jobs, mirror, residual)


def drain(canvas: Canvas, jobs: List[RenderJob], executor: Optional[Executor] = None) -> None:
    logger = get_logger()
    for job in jobs:
        logger.debug(
            "Job %sx%s at (%s, %s) subdivide=%s tests=%s: re [%s, %s] im [%s, %s]",
            job.width, job.height, job.x, job.y, job.subdivide, job.tests,
            *canvas.viewport.bounds(job.x, job.y, job.width, job.height),
        )
        target = canvas.with_tests(job.tests)
        if job.subdivide:
            render_subdivided(target, job.x, job.y, job.width, job.height, executor)
        else:
            render_direct(target, job.x, job.y, job.width, job.height, executor)


def apply_mirror(canvas: Canvas, mirror: Mirror) -> None:
    rows = canvas.rows()
    start, stop, axis2 = mirror
    rows[start:stop] = rows[axis2 - stop + 1:axis2 - start + 1][::-1]


def render_adaptive(canvas: Canvas, layout: Optional[BandLayout] = None, executor: Optional[Executor] = None) -> None:
    logger = get_logger()
    plan = schedule(canvas.viewport, layout or BandLayout())
    logger.debug(
        "Adaptive schedule: %s jobs, mirror=%s, %s residual jobs",
        len(plan.jobs), plan.mirror, len(plan.residual),
    )
    drain(canvas, plan.jobs, executor)
    if plan.mirror is not None:
        apply_mirror(canvas, plan.mirror)
    drain(canvas, plan.residual, executor)
