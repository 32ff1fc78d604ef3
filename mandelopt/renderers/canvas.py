from __future__ import annotations

from concurrent.futures import Executor
from dataclasses import dataclass, replace
from typing import Callable, Iterable, List, Optional, Tuple, TypeVar

import numpy as np

from mandelopt.geometry import Viewport
from mandelopt.kernel import BulbTest
from mandelopt.util.logging_setup import get_logger

T = TypeVar("T")


@dataclass(frozen=True, eq=False)
class Canvas:
    """The buffer of one render call together with everything the kernel needs."""

    buffer: np.ndarray
    viewport: Viewport
    max_iterations: int
    tests: int = 0

    @classmethod
    def allocate(cls, viewport: Viewport, max_iterations: int, tests: int = BulbTest.NONE) -> "Canvas":
        # Zeroed: the subdivision renderer leaves skipped interiors untouched.
        buffer = np.zeros(viewport.width * viewport.height, dtype=np.float64)
        return cls(buffer=buffer, viewport=viewport, max_iterations=int(max_iterations), tests=int(tests))

    def with_tests(self, tests: int) -> "Canvas":
        return replace(self, tests=int(tests))

    @property
    def stride(self) -> int:
        return self.viewport.width

    def kernel_args(self) -> Tuple[float, float, float, int, int]:
        vp = self.viewport
        return vp.min_re, vp.max_im, vp.inc, self.max_iterations, self.tests

    def rows(self) -> np.ndarray:
        """2-D view of the buffer, shape (height, width)."""
        return self.buffer.reshape(self.viewport.height, self.viewport.width)


@dataclass(frozen=True)
class Tile:
    x: int
    y: int
    size: int


def square_cover(x: int, y: int, width: int, height: int) -> List[Tile]:
    """Split a rectangle into non-overlapping squares, largest first."""
    tiles: List[Tile] = []
    while width > 0 and height > 0:
        if width >= height:
            size = height
            count = width // size
            tiles.extend(Tile(x + i * size, y, size) for i in range(count))
            x += count * size
            width -= count * size
        else:
            size = width
            count = height // size
            tiles.extend(Tile(x, y + i * size, size) for i in range(count))
            y += count * size
            height -= count * size
    return tiles


def run_all(fn: Callable[[T], None], items: Iterable[T], executor: Optional[Executor] = None) -> None:
    """Call ``fn`` on every item, on ``executor`` when one is given.

    Items must touch disjoint parts of the buffer. When the pool refuses a
    submission the remaining items run in the calling thread.
    """
    items = list(items)
    if executor is None:
        for item in items:
            fn(item)
        return

    futures = []
    for i, item in enumerate(items):
        try:
            futures.append(executor.submit(fn, item))
        except RuntimeError as e:
            get_logger().warning(
                "Worker pool rejected a task (%s); rendering %s remaining items sequentially", e, len(items) - i
            )
            for rest in items[i:]:
                fn(rest)
            break
    for future in futures:
        future.result()
