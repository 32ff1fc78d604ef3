"""Boundary-tracing subdivision renderer.

The Mandelbrot set is connected and has no holes, so when every pixel on the
border of a square evaluates to 0 the pixels inside it must be 0 as well. The
renderer walks a tile's circumference and only descends into the interior when
some border pixel escaped. Skipped interiors keep the zero the canvas was
allocated with.
"""
from __future__ import annotations

from concurrent.futures import Executor
from typing import Iterable, List, Optional

from mandelopt.kernel import fill_rect, walk_circumference
from mandelopt.renderers.canvas import Canvas, Tile, run_all, square_cover


def subdivide(tile: Tile) -> List[Tile]:
    """Interior sub-tiles of a tile of size >= 5.

    Tiles that can't be split evenly by 2 or 3 are not covered completely: the
    last interior row and column are left for ``render_strips``.
    """
    x, y = tile.x + 1, tile.y + 1
    inner = tile.size - 2
    if inner % 2 == 0:
        parts, step = 2, inner // 2
    elif inner % 3 == 0:
        parts, step = 3, inner // 3
    else:
        parts, step = 2, (inner - 1) // 2
    return [Tile(x + i * step, y + j * step, step) for j in range(parts) for i in range(parts)]


def _needs_strips(tile: Tile) -> bool:
    inner = tile.size - 2
    return inner % 2 != 0 and inner % 3 != 0


def render_strips(canvas: Canvas, tile: Tile) -> None:
    """Render the last interior row and column of a tile as 1-pixel strips."""
    # The interior spans offsets 1..inner, so its last row/column sits at offset inner.
    inner = tile.size - 2
    args = canvas.kernel_args()
    fill_rect(canvas.buffer, canvas.stride, tile.x + 1, tile.y + inner, inner, 1, *args)
    fill_rect(canvas.buffer, canvas.stride, tile.x + inner, tile.y + 1, 1, inner - 1, *args)


def render_tile(canvas: Canvas, tile: Tile, executor: Optional[Executor] = None) -> None:
    """Fill every pixel of a square tile.

    With an executor the children of this tile are rendered on the pool; the
    recursion below them stays in the worker thread.
    """
    args = canvas.kernel_args()
    buf, stride = canvas.buffer, canvas.stride
    size = tile.size

    if size <= 2:
        fill_rect(buf, stride, tile.x, tile.y, size, size, *args)
        return

    touched = walk_circumference(buf, stride, tile.x, tile.y, size, *args)
    if not touched:
        return

    if size <= 4:
        fill_rect(buf, stride, tile.x + 1, tile.y + 1, size - 2, size - 2, *args)
        return

    if _needs_strips(tile):
        render_strips(canvas, tile)
    run_all(lambda child: render_tile(canvas, child), subdivide(tile), executor)


def render_tiles(canvas: Canvas, tiles: Iterable[Tile], executor: Optional[Executor] = None) -> None:
    """Render disjoint square tiles, spreading them over ``executor`` when given."""
    tiles = list(tiles)
    if len(tiles) == 1:
        render_tile(canvas, tiles[0], executor)
        return
    run_all(lambda tile: render_tile(canvas, tile), tiles, executor)


def render_subdivided(
    canvas: Canvas,
    x: int,
    y: int,
    width: int,
    height: int,
    executor: Optional[Executor] = None,
) -> None:
    """Render any rectangle by covering it with squares first."""
    render_tiles(canvas, square_cover(x, y, width, height), executor)
