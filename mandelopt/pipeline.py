from __future__ import annotations

import io
import os
import time
from typing import Any, Dict, Optional, Tuple

import numpy as np
from PIL import Image

from mandelopt.colormap import apply_colormap, colormap
from mandelopt.engine import render_request
from mandelopt.renderers.adaptive import BandLayout
from mandelopt.request import RenderRequest
from mandelopt.resample import antialias_mode, resample
from mandelopt.util.logging_setup import get_logger


def _ensure_dir(path: str) -> None:
    if path:
        os.makedirs(path, exist_ok=True)


def render_rgb(
    request: RenderRequest,
    *,
    antialias: int = 0,
    workers: Optional[int] = None,
    layout: Optional[BandLayout] = None,
    colors_per_iteration: int = 10,
) -> Tuple[np.ndarray, Dict[str, Any]]:
    """Render, colorize and (optionally) antialias. Returns the RGB array and render stats."""
    logger = get_logger()
    factor, kernel = antialias_mode(antialias)
    source = request.supersampled(factor) if factor > 1 else request

    start = time.perf_counter()
    values = render_request(source, workers=workers, layout=layout)
    elapsed = time.perf_counter() - start

    cmap = colormap(max(2, request.max_iterations * colors_per_iteration))
    rgb = apply_colormap(values, source.width, source.height, cmap)
    if factor > 1:
        logger.debug("Resampling %sx%s by %s", source.width, source.height, factor)
        rgb = resample(rgb, factor, kernel)

    stats = {
        "render_seconds": round(elapsed, 6),
        "antialias": antialias,
        "supersampling": factor,
        "in_set_fraction": float(np.count_nonzero(values == 0)) / values.size,
    }
    return rgb, stats


def render_image(request: RenderRequest, **kwargs) -> Image.Image:
    rgb, _ = render_rgb(request, **kwargs)
    return Image.fromarray(rgb)


def save_png(img: Image.Image, path: str) -> str:
    _ensure_dir(os.path.dirname(path))
    img.save(path, format="PNG", optimize=True)
    return path


def encode_png(img: Image.Image) -> bytes:
    out = io.BytesIO()
    img.save(out, format="PNG", optimize=True)
    return out.getvalue()
