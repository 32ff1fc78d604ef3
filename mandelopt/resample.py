"""Downsampling of supersampled RGB renders for antialiasing."""
from __future__ import annotations

from functools import lru_cache
from typing import Callable, Dict, Optional, Tuple

import numpy as np

from mandelopt.errors import ResampleError


def _frozen(kernel: np.ndarray) -> np.ndarray:
    kernel = kernel / kernel.sum()
    kernel.setflags(write=False)
    return kernel


def _offsets(n: int) -> np.ndarray:
    return np.arange(n, dtype=np.float64) - (n - 1) / 2.0


@lru_cache(maxsize=None)
def gaussian_kernel(n: int, sigma: Optional[float] = None) -> np.ndarray:
    """Discretized 2-D Gaussian, normalized to sum 1. ``sigma`` defaults to n/3."""
    if n < 1:
        raise ResampleError("Kernel size must be >= 1.")
    if sigma is None:
        sigma = n / 3.0
    if sigma <= 0:
        raise ResampleError("sigma must be > 0.")
    d = _offsets(n)
    g = np.exp(-(d * d) / (2.0 * sigma * sigma))
    return _frozen(np.outer(g, g))


def mitchell(x: np.ndarray, b: float, c: float) -> np.ndarray:
    """1-D Mitchell-Netravali cubic with support [-2, 2]."""
    x = np.abs(x)
    x2 = x * x
    x3 = x2 * x
    near = ((12 - 9 * b - 6 * c) * x3 + (-18 + 12 * b + 6 * c) * x2 + (6 - 2 * b)) / 6.0
    far = ((-b - 6 * c) * x3 + (6 * b + 30 * c) * x2 + (-12 * b - 48 * c) * x + (8 * b + 24 * c)) / 6.0
    return np.where(x < 1, near, np.where(x < 2, far, 0.0))


@lru_cache(maxsize=None)
def mitchell_kernel(n: int, b: float = 1 / 3, c: float = 1 / 3) -> np.ndarray:
    """Separable Mitchell-Netravali kernel sampled across its support, normalized to sum 1."""
    if n < 1:
        raise ResampleError("Kernel size must be >= 1.")
    if n == 1:
        return _frozen(np.ones((1, 1)))
    # Spread the n samples evenly over (-2, 2).
    m = mitchell(_offsets(n) * (4.0 / n), b, c)
    return _frozen(np.outer(m, m))


def resample(image: np.ndarray, factor: int, kernel: np.ndarray) -> np.ndarray:
    """Shrink ``image`` by ``factor`` per axis with a factor x factor convolution kernel.

    image: (height, width, channels) uint8 array with both sides divisible by factor.
    Every output pixel is the weighted sum of its source block, rounded to the
    nearest integer and clipped into 0..255.
    """
    if factor < 1 or int(factor) != factor:
        raise ResampleError(f"factor must be a positive integer, got {factor!r}")
    factor = int(factor)
    if image.ndim == 2:
        image = image[:, :, np.newaxis]
    if image.ndim != 3:
        raise ResampleError(f"Expected an (height, width, channels) image, got shape {image.shape}")
    height, width, channels = image.shape
    if height % factor or width % factor:
        raise ResampleError(f"Image size {width}x{height} is not divisible by {factor}.")
    kernel = np.asarray(kernel, dtype=np.float64)
    if kernel.shape != (factor, factor):
        raise ResampleError(f"Kernel shape {kernel.shape} does not match factor {factor}.")
    if factor == 1:
        return image.copy()

    blocks = image.reshape(height // factor, factor, width // factor, factor, channels).astype(np.float64)
    out = np.einsum("yixjc,ij->yxc", blocks, kernel)
    return np.clip(np.rint(out), 0, 255).astype(np.uint8)


KernelFactory = Callable[[], np.ndarray]

# Antialiasing levels offered by the image service: level -> (factor, kernel).
ANTIALIAS_MODES: Dict[int, Tuple[int, Optional[KernelFactory]]] = {
    0: (1, None),
    1: (3, lambda: gaussian_kernel(3)),
    2: (3, lambda: mitchell_kernel(3)),
    3: (5, lambda: gaussian_kernel(5)),
    4: (5, lambda: mitchell_kernel(5)),
}


def antialias_mode(level: int) -> Tuple[int, Optional[np.ndarray]]:
    try:
        factor, make_kernel = ANTIALIAS_MODES[level]
    except KeyError as e:
        raise ResampleError(f"Unknown antialias level: {level}") from e
    return factor, (make_kernel() if make_kernel else None)
