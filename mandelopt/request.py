from __future__ import annotations

import enum
import math
from dataclasses import dataclass

import numpy as np

from mandelopt.errors import InvalidRequestError, RenderTooLargeError

# Largest buffer length (in float64 cells) numpy can address on this platform.
MAX_BUFFER_CELLS = np.iinfo(np.intp).max // np.dtype(np.float64).itemsize

# Iteration counts are unsigned 32-bit throughout the kernel.
MAX_ITERATIONS = 2**32 - 1


class Strategy(enum.IntEnum):
    """Rendering strategies. Values match the service's ``opt`` levels."""

    NONE = 1
    BULB_EXCLUSION = 2
    SUBDIVISION = 3
    BOTH = 4
    ADAPTIVE = 5

    @classmethod
    def from_level(cls, level: int) -> "Strategy":
        if level == 0:
            return cls.BOTH
        try:
            return cls(level)
        except ValueError as e:
            raise InvalidRequestError(f"Unknown strategy level: {level}") from e


def _is_int(value) -> bool:
    return isinstance(value, (int, np.integer)) and not isinstance(value, bool)


def _is_finite(value) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float, np.integer, np.floating)):
        return False
    return math.isfinite(value)


@dataclass(frozen=True)
class RenderRequest:
    """Region of the complex plane, raster size and strategy of one render."""

    width: int
    height: int
    center_re: float
    center_im: float
    pixels_per_unit: float
    max_iterations: int
    strategy: Strategy = Strategy.BOTH

    def __post_init__(self) -> None:
        for name in ("width", "height"):
            value = getattr(self, name)
            if not _is_int(value) or value < 1:
                raise InvalidRequestError(f"{name} must be an integer >= 1, got {value!r}")
        if not _is_int(self.max_iterations) or not 1 <= self.max_iterations <= MAX_ITERATIONS:
            raise InvalidRequestError(
                f"max_iterations must be an integer in 1..{MAX_ITERATIONS}, got {self.max_iterations!r}"
            )
        for name in ("center_re", "center_im"):
            if not _is_finite(getattr(self, name)):
                raise InvalidRequestError(f"{name} must be finite.")
        ppu = self.pixels_per_unit
        if not _is_finite(ppu) or ppu <= 0:
            raise InvalidRequestError(f"pixels_per_unit must be finite and > 0, got {ppu!r}")
        if not isinstance(self.strategy, Strategy):
            if not _is_int(self.strategy):
                raise InvalidRequestError(f"Unknown strategy: {self.strategy!r}")
            object.__setattr__(self, "strategy", Strategy.from_level(int(self.strategy)))
        if int(self.width) * int(self.height) > MAX_BUFFER_CELLS:
            raise RenderTooLargeError(
                f"{self.width}x{self.height} pixels exceed the addressable buffer size."
            )

    @property
    def pixel_count(self) -> int:
        return int(self.width) * int(self.height)

    def supersampled(self, factor: int) -> "RenderRequest":
        """The same view rendered with ``factor`` times as many pixels per axis."""
        return RenderRequest(
            width=self.width * factor,
            height=self.height * factor,
            center_re=self.center_re,
            center_im=self.center_im,
            pixels_per_unit=self.pixels_per_unit * factor,
            max_iterations=self.max_iterations,
            strategy=self.strategy,
        )

    def as_dict(self) -> dict:
        return {
            "width": int(self.width),
            "height": int(self.height),
            "center": [float(self.center_re), float(self.center_im)],
            "pixels_per_unit": float(self.pixels_per_unit),
            "max_iterations": int(self.max_iterations),
            "strategy": self.strategy.name,
        }
