from __future__ import annotations

import numpy as np


def colormap(size: int) -> np.ndarray:
    """Sine palette with ``size`` RGB entries; entry 0 is black (set members)."""
    if size < 2:
        raise ValueError("A colormap needs at least 2 entries.")
    t = np.arange(size, dtype=np.float64) / size
    table = np.stack(
        [
            np.sin(t * 2 * np.pi) + 1,
            np.sin(t * 3 * np.pi) + 1,
            np.sin(t * 4 * np.pi) + 1,
        ],
        axis=1,
    ) * 127.5
    table = np.floor(table).astype(np.uint8)
    table[0] = (0, 0, 0)
    return table


def apply_colormap(values: np.ndarray, width: int, height: int, cmap: np.ndarray) -> np.ndarray:
    """Map a flat buffer of normalized escape values to an (height, width, 3) RGB array."""
    values = np.asarray(values, dtype=np.float64)
    size = len(cmap)
    index = np.floor(values * size).astype(np.int64)
    index = np.clip(index, 0, size - 1)
    # Escaped points must never come out black.
    index[(index == 0) & (values != 0)] = 1
    return cmap[index].reshape(height, width, 3)
