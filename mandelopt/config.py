import json
import math
from typing import Any, Dict, Optional

from mandelopt.errors import ConfigError
from mandelopt.renderers.adaptive import BandLayout
from mandelopt.request import Strategy

DEFAULTS: Dict[str, Any] = {
    "width": 512,
    "height": 512,
    "center": [-0.75, 0.0],
    "pixels_per_unit": 150.0,
    "max_iter": 300,
    "strategy": int(Strategy.BOTH),
    "antialias": 0,
    "max_size": 10000,
    "max_iter_cap": 100000,
    "colors_per_iteration": 10,
    "workers": None,
    "host": "127.0.0.1",
    "port": 27706,
    "output": "mandelbrot.png",
    "bands": None,
}


def load_config(config_path: Optional[str]) -> Dict[str, Any]:
    cfg = dict(DEFAULTS)
    if config_path:
        with open(config_path, "r", encoding="utf-8") as f:
            loaded = json.load(f)
        if not isinstance(loaded, dict):
            raise ConfigError("Config JSON must be an object.")
        cfg.update(loaded)
    return cfg


def _positive_int(cfg: Dict[str, Any], key: str) -> int:
    try:
        value = int(cfg[key])
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{key} must be an integer.") from e
    if value <= 0:
        raise ConfigError(f"{key} must be positive.")
    return value


def normalise_config(cfg: Dict[str, Any]) -> Dict[str, Any]:
    required = ["width", "height", "center", "pixels_per_unit", "max_iter", "strategy"]
    for r in required:
        if r not in cfg:
            raise ConfigError(f"Missing config field: {r}")

    out = dict(cfg)
    for key in ("width", "height", "max_iter", "max_size", "max_iter_cap", "colors_per_iteration", "port"):
        out[key] = _positive_int(cfg, key)
    if out["width"] > out["max_size"] or out["height"] > out["max_size"]:
        raise ConfigError("width/height must not exceed max_size.")
    if out["max_iter"] > out["max_iter_cap"]:
        raise ConfigError("max_iter must not exceed max_iter_cap.")

    center = cfg["center"]
    if not (isinstance(center, (list, tuple)) and len(center) == 2):
        raise ConfigError("center must be [re, im].")
    try:
        out["center"] = [float(center[0]), float(center[1])]
        out["pixels_per_unit"] = float(cfg["pixels_per_unit"])
    except (TypeError, ValueError) as e:
        raise ConfigError("center and pixels_per_unit must be numbers.") from e
    if not all(math.isfinite(v) for v in out["center"]):
        raise ConfigError("center must be finite.")
    if not math.isfinite(out["pixels_per_unit"]) or out["pixels_per_unit"] <= 0:
        raise ConfigError("pixels_per_unit must be positive.")

    try:
        out["strategy"] = int(Strategy.from_level(int(cfg["strategy"])))
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid strategy: {cfg['strategy']!r}") from e

    out["antialias"] = int(cfg.get("antialias", 0))
    if out["antialias"] not in range(5):
        raise ConfigError("antialias must be between 0 and 4.")

    workers = cfg.get("workers")
    out["workers"] = None if workers is None else _positive_int(cfg, "workers")
    out["host"] = str(cfg.get("host", DEFAULTS["host"]))
    out["output"] = str(cfg.get("output", DEFAULTS["output"]))
    out["bands"] = cfg.get("bands")
    band_layout_from_config(out)
    return out


def band_layout_from_config(cfg: Dict[str, Any]) -> BandLayout:
    bands = cfg.get("bands")
    if not bands:
        return BandLayout()
    if not isinstance(bands, dict):
        raise ConfigError("bands must be an object.")
    kwargs: Dict[str, Any] = {}
    try:
        for key in ("far_im", "core_im", "outer_split_re", "mirror_tolerance"):
            if key in bands:
                kwargs[key] = float(bands[key])
        if "core_intervals" in bands:
            kwargs["core_intervals"] = tuple((float(edge), int(tests)) for edge, tests in bands["core_intervals"])
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid bands configuration: {e}") from e
    unknown = set(bands) - {"far_im", "core_im", "outer_split_re", "mirror_tolerance", "core_intervals"}
    if unknown:
        raise ConfigError(f"Unknown bands fields: {sorted(unknown)}")
    return BandLayout(**kwargs)
