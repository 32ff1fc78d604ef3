from __future__ import annotations

import argparse
import logging
import os
import subprocess
from typing import Optional

from PIL import Image

from mandelopt.config import band_layout_from_config, load_config, normalise_config
from mandelopt.errors import ConfigError, InvalidRequestError
from mandelopt.pipeline import render_rgb, save_png
from mandelopt.request import RenderRequest, Strategy
from mandelopt.server import serve
from mandelopt.util.logging_setup import (
    configure_root_logging,
    create_log_queue,
    get_logger,
    route_through_queue,
    start_queue_listener,
)
from mandelopt.util.manifest import build_manifest, write_manifest

def _git_commit() -> Optional[str]:
    try:
        r = subprocess.run(["git", "rev-parse", "HEAD"], capture_output=True, text=True, check=True)
        return r.stdout.strip()
    except (OSError, subprocess.CalledProcessError):
        return None

def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="mandelopt", description="Mandelbrot set renderer with boundary-tracing subdivision.")
    p.add_argument("--config", type=str, default=None, help="Path to config JSON. If omitted, built-in defaults are used.")
    p.add_argument("--log-level", type=str, default="INFO", choices=["DEBUG","INFO","WARNING","ERROR"], help="Log level.")
    p.add_argument("--log-file", type=str, default="", help="Log file path (rotating). Empty disables file logging.")
    sub = p.add_subparsers(dest="cmd", required=True)

    r = sub.add_parser("render", help="Render one image to a PNG file.")
    r.add_argument("--width", type=int, default=None, help="Image width in pixels.")
    r.add_argument("--height", type=int, default=None, help="Image height in pixels.")
    r.add_argument("--re", type=float, default=None, help="Real part of the image center.")
    r.add_argument("--im", type=float, default=None, help="Imaginary part of the image center.")
    r.add_argument("--ppu", type=float, default=None, help="Pixels per unit of the complex plane (zoom).")
    r.add_argument("--max-iter", type=int, default=None, help="Iteration cap.")
    r.add_argument("--strategy", type=str, default=None, choices=[s.name.lower() for s in Strategy], help="Rendering strategy.")
    r.add_argument("--antialias", type=int, default=None, choices=range(5), help="Antialiasing level 0-4.")
    r.add_argument("--workers", type=int, default=None, help="Worker threads for one render.")
    r.add_argument("--output", type=str, default=None, help="Output PNG path.")
    r.add_argument("--manifest", action="store_true", help="Write a run manifest JSON next to the image.")

    s = sub.add_parser("serve", help="Serve rendered images over HTTP.")
    s.add_argument("--host", type=str, default=None, help="Bind address (defaults to config.host).")
    s.add_argument("--port", type=int, default=None, help="Port (defaults to config.port).")

    return p

def _apply_render_overrides(cfg: dict, args: argparse.Namespace) -> dict:
    cfg = dict(cfg)
    for arg, key in (("width", "width"), ("height", "height"), ("ppu", "pixels_per_unit"),
                     ("max_iter", "max_iter"), ("antialias", "antialias"), ("workers", "workers"), ("output", "output")):
        value = getattr(args, arg)
        if value is not None:
            cfg[key] = value
    if args.re is not None or args.im is not None:
        re, im = cfg["center"]
        cfg["center"] = [args.re if args.re is not None else re, args.im if args.im is not None else im]
    if args.strategy is not None:
        cfg["strategy"] = int(Strategy[args.strategy.upper()])
    return cfg

def _render(cfg: dict, write_run_manifest: bool) -> None:
    logger = get_logger()
    request = RenderRequest(
        width=cfg["width"],
        height=cfg["height"],
        center_re=cfg["center"][0],
        center_im=cfg["center"][1],
        pixels_per_unit=cfg["pixels_per_unit"],
        max_iterations=cfg["max_iter"],
        strategy=Strategy(cfg["strategy"]),
    )
    rgb, stats = render_rgb(
        request,
        antialias=cfg["antialias"],
        workers=cfg["workers"],
        layout=band_layout_from_config(cfg),
        colors_per_iteration=cfg["colors_per_iteration"],
    )
    path = save_png(Image.fromarray(rgb), cfg["output"])
    logger.info("Image written: %s", path)

    if write_run_manifest:
        manifest = build_manifest(config=cfg, request=request.as_dict(), stats=stats, git_commit=_git_commit())
        manifest_path = os.path.splitext(path)[0] + ".json"
        write_manifest(manifest_path, manifest)
        logger.info("Run manifest written: %s", manifest_path)

def main(argv: Optional[list] = None) -> int:
    args = build_arg_parser().parse_args(argv)

    log_level = getattr(logging, args.log_level.upper(), logging.INFO)
    log_file = args.log_file if args.log_file and args.log_file.strip() else None
    logger = configure_root_logging(level=log_level, console=True, log_file=log_file)

    try:
        if args.cmd == "render":
            cfg = normalise_config(_apply_render_overrides(load_config(args.config), args))
            _render(cfg, args.manifest)
            return 0

        if args.cmd == "serve":
            cfg = normalise_config(load_config(args.config))
            log_queue = create_log_queue()
            listener = start_queue_listener(log_queue, logger)
            route_through_queue(log_queue, level=log_level)
            try:
                serve(cfg, host=args.host, port=args.port)
            finally:
                listener.stop()
            return 0

        raise RuntimeError("Unknown command.")
    except (ConfigError, InvalidRequestError) as e:
        logger.error("%s", e)
        return 2

if __name__ == "__main__":
    raise SystemExit(main())
