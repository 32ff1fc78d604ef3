from __future__ import annotations

from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, Callable, Dict, Optional
from urllib.parse import parse_qs, urlsplit

from mandelopt.config import band_layout_from_config
from mandelopt.errors import InvalidRequestError
from mandelopt.pipeline import encode_png, render_image
from mandelopt.request import RenderRequest, Strategy
from mandelopt.util.logging_setup import get_logger


def _query_number(query: Dict[str, list], key: str, default, convert: Callable[[str], Any]):
    """Parse one query value; anything missing, malformed, zero or negative gives the default."""
    values = query.get(key)
    if not values:
        return default
    try:
        value = convert(values[0])
    except ValueError:
        return default
    if value != value or value <= 0:
        return default
    return value


def parse_image_query(query_string: str, cfg: Dict[str, Any]) -> Dict[str, Any]:
    query = parse_qs(query_string)
    size = min(_query_number(query, "size", cfg["width"], int), cfg["max_size"])
    ppu = _query_number(query, "ppu", cfg["pixels_per_unit"], float)
    max_iter = min(_query_number(query, "max", cfg["max_iter"], int), cfg["max_iter_cap"])

    opt = _query_number(query, "opt", cfg["strategy"], int)
    if opt > max(Strategy):
        opt = cfg["strategy"]
    try:
        aa = int(query["aa"][0]) if "aa" in query else cfg["antialias"]
    except ValueError:
        aa = cfg["antialias"]
    if aa not in range(5):
        aa = cfg["antialias"]

    center = []
    for key, default in (("re", cfg["center"][0]), ("im", cfg["center"][1])):
        try:
            center.append(float(query[key][0]) if key in query else default)
        except ValueError:
            center.append(default)

    return {
        "size": size,
        "pixels_per_unit": ppu,
        "max_iter": max_iter,
        "strategy": Strategy.from_level(opt),
        "antialias": aa,
        "center": center,
    }


class MandelbrotHandler(BaseHTTPRequestHandler):
    server_version = "mandelopt"
    cfg: Dict[str, Any] = {}

    def log_message(self, format: str, *args) -> None:
        get_logger().info("%s - %s", self.address_string(), format % args)

    def do_GET(self) -> None:
        url = urlsplit(self.path)
        if url.path == "/":
            self.send_response(307)
            self.send_header("Location", "/image.png")
            self.end_headers()
            return
        if url.path != "/image.png":
            self.send_error(404)
            return

        params = parse_image_query(url.query, self.cfg)
        try:
            request = RenderRequest(
                width=params["size"],
                height=params["size"],
                center_re=params["center"][0],
                center_im=params["center"][1],
                pixels_per_unit=params["pixels_per_unit"],
                max_iterations=params["max_iter"],
                strategy=params["strategy"],
            )
            img = render_image(
                request,
                antialias=params["antialias"],
                workers=self.cfg.get("workers"),
                layout=band_layout_from_config(self.cfg),
                colors_per_iteration=self.cfg["colors_per_iteration"],
            )
            body = encode_png(img)
        except InvalidRequestError as e:
            self.send_error(400, str(e))
            return
        except Exception:
            get_logger().exception("Render failed for %s", self.path)
            self.send_error(500)
            return

        self.send_response(200)
        self.send_header("Content-Type", "image/png")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)


def make_server(cfg: Dict[str, Any], host: Optional[str] = None, port: Optional[int] = None) -> ThreadingHTTPServer:
    handler = type("ConfiguredMandelbrotHandler", (MandelbrotHandler,), {"cfg": cfg})
    address = (host if host is not None else cfg["host"], port if port is not None else cfg["port"])
    return ThreadingHTTPServer(address, handler)


def serve(cfg: Dict[str, Any], host: Optional[str] = None, port: Optional[int] = None) -> None:
    logger = get_logger()
    server = make_server(cfg, host, port)
    logger.info("Serving on http://%s:%s/", *server.server_address[:2])
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        pass
    finally:
        server.server_close()
        logger.info("Server stopped.")
