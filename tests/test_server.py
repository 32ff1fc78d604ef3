import http.client
import threading

import pytest

from mandelopt.config import load_config, normalise_config
from mandelopt.server import make_server, parse_image_query
from mandelopt.request import Strategy


@pytest.fixture
def cfg():
    cfg = load_config(None)
    cfg.update(width=64, height=64, max_iter=60, max_size=128, max_iter_cap=1000)
    return normalise_config(cfg)


def test_query_values_are_parsed(cfg):
    params = parse_image_query("size=32&ppu=30&max=50&opt=3&aa=2&re=-1&im=0.25", cfg)
    assert params == {
        "size": 32,
        "pixels_per_unit": 30.0,
        "max_iter": 50,
        "strategy": Strategy.SUBDIVISION,
        "antialias": 2,
        "center": [-1.0, 0.25],
    }


def test_missing_and_malformed_values_fall_back(cfg):
    params = parse_image_query("size=0&ppu=-3&max=lots&opt=9&aa=7&re=west", cfg)
    assert params["size"] == 64
    assert params["pixels_per_unit"] == cfg["pixels_per_unit"]
    assert params["max_iter"] == 60
    assert params["strategy"] == Strategy(cfg["strategy"])
    assert params["antialias"] == cfg["antialias"]
    assert params["center"] == cfg["center"]


def test_size_is_capped(cfg):
    assert parse_image_query("size=5000", cfg)["size"] == 128


def test_iteration_count_is_capped(cfg):
    assert parse_image_query("max=1000000000000", cfg)["max_iter"] == cfg["max_iter_cap"]
    assert parse_image_query("max=500", cfg)["max_iter"] == 500


def test_optimization_levels(cfg):
    assert parse_image_query("opt=0", cfg)["strategy"] == Strategy.BOTH
    assert parse_image_query("opt=1", cfg)["strategy"] == Strategy.NONE
    assert parse_image_query("opt=5", cfg)["strategy"] == Strategy.ADAPTIVE


@pytest.fixture
def server(cfg):
    srv = make_server(cfg, "127.0.0.1", 0)
    thread = threading.Thread(target=srv.serve_forever, daemon=True)
    thread.start()
    yield srv
    srv.shutdown()
    srv.server_close()
    thread.join(timeout=5)


def _get(server, path):
    conn = http.client.HTTPConnection(*server.server_address[:2], timeout=30)
    try:
        conn.request("GET", path)
        resp = conn.getresponse()
        return resp.status, dict(resp.getheaders()), resp.read()
    finally:
        conn.close()


def test_root_redirects_to_image(server):
    status, headers, _ = _get(server, "/")
    assert status == 307
    assert headers["Location"] == "/image.png"


def test_image_is_served_as_png(server):
    status, headers, body = _get(server, "/image.png?size=24&max=30&aa=1&opt=5")
    assert status == 200
    assert headers["Content-Type"] == "image/png"
    assert body.startswith(b"\x89PNG\r\n\x1a\n")
    assert int(headers["Content-Length"]) == len(body)


def test_huge_iteration_count_still_renders(server):
    status, _, body = _get(server, "/image.png?size=8&max=1000000000000")
    assert status == 200
    assert body.startswith(b"\x89PNG\r\n\x1a\n")


def test_invalid_view_is_a_bad_request(server):
    status, _, _ = _get(server, "/image.png?size=16&ppu=inf")
    assert status == 400


def test_unknown_path_is_not_found(server):
    status, _, _ = _get(server, "/favicon.ico")
    assert status == 404
