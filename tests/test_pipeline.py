import numpy as np
import pytest
from PIL import Image

from mandelopt.pipeline import encode_png, render_image, render_rgb, save_png
from mandelopt.request import RenderRequest, Strategy

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"


def _request(**overrides):
    params = dict(
        width=24,
        height=18,
        center_re=-0.75,
        center_im=0.0,
        pixels_per_unit=8.0,
        max_iterations=40,
        strategy=Strategy.BOTH,
    )
    params.update(overrides)
    return RenderRequest(**params)


@pytest.mark.parametrize("antialias", range(5))
def test_output_size_is_independent_of_antialiasing(antialias):
    rgb, stats = render_rgb(_request(), antialias=antialias)
    assert rgb.shape == (18, 24, 3)
    assert rgb.dtype == np.uint8
    assert stats["antialias"] == antialias
    assert stats["supersampling"] == (1, 3, 3, 5, 5)[antialias]


def test_stats():
    _, stats = render_rgb(_request())
    assert stats["render_seconds"] >= 0
    assert 0 < stats["in_set_fraction"] < 1


def test_set_interior_is_black():
    rgb, _ = render_rgb(_request(width=9, height=9, pixels_per_unit=4.0))
    assert rgb[4, 4].tolist() == [0, 0, 0]
    assert rgb[0, 0].any()


def test_png_encoding():
    img = render_image(_request(), antialias=1)
    assert img.size == (24, 18)
    assert img.mode == "RGB"
    data = encode_png(img)
    assert data.startswith(PNG_SIGNATURE)


def test_save_png_creates_directories(tmp_path):
    img = render_image(_request())
    path = save_png(img, str(tmp_path / "nested" / "out.png"))
    with Image.open(path) as saved:
        assert saved.size == (24, 18)
