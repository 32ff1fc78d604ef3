import numpy as np
import pytest

from mandelopt.engine import render, render_request
from mandelopt.errors import InvalidRequestError
from mandelopt.geometry import Viewport
from mandelopt.kernel import iterate
from mandelopt.renderers.adaptive import BandLayout, schedule
from mandelopt.request import RenderRequest, Strategy


def test_nine_by_nine_subdivision_scenario():
    buf = render(9, 9, -0.75, 0.0, 4.0, 50, Strategy.SUBDIVISION)
    assert buf.shape == (81,)
    grid = buf.reshape(9, 9)
    for y, x in ((0, 0), (0, 8), (8, 0), (8, 8)):
        assert grid[y, x] > 0
    assert grid[4, 4] == 0.0


@pytest.mark.parametrize("strategy", list(Strategy))
def test_buffer_shape_and_range(strategy):
    buf = render(37, 23, -0.6, 0.2, 18.0, 64, strategy)
    assert buf.dtype == np.float64
    assert buf.shape == (37 * 23,)
    assert np.all(buf >= 0) and np.all(buf < 1)


@pytest.mark.parametrize("strategy", list(Strategy))
def test_single_pixel(strategy):
    buf = render(1, 1, -2.5, 0.0, 1.0, 10, strategy)
    assert buf.shape == (1,)
    assert buf[0] == iterate(-3.0, 0.5, 10, 0)


@pytest.mark.parametrize("strategy", list(Strategy))
def test_one_iteration_keeps_the_disc_of_radius_two_at_zero(strategy):
    # All points lie within |c| <= 2, so nothing escapes on the first step.
    buf = render(16, 16, 0.0, 0.0, 8.0, 1, strategy)
    assert np.all(buf == 0)


@pytest.mark.parametrize("strategy", list(Strategy))
def test_rendering_is_idempotent(strategy):
    a = render(48, 40, -0.8, 0.15, 25.0, 120, strategy)
    b = render(48, 40, -0.8, 0.15, 25.0, 120, strategy)
    np.testing.assert_array_equal(a, b)


@pytest.mark.parametrize("strategy", [Strategy.NONE, Strategy.BULB_EXCLUSION])
def test_direct_strategies_are_row_symmetric_about_a_half_pixel_axis(strategy):
    # Rows sit at exactly negated imaginary parts: ppu is a power of two and
    # the center is shifted by half a pixel.
    buf = render(64, 48, -0.75, -1 / 32, 16.0, 100, strategy)
    rows = buf.reshape(48, 64)
    np.testing.assert_array_equal(rows, rows[::-1])


def test_adaptive_is_row_symmetric_about_a_half_pixel_axis():
    buf = render(64, 64, -0.75, -1 / 128, 64.0, 200, Strategy.ADAPTIVE)
    rows = buf.reshape(64, 64)
    np.testing.assert_array_equal(rows, rows[::-1])


def test_bulb_exclusion_matches_plain_iteration():
    plain = render(80, 60, -0.75, 0.0, 30.0, 150, Strategy.NONE)
    bulbs = render(80, 60, -0.75, 0.0, 30.0, 150, Strategy.BULB_EXCLUSION)
    np.testing.assert_array_equal(plain, bulbs)


@pytest.mark.parametrize("strategy", [Strategy.SUBDIVISION, Strategy.BOTH, Strategy.ADAPTIVE])
def test_optimized_strategies_never_invent_escapes(strategy):
    plain = render(64, 48, -0.75, -1 / 32, 16.0, 100, Strategy.NONE)
    fast = render(64, 48, -0.75, -1 / 32, 16.0, 100, strategy)
    assert np.all((fast == plain) | (fast == 0))
    assert np.all(fast[plain == 0] == 0)


@pytest.mark.parametrize("strategy", list(Strategy))
def test_workers_give_identical_buffers(strategy):
    single = render(90, 70, -0.7, 0.05, 35.0, 100, strategy)
    threaded = render(90, 70, -0.7, 0.05, 35.0, 100, strategy, workers=4)
    np.testing.assert_array_equal(single, threaded)


def test_integer_strategy_level_is_accepted():
    a = render(20, 20, -0.75, 0.0, 10.0, 30, 3)
    b = render(20, 20, -0.75, 0.0, 10.0, 30, Strategy.SUBDIVISION)
    np.testing.assert_array_equal(a, b)


def test_custom_layout_is_used():
    # Half-pixel shifted center with a power-of-two zoom puts mirrored rows at
    # exactly negated imaginary parts.
    layout = BandLayout(far_im=2.0, core_im=2.0)
    request = RenderRequest(64, 48, -0.75, -1 / 32, 16.0, 60, Strategy.ADAPTIVE)
    plan = schedule(Viewport.from_request(request), layout)
    assert all(job.subdivide for job in plan.jobs + plan.residual)
    assert plan.mirror is not None

    buf = render_request(request, layout=layout)
    plain = render(64, 48, -0.75, -1 / 32, 16.0, 60, Strategy.NONE)
    assert np.all((buf == plain) | (buf == 0))
    assert np.all(buf[plain == 0] == 0)


@pytest.mark.parametrize(
    "args",
    [
        (0, 10, 0.0, 0.0, 1.0, 10),
        (10, 10, 0.0, 0.0, 0.0, 10),
        (10, 10, 0.0, 0.0, -5.0, 10),
        (10, 10, 0.0, 0.0, 1.0, 0),
        (2, 2, 0.0, 0.0, 1.0, 2 ** 64),
    ],
)
def test_invalid_parameters_are_rejected(args):
    with pytest.raises(InvalidRequestError):
        render(*args)
