from mandelopt.geometry import Viewport
from mandelopt.kernel import BulbTest
from mandelopt.renderers.canvas import Canvas
from mandelopt.request import RenderRequest, Strategy


def make_canvas(width, height, center_re, center_im, ppu, max_iter, tests=BulbTest.NONE):
    request = RenderRequest(width, height, center_re, center_im, ppu, max_iter, Strategy.NONE)
    return Canvas.allocate(Viewport.from_request(request), max_iter, tests)


def viewport(width, height, center_re, center_im, ppu):
    return Viewport.from_request(RenderRequest(width, height, center_re, center_im, ppu, 1))
