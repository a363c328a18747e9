import numpy as np
from PyQt6.QtCore import QPointF

from Model.surface import AnnotationSurface
from View.surfaceView import SurfaceView


def _view(surface):
    view = SurfaceView()
    view.resize(300, 300)
    view.set_surface(surface)
    return view


def test_maps_widget_to_canvas(make_buffer):
    surface = AnnotationSurface()
    surface.set_background(make_buffer(30, 20))
    view = _view(surface)
    # 30x20 fitted into 300x300 -> scale 10, 50 px bars above and below
    pt = view._widget_to_canvas(QPointF(150, 100))
    assert (pt.x(), pt.y()) == (15, 5)


def test_no_mapping_before_background():
    view = _view(AnnotationSurface())
    assert view._widget_to_canvas(QPointF(10, 10)) is None
    assert not view.grab().isNull()


def test_empty_background_is_not_painted():
    surface = AnnotationSurface()
    surface.set_background(np.zeros((0, 5, 4), dtype=np.uint8))
    assert surface.is_ready
    view = _view(surface)
    assert view._widget_to_canvas(QPointF(10, 10)) is None
    # falls back to the placeholder instead of fitting a 0-sized canvas
    assert not view.grab().isNull()
