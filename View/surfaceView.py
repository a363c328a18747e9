from PyQt6.QtWidgets import QLabel, QSizePolicy
from PyQt6.QtCore import Qt, QRectF, QPointF
from PyQt6.QtGui import QPainter, QWheelEvent

from Model.surface import AnnotationSurface


class SurfaceView(QLabel):
    # Shows the canvas of one AnnotationSurface and forwards the mouse to it.
    # The canvas is fitted into the widget (aspect kept); mouse positions are
    # converted from widget to canvas (device) coordinates before forwarding,
    # the surface itself takes care of its own pan/zoom transform.

    def __init__(self, placeholder: str = "Loading image ..."):
        super().__init__(placeholder)
        self.setObjectName("SurfaceView")
        self.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.setWordWrap(True)
        self.setMouseTracking(True)  # needed for the live line preview
        self.setMinimumSize(256, 256)
        self.setSizePolicy(QSizePolicy.Policy.Expanding, QSizePolicy.Policy.Expanding)

        self._surface: AnnotationSurface | None = None

    # ---- Public API ----
    def set_surface(self, surface: AnnotationSurface):
        self._surface = surface
        self.update()

    @property
    def surface(self) -> AnnotationSurface | None:
        return self._surface

    def set_edit_cursor(self, on: bool):
        self.setCursor(Qt.CursorShape.CrossCursor if on else Qt.CursorShape.OpenHandCursor)

    # Mouse events - only forwarded once the background is there
    def mousePressEvent(self, e):
        pt = self._widget_to_canvas(e.position())
        if pt is not None and e.button() == Qt.MouseButton.LeftButton:
            self._surface.pointer_down(pt.x(), pt.y())
            e.accept()
            return
        super().mousePressEvent(e)

    def mouseMoveEvent(self, e):
        pt = self._widget_to_canvas(e.position())
        if pt is not None:
            self._surface.pointer_move(pt.x(), pt.y())
            e.accept()
            return
        super().mouseMoveEvent(e)

    def mouseReleaseEvent(self, e):
        pt = self._widget_to_canvas(e.position())
        if pt is not None and e.button() == Qt.MouseButton.LeftButton:
            self._surface.pointer_up(pt.x(), pt.y())
            self.set_edit_cursor(self._surface.edit_mode)
            e.accept()
            return
        super().mouseReleaseEvent(e)

    def leaveEvent(self, e):
        if self._ready():
            self._surface.pointer_leave()
        super().leaveEvent(e)

    # Mouse Wheel = Zoom-to-Mouse (the surface zooms around the last pointer position)
    def wheelEvent(self, e: QWheelEvent):
        pt = self._widget_to_canvas(e.position())
        if pt is None:
            return
        self._surface.pointer_move(pt.x(), pt.y())
        self._surface.wheel(e.angleDelta().y())
        e.accept()

    # Paint
    def paintEvent(self, e):
        # Show the placeholder text until the surface has its background
        if not self._ready():
            super().paintEvent(e)
            return

        p = QPainter(self)
        # Pixel lines must stay crisp, no smoothing when scaling up
        p.setRenderHint(QPainter.RenderHint.SmoothPixmapTransform, False)
        p.drawImage(self._canvas_rect(), self._surface.canvas)
        p.end()

    # Helper functions for the fit-to-widget mapping
    def _ready(self) -> bool:
        s = self._surface
        return s is not None and s.is_ready and s.width > 0 and s.height > 0

    def _canvas_rect(self) -> QRectF:
        iw, ih = self._surface.width, self._surface.height
        W, H = float(self.width()), float(self.height())
        s = min(W / iw, H / ih)
        w, h = iw * s, ih * s
        return QRectF((W - w) / 2.0, (H - h) / 2.0, w, h)

    def _widget_to_canvas(self, posf) -> QPointF | None:
        if not self._ready():
            return None
        r = self._canvas_rect()
        if r.width() <= 0 or r.height() <= 0:
            return None
        s = r.width() / self._surface.width
        return QPointF((posf.x() - r.x()) / s, (posf.y() - r.y()) / s)
