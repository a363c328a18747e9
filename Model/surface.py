# Model/surface.py
from __future__ import annotations
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Optional

import numpy as np
from PyQt6.QtCore import QPointF, QRectF, Qt
from PyQt6.QtGui import QColor, QImage, QPainter, QPen

from Model.geometry import Line, LineKind, Point, draw_line, fluid_line
from Model.image_ops import apply_filters, encode_png, rgba_to_qimage
from Model.propagation import is_not_found
from Model.stenosis import StenosisResult, compute_stenosis
from Model.transform import TransformTracker, to_qtransform

logger = logging.getLogger(__name__)

BRIGHTNESS_RANGE = (0, 200)
CONTRAST_RANGE = (0, 1000)
WHEEL_DIVISOR = 40.0  # wheel angle delta per unit of zoom magnitude


@dataclass(frozen=True)
class SurfaceConfig:
    max_lines: int = 3
    brightness: int = 100          # percent, 100 = neutral
    contrast: int = 100            # percent, 100 = neutral
    scale_factor: float = 1.1      # zoom step per unit of magnitude
    min_zoom: float = 0.2          # lower bound of the cumulative zoom factor
    line_width: int = 1
    line_color: str = "#00FF00"

    @staticmethod
    def clamped_brightness(value: float) -> float:
        return min(max(value, BRIGHTNESS_RANGE[0]), BRIGHTNESS_RANGE[1])

    @staticmethod
    def clamped_contrast(value: float) -> float:
        return min(max(value, CONTRAST_RANGE[0]), CONTRAST_RANGE[1])


class AnnotationSurface:
    """
    Drawing surface for one image: a background pixel buffer, up to
    config.max_lines measurement lines and a pan/zoom view.

    All positions handed in by pointer events are device (canvas) coordinates;
    lines are stored in logical image coordinates. The transform tracker is
    saved once at construction, that saved matrix is the baseline view that
    undo_all() and the download composite go back to.
    """

    def __init__(self, config: SurfaceConfig | None = None, name: str = ""):
        self.config = config or SurfaceConfig()
        self.name = name
        self.tracker = TransformTracker()
        self.tracker.save()  # baseline

        self._lines: list[Line] = []
        self._last_kind: LineKind | None = None
        self.edit_mode: bool = True
        self.zoom_factor: float = 1.0

        self._brightness = SurfaceConfig.clamped_brightness(self.config.brightness)
        self._contrast = SurfaceConfig.clamped_contrast(self.config.contrast)

        # Background; None until the decoded image has been handed over
        self._original: np.ndarray | None = None
        self._filtered: tuple[tuple[float, float], QImage] | None = None
        self._canvas = QImage()
        self._ready_callbacks: list[Callable[[AnnotationSurface], None]] = []

        # Pointer state (device coordinates, drag start in logical coordinates)
        self._pointer = Point(0.0, 0.0)
        self._press: Point | None = None
        self._drag_start: Point | None = None

        self.on_changed: Optional[Callable[[], None]] = None

    # ---- background / readiness ----
    def set_background(self, rgba: np.ndarray):
        rgba = np.asarray(rgba)
        if rgba.ndim != 3 or rgba.shape[2] != 4:
            raise ValueError(f"Expected an (h, w, 4) RGBA buffer, got shape {rgba.shape}")
        original = np.array(rgba, dtype=np.uint8, copy=True)
        original.setflags(write=False)
        self._original = original
        self._filtered = None

        h, w = original.shape[:2]
        self._canvas = QImage(w, h, QImage.Format.Format_RGBA8888)
        self._canvas.fill(Qt.GlobalColor.transparent)
        logger.debug("[SURFACE] %s: background %dx%d", self.name, w, h)
        self.redraw()

        callbacks, self._ready_callbacks = self._ready_callbacks, []
        for cb in callbacks:
            cb(self)

    @property
    def is_ready(self) -> bool:
        return self._original is not None

    def when_ready(self, callback: Callable[[AnnotationSurface], None]):
        # Runs now if the background is already there, otherwise once it arrives
        if self.is_ready:
            callback(self)
        else:
            self._ready_callbacks.append(callback)

    @property
    def original_pixels(self) -> np.ndarray | None:
        return self._original

    @property
    def width(self) -> int:
        return 0 if self._original is None else int(self._original.shape[1])

    @property
    def height(self) -> int:
        return 0 if self._original is None else int(self._original.shape[0])

    @property
    def canvas(self) -> QImage:
        return self._canvas

    # ---- lines ----
    @property
    def lines(self) -> tuple[Line, ...]:
        return tuple(self._lines)

    @property
    def fluid_lines(self) -> tuple[Line, ...]:
        return tuple(l for l in self._lines if l.kind is LineKind.FLUID)

    @property
    def pixel_lines(self) -> tuple[Line, ...]:
        return tuple(l for l in self._lines if l.kind is LineKind.PIXEL)

    @property
    def line_count(self) -> int:
        return len(self._lines)

    @property
    def is_full(self) -> bool:
        return len(self._lines) >= self.config.max_lines

    @property
    def last_kind(self) -> LineKind | None:
        return self._last_kind

    def add_line(self, line: Line, persist: bool = True) -> bool:
        if len(self._lines) >= self.config.max_lines:
            logger.debug("[SURFACE] %s: line rejected, surface full", self.name)
            return False
        # One variant per surface at a time
        if any(l.kind is not line.kind for l in self._lines):
            logger.debug("[SURFACE] %s: line rejected, %s lines present", self.name, self._lines[0].kind.name)
            return False

        if self.is_ready:
            with self._painter() as p:
                draw_line(p, line)

        if persist:
            self._last_kind = line.kind
            self._lines.append(line)
            self.edit_mode = self.edit_mode and len(self._lines) < self.config.max_lines
        self._notify()
        return True

    def undo_last(self):
        if self._last_kind is None:
            return
        for i in range(len(self._lines) - 1, -1, -1):
            if self._lines[i].kind is self._last_kind:
                del self._lines[i]
                break
        else:
            return
        self.edit_mode = len(self._lines) < self.config.max_lines
        self.redraw()

    def undo_all(self):
        self._last_kind = None
        self._lines.clear()
        self.edit_mode = True
        self._press = None
        self._drag_start = None
        # Back to the single saved baseline before anything is redrawn
        self.tracker.restore()
        self.tracker.save()
        self.zoom_factor = 1.0
        self.redraw()

    def toggle_edit(self):
        # Edit mode can only be re-entered while there is room for another line
        self.edit_mode = (not self.edit_mode) and len(self._lines) < self.config.max_lines
        self._press = None
        self._drag_start = None
        self._notify()

    def stenosis(self) -> StenosisResult | None:
        if len(self._lines) != self.config.max_lines:
            return None
        # a failed propagation is no caliber of 0
        if any(is_not_found(l) for l in self._lines):
            return None
        return compute_stenosis(l.length for l in self._lines)

    # ---- view ----
    @property
    def brightness(self) -> float:
        return self._brightness

    @property
    def contrast(self) -> float:
        return self._contrast

    def set_filters(self, brightness: float, contrast: float):
        self._brightness = SurfaceConfig.clamped_brightness(brightness)
        self._contrast = SurfaceConfig.clamped_contrast(contrast)
        self.redraw()

    def to_logical(self, x: float, y: float) -> Point:
        return self.tracker.to_logical(x, y)

    def zoom(self, magnitude: float, anchor: Point | None = None):
        # Zoom around the (logical) position under the pointer
        ax, ay = self._pointer if anchor is None else anchor
        pt = self.tracker.to_logical(ax, ay)
        self.tracker.translate(pt.x, pt.y)

        factor = self.config.scale_factor ** magnitude
        if self.zoom_factor * factor < self.config.min_zoom:
            factor = self.config.min_zoom / self.zoom_factor
            self.zoom_factor = self.config.min_zoom
        else:
            self.zoom_factor *= factor
        self.tracker.scale(factor, factor)

        self.tracker.translate(-pt.x, -pt.y)
        self.redraw()

    def pan_to(self, x: float, y: float):
        # Keep the logical point grabbed at drag start under the pointer
        if self._drag_start is None:
            return
        pt = self.tracker.to_logical(x, y)
        self.tracker.translate(pt.x - self._drag_start.x, pt.y - self._drag_start.y)
        self.redraw()

    # ---- pointer events (device coordinates) ----
    def pointer_down(self, x: float, y: float):
        self._pointer = Point(x, y)
        if self.edit_mode:
            self._press = Point(x, y)
        else:
            self._drag_start = self.tracker.to_logical(x, y)

    def pointer_move(self, x: float, y: float):
        self._pointer = Point(x, y)
        if self.edit_mode:
            if self._press is not None:
                self.redraw()
                self.add_line(self._line_from_press(x, y), persist=False)
        elif self._drag_start is not None:
            self.pan_to(x, y)

    def pointer_up(self, x: float, y: float):
        self._pointer = Point(x, y)
        if self.edit_mode:
            self._commit_press(x, y)
        else:
            self._drag_start = None

    def pointer_leave(self):
        if self.edit_mode:
            self._commit_press(*self._pointer)
        else:
            self._drag_start = None

    def wheel(self, angle_delta: float):
        if angle_delta:
            self.zoom(angle_delta / WHEEL_DIVISOR)

    def _line_from_press(self, x: float, y: float) -> Line:
        return fluid_line(self.tracker.to_logical(*self._press), self.tracker.to_logical(x, y))

    def _commit_press(self, x: float, y: float):
        if self._press is None:
            return
        line = self._line_from_press(x, y)
        self._press = None
        if line.length == 0:
            # a click without drag is not a measurement
            self.redraw()
            return
        self.add_line(line)

    # ---- rendering ----
    def redraw(self):
        if not self.is_ready:
            return
        with self._painter() as p:
            self._clear_view(p)
            p.drawImage(0, 0, self._background())
            for line in self._lines:
                draw_line(p, line)
        self._notify()

    def download_composite(self) -> QImage | None:
        """Original, unfiltered pixels plus all lines at the baseline view."""
        if not self.is_ready:
            return None
        out = QImage(self.width, self.height, QImage.Format.Format_RGBA8888)
        out.fill(Qt.GlobalColor.transparent)
        with self._painter(out, self.tracker.baseline) as p:
            p.drawImage(0, 0, rgba_to_qimage(self._original))
            for line in self._lines:
                draw_line(p, line)
        return out

    def download_png(self) -> bytes | None:
        composite = self.download_composite()
        return None if composite is None else encode_png(composite)

    def _background(self) -> QImage:
        key = (self._brightness, self._contrast)
        if self._filtered is None or self._filtered[0] != key:
            rgba = apply_filters(self._original, self._brightness, self._contrast)
            self._filtered = (key, rgba_to_qimage(rgba))
        return self._filtered[1]

    def _clear_view(self, p: QPainter):
        # The visible device rectangle, expressed in the current logical space
        w, h = self._canvas.width(), self._canvas.height()
        corners = [self.tracker.to_logical(x, y) for x, y in ((0, 0), (w, 0), (0, h), (w, h))]
        xs = [c.x for c in corners]
        ys = [c.y for c in corners]
        rect = QRectF(QPointF(min(xs), min(ys)), QPointF(max(xs), max(ys)))
        p.setCompositionMode(QPainter.CompositionMode.CompositionMode_Clear)
        p.fillRect(rect.adjusted(-1, -1, 1, 1), Qt.GlobalColor.transparent)
        p.setCompositionMode(QPainter.CompositionMode.CompositionMode_SourceOver)

    @contextmanager
    def _painter(self, target: QImage | None = None, matrix: np.ndarray | None = None):
        p = QPainter(self._canvas if target is None else target)
        try:
            p.setTransform(to_qtransform(self.tracker.matrix if matrix is None else matrix))
            pen = QPen(QColor(self.config.line_color), self.config.line_width)
            pen.setCosmetic(True)  # same thickness at every zoom
            p.setPen(pen)
            yield p
        finally:
            p.end()

    def _notify(self):
        if self.on_changed is not None:
            self.on_changed()
