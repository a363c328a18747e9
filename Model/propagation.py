# Model/propagation.py
from __future__ import annotations
import logging
from enum import Enum, auto

import numpy as np

from Model.geometry import Line, Point, fluid_line, pixel_line, walk_pixels
from Model.stenosis import REQUIRED_LINES

logger = logging.getLogger(__name__)


class PixelClass(Enum):
    FOREGROUND = auto()  # opaque white (vessel)
    BACKGROUND = auto()  # opaque black
    OTHER = auto()


def as_rgba_grid(buffer, width: int, height: int) -> np.ndarray:
    # Flat row-major RGBA (stride = width) or an (h, w, 4) array -> (h, w, 4)
    arr = np.asarray(buffer, dtype=np.uint8)
    return arr.reshape((height, width, 4))


def classify_pixel(pixels: np.ndarray, x: int, y: int) -> PixelClass:
    h, w = pixels.shape[:2]
    if not (0 <= x < w and 0 <= y < h):
        return PixelClass.OTHER
    r, g, b, a = (int(v) for v in pixels[y, x])
    if a != 255:
        return PixelClass.OTHER
    if r == 255 and g == 255 and b == 255:
        return PixelClass.FOREGROUND
    if r == 0 and g == 0 and b == 0:
        return PixelClass.BACKGROUND
    return PixelClass.OTHER


def trace_foreground(line: Line, buffer, width: int, height: int) -> Line:
    """
    Walks along `line` over the target buffer and returns the first contiguous
    run of foreground pixels as a pixel line. The walk stops at the first
    background pixel after the run started. No foreground at all gives a
    zero-length line at the origin (see is_not_found).
    """
    pixels = as_rgba_grid(buffer, width, height)
    run_start: Point | None = None
    run_end: Point | None = None

    for x, y in walk_pixels(line.start, line.end):
        cls = classify_pixel(pixels, x, y)
        if cls is PixelClass.FOREGROUND:
            if run_start is None:
                run_start = Point(x, y)
            run_end = Point(x, y)
        elif cls is PixelClass.BACKGROUND and run_start is not None:
            break

    if run_start is None:
        return pixel_line((0, 0), (0, 0))
    return pixel_line(run_start, run_end)


def is_not_found(line: Line) -> bool:
    return line.length == 0


def _target_accepts(source, target) -> bool:
    if len(source.lines) != REQUIRED_LINES:
        logger.debug("[PROPAGATE] %s has %d lines, need %d", source.name, len(source.lines), REQUIRED_LINES)
        return False
    if not target.is_ready or target.original_pixels is None:
        logger.debug("[PROPAGATE] %s has no pixel buffer yet", target.name)
        return False
    if target.height <= 0 or target.width <= 0:
        return False
    # Existing measurements are never overwritten
    if len(target.fluid_lines) == target.config.max_lines or len(target.pixel_lines) == target.config.max_lines:
        logger.debug("[PROPAGATE] %s already holds a full set of lines", target.name)
        return False
    return True


def propagate_to_mask(image, mask) -> int:
    """Image -> mask: find the vessel silhouette under each image line. Returns lines written."""
    if not _target_accepts(image, mask):
        return 0
    mask.undo_all()  # drop a partial set

    written = 0
    for line in image.lines:
        traced = trace_foreground(line, mask.original_pixels, mask.width, mask.height)
        if is_not_found(traced):
            logger.info("[PROPAGATE] no foreground under line %s -> %s", line.start, line.end)
        if mask.add_line(traced):
            written += 1
    return written


def propagate_to_image(mask, image) -> int:
    """Mask -> image: the mask lines already carry exact endpoints, copy them."""
    if not _target_accepts(mask, image):
        return 0
    image.undo_all()

    written = 0
    for line in mask.lines:
        if is_not_found(line):
            logger.info("[PROPAGATE] %s: skipped a line without vessel", mask.name)
            continue
        if image.add_line(fluid_line(line.start, line.end)):
            written += 1
    return written
