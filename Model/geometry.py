# Model/geometry.py
from __future__ import annotations
import math
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Iterator, NamedTuple

from PyQt6.QtCore import QLineF, QPointF, QRectF


class Point(NamedTuple):
    x: float
    y: float


Pixel = tuple[int, int]


class LineKind(Enum):
    FLUID = auto()  # sub-pixel segment, stroked
    PIXEL = auto()  # quantized to the walked pixel path


def round_half_up(v: float) -> int:
    # Python's round() rounds half to even, pixel walks need half up
    return int(math.floor(v + 0.5))


def round_point(p: Point) -> Pixel:
    return round_half_up(p[0]), round_half_up(p[1])


def compute_slope(start: Point, end: Point) -> tuple[float, float]:
    """
    Direction of the walk from start to end. The axis with the larger absolute
    delta is stepped by +-1, the other one by delta_minor / |delta_major|.
    """
    dx = end[0] - start[0]
    dy = end[1] - start[1]
    if dx == 0 and dy == 0:
        return 0.0, 0.0
    if abs(dx) > abs(dy):
        return (1.0 if dx > 0 else -1.0), dy / abs(dx)
    return dx / abs(dy), (1.0 if dy > 0 else -1.0)


def walk_pixels(start: Point, end: Point) -> Iterator[Pixel]:
    # Yields the rounded positions from start to end, consecutive duplicates collapsed.
    sx, sy = compute_slope(start, end)
    steps = int(math.floor(max(abs(end[0] - start[0]), abs(end[1] - start[1]))))
    last = None
    for i in range(steps + 1):
        px = (round_half_up(start[0] + i * sx), round_half_up(start[1] + i * sy))
        if px != last:
            yield px
            last = px
    final = round_point(end)
    if final != last:
        yield final


@dataclass(frozen=True)
class Line:
    start: Point
    end: Point
    kind: LineKind = LineKind.FLUID
    length: float = field(init=False)
    slope: tuple[float, float] = field(init=False)
    path: tuple[Pixel, ...] = field(init=False, repr=False)

    def __post_init__(self):
        start = Point(float(self.start[0]), float(self.start[1]))
        end = Point(float(self.end[0]), float(self.end[1]))
        object.__setattr__(self, "start", start)
        object.__setattr__(self, "end", end)
        object.__setattr__(self, "length", math.hypot(end.x - start.x, end.y - start.y))
        object.__setattr__(self, "slope", compute_slope(start, end))
        path = tuple(walk_pixels(start, end)) if self.kind is LineKind.PIXEL else ()
        object.__setattr__(self, "path", path)


def fluid_line(start, end) -> Line:
    return Line(Point(*start), Point(*end), LineKind.FLUID)


def pixel_line(start, end) -> Line:
    return Line(Point(*start), Point(*end), LineKind.PIXEL)


def with_endpoints(line: Line, start, end) -> Line:
    # Lines are values: moving an endpoint yields a new line of the same kind
    return Line(Point(*start), Point(*end), line.kind)


def draw_line(painter, line: Line) -> None:
    if line.kind is LineKind.FLUID:
        painter.drawLine(QLineF(QPointF(*line.start), QPointF(*line.end)))
    elif line.kind is LineKind.PIXEL:
        color = painter.pen().color()
        for x, y in line.path:
            painter.fillRect(QRectF(x, y, 1.0, 1.0), color)
