# Model/transform.py
from __future__ import annotations
import math
import numpy as np
from PyQt6.QtGui import QTransform

from Model.geometry import Point


class TransformStackError(RuntimeError):
    """restore() was called without a matching save()."""


class TransformTracker:
    """
    Keeps a running 2D affine matrix that mirrors every transform applied to a
    drawing target, so device positions (pointer events) can be mapped back to
    logical image coordinates.

    Matrices use column vectors: device = M @ (x, y, 1). Every operation
    post-multiplies M, the same way QPainter.translate/scale/rotate compose.
    If a target (e.g. a QPainter) is given, each call is forwarded to it after
    the matrix is updated, so both stacks stay in lockstep.
    """

    _OPS = ("scale", "rotate", "translate", "transform", "set_transform", "save", "restore", "reset")

    def __init__(self, target=None):
        self._m = np.eye(3, dtype=np.float64)
        self._stack: list[np.ndarray] = []
        self.target = target

    # ---- matrix operations ----
    def scale(self, sx: float, sy: float | None = None):
        sy = sx if sy is None else sy
        self._post(np.array([[sx, 0.0, 0.0], [0.0, sy, 0.0], [0.0, 0.0, 1.0]]))
        if self.target is not None:
            self.target.scale(sx, sy)

    def rotate(self, degrees: float):
        # degrees, as QPainter.rotate takes them
        r = math.radians(degrees)
        c, s = math.cos(r), math.sin(r)
        self._post(np.array([[c, -s, 0.0], [s, c, 0.0], [0.0, 0.0, 1.0]]))
        if self.target is not None:
            self.target.rotate(degrees)

    def translate(self, dx: float, dy: float):
        self._post(np.array([[1.0, 0.0, dx], [0.0, 1.0, dy], [0.0, 0.0, 1.0]]))
        if self.target is not None:
            self.target.translate(dx, dy)

    def transform(self, a: float, b: float, c: float, d: float, e: float, f: float):
        self._post(_from_components(a, b, c, d, e, f))
        if self.target is not None:
            self.target.setTransform(QTransform(a, b, c, d, e, f), True)

    def set_transform(self, a: float, b: float, c: float, d: float, e: float, f: float):
        self._m = _from_components(a, b, c, d, e, f)
        if self.target is not None:
            self.target.setTransform(QTransform(a, b, c, d, e, f))

    def reset(self):
        self._m = np.eye(3, dtype=np.float64)
        if self.target is not None:
            self.target.resetTransform()

    def apply(self, op: str, *args):
        if op not in self._OPS:
            raise ValueError(f"Unknown transform operation: {op!r}")
        return getattr(self, op)(*args)

    # ---- save / restore ----
    def save(self):
        self._stack.append(self._m.copy())
        if self.target is not None:
            self.target.save()

    def restore(self):
        if not self._stack:
            raise TransformStackError("restore() without a saved transform")
        self._m = self._stack.pop()
        if self.target is not None:
            self.target.restore()

    @property
    def depth(self) -> int:
        return len(self._stack)

    @property
    def baseline(self) -> np.ndarray:
        # The first saved matrix, or the current one if nothing was saved yet
        return (self._stack[0] if self._stack else self._m).copy()

    # ---- mapping ----
    @property
    def matrix(self) -> np.ndarray:
        return self._m.copy()

    def to_logical(self, x: float, y: float) -> Point:
        inv = np.linalg.inv(self._m)
        lx, ly, _ = inv @ np.array([x, y, 1.0])
        return Point(float(lx), float(ly))

    def to_device(self, x: float, y: float) -> Point:
        dx, dy, _ = self._m @ np.array([x, y, 1.0])
        return Point(float(dx), float(dy))

    def scale_magnitude(self) -> float:
        # Geometric mean of the axis scales (rotation-invariant)
        return math.sqrt(abs(float(np.linalg.det(self._m[:2, :2]))))

    def qtransform(self) -> QTransform:
        return to_qtransform(self._m)

    def _post(self, other: np.ndarray):
        self._m = self._m @ other


def _from_components(a, b, c, d, e, f) -> np.ndarray:
    # (a, b, c, d, e, f) as in QTransform / canvas setTransform
    return np.array([[a, c, e], [b, d, f], [0.0, 0.0, 1.0]], dtype=np.float64)


def to_qtransform(m: np.ndarray) -> QTransform:
    return QTransform(float(m[0, 0]), float(m[1, 0]), float(m[0, 1]),
                      float(m[1, 1]), float(m[0, 2]), float(m[1, 2]))
