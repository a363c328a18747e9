import numpy as np
import pytest
from PyQt6.QtCore import QPointF
from PyQt6.QtGui import QImage, QPainter

from Model.transform import TransformStackError, TransformTracker


def test_identity_by_default():
    t = TransformTracker()
    assert np.allclose(t.matrix, np.eye(3))
    assert t.to_logical(3, 4) == (3, 4)


def test_to_logical_inverts_to_device():
    t = TransformTracker()
    t.translate(10, -5)
    t.scale(2.0, 2.0)
    t.rotate(30)
    dx, dy = t.to_device(7.0, 3.0)
    lx, ly = t.to_logical(dx, dy)
    assert lx == pytest.approx(7.0)
    assert ly == pytest.approx(3.0)


def test_operations_compose_like_qpainter():
    img = QImage(8, 8, QImage.Format.Format_RGBA8888)
    p = QPainter(img)
    try:
        t = TransformTracker(target=p)
        t.translate(4, 2)
        t.scale(1.5, 1.5)
        t.rotate(90)
        t.transform(1, 0, 0.5, 1, 3, 0)
        for x, y in ((0, 0), (1, 2), (-3, 5)):
            mapped = p.worldTransform().map(QPointF(x, y))
            dx, dy = t.to_device(x, y)
            assert dx == pytest.approx(mapped.x())
            assert dy == pytest.approx(mapped.y())
    finally:
        p.end()


def test_save_restore_stays_in_lockstep_with_target():
    img = QImage(8, 8, QImage.Format.Format_RGBA8888)
    p = QPainter(img)
    try:
        t = TransformTracker(target=p)
        t.save()
        t.scale(3, 3)
        t.restore()
        assert np.allclose(t.matrix, np.eye(3))
        assert p.worldTransform().isIdentity()
    finally:
        p.end()


def test_restore_without_save_raises():
    t = TransformTracker()
    with pytest.raises(TransformStackError):
        t.restore()


def test_baseline_is_first_saved_matrix():
    t = TransformTracker()
    t.translate(5, 5)
    t.save()
    t.scale(2)
    t.save()
    assert t.depth == 2
    assert t.baseline[0, 2] == 5
    assert t.baseline[0, 0] == 1


def test_set_transform_and_apply():
    t = TransformTracker()
    t.apply("set_transform", 2, 0, 0, 2, 10, 20)
    assert t.to_device(1, 1) == (12, 22)
    assert t.to_logical(12, 22) == (pytest.approx(1), pytest.approx(1))
    t.apply("reset")
    assert np.allclose(t.matrix, np.eye(3))
    with pytest.raises(ValueError):
        t.apply("shear", 1, 2)


def test_qtransform_matches_matrix():
    t = TransformTracker()
    t.translate(3, 4)
    t.scale(2, 0.5)
    q = t.qtransform()
    mapped = q.map(QPointF(1, 2))
    assert (mapped.x(), mapped.y()) == pytest.approx(tuple(t.to_device(1, 2)))
