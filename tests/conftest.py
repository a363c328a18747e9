import os

import numpy as np
import pytest

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from PyQt6.QtWidgets import QApplication


@pytest.fixture(scope="session", autouse=True)
def qapp():
    # QPainter on QImage needs a GUI application, the views need widgets
    app = QApplication.instance() or QApplication([])
    yield app


@pytest.fixture
def make_buffer():
    def _make(width, height, fill=(0, 0, 0, 255)):
        buf = np.zeros((height, width, 4), dtype=np.uint8)
        buf[...] = fill
        return buf
    return _make
