import csv
import io
import zipfile

import cv2
import numpy as np
import pytest

from Model.export_ops import SPREADSHEET_HEADER, spreadsheet_rows, write_composites, write_csv, write_zip
from Model.frame import Frame
from Model.geometry import fluid_line, pixel_line
from Model.image_ops import load_rgba


@pytest.fixture
def frames(make_buffer):
    done = Frame("1_0_0_1.png", "1_0_0_1a.png")
    done.image.set_background(make_buffer(12, 12))
    done.mask.set_background(make_buffer(12, 12))
    for y, length in ((2, 4), (5, 10), (8, 10)):
        done.image.add_line(fluid_line((0, y), (length, y)))
    done.mask.add_line(pixel_line((1, 3), (6, 3)))

    pending = Frame("1_0_0_2.png", None)  # never loaded
    return [done, pending]


def test_spreadsheet_rows(frames):
    rows = spreadsheet_rows(frames)
    assert rows[0] == SPREADSHEET_HEADER
    assert len(rows) == 1 + 2 * len(frames)
    assert [r[4] for r in rows[1:]] == ["Image", "Mask", "Image", "Mask"]


def test_write_csv(tmp_path, frames):
    path = write_csv(tmp_path / "qca.csv", frames)
    with path.open(newline="", encoding="utf-8") as f:
        rows = list(csv.reader(f))
    assert rows[0] == SPREADSHEET_HEADER
    assert rows[1][:5] == ["1", "0.0", "0.0", "1", "Image"]
    assert float(rows[1][8]) == pytest.approx(0.4)
    assert rows[2][5] == "5.0"


def test_write_composites_skips_unloaded(tmp_path, frames):
    written = write_composites(tmp_path / "out", frames)
    assert sorted(p.name for p in written) == ["1_0_0_1_qca.png", "1_0_0_1a_qca.png"]

    mask = load_rgba(str(tmp_path / "out" / "1_0_0_1a_qca.png"))
    assert tuple(mask[3, 4]) == (0, 255, 0, 255)
    assert tuple(mask[6, 4]) == (0, 0, 0, 255)


def test_write_zip(tmp_path, frames):
    path = write_zip(tmp_path / "QCA.zip", frames)
    with zipfile.ZipFile(path) as zipf:
        names = set(zipf.namelist())
        assert names == {"1_0_0_1_qca.png", "1_0_0_1a_qca.png", "qca.csv"}
        assert zipf.read("1_0_0_1_qca.png").startswith(b"\x89PNG")
        rows = list(csv.reader(io.StringIO(zipf.read("qca.csv").decode("utf-8"))))
    assert rows[0] == SPREADSHEET_HEADER
    assert len(rows) == 5


def test_zip_holds_the_composites(tmp_path, frames):
    path = write_zip(tmp_path / "QCA.zip", frames)
    with zipfile.ZipFile(path) as zipf:
        data = np.frombuffer(zipf.read("1_0_0_1a_qca.png"), dtype=np.uint8)
    bgra = cv2.imdecode(data, cv2.IMREAD_UNCHANGED)
    assert bgra.shape == (12, 12, 4)
    assert tuple(bgra[3, 4]) == (0, 255, 0, 255)
    assert tuple(bgra[6, 4]) == (0, 0, 0, 255)
