# Model/export_ops.py
from __future__ import annotations
import csv
import io
import logging
import zipfile
from pathlib import Path
from typing import Iterable

from Model.frame import Frame
from Model.image_ops import encode_png, write_png

logger = logging.getLogger(__name__)

SPREADSHEET_HEADER = [
    "Patient ID", "Primary Angle", "Secondary Angle", "Frame Number", "Type",
    "Diameter 1", "Diameter 2", "Diameter 3", "Diameter Stenosis", "Area Stenosis",
]


def spreadsheet_rows(frames: Iterable[Frame]) -> list[list]:
    # Header + two rows (image, mask) per frame
    rows = [list(SPREADSHEET_HEADER)]
    for frame in frames:
        rows.extend(frame.spreadsheet_rows())
    return rows


def write_csv(path: str | Path, frames: Iterable[Frame]) -> Path:
    path = Path(path)
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerows(spreadsheet_rows(frames))
    logger.info("[EXPORT] spreadsheet written to %s", path)
    return path


def _composites(frame: Frame):
    names = frame.export_names()
    for key, surface in (("image", frame.image), ("mask", frame.mask)):
        if surface is None:
            continue
        composite = surface.download_composite()
        if composite is None:
            logger.warning("[EXPORT] %s not loaded yet, skipped", names[key])
            continue
        yield names[key], composite


def write_composites(folder: str | Path, frames: Iterable[Frame]) -> list[Path]:
    folder = Path(folder)
    folder.mkdir(parents=True, exist_ok=True)
    written = []
    for frame in frames:
        for name, composite in _composites(frame):
            out = folder / name
            write_png(str(out), composite)
            written.append(out)
    logger.info("[EXPORT] %d composites written to %s", len(written), folder)
    return written


def write_zip(path: str | Path, frames: Iterable[Frame]) -> Path:
    """Annotated PNGs of every frame plus the spreadsheet (as qca.csv) in one archive."""
    path = Path(path)
    frames = list(frames)
    with zipfile.ZipFile(path, "w", zipfile.ZIP_DEFLATED) as zipf:
        for frame in frames:
            for name, composite in _composites(frame):
                zipf.writestr(name, encode_png(composite))

        text = io.StringIO()
        csv.writer(text).writerows(spreadsheet_rows(frames))
        zipf.writestr("qca.csv", text.getvalue())
    logger.info("[EXPORT] archive written to %s", path)
    return path
