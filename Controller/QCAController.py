from __future__ import annotations
import logging
from pathlib import Path
from typing import Dict

from PyQt6.QtCore import QObject, pyqtSignal, QThreadPool, QRunnable, QTimer
from PyQt6.QtWidgets import QFileDialog

from Controller.enums import Direction, StatusKind
from Model.export_ops import write_composites, write_csv, write_zip
from Model.frame import Frame, pair_files, DEFAULT_MASK_SUFFIX
from Model.image_ops import load_rgba, write_png, ImageLoadError
from Model.propagation import is_not_found
from Model.stenosis import format_percent
from Model.surface import AnnotationSurface

logger = logging.getLogger(__name__)

# Worker infrastructure: image decoding runs on the thread pool so the GUI thread
# never blocks. Results come back to the controller via queued signal connections.

# When a worker is done it emits the surface key, the load generation and the decoded
# RGBA buffer (or an error message).
class _ResultSignal(QObject):
    finished = pyqtSignal(str, int, object)
    failed = pyqtSignal(str, int, str)


# noinspection PyUnresolvedReferences
class _LoadTask(QRunnable):
    def __init__(self, key: str, generation: int, path: str, sig: _ResultSignal):
        super().__init__()
        self.key = key                # which surface this task belongs to
        self.generation = generation  # results of an older file set are dropped
        self.path = path
        self.sig = sig

    def run(self):
        try:
            rgba = load_rgba(self.path)
        except ImageLoadError as e:
            self.sig.failed.emit(self.key, self.generation, str(e))
            return
        self.sig.finished.emit(self.key, self.generation, rgba)


class QCAController(QObject):
    def __init__(self, view):
        super().__init__()
        self.view = view
        self.pool = QThreadPool.globalInstance()

        self.frames: list[Frame] = []
        # "<frame index>:image" / "<frame index>:mask" -> surface
        self.surfaces: Dict[str, AnnotationSurface] = {}
        self.generation = 0
        self.suffix = DEFAULT_MASK_SUFFIX

        self.sig = _ResultSignal()
        self.sig.finished.connect(self._on_load_finished)
        self.sig.failed.connect(self._on_load_failed)

        # Debounce-Timer per frame - sliders fire continuously
        self._debounce: Dict[int, QTimer] = {}

        self._wire_view()

    # Wiring - connecting the view (widgets, buttons) with the logic
    def _wire_view(self):
        tb = self.view.topPanel.toolbarButtons
        tb["Open Files"].clicked.connect(self._on_open_files_clicked)
        tb["Open Folder"].clicked.connect(self._on_open_folder_clicked)
        tb["Export Folder"].clicked.connect(self._on_export_folder_clicked)
        tb["Export Zip"].clicked.connect(self._on_export_zip_clicked)
        self.view.suffixInput.editingFinished.connect(self._on_suffix_changed)

    def _wire_panel(self, idx: int, panel):
        frame = self.frames[idx]

        for column, surface in ((panel.imageColumn, frame.image), (panel.maskColumn, frame.mask)):
            if surface is None:
                continue
            column.view.set_surface(surface)
            column.view.set_edit_cursor(True)
            surface.on_changed = lambda c=column, s=surface: self._on_surface_changed(c, s)
            b = column.buttons
            b["Edit"].clicked.connect(lambda _=False, c=column, s=surface: self._toggle_edit(c, s))
            b["Undo"].clicked.connect(lambda _=False, s=surface: s.undo_last())
            b["Clear"].clicked.connect(lambda _=False, s=surface: s.undo_all())
            b["Download"].clicked.connect(lambda _=False, s=surface: self._download_surface(s))
            surface.when_ready(lambda _s, p=panel, f=frame: self._update_arrows(p, f))

        panel.toMaskButton.clicked.connect(lambda: self._propagate(idx, Direction.TO_MASK))
        panel.toImageButton.clicked.connect(lambda: self._propagate(idx, Direction.TO_IMAGE))

        # Brightness / contrast only apply to the image, the mask stays unfiltered
        t = QTimer(self)
        t.setSingleShot(True)
        t.setInterval(30)  # ms
        t.timeout.connect(lambda i=idx: self._apply_filters(i))
        self._debounce[idx] = t
        panel.brightnessSlider.valueChanged.connect(lambda _v, i=idx: self._debounce[i].start())
        panel.contrastSlider.valueChanged.connect(lambda _v, i=idx: self._debounce[i].start())
        panel.toolbarButtons["Reset"].clicked.connect(lambda: self._reset_filters(idx))

    # ---- File loading ----
    def _on_open_files_clicked(self):
        paths, _ = QFileDialog.getOpenFileNames(self.view, "Open images and masks", "", "PNG images (*.png)")
        if paths:
            self.open_files(paths)

    def _on_open_folder_clicked(self):
        folder = QFileDialog.getExistingDirectory(self.view, "Open folder")
        if folder:
            self.open_files([str(p) for p in sorted(Path(folder).glob("*.png"))])

    def _on_suffix_changed(self):
        self.suffix = self.view.suffixInput.text().strip() or DEFAULT_MASK_SUFFIX

    def open_files(self, paths: list[str]):
        by_name = {Path(p).name: p for p in paths}
        pairing = pair_files(by_name.keys(), self.suffix)

        # A new upload replaces all frames; pending loads of the old set are ignored
        self.generation += 1
        for t in self._debounce.values():
            t.stop()
        self._debounce.clear()
        self.view.clear_frame_panels()
        self.frames = [Frame(img, mask, self.suffix) for img, mask in pairing.pairs]
        self.surfaces.clear()

        for idx, frame in enumerate(self.frames):
            panel = self.view.add_frame_panel(frame)
            self._wire_panel(idx, panel)
            for part, surface, name in (("image", frame.image, frame.image_name), ("mask", frame.mask, frame.mask_name)):
                if surface is None:
                    continue
                key = f"{idx}:{part}"
                self.surfaces[key] = surface
                self.pool.start(_LoadTask(key, self.generation, by_name[name], self.sig))

        logger.info("[LOAD] %d frames from %d files", len(self.frames), len(paths))
        warning = pairing.warning()
        if warning:
            self._set_status_text(warning.replace("\n", " "), kind=StatusKind.ERROR)
        elif not self.frames:
            self._set_status_text("No valid frames detected", kind=StatusKind.ERROR)
        else:
            self._set_status_text(f"{len(self.frames)} frames loaded")

    def _on_load_finished(self, key: str, generation: int, rgba):
        # Ignore results of a replaced upload set
        if generation != self.generation:
            return
        surface = self.surfaces.get(key)
        if surface is not None:
            surface.set_background(rgba)

    def _on_load_failed(self, key: str, generation: int, message: str):
        if generation != self.generation:
            return
        logger.error("[LOAD] %s", message)
        self._set_status_text(message, kind=StatusKind.ERROR)

    # ---- Surface interaction ----
    def _toggle_edit(self, column, surface: AnnotationSurface):
        surface.toggle_edit()
        column.buttons["Edit"].setChecked(surface.edit_mode)
        column.view.set_edit_cursor(surface.edit_mode)

    def _on_surface_changed(self, column, surface: AnnotationSurface):
        column.view.update()
        column.buttons["Edit"].setChecked(surface.edit_mode)
        column.view.set_edit_cursor(surface.edit_mode)

        text = "  ".join(f"{round(l.length, 2)}" for l in surface.lines)
        result = surface.stenosis()
        if result is not None:
            text += (f"\nDiameter stenosis percentage: {format_percent(result.diameter)}"
                     f"\nArea stenosis percentage: {format_percent(result.area)}")
        column.measurements.setText(text)

    def _update_arrows(self, panel, frame: Frame):
        ready = frame.is_paired and frame.image.is_ready and frame.mask.is_ready
        panel.toMaskButton.setEnabled(ready)
        panel.toImageButton.setEnabled(ready)

    def _propagate(self, idx: int, direction: Direction):
        frame = self.frames[idx]
        if direction is Direction.TO_MASK:
            written = frame.propagate_to_mask()
            target = frame.mask
        else:
            written = frame.propagate_to_image()
            target = frame.image
        # lines without vessel sit on the mask in both directions
        failed = sum(1 for l in frame.mask.lines if is_not_found(l)) if frame.mask else 0
        if not written and not failed:
            self._set_status_text("Nothing to propagate: draw three lines and clear the target first.")
            return
        if failed:
            self._set_status_text(f"{failed} line(s) found no vessel on {frame.mask.name}", kind=StatusKind.ERROR)
        else:
            self._set_status_text(f"{written} lines propagated to {target.name}", kind=StatusKind.OK)

    # ---- Filters ----
    def _apply_filters(self, idx: int):
        panel = self.view.framePanels[idx]
        frame = self.frames[idx]
        if frame.image is not None:
            frame.image.set_filters(panel.brightnessSlider.value(), panel.contrastSlider.value())

    def _reset_filters(self, idx: int):
        panel = self.view.framePanels[idx]
        frame = self.frames[idx]
        self._debounce[idx].stop()
        for slider, value in ((panel.brightnessSlider, frame.image.config.brightness if frame.image else 100),
                              (panel.contrastSlider, frame.image.config.contrast if frame.image else 100)):
            slider.blockSignals(True)
            slider.setValue(value)
            slider.blockSignals(False)
        self._apply_filters(idx)

    # ---- Export ----
    def _download_surface(self, surface: AnnotationSurface):
        composite = surface.download_composite()
        if composite is None:
            return
        default = surface.name.replace(".png", "_qca.png")
        path, _ = QFileDialog.getSaveFileName(self.view, "Save annotated image", default, "PNG images (*.png)")
        if not path:
            return
        try:
            write_png(path, composite)
        except OSError as e:
            logger.exception("[EXPORT] saving %s failed", path)
            self._set_status_text(str(e), kind=StatusKind.ERROR)
            return
        self._set_status_text(f"Saved {path}", kind=StatusKind.OK)

    def _on_export_folder_clicked(self):
        if not self.frames:
            self._set_status_text("Nothing to export, open image and mask files first.", kind=StatusKind.ERROR)
            return
        folder = QFileDialog.getExistingDirectory(self.view, "Export to folder")
        if not folder:
            return
        try:
            write_composites(folder, self.frames)
            write_csv(Path(folder) / "qca.csv", self.frames)
        except OSError as e:
            logger.exception("[EXPORT] export to %s failed", folder)
            self._set_status_text(str(e), kind=StatusKind.ERROR)
            return
        self._set_status_text(f"The results were saved in the following folder: {folder}", kind=StatusKind.OK)

    def _on_export_zip_clicked(self):
        if not self.frames:
            self._set_status_text("Nothing to export, open image and mask files first.", kind=StatusKind.ERROR)
            return
        path, _ = QFileDialog.getSaveFileName(self.view, "Export zip", "QCA.zip", "Zip archives (*.zip)")
        if not path:
            return
        try:
            write_zip(path, self.frames)
        except OSError as e:
            logger.exception("[EXPORT] export to %s failed", path)
            self._set_status_text(str(e), kind=StatusKind.ERROR)
            return
        self._set_status_text(f"The results were saved in {path}", kind=StatusKind.OK)

    def _set_status_text(self, msg: str, *, kind: StatusKind = StatusKind.INFO):
        # Colours: error = orange, info = light grey, ok = green
        colors = {
            StatusKind.ERROR: "#ff9f1a",
            StatusKind.INFO: "#d8d8d8",
            StatusKind.OK: "#6bd66b",
        }
        col = colors.get(kind, "#d8d8d8")
        self.view.statusLine.setStyleSheet(
            f"QLineEdit {{ background:#1e1e1e; color:{col}; padding:2px 6px; }}"
        )
        self.view.statusLine.setText(msg)
