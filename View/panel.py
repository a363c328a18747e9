from PyQt6.QtWidgets import (
    QFrame, QWidget, QVBoxLayout, QHBoxLayout, QLabel, QSizePolicy, QPushButton, QSlider
)
from PyQt6.QtCore import Qt

from Model.frame import Frame
from Model.surface import BRIGHTNESS_RANGE, CONTRAST_RANGE
from .surfaceView import SurfaceView


class Panel(QFrame):
    # Titled frame: a toolbar row on top of one content widget
    def __init__(self, title: str):
        super().__init__()
        self.setFrameShape(QFrame.Shape.StyledPanel)

        self.titleLabel = QLabel(title)
        self.titleLabel.setContentsMargins(4, 4, 4, 4)
        self.titleLabel.setFixedHeight(20)

        self.toolbar = QWidget()
        self.toolbar.setFixedHeight(50)
        self._tbLayout = QHBoxLayout(self.toolbar)
        self._tbLayout.setContentsMargins(8, 4, 8, 4)
        self._tbLayout.setSpacing(8)
        self._tbLayout.addStretch(1)

        self.contentArea = QWidget()

        v = QVBoxLayout(self)
        v.setContentsMargins(0, 0, 0, 0)
        v.setSpacing(0)
        v.addWidget(self.titleLabel)
        v.addWidget(self.toolbar)
        v.addWidget(self.contentArea)

        self.toolbarButtons: dict[str, QPushButton] = {}
        self.brightnessSlider: QSlider | None = None
        self.contrastSlider: QSlider | None = None

    def _add_to_toolbar(self, widget: QWidget):
        # keep the stretch as the last item
        self._tbLayout.insertWidget(self._tbLayout.count() - 1, widget)

    def add_toolbar_buttons(self, buttons: dict[str, QPushButton]):
        for key, btn in buttons.items():
            self._add_to_toolbar(btn)
            self.toolbarButtons[key] = btn

    def add_adjustment_sliders(self, slider_min_width: int = 120):
        # Brightness and contrast in percent, 100 = unchanged
        def slider(label: str, value_range: tuple[int, int]) -> QSlider:
            self._add_to_toolbar(QLabel(label))
            s = QSlider(Qt.Orientation.Horizontal)
            s.setRange(*value_range)
            s.setValue(100)
            s.setMinimumWidth(slider_min_width)
            self._add_to_toolbar(s)
            return s

        self.brightnessSlider = slider("Brightness", BRIGHTNESS_RANGE)
        self.contrastSlider = slider("Contrast", CONTRAST_RANGE)

    def set_content(self, widget: QWidget):
        layout = self.layout()
        layout.removeWidget(self.contentArea)
        self.contentArea.deleteLater()
        self.contentArea = widget
        self.contentArea.setSizePolicy(QSizePolicy.Policy.Expanding, QSizePolicy.Policy.Expanding)
        layout.addWidget(self.contentArea)

class SurfaceColumn(QWidget):
    # One surface: the view, its own buttons (Edit, Undo, Clear, Download) and the measurements
    def __init__(self, caption: str):
        super().__init__()
        self.view = SurfaceView("Loading image ...")
        self.caption = QLabel(caption)
        self.measurements = QLabel("")
        self.measurements.setWordWrap(True)

        self.buttons: dict[str, QPushButton] = {}
        bar = QHBoxLayout()
        bar.setContentsMargins(0, 0, 0, 0)
        for key in ("Edit", "Undo", "Clear", "Download"):
            btn = QPushButton(key)
            btn.setMinimumHeight(28)
            bar.addWidget(btn)
            self.buttons[key] = btn
        self.buttons["Edit"].setCheckable(True)
        self.buttons["Edit"].setChecked(True)
        bar.addStretch(1)

        v = QVBoxLayout(self)
        v.setContentsMargins(4, 4, 4, 4)
        v.setSpacing(4)
        v.addWidget(self.caption)
        v.addWidget(self.view, 1)
        v.addLayout(bar)
        v.addWidget(self.measurements)

    def set_enabled_controls(self, on: bool):
        for btn in self.buttons.values():
            btn.setEnabled(on)


class FramePanel(Panel):
    # A frame row: image (left), propagation arrows, mask (right)
    def __init__(self, frame: Frame):
        ident = frame.identity
        super().__init__(
            f"Patient {ident.patient_id}  |  Primary angle {ident.primary_angle}°  |  "
            f"Secondary angle {ident.secondary_angle}°  |  Frame {ident.frame_number}"
        )
        self.frame = frame
        self.setMinimumHeight(480)

        self.add_adjustment_sliders(slider_min_width=140)
        self.add_toolbar_buttons({"Reset": self._btn("Reset")})
        self.toolbarButtons["Reset"].setToolTip("Resets brightness and contrast of the image to their defaults.")

        self.imageColumn = SurfaceColumn(frame.image_name if frame.image else f"No matching image for mask {frame.mask_name}")
        self.maskColumn = SurfaceColumn(frame.mask_name if frame.mask else f"No matching mask for image {frame.image_name}")

        self.toMaskButton = self._btn("→")
        self.toMaskButton.setToolTip("Propagate the three image lines onto the mask.")
        self.toImageButton = self._btn("←")
        self.toImageButton.setToolTip("Copy the three mask lines onto the image.")
        arrows = QWidget()
        a = QVBoxLayout(arrows)
        a.addStretch(1)
        a.addWidget(self.toMaskButton)
        a.addWidget(self.toImageButton)
        a.addStretch(1)

        content = QWidget()
        h = QHBoxLayout(content)
        h.setContentsMargins(0, 0, 0, 0)
        h.addWidget(self.imageColumn, 1)
        h.addWidget(arrows, 0)
        h.addWidget(self.maskColumn, 1)
        self.set_content(content)

        self.imageColumn.set_enabled_controls(frame.image is not None)
        self.maskColumn.set_enabled_controls(frame.mask is not None)
        self.toMaskButton.setEnabled(False)
        self.toImageButton.setEnabled(False)

    @staticmethod
    def _btn(text: str) -> QPushButton:
        btn = QPushButton(text)
        btn.setMinimumHeight(36)
        return btn
