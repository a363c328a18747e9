from pathlib import Path

from PyQt6.QtWidgets import (
    QWidget, QVBoxLayout, QHBoxLayout, QPushButton, QLineEdit, QSizePolicy, QScrollArea, QLabel
)

from Controller.QCAController import QCAController
from Model.frame import DEFAULT_MASK_SUFFIX
from .panel import Panel, FramePanel

ALLOWED = {".png"}  # Image and mask files are PNGs


class QCAGui(QWidget):
    def __init__(self):
        super().__init__()
        self.setWindowTitle("QCA Annotator")
        self.setAcceptDrops(True)  # files can also be dropped onto the window
        self.framePanels: list[FramePanel] = []
        self._init_ui()
        self.controller = QCAController(self)

    def _init_ui(self):
        self.setAutoFillBackground(True)
        self.setMinimumSize(900, 600)

        # Top area: file handling and export
        self.topPanel = Panel("QCA Annotator")
        self.topPanel.add_toolbar_buttons({
            "Open Files": self._btn("Open Files..."),
            "Open Folder": self._btn("Open Folder..."),
            "Export Folder": self._btn("Export to Folder..."),
            "Export Zip": self._btn("Export Zip..."),
        })
        self.topPanel.toolbarButtons["Open Files"].setToolTip(
            "Select the image and mask PNG files. Masks are named like their image \n"
            "plus the mask suffix, e.g. '12_30_-20_4.png' and '12_30_-20_4a.png'.")
        self.topPanel.toolbarButtons["Open Folder"].setToolTip(
            "Load every image / mask pair found in a folder.")
        self.topPanel.toolbarButtons["Export Folder"].setToolTip(
            "Writes the annotated images and masks (<name>_qca.png) and the \n"
            "measurement table (qca.csv) into the selected folder.")
        self.topPanel.toolbarButtons["Export Zip"].setToolTip(
            "Writes all annotated images and masks plus qca.csv into one zip archive.")

        # Mask suffix field, right of the buttons
        self.suffixInput = QLineEdit(DEFAULT_MASK_SUFFIX)
        self.suffixInput.setFixedWidth(60)
        self.suffixInput.setToolTip("Suffix that distinguishes a mask file name from its image.")
        suffix = QWidget()
        s = QHBoxLayout(suffix)
        s.setContentsMargins(0, 0, 0, 0)
        s.addWidget(QLabel("Mask suffix:"))
        s.addWidget(self.suffixInput)

        self.statusLine = QLineEdit()
        self.statusLine.setReadOnly(True)
        self.statusLine.setPlaceholderText("Open image and mask files to start annotating")
        self.statusLine.setFixedHeight(22)
        self.statusLine.setSizePolicy(QSizePolicy.Policy.Expanding, QSizePolicy.Policy.Fixed)
        self.statusLine.setStyleSheet("QLineEdit { background:#1e1e1e; color:#d8d8d8; padding:2px 6px; }")

        top = QWidget()
        t = QVBoxLayout(top)
        t.setContentsMargins(4, 2, 4, 4)
        t.setSpacing(2)
        t.addWidget(suffix)
        t.addWidget(self.statusLine)
        self.topPanel.set_content(top)
        self.topPanel.setMaximumHeight(160)
        self.topPanel.setSizePolicy(QSizePolicy.Policy.Expanding, QSizePolicy.Policy.Fixed)

        # Scrollable list of frame panels
        self.framesContainer = QWidget()
        self._framesLayout = QVBoxLayout(self.framesContainer)
        self._framesLayout.setContentsMargins(0, 0, 0, 0)
        self._framesLayout.setSpacing(8)
        self._framesLayout.addStretch(1)
        scroll = QScrollArea()
        scroll.setWidgetResizable(True)
        scroll.setWidget(self.framesContainer)

        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.addWidget(self.topPanel)
        layout.addWidget(scroll, 1)

    # ------- Frame panels -------
    def add_frame_panel(self, frame) -> FramePanel:
        panel = FramePanel(frame)
        # keep the stretch as the last item
        self._framesLayout.insertWidget(self._framesLayout.count() - 1, panel)
        self.framePanels.append(panel)
        return panel

    def clear_frame_panels(self):
        for panel in self.framePanels:
            self._framesLayout.removeWidget(panel)
            panel.deleteLater()
        self.framePanels.clear()

    @staticmethod
    def _btn(text: str) -> QPushButton:
        btn = QPushButton(text)
        btn.setMinimumHeight(36)
        return btn

    # Helper functions for Drag&Drop
    def dragEnterEvent(self, event):
        if self._png_paths(event):
            event.acceptProposedAction()
        else:
            event.ignore()

    def dragMoveEvent(self, event):
        if self._png_paths(event):
            event.acceptProposedAction()
        else:
            event.ignore()

    def dropEvent(self, event):
        paths = self._png_paths(event)
        if not paths:
            event.ignore()
            return
        self.controller.open_files(paths)
        event.acceptProposedAction()

    @staticmethod
    def _png_paths(event) -> list[str]:
        md = event.mimeData()
        if not md.hasUrls():
            return []
        return [
            u.toLocalFile() for u in md.urls()
            if u.isLocalFile() and Path(u.toLocalFile()).suffix.lower() in ALLOWED
        ]
