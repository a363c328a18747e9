# main.py
import logging
import sys
from PyQt6.QtWidgets import QApplication

# (Windows only) - makes the taskbar show the app's own entry when started from Python
if sys.platform.startswith("win"):
    import ctypes
    try:
        ctypes.windll.shell32.SetCurrentProcessExplicitAppUserModelID("qca.annotator")
    except (AttributeError, OSError):
        pass

from View.gui import QCAGui

logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")


def main():
    app = QApplication(sys.argv)
    win = QCAGui()
    win.showMaximized()
    sys.exit(app.exec())


if __name__ == "__main__":
    main()
