import cv2
import numpy as np
from PyQt6.QtCore import QBuffer, QIODevice
from PyQt6.QtGui import QImage


class ImageLoadError(OSError):
    pass


def apply_filters(rgba: np.ndarray, brightness_percent: float, contrast_percent: float) -> np.ndarray:
    """
    brightness_percent: 0..200  (100 = neutral, multiplies the channels)
    contrast_percent: 0..1000   (100 = neutral, stretches around mid-grey)
    """
    if brightness_percent == 100 and contrast_percent == 100:
        return rgba

    arr = rgba.astype(np.float32)

    # Only RGB is adjusted, alpha stays untouched
    rgb = arr[..., :3]
    rgb *= max(0.0, brightness_percent) / 100.0
    rgb -= 127.5
    rgb *= max(0.0, contrast_percent) / 100.0
    rgb += 127.5
    np.clip(rgb, 0, 255, out=rgb)

    return arr.astype(np.uint8)


def rgba_to_qimage(rgba: np.ndarray) -> QImage:
    h, w, _ = rgba.shape
    buf = np.ascontiguousarray(rgba, dtype=np.uint8)
    # QImage must not point to transient memory -> copy()
    return QImage(buf.data, w, h, 4 * w, QImage.Format.Format_RGBA8888).copy()


def qimage_to_rgba(qimg: QImage) -> np.ndarray:
    # Always convert to RGBA8888 (uniform format)
    src = qimg.convertToFormat(QImage.Format.Format_RGBA8888)
    w, h = src.width(), src.height()
    bytes_per_line = src.bytesPerLine()

    ptr = src.constBits()
    ptr.setsize(bytes_per_line * h)
    arr = np.frombuffer(ptr, dtype=np.uint8).reshape((h, bytes_per_line))

    # Payload without padding: w*4
    return arr[:, :w * 4].reshape((h, w, 4)).copy()


def load_rgba(path: str) -> np.ndarray:
    bgra = cv2.imread(path, cv2.IMREAD_UNCHANGED)
    if bgra is None:
        raise ImageLoadError(f"Could not decode image: {path}")

    # 16 bit images (frequent for angiography exports) -> 8 bit
    if bgra.dtype != np.uint8:
        bgra = cv2.convertScaleAbs(bgra, alpha=255.0 / 65535.0)

    if bgra.ndim == 2:
        return cv2.cvtColor(bgra, cv2.COLOR_GRAY2RGBA)
    if bgra.shape[2] == 3:
        return cv2.cvtColor(bgra, cv2.COLOR_BGR2RGBA)
    return cv2.cvtColor(bgra, cv2.COLOR_BGRA2RGBA)


def encode_png(qimg: QImage) -> bytes:
    buffer = QBuffer()
    buffer.open(QIODevice.OpenModeFlag.WriteOnly)
    qimg.save(buffer, "PNG")
    data = bytes(buffer.data())
    buffer.close()
    return data


def write_png(path: str, qimg: QImage) -> None:
    bgra = cv2.cvtColor(qimage_to_rgba(qimg), cv2.COLOR_RGBA2BGRA)
    if not cv2.imwrite(path, bgra):
        raise OSError(f"Could not write image: {path}")
