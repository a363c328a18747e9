# Model/frame.py
from __future__ import annotations
import re
from dataclasses import dataclass, field
from pathlib import PurePath
from typing import Iterable, Optional

from Model.propagation import is_not_found, propagate_to_image, propagate_to_mask
from Model.surface import AnnotationSurface, SurfaceConfig

DEFAULT_MASK_SUFFIX = "a"
_MASK_RE = re.compile(r"[A-Za-z]+\.png$")


def is_mask_name(name: str) -> bool:
    # Image names end with the frame number, masks with a letter suffix
    return _MASK_RE.search(name) is not None


def mask_name_for(image_name: str, suffix: str = DEFAULT_MASK_SUFFIX) -> str:
    if not image_name.endswith(".png"):
        return image_name
    return image_name[:-len(".png")] + suffix + ".png"


def image_name_for(mask_name: str, suffix: str = DEFAULT_MASK_SUFFIX) -> str:
    tail = suffix + ".png"
    if not mask_name.endswith(tail):
        return mask_name
    return mask_name[:-len(tail)] + ".png"


def _to_int(s: str) -> Optional[int]:
    m = re.match(r"[+-]?\d+", s.strip())
    return int(m.group(0)) if m else None


def _to_float(s: str) -> Optional[float]:
    m = re.match(r"[+-]?(\d+\.?\d*|\.\d+)", s.strip())
    return float(m.group(0)) if m else None


@dataclass(frozen=True)
class FrameIdentity:
    patient_id: Optional[int]
    primary_angle: Optional[float]
    secondary_angle: Optional[float]
    frame_number: Optional[int]

    @classmethod
    def from_image_name(cls, image_name: str) -> "FrameIdentity":
        # <patient>_<primary angle>_<secondary angle>_<frame>.png
        parts = PurePath(image_name).stem.split("_") + ["", "", "", ""]
        return cls(
            patient_id=_to_int(parts[0]),
            primary_angle=_to_float(parts[1]),
            secondary_angle=_to_float(parts[2]),
            frame_number=_to_int(parts[3]),
        )

    def as_row(self) -> list:
        return [
            "" if v is None else v
            for v in (self.patient_id, self.primary_angle, self.secondary_angle, self.frame_number)
        ]


@dataclass
class PairingResult:
    pairs: list[tuple[Optional[str], Optional[str]]] = field(default_factory=list)  # (image, mask)
    unmatched_images: list[str] = field(default_factory=list)
    unmatched_masks: list[str] = field(default_factory=list)

    def warning(self) -> str:
        msg = ""
        if self.unmatched_images:
            msg += "The following images have no matching masks:\n" + "".join(n + "\n" for n in self.unmatched_images)
        if self.unmatched_masks:
            msg += "The following masks have no matching images:\n" + "".join(n + "\n" for n in self.unmatched_masks)
        return msg


def pair_files(names: Iterable[str], suffix: str = DEFAULT_MASK_SUFFIX) -> PairingResult:
    """
    Pairs <image>.png with <image><suffix>.png. Masks carrying a different
    letter suffix are ignored. Order follows the sorted file names.
    """
    names = sorted(set(PurePath(n).name for n in names if n.lower().endswith(".png")))
    masks = {n for n in names if is_mask_name(n) and n.endswith(f"{suffix}.png")}
    images = [n for n in names if not is_mask_name(n)]

    result = PairingResult()
    used = set()
    for img in images:
        mask = mask_name_for(img, suffix)
        if mask in masks:
            result.pairs.append((img, mask))
            used.add(mask)
        else:
            result.pairs.append((img, None))
            result.unmatched_images.append(img)
    for mask in sorted(masks - used):
        result.pairs.append((None, mask))
        result.unmatched_masks.append(mask)

    result.pairs.sort(key=lambda p: p[0] or image_name_for(p[1], suffix))
    return result


class Frame:
    """Image + mask pair sharing patient / acquisition identity."""

    def __init__(self, image_name: str | None, mask_name: str | None,
                 suffix: str = DEFAULT_MASK_SUFFIX, config: SurfaceConfig | None = None):
        if image_name is None and mask_name is None:
            raise ValueError("A frame needs an image or a mask")
        self.suffix = suffix
        self.image_name = image_name or image_name_for(mask_name, suffix)
        self.mask_name = mask_name or mask_name_for(image_name, suffix)
        self.identity = FrameIdentity.from_image_name(self.image_name)

        # Masks are shown unfiltered, so both surfaces start from the same config
        config = config or SurfaceConfig()
        self.image = AnnotationSurface(config, name=self.image_name) if image_name else None
        self.mask = AnnotationSurface(config, name=self.mask_name) if mask_name else None

    @property
    def is_paired(self) -> bool:
        return self.image is not None and self.mask is not None

    def propagate_to_mask(self) -> int:
        if not self.is_paired:
            return 0
        return propagate_to_mask(self.image, self.mask)

    def propagate_to_image(self) -> int:
        if not self.is_paired:
            return 0
        return propagate_to_image(self.mask, self.image)

    def export_names(self) -> dict[str, str]:
        return {
            "image": self.image_name.replace(".png", "_qca.png"),
            "mask": self.mask_name.replace(".png", "_qca.png"),
        }

    def spreadsheet_rows(self) -> list[list]:
        rows = []
        for kind, surface in (("Image", self.image), ("Mask", self.mask)):
            lines = surface.lines if surface is not None else ()
            # failed propagations leave the cell empty
            diameters = ["" if is_not_found(l) else l.length for l in lines]
            diameters = (diameters + ["", "", ""])[:3]
            result = surface.stenosis() if surface is not None else None
            rows.append(
                self.identity.as_row() + [kind] + diameters + (
                    [result.diameter / 100.0, result.area / 100.0] if result else ["", ""]
                )
            )
        return rows
