# Model/stenosis.py
from __future__ import annotations
import math
from dataclasses import dataclass
from typing import Iterable, Optional

REQUIRED_LINES = 3


@dataclass(frozen=True)
class StenosisResult:
    diameter: float  # percent
    area: float      # percent


def compute_stenosis(lengths: Iterable[float]) -> Optional[StenosisResult]:
    """
    Narrowest of three calibers against the two reference calibers.
    Returns None unless exactly three lengths are given.
    """
    lengths = sorted(float(v) for v in lengths)
    if len(lengths) != REQUIRED_LINES:
        return None

    d_min, d_a, d_b = lengths
    ref_sum = d_a + d_b
    ref_area = math.pi * (d_a / 2.0) ** 2 + math.pi * (d_b / 2.0) ** 2
    if ref_sum <= 0 or ref_area <= 0:
        return None

    diameter = 2.0 * d_min / ref_sum * 100.0
    area = 2.0 * math.pi * (d_min / 2.0) ** 2 / ref_area * 100.0
    return StenosisResult(diameter=diameter, area=area)


def format_percent(value: Optional[float]) -> str:
    # display only, the computation itself is never rounded
    if value is None:
        return "-"
    return f"{round(value, 2):.2f}%"
