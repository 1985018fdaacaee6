"""
Box geometry shared by suppression and association.
"""
from __future__ import annotations

import math
from typing import Tuple

from .types import BoundingBox, Detection


def compute_iou(a: BoundingBox, b: BoundingBox) -> float:
    inter_w = max(0.0, min(a.right, b.right) - max(a.left, b.left))
    inter_h = max(0.0, min(a.bottom, b.bottom) - max(a.top, b.top))
    inter_area = inter_w * inter_h
    union = a.width * a.height + b.width * b.height - inter_area
    return inter_area / union if union > 0 else 0.0


def clamp(value: float, low: float, high: float) -> float:
    return min(max(value, low), high)


def _is_finite(*values: float) -> bool:
    return all(math.isfinite(v) for v in values)


def is_normalized_box(box: BoundingBox) -> bool:
    """True for a finite, positive-area box inside the unit square."""
    if not _is_finite(*box.as_tuple()):
        return False
    if not all(0.0 <= v <= 1.0 for v in box.as_tuple()):
        return False
    return box.has_area()


def is_valid_detection(det: Detection) -> bool:
    """Range and ordering checks every emitted detection must satisfy."""
    if not _is_finite(det.confidence) or not 0.0 <= det.confidence <= 1.0:
        return False
    return is_normalized_box(det.bounding_box)


def is_valid_center(center: Tuple[float, float] | None) -> bool:
    if center is None:
        return False
    x, y = center
    return _is_finite(x, y) and 0.0 <= x <= 1.0 and 0.0 <= y <= 1.0
