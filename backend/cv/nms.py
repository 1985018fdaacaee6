"""Greedy non-maximum suppression over normalized detections."""
from __future__ import annotations

from typing import Iterable, List

from . import config
from .geometry import compute_iou, is_valid_detection
from .types import Detection


def non_max_suppression(
    detections: Iterable[Detection],
    iou_threshold: float = config.IOU_THRESHOLD,
) -> List[Detection]:
    """Keep the most confident detection of every overlapping group.

    ``sorted`` is stable, so equal-confidence detections keep their input
    order. Quadratic in the number of inputs.
    """
    # Invalid detections never reach the greedy pass.
    candidates = [d for d in detections if is_valid_detection(d)]

    kept: List[Detection] = []
    for det in sorted(candidates, key=lambda d: d.confidence, reverse=True):
        if all(compute_iou(det.bounding_box, k.bounding_box) <= iou_threshold for k in kept):
            kept.append(det)
    return kept
