"""
Map model input-space boxes back to normalized source-image coordinates.
"""
from __future__ import annotations

from typing import Iterable, List, Optional

from . import config
from .geometry import clamp, is_valid_detection
from .types import BoundingBox, Candidate, Detection, PreprocessInfo


class GeometricRectifier:
    """Invert the letterbox transform recorded by the preprocessor."""

    def __init__(self, input_size: int = config.INPUT_SIZE, label: str = config.TOOTH_LABEL):
        self.input_size = input_size
        self.label = label

    def to_source(self, box: BoundingBox, info: Optional[PreprocessInfo]) -> BoundingBox:
        if info is None:
            size = float(self.input_size)
            return BoundingBox(box.left / size, box.top / size, box.right / size, box.bottom / size)

        def _x(value: float) -> float:
            src = clamp((value - info.pad_x) / info.scale, 0.0, float(info.src_width))
            return clamp(src / info.src_width, 0.0, 1.0)

        def _y(value: float) -> float:
            src = clamp((value - info.pad_y) / info.scale, 0.0, float(info.src_height))
            return clamp(src / info.src_height, 0.0, 1.0)

        return BoundingBox(_x(box.left), _y(box.top), _x(box.right), _y(box.bottom))

    def rectify(self, candidate: Candidate, info: Optional[PreprocessInfo]) -> Optional[Detection]:
        """Return the normalized detection, or None for zero-area/invalid boxes."""
        detection = Detection(
            bounding_box=self.to_source(candidate.box, info),
            confidence=candidate.confidence,
            class_id=candidate.class_id,
            label=self.label,
        )
        if not is_valid_detection(detection):
            return None
        return detection

    def rectify_all(self, candidates: Iterable[Candidate], info: Optional[PreprocessInfo]) -> List[Detection]:
        rectified = (self.rectify(c, info) for c in candidates)
        return [d for d in rectified if d is not None]
