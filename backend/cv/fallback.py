"""Simulated tooth detector used when no model is available."""
from __future__ import annotations

import random
from typing import List, Optional

from . import config
from .geometry import clamp
from .types import BoundingBox, Detection


class SimulatedDetector:
    """Emit a plausible row of synthetic teeth.

    Boxes follow a fixed staggered pattern across the frame; only the count
    and the confidences are random.
    """

    def __init__(self, rng: Optional[random.Random] = None):
        self._rng = rng or random.Random()

    @staticmethod
    def _box(index: int) -> BoundingBox:
        row_offset = (index % 2) * 0.2
        return BoundingBox(
            left=clamp(index * 0.1, 0.0, 0.9),
            top=0.3 + row_offset,
            right=clamp(index * 0.1 + 0.15, 0.1, 1.0),
            bottom=0.5 + row_offset,
        )

    def detect(self) -> List[Detection]:
        count = self._rng.randint(config.SIMULATED_MIN_TEETH, config.SIMULATED_MAX_TEETH)
        return [
            Detection(
                bounding_box=self._box(i),
                confidence=config.SIMULATED_MIN_CONFIDENCE
                + self._rng.random() * config.SIMULATED_CONFIDENCE_SPREAD,
                class_id=0,
                label=config.TOOTH_LABEL,
            )
            for i in range(count)
        ]
