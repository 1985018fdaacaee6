"""
Raw YOLO output tensor -> confidence-filtered candidates in model input-space.
"""
from __future__ import annotations

from typing import List

import numpy as np

from . import config
from .exceptions import InvalidOutputError
from .types import BoundingBox, Candidate


class OutputDecoder:
    """Interpret ``[cx, cy, w, h, objectness, class_0 .. class_{K-1}]`` rows.

    The engine may emit one row per candidate (``[N, 5+K]``) or one column
    per candidate (``[5+K, N]``). ``layout="auto"`` treats a tensor whose
    first axis is shorter than its second as the column layout, which holds
    for any realistic anchor count.
    """

    LAYOUTS = ("auto", "rows", "columns")

    def __init__(
        self,
        input_size: int = config.INPUT_SIZE,
        confidence_threshold: float = config.CONFIDENCE_THRESHOLD,
        layout: str = "auto",
    ):
        if layout not in self.LAYOUTS:
            raise ValueError(f"layout must be one of {self.LAYOUTS}, got {layout!r}")
        self.input_size = input_size
        self.confidence_threshold = confidence_threshold
        self.layout = layout

    def _as_rows(self, raw) -> np.ndarray:
        try:
            output = np.asarray(raw, dtype=np.float32)
        except (TypeError, ValueError) as exc:
            raise InvalidOutputError(f"output is not numeric: {exc}") from exc

        # Drop leading batch dimensions of size 1.
        while output.ndim > 2 and output.shape[0] == 1:
            output = output[0]
        if output.ndim != 2:
            raise InvalidOutputError(f"expected a 2-D output, got shape {output.shape}")
        if output.size == 0:
            return np.empty((0, config.MIN_CANDIDATE_FIELDS), dtype=np.float32)

        if self.layout == "columns" or (self.layout == "auto" and output.shape[0] < output.shape[1]):
            output = output.T

        if output.shape[1] < config.MIN_CANDIDATE_FIELDS:
            raise InvalidOutputError(
                f"candidates carry {output.shape[1]} fields, need at least {config.MIN_CANDIDATE_FIELDS}"
            )
        return output

    def decode(self, raw) -> List[Candidate]:
        rows = self._as_rows(raw)
        rows = rows[np.isfinite(rows).all(axis=1)]
        if rows.shape[0] == 0:
            return []

        objectness = rows[:, 4]
        if rows.shape[1] > 5:
            scores = rows[:, 5:]
            # argmax returns the first maximum, so ties go to the lowest index.
            best_class = scores.argmax(axis=1)
            best_score = scores[np.arange(rows.shape[0]), best_class]
            non_positive = best_score <= 0.0
            best_class[non_positive] = 0
            best_score = np.where(non_positive, 0.0, best_score)
        else:
            # Single-class model without class scores.
            best_class = np.zeros(rows.shape[0], dtype=np.int64)
            best_score = np.ones(rows.shape[0], dtype=np.float32)

        confidence = objectness * best_score
        keep = confidence > self.confidence_threshold
        if not keep.any():
            return []

        kept = rows[keep]
        size = float(self.input_size)
        cx, cy, w, h = kept[:, 0], kept[:, 1], kept[:, 2], kept[:, 3]
        left = np.clip(cx - w / 2.0, 0.0, size)
        top = np.clip(cy - h / 2.0, 0.0, size)
        right = np.clip(cx + w / 2.0, 0.0, size)
        bottom = np.clip(cy + h / 2.0, 0.0, size)

        return [
            Candidate(
                box=BoundingBox(float(x1), float(y1), float(x2), float(y2)),
                confidence=float(c),
                class_id=int(k),
            )
            for x1, y1, x2, y2, c, k in zip(left, top, right, bottom, confidence[keep], best_class[keep])
        ]
