"""
YOLO tooth detector: preprocess -> inference -> decode -> rectify -> NMS.
"""
from __future__ import annotations

import logging
from typing import List, Optional

import numpy as np

from common.config import detector_settings
from . import config
from .decoder import OutputDecoder
from .exceptions import DetectorError, ModelLoadError
from .fallback import SimulatedDetector
from .nms import non_max_suppression
from .preprocess import FramePreprocessor
from .rectifier import GeometricRectifier
from .types import Detection, PlanarImage, PreprocessInfo

logger = logging.getLogger(__name__)


class TeethDetector:
    """Turn camera frames into deduplicated, normalized tooth detections.

    Without an engine the detector runs in simulation mode and returns
    synthetic teeth. ``detect`` never raises: any failure inside a frame
    yields an empty list for that frame.
    """

    def __init__(
        self,
        engine=None,
        preprocessor: FramePreprocessor | None = None,
        decoder: OutputDecoder | None = None,
        rectifier: GeometricRectifier | None = None,
        fallback: SimulatedDetector | None = None,
        iou_threshold: float = config.IOU_THRESHOLD,
    ):
        self._engine = engine
        self.preprocessor = preprocessor or FramePreprocessor()
        self.decoder = decoder or OutputDecoder(input_size=self.preprocessor.input_size)
        self.rectifier = rectifier or GeometricRectifier(input_size=self.preprocessor.input_size)
        self.fallback = fallback or SimulatedDetector()
        self.iou_threshold = iou_threshold

    def has_model(self) -> bool:
        return self._engine is not None

    def detect(self, image: PlanarImage) -> List[Detection]:
        if self._engine is None:
            return self.fallback.detect()
        return self._detect_with_model(image)

    def _detect_with_model(self, image: PlanarImage) -> List[Detection]:
        try:
            prepared = self.preprocessor.preprocess(image)
            if prepared is None:
                return []
            raw = self._engine.run(prepared.tensor)
            return self.detect_tensor(raw, prepared.info)
        except DetectorError as exc:
            logger.warning("[Detector] Detection error: %s", exc)
        except Exception:
            logger.exception("[Detector] Detection failed")
        return []

    def detect_tensor(self, raw: np.ndarray, info: Optional[PreprocessInfo]) -> List[Detection]:
        """Post-inference stages for a raw output tensor of one frame."""
        candidates = self.decoder.decode(raw)
        detections = self.rectifier.rectify_all(candidates, info)
        return non_max_suppression(detections, self.iou_threshold)

    def close(self) -> None:
        if self._engine is not None:
            self._engine.close()
            self._engine = None


def get_detector(model_path: str | None = None) -> TeethDetector:
    """Build a detector, falling back to simulation when no model loads."""
    from cv.engine import load_engine

    try:
        engine = load_engine(model_path)
        logger.info("[Detector] Model loaded successfully")
    except ModelLoadError as exc:
        logger.error("[Detector] Failed to load model: %s", exc)
        engine = None

    return TeethDetector(engine=engine, decoder=OutputDecoder(layout=detector_settings.output_layout))
