"""Scan session: periodic detection, bracket association and user adjustments."""
from __future__ import annotations

import logging
import time
from typing import List, Optional

from cv import config
from cv.geometry import clamp
from cv.tracking import TemporalAssociator, TrackedObjectRegistry
from cv.types import Detection, PlanarImage, TrackedObject
from session.exceptions import ObjectNotFoundError
from session.types import FrameOutcome, PlacementCollaborator, SessionStatus, TrackingState

logger = logging.getLogger(__name__)

_TRACKING_MESSAGES = {
    TrackingState.PAUSED: "Move device slowly",
    TrackingState.STOPPED: "Tracking lost",
}


class ScanSession:
    """Drives one detector over camera frames and owns the placed brackets.

    ``on_frame`` is meant to be called from the frame-update callback; it
    runs detection at most once per ``interval_seconds`` while scanning and
    never raises. Callers that run inference elsewhere use ``should_detect``
    to gate frames and feed results to ``process_detections``. User actions
    (select, delete, rotate, scale, reset) are expected on the same
    execution context.
    """

    def __init__(
        self,
        detector,
        placement: PlacementCollaborator | None = None,
        registry: TrackedObjectRegistry | None = None,
        associator: TemporalAssociator | None = None,
        interval_seconds: float = config.DETECTION_INTERVAL_SEC,
    ):
        self._detector = detector
        self._placement = placement
        self.registry = registry or TrackedObjectRegistry()
        self._associator = associator or TemporalAssociator()
        self._interval_seconds = interval_seconds
        self._last_run: float | None = None
        self.scanning = False
        self.detected_teeth: List[Detection] = []
        self.selected_id: int | None = None
        self.tracking_state: TrackingState | None = None
        self._message = "Ready to start"

    # ---------- Frame loop ----------

    def start_scanning(self) -> None:
        self.scanning = True
        self._message = "Scanning... Tap surfaces to place brackets"

    def _due(self, now: float) -> bool:
        return self._last_run is None or (now - self._last_run) > self._interval_seconds

    def should_detect(self, now: float | None = None) -> bool:
        """True, and the interval restarts, when a frame at ``now`` is due for detection."""
        now = time.monotonic() if now is None else now
        if not self.scanning or not self._due(now):
            return False
        self._last_run = now
        return True

    def on_frame(self, image: PlanarImage, now: float | None = None) -> Optional[FrameOutcome]:
        """Run detection for this frame if scanning and the interval has elapsed."""
        if not self.should_detect(now):
            return None

        try:
            detections = self._detector.detect(image)
            return self.process_detections(detections)
        except Exception:
            logger.exception("[Session] Error processing frame")
            return None

    def process_detections(self, detections: List[Detection]) -> FrameOutcome:
        # An empty frame keeps the previous count on display.
        if detections:
            self.detected_teeth = list(detections)

        association = self._associator.associate(detections, self.registry)
        outcome = FrameOutcome(detections=list(detections), association=association)
        for det in association.unmatched:
            placed = self._place_detection(det)
            if placed is not None:
                outcome.placed.append(placed)
        return outcome

    def _place_detection(self, detection: Detection) -> Optional[TrackedObject]:
        if self._placement is None:
            return None
        try:
            anchor = self._placement.place(detection.center, detection.bounding_box)
        except Exception:
            logger.exception("[Session] Placement collaborator failed")
            return None
        if anchor is None:
            return None
        obj = self.registry.insert(anchor=anchor, detection=detection)
        logger.info("[Session] Bracket #%d placed on detected tooth", obj.id)
        return obj

    # ---------- User actions ----------

    def place_at(self, anchor) -> TrackedObject:
        """Place a bracket on a tapped surface anchor and select it."""
        obj = self.registry.insert(anchor=anchor)
        self.selected_id = obj.id
        logger.info("[Session] Bracket #%d placed", obj.id)
        return obj

    def select(self, object_id: int) -> TrackedObject:
        obj = self.registry.get(object_id)
        if obj is None:
            raise ObjectNotFoundError(f"Bracket {object_id} not found")
        self.selected_id = object_id
        return obj

    def selected(self) -> Optional[TrackedObject]:
        if self.selected_id is None:
            return None
        return self.registry.get(self.selected_id)

    def remove(self, object_id: int) -> TrackedObject:
        obj = self.registry.remove(object_id)
        if obj is None:
            raise ObjectNotFoundError(f"Bracket {object_id} not found")
        if self.selected_id == object_id:
            self.selected_id = None
        logger.info("[Session] Bracket #%d deleted", object_id)
        return obj

    def delete_selected(self) -> Optional[TrackedObject]:
        if self.selected_id is None:
            return None
        return self.remove(self.selected_id)

    def set_rotation(self, degrees: float) -> bool:
        """Rotate the selected bracket about the vertical axis."""
        if self.selected_id is None:
            return False
        degrees = clamp(float(degrees), config.MIN_ROTATION_DEGREES, config.MAX_ROTATION_DEGREES)
        return self.registry.update_transform(self.selected_id, rotation_degrees=degrees)

    def set_scale_progress(self, progress: float) -> Optional[float]:
        """Map a 0-100 slider position onto the selected bracket's scale."""
        if self.selected_id is None:
            return None
        progress = clamp(float(progress), 0.0, 100.0)
        scale = config.MIN_SCALE + (progress / 100.0) * config.SCALE_RANGE
        if not self.registry.update_transform(self.selected_id, scale=scale):
            return None
        return scale

    def selected_scale_progress(self) -> Optional[int]:
        obj = self.selected()
        if obj is None:
            return None
        return int((obj.scale - config.MIN_SCALE) / config.SCALE_RANGE * 100)

    def reset(self) -> int:
        """Remove every bracket and stop scanning; returns how many were removed."""
        count = self.registry.clear()
        self.detected_teeth = []
        self.selected_id = None
        self.scanning = False
        self._last_run = None
        self._message = "Ready to start"
        logger.info("[Session] Reset complete - %d brackets removed", count)
        return count

    # ---------- Status ----------

    def update_tracking_state(self, state: TrackingState) -> None:
        self.tracking_state = state
        if state == TrackingState.TRACKING:
            self._message = (
                "Scanning... Tap surfaces to place brackets" if self.scanning else "Ready - Tap Start Scanning"
            )
            return
        self._message = _TRACKING_MESSAGES[state]

    def status(self) -> SessionStatus:
        count = len(self.detected_teeth)
        return SessionStatus(
            detection_mode="ML Active" if self._detector.has_model() else "Simulation",
            scanning=self.scanning,
            detected_count=count,
            progress=min(100, count * 100 // config.MAX_TEETH),
            brackets_placed=len(self.registry),
            selected_id=self.selected_id,
            tracking_state=self.tracking_state,
            message=self._message,
        )

    def close(self) -> None:
        self._detector.close()
