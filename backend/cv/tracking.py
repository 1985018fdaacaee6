"""
Placed-bracket registry and frame-to-frame association.
"""
from __future__ import annotations

import dataclasses
import logging
import threading
from typing import Any, Dict, Iterable, Iterator, List, Optional

from . import config
from .geometry import compute_iou, is_normalized_box, is_valid_center
from .types import AssociationResult, Detection, TrackedObject

logger = logging.getLogger(__name__)


class TrackedObjectRegistry:
    """Single owner of placed objects.

    Ids start at 1 and only ever grow, including across ``remove`` and
    ``clear``. Readers get copies; every mutation goes through a method
    and is serialized by one lock.
    """

    def __init__(self):
        self._objects: Dict[int, TrackedObject] = {}
        self._next_id = 1
        self._lock = threading.Lock()

    def insert(self, anchor: Any = None, detection: Optional[Detection] = None) -> TrackedObject:
        with self._lock:
            obj = TrackedObject(id=self._next_id, anchor=anchor)
            self._next_id += 1
            if detection is not None:
                obj.detection_center = detection.center
                obj.detection_box = detection.bounding_box
            self._objects[obj.id] = obj
            return dataclasses.replace(obj)

    def update_detection(self, object_id: int, detection: Detection) -> bool:
        """Refresh the last-seen detection; identity and transform are untouched."""
        with self._lock:
            obj = self._objects.get(object_id)
            if obj is None:
                return False
            obj.detection_center = detection.center
            obj.detection_box = detection.bounding_box
            return True

    def update_transform(
        self,
        object_id: int,
        rotation_degrees: float | None = None,
        scale: float | None = None,
    ) -> bool:
        with self._lock:
            obj = self._objects.get(object_id)
            if obj is None:
                return False
            if rotation_degrees is not None:
                obj.rotation_degrees = rotation_degrees
            if scale is not None:
                obj.scale = scale
            return True

    def remove(self, object_id: int) -> Optional[TrackedObject]:
        with self._lock:
            return self._objects.pop(object_id, None)

    def clear(self) -> int:
        with self._lock:
            count = len(self._objects)
            self._objects.clear()
            return count

    def get(self, object_id: int) -> Optional[TrackedObject]:
        with self._lock:
            obj = self._objects.get(object_id)
            return dataclasses.replace(obj) if obj is not None else None

    def snapshot(self) -> List[TrackedObject]:
        """Copies of all objects in placement order."""
        with self._lock:
            return [dataclasses.replace(obj) for obj in self._objects.values()]

    @property
    def next_id(self) -> int:
        return self._next_id

    def __len__(self) -> int:
        with self._lock:
            return len(self._objects)

    def __contains__(self, object_id: int) -> bool:
        with self._lock:
            return object_id in self._objects

    def __iter__(self) -> Iterator[TrackedObject]:
        return iter(self.snapshot())


class TemporalAssociator:
    """First-match association of detections to previously placed objects.

    Objects are scanned in placement order and the first one whose last
    box overlaps the detection above the threshold wins. An object matched
    earlier in the same pass is not offered to later detections.
    """

    def __init__(self, iou_threshold: float = config.ASSOCIATION_IOU_THRESHOLD):
        self.iou_threshold = iou_threshold

    def _first_match(
        self, detection: Detection, objects: Iterable[TrackedObject], claimed: set[int]
    ) -> Optional[TrackedObject]:
        for obj in objects:
            if obj.id in claimed or obj.detection_box is None:
                continue
            if compute_iou(obj.detection_box, detection.bounding_box) > self.iou_threshold:
                return obj
        return None

    def associate(self, detections: Iterable[Detection], registry: TrackedObjectRegistry) -> AssociationResult:
        result = AssociationResult()
        existing = registry.snapshot()
        claimed: set[int] = set()

        for det in detections:
            if not is_valid_center(det.center) or not is_normalized_box(det.bounding_box):
                result.rejected.append(det)
                continue

            match = self._first_match(det, existing, claimed)
            if match is None:
                result.unmatched.append(det)
                continue

            # The object may have been deleted by the user since the snapshot.
            if registry.update_detection(match.id, det):
                claimed.add(match.id)
                result.matched.append((match.id, det))
            else:
                result.unmatched.append(det)

        if result.rejected:
            logger.debug("[Tracker] Rejected %d detections with degenerate centroids", len(result.rejected))
        return result
