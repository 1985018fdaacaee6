"""Single-slot background inference with drop-if-busy submission."""
from __future__ import annotations

import logging
import queue
import threading
import time
from dataclasses import dataclass, field
from queue import Empty, Full
from typing import List, Optional

from . import config
from .types import Detection, PlanarImage

logger = logging.getLogger(__name__)


def _offer_latest(queue_obj: queue.Queue, item) -> None:
    """Keep queue non-blocking and biased toward newest data."""
    try:
        queue_obj.put_nowait(item)
    except Full:
        try:
            queue_obj.get_nowait()
            queue_obj.put_nowait(item)
        except (Empty, Full):
            pass


@dataclass
class SlotResult:
    frame_id: int
    detections: List[Detection]
    completed_at: float = field(default_factory=time.monotonic)


class InferenceSlot:
    """Run a detector off the frame loop with at most one request in flight.

    Frames submitted while a request is running are dropped, not queued,
    so the rendering path never blocks and stale frames never pile up.
    """

    def __init__(self, detector, result_queue_size: int = config.RESULT_QUEUE_SIZE):
        self._detector = detector
        self._pending: queue.Queue = queue.Queue(maxsize=1)
        self._results: queue.Queue = queue.Queue(maxsize=max(1, result_queue_size))
        self._in_flight = threading.BoundedSemaphore(1)
        self._stopped = threading.Event()
        self._next_frame_id = 0
        self.dropped = 0
        self._thread = threading.Thread(target=self._run, name="inference-slot", daemon=True)
        self._thread.start()

    @property
    def busy(self) -> bool:
        if self._in_flight.acquire(blocking=False):
            self._in_flight.release()
            return False
        return True

    def submit(self, image: PlanarImage) -> bool:
        """Hand a frame to the worker; False when it was dropped."""
        if self._stopped.is_set():
            return False
        if not self._in_flight.acquire(blocking=False):
            self.dropped += 1
            return False
        frame_id = self._next_frame_id
        self._next_frame_id += 1
        self._pending.put_nowait((frame_id, image))
        return True

    def _run(self) -> None:
        while not self._stopped.is_set():
            try:
                item = self._pending.get(timeout=0.05)
            except Empty:
                continue
            if item is None:
                break

            frame_id, image = item
            try:
                detections = self._detector.detect(image)
                _offer_latest(self._results, SlotResult(frame_id=frame_id, detections=detections))
            except Exception:
                logger.exception("[InferenceSlot] Frame %d failed", frame_id)
                _offer_latest(self._results, SlotResult(frame_id=frame_id, detections=[]))
            finally:
                self._in_flight.release()

    def latest(self, timeout: float | None = None) -> Optional[SlotResult]:
        """Newest finished result, or None if nothing arrives in time."""
        try:
            if timeout is None:
                return self._results.get_nowait()
            return self._results.get(timeout=timeout)
        except Empty:
            return None

    def close(self) -> None:
        self._stopped.set()
        _offer_latest(self._pending, None)
        self._thread.join(timeout=config.WORKER_JOIN_TIMEOUT_SEC)
