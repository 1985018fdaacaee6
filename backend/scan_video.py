"""
Run the tooth detector and bracket tracker over a video file or camera.

Writes per-frame detections and tracked bracket ids to JSON.
"""
from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path

import cv2

from common.config import DEFAULT_SCAN_OUTPUT_PATH
from cv import config
from cv.detectors import get_detector
from cv.preprocess import planar_from_bgr
from cv.worker import InferenceSlot
from session import ScanSession

logger = logging.getLogger(__name__)


class AnchorAtCenter:
    """Placement stand-in: every hit-test succeeds and the anchor is the centroid."""

    def place(self, center, box):
        return {"x": center[0], "y": center[1]}


def _parse_source(value: str) -> str | int:
    return int(value) if value.isdigit() else value


def _detection_dict(det) -> dict:
    left, top, right, bottom = det.bounding_box.as_tuple()
    return {
        "left": left,
        "top": top,
        "right": right,
        "bottom": bottom,
        "confidence": det.confidence,
        "class_id": det.class_id,
        "label": det.label,
    }


def _frame_record(frame_index: int, fps: float, outcome) -> dict:
    return {
        "frame": frame_index,
        "timestamp": frame_index / fps,
        "detections": [_detection_dict(d) for d in outcome.detections],
        "matched_ids": [obj_id for obj_id, _ in outcome.association.matched],
        "placed_ids": [obj.id for obj in outcome.placed],
    }


def step_background(session: ScanSession, slot: InferenceSlot, image, now: float, wait: float | None = None):
    """Offer a due frame to the inference slot and apply any finished result.

    The frame loop never waits on inference unless ``wait`` is given; frames
    arriving while the slot is busy are dropped.
    """
    if session.should_detect(now):
        slot.submit(image)
    result = slot.latest(timeout=wait)
    if result is None:
        return None
    return session.process_detections(result.detections)


def run(
    source: str | int,
    model_path: str | None,
    max_frames: int | None,
    output: Path,
    background: bool = False,
) -> int:
    cap = cv2.VideoCapture(source)
    if not cap.isOpened():
        logger.error("Could not open source: %s", source)
        return 1

    fps = cap.get(cv2.CAP_PROP_FPS)
    # Some backends report invalid FPS (0/NaN); keep sane default.
    if not fps or fps <= 1 or fps > 240:
        fps = 25.0

    detector = get_detector(model_path)
    session = ScanSession(detector, placement=AnchorAtCenter())
    slot = InferenceSlot(detector) if background else None
    session.start_scanning()
    logger.info("Detection mode: %s", session.status().detection_mode)

    frames = []
    frame_index = 0
    try:
        while max_frames is None or frame_index < max_frames:
            ret, frame = cap.read()
            if not ret:
                break

            image = planar_from_bgr(frame)
            # Gate on the video timeline rather than wall-clock.
            now = frame_index / fps
            if slot is None:
                outcome = session.on_frame(image, now=now)
            else:
                outcome = step_background(session, slot, image, now)
            if outcome is not None:
                frames.append(_frame_record(frame_index, fps, outcome))
                logger.info(
                    "Frame %d: %d teeth, %d brackets",
                    frame_index,
                    len(outcome.detections),
                    len(session.registry),
                )
            frame_index += 1

        if slot is not None:
            last = slot.latest(timeout=config.WORKER_JOIN_TIMEOUT_SEC if slot.busy else None)
            if last is not None:
                frames.append(_frame_record(frame_index, fps, session.process_detections(last.detections)))
    finally:
        cap.release()
        if slot is not None:
            logger.info("Inference slot dropped %d frames", slot.dropped)
            slot.close()
        final_status = session.status()
        session.close()

    output.parent.mkdir(parents=True, exist_ok=True)
    with open(output, "w", encoding="utf-8") as f:
        json.dump({"status": final_status.model_dump(mode="json"), "frames": frames}, f, indent=2)
    logger.info("Wrote %d processed frames to %s", len(frames), output)
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--source", default="0", help="Video path or camera index")
    parser.add_argument("--model", default=None, help="TorchScript model path or name under models/")
    parser.add_argument("--max-frames", type=int, default=None)
    parser.add_argument("--output", type=Path, default=DEFAULT_SCAN_OUTPUT_PATH)
    parser.add_argument(
        "--background",
        action="store_true",
        help="Run inference on a worker thread, dropping frames while it is busy",
    )
    parser.add_argument("--verbose", action="store_true")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    return run(_parse_source(args.source), args.model, args.max_frames, args.output, background=args.background)


if __name__ == "__main__":
    raise SystemExit(main())
