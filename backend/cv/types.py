"""
Internal data structures for the tooth detection pipeline.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional, Tuple

import numpy as np

from . import config


@dataclass(frozen=True)
class BoundingBox:
    """Axis-aligned box as (left, top, right, bottom)."""
    left: float
    top: float
    right: float
    bottom: float

    @property
    def width(self) -> float:
        return self.right - self.left

    @property
    def height(self) -> float:
        return self.bottom - self.top

    @property
    def area(self) -> float:
        return max(0.0, self.width) * max(0.0, self.height)

    @property
    def center(self) -> Tuple[float, float]:
        return (self.left + self.right) / 2.0, (self.top + self.bottom) / 2.0

    def has_area(self) -> bool:
        return self.right > self.left and self.bottom > self.top

    def as_tuple(self) -> Tuple[float, float, float, float]:
        return self.left, self.top, self.right, self.bottom


@dataclass(frozen=True)
class Candidate:
    """Decoded model row in model input-space pixels, before rectification."""
    box: BoundingBox
    confidence: float
    class_id: int


@dataclass(frozen=True)
class Detection:
    """Final detection in normalized source-image coordinates."""
    bounding_box: BoundingBox
    confidence: float
    class_id: int = 0
    label: str = config.TOOTH_LABEL

    @property
    def center(self) -> Tuple[float, float]:
        return self.bounding_box.center


@dataclass(frozen=True)
class PreprocessInfo:
    """Letterbox mapping for one frame: source pixels -> model input pixels."""
    scale: float
    pad_x: float
    pad_y: float
    src_width: int
    src_height: int


@dataclass
class PreprocessResult:
    """Model input tensor plus the mapping needed to invert it.

    ``info`` is None when the source had no usable size; the tensor is then
    all zeros and the rectifier falls back to an identity mapping.
    """
    tensor: np.ndarray  # float32, flat, length 3 * S * S, interleaved RGB
    info: Optional[PreprocessInfo]


@dataclass(frozen=True)
class ImagePlane:
    """One plane of a YUV 4:2:0 camera image."""
    data: bytes | np.ndarray
    row_stride: int
    pixel_stride: int = 1


@dataclass(frozen=True)
class PlanarImage:
    """Camera image with separate Y, U and V planes."""
    width: int
    height: int
    planes: Tuple[ImagePlane, ImagePlane, ImagePlane]


@dataclass
class TrackedObject:
    """A bracket placed on the scene in response to a detection or a tap."""
    id: int
    anchor: Any = None
    detection_center: Optional[Tuple[float, float]] = None
    detection_box: Optional[BoundingBox] = None
    rotation_degrees: float = 0.0
    scale: float = 1.0


@dataclass
class AssociationResult:
    """Outcome of matching one frame's detections against placed objects."""
    matched: list[tuple[int, Detection]] = field(default_factory=list)
    unmatched: list[Detection] = field(default_factory=list)
    rejected: list[Detection] = field(default_factory=list)
