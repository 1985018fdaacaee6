"""
Frame preprocessing: planar YUV camera image -> letterboxed RGB model input.
"""
from __future__ import annotations

import logging
from typing import Optional

import cv2
import numpy as np

from . import config
from .exceptions import FrameDecodeError
from .types import ImagePlane, PlanarImage, PreprocessInfo, PreprocessResult

logger = logging.getLogger(__name__)


def _as_uint8(data) -> np.ndarray:
    if not isinstance(data, (bytes, bytearray, memoryview, np.ndarray)):
        raise FrameDecodeError(f"unsupported plane buffer type {type(data).__name__}")
    if isinstance(data, np.ndarray):
        return data.reshape(-1).view(np.uint8) if data.dtype != np.uint8 else data.reshape(-1)
    return np.frombuffer(bytes(data), dtype=np.uint8)


def _gather_plane(plane: ImagePlane, rows: int, cols: int, strict: bool) -> np.ndarray:
    """Read a rows x cols grid out of a strided plane buffer.

    Chroma planes are commonly one byte short on the last row; with
    ``strict=False`` missing samples read as 0 instead of failing.
    """
    strides = (plane.row_stride, plane.pixel_stride)
    if not all(isinstance(s, (int, np.integer)) for s in strides):
        raise FrameDecodeError("plane strides must be integers")
    if plane.row_stride <= 0 or plane.pixel_stride <= 0:
        raise FrameDecodeError(
            f"invalid plane strides row={plane.row_stride} pixel={plane.pixel_stride}"
        )
    buf = _as_uint8(plane.data)
    if buf.size == 0:
        raise FrameDecodeError("empty image plane")

    idx = (
        np.arange(rows, dtype=np.int64)[:, None] * plane.row_stride
        + np.arange(cols, dtype=np.int64)[None, :] * plane.pixel_stride
    )
    in_range = idx < buf.size
    if strict and not in_range.all():
        raise FrameDecodeError(f"plane holds {buf.size} bytes, need {int(idx.max()) + 1}")

    out = buf[np.minimum(idx, buf.size - 1)]
    out[~in_range] = 0
    return out


def planar_to_rgb(image: PlanarImage) -> np.ndarray:
    """Convert a YUV 4:2:0 planar image to an RGB uint8 array (H, W, 3).

    Chroma is interleaved into NV21 (V before U) and converted with OpenCV.
    Odd widths/heights lose their last column/row.
    """
    width = image.width - image.width % 2
    height = image.height - image.height % 2
    if width <= 0 or height <= 0:
        raise FrameDecodeError(f"cannot decode {image.width}x{image.height} 4:2:0 image")
    if len(image.planes) != 3:
        raise FrameDecodeError(f"expected 3 planes, got {len(image.planes)}")

    y_plane, u_plane, v_plane = image.planes
    luma = _gather_plane(y_plane, height, width, strict=True)
    u = _gather_plane(u_plane, height // 2, width // 2, strict=False)
    v = _gather_plane(v_plane, height // 2, width // 2, strict=False)

    vu = np.empty((height // 2, width), dtype=np.uint8)
    vu[:, 0::2] = v
    vu[:, 1::2] = u
    nv21 = np.vstack([luma, vu])

    try:
        return cv2.cvtColor(nv21, cv2.COLOR_YUV2RGB_NV21)
    except cv2.error as exc:
        raise FrameDecodeError(str(exc)) from exc


def planar_from_bgr(frame: np.ndarray) -> PlanarImage:
    """Wrap an OpenCV BGR frame as an I420 planar image (pixel stride 1)."""
    height = frame.shape[0] - frame.shape[0] % 2
    width = frame.shape[1] - frame.shape[1] % 2
    frame = np.ascontiguousarray(frame[:height, :width])
    i420 = cv2.cvtColor(frame, cv2.COLOR_BGR2YUV_I420).reshape(-1)

    y_size = width * height
    c_size = y_size // 4
    half_w = width // 2
    return PlanarImage(
        width=width,
        height=height,
        planes=(
            ImagePlane(i420[:y_size].tobytes(), row_stride=width),
            ImagePlane(i420[y_size:y_size + c_size].tobytes(), row_stride=half_w),
            ImagePlane(i420[y_size + c_size:y_size + 2 * c_size].tobytes(), row_stride=half_w),
        ),
    )


class FramePreprocessor:
    """Letterbox frames into the square model input and record the mapping."""

    def __init__(self, input_size: int = config.INPUT_SIZE, background=config.LETTERBOX_COLOR):
        self.input_size = input_size
        self.background = tuple(background)

    def _empty_tensor(self) -> np.ndarray:
        return np.zeros(3 * self.input_size * self.input_size, dtype=np.float32)

    def letterbox(self, rgb: np.ndarray) -> PreprocessResult:
        """Fit an RGB raster inside the S x S canvas without cropping."""
        size = self.input_size
        src_height, src_width = rgb.shape[:2]
        if src_width <= 0 or src_height <= 0:
            return PreprocessResult(tensor=self._empty_tensor(), info=None)

        scale = min(size / src_width, size / src_height)
        scaled_width = min(size, max(1, int(round(src_width * scale))))
        scaled_height = min(size, max(1, int(round(src_height * scale))))

        resized = cv2.resize(rgb, (scaled_width, scaled_height), interpolation=cv2.INTER_LINEAR)
        canvas = np.empty((size, size, 3), dtype=np.uint8)
        canvas[:] = self.background

        pad_x = (size - scaled_width) / 2.0
        pad_y = (size - scaled_height) / 2.0
        x0 = int(pad_x)
        y0 = int(pad_y)
        canvas[y0:y0 + scaled_height, x0:x0 + scaled_width] = resized

        tensor = canvas.reshape(-1).astype(np.float32) / 255.0
        info = PreprocessInfo(
            scale=scale,
            pad_x=pad_x,
            pad_y=pad_y,
            src_width=src_width,
            src_height=src_height,
        )
        return PreprocessResult(tensor=tensor, info=info)

    def preprocess(self, image: PlanarImage) -> Optional[PreprocessResult]:
        """Convert and letterbox one camera image.

        Returns None when the image cannot be decoded; callers treat that as
        a frame with no detections.
        """
        if image.width <= 0 or image.height <= 0:
            return PreprocessResult(tensor=self._empty_tensor(), info=None)

        try:
            rgb = planar_to_rgb(image)
        except FrameDecodeError as exc:
            logger.warning("[Preprocess] Dropping undecodable %dx%d frame: %s", image.width, image.height, exc)
            return None
        return self.letterbox(rgb)
