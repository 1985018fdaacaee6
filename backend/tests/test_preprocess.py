"""Tests for planar conversion and letterboxing."""
from __future__ import annotations

import numpy as np
import pytest

from cv.exceptions import FrameDecodeError
from cv.preprocess import FramePreprocessor, planar_from_bgr, planar_to_rgb
from cv.types import ImagePlane, PlanarImage
from tests.fakes import make_planar


class TestLetterbox:
    def test_landscape_mapping(self):
        result = FramePreprocessor().preprocess(make_planar(1280, 720))
        info = result.info
        assert info.scale == pytest.approx(0.5)
        assert info.pad_x == pytest.approx(0.0)
        assert info.pad_y == pytest.approx(140.0)
        assert (info.src_width, info.src_height) == (1280, 720)

    def test_tensor_shape_and_range(self):
        result = FramePreprocessor().preprocess(make_planar(1280, 720))
        assert result.tensor.dtype == np.float32
        assert result.tensor.shape == (3 * 640 * 640,)
        assert result.tensor.min() >= 0.0
        assert result.tensor.max() <= 1.0

    def test_padding_is_black_and_content_centered(self):
        result = FramePreprocessor().preprocess(make_planar(1280, 720))
        canvas = result.tensor.reshape(640, 640, 3)
        assert canvas[:140].max() == 0.0
        assert canvas[500:].max() == 0.0
        assert canvas[140:500].min() > 0.4

    def test_portrait_pads_columns(self):
        result = FramePreprocessor().preprocess(make_planar(720, 1280))
        assert result.info.pad_x == pytest.approx(140.0)
        assert result.info.pad_y == pytest.approx(0.0)
        canvas = result.tensor.reshape(640, 640, 3)
        assert canvas[:, :140].max() == 0.0

    def test_small_input_upscaled_to_fit(self):
        result = FramePreprocessor(input_size=64).preprocess(make_planar(32, 16))
        assert result.info.scale == pytest.approx(2.0)
        assert result.info.pad_y == pytest.approx(16.0)
        assert result.tensor.shape == (3 * 64 * 64,)

    def test_rgb_channel_order(self):
        # BT.601 red: Y=81, U=90, V=240.
        result = FramePreprocessor().preprocess(make_planar(64, 64, y=81, u=90, v=240))
        r, g, b = result.tensor.reshape(640, 640, 3)[320, 320]
        assert r > 0.8
        assert g < 0.2
        assert b < 0.2


class TestDegenerateInput:
    def test_zero_size_gives_empty_tensor_and_no_mapping(self):
        image = PlanarImage(width=0, height=480, planes=make_planar(2, 2).planes)
        result = FramePreprocessor().preprocess(image)
        assert result.info is None
        assert result.tensor.shape == (3 * 640 * 640,)
        assert not result.tensor.any()

    def test_short_luma_plane_returns_none(self):
        good = make_planar(64, 48)
        image = PlanarImage(
            width=64,
            height=48,
            planes=(ImagePlane(b"\x80" * 100, row_stride=64), good.planes[1], good.planes[2]),
        )
        assert FramePreprocessor().preprocess(image) is None

    def test_invalid_stride_returns_none(self):
        good = make_planar(64, 48)
        image = PlanarImage(
            width=64,
            height=48,
            planes=(ImagePlane(good.planes[0].data, row_stride=0), good.planes[1], good.planes[2]),
        )
        assert FramePreprocessor().preprocess(image) is None

    def test_fractional_stride_returns_none(self):
        good = make_planar(64, 48)
        image = PlanarImage(
            width=64,
            height=48,
            planes=(good.planes[0], ImagePlane(good.planes[1].data, row_stride=32.0), good.planes[2]),
        )
        assert FramePreprocessor().preprocess(image) is None

    def test_missing_buffer_returns_none(self):
        good = make_planar(64, 48)
        image = PlanarImage(
            width=64,
            height=48,
            planes=(good.planes[0], good.planes[1], ImagePlane(None, row_stride=32)),
        )
        with pytest.raises(FrameDecodeError):
            planar_to_rgb(image)
        assert FramePreprocessor().preprocess(image) is None

    def test_one_pixel_image_cannot_be_decoded(self):
        image = PlanarImage(width=1, height=1, planes=make_planar(2, 2).planes)
        with pytest.raises(FrameDecodeError):
            planar_to_rgb(image)
        assert FramePreprocessor().preprocess(image) is None


class TestPlanarConversion:
    def test_row_stride_padding_ignored(self):
        width, height, stride = 32, 16, 48
        luma = bytearray(stride * height)
        for row in range(height):
            luma[row * stride: row * stride + width] = b"\x80" * width
        packed = make_planar(width, height)
        padded = PlanarImage(
            width=width,
            height=height,
            planes=(ImagePlane(bytes(luma), row_stride=stride), packed.planes[1], packed.planes[2]),
        )
        np.testing.assert_array_equal(planar_to_rgb(padded), planar_to_rgb(packed))

    def test_interleaved_chroma_with_short_last_row(self):
        width, height = 32, 16
        packed = make_planar(width, height, u=90, v=240)
        # Semi-planar chroma with pixel stride 2; the final sample is missing.
        u = bytes([90, 240] * (width // 2 * height // 2))[:-2]
        v = bytes([240, 90] * (width // 2 * height // 2))[:-2]
        interleaved = PlanarImage(
            width=width,
            height=height,
            planes=(
                packed.planes[0],
                ImagePlane(u, row_stride=width, pixel_stride=2),
                ImagePlane(v, row_stride=width, pixel_stride=2),
            ),
        )
        rgb = planar_to_rgb(interleaved)
        expected = planar_to_rgb(packed)
        # Only the final chroma sample (missing byte) may differ.
        np.testing.assert_array_equal(rgb[:-2], expected[:-2])

    def test_odd_dimensions_cropped(self):
        rgb = planar_to_rgb(make_planar(65, 49))
        assert rgb.shape == (48, 64, 3)

    def test_planar_from_bgr(self):
        frame = np.zeros((48, 64, 3), dtype=np.uint8)
        frame[:, :, 0] = 255  # pure blue in BGR
        image = planar_from_bgr(frame)
        assert (image.width, image.height) == (64, 48)
        rgb = planar_to_rgb(image)
        assert rgb[24, 32, 2] > 200
        assert rgb[24, 32, 0] < 60
