"""Tests for raw output decoding."""
from __future__ import annotations

import numpy as np
import pytest

from cv.decoder import OutputDecoder
from cv.exceptions import InvalidOutputError
from tests.fakes import model_row


class TestConfidenceFilter:
    def test_threshold_is_exclusive(self, raw_output_factory):
        raw = raw_output_factory([model_row(320, 320, 100, 100, 1.0, 0.5)])
        assert OutputDecoder().decode(raw) == []

    def test_just_above_threshold_kept(self, raw_output_factory):
        raw = raw_output_factory([model_row(320, 320, 100, 100, 1.0, 0.51)])
        candidates = OutputDecoder().decode(raw)
        assert len(candidates) == 1
        assert candidates[0].confidence == pytest.approx(0.51)

    def test_confidence_is_objectness_times_best_score(self, raw_output_factory):
        raw = raw_output_factory([model_row(320, 320, 100, 100, 0.9, 0.2, 0.8, 0.1)])
        (candidate,) = OutputDecoder().decode(raw)
        assert candidate.confidence == pytest.approx(0.72)
        assert candidate.class_id == 1

    def test_tie_goes_to_lowest_class_index(self, raw_output_factory):
        raw = raw_output_factory([model_row(320, 320, 100, 100, 1.0, 0.3, 0.9, 0.9)])
        (candidate,) = OutputDecoder().decode(raw)
        assert candidate.class_id == 1

    def test_negative_scores_never_pass(self, raw_output_factory):
        raw = raw_output_factory([model_row(320, 320, 100, 100, -1.0, -0.9)])
        assert OutputDecoder().decode(raw) == []

    def test_non_finite_rows_dropped(self, raw_output_factory):
        raw = raw_output_factory([
            model_row(np.nan, 320, 100, 100, 1.0, 0.9),
            model_row(100, 100, 50, 50, 1.0, 0.9),
        ])
        candidates = OutputDecoder().decode(raw)
        assert len(candidates) == 1
        assert candidates[0].box.left == pytest.approx(75.0)


class TestGeometry:
    def test_center_form_to_corners(self, raw_output_factory):
        raw = raw_output_factory([model_row(240, 275, 160, 90, 1.0, 0.9)])
        (candidate,) = OutputDecoder().decode(raw)
        assert candidate.box.as_tuple() == pytest.approx((160.0, 230.0, 320.0, 320.0))

    def test_corners_clamped_to_input(self, raw_output_factory):
        raw = raw_output_factory([model_row(10, 630, 100, 100, 1.0, 0.9)])
        (candidate,) = OutputDecoder().decode(raw)
        assert candidate.box.as_tuple() == pytest.approx((0.0, 580.0, 60.0, 640.0))


class TestLayouts:
    def test_single_class_without_scores(self):
        raw = np.asarray([model_row(320, 320, 64, 64, 0.8)] * 20, dtype=np.float32)
        candidates = OutputDecoder().decode(raw)
        assert len(candidates) == 20
        assert all(c.class_id == 0 for c in candidates)
        assert candidates[0].confidence == pytest.approx(0.8)

    def test_transposed_output_auto_detected(self, raw_output_factory):
        rows = raw_output_factory([model_row(240, 275, 160, 90, 1.0, 0.9)], padding=30)
        columns = rows.T[np.newaxis, ...]  # [1, 5+K, N]
        (candidate,) = OutputDecoder().decode(columns)
        assert candidate.box.as_tuple() == pytest.approx((160.0, 230.0, 320.0, 320.0))

    def test_explicit_column_layout(self):
        rows = np.asarray([model_row(240, 275, 160, 90, 1.0, 0.9)], dtype=np.float32)
        (candidate,) = OutputDecoder(layout="columns").decode(rows.T)
        assert candidate.confidence == pytest.approx(0.9)

    def test_batch_dimension_dropped(self, raw_output_factory):
        raw = raw_output_factory([model_row(240, 275, 160, 90, 1.0, 0.9)])[np.newaxis, ...]
        assert len(OutputDecoder().decode(raw)) == 1

    def test_unknown_layout_rejected(self):
        with pytest.raises(ValueError):
            OutputDecoder(layout="diagonal")


class TestInvalidOutput:
    def test_too_few_fields(self):
        raw = np.zeros((100, 4), dtype=np.float32)
        with pytest.raises(InvalidOutputError):
            OutputDecoder().decode(raw)

    def test_wrong_rank(self):
        with pytest.raises(InvalidOutputError):
            OutputDecoder().decode(np.zeros((2, 3, 4), dtype=np.float32))

    def test_non_numeric(self):
        with pytest.raises(InvalidOutputError):
            OutputDecoder().decode([["a", "b"]])

    def test_empty_candidate_list(self):
        assert OutputDecoder().decode(np.zeros((0, 6), dtype=np.float32)) == []
