"""Shared test fixtures for backend tests.

Detector fixtures wire the real pipeline stages to fake engines so tests
run without a model file or GPU.
"""
from __future__ import annotations

import random

import numpy as np
import pytest

from cv.detectors import TeethDetector
from cv.fallback import SimulatedDetector
from cv.tracking import TrackedObjectRegistry
from session import ScanSession
from tests.fakes import FakeDetector, FakeEngine, FakePlacement


# ---------- Raw output helpers ----------

@pytest.fixture()
def raw_output_factory():
    """Build a [N, 5+K] output padded with background rows below threshold."""

    def _factory(rows: list[list[float]], padding: int = 50, num_classes: int | None = None) -> np.ndarray:
        width = len(rows[0]) if rows else 5 + (num_classes or 1)
        background = [[10.0, 10.0, 5.0, 5.0, 0.01] + [0.01] * (width - 5) for _ in range(padding)]
        return np.asarray(rows + background, dtype=np.float32)

    return _factory


# ---------- Detector fixtures ----------

@pytest.fixture()
def detector_factory():
    """Create a TeethDetector around a FakeEngine holding the given output."""
    created: list[TeethDetector] = []

    def _factory(output=None, engine=None, **kwargs) -> TeethDetector:
        if engine is None and output is not None:
            engine = FakeEngine(output)
        det = TeethDetector(engine=engine, fallback=SimulatedDetector(random.Random(0)), **kwargs)
        created.append(det)
        return det

    yield _factory

    for det in created:
        det.close()


# ---------- Session fixtures ----------

@pytest.fixture()
def registry() -> TrackedObjectRegistry:
    return TrackedObjectRegistry()


@pytest.fixture()
def placement() -> FakePlacement:
    return FakePlacement()


@pytest.fixture()
def session_factory(placement):
    """Create a ScanSession around a scripted FakeDetector."""

    def _factory(batches=None, has_model: bool = True, **kwargs) -> ScanSession:
        kwargs.setdefault("placement", placement)
        return ScanSession(FakeDetector(batches, has_model=has_model), **kwargs)

    return _factory
