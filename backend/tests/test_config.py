"""Tests for detector settings resolved from the environment."""
from __future__ import annotations

import pytest
from pydantic import ValidationError

from common.config import MODELS_DIR
from common.config.detector import DetectorSettings


class TestDetectorSettings:
    def test_defaults(self, monkeypatch):
        for name in ("TOOTH_MODEL_NAME", "INFERENCE_DEVICE", "OUTPUT_LAYOUT"):
            monkeypatch.delenv(name, raising=False)
        settings = DetectorSettings()
        assert settings.model_name == "tooth_detection_yolov8.torchscript"
        assert settings.device == "auto"
        assert settings.output_layout == "auto"
        assert settings.default_model_path == MODELS_DIR / settings.model_name

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("TOOTH_MODEL_NAME", " custom.torchscript ")
        monkeypatch.setenv("INFERENCE_DEVICE", "CPU")
        monkeypatch.setenv("OUTPUT_LAYOUT", "columns")
        settings = DetectorSettings()
        assert settings.model_name == "custom.torchscript"
        assert settings.device == "cpu"
        assert settings.output_layout == "columns"

    @pytest.mark.parametrize("env,value", [("INFERENCE_DEVICE", "tpu"), ("OUTPUT_LAYOUT", "diagonal")])
    def test_rejects_unknown_values(self, monkeypatch, env, value):
        monkeypatch.setenv(env, value)
        with pytest.raises(ValidationError):
            DetectorSettings()

    def test_explicit_values_are_validated(self):
        with pytest.raises(ValidationError):
            DetectorSettings(output_layout="sideways")
        assert DetectorSettings(device="cpu").device == "cpu"
