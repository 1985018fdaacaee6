"""Detector runtime settings resolved from the environment."""
from __future__ import annotations

import os

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .paths import MODELS_DIR

_LAYOUTS = {"auto", "rows", "columns"}
_DEVICES = {"auto", "cpu", "cuda"}


class DetectorSettings(BaseModel):
    """Which model to load and how to run it."""

    model_config = ConfigDict(validate_default=True, protected_namespaces=())

    model_name: str = Field(
        default_factory=lambda: os.getenv("TOOTH_MODEL_NAME", "tooth_detection_yolov8.torchscript").strip()
    )
    device: str = Field(default_factory=lambda: os.getenv("INFERENCE_DEVICE", "auto").strip().lower())
    output_layout: str = Field(default_factory=lambda: os.getenv("OUTPUT_LAYOUT", "auto").strip().lower())

    @field_validator("device")
    @classmethod
    def _check_device(cls, value: str) -> str:
        if value not in _DEVICES:
            raise ValueError(f"device must be one of {sorted(_DEVICES)}")
        return value

    @field_validator("output_layout")
    @classmethod
    def _check_layout(cls, value: str) -> str:
        if value not in _LAYOUTS:
            raise ValueError(f"output_layout must be one of {sorted(_LAYOUTS)}")
        return value

    @property
    def default_model_path(self):
        return MODELS_DIR / self.model_name


detector_settings = DetectorSettings()

