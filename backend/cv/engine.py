"""
Inference engine adapters: flat model input tensor in, raw output tensor out.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Protocol

import numpy as np
import torch

from common.config import MODELS_DIR, detector_settings
from . import config
from .exceptions import InferenceError, ModelLoadError

logger = logging.getLogger(__name__)


class InferenceEngine(Protocol):
    def run(self, tensor: np.ndarray) -> np.ndarray: ...

    def close(self) -> None: ...


def _select_device(requested: str) -> str:
    if requested == "auto":
        return "cuda" if torch.cuda.is_available() else "cpu"
    if requested == "cuda" and not torch.cuda.is_available():
        raise ModelLoadError("INFERENCE_DEVICE=cuda but no CUDA device is available")
    return requested


class TorchScriptEngine:
    """Run an exported TorchScript YOLO model on the letterboxed input."""

    def __init__(self, model_path: str | Path, device: str = "auto", input_size: int = config.INPUT_SIZE):
        self.input_size = input_size
        self.device = _select_device(device)
        logger.info("[Detector] PyTorch device: %s", self.device)
        try:
            if self.device == "cuda":
                logger.info("[Detector] CUDA device: %s", torch.cuda.get_device_name(0))
            self.model = torch.jit.load(str(model_path), map_location=self.device)
        except (RuntimeError, ValueError, OSError, AssertionError) as exc:
            raise ModelLoadError(f"cannot load {model_path}: {exc}") from exc
        self.model.eval()

    def run(self, tensor: np.ndarray) -> np.ndarray:
        if self.model is None:
            raise InferenceError("engine is closed")
        size = self.input_size
        try:
            # Interleaved HWC floats -> NCHW batch of one.
            batch = (
                torch.from_numpy(np.ascontiguousarray(tensor, dtype=np.float32).reshape(size, size, 3))
                .permute(2, 0, 1)
                .unsqueeze(0)
                .contiguous()
                .to(self.device)
            )
            with torch.inference_mode():
                output = self.model(batch)
        except (RuntimeError, ValueError) as exc:
            raise InferenceError(str(exc)) from exc

        if isinstance(output, (tuple, list)):
            output = output[0]
        return output.detach().cpu().numpy()

    def close(self) -> None:
        self.model = None


def resolve_model_path(model_path: str | None = None) -> Path:
    """Explicit path, then a name under MODELS_DIR, then the configured default."""
    if model_path:
        path = Path(model_path)
        if path.exists():
            return path
        models_path = MODELS_DIR / model_path
        if models_path.exists():
            return models_path

    default_path = detector_settings.default_model_path
    if default_path.exists():
        return default_path
    raise ModelLoadError(f"no model found (requested={model_path!r}, default={default_path})")


def load_engine(model_path: str | None = None, device: str | None = None) -> TorchScriptEngine:
    path = resolve_model_path(model_path)
    logger.info("[Detector] Loading model from: %s", path)
    return TorchScriptEngine(path, device=device or detector_settings.device)
