"""Custom exceptions for the tooth detection pipeline."""


class DetectorError(Exception):
    """Base detector exception."""


class FrameDecodeError(DetectorError):
    """Raised when a planar camera image cannot be converted to RGB."""


class ModelLoadError(DetectorError):
    """Raised when no usable model file can be loaded."""


class InferenceError(DetectorError):
    """Raised when the inference engine fails to produce an output."""


class InvalidOutputError(DetectorError):
    """Raised when a raw output tensor has an unusable shape."""
