"""Tooth detector and bracket tracking configuration."""

# Model input
INPUT_SIZE = 640  # Square side of the letterboxed model input
LETTERBOX_COLOR = (0, 0, 0)

# Detector settings
CONFIDENCE_THRESHOLD = 0.5  # Exclusive: confidence must be strictly greater
IOU_THRESHOLD = 0.45
TOOTH_LABEL = "tooth"
MIN_CANDIDATE_FIELDS = 5  # cx, cy, w, h, objectness

# Association settings
ASSOCIATION_IOU_THRESHOLD = 0.45

# Scan loop settings
DETECTION_INTERVAL_SEC = 0.5
MAX_TEETH = 32  # Full adult set, used for progress reporting

# Simulated detector (no model loaded)
SIMULATED_MIN_TEETH = 4
SIMULATED_MAX_TEETH = 8
SIMULATED_MIN_CONFIDENCE = 0.75
SIMULATED_CONFIDENCE_SPREAD = 0.2

# Placement transform bounds (owned by user interaction)
MIN_ROTATION_DEGREES = 0.0
MAX_ROTATION_DEGREES = 360.0
MIN_SCALE = 0.5
SCALE_RANGE = 1.5  # scale = MIN_SCALE + progress / 100 * SCALE_RANGE

# Inference worker
RESULT_QUEUE_SIZE = 1
WORKER_JOIN_TIMEOUT_SEC = 1.0
