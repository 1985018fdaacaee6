"""Types for the bracket scan session."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional, Protocol, Tuple

from pydantic import BaseModel, Field

from cv.types import AssociationResult, BoundingBox, Detection, TrackedObject


class TrackingState(str, Enum):
    TRACKING = "tracking"
    PAUSED = "paused"
    STOPPED = "stopped"


class PlacementCollaborator(Protocol):
    """Surface hit-test and anchor creation for a detected tooth.

    Returns an opaque anchor handle, or None when nothing was hit.
    """

    def place(self, center: Tuple[float, float], box: BoundingBox) -> Any: ...


@dataclass
class FrameOutcome:
    """What one processed frame did to the session."""
    detections: List[Detection]
    association: AssociationResult
    placed: List[TrackedObject] = field(default_factory=list)


class SessionStatus(BaseModel):
    """Snapshot consumed by status displays."""

    detection_mode: str  # "ML Active" or "Simulation"
    scanning: bool
    detected_count: int = Field(..., ge=0)
    progress: int = Field(..., ge=0, le=100)
    brackets_placed: int = Field(..., ge=0)
    selected_id: Optional[int] = None
    tracking_state: Optional[TrackingState] = None
    message: str
