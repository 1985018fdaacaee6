"""Bracket scan session package."""

from .exceptions import ObjectNotFoundError, SessionError
from .session import ScanSession
from .types import FrameOutcome, PlacementCollaborator, SessionStatus, TrackingState

__all__ = [
    "FrameOutcome",
    "ObjectNotFoundError",
    "PlacementCollaborator",
    "ScanSession",
    "SessionError",
    "SessionStatus",
    "TrackingState",
]
