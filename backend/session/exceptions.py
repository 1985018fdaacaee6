"""Custom exceptions for scan sessions."""


class SessionError(Exception):
    """Base session exception."""


class ObjectNotFoundError(SessionError):
    """Raised when a tracked bracket id does not exist in the session."""
