"""
Error kinds raised by the segment services.

Every error carries a machine readable ``kind``, the offending
``field`` (when one applies) and a human readable ``message`` so that
callers can render a user facing notice without parsing strings.
"""

from typing import Any, Dict, Optional


class SegmentError(Exception):
    """Base class for all segment management errors."""

    kind = "segment_error"

    def __init__(self, message: str, field: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.field = field

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.kind, "field": self.field, "message": self.message}


class ValidationError(SegmentError):
    """Empty or out of range input."""

    kind = "validation_error"


class DuplicateNameError(SegmentError):
    """A live segment already uses the requested name."""

    kind = "duplicate_name"


class NotFoundError(SegmentError):
    """Reference to a segment that does not exist."""

    kind = "not_found"


class PersistenceError(SegmentError):
    """The state repository failed to load or save a snapshot."""

    kind = "persistence_error"
