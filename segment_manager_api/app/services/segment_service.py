"""
Service layer for segments.

``SegmentStore`` owns the ordered collection of live segments.  Names
are trimmed and must be non-empty and unique (case sensitive) across
live segments.  Listing order is creation order and is not affected by
updates.  All checks run before any mutation, so a failing call leaves
the store untouched.

The store is not thread safe on its own; ``SegmentManager`` serialises
access to it together with the membership index.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Callable, Dict, Iterable, List, Optional

from segment_manager_api.app.core.errors import DuplicateNameError, NotFoundError, ValidationError
from segment_manager_api.app.schemas.segment import Segment

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _generate_id() -> str:
    return uuid.uuid4().hex


class SegmentStore:
    """In-memory ordered collection of segments."""

    def __init__(
        self,
        clock: Callable[[], datetime] = _utcnow,
        id_factory: Callable[[], str] = _generate_id,
    ) -> None:
        # dicts keep insertion order, which is the listing order
        self._segments: Dict[str, Segment] = {}
        self._clock = clock
        self._id_factory = id_factory

    def __contains__(self, segment_id: object) -> bool:
        return segment_id in self._segments

    def __len__(self) -> int:
        return len(self._segments)

    def create_segment(self, name: str, description: str = "") -> Segment:
        """Create a segment and append it to the listing.

        Raises ``ValidationError`` when ``name`` is blank and
        ``DuplicateNameError`` when a live segment already uses it.
        """
        clean_name = self._clean_name(name)
        self._ensure_unique(clean_name)
        segment_id = self._id_factory()
        while segment_id in self._segments:
            segment_id = self._id_factory()
        now = self._clock()
        segment = Segment(
            id=segment_id,
            name=clean_name,
            description=(description or "").strip(),
            created_at=now,
            updated_at=now,
        )
        self._segments[segment.id] = segment
        logger.info("Created segment %s (%s)", segment.id, segment.name)
        return segment

    def update_segment(self, segment_id: str, new_name: str, new_description: str = "") -> Segment:
        """Replace the name and description of an existing segment.

        ``id``, ``created_at`` and the listing position are preserved;
        ``updated_at`` is refreshed.
        """
        clean_name = self._clean_name(new_name)
        current = self.get_segment(segment_id)
        self._ensure_unique(clean_name, exclude_id=segment_id)
        updated = current.model_copy(
            update={
                "name": clean_name,
                "description": (new_description or "").strip(),
                "updated_at": self._clock(),
            }
        )
        # Assigning to an existing key keeps its position in the dict.
        self._segments[segment_id] = updated
        logger.info("Updated segment %s (%s)", segment_id, clean_name)
        return updated

    def delete_segment(self, segment_id: str) -> Segment:
        """Remove a segment and return the removed record."""
        segment = self.get_segment(segment_id)
        del self._segments[segment_id]
        logger.info("Deleted segment %s (%s)", segment_id, segment.name)
        return segment

    def get_segment(self, segment_id: str) -> Segment:
        segment = self._segments.get(segment_id)
        if segment is None:
            raise NotFoundError(f"Segment {segment_id!r} not found", field="segment_id")
        return segment

    def list_segments(self) -> List[Segment]:
        """Return all live segments in creation order."""
        return list(self._segments.values())

    def find_by_name(self, name: str) -> Optional[Segment]:
        for segment in self._segments.values():
            if segment.name == name:
                return segment
        return None

    def restore(self, segments: Iterable[Segment]) -> None:
        """Replace the contents of the store with previously saved segments."""
        restored: Dict[str, Segment] = {}
        for segment in segments:
            if segment.name in {s.name for s in restored.values()}:
                raise DuplicateNameError(
                    f"Segment named {segment.name!r} appears twice in saved state", field="name"
                )
            restored[segment.id] = segment
        self._segments = restored

    @staticmethod
    def _clean_name(name: Optional[str]) -> str:
        clean_name = (name or "").strip()
        if not clean_name:
            raise ValidationError("Segment name must not be empty", field="name")
        return clean_name

    def _ensure_unique(self, name: str, exclude_id: Optional[str] = None) -> None:
        existing = self.find_by_name(name)
        if existing is not None and existing.id != exclude_id:
            raise DuplicateNameError(f"Segment named {name!r} already exists", field="name")
