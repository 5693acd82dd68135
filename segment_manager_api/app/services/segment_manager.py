"""
Segment manager: the single owner of segments and memberships.

``SegmentManager`` holds the ``SegmentStore``, the ``MembershipIndex``
and an optional ``StateRepository``.  Every public operation runs under
one re-entrant lock covering both collections, so a segment deletion
and the removal of its memberships are observed together.  After each
mutation that changed something, the full state is handed to the
repository.  A failed save is logged and remembered in
``last_persist_error``; the in-memory change is kept.

A manager is created at application start-up, loaded from the
repository, and closed at shutdown.  Callers receive it as a
dependency rather than through a module global.
"""

from __future__ import annotations

import logging
import threading
from typing import Iterable, List, Optional

from segment_manager_api.app.core.errors import PersistenceError, ValidationError
from segment_manager_api.app.schemas.segment import Segment, UserId, UserSegmentsRead
from segment_manager_api.app.services.membership_service import (
    MembershipIndex,
    normalize_segment_id,
    normalize_user_id,
)
from segment_manager_api.app.services.segment_service import SegmentStore
from segment_manager_api.app.services.state_service import StateRepository

logger = logging.getLogger(__name__)

DEFAULT_UNIVERSE_SIZE = 1000


class SegmentManager:
    """Thread safe facade over the segment store and the membership index."""

    def __init__(
        self,
        repository: Optional[StateRepository] = None,
        universe_size: int = DEFAULT_UNIVERSE_SIZE,
    ) -> None:
        self._store = SegmentStore()
        self._index = MembershipIndex()
        self._lock = threading.RLock()
        self._repository = repository
        self._closed = False
        self.universe_size = universe_size
        self.last_persist_error: Optional[PersistenceError] = None

    # -- lifecycle -----------------------------------------------------

    def load(self) -> None:
        """Restore state from the repository, if one is configured.

        Memberships that reference unknown segments are discarded.
        """
        if self._repository is None:
            return
        with self._lock:
            segments, memberships = self._repository.load_state()
            self._store.restore(segments)
            live = {segment.id for segment in segments}
            self._index.restore(
                {user_id: {sid for sid in segment_ids if sid in live} for user_id, segment_ids in memberships.items()}
            )
            logger.info("Loaded %d segments and %d users", len(self._store), len(self._index))

    def close(self) -> None:
        with self._lock:
            self._closed = True
            logger.info("Segment manager closed")

    @property
    def closed(self) -> bool:
        return self._closed

    # -- segments ------------------------------------------------------

    def create_segment(self, name: str, description: str = "") -> Segment:
        with self._lock:
            segment = self._store.create_segment(name, description)
            self._persist()
            return segment

    def update_segment(self, segment_id: str, new_name: str, new_description: str = "") -> Segment:
        with self._lock:
            segment = self._store.update_segment(segment_id, new_name, new_description)
            self._persist()
            return segment

    def delete_segment(self, segment_id: str) -> None:
        """Delete a segment and remove it from every user."""
        with self._lock:
            self._store.delete_segment(segment_id)
            affected = self._index.cascade_delete_segment(segment_id)
            logger.info("Segment %s removed from %d users", segment_id, affected)
            self._persist()

    def get_segment(self, segment_id: str) -> Segment:
        with self._lock:
            return self._store.get_segment(segment_id)

    def list_segments(self) -> List[Segment]:
        with self._lock:
            return self._store.list_segments()

    # -- memberships ---------------------------------------------------

    def add_user_to_segment(self, user_id: UserId, segment_id: str) -> bool:
        """Add a user to a segment.  Returns ``False`` if already a member."""
        key = normalize_user_id(user_id)
        segment_id = normalize_segment_id(segment_id)
        with self._lock:
            self._store.get_segment(segment_id)
            added = self._index.add(key, segment_id)
            if added:
                logger.info("User %s added to segment %s", key, segment_id)
                self._persist()
            return added

    def remove_user_from_segment(self, user_id: UserId, segment_id: str) -> bool:
        """Remove a user from a segment.  Returns ``False`` if not a member."""
        key = normalize_user_id(user_id)
        segment_id = normalize_segment_id(segment_id)
        with self._lock:
            removed = self._index.remove(key, segment_id)
            if removed:
                logger.info("User %s removed from segment %s", key, segment_id)
                self._persist()
            return removed

    def lookup_user_segments(self, user_id: UserId) -> UserSegmentsRead:
        """Return the user's segments in segment listing order.

        ``found`` is ``False`` when the user has no memberships at all.
        """
        key = normalize_user_id(user_id)
        with self._lock:
            segment_ids = self._index.segments_of(key)
            segments = [segment for segment in self._store.list_segments() if segment.id in segment_ids]
        return UserSegmentsRead(user_id=key, found=bool(segments), segments=segments)

    def list_segment_members(self, segment_id: str) -> List[str]:
        with self._lock:
            self._store.get_segment(segment_id)
            return self._index.members_of(segment_id)

    def assign_random_users(
        self,
        segment_id: str,
        percentage: float,
        candidate_user_ids: Optional[Iterable[UserId]] = None,
    ) -> int:
        """Deterministically set the membership of ``segment_id`` for candidates.

        Without explicit candidates the ids ``1..universe_size`` are used.
        Returns the number of users newly added to the segment.
        """
        if percentage is None or isinstance(percentage, bool) or not 0 <= percentage <= 100:
            raise ValidationError("Percentage must be between 0 and 100", field="percentage")
        if candidate_user_ids is None:
            candidate_user_ids = range(1, self.universe_size + 1)
        candidates = list(candidate_user_ids)
        with self._lock:
            self._store.get_segment(segment_id)
            before = self._index.members_of(segment_id)
            added = self._index.assign_by_percentage(segment_id, percentage, candidates)
            changed = added or before != self._index.members_of(segment_id)
            logger.info(
                "Assigned %d new users to segment %s at %s%%", added, segment_id, percentage
            )
            if changed:
                self._persist()
            return added

    # -- counters ------------------------------------------------------

    def segment_count(self) -> int:
        with self._lock:
            return len(self._store)

    def user_count(self) -> int:
        with self._lock:
            return len(self._index)

    # -- persistence ---------------------------------------------------

    def _persist(self) -> None:
        """Save the current state.  Caller must hold the lock."""
        if self._repository is None:
            return
        try:
            self._repository.save_state(self._store.list_segments(), self._index.snapshot())
        except PersistenceError as exc:
            logger.exception("Failed to persist segment state")
            self.last_persist_error = exc
        else:
            self.last_persist_error = None
