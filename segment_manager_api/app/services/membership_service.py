"""
Service layer for user/segment membership.

``MembershipIndex`` maps a user identifier to the set of segment ids the
user belongs to.  User identifiers may arrive as integers or strings
(``42`` from a JSON body, ``"42"`` from a URL path); both are normalised
to their string form so they address the same user.  A user never maps
to an empty set: the key is dropped as soon as its last segment goes.

The index does not know which segments are live.  Callers validate
segment ids against the ``SegmentStore`` first; ``SegmentManager`` does
this under a single lock.

Percentage assignment is deterministic.  ``bucket_for_user`` maps every
id to a stable bucket in ``0..99`` and a user is selected when its bucket
is below the requested percentage, so repeated calls with the same
arguments converge on the same membership.
"""

from __future__ import annotations

import hashlib
import logging
from typing import Dict, Iterable, List, Mapping, Set

from segment_manager_api.app.core.errors import ValidationError
from segment_manager_api.app.schemas.segment import UserId

logger = logging.getLogger(__name__)

BUCKET_COUNT = 100

# Digits converted per ``str()`` call, well below the interpreter's
# int/str conversion limit.
_CHUNK_DIGITS = 1000


def _int_to_decimal(value: int) -> str:
    """Decimal form of ``value`` for integers of any size."""
    if value < 0:
        return "-" + _int_to_decimal(-value)
    base = 10 ** _CHUNK_DIGITS
    chunks = []
    while value >= base:
        value, low = divmod(value, base)
        chunks.append(str(low).zfill(_CHUNK_DIGITS))
    chunks.append(str(value))
    return "".join(reversed(chunks))


def normalize_user_id(user_id: UserId) -> str:
    """Return the canonical string form of a user id.

    Raises ``ValidationError`` for missing or blank identifiers.
    """
    if user_id is None or isinstance(user_id, bool):
        raise ValidationError("User id is required", field="user_id")
    if isinstance(user_id, int):
        return _int_to_decimal(user_id)
    clean = str(user_id).strip()
    if not clean:
        raise ValidationError("User id is required", field="user_id")
    return clean


def normalize_segment_id(segment_id: str) -> str:
    if segment_id is None or not str(segment_id).strip():
        raise ValidationError("Segment id is required", field="segment_id")
    return str(segment_id).strip()


def _is_decimal(key: str) -> bool:
    return key.isascii() and key.isdigit()


def bucket_for_user(user_id: UserId) -> int:
    """Map a user id to a stable bucket in ``0..99``.

    Non-negative ids use ``id mod 100`` so that the ids ``1..1000``
    spread evenly; for decimal strings only the last two digits are
    read, which gives the same result for ids of any length.  Any other
    id is bucketed by the first eight bytes of its SHA-256 digest.  The
    result depends on nothing but the id.
    """
    if isinstance(user_id, int) and not isinstance(user_id, bool) and user_id >= 0:
        return user_id % BUCKET_COUNT
    key = normalize_user_id(user_id)
    if _is_decimal(key):
        return int(key[-2:]) % BUCKET_COUNT
    digest = hashlib.sha256(key.encode("utf-8")).digest()
    return int.from_bytes(digest[:8], "big") % BUCKET_COUNT


def _member_sort_key(key: str):
    """Numeric ids first in numeric order, then everything else by text."""
    if _is_decimal(key):
        digits = key.lstrip("0")
        return (0, len(digits), digits, key)
    return (1, 0, key, key)


class MembershipIndex:
    """Mapping of user id to the set of segment ids the user belongs to."""

    def __init__(self) -> None:
        self._memberships: Dict[str, Set[str]] = {}

    def __len__(self) -> int:
        return len(self._memberships)

    def add(self, user_id: UserId, segment_id: str) -> bool:
        """Add a membership.  Returns ``False`` if it already existed."""
        key = normalize_user_id(user_id)
        segment_id = normalize_segment_id(segment_id)
        segments = self._memberships.setdefault(key, set())
        if segment_id in segments:
            return False
        segments.add(segment_id)
        return True

    def remove(self, user_id: UserId, segment_id: str) -> bool:
        """Remove a membership.  Returns ``False`` if there was none."""
        key = normalize_user_id(user_id)
        segment_id = normalize_segment_id(segment_id)
        segments = self._memberships.get(key)
        if not segments or segment_id not in segments:
            return False
        segments.discard(segment_id)
        if not segments:
            del self._memberships[key]
        return True

    def cascade_delete_segment(self, segment_id: str) -> int:
        """Drop ``segment_id`` from every user.  Returns the number of users affected."""
        affected = 0
        for key in list(self._memberships):
            segments = self._memberships[key]
            if segment_id in segments:
                segments.discard(segment_id)
                affected += 1
                if not segments:
                    del self._memberships[key]
        logger.debug("Removed segment %s from %d users", segment_id, affected)
        return affected

    def segments_of(self, user_id: UserId) -> Set[str]:
        return set(self._memberships.get(normalize_user_id(user_id), ()))

    def members_of(self, segment_id: str) -> List[str]:
        members = [key for key, segments in self._memberships.items() if segment_id in segments]
        return sorted(members, key=_member_sort_key)

    def assign_by_percentage(self, segment_id: str, percentage: float, candidate_user_ids: Iterable[UserId]) -> int:
        """Set the membership of ``segment_id`` for every candidate.

        Candidates whose bucket is below ``percentage`` are made members,
        all others are made non-members.  Returns how many memberships
        were newly added; members that stay members are not counted.
        """
        segment_id = normalize_segment_id(segment_id)
        if percentage < 0 or percentage > 100:
            raise ValidationError("Percentage must be between 0 and 100", field="percentage")
        # Normalise every candidate before touching the index.
        keys = [normalize_user_id(user_id) for user_id in candidate_user_ids]
        added = 0
        for key in keys:
            if bucket_for_user(key) < percentage:
                if self.add(key, segment_id):
                    added += 1
            else:
                self.remove(key, segment_id)
        return added

    def snapshot(self) -> Dict[str, Set[str]]:
        """Return a deep copy of the mapping."""
        return {key: set(segments) for key, segments in self._memberships.items()}

    def restore(self, memberships: Mapping[UserId, Iterable[str]]) -> None:
        restored: Dict[str, Set[str]] = {}
        for user_id, segment_ids in memberships.items():
            segments = set(segment_ids)
            if segments:
                restored[normalize_user_id(user_id)] = segments
        self._memberships = restored
