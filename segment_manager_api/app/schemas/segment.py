"""
Pydantic schemas for segments and memberships.

``Segment`` is the record kept by the segment store; it is frozen so
that edits always go through the store, which produces an updated copy.
The remaining models describe request and response payloads of the
HTTP API.
"""

from datetime import datetime
from typing import List, Optional, Union

from pydantic import BaseModel, Field

UserId = Union[int, str]


class Segment(BaseModel):
    """A named group that users can belong to."""

    id: str
    name: str = Field(..., min_length=1)
    description: str = ""
    created_at: datetime
    updated_at: datetime

    model_config = {
        "frozen": True,
    }


class SegmentCreate(BaseModel):
    """Schema for creating a segment."""

    name: str = Field(..., examples=["MAIL_GPT"])
    description: str = Field("", examples=["Users with access to GPT in mail"])


class SegmentUpdate(BaseModel):
    """Schema for updating a segment.

    Both fields replace the current values.
    """

    name: str = Field(..., examples=["MAIL_GPT"])
    description: str = Field("", examples=["Users with access to GPT in mail"])


class MembershipChange(BaseModel):
    """Add or remove a single user to/from a segment."""

    user_id: UserId = Field(..., examples=[42])
    segment_id: str


class RandomAssignRequest(BaseModel):
    """Parameters of a percentage based assignment.

    When ``candidate_user_ids`` is omitted the configured default
    universe (ids ``1..N``) is used.
    """

    percentage: float = Field(..., examples=[30])
    candidate_user_ids: Optional[List[UserId]] = None


class RandomAssignResult(BaseModel):
    segment_id: str
    percentage: float
    assigned_count: int


class UserSegmentsRead(BaseModel):
    """Segments of one user in segment listing order."""

    user_id: str
    found: bool
    segments: List[Segment]


class SegmentMembersRead(BaseModel):
    segment_id: str
    user_ids: List[str]
