"""
Segment endpoints for API v1.

These routes expose CRUD operations for segments, the member list of
a segment and the percentage based assignment.  Domain errors raised by
the manager are translated to HTTP responses by the handler registered
in ``main.py``.
"""

from typing import List

from fastapi import APIRouter, Depends, Response, status

from segment_manager_api.app.api.v1.deps import attach_persistence_warning, get_manager
from segment_manager_api.app.schemas.segment import (
    RandomAssignRequest,
    RandomAssignResult,
    Segment,
    SegmentCreate,
    SegmentMembersRead,
    SegmentUpdate,
)
from segment_manager_api.app.services.segment_manager import SegmentManager

router = APIRouter()


@router.get("/", response_model=List[Segment])
async def list_segments(manager: SegmentManager = Depends(get_manager)) -> List[Segment]:
    """Return all segments in creation order."""
    return manager.list_segments()


@router.post("/", response_model=Segment, status_code=status.HTTP_201_CREATED)
async def create_segment(
    segment_in: SegmentCreate,
    response: Response,
    manager: SegmentManager = Depends(get_manager),
) -> Segment:
    """Create a new segment.

    Returns 422 for a blank name and 409 when the name is taken.
    """
    segment = manager.create_segment(segment_in.name, segment_in.description)
    attach_persistence_warning(response, manager)
    return segment


@router.get("/{segment_id}", response_model=Segment)
async def get_segment(segment_id: str, manager: SegmentManager = Depends(get_manager)) -> Segment:
    return manager.get_segment(segment_id)


@router.put("/{segment_id}", response_model=Segment)
async def update_segment(
    segment_id: str,
    segment_in: SegmentUpdate,
    response: Response,
    manager: SegmentManager = Depends(get_manager),
) -> Segment:
    """Rename a segment and replace its description."""
    segment = manager.update_segment(segment_id, segment_in.name, segment_in.description)
    attach_persistence_warning(response, manager)
    return segment


@router.delete("/{segment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_segment(
    segment_id: str,
    response: Response,
    manager: SegmentManager = Depends(get_manager),
) -> None:
    """Delete a segment.  All users are removed from it."""
    manager.delete_segment(segment_id)
    attach_persistence_warning(response, manager)
    return None


@router.get("/{segment_id}/members", response_model=SegmentMembersRead)
async def list_segment_members(
    segment_id: str,
    manager: SegmentManager = Depends(get_manager),
) -> SegmentMembersRead:
    return SegmentMembersRead(segment_id=segment_id, user_ids=manager.list_segment_members(segment_id))


@router.post("/{segment_id}/random-assign", response_model=RandomAssignResult)
async def assign_random_users(
    segment_id: str,
    assign_in: RandomAssignRequest,
    response: Response,
    manager: SegmentManager = Depends(get_manager),
) -> RandomAssignResult:
    """Select a stable share of users for the segment.

    Users whose bucket falls below ``percentage`` become members, the
    remaining candidates are removed from the segment.  The response
    reports how many users were newly added.
    """
    assigned = manager.assign_random_users(segment_id, assign_in.percentage, assign_in.candidate_user_ids)
    attach_persistence_warning(response, manager)
    return RandomAssignResult(segment_id=segment_id, percentage=assign_in.percentage, assigned_count=assigned)
