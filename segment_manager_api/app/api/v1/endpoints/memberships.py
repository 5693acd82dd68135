"""
Membership endpoints for API v1.

Adding and removing are both idempotent: repeating a request leaves
the state unchanged and still succeeds.  The ``changed`` flag in the
response tells whether the call modified anything.
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends, Response

from segment_manager_api.app.api.v1.deps import attach_persistence_warning, get_manager
from segment_manager_api.app.schemas.segment import MembershipChange
from segment_manager_api.app.services.membership_service import normalize_user_id
from segment_manager_api.app.services.segment_manager import SegmentManager

router = APIRouter()


@router.post("/", response_model=Dict[str, Any])
async def add_user_to_segment(
    change: MembershipChange,
    response: Response,
    manager: SegmentManager = Depends(get_manager),
) -> Dict[str, Any]:
    """Add a user to a segment (404 if the segment does not exist)."""
    added = manager.add_user_to_segment(change.user_id, change.segment_id)
    attach_persistence_warning(response, manager)
    return {"user_id": normalize_user_id(change.user_id), "segment_id": change.segment_id, "changed": added}


@router.delete("/", response_model=Dict[str, Any])
async def remove_user_from_segment(
    change: MembershipChange,
    response: Response,
    manager: SegmentManager = Depends(get_manager),
) -> Dict[str, Any]:
    """Remove a user from a segment."""
    removed = manager.remove_user_from_segment(change.user_id, change.segment_id)
    attach_persistence_warning(response, manager)
    return {"user_id": normalize_user_id(change.user_id), "segment_id": change.segment_id, "changed": removed}
