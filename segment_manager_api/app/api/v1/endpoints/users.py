"""
User lookup endpoint for API v1.
"""

from fastapi import APIRouter, Depends

from segment_manager_api.app.api.v1.deps import get_manager
from segment_manager_api.app.schemas.segment import UserSegmentsRead
from segment_manager_api.app.services.segment_manager import SegmentManager

router = APIRouter()


@router.get("/{user_id}/segments", response_model=UserSegmentsRead)
async def lookup_user_segments(
    user_id: str,
    manager: SegmentManager = Depends(get_manager),
) -> UserSegmentsRead:
    """Return the segments of a user.

    An unknown user is not an error: the response has ``found`` set to
    ``false`` and an empty ``segments`` list.
    """
    return manager.lookup_user_segments(user_id)
