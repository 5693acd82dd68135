"""
Information endpoint for API v1.

Returns the service name and version together with simple counters of
the managed state.
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends

from segment_manager_api.app.api.v1.deps import get_manager
from segment_manager_api.app.core.config import settings
from segment_manager_api.app.services.segment_manager import SegmentManager

router = APIRouter()


@router.get("/", response_model=Dict[str, Any])
async def get_info(manager: SegmentManager = Depends(get_manager)) -> Dict[str, Any]:
    return {
        "name": settings.project_name,
        "version": settings.api_version,
        "segments": manager.segment_count(),
        "users": manager.user_count(),
        "persistence_ok": manager.last_persist_error is None,
    }
