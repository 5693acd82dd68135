"""
API dependencies.
"""

from fastapi import HTTPException, Request, Response, status

from segment_manager_api.app.services.segment_manager import SegmentManager

PERSISTENCE_WARNING_HEADER = "X-Persistence-Warning"


def get_manager(request: Request) -> SegmentManager:
    """Return the segment manager created at application start-up."""
    manager = getattr(request.app.state, "segment_manager", None)
    if manager is None or manager.closed:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Segment manager is not running",
        )
    return manager


def attach_persistence_warning(response: Response, manager: SegmentManager) -> None:
    """Flag the response when the last state save failed.

    The mutation itself succeeded in memory; clients may show a warning.
    """
    if manager.last_persist_error is not None:
        response.headers[PERSISTENCE_WARNING_HEADER] = manager.last_persist_error.message
