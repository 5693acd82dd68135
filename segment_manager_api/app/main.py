"""
Main entrypoint for the Segment Manager API.

This module assembles the FastAPI application, sets up logging,
registers the error handler for domain errors and includes versioned
routers.  The ``create_app`` function builds and configures the app,
which is then instantiated at module import time as ``app``, e.g.::

    uvicorn segment_manager_api.app.main:app --reload

The segment manager is created on start-up (loading the last saved
state from SQLite) and closed on shutdown.
"""

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .api.v1.router import router as v1_router
from .core.config import settings
from .core.errors import DuplicateNameError, NotFoundError, PersistenceError, SegmentError, ValidationError
from .core.logging_config import setup_logging
from .services.segment_manager import SegmentManager
from .services.state_service import StateRepository

logger = logging.getLogger(__name__)

ERROR_STATUS_CODES = {
    ValidationError: 422,
    NotFoundError: 404,
    DuplicateNameError: 409,
    PersistenceError: 503,
}


async def segment_error_handler(request: Request, exc: SegmentError) -> JSONResponse:
    """Translate a domain error into a JSON error response."""
    status_code = ERROR_STATUS_CODES.get(type(exc), 400)
    logger.info("%s %s -> %s: %s", request.method, request.url.path, exc.kind, exc.message)
    return JSONResponse(status_code=status_code, content=exc.to_dict())


def create_app(database_path: Optional[str] = None) -> FastAPI:
    """Create and configure a FastAPI application.

    Parameters
    ----------
    database_path : Optional[str]
        SQLite file used to persist state.  Defaults to
        ``settings.database_url``.

    Returns
    -------
    FastAPI
        A configured FastAPI application instance.
    """
    setup_logging(settings.log_level, settings.log_file or None)

    app = FastAPI(title=settings.project_name, version=settings.api_version, debug=settings.debug)
    app.state.segment_manager = None

    app.add_exception_handler(SegmentError, segment_error_handler)
    app.include_router(v1_router, prefix="/api/v1")

    @app.on_event("startup")
    async def startup_event() -> None:
        # Apply migrations, then restore the last saved snapshot.
        repository = StateRepository(database_path)
        repository.init_schema()
        manager = SegmentManager(repository, universe_size=settings.random_assign_universe)
        manager.load()
        app.state.segment_manager = manager
        logger.info("Segment manager started with database %s", repository.db_path)

    @app.on_event("shutdown")
    async def shutdown_event() -> None:
        manager = app.state.segment_manager
        if manager is not None:
            manager.close()

    return app


# Create the application instance at import time so that tools such as
# uvicorn can discover it without calling create_app manually.
app = create_app()
