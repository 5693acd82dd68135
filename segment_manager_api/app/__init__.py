"""
Application package initializer.

The package is organised into ``core`` (configuration, logging,
database and error kinds), ``schemas`` (pydantic records and payloads),
``services`` (segment store, membership index, persistence and the
manager owning them) and ``api`` (versioned FastAPI routers).
"""

from .main import app  # noqa: F401
