"""
Simple configuration management.

The ``Settings`` dataclass reads configuration directly from
environment variables so that no settings framework is required.
Defaults are provided for all fields.  Override them via environment
variables before the application is imported.
"""

import os
from dataclasses import dataclass


@dataclass
class Settings:
    """Application settings loaded from environment variables."""

    project_name: str = os.getenv("PROJECT_NAME", "Segment Manager API")
    api_version: str = os.getenv("API_VERSION", "1.0.0")
    debug: bool = os.getenv("DEBUG", "false").lower() in {"1", "true", "yes"}
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    log_file: str = os.getenv("LOG_FILE", "")

    # Path to the SQLite file holding the persisted segment state.  A
    # relative path is resolved against the project root by the ``db``
    # module.
    database_url: str = os.getenv("DATABASE_URL", "segments.db")

    # Random assignment enumerates user ids 1..N when the caller does not
    # supply its own candidates.
    random_assign_universe: int = int(os.getenv("RANDOM_ASSIGN_UNIVERSE", "1000"))

    host: str = os.getenv("HOST", "0.0.0.0")
    port: int = int(os.getenv("PORT", "8000"))


# Instantiate settings once so other modules can import it without
# repeatedly reading environment variables.
settings = Settings()
