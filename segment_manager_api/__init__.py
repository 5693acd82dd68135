"""
Top-level package for the Segment Manager API.

All functionality lives in submodules under ``app``.
"""

__all__ = []
