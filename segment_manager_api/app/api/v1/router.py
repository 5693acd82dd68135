"""
Top-level router for version 1 of the API.

This router aggregates the resource routers under a unified prefix.
When new endpoints are added, update this file to include them.
"""

from fastapi import APIRouter

from .endpoints import info, memberships, segments, users

router = APIRouter()

router.include_router(segments.router, prefix="/segments", tags=["segments"])
router.include_router(memberships.router, prefix="/memberships", tags=["memberships"])
router.include_router(users.router, prefix="/users", tags=["users"])
router.include_router(info.router, prefix="/info", tags=["info"])
