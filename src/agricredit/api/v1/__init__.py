"""
API v1 router aggregating all endpoints.
"""

from fastapi import APIRouter

from agricredit.api.v1.activities import router as activities_router

router = APIRouter()

router.include_router(activities_router, prefix="/activities", tags=["Activities"])
