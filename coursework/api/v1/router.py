"""API V1 Router"""

from fastapi import APIRouter

# Import endpoint routers
from coursework.api.v1.endpoints import assignments

# Create API v1 router
api_router = APIRouter()

# Include endpoint routers with prefixes and tags
api_router.include_router(assignments.router, prefix="/assignments", tags=["Assignments"])
