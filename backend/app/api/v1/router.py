"""
API v1 Router.

Aggregates all v1 API endpoints.
"""

from fastapi import APIRouter
from backend.app.api.v1.endpoints import vehicles, deployments, analytics, shift_sessions

router = APIRouter()

# Vehicle deployment (registry lookups, OUT/IN lifecycle)
router.include_router(vehicles.router)
router.include_router(deployments.router)

# Trip and deployment analytics
router.include_router(analytics.router)

# Driver shift sessions
router.include_router(shift_sessions.router)
