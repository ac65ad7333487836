"""
Analytics API Endpoints.

Read-only: trip analytics over a posted trip log and deployment totals.
"""

from datetime import datetime
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from backend.app.db.session import get_db
from backend.app.core.guards import require_capability, Capability
from backend.app.models.deployment_enums import DeploymentPurpose
from backend.app.services.analytics import AnalyticsService
from backend.app.schemas.analytics import TripAnalytics, TripAnalyticsRequest, DeploymentAnalytics

router = APIRouter(prefix="/analytics", tags=["Analytics"])


@router.post("/trips/compute", response_model=TripAnalytics)
async def compute_trip_analytics(
    request: TripAnalyticsRequest,
    current_user: dict = Depends(require_capability(Capability.ANALYTICS_READ))
):
    """Aggregate a trip log without storing anything."""
    return AnalyticsService.compute(request.trips, request.shift_data, now=request.as_of)


@router.get("/deployments/summary", response_model=DeploymentAnalytics)
async def get_deployment_summary(
    start: Optional[datetime] = Query(None, description="Checkout on or after"),
    end: Optional[datetime] = Query(None, description="Checkout on or before"),
    purpose: Optional[DeploymentPurpose] = Query(None),
    registration_number: Optional[str] = Query(None),
    current_user: dict = Depends(require_capability(Capability.ANALYTICS_READ)),
    db: AsyncSession = Depends(get_db)
):
    """Deployment totals and per-vehicle utilization."""
    return await AnalyticsService.get_deployment_summary(
        db, start=start, end=end, purpose=purpose, registration_number=registration_number
    )
