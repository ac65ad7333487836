"""
Analytics Schemas.

Trip analytics is a derived projection of a shift's trip log and is never
stored on its own.
"""

from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime

from backend.app.models.trip_enums import TripMode
from backend.app.schemas.trip import Trip, ShiftData


class HourlyData(BaseModel):
    """Earnings of one hour-of-day bucket."""
    hour: int = Field(..., ge=0, le=23)
    earnings: float
    trips: int


class PaymentBreakdown(BaseModel):
    """Earnings split by settlement bucket."""
    cash: float = 0.0
    digital: float = 0.0
    pending: float = 0.0


class TripModeStats(BaseModel):
    """Per booking channel stats."""
    mode: TripMode
    count: int
    earnings: float
    percentage: float


class EfficiencyMetrics(BaseModel):
    trips_per_hour: float = 0.0
    earnings_per_hour: float = 0.0
    earnings_per_km: float = 0.0
    utilization_rate: float = 0.0


class TripAnalytics(BaseModel):
    """Shift analytics summary."""
    total_earnings: float = 0.0
    total_trips: int = 0
    average_trip: float = 0.0
    highest_trip: float = 0.0
    hourly_earnings: List[HourlyData] = Field(default_factory=list)
    payment_breakdown: PaymentBreakdown = Field(default_factory=PaymentBreakdown)
    trip_mode_stats: List[TripModeStats] = Field(default_factory=list)
    efficiency: EfficiencyMetrics = Field(default_factory=EfficiencyMetrics)


class TripAnalyticsRequest(BaseModel):
    """Stateless analytics over a posted trip log."""
    trips: List[Trip] = Field(default_factory=list)
    shift_data: ShiftData
    as_of: Optional[datetime] = Field(None, description="Reference time for an open shift")


class DeploymentSummaryStats(BaseModel):
    """Deployment totals over a period."""
    total_deployments: int
    completed_deployments: int
    cancelled_deployments: int
    in_progress_deployments: int
    average_duration_minutes: float
    total_kms: float


class VehicleDeploymentUtilization(BaseModel):
    """Per vehicle deployment stats."""
    vehicle_registration: str
    deployment_count: int
    total_kms: float
    total_hours: float


class DeploymentAnalytics(BaseModel):
    summary: DeploymentSummaryStats
    vehicle_utilization: List[VehicleDeploymentUtilization]
