"""
Vehicle deployment schemas.

Defines request and response models for checkout / check-in.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, List, Dict

from backend.app.models.deployment_enums import DeploymentPurpose, DeploymentStatus


class OutData(BaseModel):
    """Snapshot taken when the vehicle leaves the hub."""
    odometer: float = Field(..., ge=0, description="Odometer reading in km")
    battery_charge: Optional[float] = Field(None, ge=0, le=100, description="Battery charge in %")
    range_km: Optional[float] = Field(None, ge=0)
    supervisor_name: str = Field(..., min_length=1, max_length=100)
    driver_name: Optional[str] = Field(None, max_length=100)
    employee_name: Optional[str] = Field(None, max_length=100)
    location: Optional[str] = Field(None, max_length=200)
    driver_checklist: Dict[str, bool] = Field(default_factory=dict)
    vehicle_checklist: Dict[str, bool] = Field(default_factory=dict)
    notes: Optional[str] = Field(None, max_length=1000)


class InData(BaseModel):
    """Snapshot taken when the vehicle returns."""
    return_odometer: float = Field(..., ge=0, description="Odometer reading in km")
    in_supervisor_name: str = Field(..., min_length=1, max_length=100)
    vehicle_checklist: Dict[str, bool] = Field(default_factory=dict)
    checklist_mismatches: List[str] = Field(default_factory=list)
    notes: Optional[str] = Field(None, max_length=1000)


class CheckOutRequest(BaseModel):
    """Schema for checking a vehicle OUT."""
    registration_number: str = Field(..., min_length=1, max_length=50)
    pilot_id: str = Field(..., min_length=1, max_length=100)
    purpose: DeploymentPurpose
    out_data: OutData


class CheckInRequest(BaseModel):
    """Schema for checking a vehicle IN."""
    in_data: InData


class CancelRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=500)


class CorrectionRequest(BaseModel):
    """Administrative correction of a closed deployment."""
    out_odometer: Optional[float] = Field(None, ge=0)
    return_odometer: Optional[float] = Field(None, ge=0)
    notes: Optional[str] = Field(None, max_length=1000)


class DeploymentResponse(BaseModel):
    """Schema for deployment response."""
    id: int
    deployment_id: str
    vehicle_registration: str
    vehicle_details: Optional[dict]
    pilot_id: str
    purpose: DeploymentPurpose
    status: DeploymentStatus
    out_timestamp: Optional[datetime]
    out_data: Optional[dict]
    in_timestamp: Optional[datetime]
    in_data: Optional[dict]
    duration_minutes: Optional[int]
    total_kms: Optional[float]
    cancel_reason: Optional[str]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class DeploymentListResponse(BaseModel):
    """Schema for paginated deployment list."""
    deployments: List[DeploymentResponse]
    total: int
    page: int
    page_size: int


class TripSummary(BaseModel):
    """Reconciliation returned to the caller on check-in."""
    deployment_id: str
    vehicle_registration: str
    purpose: DeploymentPurpose
    out_timestamp: datetime
    in_timestamp: datetime
    duration_minutes: int
    total_duration: str
    total_kms: float
    mismatches: List[str]
    out_supervisor: Optional[str]
    in_supervisor: Optional[str]


class CheckInResponse(BaseModel):
    deployment: DeploymentResponse
    summary: TripSummary


class DeploymentEventResponse(BaseModel):
    id: int
    action: str
    from_status: Optional[str]
    to_status: Optional[str]
    actor_id: Optional[int]
    actor_role: Optional[str]
    meta_data: Optional[dict]
    timestamp: datetime

    class Config:
        from_attributes = True
