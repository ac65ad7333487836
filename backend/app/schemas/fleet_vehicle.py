"""
Fleet Vehicle reference schemas.

Canonical in-memory shape of a registry vehicle, whatever field naming the
stored document uses.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, List


class VehicleReference(BaseModel):
    """Canonical vehicle record resolved from the registry."""
    data_hub_id: Optional[str] = None
    registration_number: str
    vehicle_id: Optional[str] = None

    # Vehicle details
    brand: Optional[str] = None
    model: Optional[str] = None
    year: Optional[int] = None
    color: Optional[str] = None

    # Technical details
    vin_number: Optional[str] = None
    battery_capacity: Optional[float] = None
    range_km: Optional[float] = None

    # Status and location
    status: Optional[str] = None
    current_hub: Optional[str] = None
    assigned_pilot_id: Optional[str] = None
    is_active: bool = True

    source: str = "data-hub"


class VehicleValidationResult(BaseModel):
    """Outcome of checking a vehicle for deployment."""
    valid: bool
    vehicle: Optional[VehicleReference] = None
    error: Optional[str] = None
    suggestion: Optional[str] = None
    warnings: List[str] = Field(default_factory=list)


class VehicleValidateRequest(BaseModel):
    registration_number: str = Field(..., min_length=1, max_length=50)


class VehicleDeploymentStatus(BaseModel):
    """Registry vehicle plus its open deployment, if any."""
    vehicle: VehicleReference
    is_deployed: bool
    current_deployment_id: Optional[str] = None
    deployed_since: Optional[datetime] = None


class VehicleSuggestion(BaseModel):
    """Autocomplete entry."""
    registration_number: str
    brand: str
    model: str
    status: str
    current_hub: str


class RegistryHealth(BaseModel):
    status: str
    vehicles: int
    last_checked: datetime
    error: Optional[str] = None
