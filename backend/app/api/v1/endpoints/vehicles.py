"""
Vehicle Lookup API Endpoints.

Read-only access to the vehicle registry for the deployment screens.
"""

from fastapi import APIRouter, Depends, Path, Query
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from backend.app.db.session import get_db
from backend.app.core.guards import require_capability, Capability
from backend.app.core.exceptions import NotFoundError
from backend.app.schemas.fleet_vehicle import (
    VehicleReference, VehicleValidationResult, VehicleValidateRequest,
    VehicleDeploymentStatus, VehicleSuggestion, RegistryHealth
)
from backend.app.services.vehicle_registry import VehicleRegistry
from backend.app.services.deployment_lifecycle import current_for_vehicle

router = APIRouter(prefix="/vehicle-deployment/vehicles", tags=["Vehicle Deployment - Vehicles"])


@router.get("/registration/{registration_number}", response_model=VehicleDeploymentStatus)
async def get_vehicle_by_registration(
    registration_number: str = Path(..., description="Registration number, any case"),
    current_user: dict = Depends(require_capability(Capability.VEHICLE_READ)),
    db: AsyncSession = Depends(get_db)
):
    """
    Resolve a registration and report whether the vehicle is currently out.

    Returns 404 with a suggestion when the registry has no such vehicle.
    """
    vehicle = await VehicleRegistry.require(db, registration_number)
    deployment = await current_for_vehicle(db, vehicle.registration_number)

    return VehicleDeploymentStatus(
        vehicle=vehicle,
        is_deployed=deployment is not None,
        current_deployment_id=deployment.deployment_id if deployment else None,
        deployed_since=deployment.out_timestamp if deployment else None,
    )


@router.get("/by-id/{vehicle_id}", response_model=VehicleReference)
async def get_vehicle_by_id(
    vehicle_id: str = Path(..., description="Registry Vehicle ID, e.g. EV-001"),
    current_user: dict = Depends(require_capability(Capability.VEHICLE_READ)),
    db: AsyncSession = Depends(get_db)
):
    """Resolve a vehicle by its registry Vehicle ID."""
    vehicle = await VehicleRegistry.find_by_vehicle_id(db, vehicle_id)
    if vehicle is None:
        raise NotFoundError("Vehicle", vehicle_id)
    return vehicle


@router.post("/validate", response_model=VehicleValidationResult)
async def validate_vehicle(
    request: VehicleValidateRequest,
    current_user: dict = Depends(require_capability(Capability.VEHICLE_READ)),
    db: AsyncSession = Depends(get_db)
):
    """Check a vehicle for deployment; 422 with error and suggestion when it cannot go out."""
    result = await VehicleRegistry.validate_for_deployment(db, request.registration_number)
    if not result.valid:
        return JSONResponse(status_code=422, content=result.model_dump(mode="json"))
    return result


@router.get("/autocomplete", response_model=List[VehicleSuggestion])
async def autocomplete_vehicles(
    q: str = Query(..., min_length=1, description="Part of a registration, brand or model"),
    limit: int = Query(10, ge=1, le=50),
    current_user: dict = Depends(require_capability(Capability.VEHICLE_READ)),
    db: AsyncSession = Depends(get_db)
):
    """Registration suggestions for the checkout form."""
    return await VehicleRegistry.suggest(db, q, limit=limit)


@router.get("/available", response_model=List[VehicleReference])
async def list_available_vehicles(
    status: Optional[str] = Query(None, description="Registry status, e.g. Active"),
    hub: Optional[str] = Query(None, description="Current hub"),
    limit: int = Query(100, ge=1, le=500),
    current_user: dict = Depends(require_capability(Capability.VEHICLE_READ)),
    db: AsyncSession = Depends(get_db)
):
    """List active registry vehicles."""
    return await VehicleRegistry.list_available(db, status=status, hub=hub, limit=limit)


@router.get("/registry/health", response_model=RegistryHealth)
async def registry_health(
    current_user: dict = Depends(require_capability(Capability.REGISTRY_ADMIN)),
    db: AsyncSession = Depends(get_db)
):
    """Registry reachability and vehicle count (Admin only)."""
    return await VehicleRegistry.health(db)
