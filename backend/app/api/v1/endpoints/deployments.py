"""
Vehicle Deployment API Endpoints.

Supervisors and pilots check vehicles OUT and IN. Admins correct closed
deployments.
"""

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from backend.app.db.session import get_db
from backend.app.core.guards import require_capability, Capability
from backend.app.models.deployment_enums import DeploymentStatus
from backend.app.schemas.deployment import (
    CheckOutRequest, CheckInRequest, CancelRequest, CorrectionRequest,
    DeploymentResponse, DeploymentListResponse, CheckInResponse, DeploymentEventResponse
)
from backend.app.services import deployment_lifecycle

router = APIRouter(prefix="/vehicle-deployment/deployments", tags=["Vehicle Deployment - Deployments"])


@router.post("/check-out", response_model=DeploymentResponse, status_code=status.HTTP_201_CREATED)
async def check_out_vehicle(
    request: CheckOutRequest,
    current_user: dict = Depends(require_capability(Capability.DEPLOYMENT_CHECK_OUT)),
    db: AsyncSession = Depends(get_db)
):
    """
    Check a vehicle OUT.

    Validates:
    - Vehicle exists in the registry and is active (422 otherwise)
    - Vehicle is not already out (409 otherwise)
    """
    return await deployment_lifecycle.check_out(db, request, actor=current_user)


@router.post("/{deployment_id}/check-in", response_model=CheckInResponse)
async def check_in_vehicle(
    request: CheckInRequest,
    deployment_id: str = Path(..., description="Deployment ID, e.g. DEP_001_250101"),
    current_user: dict = Depends(require_capability(Capability.DEPLOYMENT_CHECK_IN)),
    db: AsyncSession = Depends(get_db)
):
    """
    Check a vehicle IN and return the trip summary.

    Fails with 422 if the return odometer is below the checkout odometer.
    """
    deployment, summary = await deployment_lifecycle.check_in(
        db, deployment_id, request.in_data, actor=current_user
    )
    return CheckInResponse(deployment=DeploymentResponse.model_validate(deployment), summary=summary)


@router.post("/{deployment_id}/cancel", response_model=DeploymentResponse)
async def cancel_deployment(
    request: CancelRequest,
    deployment_id: str = Path(...),
    current_user: dict = Depends(require_capability(Capability.DEPLOYMENT_CANCEL)),
    db: AsyncSession = Depends(get_db)
):
    """Cancel a scheduled or in-progress deployment."""
    return await deployment_lifecycle.cancel(db, deployment_id, request.reason, actor=current_user)


@router.patch("/{deployment_id}/correction", response_model=DeploymentResponse)
async def correct_deployment(
    request: CorrectionRequest,
    deployment_id: str = Path(...),
    current_user: dict = Depends(require_capability(Capability.DEPLOYMENT_CORRECT)),
    db: AsyncSession = Depends(get_db)
):
    """Correct odometer readings of a closed deployment (Admin only)."""
    return await deployment_lifecycle.correct(db, deployment_id, request, actor=current_user)


@router.get("/live", response_model=List[DeploymentResponse])
async def live_deployments(
    current_user: dict = Depends(require_capability(Capability.DEPLOYMENT_READ)),
    db: AsyncSession = Depends(get_db)
):
    """Vehicles currently out."""
    return await deployment_lifecycle.open_deployments(db)


@router.get("", response_model=DeploymentListResponse)
async def list_deployments(
    status: Optional[DeploymentStatus] = Query(None),
    registration_number: Optional[str] = Query(None),
    pilot_id: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
    current_user: dict = Depends(require_capability(Capability.DEPLOYMENT_READ)),
    db: AsyncSession = Depends(get_db)
):
    """List deployments with optional filters, newest first."""
    deployments, total = await deployment_lifecycle.list_deployments(
        db,
        status=status,
        registration_number=registration_number,
        pilot_id=pilot_id,
        page=page,
        page_size=page_size
    )
    return DeploymentListResponse(
        deployments=[DeploymentResponse.model_validate(d) for d in deployments],
        total=total,
        page=page,
        page_size=page_size
    )


@router.get("/{deployment_id}", response_model=DeploymentResponse)
async def get_deployment(
    deployment_id: str = Path(...),
    current_user: dict = Depends(require_capability(Capability.DEPLOYMENT_READ)),
    db: AsyncSession = Depends(get_db)
):
    return await deployment_lifecycle.get_deployment(db, deployment_id)


@router.get("/{deployment_id}/history", response_model=List[DeploymentEventResponse])
async def get_deployment_history(
    deployment_id: str = Path(...),
    current_user: dict = Depends(require_capability(Capability.DEPLOYMENT_READ)),
    db: AsyncSession = Depends(get_db)
):
    """Status history of a deployment, oldest first."""
    return await deployment_lifecycle.deployment_history(db, deployment_id)
