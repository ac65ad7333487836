"""
Vehicle deployment lifecycle service.

Checks vehicles OUT and back IN. A vehicle can hold at most one IN_PROGRESS
deployment; the check below is a fast path, the partial unique index on
``deployments`` is what actually enforces it.
"""

import logging
from datetime import datetime
from typing import Optional, List, Tuple

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError

from backend.app.core.exceptions import (
    ConflictError, NotFoundError, ValidationError, VehicleValidationError, InvalidStateError
)
from backend.app.core.timeutils import utcnow, as_utc
from backend.app.models.deployment import Deployment
from backend.app.models.deployment_enums import (
    DeploymentStatus, TERMINAL_STATUSES, CANCELLABLE_STATUSES
)
from backend.app.schemas.deployment import (
    CheckOutRequest, InData, CorrectionRequest, TripSummary
)
from backend.app.services.audit import log_deployment_event, get_deployment_history, DeploymentAction
from backend.app.services.vehicle_registry import VehicleRegistry

logger = logging.getLogger(__name__)

# Attempts at a free DEP_ id when concurrent checkouts pick the same sequence
DEPLOYMENT_ID_ATTEMPTS = 5


def format_duration(minutes: int) -> str:
    hours, rest = divmod(minutes, 60)
    if hours:
        return f"{hours}h {rest}m"
    return f"{rest}m"


def detect_checklist_mismatches(out_checklist: dict, in_checklist: dict) -> List[str]:
    """Items that were OK when the vehicle went out and are not OK on return."""
    return [
        item for item, ok_at_out in (out_checklist or {}).items()
        if ok_at_out and (in_checklist or {}).get(item) is False
    ]


def _actor_fields(actor: Optional[dict]) -> dict:
    if not actor:
        return {"actor_id": None, "actor_role": None}
    return {"actor_id": actor.get("user_id"), "actor_role": actor.get("role")}


async def next_deployment_id(db: AsyncSession, when: datetime) -> str:
    """
    Next DEP_NNN_YYMMDD identifier for the given day.

    NNN is the 1-based sequence of deployments created that day.
    """
    suffix = when.strftime("%y%m%d")
    result = await db.execute(
        select(func.count(Deployment.id)).where(
            Deployment.deployment_id.like(f"DEP\\_%\\_{suffix}", escape="\\")
        )
    )
    sequence = (result.scalar() or 0) + 1
    return f"DEP_{sequence:03d}_{suffix}"


async def _deployment_id_taken(db: AsyncSession, deployment_id: str) -> bool:
    result = await db.execute(
        select(func.count(Deployment.id)).where(Deployment.deployment_id == deployment_id)
    )
    return (result.scalar() or 0) > 0


async def current_for_vehicle(db: AsyncSession, registration_number: str) -> Optional[Deployment]:
    """
    Get the open deployment of a vehicle, if any.

    Args:
        db: Database session
        registration_number: Registration, matched case-insensitively

    Returns:
        The IN_PROGRESS deployment or None
    """
    result = await db.execute(
        select(Deployment).where(
            func.lower(Deployment.vehicle_registration) == registration_number.strip().lower(),
            Deployment.status == DeploymentStatus.IN_PROGRESS
        )
    )
    return result.scalar_one_or_none()


async def get_deployment(db: AsyncSession, deployment_id: str) -> Deployment:
    """Fetch a deployment by its DEP_ identifier or raise NotFoundError."""
    result = await db.execute(
        select(Deployment).where(Deployment.deployment_id == deployment_id)
    )
    deployment = result.scalar_one_or_none()
    if deployment is None:
        raise NotFoundError("Deployment", deployment_id)
    return deployment


async def check_out(
    db: AsyncSession,
    request: CheckOutRequest,
    actor: Optional[dict] = None
) -> Deployment:
    """
    Check a vehicle OUT.

    Validates the vehicle against the registry, rejects a vehicle that is
    already out and creates an IN_PROGRESS deployment carrying a display
    snapshot of the vehicle.

    Args:
        db: Database session
        request: Registration, pilot, purpose and OUT snapshot
        actor: Authenticated user payload, if any

    Returns:
        Created deployment

    Raises:
        VehicleValidationError: Vehicle unknown or not deployable
        ConflictError: Vehicle already has an open deployment, or no free deployment id was found
    """
    validation = await VehicleRegistry.validate_for_deployment(db, request.registration_number)
    if not validation.valid:
        raise VehicleValidationError(
            request.registration_number,
            validation.error or "Vehicle validation failed",
            suggestion=validation.suggestion
        )
    for warning in validation.warnings:
        logger.warning("Checkout of %s: %s", request.registration_number, warning)

    vehicle = validation.vehicle
    registration = vehicle.registration_number

    existing = await current_for_vehicle(db, registration)
    if existing is not None:
        raise ConflictError(
            f"Vehicle {registration} is already deployed",
            details={"deployment_id": existing.deployment_id}
        )

    now = utcnow()
    for attempt in range(1, DEPLOYMENT_ID_ATTEMPTS + 1):
        deployment_id = await next_deployment_id(db, now)
        deployment = Deployment(
            deployment_id=deployment_id,
            vehicle_registration=registration,
            vehicle_details={
                "vehicle_id": vehicle.vehicle_id,
                "brand": vehicle.brand,
                "model": vehicle.model,
                "current_hub": vehicle.current_hub,
            },
            pilot_id=request.pilot_id,
            purpose=request.purpose,
            status=DeploymentStatus.IN_PROGRESS,
            out_timestamp=now,
            out_data=request.out_data.model_dump(),
            created_by=_actor_fields(actor)["actor_id"],
        )

        db.add(deployment)
        try:
            await db.flush()  # Will raise IntegrityError if the vehicle went out meanwhile
            break
        except IntegrityError:
            await db.rollback()
            if await current_for_vehicle(db, registration) is not None:
                raise ConflictError(f"Vehicle {registration} is already deployed")
            # Another checkout took this id first; count again for the next free one
            if not await _deployment_id_taken(db, deployment_id):
                raise
            if attempt == DEPLOYMENT_ID_ATTEMPTS:
                raise ConflictError(
                    "Could not allocate a deployment id, please retry the checkout",
                    details={"deployment_id": deployment_id}
                )
            logger.warning("Deployment id %s already taken, retrying checkout of %s", deployment_id, registration)

    await log_deployment_event(
        db,
        deployment.id,
        DeploymentAction.CHECKED_OUT,
        to_status=DeploymentStatus.IN_PROGRESS,
        metadata={"registration": registration, "pilot_id": request.pilot_id},
        **_actor_fields(actor)
    )
    await db.commit()
    await db.refresh(deployment)

    logger.info("Vehicle %s checked out as %s", registration, deployment.deployment_id)
    return deployment


async def check_in(
    db: AsyncSession,
    deployment_id: str,
    in_data: InData,
    actor: Optional[dict] = None
) -> Tuple[Deployment, TripSummary]:
    """
    Check a vehicle back IN and reconcile the trip.

    Args:
        db: Database session
        deployment_id: DEP_ identifier of an open deployment
        in_data: IN snapshot
        actor: Authenticated user payload, if any

    Returns:
        (completed deployment, trip summary)

    Raises:
        NotFoundError: No open deployment with that id
        ValidationError: Return odometer lower than the OUT odometer
    """
    result = await db.execute(
        select(Deployment).where(
            Deployment.deployment_id == deployment_id,
            Deployment.status == DeploymentStatus.IN_PROGRESS
        )
    )
    deployment = result.scalar_one_or_none()
    if deployment is None:
        raise NotFoundError("Open deployment", deployment_id)

    out_data = deployment.out_data or {}
    out_odometer = float(out_data.get("odometer", 0))
    total_kms = in_data.return_odometer - out_odometer
    if total_kms < 0:
        raise ValidationError(
            "Return odometer cannot be lower than checkout odometer",
            details={"out_odometer": out_odometer, "return_odometer": in_data.return_odometer}
        )

    in_timestamp = utcnow()
    out_timestamp = as_utc(deployment.out_timestamp)
    duration_minutes = int((in_timestamp - out_timestamp).total_seconds() // 60)

    mismatches = detect_checklist_mismatches(out_data.get("vehicle_checklist"), in_data.vehicle_checklist)
    for item in in_data.checklist_mismatches:
        if item not in mismatches:
            mismatches.append(item)

    recorded = in_data.model_dump()
    recorded["checklist_mismatches"] = mismatches

    deployment.in_timestamp = in_timestamp
    deployment.in_data = recorded
    deployment.duration_minutes = duration_minutes
    deployment.total_kms = total_kms
    deployment.status = DeploymentStatus.COMPLETED

    await log_deployment_event(
        db,
        deployment.id,
        DeploymentAction.CHECKED_IN,
        from_status=DeploymentStatus.IN_PROGRESS,
        to_status=DeploymentStatus.COMPLETED,
        metadata={"total_kms": total_kms, "duration_minutes": duration_minutes, "mismatches": mismatches},
        **_actor_fields(actor)
    )
    await db.commit()
    await db.refresh(deployment)

    summary = TripSummary(
        deployment_id=deployment.deployment_id,
        vehicle_registration=deployment.vehicle_registration,
        purpose=deployment.purpose,
        out_timestamp=out_timestamp,
        in_timestamp=in_timestamp,
        duration_minutes=duration_minutes,
        total_duration=format_duration(duration_minutes),
        total_kms=total_kms,
        mismatches=mismatches,
        out_supervisor=out_data.get("supervisor_name"),
        in_supervisor=in_data.in_supervisor_name,
    )

    logger.info(
        "Vehicle %s checked in (%s): %.1f km in %s",
        deployment.vehicle_registration, deployment.deployment_id, total_kms, summary.total_duration
    )
    return deployment, summary


async def cancel(
    db: AsyncSession,
    deployment_id: str,
    reason: str,
    actor: Optional[dict] = None
) -> Deployment:
    """
    Cancel a scheduled or in-progress deployment.

    Raises:
        NotFoundError: Unknown deployment
        InvalidStateError: Deployment already completed or cancelled
    """
    deployment = await get_deployment(db, deployment_id)
    previous = deployment.status
    if previous not in CANCELLABLE_STATUSES:
        raise InvalidStateError(
            f"Cannot cancel a {previous.value} deployment",
            current_state=previous
        )

    deployment.status = DeploymentStatus.CANCELLED
    deployment.cancel_reason = reason

    await log_deployment_event(
        db,
        deployment.id,
        DeploymentAction.CANCELLED,
        from_status=previous,
        to_status=DeploymentStatus.CANCELLED,
        metadata={"reason": reason},
        **_actor_fields(actor)
    )
    await db.commit()
    await db.refresh(deployment)

    logger.info("Deployment %s cancelled: %s", deployment_id, reason)
    return deployment


async def correct(
    db: AsyncSession,
    deployment_id: str,
    changes: CorrectionRequest,
    actor: Optional[dict] = None
) -> Deployment:
    """
    Administrative correction of a closed deployment's odometer readings.

    ``total_kms`` is recomputed and must stay non-negative. Correction notes
    are kept on the deployment's event history.

    Raises:
        NotFoundError: Unknown deployment
        InvalidStateError: Deployment is still open
        ValidationError: Correction would make the distance negative
    """
    deployment = await get_deployment(db, deployment_id)
    if deployment.status not in TERMINAL_STATUSES:
        raise InvalidStateError(
            "Only completed or cancelled deployments can be corrected",
            current_state=deployment.status
        )

    out_data = dict(deployment.out_data or {})
    in_data = dict(deployment.in_data) if deployment.in_data else None

    if changes.return_odometer is not None and in_data is None:
        raise ValidationError("Deployment has no check-in reading to correct")

    before = {"out_odometer": out_data.get("odometer"), "return_odometer": in_data.get("return_odometer") if in_data else None}

    if changes.out_odometer is not None:
        out_data["odometer"] = changes.out_odometer
    if changes.return_odometer is not None:
        in_data["return_odometer"] = changes.return_odometer

    total_kms = deployment.total_kms
    if in_data is not None:
        total_kms = float(in_data["return_odometer"]) - float(out_data.get("odometer", 0))
        if total_kms < 0:
            raise ValidationError(
                "Corrected readings would give a negative distance",
                details={"out_odometer": out_data.get("odometer"), "return_odometer": in_data["return_odometer"]}
            )

    deployment.out_data = out_data
    deployment.in_data = in_data
    deployment.total_kms = total_kms

    await log_deployment_event(
        db,
        deployment.id,
        DeploymentAction.CORRECTED,
        from_status=deployment.status,
        to_status=deployment.status,
        metadata={
            "before": before,
            "after": {"out_odometer": out_data.get("odometer"), "return_odometer": in_data.get("return_odometer") if in_data else None},
            "notes": changes.notes,
        },
        **_actor_fields(actor)
    )
    await db.commit()
    await db.refresh(deployment)

    logger.info("Deployment %s corrected, total_kms=%s", deployment_id, total_kms)
    return deployment


async def list_deployments(
    db: AsyncSession,
    status: Optional[DeploymentStatus] = None,
    registration_number: Optional[str] = None,
    pilot_id: Optional[str] = None,
    page: int = 1,
    page_size: int = 50
) -> Tuple[List[Deployment], int]:
    """
    List deployments, newest first.

    Returns:
        (page of deployments, total matching count)
    """
    filters = []
    if status is not None:
        filters.append(Deployment.status == status)
    if registration_number:
        filters.append(func.lower(Deployment.vehicle_registration) == registration_number.strip().lower())
    if pilot_id:
        filters.append(Deployment.pilot_id == pilot_id)

    total = (await db.execute(
        select(func.count(Deployment.id)).where(*filters)
    )).scalar() or 0

    result = await db.execute(
        select(Deployment).where(*filters)
        .order_by(Deployment.id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    return result.scalars().all(), total


async def open_deployments(db: AsyncSession) -> List[Deployment]:
    """All vehicles currently out, oldest checkout first."""
    result = await db.execute(
        select(Deployment).where(
            Deployment.status == DeploymentStatus.IN_PROGRESS
        ).order_by(Deployment.out_timestamp, Deployment.id)
    )
    return result.scalars().all()


async def deployment_history(db: AsyncSession, deployment_id: str):
    """Event history of one deployment."""
    deployment = await get_deployment(db, deployment_id)
    return await get_deployment_history(db, deployment.id)
