"""
Deployment event logging service.

Records the status history of each deployment. Events are written in the
caller's transaction so a failed transition leaves no history behind.
"""

from typing import Optional, Dict, Any
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from backend.app.models.deployment_event import DeploymentEvent


class DeploymentAction:
    """Standardized deployment event constants."""
    CHECKED_OUT = "DEPLOYMENT_CHECKED_OUT"
    CHECKED_IN = "DEPLOYMENT_CHECKED_IN"
    CANCELLED = "DEPLOYMENT_CANCELLED"
    CORRECTED = "DEPLOYMENT_CORRECTED"


def _status_value(status: Any) -> Optional[str]:
    return getattr(status, "value", status)


async def log_deployment_event(
    db: AsyncSession,
    deployment_pk: int,
    action: str,
    from_status: Any = None,
    to_status: Any = None,
    actor_id: Optional[int] = None,
    actor_role: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None
) -> DeploymentEvent:
    """
    Record a deployment status change.

    Args:
        db: Database session
        deployment_pk: Primary key of the deployment
        action: Action performed (use DeploymentAction constants)
        from_status: Status before the change
        to_status: Status after the change
        actor_id: ID of user performing the action
        actor_role: Role of the actor
        metadata: Additional context as JSON

    Returns:
        Created DeploymentEvent instance (flushed, not committed)
    """
    event = DeploymentEvent(
        deployment_pk=deployment_pk,
        action=action,
        from_status=_status_value(from_status),
        to_status=_status_value(to_status),
        actor_id=actor_id,
        actor_role=actor_role,
        meta_data=metadata
    )

    db.add(event)
    await db.flush()

    return event


async def get_deployment_history(
    db: AsyncSession,
    deployment_pk: int,
    limit: int = 100
) -> list[DeploymentEvent]:
    """
    Get the event history of one deployment, oldest first.

    Args:
        db: Database session
        deployment_pk: Primary key of the deployment
        limit: Maximum number of records

    Returns:
        List of DeploymentEvent instances
    """
    query = select(DeploymentEvent).where(
        DeploymentEvent.deployment_pk == deployment_pk
    ).order_by(DeploymentEvent.timestamp, DeploymentEvent.id).limit(limit)

    result = await db.execute(query)
    return result.scalars().all()
