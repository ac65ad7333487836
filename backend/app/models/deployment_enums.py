"""
Deployment-related enumerations.
"""

import enum


class DeploymentStatus(str, enum.Enum):
    """Deployment status enumeration."""
    SCHEDULED = "SCHEDULED"  # Booked but the vehicle has not left
    IN_PROGRESS = "IN_PROGRESS"  # Vehicle checked OUT
    COMPLETED = "COMPLETED"  # Vehicle checked IN
    CANCELLED = "CANCELLED"  # Deployment abandoned


TERMINAL_STATUSES = frozenset({DeploymentStatus.COMPLETED, DeploymentStatus.CANCELLED})
CANCELLABLE_STATUSES = frozenset({DeploymentStatus.SCHEDULED, DeploymentStatus.IN_PROGRESS})


class DeploymentPurpose(str, enum.Enum):
    """Why the vehicle leaves the hub."""
    OFFICE = "Office"
    PILOT = "Pilot"
