"""
Capability guards for role-based access control.

``can_perform`` is the single allow/deny gate; routes consult it through the
``require_capability`` dependency.
"""

from fastapi import Depends
from backend.app.models.enums import UserRole
from backend.app.core.dependencies import get_current_user
from backend.app.core.exceptions import InsufficientPermissionsError


class Capability:
    """Standardized capability constants."""
    VEHICLE_READ = "vehicle:read"
    REGISTRY_ADMIN = "registry:admin"

    DEPLOYMENT_READ = "deployment:read"
    DEPLOYMENT_CHECK_OUT = "deployment:check_out"
    DEPLOYMENT_CHECK_IN = "deployment:check_in"
    DEPLOYMENT_CANCEL = "deployment:cancel"
    DEPLOYMENT_CORRECT = "deployment:correct"

    ANALYTICS_READ = "analytics:read"
    SHIFT_SESSION = "shift:session"


ROLE_CAPABILITIES = {
    UserRole.ADMIN: frozenset({
        Capability.VEHICLE_READ, Capability.REGISTRY_ADMIN,
        Capability.DEPLOYMENT_READ, Capability.DEPLOYMENT_CHECK_OUT, Capability.DEPLOYMENT_CHECK_IN,
        Capability.DEPLOYMENT_CANCEL, Capability.DEPLOYMENT_CORRECT,
        Capability.ANALYTICS_READ, Capability.SHIFT_SESSION,
    }),
    UserRole.SUPERVISOR: frozenset({
        Capability.VEHICLE_READ,
        Capability.DEPLOYMENT_READ, Capability.DEPLOYMENT_CHECK_OUT, Capability.DEPLOYMENT_CHECK_IN,
        Capability.DEPLOYMENT_CANCEL,
        Capability.ANALYTICS_READ,
    }),
    UserRole.PILOT: frozenset({
        Capability.VEHICLE_READ,
        Capability.DEPLOYMENT_READ, Capability.DEPLOYMENT_CHECK_OUT, Capability.DEPLOYMENT_CHECK_IN,
        Capability.ANALYTICS_READ, Capability.SHIFT_SESSION,
    }),
    UserRole.EMPLOYEE: frozenset({
        Capability.VEHICLE_READ,
        Capability.DEPLOYMENT_READ,
        Capability.SHIFT_SESSION,
    }),
}


def can_perform(user: dict, action: str) -> bool:
    """
    Check whether a user may perform an action.

    Args:
        user: Decoded token payload
        action: Capability constant

    Returns:
        True if the user's role grants the capability
    """
    try:
        role = UserRole(user.get("role"))
    except ValueError:
        return False
    return action in ROLE_CAPABILITIES.get(role, frozenset())


def require_capability(action: str):
    """
    Dependency factory for capability checks.

    Usage:
        @router.post("/deployments/check-out")
        async def check_out(current_user: dict = Depends(require_capability(Capability.DEPLOYMENT_CHECK_OUT))):
            ...

    Raises:
        InsufficientPermissionsError (403) if the role lacks the capability
    """
    async def capability_checker(current_user: dict = Depends(get_current_user)) -> dict:
        if not can_perform(current_user, action):
            raise InsufficientPermissionsError(
                f"Role {current_user.get('role')} cannot perform {action}",
                details={"action": action}
            )
        return current_user

    return capability_checker
