"""
User roles enumeration.

Defines the role types consulted by the capability gate.
"""

import enum


class UserRole(str, enum.Enum):
    """
    User role enumeration.

    Roles:
        ADMIN: Full access, including administrative correction of deployments
        SUPERVISOR: Hub supervisor who checks vehicles out and in
        PILOT: Driver who checks vehicles out and logs shift trips (default role)
        EMPLOYEE: Office staff; read-only access to deployments
    """
    ADMIN = "ADMIN"
    SUPERVISOR = "SUPERVISOR"
    PILOT = "PILOT"
    EMPLOYEE = "EMPLOYEE"
