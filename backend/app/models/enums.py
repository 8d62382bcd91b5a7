"""
Actor roles enumeration.

Defines the role types carried in actor tokens.
"""

import enum


class UserRole(str, enum.Enum):
    """
    Actor role enumeration.

    Roles:
        ADMIN: Operator with system-level access (reconciliation, bulk updates)
        BRANCH: Branch operator verifying agent bookings
        AGENT: Submits bookings
        COURIER: Scans and delivers parcels
    """
    ADMIN = "ADMIN"
    BRANCH = "BRANCH"
    AGENT = "AGENT"
    COURIER = "COURIER"
