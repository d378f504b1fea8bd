"""Auth- and tenancy-related enums."""

from enum import Enum


class GlobalRole(str, Enum):
    """
    Platform-wide roles.

    - USER: sees shared records and records of organizations they belong to
    - ADMIN: sees and edits everything
    - SUPER_ADMIN: ADMIN plus role management
    """

    USER = "user"
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"

    @classmethod
    def has_value(cls, value: str) -> bool:
        """Check if value is a valid role."""
        return value in cls._value2member_map_


class OrganizationRole(str, Enum):
    """Roles within a single organization."""

    OWNER = "owner"
    ADMIN = "admin"
    MANAGER = "manager"
    MEMBER = "member"
    VIEWER = "viewer"


class MembershipStatus(str, Enum):
    """Organization membership status. Only ACTIVE grants visibility."""

    ACTIVE = "active"
    INVITED = "invited"
    SUSPENDED = "suspended"
    REMOVED = "removed"


class OrganizationStatus(str, Enum):
    """Organization lifecycle status."""

    ACTIVE = "active"
    SUSPENDED = "suspended"
    INACTIVE = "inactive"
