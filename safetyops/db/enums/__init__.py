"""Enum definitions for application constants."""

from safetyops.db.enums.auth import (
    GlobalRole,
    MembershipStatus,
    OrganizationRole,
    OrganizationStatus,
)
from safetyops.db.enums.certificates import CertificateStatus, GrantStatus
from safetyops.db.enums.incidents import (
    CLOSED_ACTION_STATUSES,
    UNRESOLVED_INCIDENT_STATUSES,
    ActionPriority,
    ActionStatus,
    IncidentSeverity,
    IncidentStatus,
)
from safetyops.db.enums.notifications import (
    NotificationChannel,
    NotificationEventType,
    NotificationType,
    RecipientType,
)

__all__ = [
    "GlobalRole",
    "MembershipStatus",
    "OrganizationRole",
    "OrganizationStatus",
    "CertificateStatus",
    "GrantStatus",
    "CLOSED_ACTION_STATUSES",
    "UNRESOLVED_INCIDENT_STATUSES",
    "ActionPriority",
    "ActionStatus",
    "IncidentSeverity",
    "IncidentStatus",
    "NotificationChannel",
    "NotificationEventType",
    "NotificationType",
    "RecipientType",
]
