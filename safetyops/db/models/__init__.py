"""SQLAlchemy ORM models."""

from safetyops.db.models.auth import Organization, OrganizationMember, UserRole
from safetyops.db.models.certificates import Certificate, UserCertificate
from safetyops.db.models.incidents import IncidentAction, IncidentAnalysis, SafetyIncident
from safetyops.db.models.notifications import (
    CriticalIncidentRecipient,
    Notification,
    NotificationRule,
)
from safetyops.db.models.projects import Project, ProjectMember

__all__ = [
    "Organization",
    "OrganizationMember",
    "UserRole",
    "Certificate",
    "UserCertificate",
    "IncidentAction",
    "IncidentAnalysis",
    "SafetyIncident",
    "CriticalIncidentRecipient",
    "Notification",
    "NotificationRule",
    "Project",
    "ProjectMember",
]
