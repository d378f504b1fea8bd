"""Incident and remediation-action enums."""

from enum import Enum


class IncidentSeverity(str, Enum):
    """Incident severity. CRITICAL triggers the critical fast path."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class IncidentStatus(str, Enum):
    """Incident handling status."""

    OPEN = "open"
    INVESTIGATING = "investigating"
    RESOLVED = "resolved"
    CLOSED = "closed"


class ActionPriority(str, Enum):
    """Remediation action priority."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class ActionStatus(str, Enum):
    """
    Remediation action status.

    SUGGESTED is transient: AI candidates are not persisted until approved.
    """

    SUGGESTED = "suggested"
    APPROVED = "approved"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# Statuses that end overdue tracking
CLOSED_ACTION_STATUSES = frozenset({ActionStatus.COMPLETED.value, ActionStatus.CANCELLED.value})

# Incident statuses listed by default in the cross-incident action overview
UNRESOLVED_INCIDENT_STATUSES = (IncidentStatus.OPEN.value, IncidentStatus.INVESTIGATING.value)
