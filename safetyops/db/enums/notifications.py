"""Notification-related enums."""

from enum import Enum


class NotificationChannel(str, Enum):
    """Delivery channels a rule can fan out to."""

    EMAIL = "email"
    WHATSAPP = "whatsapp"
    IN_APP = "in_app"


class RecipientType(str, Enum):
    """
    Who a notification rule addresses.

    - USER: the identity-provider user id stored on the rule
    - TEAM: the members of the project whose id is stored on the rule
    - ORGANIZATION: the active members of the organization
    """

    USER = "user"
    TEAM = "team"
    ORGANIZATION = "organization"


class NotificationEventType(str, Enum):
    """Domain events the router is invoked for."""

    INCIDENT_CREATED = "incident_created"
    INCIDENT_UPDATED = "incident_updated"
    INCIDENT_STATUS_CHANGED = "incident_status_changed"
    ACTION_STATUS_CHANGED = "action_status_changed"
    ANALYSIS_COMPLETED = "analysis_completed"


class NotificationType(str, Enum):
    """Types of in-app notifications."""

    INCIDENT = "incident"
    CRITICAL_INCIDENT = "critical_incident"
    ACTION = "action"
    ANALYSIS = "analysis"
