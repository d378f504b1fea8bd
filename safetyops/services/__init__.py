"""Service layer modules."""

# Import service modules (not individual functions) for cleaner access
from safetyops.services import membership_service
from safetyops.services import certificate_service
from safetyops.services import action_service
from safetyops.services import notification_router
from safetyops.services import notification_rule_service
from safetyops.services import notification_service

__all__ = [
    "membership_service",
    "certificate_service",
    "action_service",
    "notification_router",
    "notification_rule_service",
    "notification_service",
]
