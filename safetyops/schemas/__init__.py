"""Pydantic schemas for domain payloads."""

from safetyops.schemas.action import (
    ActionCreate,
    ActionFilters,
    ActionSummary,
    ActionUpdate,
    ApprovedSuggestion,
    SuggestedAction,
)
from safetyops.schemas.actor import Actor, MembershipRef
from safetyops.schemas.certificate import (
    CertificateCreate,
    CertificateUpdate,
    GrantCreate,
    GrantUpdate,
)
from safetyops.schemas.notification import (
    CriticalRecipientConfig,
    DeliveryIntent,
    IncidentEvent,
    NotificationFilters,
    NotificationRuleCreate,
    NotificationRuleUpdate,
    RuleConfig,
)
