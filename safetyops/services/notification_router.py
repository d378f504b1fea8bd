"""
Notification router - resolves an incident event into delivery intents.

Pure computation over already-loaded configuration. Membership lookups for
team/organization recipients go through a RecipientDirectory; sending the
intents is the caller's job.

Order of the returned intents:
1. critical fast path (severity critical, rule-independent)
2. rules in the order given, recipients in directory order, channels in rule order
"""

import logging
from collections.abc import Iterable, Sequence
from typing import Any, Protocol

from safetyops.db.enums import NotificationChannel, RecipientType
from safetyops.schemas.notification import (
    CriticalRecipientConfig,
    DeliveryIntent,
    IncidentEvent,
    NotificationFilters,
    RuleConfig,
)


logger = logging.getLogger(__name__)


class RecipientDirectory(Protocol):
    """Membership data used to expand team and organization recipients."""

    def organization_members(self, organization_id: str) -> list[str]:
        """Active members of an organization."""
        ...

    def team_members(self, team_id: str) -> list[str]:
        """Members of the project the team id refers to."""
        ...


# =============================================================================
# Filter matching
# =============================================================================


def _predicate_matches(predicate: Any, event_value: Any) -> bool:
    if isinstance(predicate, (list, tuple, set, frozenset)):
        values = [str(v) for v in predicate]
        if not values:
            return True
        if event_value is None:
            return False
        return str(event_value) in values
    if event_value is None:
        return False
    return str(event_value) == str(predicate)


def matches_filters(filters: NotificationFilters, event: IncidentEvent) -> bool:
    """
    True if every set filter matches the event (AND).

    Unset keys and empty lists are wildcards. A scalar must equal the event
    value, a list must contain it. An event without a value for a filtered
    field does not match.
    """
    fields = event.field_map()
    for key, predicate in filters.predicates().items():
        if not _predicate_matches(predicate, fields.get(key)):
            return False
    return True


def rule_applies(rule: RuleConfig, event: IncidentEvent) -> bool:
    """Enabled, in the event's organization (or unscoped), and filters match."""
    if not rule.enabled:
        return False
    if rule.organization_id is not None and rule.organization_id != event.organization_id:
        return False
    return matches_filters(rule.filters, event)


# =============================================================================
# Router
# =============================================================================


def critical_channels(
    recipient: CriticalRecipientConfig,
    include_email: bool = False,
) -> list[NotificationChannel]:
    """Channels a critical recipient can be reached on."""
    channels = [NotificationChannel.IN_APP]
    if recipient.phone_number:
        channels.append(NotificationChannel.WHATSAPP)
    if include_email:
        channels.append(NotificationChannel.EMAIL)
    return channels


class NotificationRouter:
    """Match an event against rules and critical recipients."""

    def __init__(self, directory: RecipientDirectory, critical_email: bool = False):
        self.directory = directory
        self.critical_email = critical_email

    def resolve_recipients(self, rule: RuleConfig) -> list[str]:
        """Concrete user ids for a rule. Zero members is a valid empty result."""
        if rule.recipient_type == RecipientType.USER:
            return [rule.recipient_id]
        if rule.recipient_type == RecipientType.ORGANIZATION:
            return self.directory.organization_members(rule.recipient_id)
        if rule.recipient_type == RecipientType.TEAM:
            return self.directory.team_members(rule.recipient_id)
        return []

    def route(
        self,
        event: IncidentEvent,
        rules: Sequence[RuleConfig],
        critical_recipients: Sequence[CriticalRecipientConfig] = (),
    ) -> list[DeliveryIntent]:
        intents: list[DeliveryIntent] = []
        seen: set[tuple[str, NotificationChannel, Any]] = set()

        def emit(recipient_id: str, channel: NotificationChannel, rule_id: Any) -> None:
            key = (recipient_id, channel, rule_id)
            if key in seen:
                return
            seen.add(key)
            intents.append(
                DeliveryIntent(recipient_id=recipient_id, channel=channel, rule_id=rule_id)
            )

        if event.is_critical:
            for recipient in critical_recipients:
                if not recipient.enabled:
                    continue
                for channel in critical_channels(recipient, self.critical_email):
                    emit(recipient.user_id, channel, None)

        matched = 0
        for rule in rules:
            if not rule_applies(rule, event):
                continue
            matched += 1
            recipients = self.resolve_recipients(rule)
            if not recipients:
                logger.debug("Rule %s matched but resolved to no recipients", rule.id)
            for recipient_id in recipients:
                for channel in rule.channels:
                    emit(recipient_id, channel, rule.id)

        logger.debug(
            "Routed %s for incident %s: %d rule(s) matched, %d intent(s)",
            event.event_type.value,
            event.incident_id,
            matched,
            len(intents),
        )
        return intents


def collapse_intents(intents: Iterable[DeliveryIntent]) -> list[DeliveryIntent]:
    """Drop repeated (recipient, channel) pairs, keeping the first occurrence."""
    seen: set[tuple[str, NotificationChannel]] = set()
    collapsed: list[DeliveryIntent] = []
    for intent in intents:
        key = (intent.recipient_id, intent.channel)
        if key in seen:
            continue
        seen.add(key)
        collapsed.append(intent)
    return collapsed
