"""Notification rule service - rule write path, storage edge and critical recipients.

Rules keep channels and filters as JSON columns. This module is the only
place that converts them to RuleConfig / NotificationFilters: validation
happens on write, and a row that fails to parse on read raises
RuleConfigurationError instead of being skipped.
"""

import logging
from uuid import UUID

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.orm import Session

from safetyops.core.errors import (
    CriticalRecipientError,
    RecipientNotFoundError,
    RuleConfigurationError,
    RuleNotFoundError,
)
from safetyops.db.enums import IncidentSeverity, NotificationChannel, RecipientType
from safetyops.db.models import (
    CriticalIncidentRecipient,
    NotificationRule,
    Organization,
    Project,
)
from safetyops.schemas.notification import (
    CriticalRecipientConfig,
    NotificationFilters,
    NotificationRuleCreate,
    NotificationRuleUpdate,
    RuleConfig,
)
from safetyops.utils.normalization import normalize_phone


logger = logging.getLogger(__name__)


# =============================================================================
# Storage edge
# =============================================================================


def _filters_to_json(filters: NotificationFilters) -> dict:
    return filters.model_dump(exclude_none=True)


def _channels_to_json(channels: list[NotificationChannel]) -> list[str]:
    return [channel.value for channel in channels]


def rule_config_from_model(rule: NotificationRule) -> RuleConfig:
    """Typed view of a stored rule. Malformed storage raises RuleConfigurationError."""
    channels = rule.channels
    if not isinstance(channels, list) or not channels:
        raise RuleConfigurationError("channels must be a non-empty list", rule_id=rule.id)
    if not all(isinstance(channel, str) for channel in channels):
        raise RuleConfigurationError("channels must be channel names", rule_id=rule.id)
    if not isinstance(rule.filters, dict):
        raise RuleConfigurationError("filters must be an object", rule_id=rule.id)

    try:
        return RuleConfig(
            id=rule.id,
            name=rule.name,
            recipient_type=rule.recipient_type,
            recipient_id=rule.recipient_id,
            channels=tuple(dict.fromkeys(channels)),
            filters=NotificationFilters.model_validate(rule.filters),
            organization_id=rule.organization_id,
            enabled=rule.enabled,
        )
    except ValidationError as exc:
        logger.error("Stored notification rule %s is malformed: %s", rule.id, exc)
        raise RuleConfigurationError(str(exc), rule_id=rule.id) from exc


def _validate_recipient(db: Session, recipient_type: RecipientType, recipient_id: str) -> None:
    """Team and organization recipients must reference existing rows."""
    if recipient_type == RecipientType.USER:
        return

    try:
        parsed = UUID(recipient_id)
    except ValueError as exc:
        raise RuleConfigurationError(
            f"{recipient_type.value} recipient id {recipient_id!r} is not a valid id"
        ) from exc

    model = Project if recipient_type == RecipientType.TEAM else Organization
    if db.get(model, parsed) is None:
        raise RecipientNotFoundError(f"{recipient_type.value} {recipient_id} not found")


# =============================================================================
# Rules
# =============================================================================


def get_rule(db: Session, rule_id: UUID) -> NotificationRule:
    rule = db.get(NotificationRule, rule_id)
    if rule is None:
        raise RuleNotFoundError(f"Notification rule {rule_id} not found")
    return rule


def list_rules(db: Session, organization_id: UUID | None = None) -> list[NotificationRule]:
    """All rules, or the rules scoped to one organization plus the unscoped ones."""
    stmt = select(NotificationRule).order_by(NotificationRule.created_at, NotificationRule.name)
    if organization_id is not None:
        stmt = stmt.where(
            (NotificationRule.organization_id == organization_id)
            | NotificationRule.organization_id.is_(None)
        )
    return list(db.scalars(stmt))


def load_enabled_rules(db: Session) -> list[RuleConfig]:
    """Enabled rules as router input. Any malformed row fails the load."""
    rows = db.scalars(
        select(NotificationRule)
        .where(NotificationRule.enabled.is_(True))
        .order_by(NotificationRule.created_at, NotificationRule.name)
    )
    return [rule_config_from_model(row) for row in rows]


def create_rule(db: Session, data: NotificationRuleCreate | dict, created_by: str) -> NotificationRule:
    """
    Validate and store a rule.

    Accepts a schema or a raw payload; payload validation errors become
    RuleConfigurationError.
    """
    if not isinstance(data, NotificationRuleCreate):
        try:
            data = NotificationRuleCreate.model_validate(data)
        except ValidationError as exc:
            logger.error("Rejected notification rule: %s", exc)
            raise RuleConfigurationError(str(exc)) from exc

    _validate_recipient(db, data.recipient_type, data.recipient_id)

    rule = NotificationRule(
        name=data.name,
        description=data.description,
        recipient_type=data.recipient_type.value,
        recipient_id=data.recipient_id,
        channels=_channels_to_json(data.channels),
        filters=_filters_to_json(data.filters),
        organization_id=data.organization_id,
        enabled=data.enabled,
        created_by=created_by,
    )
    db.add(rule)
    db.commit()
    db.refresh(rule)

    logger.info(
        "Created notification rule %s (%s %s, channels=%s)",
        rule.id,
        rule.recipient_type,
        rule.recipient_id,
        ",".join(rule.channels),
    )
    return rule


def update_rule(db: Session, rule: NotificationRule, data: NotificationRuleUpdate | dict) -> NotificationRule:
    """Update a rule (partial). Same validation as create."""
    if not isinstance(data, NotificationRuleUpdate):
        try:
            data = NotificationRuleUpdate.model_validate(data)
        except ValidationError as exc:
            logger.error("Rejected notification rule update for %s: %s", rule.id, exc)
            raise RuleConfigurationError(str(exc), rule_id=rule.id) from exc

    update_data = data.model_dump(exclude_unset=True)
    if "channels" in update_data:
        if not data.channels:
            raise RuleConfigurationError("channels must not be empty", rule_id=rule.id)
        rule.channels = _channels_to_json(data.channels)
    if "filters" in update_data:
        rule.filters = _filters_to_json(data.filters or NotificationFilters())
    if "description" in update_data:
        rule.description = data.description
    if data.name is not None:
        rule.name = data.name
    if data.enabled is not None:
        rule.enabled = data.enabled

    db.commit()
    db.refresh(rule)
    return rule


def delete_rule(db: Session, rule: NotificationRule) -> None:
    db.delete(rule)
    db.commit()


# =============================================================================
# Critical incident recipients
# =============================================================================


def get_critical_recipient(db: Session, user_id: str) -> CriticalIncidentRecipient:
    recipient = db.scalar(
        select(CriticalIncidentRecipient).where(CriticalIncidentRecipient.user_id == user_id)
    )
    if recipient is None:
        raise RecipientNotFoundError(f"Critical incident recipient {user_id} not found")
    return recipient


def add_critical_recipient(
    db: Session,
    user_id: str,
    phone_number: str | None = None,
    added_by: str | None = None,
) -> CriticalIncidentRecipient:
    """Subscribe a user to critical incidents, updating an existing subscription."""
    try:
        phone = normalize_phone(phone_number)
    except ValueError as e:
        raise CriticalRecipientError(f"Critical incident recipient {user_id}: {e}") from e

    recipient = db.scalar(
        select(CriticalIncidentRecipient).where(CriticalIncidentRecipient.user_id == user_id)
    )
    if recipient is None:
        recipient = CriticalIncidentRecipient(user_id=user_id, added_by=added_by)
        db.add(recipient)
    recipient.phone_number = phone
    recipient.enabled = True

    db.commit()
    db.refresh(recipient)
    return recipient


def set_critical_recipient_enabled(db: Session, user_id: str, enabled: bool) -> CriticalIncidentRecipient:
    recipient = get_critical_recipient(db, user_id)
    recipient.enabled = enabled
    db.commit()
    db.refresh(recipient)
    return recipient


def remove_critical_recipient(db: Session, user_id: str) -> None:
    db.delete(get_critical_recipient(db, user_id))
    db.commit()


def list_enabled_critical_recipients(db: Session) -> list[CriticalRecipientConfig]:
    rows = db.scalars(
        select(CriticalIncidentRecipient)
        .where(CriticalIncidentRecipient.enabled.is_(True))
        .order_by(CriticalIncidentRecipient.created_at, CriticalIncidentRecipient.user_id)
    )
    return [
        CriticalRecipientConfig(user_id=row.user_id, phone_number=row.phone_number, enabled=True)
        for row in rows
    ]


def _has_critical_rule(db: Session, user_id: str) -> bool:
    rules = db.scalars(select(NotificationRule).where(NotificationRule.recipient_id == user_id))
    for rule in rules:
        severity = (rule.filters or {}).get("severity") if isinstance(rule.filters, dict) else None
        if severity is None:
            continue
        values = severity if isinstance(severity, list) else [severity]
        if IncidentSeverity.CRITICAL.value in [str(v) for v in values]:
            return True
    return False


def migrate_critical_recipients_to_rules(db: Session) -> tuple[int, int]:
    """
    Create one user rule per enabled critical recipient.

    Recipients that already have a rule filtering on critical severity are
    skipped. Returns (migrated, skipped).
    """
    migrated = 0
    skipped = 0
    recipients = db.scalars(
        select(CriticalIncidentRecipient)
        .where(CriticalIncidentRecipient.enabled.is_(True))
        .order_by(CriticalIncidentRecipient.created_at, CriticalIncidentRecipient.user_id)
    ).all()

    for recipient in recipients:
        if _has_critical_rule(db, recipient.user_id):
            logger.info("Critical rule already exists for %s, skipping", recipient.user_id)
            skipped += 1
            continue

        channels = [NotificationChannel.IN_APP, NotificationChannel.EMAIL]
        if recipient.phone_number:
            channels.append(NotificationChannel.WHATSAPP)

        db.add(
            NotificationRule(
                name=f"Kritieke Incidenten - {recipient.user_id}",
                description="Migrated from critical incident recipients",
                recipient_type=RecipientType.USER.value,
                recipient_id=recipient.user_id,
                channels=_channels_to_json(channels),
                filters={"severity": [IncidentSeverity.CRITICAL.value]},
                organization_id=None,
                enabled=True,
                created_by=recipient.added_by or "system",
            )
        )
        db.flush()
        migrated += 1

    db.commit()
    logger.info(
        "Migrated critical recipients to rules: %d created, %d skipped",
        migrated,
        skipped,
    )
    return migrated, skipped
