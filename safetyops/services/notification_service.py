"""
Notification Service - turns domain events into delivery intents and in-app rows.

Builds IncidentEvent values from incidents, actions and analyses, routes them
through NotificationRouter, stores in-app notifications and hands every
intent back to the caller for the external email/WhatsApp senders.
"""

import logging
from datetime import datetime, timedelta, timezone
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from safetyops.core.config import settings
from safetyops.core.structured_logging import build_log_context
from safetyops.db.enums import NotificationChannel, NotificationEventType, NotificationType
from safetyops.db.models import IncidentAction, IncidentAnalysis, Notification, SafetyIncident
from safetyops.schemas.notification import DeliveryIntent, IncidentEvent
from safetyops.services import notification_rule_service
from safetyops.services.membership_service import DatabaseRecipientDirectory
from safetyops.services.notification_router import NotificationRouter, collapse_intents


logger = logging.getLogger(__name__)


# =============================================================================
# Event builders
# =============================================================================


def event_from_incident(
    incident: SafetyIncident,
    event_type: NotificationEventType = NotificationEventType.INCIDENT_CREATED,
) -> IncidentEvent:
    return IncidentEvent(
        event_type=event_type,
        incident_id=incident.id,
        reference=incident.reference,
        title=incident.title,
        severity=incident.severity,
        category=incident.category,
        discipline=incident.discipline,
        status=incident.status,
        location=incident.location,
        organization_id=incident.organization_id,
        project_id=incident.project_id,
    )


def event_from_action(
    incident: SafetyIncident,
    action: IncidentAction,
    previous_status: str | None = None,
) -> IncidentEvent:
    """Action status change, carrying the incident's fields for filtering."""
    return IncidentEvent(
        event_type=NotificationEventType.ACTION_STATUS_CHANGED,
        incident_id=incident.id,
        reference=incident.reference,
        title=action.title,
        severity=incident.severity,
        category=incident.category,
        discipline=incident.discipline,
        status=incident.status,
        location=incident.location,
        organization_id=incident.organization_id,
        project_id=incident.project_id,
        action_id=action.id,
        action_status=action.status,
        previous_status=previous_status,
    )


def event_from_analysis(incident: SafetyIncident, analysis: IncidentAnalysis) -> IncidentEvent:
    return IncidentEvent(
        event_type=NotificationEventType.ANALYSIS_COMPLETED,
        incident_id=incident.id,
        reference=incident.reference,
        title=incident.title,
        severity=incident.severity,
        category=incident.category,
        discipline=incident.discipline,
        status=incident.status,
        location=incident.location,
        organization_id=incident.organization_id,
        project_id=incident.project_id,
        analysis_id=analysis.id,
    )


# =============================================================================
# In-app notifications
# =============================================================================


def create_notification(
    db: Session,
    user_id: str,
    type: NotificationType,
    title: str,
    body: str | None = None,
    organization_id: UUID | None = None,
    entity_type: str | None = None,
    entity_id: UUID | None = None,
    dedupe_key: str | None = None,
    rule_id: UUID | None = None,
    now: datetime | None = None,
    commit: bool = True,
) -> Notification | None:
    """
    Create an in-app notification.

    Dedupes by dedupe_key + user_id within the configured window; returns
    None when a matching notification already exists.
    """
    now = now or datetime.now(timezone.utc)
    if dedupe_key:
        window_start = now - timedelta(hours=settings.NOTIFICATION_DEDUPE_WINDOW_HOURS)
        existing = db.scalar(
            select(Notification.id).where(
                Notification.dedupe_key == dedupe_key,
                Notification.user_id == user_id,
                Notification.created_at > window_start,
            )
        )
        if existing:
            return None  # Already notified

    notification = Notification(
        user_id=user_id,
        organization_id=organization_id,
        type=type.value,
        title=title,
        body=body,
        entity_type=entity_type,
        entity_id=entity_id,
        dedupe_key=dedupe_key,
        rule_id=rule_id,
        created_at=now,
    )
    db.add(notification)
    if commit:
        db.commit()
        db.refresh(notification)
    else:
        db.flush()
    return notification


def get_notifications(
    db: Session,
    user_id: str,
    unread_only: bool = False,
    limit: int = 20,
    offset: int = 0,
) -> list[Notification]:
    """Get notifications for user, newest first."""
    stmt = select(Notification).where(Notification.user_id == user_id)
    if unread_only:
        stmt = stmt.where(Notification.read_at.is_(None))
    stmt = stmt.order_by(Notification.created_at.desc()).offset(offset).limit(limit)
    return list(db.scalars(stmt))


def mark_read(db: Session, notification_id: UUID, user_id: str) -> Notification | None:
    """Mark a notification as read (scoped to its user)."""
    notification = db.scalar(
        select(Notification).where(
            Notification.id == notification_id,
            Notification.user_id == user_id,
        )
    )
    if notification and not notification.read_at:
        notification.read_at = datetime.now(timezone.utc)
        db.commit()
        db.refresh(notification)
    return notification


# =============================================================================
# Dispatch
# =============================================================================


def _notification_type(event: IncidentEvent) -> NotificationType:
    if event.event_type == NotificationEventType.ACTION_STATUS_CHANGED:
        return NotificationType.ACTION
    if event.event_type == NotificationEventType.ANALYSIS_COMPLETED:
        return NotificationType.ANALYSIS
    if event.is_critical:
        return NotificationType.CRITICAL_INCIDENT
    return NotificationType.INCIDENT


def _entity_type(event: IncidentEvent) -> str:
    if event.action_id:
        return "action"
    if event.analysis_id:
        return "analysis"
    return "incident"


def _dedupe_key(notification_type: NotificationType, event: IncidentEvent, user_id: str) -> str:
    """Status events key on the target status so each transition is delivered."""
    parts = [notification_type.value, event.event_type.value, str(event.entity_id)]
    if event.event_type == NotificationEventType.ACTION_STATUS_CHANGED:
        parts.append(str(event.action_status))
    elif event.event_type == NotificationEventType.INCIDENT_STATUS_CHANGED:
        parts.append(str(event.status))
    parts.append(user_id)
    return ":".join(parts)


def _content(event: IncidentEvent) -> tuple[str, str]:
    label = event.reference or str(event.incident_id)
    if event.event_type == NotificationEventType.ACTION_STATUS_CHANGED:
        title = f"Actie {event.action_status}: {event.title}"
    elif event.event_type == NotificationEventType.ANALYSIS_COMPLETED:
        title = f"Analyse gereed: {label}"
    elif event.is_critical:
        title = f"KRITIEK incident: {event.title}"
    else:
        title = f"Incident {label}: {event.title}"

    lines = [f"Ernst: {event.severity}"]
    if event.category:
        lines.append(f"Categorie: {event.category}")
    if event.location:
        lines.append(f"Locatie: {event.location}")
    lines.append(settings.incident_url(event.incident_id))
    return title[:255], "\n".join(lines)


def notify_event(
    db: Session,
    event: IncidentEvent,
    now: datetime | None = None,
) -> list[DeliveryIntent]:
    """
    Route an event and store in-app notifications.

    Returns all intents (in_app included) for the external senders. A
    malformed stored rule raises RuleConfigurationError before anything is
    written.
    """
    rules = notification_rule_service.load_enabled_rules(db)
    critical_recipients = (
        notification_rule_service.list_enabled_critical_recipients(db) if event.is_critical else []
    )

    router = NotificationRouter(
        DatabaseRecipientDirectory(db),
        critical_email=settings.CRITICAL_FAST_PATH_EMAIL,
    )
    intents = collapse_intents(router.route(event, rules, critical_recipients))

    notification_type = _notification_type(event)
    title, body = _content(event)
    created = 0
    for intent in intents:
        if intent.channel != NotificationChannel.IN_APP:
            continue
        notification = create_notification(
            db,
            user_id=intent.recipient_id,
            type=notification_type,
            title=title,
            body=body,
            organization_id=event.organization_id,
            entity_type=_entity_type(event),
            entity_id=event.entity_id,
            dedupe_key=_dedupe_key(notification_type, event, intent.recipient_id),
            rule_id=intent.rule_id,
            now=now,
            commit=False,
        )
        if notification is not None:
            created += 1
    db.commit()

    logger.info(
        "Routed %s: %d intent(s), %d in-app notification(s) created",
        event.event_type.value,
        len(intents),
        created,
        extra=build_log_context(org_id=event.organization_id, entity_id=event.entity_id),
    )
    return intents
