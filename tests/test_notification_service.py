"""Tests for event dispatch and in-app notifications."""

from datetime import datetime, timedelta, timezone

import pytest

from safetyops.core.errors import RuleConfigurationError
from safetyops.db.enums import MembershipStatus, NotificationEventType, NotificationType
from safetyops.db.models import IncidentAnalysis, Notification, NotificationRule
from safetyops.schemas.action import ActionCreate, ActionUpdate
from safetyops.services import action_service, notification_rule_service, notification_service


NOW = datetime(2025, 3, 1, 9, 0, tzinfo=timezone.utc)


def _notifications(db) -> list[Notification]:
    return db.query(Notification).order_by(Notification.user_id).all()


def test_critical_incident_reaches_critical_recipients_without_rules(db, make_incident):
    notification_rule_service.add_critical_recipient(db, "vgm-1", phone_number="+31612345678")
    incident = make_incident(severity="critical")

    intents = notification_service.notify_event(
        db, notification_service.event_from_incident(incident), now=NOW
    )

    assert {(i.recipient_id, i.channel.value) for i in intents} == {
        ("vgm-1", "in_app"),
        ("vgm-1", "whatsapp"),
    }
    rows = _notifications(db)
    assert len(rows) == 1
    assert rows[0].type == "critical_incident"
    assert rows[0].entity_id == incident.id
    assert rows[0].rule_id is None
    assert incident.title in rows[0].title


def test_organization_rule_notifies_active_members_only(db, make_org, add_member, make_incident):
    org = make_org()
    add_member(org, "member-1")
    add_member(org, "member-2")
    add_member(org, "invited-1", status=MembershipStatus.INVITED)
    rule = notification_rule_service.create_rule(
        db,
        {
            "name": "Alle incidenten",
            "recipient_type": "organization",
            "recipient_id": str(org.id),
            "channels": ["in_app", "email"],
            "organization_id": str(org.id),
        },
        created_by="admin-1",
    )
    incident = make_incident(org=org, severity="medium")

    intents = notification_service.notify_event(
        db, notification_service.event_from_incident(incident), now=NOW
    )

    assert sorted({i.recipient_id for i in intents}) == ["member-1", "member-2"]
    assert len(intents) == 4
    rows = _notifications(db)
    assert [r.user_id for r in rows] == ["member-1", "member-2"]
    assert all(r.rule_id == rule.id for r in rows)
    assert all(r.organization_id == org.id for r in rows)


def test_team_rule_notifies_project_members(db, make_org, make_project, make_incident):
    org = make_org()
    project = make_project(org, members=("uitvoerder-1", "pm-1"))
    notification_rule_service.create_rule(
        db,
        {
            "name": "Projectteam",
            "recipient_type": "team",
            "recipient_id": str(project.id),
            "channels": ["in_app"],
            "filters": {"projectId": str(project.id)},
        },
        created_by="admin-1",
    )

    intents = notification_service.notify_event(
        db,
        notification_service.event_from_incident(make_incident(org=org, project=project)),
        now=NOW,
    )
    assert sorted(i.recipient_id for i in intents) == ["pm-1", "uitvoerder-1"]

    other = make_incident(org=org)
    assert notification_service.notify_event(db, notification_service.event_from_incident(other), now=NOW) == []


def test_in_app_notifications_are_deduped_within_window(db, make_incident):
    notification_rule_service.create_rule(
        db,
        {"name": "Mij", "recipient_type": "user", "recipient_id": "user-1", "channels": ["in_app"]},
        created_by="admin-1",
    )
    incident = make_incident()
    event = notification_service.event_from_incident(incident)

    first = notification_service.notify_event(db, event, now=NOW)
    second = notification_service.notify_event(db, event, now=NOW + timedelta(minutes=10))
    assert len(first) == len(second) == 1
    assert len(_notifications(db)) == 1

    notification_service.notify_event(db, event, now=NOW + timedelta(hours=2))
    assert len(_notifications(db)) == 2


def test_action_event_filters_on_action_status(db, make_incident):
    notification_rule_service.create_rule(
        db,
        {
            "name": "Afgeronde acties",
            "recipient_type": "user",
            "recipient_id": "veiligheidskundige-1",
            "channels": ["in_app"],
            "filters": {"event_type": "action_status_changed", "status": "completed"},
        },
        created_by="admin-1",
    )
    incident = make_incident()
    action = action_service.create_actions(db, incident.id, [ActionCreate(title="Afzetting")], "user-1")[0]
    action, previous = action_service.update_action(
        db, action, ActionUpdate(status="completed"), actor_id="user-1"
    )

    event = notification_service.event_from_action(incident, action, previous)
    assert event.event_type == NotificationEventType.ACTION_STATUS_CHANGED
    assert event.previous_status == "approved"

    intents = notification_service.notify_event(db, event, now=NOW)

    assert [i.recipient_id for i in intents] == ["veiligheidskundige-1"]
    rows = _notifications(db)
    assert rows[0].type == "action"
    assert rows[0].entity_type == "action"
    assert rows[0].entity_id == action.id


def test_each_action_status_change_gets_its_own_notification(db, make_incident):
    notification_rule_service.create_rule(
        db,
        {"name": "Mij", "recipient_type": "user", "recipient_id": "user-1", "channels": ["in_app"]},
        created_by="admin-1",
    )
    incident = make_incident()
    action = action_service.create_actions(db, incident.id, [ActionCreate(title="Afzetting")], "user-1")[0]

    action, previous = action_service.update_action(
        db, action, ActionUpdate(status="in_progress"), actor_id="user-1"
    )
    notification_service.notify_event(
        db, notification_service.event_from_action(incident, action, previous), now=NOW
    )
    action, previous = action_service.update_action(
        db, action, ActionUpdate(status="completed"), actor_id="user-1"
    )
    completed = notification_service.event_from_action(incident, action, previous)
    notification_service.notify_event(db, completed, now=NOW + timedelta(minutes=10))
    notification_service.notify_event(db, completed, now=NOW + timedelta(minutes=20))

    titles = sorted(r.title for r in _notifications(db))
    assert titles == ["Actie completed: Afzetting", "Actie in_progress: Afzetting"]


def test_incident_status_change_is_not_deduped_against_creation(db, make_incident):
    notification_rule_service.create_rule(
        db,
        {"name": "Mij", "recipient_type": "user", "recipient_id": "user-1", "channels": ["in_app"]},
        created_by="admin-1",
    )
    incident = make_incident()
    notification_service.notify_event(db, notification_service.event_from_incident(incident), now=NOW)

    incident.status = "investigating"
    db.commit()
    notification_service.notify_event(
        db,
        notification_service.event_from_incident(incident, NotificationEventType.INCIDENT_STATUS_CHANGED),
        now=NOW + timedelta(minutes=10),
    )

    assert len(_notifications(db)) == 2


def test_analysis_event(db, make_incident):
    notification_rule_service.create_rule(
        db,
        {
            "name": "Analyses",
            "recipient_type": "user",
            "recipient_id": "user-1",
            "channels": ["in_app"],
            "filters": {"event_type": ["analysis_completed"]},
        },
        created_by="admin-1",
    )
    incident = make_incident()
    analysis = IncidentAnalysis(incident_id=incident.id, summary="Onvoldoende KLIC-controle", created_by="ai")
    db.add(analysis)
    db.commit()

    intents = notification_service.notify_event(
        db, notification_service.event_from_analysis(incident, analysis), now=NOW
    )

    assert len(intents) == 1
    row = _notifications(db)[0]
    assert row.type == "analysis"
    assert row.entity_type == "analysis"
    assert row.entity_id == analysis.id


def test_malformed_rule_fails_dispatch_before_writing(db, make_incident):
    db.add(
        NotificationRule(
            name="Kapot",
            recipient_type="user",
            recipient_id="user-1",
            channels=["in_app"],
            filters={"colour": "red"},
            created_by="sql",
        )
    )
    db.commit()

    with pytest.raises(RuleConfigurationError):
        notification_service.notify_event(
            db, notification_service.event_from_incident(make_incident()), now=NOW
        )

    assert _notifications(db) == []


def test_get_notifications_and_mark_read(db):
    created = notification_service.create_notification(
        db,
        user_id="user-1",
        type=NotificationType.INCIDENT,
        title="Incident VM-1",
        now=NOW,
    )

    assert [n.id for n in notification_service.get_notifications(db, "user-1", unread_only=True)] == [created.id]

    notification_service.mark_read(db, created.id, "user-1")

    assert notification_service.get_notifications(db, "user-1", unread_only=True) == []
    assert notification_service.mark_read(db, created.id, "someone-else") is None
