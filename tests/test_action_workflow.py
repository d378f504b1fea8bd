"""Tests for remediation action lifecycle, ordering and listings."""

import uuid
from datetime import date, datetime, timezone

import pytest

from safetyops.core.errors import ActionNotFoundError, IncidentNotFoundError, WorkflowError
from safetyops.db.enums import ActionPriority, ActionStatus, GlobalRole
from safetyops.db.models import IncidentAction
from safetyops.schemas.action import (
    ActionCreate,
    ActionFilters,
    ActionUpdate,
    ApprovedSuggestion,
    SuggestedAction,
)
from safetyops.schemas.actor import Actor, MembershipRef
from safetyops.services import action_service


NOW = datetime(2025, 3, 1, 9, 30, tzinfo=timezone.utc)


def _action(priority: str = "medium", status: str = "approved", **kwargs) -> IncidentAction:
    return IncidentAction(title=f"{priority}/{status}", priority=priority, status=status, **kwargs)


# =============================================================================
# Ordering
# =============================================================================

def test_priority_dominates_status_in_sort():
    actions = [
        _action("low", "suggested"),
        _action("urgent", "completed"),
        _action("high", "in_progress"),
    ]

    ordered = action_service.sort_actions(actions)

    assert [a.title for a in ordered] == ["urgent/completed", "high/in_progress", "low/suggested"]


def test_status_breaks_priority_ties():
    actions = [
        _action("high", "cancelled"),
        _action("high", "completed"),
        _action("high", "suggested"),
        _action("high", "approved"),
        _action("high", "in_progress"),
    ]

    ordered = action_service.sort_actions(actions)

    assert [a.status for a in ordered] == [
        "in_progress",
        "approved",
        "suggested",
        "completed",
        "cancelled",
    ]


def test_unknown_values_sort_into_medium_and_suggested_buckets():
    unknown = {"title": "unknown", "priority": "whenever", "status": "parked"}
    medium_suggested = {"title": "medium", "priority": "medium", "status": "suggested"}

    assert action_service.action_sort_key(unknown) == (2, 2)
    assert action_service.action_sort_key(medium_suggested) == (2, 2)
    # stable: equal keys keep input order
    ordered = action_service.sort_actions([unknown, medium_suggested])
    assert [a["title"] for a in ordered] == ["unknown", "medium"]


def test_urgent_ranks_first():
    assert action_service.action_sort_key({"priority": "urgent", "status": "approved"}) == (0, 1)


# =============================================================================
# Transitions
# =============================================================================

def test_completing_sets_and_reopening_clears_completed_at():
    action = _action(status="in_progress")

    previous = action_service.apply_status(action, ActionStatus.COMPLETED, "user-1", NOW)
    assert previous == "in_progress"
    assert action.status == "completed"
    assert action.completed_at == NOW

    action_service.apply_status(action, ActionStatus.APPROVED, "user-1", NOW)
    assert action.status == "approved"
    assert action.completed_at is None


def test_approving_suggestion_stamps_approver():
    action = _action(status="suggested")

    action_service.apply_status(action, "approved", "reviewer-1", NOW)

    assert action.approved_by == "reviewer-1"
    assert action.approved_at == NOW


def test_unknown_status_is_rejected():
    with pytest.raises(WorkflowError):
        action_service.apply_status(_action(), "done", "user-1", NOW)


def test_cancelled_action_stays_editable():
    action = _action(status="cancelled")

    action_service.apply_status(action, ActionStatus.IN_PROGRESS, "user-1", NOW)

    assert action.status == "in_progress"


def test_overdue_is_computed_at_read_time():
    today = date(2025, 3, 1)

    assert action_service.is_overdue(_action(deadline=date(2025, 2, 28)), today)
    assert not action_service.is_overdue(_action(deadline=date(2025, 3, 1)), today)
    assert not action_service.is_overdue(_action(status="completed", deadline=date(2025, 1, 1)), today)
    assert not action_service.is_overdue(_action(status="cancelled", deadline=date(2025, 1, 1)), today)
    assert not action_service.is_overdue(_action(deadline=None), today)


def test_summarize_actions():
    actions = [
        _action(status="approved", deadline=date(2025, 1, 1)),
        _action(status="completed", deadline=date(2025, 1, 1)),
        _action(status="in_progress"),
    ]

    summary = action_service.summarize_actions(actions, today=date(2025, 3, 1))

    assert summary.total == 3
    assert summary.overdue == 1
    assert summary.by_status["approved"] == 1
    assert summary.by_status["cancelled"] == 0


# =============================================================================
# Suggestions
# =============================================================================

def test_suggestions_from_payload_normalises_generator_output():
    suggestions = action_service.suggestions_from_payload(
        [
            {"title": "KLIC-melding controleren", "description": "Voor start graafwerk", "priority": "HIGH"},
            {"title": "  ", "priority": "low"},
            {"title": "Toolbox meeting", "priority": "asap"},
            "not an object",
        ]
    )

    assert [s.title for s in suggestions] == ["KLIC-melding controleren", "Toolbox meeting"]
    assert suggestions[0].priority == ActionPriority.HIGH
    assert suggestions[1].priority == ActionPriority.MEDIUM
    assert all(s.status == ActionStatus.SUGGESTED for s in suggestions)


def test_approve_suggestions_persists_with_provenance(db, make_incident):
    incident = make_incident()
    suggestion = SuggestedAction(title="KLIC-melding controleren", description="Voor start", priority="high")

    actions = action_service.approve_suggestions(
        db,
        incident.id,
        [ApprovedSuggestion(suggestion=suggestion, title="KLIC-melding en tekening controleren")],
        approved_by="reviewer-1",
        now=NOW,
    )

    assert len(actions) == 1
    action = actions[0]
    assert action.status == "approved"
    assert action.ai_suggested is True
    assert action.title == "KLIC-melding en tekening controleren"
    assert action.original_suggestion == {
        "title": "KLIC-melding controleren",
        "description": "Voor start",
        "priority": "high",
    }
    assert action.approved_by == "reviewer-1"
    assert action.approved_at is not None


# =============================================================================
# Persistence
# =============================================================================

def test_create_actions_defaults_to_approved(db, make_incident):
    incident = make_incident()

    actions = action_service.create_actions(
        db,
        incident.id,
        [ActionCreate(title="Afzetting plaatsen"), ActionCreate(title="Melding netbeheerder", status="in_progress")],
        created_by="user-1",
    )

    assert [a.status for a in actions] == ["approved", "in_progress"]
    assert actions[0].approved_by == "user-1"
    assert actions[1].approved_by is None
    assert all(a.reference.startswith("ACT-") for a in actions)
    assert len({a.reference for a in actions}) == 2
    assert all(a.ai_suggested is False for a in actions)


def test_create_actions_for_unknown_incident(db):
    with pytest.raises(IncidentNotFoundError):
        action_service.create_actions(db, uuid.uuid4(), [ActionCreate(title="X")], created_by="user-1")


def test_update_action_returns_previous_status(db, make_incident):
    incident = make_incident()
    action = action_service.create_actions(
        db, incident.id, [ActionCreate(title="Afzetting plaatsen", deadline=date(2025, 4, 1))], "user-1"
    )[0]

    action, previous = action_service.update_action(
        db, action, ActionUpdate(status="completed"), actor_id="user-2"
    )
    assert previous == "approved"
    assert action.completed_at is not None

    action, previous = action_service.update_action(
        db, action, ActionUpdate(status="approved", deadline=None), actor_id="user-2"
    )
    assert previous == "completed"
    assert action.completed_at is None
    assert action.deadline is None

    action, previous = action_service.update_action(
        db, action, ActionUpdate(title="Afzetting controleren"), actor_id="user-2"
    )
    assert previous is None
    assert action.title == "Afzetting controleren"


def test_get_action_is_scoped_to_incident(db, make_incident):
    incident = make_incident()
    other = make_incident()
    action = action_service.create_actions(db, incident.id, [ActionCreate(title="X")], "user-1")[0]

    assert action_service.get_action(db, incident.id, action.id).id == action.id
    with pytest.raises(ActionNotFoundError):
        action_service.get_action(db, other.id, action.id)


def test_delete_action(db, make_incident):
    incident = make_incident()
    action = action_service.create_actions(db, incident.id, [ActionCreate(title="X")], "user-1")[0]

    action_service.delete_action(db, action)

    assert action_service.list_incident_actions(db, incident.id) == []


def test_list_incident_actions_in_workflow_order(db, make_incident):
    incident = make_incident()
    action_service.create_actions(
        db,
        incident.id,
        [
            ActionCreate(title="low", priority="low"),
            ActionCreate(title="urgent-done", priority="urgent", status="completed"),
            ActionCreate(title="high", priority="high", status="in_progress"),
        ],
        "user-1",
    )

    titles = [a.title for a in action_service.list_incident_actions(db, incident.id)]

    assert titles == ["urgent-done", "high", "low"]


def test_list_actions_respects_visibility_and_incident_status(db, make_org, make_incident):
    org_a = make_org("A")
    org_b = make_org("B")
    own = make_incident(org=org_a)
    foreign = make_incident(org=org_b)
    shared = make_incident(org=None)
    resolved = make_incident(org=org_a, status="resolved")
    for incident in (own, foreign, shared, resolved):
        action_service.create_actions(db, incident.id, [ActionCreate(title=incident.reference)], "user-1")

    member = Actor(user_id="user-1", memberships=(MembershipRef(organization_id=org_a.id),))
    titles = {a.title for a in action_service.list_actions(db, member)}
    assert titles == {own.reference, shared.reference}

    titles = {
        a.title
        for a in action_service.list_actions(db, member, ActionFilters(include_resolved=True))
    }
    assert titles == {own.reference, shared.reference, resolved.reference}

    admin = Actor(user_id="admin-1", global_role=GlobalRole.ADMIN)
    titles = {a.title for a in action_service.list_actions(db, admin)}
    assert titles == {own.reference, foreign.reference, shared.reference}


def test_list_actions_overdue_only(db, make_incident):
    incident = make_incident()
    action_service.create_actions(
        db,
        incident.id,
        [
            ActionCreate(title="late", deadline=date(2025, 1, 1)),
            ActionCreate(title="late-but-done", deadline=date(2025, 1, 1), status="completed"),
            ActionCreate(title="on-time", deadline=date(2025, 6, 1)),
        ],
        "user-1",
    )
    admin = Actor(user_id="admin-1", global_role=GlobalRole.ADMIN)

    overdue = action_service.list_actions(
        db, admin, ActionFilters(overdue_only=True), today=date(2025, 3, 1)
    )

    assert [a.title for a in overdue] == ["late"]
