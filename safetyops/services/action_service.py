"""Action service - lifecycle and ordering of incident remediation actions.

Persisted actions start APPROVED unless created otherwise. AI suggestions
stay in memory (SUGGESTED) until approve_suggestions turns them into rows.
Overdue is computed at read time; a passing deadline never changes status.
Completed and cancelled actions remain editable.
"""

import logging
import secrets
import time
from collections import Counter
from collections.abc import Iterable, Mapping
from datetime import date, datetime, timezone
from typing import Any
from uuid import UUID

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.orm import Session

from safetyops.core.access_policy import access_policy
from safetyops.core.errors import ActionNotFoundError, IncidentNotFoundError, WorkflowError
from safetyops.db.enums import (
    CLOSED_ACTION_STATUSES,
    UNRESOLVED_INCIDENT_STATUSES,
    ActionPriority,
    ActionStatus,
)
from safetyops.db.models import IncidentAction, SafetyIncident
from safetyops.schemas.action import (
    ActionCreate,
    ActionFilters,
    ActionSummary,
    ActionUpdate,
    ApprovedSuggestion,
    SuggestedAction,
)
from safetyops.schemas.actor import Actor


logger = logging.getLogger(__name__)


PRIORITY_RANK = {
    ActionPriority.URGENT.value: 0,
    ActionPriority.HIGH.value: 1,
    ActionPriority.MEDIUM.value: 2,
    ActionPriority.LOW.value: 3,
}

STATUS_RANK = {
    ActionStatus.IN_PROGRESS.value: 0,
    ActionStatus.APPROVED.value: 1,
    ActionStatus.SUGGESTED.value: 2,
    ActionStatus.COMPLETED.value: 3,
    ActionStatus.CANCELLED.value: 4,
}

# Unknown priority sorts with medium, unknown status with suggested
DEFAULT_RANK = 2


# =============================================================================
# Ordering and read-time computations
# =============================================================================


def _value(field: Any) -> Any:
    return field.value if hasattr(field, "value") else field


def action_sort_key(action: Any) -> tuple[int, int]:
    """(priority rank, status rank) for an ORM row, schema or mapping."""
    if isinstance(action, Mapping):
        priority, status = action.get("priority"), action.get("status")
    else:
        priority, status = getattr(action, "priority", None), getattr(action, "status", None)
    return (
        PRIORITY_RANK.get(_value(priority), DEFAULT_RANK),
        STATUS_RANK.get(_value(status), DEFAULT_RANK),
    )


def sort_actions(actions: Iterable[Any]) -> list[Any]:
    """Stable sort: priority first, then status."""
    return sorted(actions, key=action_sort_key)


def _today(today: date | None = None) -> date:
    return today or datetime.now(timezone.utc).date()


def is_overdue(action: IncidentAction, today: date | None = None) -> bool:
    """Deadline in the past and the action is neither completed nor cancelled."""
    if action.deadline is None:
        return False
    if _value(action.status) in CLOSED_ACTION_STATUSES:
        return False
    return action.deadline < _today(today)


def summarize_actions(actions: Iterable[IncidentAction], today: date | None = None) -> ActionSummary:
    actions = list(actions)
    today = _today(today)
    by_status = Counter(_value(action.status) for action in actions)
    return ActionSummary(
        total=len(actions),
        by_status={status.value: by_status.get(status.value, 0) for status in ActionStatus},
        overdue=sum(1 for action in actions if is_overdue(action, today)),
    )


# =============================================================================
# Transitions
# =============================================================================


def apply_status(
    action: IncidentAction,
    new_status: ActionStatus | str,
    actor_id: str,
    now: datetime | None = None,
) -> str:
    """
    Move an action to new_status and stamp the transition fields.

    - suggested -> approved: approved_by / approved_at
    - -> completed: completed_at
    - completed -> anything else: completed_at cleared (reopen)

    Returns the previous status. Does not commit.
    """
    try:
        new_status = ActionStatus(new_status)
    except ValueError as exc:
        raise WorkflowError(f"Unknown action status {new_status!r}") from exc

    now = now or datetime.now(timezone.utc)
    previous = _value(action.status)

    if new_status == ActionStatus.COMPLETED:
        if previous != ActionStatus.COMPLETED.value or action.completed_at is None:
            action.completed_at = now
    else:
        action.completed_at = None

    if new_status == ActionStatus.APPROVED and previous in (None, ActionStatus.SUGGESTED.value):
        action.approved_by = actor_id
        action.approved_at = now

    action.status = new_status.value
    return previous


def _new_reference() -> str:
    return f"ACT-{int(time.time() * 1000)}-{secrets.token_hex(3)}"


# =============================================================================
# Incident lookup
# =============================================================================


def get_incident(db: Session, incident_id: UUID) -> SafetyIncident:
    incident = db.get(SafetyIncident, incident_id)
    if incident is None:
        raise IncidentNotFoundError(f"Incident {incident_id} not found")
    return incident


# =============================================================================
# Create / approve
# =============================================================================


def create_actions(
    db: Session,
    incident_id: UUID,
    items: list[ActionCreate],
    created_by: str,
    now: datetime | None = None,
) -> list[IncidentAction]:
    """Create human-authored actions for one incident in a single transaction."""
    if not items:
        raise WorkflowError("At least one action is required")
    get_incident(db, incident_id)
    now = now or datetime.now(timezone.utc)

    actions: list[IncidentAction] = []
    for item in items:
        action = IncidentAction(
            reference=_new_reference(),
            incident_id=incident_id,
            title=item.title,
            description=item.description,
            priority=item.priority.value,
            status=ActionStatus.SUGGESTED.value,
            action_holder=item.action_holder,
            action_holder_email=item.action_holder_email,
            deadline=item.deadline,
            ai_suggested=False,
            created_by=created_by,
        )
        apply_status(action, item.status, created_by, now)
        db.add(action)
        actions.append(action)

    db.commit()
    for action in actions:
        db.refresh(action)

    logger.info("Created %d action(s) for incident %s", len(actions), incident_id)
    return actions


def suggestions_from_payload(payload: Iterable[Mapping[str, Any]]) -> list[SuggestedAction]:
    """
    Turn raw generator output into transient suggestions.

    Entries without a usable title are dropped; unknown priorities become medium.
    """
    suggestions: list[SuggestedAction] = []
    for raw in payload:
        if not isinstance(raw, Mapping):
            logger.warning("Skipping non-object action suggestion: %r", raw)
            continue
        title = str(raw.get("title") or "").strip()
        if not title:
            continue
        try:
            suggestions.append(
                SuggestedAction(
                    title=title[:255],
                    description=str(raw.get("description") or ""),
                    priority=raw.get("priority"),
                )
            )
        except ValidationError as exc:
            logger.warning("Skipping invalid action suggestion %r: %s", title, exc)
    return suggestions


def approve_suggestions(
    db: Session,
    incident_id: UUID,
    approved: list[ApprovedSuggestion],
    approved_by: str,
    analysis_id: UUID | None = None,
    now: datetime | None = None,
) -> list[IncidentAction]:
    """
    Persist approved suggestions as actions (suggested -> approved).

    Reviewer edits override the suggestion; the unedited suggestion is kept
    in original_suggestion.
    """
    if not approved:
        raise WorkflowError("No suggestions to approve")
    get_incident(db, incident_id)
    now = now or datetime.now(timezone.utc)

    actions: list[IncidentAction] = []
    for item in approved:
        suggestion = item.suggestion
        priority = item.priority or suggestion.priority
        action = IncidentAction(
            reference=_new_reference(),
            incident_id=incident_id,
            analysis_id=analysis_id,
            title=item.title or suggestion.title,
            description=item.description if item.description is not None else suggestion.description,
            priority=priority.value,
            status=ActionStatus.SUGGESTED.value,
            action_holder=item.action_holder or suggestion.action_holder,
            action_holder_email=item.action_holder_email,
            deadline=item.deadline or suggestion.deadline,
            ai_suggested=True,
            original_suggestion=suggestion.as_original(),
            created_by=approved_by,
        )
        apply_status(action, ActionStatus.APPROVED, approved_by, now)
        db.add(action)
        actions.append(action)

    db.commit()
    for action in actions:
        db.refresh(action)

    logger.info(
        "Approved %d suggested action(s) for incident %s",
        len(actions),
        incident_id,
    )
    return actions


# =============================================================================
# Read / update / delete
# =============================================================================


def get_action(db: Session, incident_id: UUID, action_id: UUID) -> IncidentAction:
    """Get an action by id, scoped to its incident."""
    action = db.scalar(
        select(IncidentAction).where(
            IncidentAction.id == action_id,
            IncidentAction.incident_id == incident_id,
        )
    )
    if action is None:
        raise ActionNotFoundError(f"Action {action_id} not found on incident {incident_id}")
    return action


def update_action(
    db: Session,
    action: IncidentAction,
    data: ActionUpdate,
    actor_id: str,
    now: datetime | None = None,
) -> tuple[IncidentAction, str | None]:
    """
    Update action fields.

    Uses exclude_unset=True so only explicitly provided fields are updated.
    None values ARE applied to clear optional fields.

    Returns (action, previous_status); previous_status is None when the
    status did not change.
    """
    update_data = data.model_dump(exclude_unset=True)
    new_status = update_data.pop("status", None)

    # Fields that can be cleared (set to None)
    clearable_fields = {"description", "action_holder", "action_holder_email", "deadline"}

    for field, value in update_data.items():
        if value is None and field not in clearable_fields:
            continue
        setattr(action, field, _value(value))

    previous_status = None
    if new_status is not None and _value(new_status) != _value(action.status):
        previous_status = apply_status(action, new_status, actor_id, now)

    db.commit()
    db.refresh(action)

    if previous_status is not None:
        logger.info(
            "Action %s status %s -> %s",
            action.reference,
            previous_status,
            action.status,
        )
    return action, previous_status


def delete_action(db: Session, action: IncidentAction) -> None:
    db.delete(action)
    db.commit()


def list_incident_actions(db: Session, incident_id: UUID) -> list[IncidentAction]:
    """Actions of one incident in workflow order."""
    actions = db.scalars(
        select(IncidentAction)
        .where(IncidentAction.incident_id == incident_id)
        .order_by(IncidentAction.created_at, IncidentAction.reference)
    ).all()
    return sort_actions(actions)


def list_actions(
    db: Session,
    actor: Actor,
    filters: ActionFilters | None = None,
    today: date | None = None,
) -> list[IncidentAction]:
    """
    Cross-incident action overview, limited to incidents the actor may see.

    Defaults to actions of unresolved incidents (open / investigating).
    """
    filters = filters or ActionFilters()
    stmt = select(IncidentAction).join(
        SafetyIncident, SafetyIncident.id == IncidentAction.incident_id
    )

    scope = access_policy.scope_clause(actor, SafetyIncident.organization_id)
    if scope is not None:
        stmt = stmt.where(scope)

    if filters.incident_status:
        stmt = stmt.where(SafetyIncident.status == filters.incident_status)
    elif not filters.include_resolved:
        stmt = stmt.where(SafetyIncident.status.in_(UNRESOLVED_INCIDENT_STATUSES))

    if filters.status:
        stmt = stmt.where(IncidentAction.status == filters.status.value)
    if filters.priority:
        stmt = stmt.where(IncidentAction.priority == filters.priority.value)
    if filters.project_id:
        stmt = stmt.where(SafetyIncident.project_id == filters.project_id)
    if filters.overdue_only:
        stmt = stmt.where(
            IncidentAction.deadline.is_not(None),
            IncidentAction.deadline < _today(today),
            IncidentAction.status.not_in(sorted(CLOSED_ACTION_STATUSES)),
        )

    actions = db.scalars(
        stmt.order_by(IncidentAction.deadline, IncidentAction.created_at)
    ).all()
    return sort_actions(actions)
