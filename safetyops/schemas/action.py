"""Pydantic schemas for incident remediation actions."""

from datetime import date
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from safetyops.db.enums import ActionPriority, ActionStatus
from safetyops.types import JsonObject


class ActionCreate(BaseModel):
    """Human-authored action. Persisted as APPROVED unless a status is given."""
    title: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    priority: ActionPriority = ActionPriority.MEDIUM
    status: ActionStatus = ActionStatus.APPROVED
    action_holder: str | None = Field(None, max_length=255)
    action_holder_email: str | None = Field(None, max_length=255)
    deadline: date | None = None


class ActionUpdate(BaseModel):
    """Request to update an action (partial)."""
    title: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    priority: ActionPriority | None = None
    status: ActionStatus | None = None
    action_holder: str | None = None
    action_holder_email: str | None = None
    deadline: date | None = None


class SuggestedAction(BaseModel):
    """
    AI-produced remediation candidate.

    Never persisted as-is; approve_suggestions turns it into an action.
    """

    model_config = ConfigDict(frozen=True)

    title: str = Field(..., min_length=1, max_length=255)
    description: str = ""
    priority: ActionPriority = ActionPriority.MEDIUM
    status: ActionStatus = ActionStatus.SUGGESTED
    action_holder: str | None = None
    deadline: date | None = None

    @field_validator("priority", mode="before")
    @classmethod
    def _default_unknown_priority(cls, value: object) -> object:
        if isinstance(value, str) and value.strip().lower() in ActionPriority._value2member_map_:
            return value.strip().lower()
        if isinstance(value, ActionPriority):
            return value
        return ActionPriority.MEDIUM

    def as_original(self) -> JsonObject:
        """Snapshot stored on the approved action for provenance."""
        return {
            "title": self.title,
            "description": self.description,
            "priority": self.priority.value,
        }


class ApprovedSuggestion(BaseModel):
    """A suggestion plus reviewer edits applied at approval time."""
    suggestion: SuggestedAction
    title: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    priority: ActionPriority | None = None
    action_holder: str | None = None
    action_holder_email: str | None = None
    deadline: date | None = None


class ActionSummary(BaseModel):
    """Counts by status plus overdue count for an action list."""
    total: int
    by_status: dict[str, int]
    overdue: int


class ActionFilters(BaseModel):
    """Filters for the cross-incident action overview."""
    incident_status: str | None = None
    include_resolved: bool = False
    status: ActionStatus | None = None
    priority: ActionPriority | None = None
    project_id: UUID | None = None
    overdue_only: bool = False
