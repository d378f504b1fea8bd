"""Pydantic schemas for notification rules, events and delivery intents."""

from uuid import UUID

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from safetyops.db.enums import NotificationChannel, NotificationEventType, RecipientType

FilterScalar = str | int
FilterPredicate = FilterScalar | list[FilterScalar]


# =============================================================================
# Rule configuration
# =============================================================================


class NotificationFilters(BaseModel):
    """
    Typed rule filters.

    Each field is a wildcard when unset (or an empty list). A scalar must
    equal the event value, a list must contain it. All set fields must match.
    Accepts the camelCase keys of stored legacy payloads.
    """

    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)

    severity: FilterPredicate | None = None
    category: FilterPredicate | None = None
    discipline: FilterPredicate | None = None
    status: FilterPredicate | None = None
    event_type: FilterPredicate | None = Field(
        None, validation_alias=AliasChoices("event_type", "eventType")
    )
    organization_id: FilterPredicate | None = Field(
        None, validation_alias=AliasChoices("organization_id", "organizationId")
    )
    project_id: FilterPredicate | None = Field(
        None, validation_alias=AliasChoices("project_id", "projectId")
    )

    @field_validator("*", mode="before")
    @classmethod
    def _stringify_ids(cls, value: object) -> object:
        if isinstance(value, UUID):
            return str(value)
        if isinstance(value, (list, tuple, set, frozenset)):
            return [str(v) if isinstance(v, UUID) else v for v in value]
        return value

    def predicates(self) -> dict[str, FilterPredicate]:
        """Set predicates keyed by event field name."""
        return self.model_dump(exclude_none=True)


class RuleConfig(BaseModel):
    """A notification rule as the router sees it (typed, storage-free)."""

    model_config = ConfigDict(frozen=True)

    id: UUID | None = None
    name: str
    recipient_type: RecipientType
    recipient_id: str
    channels: tuple[NotificationChannel, ...]
    filters: NotificationFilters = NotificationFilters()
    organization_id: UUID | None = None
    enabled: bool = True


class NotificationRuleCreate(BaseModel):
    """Request to create a notification rule."""
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    recipient_type: RecipientType
    recipient_id: str = Field(..., min_length=1, max_length=255)
    channels: list[NotificationChannel] = Field(..., min_length=1)
    filters: NotificationFilters = NotificationFilters()
    organization_id: UUID | None = None
    enabled: bool = True

    @field_validator("channels")
    @classmethod
    def _dedupe_channels(cls, value: list[NotificationChannel]) -> list[NotificationChannel]:
        return list(dict.fromkeys(value))


class NotificationRuleUpdate(BaseModel):
    """Request to update a notification rule (partial)."""
    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    channels: list[NotificationChannel] | None = Field(None, min_length=1)
    filters: NotificationFilters | None = None
    enabled: bool | None = None

    @field_validator("channels")
    @classmethod
    def _dedupe_channels(
        cls, value: list[NotificationChannel] | None
    ) -> list[NotificationChannel] | None:
        if value is None:
            return None
        return list(dict.fromkeys(value))


class CriticalRecipientConfig(BaseModel):
    """A critical fast-path subscriber as the router sees it."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    phone_number: str | None = None
    enabled: bool = True


# =============================================================================
# Events and intents
# =============================================================================


class IncidentEvent(BaseModel):
    """
    Incident, action or analysis event offered to the router.

    field_map() is what rule filters are evaluated against.
    """

    model_config = ConfigDict(frozen=True)

    event_type: NotificationEventType = NotificationEventType.INCIDENT_CREATED
    incident_id: UUID
    reference: str | None = None
    title: str
    severity: str
    category: str | None = None
    discipline: str | None = None
    status: str | None = None
    location: str | None = None
    organization_id: UUID | None = None
    project_id: UUID | None = None

    # Set for action/analysis events
    action_id: UUID | None = None
    action_status: str | None = None
    previous_status: str | None = None
    analysis_id: UUID | None = None

    @property
    def is_critical(self) -> bool:
        return self.severity == "critical"

    def field_map(self) -> dict[str, object]:
        """Event fields addressable by rule filters."""
        return {
            "event_type": self.event_type.value,
            "severity": self.severity,
            "category": self.category,
            "discipline": self.discipline,
            "status": self.action_status if self.action_id else self.status,
            "organization_id": self.organization_id,
            "project_id": self.project_id,
        }

    @property
    def entity_id(self) -> UUID:
        return self.action_id or self.analysis_id or self.incident_id


class DeliveryIntent(BaseModel):
    """A resolved (recipient, channel) pair for an external sender.

    rule_id is None for critical fast-path intents.
    """

    model_config = ConfigDict(frozen=True)

    recipient_id: str
    channel: NotificationChannel
    rule_id: UUID | None = None
