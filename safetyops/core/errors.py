"""Error taxonomy shared by the access, certificate, action and notification rules.

- PolicyDenied: an actor may not see or change a record. Callers pick 403 or 404.
- ReferenceIntegrityError: a reference points at a record that does not exist.
- ConfigurationError: stored configuration is malformed. Rejected on write.

Empty results (no matching rules, nothing to reconcile) are not errors.
"""

from uuid import UUID


class SafetyOpsError(Exception):
    """Base exception for domain rule errors."""

    pass


class PolicyDenied(SafetyOpsError):
    """Actor is not allowed to view or mutate a tenant-scoped record."""

    def __init__(
        self,
        actor_id: str,
        organization_id: UUID | None,
        action: str = "view",
        as_not_found: bool = False,
    ):
        self.actor_id = actor_id
        self.organization_id = organization_id
        self.action = action
        self.as_not_found = as_not_found
        super().__init__(
            f"Actor {actor_id} may not {action} records of organization {organization_id}"
        )


# =============================================================================
# Integrity
# =============================================================================


class ReferenceIntegrityError(SafetyOpsError):
    """A record references another record that does not exist."""

    pass


class CertificateNotFoundError(ReferenceIntegrityError):
    """Certificate definition not found."""

    pass


class GrantNotFoundError(ReferenceIntegrityError):
    """Certificate grant not found."""

    pass


class IncidentNotFoundError(ReferenceIntegrityError):
    """Safety incident not found."""

    pass


class ActionNotFoundError(ReferenceIntegrityError):
    """Incident action not found (or belongs to another incident)."""

    pass


class RuleNotFoundError(ReferenceIntegrityError):
    """Notification rule not found."""

    pass


class RecipientNotFoundError(ReferenceIntegrityError):
    """Rule recipient (project, organization or critical recipient) not found."""

    pass


# =============================================================================
# Configuration
# =============================================================================


class ConfigurationError(SafetyOpsError):
    """Stored or submitted configuration is malformed."""

    pass


class RuleConfigurationError(ConfigurationError):
    """Notification rule has malformed filters, channels or recipient."""

    def __init__(self, message: str, rule_id: UUID | None = None):
        self.rule_id = rule_id
        if rule_id is not None:
            message = f"Notification rule {rule_id}: {message}"
        super().__init__(message)


class CriticalRecipientError(ConfigurationError, ValueError):
    """Critical incident recipient has an unusable phone number."""

    pass


class CertificateDefinitionError(ConfigurationError):
    """Certificate definition violates the expires/validity_years invariant."""

    pass


# =============================================================================
# Write-path validation
# =============================================================================


class WorkflowError(SafetyOpsError, ValueError):
    """Invalid incident action payload or transition."""

    pass


class GrantStatusError(SafetyOpsError, ValueError):
    """Illegal certificate grant status change."""

    pass
