"""Tenant access rules - one place for "who may see which record".

Rules (view and mutate are identical unless a caller adds its own rule):
- admin / super_admin: always allowed
- record with organization_id NULL: shared, allowed for everyone
- otherwise: allowed iff the actor has an ACTIVE membership in that organization

The predicates never raise. Single-record handlers call ensure_can_view /
ensure_can_mutate and map PolicyDenied to 403 or 404; listings filter with
filter_visible or scope_clause so one hidden record never fails the query.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any, TypeVar
from uuid import UUID

from sqlalchemy import or_
from sqlalchemy.sql.elements import ColumnElement

from safetyops.core.errors import PolicyDenied
from safetyops.db.enums import GlobalRole, OrganizationRole
from safetyops.schemas.actor import Actor

T = TypeVar("T")

PRIVILEGED_ROLES = frozenset({GlobalRole.ADMIN, GlobalRole.SUPER_ADMIN})

# Organization roles allowed to manage members and settings of their organization
ORGANIZATION_MANAGER_ROLES = frozenset(
    {OrganizationRole.OWNER.value, OrganizationRole.ADMIN.value}
)


def resource_organization_id(resource: Any) -> UUID | None:
    """Read organization_id from an ORM object, schema or mapping."""
    if isinstance(resource, Mapping):
        value = resource.get("organization_id")
    else:
        value = getattr(resource, "organization_id", None)
    if value is None or isinstance(value, UUID):
        return value
    return UUID(str(value))


@dataclass(frozen=True)
class AccessPolicy:
    """Visibility and mutation rules for tenant-scoped records."""

    privileged_roles: frozenset[GlobalRole] = PRIVILEGED_ROLES

    def is_admin(self, actor: Actor) -> bool:
        return actor.global_role in self.privileged_roles

    def can_view_organization(self, actor: Actor, organization_id: UUID | None) -> bool:
        if self.is_admin(actor):
            return True
        if organization_id is None:
            return True
        return organization_id in actor.active_organization_ids

    def can_view(self, actor: Actor, resource: Any) -> bool:
        """True if the actor may see this record."""
        return self.can_view_organization(actor, resource_organization_id(resource))

    def can_mutate(self, actor: Actor, resource: Any) -> bool:
        """True if the actor may change this record (same rule as viewing)."""
        return self.can_view(actor, resource)

    def ensure_can_view(self, actor: Actor, resource: Any, *, as_not_found: bool = False) -> None:
        if not self.can_view(actor, resource):
            raise PolicyDenied(
                actor.user_id,
                resource_organization_id(resource),
                action="view",
                as_not_found=as_not_found,
            )

    def ensure_can_mutate(self, actor: Actor, resource: Any, *, as_not_found: bool = False) -> None:
        if not self.can_mutate(actor, resource):
            raise PolicyDenied(
                actor.user_id,
                resource_organization_id(resource),
                action="mutate",
                as_not_found=as_not_found,
            )

    def filter_visible(self, actor: Actor, resources: Iterable[T]) -> list[T]:
        """Keep the records the actor may see, preserving order."""
        return [resource for resource in resources if self.can_view(actor, resource)]

    def scope_clause(self, actor: Actor, column: Any) -> ColumnElement[bool] | None:
        """
        SQL form of can_view for an organization_id column.

        Returns None when no restriction applies (admins).
        """
        if self.is_admin(actor):
            return None
        org_ids = sorted(actor.active_organization_ids, key=str)
        if not org_ids:
            return column.is_(None)
        return or_(column.is_(None), column.in_(org_ids))

    def has_organization_role(
        self,
        actor: Actor,
        organization_id: UUID,
        roles: Iterable[str] = (OrganizationRole.MEMBER.value,),
    ) -> bool:
        """Admins always; otherwise an active membership with one of the roles."""
        if self.is_admin(actor):
            return True
        role = actor.role_in(organization_id)
        if role is None:
            return False
        allowed = {r.value if hasattr(r, "value") else r for r in roles}
        return role in allowed

    def can_manage_organization(self, actor: Actor, organization_id: UUID) -> bool:
        """Member management and settings: admins, or organization owners/admins."""
        return self.has_organization_role(actor, organization_id, ORGANIZATION_MANAGER_ROLES)


access_policy = AccessPolicy()
