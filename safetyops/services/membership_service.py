"""Membership service - actor loading and organization/team member lookups."""

import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from safetyops.db.enums import GlobalRole, MembershipStatus, OrganizationStatus
from safetyops.db.models import Organization, OrganizationMember, ProjectMember, UserRole
from safetyops.schemas.actor import Actor, MembershipRef


logger = logging.getLogger(__name__)


def get_global_role(db: Session, user_id: str) -> GlobalRole:
    """Platform role for a user. Missing or unknown role row = USER."""
    role = db.scalar(select(UserRole.role).where(UserRole.user_id == user_id))
    if role and GlobalRole.has_value(role):
        return GlobalRole(role)
    if role:
        logger.warning("Unknown global role %r for user %s, treating as user", role, user_id)
    return GlobalRole.USER


def set_global_role(
    db: Session,
    user_id: str,
    role: GlobalRole,
    assigned_by: str | None = None,
    notes: str | None = None,
) -> UserRole:
    """Create or update the platform role of a user."""
    row = db.scalar(select(UserRole).where(UserRole.user_id == user_id))
    if row is None:
        row = UserRole(user_id=user_id)
        db.add(row)
    row.role = role.value
    row.assigned_by = assigned_by
    row.notes = notes
    db.flush()
    return row


def list_memberships(db: Session, user_id: str) -> list[MembershipRef]:
    """
    Memberships of a user in organizations that are themselves active.

    Non-active memberships are included (with their status) so callers can
    tell invited from absent; the access rules only count ACTIVE ones.
    """
    rows = db.execute(
        select(OrganizationMember.organization_id, OrganizationMember.role, OrganizationMember.status)
        .join(Organization, Organization.id == OrganizationMember.organization_id)
        .where(
            OrganizationMember.user_id == user_id,
            Organization.status == OrganizationStatus.ACTIVE.value,
        )
        .order_by(OrganizationMember.joined_at)
    ).all()

    memberships: list[MembershipRef] = []
    for organization_id, role, status in rows:
        try:
            membership_status = MembershipStatus(status)
        except ValueError:
            logger.warning(
                "Unknown membership status %r for user %s in org %s",
                status,
                user_id,
                organization_id,
            )
            continue
        memberships.append(
            MembershipRef(organization_id=organization_id, role=role, status=membership_status)
        )
    return memberships


def load_actor(db: Session, user_id: str) -> Actor:
    """Build the Actor for an authenticated user id."""
    return Actor(
        user_id=user_id,
        global_role=get_global_role(db, user_id),
        memberships=tuple(list_memberships(db, user_id)),
    )


def add_member(
    db: Session,
    organization_id: UUID,
    user_id: str,
    role: str = "member",
    invited_by: str | None = None,
    status: MembershipStatus = MembershipStatus.ACTIVE,
) -> OrganizationMember:
    """Add a user to an organization, reactivating an existing row."""
    member = db.scalar(
        select(OrganizationMember).where(
            OrganizationMember.organization_id == organization_id,
            OrganizationMember.user_id == user_id,
        )
    )
    if member is None:
        member = OrganizationMember(organization_id=organization_id, user_id=user_id)
        db.add(member)
    member.role = role
    member.status = status.value
    member.invited_by = invited_by
    db.flush()

    logger.info("Added user %s to org %s as %s (%s)", user_id, organization_id, role, status.value)
    return member


def list_active_member_ids(db: Session, organization_id: UUID) -> list[str]:
    """User ids of the active members of an organization."""
    return list(
        db.scalars(
            select(OrganizationMember.user_id)
            .where(
                OrganizationMember.organization_id == organization_id,
                OrganizationMember.status == MembershipStatus.ACTIVE.value,
            )
            .order_by(OrganizationMember.joined_at, OrganizationMember.user_id)
        )
    )


def list_project_member_ids(db: Session, project_id: UUID) -> list[str]:
    """User ids of the members of a project team."""
    return list(
        db.scalars(
            select(ProjectMember.user_id)
            .where(ProjectMember.project_id == project_id)
            .order_by(ProjectMember.joined_at, ProjectMember.user_id)
        )
    )


class DatabaseRecipientDirectory:
    """Recipient directory backed by the membership tables.

    Ids that are not UUIDs resolve to nobody; rule validation rejects them
    on write, so this only happens for rows written outside the service.
    """

    def __init__(self, db: Session):
        self.db = db

    def organization_members(self, organization_id: str) -> list[str]:
        parsed = _parse_uuid(organization_id)
        if parsed is None:
            return []
        return list_active_member_ids(self.db, parsed)

    def team_members(self, team_id: str) -> list[str]:
        parsed = _parse_uuid(team_id)
        if parsed is None:
            return []
        return list_project_member_ids(self.db, parsed)


def _parse_uuid(value: str) -> UUID | None:
    try:
        return UUID(str(value))
    except ValueError:
        logger.warning("Recipient id %r is not a valid id", value)
        return None
