"""Acting identity as seen by the access rules."""

from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from safetyops.db.enums import GlobalRole, MembershipStatus, OrganizationRole


class MembershipRef(BaseModel):
    """One organization membership of an actor."""

    model_config = ConfigDict(frozen=True)

    organization_id: UUID
    role: OrganizationRole | str = OrganizationRole.MEMBER
    status: MembershipStatus = MembershipStatus.ACTIVE


class Actor(BaseModel):
    """
    The user an operation runs on behalf of.

    Supplied by the identity/membership provider (see membership_service.load_actor).
    """

    model_config = ConfigDict(frozen=True)

    user_id: str = Field(..., min_length=1)
    global_role: GlobalRole = GlobalRole.USER
    memberships: tuple[MembershipRef, ...] = ()

    @property
    def active_organization_ids(self) -> frozenset[UUID]:
        """Organizations the actor belongs to with an active membership."""
        return frozenset(
            m.organization_id for m in self.memberships if m.status == MembershipStatus.ACTIVE
        )

    def role_in(self, organization_id: UUID) -> str | None:
        """Active organization role value, or None when not an active member."""
        for membership in self.memberships:
            if (
                membership.organization_id == organization_id
                and membership.status == MembershipStatus.ACTIVE
            ):
                role = membership.role
                return role.value if hasattr(role, "value") else role
        return None
