"""Tests for tenant visibility rules."""

import uuid

import pytest
from sqlalchemy import select

from safetyops.core.access_policy import access_policy
from safetyops.core.errors import PolicyDenied
from safetyops.db.enums import GlobalRole, MembershipStatus
from safetyops.db.models import SafetyIncident
from safetyops.schemas.actor import Actor, MembershipRef


ORG_A = uuid.uuid4()
ORG_B = uuid.uuid4()


def _actor(*memberships: MembershipRef, role: GlobalRole = GlobalRole.USER) -> Actor:
    return Actor(user_id="user-1", global_role=role, memberships=memberships)


@pytest.mark.parametrize("role", [GlobalRole.ADMIN, GlobalRole.SUPER_ADMIN])
@pytest.mark.parametrize("organization_id", [None, ORG_A, ORG_B])
def test_admins_see_everything(role, organization_id):
    actor = _actor(role=role)
    resource = {"organization_id": organization_id}

    assert access_policy.can_view(actor, resource)
    assert access_policy.can_mutate(actor, resource)


@pytest.mark.parametrize(
    "actor",
    [
        _actor(),
        _actor(MembershipRef(organization_id=ORG_A)),
        _actor(MembershipRef(organization_id=ORG_B, status=MembershipStatus.INVITED)),
    ],
)
def test_shared_records_are_visible_to_everyone(actor):
    assert access_policy.can_view(actor, {"organization_id": None})


def test_actor_without_memberships_cannot_see_scoped_record():
    assert not access_policy.can_view(_actor(), {"organization_id": ORG_A})


def test_member_sees_own_organization_only():
    actor = _actor(MembershipRef(organization_id=ORG_A))

    assert access_policy.can_view(actor, {"organization_id": ORG_A})
    assert not access_policy.can_view(actor, {"organization_id": ORG_B})


@pytest.mark.parametrize(
    "status", [MembershipStatus.INVITED, MembershipStatus.SUSPENDED, MembershipStatus.REMOVED]
)
def test_non_active_membership_does_not_grant_access(status):
    actor = _actor(MembershipRef(organization_id=ORG_A, status=status))

    assert not access_policy.can_view(actor, {"organization_id": ORG_A})


def test_organization_id_read_from_attribute_or_string():
    actor = _actor(MembershipRef(organization_id=ORG_A))

    class Record:
        organization_id = str(ORG_A)

    assert access_policy.can_view(actor, Record())


def test_ensure_can_view_raises_policy_denied():
    actor = _actor(MembershipRef(organization_id=ORG_A))

    with pytest.raises(PolicyDenied) as exc_info:
        access_policy.ensure_can_view(actor, {"organization_id": ORG_B}, as_not_found=True)

    assert exc_info.value.as_not_found is True
    assert exc_info.value.organization_id == ORG_B
    assert exc_info.value.action == "view"


def test_ensure_can_mutate_allows_member():
    actor = _actor(MembershipRef(organization_id=ORG_A))

    access_policy.ensure_can_mutate(actor, {"organization_id": ORG_A})


def test_filter_visible_drops_hidden_items_and_keeps_order():
    actor = _actor(MembershipRef(organization_id=ORG_A))
    items = [
        {"id": 1, "organization_id": ORG_B},
        {"id": 2, "organization_id": None},
        {"id": 3, "organization_id": ORG_A},
        {"id": 4, "organization_id": ORG_B},
    ]

    visible = access_policy.filter_visible(actor, items)

    assert [item["id"] for item in visible] == [2, 3]


def test_organization_roles():
    actor = _actor(
        MembershipRef(organization_id=ORG_A, role="owner"),
        MembershipRef(organization_id=ORG_B, role="viewer"),
    )

    assert access_policy.can_manage_organization(actor, ORG_A)
    assert not access_policy.can_manage_organization(actor, ORG_B)
    assert access_policy.has_organization_role(actor, ORG_B, roles=("viewer",))
    assert access_policy.can_manage_organization(_actor(role=GlobalRole.ADMIN), ORG_B)


def test_scope_clause_is_none_for_admins():
    assert access_policy.scope_clause(_actor(role=GlobalRole.ADMIN), SafetyIncident.organization_id) is None


def test_scope_clause_filters_listing(db, make_org, make_incident):
    org_a = make_org("A")
    org_b = make_org("B")
    in_a = make_incident(org=org_a)
    make_incident(org=org_b)
    shared = make_incident(org=None)

    member = _actor(MembershipRef(organization_id=org_a.id))
    clause = access_policy.scope_clause(member, SafetyIncident.organization_id)
    visible = set(db.scalars(select(SafetyIncident.id).where(clause)))
    assert visible == {in_a.id, shared.id}

    outsider = _actor()
    clause = access_policy.scope_clause(outsider, SafetyIncident.organization_id)
    visible = set(db.scalars(select(SafetyIncident.id).where(clause)))
    assert visible == {shared.id}
