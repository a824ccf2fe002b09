"""Tests for the organisation access-restriction engine."""

import uuid

import pytest
from sqlalchemy import select

from portal.core.errors import InvalidRequest, NotFound, Unauthorized
from portal.models import Case, CaseAccessRestriction, MembershipRole, OrganisationMembership, User
from portal.notifications import NotificationType
from portal.organisations import AccessRestrictionService, AccessState, BulkAction
from portal.services.repository import PortalRepository


@pytest.fixture
def service(session, dispatcher):
    return AccessRestrictionService(session, dispatcher)


async def matrix(session, organisation_id) -> set[tuple]:
    rows = (
        await session.execute(
            select(CaseAccessRestriction).where(CaseAccessRestriction.organisation_id == organisation_id)
        )
    ).scalars().all()
    return {(row.user_id, row.case_id, row.restricted) for row in rows}


class TestToggle:
    async def test_toggle_is_an_involution(self, service, seed):
        org, owner = seed.organisation.id, seed.owner
        alice, case = seed.members[0], seed.cases[0]

        assert await service.lookup(org, alice.id, case.id) is AccessState.ALLOWED
        assert await service.toggle_restriction(org, owner, alice.id, case.id) is True
        assert await service.lookup(org, alice.id, case.id) is AccessState.RESTRICTED
        assert await service.toggle_restriction(org, owner, alice.id, case.id) is False
        assert await service.lookup(org, alice.id, case.id) is AccessState.ALLOWED
        assert await service.get_restrictions(org, owner) == []

    async def test_restrictions_are_pairs(self, service, seed):
        org, owner = seed.organisation.id, seed.owner
        alice, bob = seed.members

        await service.toggle_restriction(org, owner, alice.id, seed.cases[0].id)
        await service.toggle_restriction(org, owner, bob.id, seed.cases[2].id)

        assert set(await service.get_restrictions(org, owner)) == {
            (alice.id, seed.cases[0].id),
            (bob.id, seed.cases[2].id),
        }

    async def test_lookup_default_applies_only_without_a_row(self, service, seed):
        org, alice = seed.organisation.id, seed.members[0]
        case = seed.cases[0]

        assert await service.lookup(org, alice.id, case.id, default=AccessState.RESTRICTED) is AccessState.RESTRICTED

        await service.toggle_restriction(org, seed.owner, alice.id, case.id)
        await service.toggle_restriction(org, seed.owner, alice.id, case.id)
        assert await service.lookup(org, alice.id, case.id, default=AccessState.RESTRICTED) is AccessState.ALLOWED


class TestBulk:
    async def test_bulk_member_restriction_is_a_snapshot(self, service, seed, session):
        org, owner, alice = seed.organisation.id, seed.owner, seed.members[0]

        updated = await service.bulk_member_restriction(org, owner, alice.id, BulkAction.RESTRICT_ALL)
        assert updated == 3

        new_case = Case(account_number="NW0099", debtor_name="Late Debtor", organisation_id=org)
        session.add(new_case)
        await session.commit()

        assert await service.lookup(org, alice.id, new_case.id) is AccessState.ALLOWED
        assert await service.visible_case_ids(org, alice) == [new_case.id]

    async def test_bulk_case_restriction_skips_owners_and_admins(self, service, seed, session):
        org, owner, case = seed.organisation.id, seed.owner, seed.cases[1]

        updated = await service.bulk_case_restriction(org, owner, case.id, BulkAction.RESTRICT_ALL)

        assert updated == 2
        assert {pair for pair in await service.get_restrictions(org, owner)} == {
            (seed.members[0].id, case.id),
            (seed.members[1].id, case.id),
        }

        late_joiner = User(email="late@example.com", first_name="Lee", last_name="Late")
        session.add(late_joiner)
        await session.flush()
        session.add(OrganisationMembership(organisation_id=org, user_id=late_joiner.id))
        await session.commit()

        assert await service.lookup(org, late_joiner.id, case.id) is AccessState.ALLOWED

    async def test_allow_all_clears_restrictions(self, service, seed):
        org, owner, bob = seed.organisation.id, seed.owner, seed.members[1]

        await service.bulk_member_restriction(org, owner, bob.id, BulkAction.RESTRICT_ALL)
        updated = await service.bulk_member_restriction(org, owner, bob.id, BulkAction.ALLOW_ALL)

        assert updated == 3
        assert await service.get_restrictions(org, owner) == []
        assert len(await service.visible_case_ids(org, bob)) == 3


class TestOwnerChecks:
    async def test_non_owner_bulk_case_is_refused_and_changes_nothing(self, service, seed, session):
        org, alice = seed.organisation.id, seed.members[0]
        await service.toggle_restriction(org, seed.owner, seed.members[1].id, seed.cases[0].id)
        before = await matrix(session, org)

        with pytest.raises(Unauthorized):
            await service.bulk_case_restriction(org, alice, seed.cases[0].id, BulkAction.RESTRICT_ALL)

        assert await matrix(session, org) == before

    async def test_owner_of_another_organisation_is_refused(self, service, seed):
        with pytest.raises(Unauthorized):
            await service.toggle_restriction(
                seed.organisation.id, seed.outsider, seed.members[0].id, seed.cases[0].id
            )

    async def test_unknown_organisation(self, service, seed):
        with pytest.raises(NotFound):
            await service.list_cases(uuid.uuid4(), seed.owner)

    async def test_case_from_another_organisation(self, service, seed):
        with pytest.raises(NotFound):
            await service.toggle_restriction(
                seed.organisation.id, seed.owner, seed.members[0].id, seed.foreign_case.id
            )

    @pytest.mark.parametrize("target", ["admin", "owner", "outsider"])
    async def test_unrestrictable_targets(self, service, seed, target):
        user = {"admin": seed.admin, "owner": seed.owner, "outsider": seed.outsider}[target]

        with pytest.raises(NotFound):
            await service.toggle_restriction(seed.organisation.id, seed.owner, user.id, seed.cases[0].id)

    async def test_unknown_case_in_bulk(self, service, seed):
        with pytest.raises(NotFound):
            await service.bulk_case_restriction(seed.organisation.id, seed.owner, uuid.uuid4(), BulkAction.ALLOW_ALL)


class TestReads:
    async def test_members_exclude_owners_and_admins(self, service, seed):
        members = await service.list_members(seed.organisation.id, seed.owner)
        assert [m.email for m in members] == ["alice@example.com", "bob@example.com"]

    async def test_ownerships(self, service, seed):
        assert await service.get_ownerships(seed.owner) == [seed.organisation.id]
        assert await service.get_ownerships(seed.members[0]) == []

    async def test_orphaned_rows_are_filtered(self, service, seed, session):
        org, owner = seed.organisation.id, seed.owner
        alice, bob = seed.members
        await service.toggle_restriction(org, owner, alice.id, seed.cases[0].id)
        await service.toggle_restriction(org, owner, bob.id, seed.cases[1].id)
        await service.toggle_restriction(org, owner, bob.id, seed.cases[2].id)

        membership = await PortalRepository(session).get_membership(org, alice.id)
        await session.delete(membership)
        await session.delete(await session.get(Case, seed.cases[2].id))
        await session.commit()

        assert await service.get_restrictions(org, owner) == [(bob.id, seed.cases[1].id)]

    async def test_admins_bypass_restrictions(self, service, seed):
        org = seed.organisation.id
        await service.repository.set_restriction(org, seed.admin.id, seed.cases[0].id, True)

        assert len(await service.visible_case_ids(org, seed.admin)) == 3

    async def test_owner_sees_every_case(self, service, seed):
        assert len(await service.visible_case_ids(seed.organisation.id, seed.owner)) == 3

    async def test_visible_cases_for_non_member(self, service, seed):
        with pytest.raises(NotFound):
            await service.visible_case_ids(seed.organisation.id, seed.outsider)


class TestMembershipRequests:
    async def test_member_removal_publishes_and_never_mutates(self, service, seed, dispatcher, session):
        org, owner, bob = seed.organisation.id, seed.owner, seed.members[1]

        intent = await service.request_member_removal(org, owner, bob.id, reason="Left the company")

        assert dispatcher.published == [intent]
        assert intent.type == NotificationType.MEMBER_REMOVAL_REQUEST
        assert intent.recipient == "email@acclaim.law"
        assert intent.payload["requester_email"] == "owner@example.com"
        assert intent.payload["target_email"] == "bob@example.com"
        assert intent.payload["organisation_name"] == "Northwind Lettings"
        assert intent.payload["reason"] == "Left the company"
        assert await PortalRepository(session).get_membership(org, bob.id) is not None

    async def test_cannot_request_own_removal(self, service, seed, dispatcher):
        with pytest.raises(InvalidRequest):
            await service.request_member_removal(seed.organisation.id, seed.owner, seed.owner.id)
        assert dispatcher.published == []

    async def test_delegation(self, service, seed, dispatcher, session):
        org, alice = seed.organisation.id, seed.members[0]

        intent = await service.request_owner_delegation(org, seed.owner, alice.id)

        assert intent.type == NotificationType.OWNER_DELEGATION_REQUEST
        assert intent.payload["reason"] is None
        membership = await PortalRepository(session).get_membership(org, alice.id)
        assert membership.role == MembershipRole.MEMBER

    async def test_delegation_to_existing_owner(self, service, seed):
        with pytest.raises(InvalidRequest):
            await service.request_owner_delegation(seed.organisation.id, seed.owner, seed.owner.id)

    async def test_ownership_removal_requires_an_owner_target(self, service, seed, dispatcher):
        with pytest.raises(InvalidRequest):
            await service.request_ownership_removal(seed.organisation.id, seed.owner, seed.members[0].id)

        intent = await service.request_ownership_removal(seed.organisation.id, seed.owner, seed.owner.id)
        assert intent.type == NotificationType.OWNERSHIP_REMOVAL_REQUEST

    async def test_non_owner_request_publishes_nothing(self, service, seed, dispatcher):
        with pytest.raises(Unauthorized):
            await service.request_member_removal(seed.organisation.id, seed.members[0], seed.members[1].id)
        assert dispatcher.published == []

    async def test_non_member_target(self, service, seed):
        with pytest.raises(NotFound):
            await service.request_member_removal(seed.organisation.id, seed.owner, seed.outsider.id)
