"""Tests for the workspace invite token lifecycle."""

from datetime import timedelta

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from taskflow_api.config import settings
from taskflow_api.exceptions import AlreadyOwner, Forbidden, InvalidOrExpiredInvite
from taskflow_api.models import WorkspaceRole
from taskflow_api.models.base import as_utc, utc_now
from taskflow_api.services import authz, invites
from taskflow_api.services import workspaces as workspace_service


@pytest.fixture
async def team(async_session: AsyncSession, make_user):
    """Alice owns "Team"; Bob is a plain member."""
    alice = await make_user("Alice")
    bob = await make_user("Bob")
    workspace = await workspace_service.create_workspace(async_session, alice, "Team")
    await workspace_service.add_member(async_session, workspace, bob, alice)
    await async_session.commit()
    return workspace, alice, bob


class TestGenerateInvite:
    async def test_manager_generates_token(self, async_session: AsyncSession, team):
        workspace, alice, _ = team
        info = await invites.generate_invite(async_session, workspace, alice)

        assert info.is_active
        assert len(info.token) == 43
        assert info.link == f"{settings.frontend_url}/join/{info.token}"
        expected_expiry = utc_now() + timedelta(days=settings.invite_ttl_days)
        assert abs(info.expires_at - expected_expiry) < timedelta(minutes=1)

    async def test_member_cannot_generate(self, async_session: AsyncSession, team):
        workspace, _, bob = team
        with pytest.raises(Forbidden):
            await invites.generate_invite(async_session, workspace, bob)
        assert workspace.invite_token is None

    async def test_regenerating_invalidates_previous_token(
        self, async_session: AsyncSession, team
    ):
        workspace, alice, _ = team
        first = await invites.generate_invite(async_session, workspace, alice)
        second = await invites.generate_invite(async_session, workspace, alice)

        assert first.token != second.token
        with pytest.raises(InvalidOrExpiredInvite):
            await invites.validate_invite(async_session, first.token)
        found = await invites.validate_invite(async_session, second.token)
        assert found.id == workspace.id

    async def test_info_without_token(self, async_session: AsyncSession, team):
        workspace, alice, bob = team
        info = invites.invite_info(workspace, alice)
        assert not info.is_active
        assert info.token is None
        with pytest.raises(Forbidden):
            invites.invite_info(workspace, bob)


class TestValidateInvite:
    async def test_unknown_token(self, async_session: AsyncSession, team):
        with pytest.raises(InvalidOrExpiredInvite):
            await invites.validate_invite(async_session, "no-such-token")

    async def test_empty_token(self, async_session: AsyncSession, team):
        with pytest.raises(InvalidOrExpiredInvite):
            await invites.validate_invite(async_session, "")

    async def test_disabled_token(self, async_session: AsyncSession, team):
        workspace, alice, _ = team
        info = await invites.generate_invite(async_session, workspace, alice)
        await invites.disable_invite(async_session, workspace, alice)

        with pytest.raises(InvalidOrExpiredInvite):
            await invites.validate_invite(async_session, info.token)
        assert not invites.invite_info(workspace, alice).is_active

    async def test_expired_token(self, async_session: AsyncSession, team):
        workspace, alice, _ = team
        info = await invites.generate_invite(async_session, workspace, alice)
        workspace.invite_token_expiry = utc_now() - timedelta(seconds=1)
        await async_session.commit()

        with pytest.raises(InvalidOrExpiredInvite):
            await invites.validate_invite(async_session, info.token)

    async def test_token_expiry_boundary(self, async_session: AsyncSession, team):
        workspace, alice, _ = team
        await invites.generate_invite(async_session, workspace, alice)
        expiry = as_utc(workspace.invite_token_expiry)

        assert workspace.is_invite_valid(now=expiry - timedelta(seconds=1))
        assert not workspace.is_invite_valid(now=expiry)


class TestRedeemInvite:
    async def test_new_member_joins(
        self, async_session: AsyncSession, make_user, team
    ):
        workspace, alice, _ = team
        carol = await make_user("Carol")
        info = await invites.generate_invite(async_session, workspace, alice)

        joined_ws, entry, joined = await invites.redeem_invite(
            async_session, info.token, carol
        )
        await async_session.commit()

        assert joined
        assert joined_ws.id == workspace.id
        assert entry.role == WorkspaceRole.MEMBER
        assert entry.added_by_id == alice.id
        assert workspace.active_members == 3
        assert carol.current_workspace_id == workspace.id

    async def test_redeeming_twice_is_idempotent(
        self, async_session: AsyncSession, make_user, team
    ):
        workspace, alice, _ = team
        carol = await make_user("Carol")
        info = await invites.generate_invite(async_session, workspace, alice)

        _, first, _ = await invites.redeem_invite(async_session, info.token, carol)
        _, second, joined = await invites.redeem_invite(
            async_session, info.token, carol
        )

        assert not joined
        assert second.id == first.id
        assert len(workspace.members) == 3

    async def test_existing_member_keeps_role(self, async_session: AsyncSession, team):
        workspace, alice, _ = team
        info = await invites.generate_invite(async_session, workspace, alice)

        _, entry, joined = await invites.redeem_invite(async_session, info.token, alice)
        assert not joined
        assert entry.role == WorkspaceRole.MANAGER

    async def test_former_member_rejoins(self, async_session: AsyncSession, team):
        workspace, alice, bob = team
        previous = authz.active_entry(workspace, bob.id)
        await workspace_service.remove_member(async_session, workspace, bob.id, alice)
        info = await invites.generate_invite(async_session, workspace, alice)

        _, entry, joined = await invites.redeem_invite(async_session, info.token, bob)
        assert joined
        assert entry.id == previous.id
        assert entry.is_active

    async def test_owner_without_active_entry(self, async_session: AsyncSession, team):
        workspace, alice, _ = team
        info = await invites.generate_invite(async_session, workspace, alice)
        next(m for m in workspace.members if m.user_id == alice.id).is_active = False

        with pytest.raises(AlreadyOwner):
            await invites.redeem_invite(async_session, info.token, alice)

    async def test_disabled_token_cannot_be_redeemed(
        self, async_session: AsyncSession, make_user, team
    ):
        workspace, alice, _ = team
        carol = await make_user("Carol")
        info = await invites.generate_invite(async_session, workspace, alice)
        await invites.disable_invite(async_session, workspace, alice)

        with pytest.raises(InvalidOrExpiredInvite):
            await invites.redeem_invite(async_session, info.token, carol)
        assert not authz.is_member(workspace, carol.id)

    async def test_member_cannot_disable(self, async_session: AsyncSession, team):
        workspace, alice, bob = team
        await invites.generate_invite(async_session, workspace, alice)
        with pytest.raises(Forbidden):
            await invites.disable_invite(async_session, workspace, bob)
        assert workspace.invite_enabled


class TestInviteScenario:
    async def test_join_then_removed(self, async_session: AsyncSession, make_user):
        manager = await make_user("Maria")
        newcomer = await make_user("Xavier")
        workspace = await workspace_service.create_workspace(
            async_session, manager, "Squad"
        )
        assert [(m.user_id, m.role) for m in workspace.active_entries] == [
            (manager.id, WorkspaceRole.MANAGER)
        ]

        info = await invites.generate_invite(async_session, workspace, manager)
        await invites.redeem_invite(async_session, info.token, newcomer)
        await async_session.commit()

        assert [(m.user_id, m.role) for m in workspace.active_entries] == [
            (manager.id, WorkspaceRole.MANAGER),
            (newcomer.id, WorkspaceRole.MEMBER),
        ]
        assert authz.is_member(workspace, newcomer.id)

        await workspace_service.remove_member(
            async_session, workspace, newcomer.id, manager
        )
        await async_session.commit()

        assert [m.user_id for m in workspace.active_entries] == [manager.id]
        assert not authz.is_member(workspace, newcomer.id)
