"""Tests for the workspace store: rosters and the current-workspace pointer."""

import pytest
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from taskflow_api.exceptions import (
    AlreadyMember,
    CannotRemoveOwner,
    Forbidden,
    NotAMember,
    NotFound,
    ValidationError,
    WorkspaceModified,
)
from taskflow_api.models import User, Workspace, WorkspaceRole
from taskflow_api.services import authz, stats
from taskflow_api.services import workspaces as workspace_service


@pytest.fixture
async def team(async_session: AsyncSession, make_user):
    """Alice owns "Team"; Bob is a member of it."""
    alice = await make_user("Alice")
    bob = await make_user("Bob")
    workspace = await workspace_service.create_workspace(async_session, alice, "Team")
    await workspace_service.add_member(async_session, workspace, bob, alice)
    await async_session.commit()
    return workspace, alice, bob


class TestCreateWorkspace:
    async def test_owner_gets_manager_entry(
        self, async_session: AsyncSession, make_user
    ):
        alice = await make_user("Alice")
        workspace = await workspace_service.create_workspace(
            async_session, alice, "  Team  ", description="Shared work"
        )
        await async_session.commit()

        assert workspace.name == "Team"
        assert workspace.owner_id == alice.id
        assert workspace.total_members == 1
        assert workspace.active_members == 1
        entry = authz.active_entry(workspace, alice.id)
        assert entry is not None
        assert entry.role == WorkspaceRole.MANAGER
        assert authz.role_of(workspace, alice.id) == WorkspaceRole.OWNER

    async def test_first_workspace_becomes_current(
        self, async_session: AsyncSession, make_user
    ):
        alice = await make_user("Alice")
        first = await workspace_service.create_workspace(async_session, alice, "One")
        await workspace_service.create_workspace(async_session, alice, "Two")

        assert alice.current_workspace_id == first.id

    async def test_blank_name_rejected(self, async_session: AsyncSession, make_user):
        alice = await make_user("Alice")
        with pytest.raises(ValidationError):
            await workspace_service.create_workspace(async_session, alice, "   ")


class TestUpdateWorkspace:
    async def test_manager_updates_settings(self, async_session: AsyncSession, team):
        workspace, alice, _ = team
        await workspace_service.update_workspace(
            async_session, workspace, alice, name="Renamed", allow_self_assignment=False
        )
        assert workspace.name == "Renamed"
        assert workspace.allow_self_assignment is False
        assert workspace.auto_reports is True

    async def test_member_cannot_update(self, async_session: AsyncSession, team):
        workspace, _, bob = team
        with pytest.raises(Forbidden):
            await workspace_service.update_workspace(
                async_session, workspace, bob, name="Mine now"
            )


class TestAddMember:
    async def test_member_added_and_counted(self, async_session: AsyncSession, team):
        workspace, alice, bob = team

        entry = authz.active_entry(workspace, bob.id)
        assert entry.role == WorkspaceRole.MEMBER
        assert entry.added_by_id == alice.id
        assert workspace.total_members == 2
        assert workspace.active_members == 2
        # Bob had no workspace, so the one he joined became current
        assert bob.current_workspace_id == workspace.id

    async def test_member_cannot_add(
        self, async_session: AsyncSession, make_user, team
    ):
        workspace, _, bob = team
        carol = await make_user("Carol")
        with pytest.raises(Forbidden):
            await workspace_service.add_member(async_session, workspace, carol, bob)

    async def test_outsider_cannot_see_workspace(
        self, async_session: AsyncSession, make_user, team
    ):
        workspace, alice, _ = team
        carol = await make_user("Carol")
        with pytest.raises(NotFound):
            await workspace_service.add_member(async_session, workspace, alice, carol)

    async def test_duplicate_member_rejected(self, async_session: AsyncSession, team):
        workspace, alice, bob = team
        with pytest.raises(AlreadyMember):
            await workspace_service.add_member(async_session, workspace, bob, alice)
        assert workspace.total_members == 2

    async def test_manager_added_by_manager(
        self, async_session: AsyncSession, make_user, team
    ):
        workspace, alice, _ = team
        carol = await make_user("Carol")
        await workspace_service.add_member(
            async_session, workspace, carol, alice, role=WorkspaceRole.MANAGER
        )
        assert authz.is_manager(workspace, carol.id)

    async def test_owner_role_cannot_be_granted(
        self, async_session: AsyncSession, make_user, team
    ):
        workspace, alice, _ = team
        carol = await make_user("Carol")
        with pytest.raises(ValidationError):
            await workspace_service.add_member(
                async_session, workspace, carol, alice, role=WorkspaceRole.OWNER
            )


class TestRemoveMember:
    async def test_removal_deactivates_entry(self, async_session: AsyncSession, team):
        workspace, alice, bob = team
        await workspace_service.remove_member(async_session, workspace, bob.id, alice)
        await async_session.commit()

        assert not authz.is_member(workspace, bob.id)
        assert workspace.total_members == 2
        assert workspace.active_members == 1
        assert bob.current_workspace_id is None

    async def test_readding_reactivates_same_entry(
        self, async_session: AsyncSession, team
    ):
        workspace, alice, bob = team
        previous = authz.active_entry(workspace, bob.id)
        await workspace_service.remove_member(async_session, workspace, bob.id, alice)
        entry = await workspace_service.add_member(
            async_session, workspace, bob, alice, role=WorkspaceRole.MANAGER
        )

        assert entry.id == previous.id
        assert entry.role == WorkspaceRole.MANAGER
        assert len(workspace.members) == 2
        assert workspace.active_members == 2

    async def test_owner_cannot_be_removed(self, async_session: AsyncSession, team):
        workspace, alice, _ = team
        with pytest.raises(CannotRemoveOwner):
            await workspace_service.remove_member(
                async_session, workspace, alice.id, alice
            )
        assert authz.is_member(workspace, alice.id)

    async def test_member_cannot_remove(
        self, async_session: AsyncSession, make_user, team
    ):
        workspace, alice, bob = team
        carol = await make_user("Carol")
        await workspace_service.add_member(async_session, workspace, carol, alice)
        with pytest.raises(Forbidden):
            await workspace_service.remove_member(
                async_session, workspace, carol.id, bob
            )

    async def test_unknown_member(self, async_session: AsyncSession, team):
        workspace, alice, _ = team
        with pytest.raises(NotFound):
            await workspace_service.remove_member(
                async_session, workspace, "no-such-user", alice
            )

    async def test_current_pointer_falls_back(
        self, async_session: AsyncSession, make_user, team
    ):
        workspace, alice, _ = team
        dave = await make_user("Dave")
        home = await workspace_service.create_workspace(async_session, dave, "Home")
        await workspace_service.add_member(async_session, workspace, dave, alice)
        await workspace_service.set_current_workspace(
            async_session, dave, workspace.id
        )

        await workspace_service.remove_member(
            async_session, workspace, dave.id, alice
        )
        assert dave.current_workspace_id == home.id


class TestLeaveWorkspace:
    async def test_member_leaves(self, async_session: AsyncSession, team):
        workspace, _, bob = team
        await workspace_service.leave_workspace(async_session, workspace, bob)
        assert not authz.is_member(workspace, bob.id)
        assert bob.current_workspace_id is None

    async def test_owner_cannot_leave(self, async_session: AsyncSession, team):
        workspace, alice, _ = team
        with pytest.raises(CannotRemoveOwner):
            await workspace_service.leave_workspace(async_session, workspace, alice)


class TestCurrentWorkspace:
    async def test_switch_between_memberships(
        self, async_session: AsyncSession, make_user, team
    ):
        workspace, _, bob = team
        own = await workspace_service.create_workspace(async_session, bob, "Bob's")
        assert bob.current_workspace_id == workspace.id

        await workspace_service.set_current_workspace(async_session, bob, own.id)
        current = await workspace_service.get_current_workspace(async_session, bob)
        assert current.id == own.id

    async def test_non_member_cannot_select(
        self, async_session: AsyncSession, make_user, team
    ):
        workspace, _, _ = team
        carol = await make_user("Carol")
        with pytest.raises(NotAMember):
            await workspace_service.set_current_workspace(
                async_session, carol, workspace.id
            )
        assert carol.current_workspace_id is None

    async def test_former_member_cannot_select(
        self, async_session: AsyncSession, team
    ):
        workspace, alice, bob = team
        await workspace_service.remove_member(async_session, workspace, bob.id, alice)
        with pytest.raises(NotAMember):
            await workspace_service.set_current_workspace(
                async_session, bob, workspace.id
            )

    async def test_no_current_workspace(self, async_session: AsyncSession, make_user):
        carol = await make_user("Carol")
        assert await workspace_service.get_current_workspace(async_session, carol) is None

    async def test_list_user_workspaces(
        self, async_session: AsyncSession, make_user, team
    ):
        workspace, _, bob = team
        own = await workspace_service.create_workspace(async_session, bob, "Bob's")
        await async_session.commit()

        memberships = await workspace_service.list_user_workspaces(async_session, bob)
        assert [ws.id for ws, _ in memberships] == [workspace.id, own.id]
        assert [entry.role for _, entry in memberships] == [
            WorkspaceRole.MEMBER,
            WorkspaceRole.MANAGER,
        ]


class TestConcurrentWrites:
    async def test_stale_roster_write_is_rejected(
        self, async_session: AsyncSession, make_user, team
    ):
        workspace, alice, _ = team
        carol = await make_user("Carol")

        # Another transaction touches the workspace row behind our back
        await async_session.execute(
            update(Workspace)
            .where(Workspace.id == workspace.id)
            .values(version=Workspace.version + 1)
            .execution_options(synchronize_session=False)
        )

        with pytest.raises(WorkspaceModified):
            await workspace_service.add_member(async_session, workspace, carol, alice)

    async def test_counters_survive_settings_write(
        self, async_session: AsyncSession, team
    ):
        workspace, alice, _ = team
        for _ in range(3):
            await stats.task_created(async_session, workspace.id, alice.id)

        # The in-memory copy still holds the old counter value
        assert workspace.total_tasks == 0
        await workspace_service.update_workspace(
            async_session, workspace, alice, name="Renamed"
        )
        await async_session.commit()

        await async_session.refresh(workspace)
        assert workspace.total_tasks == 3
        assert workspace.name == "Renamed"

        user = await async_session.get(User, alice.id)
        await async_session.refresh(user)
        assert user.total_tasks == 3
