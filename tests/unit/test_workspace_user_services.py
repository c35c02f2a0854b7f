"""Unit tests for workspace membership and GDPR user data services."""

from datetime import timedelta

import pytest
from fastapi import HTTPException
from sqlalchemy import select

from infrastructure.database.models import AccountDeletionRequest, User, WorkspaceMember, utcnow
from services.entitlements import EntitlementService
from services.user_data import UserDataService
from services.workspaces import WorkspaceService

from tests.conftest import make_workspace


class TestWorkspaceService:
    async def test_list_for_user(self, db_session, test_user, workspace):
        await make_workspace(db_session, test_user, "blog", "Blog", is_default=False)

        listed = await WorkspaceService(db_session).list_for_user(test_user)

        assert [w["slug"] for w in listed] == ["blog", "main"]
        assert [w["is_default"] for w in listed] == [False, True]
        assert listed[0]["role"] == "owner"

    async def test_current_defaults_to_default_membership(self, db_session, test_user, workspace):
        await make_workspace(db_session, test_user, "blog", "Blog", is_default=False)
        assert (await WorkspaceService(db_session).current(test_user)).slug == "main"

    async def test_current_none_without_memberships(self, db_session, test_user):
        assert await WorkspaceService(db_session).current(test_user) is None

    async def test_switch(self, db_session, test_user, workspace):
        blog = await make_workspace(db_session, test_user, "blog", "Blog", is_default=False)
        service = WorkspaceService(db_session)

        switched = await service.switch(test_user, "blog")

        assert switched.id == blog.id
        assert test_user.current_workspace_id == blog.id
        assert (await service.current(test_user)).slug == "blog"

    async def test_switch_to_foreign_workspace(self, db_session, test_user, workspace, hades_workspace):
        with pytest.raises(HTTPException) as exc:
            await WorkspaceService(db_session).switch(test_user, hades_workspace.slug)
        assert exc.value.status_code == 404

    async def test_entitled_services(self, db_session, test_user, entitled_workspace):
        service = WorkspaceService(db_session)

        entitled = await service.entitled_services(entitled_workspace)
        assert [s["slug"] for s in entitled] == ["analytics"]

        everything = await service.entitled_services(entitled_workspace, include_all=True)
        assert len(everything) == 6

    async def test_add_service_provisions_access_package(self, db_session, test_user, workspace):
        service = WorkspaceService(db_session)

        feature = await service.add_service(workspace, "core.srv.social", test_user)

        assert feature.code == "core.srv.social"
        assert (await EntitlementService(db_session).can(workspace, "core.srv.social")).allowed
        packages = await EntitlementService(db_session).get_active_packages(workspace)
        assert [wp.package.code for wp in packages] == ["core-srv-social-access"]

    async def test_add_unknown_service(self, db_session, test_user, workspace):
        with pytest.raises(HTTPException) as exc:
            await WorkspaceService(db_session).add_service(workspace, "core.srv.nope", test_user)
        assert exc.value.status_code == 404

    async def test_workspace_overview(self, db_session, test_user, entitled_workspace):
        overview = await WorkspaceService(db_session).user_workspace_overview(test_user)

        assert len(overview) == 1
        entry = overview[0]
        assert entry["plan"] == "Starter"
        assert entry["status"] == "active"
        assert entry["price"] == 9
        assert entry["service_count"] == 1


class TestUserDataService:
    async def test_export(self, db_session, test_user, workspace):
        data = await UserDataService(db_session).export_user_data(test_user)

        assert data["account"]["email"] == test_user.email
        assert data["workspaces"][0]["slug"] == "main"
        assert data["deletion_requests"] == []
        assert data["export_info"]["exported_by"] == "Platform Administrator"

    def test_export_filename(self, test_user):
        assert UserDataService.export_filename(test_user).startswith(f"user-data-{test_user.id}-")

    async def test_schedule_and_cancel_deletion(self, db_session, test_user):
        service = UserDataService(db_session)
        request = await service.schedule_deletion(test_user)

        assert request.reason == "Admin initiated - GDPR request"
        assert request.completed_at is None
        assert (await service.pending_deletion(test_user)).id == request.id

        cancelled = await service.cancel_pending_deletion(test_user)
        assert cancelled.cancelled_at is not None
        assert await service.pending_deletion(test_user) is None
        assert await service.cancel_pending_deletion(test_user) is None

    async def test_immediate_deletion(self, db_session, test_user, workspace):
        user_id = test_user.id
        request = await UserDataService(db_session).schedule_deletion(test_user, "User asked", immediate=True)

        assert request.completed_at is not None
        assert (await db_session.execute(select(User).where(User.id == user_id))).scalar_one_or_none() is None
        members = await db_session.execute(select(WorkspaceMember).where(WorkspaceMember.user_id == user_id))
        assert members.scalars().all() == []

    async def test_anonymize(self, db_session, test_user, workspace):
        service = UserDataService(db_session)
        await service.schedule_deletion(test_user)

        user = await service.anonymize(test_user)

        assert user.name == "Anonymized User"
        assert user.email.endswith("@anonymized.local")
        assert user.tier == "free"
        assert user.email_verified_at is None
        assert await service.pending_deletion(user) is None
        assert (await service.data_counts(user))["workspaces"] == 0

    async def test_data_counts(self, db_session, test_user, workspace):
        await UserDataService(db_session).schedule_deletion(test_user)
        counts = await UserDataService(db_session).data_counts(test_user)
        assert counts == {"workspaces": 1, "deletion_requests": 1, "usage_records": 0, "settings": 0}

    async def test_deletion_requests_listed(self, db_session, test_user):
        await UserDataService(db_session).schedule_deletion(test_user, "first")
        result = await db_session.execute(
            select(AccountDeletionRequest).where(AccountDeletionRequest.user_id == test_user.id)
        )
        assert len(result.scalars().all()) == 1

    async def test_rescheduling_cancels_previous_request(self, db_session, test_user):
        service = UserDataService(db_session)
        first = await service.schedule_deletion(test_user, "first")
        second = await service.schedule_deletion(test_user, "second")

        requests = await service.deletion_requests(test_user)
        pending = [r for r in requests if r.is_pending]
        assert [r.id for r in pending] == [second.id]
        await db_session.refresh(first)
        assert first.cancelled_at is not None

    async def test_expired_request_deletes_user(self, db_session, test_user, workspace):
        user_id = test_user.id
        service = UserDataService(db_session)
        request = await service.schedule_deletion(test_user)
        request.expires_at = utcnow() - timedelta(minutes=1)
        await db_session.commit()

        assert await service.process_expired_deletions() == 1

        assert request.completed_at is not None
        assert (await db_session.execute(select(User).where(User.id == user_id))).scalar_one_or_none() is None
        members = await db_session.execute(select(WorkspaceMember).where(WorkspaceMember.user_id == user_id))
        assert members.scalars().all() == []
        assert await service.process_expired_deletions() == 0

    async def test_request_within_grace_period_is_kept(self, db_session, test_user):
        service = UserDataService(db_session)
        request = await service.schedule_deletion(test_user)

        assert await service.process_expired_deletions() == 0

        assert request.completed_at is None
        assert (await db_session.execute(select(User).where(User.id == test_user.id))).scalar_one() is test_user

    async def test_cancelled_request_is_not_processed(self, db_session, test_user):
        service = UserDataService(db_session)
        request = await service.schedule_deletion(test_user)
        request.expires_at = utcnow() - timedelta(minutes=1)
        await db_session.commit()
        await service.cancel_pending_deletion(test_user)

        assert await service.process_expired_deletions() == 0
