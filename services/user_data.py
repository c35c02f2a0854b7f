"""
GDPR data export, account deletion and anonymisation.
"""

import logging
import secrets
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from core.presentation import deletion_status
from core.security.password import PasswordHasher, password_hasher as default_hasher
from infrastructure.database.models import (
    AccountDeletionRequest,
    User,
    UserSetting,
    UserTier,
    UsageRecord,
    Workspace,
    WorkspaceMember,
    utcnow,
)

logger = logging.getLogger(__name__)

DELETION_GRACE_DAYS = 7
DEFAULT_DELETION_REASON = "Admin initiated - GDPR request"


def _iso(value) -> Optional[str]:
    return value.isoformat() if value is not None else None


class UserDataService:
    def __init__(self, db: AsyncSession, hasher: Optional[PasswordHasher] = None):
        self.db = db
        self.hasher = hasher or default_hasher

    async def _memberships(self, user: User) -> list[tuple[Workspace, WorkspaceMember]]:
        result = await self.db.execute(
            select(Workspace, WorkspaceMember)
            .join(WorkspaceMember, WorkspaceMember.workspace_id == Workspace.id)
            .where(WorkspaceMember.user_id == user.id)
            .order_by(Workspace.sort_order, Workspace.name)
        )
        return list(result.all())

    async def deletion_requests(self, user: User) -> list[AccountDeletionRequest]:
        result = await self.db.execute(
            select(AccountDeletionRequest)
            .where(AccountDeletionRequest.user_id == user.id)
            .order_by(AccountDeletionRequest.created_at.desc())
        )
        return list(result.scalars().all())

    async def pending_deletion(self, user: User) -> Optional[AccountDeletionRequest]:
        result = await self.db.execute(
            select(AccountDeletionRequest)
            .where(
                AccountDeletionRequest.user_id == user.id,
                AccountDeletionRequest.completed_at.is_(None),
                AccountDeletionRequest.cancelled_at.is_(None),
            )
            .order_by(AccountDeletionRequest.created_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------

    async def export_user_data(self, user: User, exported_by: str = "Platform Administrator") -> dict:
        """Everything held about the user, for access and portability requests."""
        workspaces = [
            {
                "id": workspace.id,
                "name": workspace.name,
                "slug": workspace.slug,
                "role": membership.role,
                "is_default": membership.is_default,
                "joined_at": _iso(membership.created_at),
            }
            for workspace, membership in await self._memberships(user)
        ]

        return {
            "export_info": {
                "exported_at": utcnow().isoformat(),
                "exported_by": exported_by,
                "format": "json",
                "reason": "GDPR Article 15 - Right of access / Article 20 - Right to data portability",
            },
            "account": {
                "id": user.id,
                "name": user.name,
                "email": user.email,
                "tier": user.tier,
                "tier_expires_at": _iso(user.tier_expires_at),
                "email_verified_at": _iso(user.email_verified_at),
                "created_at": _iso(user.created_at),
                "updated_at": _iso(user.updated_at),
            },
            "workspaces": workspaces,
            "cached_stats": user.cached_stats,
            "deletion_requests": [
                {
                    "id": request.id,
                    "reason": request.reason,
                    "status": deletion_status(
                        request.expires_at, request.completed_at, request.cancelled_at
                    ),
                    "created_at": _iso(request.created_at),
                    "expires_at": _iso(request.expires_at),
                    "confirmed_at": _iso(request.confirmed_at),
                    "completed_at": _iso(request.completed_at),
                    "cancelled_at": _iso(request.cancelled_at),
                }
                for request in await self.deletion_requests(user)
            ],
        }

    @staticmethod
    def export_filename(user: User) -> str:
        return f"user-data-{user.id}-{utcnow().strftime('%Y-%m-%d-%H%M%S')}.json"

    # ------------------------------------------------------------------
    # Deletion
    # ------------------------------------------------------------------

    async def schedule_deletion(
        self,
        user: User,
        reason: Optional[str] = None,
        immediate: bool = False,
    ) -> AccountDeletionRequest:
        """
        Create a deletion request that completes after the grace period.

        With immediate=True the request is confirmed and completed at once,
        the user is detached from every workspace and hard deleted.
        """
        now = utcnow()
        await self._cancel_pending(user, now)
        request = AccountDeletionRequest(
            user_id=user.id,
            token=secrets.token_hex(32),
            reason=reason or DEFAULT_DELETION_REASON,
            expires_at=now + timedelta(days=DELETION_GRACE_DAYS),
        )
        self.db.add(request)
        await self.db.flush()

        if immediate:
            request.confirmed_at = now
            request.completed_at = now
            await self._detach_workspaces(user)
            await self.db.delete(user)
            logger.warning("User %s permanently deleted (GDPR)", user.id)
        else:
            logger.warning("Deletion scheduled for user %s (expires %s)", user.id, request.expires_at)

        await self.db.commit()
        return request

    async def cancel_pending_deletion(self, user: User) -> Optional[AccountDeletionRequest]:
        pending = await self.pending_deletion(user)
        if pending is None:
            return None
        pending.cancelled_at = utcnow()
        await self.db.commit()
        logger.info("Deletion request %s cancelled for user %s", pending.id, user.id)
        return pending

    async def process_expired_deletions(self) -> int:
        """Complete pending requests whose grace period has ended. Returns the number processed."""
        now = utcnow()
        result = await self.db.execute(
            select(AccountDeletionRequest).where(
                AccountDeletionRequest.completed_at.is_(None),
                AccountDeletionRequest.cancelled_at.is_(None),
                AccountDeletionRequest.expires_at <= now,
            )
        )
        processed = 0
        for request in result.scalars().all():
            user = await self.db.get(User, request.user_id) if request.user_id else None
            if user is not None:
                await self._detach_workspaces(user)
                await self.db.delete(user)
                logger.warning("User %s permanently deleted after grace period", request.user_id)
            request.confirmed_at = request.confirmed_at or now
            request.completed_at = now
            processed += 1

        await self.db.commit()
        return processed

    async def _detach_workspaces(self, user: User) -> None:
        await self.db.execute(delete(WorkspaceMember).where(WorkspaceMember.user_id == user.id))
        user.current_workspace_id = None

    async def _cancel_pending(self, user: User, now: datetime) -> None:
        await self.db.execute(
            update(AccountDeletionRequest)
            .where(
                AccountDeletionRequest.user_id == user.id,
                AccountDeletionRequest.completed_at.is_(None),
                AccountDeletionRequest.cancelled_at.is_(None),
            )
            .values(cancelled_at=now)
        )

    # ------------------------------------------------------------------
    # Anonymisation
    # ------------------------------------------------------------------

    async def anonymize(self, user: User) -> User:
        """Replace personal data in place; an alternative to deletion."""
        original_email = user.email
        anonymized_id = f"anon_{user.id}_{int(utcnow().timestamp())}"

        user.name = "Anonymized User"
        user.email = f"{anonymized_id}@anonymized.local"
        user.password_hash = self.hasher.hash(self.hasher.generate_random_password(64))
        user.tier = UserTier.FREE.value
        user.tier_expires_at = None
        user.email_verified_at = None
        user.cached_stats = None

        await self._detach_workspaces(user)
        await self._cancel_pending(user, utcnow())
        await self.db.commit()
        await self.db.refresh(user)

        logger.warning("User %s anonymized (was %s)", user.id, original_email)
        return user

    async def data_counts(self, user: User) -> dict:
        async def count(column, *where) -> int:
            return (await self.db.execute(select(func.count(column)).where(*where))).scalar() or 0

        return {
            "workspaces": await count(WorkspaceMember.id, WorkspaceMember.user_id == user.id),
            "deletion_requests": await count(
                AccountDeletionRequest.id, AccountDeletionRequest.user_id == user.id
            ),
            "usage_records": await count(UsageRecord.id, UsageRecord.user_id == user.id),
            "settings": await count(UserSetting.id, UserSetting.user_id == user.id),
        }
