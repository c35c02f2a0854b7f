"""
IP blocklist ("bouncer").

Manual blocks are approved immediately; honeypot-sourced entries start as
pending and wait for review. Approved, unexpired entries are cached as a
map of ip -> reason for cheap per-request lookups.
"""

import logging
from datetime import timedelta
from typing import Optional

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from infrastructure.database.models import BlockedIp, BlockStatus, HitSeverity, HoneypotHit, utcnow
from services.cache import HubCache, cache as default_cache

logger = logging.getLogger(__name__)

CACHE_KEY = "bouncer:blocklist"
CACHE_TTL = 300
BLOCK_DAYS = 30
PENDING_DAYS = 7
DEFAULT_PER_PAGE = 50


class BlocklistService:
    def __init__(self, db: AsyncSession, cache: Optional[HubCache] = None):
        self.db = db
        self.cache = cache or default_cache

    def _active_clause(self):
        now = utcnow()
        return (
            BlockedIp.status == BlockStatus.APPROVED.value,
            or_(BlockedIp.expires_at.is_(None), BlockedIp.expires_at > now),
        )

    async def get_blocklist(self) -> dict[str, str]:
        async def compute() -> dict[str, str]:
            result = await self.db.execute(
                select(BlockedIp.ip_address, BlockedIp.reason).where(*self._active_clause())
            )
            return {ip: reason or "" for ip, reason in result.all()}

        return await self.cache.remember(CACHE_KEY, CACHE_TTL, compute)

    async def is_blocked(self, ip: str) -> bool:
        return ip in await self.get_blocklist()

    async def clear_cache(self) -> None:
        await self.cache.delete(CACHE_KEY)

    async def block(
        self,
        ip: str,
        reason: str = "manual",
        status: str = BlockStatus.APPROVED.value,
    ) -> BlockedIp:
        """Insert or update the entry for ip with a fresh 30-day expiry."""
        now = utcnow()
        result = await self.db.execute(select(BlockedIp).where(BlockedIp.ip_address == ip))
        entry = result.scalar_one_or_none()
        if entry is None:
            entry = BlockedIp(ip_address=ip)
            self.db.add(entry)

        entry.reason = reason
        entry.status = status
        entry.blocked_at = now
        entry.expires_at = now + timedelta(days=BLOCK_DAYS)
        await self.db.commit()
        await self.clear_cache()

        logger.info("IP %s added to blocklist (%s, %s)", ip, reason, status)
        return entry

    async def unblock(self, ip: str) -> bool:
        result = await self.db.execute(delete(BlockedIp).where(BlockedIp.ip_address == ip))
        await self.db.commit()
        await self.clear_cache()
        return (result.rowcount or 0) > 0

    async def _review(self, ip: str, status: str) -> bool:
        result = await self.db.execute(
            update(BlockedIp)
            .where(BlockedIp.ip_address == ip, BlockedIp.status == BlockStatus.PENDING.value)
            .values(status=status)
        )
        await self.db.commit()
        return (result.rowcount or 0) > 0

    async def approve(self, ip: str) -> bool:
        approved = await self._review(ip, BlockStatus.APPROVED.value)
        if approved:
            await self.clear_cache()
        return approved

    async def reject(self, ip: str) -> bool:
        return await self._review(ip, BlockStatus.REJECTED.value)

    async def get_pending(self) -> list[BlockedIp]:
        result = await self.db.execute(
            select(BlockedIp)
            .where(BlockedIp.status == BlockStatus.PENDING.value)
            .order_by(BlockedIp.blocked_at.desc())
        )
        return list(result.scalars().all())

    async def list_entries(
        self, page: int = 1, per_page: int = DEFAULT_PER_PAGE, status: Optional[str] = None
    ) -> tuple[list[BlockedIp], int]:
        query = select(BlockedIp)
        count_query = select(func.count(BlockedIp.id))
        if status is not None:
            query = query.where(BlockedIp.status == status)
            count_query = count_query.where(BlockedIp.status == status)
        total = (await self.db.execute(count_query)).scalar() or 0
        result = await self.db.execute(
            query.order_by(BlockedIp.blocked_at.desc()).offset((page - 1) * per_page).limit(per_page)
        )
        return list(result.scalars().all()), total

    async def sync_from_honeypot(self) -> int:
        """Add IPs with critical hits in the last 24 hours as pending entries."""
        now = utcnow()
        result = await self.db.execute(
            select(HoneypotHit.ip_address)
            .where(
                HoneypotHit.severity == HitSeverity.CRITICAL.value,
                HoneypotHit.created_at >= now - timedelta(days=1),
            )
            .distinct()
        )
        critical_ips = [row[0] for row in result.all()]
        if not critical_ips:
            return 0

        existing = await self.db.execute(
            select(BlockedIp.ip_address).where(BlockedIp.ip_address.in_(critical_ips))
        )
        known = {row[0] for row in existing.all()}

        count = 0
        for ip in critical_ips:
            if ip in known:
                continue
            self.db.add(
                BlockedIp(
                    ip_address=ip,
                    reason="honeypot_critical",
                    status=BlockStatus.PENDING.value,
                    blocked_at=now,
                    expires_at=now + timedelta(days=PENDING_DAYS),
                )
            )
            count += 1

        if count:
            await self.db.commit()
            logger.info("Blocklist sync added %d pending entries from honeypot", count)
        return count

    async def stats(self) -> dict:
        total = (await self.db.execute(select(func.count(BlockedIp.id)))).scalar() or 0
        active = (
            await self.db.execute(select(func.count(BlockedIp.id)).where(*self._active_clause()))
        ).scalar() or 0
        pending = (
            await self.db.execute(
                select(func.count(BlockedIp.id)).where(BlockedIp.status == BlockStatus.PENDING.value)
            )
        ).scalar() or 0
        by_reason = await self.db.execute(
            select(BlockedIp.reason, func.count(BlockedIp.id)).group_by(BlockedIp.reason)
        )
        by_status = await self.db.execute(
            select(BlockedIp.status, func.count(BlockedIp.id)).group_by(BlockedIp.status)
        )
        return {
            "total_blocked": total,
            "active_blocked": active,
            "pending_review": pending,
            "by_reason": {reason or "unknown": count for reason, count in by_reason.all()},
            "by_status": dict(by_status.all()),
        }
