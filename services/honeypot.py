"""
Honeypot monitor.

Trap paths are disallowed in robots.txt, so any request to them comes from
a crawler ignoring it or from active probing. Hits are recorded with a
detected bot name and a severity; critical hits feed the blocklist.
"""

import logging
from datetime import timedelta
from math import ceil
from typing import Optional

from sqlalchemy import delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from api.utils import escape_like
from infrastructure.config.settings import settings
from infrastructure.database.models import BlockedIp, BlockStatus, HitSeverity, HoneypotHit, utcnow
from services.blocklist import BlocklistService

logger = logging.getLogger(__name__)

PER_PAGE = 50
SORTABLE_COLUMNS = ("created_at", "ip_address")

# Checked in order; the first keyword found in the user agent wins
BOT_SIGNATURES = [
    ("googlebot", "Googlebot"),
    ("bingbot", "Bingbot"),
    ("yandexbot", "YandexBot"),
    ("duckduckbot", "DuckDuckBot"),
    ("baiduspider", "Baiduspider"),
    ("ahrefsbot", "AhrefsBot"),
    ("semrushbot", "SemrushBot"),
    ("mj12bot", "MJ12bot"),
    ("dotbot", "DotBot"),
    ("petalbot", "PetalBot"),
    ("bytespider", "Bytespider"),
    ("gptbot", "GPTBot"),
    ("chatgpt-user", "ChatGPT-User"),
    ("claudebot", "ClaudeBot"),
    ("claude-web", "Claude-Web"),
    ("anthropic-ai", "Anthropic"),
    ("ccbot", "CCBot"),
    ("perplexitybot", "PerplexityBot"),
    ("facebookexternalhit", "Facebook"),
    ("twitterbot", "Twitterbot"),
    ("linkedinbot", "LinkedInBot"),
    ("applebot", "Applebot"),
    ("curl", "curl"),
    ("wget", "Wget"),
    ("python-requests", "python-requests"),
    ("python-urllib", "Python urllib"),
    ("go-http-client", "Go HTTP Client"),
    ("scrapy", "Scrapy"),
    ("headlesschrome", "Headless Chrome"),
    ("nikto", "Nikto"),
    ("sqlmap", "sqlmap"),
    ("zgrab", "ZGrab"),
]

GENERIC_BOT_KEYWORDS = ("bot", "crawler", "spider", "scraper")


def detect_bot(user_agent: Optional[str]) -> tuple[bool, Optional[str]]:
    """Return (is_bot, bot_name) for a user agent string."""
    if not user_agent:
        return True, None
    ua = user_agent.lower()
    for keyword, name in BOT_SIGNATURES:
        if keyword in ua:
            return True, name
    if any(keyword in ua for keyword in GENERIC_BOT_KEYWORDS):
        return True, None
    return False, None


def classify_severity(path: str, critical_paths: Optional[list[str]] = None) -> str:
    """Critical when the path equals or sits under a configured critical prefix."""
    critical_paths = critical_paths if critical_paths is not None else settings.honeypot_critical_paths_list
    normalized = path.split("?", 1)[0].strip("/").lower()
    for prefix in critical_paths:
        prefix = prefix.strip("/").lower()
        if normalized == prefix or normalized.startswith(prefix + "/"):
            return HitSeverity.CRITICAL.value
    return HitSeverity.WARNING.value


class HoneypotService:
    def __init__(self, db: AsyncSession, blocklist: Optional[BlocklistService] = None):
        self.db = db
        self.blocklist = blocklist or BlocklistService(db)

    async def _recent_hit_count(self, ip: str) -> int:
        since = utcnow() - timedelta(seconds=settings.honeypot_rate_limit_window)
        result = await self.db.execute(
            select(func.count(HoneypotHit.id)).where(
                HoneypotHit.ip_address == ip, HoneypotHit.created_at >= since
            )
        )
        return result.scalar() or 0

    async def record_hit(
        self,
        ip: str,
        path: str,
        user_agent: Optional[str] = None,
        country: Optional[str] = None,
    ) -> Optional[HoneypotHit]:
        """
        Log a trap hit.

        Returns None when the IP has exceeded the per-window logging limit.
        """
        if await self._recent_hit_count(ip) >= settings.honeypot_rate_limit_max:
            logger.debug("Honeypot logging rate limit reached for %s", ip)
            return None

        is_bot, bot_name = detect_bot(user_agent)
        severity = classify_severity(path)
        hit = HoneypotHit(
            ip_address=ip,
            path=path[:500],
            user_agent=user_agent,
            bot_name=bot_name,
            is_bot=is_bot,
            severity=severity,
            country=country,
        )
        self.db.add(hit)
        await self.db.commit()

        logger.warning("Honeypot hit from %s on %s (%s, bot=%s)", ip, path, severity, bot_name)

        if severity == HitSeverity.CRITICAL.value:
            if settings.honeypot_auto_block_critical:
                await self.blocklist.block(ip, "honeypot_critical", BlockStatus.APPROVED.value)
            elif not await self._has_blocklist_entry(ip):
                await self.blocklist.block(ip, "honeypot_critical", BlockStatus.PENDING.value)
        return hit

    async def _has_blocklist_entry(self, ip: str) -> bool:
        result = await self.db.execute(select(BlockedIp.id).where(BlockedIp.ip_address == ip))
        return result.first() is not None

    async def stats(self) -> dict:
        now = utcnow()
        start_of_day = now.replace(hour=0, minute=0, second=0, microsecond=0)
        start_of_week = start_of_day - timedelta(days=start_of_day.weekday())

        async def count(*where) -> int:
            return (await self.db.execute(select(func.count(HoneypotHit.id)).where(*where))).scalar() or 0

        unique_ips = (
            await self.db.execute(select(func.count(func.distinct(HoneypotHit.ip_address))))
        ).scalar() or 0

        hits = func.count(HoneypotHit.id).label("hits")
        top_ips = await self.db.execute(
            select(HoneypotHit.ip_address, hits)
            .group_by(HoneypotHit.ip_address)
            .order_by(hits.desc())
            .limit(10)
        )
        top_bots = await self.db.execute(
            select(HoneypotHit.bot_name, hits)
            .where(HoneypotHit.bot_name.is_not(None))
            .group_by(HoneypotHit.bot_name)
            .order_by(hits.desc())
            .limit(10)
        )

        return {
            "total": await count(),
            "today": await count(HoneypotHit.created_at >= start_of_day),
            "this_week": await count(HoneypotHit.created_at >= start_of_week),
            "unique_ips": unique_ips,
            "bots": await count(HoneypotHit.is_bot.is_(True)),
            "top_ips": [{"ip_address": ip, "hits": n} for ip, n in top_ips.all()],
            "top_bots": [{"bot_name": name, "hits": n} for name, n in top_bots.all()],
        }

    async def list_hits(
        self,
        search: str = "",
        bot_filter: str = "",
        sort_field: str = "created_at",
        sort_direction: str = "desc",
        page: int = 1,
        per_page: int = PER_PAGE,
    ) -> dict:
        """Paginated hit listing; bot_filter is '' (all), '1' (bots) or '0' (humans)."""
        query = select(HoneypotHit)
        count_query = select(func.count(HoneypotHit.id))

        filters = []
        if search:
            pattern = f"%{escape_like(search)}%"
            filters.append(
                or_(
                    HoneypotHit.ip_address.ilike(pattern),
                    HoneypotHit.user_agent.ilike(pattern),
                    HoneypotHit.bot_name.ilike(pattern),
                )
            )
        if bot_filter == "1":
            filters.append(HoneypotHit.is_bot.is_(True))
        elif bot_filter == "0":
            filters.append(HoneypotHit.is_bot.is_(False))
        if filters:
            query = query.where(*filters)
            count_query = count_query.where(*filters)

        if sort_field not in SORTABLE_COLUMNS:
            sort_field = "created_at"
        column = getattr(HoneypotHit, sort_field)
        query = query.order_by(column.asc() if sort_direction == "asc" else column.desc())

        total = (await self.db.execute(count_query)).scalar() or 0
        result = await self.db.execute(query.offset((page - 1) * per_page).limit(per_page))

        return {
            "items": list(result.scalars().all()),
            "total": total,
            "page": page,
            "page_size": per_page,
            "pages": ceil(total / per_page) if total > 0 else 0,
        }

    async def delete_old(self, days: int = 30) -> int:
        cutoff = utcnow() - timedelta(days=days)
        result = await self.db.execute(delete(HoneypotHit).where(HoneypotHit.created_at < cutoff))
        await self.db.commit()
        deleted = result.rowcount or 0
        if deleted:
            logger.info("Deleted %d honeypot hits older than %d days", deleted, days)
        return deleted
