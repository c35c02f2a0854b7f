"""
First-party web analytics dashboards for the services panel.
"""

import logging
import secrets
import string
from collections import Counter
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.presentation import format_duration
from infrastructure.database.models import (
    AnalyticsEvent,
    AnalyticsSession,
    AnalyticsWebsite,
    Workspace,
    ensure_utc,
    utcnow,
)

logger = logging.getLogger(__name__)

DATE_RANGES = ("7d", "30d", "90d", "all")
DEFAULT_RANGE = "30d"
PIXEL_KEY_LENGTH = 32
TRACKING_TYPES = ("lightweight", "full")

_RANGE_DAYS = {"7d": 7, "30d": 30, "90d": 90}
_PIXEL_ALPHABET = string.ascii_letters + string.digits


def range_days(date_range: str, all_days: Optional[int] = None) -> Optional[int]:
    """Days covered by a range name; "all" maps to all_days (None = unbounded)."""
    if date_range == "all":
        return all_days
    return _RANGE_DAYS.get(date_range, 30)


def generate_pixel_key() -> str:
    return "".join(secrets.choice(_PIXEL_ALPHABET) for _ in range(PIXEL_KEY_LENGTH))


def _start_of_day(value: datetime) -> datetime:
    return value.replace(hour=0, minute=0, second=0, microsecond=0)


def _since(days: Optional[int]) -> Optional[datetime]:
    return None if days is None else _start_of_day(utcnow() - timedelta(days=days))


class WebAnalyticsService:
    def __init__(self, db: AsyncSession, workspace: Optional[Workspace]):
        self.db = db
        self.workspace = workspace

    async def website_ids(self) -> list[str]:
        if self.workspace is None:
            return []
        result = await self.db.execute(
            select(AnalyticsWebsite.id).where(AnalyticsWebsite.workspace_id == self.workspace.id)
        )
        return [row[0] for row in result.all()]

    async def primary_website(self) -> Optional[AnalyticsWebsite]:
        if self.workspace is None:
            return None
        result = await self.db.execute(
            select(AnalyticsWebsite)
            .where(AnalyticsWebsite.workspace_id == self.workspace.id)
            .order_by(AnalyticsWebsite.created_at)
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def _count(self, column, *where) -> int:
        return (await self.db.execute(select(func.count(column)).where(*where))).scalar() or 0

    # ------------------------------------------------------------------
    # Dashboard
    # ------------------------------------------------------------------

    async def stats(self) -> dict:
        ids = await self.website_ids()
        if not ids:
            return {
                "total_websites": 0,
                "active_websites": 0,
                "pageviews_today": 0,
                "pageviews_week": 0,
                "pageviews_month": 0,
                "sessions_today": 0,
            }

        now = utcnow()
        today = _start_of_day(now)
        week_start = today - timedelta(days=today.weekday())
        month_start = today.replace(day=1)

        def pageviews_since(start: datetime):
            return (
                AnalyticsEvent.website_id.in_(ids),
                AnalyticsEvent.type == "pageview",
                AnalyticsEvent.created_at >= start,
            )

        return {
            "total_websites": len(ids),
            "active_websites": await self._count(
                AnalyticsWebsite.id,
                AnalyticsWebsite.id.in_(ids),
                AnalyticsWebsite.is_enabled.is_(True),
            ),
            "pageviews_today": await self._count(AnalyticsEvent.id, *pageviews_since(today)),
            "pageviews_week": await self._count(AnalyticsEvent.id, *pageviews_since(week_start)),
            "pageviews_month": await self._count(AnalyticsEvent.id, *pageviews_since(month_start)),
            "sessions_today": await self._count(
                AnalyticsSession.id,
                AnalyticsSession.website_id.in_(ids),
                AnalyticsSession.started_at >= today,
            ),
        }

    async def stat_cards(self) -> list[dict]:
        stats = await self.stats()
        return [
            {"value": f"{stats['total_websites']:,}", "label": "Total websites", "icon": "globe", "color": "violet"},
            {"value": f"{stats['active_websites']:,}", "label": "Active websites", "icon": "check-circle", "color": "green"},
            {"value": f"{stats['pageviews_today']:,}", "label": "Pageviews today", "icon": "eye", "color": "blue"},
            {"value": f"{stats['sessions_today']:,}", "label": "Sessions today", "icon": "users", "color": "orange"},
        ]

    async def websites(self, date_range: str = DEFAULT_RANGE) -> list[dict]:
        """Websites with pageviews, sessions, visitors, bounce rate and average duration."""
        if self.workspace is None:
            return []
        start = _since(range_days(date_range, all_days=365))

        result = await self.db.execute(
            select(AnalyticsWebsite)
            .where(AnalyticsWebsite.workspace_id == self.workspace.id)
            .order_by(AnalyticsWebsite.name)
        )

        websites = []
        for website in result.scalars().all():
            pageviews = await self._count(
                AnalyticsEvent.id,
                AnalyticsEvent.website_id == website.id,
                AnalyticsEvent.type == "pageview",
                AnalyticsEvent.created_at >= start,
            )
            sessions = (
                await self.db.execute(
                    select(AnalyticsSession).where(
                        AnalyticsSession.website_id == website.id,
                        AnalyticsSession.started_at >= start,
                    )
                )
            ).scalars().all()

            session_count = len(sessions)
            bounced = sum(1 for s in sessions if s.is_bounce)
            total_duration = sum(s.duration_seconds for s in sessions)
            websites.append(
                {
                    "id": website.id,
                    "name": website.name,
                    "host": website.host,
                    "is_enabled": website.is_enabled,
                    "pageviews_count": pageviews,
                    "sessions_count": session_count,
                    "visitors_count": len({s.visitor_id for s in sessions}),
                    "bounce_rate": round(bounced / session_count * 100, 1) if session_count else 0,
                    "avg_duration": round(total_duration / session_count) if session_count else 0,
                }
            )

        return sorted(websites, key=lambda w: w["pageviews_count"], reverse=True)

    async def chart_data(self, date_range: str = DEFAULT_RANGE) -> list[dict]:
        """Daily pageviews with every day of the range present."""
        ids = await self.website_ids()
        if not ids:
            return []

        days = range_days(date_range, all_days=30)
        start = _start_of_day(utcnow() - timedelta(days=days - 1))
        result = await self.db.execute(
            select(AnalyticsEvent.created_at).where(
                AnalyticsEvent.website_id.in_(ids),
                AnalyticsEvent.type == "pageview",
                AnalyticsEvent.created_at >= start,
            )
        )
        per_day = Counter(ensure_utc(row[0]).date() for row in result.all())

        data = []
        for offset in range(days):
            day = (start + timedelta(days=offset)).date()
            data.append({"date": f"{day:%b} {day.day}", "pageviews": per_day.get(day, 0)})
        return data

    async def top_pages(self, date_range: str = DEFAULT_RANGE, limit: int = 10) -> list[dict]:
        ids = await self.website_ids()
        if not ids:
            return []
        start = _since(range_days(date_range))

        views = func.count(AnalyticsEvent.id).label("views")
        query = (
            select(AnalyticsEvent.path, views, func.count(func.distinct(AnalyticsEvent.visitor_id)))
            .where(AnalyticsEvent.website_id.in_(ids), AnalyticsEvent.type == "pageview")
            .group_by(AnalyticsEvent.path)
            .order_by(views.desc())
            .limit(limit)
        )
        bounce_query = (
            select(
                AnalyticsSession.landing_page,
                func.count(AnalyticsSession.id),
                func.sum(case((AnalyticsSession.is_bounce.is_(True), 1), else_=0)),
            )
            .where(AnalyticsSession.website_id.in_(ids), AnalyticsSession.landing_page.is_not(None))
            .group_by(AnalyticsSession.landing_page)
        )
        if start is not None:
            query = query.where(AnalyticsEvent.created_at >= start)
            bounce_query = bounce_query.where(AnalyticsSession.started_at >= start)

        bounces = {page: (entries, bounced or 0) for page, entries, bounced in (await self.db.execute(bounce_query)).all()}

        pages = []
        for path, view_count, visitors in (await self.db.execute(query)).all():
            entries, bounced = bounces.get(path, (0, 0))
            pages.append(
                {
                    "path": path,
                    "views": view_count,
                    "visitors": visitors,
                    "entries": entries,
                    "bounces": bounced,
                    "bounce_rate": round(bounced / entries * 100, 1) if entries else None,
                }
            )
        return pages

    async def summary_metrics(self, date_range: str = DEFAULT_RANGE) -> dict:
        empty = {
            "total_pageviews": 0,
            "unique_visitors": 0,
            "bounce_rate": 0,
            "avg_session_duration": 0,
            "avg_session_duration_formatted": format_duration(0),
        }
        ids = await self.website_ids()
        if not ids:
            return empty
        start = _since(range_days(date_range))

        event_filters = [AnalyticsEvent.website_id.in_(ids), AnalyticsEvent.type == "pageview"]
        session_filters = [AnalyticsSession.website_id.in_(ids)]
        if start is not None:
            event_filters.append(AnalyticsEvent.created_at >= start)
            session_filters.append(AnalyticsSession.started_at >= start)

        sessions = (
            await self.db.execute(select(AnalyticsSession).where(*session_filters))
        ).scalars().all()
        # Bounced: a single pageview
        bounced = sum(1 for s in sessions if s.pageviews == 1)
        ended = [s.duration_seconds for s in sessions if s.ended_at is not None]
        avg_duration = round(sum(ended) / len(ended)) if ended else 0

        return {
            "total_pageviews": await self._count(AnalyticsEvent.id, *event_filters),
            "unique_visitors": len({s.visitor_id for s in sessions}),
            "bounce_rate": round(bounced / len(sessions) * 100, 1) if sessions else 0,
            "avg_session_duration": avg_duration,
            "avg_session_duration_formatted": format_duration(avg_duration),
        }

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    async def load_settings(self) -> Optional[dict]:
        website = await self.primary_website()
        if website is None:
            return None
        return {
            "name": website.name or "",
            "host": website.host or "",
            "tracking_type": website.tracking_type or "lightweight",
            "is_enabled": bool(website.is_enabled),
            "public_stats_enabled": bool(website.public_stats_enabled),
            "excluded_ips": website.excluded_ips or "",
            "pixel_key": website.pixel_key,
        }

    async def save_settings(self, values: dict) -> Optional[AnalyticsWebsite]:
        """Update the primary website; returns None when the workspace has none."""
        website = await self.primary_website()
        if website is None:
            return None
        for field in ("name", "host", "tracking_type", "is_enabled", "public_stats_enabled", "excluded_ips"):
            if field in values:
                setattr(website, field, values[field])
        await self.db.commit()
        logger.info("Analytics settings saved for website %s", website.id)
        return website

    async def regenerate_pixel_key(self) -> Optional[str]:
        website = await self.primary_website()
        if website is None:
            return None
        website.pixel_key = generate_pixel_key()
        await self.db.commit()
        logger.info("Pixel key regenerated for website %s", website.id)
        return website.pixel_key
