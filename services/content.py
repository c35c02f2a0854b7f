"""
Native content: posts, pages, taxonomies, media, revisions and the AI palette.

One ContentService per workspace. Query methods return ORM objects or plain
dicts; mutating methods commit.
"""

import logging
import re
from collections import OrderedDict
from datetime import datetime, timedelta
from math import ceil
from typing import Any, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from api.utils import escape_like
from core.presentation import KANBAN_COLUMNS, kanban_color
from infrastructure.database.models import (
    ContentItem,
    ContentKind,
    ContentMedia,
    ContentRevision,
    ContentStatus,
    ContentTaxonomy,
    ContentType,
    ContentWebhookLog,
    Prompt,
    RevisionChangeType,
    SyncStatus,
    TaxonomyType,
    User,
    WebhookStatus,
    Workspace,
    utcnow,
)
from services.ai_providers import AIProviderService, estimate_cost, interpolate_variables
from services.entitlements import EntitlementService

logger = logging.getLogger(__name__)

AI_CREDITS_FEATURE = "ai.credits"

KANBAN_LABELS = {
    "draft": "Draft",
    "pending": "Pending Review",
    "future": "Scheduled",
    "publish": "Published",
}

LIST_SORT_COLUMNS = ("created_at", "updated_at", "title", "status", "type", "publish_at")

# Columns offered by the posts/pages tables
TABLE_SORT_COLUMNS = {
    "date": "created_at",
    "title": "title",
    "status": "status",
    "modified": "updated_at",
}

QUICK_ACTIONS = [
    {
        "name": "Improve writing",
        "description": "Enhance clarity and flow",
        "icon": "sparkles",
        "prompt": "content-refiner",
        "variables": {
            "instruction": "Improve clarity, flow, and readability while maintaining the original meaning."
        },
    },
    {
        "name": "Fix grammar",
        "description": "Correct spelling and grammar",
        "icon": "check-circle",
        "prompt": "content-refiner",
        "variables": {
            "instruction": "Fix any spelling, grammar, or punctuation errors using UK English conventions."
        },
    },
    {
        "name": "Make shorter",
        "description": "Condense the content",
        "icon": "arrows-pointing-in",
        "prompt": "content-refiner",
        "variables": {
            "instruction": "Make this content more concise without losing important information."
        },
    },
    {
        "name": "Make longer",
        "description": "Expand with more detail",
        "icon": "arrows-pointing-out",
        "prompt": "content-refiner",
        "variables": {
            "instruction": "Expand this content with more detail, examples, and explanation."
        },
    },
    {
        "name": "Generate SEO",
        "description": "Create meta title and description",
        "icon": "magnifying-glass",
        "prompt": "seo-title-optimizer",
        "variables": {},
    },
]


class ContentAIError(Exception):
    """An AI palette request that could not be completed."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


def slugify(text: str) -> str:
    """Convert text to URL-safe slug."""
    text = text.lower().strip()
    text = re.sub(r"[^\w\s-]", "", text)
    text = re.sub(r"[\s_-]+", "-", text)
    text = re.sub(r"^-+|-+$", "", text)
    return text[:255]


def validate_content_form(form: dict) -> dict[str, str]:
    """
    Field errors for the editor form, keyed by field name.

    form carries title, slug, content, excerpt, type, status, content_type
    and the seo_* fields.
    """
    errors: dict[str, str] = {}

    title = (form.get("title") or "").strip()
    if not title:
        errors["title"] = "The title field is required."
    elif len(title) > 255:
        errors["title"] = "The title may not be greater than 255 characters."

    slug = (form.get("slug") or "").strip()
    if not slug:
        errors["slug"] = "The slug field is required."
    elif len(slug) > 255:
        errors["slug"] = "The slug may not be greater than 255 characters."

    if len(form.get("excerpt") or "") > 500:
        errors["excerpt"] = "The excerpt may not be greater than 500 characters."
    if not (form.get("content") or "").strip():
        errors["content"] = "The content field is required."

    if form.get("type") not in {k.value for k in ContentKind}:
        errors["type"] = "The selected type is invalid."
    if form.get("status") not in {s.value for s in ContentStatus}:
        errors["status"] = "The selected status is invalid."
    if form.get("content_type", ContentType.NATIVE.value) not in {t.value for t in ContentType}:
        errors["content_type"] = "The selected content type is invalid."

    for field, limit in (("seo_title", 70), ("seo_description", 160), ("seo_keywords", 255)):
        if len(form.get(field) or "") > limit:
            label = field.replace("seo_", "SEO ")
            errors[field] = f"The {label} may not be greater than {limit} characters."

    return errors


def item_row(item: ContentItem) -> dict:
    return {
        "id": item.id,
        "title": item.title,
        "slug": item.slug,
        "excerpt": item.excerpt,
        "type": item.type,
        "status": item.status,
        "status_color": kanban_color(item.status),
        "content_type": item.content_type,
        "sync_status": item.sync_status,
        "categories": [t.name for t in item.categories],
        "tags": [t.name for t in item.tags],
        "publish_at": item.publish_at.isoformat() if item.publish_at else None,
        "created_at": item.created_at.isoformat() if item.created_at else None,
        "updated_at": item.updated_at.isoformat() if item.updated_at else None,
    }


def taxonomy_row(taxonomy: ContentTaxonomy) -> dict:
    return {"id": taxonomy.id, "name": taxonomy.name, "slug": taxonomy.slug, "type": taxonomy.type}


def media_row(media: ContentMedia) -> dict:
    return {
        "id": media.id,
        "type": media.type,
        "title": media.title,
        "url": media.source_url,
        "alt_text": media.alt_text,
        "mime_type": media.mime_type,
    }


def revision_row(revision: ContentRevision) -> dict:
    return {
        "id": revision.id,
        "revision_number": revision.revision_number,
        "change_type": revision.change_type,
        "title": revision.title,
        "user_id": revision.user_id,
        "created_at": revision.created_at.isoformat() if revision.created_at else None,
    }


class ContentService:
    def __init__(self, db: AsyncSession, workspace: Workspace):
        self.db = db
        self.workspace = workspace

    async def _count(self, model, *where) -> int:
        query = select(func.count(model.id)).where(model.workspace_id == self.workspace.id, *where)
        return (await self.db.execute(query)).scalar() or 0

    # ------------------------------------------------------------------
    # Dashboard
    # ------------------------------------------------------------------

    async def stats(self) -> dict:
        today = utcnow().replace(hour=0, minute=0, second=0, microsecond=0)
        return {
            "total": await self._count(ContentItem),
            "posts": await self._count(ContentItem, ContentItem.type == ContentKind.POST.value),
            "pages": await self._count(ContentItem, ContentItem.type == ContentKind.PAGE.value),
            "published": await self._count(
                ContentItem, ContentItem.status == ContentStatus.PUBLISH.value
            ),
            "drafts": await self._count(ContentItem, ContentItem.status == ContentStatus.DRAFT.value),
            "synced": await self._count(
                ContentItem, ContentItem.sync_status == SyncStatus.SYNCED.value
            ),
            "pending": await self._count(
                ContentItem, ContentItem.sync_status == SyncStatus.PENDING.value
            ),
            "failed": await self._count(
                ContentItem, ContentItem.sync_status == SyncStatus.FAILED.value
            ),
            "stale": await self._count(ContentItem, ContentItem.sync_status == SyncStatus.STALE.value),
            "categories": await self._count(
                ContentTaxonomy, ContentTaxonomy.type == TaxonomyType.CATEGORY.value
            ),
            "tags": await self._count(ContentTaxonomy, ContentTaxonomy.type == TaxonomyType.TAG.value),
            "webhooks_today": await self._count(
                ContentWebhookLog, ContentWebhookLog.created_at >= today
            ),
            "webhooks_failed": await self._count(
                ContentWebhookLog, ContentWebhookLog.status == WebhookStatus.FAILED.value
            ),
            "wordpress": await self._count(
                ContentItem, ContentItem.content_type == ContentType.WORDPRESS.value
            ),
            "hostuk": await self._count(
                ContentItem, ContentItem.content_type == ContentType.HOSTUK.value
            ),
            "satellite": await self._count(
                ContentItem, ContentItem.content_type == ContentType.SATELLITE.value
            ),
        }

    async def chart_data(self, days: int = 30) -> list[dict]:
        """Items created per day over the last ``days`` days, oldest first."""
        today = utcnow().date()
        start = today - timedelta(days=days - 1)
        buckets: OrderedDict[str, int] = OrderedDict(
            ((start + timedelta(days=i)).isoformat(), 0) for i in range(days)
        )

        since = datetime.combine(start, datetime.min.time()).replace(tzinfo=utcnow().tzinfo)
        result = await self.db.execute(
            select(ContentItem.created_at).where(
                ContentItem.workspace_id == self.workspace.id,
                ContentItem.created_at >= since,
            )
        )
        for (created_at,) in result.all():
            key = created_at.date().isoformat()
            if key in buckets:
                buckets[key] += 1

        return [{"date": date, "count": count} for date, count in buckets.items()]

    async def content_by_type(self) -> list[dict]:
        return [
            {"label": "Posts", "value": await self._count(ContentItem, ContentItem.type == ContentKind.POST.value)},
            {"label": "Pages", "value": await self._count(ContentItem, ContentItem.type == ContentKind.PAGE.value)},
        ]

    async def kanban(self, per_column: int = 20) -> list[dict]:
        columns = []
        for status_value, color in KANBAN_COLUMNS.items():
            # Scheduled items read soonest first, everything else newest first
            order = (
                ContentItem.publish_at.asc()
                if status_value == ContentStatus.FUTURE.value
                else ContentItem.updated_at.desc()
            )
            result = await self.db.execute(
                select(ContentItem)
                .where(
                    ContentItem.workspace_id == self.workspace.id,
                    ContentItem.status == status_value,
                )
                .order_by(order)
                .limit(per_column)
            )
            columns.append(
                {
                    "name": KANBAN_LABELS[status_value],
                    "status": status_value,
                    "color": color,
                    "items": [item_row(item) for item in result.scalars().all()],
                }
            )
        return columns

    async def calendar(self, limit: int = 100) -> list[dict]:
        result = await self.db.execute(
            select(ContentItem)
            .where(ContentItem.workspace_id == self.workspace.id)
            .order_by(ContentItem.created_at.desc())
            .limit(limit)
        )
        events = []
        for item in result.scalars().all():
            when = item.publish_at or item.created_at
            events.append(
                {
                    "id": item.id,
                    "title": item.title,
                    "date": when.date().isoformat() if when else None,
                    "type": item.type,
                    "status": item.status,
                    "color": kanban_color(item.status),
                }
            )
        return events

    # ------------------------------------------------------------------
    # Listing
    # ------------------------------------------------------------------

    async def list_items(
        self,
        search: str = "",
        type: str = "",
        status: str = "",
        sync_status: str = "",
        category: str = "",
        content_type: str = "",
        sort: str = "created_at",
        direction: str = "desc",
        page: int = 1,
        per_page: int = 20,
        created_since: Optional[datetime] = None,
    ) -> dict:
        """Filtered, sorted page of items; category filters by taxonomy slug."""
        filters = [ContentItem.workspace_id == self.workspace.id]
        if search:
            pattern = f"%{escape_like(search)}%"
            filters.append(
                or_(
                    ContentItem.title.ilike(pattern),
                    ContentItem.slug.ilike(pattern),
                    ContentItem.excerpt.ilike(pattern),
                )
            )
        if type:
            filters.append(ContentItem.type == type)
        if status:
            filters.append(ContentItem.status == status)
        if sync_status:
            filters.append(ContentItem.sync_status == sync_status)
        if content_type:
            filters.append(ContentItem.content_type == content_type)
        if created_since is not None:
            filters.append(ContentItem.created_at >= created_since)
        if category:
            filters.append(
                ContentItem.taxonomies.any(
                    (ContentTaxonomy.slug == category)
                    & (ContentTaxonomy.type == TaxonomyType.CATEGORY.value)
                )
            )

        if sort not in LIST_SORT_COLUMNS:
            sort = "created_at"
        column = getattr(ContentItem, sort)

        total = (await self.db.execute(select(func.count(ContentItem.id)).where(*filters))).scalar() or 0
        result = await self.db.execute(
            select(ContentItem)
            .where(*filters)
            .order_by(column.asc() if direction == "asc" else column.desc())
            .offset((page - 1) * per_page)
            .limit(per_page)
        )
        return {
            "items": list(result.scalars().all()),
            "total": total,
            "page": page,
            "page_size": per_page,
            "pages": ceil(total / per_page) if total > 0 else 0,
        }

    async def get_item(self, item_id: str) -> Optional[ContentItem]:
        result = await self.db.execute(
            select(ContentItem).where(
                ContentItem.id == item_id,
                ContentItem.workspace_id == self.workspace.id,
            )
        )
        return result.scalar_one_or_none()

    async def delete_item(self, item: ContentItem) -> None:
        await self.db.delete(item)
        await self.db.commit()
        logger.info("Deleted content item %s from workspace %s", item.id, self.workspace.id)

    async def taxonomies(self, taxonomy_type: str) -> list[ContentTaxonomy]:
        result = await self.db.execute(
            select(ContentTaxonomy)
            .where(
                ContentTaxonomy.workspace_id == self.workspace.id,
                ContentTaxonomy.type == taxonomy_type,
            )
            .order_by(ContentTaxonomy.name)
        )
        return list(result.scalars().all())

    async def category_options(self) -> dict[str, str]:
        return {c.slug: c.name for c in await self.taxonomies(TaxonomyType.CATEGORY.value)}

    async def media(self, page: int = 1, per_page: int = 20, images_only: bool = False) -> dict:
        filters = [ContentMedia.workspace_id == self.workspace.id]
        if images_only:
            filters.append(ContentMedia.type == "image")
        total = (await self.db.execute(select(func.count(ContentMedia.id)).where(*filters))).scalar() or 0
        result = await self.db.execute(
            select(ContentMedia)
            .where(*filters)
            .order_by(ContentMedia.created_at.desc())
            .offset((page - 1) * per_page)
            .limit(per_page)
        )
        return {
            "items": list(result.scalars().all()),
            "total": total,
            "page": page,
            "page_size": per_page,
            "pages": ceil(total / per_page) if total > 0 else 0,
        }

    async def get_media(self, media_id: str) -> Optional[ContentMedia]:
        result = await self.db.execute(
            select(ContentMedia).where(
                ContentMedia.id == media_id,
                ContentMedia.workspace_id == self.workspace.id,
            )
        )
        return result.scalar_one_or_none()

    async def tab_stats(self, kind: Optional[str]) -> list[dict]:
        """Stat cards for the posts/pages/media tabs."""
        week_start = utcnow() - timedelta(days=7)
        if kind is None:
            return [
                {"label": "Total Media", "value": await self._count(ContentMedia)},
                {
                    "label": "Images",
                    "value": await self._count(ContentMedia, ContentMedia.type == "image"),
                },
                {
                    "label": "This Week",
                    "value": await self._count(ContentMedia, ContentMedia.created_at >= week_start),
                },
            ]

        of_kind = ContentItem.type == kind
        return [
            {"label": f"Total {kind.capitalize()}s", "value": await self._count(ContentItem, of_kind)},
            {
                "label": "Published",
                "value": await self._count(
                    ContentItem, of_kind, ContentItem.status == ContentStatus.PUBLISH.value
                ),
            },
            {
                "label": "Drafts",
                "value": await self._count(
                    ContentItem, of_kind, ContentItem.status == ContentStatus.DRAFT.value
                ),
            },
            {
                "label": "This Week",
                "value": await self._count(ContentItem, of_kind, ContentItem.created_at >= week_start),
            },
        ]

    # ------------------------------------------------------------------
    # Webhooks
    # ------------------------------------------------------------------

    async def webhook_logs(self, page: int = 1, per_page: int = 20) -> dict:
        filters = [ContentWebhookLog.workspace_id == self.workspace.id]
        total = (
            await self.db.execute(select(func.count(ContentWebhookLog.id)).where(*filters))
        ).scalar() or 0
        result = await self.db.execute(
            select(ContentWebhookLog)
            .where(*filters)
            .order_by(ContentWebhookLog.created_at.desc())
            .offset((page - 1) * per_page)
            .limit(per_page)
        )
        return {
            "items": list(result.scalars().all()),
            "total": total,
            "page": page,
            "page_size": per_page,
            "pages": ceil(total / per_page) if total > 0 else 0,
        }

    async def retry_webhook(self, log_id: str) -> bool:
        """Put a failed webhook back in the queue. False if it is not failed."""
        result = await self.db.execute(
            select(ContentWebhookLog).where(
                ContentWebhookLog.id == log_id,
                ContentWebhookLog.workspace_id == self.workspace.id,
            )
        )
        log = result.scalar_one_or_none()
        if log is None or log.status != WebhookStatus.FAILED.value:
            return False

        log.status = WebhookStatus.PENDING.value
        log.error_message = None
        await self.db.commit()
        logger.info("Webhook %s marked for retry", log.id)
        return True

    # ------------------------------------------------------------------
    # Editor
    # ------------------------------------------------------------------

    async def _taxonomies_by_id(self, ids: list[str], taxonomy_type: str) -> list[ContentTaxonomy]:
        if not ids:
            return []
        result = await self.db.execute(
            select(ContentTaxonomy).where(
                ContentTaxonomy.id.in_(ids),
                ContentTaxonomy.workspace_id == self.workspace.id,
                ContentTaxonomy.type == taxonomy_type,
            )
        )
        return list(result.scalars().all())

    async def save(
        self,
        item: Optional[ContentItem],
        form: dict,
        user: User,
        change_type: str = RevisionChangeType.EDIT.value,
    ) -> ContentItem:
        """
        Create or update an item from a validated form.

        Native content is always in sync. publish_at is kept only for
        scheduled items. Every save snapshots a revision except an autosave
        of an item that did not exist yet.
        """
        # Lookups autoflush, so they run before a new item joins the session
        taxonomies = await self._taxonomies_by_id(
            form.get("category_ids") or [], TaxonomyType.CATEGORY.value
        ) + await self._taxonomies_by_id(form.get("tag_ids") or [], TaxonomyType.TAG.value)
        featured_media_id = None
        if "featured_media_id" in form:
            media_id = form.get("featured_media_id")
            if media_id and await self.get_media(media_id) is not None:
                featured_media_id = media_id

        is_new = item is None
        if is_new:
            item = ContentItem(
                workspace_id=self.workspace.id, author_id=user.id, taxonomies=taxonomies
            )
            self.db.add(item)
        else:
            await self.db.refresh(item, ["taxonomies"])
            item.taxonomies = taxonomies

        item.title = form["title"].strip()
        item.slug = form["slug"].strip()
        item.excerpt = form.get("excerpt") or None
        item.content_html = form["content"]
        item.content_markdown = form["content"]
        item.type = form["type"]
        item.status = form["status"]
        item.content_type = form.get("content_type") or ContentType.NATIVE.value
        item.last_edited_by = user.id
        item.seo_meta = {
            "title": form.get("seo_title") or None,
            "description": form.get("seo_description") or None,
            "keywords": form.get("seo_keywords") or None,
            "og_image": form.get("og_image") or None,
        }
        item.publish_at = (
            form.get("publish_at") if item.status == ContentStatus.FUTURE.value else None
        )
        item.sync_status = SyncStatus.SYNCED.value
        item.synced_at = utcnow()

        if "featured_media_id" in form:
            item.featured_media_id = featured_media_id

        await self.db.flush()
        if not (is_new and change_type == RevisionChangeType.AUTOSAVE.value):
            self._add_revision(item, user, change_type)

        await self.db.commit()
        await self.db.refresh(item)
        logger.info(
            "Content item %s saved (%s) in workspace %s by user %s",
            item.id,
            change_type,
            self.workspace.id,
            user.id,
        )
        return item

    def _add_revision(self, item: ContentItem, user: User, change_type: str) -> ContentRevision:
        item.revision_count = (item.revision_count or 0) + 1
        revision = ContentRevision(
            content_item_id=item.id,
            user_id=user.id,
            revision_number=item.revision_count,
            change_type=change_type,
            title=item.title,
            excerpt=item.excerpt,
            content_html=item.content_html,
            seo_meta=dict(item.seo_meta) if item.seo_meta else None,
        )
        self.db.add(revision)
        return revision

    async def revisions(self, item: ContentItem, limit: int = 20) -> list[ContentRevision]:
        """Newest first, autosaves excluded."""
        result = await self.db.execute(
            select(ContentRevision)
            .where(
                ContentRevision.content_item_id == item.id,
                ContentRevision.change_type != RevisionChangeType.AUTOSAVE.value,
            )
            .order_by(ContentRevision.revision_number.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def get_revision(self, revision_id: str) -> Optional[ContentRevision]:
        result = await self.db.execute(
            select(ContentRevision).where(ContentRevision.id == revision_id)
        )
        return result.scalar_one_or_none()

    async def restore_revision(
        self, item: ContentItem, revision: ContentRevision, user: User
    ) -> bool:
        """Copy a revision back onto its item. False if it belongs to another item."""
        if revision.content_item_id != item.id:
            return False

        item.title = revision.title
        item.excerpt = revision.excerpt
        item.content_html = revision.content_html
        item.content_markdown = revision.content_html
        if revision.seo_meta:
            item.seo_meta = {**(item.seo_meta or {}), **revision.seo_meta}
        item.last_edited_by = user.id
        self._add_revision(item, user, RevisionChangeType.RESTORE.value)

        await self.db.commit()
        await self.db.refresh(item)
        logger.info("Content item %s restored to revision %d", item.id, revision.revision_number)
        return True

    async def find_or_create_tag(self, name: str) -> ContentTaxonomy:
        name = name.strip()
        slug = slugify(name)
        result = await self.db.execute(
            select(ContentTaxonomy).where(
                ContentTaxonomy.workspace_id == self.workspace.id,
                ContentTaxonomy.type == TaxonomyType.TAG.value,
                ContentTaxonomy.slug == slug,
            )
        )
        tag = result.scalar_one_or_none()
        if tag is None:
            tag = ContentTaxonomy(
                workspace_id=self.workspace.id,
                type=TaxonomyType.TAG.value,
                name=name,
                slug=slug,
            )
            self.db.add(tag)
            await self.db.commit()
            await self.db.refresh(tag)
        return tag

    async def remove_tag(self, item: ContentItem, tag_id: str) -> bool:
        remaining = [t for t in item.taxonomies if not (t.id == tag_id and t.type == TaxonomyType.TAG.value)]
        if len(remaining) == len(item.taxonomies):
            return False
        item.taxonomies = remaining
        await self.db.commit()
        return True

    async def add_tag(self, item: ContentItem, tag: ContentTaxonomy) -> None:
        if all(t.id != tag.id for t in item.taxonomies):
            item.taxonomies.append(tag)
            await self.db.commit()

    async def toggle_category(self, item: ContentItem, category_id: str) -> Optional[bool]:
        """Attach or detach a category. Returns the new state, None if unknown."""
        categories = await self._taxonomies_by_id([category_id], TaxonomyType.CATEGORY.value)
        if not categories:
            return None

        if any(t.id == category_id for t in item.taxonomies):
            item.taxonomies = [t for t in item.taxonomies if t.id != category_id]
            attached = False
        else:
            item.taxonomies.append(categories[0])
            attached = True
        await self.db.commit()
        return attached

    async def set_featured_media(self, item: ContentItem, media_id: Optional[str]) -> bool:
        if media_id is None:
            item.featured_media_id = None
        else:
            if await self.get_media(media_id) is None:
                return False
            item.featured_media_id = media_id
        await self.db.commit()
        await self.db.refresh(item)
        return True

    def form_state(self, item: Optional[ContentItem]) -> dict:
        if item is None:
            return {
                "id": None,
                "title": "",
                "slug": "",
                "excerpt": "",
                "content": "",
                "type": ContentKind.POST.value,
                "status": ContentStatus.DRAFT.value,
                "content_type": ContentType.NATIVE.value,
                "seo_title": "",
                "seo_description": "",
                "seo_keywords": "",
                "og_image": "",
                "category_ids": [],
                "tag_ids": [],
                "featured_media_id": None,
                "publish_at": None,
                "is_scheduled": False,
                "revision_count": 0,
            }

        seo = item.seo_meta or {}
        return {
            "id": item.id,
            "title": item.title,
            "slug": item.slug,
            "excerpt": item.excerpt or "",
            "content": item.content_html or "",
            "type": item.type,
            "status": item.status,
            "content_type": item.content_type,
            "seo_title": seo.get("title") or "",
            "seo_description": seo.get("description") or "",
            "seo_keywords": seo.get("keywords") or "",
            "og_image": seo.get("og_image") or "",
            "category_ids": [t.id for t in item.categories],
            "tag_ids": [t.id for t in item.tags],
            "tags": [taxonomy_row(t) for t in item.tags],
            "featured_media_id": item.featured_media_id,
            "featured_media": media_row(item.featured_media) if item.featured_media else None,
            "publish_at": item.publish_at.isoformat() if item.publish_at else None,
            "is_scheduled": item.status == ContentStatus.FUTURE.value and item.publish_at is not None,
            "revision_count": item.revision_count,
        }

    # ------------------------------------------------------------------
    # AI palette
    # ------------------------------------------------------------------

    async def prompt_groups(self, search: str = "") -> dict[str, list[dict]]:
        """Active prompts grouped by category."""
        query = select(Prompt).where(Prompt.is_active.is_(True))
        if search:
            pattern = f"%{escape_like(search)}%"
            query = query.where(
                or_(
                    Prompt.name.ilike(pattern),
                    Prompt.description.ilike(pattern),
                    Prompt.category.ilike(pattern),
                )
            )
        result = await self.db.execute(query.order_by(Prompt.category, Prompt.name))

        groups: dict[str, list[dict]] = {}
        for prompt in result.scalars().all():
            groups.setdefault(prompt.category, []).append(
                {
                    "id": prompt.id,
                    "name": prompt.name,
                    "description": prompt.description,
                    "model": prompt.model,
                    "variables": prompt.variables or {},
                }
            )
        return groups

    async def get_prompt(self, prompt_id: Optional[str] = None, name: Optional[str] = None) -> Optional[Prompt]:
        query = select(Prompt)
        query = query.where(Prompt.id == prompt_id) if prompt_id else query.where(Prompt.name == name)
        result = await self.db.execute(query.limit(1))
        return result.scalar_one_or_none()

    async def run_prompt(self, prompt: Prompt, variables: dict[str, Any], user: User) -> str:
        """
        Run a prompt against the workspace's AI credits.

        Raises ContentAIError with a user-facing message when the workspace is
        out of credits or the provider call fails.
        """
        entitlements = EntitlementService(self.db)
        check = await entitlements.can(self.workspace, AI_CREDITS_FEATURE)
        if check.is_denied:
            raise ContentAIError(check.reason)

        try:
            ai = AIProviderService(self.db, user)
            provider = await ai.provider(prompt.model)
            settings = prompt.model_settings or {}
            response = await provider.generate(
                prompt.system_prompt,
                interpolate_variables(prompt.user_template, variables),
                max_tokens=int(settings.get("max_tokens") or 4096),
                temperature=float(settings.get("temperature", 0.7)),
            )
        except Exception as e:
            logger.warning("AI prompt %s failed for workspace %s: %s", prompt.id, self.workspace.id, e)
            raise ContentAIError(f"AI request failed: {e}") from e

        await entitlements.record_usage(
            self.workspace,
            AI_CREDITS_FEATURE,
            quantity=1,
            user=user,
            metadata={
                "prompt_id": prompt.id,
                "model": response.model,
                "tokens_input": response.input_tokens,
                "tokens_output": response.output_tokens,
                "estimated_cost": estimate_cost(
                    response.model, response.input_tokens, response.output_tokens
                ),
            },
        )
        return response.content
