"""
Global search palette.

Providers contribute typed results (pages, workspaces, prompts, content,
users); the registry fans a query out to every provider available to the
current user and groups the results by type.
"""

import logging
import re
from typing import Any, Iterable, Optional, Protocol, runtime_checkable

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from api.utils import escape_like
from core.plans import HUB_PAGES
from infrastructure.database.models import (
    ContentItem,
    Prompt,
    User,
    Workspace,
    WorkspaceMember,
)
from services.cache import HubCache, cache as default_cache

logger = logging.getLogger(__name__)

RECENT_SEARCH_LIMIT = 5
RECENT_SEARCH_TTL = 60 * 60 * 24 * 30


def fuzzy_match(query: str, target: str) -> bool:
    """
    Loose match used by the palette.

    Matches substrings, word starts ("gs" ~ "Global Search") and in-order
    abbreviations ("dbd" ~ "dashboard").
    """
    query = query.strip().lower()
    target = target.strip().lower()

    if not query:
        return False

    if query in target:
        return True

    words = target.split()
    char_index = 0
    word_index = 0
    while char_index < len(query) and word_index < len(words):
        if words[word_index].startswith(query[char_index]):
            char_index += 1
        word_index += 1
    if char_index == len(query):
        return True

    position = 0
    for char in query:
        found = target.find(char, position)
        if found == -1:
            return False
        position = found + 1
    return True


def relevance_score(query: str, target: str) -> int:
    """Score 0-100 for ordering matches (exact beats prefix beats fuzzy)."""
    query = query.strip().lower()
    target = target.strip().lower()

    if not query or not target:
        return 0
    if target == query:
        return 100
    if target.startswith(query):
        return 90
    if re.search(r"\b" + re.escape(query) + r"\b", target):
        return 80
    if query in target:
        return 70

    words = target.split()
    matched = 0
    word_index = 0
    for char in query:
        while word_index < len(words):
            word = words[word_index]
            word_index += 1
            if word.startswith(char):
                matched += 1
                break
    if matched == len(query):
        return 60

    if fuzzy_match(query, target):
        return 40
    return 0


@runtime_checkable
class SearchProvider(Protocol):
    """Contract every palette provider implements."""

    def search_type(self) -> str: ...

    def search_label(self) -> str: ...

    def search_icon(self) -> str: ...

    def priority(self) -> int: ...

    def is_available(self, user: Optional[User], workspace: Optional[Workspace]) -> bool: ...

    async def search(
        self,
        query: str,
        limit: int,
        user: Optional[User] = None,
        workspace: Optional[Workspace] = None,
    ) -> list[dict]: ...

    def get_url(self, result: Any) -> str: ...


class SearchProviderRegistry:
    """Holds providers and runs grouped searches across them."""

    def __init__(self) -> None:
        self._providers: list[SearchProvider] = []

    def register(self, provider: SearchProvider) -> None:
        self._providers.append(provider)

    def register_many(self, providers: Iterable[SearchProvider]) -> None:
        for provider in providers:
            self.register(provider)

    def providers(self) -> list[SearchProvider]:
        return list(self._providers)

    def available_providers(
        self, user: Optional[User], workspace: Optional[Workspace]
    ) -> list[SearchProvider]:
        available = [p for p in self._providers if p.is_available(user, workspace)]
        return sorted(available, key=lambda p: p.priority())

    async def search(
        self,
        query: str,
        user: Optional[User],
        workspace: Optional[Workspace],
        limit_per_provider: int = 5,
    ) -> dict[str, dict]:
        """Return ``{type: {label, icon, results}}``; empty groups are omitted."""
        grouped: dict[str, dict] = {}
        for provider in self.available_providers(user, workspace):
            results = []
            for result in await provider.search(query, limit_per_provider, user=user, workspace=workspace):
                item = dict(result)
                item.setdefault("url", provider.get_url(result))
                item["type"] = provider.search_type()
                item.setdefault("icon", provider.search_icon())
                item.setdefault("subtitle", "")
                item.setdefault("meta", {})
                results.append(item)

            if results:
                grouped[provider.search_type()] = {
                    "label": provider.search_label(),
                    "icon": provider.search_icon(),
                    "results": results,
                }
        return grouped

    @staticmethod
    def flatten_results(grouped: dict[str, dict]) -> list[dict]:
        return [result for group in grouped.values() for result in group["results"]]


# ----------------------------------------------------------------------
# Built-in providers
# ----------------------------------------------------------------------


class _BaseProvider:
    type_name = ""
    label = ""
    icon = "magnifying-glass"
    order = 50

    def search_type(self) -> str:
        return self.type_name

    def search_label(self) -> str:
        return self.label

    def search_icon(self) -> str:
        return self.icon

    def priority(self) -> int:
        return self.order

    def is_available(self, user: Optional[User], workspace: Optional[Workspace]) -> bool:
        return user is not None

    def get_url(self, result: Any) -> str:
        return result.get("url", "") if isinstance(result, dict) else ""


class HubPagesProvider(_BaseProvider):
    """Static hub pages, fuzzy matched and ranked by relevance."""

    type_name = "pages"
    label = "Pages"
    icon = "document"
    order = 10

    def __init__(self, pages: Optional[list[dict]] = None):
        self._pages = pages if pages is not None else HUB_PAGES

    async def search(
        self,
        query: str,
        limit: int,
        user: Optional[User] = None,
        workspace: Optional[Workspace] = None,
    ) -> list[dict]:
        include_hades = user is not None and user.is_hades
        scored = []
        for page in self._pages:
            if page.get("hades") and not include_hades:
                continue
            haystack = f"{page['title']} {page.get('subtitle', '')}"
            if not fuzzy_match(query, page["title"]) and not fuzzy_match(query, haystack):
                continue
            score = max(relevance_score(query, page["title"]), relevance_score(query, haystack))
            scored.append((score, page))
        scored.sort(key=lambda pair: pair[0], reverse=True)
        return [
            {
                "id": page["id"],
                "title": page["title"],
                "subtitle": page.get("subtitle", ""),
                "url": page["url"],
                "icon": page.get("icon", self.icon),
            }
            for _, page in scored[:limit]
        ]


class WorkspaceSearchProvider(_BaseProvider):
    type_name = "workspaces"
    label = "Workspaces"
    icon = "layer-group"
    order = 20

    def __init__(self, db: AsyncSession):
        self.db = db

    async def search(
        self,
        query: str,
        limit: int,
        user: Optional[User] = None,
        workspace: Optional[Workspace] = None,
    ) -> list[dict]:
        if user is None:
            return []
        pattern = f"%{escape_like(query.strip())}%"
        result = await self.db.execute(
            select(Workspace)
            .join(WorkspaceMember, WorkspaceMember.workspace_id == Workspace.id)
            .where(
                WorkspaceMember.user_id == user.id,
                or_(Workspace.name.ilike(pattern), Workspace.slug.ilike(pattern)),
            )
            .order_by(Workspace.name)
            .limit(limit)
        )
        return [
            {
                "id": ws.id,
                "title": ws.name,
                "subtitle": ws.domain or ws.slug,
                "url": f"/hub/workspaces/{ws.slug}",
            }
            for ws in result.scalars().all()
        ]


class PromptSearchProvider(_BaseProvider):
    type_name = "prompts"
    label = "Prompts"
    icon = "wand-magic-sparkles"
    order = 40

    def __init__(self, db: AsyncSession):
        self.db = db

    async def search(
        self,
        query: str,
        limit: int,
        user: Optional[User] = None,
        workspace: Optional[Workspace] = None,
    ) -> list[dict]:
        pattern = f"%{escape_like(query.strip())}%"
        result = await self.db.execute(
            select(Prompt)
            .where(or_(Prompt.name.ilike(pattern), Prompt.description.ilike(pattern)))
            .order_by(Prompt.name)
            .limit(limit)
        )
        return [
            {
                "id": prompt.id,
                "title": prompt.name,
                "subtitle": prompt.category,
                "url": f"/hub/prompts?edit={prompt.id}",
            }
            for prompt in result.scalars().all()
        ]


class ContentSearchProvider(_BaseProvider):
    type_name = "content"
    label = "Content"
    icon = "file-lines"
    order = 30

    def __init__(self, db: AsyncSession):
        self.db = db

    def is_available(self, user: Optional[User], workspace: Optional[Workspace]) -> bool:
        return user is not None and workspace is not None

    async def search(
        self,
        query: str,
        limit: int,
        user: Optional[User] = None,
        workspace: Optional[Workspace] = None,
    ) -> list[dict]:
        if workspace is None:
            return []
        pattern = f"%{escape_like(query.strip())}%"
        result = await self.db.execute(
            select(ContentItem)
            .where(
                ContentItem.workspace_id == workspace.id,
                or_(ContentItem.title.ilike(pattern), ContentItem.slug.ilike(pattern)),
            )
            .order_by(ContentItem.updated_at.desc())
            .limit(limit)
        )
        return [
            {
                "id": item.id,
                "title": item.title,
                "subtitle": f"{item.type.capitalize()} · {item.status}",
                "url": f"/hub/content-editor/{workspace.slug}/{item.id}",
            }
            for item in result.scalars().all()
        ]


class UserSearchProvider(_BaseProvider):
    """Platform users; Hades only."""

    type_name = "users"
    label = "Users"
    icon = "users"
    order = 50

    def __init__(self, db: AsyncSession):
        self.db = db

    def is_available(self, user: Optional[User], workspace: Optional[Workspace]) -> bool:
        return user is not None and user.is_hades

    async def search(
        self,
        query: str,
        limit: int,
        user: Optional[User] = None,
        workspace: Optional[Workspace] = None,
    ) -> list[dict]:
        pattern = f"%{escape_like(query.strip())}%"
        result = await self.db.execute(
            select(User)
            .where(or_(User.name.ilike(pattern), User.email.ilike(pattern)))
            .order_by(User.name)
            .limit(limit)
        )
        return [
            {
                "id": found.id,
                "title": found.name,
                "subtitle": found.email,
                "url": f"/admin/platform/users/{found.id}",
            }
            for found in result.scalars().all()
        ]


def build_registry(db: AsyncSession) -> SearchProviderRegistry:
    registry = SearchProviderRegistry()
    registry.register_many(
        [
            HubPagesProvider(),
            WorkspaceSearchProvider(db),
            ContentSearchProvider(db),
            PromptSearchProvider(db),
            UserSearchProvider(db),
        ]
    )
    return registry


class RecentSearches:
    """Per-user recent palette selections, newest first, de-duplicated by URL."""

    def __init__(self, cache: Optional[HubCache] = None):
        self.cache = cache or default_cache

    @staticmethod
    def _key(user: User) -> str:
        return f"recent_searches:{user.id}"

    async def entries(self, user: User) -> list[dict]:
        return await self.cache.get(self._key(user), []) or []

    async def add(self, user: User, item: dict) -> list[dict]:
        entry = {
            "title": item.get("title", ""),
            "subtitle": item.get("subtitle", ""),
            "url": item.get("url", ""),
            "icon": item.get("icon", "magnifying-glass"),
        }
        recent = [r for r in await self.entries(user) if r.get("url") != entry["url"]]
        recent.insert(0, entry)
        recent = recent[:RECENT_SEARCH_LIMIT]
        await self.cache.set(self._key(user), recent, RECENT_SEARCH_TTL)
        return recent

    async def remove(self, user: User, index: int) -> list[dict]:
        recent = await self.entries(user)
        if 0 <= index < len(recent):
            recent.pop(index)
            await self.cache.set(self._key(user), recent, RECENT_SEARCH_TTL)
        return recent

    async def clear(self, user: User) -> None:
        await self.cache.delete(self._key(user))
