"""
Deployment and system status checks for the deployments panel.
"""

import asyncio
import logging
import shutil
from typing import Optional

import redis.asyncio as redis
from sqlalchemy import func, select, text
from sqlalchemy.ext.asyncio import AsyncSession

from infrastructure.config.settings import settings
from infrastructure.database.models import ContentWebhookLog, WebhookStatus
from services.cache import HubCache, cache as default_cache

logger = logging.getLogger(__name__)

SERVICES_KEY = "deployments:services"
GIT_KEY = "deployments:git"
COMMITS_KEY = "deployments:commits"
SERVICES_TTL = 60
GIT_TTL = 300

GIT_LOG_FORMAT = "--format=%H|%s|%an|%aI"


def _truncate(value: str, limit: int = 60) -> str:
    return value if len(value) <= limit else value[:limit].rstrip() + "..."


def parse_git_log(output: str, message_limit: Optional[int] = None) -> list[dict]:
    """Parse ``git log --format=%H|%s|%an|%aI`` output into commit dicts."""
    commits = []
    for line in output.strip().splitlines():
        parts = line.split("|")
        if len(parts) < 4:
            continue
        # Subjects may contain "|"; the last two fields are author and date
        sha, author, date = parts[0], parts[-2], parts[-1]
        message = "|".join(parts[1:-2])
        commits.append(
            {
                "hash": sha[:8],
                "message": _truncate(message, message_limit) if message_limit else message,
                "author": author,
                "date": date,
            }
        )
    return commits


class DeploymentService:
    def __init__(
        self,
        db: AsyncSession,
        cache: Optional[HubCache] = None,
        repository_path: Optional[str] = None,
        storage_path: Optional[str] = None,
    ):
        self.db = db
        self.cache = cache or default_cache
        self.repository_path = repository_path or settings.deploy_repository_path
        self.storage_path = storage_path or settings.deploy_storage_path

    # ------------------------------------------------------------------
    # Service checks
    # ------------------------------------------------------------------

    async def check_database(self) -> dict:
        try:
            dialect = self.db.bind.dialect.name if self.db.bind is not None else ""
            query = "SELECT sqlite_version()" if dialect == "sqlite" else "SELECT version()"
            version = (await self.db.execute(text(query))).scalar()
            return {
                "name": "Database",
                "status": "healthy",
                "icon": "circle-stack",
                "details": {"version": version or "Unknown", "driver": dialect},
            }
        except Exception as e:
            logger.error("Database status check failed: %s", e)
            return {"name": "Database", "status": "unhealthy", "icon": "circle-stack", "error": str(e)}

    async def check_redis(self) -> dict:
        client = None
        try:
            client = redis.from_url(settings.redis_url, socket_timeout=3, socket_connect_timeout=3)
            info = await client.info()
            return {
                "name": "Redis",
                "status": "healthy",
                "icon": "bolt",
                "details": {
                    "version": info.get("redis_version", "Unknown"),
                    "memory": info.get("used_memory_human", "Unknown"),
                    "clients": info.get("connected_clients", 0),
                    "uptime": f"{info['uptime_in_days']} days" if "uptime_in_days" in info else "Unknown",
                },
            }
        except (redis.RedisError, OSError, ValueError) as e:
            return {"name": "Redis", "status": "unhealthy", "icon": "bolt", "error": str(e)}
        finally:
            if client is not None:
                await client.aclose()

    async def check_queue(self) -> dict:
        try:
            result = await self.db.execute(
                select(ContentWebhookLog.status, func.count(ContentWebhookLog.id))
                .where(
                    ContentWebhookLog.status.in_(
                        [WebhookStatus.PENDING.value, WebhookStatus.FAILED.value]
                    )
                )
                .group_by(ContentWebhookLog.status)
            )
            counts = dict(result.all())
            return {
                "name": "Queue Workers",
                "status": "healthy",
                "icon": "queue-list",
                "details": {
                    "pending": counts.get(WebhookStatus.PENDING.value, 0),
                    "failed": counts.get(WebhookStatus.FAILED.value, 0),
                },
            }
        except Exception as e:
            logger.warning("Queue status check failed: %s", e)
            return {
                "name": "Queue Workers",
                "status": "unknown",
                "icon": "queue-list",
                "error": "Could not check queue status",
            }

    def check_storage(self) -> dict:
        try:
            usage = shutil.disk_usage(self.storage_path)
        except OSError as e:
            return {"name": "Storage", "status": "unknown", "icon": "server", "error": str(e)}

        gb = 1024 ** 3
        used_percent = round((usage.total - usage.free) / usage.total * 100) if usage.total else 0
        return {
            "name": "Storage",
            "status": "healthy" if used_percent < 90 else "warning",
            "icon": "server",
            "details": {
                "free": f"{round(usage.free / gb, 1)} GB",
                "total": f"{round(usage.total / gb, 1)} GB",
                "used_percent": f"{used_percent}%",
            },
        }

    async def services(self) -> list[dict]:
        async def compute() -> list[dict]:
            return [
                await self.check_database(),
                await self.check_redis(),
                await self.check_queue(),
                self.check_storage(),
            ]

        return await self.cache.remember(SERVICES_KEY, SERVICES_TTL, compute)

    async def stats(self) -> list[dict]:
        by_name = {service["name"]: service for service in await self.services()}
        database = by_name.get("Database", {})
        cache_service = by_name.get("Redis", {})
        queue = by_name.get("Queue Workers", {})
        storage = by_name.get("Storage", {})

        db_ok = database.get("status") == "healthy"
        redis_ok = cache_service.get("status") == "healthy"
        queue_ok = queue.get("status") == "healthy"
        return [
            {"label": "Database", "value": "Online" if db_ok else "Offline", "icon": "circle-stack", "color": "green" if db_ok else "red"},
            {"label": "Redis", "value": "Online" if redis_ok else "Offline", "icon": "bolt", "color": "green" if redis_ok else "red"},
            {"label": "Queue", "value": "Active" if queue_ok else "Inactive", "icon": "queue-list", "color": "green" if queue_ok else "amber"},
            {"label": "Storage", "value": storage.get("details", {}).get("free", "N/A"), "icon": "server", "color": "blue"},
        ]

    # ------------------------------------------------------------------
    # Git
    # ------------------------------------------------------------------

    async def _git(self, *args: str) -> Optional[str]:
        try:
            process = await asyncio.create_subprocess_exec(
                "git",
                *args,
                cwd=self.repository_path,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
            stdout, _ = await asyncio.wait_for(process.communicate(), timeout=10)
        except (OSError, asyncio.TimeoutError) as e:
            logger.debug("git %s unavailable: %s", " ".join(args), e)
            return None
        if process.returncode != 0:
            return None
        return stdout.decode("utf-8", errors="replace")

    async def git_info(self) -> Optional[dict]:
        async def compute() -> Optional[dict]:
            branch = await self._git("rev-parse", "--abbrev-ref", "HEAD")
            log = await self._git("log", "-1", GIT_LOG_FORMAT)
            if branch is None and log is None:
                return None
            info = {"branch": (branch or "unknown").strip(), "commit": "unknown", "message": "unknown", "author": "unknown", "date": None}
            commits = parse_git_log(log or "")
            if commits:
                latest = commits[0]
                info.update(commit=latest["hash"], message=latest["message"], author=latest["author"], date=latest["date"])
            return info

        return await self.cache.remember(GIT_KEY, GIT_TTL, compute)

    async def recent_commits(self, limit: int = 10) -> list[dict]:
        async def compute() -> list[dict]:
            output = await self._git("log", f"-{limit}", GIT_LOG_FORMAT)
            return parse_git_log(output, message_limit=60) if output else []

        return await self.cache.remember(COMMITS_KEY, GIT_TTL, compute)

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    async def refresh(self) -> None:
        await self.cache.delete(SERVICES_KEY, GIT_KEY, COMMITS_KEY)

    async def clear_cache(self) -> int:
        return await self.cache.flush()
