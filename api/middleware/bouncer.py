"""
IP blocklist middleware.

Requests from an approved, unexpired blocklist entry are answered with 403
before they reach a route. The blocklist is read through the hub cache, so
most requests never touch the database.
"""

import logging
from typing import Callable, Iterable

from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from api.middleware.rate_limit import get_client_ip
from services.blocklist import BlocklistService

logger = logging.getLogger(__name__)

EXEMPT_PREFIXES = ("/api/v1/health",)


class BouncerMiddleware(BaseHTTPMiddleware):
    def __init__(
        self,
        app,
        session_factory: Callable,
        exempt_prefixes: Iterable[str] = EXEMPT_PREFIXES,
    ):
        super().__init__(app)
        self.session_factory = session_factory
        self.exempt_prefixes = tuple(exempt_prefixes)

    async def dispatch(self, request: Request, call_next):
        if request.url.path.startswith(self.exempt_prefixes):
            return await call_next(request)

        ip = get_client_ip(request)
        try:
            async with self.session_factory() as db:
                blocked = await BlocklistService(db).is_blocked(ip)
        except SQLAlchemyError as e:
            # Fail open.
            logger.warning("Blocklist lookup failed for %s: %s", ip, e)
            blocked = False

        if blocked:
            logger.info("Blocked request from %s to %s", ip, request.url.path)
            return JSONResponse(status_code=403, content={"detail": "Access denied"})
        return await call_next(request)
