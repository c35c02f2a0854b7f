"""Unit tests for the blocklist middleware."""

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.exc import OperationalError

from api.middleware.bouncer import BouncerMiddleware
from services.blocklist import BlocklistService

BLOCKED_IP = "8.8.4.4"


def build_app(session_factory) -> FastAPI:
    app = FastAPI()
    app.add_middleware(BouncerMiddleware, session_factory=session_factory)

    @app.get("/api/v1/health")
    async def health():
        return {"status": "ok"}

    @app.get("/hub")
    async def hub():
        return {"ok": True}

    return app


@pytest.fixture
async def client(session_factory):
    transport = ASGITransport(app=build_app(session_factory))
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


class TestBouncer:
    async def test_unlisted_ip_passes(self, client):
        response = await client.get("/hub", headers={"X-Forwarded-For": "1.1.1.1"})
        assert response.status_code == 200

    async def test_blocked_ip_denied(self, client, db_session):
        await BlocklistService(db_session).block(BLOCKED_IP, "manual")

        response = await client.get("/hub", headers={"X-Forwarded-For": BLOCKED_IP})

        assert response.status_code == 403
        assert response.json() == {"detail": "Access denied"}

    async def test_health_exempt(self, client, db_session):
        await BlocklistService(db_session).block(BLOCKED_IP, "manual")
        blocked = await client.get("/hub", headers={"X-Forwarded-For": BLOCKED_IP})
        assert blocked.status_code == 403

        response = await client.get("/api/v1/health", headers={"X-Forwarded-For": BLOCKED_IP})
        assert response.status_code == 200

    async def test_pending_entry_not_enforced(self, client, db_session):
        await BlocklistService(db_session).block(BLOCKED_IP, "honeypot_critical", "pending")

        response = await client.get("/hub", headers={"X-Forwarded-For": BLOCKED_IP})
        assert response.status_code == 200

        await BlocklistService(db_session).approve(BLOCKED_IP)
        approved = await client.get("/hub", headers={"X-Forwarded-For": BLOCKED_IP})
        assert approved.status_code == 403


async def test_database_failure_fails_open():
    class BrokenSession:
        async def __aenter__(self):
            raise OperationalError("SELECT 1", {}, Exception("database is down"))

        async def __aexit__(self, *exc):
            return False

    transport = ASGITransport(app=build_app(BrokenSession))
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.get("/hub")

    assert response.status_code == 200
