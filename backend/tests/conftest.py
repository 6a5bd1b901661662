"""
Shipment Service Backend - Test Configuration (conftest.py)
============================================================

What:  Shared pytest fixtures for the entire test suite.
How:   Each test gets a throwaway SQLite file (aiosqlite) with the schema
       created from the ORM metadata, a resolver with a known HMAC secret,
       and a UsageNotifier whose stats pings go to an httpx.MockTransport.

Fixture Hierarchy (all function-scoped):
    database ──┬── db_session ── repository
               └── usage_notifier ── app ── client
    make_token:       JWT factory (email claim, role, expiry, secret)
    auth_headers:     {"Authorization": "Bearer ..."} for a given email
    shipment_payload: valid POST /api/shipments body with overrides
    stats_requests:   bodies received by the mock stats collaborator
"""

import json
import os
import time
from typing import Any, AsyncGenerator, Dict, List, Optional

# Override settings for testing BEFORE any app imports
os.environ["JWT_SECRET"] = "test-secret-not-real"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./test.db"
os.environ["STATS_SERVICE_URL"] = "http://stats.test/stats"
os.environ["LOG_LEVEL"] = "WARNING"

import httpx
import jwt
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from app.database import Database
from app.main import create_app
from app.services.identity_service import IdentityResolver
from app.services.shipment_repository import ShipmentRepository
from app.services.statistics_client import StatisticsClient
from app.services.usage_notifier import UsageNotifier

TEST_SECRET = "test-secret-not-real"
ALICE = "alice@example.com"
BOB = "bob@example.com"


# ══════════════════════════════════════════════════════════════════════════
# Persistence
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def database(tmp_path) -> AsyncGenerator[Database, None]:
    db = Database(f"sqlite+aiosqlite:///{tmp_path / 'shipments.db'}")
    await db.create_all()
    yield db
    await db.dispose()


@pytest_asyncio.fixture
async def db_session(database):
    async with database.session_factory() as session:
        yield session


@pytest.fixture
def repository(db_session) -> ShipmentRepository:
    return ShipmentRepository(db_session)


# ══════════════════════════════════════════════════════════════════════════
# Authentication
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def resolver() -> IdentityResolver:
    return IdentityResolver(secret=TEST_SECRET)


@pytest.fixture
def make_token():
    """
    Mints HS256 tokens the way the upstream issuer does.

    Usage:
        token = make_token(ALICE)                      # email claim, 1h validity
        token = make_token(ALICE, expires_in=-60)      # already expired
        token = make_token(ALICE, claim="name")        # issuer-style name claim
    """

    def _make(
        email: Optional[str] = ALICE,
        claim: str = "email",
        expires_in: int = 3600,
        secret: str = TEST_SECRET,
        role: Optional[str] = None,
    ) -> str:
        payload: Dict[str, Any] = {"exp": int(time.time()) + expires_in}
        if email is not None:
            payload[claim] = email
        if role is not None:
            payload["role"] = role
        return jwt.encode(payload, secret, algorithm="HS256")

    return _make


@pytest.fixture
def auth_headers(make_token):
    def _headers(email: str = ALICE, **kwargs) -> Dict[str, str]:
        return {"Authorization": f"Bearer {make_token(email, **kwargs)}"}

    return _headers


# ══════════════════════════════════════════════════════════════════════════
# Sample Data
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def shipment_payload():
    def _payload(**overrides) -> Dict[str, Any]:
        body = {
            "order_id": "ORD1",
            "recipient_name": "Alice Andersen",
            "recipient_email": ALICE,
            "recipient_phone": "+45 11 22 33 44",
            "delivery_address": "Main Street 1",
            "postal_number": 2100,
            "city": "Copenhagen",
            "country": "Denmark",
            "delivery_status": "in transit",
            "tracking_number": "TRK-0001",
            "weight": 2.5,
            "estimated_cost": 49.0,
        }
        body.update(overrides)
        return body

    return _payload


# ══════════════════════════════════════════════════════════════════════════
# Side Channels
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def stats_requests() -> List[Dict[str, Any]]:
    return []


@pytest_asyncio.fixture
async def usage_notifier(database, stats_requests) -> AsyncGenerator[UsageNotifier, None]:
    def handler(request: httpx.Request) -> httpx.Response:
        stats_requests.append(json.loads(request.content))
        return httpx.Response(200, json={"ok": True})

    notifier = UsageNotifier(
        database=database,
        stats_url="http://stats.test/stats",
        transport=httpx.MockTransport(handler),
    )
    yield notifier
    await notifier.aclose()


@pytest.fixture
def statistics_document() -> Dict[str, Any]:
    return {"total": 3, "by_endpoint": {"/api/shipments": 2, "/graphql": 1}}


@pytest_asyncio.fixture
async def statistics_client(statistics_document) -> AsyncGenerator[StatisticsClient, None]:
    client = StatisticsClient(
        url="http://statistics.test/statistics",
        min_wait=0,
        max_wait=0,
        transport=httpx.MockTransport(
            lambda request: httpx.Response(200, json=statistics_document)
        ),
    )
    yield client
    await client.aclose()


# ══════════════════════════════════════════════════════════════════════════
# Application
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def app(database, resolver, usage_notifier, statistics_client):
    return create_app(
        database=database,
        identity_resolver=resolver,
        usage_notifier=usage_notifier,
        statistics_client=statistics_client,
    )


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """
    HTTPX AsyncClient routed straight into the ASGI app (no server, no
    lifespan; collaborators are injected through create_app).
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
