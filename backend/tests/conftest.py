import os
import sys
from pathlib import Path


# Keep tests deterministic and local-only.
os.environ["ENVIRONMENT"] = "test"
os.environ["LOG_LEVEL"] = "warning"
os.environ["SESSION_SECRET"] = "test-session-secret"
os.environ["PUBLIC_BASE_URL"] = ""
os.environ["ALLOWED_EMAIL_DOMAINS"] = '["pw.live"]'

BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

os.environ["UPLOAD_DIR"] = str(BACKEND_ROOT / "test_uploads")

import pytest
from fastapi.testclient import TestClient
from mongomock_motor import AsyncMongoMockClient

from creativehub.core.database import database
from creativehub.core.redis_client import redis_client
from creativehub.core.security import get_identity_verifier
from creativehub.main import app
from creativehub.services.drive import get_drive_gateway
from creativehub.services.roles import RoleResolver, get_role_resolver
from creativehub.services.sheets import SheetCache
from creativehub.services.taxonomy import TaxonomyService, get_taxonomy_service
from tests.fakes import (
    ADMIN_EMAIL,
    SME_EMAIL,
    TAXONOMY_TABS,
    VIEWER_EMAIL,
    FakeDriveGateway,
    FakeRedis,
    FakeVerifier,
    SheetSource,
)


@pytest.fixture
def mongo_db():
    database.db = AsyncMongoMockClient()["creativehub_test"]
    yield database.db
    database.db = None


@pytest.fixture
def fake_redis():
    redis_client.client = FakeRedis()
    yield redis_client.client
    redis_client.client = None


@pytest.fixture
def role_rows():
    """Mutable role directory; tests may edit it before the first lookup"""
    return [
        [ADMIN_EMAIL, "admin"],
        [SME_EMAIL, "sme"],
        [VIEWER_EMAIL, "user"],
    ]


@pytest.fixture
def role_resolver(role_rows):
    async def fetch_rows():
        return role_rows

    return RoleResolver(fetch_rows, ttl_seconds=300)


@pytest.fixture
def drive():
    return FakeDriveGateway()


@pytest.fixture
def sheet_source():
    return SheetSource(TAXONOMY_TABS)


@pytest.fixture
def taxonomy_service(sheet_source):
    return TaxonomyService(SheetCache(sheet_source.get_values, ttl_seconds=60), ttl_seconds=60)


@pytest.fixture
def verifier():
    return FakeVerifier(unverified={"unverified@pw.live"})


@pytest.fixture
def app_overrides(mongo_db, fake_redis, role_resolver, drive, taxonomy_service, verifier):
    app.dependency_overrides[get_role_resolver] = lambda: role_resolver
    app.dependency_overrides[get_identity_verifier] = lambda: verifier
    app.dependency_overrides[get_drive_gateway] = lambda: drive
    app.dependency_overrides[get_taxonomy_service] = lambda: taxonomy_service
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(app_overrides):
    """Anonymous client"""
    return TestClient(app_overrides)


@pytest.fixture
def login_as(app_overrides):
    """Factory: a client with its own cookie jar, signed in as ``email``"""

    def _login(email: str) -> TestClient:
        c = TestClient(app_overrides)
        resp = c.post("/api/auth/google", json={"credential": email})
        assert resp.status_code == 200, resp.text
        return c

    return _login
