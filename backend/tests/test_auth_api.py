import asyncio

from creativehub.core.config import settings
from creativehub.core.database import get_collection
from tests.fakes import ADMIN_EMAIL, SME_EMAIL, VIEWER_EMAIL


def test_health(client):
    resp = client.get("/api/health")

    assert resp.status_code == 200
    assert resp.json()["status"] == "healthy"


def test_login_creates_session_and_me_returns_role(client, fake_redis):
    resp = client.post("/api/auth/google", json={"credential": SME_EMAIL})

    assert resp.status_code == 200
    assert resp.json()["user"] == {
        "email": SME_EMAIL,
        "name": "Sme",
        "picture": None,
        "role": "sme",
    }
    assert len(fake_redis.data) == 1
    assert list(fake_redis.expiry.values()) == [86400]
    assert "sid" in client.cookies

    me = client.get("/api/auth/me")
    assert me.status_code == 200
    assert me.json()["user"]["role"] == "sme"


def test_cookie_and_server_session_expire_together(client, fake_redis):
    resp = client.post("/api/auth/google", json={"credential": SME_EMAIL})

    assert f"Max-Age={settings.SESSION_MAX_AGE_SECONDS}" in resp.headers["set-cookie"]
    assert list(fake_redis.expiry.values()) == [settings.SESSION_MAX_AGE_SECONDS]


def test_login_lowercases_email(client):
    resp = client.post("/api/auth/google", json={"credential": "Admin@PW.live"})

    assert resp.status_code == 200
    assert resp.json()["user"]["email"] == ADMIN_EMAIL
    assert resp.json()["user"]["role"] == "admin"


def test_unlisted_email_is_a_plain_user(client):
    resp = client.post("/api/auth/google", json={"credential": "newcomer@pw.live"})

    assert resp.status_code == 200
    assert resp.json()["user"]["role"] == "user"


def test_missing_credential(client):
    assert client.post("/api/auth/google", json={}).status_code == 400
    assert client.post("/api/auth/google", json={"credential": ""}).json() == {"detail": "missing credential"}


def test_invalid_credential(client):
    resp = client.post("/api/auth/google", json={"credential": "bad-token"})

    assert resp.status_code == 401
    assert resp.json() == {"detail": "invalid credential"}


def test_unverified_email(client):
    resp = client.post("/api/auth/google", json={"credential": "unverified@pw.live"})

    assert resp.status_code == 401
    assert resp.json() == {"detail": "email not verified"}


def test_foreign_domain_is_forbidden(client, fake_redis):
    resp = client.post("/api/auth/google", json={"credential": "someone@gmail.com"})

    assert resp.status_code == 403
    assert resp.json() == {"detail": "domain not allowed"}
    assert fake_redis.data == {}


def test_me_requires_session(client):
    resp = client.get("/api/auth/me")

    assert resp.status_code == 401
    assert resp.json() == {"detail": "auth required"}


def test_logout_revokes_server_side_session(login_as, fake_redis):
    c = login_as(VIEWER_EMAIL)
    assert c.get("/api/auth/me").status_code == 200

    resp = c.post("/api/auth/logout")

    assert resp.status_code == 200
    assert resp.json() == {"ok": True}
    assert fake_redis.data == {}
    assert c.get("/api/auth/me").status_code == 401


def test_logout_without_session_is_ok(client):
    assert client.post("/api/auth/logout").json() == {"ok": True}


def test_role_is_resolved_per_request(login_as, role_resolver):
    c = login_as(VIEWER_EMAIL)
    assert c.get("/api/auth/me").json()["user"]["role"] == "user"

    # Simulate a directory edit landing after the cache TTL
    async def promoted():
        return [[VIEWER_EMAIL, "sme"]]

    role_resolver.fetch_rows = promoted
    role_resolver._cache = None

    assert c.get("/api/auth/me").json()["user"]["role"] == "sme"


def test_login_records_user_directory_entry(login_as, mongo_db):
    login_as(SME_EMAIL)
    login_as(SME_EMAIL)

    async def fetch():
        users = get_collection("users")
        return await users.count_documents({}), await users.find_one({"email": SME_EMAIL})

    count, record = asyncio.run(fetch())
    assert count == 1
    assert record["role"] == "sme"
    assert record["last_login_at"] is not None
    assert record["created_at"] is not None


def test_user_directory_is_admin_only(login_as):
    login_as(SME_EMAIL)
    admin = login_as(ADMIN_EMAIL)

    resp = admin.get("/api/users")
    assert resp.status_code == 200
    body = resp.json()
    assert body["total"] == 2
    assert {u["email"] for u in body["users"]} == {SME_EMAIL, ADMIN_EMAIL}

    filtered = admin.get("/api/users", params={"role": "sme"}).json()
    assert [u["email"] for u in filtered["users"]] == [SME_EMAIL]

    sme = login_as(SME_EMAIL)
    assert sme.get("/api/users").status_code == 403


def test_role_directory_outage_is_502(client, role_resolver):
    async def broken():
        raise ConnectionError("sheet down")

    role_resolver.fetch_rows = broken

    resp = client.post("/api/auth/google", json={"credential": VIEWER_EMAIL})

    assert resp.status_code == 502
    assert resp.json() == {"detail": "Upstream service unavailable"}
