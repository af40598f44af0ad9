"""End-to-end tests for the /auth routes."""

import httpx
import pytest
from httpx import ASGITransport, AsyncClient

from oauthgate.api.app import create_app
from oauthgate.core.relay import BackendRelay
from tests.factories import CLIENT_URL, query_of, sign_in


@pytest.mark.asyncio
async def test_login_redirects_to_provider(client):
    r = await client.get("/auth/google")
    assert r.status_code == 302
    assert r.headers["location"].startswith("https://accounts.test/o/oauth2/auth?state=")


@pytest.mark.asyncio
async def test_login_requires_configured_provider(client, provider):
    provider.is_configured = False
    r = await client.get("/auth/google")
    assert r.status_code == 503
    assert r.json()["error"] == "OAuth not configured"


@pytest.mark.asyncio
async def test_first_callback_redirects_to_registration(client, directory):
    r = await sign_in(client)

    assert r.status_code == 302
    assert r.headers["location"] == f"{CLIENT_URL}/complete-registration?new=true"
    assert len(directory) == 1
    record = await directory.lookup("g-1")
    assert record.email == "a@x.com"
    assert record.is_registration_complete is False

    status = (await client.get("/auth/status")).json()
    assert status["authenticated"] is True
    assert status["user"]["googleId"] == "g-1"
    assert status["user"]["email"] == "a@x.com"
    assert status["user"]["isRegistrationComplete"] is False
    assert "accessToken" not in status["user"]
    assert "access_token" not in status["user"]


@pytest.mark.asyncio
async def test_completed_user_is_sent_to_dashboard(client):
    await sign_in(client)
    r = await client.post("/auth/complete-registration", json={"phone": "555-1"})
    assert r.status_code == 200
    body = r.json()
    assert body["user"]["isRegistrationComplete"] is True
    assert body["user"]["phone"] == "555-1"

    await client.post("/auth/logout")
    r = await sign_in(client)
    assert r.headers["location"] == f"{CLIENT_URL}/dashboard?login=success"


@pytest.mark.asyncio
async def test_returning_incomplete_user_is_sent_back_to_registration(client):
    await sign_in(client)
    await client.post("/auth/logout")
    r = await sign_in(client)
    assert r.headers["location"] == f"{CLIENT_URL}/complete-registration"


@pytest.mark.asyncio
async def test_complete_registration_without_phone(client, directory):
    await sign_in(client)
    r = await client.post("/auth/complete-registration", json={"address": "1 Main St"})

    assert r.status_code == 400
    assert r.json()["error"] == "Missing required field"
    assert r.json()["field"] == "phone"
    record = await directory.lookup("g-1")
    assert record.is_registration_complete is False
    assert record.address is None


@pytest.mark.asyncio
async def test_complete_registration_accepts_optional_fields(client):
    await sign_in(client)
    r = await client.post(
        "/auth/complete-registration",
        json={
            "phone": "555-1",
            "dateOfBirth": "1990-05-17",
            "address": {"city": "Lisbon"},
            "preferences": {"newsletter": False},
        },
    )
    assert r.status_code == 200
    user = r.json()["user"]
    assert user["dateOfBirth"] == "1990-05-17"
    assert user["address"] == {"city": "Lisbon"}
    assert user["registrationCompletedAt"] is not None


@pytest.mark.asyncio
async def test_complete_registration_rejects_bad_date(client):
    await sign_in(client)
    r = await client.post(
        "/auth/complete-registration", json={"phone": "555-1", "dateOfBirth": "not-a-date"}
    )
    assert r.status_code == 400
    assert r.json()["error"] == "Invalid request"


@pytest.mark.asyncio
async def test_complete_registration_requires_session(client):
    r = await client.post("/auth/complete-registration", json={"phone": "555-1"})
    assert r.status_code == 401
    assert r.json()["error"] == "Not authenticated"


@pytest.mark.asyncio
async def test_complete_registration_for_vanished_user(client, directory):
    await sign_in(client)
    directory._records.clear()
    r = await client.post("/auth/complete-registration", json={"phone": "555-1"})
    assert r.status_code == 404
    assert r.json()["error"] == "User not found"


@pytest.mark.asyncio
async def test_registration_status_for_vanished_user(client, directory):
    await sign_in(client)
    directory._records.clear()
    r = await client.get("/auth/registration-status")
    assert r.status_code == 404
    assert r.json()["error"] == "User not found"


@pytest.mark.asyncio
async def test_registration_status(client):
    await sign_in(client)
    before = (await client.get("/auth/registration-status")).json()
    assert before == {
        "isRegistrationComplete": False,
        "registrationCompletedAt": None,
        "fields": {"phone": False, "dateOfBirth": False, "address": False, "preferences": False},
    }

    await client.post(
        "/auth/complete-registration", json={"phone": "555-1", "address": "1 Main St"}
    )
    after = (await client.get("/auth/registration-status")).json()
    assert after["isRegistrationComplete"] is True
    assert after["fields"] == {
        "phone": True,
        "dateOfBirth": False,
        "address": True,
        "preferences": False,
    }


@pytest.mark.asyncio
async def test_registration_status_requires_session(client):
    r = await client.get("/auth/registration-status")
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_callback_with_state_mismatch(client, directory, provider):
    await client.get("/auth/google")
    r = await client.get(
        "/auth/google/callback", params={"code": "code-g1", "state": "forged"}
    )
    assert r.status_code == 302
    assert r.headers["location"].startswith(f"{CLIENT_URL}/auth/error?")
    assert provider.exchanged == []
    assert len(directory) == 0
    assert (await client.get("/auth/status")).json() == {"authenticated": False, "user": None}


@pytest.mark.asyncio
async def test_callback_without_prior_login(client):
    r = await client.get("/auth/google/callback", params={"code": "code-g1", "state": "x"})
    assert r.status_code == 302
    assert "/auth/error?" in r.headers["location"]


@pytest.mark.asyncio
async def test_callback_denied_by_user(client, directory):
    await client.get("/auth/google")
    r = await client.get("/auth/google/callback", params={"error": "access_denied"})
    assert r.status_code == 302
    assert r.headers["location"].startswith(f"{CLIENT_URL}/auth/error?")
    assert len(directory) == 0


@pytest.mark.asyncio
async def test_callback_with_rejected_code(client):
    r = await sign_in(client, code="bogus")
    assert r.status_code == 302
    assert query_of(r.headers["location"])["message"] == "Google rejected the authorization code"
    assert (await client.get("/auth/status")).json()["authenticated"] is False


@pytest.mark.asyncio
async def test_relay_timeout_establishes_no_session(settings, directory, provider):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("backend too slow", request=request)

    relay = BackendRelay("http://backend.test", transport=httpx.MockTransport(handler))
    app = create_app(settings, directory=directory, provider=provider, relay=relay)

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        r = await sign_in(ac)
        assert r.status_code == 302
        assert r.headers["location"].startswith(f"{CLIENT_URL}/auth/error?")
        assert query_of(r.headers["location"])["message"] == "Authentication failed"
        assert (await ac.get("/auth/status")).json()["authenticated"] is False


@pytest.mark.asyncio
async def test_relay_success_redirect_carries_token(settings, directory, provider):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json={"success": True, "token": "jwt-1", "user": {"id": 1}, "isNewUser": False},
        )

    relay = BackendRelay("http://backend.test", transport=httpx.MockTransport(handler))
    app = create_app(settings, directory=directory, provider=provider, relay=relay)

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        r = await sign_in(ac)
        params = query_of(r.headers["location"])
        assert r.headers["location"].startswith(f"{CLIENT_URL}/complete-registration?")
        assert "new" not in params
        assert params["token"] == "jwt-1"
        assert params["user"] == '{"id":1}'
        assert (await ac.get("/auth/status")).json()["authenticated"] is True


@pytest.mark.asyncio
async def test_logout(client, app):
    await sign_in(client)
    assert len(app.state.sessions) == 1

    r = await client.post("/auth/logout")
    assert r.status_code == 200
    assert r.json() == {"message": "Logged out successfully"}
    assert len(app.state.sessions) == 0
    assert (await client.get("/auth/status")).json()["authenticated"] is False


@pytest.mark.asyncio
async def test_logout_store_failure(client, app, monkeypatch):
    await sign_in(client)

    def broken_destroy(session_id):
        raise RuntimeError("store unavailable")

    monkeypatch.setattr(app.state.sessions, "destroy", broken_destroy)
    r = await client.post("/auth/logout")
    assert r.status_code == 500
    assert r.json()["error"] == "Session destruction failed"
    assert (await client.get("/auth/status")).json()["authenticated"] is True


@pytest.mark.asyncio
async def test_login_rotates_session_id(client, app):
    await sign_in(client)
    await sign_in(client, code="code-g2")
    assert len(app.state.sessions) == 1
    status = (await client.get("/auth/status")).json()
    assert status["user"]["googleId"] == "g-2"


@pytest.mark.asyncio
async def test_abandoned_sessions_are_swept_on_next_login(settings, directory, provider):
    app = create_app(settings, directory=directory, provider=provider)
    store = app.state.sessions
    for _ in range(5):
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            await sign_in(ac)
    assert len(store) == 5

    for data in list(store._sessions.values()):
        data.expires_at = data.created_at

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        await sign_in(ac)
        assert (await ac.get("/auth/status")).json()["authenticated"] is True
    assert len(store) == 1


@pytest.mark.asyncio
async def test_failure_route(client):
    r = await client.get("/auth/failure")
    assert r.status_code == 401
    assert r.json()["error"] == "Authentication failed"
