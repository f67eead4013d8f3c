"""
GameCollectors Backend: API Endpoint Tests
==========================================

What:  HTTP-level tests through httpx.AsyncClient + ASGITransport against a
       throwaway SQLite database.
How:   The webhook dispatcher is replaced with a mock so scheduled events
       can be inspected without any outbound HTTP.

What we test:
    ✅ Identity required (401), non-owners get 404 on modification
    ✅ Rate-limited answers keep the error body shape and the request ID
    ✅ camelCase bodies, identifiers and hrefs in responses
    ✅ Create/update/delete schedule their webhook with the ad as payload
    ✅ Webhook registration: 201, duplicate 409, unknown type 400
    ✅ Test hooks broadcast the request body, with or without an identity
    ✅ Register, login and auth-welcome forwarding
"""

from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from gamecollectors.config import settings
from gamecollectors.models.webhook import WebhookEventType
from gamecollectors.services.auth_client import AuthServiceClient
from gamecollectors.services.user_service import user_service

OTHER = {"X-User-Email": "bob@example.com"}

GAME_BODY = {
    "gameTitle": "GoldenEye 007",
    "console": "Nintendo 64",
    "condition": 4,
    "imageUrl": "https://img.example.com/goldeneye.jpg",
    "price": 35.0,
    "city": "Stockholm",
}


@pytest.fixture
def dispatcher(monkeypatch):
    mock = MagicMock()
    mock.dispatch_detached = AsyncMock()
    monkeypatch.setattr("gamecollectors.routes.games.webhook_dispatcher", mock)
    monkeypatch.setattr("gamecollectors.routes.webhooks.webhook_dispatcher", mock)
    return mock


class TestIndex:
    @pytest.mark.asyncio
    async def test_anonymous(self, test_client):
        response = await test_client.get("/api")

        assert response.status_code == 200
        links = response.json()["links"]
        assert set(links) == {"index", "login", "register"}
        assert links["login"]["href"] == "http://test/api/login"

    @pytest.mark.asyncio
    async def test_identified(self, test_client, identity_headers):
        response = await test_client.get("/api", headers=identity_headers)

        links = response.json()["links"]
        assert "login" not in links
        assert links["webhooks"]["href"] == "http://test/api/webhooks"

    @pytest.mark.asyncio
    async def test_request_id_header(self, test_client):
        response = await test_client.get("/api", headers={"X-Request-ID": "abc123"})
        assert response.headers["X-Request-ID"] == "abc123"

    @pytest.mark.asyncio
    async def test_rate_limited_answer_carries_request_id(self, test_client, monkeypatch):
        monkeypatch.setattr(settings, "rate_limit_requests", 2)
        headers = {"X-User-Email": "flood@example.com", "X-Request-ID": "flood-1"}

        for _ in range(2):
            assert (await test_client.get("/api", headers=headers)).status_code == 200
        response = await test_client.get("/api", headers=headers)

        assert response.status_code == 429
        assert "Retry-After" in response.headers
        assert response.headers["X-Request-ID"] == "flood-1"
        body = response.json()
        assert body["error"] == "rate_limit_exceeded"
        assert body["request_id"] == "flood-1"


class TestGames:
    @pytest.mark.asyncio
    async def test_identity_required(self, test_client):
        response = await test_client.get("/api/games")

        assert response.status_code == 401
        assert response.json()["error"] == "unauthorized"

    @pytest.mark.asyncio
    async def test_create_game(self, test_client, identity_headers, dispatcher):
        response = await test_client.post("/api/games", json=GAME_BODY, headers=identity_headers)

        assert response.status_code == 201
        resource = response.json()["resource"]
        assert resource["resourceId"] == "n64/goldeneye-007"
        assert resource["console"] == "n64"
        assert resource["owner"] == "ann@example.com"
        assert resource["href"] == "http://test/api/games/n64/goldeneye-007"

        dispatcher.dispatch_detached.assert_awaited_once()
        event, payload, owner = dispatcher.dispatch_detached.await_args.args
        assert event is WebhookEventType.ON_CREATE_GAME
        assert payload["message"] == "Webhook: on-create-game"
        assert payload["resource"]["resourceId"] == "n64/goldeneye-007"
        assert owner == "ann@example.com"

    @pytest.mark.asyncio
    async def test_same_title_gets_suffix(self, test_client, identity_headers, dispatcher):
        await test_client.post("/api/games", json=GAME_BODY, headers=identity_headers)
        response = await test_client.post("/api/games", json=GAME_BODY, headers=OTHER)

        assert response.json()["resource"]["resourceId"] == "n64/goldeneye-007(1)"

    @pytest.mark.asyncio
    async def test_unsupported_console(self, test_client, identity_headers, dispatcher):
        body = dict(GAME_BODY, console="Vectrex")
        response = await test_client.post("/api/games", json=body, headers=identity_headers)

        assert response.status_code == 400
        assert response.json()["details"]["field"] == "console"
        dispatcher.dispatch_detached.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_read_routes(self, test_client, identity_headers, dispatcher):
        await test_client.post("/api/games", json=GAME_BODY, headers=identity_headers)

        listing = await test_client.get("/api/games", headers=OTHER)
        assert len(listing.json()["resources"]) == 1

        by_console = await test_client.get("/api/games/n64", headers=OTHER)
        assert len(by_console.json()["resources"]) == 1
        assert (await test_client.get("/api/games/snes", headers=OTHER)).json()["resources"] == []

        posted_by = await test_client.post(
            "/api/games/find-posted-by", params={"user": "ann@example.com"}, headers=OTHER
        )
        assert [r["resourceId"] for r in posted_by.json()["resources"]] == ["n64/goldeneye-007"]

        one = await test_client.get("/api/games/n64/goldeneye-007", headers=OTHER)
        assert one.status_code == 200
        assert one.json()["resource"]["gameTitle"] == "GoldenEye 007"

        missing = await test_client.get("/api/games/n64/perfect-dark", headers=OTHER)
        assert missing.status_code == 404

    @pytest.mark.asyncio
    async def test_update_by_owner(self, test_client, identity_headers, dispatcher):
        await test_client.post("/api/games", json=GAME_BODY, headers=identity_headers)
        body = dict(GAME_BODY, gameTitle="Perfect Dark", price=50.0)

        kept = await test_client.put(
            "/api/games/n64/goldeneye-007", json=body, headers=identity_headers
        )
        assert kept.status_code == 200
        assert kept.json()["resource"]["resourceId"] == "n64/goldeneye-007"

        rederived = await test_client.put(
            "/api/games/n64/goldeneye-007",
            params={"rederive": "true"},
            json=body,
            headers=identity_headers,
        )
        assert rederived.json()["resource"]["resourceId"] == "n64/perfect-dark"

        event = dispatcher.dispatch_detached.await_args.args[0]
        assert event is WebhookEventType.ON_UPDATE_GAME

    @pytest.mark.asyncio
    async def test_non_owner_gets_not_found(self, test_client, identity_headers, dispatcher):
        await test_client.post("/api/games", json=GAME_BODY, headers=identity_headers)
        dispatcher.dispatch_detached.reset_mock()

        put = await test_client.put("/api/games/n64/goldeneye-007", json=GAME_BODY, headers=OTHER)
        delete = await test_client.delete("/api/games/n64/goldeneye-007", headers=OTHER)

        assert put.status_code == 404
        assert delete.status_code == 404
        dispatcher.dispatch_detached.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_delete_by_owner(self, test_client, identity_headers, dispatcher):
        await test_client.post("/api/games", json=GAME_BODY, headers=identity_headers)

        response = await test_client.delete("/api/games/n64/goldeneye-007", headers=identity_headers)

        assert response.status_code == 200
        event, payload, _ = dispatcher.dispatch_detached.await_args.args
        assert event is WebhookEventType.ON_DELETE_GAME
        assert payload["resource"]["resourceId"] == "n64/goldeneye-007"
        gone = await test_client.get("/api/games/n64/goldeneye-007", headers=identity_headers)
        assert gone.status_code == 404


class TestWebhooks:
    @pytest.mark.asyncio
    async def test_register_list_delete(self, test_client, identity_headers):
        body = {"type": "on-create-game", "recipientUrl": "https://hooks.example.com/games"}

        created = await test_client.post("/api/webhooks", json=body, headers=identity_headers)
        assert created.status_code == 201
        resource = created.json()["resource"]
        assert resource["type"] == "on-create-game"
        assert resource["recipientUrl"] == "https://hooks.example.com/games"

        duplicate = await test_client.post("/api/webhooks", json=body, headers=identity_headers)
        assert duplicate.status_code == 409

        listed = await test_client.get("/api/webhooks", headers=identity_headers)
        assert len(listed.json()["resources"]) == 1
        assert (await test_client.get("/api/webhooks", headers=OTHER)).json()["resources"] == []

        hidden = await test_client.get(f"/api/webhooks/{resource['id']}", headers=OTHER)
        assert hidden.status_code == 404

        deleted = await test_client.delete(f"/api/webhooks/{resource['id']}", headers=identity_headers)
        assert deleted.status_code == 200
        assert (await test_client.get("/api/webhooks", headers=identity_headers)).json()["resources"] == []

    @pytest.mark.asyncio
    async def test_unknown_type(self, test_client, identity_headers):
        body = {"type": "on-sell-game", "recipientUrl": "https://hooks.example.com/games"}
        response = await test_client.post("/api/webhooks", json=body, headers=identity_headers)

        assert response.status_code == 400
        assert response.json()["details"]["field"] == "type"

    @pytest.mark.asyncio
    async def test_fire_test_hook(self, test_client, identity_headers, dispatcher):
        response = await test_client.post(
            "/api/webhooks/hook-test-1", json={"hello": "world"}, headers=identity_headers
        )

        assert response.status_code == 202
        event, payload, owner = dispatcher.dispatch_detached.await_args.args
        assert event is WebhookEventType.HOOK_TEST_1
        assert payload == {"hello": "world"}
        assert owner == "ann@example.com"

    @pytest.mark.asyncio
    async def test_test_hook_needs_no_identity(self, test_client, dispatcher):
        response = await test_client.post("/api/webhooks/hook-test-0", json={"ping": True})

        assert response.status_code == 202
        event, payload, owner = dispatcher.dispatch_detached.await_args.args
        assert event is WebhookEventType.HOOK_TEST_0
        assert payload == {"ping": True}
        assert owner is None

    @pytest.mark.asyncio
    async def test_unknown_test_hook(self, test_client, identity_headers, dispatcher):
        response = await test_client.post(
            "/api/webhooks/hook-test-7", json={}, headers=identity_headers
        )
        assert response.status_code == 422


class TestAccounts:
    @pytest.fixture(autouse=True)
    def auth_service(self, monkeypatch):
        def handler(request):
            if request.method == "GET":
                return httpx.Response(200, json={"message": "Welcome to the auth service"})
            if request.url.path == "/api/login":
                return httpx.Response(200, json={"token": "signed.jwt.value"})
            return httpx.Response(201, json={"message": "User created"})

        monkeypatch.setattr(
            user_service,
            "client",
            AuthServiceClient(base_uri="http://auth.test", transport=httpx.MockTransport(handler)),
        )
        monkeypatch.setattr(
            "gamecollectors.routes.api.auth_client",
            AuthServiceClient(base_uri="http://auth.test", transport=httpx.MockTransport(handler)),
        )

    @pytest.mark.asyncio
    async def test_register(self, test_client):
        body = {"email": "ann@example.com", "password": "0123456789"}

        first = await test_client.post("/api/register", json=body)
        assert first.status_code == 201
        assert first.json()["message"] == "User created"

        again = await test_client.post("/api/register", json=body)
        assert again.status_code == 409

    @pytest.mark.asyncio
    async def test_register_password_too_short(self, test_client):
        response = await test_client.post(
            "/api/register", json={"email": "ann@example.com", "password": "short"}
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_login_is_forwarded(self, test_client):
        response = await test_client.post(
            "/api/login", json={"email": "ann@example.com", "password": "0123456789"}
        )

        assert response.status_code == 200
        assert response.json() == {"token": "signed.jwt.value"}

    @pytest.mark.asyncio
    async def test_auth_welcome_is_forwarded(self, test_client):
        response = await test_client.get("/api/auth-welcome")

        assert response.status_code == 200
        assert response.json() == {"message": "Welcome to the auth service"}
