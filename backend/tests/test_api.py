"""
Tests for the HTTP API

Runs the FastAPI app in-process over httpx.ASGITransport with the database,
AI service, token store and geocoder replaced via dependency overrides.
The lifespan (table creation, scheduler) is not started.
"""

import pytest
import pytest_asyncio
from unittest.mock import AsyncMock, MagicMock

import httpx
from fastapi import FastAPI, Request
from starlette.routing import Match

from app.api.deps import get_geocoder
from app.auth import COOKIE_NAME, create_session_token
from app.config import get_settings
from app.database import get_db
from app.exceptions import LLMUnavailableError
from app.main import app
from app.middleware.metrics import PrometheusMiddleware
from app.services.ai_service import AIService, get_ai_service
from app.services.token_store import InMemoryTokenStore, PlatformToken, get_token_store

SAN_FRANCISCO = (37.7749, -122.4194)
OAKLAND = (37.8044, -122.2712)


@pytest.fixture
def geocoder():
    geocoder = MagicMock()
    geocoder.geocode = AsyncMock(return_value=SAN_FRANCISCO)
    return geocoder


@pytest.fixture
def tokens():
    return InMemoryTokenStore()


@pytest_asyncio.fixture
async def client(session, geocoder, tokens):
    async def override_get_db():
        yield session

    llm = MagicMock()
    llm.complete = AsyncMock(side_effect=LLMUnavailableError("No AI API key configured"))

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_ai_service] = lambda: AIService(llm=llm)
    app.dependency_overrides[get_token_store] = lambda: tokens
    app.dependency_overrides[get_geocoder] = lambda: geocoder

    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
async def maya(make_creator):
    return await make_creator(
        "maya@example.com", *SAN_FRANCISCO, accounts=[{"platform": "instagram"}], name="Maya", city="San Francisco"
    )


@pytest.fixture
async def devon(make_creator):
    return await make_creator("devon@example.com", *OAKLAND, accounts=[{"platform": "youtube"}], name="Devon")


def auth(user):
    return {"Authorization": f"Bearer {create_session_token(user.id)}"}


class TestHealthAndMetrics:

    @pytest.mark.asyncio
    async def test_health(self, client):
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}

    @pytest.mark.asyncio
    async def test_metrics(self, client):
        await client.get("/health")
        response = await client.get("/metrics")
        assert response.status_code == 200
        assert "http_requests_total" in response.text

    def test_endpoint_label_skips_routes_without_path(self):
        router_app = FastAPI()

        @router_app.get("/things/{thing_id}")
        async def get_thing(thing_id: str):
            return {}

        included = MagicMock(spec=["matches"])
        included.matches.return_value = (Match.FULL, {})
        router_app.router.routes.insert(0, included)

        request = Request({
            "type": "http",
            "method": "GET",
            "path": "/things/42",
            "root_path": "",
            "headers": [],
            "query_string": b"",
            "app": router_app,
        })

        assert PrometheusMiddleware(router_app)._get_endpoint(request) == "/things/{thing_id}"
        included.matches.assert_not_called()


class TestSession:
    """Login, logout and the auth gate."""

    @pytest.mark.asyncio
    async def test_protected_route_requires_token(self, client):
        response = await client.get("/api/user/profile")
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_garbage_token_rejected(self, client):
        response = await client.get("/api/user/profile", headers={"Authorization": "Bearer nope"})
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_login_sets_cookie(self, client, maya):
        response = await client.post(
            "/auth/login", json={"email": "maya@example.com", "password": get_settings().app_password}
        )

        assert response.status_code == 200
        assert response.json()["user_id"] == maya.id
        assert COOKIE_NAME in response.cookies

        check = await client.get("/auth/check", cookies={COOKIE_NAME: response.cookies[COOKIE_NAME]})
        assert check.json() == {"authenticated": True, "user_id": maya.id}

    @pytest.mark.asyncio
    async def test_login_wrong_password(self, client, maya):
        response = await client.post("/auth/login", json={"email": "maya@example.com", "password": "wrong-" * 3})
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_login_unknown_email(self, client):
        response = await client.post(
            "/auth/login", json={"email": "nobody@example.com", "password": get_settings().app_password}
        )
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_logout(self, client):
        response = await client.post("/auth/logout")
        assert response.status_code == 200


class TestUserRoutes:
    """Profile, location and social accounts."""

    @pytest.mark.asyncio
    async def test_profile(self, client, maya):
        response = await client.get("/api/user/profile", headers=auth(maya))

        assert response.status_code == 200
        body = response.json()
        assert body["email"] == "maya@example.com"
        assert body["has_location"] is True
        assert body["social_accounts"][0]["platform"] == "instagram"

    @pytest.mark.asyncio
    async def test_update_location_with_coordinates(self, client, maya, geocoder):
        response = await client.put(
            "/api/user/location",
            headers=auth(maya),
            json={"city": "Oakland", "latitude": OAKLAND[0], "longitude": OAKLAND[1], "search_radius": 25},
        )

        assert response.status_code == 200
        assert response.json()["latitude"] == OAKLAND[0]
        assert response.json()["search_radius"] == 25
        geocoder.geocode.assert_not_called()

    @pytest.mark.asyncio
    async def test_update_location_geocodes_city(self, client, make_creator, geocoder):
        user = await make_creator("new@example.com")

        response = await client.put(
            "/api/user/location", headers=auth(user), json={"city": "San Francisco", "state": "CA"}
        )

        assert response.status_code == 200
        assert (response.json()["latitude"], response.json()["longitude"]) == SAN_FRANCISCO
        geocoder.geocode.assert_awaited_once_with("San Francisco", state="CA", country=None, zip_code=None)

    @pytest.mark.asyncio
    async def test_geocoding_miss_leaves_coordinates_unset(self, client, make_creator, geocoder):
        user = await make_creator("new@example.com")
        geocoder.geocode.return_value = None

        response = await client.put("/api/user/location", headers=auth(user), json={"city": "Atlantis"})

        assert response.status_code == 200
        assert response.json()["has_location"] is False

    @pytest.mark.asyncio
    async def test_geocoding_miss_clears_previous_coordinates(self, client, maya, geocoder):
        geocoder.geocode.return_value = None

        response = await client.put(
            "/api/user/location", headers=auth(maya), json={"city": "Seattle", "state": "WA"}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["city"] == "Seattle"
        assert body["latitude"] is None
        assert body["longitude"] is None
        assert body["has_location"] is False

    @pytest.mark.asyncio
    @pytest.mark.parametrize("payload", [
        {"latitude": 95, "longitude": 0},
        {"latitude": 0, "longitude": -181},
        {"search_radius": 0},
        {"search_radius": None},
        {"latitude": 10},
    ])
    async def test_invalid_location(self, client, maya, payload):
        response = await client.put("/api/user/location", headers=auth(maya), json=payload)
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_social_accounts(self, client, maya):
        response = await client.get("/api/user/social-accounts", headers=auth(maya))
        assert [a["platform"] for a in response.json()] == ["instagram"]


class TestPlatformRoutes:
    """OAuth init/callback and profile connection."""

    @pytest.mark.asyncio
    async def test_init(self, client, maya):
        response = await client.get("/auth/youtube/init", headers=auth(maya))
        assert response.status_code == 200
        assert response.json()["auth_url"].startswith("https://accounts.google.com/")

    @pytest.mark.asyncio
    async def test_init_unsupported_platform(self, client, maya):
        response = await client.get("/auth/myspace/init", headers=auth(maya))
        assert response.status_code == 400
        assert response.json()["detail"]["error"] == "Invalid platform: myspace"

    @pytest.mark.asyncio
    async def test_creator_unknown_session(self, client, maya):
        response = await client.get("/api/creator/tiktok_missing", headers=auth(maya))
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_creator_unsupported_platform_in_session(self, client, maya, tokens):
        await tokens.put("friendster_1", PlatformToken(platform="friendster", access_token="x"))
        response = await client.get("/api/creator/friendster_1", headers=auth(maya))
        assert response.status_code == 400


class TestMatchRoutes:
    """Generation, listing, status, outreach and stats."""

    @pytest.mark.asyncio
    async def test_generate_requires_location(self, client, make_creator):
        user = await make_creator("new@example.com", accounts=[{"platform": "tiktok"}])

        response = await client.post("/api/matches/generate", headers=auth(user))

        assert response.status_code == 422
        assert response.json()["detail"]["setup_step"] == "location"

    @pytest.mark.asyncio
    async def test_generate_requires_accounts(self, client, make_creator):
        user = await make_creator("new@example.com", *SAN_FRANCISCO)

        response = await client.post("/api/matches/generate", headers=auth(user))

        assert response.status_code == 422
        assert response.json()["detail"]["setup_step"] == "platforms"

    @pytest.mark.asyncio
    async def test_generate_with_nobody_nearby(self, client, maya):
        response = await client.post("/api/matches/generate", headers=auth(maya), json={"max_distance": 5})

        assert response.status_code == 200
        assert response.json()["matches"] == []
        assert "Try increasing your search radius" in response.json()["message"]

    @pytest.mark.asyncio
    async def test_full_match_lifecycle(self, client, maya, devon):
        headers = auth(maya)

        generated = await client.post("/api/matches/generate", headers=headers, json={"max_distance": 25})
        assert generated.status_code == 200
        body = generated.json()
        assert body["message"] == "Found 1 potential collaborators"
        match = body["matches"][0]
        assert match["matched_user"]["name"] == "Devon"
        assert match["status"] == "pending"
        assert 8.3 < match["distance_miles"] < 8.4

        listed = await client.get("/api/matches", headers=headers, params={"status": "pending"})
        assert [m["id"] for m in listed.json()] == [match["id"]]

        outreach = await client.post(f"/api/matches/{match['id']}/outreach", headers=headers)
        assert outreach.status_code == 200
        assert "Maya" in outreach.json()["message"]

        sent = await client.post(f"/api/matches/{match['id']}/outreach/sent", headers=headers)
        assert sent.json()["status"] == "contacted"
        assert sent.json()["outreach_sent"] is True

        accepted = await client.put(
            f"/api/matches/{match['id']}/status", headers=headers, json={"status": "accepted", "notes": "Friday"}
        )
        assert accepted.status_code == 200
        assert accepted.json()["notes"] == "Friday"

        reverted = await client.put(f"/api/matches/{match['id']}/status", headers=headers, json={"status": "pending"})
        assert reverted.status_code == 409

        stats = await client.get("/api/stats", headers=headers)
        assert stats.json()["total_matches"] == 1
        assert stats.json()["matches_by_status"]["accepted"] == 1
        assert stats.json()["outreach_sent"] == 1

    @pytest.mark.asyncio
    async def test_match_belongs_to_subject(self, client, maya, devon):
        generated = await client.post("/api/matches/generate", headers=auth(maya))
        match_id = generated.json()["matches"][0]["id"]

        response = await client.put(
            f"/api/matches/{match_id}/status", headers=auth(devon), json={"status": "archived"}
        )

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_invalid_status_filter(self, client, maya):
        response = await client.get("/api/matches", headers=auth(maya), params={"status": "bogus"})
        assert response.status_code == 400
