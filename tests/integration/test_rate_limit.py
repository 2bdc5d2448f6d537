"""Integration tests for per-client rate limiting and gzip compression.

A bare FastAPI app carries the same middleware helpers as the real one,
with tiny budgets so the limits trip within a handful of requests.
"""

from __future__ import annotations

import pytest
from fastapi import FastAPI
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.testclient import TestClient

from wallpaperverse.api.middleware import ErrorHandlingMiddleware, configure_rate_limiting


def _build_app(requests: int = 5, search_requests: int = 2) -> FastAPI:
    app = FastAPI()
    app.add_middleware(ErrorHandlingMiddleware)
    configure_rate_limiting(
        app,
        requests=requests,
        window=900,
        search_requests=search_requests,
        search_window=60,
    )
    app.add_middleware(GZipMiddleware, minimum_size=1000)

    @app.get("/api/health")
    async def health() -> dict:
        return {"status": "healthy"}

    @app.get("/api/stats")
    async def stats() -> dict:
        return {"total_wallpapers": 0}

    @app.get("/api/search")
    async def search(q: str = "") -> dict:
        return {"items": [], "q": q}

    @app.get("/api/wallpapers/latest")
    async def latest() -> dict:
        return {"items": [{"title": "Misty forest at dawn", "id": i} for i in range(200)]}

    return app


@pytest.fixture
def client() -> TestClient:
    return TestClient(_build_app())


class TestGeneralLimit:
    def test_requests_over_budget_get_429(self, client):
        statuses = [client.get("/api/stats").status_code for _ in range(6)]

        assert statuses == [200] * 5 + [429]

    def test_429_body_and_headers(self, client):
        for _ in range(5):
            client.get("/api/stats")

        response = client.get("/api/stats")

        assert response.status_code == 429
        assert response.json() == {
            "error": "RATE_LIMIT_EXCEEDED",
            "detail": "Too many requests from this IP, please try again later.",
        }
        assert response.headers["X-RateLimit-Limit"] == "5"
        assert response.headers["X-RateLimit-Remaining"] == "0"
        assert int(response.headers["Retry-After"]) >= 1
        assert int(response.headers["X-RateLimit-Reset"]) > 0

    def test_allowed_responses_report_remaining_budget(self, client):
        first = client.get("/api/stats")
        second = client.get("/api/stats")

        assert first.headers["X-RateLimit-Limit"] == "5"
        assert first.headers["X-RateLimit-Remaining"] == "4"
        assert second.headers["X-RateLimit-Remaining"] == "3"

    def test_health_is_exempt(self, client):
        statuses = {client.get("/api/health").status_code for _ in range(10)}

        assert statuses == {200}
        assert "X-RateLimit-Limit" not in client.get("/api/health").headers
        assert client.get("/api/stats").status_code == 200

    def test_budget_is_per_app_instance(self):
        first = TestClient(_build_app(requests=1))
        second = TestClient(_build_app(requests=1))

        assert first.get("/api/stats").status_code == 200
        assert first.get("/api/stats").status_code == 429
        assert second.get("/api/stats").status_code == 200


class TestSearchLimit:
    def test_search_has_its_own_stricter_budget(self, client):
        statuses = [client.get("/api/search", params={"q": "forest"}).status_code for _ in range(3)]

        assert statuses == [200, 200, 429]
        blocked = client.get("/api/search", params={"q": "forest"})
        assert blocked.json()["error"] == "API_RATE_LIMIT_EXCEEDED"
        assert blocked.json()["detail"] == "Too many API requests, please slow down."

    def test_search_headers_report_the_search_tier(self, client):
        response = client.get("/api/search")

        assert response.headers["X-RateLimit-Limit"] == "2"
        assert response.headers["X-RateLimit-Remaining"] == "1"

    def test_exhausted_search_leaves_other_routes_open(self, client):
        for _ in range(3):
            client.get("/api/search")

        assert client.get("/api/stats").status_code == 200

    def test_search_counts_against_the_general_budget(self):
        client = TestClient(_build_app(requests=2, search_requests=10))

        assert client.get("/api/search").status_code == 200
        assert client.get("/api/search").status_code == 200
        response = client.get("/api/stats")
        assert response.status_code == 429
        assert response.json()["error"] == "RATE_LIMIT_EXCEEDED"


class TestCompression:
    def test_large_responses_are_gzipped(self, client):
        response = client.get("/api/wallpapers/latest", headers={"Accept-Encoding": "gzip"})

        assert response.status_code == 200
        assert response.headers["content-encoding"] == "gzip"
        assert len(response.json()["items"]) == 200

    def test_small_responses_are_not(self, client):
        response = client.get("/api/stats", headers={"Accept-Encoding": "gzip"})

        assert "content-encoding" not in response.headers
