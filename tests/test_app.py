"""
System endpoint, error rendering and middleware tests.
"""

from __future__ import annotations

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from httpx import AsyncClient

from tasklane.core.errors import AppError, Conflict, Forbidden, NotFound, Unauthorized
from tasklane.core.middleware import (
    REQUEST_ID_HEADER,
    SECURITY_HEADERS,
    RequestContextMiddleware,
    SecurityHeadersMiddleware,
)
from tasklane.main import app_error_handler


# ---------------------------------------------------------------------------
# System endpoints
# ---------------------------------------------------------------------------

class TestSystemEndpoints:
    @pytest.mark.asyncio
    async def test_health_check(self, client: AsyncClient):
        """Health endpoint should return status ok."""
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    @pytest.mark.asyncio
    async def test_ready_check(self, client: AsyncClient):
        """Ready endpoint should reach the database."""
        response = await client.get("/ready")
        assert response.status_code == 200
        assert response.json() == {"status": "ready"}

    @pytest.mark.asyncio
    async def test_api_root(self, client: AsyncClient):
        response = await client.get("/api/v1/")
        assert response.status_code == 200
        data = response.json()
        assert data["api"] == "v1"
        assert "/orgs/{orgSlug}/projects" in data["endpoints"]


# ---------------------------------------------------------------------------
# Error rendering
# ---------------------------------------------------------------------------

class TestErrors:
    def test_to_dict_shape(self):
        assert NotFound("Organization not found").to_dict() == {
            "error": {"code": "NOT_FOUND", "message": "Organization not found", "status": 404}
        }

    def test_default_messages(self):
        assert Forbidden().message == "Forbidden"
        assert Conflict().status_code == 409
        assert AppError().status_code == 500

    def _make_app(self, exc: AppError) -> FastAPI:
        app = FastAPI()
        app.add_exception_handler(AppError, app_error_handler)

        @app.get("/boom")
        async def boom():
            raise exc

        return app

    def test_handler_renders_error(self):
        client = TestClient(self._make_app(Forbidden("Missing permission: org:delete")))
        resp = client.get("/boom")
        assert resp.status_code == 403
        assert resp.json()["error"]["message"] == "Missing permission: org:delete"
        assert "WWW-Authenticate" not in resp.headers

    def test_handler_challenges_on_401(self):
        client = TestClient(self._make_app(Unauthorized()))
        resp = client.get("/boom")
        assert resp.status_code == 401
        assert resp.headers["WWW-Authenticate"] == "Bearer"


# ---------------------------------------------------------------------------
# Middleware
# ---------------------------------------------------------------------------

class TestSecurityHeadersMiddleware:
    def test_headers_present(self):
        app = FastAPI()
        app.add_middleware(SecurityHeadersMiddleware)

        @app.get("/test")
        async def test_endpoint():
            return {"ok": True}

        client = TestClient(app)
        resp = client.get("/test")
        assert resp.status_code == 200
        for header, value in SECURITY_HEADERS.items():
            assert resp.headers.get(header) == value

    @pytest.mark.asyncio
    async def test_headers_on_real_app_errors(self, client: AsyncClient):
        resp = await client.get("/auth/me")
        assert resp.status_code == 401
        assert resp.headers["X-Frame-Options"] == "DENY"


class TestRequestContextMiddleware:
    def _make_app(self) -> FastAPI:
        import structlog

        app = FastAPI()
        app.add_middleware(RequestContextMiddleware)

        @app.get("/ctx")
        async def ctx():
            return structlog.contextvars.get_contextvars()

        return app

    def test_binds_request_context(self):
        client = TestClient(self._make_app())
        resp = client.get("/ctx", headers={REQUEST_ID_HEADER: "req-123"})
        assert resp.status_code == 200
        assert resp.json() == {"request_id": "req-123", "method": "GET", "path": "/ctx"}
        assert resp.headers[REQUEST_ID_HEADER] == "req-123"

    def test_generates_request_id(self):
        client = TestClient(self._make_app())
        resp = client.get("/ctx")
        assert len(resp.headers[REQUEST_ID_HEADER]) == 32
        assert resp.json()["request_id"] == resp.headers[REQUEST_ID_HEADER]
