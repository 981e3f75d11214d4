"""
tests/test_health.py -- Health endpoint, security headers, and error pages.

Covers:
  - 200 response with status, version, and components fields
  - components.database reports 'ok' against the live store
  - No authentication required
  - Security headers on every response; CSP only in production
  - Unknown paths render the HTML 404 page
"""

from __future__ import annotations

from core.config import Settings


def test_health_returns_200_with_components(web):
    resp = web.client.get("/api/v1/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "healthy"
    assert "version" in data
    assert data["components"]["app"] == "ok"
    assert data["components"]["database"] == "ok"


def test_health_no_auth_required(web):
    resp = web.client.get("/api/v1/health", headers={})
    assert resp.status_code == 200


def test_security_headers_present(web):
    for path in ("/login", "/api/v1/health", "/users"):
        resp = web.client.get(path)
        assert resp.headers["x-frame-options"] == "DENY"
        assert resp.headers["x-content-type-options"] == "nosniff"
        assert resp.headers["referrer-policy"] == "strict-origin-when-cross-origin"
        assert resp.headers["permissions-policy"] == "camera=(), microphone=(), geolocation=()"


def test_no_csp_outside_production(web):
    assert "content-security-policy" not in web.client.get("/login").headers


def test_csp_in_production(web):
    state = web.client.app.state
    original = state.settings
    state.settings = Settings(
        app_env="production",
        database_url="sqlite:///crudadmin.db",
        session_secret="p" * 64,
        _env_file=None,
    )
    try:
        resp = web.client.get("/api/v1/health")
    finally:
        state.settings = original
    assert resp.headers["content-security-policy"].startswith("default-src 'self';")


def test_unknown_path_is_html_404(web):
    resp = web.client.get("/definitely-not-here")
    assert resp.status_code == 404
    assert "text/html" in resp.headers["content-type"]
