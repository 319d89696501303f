"""Tests for the FastAPI routes."""

from __future__ import annotations

from datetime import date
from unittest.mock import patch

import pytest
from conftest import StaticCheck, StaticSource
from fastapi.testclient import TestClient

from healthdesk.api.server import TOKEN_HEADER, create_app
from healthdesk.health.engine import CACHE_GROUP, CACHE_KEY
from healthdesk.health.models import Category, HealthStatus


@pytest.fixture
def client(settings, cache):
    with TestClient(create_app(settings, cache)) as c:
        yield c


@pytest.fixture
def custom_source(settings):
    """Swap the configured sources for a single ad hoc source."""
    source = StaticSource(
        name="custom",
        categories=[
            Category(slug="system", label="System", sort_order=10),
            Category(slug="content", label="Content", sort_order=80),
        ],
        checks=[
            StaticCheck("system.ok", "system", HealthStatus.GOOD),
            StaticCheck("content.warn", "content", HealthStatus.WARNING),
        ],
    )
    settings.sources = ["custom"]
    with patch.dict("healthdesk.sources.BUILTIN_SOURCES", {"custom": lambda s: source}):
        yield source


# ── Metadata ─────────────────────────────────────────────────────────────────


class TestMetadata:
    def test_metadata(self, client):
        resp = client.get("/api/health/metadata")
        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        data = body["data"]
        assert "system" in data["categories"]
        assert data["categories"]["system"]["sortOrder"] == 10
        assert "core" in data["providers"]
        slugs = [c["slug"] for c in data["checks"]]
        assert "security.debug_mode" in slugs

    def test_no_checks_is_server_error(self, client, settings):
        settings.sources = []
        resp = client.get("/api/health/metadata")
        assert resp.status_code == 500
        body = resp.json()
        assert body["success"] is False
        assert "No health checks" in body["message"]

    def test_unknown_source_is_server_error(self, client, settings):
        settings.sources = ["nope"]
        resp = client.get("/api/health/metadata")
        assert resp.status_code == 500
        assert resp.json()["message"] == "Unknown check source: nope"


# ── Category + single check ──────────────────────────────────────────────────


class TestCategory:
    def test_run_category(self, client, custom_source):
        resp = client.post("/api/health/category", params={"category": "content"})
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["category"] == "content"
        assert list(data["results"]) == ["content.warn"]
        assert data["results"]["content.warn"]["status"] == "warning"

    def test_category_from_form_body(self, client, custom_source):
        resp = client.post("/api/health/category", data={"category": "system"})
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["category"] == "system"
        assert list(data["results"]) == ["system.ok"]

    def test_empty_form_body_is_missing_category(self, client):
        resp = client.post("/api/health/category", data={"other": "x"})
        assert resp.status_code == 400
        assert resp.json()["message"] == "Missing category"

    def test_missing_category(self, client):
        resp = client.post("/api/health/category")
        assert resp.status_code == 400
        assert resp.json() == {"success": False, "message": "Missing category", "data": None}

    def test_failing_check_contained(self, client, custom_source):
        custom_source.checks.append(StaticCheck("content.boom", "content", error="disk on fire"))
        resp = client.post("/api/health/category", params={"category": "content"})
        assert resp.status_code == 200
        results = resp.json()["data"]["results"]
        assert results["content.boom"]["status"] == "warning"
        assert results["content.boom"]["description"] == "Check failed: disk on fire"
        assert results["content.warn"]["status"] == "warning"


class TestSingleCheck:
    def test_run_check(self, client):
        resp = client.get("/api/health/check", params={"slug": "security.debug_mode"})
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["slug"] == "security.debug_mode"
        assert data["status"] == "good"
        assert set(data) == {
            "status", "title", "description", "slug",
            "category", "provider", "actionUrl", "docsUrl",
        }

    def test_missing_slug(self, client):
        resp = client.get("/api/health/check")
        assert resp.status_code == 400
        assert resp.json()["message"] == "Missing check slug"

    def test_unknown_slug(self, client):
        resp = client.get("/api/health/check", params={"slug": "nope.nope"})
        assert resp.status_code == 404
        assert resp.json()["message"] == "Check not found: nope.nope"


# ── Full runs ────────────────────────────────────────────────────────────────


class TestRun:
    def test_run_sorted(self, client, custom_source):
        resp = client.get("/api/health/run")
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert [r["slug"] for r in data["results"]] == ["content.warn", "system.ok"]
        assert data["summary"] == {"critical": 0, "warning": 1, "good": 1, "total": 2}
        assert data["lastRun"]

    def test_run_failure(self, client, custom_source):
        custom_source.checks.append(StaticCheck("system.boom", "system", error="boom"))
        resp = client.get("/api/health/run")
        assert resp.status_code == 500
        assert resp.json()["message"] == "Check system.boom failed: boom"

    def test_export(self, client, custom_source):
        resp = client.get("/api/health/export")
        assert resp.status_code == 200
        expected = f'attachment; filename="health-report-{date.today().isoformat()}.json"'
        assert resp.headers["content-disposition"] == expected
        assert resp.json()["summary"]["total"] == 2

    def test_export_html(self, client, custom_source, settings):
        settings.site_name = "Example <Site>"
        custom_source.checks.append(StaticCheck("system.crit", "system", HealthStatus.CRITICAL))
        resp = client.get("/api/health/export/html")
        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/html")
        expected = f'attachment; filename="health-report-{date.today().isoformat()}.html"'
        assert resp.headers["content-disposition"] == expected
        body = resp.text
        assert "Health Check Report - Example &lt;Site&gt;" in body
        assert '<span class="badge critical">Critical</span>' in body
        # categories appear in sort order
        assert body.index("<h2>System</h2>") < body.index("<h2>Content</h2>")

    def test_export_html_failure(self, client, custom_source):
        custom_source.checks.append(StaticCheck("system.boom", "system", error="boom"))
        resp = client.get("/api/health/export/html")
        assert resp.status_code == 500
        assert resp.json()["success"] is False


class TestStats:
    def test_stats_uncached(self, client, custom_source, cache):
        resp = client.get("/api/health/stats")
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert (data["critical"], data["warning"], data["good"], data["total"]) == (0, 1, 1, 2)
        assert cache.get(CACHE_KEY, CACHE_GROUP) is None

    def test_stats_cached(self, client, custom_source):
        first = client.get("/api/health/stats", params={"cache": 1, "cache_ttl": 60}).json()["data"]
        second = client.get("/api/health/stats", params={"cache": 1, "cache_ttl": 60}).json()["data"]
        assert first == second
        assert all(c.calls == 1 for c in custom_source.checks)

    def test_zero_ttl_bypasses_cache(self, client, custom_source):
        client.get("/api/health/stats", params={"cache": 1, "cache_ttl": 0})
        client.get("/api/health/stats", params={"cache": 1, "cache_ttl": 0})
        assert all(c.calls == 2 for c in custom_source.checks)

    def test_clear_cache(self, client, custom_source, cache):
        client.get("/api/health/stats", params={"cache": 1, "cache_ttl": 60})
        resp = client.post("/api/health/cache/clear")
        assert resp.status_code == 200
        assert resp.json()["message"] == "Health check cache cleared"
        assert cache.get(CACHE_KEY, CACHE_GROUP) is None


# ── Auth ─────────────────────────────────────────────────────────────────────


class TestTokenAuth:
    @pytest.fixture
    def secured(self, settings, cache):
        settings.api_token = "s3cret-token-value"
        with TestClient(create_app(settings, cache)) as c:
            yield c

    def test_missing_token(self, secured):
        resp = secured.get("/api/health/metadata")
        assert resp.status_code == 401
        assert resp.json()["success"] is False

    def test_wrong_token(self, secured):
        resp = secured.get("/api/health/metadata", headers={TOKEN_HEADER: "nope"})
        assert resp.status_code == 401

    def test_valid_token(self, secured):
        resp = secured.get("/api/health/metadata", headers={TOKEN_HEADER: "s3cret-token-value"})
        assert resp.status_code == 200
