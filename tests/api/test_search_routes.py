"""Tests for the search API routes."""
from __future__ import annotations

from twmt_search.models import StorageError


class TestRunSearch:
    """GET /api/search"""

    def test_all_scope(self, client):
        resp = client.get("/api/search", params={"q": "iron"})
        assert resp.status_code == 200
        data = resp.json()
        assert data["total_count"] == 4
        assert data["current_page"] == 1
        assert data["page_size"] == 50
        assert data["error"] is None
        assert data["summary"] == '"iron" in everything'
        assert {r["id"] for r in data["results"]} == {"u1", "u5", "tm1", "tm3"}

    def test_source_scope_with_filter(self, client):
        resp = client.get("/api/search", params={"q": "iron", "scope": "source", "projects": "p2"})
        data = resp.json()
        assert [r["id"] for r in data["results"]] == ["u5"]
        assert data["results"][0]["type"] == "translation_unit"
        assert data["results"][0]["project_name"] == "Rome Campaign"

    def test_regex(self, client):
        resp = client.get(
            "/api/search",
            params={"q": "^Iron", "scope": "source", "regex": "true", "case_sensitive": "true"},
        )
        assert [r["id"] for r in resp.json()["results"]] == ["u5", "u1"]

    def test_bad_query_is_reported_in_page(self, client):
        resp = client.get("/api/search", params={"q": "x UNION SELECT 1"})
        assert resp.status_code == 200
        assert resp.json()["error"] == "Invalid search query"
        assert resp.json()["results"] == []

    def test_invalid_page_size(self, client):
        resp = client.get("/api/search", params={"q": "iron", "page_size": 30})
        assert resp.status_code == 400

    def test_invalid_type(self, client):
        resp = client.get("/api/search", params={"q": "iron", "types": "planet"})
        assert resp.status_code == 400

    def test_page_must_be_positive(self, client):
        resp = client.get("/api/search", params={"q": "iron", "page": 0})
        assert resp.status_code == 422


class TestSourceEndpoints:
    """Per-source search endpoints."""

    def test_units(self, client):
        resp = client.get("/api/search/units", params={"q": "title", "key_only": "true"})
        assert resp.status_code == 200
        data = resp.json()
        assert data["total"] == 2
        assert {r["id"] for r in data["results"]} == {"u3", "u6"}

    def test_versions_language_filter(self, client):
        resp = client.get("/api/search/versions", params={"q": "schildinfanterie", "languages": "de"})
        data = resp.json()
        assert [r["id"] for r in data["results"]] == ["v3"]
        assert data["results"][0]["language_name"] == "German"

    def test_memory(self, client):
        resp = client.get("/api/search/memory", params={"q": "iron", "target_language": "de"})
        assert [r["id"] for r in resp.json()["results"]] == ["tm3"]

    def test_glossary(self, client):
        resp = client.get("/api/search/glossary", params={"q": "50_50"})
        data = resp.json()
        assert [r["id"] for r in data["results"]] == ["g3"]
        assert data["results"][0]["type"] == "glossary_entry"

    def test_all_with_types(self, client):
        resp = client.get("/api/search/all", params={"q": "iron", "types": "translation_memory"})
        assert {r["id"] for r in resp.json()["results"]} == {"tm1", "tm3"}

    def test_regex_endpoint(self, client):
        resp = client.get("/api/search/regex", params={"pattern": r"\bfer\b", "search_in": "target"})
        assert {r["id"] for r in resp.json()["results"]} == {"v1", "v5"}


class TestErrorMapping:
    """Search failures map onto HTTP statuses."""

    def test_empty_query(self, client):
        resp = client.get("/api/search/units", params={"q": "  "})
        assert resp.status_code == 400
        assert resp.json()["detail"]["error"] == "empty_query"

    def test_injection(self, client):
        resp = client.get("/api/search/versions", params={"q": "fer; DROP TABLE x"})
        assert resp.status_code == 400
        assert resp.json()["detail"] == {"error": "injection_rejected", "message": "Invalid search query"}

    def test_invalid_pattern(self, client):
        resp = client.get("/api/search/regex", params={"pattern": "[invalid"})
        assert resp.status_code == 400
        assert resp.json()["detail"]["error"] == "invalid_pattern"

    def test_storage_failure(self, client, service, monkeypatch):
        async def broken(*_args, **_kwargs):
            raise StorageError("unit search")

        monkeypatch.setattr(service.executor, "search_units", broken)
        resp = client.get("/api/search/units", params={"q": "iron"})
        assert resp.status_code == 500
        assert resp.json()["detail"]["error"] == "storage_failure"


class TestValidate:
    """POST /api/search/validate"""

    def test_valid(self, client):
        resp = client.post("/api/search/validate", json={"query": '"heavy shield" infantry'})
        assert resp.status_code == 200
        data = resp.json()
        assert data["valid"] is True
        assert data["expression"] == '"heavy shield" infantry'
        assert data["phrases"] == ["heavy shield"]
        assert data["terms"] == ["infantry"]

    def test_prefix(self, client):
        resp = client.post("/api/search/validate", json={"query": "iron spear", "prefix_search": True})
        assert resp.json()["expression"] == "iron spear*"

    def test_invalid(self, client):
        resp = client.post("/api/search/validate", json={"query": "shield AND"})
        data = resp.json()
        assert data["valid"] is False
        assert data["error"] == "invalid_syntax"

    def test_unknown_operator(self, client):
        resp = client.post("/api/search/validate", json={"query": "iron", "operator": "xor"})
        assert resp.status_code == 400
