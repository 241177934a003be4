"""Tests for the saved search API routes."""
from __future__ import annotations


def _create(client, name: str = "Iron", query: str = "iron", **extra) -> dict:
    resp = client.post("/api/saved-searches", json={"name": name, "query": query, **extra})
    assert resp.status_code == 201
    return resp.json()["search"]


class TestSavedSearchRoutes:
    """CRUD over /api/saved-searches."""

    def test_create_and_list(self, client):
        created = _create(client, filter={"project_ids": ["p1"]})
        assert created["usage_count"] == 0
        assert created["filter"]["project_ids"] == ["p1"]

        resp = client.get("/api/saved-searches")
        data = resp.json()
        assert data["total"] == 1
        assert data["searches"][0]["id"] == created["id"]

    def test_get(self, client):
        created = _create(client)
        resp = client.get(f"/api/saved-searches/{created['id']}")
        assert resp.status_code == 200
        assert resp.json()["name"] == "Iron"

    def test_get_missing(self, client):
        resp = client.get("/api/saved-searches/nope")
        assert resp.status_code == 404
        assert resp.json()["detail"]["error"] == "not_found"

    def test_duplicate_name(self, client):
        _create(client)
        resp = client.post("/api/saved-searches", json={"name": "Iron", "query": "bronze"})
        assert resp.status_code == 409

    def test_blank_name_rejected(self, client):
        resp = client.post("/api/saved-searches", json={"name": "   ", "query": "iron"})
        assert resp.status_code == 400
        assert resp.json()["detail"]["error"] == "invalid_input"

    def test_missing_fields(self, client):
        assert client.post("/api/saved-searches", json={"name": "x"}).status_code == 422

    def test_update(self, client):
        created = _create(client, filter={"statuses": ["pending"]})
        resp = client.put(
            f"/api/saved-searches/{created['id']}",
            json={"query": "bronze", "clear_filter": True},
        )
        assert resp.status_code == 200
        search = resp.json()["search"]
        assert search["query"] == "bronze"
        assert search["name"] == "Iron"
        assert search["filter"] is None

    def test_delete(self, client):
        created = _create(client)
        assert client.delete(f"/api/saved-searches/{created['id']}").json() == {"success": True}
        assert client.delete(f"/api/saved-searches/{created['id']}").status_code == 404

    def test_run(self, client):
        created = _create(client, filter={"types": ["translation_memory"]})
        resp = client.post(f"/api/saved-searches/{created['id']}/run")
        assert resp.status_code == 200
        assert {r["id"] for r in resp.json()["results"]} == {"tm1", "tm3"}
        assert client.get(f"/api/saved-searches/{created['id']}").json()["usage_count"] == 1

    def test_run_missing(self, client):
        assert client.post("/api/saved-searches/nope/run").status_code == 404
