"""Fixtures for API route tests: the app wired to an in-memory search service."""
from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from twmt_search.api.app import app


@pytest.fixture
def client(monkeypatch, service):
    monkeypatch.setattr("twmt_search.api.dependencies.get_search_service", lambda: service)
    return TestClient(app)
