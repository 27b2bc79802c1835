"""
Tests for the /templates API.
"""

import asyncio

import pytest
from fastapi.testclient import TestClient

from invoice_templates.api.main import app
from invoice_templates.repository.template_store import get_template_store, reset_template_store


@pytest.fixture
def client(monkeypatch):
    monkeypatch.setenv("TEMPLATE_BACKEND", "memory")
    reset_template_store()
    yield TestClient(app)
    reset_template_store()


def _region(field, left, top, right, bottom, **extra):
    return {"field": field, "left": left, "top": top, "right": right, "bottom": bottom, **extra}


class TestTemplatesAPI:
    def test_health(self, client):
        assert client.get("/health").json() == {"status": "ok"}

    def test_unknown_issuer_has_empty_template(self, client):
        response = client.get("/templates/acme")

        assert response.status_code == 200
        assert response.json() == {"issuer_key": "acme", "regions": []}

    def test_merge_twice(self, client):
        client.post("/templates/acme/merge", json={"regions": [_region("invoice_number", 0.10, 0.05, 0.40, 0.08)]})
        response = client.post(
            "/templates/acme/merge", json={"regions": [_region("invoice_number", 0.12, 0.06, 0.42, 0.09)]}
        )

        assert response.status_code == 200
        region = response.json()["regions"][0]
        assert region["sample_count"] == 2
        assert region["confidence"] == 1.0
        assert region["left"] == pytest.approx(0.11)

        stored = client.get("/templates/acme").json()["regions"]
        assert stored == response.json()["regions"]

    def test_put_replaces(self, client):
        client.put("/templates/acme", json={"regions": [_region("vat", 0.1, 0.2, 0.3, 0.25)]})
        response = client.put(
            "/templates/acme", json={"regions": [_region("total", 0.6, 0.8, 0.9, 0.85, sample_count=4)]}
        )

        assert response.status_code == 200
        stored = client.get("/templates/acme").json()["regions"]
        assert [r["field"] for r in stored] == ["total"]
        assert stored[0]["sample_count"] == 4

    def test_duplicate_fields_rejected(self, client):
        response = client.post("/templates/acme/merge", json={"regions": [
            _region("vat", 0.1, 0.2, 0.3, 0.25),
            _region("vat", 0.1, 0.2, 0.3, 0.26),
        ]})

        assert response.status_code == 422
        assert "Duplicate field" in response.json()["detail"]

    def test_corrupt_template_reported(self, client):
        asyncio.run(get_template_store().backend.set("acme", '{"regions":[{"field":"vat"'))

        assert client.get("/templates/acme").status_code == 409
        response = client.post("/templates/acme/merge", json={"regions": [_region("vat", 0.1, 0.2, 0.3, 0.25)]})
        assert response.status_code == 409
