"""
Tests for the rewind upload API.
"""

import pytest
from fastapi.testclient import TestClient

from chatrewind import __version__
from chatrewind.api.app import app
from chatrewind.config import settings


@pytest.fixture
def client():
    """Create test client."""
    return TestClient(app)


@pytest.fixture
def export_payload(make_conversation, export_bytes, scenario_a):
    return export_bytes(
        [scenario_a, make_conversation(["plan my trip itinerary"], title="Lisbon trip")]
    )


class TestHealth:
    """Tests for health endpoints."""

    def test_root(self, client: TestClient):
        response = client.get("/")

        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    def test_health(self, client: TestClient):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy", "version": __version__}


class TestRewindUpload:
    """Tests for POST /rewind."""

    def test_json_upload(self, client: TestClient, export_payload: bytes):
        response = client.post(
            "/rewind",
            files={"file": ("conversations.json", export_payload, "application/json")},
            data={"client_id": "client-1"},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["client_id"] == "client-1"
        assert body["rewind"]["total_conversations"] >= 1
        assert body["bangers"]["page"]
        assert all(c["title"] is None for c in body["sanitized"]["conversations"])

    def test_zip_upload(self, client: TestClient, export_payload: bytes, make_zip):
        archive = make_zip([("export/conversations.json", export_payload)])

        response = client.post(
            "/rewind", files={"file": ("export.zip", archive, "application/zip")}
        )

        assert response.status_code == 200
        assert response.json()["client_id"] is None

    def test_mild_share_set(self, client: TestClient, make_conversation, export_bytes):
        angry = [
            make_conversation(["wtf why is this broken???", "WHY IS THIS STILL BROKEN", "damn it"])
            for _ in range(5)
        ]

        response = client.post(
            "/rewind",
            files={"file": ("conversations.json", export_bytes(angry), "application/json")},
            data={"spice": "mild"},
        )

        assert response.status_code == 200
        categories = {b["category"] for b in response.json()["bangers"]["share"]}
        assert not categories & {"rage", "nickname"}

    def test_empty_export(self, client: TestClient):
        response = client.post(
            "/rewind", files={"file": ("conversations.json", b"[]", "application/json")}
        )

        assert response.status_code == 200
        assert response.json()["rewind"]["total_conversations"] == 0

    def test_unsupported_type(self, client: TestClient):
        response = client.post("/rewind", files={"file": ("notes.txt", b"[]", "text/plain")})

        assert response.status_code == 415

    def test_malformed_export(self, client: TestClient):
        response = client.post(
            "/rewind",
            files={"file": ("conversations.json", b'[{"title": "oops', "application/json")},
        )

        assert response.status_code == 422
        assert response.json()["detail"] == "could_not_read_export"

    def test_zip_without_target(self, client: TestClient, make_zip):
        archive = make_zip([("user.json", b"{}")])

        response = client.post("/rewind", files={"file": ("export.zip", archive, "application/zip")})

        assert response.status_code == 422

    def test_too_large(self, client: TestClient, export_payload: bytes, monkeypatch):
        monkeypatch.setattr(settings, "rewind_max_upload_bytes", 10)

        response = client.post(
            "/rewind", files={"file": ("conversations.json", export_payload, "application/json")}
        )

        assert response.status_code == 413

    def test_missing_file(self, client: TestClient):
        response = client.post("/rewind", data={"client_id": "x"})

        assert response.status_code == 422

    def test_invalid_spice(self, client: TestClient, export_payload: bytes):
        response = client.post(
            "/rewind",
            files={"file": ("conversations.json", export_payload, "application/json")},
            data={"spice": "extra-hot"},
        )

        assert response.status_code == 422
