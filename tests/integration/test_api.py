"""Integration tests for instructiongen.api.main — FastAPI REST API endpoints.

All tests use the FastAPI TestClient with the orchestrator bound to a mocked
gateway, so no Gemini request is ever made.  Tests cover every endpoint:

- ``GET /api/config`` — Configuration delivery.
- ``POST /api/sessions`` / ``GET`` / ``DELETE`` — Session lifecycle.
- ``PUT`` / ``DELETE /api/sessions/{sid}/original`` — Original image.
- ``POST /api/sessions/{sid}/editions`` / ``DELETE .../{eid}`` — Editions.
- ``GET /api/sessions/{sid}/images/{id}`` — Image previews.
- ``POST /api/sessions/{sid}/analyze`` — Analysis runs.
- ``POST /api/sessions/{sid}/reset`` — Reset.
- ``GET /api/sessions/{sid}/report`` — Markdown report.
"""

from __future__ import annotations

import pytest

from instructiongen.core.gateway import ServiceError
from instructiongen.core.orchestrator import ANALYSIS_FAILED_MESSAGE

# ---------------------------------------------------------------------------
# Helpers.
# ---------------------------------------------------------------------------


@pytest.fixture
def session_id(test_client) -> str:
    resp = test_client.post("/api/sessions")
    assert resp.status_code == 201
    return resp.json()["id"]


@pytest.fixture
def ready_session_id(test_client, session_id, make_image_bytes) -> str:
    """A session with an original and two editions."""
    _upload_original(test_client, session_id, make_image_bytes("PNG", "white"))
    _add_edition(test_client, session_id, make_image_bytes("PNG", "red"), "edit1.png")
    _add_edition(test_client, session_id, make_image_bytes("JPEG", "green"), "edit2.jpg")
    return session_id


def _upload_original(client, sid, data, filename="original.png", mime="image/png"):
    return client.put(
        f"/api/sessions/{sid}/original",
        files={"file": (filename, data, mime)},
    )


def _add_edition(client, sid, data, filename="edit.png", mime="image/png"):
    return client.post(
        f"/api/sessions/{sid}/editions",
        files={"file": (filename, data, mime)},
    )


# ---------------------------------------------------------------------------
# Configuration endpoint tests.
# ---------------------------------------------------------------------------


class TestGetConfig:
    """Test GET /api/config — application configuration."""

    def test_config_returns_limits(self, test_client):
        resp = test_client.get("/api/config")
        assert resp.status_code == 200
        data = resp.json()
        assert "version" in data
        assert "model_id" in data
        assert data["max_editions"] >= 1
        assert "image/png" in data["allowed_mime_types"]


# ---------------------------------------------------------------------------
# Session lifecycle tests.
# ---------------------------------------------------------------------------


class TestSessions:
    """Test session creation, lookup, and deletion."""

    def test_new_session_is_idle(self, test_client, session_id):
        resp = test_client.get(f"/api/sessions/{session_id}")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "IDLE"
        assert data["can_analyze"] is False
        assert data["original"] is None
        assert data["editions"] == []

    def test_unknown_session_404(self, test_client):
        assert test_client.get("/api/sessions/nope").status_code == 404

    def test_delete_session(self, test_client, session_id):
        resp = test_client.delete(f"/api/sessions/{session_id}")
        assert resp.status_code == 200
        assert resp.json()["deleted"] == session_id
        assert test_client.get(f"/api/sessions/{session_id}").status_code == 404

    def test_delete_unknown_session_404(self, test_client):
        assert test_client.delete("/api/sessions/nope").status_code == 404


# ---------------------------------------------------------------------------
# Upload tests.
# ---------------------------------------------------------------------------


class TestOriginalUpload:
    """Test PUT/DELETE /api/sessions/{sid}/original."""

    def test_upload_original(self, test_client, session_id, png_bytes):
        resp = _upload_original(test_client, session_id, png_bytes)
        assert resp.status_code == 200
        original = resp.json()["original"]
        assert original["id"] == "original"
        assert original["mime_type"] == "image/png"
        assert original["size"] == len(png_bytes)

    def test_generic_content_type_is_detected(self, test_client, session_id, jpeg_bytes):
        resp = _upload_original(
            test_client, session_id, jpeg_bytes, "photo", "application/octet-stream"
        )
        assert resp.status_code == 200
        assert resp.json()["original"]["mime_type"] == "image/jpeg"

    def test_mislabelled_upload_stores_detected_type(self, test_client, session_id, jpeg_bytes):
        resp = _upload_original(test_client, session_id, jpeg_bytes, "photo.png", "image/png")
        assert resp.status_code == 200
        assert resp.json()["original"]["mime_type"] == "image/jpeg"

        image = test_client.get(f"/api/sessions/{session_id}/images/original")
        assert image.headers["content-type"] == "image/jpeg"

    def test_invalid_upload_400(self, test_client, session_id):
        resp = _upload_original(test_client, session_id, b"not an image", "a.txt", "text/plain")
        assert resp.status_code == 400

    def test_unsupported_format_400(self, test_client, session_id, make_image_bytes):
        resp = _upload_original(test_client, session_id, make_image_bytes("GIF"), "a.gif", None)
        assert resp.status_code == 400
        assert "unsupported type" in resp.json()["detail"]

    def test_remove_original(self, test_client, ready_session_id):
        resp = test_client.delete(f"/api/sessions/{ready_session_id}/original")
        assert resp.status_code == 200
        data = resp.json()
        assert data["original"] is None
        assert len(data["editions"]) == 2
        assert data["can_analyze"] is False

    def test_remove_missing_original_404(self, test_client, session_id):
        assert test_client.delete(f"/api/sessions/{session_id}/original").status_code == 404


class TestEditions:
    """Test POST/DELETE /api/sessions/{sid}/editions."""

    def test_edition_requires_original(self, test_client, session_id, png_bytes):
        resp = _add_edition(test_client, session_id, png_bytes)
        assert resp.status_code == 400
        assert "original photo first" in resp.json()["detail"]

    def test_add_edition(self, test_client, session_id, png_bytes):
        _upload_original(test_client, session_id, png_bytes)

        resp = _add_edition(test_client, session_id, png_bytes, "first.png")

        assert resp.status_code == 201
        data = resp.json()
        assert data["position"] == 1
        assert data["filename"] == "first.png"
        assert test_client.get(f"/api/sessions/{session_id}").json()["can_analyze"] is True

    def test_remove_edition(self, test_client, ready_session_id):
        editions = test_client.get(f"/api/sessions/{ready_session_id}").json()["editions"]

        resp = test_client.delete(f"/api/sessions/{ready_session_id}/editions/{editions[0]['id']}")

        assert resp.status_code == 200
        remaining = resp.json()["editions"]
        assert [e["id"] for e in remaining] == [editions[1]["id"]]
        assert remaining[0]["position"] == 1

    def test_remove_unknown_edition_404(self, test_client, ready_session_id):
        resp = test_client.delete(f"/api/sessions/{ready_session_id}/editions/nope")
        assert resp.status_code == 404


class TestImages:
    """Test GET /api/sessions/{sid}/images/{id}."""

    def test_serves_original_bytes(self, test_client, session_id, png_bytes):
        _upload_original(test_client, session_id, png_bytes)

        resp = test_client.get(f"/api/sessions/{session_id}/images/original")

        assert resp.status_code == 200
        assert resp.headers["content-type"] == "image/png"
        assert resp.content == png_bytes

    def test_serves_edition_by_url(self, test_client, ready_session_id):
        edition = test_client.get(f"/api/sessions/{ready_session_id}").json()["editions"][1]

        resp = test_client.get(edition["url"])

        assert resp.status_code == 200
        assert resp.headers["content-type"] == "image/jpeg"

    def test_unknown_image_404(self, test_client, session_id):
        assert test_client.get(f"/api/sessions/{session_id}/images/original").status_code == 404


# ---------------------------------------------------------------------------
# Analysis tests.
# ---------------------------------------------------------------------------


class TestAnalyze:
    """Test POST /api/sessions/{sid}/analyze and the report."""

    def test_analyze_completes(self, test_client, ready_session_id, mock_gateway):
        resp = test_client.post(f"/api/sessions/{ready_session_id}/analyze")

        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "COMPLETE"
        assert data["original_description"] == "A white square."
        first, second = data["editions"]
        assert data["edition_results"] == {
            first["id"]: "Instructions for edition 1",
            second["id"]: "Instructions for edition 2",
        }
        assert mock_gateway.generate_diff_instructions.await_count == 2

    def test_analyze_without_editions_409(self, test_client, session_id, png_bytes, mock_gateway):
        _upload_original(test_client, session_id, png_bytes)

        resp = test_client.post(f"/api/sessions/{session_id}/analyze")

        assert resp.status_code == 409
        mock_gateway.generate_caption.assert_not_called()
        assert test_client.get(f"/api/sessions/{session_id}").json()["status"] == "IDLE"

    def test_caption_failure_is_reported_in_body(
        self, test_client, ready_session_id, mock_gateway
    ):
        mock_gateway.generate_caption.side_effect = ServiceError("API key not valid", code=400)

        resp = test_client.post(f"/api/sessions/{ready_session_id}/analyze")

        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "ERROR"
        assert data["error_message"] == ANALYSIS_FAILED_MESSAGE
        assert data["edition_results"] == {}
        mock_gateway.generate_diff_instructions.assert_not_called()

    def test_report(self, test_client, ready_session_id):
        test_client.post(f"/api/sessions/{ready_session_id}/analyze")

        resp = test_client.get(f"/api/sessions/{ready_session_id}/report")

        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/markdown")
        assert resp.text.startswith("## Original Photo – Description\n\nA white square.")
        assert "## Edition 2\n\nInstructions for edition 2" in resp.text

    def test_report_before_analysis_is_empty(self, test_client, ready_session_id):
        resp = test_client.get(f"/api/sessions/{ready_session_id}/report")
        assert resp.status_code == 200
        assert resp.text == ""

    def test_new_original_clears_results(self, test_client, ready_session_id, png_bytes):
        test_client.post(f"/api/sessions/{ready_session_id}/analyze")

        data = _upload_original(test_client, ready_session_id, png_bytes).json()

        assert data["status"] == "IDLE"
        assert data["original_description"] == ""
        assert data["edition_results"] == {}

    def test_reset(self, test_client, ready_session_id):
        test_client.post(f"/api/sessions/{ready_session_id}/analyze")

        resp = test_client.post(f"/api/sessions/{ready_session_id}/reset")

        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "IDLE"
        assert data["original"] is None
        assert data["editions"] == []
        assert data["original_description"] == ""
