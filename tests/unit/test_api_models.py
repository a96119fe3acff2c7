"""Tests for instructiongen.api.models — Pydantic response models."""

from __future__ import annotations

from instructiongen.api.models import ImageInfo, SessionResponse
from instructiongen.core.session import AnalysisStatus


class TestImageInfo:
    """Test ImageInfo construction from session images."""

    def test_original(self, ready_session):
        info = ImageInfo.from_image(ready_session.id, ready_session.original)

        assert info.id == "original"
        assert info.filename == "original.png"
        assert info.mime_type == "image/png"
        assert info.size == ready_session.original.size
        assert info.url == f"/api/sessions/{ready_session.id}/images/original"
        assert info.position is None

    def test_edition_position(self, ready_session):
        edition = ready_session.editions[1]
        info = ImageInfo.from_image(ready_session.id, edition, 2)

        assert info.id == edition.id
        assert info.position == 2
        assert info.url.endswith(f"/images/{edition.id}")


class TestSessionResponse:
    """Test SessionResponse serialisation."""

    def test_empty_session(self, session):
        resp = SessionResponse.from_session(session)

        assert resp.status == AnalysisStatus.IDLE
        assert resp.can_analyze is False
        assert resp.original is None
        assert resp.editions == []

    def test_ready_session(self, ready_session):
        resp = SessionResponse.from_session(ready_session)

        assert resp.can_analyze is True
        assert resp.original.id == "original"
        assert [e.position for e in resp.editions] == [1, 2]

    def test_results_are_copied(self, ready_session):
        first, _ = ready_session.editions
        token = ready_session.begin_analysis()
        ready_session.complete_analysis(token, "desc", {first.id: "Add red."})

        resp = SessionResponse.from_session(ready_session)
        ready_session.edition_results.clear()

        assert resp.edition_results == {first.id: "Add red."}
        assert resp.original_description == "desc"

    def test_json_status_is_plain_string(self, ready_session):
        data = SessionResponse.from_session(ready_session).model_dump(mode="json")

        assert data["status"] == "IDLE"
        assert "data" not in data["original"]
