"""
Tests for the Developer Draft API

Tests covering:
1. Draft save (create and update), list, get, delete
2. Phase validation and navigation
3. Publish gate over HTTP
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from core.wizard.repository import (
    get_development_repository,
    get_draft_repository,
    reset_repositories,
)
from web.app import app


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def client(tmp_path):
    """Test client backed by fresh repositories."""
    reset_repositories()
    get_draft_repository(str(tmp_path / "drafts.json"))
    yield TestClient(app)
    reset_repositories()


@pytest.fixture
def saved_draft(client, complete_payload):
    response = client.post("/developer/drafts", json={"developerId": 7, "draftData": complete_payload})
    return response.json()["id"]


# =============================================================================
# Health
# =============================================================================


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


# =============================================================================
# Draft CRUD
# =============================================================================


class TestDraftCrud:
    """Tests for draft endpoints."""

    def test_create_draft(self, client):
        response = client.post("/developer/drafts", json={"draftData": {"currentPhase": 2}})

        assert response.status_code == 200
        body = response.json()
        assert body["id"] == 1
        assert body["progress"] == 29
        assert "lastModified" in body

    def test_malformed_draft_still_saves(self, client):
        response = client.post("/developer/drafts", json={"draftData": "garbage"})

        assert response.status_code == 200
        stored = client.get(f"/developer/drafts/{response.json()['id']}").json()
        assert stored["draftData"]["currentPhase"] == 1

    def test_update_draft(self, client, saved_draft):
        response = client.post(
            "/developer/drafts",
            json={"id": saved_draft, "draftData": {"developmentData": {"name": "Renamed"}}},
        )

        assert response.status_code == 200
        assert response.json()["id"] == saved_draft
        assert client.get(f"/developer/drafts/{saved_draft}").json()["draftName"] == "Renamed"

    def test_update_unknown_draft(self, client):
        response = client.post("/developer/drafts", json={"id": 99, "draftData": {}})
        assert response.status_code == 404

    def test_list_drafts(self, client, saved_draft):
        client.post("/developer/drafts", json={"developerId": 8, "draftData": {}})

        everything = client.get("/developer/drafts").json()["drafts"]
        mine = client.get("/developer/drafts", params={"developerId": 7}).json()["drafts"]

        assert len(everything) == 2
        assert [d["id"] for d in mine] == [saved_draft]
        assert mine[0]["draftName"] == "Harbour View"

    def test_get_missing_draft(self, client):
        assert client.get("/developer/drafts/123").status_code == 404

    def test_delete_draft(self, client, saved_draft):
        assert client.delete(f"/developer/drafts/{saved_draft}").json() == {"success": True}
        assert client.delete(f"/developer/drafts/{saved_draft}").status_code == 404


# =============================================================================
# Phases
# =============================================================================


class TestPhases:
    """Tests for phase validation and navigation endpoints."""

    def test_validate_phase(self, client):
        draft_id = client.post(
            "/developer/drafts",
            json={"draftData": {"classification": {}, "developmentType": "commercial"}},
        ).json()["id"]

        result = client.get(f"/developer/drafts/{draft_id}/phases/2").json()

        assert result == {"isValid": False, "errors": ["Classification type is required"]}

    def test_validate_phase_missing_draft(self, client):
        assert client.get("/developer/drafts/5/phases/2").status_code == 404

    def test_forward_move_refused(self, client):
        draft_id = client.post("/developer/drafts", json={"draftData": {"currentPhase": 2}}).json()["id"]

        response = client.post(f"/developer/drafts/{draft_id}/phase", json={"phase": 3})

        assert response.status_code == 409
        assert response.json()["detail"]["errors"] == ["Classification type is required"]

    def test_backward_move_saved(self, client, saved_draft):
        response = client.post(f"/developer/drafts/{saved_draft}/phase", json={"phase": 4})

        assert response.status_code == 200
        assert response.json()["currentPhase"] == 4
        assert client.get(f"/developer/drafts/{saved_draft}").json()["currentStep"] == 4


# =============================================================================
# Publish
# =============================================================================


class TestPublish:
    """Tests for the publish endpoint."""

    def test_blocked_publish(self, client):
        draft_id = client.post("/developer/drafts", json={"draftData": {}}).json()["id"]

        response = client.post(f"/developer/drafts/{draft_id}/publish")

        assert response.status_code == 400
        assert "At least one unit type is required" in response.json()["detail"]["errors"]
        assert client.get(f"/developer/drafts/{draft_id}").status_code == 200

    def test_successful_publish_removes_draft(self, client, saved_draft):
        response = client.post(f"/developer/drafts/{saved_draft}/publish")

        assert response.status_code == 200
        development = response.json()["development"]
        assert development["draftId"] == saved_draft
        assert development["listing"]["name"] == "Harbour View"
        assert client.get(f"/developer/drafts/{saved_draft}").status_code == 404
        assert get_development_repository().count() == 1

    def test_publish_missing_draft(self, client):
        assert client.post("/developer/drafts/77/publish").status_code == 404

    def test_disabled_development_type_blocks_publish(self, client, saved_draft, monkeypatch):
        monkeypatch.setenv("ENABLED_DEVELOPMENT_TYPES", "commercial")

        response = client.post(f"/developer/drafts/{saved_draft}/publish")

        assert response.status_code == 400
        assert "not available" in response.json()["detail"]["errors"][0]
