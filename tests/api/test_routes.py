"""
Tests for the HTTP API
"""
import httpx
import pytest
from fastapi.testclient import TestClient

from castarr.api.deps import get_companion_service
from castarr.core.settings_store import FileSettingsStore
from castarr.core.transport import Transport
from castarr.main import app
from castarr.providers.imdb import IMDbClient
from castarr.services.companion_service import CompanionService


@pytest.fixture
def companion(tmp_path):
    imdb_client = IMDbClient(
        base_url="https://imdb.test",
        transport=Transport(transport=httpx.MockTransport(lambda request: httpx.Response(503))),
    )
    return CompanionService(
        FileSettingsStore(str(tmp_path / "settings.json")),
        imdb_client=imdb_client,
        transport=Transport(transport=httpx.MockTransport(lambda request: httpx.Response(404))),
        refresh_interval=0,
    )


@pytest.fixture
def client(companion):
    app.dependency_overrides[get_companion_service] = lambda: companion
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestRoutes:
    """Test cases for the API routes"""

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}

    def test_state_logged_out(self, client):
        response = client.get("/api/state")

        assert response.status_code == 200
        body = response.json()
        assert body["is_logged_in"] is False
        assert body["sessions"]["video_sessions"] == []

    def test_refresh_requires_login(self, client):
        response = client.post("/api/sessions/refresh")

        assert response.status_code == 401

    def test_demo_login(self, client):
        response = client.post("/api/auth/demo", json={"email": "castarrdemo@yahoo.com"})

        assert response.status_code == 200
        body = response.json()
        assert body["is_demo_mode"] is True
        assert body["sessions"]["selected_session"]["id"] == "12345"
        assert body["metadata"]["metadata"]["title"] == "Night of the Living Dead"

    def test_demo_login_rejected(self, client):
        response = client.post("/api/auth/demo", json={"email": "nobody@example.com"})

        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid demo account credentials"

    def test_select_out_of_range(self, client):
        response = client.post("/api/sessions/select", json={"index": 4})

        assert response.status_code == 400

    def test_update_settings(self, client):
        response = client.put("/api/settings", json={"server_ip": "10.1.2.3"})

        assert response.status_code == 200
        assert response.json()["server_ip"] == "10.1.2.3"

    def test_update_settings_invalid_ip(self, client):
        response = client.put("/api/settings", json={"server_ip": "nope"})

        assert response.status_code == 400

    def test_capabilities_require_login(self, client):
        response = client.get("/api/server/capabilities")

        assert response.status_code == 401
