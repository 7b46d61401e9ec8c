"""
Tests for Companion Service
"""
import asyncio
import httpx
import pytest

from castarr.core.exceptions import ValidationError
from castarr.core.settings_store import FileSettingsStore
from castarr.core.transport import Transport
from castarr.providers.demo import DEMO_SERVER_IP, DEMO_TOKEN
from castarr.providers.imdb import IMDbClient
from castarr.providers.plex_tv import PlexTvClient
from castarr.schemas.auth import PlexSettings
from castarr.services.auth_service import AuthService
from castarr.services.companion_service import CompanionService


def mock_transport(handler):
    return Transport(transport=httpx.MockTransport(handler))


class PlexTvStub:
    """plex.tv double: PIN 42/ABCD is approved on the first status check"""

    def __call__(self, request):
        path = request.url.path
        if request.method == "POST" and path == "/api/v2/pins":
            return httpx.Response(201, json={"id": 42, "code": "ABCD"})
        if path == "/api/v2/pins/42":
            return httpx.Response(200, json={"id": 42, "code": "ABCD", "authToken": "tok1"})
        if path == "/api/v2/user":
            return httpx.Response(200, json={"id": 7, "username": "alice", "email": "alice@example.com"})
        return httpx.Response(404)


async def no_sleep(delay):
    return None


@pytest.fixture
def store(tmp_path):
    return FileSettingsStore(str(tmp_path / "settings.json"))


@pytest.fixture
def imdb_client():
    """IMDb double that is always unavailable"""
    return IMDbClient(base_url="https://imdb.test", transport=mock_transport(lambda request: httpx.Response(503)))


def make_service(store, imdb_client, server_handler=None, sleep=no_sleep):
    plex_tv = PlexTvClient(client_id="client-1", transport=mock_transport(PlexTvStub()))
    return CompanionService(
        store,
        imdb_client=imdb_client,
        transport=mock_transport(server_handler or (lambda request: httpx.Response(404))),
        auth_service=AuthService(plex_tv, poll_interval=1.0, max_attempts=5, sleep=sleep),
        refresh_interval=0,
    )


class TestDemoMode:
    """Test cases for demo login"""

    @pytest.mark.asyncio
    async def test_demo_login(self, store, imdb_client):
        service = make_service(store, imdb_client)

        result = await service.login_demo("  CastarrDemo@yahoo.com ")

        assert result is True
        assert service.is_demo_mode is True
        assert service.is_logged_in is True
        assert service.selected_video_session.id == "12345"
        assert service.is_owned(service.selected_video_session) is True
        assert service.metadata_state.metadata.title == "Night of the Living Dead"
        assert service.server_capabilities.friendly_name == "Demo Plex Server"

        saved = store.load()
        assert saved.plex_token == DEMO_TOKEN
        assert saved.server_ip == DEMO_SERVER_IP
        assert saved.plex_user_id == 0

    @pytest.mark.asyncio
    async def test_invalid_demo_email(self, store, imdb_client):
        service = make_service(store, imdb_client)

        result = await service.login_demo("someone@example.com")

        assert result is False
        assert service.is_logged_in is False
        assert service.error_message == "Invalid demo account credentials"

    def test_demo_mode_restored_on_start(self, store, imdb_client):
        store.save(PlexSettings(server_ip=DEMO_SERVER_IP, plex_token=DEMO_TOKEN, username="castarrdemo@yahoo.com"))

        service = make_service(store, imdb_client)

        assert service.is_demo_mode is True
        assert service.is_logged_in is True

    @pytest.mark.asyncio
    async def test_logout_clears_credential(self, store, imdb_client):
        service = make_service(store, imdb_client)
        await service.login_demo("castarrdemo@yahoo.com")

        await service.logout()

        assert service.is_logged_in is False
        assert service.is_demo_mode is False
        assert service.has_active_sessions is False
        assert service.metadata_state.metadata is None
        saved = store.load()
        assert saved.plex_token == ""
        assert saved.username == ""
        assert saved.server_ip == DEMO_SERVER_IP


class TestLogin:
    """Test cases for the PIN login flow"""

    @pytest.mark.asyncio
    async def test_login_stores_token_and_identity(self, store, imdb_client):
        store.save(PlexSettings(server_ip="10.0.0.5"))
        service = make_service(store, imdb_client)

        result = await service.login()

        assert result is True
        assert service.is_logged_in is True
        assert service.login_state.is_polling is False
        saved = store.load()
        assert saved.plex_token == "tok1"
        assert saved.username == "alice"
        assert saved.plex_user_id == 7

    @pytest.mark.asyncio
    async def test_cancel_login_is_not_an_error(self, store, imdb_client):
        async def blocking_sleep(delay):
            await asyncio.Event().wait()

        plex_tv_stub = PlexTvStub()
        service = make_service(store, imdb_client, sleep=blocking_sleep)
        service.auth_service.plex_tv.transport = mock_transport(
            lambda request: plex_tv_stub(request) if request.method == "POST"
            else httpx.Response(200, json={"id": 42, "code": "ABCD"})
        )

        response = await service.begin_login()
        assert response.code == "ABCD"
        assert service.login_state.is_polling is True

        await service.cancel_login()

        assert service.login_state.is_polling is False
        assert service.login_state.error_message is None
        assert service.is_logged_in is False


class TestTokenValidity:
    """Test cases for check_token_validity"""

    @pytest.mark.asyncio
    async def test_rejected_token_is_cleared(self, store, imdb_client):
        store.save(PlexSettings(server_ip="10.0.0.5", plex_token="old"))
        service = make_service(store, imdb_client, server_handler=lambda request: httpx.Response(401))

        await service.check_token_validity()

        assert service.is_logged_in is False
        assert store.load().plex_token == ""

    @pytest.mark.asyncio
    async def test_unreachable_server_keeps_token(self, store, imdb_client):
        """Test that only a definite rejection signs the user out"""
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        store.save(PlexSettings(server_ip="10.0.0.5", plex_token="old"))
        service = make_service(store, imdb_client, server_handler=handler)

        await service.check_token_validity()

        assert service.is_logged_in is True
        assert store.load().plex_token == "old"


class TestServerSettings:
    """Test cases for update_server_ip"""

    def test_invalid_ip_rejected(self, store, imdb_client):
        service = make_service(store, imdb_client)

        for value in ("", "10.0.0", "256.1.1.1", "plex.local"):
            with pytest.raises(ValidationError):
                service.update_server_ip(value)

        assert store.load().server_ip == ""

    def test_valid_ip_saved(self, store, imdb_client):
        service = make_service(store, imdb_client)

        service.update_server_ip(" 192.168.1.50 ")

        assert service.settings.server_ip == "192.168.1.50"
        assert store.load().server_ip == "192.168.1.50"
