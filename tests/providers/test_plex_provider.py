"""
Tests for PlexProvider and protocol fallback
"""
import httpx
import pytest

from castarr.core.exceptions import DecodeError, InvalidToken, NetworkError, NotAuthenticated, ServiceError
from castarr.core.transport import Transport
from castarr.providers.fallback import fetch_with_fallback
from castarr.providers.plex import PlexProvider
from castarr.schemas.auth import ServerConnection

SESSIONS_XML = b'<MediaContainer size="1"><Video ratingKey="42" title="Heat"/></MediaContainer>'


@pytest.fixture
def connection():
    return ServerConnection(host="10.0.0.5")


def make_provider(connection, handler, token="tok"):
    return PlexProvider(connection, token, transport=Transport(transport=httpx.MockTransport(handler)))


class TestProtocolFallback:
    """Test cases for the HTTPS -> HTTP fallback"""

    @pytest.mark.asyncio
    async def test_https_success_stops(self, connection):
        """Test that a successful HTTPS attempt is the only request made"""
        calls = []

        def handler(request):
            calls.append(request.url)
            return httpx.Response(200, content=SESSIONS_XML)

        result = await make_provider(connection, handler).get_sessions()

        assert [v.id for v in result.video] == ["42"]
        assert len(calls) == 1
        assert calls[0].scheme == "https"
        assert calls[0].port == 32400
        assert calls[0].path == "/status/sessions"
        assert calls[0].params["X-Plex-Token"] == "tok"

    @pytest.mark.asyncio
    async def test_falls_back_to_http(self, connection):
        calls = []

        def handler(request):
            calls.append(request.url.scheme)
            if request.url.scheme == "https":
                raise httpx.ConnectError("tls failed", request=request)
            return httpx.Response(200, content=SESSIONS_XML)

        result = await make_provider(connection, handler).get_sessions()

        assert calls == ["https", "http"]
        assert result.video[0].title == "Heat"

    @pytest.mark.asyncio
    async def test_unauthorized_is_terminal(self, connection):
        """Test that a 401 over HTTPS never retries over HTTP"""
        calls = []

        def handler(request):
            calls.append(request.url.scheme)
            return httpx.Response(401)

        with pytest.raises(InvalidToken):
            await make_provider(connection, handler).get_sessions()

        assert calls == ["https"]

    @pytest.mark.asyncio
    async def test_last_error_surfaces(self, connection):
        def handler(request):
            if request.url.scheme == "https":
                raise httpx.ConnectError("refused", request=request)
            return httpx.Response(500)

        with pytest.raises(ServiceError) as exc_info:
            await make_provider(connection, handler).get_sessions()

        assert exc_info.value.status_code == 500

    @pytest.mark.asyncio
    async def test_network_failure_on_both(self, connection):
        def handler(request):
            raise httpx.ConnectTimeout("slow", request=request)

        with pytest.raises(NetworkError) as exc_info:
            await make_provider(connection, handler).get_sessions()

        assert exc_info.value.is_transient is True

    @pytest.mark.asyncio
    async def test_malformed_body_tries_next_protocol(self, connection):
        calls = []

        def handler(request):
            calls.append(request.url.scheme)
            if request.url.scheme == "https":
                return httpx.Response(200, content=b"<html>proxy login</html>")
            return httpx.Response(200, content=SESSIONS_XML)

        result = await make_provider(connection, handler).get_sessions()

        assert calls == ["https", "http"]
        assert result.size == 1

    @pytest.mark.asyncio
    async def test_unexpected_decode_failure_tries_next_protocol(self, connection):
        """Test that any decoder failure counts as a bad payload, not a crash"""
        calls = []

        def handler(request):
            calls.append(request.url.scheme)
            return httpx.Response(200, content=request.url.scheme.encode())

        def decode(response):
            if response.text == "https":
                raise OverflowError("cannot convert float infinity to integer")
            return response.text

        transport = Transport(transport=httpx.MockTransport(handler))
        result = await fetch_with_fallback(transport, connection, "/status/sessions", "tok", decode)

        assert calls == ["https", "http"]
        assert result == "http"

    @pytest.mark.asyncio
    async def test_unexpected_decode_failure_on_every_protocol(self, connection):
        def decode(response):
            raise KeyError("MediaContainer")

        transport = Transport(transport=httpx.MockTransport(lambda request: httpx.Response(200, content=b"x")))

        with pytest.raises(DecodeError):
            await fetch_with_fallback(transport, connection, "/", "tok", decode)


class TestPlexProvider:
    """Test cases for PlexProvider resources"""

    @pytest.mark.asyncio
    async def test_requires_token(self, connection):
        provider = make_provider(connection, lambda request: httpx.Response(200), token="")

        with pytest.raises(NotAuthenticated):
            await provider.get_sessions()

    @pytest.mark.asyncio
    async def test_requires_server(self):
        provider = make_provider(None, lambda request: httpx.Response(200))

        with pytest.raises(NotAuthenticated):
            await provider.get_capabilities()

    @pytest.mark.asyncio
    async def test_movie_metadata_includes_guids(self, connection):
        seen = {}

        def handler(request):
            seen["url"] = request.url
            return httpx.Response(200, content=b'<MediaContainer size="1"><Video ratingKey="42" title="Heat"/></MediaContainer>')

        result = await make_provider(connection, handler).get_movie_metadata("42")

        assert seen["url"].path == "/library/metadata/42"
        assert seen["url"].params["includeGuids"] == "1"
        assert result.first.title == "Heat"

    @pytest.mark.asyncio
    async def test_capabilities_request_json(self, connection):
        seen = {}

        def handler(request):
            seen["accept"] = request.headers["Accept"]
            return httpx.Response(200, json={"MediaContainer": {"friendlyName": "Tower"}})

        result = await make_provider(connection, handler).get_capabilities()

        assert seen["accept"] == "application/json"
        assert result.friendly_name == "Tower"
