"""
Tests for the HTTP transport, error classification and TLS helpers
"""
import datetime
import socket
import ssl
import time
import httpx
import pytest
from unittest.mock import AsyncMock, patch
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import NameOID

from castarr.core import tls
from castarr.core.exceptions import InvalidURL, NetworkError, NetworkReason
from castarr.core.transport import RawResponse, Transport, classify_error, redact


def make_transport(handler):
    return Transport(transport=httpx.MockTransport(handler))


def certificate_error():
    error = httpx.ConnectError("certificate verify failed")
    error.__cause__ = ssl.SSLCertVerificationError("certificate verify failed")
    return error


def make_certificate_pem(common_name):
    """Self-signed leaf certificate with the given CN"""
    key = ec.generate_private_key(ec.SECP256R1())
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])
    now = datetime.datetime.utcnow()
    certificate = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now)
        .not_valid_after(now + datetime.timedelta(days=1))
        .sign(key, hashes.SHA256())
    )
    return ssl.DER_cert_to_PEM_cert(certificate.public_bytes(serialization.Encoding.DER))


class TestClassifyError:
    """Test cases for classify_error"""

    def test_timeout(self):
        assert classify_error(httpx.ConnectTimeout("slow")).reason == NetworkReason.timed_out
        assert classify_error(httpx.ReadTimeout("slow")).reason == NetworkReason.timed_out

    def test_connection_refused(self):
        """Test that a plain connect failure means the host cannot be reached"""
        result = classify_error(httpx.ConnectError("refused"))

        assert result.reason == NetworkReason.cannot_connect
        assert result.is_transient is True

    def test_dns_failure_means_not_connected(self):
        error = httpx.ConnectError("lookup failed")
        error.__cause__ = socket.gaierror(-2, "Name or service not known")

        assert classify_error(error).reason == NetworkReason.not_connected

    def test_dropped_connection(self):
        assert classify_error(httpx.ReadError("reset")).reason == NetworkReason.connection_lost
        assert classify_error(httpx.RemoteProtocolError("eof")).reason == NetworkReason.connection_lost

    def test_other_errors_are_not_transient(self):
        result = classify_error(httpx.TooManyRedirects("loop"))

        assert result.reason == NetworkReason.other
        assert result.is_transient is False


class TestTransport:
    """Test cases for Transport"""

    @pytest.mark.asyncio
    async def test_request_sends_no_cache_headers(self):
        """Test that every request bypasses caches"""
        seen = {}

        def handler(request):
            seen["headers"] = request.headers
            return httpx.Response(200, content=b"<MediaContainer/>")

        response = await make_transport(handler).request("GET", "http://10.0.0.5:32400/status/sessions")

        assert response.status_code == 200
        assert response.text == "<MediaContainer/>"
        assert seen["headers"]["Cache-Control"] == "no-cache, no-store"
        assert seen["headers"]["Pragma"] == "no-cache"

    @pytest.mark.asyncio
    async def test_form_body(self):
        seen = {}

        def handler(request):
            seen["body"] = request.content
            return httpx.Response(201, json={"ok": True})

        response = await make_transport(handler).request("POST", "https://plex.tv/api/v2/pins", body={"strong": "true"})

        assert seen["body"] == b"strong=true"
        assert response.json() == {"ok": True}

    @pytest.mark.asyncio
    async def test_invalid_url(self):
        """Test that malformed URLs are rejected before any request"""
        transport = make_transport(lambda request: httpx.Response(200))

        with pytest.raises(InvalidURL):
            await transport.request("GET", "not a url")
        with pytest.raises(InvalidURL):
            await transport.request("GET", "ftp://10.0.0.5/file")

    @pytest.mark.asyncio
    async def test_connect_failure_is_classified(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(NetworkError) as exc_info:
            await make_transport(handler).request("GET", "http://10.0.0.5:32400/")

        assert exc_info.value.reason == NetworkReason.cannot_connect

    def test_redact_hides_token(self):
        result = redact("http://10.0.0.5:32400/status/sessions?X-Plex-Token=abc123&x=1")

        assert "abc123" not in result
        assert result.endswith("X-Plex-Token=<redacted>&x=1")


class TestTlsPolicy:
    """Test cases for the relay certificate policy"""

    def test_relay_common_names(self):
        assert tls.is_relay_common_name("*.0123abcd.plex.direct") is True
        assert tls.is_relay_common_name("plex.direct") is True
        assert tls.is_relay_common_name("PLEX.DIRECT") is True

    def test_other_common_names(self):
        assert tls.is_relay_common_name("plex.direct.example.com") is False
        assert tls.is_relay_common_name("notplex.direct") is False
        assert tls.is_relay_common_name(None) is False

    def test_certificate_failure_detected_in_chain(self):
        error = httpx.ConnectError("handshake failed")
        error.__cause__ = ssl.SSLCertVerificationError("certificate verify failed")

        assert tls.is_certificate_failure(error) is True
        assert tls.is_certificate_failure(httpx.ConnectError("refused")) is False

    def test_chain_context_skips_hostname_only(self):
        context = tls.build_chain_context()

        assert context.check_hostname is False
        assert context.verify_mode == ssl.CERT_REQUIRED


class TestRelayCertificates:
    """Test cases for accepting relay certificates on self-hosted servers"""

    @pytest.mark.asyncio
    async def test_relay_certificate_retried_and_cached(self):
        """Test that a relay CN triggers one relay retry and is remembered for the host"""
        transport = Transport()
        send = AsyncMock(side_effect=[certificate_error(), RawResponse(200, b"ok"), RawResponse(200, b"again")])

        with patch.object(transport, "_send", send), \
                patch("castarr.core.tls.presents_relay_certificate", AsyncMock(return_value=True)) as presents:
            response = await transport.request("GET", "https://10.0.0.5:32400/status/sessions")
            second = await transport.request("GET", "https://10.0.0.5:32400/status/sessions")

        assert response.status_code == 200
        assert second.text == "again"
        assert [call.kwargs["relay"] for call in send.call_args_list] == [False, True, True]
        assert ("10.0.0.5", 32400) in transport._relay_hosts
        presents.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_other_certificate_is_rejected(self):
        """Test that a non-relay certificate failure surfaces without a retry"""
        transport = Transport()
        send = AsyncMock(side_effect=[certificate_error()])

        with patch.object(transport, "_send", send), \
                patch("castarr.core.tls.presents_relay_certificate", AsyncMock(return_value=False)):
            with pytest.raises(NetworkError) as exc_info:
                await transport.request("GET", "https://10.0.0.5:32400/")

        assert exc_info.value.reason == NetworkReason.cannot_connect
        assert send.await_count == 1
        assert transport._relay_hosts == set()

    @pytest.mark.asyncio
    async def test_plain_http_never_probes_certificate(self):
        transport = Transport()
        send = AsyncMock(side_effect=[certificate_error()])

        with patch.object(transport, "_send", send), \
                patch("castarr.core.tls.presents_relay_certificate", AsyncMock(return_value=True)) as presents:
            with pytest.raises(NetworkError):
                await transport.request("GET", "http://10.0.0.5:32400/")

        presents.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_peer_certificate_common_name(self):
        """Test reading the CN through the two-argument get_server_certificate"""
        pem = make_certificate_pem("*.0123abcd.plex.direct")

        with patch("castarr.core.tls.ssl.get_server_certificate", lambda addr: pem):
            assert await tls.presents_relay_certificate("10.0.0.5", 32400, timeout=1.0) is True

        with patch("castarr.core.tls.ssl.get_server_certificate", lambda addr: make_certificate_pem("nas.local")):
            assert await tls.presents_relay_certificate("10.0.0.5", 32400, timeout=1.0) is False

    @pytest.mark.asyncio
    async def test_certificate_probe_is_bounded(self):
        def slow(addr):
            time.sleep(0.5)
            return make_certificate_pem("*.abc.plex.direct")

        with patch("castarr.core.tls.ssl.get_server_certificate", slow):
            assert await tls.fetch_peer_certificate("10.0.0.5", 32400, timeout=0.05) is None

    @pytest.mark.asyncio
    async def test_unreachable_peer(self):
        def refused(addr):
            raise ConnectionRefusedError("refused")

        with patch("castarr.core.tls.ssl.get_server_certificate", refused):
            assert await tls.presents_relay_certificate("10.0.0.5", 32400, timeout=1.0) is False
