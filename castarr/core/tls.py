"""
TLS trust policy for self-hosted Plex servers addressed by raw IP.

Relay certificates (CN under plex.direct) are accepted as-is, since they are
legitimate but never match an IP hostname. Any other certificate must chain
to a trusted root; only the hostname binding is skipped.
"""
import asyncio
import logging
import re
import ssl
from typing import Optional

import certifi
from cryptography import x509
from cryptography.x509.oid import NameOID

logger = logging.getLogger(__name__)

RELAY_COMMON_NAME = re.compile(r"(^|\.)plex\.direct$", re.IGNORECASE)


def build_chain_context() -> ssl.SSLContext:
    """Validate the certificate chain without binding it to the hostname"""
    context = ssl.create_default_context(cafile=certifi.where())
    context.check_hostname = False
    context.verify_mode = ssl.CERT_REQUIRED
    return context


def build_relay_context() -> ssl.SSLContext:
    """Context used only for hosts that already presented a relay certificate"""
    context = ssl.create_default_context(cafile=certifi.where())
    context.check_hostname = False
    context.verify_mode = ssl.CERT_NONE
    return context


def certificate_common_name(der_bytes: bytes) -> Optional[str]:
    try:
        certificate = x509.load_der_x509_certificate(der_bytes)
    except ValueError as e:
        logger.warning(f"Unable to parse peer certificate: {e}")
        return None

    attributes = certificate.subject.get_attributes_for_oid(NameOID.COMMON_NAME)
    if not attributes:
        return None
    return str(attributes[0].value)


def is_relay_common_name(common_name: Optional[str]) -> bool:
    if not common_name:
        return False
    return RELAY_COMMON_NAME.search(common_name.lstrip("*.")) is not None


def is_certificate_failure(exc: BaseException) -> bool:
    """True when an exception chain bottoms out in a certificate verification error"""
    current: Optional[BaseException] = exc
    seen = set()
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        if isinstance(current, ssl.SSLCertVerificationError):
            return True
        if "CERTIFICATE_VERIFY_FAILED" in str(current):
            return True
        current = current.__cause__ or current.__context__
    return False


async def fetch_peer_certificate(host: str, port: int, timeout: float) -> Optional[bytes]:
    """Read the leaf certificate a server presents, without verifying it"""
    try:
        pem = await asyncio.wait_for(asyncio.to_thread(ssl.get_server_certificate, (host, port)), timeout)
    except (OSError, ssl.SSLError, asyncio.TimeoutError) as e:
        logger.debug(f"Could not read certificate from {host}:{port}: {e}")
        return None
    return ssl.PEM_cert_to_DER_cert(pem)


async def presents_relay_certificate(host: str, port: int, timeout: float) -> bool:
    der_bytes = await fetch_peer_certificate(host, port, timeout)
    if der_bytes is None:
        return False

    common_name = certificate_common_name(der_bytes)
    if is_relay_common_name(common_name):
        logger.info(f"Detected Plex relay certificate {common_name} for {host}:{port}")
        return True

    logger.warning(f"Certificate for {host}:{port} (CN={common_name}) failed chain validation")
    return False
