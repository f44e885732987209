"""Low-level TLS probes: protocol versions, cipher suites and presented chains."""

from __future__ import annotations

import socket
import ssl
import warnings
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from cryptography import x509

from .models import CertRadarError

CONNECTION_TIMEOUT = 10.0
CIPHER_TIMEOUT = 5.0

_VERSIONS = {
    "TLSv1.3": ssl.TLSVersion.TLSv1_3,
    "TLSv1.2": ssl.TLSVersion.TLSv1_2,
    "TLSv1.1": ssl.TLSVersion.TLSv1_1,
    "TLSv1": ssl.TLSVersion.TLSv1,
}


def resolve_address(host: str, port: int) -> tuple[int, Any]:
    """The address family and socket address of the first address for host:port."""
    try:
        infos = socket.getaddrinfo(host, port, type=socket.SOCK_STREAM)
    except (OSError, UnicodeError) as exc:
        raise CertRadarError(f"Cannot resolve hostname: {host}") from exc
    if not infos:
        raise CertRadarError(f"No addresses found for hostname: {host}")
    family, _type, _proto, _canon, sockaddr = infos[0]
    return family, sockaddr


def _unverified_context() -> ssl.SSLContext:
    context = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
    context.check_hostname = False
    context.verify_mode = ssl.CERT_NONE
    return context


@contextmanager
def _handshake(
    host: str, port: int, context: ssl.SSLContext, timeout: float
) -> Iterator[ssl.SSLSocket]:
    family, sockaddr = resolve_address(host, port)
    raw = socket.socket(family, socket.SOCK_STREAM)
    raw.settimeout(timeout)
    try:
        raw.connect(sockaddr)
        tls = context.wrap_socket(raw, server_hostname=host)
    except BaseException:
        raw.close()
        raise
    with tls:
        yield tls


def _connects(host: str, port: int, context: ssl.SSLContext, timeout: float) -> bool:
    try:
        with _handshake(host, port, context, timeout):
            return True
    except (OSError, CertRadarError, ValueError):
        return False


def probe_protocol(host: str, port: int, version: str) -> bool:
    """Whether the server completes a handshake pinned to one protocol version."""
    tls_version = _VERSIONS.get(version)
    if tls_version is None:
        return False
    context = _unverified_context()
    try:
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", DeprecationWarning)
            context.minimum_version = tls_version
            context.maximum_version = tls_version
    except (ValueError, ssl.SSLError):
        return False
    return _connects(host, port, context, CONNECTION_TIMEOUT)


def _cipher_context(cipher_list: str) -> ssl.SSLContext | None:
    context = _unverified_context()
    try:
        context.set_ciphers(cipher_list)
    except ssl.SSLError:
        return None
    return context


def probe_cipher(host: str, port: int, cipher: str) -> bool:
    """Whether the server completes a handshake when offered this cipher list."""
    context = _cipher_context(cipher)
    if context is None:
        return False
    return _connects(host, port, context, CIPHER_TIMEOUT)


def probe_cipher_negotiated(host: str, port: int, cipher_list: str) -> str | None:
    """The cipher the server picks from the offered list, or None on failure."""
    context = _cipher_context(cipher_list)
    if context is None:
        return None
    try:
        with _handshake(host, port, context, CIPHER_TIMEOUT) as tls:
            chosen = tls.cipher()
    except (OSError, CertRadarError, ValueError):
        return None
    return chosen[0] if chosen else None


def fetch_peer_chain(host: str, port: int) -> list[x509.Certificate]:
    """The certificates the server presents, leaf first, without verifying them."""
    try:
        with _handshake(host, port, _unverified_context(), CONNECTION_TIMEOUT) as tls:
            chain = tls.get_unverified_chain() or []
            leaf = tls.getpeercert(binary_form=True)
    except CertRadarError:
        raise
    except (OSError, ValueError) as exc:
        raise CertRadarError(f"TLS handshake failed: {exc}") from exc

    if chain and all(isinstance(item, (bytes, bytearray)) for item in chain):
        ders = [bytes(item) for item in chain]
    elif leaf:
        ders = [leaf]
    else:
        raise CertRadarError("No certificate presented")
    try:
        return [x509.load_der_x509_certificate(der) for der in ders]
    except ValueError as exc:
        raise CertRadarError(f"Cannot parse presented certificate: {exc}") from exc


def verify_chain(host: str, port: int) -> bool:
    """Whether the presented chain verifies against the system trust store for host."""
    return _connects(host, port, ssl.create_default_context(), CONNECTION_TIMEOUT)