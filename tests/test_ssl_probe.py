import socket
import ssl
import threading
from datetime import datetime, timedelta, timezone

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import NameOID

from certradar.models import CertRadarError
from certradar.ssl_probe import (
    fetch_peer_chain,
    probe_cipher,
    probe_cipher_negotiated,
    probe_protocol,
    resolve_address,
    verify_chain,
)

HOST = "127.0.0.1"


@pytest.fixture(scope="module")
def tls_port(tmp_path_factory):
    key = ec.generate_private_key(ec.SECP256R1())
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, "localhost")])
    now = datetime.now(timezone.utc)
    cert = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(1000)
        .not_valid_before(now - timedelta(days=1))
        .not_valid_after(now + timedelta(days=30))
        .sign(key, hashes.SHA256())
    )
    directory = tmp_path_factory.mktemp("tls")
    cert_path = directory / "cert.pem"
    key_path = directory / "key.pem"
    cert_path.write_bytes(cert.public_bytes(serialization.Encoding.PEM))
    key_path.write_bytes(
        key.private_bytes(
            serialization.Encoding.PEM,
            serialization.PrivateFormat.PKCS8,
            serialization.NoEncryption(),
        )
    )
    context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
    context.maximum_version = ssl.TLSVersion.TLSv1_2
    context.load_cert_chain(str(cert_path), str(key_path))

    listener = socket.create_server((HOST, 0))
    listener.settimeout(0.2)
    stop = threading.Event()

    def serve():
        while not stop.is_set():
            try:
                conn, _ = listener.accept()
            except TimeoutError:
                continue
            except OSError:
                break
            conn.settimeout(5)
            try:
                with context.wrap_socket(conn, server_side=True) as tls:
                    try:
                        tls.recv(1)
                    except OSError:
                        pass
            except OSError:
                conn.close()

    thread = threading.Thread(target=serve, daemon=True)
    thread.start()
    yield listener.getsockname()[1]
    stop.set()
    thread.join(timeout=5)
    listener.close()


@pytest.fixture
def closed_port():
    with socket.socket() as sock:
        sock.bind((HOST, 0))
        return sock.getsockname()[1]


def test_resolve_address_numeric():
    _family, sockaddr = resolve_address(HOST, 443)
    assert sockaddr[0] == HOST
    assert sockaddr[1] == 443


def test_resolve_address_unknown_host():
    with pytest.raises(CertRadarError):
        resolve_address("no-such-host.invalid", 443)


def test_probe_protocol_unknown_version():
    assert probe_protocol(HOST, 443, "SSLv3") is False


def test_probe_protocol_supported(tls_port):
    assert probe_protocol(HOST, tls_port, "TLSv1.2") is True


def test_probe_protocol_rejected(tls_port):
    assert probe_protocol(HOST, tls_port, "TLSv1.3") is False


def test_probe_protocol_closed_port(closed_port):
    assert probe_protocol(HOST, closed_port, "TLSv1.2") is False


def test_probe_cipher_invalid_name():
    assert probe_cipher(HOST, 443, "NOT-A-CIPHER") is False


def test_probe_cipher_accepted(tls_port):
    assert probe_cipher(HOST, tls_port, "ECDHE-ECDSA-AES128-GCM-SHA256") is True


def test_probe_cipher_wrong_key_type(tls_port):
    assert probe_cipher(HOST, tls_port, "ECDHE-RSA-AES128-GCM-SHA256") is False


def test_probe_cipher_negotiated_single(tls_port):
    cipher = "ECDHE-ECDSA-AES128-GCM-SHA256"
    assert probe_cipher_negotiated(HOST, tls_port, cipher) == cipher


def test_probe_cipher_negotiated_picks_offered(tls_port):
    offered = ["ECDHE-ECDSA-AES256-GCM-SHA384", "ECDHE-ECDSA-AES128-GCM-SHA256"]
    assert probe_cipher_negotiated(HOST, tls_port, ":".join(offered)) in offered


def test_probe_cipher_negotiated_invalid_list():
    assert probe_cipher_negotiated(HOST, 443, "NOT-A-CIPHER") is None


def test_fetch_peer_chain(tls_port):
    chain = fetch_peer_chain(HOST, tls_port)
    assert len(chain) >= 1
    common_name = chain[0].subject.get_attributes_for_oid(NameOID.COMMON_NAME)[0].value
    assert common_name == "localhost"
    assert chain[0].serial_number == 1000


def test_fetch_peer_chain_closed_port(closed_port):
    with pytest.raises(CertRadarError):
        fetch_peer_chain(HOST, closed_port)


def test_verify_chain_self_signed_fails(tls_port):
    assert verify_chain(HOST, tls_port) is False


def test_verify_chain_closed_port(closed_port):
    assert verify_chain(HOST, closed_port) is False