from datetime import datetime, timedelta, timezone

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec, rsa
from cryptography.x509.oid import NameOID

from certradar.ssl_certs import (
    days_remaining,
    describe_public_key,
    parse_certificate,
    parse_certificate_chain,
)

NOW = datetime(2024, 1, 1, tzinfo=timezone.utc)


@pytest.fixture(scope="module")
def ec_key():
    return ec.generate_private_key(ec.SECP256R1())


@pytest.fixture(scope="module")
def weak_rsa_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=1024)


def _name(cn=None, org=None):
    attrs = []
    if cn is not None:
        attrs.append(x509.NameAttribute(NameOID.COMMON_NAME, cn))
    if org is not None:
        attrs.append(x509.NameAttribute(NameOID.ORGANIZATION_NAME, org))
    return x509.Name(attrs)


def _make(subject, issuer, key, signer, *, days=365, serial=1, sans=None):
    builder = (
        x509.CertificateBuilder()
        .subject_name(subject)
        .issuer_name(issuer)
        .public_key(key.public_key())
        .serial_number(serial)
        .not_valid_before(NOW - timedelta(days=10))
        .not_valid_after(NOW + timedelta(days=days, hours=1))
    )
    if sans is not None:
        builder = builder.add_extension(
            x509.SubjectAlternativeName([x509.DNSName(n) for n in sans]), critical=False
        )
    return builder.sign(signer, hashes.SHA256())


def test_days_remaining_future_and_past():
    assert days_remaining(NOW + timedelta(days=10, hours=3), NOW) == 10
    assert days_remaining(NOW - timedelta(days=5, hours=2), NOW) == -5
    assert days_remaining(NOW + timedelta(hours=5), NOW) == 0


def test_describe_public_key_ec(ec_key):
    cert = _make(_name("a.test"), _name("a.test"), ec_key, ec_key)
    assert describe_public_key(cert) == ("EC", 256)


def test_describe_public_key_rsa(weak_rsa_key):
    cert = _make(_name("a.test"), _name("a.test"), weak_rsa_key, weak_rsa_key)
    assert describe_public_key(cert) == ("RSA", 1024)


def test_parse_certificate_fields(ec_key):
    cert = _make(
        _name("www.example.com"),
        _name("Issuing CA", "Example Org"),
        ec_key,
        ec_key,
        days=30,
        serial=0xABCDEF,
        sans=["www.example.com", "example.com"],
    )
    info = parse_certificate(cert, "host.example.com", NOW)
    assert info.subject == "www.example.com"
    assert info.issuer == "Example Org"
    assert info.days_remaining == 30
    assert info.serial_number == "ABCDEF"
    assert info.signature_algorithm == "ecdsa-with-SHA256"
    assert info.key_type == "EC"
    assert info.subject_alt_names == ["www.example.com", "example.com"]
    assert info.valid_until == "Jan 31 01:00:00 2024 GMT"
    assert info.chain_length == 1
    assert info.chain_valid is True
    assert info.chain is None


def test_parse_certificate_fallbacks(ec_key):
    cert = _make(x509.Name([]), _name("Issuer CN"), ec_key, ec_key)
    info = parse_certificate(cert, "fallback.example.com", NOW)
    assert info.subject == "fallback.example.com"
    assert info.issuer == "Issuer CN"
    assert info.subject_alt_names == ["fallback.example.com"]

    anonymous = _make(_name("x.example.com"), x509.Name([]), ec_key, ec_key)
    assert parse_certificate(anonymous, "x.example.com", NOW).issuer == "Unknown Issuer"


def test_parse_chain_complete(ec_key):
    leaf = _make(_name("example.com"), _name("Intermediate CA"), ec_key, ec_key)
    inter = _make(_name("Intermediate CA"), _name("Root CA"), ec_key, ec_key)
    root = _make(_name("Root CA"), _name("Root CA"), ec_key, ec_key)
    chain = parse_certificate_chain([leaf, inter, root], NOW)
    assert chain.length == 3
    assert [c.cert_type for c in chain.certificates] == ["leaf", "intermediate", "root"]
    assert [c.position for c in chain.certificates] == [0, 1, 2]
    assert chain.certificates[2].is_self_signed
    assert not chain.certificates[1].is_self_signed
    assert chain.chain_complete
    assert chain.valid
    assert chain.issues == []


def test_parse_chain_incomplete(ec_key):
    leaf = _make(_name("example.com"), _name("Intermediate CA"), ec_key, ec_key)
    inter = _make(_name("Intermediate CA"), _name("Root CA"), ec_key, ec_key)
    chain = parse_certificate_chain([leaf, inter], NOW)
    assert not chain.chain_complete
    assert not chain.valid
    assert chain.issues == ["Chain does not end with a self-signed root certificate"]


def test_parse_chain_expiring_and_weak(ec_key, weak_rsa_key):
    leaf = _make(_name("example.com"), _name("Expiring CA"), ec_key, ec_key)
    inter = _make(_name("Expiring CA"), _name("Root CA"), weak_rsa_key, ec_key, days=10)
    root = _make(_name("Root CA"), _name("Root CA"), ec_key, ec_key)
    chain = parse_certificate_chain([leaf, inter, root], NOW)
    assert chain.chain_complete
    assert not chain.valid
    assert chain.issues == [
        "Intermediate certificate 'Expiring CA' expires in 10 days",
        "Certificate 'Expiring CA' has weak RSA key (1024 bits)",
    ]


def test_parse_chain_subject_falls_back_to_org(ec_key):
    cert = _make(_name(org="Only Org"), x509.Name([]), ec_key, ec_key)
    chain = parse_certificate_chain([cert], NOW)
    assert chain.certificates[0].subject == "Only Org"
    assert chain.certificates[0].issuer == "Unknown"


def test_parse_empty_chain():
    chain = parse_certificate_chain([], NOW)
    assert chain.length == 0
    assert not chain.chain_complete
    assert chain.valid
    assert chain.issues == []