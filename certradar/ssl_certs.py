"""Reading leaf certificates and presented chains into result objects."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timezone

from cryptography import x509
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives.asymmetric import dsa, ec, ed448, ed25519, rsa
from cryptography.x509.oid import NameOID, SignatureAlgorithmOID

from .models import CertificateChainInfo, ChainCertificateInfo, SslCertificateInfo

_MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")
_SECONDS_PER_DAY = 86400

_SIGNATURE_NAMES = {
    SignatureAlgorithmOID.RSA_WITH_MD5: "md5WithRSAEncryption",
    SignatureAlgorithmOID.RSA_WITH_SHA1: "sha1WithRSAEncryption",
    SignatureAlgorithmOID.RSA_WITH_SHA224: "sha224WithRSAEncryption",
    SignatureAlgorithmOID.RSA_WITH_SHA256: "sha256WithRSAEncryption",
    SignatureAlgorithmOID.RSA_WITH_SHA384: "sha384WithRSAEncryption",
    SignatureAlgorithmOID.RSA_WITH_SHA512: "sha512WithRSAEncryption",
    SignatureAlgorithmOID.RSASSA_PSS: "rsassaPss",
    SignatureAlgorithmOID.ECDSA_WITH_SHA1: "ecdsa-with-SHA1",
    SignatureAlgorithmOID.ECDSA_WITH_SHA224: "ecdsa-with-SHA224",
    SignatureAlgorithmOID.ECDSA_WITH_SHA256: "ecdsa-with-SHA256",
    SignatureAlgorithmOID.ECDSA_WITH_SHA384: "ecdsa-with-SHA384",
    SignatureAlgorithmOID.ECDSA_WITH_SHA512: "ecdsa-with-SHA512",
    SignatureAlgorithmOID.DSA_WITH_SHA1: "dsaWithSHA1",
    SignatureAlgorithmOID.DSA_WITH_SHA224: "dsa_with_SHA224",
    SignatureAlgorithmOID.DSA_WITH_SHA256: "dsa_with_SHA256",
    SignatureAlgorithmOID.ED25519: "ED25519",
    SignatureAlgorithmOID.ED448: "ED448",
}

INCOMPLETE_CHAIN_ISSUE = "Chain does not end with a self-signed root certificate"


def _now(now: datetime | None) -> datetime:
    if now is None:
        return datetime.now(timezone.utc)
    if now.tzinfo is None:
        return now.replace(tzinfo=timezone.utc)
    return now


def _first_attribute(name: x509.Name, oid: x509.ObjectIdentifier) -> str | None:
    for attribute in name.get_attributes_for_oid(oid):
        return str(attribute.value)
    return None


def _name_values(name: x509.Name) -> str:
    return ",".join(str(attribute.value) for attribute in name)


def _format_time(value: datetime) -> str:
    value = value.astimezone(timezone.utc)
    return (
        f"{_MONTHS[value.month - 1]} {value.day:2d} "
        f"{value.hour:02d}:{value.minute:02d}:{value.second:02d} {value.year} GMT"
    )


def _serial_hex(serial: int) -> str:
    if serial < 0:
        return "-" + format(-serial, "X")
    return format(serial, "X")


def _signature_name(cert: x509.Certificate) -> str:
    oid = cert.signature_algorithm_oid
    return _SIGNATURE_NAMES.get(oid, oid.dotted_string)


def days_remaining(not_after: datetime, now: datetime | None = None) -> int:
    """Whole days from now until not_after, truncated towards zero."""
    if not_after.tzinfo is None:
        not_after = not_after.replace(tzinfo=timezone.utc)
    delta = not_after - _now(now)
    total = delta.days * _SECONDS_PER_DAY + delta.seconds
    days = abs(total) // _SECONDS_PER_DAY
    return -days if total < 0 else days


def describe_public_key(cert: x509.Certificate) -> tuple[str, int]:
    """The key type (RSA, EC, DSA or Unknown) and its size in bits."""
    try:
        key = cert.public_key()
    except (ValueError, UnsupportedAlgorithm):
        return "Unknown", 0
    if isinstance(key, rsa.RSAPublicKey):
        return "RSA", key.key_size
    if isinstance(key, ec.EllipticCurvePublicKey):
        return "EC", key.curve.key_size
    if isinstance(key, dsa.DSAPublicKey):
        return "DSA", key.key_size
    if isinstance(key, ed25519.Ed25519PublicKey):
        return "Unknown", 253
    if isinstance(key, ed448.Ed448PublicKey):
        return "Unknown", 456
    return "Unknown", 0


def _dns_names(cert: x509.Certificate, fallback: str) -> list[str]:
    try:
        extension = cert.extensions.get_extension_for_class(x509.SubjectAlternativeName)
    except (x509.ExtensionNotFound, ValueError):
        return [fallback]
    return list(extension.value.get_values_for_type(x509.DNSName))


def parse_certificate(
    cert: x509.Certificate, host: str, now: datetime | None = None
) -> SslCertificateInfo:
    """Summarise the leaf certificate a server presented for host."""
    subject = _first_attribute(cert.subject, NameOID.COMMON_NAME) or host
    issuer = (
        _first_attribute(cert.issuer, NameOID.ORGANIZATION_NAME)
        or _first_attribute(cert.issuer, NameOID.COMMON_NAME)
        or "Unknown Issuer"
    )
    key_type, key_size = describe_public_key(cert)
    return SslCertificateInfo(
        subject=subject,
        issuer=issuer,
        valid_from=_format_time(cert.not_valid_before_utc),
        valid_until=_format_time(cert.not_valid_after_utc),
        days_remaining=days_remaining(cert.not_valid_after_utc, now),
        serial_number=_serial_hex(cert.serial_number),
        signature_algorithm=_signature_name(cert),
        key_type=key_type,
        key_size=key_size,
        subject_alt_names=_dns_names(cert, subject),
    )


def _display_name(name: x509.Name) -> str:
    return (
        _first_attribute(name, NameOID.COMMON_NAME)
        or _first_attribute(name, NameOID.ORGANIZATION_NAME)
        or "Unknown"
    )


def parse_certificate_chain(
    certs: Sequence[x509.Certificate], now: datetime | None = None
) -> CertificateChainInfo:
    """Describe each certificate of a presented chain and what is wrong with it."""
    current = _now(now)
    certificates: list[ChainCertificateInfo] = []
    issues: list[str] = []

    for position, cert in enumerate(certs):
        subject = _display_name(cert.subject)
        is_self_signed = _name_values(cert.subject) == _name_values(cert.issuer)
        if position == 0:
            cert_type = "leaf"
        elif is_self_signed:
            cert_type = "root"
        else:
            cert_type = "intermediate"

        remaining = days_remaining(cert.not_valid_after_utc, current)
        key_type, key_size = describe_public_key(cert)

        if cert_type != "leaf" and 0 < remaining <= 30:
            issues.append(
                f"Intermediate certificate '{subject}' expires in {remaining} days"
            )
        if key_type == "RSA" and 0 < key_size < 2048:
            issues.append(f"Certificate '{subject}' has weak RSA key ({key_size} bits)")

        certificates.append(
            ChainCertificateInfo(
                position=position,
                cert_type=cert_type,
                subject=subject,
                issuer=_display_name(cert.issuer),
                valid_from=_format_time(cert.not_valid_before_utc),
                valid_until=_format_time(cert.not_valid_after_utc),
                days_remaining=remaining,
                serial_number=_serial_hex(cert.serial_number),
                signature_algorithm=_signature_name(cert),
                key_type=key_type,
                key_size=key_size,
                is_self_signed=is_self_signed,
            )
        )

    chain_complete = bool(certificates) and certificates[-1].is_self_signed
    if not chain_complete and certificates:
        issues.append(INCOMPLETE_CHAIN_ISSUE)

    return CertificateChainInfo(
        length=len(certificates),
        valid=not issues,
        chain_complete=chain_complete,
        certificates=certificates,
        issues=issues,
    )