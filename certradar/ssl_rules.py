"""Rules that turn SSL/TLS probe results into issues and a grade."""

from __future__ import annotations

import re
from collections.abc import Iterable
from typing import NamedTuple

from .models import (
    CaaAnalysis,
    CipherPreferenceInfo,
    ForwardSecrecyInfo,
    HstsInfo,
    OcspStaplingInfo,
    ProtocolSupport,
    SecurityIssue,
    SslCertificateInfo,
)

HSTS_MIN_MAX_AGE = 31536000
MIN_RSA_KEY_SIZE = 2048

_I64_MAX = 2**63 - 1
_I64_MIN = -(2**63)
_INTEGER = re.compile(r"[+-]?[0-9]+")


class CipherSpec(NamedTuple):
    """A cipher suite to probe for, with what is known about it."""

    name: str
    protocol: str
    key_exchange: str
    encryption: str
    bits: int


CIPHER_TEST_LIST: tuple[CipherSpec, ...] = (
    # TLS 1.3 suites: always ephemeral key exchange, always strong.
    CipherSpec("TLS_AES_256_GCM_SHA384", "TLS 1.3", "ECDHE", "AES-256-GCM", 256),
    CipherSpec("TLS_AES_128_GCM_SHA256", "TLS 1.3", "ECDHE", "AES-128-GCM", 128),
    CipherSpec("TLS_CHACHA20_POLY1305_SHA256", "TLS 1.3", "ECDHE", "CHACHA20-POLY1305", 256),
    # TLS 1.2 AEAD suites with forward secrecy.
    CipherSpec("ECDHE-RSA-AES256-GCM-SHA384", "TLS 1.2", "ECDHE", "AES-256-GCM", 256),
    CipherSpec("ECDHE-RSA-AES128-GCM-SHA256", "TLS 1.2", "ECDHE", "AES-128-GCM", 128),
    CipherSpec("ECDHE-ECDSA-AES256-GCM-SHA384", "TLS 1.2", "ECDHE", "AES-256-GCM", 256),
    CipherSpec("ECDHE-ECDSA-AES128-GCM-SHA256", "TLS 1.2", "ECDHE", "AES-128-GCM", 128),
    CipherSpec("ECDHE-RSA-CHACHA20-POLY1305", "TLS 1.2", "ECDHE", "CHACHA20-POLY1305", 256),
    CipherSpec("DHE-RSA-AES256-GCM-SHA384", "TLS 1.2", "DHE", "AES-256-GCM", 256),
    CipherSpec("DHE-RSA-AES128-GCM-SHA256", "TLS 1.2", "DHE", "AES-128-GCM", 128),
    # TLS 1.2 CBC suites: acceptable but less preferred.
    CipherSpec("ECDHE-RSA-AES256-SHA384", "TLS 1.2", "ECDHE", "AES-256-CBC", 256),
    CipherSpec("ECDHE-RSA-AES128-SHA256", "TLS 1.2", "ECDHE", "AES-128-CBC", 128),
    # Weak suites, probed so they can be reported.
    CipherSpec("DES-CBC3-SHA", "TLS 1.2", "RSA", "3DES-CBC", 168),
    CipherSpec("AES256-SHA", "TLS 1.2", "RSA", "AES-256-CBC", 256),
    CipherSpec("AES128-SHA", "TLS 1.2", "RSA", "AES-128-CBC", 128),
    CipherSpec("RC4-SHA", "TLS 1.2", "RSA", "RC4", 128),
    CipherSpec("RC4-MD5", "TLS 1.2", "RSA", "RC4", 128),
)

WEAK_PATTERNS: tuple[str, ...] = (
    "RC4", "3DES", "DES-CBC", "MD5", "aNULL", "eNULL", "EXPORT", "NULL", "ADH", "AECDH",
)

_FORWARD_SECRET_EXCHANGES = frozenset({"ECDHE", "DHE", "ECDH"})
_SEVERITY_ORDER = {"critical": 0, "warning": 1, "info": 2}


class HstsDirectives(NamedTuple):
    """The directives of a Strict-Transport-Security header."""

    max_age: int
    include_subdomains: bool
    preload: bool


def is_weak_cipher(cipher: str) -> bool:
    """Whether a cipher suite name matches a known weak pattern."""
    upper = cipher.upper()
    return any(pattern in upper for pattern in WEAK_PATTERNS)


def has_forward_secrecy(key_exchange: str) -> bool:
    """Whether a key exchange method is ephemeral."""
    return key_exchange in _FORWARD_SECRET_EXCHANGES


def _parse_max_age(text: str) -> int:
    if not _INTEGER.fullmatch(text):
        return 0
    value = int(text)
    if not _I64_MIN <= value <= _I64_MAX:
        return 0
    return value


def parse_hsts_header(value: str) -> HstsDirectives:
    """Read max-age, includeSubDomains and preload from an HSTS header value."""
    max_age = 0
    include_subdomains = False
    preload = False
    for part in (piece.strip().lower() for piece in value.split(";")):
        if part.startswith("max-age="):
            max_age = _parse_max_age(part.removeprefix("max-age="))
        elif part == "includesubdomains":
            include_subdomains = True
        elif part == "preload":
            preload = True
    return HstsDirectives(max_age, include_subdomains, preload)


def _is_weak_rsa(key_type: str, key_size: int) -> bool:
    return key_type == "RSA" and 0 < key_size < MIN_RSA_KEY_SIZE


def _certificate_issues(cert: SslCertificateInfo) -> Iterable[SecurityIssue]:
    days = cert.days_remaining
    if days < 0:
        yield SecurityIssue(
            severity="critical",
            code="CERT_EXPIRED",
            title="Certificate Expired",
            description=(
                f"The certificate expired {-days} days ago. "
                "Visitors will see security warnings."
            ),
        )
    elif days <= 7:
        yield SecurityIssue(
            severity="critical",
            code="CERT_EXPIRING_SOON",
            title="Certificate Expiring Very Soon",
            description=f"The certificate expires in {days} days. Renew immediately.",
        )
    elif days <= 30:
        yield SecurityIssue(
            severity="warning",
            code="CERT_EXPIRING_SOON",
            title="Certificate Expiring Soon",
            description=f"The certificate expires in {days} days. Consider renewing soon.",
        )

    if not cert.chain_valid:
        yield SecurityIssue(
            severity="critical",
            code="CHAIN_INVALID",
            title="Certificate Chain Invalid",
            description=(
                "The certificate chain could not be verified. This may indicate a "
                "self-signed certificate or missing intermediate certificates."
            ),
        )

    if _is_weak_rsa(cert.key_type, cert.key_size):
        yield SecurityIssue(
            severity="warning",
            code="WEAK_KEY",
            title="Weak Key Size",
            description=(
                f"Key size is {cert.key_size} bits. RSA keys should be at least 2048 bits."
            ),
        )


def _protocol_issues(protocols: ProtocolSupport) -> Iterable[SecurityIssue]:
    if protocols.tls_1_0:
        yield SecurityIssue(
            severity="warning",
            code="TLS10_ENABLED",
            title="TLS 1.0 Enabled",
            description=(
                "TLS 1.0 is deprecated and has known vulnerabilities. Disable it if possible."
            ),
        )
    if protocols.tls_1_1:
        yield SecurityIssue(
            severity="warning",
            code="TLS11_ENABLED",
            title="TLS 1.1 Enabled",
            description="TLS 1.1 is deprecated. Consider disabling it.",
        )
    if not protocols.tls_1_3:
        yield SecurityIssue(
            severity="info",
            code="NO_TLS13",
            title="TLS 1.3 Not Supported",
            description="Consider enabling TLS 1.3 for improved security and performance.",
        )


def _cipher_issues(
    weak_ciphers: list[str], forward_secrecy: ForwardSecrecyInfo
) -> Iterable[SecurityIssue]:
    if weak_ciphers:
        yield SecurityIssue(
            severity="warning",
            code="WEAK_CIPHERS",
            title="Weak Cipher Suites Detected",
            description=(
                f"Found {len(weak_ciphers)} weak cipher(s): {', '.join(weak_ciphers)}. "
                "Disable these ciphers for better security."
            ),
        )
    if not forward_secrecy.supported:
        yield SecurityIssue(
            severity="warning",
            code="NO_PFS",
            title="No Forward Secrecy",
            description=(
                "No cipher suites with forward secrecy are supported. "
                "Enable ECDHE or DHE ciphers."
            ),
        )
    elif not forward_secrecy.all_ciphers_support:
        yield SecurityIssue(
            severity="info",
            code="PARTIAL_PFS",
            title="Some Ciphers Lack Forward Secrecy",
            description="Not all supported cipher suites provide perfect forward secrecy.",
        )


def _ocsp_issues(ocsp: OcspStaplingInfo | None) -> Iterable[SecurityIssue]:
    if ocsp is None or not ocsp.enabled:
        yield SecurityIssue(
            severity="info",
            code="NO_OCSP_STAPLING",
            title="OCSP Stapling Not Enabled",
            description=(
                "Consider enabling OCSP stapling for faster certificate validation "
                "and improved privacy."
            ),
        )
    elif ocsp.cert_status == "revoked":
        yield SecurityIssue(
            severity="critical",
            code="OCSP_REVOKED",
            title="Certificate Revoked",
            description="OCSP stapling indicates this certificate has been revoked.",
        )


def _hsts_issues(hsts: HstsInfo | None) -> Iterable[SecurityIssue]:
    if hsts is None:
        yield SecurityIssue(
            severity="warning",
            code="NO_HSTS",
            title="HSTS Not Enabled",
            description=(
                "HTTP Strict Transport Security header is not set. "
                "This leaves users vulnerable to downgrade attacks."
            ),
        )
        return

    if hsts.max_age < HSTS_MIN_MAX_AGE:
        yield SecurityIssue(
            severity="info",
            code="HSTS_SHORT",
            title="HSTS Max-Age Too Short",
            description=(
                f"HSTS max-age is {hsts.max_age} seconds. Consider setting it to at "
                "least 1 year (31536000 seconds)."
            ),
        )

    status = hsts.preload_status
    if status is None:
        return
    if hsts.preload and not status.is_preloaded:
        yield SecurityIssue(
            severity="info",
            code="HSTS_NOT_PRELOADED",
            title="HSTS Preload Not Active",
            description=(
                "The preload directive is set but domain is not on the HSTS preload list."
            ),
        )
    if status.is_preloaded and (
        hsts.max_age < HSTS_MIN_MAX_AGE or not hsts.include_subdomains or not hsts.preload
    ):
        yield SecurityIssue(
            severity="warning",
            code="HSTS_PRELOAD_REQUIREMENTS",
            title="HSTS Header Not Meeting Preload Requirements",
            description=(
                "Domain is preloaded but current HSTS header doesn't meet all requirements "
                "(max-age >= 1 year, includeSubDomains, preload)."
            ),
        )


def _chain_issues(cert: SslCertificateInfo) -> Iterable[SecurityIssue]:
    chain = cert.chain
    if chain is None:
        return
    if not chain.chain_complete:
        yield SecurityIssue(
            severity="info",
            code="CHAIN_INCOMPLETE",
            title="Certificate Chain Incomplete",
            description=(
                "The certificate chain does not end with a self-signed root certificate."
            ),
        )
    for chain_cert in chain.certificates:
        if chain_cert.cert_type == "intermediate" and 0 < chain_cert.days_remaining <= 30:
            yield SecurityIssue(
                severity="warning",
                code="INTERMEDIATE_EXPIRING",
                title="Intermediate Certificate Expiring",
                description=(
                    f"Intermediate certificate '{chain_cert.subject}' expires in "
                    f"{chain_cert.days_remaining} days."
                ),
            )
        if _is_weak_rsa(chain_cert.key_type, chain_cert.key_size):
            yield SecurityIssue(
                severity="warning",
                code="CHAIN_WEAK_KEY",
                title="Weak Key in Certificate Chain",
                description=(
                    f"Certificate '{chain_cert.subject}' in chain has weak "
                    f"{chain_cert.key_type} {chain_cert.key_size}-bit key."
                ),
            )


def _policy_issues(
    caa: CaaAnalysis | None, cipher_preference: CipherPreferenceInfo | None
) -> Iterable[SecurityIssue]:
    if caa is not None and caa.any_ca_allowed:
        yield SecurityIssue(
            severity="info",
            code="NO_CAA",
            title="No CAA Records",
            description=(
                "No CAA records found. Consider adding CAA records to restrict which CAs "
                "can issue certificates for your domain."
            ),
        )
    if cipher_preference is not None and not cipher_preference.server_enforces_preference:
        yield SecurityIssue(
            severity="info",
            code="NO_SERVER_CIPHER_PREFERENCE",
            title="Server Does Not Enforce Cipher Preference",
            description=(
                "The server does not enforce its own cipher suite preference order. "
                "Consider configuring server-side cipher preference."
            ),
        )


def detect_issues(
    protocols: ProtocolSupport,
    cert: SslCertificateInfo,
    hsts: HstsInfo | None,
    weak_ciphers: list[str],
    forward_secrecy: ForwardSecrecyInfo,
    ocsp_stapling: OcspStaplingInfo | None,
    caa: CaaAnalysis | None,
    cipher_preference: CipherPreferenceInfo | None,
) -> list[SecurityIssue]:
    """List every problem the analysis results reveal, in a fixed order."""
    return [
        *_certificate_issues(cert),
        *_protocol_issues(protocols),
        *_cipher_issues(weak_ciphers, forward_secrecy),
        *_ocsp_issues(ocsp_stapling),
        *_hsts_issues(hsts),
        *_chain_issues(cert),
        *_policy_issues(caa, cipher_preference),
    ]


def calculate_grade(
    protocols: ProtocolSupport,
    issues: list[SecurityIssue],
    hsts: HstsInfo | None,
    weak_ciphers: list[str],
    forward_secrecy: ForwardSecrecyInfo,
    ocsp_stapling: OcspStaplingInfo | None,
) -> str:
    """Score the analysis from 100 down and turn the score into a letter grade."""
    critical_count = sum(issue.severity == "critical" for issue in issues)
    warning_count = sum(issue.severity == "warning" for issue in issues)

    score = 100 - 40 * critical_count - 10 * warning_count
    if weak_ciphers:
        score -= 15
    if not forward_secrecy.all_ciphers_support:
        score -= 10
    if protocols.tls_1_3 and not protocols.tls_1_0 and not protocols.tls_1_1:
        score += 5
    if (
        hsts is not None
        and hsts.preload
        and hsts.include_subdomains
        and hsts.max_age >= HSTS_MIN_MAX_AGE
    ):
        score += 5
    if ocsp_stapling is not None and ocsp_stapling.enabled:
        score += 3

    score = max(0, min(100, score))

    if score >= 95:
        flawless = (
            critical_count == 0
            and warning_count == 0
            and protocols.tls_1_3
            and hsts is not None
            and hsts.preload
            and not weak_ciphers
            and forward_secrecy.all_ciphers_support
        )
        return "A+" if flawless else "A"
    if score >= 80:
        return "A"
    if score >= 70:
        return "B"
    if score >= 60:
        return "C"
    if score >= 40:
        return "D"
    return "F"


def sort_issues(issues: Iterable[SecurityIssue]) -> list[SecurityIssue]:
    """Order issues critical first, then warning, then info, keeping ties in order."""
    return sorted(issues, key=lambda issue: _SEVERITY_ORDER.get(issue.severity, 3))