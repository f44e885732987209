"""Result types shared by the services, renderers and commands."""

from __future__ import annotations

import json
from dataclasses import MISSING, dataclass, field, fields, is_dataclass
from datetime import datetime, timezone
from typing import Any

_KEY = "json_key"
_SKIP_NONE = "skip_none"


class CertRadarError(Exception):
    """Raised when a lookup or analysis cannot be completed."""


def _json(key: str | None = None, *, skip_none: bool = False, default: Any = MISSING,
          default_factory: Any = MISSING) -> Any:
    metadata: dict[str, Any] = {}
    if key is not None:
        metadata[_KEY] = key
    if skip_none:
        metadata[_SKIP_NONE] = True
    kwargs: dict[str, Any] = {"metadata": metadata}
    if default is not MISSING:
        kwargs["default"] = default
    if default_factory is not MISSING:
        kwargs["default_factory"] = default_factory
    return field(**kwargs)


# ---------------------------------------------------------------------------
# Certificate transparency
# ---------------------------------------------------------------------------


@dataclass(kw_only=True)
class Certificate:
    """A certificate entry returned by a CT log search."""

    crtsh_id: int
    common_name: str
    name_value: str
    issuer_name: str
    not_before: str
    not_after: str
    serial_number: str


@dataclass(kw_only=True)
class SearchResult:
    """Certificates found by a search, with their count and source."""

    certificates: list[Certificate]
    total: int
    source: str


# ---------------------------------------------------------------------------
# SSL analysis
# ---------------------------------------------------------------------------


@dataclass(kw_only=True)
class ProtocolSupport:
    """Which TLS protocol versions a server accepts."""

    tls_1_3: bool = _json("tls13")
    tls_1_2: bool = _json("tls12")
    tls_1_1: bool = _json("tls11")
    tls_1_0: bool = _json("tls10")


@dataclass(kw_only=True)
class ChainCertificateInfo:
    """One certificate of a presented chain."""

    position: int
    cert_type: str = _json("certType")
    subject: str
    issuer: str
    valid_from: str = _json("validFrom")
    valid_until: str = _json("validUntil")
    days_remaining: int = _json("daysRemaining")
    serial_number: str = _json("serialNumber")
    signature_algorithm: str = _json("signatureAlgorithm")
    key_type: str = _json("keyType")
    key_size: int = _json("keySize")
    is_self_signed: bool = _json("isSelfSigned")


@dataclass(kw_only=True)
class CertificateChainInfo:
    """Analysis of a presented certificate chain."""

    length: int
    valid: bool
    chain_complete: bool = _json("chainComplete")
    certificates: list[ChainCertificateInfo] = field(default_factory=list)
    issues: list[str] = field(default_factory=list)


@dataclass(kw_only=True)
class SslCertificateInfo:
    """The leaf certificate a server presented."""

    subject: str
    issuer: str
    valid_from: str = _json("validFrom")
    valid_until: str = _json("validUntil")
    days_remaining: int = _json("daysRemaining")
    serial_number: str = _json("serialNumber")
    signature_algorithm: str = _json("signatureAlgorithm")
    key_type: str = _json("keyType")
    key_size: int = _json("keySize")
    subject_alt_names: list[str] = _json("subjectAltNames", default_factory=list)
    chain_length: int = _json("chainLength", default=1)
    chain_valid: bool = _json("chainValid", default=True)
    chain: CertificateChainInfo | None = _json(skip_none=True, default=None)


@dataclass(kw_only=True)
class CipherSuiteInfo:
    """A cipher suite the server accepted."""

    name: str
    protocol: str
    key_exchange: str = _json("keyExchange")
    encryption: str
    bits: int
    is_weak: bool = _json("isWeak")
    has_forward_secrecy: bool = _json("hasForwardSecrecy")
    server_preference_rank: int | None = _json("serverPreferenceRank", skip_none=True, default=None)


@dataclass(kw_only=True)
class CipherPreferenceInfo:
    """Whether the server imposes its own cipher order."""

    server_enforces_preference: bool = _json("serverEnforcesPreference")
    preferred_cipher: str | None = _json("preferredCipher", skip_none=True, default=None)
    preference_order: list[str] | None = _json("preferenceOrder", skip_none=True, default=None)


@dataclass(kw_only=True)
class SecurityIssue:
    """A problem found during analysis; severity is critical, warning or info."""

    severity: str
    code: str
    title: str
    description: str


@dataclass(kw_only=True)
class HstsPreloadStatus:
    """The domain's state on the HSTS preload list."""

    is_preloaded: bool = _json("isPreloaded")
    status: str
    preloaded_domain: str | None = _json("preloadedDomain", skip_none=True, default=None)


@dataclass(kw_only=True)
class HstsInfo:
    """The Strict-Transport-Security header a server sends."""

    enabled: bool
    max_age: int = _json("maxAge")
    include_subdomains: bool = _json("includeSubdomains")
    preload: bool
    preload_status: HstsPreloadStatus | None = _json("preloadStatus", skip_none=True, default=None)


@dataclass(kw_only=True)
class OcspStaplingInfo:
    """Whether the server staples an OCSP response, and what it says."""

    enabled: bool
    response_status: str | None = _json("responseStatus", skip_none=True, default=None)
    cert_status: str | None = _json("certStatus", skip_none=True, default=None)
    this_update: str | None = _json("thisUpdate", skip_none=True, default=None)
    next_update: str | None = _json("nextUpdate", skip_none=True, default=None)
    revocation_time: str | None = _json("revocationTime", skip_none=True, default=None)
    revocation_reason: str | None = _json("revocationReason", skip_none=True, default=None)
    produced_at: str | None = _json("producedAt", skip_none=True, default=None)


@dataclass(kw_only=True)
class ForwardSecrecyInfo:
    """Forward secrecy across the accepted cipher suites."""

    supported: bool
    all_ciphers_support: bool = _json("allCiphersSupport")


# ---------------------------------------------------------------------------
# DNS
# ---------------------------------------------------------------------------


@dataclass(kw_only=True)
class MxRecord:
    """A mail exchanger and its priority."""

    host: str
    priority: int


@dataclass(kw_only=True)
class CaaRecord:
    """A CAA resource record."""

    flag: int
    tag: str
    value: str


@dataclass(kw_only=True)
class DnsResult:
    """All records found for a domain."""

    a: list[str] = field(default_factory=list)
    aaaa: list[str] = field(default_factory=list)
    cname: str | None = _json(skip_none=True, default=None)
    mx: list[MxRecord] = field(default_factory=list)
    txt: list[str] = field(default_factory=list)
    ns: list[str] = field(default_factory=list)
    caa: list[CaaRecord] = field(default_factory=list)
    response_time_ms: int = _json("responseTimeMs", default=0)


# ---------------------------------------------------------------------------
# Health check
# ---------------------------------------------------------------------------


@dataclass(kw_only=True)
class CnameChain:
    """The CNAME hops followed from a domain."""

    domain: str
    chain: list[str] = field(default_factory=list)
    final_target: str = _json("finalTarget")
    is_circular: bool = _json("isCircular", default=False)
    hops: int = 0
    error: str | None = _json(skip_none=True, default=None)


@dataclass(kw_only=True)
class CaaRecordInfo:
    """A CAA record with the name it was found at."""

    flag: int
    tag: str
    value: str
    found_at: str = _json("foundAt")


@dataclass(kw_only=True)
class CaaAnalysis:
    """CAA policy in effect for a domain."""

    found_at: str | None = _json("foundAt", default=None)
    inherited: bool = False
    authorized_cas: list[str] = _json("authorizedCas", default_factory=list)
    wildcard_cas: list[str] = _json("wildcardCas", default_factory=list)
    has_iodef: bool = _json("hasIodef", default=False)
    iodef: str | None = _json(skip_none=True, default=None)
    has_critical: bool = _json("hasCritical", default=False)
    any_ca_allowed: bool = _json("anyCAAllowed", default=True)
    raw_records: list[CaaRecordInfo] = _json("rawRecords", default_factory=list)


@dataclass(kw_only=True)
class MxRecordInfo:
    """A mail exchanger as shown in a health check."""

    host: str
    priority: int


@dataclass(kw_only=True)
class DnsResolution:
    """Address and other records summarised for a health check."""

    ipv4: list[str] = field(default_factory=list)
    ipv6: list[str] = field(default_factory=list)
    mx: list[MxRecordInfo] = field(default_factory=list)
    txt: list[str] = field(default_factory=list)
    ns: list[str] = field(default_factory=list)
    has_ipv4: bool = _json("hasIpv4", default=False)
    has_ipv6: bool = _json("hasIpv6", default=False)


@dataclass(kw_only=True)
class HealthRecommendation:
    """A suggested fix found by a health check."""

    severity: str
    category: str
    title: str
    description: str


@dataclass(kw_only=True)
class HealthScore:
    """Overall health grade, score and one-line summary."""

    grade: str
    score: int
    summary: str


@dataclass(kw_only=True)
class SslHealthCheckResult:
    """Everything a health check found for a domain."""

    domain: str
    checked_at: datetime = _json("checkedAt")
    health_score: HealthScore = _json("healthScore")
    caa: CaaAnalysis
    cname_chain: CnameChain = _json("cnameChain")
    dns: DnsResolution
    recommendations: list[HealthRecommendation] = field(default_factory=list)
    response_time_ms: int = _json("responseTimeMs", default=0)


@dataclass(kw_only=True)
class SslAnalysisResult:
    """Full SSL/TLS analysis of one host and port."""

    host: str
    port: int
    protocols: ProtocolSupport
    certificate: SslCertificateInfo
    cipher_suites: list[CipherSuiteInfo] = _json("cipherSuites")
    security_grade: str = _json("securityGrade")
    issues: list[SecurityIssue]
    hsts: HstsInfo | None = _json(skip_none=True, default=None)
    ocsp_stapling: OcspStaplingInfo | None = _json("ocspStapling", skip_none=True, default=None)
    forward_secrecy: ForwardSecrecyInfo = _json("forwardSecrecy")
    weak_ciphers: list[str] = _json("weakCiphers", default_factory=list)
    caa: CaaAnalysis | None = _json(skip_none=True, default=None)
    cipher_preference: CipherPreferenceInfo | None = _json(
        "cipherPreference", skip_none=True, default=None
    )
    analyzed_at: datetime = _json("analyzedAt")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def grade_for_score(score: int) -> str:
    """Map a 0-100 score to a letter grade."""
    if 90 <= score <= 100:
        return "A+"
    if 80 <= score <= 89:
        return "A"
    if 70 <= score <= 79:
        return "B"
    if 60 <= score <= 69:
        return "C"
    if 40 <= score <= 59:
        return "D"
    return "F"


def _format_datetime(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    text = value.astimezone(timezone.utc).isoformat()
    return text.removesuffix("+00:00") + "Z"


def to_json(value: Any) -> Any:
    """Convert a result object into plain JSON-ready data with its wire field names."""
    if is_dataclass(value) and not isinstance(value, type):
        out: dict[str, Any] = {}
        for f in fields(value):
            item = getattr(value, f.name)
            if item is None and f.metadata.get(_SKIP_NONE):
                continue
            out[f.metadata.get(_KEY, f.name)] = to_json(item)
        return out
    if isinstance(value, datetime):
        return _format_datetime(value)
    if isinstance(value, dict):
        return {str(key): to_json(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_json(item) for item in value]
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    raise TypeError(f"cannot convert {type(value).__name__} to JSON")


def dumps(value: Any) -> str:
    """Render a result object as pretty-printed JSON."""
    return json.dumps(to_json(value), indent=2, ensure_ascii=False)