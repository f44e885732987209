"""Text rendering of an SSL/TLS analysis."""

from __future__ import annotations

from datetime import datetime, timezone

from tabulate import tabulate

from .colors import (
    format_check,
    format_days_remaining,
    format_grade,
    format_promo,
    main_header,
    section_header,
    style,
)
from .models import CertificateChainInfo, SslAnalysisResult
from .render_search import UTF8_FULL

_SAN_LIMIT = 5
_CHAIN_HEADERS = ("#", "Type", "Subject", "Issuer", "Expires", "Days")

_CERT_TYPES = {
    "leaf": ("Leaf", "green"),
    "intermediate": ("Intermediate", "yellow"),
    "root": ("Root", "blue"),
}

_SEVERITY_ICONS = {
    "critical": ("!!!", ("bright_red", "bold")),
    "warning": ("!!", ("yellow",)),
    "info": ("i", ("blue",)),
}


def _timestamp(value: datetime) -> str:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%d %H:%M:%S UTC")


def _truncate(text: str, limit: int, keep: int) -> str:
    encoded = text.encode("utf-8")
    if len(encoded) <= limit:
        return text
    return encoded[:keep].decode("utf-8", errors="ignore") + "..."


def _deprecated(enabled: bool) -> str:
    return style("(deprecated)", "yellow") if enabled else ""


def _severity_icon(severity: str) -> str:
    icon = _SEVERITY_ICONS.get(severity)
    if icon is None:
        return "-"
    text, styles = icon
    return style(text, *styles)


def _certificate_section(result: SslAnalysisResult) -> list[str]:
    cert = result.certificate
    lines = [
        section_header("Certificate"),
        f"  Subject:     {cert.subject}\n",
        f"  Issuer:      {cert.issuer}\n",
        f"  Valid From:  {cert.valid_from}\n",
        f"  Valid Until: {cert.valid_until}\n",
        f"  Days Left:   {format_days_remaining(cert.days_remaining)} "
        f"{format_check(cert.days_remaining > 30)}\n",
        f"  Key Type:    {cert.key_type} {cert.key_size}-bit\n",
        f"  Chain Valid: {format_check(cert.chain_valid)}\n",
    ]
    sans = cert.subject_alt_names
    if sans:
        if len(sans) > _SAN_LIMIT:
            shown = f"{', '.join(sans[:_SAN_LIMIT])}, ... (+{len(sans) - _SAN_LIMIT} more)"
        else:
            shown = ", ".join(sans)
        lines.append(f"  SANs:        {shown}\n")
    lines.append("\n")
    return lines


def _protocol_section(result: SslAnalysisResult) -> list[str]:
    protocols = result.protocols
    return [
        section_header("Protocol Support"),
        f"  TLS 1.3:  {format_check(protocols.tls_1_3)}\n",
        f"  TLS 1.2:  {format_check(protocols.tls_1_2)}\n",
        f"  TLS 1.1:  {format_check(not protocols.tls_1_1)} {_deprecated(protocols.tls_1_1)}\n",
        f"  TLS 1.0:  {format_check(not protocols.tls_1_0)} {_deprecated(protocols.tls_1_0)}\n",
        "\n",
    ]


def _features_section(result: SslAnalysisResult) -> list[str]:
    lines = [section_header("Security Features")]

    hsts = result.hsts
    if hsts is not None:
        badge = ""
        if hsts.preload_status is not None:
            if hsts.preload_status.is_preloaded:
                badge = style(" [PRELOADED]", "bright_green")
            elif hsts.preload:
                badge = style(" [PENDING]", "yellow")
        lines.append(
            f"  HSTS:           {format_check(hsts.enabled)} (max-age: {hsts.max_age}){badge}\n"
        )
    else:
        lines.append(f"  HSTS:           {format_check(False)}\n")

    ocsp = result.ocsp_stapling
    if ocsp is not None:
        status_info = ""
        if ocsp.enabled and ocsp.cert_status is not None:
            colour = {"good": "green", "revoked": "bright_red"}.get(ocsp.cert_status, "yellow")
            status_info = f" (status: {style(ocsp.cert_status, colour)})"
        lines.append(f"  OCSP Stapling:  {format_check(ocsp.enabled)}{status_info}\n")
    else:
        lines.append(f"  OCSP Stapling:  {style('Unknown', 'dimmed')}\n")

    fs_count = sum(cipher.has_forward_secrecy for cipher in result.cipher_suites)
    lines.append(
        f"  Forward Secrecy: {format_check(result.forward_secrecy.supported)} "
        f"({fs_count}/{len(result.cipher_suites)} ciphers)\n"
    )

    if result.caa is not None:
        lines.append(f"  CAA Records:    {format_check(not result.caa.any_ca_allowed)}\n")

    preference = result.cipher_preference
    if preference is not None:
        lines.append(
            f"  Cipher Pref:    {format_check(preference.server_enforces_preference)}\n"
        )
        if preference.preferred_cipher is not None:
            lines.append(f"  Preferred:      {style(preference.preferred_cipher, 'dimmed')}\n")

    lines.append("\n")
    return lines


def _days_cell(days: int) -> str:
    if days < 0:
        return style("EXPIRED", "red")
    if days <= 30:
        return style(str(days), "yellow")
    return style(str(days), "green")


def _type_cell(cert_type: str) -> str:
    known = _CERT_TYPES.get(cert_type)
    if known is None:
        return cert_type
    label, colour = known
    return style(label, colour)


def _chain_section(chain: CertificateChainInfo) -> list[str]:
    rows = [
        [
            str(cert.position),
            _type_cell(cert.cert_type),
            _truncate(cert.subject, 25, 22),
            _truncate(cert.issuer, 25, 22),
            cert.valid_until,
            _days_cell(cert.days_remaining),
        ]
        for cert in chain.certificates
    ]
    table = tabulate(rows, headers=_CHAIN_HEADERS, tablefmt=UTF8_FULL, disable_numparse=True)
    return [section_header("Certificate Chain"), table, "\n\n"]


def format_ssl_analysis(result: SslAnalysisResult) -> str:
    """Render an SSL/TLS analysis: certificate, protocols, features, chain, issues."""
    parts = [
        main_header(f"SSL/TLS Analysis: {result.host}:{result.port}"),
        f"Grade: {format_grade(result.security_grade)}    "
        f"Analyzed: {_timestamp(result.analyzed_at)}\n\n",
    ]
    parts.extend(_certificate_section(result))
    parts.extend(_protocol_section(result))
    parts.extend(_features_section(result))

    chain = result.certificate.chain
    if chain is not None and chain.length > 1:
        parts.extend(_chain_section(chain))

    if result.issues:
        parts.append(section_header("Issues"))
        for issue in result.issues:
            parts.append(
                f"  {_severity_icon(issue.severity)} {style(issue.title, 'bold')} - "
                f"{style(issue.description, 'dimmed')}\n"
            )

    parts.append(format_promo())
    return "".join(parts)