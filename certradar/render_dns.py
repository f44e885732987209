"""Text rendering of DNS lookups and health checks."""

from __future__ import annotations

from datetime import datetime, timezone

from .colors import format_check, format_grade, main_header, section_header, style
from .models import DnsResult, SslHealthCheckResult

_TXT_LIMIT = 80
_TXT_KEEP = 77

_SEVERITY_ICONS = {
    "critical": ("!!!", ("bright_red", "bold")),
    "warning": ("!!", ("yellow",)),
    "info": ("i", ("blue",)),
}


def _timestamp(value: datetime) -> str:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%d %H:%M:%S UTC")


def _truncate_bytes(text: str, limit: int, keep: int) -> str:
    encoded = text.encode("utf-8")
    if len(encoded) <= limit:
        return text
    return encoded[:keep].decode("utf-8", errors="ignore") + "..."


def _list_section(title: str, items: list[str]) -> str:
    body = "".join(f"  {item}\n" for item in items) if items else "  None\n"
    return section_header(title) + body + "\n"


def _severity_icon(severity: str) -> str:
    icon = _SEVERITY_ICONS.get(severity)
    if icon is None:
        return "-"
    text, styles = icon
    return style(text, *styles)


def format_dns_results(result: DnsResult, domain: str) -> str:
    """Render every record type of a DNS lookup."""
    parts = [
        main_header(f"DNS Lookup: {domain}"),
        f"Response time: {result.response_time_ms} ms\n\n",
        _list_section("A Records (IPv4)", result.a),
        _list_section("AAAA Records (IPv6)", result.aaaa),
    ]

    if result.cname is not None:
        parts.append(section_header("CNAME Record"))
        parts.append(f"  {result.cname}\n\n")

    parts.append(
        _list_section("MX Records", [f"{mx.host} (priority: {mx.priority})" for mx in result.mx])
    )
    parts.append(_list_section("NS Records", result.ns))

    parts.append(section_header("CAA Records"))
    if result.caa:
        for caa in result.caa:
            marker = style("[critical]", "red") if caa.flag != 0 else ""
            parts.append(f"  {marker} {caa.tag} = {caa.value}\n")
    else:
        parts.append("  None (any CA can issue certificates)\n")
    parts.append("\n")

    parts.append(section_header("TXT Records"))
    if result.txt:
        for txt in result.txt:
            parts.append(f'  "{_truncate_bytes(txt, _TXT_LIMIT, _TXT_KEEP)}"\n')
    else:
        parts.append("  None\n")

    return "".join(parts)


def _address_line(label: str, present: bool, addresses: list[str]) -> str:
    shown = ", ".join(addresses) if addresses else "none"
    return f"  {label}:  {format_check(present)} ({shown})\n"


def format_health_results(result: SslHealthCheckResult) -> str:
    """Render a health check: grade, CAA policy, CNAME chain, addresses, advice."""
    score = result.health_score
    parts = [
        main_header(f"SSL Health Check: {result.domain}"),
        f"Grade: {format_grade(score.grade)} (Score: {score.score}/100)    "
        f"Checked: {_timestamp(result.checked_at)}\n",
        f"{style(score.summary, 'dimmed')}\n\n",
        section_header("CAA Records"),
    ]

    caa = result.caa
    if caa.any_ca_allowed:
        parts.append(
            f"  {style('!', 'yellow')} No CAA records - any CA can issue certificates\n"
        )
    else:
        if caa.found_at is not None:
            suffix = " (inherited)" if caa.inherited else ""
            parts.append(f"  Found at: {caa.found_at}{suffix}\n")
        if caa.authorized_cas:
            parts.append(f"  Authorized CAs: {', '.join(caa.authorized_cas)}\n")
    parts.append("\n")

    chain = result.cname_chain
    parts.append(section_header("CNAME Chain"))
    if chain.hops == 0:
        parts.append("  No CNAME records (direct resolution)\n")
    else:
        parts.append(f"  {chain.domain} -> {chain.final_target} ({chain.hops} hops)\n")
        if chain.is_circular:
            parts.append(f"  {style('!!!', 'bright_red')} Circular CNAME detected!\n")
    parts.append("\n")

    parts.append(section_header("DNS Resolution"))
    parts.append(_address_line("IPv4", result.dns.has_ipv4, result.dns.ipv4))
    parts.append(_address_line("IPv6", result.dns.has_ipv6, result.dns.ipv6))
    parts.append("\n")

    if result.recommendations:
        parts.append(section_header("Recommendations"))
        for rec in result.recommendations:
            parts.append(
                f"  {_severity_icon(rec.severity)} [{rec.category}] "
                f"{style(rec.title, 'bold')} - {style(rec.description, 'dimmed')}\n"
            )

    return "".join(parts)