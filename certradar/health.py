"""SSL health check: CAA policy, CNAME chain and address records."""

from __future__ import annotations

import time
from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone

from .dns import DnsService
from .models import (
    CaaAnalysis,
    CnameChain,
    DnsResolution,
    DnsResult,
    HealthRecommendation,
    HealthScore,
    MxRecordInfo,
    SslHealthCheckResult,
    grade_for_score,
)


def _summary(recommendations: list[HealthRecommendation]) -> str:
    if not recommendations:
        return "All health checks passed"
    counts = Counter(rec.severity for rec in recommendations)
    critical = counts["critical"]
    warning = counts["warning"]
    info = len(recommendations) - critical - warning
    return f"{critical} critical, {warning} warning, {info} info issues"


def build_health_result(
    domain: str,
    caa: CaaAnalysis,
    cname_chain: CnameChain,
    dns_result: DnsResult,
    response_time_ms: int = 0,
) -> SslHealthCheckResult:
    """Score the findings of a health check and collect recommendations."""
    resolution = DnsResolution(
        ipv4=list(dns_result.a),
        ipv6=list(dns_result.aaaa),
        mx=[MxRecordInfo(host=m.host, priority=m.priority) for m in dns_result.mx],
        txt=list(dns_result.txt),
        ns=list(dns_result.ns),
        has_ipv4=bool(dns_result.a),
        has_ipv6=bool(dns_result.aaaa),
    )

    recommendations: list[HealthRecommendation] = []
    score = 100

    def penalise(points: int) -> None:
        nonlocal score
        score = max(0, score - points)

    if caa.any_ca_allowed:
        recommendations.append(
            HealthRecommendation(
                severity="warning",
                category="caa",
                title="No CAA Records",
                description="Add CAA records to restrict which CAs can issue certificates for your domain.",
            )
        )
        penalise(10)

    if cname_chain.is_circular:
        recommendations.append(
            HealthRecommendation(
                severity="critical",
                category="cname",
                title="Circular CNAME Detected",
                description="Fix the circular CNAME reference in your DNS configuration.",
            )
        )
        penalise(30)
    elif cname_chain.hops > 3:
        recommendations.append(
            HealthRecommendation(
                severity="info",
                category="cname",
                title="Long CNAME Chain",
                description=(
                    f"CNAME chain has {cname_chain.hops} hops. "
                    "Consider reducing for better performance."
                ),
            )
        )
        penalise(5)

    if not resolution.has_ipv4 and not resolution.has_ipv6:
        recommendations.append(
            HealthRecommendation(
                severity="critical",
                category="dns",
                title="No IP Addresses",
                description="Domain has no A or AAAA records.",
            )
        )
        penalise(40)
    elif not resolution.has_ipv6:
        recommendations.append(
            HealthRecommendation(
                severity="info",
                category="dns",
                title="No IPv6 Support",
                description="Consider adding AAAA records for IPv6 support.",
            )
        )

    return SslHealthCheckResult(
        domain=domain,
        checked_at=datetime.now(timezone.utc),
        health_score=HealthScore(
            grade=grade_for_score(score), score=score, summary=_summary(recommendations)
        ),
        caa=caa,
        cname_chain=cname_chain,
        dns=resolution,
        recommendations=recommendations,
        response_time_ms=response_time_ms,
    )


def run_health_check(dns: DnsService, domain: str) -> SslHealthCheckResult:
    """Run the CAA, CNAME and record lookups together and score the result."""
    start = time.monotonic()
    with ThreadPoolExecutor(max_workers=3) as pool:
        caa_future = pool.submit(dns.analyze_caa, domain)
        cname_future = pool.submit(dns.resolve_cname_chain, domain)
        records_future = pool.submit(dns.lookup_all, domain)
        caa = caa_future.result()
        cname_chain = cname_future.result()
        records = records_future.result()
    elapsed_ms = int((time.monotonic() - start) * 1000)
    return build_health_result(domain, caa, cname_chain, records, elapsed_ms)