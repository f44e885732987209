"""DNS lookups, CNAME chain resolution and CAA policy analysis."""

from __future__ import annotations

import time
from collections.abc import Iterator
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, TypeVar

import dns.exception
import dns.rdatatype
import dns.resolver

from .models import (
    CaaAnalysis,
    CaaRecord,
    CaaRecordInfo,
    CertRadarError,
    CnameChain,
    DnsResult,
    MxRecord,
)

CLOUDFLARE_NAMESERVERS = ("1.1.1.1", "1.0.0.1")
QUERY_TIMEOUT = 5.0
QUERY_ATTEMPTS = 2
MAX_CNAME_HOPS = 10

_KNOWN_CAA_TAGS = ("issue", "issuewild", "iodef")
_CAA_CRITICAL_BIT = 0x80

_T = TypeVar("_T")


def _default_resolver() -> dns.resolver.Resolver:
    resolver = dns.resolver.Resolver(configure=False)
    resolver.nameservers = list(CLOUDFLARE_NAMESERVERS)
    resolver.timeout = QUERY_TIMEOUT
    resolver.lifetime = QUERY_TIMEOUT * QUERY_ATTEMPTS
    return resolver


def _strip_dot(name: Any) -> str:
    return str(name).rstrip(".")


def _decode(data: Any) -> str:
    if isinstance(data, bytes):
        return data.decode("utf-8", errors="replace")
    return str(data)


def _caa_tag(tag: Any) -> str:
    lowered = _decode(tag).lower()
    if lowered in _KNOWN_CAA_TAGS:
        return lowered
    return f'unknown("{lowered}")'


def _settle(future: Future[_T], default: _T) -> _T:
    try:
        return future.result()
    except CertRadarError:
        return default


def _first_ca(value: str) -> str:
    return value.split(";", 1)[0].strip()


def summarize_caa(
    raw_records: list[CaaRecordInfo], found_at: str | None, inherited: bool
) -> CaaAnalysis:
    """Build the CAA policy that a set of records defines."""
    authorized: set[str] = set()
    wildcard: set[str] = set()
    iodef: str | None = None
    has_critical = False

    for record in raw_records:
        if record.flag != 0:
            has_critical = True
        if record.tag == "issue":
            if ca := _first_ca(record.value):
                authorized.add(ca)
        elif record.tag == "issuewild":
            if ca := _first_ca(record.value):
                wildcard.add(ca)
        elif record.tag == "iodef":
            iodef = record.value

    return CaaAnalysis(
        found_at=found_at,
        inherited=inherited,
        authorized_cas=sorted(authorized),
        wildcard_cas=sorted(wildcard),
        has_iodef=iodef is not None,
        iodef=iodef,
        has_critical=has_critical,
        any_ca_allowed=not raw_records,
        raw_records=list(raw_records),
    )


def _ancestors(domain: str) -> Iterator[tuple[bool, str]]:
    """Yield the domain and its parents, stopping before the top-level label."""
    labels = domain.split(".")
    for depth in range(len(labels) - 1):
        yield depth > 0, ".".join(labels[depth:])


class DnsService:
    """Record lookups through a DNS resolver (Cloudflare by default)."""

    def __init__(self, resolver: Any = None) -> None:
        self._resolver = resolver if resolver is not None else _default_resolver()

    def _resolve(self, domain: str, rdtype: str) -> list[Any]:
        try:
            return list(self._resolver.resolve(domain, rdtype))
        except dns.exception.DNSException as exc:
            raise CertRadarError(f"{rdtype} lookup for {domain} failed: {exc}") from exc

    def lookup_all(self, domain: str) -> DnsResult:
        """Look up every record type at once; failed lookups come back empty."""
        start = time.monotonic()
        with ThreadPoolExecutor(max_workers=7) as pool:
            a = pool.submit(self.lookup_a, domain)
            aaaa = pool.submit(self.lookup_aaaa, domain)
            mx = pool.submit(self.lookup_mx, domain)
            txt = pool.submit(self.lookup_txt, domain)
            ns = pool.submit(self.lookup_ns, domain)
            cname = pool.submit(self.lookup_cname, domain)
            caa = pool.submit(self.lookup_caa, domain)
            result = DnsResult(
                a=_settle(a, []),
                aaaa=_settle(aaaa, []),
                cname=_settle(cname, None),
                mx=_settle(mx, []),
                txt=_settle(txt, []),
                ns=_settle(ns, []),
                caa=_settle(caa, []),
            )
        result.response_time_ms = int((time.monotonic() - start) * 1000)
        return result

    def lookup_a(self, domain: str) -> list[str]:
        """IPv4 addresses of the domain."""
        return [rdata.address for rdata in self._resolve(domain, "A")]

    def lookup_aaaa(self, domain: str) -> list[str]:
        """IPv6 addresses of the domain."""
        return [rdata.address for rdata in self._resolve(domain, "AAAA")]

    def lookup_mx(self, domain: str) -> list[MxRecord]:
        """Mail exchangers, lowest priority value first."""
        records = [
            MxRecord(host=_strip_dot(rdata.exchange), priority=rdata.preference)
            for rdata in self._resolve(domain, "MX")
        ]
        return sorted(records, key=lambda record: record.priority)

    def lookup_txt(self, domain: str) -> list[str]:
        """TXT records, each with its strings joined."""
        return ["".join(_decode(part) for part in rdata.strings) for rdata in self._resolve(domain, "TXT")]

    def lookup_ns(self, domain: str) -> list[str]:
        """Name servers of the domain."""
        return [_strip_dot(rdata.target) for rdata in self._resolve(domain, "NS")]

    def lookup_cname(self, domain: str) -> str | None:
        """The CNAME target of the domain, or None if there is none."""
        try:
            answers = self._resolve(domain, "CNAME")
        except CertRadarError:
            return None
        return next(
            (
                _strip_dot(rdata.target)
                for rdata in answers
                if getattr(rdata, "rdtype", None) == dns.rdatatype.CNAME
            ),
            None,
        )

    def lookup_caa(self, domain: str) -> list[CaaRecord]:
        """CAA records published at exactly this name."""
        return [
            CaaRecord(
                flag=1 if rdata.flags & _CAA_CRITICAL_BIT else 0,
                tag=_caa_tag(rdata.tag),
                value=_decode(rdata.value),
            )
            for rdata in self._resolve(domain, "CAA")
        ]

    def resolve_cname_chain(self, domain: str) -> CnameChain:
        """Follow CNAMEs from the domain for up to ten hops."""
        chain: list[str] = []
        visited = {domain}
        current = domain
        is_circular = False

        for _ in range(MAX_CNAME_HOPS):
            target = self.lookup_cname(current)
            if target is None:
                break
            target = target.rstrip(".").lower()
            chain.append(target)
            if target in visited:
                is_circular = True
                break
            visited.add(target)
            current = target

        return CnameChain(
            domain=domain,
            chain=chain,
            final_target=chain[-1] if chain else domain,
            is_circular=is_circular,
            hops=len(chain),
        )

    def analyze_caa(self, domain: str) -> CaaAnalysis:
        """Find the CAA policy in effect, walking up towards the registered domain."""
        for inherited, name in _ancestors(domain):
            try:
                records = self.lookup_caa(name)
            except CertRadarError:
                continue
            if records:
                raw = [
                    CaaRecordInfo(flag=r.flag, tag=r.tag, value=r.value, found_at=name)
                    for r in records
                ]
                return summarize_caa(raw, name, inherited)
        return summarize_caa([], None, False)